"""
Ignore-pattern matching.

Patterns are glob-like strings:

    *       any run of characters inside one path segment (leading dots too)
    **      any run of characters across segments; ``**/`` matches zero or
            more whole directories and a trailing ``/**`` also matches the
            directory itself
    ?       exactly one character other than ``/``
    [abc]   character class, ``[!abc]`` negated, as in :mod:`fnmatch`

A pattern with a trailing ``/`` only applies to a directory and everything
below it. A pattern without any ``/`` is also tried against the last path
segment, so ``*.log`` ignores ``logs/app.log``. Matching is case-sensitive and
there is no negation: the first matching pattern wins.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, List, Pattern


def parse_patterns(text: str) -> List[str]:
    """Split newline-delimited pattern text, dropping blank lines."""
    return [line.strip() for line in text.splitlines() if line.strip()]


@lru_cache(maxsize=2048)
def compile_glob(pattern: str) -> Pattern[str]:
    """Translate a glob into an anchored regular expression."""
    parts: List[str] = []
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        if c == "/" and pattern[i + 1:] == "**":
            parts.append("(?:/.*)?")
            break
        if c == "*":
            j = i
            while j < n and pattern[j] == "*":
                j += 1
            if j - i == 1:
                parts.append("[^/]*")
                i = j
            elif (i == 0 or pattern[i - 1] == "/") and j < n and pattern[j] == "/":
                parts.append("(?:.*/)?")
                i = j + 1
            else:
                parts.append(".*")
                i = j
            continue
        if c == "?":
            parts.append("[^/]")
        elif c == "[":
            j = i + 1
            if j < n and pattern[j] == "!":
                j += 1
            if j < n and pattern[j] == "]":
                j += 1
            j = pattern.find("]", j)
            if j == -1:
                parts.append(re.escape(c))
            else:
                stuff = pattern[i + 1:j].replace("\\", "\\\\")
                i = j
                if stuff.startswith("!"):
                    stuff = "^" + stuff[1:]
                elif stuff.startswith("^"):
                    stuff = "\\" + stuff
                parts.append(f"[{stuff}]")
        else:
            parts.append(re.escape(c))
        i += 1
    return re.compile("".join(parts), re.DOTALL)


def _matches(pattern: str, path: str) -> bool:
    return compile_glob(pattern).fullmatch(path) is not None


def is_ignored(relative_path: str, patterns: Iterable[str]) -> bool:
    """Return True when any pattern ignores ``relative_path``.

    A trailing ``/`` on the path marks it as a directory and is not part of
    what gets matched.
    """
    normalized = relative_path.replace("\\", "/").rstrip("/")
    if not normalized:
        return False
    basename = normalized.rsplit("/", 1)[-1]

    for pattern in patterns:
        pattern = pattern.strip()
        if not pattern:
            continue
        if pattern.endswith("/"):
            body = pattern.rstrip("/")
            if body and (_matches(body, normalized) or _matches(body + "/**", normalized)):
                return True
            continue
        if _matches(pattern, normalized):
            return True
        if "/" not in pattern and _matches(pattern, basename):
            return True
    return False
