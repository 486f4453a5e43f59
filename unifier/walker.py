"""
Directory traversal.

Every entry is tested against the ignore patterns with its path relative to
the walk root, both as-is and with a trailing ``/``. A match prunes the entry
and, for directories, everything beneath it; nothing below an ignored
directory can be brought back.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

from unifier.constants import GLYPH_CHILD, GLYPH_LAST, GLYPH_PIPE, GLYPH_SPACE
from unifier.models import FileEntry
from unifier.patterns import is_ignored
from unifier.sources import DirectoryHandle, Handle, LocalDirectoryHandle

try:
    import gitignore_parser
    HAS_GITIGNORE_PARSER = True
except ImportError:
    HAS_GITIGNORE_PARSER = False

logger = logging.getLogger(__name__)

# relative_path -> should prune
ExtraFilter = Callable[[str], bool]


# =============================================================================
# PRUNING
# =============================================================================

def _is_pruned(
    path: str,
    patterns: Sequence[str],
    extra: Optional[ExtraFilter],
) -> bool:
    if is_ignored(path, patterns) or is_ignored(f"{path}/", patterns):
        return True
    return extra is not None and extra(path)


def load_gitignore(root: DirectoryHandle) -> Optional[ExtraFilter]:
    """Load the root .gitignore of a local directory as an extra filter."""
    if not HAS_GITIGNORE_PARSER:
        logger.warning("gitignore_parser not installed, .gitignore is not applied")
        return None
    if not isinstance(root, LocalDirectoryHandle):
        return None

    base = root.path.resolve()
    gitignore = base / ".gitignore"
    if not gitignore.is_file():
        return None

    try:
        matcher = gitignore_parser.parse_gitignore(str(gitignore), base_dir=str(base))
    except Exception as e:
        logger.warning(f"Could not parse .gitignore: {e}")
        return None

    def check(path: str) -> bool:
        return bool(matcher(str(base / path)))

    return check


# =============================================================================
# WALKING
# =============================================================================

def walk(
    root: DirectoryHandle,
    patterns: Sequence[str],
    extra: Optional[ExtraFilter] = None,
) -> Iterator[Tuple[str, Handle]]:
    """Yield ``(relative_path, handle)`` depth-first, each directory before its contents."""

    def recurse(directory: DirectoryHandle, prefix: str) -> Iterator[Tuple[str, Handle]]:
        for child in directory.iter_children():
            path = f"{prefix}{child.name}"
            if _is_pruned(path, patterns, extra):
                logger.debug(f"Ignored {path}")
                continue
            yield path, child
            if child.kind == "directory":
                yield from recurse(child, f"{path}/")

    yield from recurse(root, "")


def iter_file_handles(
    root: DirectoryHandle,
    patterns: Sequence[str],
    extra: Optional[ExtraFilter] = None,
) -> Iterator[FileEntry]:
    for path, handle in walk(root, patterns, extra):
        if handle.kind == "file":
            yield FileEntry(handle=handle, path=path)


def collect_file_handles(
    root: DirectoryHandle,
    patterns: Sequence[str],
    extra: Optional[ExtraFilter] = None,
) -> List[FileEntry]:
    """Flat list of every non-ignored file under ``root``."""
    return list(iter_file_handles(root, patterns, extra))


def collect_directories(
    root: DirectoryHandle,
    patterns: Sequence[str],
    extra: Optional[ExtraFilter] = None,
) -> List[str]:
    """Relative paths of every non-ignored directory, empty ones included."""
    return [path for path, handle in walk(root, patterns, extra) if handle.kind == "directory"]


# =============================================================================
# TEXT TREE
# =============================================================================

def generate_tree(
    root: DirectoryHandle,
    patterns: Sequence[str],
    extra: Optional[ExtraFilter] = None,
) -> str:
    """Render the directory as a box-drawing tree, directories listed first."""
    lines = [root.name]

    def recurse(directory: DirectoryHandle, path_prefix: str, prefix: str) -> None:
        entries = []
        for child in directory.iter_children():
            path = f"{path_prefix}{child.name}"
            if not _is_pruned(path, patterns, extra):
                entries.append((path, child))
        entries.sort(key=lambda item: (item[1].kind != "directory", item[1].name))

        for i, (path, child) in enumerate(entries):
            is_last = i == len(entries) - 1
            lines.append(f"{prefix}{GLYPH_LAST if is_last else GLYPH_CHILD}{child.name}")
            if child.kind == "directory":
                recurse(child, f"{path}/", prefix + (GLYPH_SPACE if is_last else GLYPH_PIPE))

    recurse(root, "", "")
    return "\n".join(lines) + "\n"
