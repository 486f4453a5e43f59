"""Per-file classification into text, binary or large records."""

from __future__ import annotations

import hashlib
import logging
from typing import Optional

from unifier.constants import Defaults, LANGUAGE_HINTS
from unifier.models import BinaryFile, FileRecord, LargeFile, TextFile
from unifier.sources import FileHandle

logger = logging.getLogger(__name__)


def language_for(filename: str) -> str:
    """Language hint for a file name; empty string when unknown.

    Dotfiles such as ``.gitignore`` are looked up by their whole name, other
    files by the suffix starting at the last dot.
    """
    name = filename.replace("\\", "/").rsplit("/", 1)[-1].lower()
    if name.startswith("."):
        key = name
    elif "." in name:
        key = "." + name.rsplit(".", 1)[1]
    else:
        return ""
    return LANGUAGE_HINTS.get(key, "")


def decode_text(data: bytes) -> Optional[str]:
    """Strict UTF-8 decode. NUL bytes mean binary even though they decode."""
    if b"\x00" in data:
        return None
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return None


def count_lines(content: str) -> int:
    return content.count("\n") + 1


def hash_file(handle: FileHandle) -> str:
    """SHA-256 hex digest, read in chunks so content is never held whole."""
    digest = hashlib.sha256()
    with handle.open() as f:
        for chunk in iter(lambda: f.read(Defaults.HASH_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def classify(
    handle: FileHandle,
    relative_path: str,
    max_size_bytes: int,
) -> Optional[FileRecord]:
    """Classify one file, or return None when it cannot be read.

    ``max_size_bytes <= 0`` disables the size ceiling.
    """
    try:
        size = handle.size()
        size_kb = size / 1024

        if max_size_bytes > 0 and size > max_size_bytes:
            return LargeFile(path=relative_path, size_kb=size_kb, sha256=hash_file(handle))

        data = handle.read_bytes()
        content = decode_text(data)
        if content is None:
            return BinaryFile(
                path=relative_path,
                size_kb=size_kb,
                sha256=hashlib.sha256(data).hexdigest(),
            )
        return TextFile(
            path=relative_path,
            size_kb=size_kb,
            content=content,
            line_count=count_lines(content),
            language=language_for(relative_path),
        )
    except OSError as e:
        logger.warning(f"Could not process file {relative_path}: {e}")
        return None
