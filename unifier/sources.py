"""
Directory and file handles.

The walker and classifier never touch paths directly; they work on handles.
Two input shapes are supported and end up looking the same:

- a real directory on disk (:class:`LocalDirectoryHandle`), and
- a flat list of already-selected files with slash-delimited relative paths,
  turned into a directory by :func:`build_virtual_directory`.
"""

from __future__ import annotations

import io
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Dict, Iterable, Iterator, Tuple, Union

logger = logging.getLogger(__name__)


# =============================================================================
# HANDLE INTERFACES
# =============================================================================

class FileHandle(ABC):
    """Read access to one file."""

    kind = "file"
    name: str

    @abstractmethod
    def size(self) -> int:
        """Size of the file in bytes."""

    @abstractmethod
    def open(self) -> BinaryIO:
        """Open the file for binary reading."""

    def read_bytes(self) -> bytes:
        with self.open() as f:
            return f.read()


class DirectoryHandle(ABC):
    """Enumeration of the immediate children of one directory."""

    kind = "directory"
    name: str

    @abstractmethod
    def iter_children(self) -> Iterator[Union[FileHandle, DirectoryHandle]]:
        """Yield child handles in listing order."""


Handle = Union[FileHandle, DirectoryHandle]


# =============================================================================
# LOCAL FILESYSTEM
# =============================================================================

class LocalFileHandle(FileHandle):

    def __init__(self, path: Path):
        self.path = Path(path)
        self.name = self.path.name

    def size(self) -> int:
        return self.path.stat().st_size

    def open(self) -> BinaryIO:
        return open(self.path, "rb")

    def __repr__(self) -> str:
        return f"LocalFileHandle({str(self.path)!r})"


class LocalDirectoryHandle(DirectoryHandle):
    """A directory on disk. Symbolic links are not followed."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.name = self.path.resolve().name or str(self.path)

    def iter_children(self) -> Iterator[Handle]:
        try:
            with os.scandir(self.path) as it:
                entries = list(it)
        except (PermissionError, OSError) as e:
            logger.warning(f"Cannot list {self.path}: {e}")
            return

        for entry in entries:
            try:
                if entry.is_symlink():
                    continue
                if entry.is_dir(follow_symlinks=False):
                    yield LocalDirectoryHandle(Path(entry.path))
                elif entry.is_file(follow_symlinks=False):
                    yield LocalFileHandle(Path(entry.path))
            except OSError as e:
                logger.warning(f"Cannot stat {entry.path}: {e}")

    def __repr__(self) -> str:
        return f"LocalDirectoryHandle({str(self.path)!r})"


# =============================================================================
# IN-MEMORY AND FLAT-LIST INPUTS
# =============================================================================

class BytesFileHandle(FileHandle):
    """A file whose content is already in memory."""

    def __init__(self, name: str, data: bytes):
        self.name = name
        self.data = data

    def size(self) -> int:
        return len(self.data)

    def open(self) -> BinaryIO:
        return io.BytesIO(self.data)


class NamedFileHandle(FileHandle):
    """Another handle seen under the name its position in a file list gives it."""

    def __init__(self, name: str, handle: FileHandle):
        self.name = name
        self.handle = handle

    def size(self) -> int:
        return self.handle.size()

    def open(self) -> BinaryIO:
        return self.handle.open()

    def __repr__(self) -> str:
        return f"NamedFileHandle({self.name!r}, {self.handle!r})"


class VirtualDirectoryHandle(DirectoryHandle):
    """Directory assembled from a list of files; children keep insertion order."""

    def __init__(self, name: str):
        self.name = name
        self.children: Dict[str, Handle] = {}

    def iter_children(self) -> Iterator[Handle]:
        yield from list(self.children.values())

    def add_file(self, parts: Tuple[str, ...], handle: FileHandle) -> None:
        node = self
        for part in parts[:-1]:
            child = node.children.get(part)
            if child is None:
                child = VirtualDirectoryHandle(part)
                node.children[part] = child
            elif not isinstance(child, VirtualDirectoryHandle):
                raise ValueError(f"{part!r} is both a file and a directory")
            node = child
        leaf = parts[-1]
        if isinstance(node.children.get(leaf), VirtualDirectoryHandle):
            raise ValueError(f"{leaf!r} is both a file and a directory")
        if handle.name != leaf:
            handle = NamedFileHandle(leaf, handle)
        node.children[leaf] = handle


def build_virtual_directory(
    name: str,
    files: Iterable[Tuple[str, FileHandle]],
) -> VirtualDirectoryHandle:
    """Build a directory handle from ``(relative_path, handle)`` pairs.

    When every path starts with ``name/`` (the shape browsers and file
    pickers report), that leading component is dropped.
    """
    pairs = []
    for raw_path, handle in files:
        parts = tuple(p for p in raw_path.replace("\\", "/").split("/") if p and p != ".")
        if not parts:
            raise ValueError(f"Empty relative path for {handle!r}")
        pairs.append((parts, handle))

    if pairs and all(len(parts) > 1 and parts[0] == name for parts, _ in pairs):
        pairs = [(parts[1:], handle) for parts, handle in pairs]

    root = VirtualDirectoryHandle(name)
    for parts, handle in pairs:
        root.add_file(parts, handle)
    return root
