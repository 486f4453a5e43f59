"""Data models for a single processing run."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Union, TYPE_CHECKING

from unifier.constants import DEFAULT_IGNORE_PATTERNS, Defaults, OUTPUT_FORMATS

if TYPE_CHECKING:
    from unifier.sources import FileHandle


# =============================================================================
# FILE RECORDS
# =============================================================================

@dataclass(frozen=True)
class _BaseRecord:
    path: str
    size_kb: float

    @property
    def size_bytes(self) -> int:
        return round(self.size_kb * 1024)


@dataclass(frozen=True)
class TextFile(_BaseRecord):
    """A file that decoded cleanly as UTF-8 within the size ceiling."""
    content: str
    line_count: int
    language: str

    kind = "text_file"

    def fields(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "line_count": self.line_count,
            "language": self.language,
        }


@dataclass(frozen=True)
class BinaryFile(_BaseRecord):
    """A file within the size ceiling that is not valid text."""
    sha256: str

    kind = "binary_file"

    def fields(self) -> Dict[str, Any]:
        return {"sha256": self.sha256}


@dataclass(frozen=True)
class LargeFile(_BaseRecord):
    """A file over the size ceiling; only its hash was computed."""
    sha256: str

    kind = "large_file"

    def fields(self) -> Dict[str, Any]:
        return {"sha256": self.sha256}


FileRecord = Union[TextFile, BinaryFile, LargeFile]


@dataclass
class CategorizedResult:
    """Classified files bucketed by kind, each in discovery order."""
    text_files: List[TextFile] = field(default_factory=list)
    binary_files: List[BinaryFile] = field(default_factory=list)
    large_files: List[LargeFile] = field(default_factory=list)

    @classmethod
    def from_records(cls, records: List[FileRecord]) -> CategorizedResult:
        result = cls()
        for record in records:
            if isinstance(record, TextFile):
                result.text_files.append(record)
            elif isinstance(record, BinaryFile):
                result.binary_files.append(record)
            elif isinstance(record, LargeFile):
                result.large_files.append(record)
            else:
                raise TypeError(f"Not a file record: {record!r}")
        return result

    def all_records(self) -> List[FileRecord]:
        return [*self.text_files, *self.binary_files, *self.large_files]

    def summary(self) -> Dict[str, int]:
        return {
            "text_files": len(self.text_files),
            "binary_files": len(self.binary_files),
            "large_files": len(self.large_files),
        }


# =============================================================================
# TREE AND STATUS
# =============================================================================

@dataclass
class FileEntry:
    """A discovered file: its handle plus slash-delimited path from the root."""
    handle: FileHandle
    path: str


@dataclass
class TreeNode:
    """Node of the JSON project tree."""
    name: str
    path: str
    is_dir: bool
    children: List[TreeNode] = field(default_factory=list)
    record: Optional[FileRecord] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.is_dir:
            data: Dict[str, Any] = {"name": self.name, "type": "file", "path": self.path}
            if self.record is not None:
                data["file_type"] = self.record.kind
                data["size_kb"] = self.record.size_kb
                data.update(self.record.fields())
            return data
        return {
            "name": self.name,
            "type": "directory",
            "path": self.path,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass
class ProcessorStatus:
    """Summary handed to callers next to the rendered document."""
    text: int
    binary: int
    large: int
    tokens: int
    files: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.text + self.binary + self.large


@dataclass
class RunResult:
    output: str
    status: ProcessorStatus
    output_format: str
    project_name: str
    suggested_filename: str


# =============================================================================
# SETTINGS
# =============================================================================

@dataclass(frozen=True)
class ProcessorSettings:
    """Immutable processing configuration."""
    ignore_patterns: str = "\n".join(DEFAULT_IGNORE_PATTERNS)
    max_file_size_kb: int = Defaults.MAX_FILE_SIZE_KB
    output_format: str = Defaults.OUTPUT_FORMAT
    include_tree: bool = True
    include_empty_dirs: bool = False
    use_gitignore: bool = False
    max_workers: Optional[int] = None
    sequential: bool = False

    def __post_init__(self):
        if self.output_format not in OUTPUT_FORMATS:
            raise ValueError(
                f"Unknown output format {self.output_format!r}; "
                f"expected one of {', '.join(OUTPUT_FORMATS)}"
            )

    @property
    def max_size_bytes(self) -> int:
        """Size ceiling in bytes; -1 disables it."""
        if self.max_file_size_kb > 0:
            return self.max_file_size_kb * 1024
        return -1

    def with_ignore_pattern(self, pattern: str) -> ProcessorSettings:
        """Copy of these settings with one more ignore pattern appended."""
        existing = [p for p in self.ignore_patterns.splitlines() if p.strip()]
        if not pattern.strip() or pattern in existing:
            return self
        return replace(self, ignore_patterns="\n".join([*existing, pattern]))
