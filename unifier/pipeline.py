"""
Run orchestration.

A :class:`Session` holds the selected root so that the same directory can be
processed again with different settings without selecting it anew. The
:class:`ProjectProcessor` itself keeps no state between runs.

Architecture:
    Session root + settings → walk (ignore patterns) → file entries →
    dispatcher → classifier → categorized records → renderer → RunResult
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from unifier.dispatch import CancelToken, Dispatcher, ProgressCallback, process_all, select_dispatcher
from unifier.errors import ProcessingError, RenderError, RunCancelled
from unifier.models import (
    CategorizedResult,
    FileEntry,
    FileRecord,
    ProcessorSettings,
    ProcessorStatus,
    RunResult,
)
from unifier.patterns import parse_patterns
from unifier.render import estimate_tokens, render, suggested_filename
from unifier.sources import (
    DirectoryHandle,
    FileHandle,
    LocalDirectoryHandle,
    build_virtual_directory,
)
from unifier.walker import collect_directories, collect_file_handles, generate_tree, load_gitignore

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], None]

FORMAT_LABELS = {"markdown": "Markdown", "json": "JSON", "xml": "XML"}


@dataclass
class Session:
    """The selected project root, reused across reprocess runs."""
    root: DirectoryHandle
    name: str

    @classmethod
    def from_path(cls, path: Path) -> Session:
        path = Path(path).expanduser()
        if not path.is_dir():
            raise NotADirectoryError(f"Directory not found: {path}")
        if not os.access(path, os.R_OK | os.X_OK):
            raise PermissionError(f"Directory not readable: {path}")
        handle = LocalDirectoryHandle(path)
        return cls(root=handle, name=handle.name)

    @classmethod
    def from_files(cls, name: str, files: Iterable[Tuple[str, FileHandle]]) -> Session:
        """Session over a flat list of already-selected files."""
        return cls(root=build_virtual_directory(name, files), name=name)


def restore_discovery_order(records: List[FileRecord], entries: Sequence[FileEntry]) -> List[FileRecord]:
    order = {entry.path: i for i, entry in enumerate(entries)}
    return sorted(records, key=lambda record: order[record.path])


def build_status(output: str, categorized: CategorizedResult, records: List[FileRecord]) -> ProcessorStatus:
    return ProcessorStatus(
        text=len(categorized.text_files),
        binary=len(categorized.binary_files),
        large=len(categorized.large_files),
        tokens=estimate_tokens(output),
        files=[{"name": r.path, "size": r.size_bytes} for r in records],
    )


class ProjectProcessor:
    """Runs the whole pipeline for a session and a set of settings."""

    def __init__(
        self,
        on_status: Optional[StatusCallback] = None,
        on_progress: Optional[ProgressCallback] = None,
        dispatcher: Optional[Dispatcher] = None,
    ):
        self.on_status = on_status
        self.on_progress = on_progress
        self.dispatcher = dispatcher

    def _status(self, message: str) -> None:
        logger.info(message)
        if self.on_status:
            self.on_status(message)

    def process(
        self,
        session: Session,
        settings: ProcessorSettings,
        cancel: Optional[CancelToken] = None,
        timestamp: Optional[str] = None,
    ) -> RunResult:
        self._status("Collecting files...")
        return self._run(session, settings, cancel, timestamp)

    def reprocess(
        self,
        session: Session,
        settings: ProcessorSettings,
        cancel: Optional[CancelToken] = None,
        timestamp: Optional[str] = None,
    ) -> RunResult:
        """Walk the session root again, typically after the patterns changed."""
        self._status("Recalculating with updated filters...")
        return self._run(session, settings, cancel, timestamp)

    def _run(
        self,
        session: Session,
        settings: ProcessorSettings,
        cancel: Optional[CancelToken],
        timestamp: Optional[str],
    ) -> RunResult:
        try:
            return self._execute(session, settings, cancel or CancelToken(), timestamp)
        except (RunCancelled, RenderError, ProcessingError):
            raise
        except Exception as e:
            logger.exception("Error processing directory")
            raise ProcessingError(f"An error occurred: {e}") from e

    def _execute(
        self,
        session: Session,
        settings: ProcessorSettings,
        cancel: CancelToken,
        timestamp: Optional[str],
    ) -> RunResult:
        root = session.root
        patterns = parse_patterns(settings.ignore_patterns)
        extra = load_gitignore(root) if settings.use_gitignore else None

        entries = collect_file_handles(root, patterns, extra)
        cancel.raise_if_cancelled()
        self._status(f"Found {len(entries)} files. Processing...")

        dispatcher = self.dispatcher or select_dispatcher(settings.max_workers, settings.sequential)
        records = process_all(entries, settings.max_size_bytes, self.on_progress, dispatcher, cancel)
        records = restore_discovery_order(records, entries)
        categorized = CategorizedResult.from_records(records)

        output_format = settings.output_format
        self._status(f"Generating {FORMAT_LABELS[output_format]} output...")

        tree = None
        if settings.include_tree and output_format != "json":
            tree = generate_tree(root, patterns, extra)

        directories: List[str] = []
        if output_format == "json" and settings.include_empty_dirs:
            directories = collect_directories(root, patterns, extra)

        output = render(output_format, session.name, categorized, tree, timestamp, directories)
        status = build_status(output, categorized, records)

        self._status(f"Processing complete for {session.name}.")
        return RunResult(
            output=output,
            status=status,
            output_format=output_format,
            project_name=session.name,
            suggested_filename=suggested_filename(session.name, output_format),
        )
