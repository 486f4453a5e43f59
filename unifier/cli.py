"""
unifier - merge a project directory into one LLM-ready document

Architecture:
    CLI Args → Settings → Session (root selection) → Processor →
    Summary → Output (clipboard / file / stdout)
"""

from __future__ import annotations

import argparse
import logging
import sys
from enum import Enum, auto
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from unifier import __version__
from unifier.constants import DEFAULT_IGNORE_PATTERNS, Defaults, OUTPUT_FORMATS
from unifier.dispatch import CancelToken
from unifier.errors import (
    ProcessingError,
    RenderError,
    RunCancelled,
    SelectionCancelled,
    UnsupportedEnvironmentError,
)
from unifier.models import ProcessorSettings, RunResult
from unifier.patterns import parse_patterns
from unifier.pipeline import ProjectProcessor, Session

try:
    import pyperclip
    HAS_PYPERCLIP = True
except ImportError:
    HAS_PYPERCLIP = False


def get_version() -> str:
    """Get version from package metadata or fallback to hardcoded."""
    try:
        from importlib.metadata import PackageNotFoundError, version
        return version("project-unifier")
    except (ImportError, PackageNotFoundError):
        return __version__


# =============================================================================
# CONFIGURATION BUILDER
# =============================================================================

class OutputMode(Enum):
    """Output destination modes."""
    CLIPBOARD = auto()
    FILE = auto()
    STDOUT = auto()


class SettingsBuilder:
    """Builds ProcessorSettings from CLI arguments."""

    @staticmethod
    def from_args(args: argparse.Namespace) -> ProcessorSettings:
        return ProcessorSettings(
            ignore_patterns="\n".join(SettingsBuilder._collect_patterns(args)),
            max_file_size_kb=SettingsBuilder._parse_size(args.max_size),
            output_format=args.format,
            include_tree=not args.no_tree,
            include_empty_dirs=args.include_empty_dirs,
            use_gitignore=args.gitignore,
            max_workers=args.workers,
            sequential=args.sequential,
        )

    @staticmethod
    def _collect_patterns(args: argparse.Namespace) -> List[str]:
        patterns: List[str] = []
        if not args.no_default_ignores:
            patterns.extend(DEFAULT_IGNORE_PATTERNS)

        for path in (args.ignore_file or []):
            try:
                text = Path(path).read_text(encoding="utf-8")
            except OSError as e:
                logging.warning(f"Could not read ignore file {path}: {e}")
                continue
            patterns.extend(parse_patterns(text))

        patterns.extend(args.ignore or [])
        return patterns

    @staticmethod
    def _parse_size(size_str: str) -> int:
        """Parse a size to kilobytes. Bare numbers are KB; k/m/g suffixes allowed."""
        size_str = str(size_str).strip().lower()
        if not size_str:
            return Defaults.MAX_FILE_SIZE_KB

        multipliers = {"k": 1, "m": 1024, "g": 1024**2}
        try:
            if size_str[-1] in multipliers:
                return int(size_str[:-1]) * multipliers[size_str[-1]]
            return int(size_str)
        except ValueError:
            logging.warning(f"Invalid size format: {size_str}, using {Defaults.MAX_FILE_SIZE_KB} KB")
            return Defaults.MAX_FILE_SIZE_KB

    @staticmethod
    def output_mode(args: argparse.Namespace) -> OutputMode:
        if args.output:
            return OutputMode.FILE
        if args.stdout or args.no_clipboard or not HAS_PYPERCLIP:
            return OutputMode.STDOUT
        return OutputMode.CLIPBOARD


# =============================================================================
# ROOT SELECTION
# =============================================================================

class InteractiveSelector:
    """Asks for the project root on the terminal."""

    @staticmethod
    def run(default: Path) -> Path:
        if not sys.stdin.isatty():
            raise UnsupportedEnvironmentError(
                "Interactive selection needs a terminal; pass the directory as an argument."
            )
        try:
            inp = input(f"Project directory [{default}] (type 'q' to cancel): ").strip()
        except (EOFError, KeyboardInterrupt):
            raise SelectionCancelled() from None
        if inp.lower() in ("q", "quit"):
            raise SelectionCancelled()
        return Path(inp) if inp else default


# =============================================================================
# PROGRESS
# =============================================================================

class ProgressReporter:
    """tqdm bar fed by the dispatcher's (processed, total) callbacks."""

    def __init__(self, enabled: bool):
        self.enabled = enabled
        self.bar: Optional[tqdm] = None
        self.last = 0

    def update(self, processed: int, total: int) -> None:
        if not self.enabled:
            return
        if self.bar is None:
            self.bar = tqdm(total=total, desc="Processing", unit="files", file=sys.stderr)
        if processed < self.last:
            self.bar.reset(total=total)
            self.last = 0
        self.bar.update(processed - self.last)
        self.last = processed

    def close(self) -> None:
        if self.bar is not None:
            self.bar.close()
            self.bar = None


# =============================================================================
# OUTPUT WRITER
# =============================================================================

def format_summary(result: RunResult) -> str:
    status = result.status
    return "\n".join([
        f"# 📁 {result.project_name}",
        f"**Format:** {result.output_format}",
        f"**Files:** {status.text:,} text · {status.binary:,} binary · {status.large:,} large",
        f"**Tokens:** ~{status.tokens:,}",
    ])


class OutputWriter:
    """Handles output to various destinations."""

    @staticmethod
    def write(result: RunResult, summary: str, mode: OutputMode, path: Optional[str]) -> bool:
        if mode == OutputMode.FILE:
            return OutputWriter._write_file(result, summary, path)
        elif mode == OutputMode.STDOUT:
            return OutputWriter._write_stdout(result.output)
        else:
            return OutputWriter._write_clipboard(result.output, summary)

    @staticmethod
    def resolve_path(path: str, suggested: str) -> Path:
        """A directory (existing, or given with a trailing slash) gets the suggested name."""
        target = Path(path)
        if target.is_dir() or path.endswith(("/", "\\")):
            return target / suggested
        return target

    @staticmethod
    def _write_file(result: RunResult, summary: str, path: Optional[str]) -> bool:
        if not path:
            return False
        target = OutputWriter.resolve_path(path, result.suggested_filename)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(result.output, encoding="utf-8")
            print(summary, file=sys.stderr)
            print(f"\n✅ Written to {target}", file=sys.stderr)
            return True
        except OSError as e:
            print(f"❌ Error writing file: {e}", file=sys.stderr)
            return False

    @staticmethod
    def _write_stdout(content: str) -> bool:
        try:
            print(content)
            return True
        except OSError as e:
            print(f"❌ Error writing to stdout: {e}", file=sys.stderr)
            return False

    @staticmethod
    def _write_clipboard(content: str, summary: str) -> bool:
        if not HAS_PYPERCLIP:
            print("⚠️ pyperclip not installed, printing to stdout", file=sys.stderr)
            return OutputWriter._write_stdout(content)

        try:
            print(summary, file=sys.stderr)
            pyperclip.copy(content)
            print(f"\n✅ {len(content):,} chars copied to clipboard", file=sys.stderr)
            return True
        except pyperclip.PyperclipException as e:
            print(f"❌ Clipboard error: {e}", file=sys.stderr)
            return False


# =============================================================================
# CLI PARSER
# =============================================================================

def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="unifier",
        description="Merge a project directory into one Markdown, JSON or XML document for LLMs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  unifier                        # Current dir as Markdown, copy to clipboard
  unifier ./src --format xml     # Specific directory as XML
  unifier -o out/                # Write {name}_unified_{date}.md into out/
  unifier --ignore "*.csv"       # Add an ignore pattern
  unifier --max-size 0           # No size ceiling
        """,
    )

    parser.add_argument(
        "root_dir",
        nargs="?",
        type=Path,
        default=Path("."),
        help="Root project directory (default: current)",
    )
    parser.add_argument("--interactive", action="store_true", help="Prompt for the root directory")

    out = parser.add_argument_group("Output Options")
    out.add_argument("-o", "--output", metavar="PATH", help="Write to file (or into a directory)")
    out.add_argument("--stdout", action="store_true", help="Print to stdout")
    out.add_argument("--no-clipboard", action="store_true", help="Don't copy to clipboard")
    out.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default=Defaults.OUTPUT_FORMAT,
        help=f"Output format (default: {Defaults.OUTPUT_FORMAT})",
    )
    out.add_argument("--no-tree", action="store_true", help="Omit the directory tree (markdown/xml)")
    out.add_argument(
        "--include-empty-dirs",
        action="store_true",
        help="Keep directories without any output file in the JSON tree",
    )

    filt = parser.add_argument_group("Filtering")
    filt.add_argument("--ignore", action="append", metavar="PATTERN", help="Extra ignore pattern")
    filt.add_argument("--ignore-file", action="append", metavar="FILE", help="File of ignore patterns, one per line")
    filt.add_argument("--no-default-ignores", action="store_true", help="Drop the built-in ignore patterns")
    filt.add_argument("--gitignore", action="store_true", help="Also apply the root .gitignore")
    filt.add_argument(
        "--max-size",
        default=str(Defaults.MAX_FILE_SIZE_KB),
        help=f"Max file size in KB before content is omitted, 0 = unlimited (default: {Defaults.MAX_FILE_SIZE_KB})",
    )

    run = parser.add_argument_group("Processing")
    run.add_argument("--workers", type=int, metavar="N", help="Worker threads for classification")
    run.add_argument("--sequential", action="store_true", help="Classify files on the main thread")
    run.add_argument("--no-progress", action="store_true", help="Hide the progress bar")
    run.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    meta = parser.add_argument_group("Information")
    meta.add_argument("--version", action="version", version=f"%(prog)s {get_version()}")

    return parser


# =============================================================================
# MAIN
# =============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    logging.basicConfig(
        level=logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    parser = create_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    if args.workers is not None and args.workers <= 0:
        parser.error("--workers must be greater than 0")

    try:
        root = InteractiveSelector.run(args.root_dir) if args.interactive else args.root_dir
        session = Session.from_path(root)
    except SelectionCancelled:
        print("Directory selection cancelled.", file=sys.stderr)
        return 0
    except UnsupportedEnvironmentError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    settings = SettingsBuilder.from_args(args)
    progress = ProgressReporter(enabled=not args.no_progress and sys.stderr.isatty())
    cancel = CancelToken()
    processor = ProjectProcessor(on_progress=progress.update)

    try:
        result = processor.process(session, settings, cancel)
    except KeyboardInterrupt:
        cancel.cancel()
        print("\n⚠️ Interrupted", file=sys.stderr)
        return 130
    except RunCancelled as e:
        print(f"⚠️ {e}", file=sys.stderr)
        return 130
    except (RenderError, ProcessingError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    finally:
        progress.close()

    if result.status.total == 0:
        print("⚠️ No files matched the filters", file=sys.stderr)

    summary = format_summary(result)
    success = OutputWriter.write(result, summary, SettingsBuilder.output_mode(args), args.output)
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
