"""
Document rendering.

All three formats share the same input: the project name, the categorized
records and, for Markdown and XML, an optional text tree. JSON derives its
tree from the records themselves.

Markdown embeds file contents verbatim inside fenced blocks. A file that
itself contains a ``` fence will end the block early; that is a known
limitation of the format and is left as is.
"""

from __future__ import annotations

import json
import logging
import math
import re
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional
from xml.sax.saxutils import escape

from unifier.constants import FILE_EXTENSIONS
from unifier.errors import RenderError
from unifier.models import CategorizedResult, FileRecord, TreeNode

logger = logging.getLogger(__name__)

# Characters outside the XML 1.0 Char production
XML_INVALID_CHARS = re.compile("[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with milliseconds and a ``Z`` suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def estimate_tokens(text: str) -> int:
    """Rough LLM token count: one token per four characters."""
    return math.ceil(len(text) / 4)


def suggested_filename(project_name: str, output_format: str, today: Optional[str] = None) -> str:
    today = today or datetime.now(timezone.utc).date().isoformat()
    return f"{project_name or 'project'}_unified_{today}.{FILE_EXTENSIONS[output_format]}"


# =============================================================================
# JSON TREE
# =============================================================================

def build_json_structure(
    records: Iterable[FileRecord],
    root_name: str,
    directories: Iterable[str] = (),
) -> TreeNode:
    """Nest records into a tree rooted at ``root_name``.

    Only directories that hold a record somewhere below them appear, unless
    extra directory paths are passed in ``directories``.
    """
    root = TreeNode(name=root_name, path="", is_dir=True)
    index: Dict[str, TreeNode] = {"": root}

    def ensure_dir(path: str) -> TreeNode:
        node = index.get(path)
        if node is not None:
            return node
        parent_path, _, name = path.rpartition("/")
        parent = ensure_dir(parent_path)
        node = TreeNode(name=name, path=path, is_dir=True)
        parent.children.append(node)
        index[path] = node
        return node

    for directory in directories:
        ensure_dir(directory.strip("/"))

    for record in records:
        parent_path, _, name = record.path.rpartition("/")
        ensure_dir(parent_path).children.append(
            TreeNode(name=name, path=record.path, is_dir=False, record=record)
        )

    def sort(node: TreeNode) -> None:
        node.children.sort(key=lambda child: child.name)
        for child in node.children:
            if child.is_dir:
                sort(child)

    sort(root)
    return root


# =============================================================================
# FORMATTERS
# =============================================================================

class MarkdownRenderer:
    """Formats output as Markdown with a front-matter header."""

    def render(
        self,
        project_name: str,
        categorized: CategorizedResult,
        tree: Optional[str],
        timestamp: str,
        directories: Iterable[str] = (),
    ) -> str:
        lines = [
            "---",
            f"project_name: {project_name}",
            f"generation_timestamp_utc: {timestamp}",
            "---",
            "",
        ]

        if tree:
            lines.append(f"## 🌳 Directory Structure\n\n```text\n{tree.strip()}\n```\n")

        if categorized.text_files:
            lines.append("## 📄 Text File Contents\n")
            for f in categorized.text_files:
                lines.append(f"### `{f.path}` (Metadata: {f.line_count} lines, {f.size_kb:.2f} KB)\n")
                lines.append(f"```{f.language}\n{f.content}\n```\n")

        if categorized.large_files:
            lines.append("## 📦 Large Files (Content Omitted)\n")
            lines.extend(self._hashed_item(f) for f in categorized.large_files)
            lines.append("\n")

        if categorized.binary_files:
            lines.append("## 🎲 Binary Files (Content Omitted)\n")
            lines.extend(self._hashed_item(f) for f in categorized.binary_files)
            lines.append("\n")

        return "\n".join(lines)

    @staticmethod
    def _hashed_item(f) -> str:
        return f"- `{f.path}` ({f.size_kb:.2f} KB, SHA256: `{f.sha256}`)"


class JsonRenderer:
    """Formats output as a single JSON document with a nested project tree."""

    def render(
        self,
        project_name: str,
        categorized: CategorizedResult,
        tree: Optional[str],
        timestamp: str,
        directories: Iterable[str] = (),
    ) -> str:
        project_tree = build_json_structure(categorized.all_records(), project_name, directories)
        output = {
            "project_name": project_name,
            "project_tree": project_tree.to_dict(),
            "metadata": {
                "generation_timestamp_utc": timestamp,
                "summary": categorized.summary(),
            },
        }
        return json.dumps(output, indent=2, ensure_ascii=False)


def xml_safe(text: str) -> str:
    """Replace characters XML 1.0 cannot carry, even in CDATA, with U+FFFD."""
    return XML_INVALID_CHARS.sub("\ufffd", text)


def escape_attr(value: str) -> str:
    """Escape ``& < > "`` for use inside a double-quoted XML attribute."""
    return escape(xml_safe(value), {'"': "&quot;"})


def cdata(text: str) -> str:
    """Wrap text in a CDATA section, splitting any ``]]>`` it contains."""
    return "<![CDATA[" + xml_safe(text).replace("]]>", "]]]]><![CDATA[>") + "]]>"


class XmlRenderer:
    """Formats output as XML; file contents travel in CDATA sections."""

    def render(
        self,
        project_name: str,
        categorized: CategorizedResult,
        tree: Optional[str],
        timestamp: str,
        directories: Iterable[str] = (),
    ) -> str:
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            f'<project name="{escape_attr(project_name)}" timestamp="{escape_attr(timestamp)}">',
        ]

        if tree:
            lines.append(f"  <directory_tree>{cdata(tree.strip())}</directory_tree>")

        lines.append(f'  <text_files count="{len(categorized.text_files)}">')
        for f in categorized.text_files:
            if XML_INVALID_CHARS.search(f.content):
                logger.warning(f"{f.path}: characters not allowed in XML replaced with U+FFFD")
            lines.append(
                f'    <file path="{escape_attr(f.path)}" size_kb="{f.size_kb:.2f}" '
                f'lines="{f.line_count}" language="{escape_attr(f.language)}">'
                f"{cdata(f.content)}</file>"
            )
        lines.append("  </text_files>")

        lines.extend(self._hashed_section("large_files", categorized.large_files))
        lines.extend(self._hashed_section("binary_files", categorized.binary_files))
        lines.append("</project>")
        return "\n".join(lines) + "\n"

    @staticmethod
    def _hashed_section(tag: str, files) -> List[str]:
        lines = [f'  <{tag} count="{len(files)}">']
        for f in files:
            lines.append(
                f'    <file path="{escape_attr(f.path)}" size_kb="{f.size_kb:.2f}" '
                f'sha256="{f.sha256}"/>'
            )
        lines.append(f"  </{tag}>")
        return lines


RENDERERS = {
    "markdown": MarkdownRenderer,
    "json": JsonRenderer,
    "xml": XmlRenderer,
}


def render(
    output_format: str,
    project_name: str,
    categorized: CategorizedResult,
    tree: Optional[str] = None,
    timestamp: Optional[str] = None,
    directories: Iterable[str] = (),
) -> str:
    """Render ``categorized`` in ``output_format``.

    ``tree`` is ignored for JSON. ``directories`` only affects JSON, adding
    directories that would otherwise be dropped for having no records.
    """
    try:
        renderer = RENDERERS[output_format]()
    except KeyError:
        raise RenderError(f"Unknown output format: {output_format}") from None

    try:
        return renderer.render(
            project_name,
            categorized,
            tree,
            timestamp or utc_timestamp(),
            directories,
        )
    except (TypeError, ValueError) as e:
        raise RenderError(str(e)) from e
