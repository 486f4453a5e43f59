import json
import xml.etree.ElementTree as ET

import pytest

from tests.conftest import write_tree
from unifier.dispatch import CancelToken, SequentialDispatcher
from unifier.errors import RunCancelled
from unifier.models import ProcessorSettings
from unifier.pipeline import ProjectProcessor, Session, restore_discovery_order
from unifier.sources import BytesFileHandle

TS = "2024-05-01T12:00:00.000Z"


def test_markdown_run_end_to_end(project):
    result = ProjectProcessor().process(Session.from_path(project), ProcessorSettings(), timestamp=TS)

    assert result.project_name == "demo"
    assert result.output_format == "markdown"
    assert result.suggested_filename.startswith("demo_unified_")
    assert result.suggested_filename.endswith(".md")

    status = result.status
    assert (status.text, status.binary, status.large) == (3, 1, 0)
    assert status.tokens == -(-len(result.output) // 4)
    assert {f["name"] for f in status.files} == {
        "README.md", "src/app.py", "src/util/helpers.py", "assets/logo.bin",
    }
    assert {"name": "README.md", "size": 7} in status.files

    output = result.output
    assert "project_name: demo" in output
    assert "```text\ndemo\n" in output
    assert "├── docs" in output
    assert ".git" not in output
    assert "node_modules" not in output
    assert "debug.log" not in output
    assert "### `src/app.py`" in output


def test_run_is_idempotent_apart_from_timestamp(project):
    session = Session.from_path(project)
    processor = ProjectProcessor()
    for output_format in ("markdown", "json", "xml"):
        settings = ProcessorSettings(output_format=output_format)
        first = processor.process(session, settings, timestamp=TS).output
        second = processor.process(session, settings, timestamp=TS).output
        assert first == second


def test_json_run_round_trips_summary(project):
    result = ProjectProcessor().process(
        Session.from_path(project), ProcessorSettings(output_format="json"), timestamp=TS
    )
    data = json.loads(result.output)
    assert data["metadata"]["summary"] == {
        "text_files": result.status.text,
        "binary_files": result.status.binary,
        "large_files": result.status.large,
    }
    names = [c["name"] for c in data["project_tree"]["children"]]
    assert names == ["README.md", "assets", "src"]


def test_json_empty_directories_are_opt_in(project):
    settings = ProcessorSettings(output_format="json", include_empty_dirs=True)
    data = json.loads(ProjectProcessor().process(Session.from_path(project), settings).output)
    names = [c["name"] for c in data["project_tree"]["children"]]
    assert names == ["README.md", "assets", "docs", "src"]


def test_xml_run_is_well_formed(project):
    (project / "src" / "cdata.txt").write_text("a ]]> b", encoding="utf-8")
    result = ProjectProcessor().process(Session.from_path(project), ProcessorSettings(output_format="xml"))
    root = ET.fromstring(result.output.encode("utf-8"))
    assert root.get("name") == "demo"
    assert root.find("directory_tree") is not None
    texts = {f.get("path"): f.text for f in root.find("text_files")}
    assert texts["src/cdata.txt"] == "a ]]> b"


def test_size_ceiling_from_settings(tmp_path):
    root = write_tree(tmp_path / "p", {"small.txt": "x" * 1024, "big.txt": "x" * 1025})
    result = ProjectProcessor().process(Session.from_path(root), ProcessorSettings(max_file_size_kb=1))
    assert (result.status.text, result.status.large) == (1, 1)

    unlimited = ProjectProcessor().process(Session.from_path(root), ProcessorSettings(max_file_size_kb=0))
    assert (unlimited.status.text, unlimited.status.large) == (2, 0)


def test_reprocess_with_added_pattern(project):
    session = Session.from_path(project)
    processor = ProjectProcessor()
    settings = ProcessorSettings()
    first = processor.process(session, settings)
    assert first.status.text == 3

    second = processor.reprocess(session, settings.with_ignore_pattern("*.md"))
    assert second.status.text == 2
    assert "README.md" not in {f["name"] for f in second.status.files}


def test_status_messages(project):
    messages = []
    processor = ProjectProcessor(on_status=messages.append)
    processor.process(Session.from_path(project), ProcessorSettings())
    assert messages == [
        "Collecting files...",
        "Found 4 files. Processing...",
        "Generating Markdown output...",
        "Processing complete for demo.",
    ]

    messages.clear()
    processor.reprocess(Session.from_path(project), ProcessorSettings(output_format="json"))
    assert messages[0] == "Recalculating with updated filters..."
    assert "Generating JSON output..." in messages


def test_cancelled_run_produces_no_result(project):
    cancel = CancelToken()
    cancel.cancel()
    with pytest.raises(RunCancelled):
        ProjectProcessor().process(Session.from_path(project), ProcessorSettings(), cancel=cancel)


def test_session_from_flat_file_list():
    session = Session.from_files("upload", [
        ("upload/src/main.py", BytesFileHandle("main.py", b"print(1)\n")),
        ("upload/.git/HEAD", BytesFileHandle("HEAD", b"ref: main\n")),
        ("upload/logo.bin", BytesFileHandle("logo.bin", b"\xff\xd8\xff")),
    ])
    assert session.name == "upload"
    processor = ProjectProcessor(dispatcher=SequentialDispatcher())
    result = processor.process(session, ProcessorSettings(output_format="json"), timestamp=TS)
    data = json.loads(result.output)
    assert data["project_name"] == "upload"
    assert data["metadata"]["summary"] == {"text_files": 1, "binary_files": 1, "large_files": 0}
    assert [c["name"] for c in data["project_tree"]["children"]] == ["logo.bin", "src"]


def test_session_from_path_requires_directory(tmp_path):
    with pytest.raises(NotADirectoryError):
        Session.from_path(tmp_path / "missing")


def test_restore_discovery_order():
    from unifier.models import BinaryFile, FileEntry

    handle = BytesFileHandle("x", b"")
    entries = [FileEntry(handle, "b"), FileEntry(handle, "a"), FileEntry(handle, "c")]
    records = [BinaryFile(path=p, size_kb=0, sha256="0") for p in ("c", "a", "b")]
    assert [r.path for r in restore_discovery_order(records, entries)] == ["b", "a", "c"]


def test_settings_helpers():
    settings = ProcessorSettings(ignore_patterns="*.log\n\n")
    added = settings.with_ignore_pattern("dist/")
    assert added.ignore_patterns == "*.log\ndist/"
    assert added.with_ignore_pattern("dist/") is added
    assert settings.with_ignore_pattern("   ") is settings

    assert ProcessorSettings(max_file_size_kb=2).max_size_bytes == 2048
    assert ProcessorSettings(max_file_size_kb=0).max_size_bytes == -1
    assert ProcessorSettings(max_file_size_kb=-5).max_size_bytes == -1

    with pytest.raises(ValueError):
        ProcessorSettings(output_format="yaml")


def test_flat_file_list_paths_come_from_the_list():
    session = Session.from_files("proj", [
        ("proj/src/a.py", BytesFileHandle("upload.bin", b"a = 1\n")),
        ("proj/b.py", BytesFileHandle("upload.bin", b"b = 2\n")),
    ])
    result = ProjectProcessor().process(session, ProcessorSettings(output_format="xml"), timestamp=TS)
    assert [f["name"] for f in result.status.files] == ["src/a.py", "b.py"]
    root = ET.fromstring(result.output.encode("utf-8"))
    languages = {f.get("path"): f.get("language") for f in root.find("text_files")}
    assert languages == {"src/a.py": "python", "b.py": "python"}


def test_xml_run_with_control_characters_is_well_formed(project):
    (project / "src" / "mod.py").write_bytes(b"a = 1\n\x0c\nb = 2\n")
    (project / "ansi.txt").write_bytes(b"\x1b[31mred\x1b[0m\n")
    result = ProjectProcessor().process(Session.from_path(project), ProcessorSettings(output_format="xml"))
    assert result.status.text == 5
    root = ET.fromstring(result.output.encode("utf-8"))
    texts = {f.get("path"): f.text for f in root.find("text_files")}
    assert texts["src/mod.py"] == "a = 1\n\ufffd\nb = 2\n"
    assert texts["ansi.txt"] == "\ufffd[31mred\ufffd[0m\n"
