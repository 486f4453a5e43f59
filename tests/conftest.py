from pathlib import Path
from typing import Dict, Union

import pytest


def write_tree(root: Path, files: Dict[str, Union[str, bytes, None]]) -> Path:
    """Create files under ``root``; a None value creates an empty directory."""
    for rel, content in files.items():
        path = root / rel
        if content is None:
            path.mkdir(parents=True, exist_ok=True)
            continue
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def project(tmp_path):
    """A small project with text, binary and ignored content."""
    root = tmp_path / "demo"
    root.mkdir()
    return write_tree(root, {
        "README.md": "# Demo\n",
        "src/app.py": "print('hello')\n",
        "src/util/helpers.py": "def helper():\n    return 1\n",
        "assets/logo.bin": b"\x89PNG\r\n\x1a\n\x00\x00\xff\xfe",
        "docs": None,
        ".git/config": "[core]\n",
        "node_modules/pkg/index.js": "module.exports = 1;\n",
        "debug.log": "noise\n",
    })
