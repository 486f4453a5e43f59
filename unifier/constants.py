"""Static tables shared by the pipeline: default ignores, language hints, glyphs."""

from __future__ import annotations

from typing import Dict, List, Tuple


class Defaults:
    """Default configuration values."""
    MAX_FILE_SIZE_KB = 5120
    OUTPUT_FORMAT = "markdown"
    PROGRESS_EVERY = 10
    HASH_CHUNK_SIZE = 1024 * 1024


OUTPUT_FORMATS: Tuple[str, ...] = ("markdown", "json", "xml")

FILE_EXTENSIONS: Dict[str, str] = {
    "markdown": "md",
    "json": "json",
    "xml": "xml",
}


DEFAULT_IGNORE_PATTERNS: List[str] = [
    # Version control and editors
    ".git*", "*/.git*", ".svn", "*/.svn", ".hg", "*/.hg",
    ".idea", "*/.idea", ".vscode", "*/.vscode", "*.swp", "*.swo",
    # Dependencies
    "node_modules", "*/node_modules", "bower_components", "*/bower_components",
    "vendor", "*/vendor",
    # Build outputs
    "build", "*/build", "dist", "*/dist", "target", "*/target",
    # Python
    "__pycache__", "*/__pycache__", "*.pyc", "*.pyo", "*.pyd", ".Python",
    "*.egg-info", "venv", ".venv", "*/venv", "*/.venv",
    # OS droppings
    ".DS_Store", "Thumbs.db",
    # Compiled artifacts
    "*.exe", "*.dll", "*.so", "*.dylib", "*.o", "*.a", "*.lib",
    "*.class", "*.jar", "*.war", "*.ear",
    # Logs and temp files
    "*.log", "*.tmp", "*.temp",
    # Our own output
    "*_unified_*.txt", "*_unified_*.md", "*_unified_*.json", "*_unified_*.xml",
]


LANGUAGE_HINTS: Dict[str, str] = {
    ".py": "python", ".pyi": "python",
    ".js": "javascript", ".mjs": "javascript", ".cjs": "javascript",
    ".ts": "typescript", ".jsx": "jsx", ".tsx": "tsx",
    ".html": "html", ".htm": "html", ".vue": "vue", ".svelte": "svelte",
    ".css": "css", ".scss": "scss", ".sass": "sass", ".less": "less",
    ".json": "json", ".xml": "xml",
    ".yml": "yaml", ".yaml": "yaml", ".toml": "toml",
    ".ini": "ini", ".cfg": "ini",
    ".md": "markdown", ".rst": "rst",
    ".sql": "sql",
    ".sh": "shell", ".bash": "bash", ".zsh": "zsh",
    ".bat": "batch", ".ps1": "powershell",
    ".java": "java", ".kt": "kotlin", ".scala": "scala",
    ".c": "c", ".h": "c", ".cpp": "cpp", ".cc": "cpp", ".hpp": "cpp",
    ".cs": "csharp", ".go": "go", ".rs": "rust",
    ".rb": "ruby", ".php": "php", ".swift": "swift", ".lua": "lua",
    ".dockerfile": "dockerfile", ".tf": "terraform",
    # Dotfiles are looked up by their whole lowercased name
    ".env": "dotenv", ".gitignore": "gitignore", ".dockerignore": "gitignore",
    ".editorconfig": "ini",
}

# Tree display glyphs
GLYPH_CHILD = "├── "
GLYPH_LAST = "└── "
GLYPH_PIPE = "│   "
GLYPH_SPACE = "    "
