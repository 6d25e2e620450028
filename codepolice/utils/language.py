"""
Language detection by file extension, plus the line-comment token per language.
"""

from __future__ import annotations

from pathlib import PurePosixPath

EXTENSION_LANGUAGES: dict[str, str] = {
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".py": "python",
    ".rb": "ruby",
    ".go": "go",
    ".rs": "rust",
    ".java": "java",
    ".kt": "kotlin",
    ".swift": "swift",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".hpp": "cpp",
    ".cs": "csharp",
    ".php": "php",
    ".scala": "scala",
    ".sh": "shell",
    ".bash": "shell",
    ".yml": "yaml",
    ".yaml": "yaml",
    ".sql": "sql",
    ".lua": "lua",
    ".vue": "vue",
    ".svelte": "svelte",
}

HASH_COMMENT_LANGUAGES = {"python", "ruby", "shell", "yaml"}
DASH_COMMENT_LANGUAGES = {"sql", "lua"}


def detect_language(file_path: str) -> str:
    """Map a repository path to a language name ('plaintext' when unknown)."""
    suffix = PurePosixPath(file_path.replace("\\", "/")).suffix.lower()
    return EXTENSION_LANGUAGES.get(suffix, "plaintext")


def comment_prefix(language: str) -> str:
    if language in HASH_COMMENT_LANGUAGES:
        return "#"
    if language in DASH_COMMENT_LANGUAGES:
        return "--"
    return "//"
