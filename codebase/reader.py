"""Project-contained file reader used to build model prompts."""

import os
from dataclasses import dataclass
from typing import Optional

_LANGUAGES = {
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".json": "json",
    ".md": "markdown",
    ".py": "python",
    ".pyi": "python",
    ".rs": "rust",
    ".go": "go",
    ".java": "java",
    ".c": "c",
    ".cpp": "cpp",
    ".cs": "csharp",
    ".rb": "ruby",
    ".php": "php",
    ".html": "html",
    ".css": "css",
    ".scss": "scss",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
    ".xml": "xml",
    ".sql": "sql",
    ".sh": "bash",
    ".bash": "bash",
    ".zsh": "zsh",
    ".fish": "fish",
}


@dataclass
class ReadResult:
    success: bool
    file_path: str
    relative_path: str
    content: Optional[str] = None
    error: Optional[str] = None


class FileReader:
    """Reads text files, refusing anything outside the project root."""

    def __init__(self, project_root: str) -> None:
        self.project_root = os.path.abspath(project_root)

    def read_file(self, file_path: str) -> ReadResult:
        abs_path = os.path.abspath(os.path.join(self.project_root, file_path))
        if not _is_within(abs_path, self.project_root):
            return ReadResult(
                success=False,
                file_path=abs_path,
                relative_path=file_path,
                error="Access denied: File is outside project directory",
            )

        if not os.path.exists(abs_path):
            return ReadResult(False, abs_path, file_path, error=f"File not found: {file_path}")
        if not os.path.isfile(abs_path):
            return ReadResult(False, abs_path, file_path, error=f"Not a file: {file_path}")

        try:
            with open(abs_path, "r", encoding="utf-8") as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            return ReadResult(False, abs_path, file_path, error=f"Failed to read file: {e}")

        return ReadResult(
            success=True,
            file_path=abs_path,
            relative_path=os.path.relpath(abs_path, self.project_root),
            content=content,
        )

    def file_exists(self, file_path: str) -> bool:
        return os.path.isfile(os.path.join(self.project_root, file_path))

    @staticmethod
    def detect_language(file_path: str) -> str:
        return _LANGUAGES.get(os.path.splitext(file_path)[1].lower(), "plaintext")


def _is_within(abs_path: str, root: str) -> bool:
    try:
        return os.path.commonpath([abs_path, root]) == root
    except ValueError:
        return False
