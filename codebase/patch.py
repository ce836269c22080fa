"""Minimal unified-diff applier.

Splits a patch on ``diff --git`` lines, reads the ``+++`` target of every
section and replays its hunks positionally. Hunk lines are not checked
against the file: context and deletion lines are trusted to line up with the
declared start, and a patch applied to content it was not written for will
silently produce the wrong result.
"""

import os
import re
from dataclasses import dataclass, field

_SECTION_SPLIT = re.compile(r"^diff --git .*$", re.MULTILINE)
_HUNK_HEADER = re.compile(r"@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")


class PatchError(Exception):
    """Raised when a patch has no usable sections or a malformed hunk."""


@dataclass
class Hunk:
    original_start: int
    new_start: int
    lines: list[str] = field(default_factory=list)


class PatchEngine:
    """Reads, writes and patches files relative to a project root."""

    def __init__(self, project_root: str) -> None:
        self.project_root = project_root

    # ── File helpers ──────────────────────────────────────────────────────

    def read_file(self, file_path: str) -> str:
        """Return the file's text, or an empty string if it does not exist."""
        abs_path = self._resolve_path(file_path)
        if not os.path.exists(abs_path):
            return ""
        with open(abs_path, "r", encoding="utf-8", newline="") as f:
            return f.read()

    def write_file(self, file_path: str, content: str) -> None:
        abs_path = self._resolve_path(file_path)
        os.makedirs(os.path.dirname(abs_path), exist_ok=True)
        with open(abs_path, "w", encoding="utf-8", newline="") as f:
            f.write(content)

    # ── Public API ────────────────────────────────────────────────────────

    def apply_unified_diff(self, patch: str) -> list[str]:
        """Apply every file section of *patch* and return the paths written.

        Raises:
            PatchError: If no diff sections are found, a section has no
                ``+++`` header, or a hunk header is malformed.
        """
        sections = [s.strip() for s in _SECTION_SPLIT.split(patch)]
        sections = [s for s in sections if s]
        if not sections:
            raise PatchError("Invalid patch: no diff sections found")

        return [self._apply_section(section) for section in sections]

    # ── Internals ─────────────────────────────────────────────────────────

    def _apply_section(self, section: str) -> str:
        lines = section.split("\n")
        target_line = next((line for line in lines if line.startswith("+++ ")), None)
        if target_line is None:
            raise PatchError("Invalid patch section: missing +++ header")

        target_path = target_line[len("+++ "):].strip()
        if target_path.startswith("b/"):
            target_path = target_path[2:]

        original = self.read_file(target_path).split("\n")
        hunk_lines = [line for line in lines if line[:1] in ("@", "+", "-", " ")]
        hunks = self._parse_hunks(hunk_lines)
        self.write_file(target_path, "\n".join(self._apply_hunks(original, hunks)))
        return target_path

    @staticmethod
    def _parse_hunks(lines: list[str]) -> list[Hunk]:
        hunks: list[Hunk] = []
        current = None
        for line in lines:
            if line.startswith("@@"):
                match = _HUNK_HEADER.match(line)
                if not match:
                    raise PatchError(f"Invalid hunk header: {line}")
                current = Hunk(
                    original_start=int(match.group(1)),
                    new_start=int(match.group(3)),
                )
                hunks.append(current)
            elif current is not None:
                # File headers (---/+++) precede the first hunk and are skipped here.
                current.lines.append(line)
        return hunks

    @staticmethod
    def _apply_hunks(original: list[str], hunks: list[Hunk]) -> list[str]:
        result = list(original)
        offset = 0

        for hunk in hunks:
            index = hunk.original_start - 1 + offset
            for line in hunk.lines:
                indicator, value = line[:1], line[1:]
                if indicator == " ":
                    index += 1
                elif indicator == "-":
                    if 0 <= index < len(result):
                        del result[index]
                        offset -= 1
                elif indicator == "+":
                    result.insert(index, value)
                    index += 1
                    offset += 1

        return result

    def _resolve_path(self, file_path: str) -> str:
        if os.path.isabs(file_path):
            return file_path
        return os.path.join(self.project_root, file_path)
