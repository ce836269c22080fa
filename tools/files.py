"""File tools: read, write, create and delete inside the project root.

Every path is resolved against ``ToolContext.project_root`` and rejected if it
escapes it. Writes and deletes keep a timestamped backup next to the target
(``<file>.backup-<ms>`` / ``<file>.deleted-<ms>``) so that ``rollback`` can
restore the exact original bytes.
"""

import os
import time
from typing import Optional

from pydantic import BaseModel

from tools.base import (
    Tool,
    ToolContext,
    ToolName,
    ToolResult,
    ValidationResult,
    human_size,
    is_path_safe,
)

_MAX_READ_SIZE = 10 * 1024 * 1024  # 10 MB, warning only

# Basenames that deserve a warning when overwritten.
CRITICAL_WRITE_FILES = frozenset({"package.json", ".env", "tsconfig.json", ".gitignore", "pyproject.toml"})

# Basenames (or suffixes) that may only be deleted with confirm_dangerous.
CRITICAL_DELETE_NAMES = (
    ".env",
    ".git",
    "package.json",
    "tsconfig.json",
    "pnpm-lock.yaml",
    "yarn.lock",
    "package-lock.json",
    "poetry.lock",
)


# ── Input models ──────────────────────────────────────────────────────────────


class ReadFileInput(BaseModel):
    path: str = ""
    encoding: str = "utf-8"


class WriteFileInput(BaseModel):
    path: str = ""
    content: Optional[str] = None
    create_backup: bool = True
    encoding: str = "utf-8"


class CreateFileInput(BaseModel):
    path: str = ""
    content: Optional[str] = None
    overwrite: bool = False
    create_dirs: bool = False


class DeleteFileInput(BaseModel):
    path: str = ""
    backup: bool = True
    confirm_dangerous: bool = False


# ── Tools ─────────────────────────────────────────────────────────────────────


class ReadFileTool(Tool):
    name = ToolName.READ_FILE
    description = "Read the contents of a file from the project directory"
    category = "file"
    requires_approval = False
    is_dangerous = False
    input_model = ReadFileInput

    def _validate(self, data: ReadFileInput, ctx: ToolContext) -> ValidationResult:
        errors: list[str] = []
        warnings: list[str] = []

        if not data.path:
            return ValidationResult.from_messages(["File path is required"])
        if not is_path_safe(data.path, ctx.project_root):
            return ValidationResult.from_messages(["File path is outside project directory"])

        abs_path = ctx.resolve(data.path)
        if not os.path.exists(abs_path):
            errors.append("File does not exist")
        elif not os.path.isfile(abs_path):
            errors.append("Path is not a file")
        elif os.path.getsize(abs_path) > _MAX_READ_SIZE:
            warnings.append("File is very large (>10MB), may be slow to read")

        return ValidationResult.from_messages(errors, warnings)

    def _preview(self, data: ReadFileInput, ctx: ToolContext) -> str:
        relative = ctx.relative(data.path)
        abs_path = ctx.resolve(data.path)
        if os.path.isfile(abs_path):
            return f"📖 Read file: {relative} ({human_size(os.path.getsize(abs_path))})"
        return f"📖 Read file: {relative}"

    def _execute(self, data: ReadFileInput, ctx: ToolContext) -> ToolResult:
        abs_path = ctx.resolve(data.path)
        try:
            with open(abs_path, "r", encoding=data.encoding, newline="") as f:
                content = f.read()
            size = os.path.getsize(abs_path)
        except (OSError, UnicodeDecodeError, LookupError) as e:
            return self._error(f"Failed to read file: {e}")

        return self._success(
            {
                "content": content,
                "encoding": data.encoding,
                "size": size,
                "lines": len(content.split("\n")),
            }
        )


class WriteFileTool(Tool):
    name = ToolName.WRITE_FILE
    description = "Write content to an existing file (with backup)"
    category = "file"
    requires_approval = True
    is_dangerous = False
    supports_rollback = True
    input_model = WriteFileInput

    def _validate(self, data: WriteFileInput, ctx: ToolContext) -> ValidationResult:
        errors: list[str] = []
        warnings: list[str] = []

        if not data.path:
            errors.append("File path is required")
        if data.content is None:
            errors.append("Content is required")
        if data.path and not is_path_safe(data.path, ctx.project_root):
            errors.append("File path is outside project directory")
        if errors:
            return ValidationResult.from_messages(errors)

        abs_path = ctx.resolve(data.path)
        if not os.path.exists(abs_path):
            errors.append("File does not exist (use create_file tool instead)")
        elif not os.path.isfile(abs_path):
            errors.append("Path exists but is not a file")

        file_name = os.path.basename(abs_path)
        if file_name in CRITICAL_WRITE_FILES:
            warnings.append(f"Modifying critical file: {file_name}")

        return ValidationResult.from_messages(errors, warnings)

    def _preview(self, data: WriteFileInput, ctx: ToolContext) -> str:
        relative = ctx.relative(data.path)
        backup = " (with backup)" if data.create_backup else ""
        new_content = data.content or ""
        try:
            with open(ctx.resolve(data.path), "r", encoding=data.encoding, newline="") as f:
                current = f.read()
        except (OSError, UnicodeDecodeError, LookupError):
            return f"✏️ Write file: {relative}{backup}"

        current_lines = len(current.split("\n"))
        new_lines = len(new_content.split("\n"))
        return "\n".join(
            [
                f"✏️ Write file: {relative}{backup}",
                f"   Lines: {current_lines} → {new_lines}",
                f"   Size: {len(current)} → {len(new_content)} bytes",
            ]
        )

    def _execute(self, data: WriteFileInput, ctx: ToolContext) -> ToolResult:
        abs_path = ctx.resolve(data.path)
        content = data.content or ""
        backup_path = None
        try:
            if data.create_backup:
                backup_path = f"{abs_path}.backup-{_now_ms()}"
                _copy_bytes(abs_path, backup_path)
            with open(abs_path, "w", encoding=data.encoding, newline="") as f:
                f.write(content)
        except (OSError, LookupError, UnicodeEncodeError) as e:
            return self._error(f"Failed to write file: {e}")

        return self._success(
            {
                "bytes_written": len(content.encode(data.encoding)),
                "backup_path": backup_path,
            }
        )

    def rollback(self, raw, ctx: ToolContext, prior: ToolResult) -> ToolResult:
        backup_path = (prior.data or {}).get("backup_path")
        if not backup_path:
            return self._error("No backup available for rollback")
        try:
            data = self.parse_input(raw)
            _restore_backup(backup_path, ctx.resolve(data.path))
        except (OSError, ValueError) as e:
            return self._error(f"Failed to rollback: {e}")
        return self._success()


class CreateFileTool(Tool):
    name = ToolName.CREATE_FILE
    description = "Create a new file with specified content"
    category = "file"
    requires_approval = True
    is_dangerous = False
    supports_rollback = True
    input_model = CreateFileInput

    def _validate(self, data: CreateFileInput, ctx: ToolContext) -> ValidationResult:
        errors: list[str] = []
        warnings: list[str] = []

        if not data.path:
            errors.append("File path is required")
        if data.content is None:
            errors.append("Content is required")
        if data.path and not is_path_safe(data.path, ctx.project_root):
            errors.append("File path is outside project directory")
            return ValidationResult.from_messages(errors)
        if not data.path:
            return ValidationResult.from_messages(errors)

        abs_path = ctx.resolve(data.path)
        if os.path.exists(abs_path):
            if not data.overwrite:
                errors.append("File already exists (set overwrite: true to replace)")
            else:
                warnings.append("Will overwrite existing file")

        parent = os.path.dirname(abs_path)
        if not os.path.exists(parent):
            if not data.create_dirs:
                errors.append("Parent directory does not exist (set create_dirs: true)")
        elif not os.path.isdir(parent):
            errors.append("Parent path exists but is not a directory")

        return ValidationResult.from_messages(errors, warnings)

    def _preview(self, data: CreateFileInput, ctx: ToolContext) -> str:
        content = data.content or ""
        action = "Create/Overwrite" if data.overwrite else "Create"
        lines = len(content.split("\n"))
        return "\n".join(
            [
                f"📝 {action} file: {ctx.relative(data.path)}",
                f"   Lines: {lines}",
                f"   Size: {len(content.encode('utf-8'))} bytes",
            ]
        )

    def _execute(self, data: CreateFileInput, ctx: ToolContext) -> ToolResult:
        abs_path = ctx.resolve(data.path)
        try:
            if data.create_dirs:
                os.makedirs(os.path.dirname(abs_path), exist_ok=True)
            with open(abs_path, "w", encoding="utf-8", newline="") as f:
                f.write(data.content or "")
        except OSError as e:
            return self._error(f"Failed to create file: {e}")

        return self._success({"created": True, "path": abs_path})

    def rollback(self, raw, ctx: ToolContext, prior: ToolResult) -> ToolResult:
        if not (prior.data or {}).get("created"):
            return self._error("File was not created, nothing to rollback")
        try:
            data = self.parse_input(raw)
            os.remove(ctx.resolve(data.path))
        except (OSError, ValueError) as e:
            return self._error(f"Failed to rollback file creation: {e}")
        return self._success()


class DeleteFileTool(Tool):
    name = ToolName.DELETE_FILE
    description = "Delete a file from the project (with optional backup)"
    category = "file"
    requires_approval = True
    is_dangerous = True
    supports_rollback = True
    input_model = DeleteFileInput

    def _validate(self, data: DeleteFileInput, ctx: ToolContext) -> ValidationResult:
        errors: list[str] = []
        warnings: list[str] = []

        if not data.path:
            return ValidationResult.from_messages(["File path is required"])
        if not is_path_safe(data.path, ctx.project_root):
            return ValidationResult.from_messages(["File path is outside project directory"])

        abs_path = ctx.resolve(data.path)
        if not os.path.exists(abs_path):
            errors.append("File does not exist")
        elif not os.path.isfile(abs_path):
            errors.append("Path is not a file (cannot delete directories)")

        file_name = os.path.basename(abs_path)
        if is_critical_file(file_name):
            if not data.confirm_dangerous:
                errors.append(f'Deleting critical file "{file_name}" requires confirm_dangerous: true')
            warnings.append(f"⚠️ DANGEROUS: Deleting critical file: {file_name}")

        return ValidationResult.from_messages(errors, warnings)

    def _preview(self, data: DeleteFileInput, ctx: ToolContext) -> str:
        relative = ctx.relative(data.path)
        abs_path = ctx.resolve(data.path)
        if not os.path.isfile(abs_path):
            return f"🗑️ Delete file: {relative}"
        backup = " (will create backup)" if data.backup else " ⚠️ NO BACKUP"
        return "\n".join(
            [
                f"🗑️ Delete file: {relative}{backup}",
                f"   Size: {human_size(os.path.getsize(abs_path))}",
            ]
        )

    def _execute(self, data: DeleteFileInput, ctx: ToolContext) -> ToolResult:
        abs_path = ctx.resolve(data.path)
        backup_path = None
        try:
            if data.backup:
                backup_path = f"{abs_path}.deleted-{_now_ms()}"
                _copy_bytes(abs_path, backup_path)
            os.remove(abs_path)
        except OSError as e:
            return self._error(f"Failed to delete file: {e}")

        return self._success({"deleted": True, "backup_path": backup_path})

    def rollback(self, raw, ctx: ToolContext, prior: ToolResult) -> ToolResult:
        backup_path = (prior.data or {}).get("backup_path")
        if not backup_path:
            return self._error("No backup available for rollback")
        try:
            data = self.parse_input(raw)
            _restore_backup(backup_path, ctx.resolve(data.path))
        except (OSError, ValueError) as e:
            return self._error(f"Failed to rollback deletion: {e}")
        return self._success()


# ── Helpers ────────────────────────────────────────────────────────────────────


def is_critical_file(file_name: str) -> bool:
    return any(file_name == name or file_name.endswith(name) for name in CRITICAL_DELETE_NAMES)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _copy_bytes(src: str, dst: str) -> None:
    with open(src, "rb") as f:
        payload = f.read()
    with open(dst, "wb") as f:
        f.write(payload)


def _restore_backup(backup_path: str, target: str) -> None:
    _copy_bytes(backup_path, target)
    os.remove(backup_path)
