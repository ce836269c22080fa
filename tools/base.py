"""Tool abstraction shared by every approval-gated action.

A tool bundles four capabilities around a pydantic input model: ``validate``
(pure checks, no side effects), ``preview`` (human-readable description shown
before approval), ``execute`` and, for tools that can undo their effect,
``rollback``. Tools never raise for expected failures; they report them
through :class:`ToolResult`.
"""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ValidationError

ToolStatus = Literal["success", "error", "pending", "cancelled"]


class ToolName(str, Enum):
    READ_FILE = "read_file"
    WRITE_FILE = "write_file"
    CREATE_FILE = "create_file"
    DELETE_FILE = "delete_file"
    RUN_COMMAND = "run_command"


@dataclass
class ToolResult:
    status: ToolStatus
    data: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"


@dataclass
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def from_messages(cls, errors: list[str], warnings: Optional[list[str]] = None) -> "ValidationResult":
        return cls(valid=not errors, errors=list(errors), warnings=list(warnings or []))


@dataclass(frozen=True)
class ToolContext:
    """Where a tool runs: the project root plus optional session details."""

    project_root: str
    current_dir: Optional[str] = None
    session_id: Optional[str] = None

    def resolve(self, path: str) -> str:
        return os.path.abspath(os.path.join(self.project_root, path))

    def relative(self, path: str) -> str:
        return os.path.relpath(self.resolve(path), self.project_root)


ToolInput = Union[BaseModel, dict[str, Any]]


class Tool(ABC):
    """Base class for all tools.

    Subclasses set the class attributes and implement ``_validate``,
    ``_preview`` and ``_execute`` against their parsed input model. Raw dict
    input is coerced through ``input_model``; coercion failures surface as
    validation errors (or error results from ``execute``).
    """

    name: ToolName
    description: str
    category: str
    requires_approval: bool = True
    is_dangerous: bool = False
    supports_rollback: bool = False
    input_model: type[BaseModel]

    # ── Public API ────────────────────────────────────────────────────────

    def parse_input(self, raw: ToolInput) -> BaseModel:
        """Coerce *raw* into this tool's input model.

        Raises:
            pydantic.ValidationError: If the input cannot be coerced.
        """
        if isinstance(raw, self.input_model):
            return raw
        if isinstance(raw, BaseModel):
            raw = raw.model_dump()
        return self.input_model.model_validate(raw)

    def validate(self, raw: ToolInput, ctx: ToolContext) -> ValidationResult:
        try:
            data = self.parse_input(raw)
        except ValidationError as e:
            return ValidationResult.from_messages([_format_validation_error(e)])
        return self._validate(data, ctx)

    def preview(self, raw: ToolInput, ctx: ToolContext) -> str:
        """Describe what ``execute`` would do. Safe on unvalidated input."""
        try:
            data = self.parse_input(raw)
        except ValidationError as e:
            return f"{self.name.value}: invalid input ({_format_validation_error(e)})"
        return self._preview(data, ctx)

    def execute(self, raw: ToolInput, ctx: ToolContext) -> ToolResult:
        try:
            data = self.parse_input(raw)
        except ValidationError as e:
            return self._error(f"Invalid input: {_format_validation_error(e)}")
        return self._execute(data, ctx)

    def rollback(self, raw: ToolInput, ctx: ToolContext, prior: ToolResult) -> ToolResult:
        """Undo a previous successful ``execute``. Unsupported by default."""
        return self._error(f"Rollback not supported for tool: {self.name.value}")

    def metadata(self) -> dict[str, Any]:
        return {
            "name": self.name.value,
            "description": self.description,
            "category": self.category,
            "requires_approval": self.requires_approval,
            "is_dangerous": self.is_dangerous,
            "supports_rollback": self.supports_rollback,
        }

    # ── Subclass hooks ────────────────────────────────────────────────────

    @abstractmethod
    def _validate(self, data: Any, ctx: ToolContext) -> ValidationResult: ...

    @abstractmethod
    def _preview(self, data: Any, ctx: ToolContext) -> str: ...

    @abstractmethod
    def _execute(self, data: Any, ctx: ToolContext) -> ToolResult: ...

    # ── Helpers ───────────────────────────────────────────────────────────

    @staticmethod
    def _success(data: Optional[dict[str, Any]] = None, metadata: Optional[dict[str, Any]] = None) -> ToolResult:
        return ToolResult(status="success", data=data, metadata=metadata)

    @staticmethod
    def _error(message: str, metadata: Optional[dict[str, Any]] = None) -> ToolResult:
        return ToolResult(status="error", error=message, metadata=metadata)


def is_path_safe(path: str, project_root: str) -> bool:
    """True if *path* resolves inside *project_root*."""
    root = os.path.abspath(project_root)
    abs_path = os.path.abspath(os.path.join(root, path))
    try:
        return os.path.commonpath([abs_path, root]) == root
    except ValueError:
        return False


def human_size(num_bytes: float) -> str:
    """Convert a byte count to a compact human-readable string."""
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if abs(num_bytes) < 1024:
            return f"{num_bytes:.1f} {unit}" if unit != "B" else f"{int(num_bytes)} B"
        num_bytes /= 1024
    return f"{num_bytes:.1f} PB"


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        loc = ".".join(str(p) for p in item.get("loc", ())) or "input"
        parts.append(f"{loc}: {item.get('msg', 'invalid value')}")
    return "; ".join(parts)
