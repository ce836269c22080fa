"""Typed registry of approval-gated tools.

Tools are keyed by :class:`tools.base.ToolName`. Plain strings are accepted at
the boundary and converted, so an unknown name is reported as an error result
instead of failing a lookup deep inside the orchestrator.

Usage::

    from tools import create_default_registry
    registry = create_default_registry()
    result = registry.execute("read_file", {"path": "README.md"}, ctx)
"""

from typing import Any, Optional, Union

from tools.base import Tool, ToolContext, ToolInput, ToolName, ToolResult

NameLike = Union[ToolName, str]


class ToolRegistry:
    """Holds one instance per tool name; duplicates are rejected."""

    def __init__(self, tools: Optional[list[Tool]] = None) -> None:
        self._tools: dict[ToolName, Tool] = {}
        for tool in tools or []:
            self.register(tool)

    # ── Registration & lookup ─────────────────────────────────────────────

    def register(self, tool: Tool) -> None:
        """Add *tool*.

        Raises:
            ValueError: If a tool with the same name is already registered.
        """
        if tool.name in self._tools:
            raise ValueError(f'Tool "{tool.name.value}" is already registered')
        self._tools[tool.name] = tool

    def get(self, name: NameLike) -> Optional[Tool]:
        key = _to_tool_name(name)
        return self._tools.get(key) if key is not None else None

    def has(self, name: NameLike) -> bool:
        return self.get(name) is not None

    def get_all(self) -> list[Tool]:
        return list(self._tools.values())

    def get_by_category(self, category: str) -> list[Tool]:
        return [t for t in self._tools.values() if t.category == category]

    def names(self) -> list[str]:
        return [name.value for name in self._tools]

    def get_tools_metadata(self) -> list[dict[str, Any]]:
        return [t.metadata() for t in self._tools.values()]

    # ── Invocation ────────────────────────────────────────────────────────

    def execute(self, name: NameLike, tool_input: ToolInput, ctx: ToolContext) -> ToolResult:
        """Validate, then execute. Nothing runs if validation fails."""
        tool = self.get(name)
        if tool is None:
            return ToolResult(status="error", error=f'Tool "{_display(name)}" not found')

        validation = tool.validate(tool_input, ctx)
        if not validation.valid:
            return ToolResult(
                status="error",
                error=f"Validation failed: {', '.join(validation.errors)}",
                metadata={"validation": validation},
            )
        return tool.execute(tool_input, ctx)

    def preview(self, name: NameLike, tool_input: ToolInput, ctx: ToolContext) -> str:
        tool = self.get(name)
        if tool is None:
            return f'❌ Tool "{_display(name)}" not found'
        return tool.preview(tool_input, ctx)


def _to_tool_name(name: NameLike) -> Optional[ToolName]:
    if isinstance(name, ToolName):
        return name
    try:
        return ToolName(name)
    except ValueError:
        return None


def _display(name: NameLike) -> str:
    return name.value if isinstance(name, ToolName) else str(name)
