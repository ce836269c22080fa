"""Tests for tool discovery and the typed tool registry."""

import pytest

from tools import create_default_registry, get_all_tools
from tools.base import ToolName
from tools.files import ReadFileTool
from tools.registry import ToolRegistry


def test_tools_are_discovered():
    """Auto-discovery finds exactly one tool per ToolName, in enum order."""
    tools = get_all_tools()
    assert [t.name for t in tools] == list(ToolName)


def test_register_rejects_duplicates():
    registry = ToolRegistry([ReadFileTool()])
    with pytest.raises(ValueError, match="already registered"):
        registry.register(ReadFileTool())


def test_lookup_accepts_enum_and_string():
    registry = create_default_registry()
    assert registry.get(ToolName.READ_FILE) is registry.get("read_file")
    assert registry.has("delete_file")
    assert not registry.has("format_disk")
    assert registry.names() == [n.value for n in ToolName]


def test_get_by_category():
    registry = create_default_registry()
    assert [t.name for t in registry.get_by_category("command")] == [ToolName.RUN_COMMAND]
    assert len(registry.get_by_category("file")) == 4


def test_execute_unknown_tool(ctx):
    result = create_default_registry().execute("format_disk", {}, ctx)
    assert result.status == "error"
    assert result.error == 'Tool "format_disk" not found'


def test_execute_short_circuits_on_validation(ctx, project):
    registry = create_default_registry()
    result = registry.execute(ToolName.CREATE_FILE, {"path": "../x.txt", "content": "x"}, ctx)

    assert result.status == "error"
    assert result.error == "Validation failed: File path is outside project directory"
    assert result.metadata["validation"].errors == ["File path is outside project directory"]
    assert not (project.parent / "x.txt").exists()


def test_preview_skips_validation(ctx):
    """Previews render even for input that would fail validation."""
    preview = create_default_registry().preview("create_file", {"path": "app.py", "content": "a\nb"}, ctx)
    assert preview.startswith("📝 Create file: app.py")
    assert "Lines: 2" in preview


def test_preview_unknown_tool(ctx):
    assert create_default_registry().preview("nope", {}, ctx) == '❌ Tool "nope" not found'


def test_tools_metadata():
    meta = {m["name"]: m for m in create_default_registry().get_tools_metadata()}
    assert meta["read_file"]["requires_approval"] is False
    assert meta["delete_file"]["is_dangerous"] is True
    assert meta["write_file"]["supports_rollback"] is True
    assert meta["run_command"]["category"] == "command"
