"""Tests for previews, execution history and rollback."""

import pytest

from tools import create_default_registry
from tools.approval import ApprovalManager
from tools.base import ToolName, ToolResult
from tools.planner import PlanGenerator


@pytest.fixture()
def registry():
    return create_default_registry()


@pytest.fixture()
def approvals(registry):
    return ApprovalManager(registry)


def test_plan_preview_layout(approvals, registry, ctx):
    plan = PlanGenerator(registry).create_file_plan("notes/todo.md", "# Todo\n")
    preview = approvals.generate_plan_preview(plan, ctx)

    assert "📋 ACTION PLAN: Create file: notes/todo.md" in preview
    assert "✅ SAFE" in preview
    assert "📊 Total Steps: 1" in preview
    assert "[1/1] Create notes/todo.md" in preview
    assert "      📝 Create file: notes/todo.md" in preview


def test_plan_preview_marks_optional_and_duration(approvals, registry, ctx):
    planner = PlanGenerator(registry)
    assert "ℹ️ Optional step" in approvals.generate_plan_preview(planner.read_files_plan(["app.py"]), ctx)
    assert "⏱️ Estimated Duration: 10s" in approvals.generate_plan_preview(planner.run_command_plan("ls"), ctx)


def test_action_preview(approvals, ctx):
    preview = approvals.generate_action_preview("delete_file", {"path": "app.py"}, ctx)
    assert "🔧 DELETE_FILE" in preview
    assert "Dangerous: ⚠️ YES" in preview
    assert approvals.generate_action_preview("nope", {}, ctx) == '❌ Tool "nope" not found'


def test_history_is_newest_first(approvals):
    first = approvals.record_execution(ToolName.READ_FILE, {"path": "a"}, ToolResult(status="success"))
    second = approvals.record_execution("create_file", {"path": "b"}, ToolResult(status="success"))

    assert [r.id for r in approvals.get_history()] == [second.id, first.id]
    assert [r.id for r in approvals.get_history(1)] == [second.id]
    assert second.tool_name is ToolName.CREATE_FILE


def test_rollback_eligibility(approvals):
    read = approvals.record_execution(ToolName.READ_FILE, {"path": "a"}, ToolResult(status="success"))
    failed = approvals.record_execution(ToolName.CREATE_FILE, {"path": "b"}, ToolResult(status="error", error="x"))
    created = approvals.record_execution(
        ToolName.CREATE_FILE, {"path": "c"}, ToolResult(status="success", data={"created": True})
    )

    assert not read.can_rollback
    assert not failed.can_rollback
    assert created.can_rollback


def test_rollback_errors(approvals, ctx):
    assert approvals.rollback("missing", ctx).error == "Execution record not found"

    record = approvals.record_execution(ToolName.RUN_COMMAND, {"command": "ls"}, ToolResult(status="success"))
    assert approvals.rollback(record.id, ctx).error == "This action cannot be rolled back"


def test_rollback_delete_restores_file(approvals, registry, ctx, project):
    original = (project / "README.md").read_bytes()
    tool_input = {"path": "README.md"}
    result = registry.execute(ToolName.DELETE_FILE, tool_input, ctx)
    record = approvals.record_execution(ToolName.DELETE_FILE, tool_input, result)

    assert approvals.rollback(record.id, ctx).ok
    assert (project / "README.md").read_bytes() == original


def test_clear_history(approvals):
    approvals.record_execution(ToolName.READ_FILE, {}, ToolResult(status="success"))
    approvals.clear_history()
    assert approvals.get_history() == []


def test_format_execution_result():
    assert ApprovalManager.format_execution_result(ToolResult(status="success")) == "✅ SUCCESS"

    text = ApprovalManager.format_execution_result(
        ToolResult(status="error", error="Command exited with code 1", metadata={"exit_code": 1})
    )
    assert text.startswith("❌ ERROR\n   Command exited with code 1")
    assert '"exit_code": 1' in text
