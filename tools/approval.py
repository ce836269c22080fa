"""Previews, execution history and rollback for approval-gated actions."""

import dataclasses
import json
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from tools.base import ToolContext, ToolInput, ToolResult
from tools.planner import ActionPlan, DangerLevel
from tools.registry import NameLike, ToolRegistry

_RULE = "=" * 60
_THIN_RULE = "─" * 60

_DANGER_EMOJI: dict[DangerLevel, str] = {
    "safe": "✅",
    "caution": "⚠️",
    "dangerous": "🚨",
}


@dataclass
class ExecutionRecord:
    id: str
    timestamp: datetime
    tool_name: NameLike
    input: ToolInput
    result: ToolResult
    can_rollback: bool


class ApprovalManager:
    """Renders previews and keeps the in-memory execution history.

    History is append-only for the lifetime of the manager (one per session)
    and is never persisted.
    """

    def __init__(self, registry: ToolRegistry) -> None:
        self._registry = registry
        self._history: list[ExecutionRecord] = []

    # ── Previews ──────────────────────────────────────────────────────────

    def generate_plan_preview(self, plan: ActionPlan, ctx: ToolContext) -> str:
        lines = [
            "",
            _RULE,
            f"📋 ACTION PLAN: {plan.title}",
            _RULE,
        ]
        if plan.description:
            lines.append(f"\n{plan.description}")

        lines.append(f"\n⚠️ Danger Level: {_DANGER_EMOJI[plan.danger_level]} {plan.danger_level.upper()}")
        lines.append(f"📊 Total Steps: {len(plan.steps)}")
        if plan.estimated_duration:
            lines.append(f"⏱️ Estimated Duration: {plan.estimated_duration:g}s")

        lines += [f"\n{_THIN_RULE}", "STEPS:", f"{_THIN_RULE}\n"]

        total = len(plan.steps)
        for i, step in enumerate(plan.steps, start=1):
            lines.append(f"[{i}/{total}] {step.description}")
            preview = self._registry.preview(step.tool_name, step.input, ctx)
            lines.append("      " + preview.replace("\n", "\n      "))
            if step.depends_on:
                lines.append(f"      📌 Depends on: {', '.join(step.depends_on)}")
            if not step.required:
                lines.append("      ℹ️ Optional step (failure won't stop plan)")
            lines.append("")

        lines.append(f"{_RULE}\n")
        return "\n".join(lines)

    def generate_action_preview(self, tool_name: NameLike, tool_input: ToolInput, ctx: ToolContext) -> str:
        tool = self._registry.get(tool_name)
        if tool is None:
            return f'❌ Tool "{tool_name}" not found'

        return "\n".join(
            [
                "",
                _RULE,
                f"🔧 {tool.name.value.upper()}",
                _RULE,
                f"\n{tool.description}",
                f"\nCategory: {tool.category}",
                f"Requires Approval: {'YES' if tool.requires_approval else 'NO'}",
                f"Dangerous: {'⚠️ YES' if tool.is_dangerous else 'NO'}",
                f"\n{_THIN_RULE}",
                "PREVIEW:",
                f"{_THIN_RULE}\n",
                tool.preview(tool_input, ctx),
                f"\n{_RULE}\n",
            ]
        )

    # ── History ───────────────────────────────────────────────────────────

    def record_execution(self, tool_name: NameLike, tool_input: ToolInput, result: ToolResult) -> ExecutionRecord:
        tool = self._registry.get(tool_name)
        record = ExecutionRecord(
            id=str(uuid.uuid4()),
            timestamp=datetime.now(),
            tool_name=tool.name if tool else tool_name,
            input=tool_input,
            result=result,
            can_rollback=bool(tool and tool.supports_rollback and result.ok),
        )
        self._history.append(record)
        return record

    def get_history(self, limit: Optional[int] = None) -> list[ExecutionRecord]:
        """Return records newest first."""
        history = list(reversed(self._history))
        return history[:limit] if limit else history

    def get_record(self, record_id: str) -> Optional[ExecutionRecord]:
        return next((r for r in self._history if r.id == record_id), None)

    def rollback(self, record_id: str, ctx: ToolContext) -> ToolResult:
        record = self.get_record(record_id)
        if record is None:
            return ToolResult(status="error", error="Execution record not found")
        if not record.can_rollback:
            return ToolResult(status="error", error="This action cannot be rolled back")

        tool = self._registry.get(record.tool_name)
        if tool is None or not tool.supports_rollback:
            return ToolResult(status="error", error="Tool does not support rollback")

        return tool.rollback(record.input, ctx, record.result)

    def clear_history(self) -> None:
        self._history = []

    # ── Formatting ────────────────────────────────────────────────────────

    @staticmethod
    def format_execution_result(result: ToolResult) -> str:
        lines: list[str] = []
        if result.status == "success":
            lines.append("✅ SUCCESS")
        elif result.status == "error":
            lines.append("❌ ERROR")
            if result.error:
                lines.append(f"   {result.error}")
        elif result.status == "cancelled":
            lines.append("🚫 CANCELLED")

        if result.metadata:
            lines.append("\n📊 Metadata:")
            lines.append(json.dumps(result.metadata, indent=2, default=_json_default))
        return "\n".join(lines)


def _json_default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    return str(value)
