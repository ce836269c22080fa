"""Action plans: ordered tool invocations previewed as one unit.

Single-action factories carry a fixed danger level for their action family.
Composite plans built with :meth:`PlanGenerator.multi_step_plan` derive it
from the tools they use (see :func:`derive_danger_level`).
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Literal, Optional

from tools.base import ToolName
from tools.registry import NameLike, ToolRegistry

DangerLevel = Literal["safe", "caution", "dangerous"]


@dataclass
class ActionStep:
    id: str
    tool_name: ToolName
    description: str
    input: dict[str, Any]
    depends_on: list[str] = field(default_factory=list)
    required: bool = True


@dataclass
class ActionPlan:
    id: str
    title: str
    description: str
    steps: list[ActionStep]
    danger_level: DangerLevel
    estimated_duration: Optional[float] = None  # seconds


def derive_danger_level(tool_names: list[NameLike], registry: ToolRegistry) -> DangerLevel:
    """Dangerous if any tool is dangerous, else caution if any needs approval."""
    tools = [t for t in (registry.get(name) for name in tool_names) if t is not None]
    if any(t.is_dangerous for t in tools):
        return "dangerous"
    if any(t.requires_approval for t in tools):
        return "caution"
    return "safe"


def _new_id() -> str:
    return str(uuid.uuid4())


class PlanGenerator:
    def __init__(self, registry: ToolRegistry) -> None:
        self._registry = registry

    def create_file_plan(self, path: str, content: str, create_dirs: bool = True) -> ActionPlan:
        line_count = len(content.split("\n"))
        return ActionPlan(
            id=_new_id(),
            title=f"Create file: {path}",
            description=f"Create a new file with {line_count} lines of content",
            steps=[
                ActionStep(
                    id=_new_id(),
                    tool_name=ToolName.CREATE_FILE,
                    description=f"Create {path}",
                    input={"path": path, "content": content, "create_dirs": create_dirs},
                )
            ],
            danger_level="safe",
        )

    def modify_file_plan(self, path: str, content: str, create_backup: bool = True) -> ActionPlan:
        return ActionPlan(
            id=_new_id(),
            title=f"Modify file: {path}",
            description="Update existing file with new content",
            steps=[
                ActionStep(
                    id=_new_id(),
                    tool_name=ToolName.WRITE_FILE,
                    description=f"Write to {path}",
                    input={"path": path, "content": content, "create_backup": create_backup},
                )
            ],
            danger_level="caution",
        )

    def delete_file_plan(self, path: str, backup: bool = True, confirm_dangerous: bool = False) -> ActionPlan:
        return ActionPlan(
            id=_new_id(),
            title=f"Delete file: {path}",
            description="Remove file from project" + (" (with backup)" if backup else ""),
            steps=[
                ActionStep(
                    id=_new_id(),
                    tool_name=ToolName.DELETE_FILE,
                    description=f"Delete {path}",
                    input={"path": path, "backup": backup, "confirm_dangerous": confirm_dangerous},
                )
            ],
            danger_level="dangerous",
        )

    def run_command_plan(
        self,
        command: str,
        args: Optional[list[str]] = None,
        cwd: Optional[str] = None,
    ) -> ActionPlan:
        args = args or []
        full_command = " ".join([command, *args]).strip()
        step_input: dict[str, Any] = {"command": command, "args": args}
        if cwd:
            step_input["cwd"] = cwd
        return ActionPlan(
            id=_new_id(),
            title=f"Run command: {full_command}",
            description="Execute shell command",
            steps=[
                ActionStep(
                    id=_new_id(),
                    tool_name=ToolName.RUN_COMMAND,
                    description=f"Run: {full_command}",
                    input=step_input,
                )
            ],
            danger_level="dangerous",
            estimated_duration=10,
        )

    def multi_step_plan(self, title: str, description: str, steps: list[dict[str, Any]]) -> ActionPlan:
        """Build a plan from step dicts.

        Each step has ``tool_name``, ``description`` and ``input`` plus
        optional ``depends_on`` and ``required`` (default ``True``).
        """
        built = [
            ActionStep(
                id=_new_id(),
                tool_name=ToolName(step["tool_name"]),
                description=step["description"],
                input=dict(step["input"]),
                depends_on=list(step.get("depends_on") or []),
                required=step.get("required", True) is not False,
            )
            for step in steps
        ]
        return ActionPlan(
            id=_new_id(),
            title=title,
            description=description,
            steps=built,
            danger_level=derive_danger_level([s.tool_name for s in built], self._registry),
        )

    def read_files_plan(self, paths: list[str]) -> ActionPlan:
        return ActionPlan(
            id=_new_id(),
            title=f"Read {len(paths)} files",
            description="Read multiple files from the project",
            steps=[
                ActionStep(
                    id=_new_id(),
                    tool_name=ToolName.READ_FILE,
                    description=f"Read {path}",
                    input={"path": path},
                    required=False,
                )
                for path in paths
            ],
            danger_level="safe",
        )

    def create_files_plan(self, files: list[dict[str, str]]) -> ActionPlan:
        return ActionPlan(
            id=_new_id(),
            title=f"Create {len(files)} files",
            description="Create multiple new files",
            steps=[
                ActionStep(
                    id=_new_id(),
                    tool_name=ToolName.CREATE_FILE,
                    description=f"Create {f['path']}",
                    input={"path": f["path"], "content": f["content"], "create_dirs": True},
                )
                for f in files
            ],
            danger_level="caution",
        )
