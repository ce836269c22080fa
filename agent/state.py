"""Agent state definition.

The state is the shared data structure that flows through every node in the
graph for a single user message. The one piece that outlives a message is
``pending``: a tagged union saying whether the session is idle, waiting for a
yes/no on a staged action, or waiting for "apply patch"/"discard patch". At
most one thing can be pending at a time.
"""

from dataclasses import dataclass
from typing import Any, Optional, TypedDict, Union

from agent.intents import IntentType, ParsedIntent
from tools.base import ToolName
from tools.planner import ActionPlan


@dataclass(frozen=True)
class PendingAction:
    """A previewed action plan waiting for the user's confirmation."""

    type: IntentType
    tool_name: ToolName
    input: dict[str, Any]
    preview: str
    plan: ActionPlan


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class AwaitingAction:
    action: PendingAction


@dataclass(frozen=True)
class AwaitingPatch:
    patch: str


PendingState = Union[Idle, AwaitingAction, AwaitingPatch]

IDLE = Idle()


class AgentState(TypedDict):
    """Shared state for one pass through the graph.

    Attributes:
        message: The user's trimmed input.
        pending: What the session is waiting on when the message arrives;
                 nodes return the updated value.
        intent: Classification of ``message`` (unset on the yes/no path).
        reply: Text returned to the user.
        approved: Set by the confirmation handler when the user said yes.
    """

    message: str
    pending: PendingState
    intent: Optional[ParsedIntent]
    reply: str
    approved: bool


def describe_pending(pending: PendingState) -> Optional[str]:
    """Short label of what is outstanding, or ``None`` when idle."""
    if isinstance(pending, AwaitingAction):
        return pending.action.plan.title
    if isinstance(pending, AwaitingPatch):
        return "patch"
    return None
