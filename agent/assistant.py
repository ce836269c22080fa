"""Per-session front door to the orchestration graph.

An :class:`Assistant` owns everything that belongs to one conversation: the
pending action or patch, the chat memory, and the execution history used by
``/undo``. It runs the compiled graph once per message, passing the shared
:class:`agent.runtime.Runtime` and itself through the run config.

Usage::

    from agent.assistant import Assistant
    from agent.runtime import create_runtime

    assistant = Assistant(create_runtime())
    print(assistant.handle_message("create file notes/todo.md"))
    print(assistant.handle_message("yes"))
"""

import uuid
from typing import Optional

from agent.commands import is_command, run_command
from agent.graph import graph
from agent.runtime import Runtime
from agent.state import IDLE, AwaitingAction, AwaitingPatch, PendingState
from memory.store import SessionMemory
from tools.approval import ApprovalManager
from tools.base import ToolContext


class Assistant:
    """Single-flight conversation with one pending slot."""

    def __init__(self, runtime: Runtime, session_id: Optional[str] = None) -> None:
        self.runtime = runtime
        self.session_id = session_id or str(uuid.uuid4())
        self.memory = SessionMemory()
        self.approvals = ApprovalManager(runtime.registry)
        self.tool_context = ToolContext(
            project_root=runtime.project_root,
            current_dir=runtime.project_root,
            session_id=self.session_id,
        )
        self.pending: PendingState = IDLE

    @property
    def awaiting_approval(self) -> bool:
        return isinstance(self.pending, AwaitingAction)

    @property
    def awaiting_patch(self) -> bool:
        return isinstance(self.pending, AwaitingPatch)

    def handle_message(self, text: str) -> str:
        """Process one user message and return the reply.

        Any exception raised while handling the message (model, git or
        executor failures) is reported as ``Error: ...`` and leaves the
        pending state untouched.
        """
        message = text.strip()
        if not message:
            return ""
        if is_command(message):
            return run_command(self, message)

        self.memory.add("user", message)
        try:
            result = graph.invoke(
                {
                    "message": message,
                    "pending": self.pending,
                    "intent": None,
                    "reply": "",
                    "approved": False,
                },
                config={"configurable": {"runtime": self.runtime, "session": self}},
            )
        except Exception as e:
            reply = f"Error: {e}"
        else:
            self.pending = result["pending"]
            reply = result["reply"]

        self.memory.add("assistant", reply)
        return reply
