"""LangGraph graph construction.

Builds the per-message orchestration graph:

    [entry] ── pending action + yes/no ──▶ [handle_confirmation]
       │                                    ├─ approved ──▶ [execute_pending] ──▶ END
       │                                    └─ cancelled ─▶ END
       │
       └─ otherwise ──▶ [classify] ──▶ one handler per intent ──▶ END

Handlers either answer directly (scripts, git, reads, explanations, chat),
stage an action plan for approval (create/modify/delete file, shell
commands), or stage a unified diff (refactor). The graph keeps no checkpoint;
the session passes its pending state in with every message and stores the
returned value.
"""

from langgraph.graph import END, StateGraph

from agent.nodes import (
    APPROVE_REPLIES,
    CANCEL_REPLIES,
    apply_patch_node,
    classify_node,
    converse_node,
    create_file_node,
    delete_file_node,
    discard_patch_node,
    execute_pending_node,
    explain_node,
    file_creation_path,
    git_node,
    handle_confirmation_node,
    modify_file_node,
    read_file_node,
    refactor_node,
    run_command_node,
    run_script_node,
)
from agent.state import AgentState, AwaitingAction

# Intent type -> handler node name.
INTENT_ROUTES = {
    "run": "run_script",
    "git": "git",
    "read-file": "read_file",
    "create-file": "create_file",
    "modify-file": "modify_file",
    "delete-file": "delete_file",
    "run-command": "run_command",
    "explain": "explain",
    "refactor": "refactor",
    "apply-patch": "apply_patch",
    "discard-patch": "discard_patch",
}

_HANDLERS = {
    "run_script": run_script_node,
    "git": git_node,
    "read_file": read_file_node,
    "create_file": create_file_node,
    "modify_file": modify_file_node,
    "delete_file": delete_file_node,
    "run_command": run_command_node,
    "explain": explain_node,
    "refactor": refactor_node,
    "apply_patch": apply_patch_node,
    "discard_patch": discard_patch_node,
    "converse": converse_node,
}


def _route_start(state: dict) -> str:
    """Yes/no replies to a staged action go to the confirmation handler."""
    reply = state["message"].strip().lower()
    if isinstance(state.get("pending"), AwaitingAction) and reply in APPROVE_REPLIES | CANCEL_REPLIES:
        return "handle_confirmation"
    return "classify"


def _route_intent(state: dict) -> str:
    intent = state["intent"]
    if intent.type in INTENT_ROUTES:
        return INTENT_ROUTES[intent.type]
    if file_creation_path(state["message"]):
        return "create_file"
    return "converse"


def _after_confirmation(state: dict) -> str:
    if state.get("approved"):
        return "execute_pending"
    return END


def build_graph() -> StateGraph:
    """Construct and compile the orchestration graph."""
    workflow = StateGraph(AgentState)

    # ── Nodes ──────────────────────────────────────────────────────────────
    workflow.add_node("classify", classify_node)
    workflow.add_node("handle_confirmation", handle_confirmation_node)
    workflow.add_node("execute_pending", execute_pending_node)
    for name, handler in _HANDLERS.items():
        workflow.add_node(name, handler)

    # ── Edges ──────────────────────────────────────────────────────────────
    workflow.set_conditional_entry_point(
        _route_start,
        {
            "classify": "classify",
            "handle_confirmation": "handle_confirmation",
        },
    )

    workflow.add_conditional_edges(
        "classify",
        _route_intent,
        {name: name for name in _HANDLERS},
    )

    workflow.add_conditional_edges(
        "handle_confirmation",
        _after_confirmation,
        {
            "execute_pending": "execute_pending",
            END: END,
        },
    )

    workflow.add_edge("execute_pending", END)
    for name in _HANDLERS:
        workflow.add_edge(name, END)

    return workflow.compile()


# Pre-built graph instance ready to use
graph = build_graph()
