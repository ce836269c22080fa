"""Graph node functions.

Each function takes the current AgentState (plus the run config carrying the
shared ``runtime`` and the per-session ``session``) and returns a partial
state update. LangGraph merges the returned dict into the shared state
automatically.

Nodes that stage something for approval go through :func:`_refuse_if_pending`
first: a new action or patch is never staged while another one is
outstanding.
"""

import logging
import re
import uuid
from typing import Optional

from langchain_core.runnables import RunnableConfig

from agent import config as agent_config
from agent.gateway import ChatMessage, ModelGatewayError
from agent.guardrails import summarize_result
from agent.state import IDLE, AwaitingAction, AwaitingPatch, PendingAction, PendingState
from agent.templates import template_for
from codebase.executor import ExecutorError
from codebase.git import GitError
from codebase.patch import PatchError
from tools.base import ToolName, ToolResult
from tools.planner import ActionPlan

LOGGER = logging.getLogger(__name__)

APPROVE_REPLIES = frozenset({"yes", "y"})
CANCEL_REPLIES = frozenset({"no", "n", "cancel"})

_CODE_FENCE = re.compile(r"^```[\w+-]*\n(.*?)\n?```\s*$", re.DOTALL)
_TRAILING_FENCE = re.compile(r"\s*```\s*$")
_LOOSE_PATH = re.compile(r"([\w./-]+\.\w+)")
_FILE_REQUEST = re.compile(
    r"\b(?:create|make|generate|write|add|scaffold)\b.*\b(?:file|script|module|component|page|doc)\b",
    re.IGNORECASE,
)

_PATCH_SUMMARY_LINES = 20
_REINDEX_TOOLS = frozenset({ToolName.CREATE_FILE, ToolName.WRITE_FILE})


# ── Helpers ───────────────────────────────────────────────────────────────────


def _deps(config: RunnableConfig):
    configurable = config["configurable"]
    return configurable["runtime"], configurable["session"]


def _arg(state: dict, key: str) -> Optional[str]:
    intent = state.get("intent")
    if intent is None or not intent.arguments:
        return None
    return intent.arguments.get(key)


def _build_messages(session, system_instruction: str, user_prompt: str) -> list[ChatMessage]:
    """System prompt, recent history (minus the current user turn), then the prompt."""
    history = session.memory.recent(agent_config.HISTORY_WINDOW)
    if history and history[-1]["role"] == "user":
        history.pop()
    return [
        ChatMessage(role="system", content=system_instruction),
        *(ChatMessage(role=e["role"], content=e["content"]) for e in history),
        ChatMessage(role="user", content=user_prompt),
    ]


def _index_context(runtime, query: str, limit: int, focus_symbol: Optional[str] = None, excerpt: int = 0) -> str:
    blocks = []
    for hit in runtime.indexer.search(query, limit):
        parts = [f"File: {hit.path}", "Summary:", runtime.indexer.describe_file(hit.path, focus_symbol)]
        if excerpt:
            parts += ["Excerpt:", hit.content[:excerpt]]
        blocks.append("\n".join(parts))
    return "\n\n".join(blocks)


def _strip_code_fence(text: str) -> str:
    match = _CODE_FENCE.match(text.strip())
    return match.group(1) if match else text


def _refuse_if_pending(pending: PendingState) -> Optional[dict]:
    if isinstance(pending, AwaitingAction):
        return {
            "reply": (
                f"An action is already awaiting approval: {pending.action.plan.title}. "
                'Reply "yes" to run it or "no" to cancel it first.'
            )
        }
    if isinstance(pending, AwaitingPatch):
        return {"reply": 'A patch is already awaiting approval. Reply "apply patch" or "discard patch" first.'}
    return None


def _stage_plan(runtime, session, intent_type: str, plan: ActionPlan) -> dict:
    """Validate the plan's first step, render the preview and stage it."""
    step = plan.steps[0]
    tool = runtime.registry.get(step.tool_name)
    validation = tool.validate(step.input, session.tool_context)
    if not validation.valid:
        return {"reply": f"Cannot {plan.title[0].lower()}{plan.title[1:]}\nValidation failed: {', '.join(validation.errors)}"}

    preview = session.approvals.generate_plan_preview(plan, session.tool_context)
    if validation.warnings:
        preview += "\n" + "\n".join(f"Warning: {w}" for w in validation.warnings)

    action = PendingAction(
        type=intent_type,
        tool_name=step.tool_name,
        input=step.input,
        preview=preview,
        plan=plan,
    )
    return {
        "pending": AwaitingAction(action),
        "reply": f'{preview}\nReply "yes" to proceed or "no" to cancel.',
    }


def _log_execution(runtime, tool_name: ToolName, tool_input: dict, result: ToolResult) -> None:
    runtime.tool_logger.log(
        tool_name=tool_name.value,
        tool_args=tool_input,
        result_summary=summarize_result(result),
    )


def file_creation_path(message: str) -> Optional[str]:
    """Target path if *message* reads like a request to create a file."""
    if not _FILE_REQUEST.search(message):
        return None
    match = _LOOSE_PATH.search(message)
    return match.group(1) if match else None


# ── Entry: classification & confirmation ─────────────────────────────────────


def classify_node(state: dict, config: RunnableConfig) -> dict:
    runtime, _ = _deps(config)
    return {"intent": runtime.classifier.parse(state["message"])}


def handle_confirmation_node(state: dict, config: RunnableConfig) -> dict:
    """Process the user's yes/no reply to a staged action."""
    reply = state["message"].strip().lower()
    if reply in APPROVE_REPLIES:
        return {"approved": True}
    return {"approved": False, "pending": IDLE, "reply": "Action cancelled."}


def execute_pending_node(state: dict, config: RunnableConfig) -> dict:
    """Run every step of the approved plan through the registry.

    The pending slot is cleared once any step has run. A failure while
    logging or re-indexing afterwards is reported as a warning in the reply
    so that a second "yes" cannot run the same action again.
    """
    runtime, session = _deps(config)
    pending = state["pending"]
    if not isinstance(pending, AwaitingAction):
        return {"pending": IDLE, "reply": "No pending action to execute."}

    sections: list[str] = []
    warnings: list[str] = []
    reindex = False
    for step in pending.action.plan.steps:
        result = runtime.registry.execute(step.tool_name, step.input, session.tool_context)
        record = session.approvals.record_execution(step.tool_name, step.input, result)
        try:
            _log_execution(runtime, step.tool_name, step.input, result)
        except OSError as e:
            LOGGER.warning("tool_log_failed", extra={"tool": step.tool_name.value, "error": str(e)})
            warnings.append(f"⚠️ Could not write the tool log: {e}")

        section = [f"{step.description}:", session.approvals.format_execution_result(result)]
        if step.tool_name == ToolName.RUN_COMMAND and result.data:
            for stream in ("stdout", "stderr"):
                if result.data.get(stream, "").strip():
                    section.append(f"{stream}:\n{result.data[stream].strip()}")
        if record.can_rollback:
            section.append(f"Undo with /undo {record.id}")
        sections.append("\n".join(section))

        reindex = reindex or (result.ok and step.tool_name in _REINDEX_TOOLS)
        if not result.ok and step.required:
            break

    if reindex:
        try:
            runtime.indexer.index_project()
        except Exception as e:
            LOGGER.warning("reindex_failed", extra={"error": str(e)})
            warnings.append(f"⚠️ Could not refresh the code index: {e}")

    return {"pending": IDLE, "approved": False, "reply": "\n\n".join(sections + warnings)}


# ── Immediate intents ─────────────────────────────────────────────────────────


def run_script_node(state: dict, config: RunnableConfig) -> dict:
    """Run a project script or the command following "run"/"execute"."""
    runtime, _ = _deps(config)
    script = _arg(state, "script")
    command = _arg(state, "command")

    try:
        if script:
            name = runtime.executor.resolve_script(script)
            if name is None:
                available = ", ".join(runtime.executor.list_scripts()) or "none"
                return {"reply": f'No script named "{script}" is defined. Available scripts: {available}'}
            return {"reply": runtime.executor.run_script(name).format()}
        if command:
            return {"reply": runtime.executor.run(command).format()}
    except ExecutorError as e:
        return {"reply": f"Failed to run command: {e}"}

    available = ", ".join(runtime.executor.list_scripts()) or "none"
    return {"reply": f"Tell me which script or command to run. Available scripts: {available}"}


def git_node(state: dict, config: RunnableConfig) -> dict:
    runtime, session = _deps(config)
    git = runtime.git
    action = _arg(state, "action")

    try:
        if action == "create-branch":
            name = _arg(state, "name")
            if not name:
                return {"reply": "Branch name is required."}
            git.create_branch(name)
            return {"reply": f"Created and switched to branch {name}."}

        if action == "commit":
            message = _arg(state, "message")
            if not message:
                return {"reply": "Commit message is required."}
            git.commit(message)
            return {"reply": f"Committed changes with message: {message}"}

        if action == "show-unstaged":
            diff = git.unstaged_changes()
            return {"reply": diff if diff.strip() else "No unstaged changes found."}

        if action == "push":
            remote = _arg(state, "remote") or "origin"
            branch = git.status().branch
            output = git.push(remote, branch).strip()
            return {"reply": f"Pushed {branch} to {remote}." + (f"\n{output}" if output else "")}

        if action == "generate-commit-message":
            staged = git.staged_diff()
            diff = staged if staged.strip() else git.diff()
            if not diff.strip():
                return {"reply": "No changes detected to summarize."}
            response = runtime.gateway.chat(
                _build_messages(
                    session,
                    "Write a concise conventional commit-style subject line for these changes.",
                    diff,
                )
            )
            return {"reply": response.content.strip() or "Language model did not return a commit message."}

        return {"reply": git.status().format()}
    except GitError as e:
        return {"reply": f"Git command failed: {e}"}


def read_file_node(state: dict, config: RunnableConfig) -> dict:
    runtime, session = _deps(config)
    path = _arg(state, "path")
    if not path:
        return {"reply": "Please specify a file to read."}

    tool_input = {"path": path}
    result = runtime.registry.execute(ToolName.READ_FILE, tool_input, session.tool_context)
    session.approvals.record_execution(ToolName.READ_FILE, tool_input, result)
    _log_execution(runtime, ToolName.READ_FILE, tool_input, result)

    if not result.ok:
        return {"reply": session.approvals.format_execution_result(result)}
    return {"reply": f"📖 {path}:\n\n{result.data['content']}"}


# ── Approval-gated intents ────────────────────────────────────────────────────


def create_file_node(state: dict, config: RunnableConfig) -> dict:
    """Draft the new file's content and stage a create plan."""
    runtime, session = _deps(config)
    refusal = _refuse_if_pending(state["pending"])
    if refusal:
        return refusal

    message = state["message"]
    path = _arg(state, "path") or file_creation_path(message)
    if not path:
        match = _LOOSE_PATH.search(message)
        path = match.group(1) if match else f"notes/{uuid.uuid4()}.md"

    content = _draft_file_content(runtime, session, path, message)
    plan = runtime.planner.create_file_plan(path, content)
    return _stage_plan(runtime, session, "create-file", plan)


def _draft_file_content(runtime, session, path: str, request: str) -> str:
    """Ask the model for the file body; fall back to a static template."""
    if not runtime.gateway.available:
        return template_for(path)
    language = runtime.reader.detect_language(path)
    try:
        response = runtime.gateway.chat(
            _build_messages(
                session,
                "Write the complete contents of the requested file. Respond with the file "
                "content only, without explanations or code fences.",
                f"File: {path} ({language})\nRequest: {request}",
            )
        )
    except ModelGatewayError:
        return template_for(path)

    content = _strip_code_fence(response.content.strip())
    if not content:
        return template_for(path)
    return content if content.endswith("\n") else content + "\n"


def modify_file_node(state: dict, config: RunnableConfig) -> dict:
    """Ask the model for the rewritten file and stage a write plan."""
    runtime, session = _deps(config)
    refusal = _refuse_if_pending(state["pending"])
    if refusal:
        return refusal

    path = _arg(state, "path")
    if not path:
        return {"reply": "Please specify the file to modify."}

    current = runtime.reader.read_file(path)
    if not current.success:
        return {"reply": f"Cannot modify {path}: {current.error}"}
    if not runtime.gateway.available:
        return {"reply": f"Cannot draft changes for {path}: no language model is configured."}

    instruction = _arg(state, "instruction") or state["message"]
    response = runtime.gateway.chat(
        _build_messages(
            session,
            "Rewrite the file to satisfy the request. Respond with the complete new file "
            "content only, without explanations or code fences.",
            f"File: {current.relative_path} ({runtime.reader.detect_language(path)})\n"
            f"Request: {instruction}\n\nCurrent content:\n{current.content}",
        )
    )
    content = _strip_code_fence(response.content.strip())
    if not content:
        return {"reply": "Model did not return new content. Please refine the request."}
    if current.content.endswith("\n") and not content.endswith("\n"):
        content += "\n"

    plan = runtime.planner.modify_file_plan(path, content)
    return _stage_plan(runtime, session, "modify-file", plan)


def delete_file_node(state: dict, config: RunnableConfig) -> dict:
    runtime, session = _deps(config)
    refusal = _refuse_if_pending(state["pending"])
    if refusal:
        return refusal

    path = _arg(state, "path")
    if not path:
        return {"reply": "Please specify the file to delete."}

    plan = runtime.planner.delete_file_plan(path, confirm_dangerous=_arg(state, "force") == "true")
    return _stage_plan(runtime, session, "delete-file", plan)


def run_command_node(state: dict, config: RunnableConfig) -> dict:
    runtime, session = _deps(config)
    command = _arg(state, "command")
    if not command:
        return {"reply": "Please specify the command to run."}
    return _stage_command(runtime, session, state, command)


def _stage_command(runtime, session, state: dict, command: str) -> dict:
    refusal = _refuse_if_pending(state["pending"])
    if refusal:
        return refusal
    plan = runtime.planner.run_command_plan(command)
    return _stage_plan(runtime, session, "run-command", plan)


# ── Model-backed intents ──────────────────────────────────────────────────────


def explain_node(state: dict, config: RunnableConfig) -> dict:
    runtime, session = _deps(config)
    message = state["message"]
    path = _arg(state, "path")
    if path and not runtime.reader.file_exists(path):
        return {"reply": f"File not found: {path}"}
    context = _index_context(
        runtime,
        path or message,
        limit=4,
        focus_symbol=_arg(state, "symbol"),
        excerpt=500,
    )
    if not context:
        return {"reply": "No relevant files found to explain."}

    response = runtime.gateway.chat(
        _build_messages(
            session,
            "Explain the referenced code to a developer. Focus on responsibilities, "
            "important APIs, and how the pieces interact.",
            f"User request: {message}\n\nCode context:\n{context}",
        )
    )
    return {"reply": response.content.strip() or "No explanation available."}


def refactor_node(state: dict, config: RunnableConfig) -> dict:
    """Ask the model for a unified diff and stage it as the pending patch."""
    runtime, session = _deps(config)
    refusal = _refuse_if_pending(state["pending"])
    if refusal:
        return refusal

    message = state["message"]
    path = _arg(state, "path")
    if path and not runtime.reader.file_exists(path):
        return {"reply": f"File not found: {path}"}
    context = _index_context(runtime, path or message, limit=4, excerpt=400)
    if not context:
        return {"reply": "No relevant files found to refactor."}

    response = runtime.gateway.chat(
        _build_messages(
            session,
            "Produce a unified diff (git apply format) that addresses the requested "
            "refactor. Do not include explanations outside the diff.",
            f"Refactor request: {message}\n\nProject context:\n{context}",
        )
    )
    text = response.content.strip()
    marker = text.find("diff --git")
    if marker == -1:
        return {"reply": text or "Model did not return a valid patch. Please refine the request."}

    patch = _strip_code_fence(text)
    patch = _TRAILING_FENCE.sub("", patch[patch.find("diff --git"):]) + "\n"
    return {
        "pending": AwaitingPatch(patch),
        "reply": f'Proposed patch:\n\n{patch}\nReply "apply patch" to apply or "discard patch" to cancel.',
    }


def apply_patch_node(state: dict, config: RunnableConfig) -> dict:
    runtime, _ = _deps(config)
    pending = state["pending"]
    if not isinstance(pending, AwaitingPatch):
        return {"reply": "No patch is awaiting approval."}

    try:
        runtime.patches.apply_unified_diff(pending.patch)
    except (PatchError, OSError) as e:
        return {"reply": f"Failed to apply patch: {e}"}

    runtime.indexer.index_project()
    summary = "\n".join(pending.patch.split("\n")[:_PATCH_SUMMARY_LINES])
    return {"pending": IDLE, "reply": f"Patch applied successfully. Preview:\n{summary}"}


def discard_patch_node(state: dict, config: RunnableConfig) -> dict:
    if not isinstance(state["pending"], AwaitingPatch):
        return {"reply": "No patch to discard."}
    return {"pending": IDLE, "reply": "Discarded pending patch."}


def converse_node(state: dict, config: RunnableConfig) -> dict:
    """General conversation grounded in the indexed project."""
    runtime, session = _deps(config)
    message = state["message"]
    context = _index_context(runtime, message, limit=3)
    prompt = f"User request: {message}"
    if context:
        prompt += f"\n\nIndexed context:\n{context}"

    response = runtime.gateway.chat(_build_messages(session, agent_config.SYSTEM_PROMPT, prompt))
    return {"reply": response.content.strip() or "No response from language model."}

