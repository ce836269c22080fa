"""Slash commands handled outside the graph.

Commands act on the session (memory, execution history) or on the shared
runtime (index, git, registry, model gateway) and never stage anything for
approval. Switching provider or model replaces the runtime's gateway, so in
the web UI it applies to every connected session.
"""

from typing import Callable

from agent import config
from agent.gateway import FALLBACK_MODEL, PROVIDERS, create_gateway, get_provider
from agent.guardrails import summarize_result
from agent.state import describe_pending
from codebase.git import GitError

HELP_TEXT = """Available commands:
  /help              Show this message
  /clear             Forget the conversation history
  /status            Show git status
  /reindex           Rebuild the code index
  /config            Show the active configuration
  /provider [name]   List model providers or switch to one
  /model [name]      List the provider's models or switch to one
  /tools             List the registered tools
  /history           Show recent tool executions
  /undo <record-id>  Roll back a recorded execution

Anything else is treated as a request. Staged actions wait for "yes"/"no";
proposed patches wait for "apply patch"/"discard patch"."""

_HISTORY_LIMIT = 10


def _help(assistant, arg: str) -> str:
    return HELP_TEXT


def _clear(assistant, arg: str) -> str:
    assistant.memory.clear()
    return "🧹 Conversation history cleared."


def _status(assistant, arg: str) -> str:
    try:
        return assistant.runtime.git.status().format()
    except GitError as e:
        return f"Git command failed: {e}"


def _reindex(assistant, arg: str) -> str:
    count = assistant.runtime.indexer.index_project()
    return f"🔎 Indexed {count} files."


def _config(assistant, arg: str) -> str:
    runtime = assistant.runtime
    lines = [
        f"Project root: {runtime.project_root}",
        f"Provider: {runtime.gateway.provider}",
        f"Model: {runtime.gateway.model_name}",
        f"Embedder: {runtime.indexer.embedder.name}",
        f"History window: {config.HISTORY_WINDOW}",
        f"Command timeout: {config.COMMAND_TIMEOUT:g}s",
        f"Tool log: {runtime.tool_logger.path}",
    ]
    pending = describe_pending(assistant.pending)
    if pending:
        lines.append(f"Pending: {pending}")
    return "\n".join(lines)


def _switched(gateway, label: str) -> str:
    if not gateway.available:
        return f"🔌 Switched to {label}, but no API key was found. Replies use the fallback notice."
    return f"🔌 Switched to {label} ({gateway.model_name})."


def _provider(assistant, arg: str) -> str:
    runtime = assistant.runtime
    if not arg:
        lines = []
        for registration in PROVIDERS.values():
            marker = "▶" if registration.id == runtime.gateway.provider else " "
            key = " 🔑" if registration.requires_api_key else ""
            lines.append(f"{marker} {registration.id}: {registration.label}{key} (default {registration.default_model})")
        return "\n".join(lines)

    if arg.lower() == FALLBACK_MODEL:
        runtime.gateway = create_gateway(FALLBACK_MODEL)
        return "🔌 Switched to the fallback notice. No model will be called."
    try:
        registration = get_provider(arg)
    except ValueError as e:
        return str(e)
    runtime.gateway = create_gateway(registration.id, registration.default_model)
    return _switched(runtime.gateway, registration.label)


def _model(assistant, arg: str) -> str:
    runtime = assistant.runtime
    registration = PROVIDERS.get(runtime.gateway.provider)
    if registration is None:
        return "No provider is selected. Use /provider <name> first."
    if not arg:
        return "\n".join(
            f"{'▶' if name == runtime.gateway.model_name else ' '} {name}" for name in registration.models
        )

    runtime.gateway = create_gateway(registration.id, arg)
    return _switched(runtime.gateway, registration.label)


def _tools(assistant, arg: str) -> str:
    lines = []
    for meta in assistant.runtime.registry.get_tools_metadata():
        flags = []
        if meta["requires_approval"]:
            flags.append("approval")
        if meta["is_dangerous"]:
            flags.append("dangerous")
        if meta["supports_rollback"]:
            flags.append("rollback")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        lines.append(f"🔧 {meta['name']}{suffix}: {meta['description']}")
    return "\n".join(lines)


def _history(assistant, arg: str) -> str:
    records = assistant.approvals.get_history(_HISTORY_LIMIT)
    if not records:
        return "No tool executions yet."
    lines = []
    for record in records:
        status = "✅" if record.result.ok else "❌"
        undo = " (undoable)" if record.can_rollback else ""
        name = getattr(record.tool_name, "value", record.tool_name)
        lines.append(f"{status} {record.timestamp:%H:%M:%S} {name} {record.id}{undo}")
    return "\n".join(lines)


def _undo(assistant, arg: str) -> str:
    if not arg:
        return "Usage: /undo <record-id>"

    runtime = assistant.runtime
    record = assistant.approvals.get_record(arg)
    result = assistant.approvals.rollback(arg, assistant.tool_context)
    if record is not None:
        name = getattr(record.tool_name, "value", record.tool_name)
        runtime.tool_logger.log(
            tool_name=f"{name}:rollback",
            tool_args=record.input,
            result_summary=summarize_result(result),
        )
    if not result.ok:
        return f"❌ Rollback failed: {result.error}"

    runtime.indexer.index_project()
    return "↩️ Rolled back."


COMMANDS: dict[str, Callable] = {
    "/help": _help,
    "/clear": _clear,
    "/status": _status,
    "/reindex": _reindex,
    "/config": _config,
    "/provider": _provider,
    "/model": _model,
    "/tools": _tools,
    "/history": _history,
    "/undo": _undo,
}


def is_command(text: str) -> bool:
    return text.startswith("/")


def run_command(assistant, text: str) -> str:
    """Dispatch a slash command line to its handler."""
    name, _, arg = text.strip().partition(" ")
    handler = COMMANDS.get(name.lower())
    if handler is None:
        return f"Unknown command: {name}. Type /help for the list of commands."
    return handler(assistant, arg.strip())
