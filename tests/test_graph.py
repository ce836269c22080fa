"""End-to-end tests for the orchestration graph and the Assistant session.

No API keys are needed: models are langchain fake chat models or the
unconfigured fallback gateway.
"""

import json

from agent.state import IDLE, AwaitingAction, AwaitingPatch

APP_PATCH = """```diff
diff --git a/app.py b/app.py
--- a/app.py
+++ b/app.py
@@ -1,1 +1,1 @@
-GREETING = "hi"
+GREETING = "hello"
```"""


# ── Graph structure ──────────────────────────────────────────────────────────


def test_graph_has_expected_nodes():
    from agent.graph import INTENT_ROUTES, graph

    node_names = set(graph.get_graph().nodes.keys())
    expected = {"classify", "handle_confirmation", "execute_pending", "converse", *INTENT_ROUTES.values()}
    assert expected <= node_names


def test_route_start():
    from agent.graph import _route_start
    from agent.state import PendingAction
    from tools.base import ToolName

    action = AwaitingAction(PendingAction("create-file", ToolName.CREATE_FILE, {}, "", None))
    assert _route_start({"message": "YES", "pending": action}) == "handle_confirmation"
    assert _route_start({"message": "cancel", "pending": action}) == "handle_confirmation"
    assert _route_start({"message": "yes", "pending": IDLE}) == "classify"
    assert _route_start({"message": "yes", "pending": AwaitingPatch("x")}) == "classify"
    assert _route_start({"message": "read file app.py", "pending": action}) == "classify"


def test_handle_confirmation_node():
    from agent.nodes import handle_confirmation_node

    assert handle_confirmation_node({"message": "y"}, {}) == {"approved": True}
    denied = handle_confirmation_node({"message": "no"}, {})
    assert denied["pending"] == IDLE
    assert denied["reply"] == "Action cancelled."


# ── create-file approval flow ────────────────────────────────────────────────


def test_create_file_stages_then_executes(make_runtime, project):
    from agent.assistant import Assistant

    assistant = Assistant(make_runtime(["```markdown\n# Todo\n\n- [ ] ship it\n```"]))

    reply = assistant.handle_message("create file notes/todo.md")
    assert assistant.awaiting_approval
    action = assistant.pending.action
    assert action.type == "create-file"
    assert action.plan.danger_level == "safe"
    assert action.input["path"] == "notes/todo.md"
    assert "notes/todo.md" in action.preview
    assert 'Reply "yes" to proceed' in reply
    assert not (project / "notes" / "todo.md").exists()

    reply = assistant.handle_message("yes")
    assert assistant.pending == IDLE
    assert "✅ SUCCESS" in reply
    assert (project / "notes" / "todo.md").read_text() == "# Todo\n\n- [ ] ship it\n"

    record = assistant.approvals.get_history()[0]
    assert record.can_rollback
    assert f"Undo with /undo {record.id}" in reply


def test_create_file_uses_template_without_model(make_runtime, project):
    from agent.assistant import Assistant

    assistant = Assistant(make_runtime(None))
    assistant.handle_message("create file notes/todo.md")
    assert assistant.pending.action.input["content"] == "# Todo\n\n"

    assistant.handle_message("y")
    assert (project / "notes" / "todo.md").read_text() == "# Todo\n\n"


def test_create_file_falls_back_to_template_on_model_error(runtime, failing_gateway):
    from agent.assistant import Assistant

    runtime.gateway = failing_gateway
    assistant = Assistant(runtime)
    assistant.handle_message("create file notes/todo.md")
    assert assistant.pending.action.input["content"] == "# Todo\n\n"


def test_no_cancels_pending_action(assistant, project):
    assistant.handle_message("create file notes/todo.md")
    assert assistant.handle_message("No") == "Action cancelled."
    assert assistant.pending == IDLE
    assert not (project / "notes" / "todo.md").exists()


def test_other_input_keeps_pending_action(assistant):
    assistant.handle_message("create file notes/todo.md")
    staged = assistant.pending

    reply = assistant.handle_message("read file README.md")
    assert reply.startswith("📖 README.md:")
    assert assistant.pending == staged


def test_second_action_is_refused_while_one_is_pending(assistant, project):
    assistant.handle_message("create file notes/todo.md")
    staged = assistant.pending

    reply = assistant.handle_message("delete file app.py")
    assert reply.startswith("An action is already awaiting approval: Create file: notes/todo.md")
    assert assistant.pending == staged
    assert (project / "app.py").exists()


def test_create_file_with_existing_path_fails_validation(assistant):
    reply = assistant.handle_message("create file app.py")
    assert reply.startswith("Cannot create file: app.py\nValidation failed:")
    assert assistant.pending == IDLE


def test_unknown_file_request_routes_to_create(assistant):
    assistant.handle_message("please make a script called tools/cleanup.sh")
    assert assistant.awaiting_approval
    assert assistant.pending.action.input["path"] == "tools/cleanup.sh"


# ── delete / modify / run-command ────────────────────────────────────────────


def test_delete_critical_file_flow(assistant, project):
    target = project / "package.json"
    original = target.read_bytes()

    reply = assistant.handle_message("delete file package.json")
    assert "requires confirm_dangerous: true" in reply
    assert assistant.pending == IDLE

    reply = assistant.handle_message("delete file package.json --force")
    assert assistant.pending.action.plan.danger_level == "dangerous"
    assert "DANGEROUS: Deleting critical file: package.json" in reply

    assistant.handle_message("yes")
    assert not target.exists()

    record = assistant.approvals.get_history()[0]
    assert assistant.handle_message(f"/undo {record.id}") == "↩️ Rolled back."
    assert target.read_bytes() == original


def test_modify_file_stages_write(make_runtime, project):
    from agent.assistant import Assistant

    new_source = 'GREETING = "HELLO"\n'
    assistant = Assistant(make_runtime([new_source]))
    reply = assistant.handle_message("modify file app.py to shout")

    assert assistant.pending.action.plan.danger_level == "caution"
    assert assistant.pending.action.input["content"] == new_source
    assert "Modify file: app.py" in reply

    assistant.handle_message("yes")
    assert (project / "app.py").read_text() == new_source


def test_modify_file_needs_a_model(make_runtime):
    from agent.assistant import Assistant

    assistant = Assistant(make_runtime(None))
    reply = assistant.handle_message("modify file app.py to shout")
    assert reply == "Cannot draft changes for app.py: no language model is configured."
    assert assistant.pending == IDLE


def test_delete_path_with_script_keyword_is_staged(assistant, project):
    (project / "build.log").write_text("old output\n")

    reply = assistant.handle_message("delete file build.log")
    assert assistant.awaiting_approval
    assert assistant.pending.action.input["path"] == "build.log"
    assert "exit code" not in reply
    assert (project / "build.log").exists()


def test_run_command_is_gated(assistant):
    reply = assistant.handle_message("$ echo gated")
    assert assistant.pending.action.type == "run-command"
    assert "⚡ Run command: echo gated" in reply

    reply = assistant.handle_message("yes")
    assert "stdout:\ngated" in reply


def test_run_executes_immediately(assistant):
    reply = assistant.handle_message("run echo immediate")
    assert "immediate" in reply
    assert "exit code: 0" in reply
    assert assistant.pending == IDLE


def test_run_unknown_script_lists_available(assistant):
    reply = assistant.handle_message("run lint")
    assert reply == 'No script named "lint" is defined. Available scripts: build, db:migrate, start'



def test_explain_existing_file(assistant):
    assert assistant.handle_message("explain file app.py") == "Sure, here is an answer."


def test_explain_and_refactor_missing_file(assistant):
    assert assistant.handle_message("explain file ghost.py") == "File not found: ghost.py"
    assert assistant.handle_message("refactor file ghost.py") == "File not found: ghost.py"
    assert assistant.pending == IDLE

# ── patches ──────────────────────────────────────────────────────────────────


def test_refactor_patch_apply(make_runtime, project):
    from agent.assistant import Assistant

    assistant = Assistant(make_runtime([APP_PATCH]))
    reply = assistant.handle_message("refactor file app.py to say hello")
    assert assistant.awaiting_patch
    assert assistant.pending.patch.startswith("diff --git a/app.py b/app.py")
    assert "```" not in assistant.pending.patch
    assert reply.startswith("Proposed patch:")

    reply = assistant.handle_message("apply patch")
    assert reply.startswith("Patch applied successfully.")
    assert assistant.pending == IDLE
    assert (project / "app.py").read_text().startswith('GREETING = "hello"\n')


def test_refactor_patch_discard(make_runtime, project):
    from agent.assistant import Assistant

    before = (project / "app.py").read_text()
    assistant = Assistant(make_runtime([APP_PATCH]))
    assistant.handle_message("refactor file app.py to say hello")

    assert assistant.handle_message("discard patch") == "Discarded pending patch."
    assert assistant.pending == IDLE
    assert (project / "app.py").read_text() == before


def test_refactor_without_diff_returns_text(make_runtime):
    from agent.assistant import Assistant

    assistant = Assistant(make_runtime(["Consider extracting a constant."]))
    assert assistant.handle_message("refactor file app.py") == "Consider extracting a constant."
    assert assistant.pending == IDLE


def test_patch_replies_when_idle(assistant):
    assert assistant.handle_message("apply patch") == "No patch is awaiting approval."
    assert assistant.handle_message("discard patch") == "No patch to discard."


def test_yes_does_not_apply_a_patch(make_runtime):
    from agent.assistant import Assistant

    assistant = Assistant(make_runtime([APP_PATCH]))
    assistant.handle_message("refactor file app.py to say hello")
    assistant.handle_message("yes")
    assert assistant.awaiting_patch


# ── errors, memory, logging ──────────────────────────────────────────────────


def test_model_error_leaves_state_unchanged(runtime, failing_gateway):
    from agent.assistant import Assistant

    assistant = Assistant(runtime)
    assistant.handle_message("create file notes/todo.md")
    staged = assistant.pending

    runtime.gateway = failing_gateway
    reply = assistant.handle_message("how does greeting work?")
    assert reply == "Error: Model request failed: quota exceeded"
    assert assistant.pending == staged


def test_conversation_is_remembered(assistant):
    assert assistant.handle_message("how does greeting work?") == "Sure, here is an answer."
    assert [(e["role"], e["content"]) for e in assistant.memory.entries()] == [
        ("user", "how does greeting work?"),
        ("assistant", "Sure, here is an answer."),
    ]


def test_blank_message_is_ignored(assistant):
    assert assistant.handle_message("   ") == ""
    assert len(assistant.memory) == 0


def test_executions_are_logged(assistant, runtime):
    assistant.handle_message("create file notes/todo.md")
    assistant.handle_message("yes")

    with open(runtime.tool_logger.path, encoding="utf-8") as f:
        entries = [json.loads(line) for line in f]
    assert entries[-1]["tool"] == "create_file"
    assert entries[-1]["args"]["path"] == "notes/todo.md"
    assert entries[-1]["result"].startswith("success")


def test_created_file_is_indexed(assistant, runtime):
    assistant.handle_message("create file docs/guide.md")
    assistant.handle_message("yes")
    assert "docs/guide.md" in {f.path for f in runtime.indexer.files}


def test_unwritable_tool_log_does_not_rerun_action(assistant, runtime, project, tmp_path):
    from agent.guardrails import ToolUsageLogger

    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    runtime.tool_logger = ToolUsageLogger(str(blocker))

    assistant.handle_message("$ echo run >> counter.txt")
    reply = assistant.handle_message("yes")
    assert "⚠️ Could not write the tool log" in reply
    assert assistant.pending == IDLE

    assistant.handle_message("yes")
    assert (project / "counter.txt").read_text() == "run\n"


def test_reindex_failure_is_a_warning(assistant, runtime, project, monkeypatch):
    def broken_index():
        raise RuntimeError("index is locked")

    monkeypatch.setattr(runtime.indexer, "index_project", broken_index)
    assistant.handle_message("create file notes/todo.md")
    reply = assistant.handle_message("yes")

    assert "✅ SUCCESS" in reply
    assert "⚠️ Could not refresh the code index: index is locked" in reply
    assert assistant.pending == IDLE
    assert (project / "notes" / "todo.md").exists()
