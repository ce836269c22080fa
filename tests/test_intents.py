"""Tests for the rule-table intent classifier."""

import dataclasses

import pytest

from agent.intents import INTENT_RULES, IntentClassifier, ParsedIntent


@pytest.fixture()
def classifier():
    return IntentClassifier()


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_blank_input_is_unknown(classifier, text):
    intent = classifier.parse(text)
    assert intent == ParsedIntent("unknown")
    assert intent.arguments is None


def test_unmatched_input_is_unknown(classifier):
    assert classifier.parse("hello there").type == "unknown"


def test_create_file_extracts_path(classifier):
    intent = classifier.parse("create file notes/todo.md")
    assert intent.type == "create-file"
    assert intent.arguments == {"path": "notes/todo.md"}


@pytest.mark.parametrize(
    "text, script",
    [
        ("run the build", "build"),
        ("start the dev server", "dev"),
        ("please run lint", "lint"),
        ("run migrations", "migrate"),
    ],
)
def test_run_keywords_win_over_generic_command(classifier, text, script):
    intent = classifier.parse(text)
    assert intent.type == "run"
    assert intent.arguments == {"script": script}


def test_run_generic_command(classifier):
    intent = classifier.parse("run echo hello")
    assert intent.type == "run"
    assert intent.arguments == {"command": "echo hello"}


def test_matched_intent_without_arguments(classifier):
    """A rule that matches but extracts nothing still yields its type."""
    intent = classifier.parse("run")
    assert intent.type == "run"
    assert intent.arguments is None


def test_shell_prefix_is_run_command(classifier):
    intent = classifier.parse("$ ls -la")
    assert intent.type == "run-command"
    assert intent.arguments == {"command": "ls -la"}


def test_explain_extracts_path_and_symbol(classifier):
    intent = classifier.parse("explain function greet in file app.py")
    assert intent.type == "explain"
    assert intent.arguments == {"path": "app.py", "symbol": "greet"}


def test_explain_is_checked_before_run(classifier):
    """Overlapping keywords resolve to the earlier rule."""
    intent = classifier.parse("explain how the test suite works")
    assert intent.type == "explain"
    assert intent.arguments is None


def test_refactor_extracts_path(classifier):
    intent = classifier.parse("refactor file app.py to use constants")
    assert intent.type == "refactor"
    assert intent.arguments == {"path": "app.py"}


def test_git_actions(classifier):
    assert classifier.parse("create branch feature/login").arguments == {
        "action": "create-branch",
        "name": "feature/login",
    }
    assert classifier.parse("commit with message fix typo").arguments == {
        "action": "commit",
        "message": "fix typo",
    }
    assert classifier.parse("show unstaged changes").arguments == {"action": "show-unstaged"}
    assert classifier.parse("git status").type == "git"


def test_modify_file_extracts_instruction(classifier):
    intent = classifier.parse("modify file app.py to greet loudly")
    assert intent.type == "modify-file"
    assert intent.arguments == {"path": "app.py", "instruction": "greet loudly"}


def test_delete_file_force_flag(classifier):
    assert classifier.parse("delete file old.txt").arguments == {"path": "old.txt"}
    assert classifier.parse("delete file old.txt --force").arguments == {
        "path": "old.txt",
        "force": "true",
    }


@pytest.mark.parametrize("text", ["read file app.py", "cat app.py", "open file app.py"])
def test_read_file(classifier, text):
    intent = classifier.parse(text)
    assert intent.type == "read-file"
    assert intent.arguments == {"path": "app.py"}


def test_patch_replies(classifier):
    assert classifier.parse("apply patch").type == "apply-patch"
    assert classifier.parse("Discard Patch").type == "discard-patch"


@pytest.mark.parametrize(
    "text, intent_type, path",
    [
        ("delete file build.log", "delete-file", "build.log"),
        ("delete file latest.txt", "delete-file", "latest.txt"),
        ("delete file .gitignore", "delete-file", ".gitignore"),
        ("read file tests/test_app.py", "read-file", "tests/test_app.py"),
        ("edit file src/dev_server.py to log requests", "modify-file", "src/dev_server.py"),
    ],
)
def test_file_paths_with_script_keywords_stay_file_requests(classifier, text, intent_type, path):
    intent = classifier.parse(text)
    assert intent.type == intent_type
    assert intent.arguments["path"] == path


def test_rule_order_is_fixed():
    assert [r.type for r in INTENT_RULES] == [
        "run-command",
        "modify-file",
        "delete-file",
        "read-file",
        "explain",
        "refactor",
        "run",
        "git",
        "create-file",
        "apply-patch",
        "discard-patch",
    ]


def test_parsed_intent_is_immutable(classifier):
    intent = classifier.parse("create file a.md")
    with pytest.raises(dataclasses.FrozenInstanceError):
        intent.type = "unknown"


def test_push_action(classifier):
    assert classifier.parse("git push").arguments == {"action": "push"}
    assert classifier.parse("push to upstream").arguments == {"action": "push", "remote": "upstream"}
