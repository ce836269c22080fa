"""Tests for the executor, git wrapper and file reader collaborators."""

import shutil
import subprocess

import pytest

from codebase.executor import CommandExecutor, ExecutorError
from codebase.git import GitError, GitManager, GitStatus
from codebase.reader import FileReader

# ── executor ─────────────────────────────────────────────────────────────────


def test_run_captures_output(project):
    result = CommandExecutor(str(project)).run("echo", ["out", "&&", "echo", "err", "1>&2"])
    assert result.exit_code == 0
    assert result.stdout.strip() == "out"
    assert result.stderr.strip() == "err"


def test_run_timeout_has_no_exit_code(project):
    result = CommandExecutor(str(project), timeout=0.2).run("sleep 2")
    assert result.exit_code is None
    assert "timed out" in result.stderr


def test_scripts_from_package_json_and_makefile(project):
    (project / "Makefile").write_text("lint:\n\techo lint\n.PHONY: lint\nVAR := 1\n")
    executor = CommandExecutor(str(project))

    assert executor.list_scripts() == ["build", "db:migrate", "lint", "start"]
    assert executor.has_script("build")
    assert not executor.has_script("VAR")


def test_resolve_script_aliases(project):
    executor = CommandExecutor(str(project))
    assert executor.resolve_script("build") == "build"
    assert executor.resolve_script("migrate") == "db:migrate"
    assert executor.resolve_script("dev") == "start"
    assert executor.resolve_script("test") is None


def test_run_script_prefers_make_when_only_target(project):
    (project / "Makefile").write_text("hello:\n\t@echo from-make\n")
    if shutil.which("make") is None:
        pytest.skip("make is not installed")
    result = CommandExecutor(str(project)).run_script("hello")
    assert result.command == "make hello"
    assert result.stdout.strip() == "from-make"


def test_run_unknown_script(project):
    with pytest.raises(ExecutorError, match='No script named "deploy"'):
        CommandExecutor(str(project)).run_script("deploy")


def test_execution_result_format(project):
    text = CommandExecutor(str(project)).run("echo hi").format()
    assert text == "command: echo hi\n\nstdout:\nhi\n\nexit code: 0"


# ── git ──────────────────────────────────────────────────────────────────────


@pytest.fixture()
def repo(project):
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    def git(*args):
        subprocess.run(["git", *args], cwd=project, check=True, capture_output=True)

    git("init", "-b", "main")
    git("config", "user.email", "dev@example.com")
    git("config", "user.name", "Dev")
    git("add", ".")
    git("commit", "-m", "initial")
    return project


def test_git_status_and_commit(repo):
    manager = GitManager(str(repo))
    assert manager.status().branch == "main"
    assert manager.status().changes == []

    (repo / "app.py").write_text("X = 1\n")
    status = manager.status()
    assert len(status.changes) == 1
    assert "app.py" in manager.unstaged_changes()
    assert manager.staged_diff() == ""

    manager.commit("update app")
    assert manager.status().changes == []


def test_git_create_branch(repo):
    manager = GitManager(str(repo))
    assert manager.create_branch("feature/x") == "feature/x"
    assert manager.status().branch == "feature/x"
    manager.checkout("main")
    assert manager.status().branch == "main"


def test_git_push_to_remote(repo, tmp_path):
    remote = tmp_path / "remote.git"
    subprocess.run(["git", "init", "--bare", str(remote)], check=True, capture_output=True)
    subprocess.run(["git", "remote", "add", "upstream", str(remote)], cwd=repo, check=True, capture_output=True)

    GitManager(str(repo)).push("upstream")

    heads = subprocess.run(
        ["git", "branch", "--list", "main"], cwd=remote, check=True, capture_output=True, text=True
    ).stdout
    assert "main" in heads


def test_push_intent_runs_git_push(repo, make_runtime, tmp_path):
    from agent.assistant import Assistant

    remote = tmp_path / "remote.git"
    subprocess.run(["git", "init", "--bare", str(remote)], check=True, capture_output=True)
    subprocess.run(["git", "remote", "add", "origin", str(remote)], cwd=repo, check=True, capture_output=True)

    assistant = Assistant(make_runtime())
    assert assistant.handle_message("git push").startswith("Pushed main to origin.")


def test_git_errors_outside_repo(tmp_path):
    with pytest.raises(GitError):
        GitManager(str(tmp_path)).status()
    assert GitManager(str(tmp_path)).root() == str(tmp_path)


def test_git_status_format():
    assert GitStatus("main").format() == "Branch: main\nAhead: 0, Behind: 0\nNo pending changes."


# ── reader ───────────────────────────────────────────────────────────────────


def test_reader_denies_escape(project):
    result = FileReader(str(project)).read_file("../secret.txt")
    assert not result.success
    assert result.error == "Access denied: File is outside project directory"


def test_reader_reads_inside(project):
    result = FileReader(str(project)).read_file("README.md")
    assert result.success
    assert result.relative_path == "README.md"
    assert result.content.startswith("# Sample")


def test_detect_language():
    assert FileReader.detect_language("a/b.tsx") == "typescript"
    assert FileReader.detect_language("script.py") == "python"
    assert FileReader.detect_language("LICENSE") == "plaintext"
