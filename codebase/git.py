"""Thin wrapper over the ``git`` command line."""

import os
import subprocess
from dataclasses import dataclass, field


class GitError(Exception):
    """Raised when a git invocation exits non-zero or git is unavailable."""


@dataclass
class GitStatus:
    branch: str
    ahead: int = 0
    behind: int = 0
    changes: list[str] = field(default_factory=list)

    def format(self) -> str:
        lines = [
            f"Branch: {self.branch}",
            f"Ahead: {self.ahead}, Behind: {self.behind}",
            "Changes:" if self.changes else "No pending changes.",
            *self.changes,
        ]
        return "\n".join(lines)


class GitManager:
    def __init__(self, project_root: str) -> None:
        self.project_root = project_root

    def _run(self, *args: str) -> str:
        try:
            completed = subprocess.run(
                ["git", *args],
                cwd=self.project_root,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise GitError(f"git is not available: {e}") from e
        if completed.returncode != 0:
            message = completed.stderr.strip() or completed.stdout.strip()
            raise GitError(f"git {' '.join(args)} failed: {message}")
        return completed.stdout.strip()

    def status(self) -> GitStatus:
        lines = self._run("status", "--porcelain=v2", "--branch").split("\n")
        branch = "unknown"
        ahead = behind = 0
        changes: list[str] = []
        for line in lines:
            if line.startswith("# branch.head "):
                branch = line.split(" ", 2)[2]
            elif line.startswith("# branch.ab "):
                _, _, ahead_raw, behind_raw = line.split(" ")
                ahead = int(ahead_raw.lstrip("+"))
                behind = int(behind_raw.lstrip("-"))
            elif line.startswith(("1 ", "2 ", "? ")):
                changes.append(line[2:])
        return GitStatus(branch=branch, ahead=ahead, behind=behind, changes=changes)

    def create_branch(self, name: str) -> str:
        self._run("checkout", "-b", name)
        return name

    def checkout(self, branch: str) -> None:
        self._run("checkout", branch)

    def commit(self, message: str) -> None:
        self._run("commit", "-am", message)

    def diff(self, pathspec: str = "") -> str:
        args = ["diff"]
        if pathspec:
            args += ["--", pathspec]
        return self._run(*args)

    def unstaged_changes(self) -> str:
        return self._run("diff")

    def staged_diff(self) -> str:
        return self._run("diff", "--cached")

    def push(self, remote: str = "origin", branch: str = "") -> str:
        return self._run("push", remote, branch or self.status().branch)

    def root(self) -> str:
        try:
            return self._run("rev-parse", "--show-toplevel") or os.path.abspath(self.project_root)
        except GitError:
            return os.path.abspath(self.project_root)
