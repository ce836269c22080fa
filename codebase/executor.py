"""Shell command and project-script runner.

Scripts are discovered from ``package.json`` (run with ``npm run``) and from
``Makefile`` targets (run with ``make``). Common script names have aliases so
that "run migrations" finds ``db:migrate`` when that is what the project calls
it.
"""

import json
import os
import re
import subprocess
from dataclasses import dataclass
from typing import Optional

from agent import config

SCRIPT_ALIASES: dict[str, tuple[str, ...]] = {
    "migrate": ("migrations", "db:migrate", "database:migrate"),
    "lint": ("lint:fix", "lint:ci"),
    "test": ("test:watch", "test:ci"),
    "build": ("compile",),
    "dev": ("start", "serve"),
}

_MAKE_TARGET = re.compile(r"^([A-Za-z0-9][\w:.-]*)\s*:(?!=)", re.MULTILINE)


class ExecutorError(Exception):
    """Raised when a command cannot be started at all."""


@dataclass
class ExecutionResult:
    command: str
    exit_code: Optional[int]
    stdout: str
    stderr: str

    def format(self) -> str:
        parts = [
            f"command: {self.command}",
            f"stdout:\n{self.stdout.strip()}" if self.stdout.strip() else "",
            f"stderr:\n{self.stderr.strip()}" if self.stderr.strip() else "",
            f"exit code: {self.exit_code}",
        ]
        return "\n\n".join(p for p in parts if p)


class CommandExecutor:
    """Runs shell commands with the project root as working directory."""

    def __init__(self, project_root: str, timeout: float = config.COMMAND_TIMEOUT) -> None:
        self.project_root = project_root
        self.timeout = timeout

    def run(self, command: str, args: Optional[list[str]] = None) -> ExecutionResult:
        """Run *command* (plus *args*) through the shell.

        A command that exceeds the timeout is reported with ``exit_code=None``.

        Raises:
            ExecutorError: If the shell could not be spawned.
        """
        full_command = " ".join([command, *(args or [])])
        try:
            completed = subprocess.run(
                full_command,
                shell=True,
                cwd=self.project_root,
                capture_output=True,
                text=True,
                timeout=self.timeout or None,
            )
        except subprocess.TimeoutExpired as e:
            return ExecutionResult(
                command=full_command,
                exit_code=None,
                stdout=_decode(e.stdout),
                stderr=_decode(e.stderr) + f"\nCommand timed out after {self.timeout}s",
            )
        except OSError as e:
            raise ExecutorError(f"Failed to start command: {e}") from e

        return ExecutionResult(
            command=full_command,
            exit_code=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )

    # ── Project scripts ───────────────────────────────────────────────────

    def list_scripts(self) -> list[str]:
        return sorted({*self._package_scripts(), *self._make_targets()})

    def has_script(self, name: str) -> bool:
        return name in self._package_scripts() or name in self._make_targets()

    def resolve_script(self, name: str) -> Optional[str]:
        """Return *name* or the first defined alias for it, else ``None``."""
        if self.has_script(name):
            return name
        for candidate in SCRIPT_ALIASES.get(name, ()):
            if self.has_script(candidate):
                return candidate
        return None

    def run_script(self, name: str) -> ExecutionResult:
        """Run a defined script, preferring package.json over the Makefile.

        Raises:
            ExecutorError: If no script called *name* is defined.
        """
        if name in self._package_scripts():
            return self.run("npm", ["run", name])
        if name in self._make_targets():
            return self.run("make", [name])
        raise ExecutorError(f'No script named "{name}" is defined')

    def _package_scripts(self) -> dict[str, str]:
        path = os.path.join(self.project_root, "package.json")
        if not os.path.isfile(path):
            return {}
        try:
            with open(path, "r", encoding="utf-8") as f:
                manifest = json.load(f)
        except (OSError, ValueError):
            return {}
        scripts = manifest.get("scripts") if isinstance(manifest, dict) else None
        return scripts if isinstance(scripts, dict) else {}

    def _make_targets(self) -> set[str]:
        path = os.path.join(self.project_root, "Makefile")
        if not os.path.isfile(path):
            return set()
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            text = f.read()
        return {t for t in _MAKE_TARGET.findall(text) if not t.startswith(".")}


def _decode(output) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return output
