"""Shell command tool.

Commands run through the shell with the project root (or ``cwd``) as working
directory. Destructive-looking commands are flagged with a warning but never
refused: the approval prompt is the safeguard.
"""

import os
import re
import subprocess
import time
from typing import Optional

from pydantic import BaseModel, Field

from agent import config
from tools.base import Tool, ToolContext, ToolName, ToolResult, ValidationResult

_LONG_TIMEOUT = 300  # seconds

DANGEROUS_PATTERNS = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"rm\s+-rf",
        r"sudo",
        r"chmod",
        r"chown",
        r"kill",
        r"shutdown",
        r"reboot",
        r"format",
        r"dd\s+if=",
        r">.*/dev/",  # writing to devices
    )
)


class RunCommandInput(BaseModel):
    command: str = ""
    args: list[str] = Field(default_factory=list)
    cwd: Optional[str] = None
    timeout: Optional[float] = None  # seconds
    env: dict[str, str] = Field(default_factory=dict)

    def full_command(self) -> str:
        return " ".join([self.command, *self.args]).strip()


class RunCommandTool(Tool):
    name = ToolName.RUN_COMMAND
    description = "Execute a shell command in the project directory"
    category = "command"
    requires_approval = True
    is_dangerous = True
    input_model = RunCommandInput

    def _validate(self, data: RunCommandInput, ctx: ToolContext) -> ValidationResult:
        errors: list[str] = []
        warnings: list[str] = []

        if not data.command.strip():
            errors.append("Command is required")

        full_command = data.full_command()
        if is_dangerous_command(full_command):
            warnings.append(f"⚠️ DANGEROUS COMMAND DETECTED: {full_command}")

        if data.timeout is not None:
            if data.timeout < 0:
                errors.append("Timeout must be non-negative")
            elif data.timeout > _LONG_TIMEOUT:
                warnings.append("Command timeout is very long (>5 minutes)")

        return ValidationResult.from_messages(errors, warnings)

    def _preview(self, data: RunCommandInput, ctx: ToolContext) -> str:
        lines = [
            f"⚡ Run command: {data.full_command()}",
            f"   Working directory: {data.cwd or ctx.project_root}",
        ]
        if data.timeout:
            lines.append(f"   Timeout: {data.timeout:g}s")
        return "\n".join(lines)

    def _execute(self, data: RunCommandInput, ctx: ToolContext) -> ToolResult:
        cwd = data.cwd or ctx.project_root
        timeout = data.timeout or config.COMMAND_TIMEOUT
        start = time.monotonic()

        try:
            completed = subprocess.run(
                data.full_command(),
                shell=True,
                cwd=cwd,
                env={**os.environ, **data.env},
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            return self._error(
                "Command timed out",
                {
                    "stdout": _text(e.stdout),
                    "stderr": _text(e.stderr),
                    "duration": _elapsed_ms(start),
                },
            )
        except OSError as e:
            return self._error(
                f"Failed to execute command: {e}",
                {"stdout": "", "stderr": "", "duration": _elapsed_ms(start)},
            )

        output = {
            "stdout": completed.stdout,
            "stderr": completed.stderr,
            "exit_code": completed.returncode,
            "duration": _elapsed_ms(start),
        }
        if completed.returncode == 0:
            return self._success(output)
        return self._error(f"Command exited with code {completed.returncode}", output)


def is_dangerous_command(command: str) -> bool:
    return any(p.search(command) for p in DANGEROUS_PATTERNS)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _text(output) -> str:
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return output or ""
