"""Tool-usage audit log.

Every approved tool execution and every rollback is appended to
``tool_usage.jsonl`` in the configured log directory, one JSON object per
line.
"""

import json
import os
import time

from agent import config
from tools.base import ToolResult


class ToolUsageLogger:
    """Append-only JSON-lines logger for every tool invocation."""

    def __init__(self, log_dir: str = config.TOOL_LOG_DIR):
        self._log_dir = log_dir
        self._log_path = os.path.join(log_dir, "tool_usage.jsonl")

    @property
    def path(self) -> str:
        return self._log_path

    def log(
        self,
        tool_name: str,
        tool_args: dict,
        result_summary: str,
    ) -> None:
        """Write a single log entry."""
        entry = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%S%z"),
            "tool": tool_name,
            "args": tool_args,
            "result": result_summary[:500],  # keep logs compact
        }
        os.makedirs(self._log_dir, exist_ok=True)
        with open(self._log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, default=str) + "\n")


def summarize_result(result: ToolResult) -> str:
    """One-line outcome used as the log entry's ``result`` field."""
    if result.ok:
        return f"success: {json.dumps(result.data, default=str)}" if result.data else "success"
    return f"{result.status}: {result.error}" if result.error else result.status
