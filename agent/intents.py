"""Rule-table intent classifier.

Maps a free-text request to a :class:`ParsedIntent`. Rules are tried in a
fixed priority order and the first rule with any matching pattern wins, so
the order of ``INTENT_RULES`` is part of the classifier's contract: inputs
that hit several rules (``"test"`` is both a script name and an everyday
word) resolve to whichever rule is listed first.

Usage::

    from agent.intents import IntentClassifier
    intent = IntentClassifier().parse("create file notes/todo.md")
    # ParsedIntent(type='create-file', arguments={'path': 'notes/todo.md'})
"""

import re
from dataclasses import dataclass
from typing import Callable, Literal, Optional

IntentType = Literal[
    "explain",
    "refactor",
    "run",
    "git",
    "create-file",
    "modify-file",
    "delete-file",
    "read-file",
    "run-command",
    "apply-patch",
    "discard-patch",
    "unknown",
]

_PATH = r"([\w./-]+)"


@dataclass(frozen=True)
class ParsedIntent:
    """Classified request plus loosely typed arguments from capture groups."""

    type: IntentType
    arguments: Optional[dict[str, str]] = None


Extractor = Callable[[str], Optional[dict[str, str]]]


@dataclass(frozen=True)
class IntentRule:
    type: IntentType
    patterns: tuple[re.Pattern, ...]
    extract: Optional[Extractor] = None

    def matches(self, text: str) -> bool:
        return any(p.search(text) for p in self.patterns)


def _compile(*patterns: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


# ── Argument extractors ───────────────────────────────────────────────────────


def _extract_run_command(text: str) -> Optional[dict[str, str]]:
    match = re.match(r"^\$\s*(.+)", text) or re.search(
        r"shell command:?\s+(.+)", text, re.IGNORECASE
    )
    if match:
        return {"command": match.group(1).strip()}
    return None


def _extract_run(text: str) -> Optional[dict[str, str]]:
    normalized = text.lower()
    # Script keywords take priority over a generic "run <command>".
    for keyword in ("build", "dev", "test", "lint"):
        if re.search(rf"\b{keyword}\b", normalized):
            return {"script": keyword}
    if "migration" in normalized:
        return {"script": "migrate"}

    match = re.search(r"(?:run|execute)\s+(.+)", text, re.IGNORECASE)
    if match:
        return {"command": match.group(1).strip()}
    return None


def _extract_git(text: str) -> Optional[dict[str, str]]:
    match = re.search(rf"create branch\s+{_PATH}", text, re.IGNORECASE)
    if match:
        return {"action": "create-branch", "name": match.group(1)}

    match = re.search(r"commit(?: with)? message:?\s+(.+)", text, re.IGNORECASE)
    if match:
        return {"action": "commit", "message": match.group(1).strip()}

    if re.search(r"show unstaged changes", text, re.IGNORECASE):
        return {"action": "show-unstaged"}

    match = re.search(r"\bpush\b(?:\s+to\s+([\w./-]+))?", text, re.IGNORECASE)
    if match:
        return {"action": "push", "remote": match.group(1)} if match.group(1) else {"action": "push"}

    if re.search(r"write commit message from diff", text, re.IGNORECASE):
        return {"action": "generate-commit-message"}
    return None


def _extract_create_file(text: str) -> Optional[dict[str, str]]:
    match = re.search(rf"(?:create|new) file\s+{_PATH}", text, re.IGNORECASE)
    if match:
        return {"path": match.group(1).strip()}
    return None


def _extract_modify_file(text: str) -> Optional[dict[str, str]]:
    match = re.search(
        rf"(?:modify|edit|update|change) file\s+{_PATH}(?:\s+(?:to|so that|and)\s+(.+))?",
        text,
        re.IGNORECASE,
    )
    if not match:
        return None
    arguments = {"path": match.group(1)}
    if match.group(2):
        arguments["instruction"] = match.group(2).strip()
    return arguments


def _extract_delete_file(text: str) -> Optional[dict[str, str]]:
    match = re.search(rf"(?:delete|remove) file\s+{_PATH}", text, re.IGNORECASE)
    if not match:
        return None
    arguments = {"path": match.group(1)}
    if re.search(r"(?:^|\s)(?:--)?force\b", text, re.IGNORECASE):
        arguments["force"] = "true"
    return arguments


def _extract_read_file(text: str) -> Optional[dict[str, str]]:
    match = re.search(rf"(?:read|show|open) file\s+{_PATH}", text, re.IGNORECASE) or re.search(
        rf"\bcat\s+{_PATH}", text, re.IGNORECASE
    )
    if match:
        return {"path": match.group(1)}
    return None


def _extract_explain(text: str) -> Optional[dict[str, str]]:
    file_match = re.search(r"file\s+([\w./-]+\.\w+)", text, re.IGNORECASE)
    symbol_match = re.search(r"(?:function|class|symbol)\s+(\w+)", text, re.IGNORECASE)
    if not (file_match or symbol_match):
        return None
    arguments: dict[str, str] = {}
    if file_match:
        arguments["path"] = file_match.group(1)
    if symbol_match:
        arguments["symbol"] = symbol_match.group(1)
    return arguments


def _extract_refactor(text: str) -> Optional[dict[str, str]]:
    match = re.search(r"refactor(?: the)?\s+file\s+([\w./-]+\.\w+)", text, re.IGNORECASE)
    if match:
        return {"path": match.group(1)}
    return None


# ── Rule table (order is significant) ─────────────────────────────────────────

INTENT_RULES: tuple[IntentRule, ...] = (
    IntentRule("run-command", _compile(r"^\$\s*\S", r"\bshell command\b"), _extract_run_command),
    # File requests name a path, and paths like build.log or tests/app.py
    # must not fall through to the script and git keywords below.
    IntentRule(
        "modify-file",
        _compile(r"modify file", r"edit file", r"update file", r"change file"),
        _extract_modify_file,
    ),
    IntentRule("delete-file", _compile(r"delete file", r"remove file"), _extract_delete_file),
    IntentRule(
        "read-file",
        _compile(r"read file", r"show file", r"open file", r"\bcat\s+\S"),
        _extract_read_file,
    ),
    IntentRule("explain", _compile(r"explain", r"what does", r"describe"), _extract_explain),
    IntentRule("refactor", _compile(r"refactor", r"improve", r"optimi[sz]e"), _extract_refactor),
    IntentRule(
        "run",
        _compile(r"(run|execute)\b", r"test", r"build", r"lint", r"dev", r"migration"),
        _extract_run,
    ),
    IntentRule(
        "git",
        _compile(r"git", r"commit", r"branch", r"push", r"unstaged"),
        _extract_git,
    ),
    IntentRule(
        "create-file",
        _compile(r"create file", r"new file", r"write file"),
        _extract_create_file,
    ),
    IntentRule("apply-patch", _compile(r"apply patch", r"accept patch")),
    IntentRule("discard-patch", _compile(r"discard patch", r"reject patch")),
)


class IntentClassifier:
    """Stateless first-match-wins classifier over an ordered rule table."""

    def __init__(self, rules: tuple[IntentRule, ...] = INTENT_RULES) -> None:
        self._rules = rules

    def parse(self, text: str) -> ParsedIntent:
        trimmed = text.strip()
        if not trimmed:
            return ParsedIntent("unknown")

        rule = next((r for r in self._rules if r.matches(trimmed)), None)
        if rule is None:
            return ParsedIntent("unknown")

        arguments = rule.extract(trimmed) if rule.extract else None
        return ParsedIntent(rule.type, arguments)
