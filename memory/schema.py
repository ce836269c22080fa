"""Schema for per-session conversation memory."""

from typing import Literal, TypedDict

Role = Literal["user", "assistant", "system"]

# Canonical set of allowed memory roles.
VALID_ROLES = frozenset({"user", "assistant", "system"})


class MemoryEntry(TypedDict):
    role: Role
    content: str
    timestamp: float
