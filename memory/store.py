"""In-memory conversation history for one assistant session.

Entries are kept in arrival order for the lifetime of the session and are
never written to disk.
"""

import time
from typing import Optional

from memory.schema import VALID_ROLES, MemoryEntry


class SessionMemory:
    """Append-only list of chat turns, clearable on demand."""

    def __init__(self) -> None:
        self._history: list[MemoryEntry] = []

    def add(self, role: str, content: str, timestamp: Optional[float] = None) -> MemoryEntry:
        """Append a turn and return the stored entry.

        Raises:
            ValueError: If *role* is not in VALID_ROLES.
        """
        if role not in VALID_ROLES:
            raise ValueError(
                f"Invalid role '{role}'. "
                f"Must be one of: {', '.join(sorted(VALID_ROLES))}"
            )
        entry: MemoryEntry = {
            "role": role,  # type: ignore[typeddict-item]
            "content": content,
            "timestamp": timestamp if timestamp is not None else time.time(),
        }
        self._history.append(entry)
        return entry

    def entries(self) -> list[MemoryEntry]:
        """Return a copy of every entry, oldest first."""
        return [dict(e) for e in self._history]  # type: ignore[misc]

    def recent(self, n: int) -> list[MemoryEntry]:
        return self.entries()[-n:] if n > 0 else []

    def clear(self) -> None:
        self._history = []

    def __len__(self) -> int:
        return len(self._history)
