"""
Bounded, ordered conversation log.

Each agent owns exactly one :class:`ConversationMemory`.  The log is append-only within a run; when
it grows past ``max_messages`` the oldest non-system entries are evicted while every system message
is kept.
"""

import logging
from collections import Counter
from typing import (
    Iterable,
    List,
    Tuple,
)

from taskpilot.core.schema import (
    Message,
    Role,
)

logger = logging.getLogger(__name__)


class ConversationMemory:
    """Bounded message log with system-message retention on eviction."""

    def __init__(self, max_messages: int = 100):
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        self.max_messages = max_messages
        self._messages: List[Message] = []

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    @property
    def messages(self) -> List[Message]:
        """Snapshot of the log in causal order."""
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self):
        return iter(list(self._messages))

    def add_message(self, message: Message) -> None:
        """Append *message*, evicting old non-system entries when over capacity."""
        self._messages.append(message)
        if len(self._messages) > self.max_messages:
            self._evict()

    def add_messages(self, messages: Iterable[Message]) -> None:
        for message in messages:
            self.add_message(message)

    def clear(self) -> None:
        self._messages = []

    def get_recent(self, n: int) -> List[Message]:
        """Return up to the last *n* entries without mutating the log."""
        if n <= 0:
            return []
        return self._messages[-n:]

    def unsaved(self, known: Iterable[Tuple[str, str | None]]) -> List[Message]:
        """
        Return entries whose ``(role, content)`` pair is not in *known*.

        Callers persisting the memory after a run use this to skip messages their store already
        holds.  A pair stored *n* times covers *n* entries of the log, so repeated turns such as
        consecutive tool-calling assistant messages with empty content are all returned.
        """
        stored = Counter(
            (role.value if isinstance(role, Role) else str(role), content)
            for role, content in known
        )
        fresh: List[Message] = []
        for message in self._messages:
            key = (message.role.value, message.content)
            if stored[key] > 0:
                stored[key] -= 1
                continue
            fresh.append(message)
        return fresh

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    def _evict(self) -> None:
        system = [m for m in self._messages if m.role is Role.SYSTEM]
        others = [m for m in self._messages if m.role is not Role.SYSTEM]
        keep = max(self.max_messages - len(system), 0)
        dropped = len(others) - keep
        self._messages = system + (others[-keep:] if keep else [])
        logger.debug("Evicted %d message(s); %d system message(s) retained", dropped, len(system))
