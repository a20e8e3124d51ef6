"""Port for the single cross-session flag: has the player ever lost."""

from __future__ import annotations

from typing import Protocol


class FlagStore(Protocol):
    def get_has_ever_lost(self) -> bool:
        ...

    def set_has_ever_lost(self) -> None:
        """Latch the flag to True. There is no way to reset it."""
        ...


class InMemoryFlagStore:
    """Process-local store, used in tests and when no database is available."""

    def __init__(self, has_ever_lost: bool = False) -> None:
        self._has_ever_lost = has_ever_lost
        self.writes = 0

    def get_has_ever_lost(self) -> bool:
        return self._has_ever_lost

    def set_has_ever_lost(self) -> None:
        self._has_ever_lost = True
        self.writes += 1
