"""
In-memory storage implementation for tests and the demo.
"""

import copy

from typing_extensions import override

from ..interfaces import DatabaseState, Storage


class MemoryStorage(Storage):
    """Keeps a deep copy of the last saved database in process memory."""

    def __init__(self, initial: DatabaseState | None = None):
        self._state: DatabaseState | None = copy.deepcopy(initial)
        self.save_count: int = 0

    @override
    def load_state(self) -> DatabaseState | None:
        return copy.deepcopy(self._state)

    @override
    def save_state(self, state: DatabaseState) -> None:
        self._state = copy.deepcopy(state)
        self.save_count += 1
