# History management for undo/redo functionality
"""
Provides a generic history stack for undo/redo operations.

The stack is a list of immutable entries plus a cursor. Entry 0 is the
baseline the stack was reset to; ``undo`` moves the cursor back and never
past entry 0, ``redo`` moves it forward again, and pushing a new entry
drops everything after the cursor.
"""

from typing import TypeVar, Generic, Optional, List, Callable
from dataclasses import dataclass, field
from copy import deepcopy
import time

from .logger import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


@dataclass(frozen=True)
class HistoryEntry(Generic[T]):
    """A single entry in the history stack."""
    index: int
    state: T
    description: str = ""
    timestamp: float = field(default_factory=time.time)


class HistoryStack(Generic[T]):
    """
    Generic history stack supporting undo/redo operations.

    Type parameter T represents the state type being tracked. Immutable
    states (frozen dataclasses) can be stored with ``deep_copy=False``.
    """

    def __init__(
        self,
        max_size: int = 100,
        deep_copy: bool = True,
        on_change: Optional[Callable[[], None]] = None
    ):
        """
        Initialize the history stack.

        Args:
            max_size: Maximum number of history entries to keep.
            deep_copy: Whether to deep copy states when pushing and restoring.
            on_change: Optional callback when history changes.
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._entries: List[HistoryEntry[T]] = []
        self._cursor = -1
        self._next_index = 0
        self._max_size = max_size
        self._deep_copy = deep_copy
        self._on_change = on_change
        self._is_applying = False  # Prevent recursive pushes during undo/redo

    def reset(self, baseline: T, description: str = "initial") -> None:
        """Drop all entries and start over with ``baseline`` as entry 0."""
        self._entries.clear()
        self._cursor = -1
        self._next_index = 0
        self._append(baseline, description)
        logger.debug("History reset to '%s'", description)
        self._notify_change()

    def push(self, state: T, description: str = "") -> Optional[HistoryEntry[T]]:
        """
        Push a new state onto the history stack.

        Args:
            state: The state to save.
            description: Optional description of the change.

        Returns:
            The new entry, or None while an undo/redo is being applied.
        """
        if self._is_applying:
            return None

        # A new action invalidates everything that could have been redone
        del self._entries[self._cursor + 1:]
        entry = self._append(state, description)

        while len(self._entries) > self._max_size:
            self._entries.pop(0)
            self._cursor -= 1

        logger.debug("History push: %s (stack size: %d)", description or "unnamed", len(self._entries))
        self._notify_change()
        return entry

    def undo(self) -> Optional[T]:
        """
        Move back one entry and return its state.

        Returns:
            The previous state, or None if already at the oldest entry.
        """
        if not self.can_undo():
            logger.debug("Nothing to undo")
            return None

        self._is_applying = True
        try:
            self._cursor -= 1
            entry = self._entries[self._cursor]
            logger.debug("Undo: restored to '%s'", entry.description or "unnamed")
            self._notify_change()
            return self._restore(entry)
        finally:
            self._is_applying = False

    def redo(self) -> Optional[T]:
        """
        Move forward one entry and return its state.

        Returns:
            The restored state, or None if nothing to redo.
        """
        if not self.can_redo():
            logger.debug("Nothing to redo")
            return None

        self._is_applying = True
        try:
            self._cursor += 1
            entry = self._entries[self._cursor]
            logger.debug("Redo: restored to '%s'", entry.description or "unnamed")
            self._notify_change()
            return self._restore(entry)
        finally:
            self._is_applying = False

    def can_undo(self) -> bool:
        """Check if undo is available."""
        return self._cursor > 0

    def can_redo(self) -> bool:
        """Check if redo is available."""
        return 0 <= self._cursor < len(self._entries) - 1

    def clear(self) -> None:
        """Clear all history."""
        self._entries.clear()
        self._cursor = -1
        logger.debug("History cleared")
        self._notify_change()

    def get_undo_description(self) -> Optional[str]:
        """Get description of the action that would be undone."""
        if self.can_undo():
            return self._entries[self._cursor].description
        return None

    def get_redo_description(self) -> Optional[str]:
        """Get description of the action that would be redone."""
        if self.can_redo():
            return self._entries[self._cursor + 1].description
        return None

    def get_undo_count(self) -> int:
        """Get number of available undo steps."""
        return max(0, self._cursor)

    def get_redo_count(self) -> int:
        """Get number of available redo steps."""
        return max(0, len(self._entries) - 1 - self._cursor)

    def get_current_entry(self) -> Optional[HistoryEntry[T]]:
        """Get the entry under the cursor."""
        if self._cursor >= 0:
            return self._entries[self._cursor]
        return None

    def get_current_state(self) -> Optional[T]:
        """Get the current state without modifying history."""
        entry = self.get_current_entry()
        return self._restore(entry) if entry is not None else None

    @property
    def entries(self) -> List[HistoryEntry[T]]:
        """Snapshot of all entries, oldest first."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def _append(self, state: T, description: str) -> HistoryEntry[T]:
        if self._deep_copy:
            state = deepcopy(state)
        entry = HistoryEntry(index=self._next_index, state=state, description=description)
        self._next_index += 1
        self._entries.append(entry)
        self._cursor = len(self._entries) - 1
        return entry

    def _restore(self, entry: HistoryEntry[T]) -> T:
        if self._deep_copy:
            return deepcopy(entry.state)
        return entry.state

    def _notify_change(self) -> None:
        """Notify listeners of history change."""
        if self._on_change:
            try:
                self._on_change()
            except Exception:
                logger.exception("Error in history change callback")
