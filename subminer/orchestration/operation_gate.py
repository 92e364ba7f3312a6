"""Mutual exclusion between the scheduled poll and manual Anki operations."""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum


class EngineState(Enum):
    """What the integration is currently doing."""

    IDLE = "idle"
    POLLING = "polling"
    MANUAL_OPERATION = "manual_operation"


class OperationGate:
    """Single-flight gate: at most one poll or manual operation at a time.

    The only legal transitions are IDLE -> POLLING, IDLE -> MANUAL_OPERATION
    and back to IDLE.
    """

    def __init__(self):
        self._state = EngineState.IDLE
        self._lock = threading.Lock()

    @property
    def state(self) -> EngineState:
        return self._state

    def try_enter(self, state: EngineState) -> bool:
        """Atomically move from IDLE to state.

        Args:
            state: POLLING or MANUAL_OPERATION

        Returns:
            False if another operation holds the gate
        """
        if state is EngineState.IDLE:
            raise ValueError("Cannot enter the IDLE state")
        with self._lock:
            if self._state is not EngineState.IDLE:
                return False
            self._state = state
            return True

    def leave(self) -> None:
        """Return to IDLE."""
        with self._lock:
            self._state = EngineState.IDLE

    @contextmanager
    def enter(self, state: EngineState) -> Iterator[bool]:
        """Hold the gate for the duration of a with block.

        Yields:
            True if the gate was acquired (and will be released on exit)
        """
        if not self.try_enter(state):
            yield False
            return
        try:
            yield True
        finally:
            self.leave()
