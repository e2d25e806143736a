"""Data models for streaming operations.

This module provides:
- OperationState: Enum of orchestrator states
- Operation: Mutable record owned by the orchestrator
- OperationSnapshot: Immutable view pushed to observers
- CancelToken: Cooperative cancellation signal handed to executors
- OperationCallbacks: Phase/progress callbacks handed to executors
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from taskflow.utils.errors import OperationCancelledError


class OperationState(Enum):
    """States of the operation automaton.

    ``idle → preparing → processing → {completed | cancelled | error} → idle``
    """

    IDLE = "idle"
    PREPARING = "preparing"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ERROR = "error"

    @property
    def is_active(self) -> bool:
        """True while an executor may still be running."""
        return self in (OperationState.PREPARING, OperationState.PROCESSING)

    @property
    def is_terminal(self) -> bool:
        return self in (
            OperationState.COMPLETED,
            OperationState.CANCELLED,
            OperationState.ERROR,
        )


# Allowed forward moves; reset to IDLE is handled separately by close().
_FORWARD: dict[OperationState, frozenset[OperationState]] = {
    OperationState.IDLE: frozenset({OperationState.PREPARING}),
    OperationState.PREPARING: frozenset(
        {
            OperationState.PROCESSING,
            OperationState.COMPLETED,
            OperationState.CANCELLED,
            OperationState.ERROR,
        }
    ),
    OperationState.PROCESSING: frozenset(
        {OperationState.COMPLETED, OperationState.CANCELLED, OperationState.ERROR}
    ),
    OperationState.COMPLETED: frozenset(),
    OperationState.CANCELLED: frozenset(),
    OperationState.ERROR: frozenset(),
}


def can_advance(current: OperationState, target: OperationState) -> bool:
    """Check whether the automaton may move from ``current`` to ``target``."""
    return target in _FORWARD[current]


@dataclass
class Operation:
    """One invocation of a long-running operation.

    Created by ``OperationOrchestrator.start`` and mutated only by the
    orchestrator.

    Attributes:
        id: Unique operation id
        type: Operation type (key into the config registry)
        label: Display label copied from the config
        state: Current automaton state
        phases: Phase names from the config
        current_phase_index: Index of the current phase (-1 before the first)
        current_phase: Name of the last reported phase
        progress_hint: Last progress hint (reported or rotated)
        started_at: Wall-clock start time (Unix timestamp)
        cancel_requested: Whether cancel() has been called
        result: Executor return value once completed
        error: Failure recorded once in the error state
    """

    id: str
    type: str
    label: str
    state: OperationState = OperationState.PREPARING
    phases: tuple[str, ...] = ()
    current_phase_index: int = -1
    current_phase: str | None = None
    progress_hint: str | None = None
    started_at: float = field(default_factory=time.time)
    cancel_requested: bool = False
    result: Any = None
    error: Exception | None = None
    finished_at: float | None = None
    _started_monotonic: float = field(default_factory=time.monotonic, repr=False)
    _finished_monotonic: float | None = field(default=None, repr=False)

    @property
    def elapsed(self) -> float:
        """Seconds since start, frozen once the operation settles."""
        end = self._finished_monotonic
        if end is None:
            end = time.monotonic()
        return max(0.0, end - self._started_monotonic)

    def mark_finished(self) -> None:
        self.finished_at = time.time()
        self._finished_monotonic = time.monotonic()

    def snapshot(self) -> OperationSnapshot:
        """Build an immutable view of the current state."""
        return OperationSnapshot(
            operation_id=self.id,
            op_type=self.type,
            label=self.label,
            state=self.state,
            phases=self.phases,
            current_phase_index=self.current_phase_index,
            current_phase=self.current_phase,
            progress_hint=self.progress_hint,
            started_at=self.started_at,
            elapsed=self.elapsed,
            cancel_requested=self.cancel_requested,
            result=self.result,
            error=self.error,
        )


@dataclass(frozen=True)
class OperationSnapshot:
    """Immutable view of an operation, delivered to observers."""

    operation_id: str | None
    op_type: str | None
    label: str
    state: OperationState
    phases: tuple[str, ...] = ()
    current_phase_index: int = -1
    current_phase: str | None = None
    progress_hint: str | None = None
    started_at: float | None = None
    elapsed: float = 0.0
    cancel_requested: bool = False
    result: Any = None
    error: Exception | None = None

    @classmethod
    def idle(cls) -> OperationSnapshot:
        return cls(operation_id=None, op_type=None, label="", state=OperationState.IDLE)

    @property
    def phase_count(self) -> int:
        return len(self.phases)

    def format_elapsed(self) -> str:
        """Format elapsed time for display (e.g. "4.2s", "1m 23s")."""
        if self.elapsed < 60:
            return f"{self.elapsed:.1f}s"
        minutes = int(self.elapsed // 60)
        seconds = self.elapsed % 60
        return f"{minutes}m {seconds:.0f}s"


class CancelToken:
    """Cooperative cancellation signal.

    Backed by a ``threading.Event`` so that executors running in worker
    threads can poll it, plus an ``asyncio.Event`` so coroutine executors
    can await it. The signal fires at most once.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._event = threading.Event()
        self._async_event = asyncio.Event()
        self._loop = loop
        self._lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> bool:
        """Fire the signal.

        Returns:
            True if this call fired the signal, False if it had already fired
        """
        with self._lock:
            if self._event.is_set():
                return False
            self._event.set()
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._async_event.set)
        else:
            self._async_event.set()
        return True

    def raise_if_cancelled(self) -> None:
        """Raise OperationCancelledError if the signal has fired."""
        if self._event.is_set():
            raise OperationCancelledError()

    async def wait(self) -> None:
        """Suspend until the signal fires."""
        if self._event.is_set():
            return
        await self._async_event.wait()

    def wait_sync(self, timeout: float | None = None) -> bool:
        """Block the calling thread until the signal fires or ``timeout`` passes."""
        return self._event.wait(timeout)


class OperationCallbacks:
    """Phase and progress callbacks handed to an executor.

    Executors running in a worker thread receive callbacks that hop back
    to the event loop before touching orchestrator state.
    """

    def __init__(
        self,
        on_phase: Callable[[str], None],
        on_progress: Callable[[str], None],
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._on_phase = on_phase
        self._on_progress = on_progress
        self._loop = loop

    def _dispatch(self, fn: Callable[[str], None], value: str) -> None:
        if self._loop is None:
            fn(value)
        else:
            self._loop.call_soon_threadsafe(fn, value)

    def on_phase(self, name: str) -> None:
        """Report that the executor entered phase ``name``."""
        self._dispatch(self._on_phase, name)

    def on_progress(self, hint: str) -> None:
        """Report an informational progress hint."""
        self._dispatch(self._on_progress, hint)


# An executor is either a coroutine function or a plain callable; plain
# callables are run in a worker thread.
Executor = Callable[[CancelToken, OperationCallbacks], Any]
OperationObserver = Callable[[OperationSnapshot], None]


__all__ = [
    "OperationState",
    "Operation",
    "OperationSnapshot",
    "CancelToken",
    "OperationCallbacks",
    "Executor",
    "OperationObserver",
    "can_advance",
]
