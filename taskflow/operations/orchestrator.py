"""Single-flight orchestrator for streaming operations.

The orchestrator owns at most one active operation. ``start`` performs the
busy check and the move to ``preparing`` synchronously on the running event
loop, then schedules the caller-supplied executor as an asyncio task. The
executor reports phases and progress through callbacks; the orchestrator
reacts to those and to the executor's final settlement.

Threading model:
    Coroutine executors run on the event loop. Plain callables run in a
    worker thread via ``asyncio.to_thread``; their callbacks are marshalled
    back to the loop, so orchestrator state is only ever touched from the
    loop thread.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from taskflow.operations.config import OperationConfig, OperationType, get_operation_config
from taskflow.operations.models import (
    CancelToken,
    Executor,
    Operation,
    OperationCallbacks,
    OperationObserver,
    OperationSnapshot,
    OperationState,
    can_advance,
)
from taskflow.utils.errors import (
    OperationBusyError,
    OperationCancelledError,
    OperationExecutionError,
    OperationNotCancellableError,
    OperationStateError,
)
from taskflow.utils.logging import log_message

if TYPE_CHECKING:
    from taskflow.config.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_PROGRESS_HINT_INTERVAL = 2.0
DEFAULT_ELAPSED_TICK_INTERVAL = 1.0


class OperationHandle:
    """Handle returned by :meth:`OperationOrchestrator.start`.

    Attributes:
        operation_id: Id of the started operation
        op_type: Operation type
    """

    def __init__(self, operation_id: str, op_type: str, task: asyncio.Task[OperationSnapshot]):
        self.operation_id = operation_id
        self.op_type = op_type
        self._task = task

    @property
    def done(self) -> bool:
        return self._task.done()

    async def wait(self) -> OperationSnapshot:
        """Wait for the executor to settle and return the final snapshot."""
        return await asyncio.shield(self._task)

    def __repr__(self) -> str:
        return f"OperationHandle(operation_id={self.operation_id!r}, op_type={self.op_type!r})"


class OperationOrchestrator:
    """Drives one operation at a time through its state machine.

    Observers registered with :meth:`subscribe` receive an
    :class:`OperationSnapshot` synchronously on every state change.
    """

    def __init__(
        self,
        *,
        progress_hint_interval: float = DEFAULT_PROGRESS_HINT_INTERVAL,
        elapsed_tick_interval: float = DEFAULT_ELAPSED_TICK_INTERVAL,
    ) -> None:
        self._progress_hint_interval = progress_hint_interval
        self._elapsed_tick_interval = elapsed_tick_interval
        self._operation: Operation | None = None
        self._config: OperationConfig | None = None
        self._token: CancelToken | None = None
        self._observers: list[OperationObserver] = []
        self._timers: list[asyncio.Task[None]] = []

    @classmethod
    def from_settings(cls, settings: Settings) -> OperationOrchestrator:
        """Create an orchestrator using the configured timer intervals."""
        return cls(
            progress_hint_interval=settings.progress_hint_interval,
            elapsed_tick_interval=settings.elapsed_tick_interval,
        )

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def state(self) -> OperationState:
        if self._operation is None:
            return OperationState.IDLE
        return self._operation.state

    @property
    def is_busy(self) -> bool:
        return self.state.is_active

    @property
    def has_active_timers(self) -> bool:
        return bool(self._timers)

    def snapshot(self) -> OperationSnapshot:
        """Return an immutable view of the current operation (or idle)."""
        if self._operation is None:
            return OperationSnapshot.idle()
        return self._operation.snapshot()

    # =========================================================================
    # Observers
    # =========================================================================

    def subscribe(self, observer: OperationObserver) -> Callable[[], None]:
        """Register an observer for state changes.

        Args:
            observer: Called with a snapshot after every state change

        Returns:
            A callable that removes this observer; calling it twice is harmless
        """
        self._observers.append(observer)

        def unsubscribe() -> None:
            try:
                self._observers.remove(observer)
            except ValueError:
                pass

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception:
                logger.exception("Operation observer %r failed", observer)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self, op_type: str | OperationType, executor: Executor) -> OperationHandle:
        """Start an operation.

        Must be called from a running event loop. The busy check and the
        move to ``preparing`` happen before this method returns.

        Args:
            op_type: Registered operation type
            executor: ``executor(cancel_token, callbacks)``; coroutine
                functions are awaited, plain callables run in a worker thread

        Returns:
            Handle for the started operation

        Raises:
            OperationBusyError: If an operation is preparing or processing
            UnknownOperationError: If ``op_type`` is not registered
        """
        type_name = op_type.value if isinstance(op_type, OperationType) else op_type
        current = self._operation
        if current is not None and current.state.is_active:
            raise OperationBusyError(current.type, type_name)

        config = get_operation_config(type_name)
        loop = asyncio.get_running_loop()

        # A settled operation that was never closed is replaced.
        self._stop_timers()

        operation = Operation(
            id=f"{config.type}-{uuid.uuid4().hex[:8]}",
            type=config.type,
            label=config.label,
            phases=config.phases,
        )
        token = CancelToken(loop)
        self._operation = operation
        self._config = config
        self._token = token

        log_message(f"Operation {operation.id} started ({config.type})")
        self._notify()

        task = loop.create_task(
            self._run(operation, token, executor, loop),
            name=f"operation-{operation.id}",
        )
        return OperationHandle(operation.id, operation.type, task)

    def cancel(self) -> None:
        """Request cooperative cancellation of the active operation.

        Repeated calls while the same operation is still running are no-ops.

        Raises:
            OperationStateError: If no operation is preparing or processing
            OperationNotCancellableError: If the operation type is not cancellable
        """
        operation = self._operation
        if operation is None or not operation.state.is_active:
            raise OperationStateError(f"No operation in progress (state: {self.state.value})")
        assert self._config is not None and self._token is not None
        if not self._config.cancellable:
            raise OperationNotCancellableError(
                f"Operation '{operation.type}' cannot be cancelled"
            )
        if operation.cancel_requested:
            return

        operation.cancel_requested = True
        self._token.cancel()
        log_message(f"Operation {operation.id} cancellation requested")
        self._notify()

    def close(self) -> None:
        """Reset to idle after a terminal state.

        Raises:
            OperationStateError: If an operation is still preparing or processing
        """
        operation = self._operation
        if operation is not None and operation.state.is_active:
            raise OperationStateError(
                f"Cannot close operation {operation.id} while {operation.state.value}"
            )
        self._stop_timers()
        self._operation = None
        self._config = None
        self._token = None
        self._notify()

    # =========================================================================
    # Execution
    # =========================================================================

    async def _run(
        self,
        operation: Operation,
        token: CancelToken,
        executor: Executor,
        loop: asyncio.AbstractEventLoop,
    ) -> OperationSnapshot:
        def on_phase(name: str) -> None:
            self._handle_phase(operation, name)

        def on_progress(hint: str) -> None:
            self._handle_progress(operation, hint)

        try:
            if inspect.iscoroutinefunction(executor):
                result = await executor(token, OperationCallbacks(on_phase, on_progress))
            else:
                callbacks = OperationCallbacks(on_phase, on_progress, loop=loop)
                result = await asyncio.to_thread(executor, token, callbacks)
                if inspect.isawaitable(result):
                    result = await result
        except OperationCancelledError:
            self._settle(operation, OperationState.CANCELLED)
        except asyncio.CancelledError:
            self._settle(operation, OperationState.CANCELLED)
            raise
        except Exception as exc:
            if operation.cancel_requested:
                logger.debug("Executor failed after cancellation", exc_info=True)
                self._settle(operation, OperationState.CANCELLED)
            else:
                self._settle(operation, OperationState.ERROR, error=self._wrap_error(operation, exc))
        else:
            if operation.cancel_requested:
                self._settle(operation, OperationState.CANCELLED)
            else:
                self._settle(operation, OperationState.COMPLETED, result=result)
        return operation.snapshot()

    @staticmethod
    def _wrap_error(operation: Operation, exc: Exception) -> OperationExecutionError:
        message = str(exc)
        error = OperationExecutionError(
            message,
            context={
                "operation_type": operation.type,
                "phase": operation.current_phase,
                "error_type": type(exc).__name__,
                "message": message,
            },
        )
        error.__cause__ = exc
        return error

    def _handle_phase(self, operation: Operation, name: str) -> None:
        if operation is not self._operation or not operation.state.is_active:
            return
        assert self._config is not None

        index = self._config.phase_index(name)
        operation.current_phase_index = (
            index if index is not None else operation.current_phase_index + 1
        )
        operation.current_phase = name

        if operation.state is OperationState.PREPARING:
            self._advance(operation, OperationState.PROCESSING)
            self._start_timers(operation)
        log_message(f"Operation {operation.id} phase: {name}")
        self._notify()

    def _handle_progress(self, operation: Operation, hint: str) -> None:
        if operation is not self._operation or not operation.state.is_active:
            return
        operation.progress_hint = hint
        self._notify()

    def _settle(
        self,
        operation: Operation,
        state: OperationState,
        *,
        result: Any = None,
        error: Exception | None = None,
    ) -> None:
        if operation is not self._operation or not operation.state.is_active:
            return
        self._stop_timers()
        self._advance(operation, state)
        operation.result = result
        operation.error = error
        operation.mark_finished()

        if error is not None:
            log_message(f"Operation {operation.id} failed: {error}")
        else:
            log_message(f"Operation {operation.id} {state.value} after {operation.elapsed:.1f}s")
        self._notify()

    @staticmethod
    def _advance(operation: Operation, target: OperationState) -> None:
        if not can_advance(operation.state, target):
            raise OperationStateError(
                f"Illegal operation transition {operation.state.value} -> {target.value}"
            )
        operation.state = target

    # =========================================================================
    # Timers
    # =========================================================================

    def _start_timers(self, operation: Operation) -> None:
        self._stop_timers()
        assert self._config is not None
        if self._config.progress_hints:
            self._timers.append(
                asyncio.create_task(self._rotate_hints(operation, self._config.progress_hints))
            )
        self._timers.append(asyncio.create_task(self._tick_elapsed(operation)))

    def _stop_timers(self) -> None:
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()

    async def _rotate_hints(self, operation: Operation, hints: tuple[str, ...]) -> None:
        index = 0
        while True:
            await asyncio.sleep(self._progress_hint_interval)
            if operation is not self._operation or operation.state is not OperationState.PROCESSING:
                return
            operation.progress_hint = hints[index]
            index = (index + 1) % len(hints)
            self._notify()

    async def _tick_elapsed(self, operation: Operation) -> None:
        while True:
            await asyncio.sleep(self._elapsed_tick_interval)
            if operation is not self._operation or operation.state is not OperationState.PROCESSING:
                return
            self._notify()


__all__ = [
    "OperationHandle",
    "OperationOrchestrator",
    "DEFAULT_PROGRESS_HINT_INTERVAL",
    "DEFAULT_ELAPSED_TICK_INTERVAL",
]
