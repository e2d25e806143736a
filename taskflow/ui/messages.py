"""Textual Message types and the orchestrator bridge.

Defines the message carrying an operation snapshot plus a bridge function
(``post_operation_state``) that posts it to a Textual target from any
thread.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from textual.message import Message

from taskflow.operations.models import OperationSnapshot

if TYPE_CHECKING:
    from textual.app import App
    from textual.message_pump import MessagePump


class OperationStateChanged(Message):
    """The orchestrator pushed a new operation snapshot."""

    def __init__(self, snapshot: OperationSnapshot) -> None:
        self.snapshot = snapshot
        super().__init__()


def _is_in_async_context() -> bool:
    """Return True when called from within a running asyncio event loop."""
    try:
        asyncio.get_running_loop()
        return True
    except RuntimeError:
        return False


def post_operation_state(
    app: App,  # type: ignore[type-arg]
    snapshot: OperationSnapshot,
    target: MessagePump | None = None,
) -> None:
    """Post an OperationStateChanged message to ``target`` (default: the active screen).

    Uses ``app.call_from_thread`` when called from a worker thread, and
    posts directly when already inside the event loop.
    """

    def _post() -> None:
        (target or app.screen).post_message(OperationStateChanged(snapshot))

    if _is_in_async_context():
        _post()
    else:
        app.call_from_thread(_post)


__all__ = ["OperationStateChanged", "post_operation_state"]
