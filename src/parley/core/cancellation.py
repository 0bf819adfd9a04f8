"""Cancellation token and the scope that binds it to a task."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from types import TracebackType

from parley.errors import TurnCancelledError

logger = logging.getLogger("parley.cancellation")

__all__ = ["CancelScope", "CancellationToken", "TurnCancelledError"]


class CancellationToken:
    """One-shot cancellation signal shared by every stage of a turn.

    The session actor is the only writer. Readers either poll
    :attr:`cancelled` / :meth:`raise_if_cancelled` before side effects, or
    await provider calls inside a :class:`CancelScope` so the in-flight
    await is torn down as soon as the token fires.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._reason: str | None = None
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> bool:
        """Fire the token. Returns False if it had already fired."""
        if self._cancelled:
            return False
        self._reason = reason
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for cb in callbacks:
            try:
                cb()
            except Exception:
                logger.exception("Error in cancellation callback")
        return True

    def add_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run *callback* when the token fires (immediately if it already has).

        Returns a function that unregisters the callback.
        """
        if self._cancelled:
            callback()
            return lambda: None
        self._callbacks.append(callback)

        def remove() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return remove

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise TurnCancelledError(self._reason or "cancelled")


class CancelScope:
    """Async context manager that cancels the current task when a token fires.

    Inside the scope, firing the token cancels the enclosing task so the
    awaited call unwinds immediately. On exit the scope absorbs the
    cancellation it caused (``Task.uncancel``) and raises
    :class:`TurnCancelledError` instead; cancellations from elsewhere
    propagate untouched.

    Example:
        async with CancelScope(turn.token):
            result = await provider.transcribe(audio)
    """

    def __init__(self, token: CancellationToken) -> None:
        self._token = token
        self._task: asyncio.Task[object] | None = None
        self._remove: Callable[[], None] | None = None
        self._triggered = False

    async def __aenter__(self) -> CancelScope:
        self._token.raise_if_cancelled()
        self._task = asyncio.current_task()
        if self._task is None:
            raise RuntimeError("CancelScope must be used inside a task")
        self._remove = self._token.add_callback(self._on_cancel)
        return self

    def _on_cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._triggered = True
            self._task.cancel()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        if self._remove is not None:
            self._remove()
            self._remove = None
        if not self._triggered:
            return False

        assert self._task is not None
        self._task.uncancel()
        if exc_type is None or issubclass(exc_type, asyncio.CancelledError):
            raise TurnCancelledError(self._token.reason or "cancelled") from None
        return False
