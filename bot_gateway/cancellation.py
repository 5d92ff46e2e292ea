"""Cancellation tokens for session-scoped calls.

A ``CancellationSource`` owns the right to cancel; it hands out a read-only
``CancellationToken`` that callers can observe but not trigger. A
``LinkedCancellation`` fires when any of its parent tokens fires and must be
closed when the call that created it settles.

All of this is meant for a single asyncio event loop.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

CancelCallback = Callable[[], None]


class CancellationToken:
    """Observable, one-shot cancellation signal."""

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: dict[int, CancelCallback] = {}
        self._next_handle = 0
        self._event: asyncio.Event | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def callback_count(self) -> int:
        """Number of live registrations (used to check for leaked links)."""
        return len(self._callbacks)

    def register(self, callback: CancelCallback) -> int | None:
        """Run ``callback`` once when the token fires.

        Returns:
            Handle for ``unregister``, or None if the token had already fired
            (the callback then runs immediately).
        """
        if self._cancelled:
            callback()
            return None
        handle = self._next_handle
        self._next_handle += 1
        self._callbacks[handle] = callback
        return handle

    def unregister(self, handle: int | None) -> None:
        if handle is not None:
            self._callbacks.pop(handle, None)

    async def wait(self) -> None:
        """Suspend until the token fires."""
        if self._cancelled:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()

    def _fire(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._event is not None:
            self._event.set()
        callbacks = list(self._callbacks.values())
        self._callbacks.clear()
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.error(f"Cancellation callback error: {e}")

    def __repr__(self) -> str:
        return f"<CancellationToken cancelled={self._cancelled}>"


class CancellationSource:
    """Owner side of a cancellation token."""

    def __init__(self) -> None:
        self.token = CancellationToken()

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    def cancel(self) -> None:
        """Fire the token. Repeated calls are no-ops."""
        self.token._fire()


class LinkedCancellation:
    """Cancellation that fires when any parent token fires.

    Holds one registration on every parent; ``close()`` removes them so the
    link never outlives the call that created it.
    """

    def __init__(self, *parents: CancellationToken | None) -> None:
        self._source = CancellationSource()
        self._registrations: list[tuple[CancellationToken, int | None]] = []
        self._closed = False
        for parent in parents:
            if parent is None:
                continue
            handle = parent.register(self._source.cancel)
            self._registrations.append((parent, handle))

    @property
    def token(self) -> CancellationToken:
        return self._source.token

    @property
    def cancelled(self) -> bool:
        return self._source.cancelled

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Detach from all parents. Idempotent."""
        if self._closed:
            return
        self._closed = True
        for parent, handle in self._registrations:
            parent.unregister(handle)
        self._registrations.clear()

    def __enter__(self) -> "LinkedCancellation":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
