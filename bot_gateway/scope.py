"""Scoped release of per-call resources.

Everything opened for one call (linked cancellation, streamed HTTP response)
is released exactly once, after the whole call including decoding has
settled and before the caller sees the outcome. Release never raises.
"""

import inspect
import logging
from collections.abc import Awaitable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def release(resource: Any) -> None:
    """Close a resource exposing ``aclose()`` or ``close()``.

    Failures are logged and swallowed.
    """
    if resource is None:
        return
    try:
        if hasattr(resource, "aclose"):
            await resource.aclose()
        elif hasattr(resource, "close"):
            result = resource.close()
            if inspect.isawaitable(result):
                await result
    except Exception as e:
        logger.warning(f"Failed to release {type(resource).__name__}: {e}")


class ResourceScope:
    """Collects call-local resources and releases them LIFO on exit."""

    def __init__(self) -> None:
        self._resources: list[Any] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, resource: R) -> R:
        """Register a resource; pushing the same object twice is a no-op."""
        if self._closed:
            raise RuntimeError("ResourceScope is already closed")
        if not any(r is resource for r in self._resources):
            self._resources.append(resource)
        return resource

    async def aclose(self) -> None:
        """Release every registered resource. Idempotent."""
        if self._closed:
            return
        self._closed = True
        while self._resources:
            await release(self._resources.pop())

    async def __aenter__(self) -> "ResourceScope":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()


async def with_scoped_cleanup(awaitable: Awaitable[T], *resources: Any) -> T:
    """Await ``awaitable`` and release ``resources`` once it settles.

    The outcome (value or exception) is propagated unchanged.
    """
    try:
        return await awaitable
    finally:
        for resource in reversed(resources):
            await release(resource)
