"""Explicit handler registration for incoming gateway events.

Handlers are registered by ordinary code against a message kind tag (the
event's ``type`` field, e.g. ``"GroupMessage"``). Nothing is discovered by
inspection. A handler registered with a ``schema`` receives the event
validated into that model; events that do not validate are logged and the
handler is skipped.

Usage:
    registry = HandlerRegistry()

    @registry.on("GroupMessage", schema=GroupMessageEvent)
    async def echo(session: Session, event: GroupMessageEvent) -> None:
        ...

    for event in await client.fetch_messages(session):
        await registry.dispatch(session, event)
"""

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from bot_gateway.envelope import type_adapter
from bot_gateway.session import Session

logger = logging.getLogger(__name__)

MessageHandler = Callable[[Session, Any], Awaitable[None]]


@dataclass(frozen=True)
class _Registration:
    handler: MessageHandler
    schema: Any = None


class HandlerRegistry:
    """Map from message kind to handlers, run in registration order."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[_Registration]] = {}

    def register(self, kind: str, handler: MessageHandler, schema: Any = None) -> None:
        """Add a handler for a message kind.

        Args:
            kind: Event ``type`` the handler is for.
            handler: Async callable taking ``(session, event)``.
            schema: Optional pydantic model (or any type a TypeAdapter accepts)
                the raw event is validated into before the handler runs.
        """
        self._handlers.setdefault(kind, []).append(_Registration(handler, schema))

    def unregister(self, kind: str, handler: MessageHandler) -> bool:
        """Remove a handler. Returns False if it was not registered."""
        registrations = self._handlers.get(kind, [])
        for registration in registrations:
            if registration.handler is handler:
                registrations.remove(registration)
                if not registrations:
                    del self._handlers[kind]
                return True
        return False

    def on(
        self, kind: str, schema: Any = None
    ) -> Callable[[MessageHandler], MessageHandler]:
        """Decorator form of ``register``."""

        def decorator(handler: MessageHandler) -> MessageHandler:
            self.register(kind, handler, schema)
            return handler

        return decorator

    def handlers_for(self, kind: str) -> tuple[MessageHandler, ...]:
        return tuple(r.handler for r in self._handlers.get(kind, ()))

    @property
    def kinds(self) -> frozenset[str]:
        return frozenset(self._handlers)

    async def dispatch(self, session: Session, event: Mapping[str, Any]) -> int:
        """Run every handler registered for the event's kind.

        Returns:
            Number of handlers that completed without raising.
        """
        kind = event.get("type")
        registrations = self._handlers.get(kind, []) if isinstance(kind, str) else []
        if not registrations:
            logger.debug(f"No handler registered for event type {kind!r}")
            return 0

        parsed: dict[Any, Any] = {}
        handled = 0
        for registration in list(registrations):
            handler = registration.handler
            name = getattr(handler, "__name__", handler)
            payload: Any = event
            if registration.schema is not None:
                key = registration.schema
                if key not in parsed:
                    try:
                        parsed[key] = type_adapter(key).validate_python(event)
                    except PydanticValidationError as e:
                        parsed[key] = e
                if isinstance(parsed[key], PydanticValidationError):
                    logger.warning(
                        f"Skipping handler {name!r}: {kind} event does not match schema: "
                        f"{parsed[key]}"
                    )
                    continue
                payload = parsed[key]

            try:
                await handler(session, payload)
                handled += 1
            except Exception as e:
                logger.error(f"Handler {name!r} failed for {kind}: {e}")
        return handled
