"""Session-scoped request dispatch.

One logical call = one HTTP exchange whose cancellation follows both the
session and the caller. The linked cancellation and the streamed response
belong to the call scope and are released before the caller sees the result.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, TypeVar

import httpx

from bot_gateway.cancellation import CancellationToken, LinkedCancellation
from bot_gateway.envelope import PLAIN, EnvelopeDecoder
from bot_gateway.exceptions import (
    FATAL_SESSION_ERRORS,
    CanceledError,
    CancelSource,
    HttpStatusError,
    TransportError,
)
from bot_gateway.scope import ResourceScope
from bot_gateway.session import Session

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class _Call:
    """Call-local state. Never shared between calls."""

    session: Session | None
    linked: LinkedCancellation
    scope: ResourceScope


def _canceled(call: _Call) -> CanceledError:
    if call.session is not None and call.session.cancellation.cancelled:
        return CanceledError(
            "Session was terminated while the call was in flight",
            by=CancelSource.SESSION,
        )
    return CanceledError("Call was canceled by the caller", by=CancelSource.CALLER)


class Dispatcher:
    """Issues gateway calls through a pooled ``httpx.AsyncClient``.

    Safe for any number of concurrent calls on one event loop.
    """

    def __init__(self, http: httpx.AsyncClient) -> None:
        """Initialize dispatcher.

        Args:
            http: Pooled HTTP client. Not owned; the dispatcher never closes it.
        """
        self._http = http

    async def send(
        self,
        session: Session,
        method: str,
        path: str,
        *,
        decoder: EnvelopeDecoder[T] = PLAIN,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        data: Mapping[str, Any] | None = None,
        files: Mapping[str, Any] | None = None,
        cancel: CancellationToken | None = None,
    ) -> T:
        """Perform one call and decode its envelope.

        Args:
            session: Live session the call belongs to.
            method: HTTP method.
            path: Path relative to the session's base URL.
            decoder: Envelope shape expected from this endpoint.
            params: Query parameters.
            json: JSON request body.
            data: Form fields (multipart when ``files`` is set).
            files: Multipart file parts.
            cancel: Optional caller cancellation.

        Returns:
            The decoded payload (None for plain envelopes).

        Raises:
            SessionUnavailableError: Session is terminated; nothing was sent.
            CanceledError: Caller or session canceled the call.
            TransportError: Network fault or non-2xx status.
            ApiError: Non-zero envelope code.
            ProtocolDecodeError: Payload does not match ``decoder.schema``.
        """
        try:
            async with self.dispatch(
                session,
                method,
                path,
                params=params,
                json=json,
                data=data,
                files=files,
                cancel=cancel,
            ) as response:
                result = decoder.decode(response.content)
        except FATAL_SESSION_ERRORS as e:
            logger.warning(f"Gateway rejected session, terminating it: {e}")
            session.terminate()
            raise

        # A terminated session wins over a success that raced with it.
        if session.is_terminated:
            raise CanceledError(
                "Session was terminated while the call was in flight",
                by=CancelSource.SESSION,
            )
        return result

    async def send_anonymous(
        self,
        base_url: str,
        method: str,
        path: str,
        *,
        decoder: EnvelopeDecoder[T] = PLAIN,
        json: Any = None,
        cancel: CancellationToken | None = None,
    ) -> T:
        """Perform a handshake call that precedes any session (``/verify``)."""
        async with self._call(None, cancel) as call:
            request = self._build_request(base_url, method, path, json=json)
            response = await self._exchange(call, request)
            return decoder.decode(response.content)

    @asynccontextmanager
    async def dispatch(
        self,
        session: Session,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        data: Mapping[str, Any] | None = None,
        files: Mapping[str, Any] | None = None,
        cancel: CancellationToken | None = None,
    ) -> AsyncIterator[httpx.Response]:
        """Yield the fully read response of one call inside its scope.

        The response and the linked cancellation are released when the
        ``async with`` block exits, whatever the outcome.
        """
        session.assert_live()
        async with self._call(session, cancel) as call:
            request = self._build_request(
                session.base_url,
                method,
                path,
                params=params,
                json=json,
                data=data,
                files=files,
            )
            yield await self._exchange(call, request)

    @asynccontextmanager
    async def _call(
        self, session: Session | None, cancel: CancellationToken | None
    ) -> AsyncIterator[_Call]:
        parents = [cancel] if session is None else [session.cancellation, cancel]
        async with ResourceScope() as scope:
            linked = scope.push(LinkedCancellation(*parents))
            yield _Call(session=session, linked=linked, scope=scope)

    def _build_request(
        self,
        base_url: str,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        data: Mapping[str, Any] | None = None,
        files: Mapping[str, Any] | None = None,
    ) -> httpx.Request:
        url = f"{base_url.rstrip('/')}/{path.lstrip('/')}"
        return self._http.build_request(
            method,
            url,
            params=params,
            json=json,
            data=data,
            files=files,
        )

    async def _exchange(self, call: _Call, request: httpx.Request) -> httpx.Response:
        if call.linked.cancelled:
            raise _canceled(call)

        logger.debug(f"-> {request.method} {request.url.path}")
        response = await self._guard(call, self._open(call, request))
        if not response.is_success:
            # Never parse the body of a failed exchange.
            raise HttpStatusError(
                f"{request.method} {request.url.path} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        await self._guard(call, self._read(request, response))
        logger.debug(f"<- {request.method} {request.url.path} {response.status_code}")
        return response

    async def _open(self, call: _Call, request: httpx.Request) -> httpx.Response:
        try:
            response = await self._http.send(request, stream=True)
        except httpx.RequestError as exc:
            raise TransportError(
                f"{request.method} {request.url.path} failed: "
                f"{exc.__class__.__name__}: {exc}"
            ) from exc
        call.scope.push(response)
        return response

    async def _read(self, request: httpx.Request, response: httpx.Response) -> None:
        try:
            await response.aread()
        except httpx.RequestError as exc:
            raise TransportError(
                f"{request.method} {request.url.path} failed reading body: "
                f"{exc.__class__.__name__}: {exc}"
            ) from exc

    async def _guard(self, call: _Call, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the linked cancellation fires first."""
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(call.linked.token.wait())
        try:
            await asyncio.wait((task, waiter), return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            waiter.cancel()
            await asyncio.gather(task, waiter, return_exceptions=True)
            raise
        waiter.cancel()

        if call.linked.cancelled:
            if not task.done():
                task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            raise _canceled(call)
        return task.result()
