"""Async client for the bot gateway HTTP API."""

import logging
import uuid
from collections.abc import Sequence
from datetime import timedelta
from typing import Any, BinaryIO

import httpx

from bot_gateway.cancellation import CancellationToken
from bot_gateway.config import GatewaySettings, get_settings
from bot_gateway.converters import serialize_duration_seconds
from bot_gateway.dispatcher import Dispatcher
from bot_gateway.envelope import EnvelopeDecoder
from bot_gateway.messages import ChatMessage, MessageChainBuilder, serialize_chain
from bot_gateway.models import GroupFileInfo
from bot_gateway.session import Session, SessionContext, create_session

logger = logging.getLogger(__name__)

UPLOAD_CONTENT_TYPE = "application/octet-stream"

_SESSION_KEY: EnvelopeDecoder[str] = EnvelopeDecoder.payload(str, field="session")
_FILE_LIST: EnvelopeDecoder[list[GroupFileInfo]] = EnvelopeDecoder.payload(list[GroupFileInfo])
_FILE_INFO: EnvelopeDecoder[GroupFileInfo] = EnvelopeDecoder.payload(GroupFileInfo)
_MESSAGE_ID: EnvelopeDecoder[int] = EnvelopeDecoder.payload(int, field="messageId")
_EVENTS: EnvelopeDecoder[list[dict[str, Any]]] = EnvelopeDecoder.payload(list[dict[str, Any]])

MessageChain = Sequence[ChatMessage] | MessageChainBuilder


class AsyncGatewayClient:
    """Asynchronous client for the bot gateway.

    Every operation takes the ``Session`` it runs under and an optional
    ``cancel`` token. Calls are independent; any number may run concurrently.

    Example:
        async with AsyncGatewayClient(base_url="http://localhost:8080") as client:
            async with client.session(bot_id=123456) as session:
                files = await client.get_file_list(session, group=987654)
                for f in files:
                    print(f.name)
    """

    def __init__(
        self,
        base_url: str | None = None,
        verify_key: str | None = None,
        timeout: float | None = None,
        http2: bool | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        settings: GatewaySettings | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Gateway base URL.
            verify_key: Verify key used by ``verify``/``authenticate``.
            timeout: Request timeout in seconds.
            http2: Negotiate HTTP/2 on the pooled client this client creates.
                With False every request goes out as HTTP/1.1.
            http_client: Pre-built pooled client to share. The caller keeps
                ownership; ``close()`` leaves it open and it stays in use
                afterwards. Its own HTTP version setting applies and
                ``http2`` is ignored, so build it with ``http2=True`` to
                keep HTTP/2.
            settings: Settings used for any argument left unset. Defaults
                to ``get_settings()``.
        """
        settings = settings or get_settings()
        self.base_url = (base_url or settings.base_url).rstrip("/")
        self.verify_key = verify_key if verify_key is not None else settings.verify_key
        self.timeout = timeout if timeout is not None else settings.timeout
        self.http2 = http2 if http2 is not None else settings.http2

        self._client: httpx.AsyncClient | None = http_client
        self._owns_client = http_client is None
        self._dispatcher: Dispatcher | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the pooled httpx client."""
        if self._client is None:
            if not self.http2:
                logger.debug("HTTP/2 disabled; gateway requests will use HTTP/1.1")
            self._client = httpx.AsyncClient(timeout=self.timeout, http2=self.http2)
            self._owns_client = True
        return self._client

    async def _get_dispatcher(self) -> Dispatcher:
        if self._dispatcher is None:
            self._dispatcher = Dispatcher(await self._get_client())
        return self._dispatcher

    async def close(self) -> None:
        """Close the underlying HTTP client if this client created it.

        An injected client is left open and kept for later calls.
        """
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
            self._dispatcher = None

    async def __aenter__(self) -> "AsyncGatewayClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # Session lifecycle

    async def verify(
        self,
        verify_key: str | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> str:
        """Exchange the verify key for a new, unbound session key.

        Args:
            verify_key: Verify key override.
            cancel: Optional caller cancellation.

        Returns:
            Session key issued by the gateway.

        Raises:
            InvalidVerifyKeyError: If the gateway rejects the key.
            TransportError: If the gateway cannot be reached.
        """
        dispatcher = await self._get_dispatcher()
        key = verify_key if verify_key is not None else self.verify_key
        return await dispatcher.send_anonymous(
            self.base_url,
            "POST",
            "/verify",
            json={"verifyKey": key},
            decoder=_SESSION_KEY,
            cancel=cancel,
        )

    async def authenticate(
        self,
        bot_id: int,
        verify_key: str | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> Session:
        """Verify and bind a session to a bot account.

        Args:
            bot_id: Bot account to bind.
            verify_key: Verify key override.
            cancel: Optional caller cancellation.

        Returns:
            A live Session.

        Raises:
            InvalidVerifyKeyError: If the verify key is rejected.
            BotNotFoundError: If the bot is not logged in on the gateway.
        """
        session_key = await self.verify(verify_key, cancel=cancel)
        session = create_session(session_key, self.base_url, bot_id=bot_id)

        dispatcher = await self._get_dispatcher()
        bound = False
        try:
            await dispatcher.send(
                session,
                "POST",
                "/bind",
                json={"sessionKey": session.token, "qq": bot_id},
                cancel=cancel,
            )
            bound = True
        finally:
            if not bound:
                session.terminate()

        logger.info(f"Session bound to bot {bot_id}")
        return session

    async def logout(
        self,
        session: Session,
        *,
        cancel: CancellationToken | None = None,
    ) -> None:
        """Release the session on the gateway and terminate it locally.

        The session is terminated even if the release call fails.
        Logging out an already terminated session does nothing.
        """
        if session.is_terminated:
            return
        dispatcher = await self._get_dispatcher()
        try:
            await dispatcher.send(
                session,
                "POST",
                "/release",
                json={"sessionKey": session.token, "qq": session.bot_id},
                cancel=cancel,
            )
        finally:
            session.terminate()

    def session(self, bot_id: int, verify_key: str | None = None) -> SessionContext:
        """Create a session context manager.

        Usage:
            async with client.session(bot_id=123456) as session:
                await client.send_group_message(session, 987654, chain)
        """
        return SessionContext(self, bot_id=bot_id, verify_key=verify_key)

    # Group files

    async def get_file_list(
        self,
        session: Session,
        group: int,
        directory_id: str | None = None,
        *,
        with_download_info: bool = False,
        offset: int = 0,
        size: int = 100,
        cancel: CancellationToken | None = None,
    ) -> list[GroupFileInfo]:
        """List a directory in a group's file area.

        Args:
            session: Session to run under.
            group: Group number.
            directory_id: Directory to list; None for the root.
            with_download_info: Include download details per file.
            offset: Paging offset.
            size: Page size.
            cancel: Optional caller cancellation.

        Returns:
            Files and directories, in gateway order.
        """
        dispatcher = await self._get_dispatcher()
        params = {
            "sessionKey": session.token,
            "id": directory_id or "",
            "target": group,
            "withDownloadInfo": str(with_download_info).lower(),
            "offset": offset,
            "size": size,
        }
        return await dispatcher.send(
            session, "GET", "/file/list", params=params, decoder=_FILE_LIST, cancel=cancel
        )

    async def get_file_info(
        self,
        session: Session,
        group: int,
        file_id: str,
        *,
        with_download_info: bool = False,
        cancel: CancellationToken | None = None,
    ) -> GroupFileInfo:
        """Get details of one file or directory."""
        dispatcher = await self._get_dispatcher()
        params = {
            "sessionKey": session.token,
            "id": file_id,
            "target": group,
            "withDownloadInfo": str(with_download_info).lower(),
        }
        return await dispatcher.send(
            session, "GET", "/file/info", params=params, decoder=_FILE_INFO, cancel=cancel
        )

    def _file_payload(self, session: Session, group: int, file_id: str | None) -> dict[str, Any]:
        # Gateway versions disagree on the group field name; send all of them.
        return {
            "sessionKey": session.token,
            "id": file_id or "",
            "target": group,
            "group": group,
            "qq": group,
        }

    async def create_directory(
        self,
        session: Session,
        group: int,
        parent_id: str | None,
        name: str,
        *,
        cancel: CancellationToken | None = None,
    ) -> None:
        """Create a directory under ``parent_id`` (None for the root)."""
        dispatcher = await self._get_dispatcher()
        payload = self._file_payload(session, group, parent_id)
        payload["directoryName"] = name
        await dispatcher.send(session, "POST", "/file/mkdir", json=payload, cancel=cancel)

    async def delete_file(
        self,
        session: Session,
        group: int,
        file_id: str,
        *,
        cancel: CancellationToken | None = None,
    ) -> None:
        dispatcher = await self._get_dispatcher()
        payload = self._file_payload(session, group, file_id)
        await dispatcher.send(session, "POST", "/file/delete", json=payload, cancel=cancel)

    async def move_file(
        self,
        session: Session,
        group: int,
        file_id: str,
        destination_id: str | None,
        *,
        cancel: CancellationToken | None = None,
    ) -> None:
        """Move a file into ``destination_id`` (None for the root)."""
        dispatcher = await self._get_dispatcher()
        payload = self._file_payload(session, group, file_id)
        payload["moveTo"] = destination_id
        await dispatcher.send(session, "POST", "/file/move", json=payload, cancel=cancel)

    async def rename_file(
        self,
        session: Session,
        group: int,
        file_id: str,
        new_name: str,
        *,
        cancel: CancellationToken | None = None,
    ) -> None:
        dispatcher = await self._get_dispatcher()
        payload = self._file_payload(session, group, file_id)
        payload["renameTo"] = new_name
        await dispatcher.send(session, "POST", "/file/rename", json=payload, cancel=cancel)

    async def upload_file(
        self,
        session: Session,
        path: str | None,
        content: bytes | BinaryIO,
        *,
        cancel: CancellationToken | None = None,
    ) -> GroupFileInfo:
        """Upload a file into a group's file area.

        Args:
            session: Session to run under.
            path: Destination directory; None for the root.
            content: File bytes or a binary file object (left open).
            cancel: Optional caller cancellation.

        Returns:
            The created file as reported by the gateway.
        """
        dispatcher = await self._get_dispatcher()
        data = {
            "sessionKey": session.token,
            "type": "group",
            "path": path or "",
        }
        files = {"file": (uuid.uuid4().hex, content, UPLOAD_CONTENT_TYPE)}
        return await dispatcher.send(
            session,
            "POST",
            "/file/upload",
            data=data,
            files=files,
            decoder=_FILE_INFO,
            cancel=cancel,
        )

    # Messages

    def _message_payload(
        self,
        session: Session,
        target: int,
        chain: MessageChain,
        quote: int | None,
    ) -> dict[str, Any]:
        segments = serialize_chain(chain)
        if not segments:
            raise ValueError("Message chain must contain at least one segment")
        payload: dict[str, Any] = {
            "sessionKey": session.token,
            "target": target,
            "messageChain": segments,
        }
        if quote is not None:
            payload["quote"] = quote
        return payload

    async def send_friend_message(
        self,
        session: Session,
        target: int,
        chain: MessageChain,
        *,
        quote: int | None = None,
        cancel: CancellationToken | None = None,
    ) -> int:
        """Send a message chain to a friend.

        Args:
            session: Session to run under.
            target: Friend account.
            chain: Built chain, or a builder (built here).
            quote: Message id to reply to.
            cancel: Optional caller cancellation.

        Returns:
            Message id assigned by the gateway.

        Raises:
            ValueError: If the chain is empty.
        """
        dispatcher = await self._get_dispatcher()
        payload = self._message_payload(session, target, chain, quote)
        return await dispatcher.send(
            session,
            "POST",
            "/sendFriendMessage",
            json=payload,
            decoder=_MESSAGE_ID,
            cancel=cancel,
        )

    async def send_group_message(
        self,
        session: Session,
        target: int,
        chain: MessageChain,
        *,
        quote: int | None = None,
        cancel: CancellationToken | None = None,
    ) -> int:
        """Send a message chain to a group. See ``send_friend_message``."""
        dispatcher = await self._get_dispatcher()
        payload = self._message_payload(session, target, chain, quote)
        return await dispatcher.send(
            session,
            "POST",
            "/sendGroupMessage",
            json=payload,
            decoder=_MESSAGE_ID,
            cancel=cancel,
        )

    async def recall_message(
        self,
        session: Session,
        message_id: int,
        *,
        target: int | None = None,
        cancel: CancellationToken | None = None,
    ) -> None:
        dispatcher = await self._get_dispatcher()
        payload: dict[str, Any] = {"sessionKey": session.token, "messageId": message_id}
        if target is not None:
            payload["target"] = target
        await dispatcher.send(session, "POST", "/recall", json=payload, cancel=cancel)

    async def mute_member(
        self,
        session: Session,
        group: int,
        member: int,
        duration: timedelta,
        *,
        cancel: CancellationToken | None = None,
    ) -> None:
        """Mute a group member for ``duration`` (sent in seconds).

        Raises:
            ValueError: If the duration is not positive.
        """
        if duration <= timedelta(0):
            raise ValueError("Mute duration must be positive")
        dispatcher = await self._get_dispatcher()
        payload = {
            "sessionKey": session.token,
            "target": group,
            "memberId": member,
            "time": serialize_duration_seconds(duration),
        }
        await dispatcher.send(session, "POST", "/mute", json=payload, cancel=cancel)

    async def unmute_member(
        self,
        session: Session,
        group: int,
        member: int,
        *,
        cancel: CancellationToken | None = None,
    ) -> None:
        dispatcher = await self._get_dispatcher()
        payload = {"sessionKey": session.token, "target": group, "memberId": member}
        await dispatcher.send(session, "POST", "/unmute", json=payload, cancel=cancel)

    async def fetch_messages(
        self,
        session: Session,
        count: int = 10,
        *,
        cancel: CancellationToken | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch queued events, oldest first, for a ``HandlerRegistry``."""
        dispatcher = await self._get_dispatcher()
        params = {"sessionKey": session.token, "count": count}
        return await dispatcher.send(
            session, "GET", "/fetchMessage", params=params, decoder=_EVENTS, cancel=cancel
        )

