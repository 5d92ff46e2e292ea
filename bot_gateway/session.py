"""Session state for the bot gateway client."""

import logging
from typing import TYPE_CHECKING, Any

from bot_gateway.cancellation import CancellationSource, CancellationToken
from bot_gateway.exceptions import SessionUnavailableError

if TYPE_CHECKING:
    from bot_gateway.client import AsyncGatewayClient

logger = logging.getLogger(__name__)


class Session:
    """One authenticated logical connection to the gateway.

    Token, endpoint and bot id are fixed at construction. The only state that
    changes is the liveness flag and the session cancellation, and both only
    move from live to terminated.

    Example:
        async with AsyncGatewayClient() as client:
            session = await client.authenticate(bot_id=123456)
            files = await client.get_file_list(session, group=987654)
            await client.logout(session)
    """

    def __init__(self, token: str, base_url: str, bot_id: int | None = None) -> None:
        """Initialize session state.

        Args:
            token: Session key issued by the gateway.
            base_url: Gateway base URL that every request of this session targets.
            bot_id: Bot account the session is bound to.
        """
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._bot_id = bot_id
        self._cancellation = CancellationSource()
        self._terminated = False

    @property
    def token(self) -> str:
        return self._token

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def bot_id(self) -> int | None:
        return self._bot_id

    @property
    def cancellation(self) -> CancellationToken:
        """Session-level cancellation; fires on termination."""
        return self._cancellation.token

    @property
    def is_terminated(self) -> bool:
        return self._terminated

    def terminate(self) -> bool:
        """Terminate the session and cancel every call linked to it.

        Idempotent.

        Returns:
            True if this call performed the termination.
        """
        if self._terminated:
            return False
        self._terminated = True
        self._cancellation.cancel()
        logger.info(f"Session terminated (bot={self._bot_id})")
        return True

    def assert_live(self) -> "Session":
        """Return self, or raise if the session can no longer be used."""
        if self._terminated:
            raise SessionUnavailableError("Session has been terminated")
        if not self._token:
            raise SessionUnavailableError("Session is not authenticated")
        return self

    def __repr__(self) -> str:
        state = "terminated" if self._terminated else "live"
        return f"<Session bot={self._bot_id} {state}>"


def create_session(token: str, base_url: str, bot_id: int | None = None) -> Session:
    """Create session state for an already issued token. No network I/O."""
    return Session(token=token, base_url=base_url, bot_id=bot_id)


def terminate(session: Session) -> bool:
    return session.terminate()


def assert_live(session: Session) -> Session:
    return session.assert_live()


class SessionContext:
    """Async context manager for Session.

    Usage:
        async with client.session(bot_id=123456) as session:
            await client.send_group_message(session, 987654, chain)
    """

    def __init__(
        self,
        client: "AsyncGatewayClient",
        bot_id: int,
        verify_key: str | None = None,
    ) -> None:
        """Initialize session context.

        Args:
            client: The async client.
            bot_id: Bot account to bind the session to.
            verify_key: Optional verify key override.
        """
        self._client = client
        self._bot_id = bot_id
        self._verify_key = verify_key
        self._session: Session | None = None

    async def __aenter__(self) -> Session:
        """Authenticate and bind on context entry."""
        self._session = await self._client.authenticate(
            self._bot_id, verify_key=self._verify_key
        )
        return self._session

    async def __aexit__(self, *args: Any) -> None:
        """Release the session on exit."""
        if self._session is not None:
            await self._client.logout(self._session)
