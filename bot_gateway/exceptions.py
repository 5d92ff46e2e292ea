"""Bot gateway client exceptions."""

from enum import Enum


class BotGatewayError(Exception):
    """Base exception for bot gateway client errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class SessionUnavailableError(BotGatewayError):
    """Session was terminated or never authenticated.

    Raised before any network I/O takes place.
    """

    pass


class TransportError(BotGatewayError):
    """Connection-level failure (reset, timeout, DNS).

    The underlying transport exception is available as ``__cause__``.
    Never retried by the client.
    """

    pass


class HttpStatusError(TransportError):
    """Gateway answered with a non-2xx HTTP status."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class CancelSource(str, Enum):
    """Who stopped an in-flight call."""

    CALLER = "caller"
    SESSION = "session"


class CanceledError(BotGatewayError):
    """In-flight call was canceled by the caller or by session shutdown."""

    def __init__(self, message: str, by: CancelSource) -> None:
        super().__init__(message)
        self.by = by


class ProtocolDecodeError(BotGatewayError):
    """Envelope reported success but the body does not match the expected shape."""

    pass


class ApiError(BotGatewayError):
    """Gateway returned a non-zero envelope code.

    ``message`` is the server-supplied text, surfaced verbatim.
    """

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class InvalidVerifyKeyError(ApiError):
    """Verify key rejected (code 1)."""

    pass


class BotNotFoundError(ApiError):
    """Bot account is not logged in on the gateway (code 2)."""

    pass


class InvalidSessionError(ApiError):
    """Session key unknown or expired (code 3). Fatal for the session."""

    pass


class UnverifiedSessionError(ApiError):
    """Session was never bound to a bot (code 4). Fatal for the session."""

    pass


class TargetNotFoundError(ApiError):
    """Target friend, group or message does not exist (code 5)."""

    pass


class RemoteFileNotFoundError(ApiError):
    """Remote file or directory does not exist (code 6)."""

    pass


class PermissionDeniedError(ApiError):
    """Bot lacks the permission for this operation (code 10)."""

    pass


class BotMutedError(ApiError):
    """Bot is muted in the target group (code 20)."""

    pass


class MessageTooLongError(ApiError):
    """Message exceeds the gateway's size limit (code 30)."""

    pass


class BadRequestError(ApiError):
    """Malformed request (code 400)."""

    pass


# Envelope codes after which the session can no longer be used.
FATAL_SESSION_ERRORS = (InvalidSessionError, UnverifiedSessionError)
