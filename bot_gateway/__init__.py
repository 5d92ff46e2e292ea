"""Bot Gateway Python Client SDK.

Async client for chat-bot gateways speaking the HTTP+JSON envelope protocol.

Example usage:

    from bot_gateway import AsyncGatewayClient, MessageChainBuilder

    async with AsyncGatewayClient(base_url="http://localhost:8080", verify_key="key") as client:
        async with client.session(bot_id=123456) as session:
            chain = MessageChainBuilder().add_plain("Hello!").build()
            message_id = await client.send_group_message(session, 987654, chain)

    # Per-call cancellation
    source = CancellationSource()
    task = asyncio.create_task(client.get_file_list(session, 987654, cancel=source.token))
    source.cancel()  # task raises CanceledError(by=CancelSource.CALLER)
"""

from bot_gateway.cancellation import (
    CancellationSource,
    CancellationToken,
    LinkedCancellation,
)
from bot_gateway.client import AsyncGatewayClient
from bot_gateway.config import GatewaySettings, configure_logging, get_settings
from bot_gateway.converters import DurationSeconds, UnixTimestamp
from bot_gateway.dispatcher import Dispatcher
from bot_gateway.envelope import PLAIN, ApiResponse, EnvelopeDecoder
from bot_gateway.events import (
    FriendMessageEvent,
    FriendSender,
    GroupInfo,
    GroupMessageEvent,
    GroupSender,
    MessageEvent,
)
from bot_gateway.exceptions import (
    ApiError,
    BadRequestError,
    BotGatewayError,
    BotMutedError,
    BotNotFoundError,
    CanceledError,
    CancelSource,
    HttpStatusError,
    InvalidSessionError,
    InvalidVerifyKeyError,
    MessageTooLongError,
    PermissionDeniedError,
    ProtocolDecodeError,
    RemoteFileNotFoundError,
    SessionUnavailableError,
    TargetNotFoundError,
    TransportError,
    UnverifiedSessionError,
)
from bot_gateway.handlers import HandlerRegistry
from bot_gateway.messages import (
    App,
    At,
    AtAll,
    ChainBuiltError,
    ChatMessage,
    Face,
    FlashImage,
    Image,
    Json,
    MessageChainBuilder,
    Plain,
    Poke,
    PokeKind,
    Quote,
    Source,
    Voice,
    Xml,
)
from bot_gateway.models import FileContact, FileDownloadInfo, GroupFileInfo
from bot_gateway.scope import ResourceScope, with_scoped_cleanup
from bot_gateway.session import Session, SessionContext, create_session

__version__ = "0.1.0"
__all__ = [
    # Client
    "AsyncGatewayClient",
    "Dispatcher",
    # Session management
    "Session",
    "SessionContext",
    "create_session",
    # Cancellation and scoping
    "CancellationSource",
    "CancellationToken",
    "LinkedCancellation",
    "ResourceScope",
    "with_scoped_cleanup",
    # Envelope
    "ApiResponse",
    "EnvelopeDecoder",
    "PLAIN",
    # Configuration
    "GatewaySettings",
    "configure_logging",
    "get_settings",
    # Handlers and events
    "HandlerRegistry",
    "FriendMessageEvent",
    "FriendSender",
    "GroupInfo",
    "GroupMessageEvent",
    "GroupSender",
    "MessageEvent",
    # Models
    "DurationSeconds",
    "UnixTimestamp",
    "FileContact",
    "FileDownloadInfo",
    "GroupFileInfo",
    # Message chain
    "App",
    "At",
    "AtAll",
    "ChainBuiltError",
    "ChatMessage",
    "Face",
    "FlashImage",
    "Image",
    "Json",
    "MessageChainBuilder",
    "Plain",
    "Poke",
    "PokeKind",
    "Quote",
    "Source",
    "Voice",
    "Xml",
    # Exceptions
    "ApiError",
    "BadRequestError",
    "BotGatewayError",
    "BotMutedError",
    "BotNotFoundError",
    "CanceledError",
    "CancelSource",
    "HttpStatusError",
    "InvalidSessionError",
    "InvalidVerifyKeyError",
    "MessageTooLongError",
    "PermissionDeniedError",
    "ProtocolDecodeError",
    "RemoteFileNotFoundError",
    "SessionUnavailableError",
    "TargetNotFoundError",
    "TransportError",
    "UnverifiedSessionError",
]
