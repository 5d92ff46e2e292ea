"""Typed models for events returned by ``fetch_messages``.

Pass one as ``schema`` when registering a handler and the handler receives
the validated model instead of the raw mapping.
"""

from typing import Any, Literal

from pydantic import Field, ValidatorFunctionWrapHandler, field_validator

from bot_gateway.messages import ChatMessage, parse_chain
from bot_gateway.models import GatewayModel


class GroupInfo(GatewayModel):
    id: int
    name: str = ""
    permission: str | None = None


class GroupSender(GatewayModel):
    """Group member that sent a message."""

    id: int
    member_name: str = ""
    permission: str | None = None
    group: GroupInfo


class FriendSender(GatewayModel):
    id: int
    nickname: str = ""
    remark: str = ""


class MessageEvent(GatewayModel):
    """Base for received messages; the chain is parsed into segments."""

    message_chain: list[ChatMessage] = Field(default_factory=list)

    @field_validator("message_chain", mode="wrap")
    @classmethod
    def _parse_chain(cls, value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
        return parse_chain(value)

    @property
    def text(self) -> str:
        """Concatenated text of the chain's plain segments."""
        return "".join(getattr(segment, "text", "") for segment in self.message_chain)


class GroupMessageEvent(MessageEvent):
    type: Literal["GroupMessage"] = "GroupMessage"
    sender: GroupSender


class FriendMessageEvent(MessageEvent):
    type: Literal["FriendMessage"] = "FriendMessage"
    sender: FriendSender
