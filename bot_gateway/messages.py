"""Message chain segments and builder.

A message chain is an ordered sequence of heterogeneous segments. The
builder accumulates segments and becomes closed once built.

Example:
    chain = (
        MessageChainBuilder()
        .add_at(123456)
        .add_plain(" hello")
        .add_face(14)
        .build()
    )
    await client.send_group_message(session, 987654, chain)
"""

from collections.abc import Iterable, Sequence
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import Field, TypeAdapter

from bot_gateway.converters import UnixTimestamp
from bot_gateway.models import GatewayModel


class PokeKind(str, Enum):
    """Poke animations understood by the gateway."""

    POKE = "Poke"
    SHOW_LOVE = "ShowLove"
    LIKE = "Like"
    HEARTBROKEN = "Heartbroken"
    SIX_SIX_SIX = "SixSixSix"
    FANG_DA_ZHAO = "FangDaZhao"


class Source(GatewayModel):
    """First segment of every received chain; never sent."""

    type: Literal["Source"] = "Source"
    id: int
    time: UnixTimestamp = None


class Quote(GatewayModel):
    """Reply reference in a received chain."""

    type: Literal["Quote"] = "Quote"
    id: int
    group_id: int | None = None
    sender_id: int | None = None
    target_id: int | None = None
    origin: list[dict[str, Any]] = Field(default_factory=list)


class Plain(GatewayModel):
    type: Literal["Plain"] = "Plain"
    text: str


class Image(GatewayModel):
    type: Literal["Image"] = "Image"
    image_id: str | None = None
    url: str | None = None
    path: str | None = None


class FlashImage(GatewayModel):
    type: Literal["FlashImage"] = "FlashImage"
    image_id: str | None = None
    url: str | None = None
    path: str | None = None


class At(GatewayModel):
    type: Literal["At"] = "At"
    target: int
    display: str | None = None


class AtAll(GatewayModel):
    type: Literal["AtAll"] = "AtAll"


class Face(GatewayModel):
    type: Literal["Face"] = "Face"
    face_id: int | None = None
    name: str | None = None


class Xml(GatewayModel):
    type: Literal["Xml"] = "Xml"
    xml: str


class Json(GatewayModel):
    type: Literal["Json"] = "Json"
    json_: str = Field(alias="json")


class App(GatewayModel):
    type: Literal["App"] = "App"
    content: str


class Poke(GatewayModel):
    type: Literal["Poke"] = "Poke"
    name: PokeKind


class Voice(GatewayModel):
    type: Literal["Voice"] = "Voice"
    voice_id: str | None = None
    url: str | None = None
    path: str | None = None


SEGMENT_TYPES = (
    Source, Quote, Plain, Image, FlashImage, At, AtAll, Face, Xml, Json, App, Poke, Voice
)

ChatMessage = Annotated[Union[SEGMENT_TYPES], Field(discriminator="type")]

_CHAIN_ADAPTER: TypeAdapter[list[ChatMessage]] = TypeAdapter(list[ChatMessage])


class ChainBuiltError(RuntimeError):
    """Raised when a built (closed) message chain builder is modified."""


class MessageChainBuilder:
    """Accumulates segments; ``build()`` closes the builder for good."""

    def __init__(self, segments: Iterable[ChatMessage] = ()) -> None:
        self._segments: list[ChatMessage] = []
        self._built: tuple[ChatMessage, ...] | None = None
        for segment in segments:
            self.add(segment)

    @property
    def is_built(self) -> bool:
        return self._built is not None

    def __len__(self) -> int:
        if self._built is not None:
            return len(self._built)
        return len(self._segments)

    def add(self, segment: ChatMessage) -> "MessageChainBuilder":
        if self._built is not None:
            raise ChainBuiltError("Message chain has already been built")
        if not isinstance(segment, SEGMENT_TYPES):
            raise TypeError(f"Not a message segment: {type(segment).__name__}")
        self._segments.append(segment)
        return self

    def add_plain(self, text: str) -> "MessageChainBuilder":
        return self.add(Plain(text=text))

    def add_image(
        self, image_id: str | None = None, url: str | None = None, path: str | None = None
    ) -> "MessageChainBuilder":
        return self.add(Image(image_id=image_id, url=url, path=path))

    def add_flash_image(
        self, image_id: str | None = None, url: str | None = None, path: str | None = None
    ) -> "MessageChainBuilder":
        return self.add(FlashImage(image_id=image_id, url=url, path=path))

    def add_at(self, target: int) -> "MessageChainBuilder":
        return self.add(At(target=target))

    def add_at_all(self) -> "MessageChainBuilder":
        return self.add(AtAll())

    def add_face(self, face_id: int, name: str | None = None) -> "MessageChainBuilder":
        return self.add(Face(face_id=face_id, name=name))

    def add_xml(self, xml: str) -> "MessageChainBuilder":
        return self.add(Xml(xml=xml))

    def add_json(self, json: str) -> "MessageChainBuilder":
        return self.add(Json(json_=json))

    def add_app(self, content: str) -> "MessageChainBuilder":
        return self.add(App(content=content))

    def add_poke(self, name: PokeKind | str) -> "MessageChainBuilder":
        return self.add(Poke(name=PokeKind(name)))

    def add_voice(
        self, voice_id: str | None = None, url: str | None = None, path: str | None = None
    ) -> "MessageChainBuilder":
        return self.add(Voice(voice_id=voice_id, url=url, path=path))

    def build(self) -> tuple[ChatMessage, ...]:
        """Close the builder and return the chain. Repeated calls return the same tuple."""
        if self._built is None:
            self._built = tuple(self._segments)
            self._segments = []
        return self._built


def serialize_chain(
    chain: Sequence[ChatMessage] | MessageChainBuilder,
) -> list[dict[str, Any]]:
    """Wire form of a chain, segment order preserved."""
    if isinstance(chain, MessageChainBuilder):
        chain = chain.build()
    return [
        segment.model_dump(mode="json", by_alias=True, exclude_none=True)
        for segment in chain
    ]


def parse_chain(data: Any) -> list[ChatMessage]:
    """Validate an incoming wire chain into segment models."""
    return _CHAIN_ADAPTER.validate_python(data)
