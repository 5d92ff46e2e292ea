"""Response envelope decoding.

Every gateway response is wrapped as ``{"code": int, "msg": str, ...}``.
A plain envelope carries nothing else; a payload envelope carries the typed
result in one designated field whose name depends on the operation.
"""

import json
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Generic, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from bot_gateway.exceptions import (
    ApiError,
    BadRequestError,
    BotMutedError,
    BotNotFoundError,
    InvalidSessionError,
    InvalidVerifyKeyError,
    MessageTooLongError,
    PermissionDeniedError,
    ProtocolDecodeError,
    RemoteFileNotFoundError,
    TargetNotFoundError,
    UnverifiedSessionError,
)

T = TypeVar("T")

SUCCESS_CODE = 0

API_ERRORS: dict[int, type[ApiError]] = {
    1: InvalidVerifyKeyError,
    2: BotNotFoundError,
    3: InvalidSessionError,
    4: UnverifiedSessionError,
    5: TargetNotFoundError,
    6: RemoteFileNotFoundError,
    10: PermissionDeniedError,
    20: BotMutedError,
    30: MessageTooLongError,
    400: BadRequestError,
}


class ApiResponse(BaseModel):
    """Status part of the envelope. Payload fields are ignored here."""

    model_config = ConfigDict(extra="ignore")

    code: int
    message: str | None = Field(
        default=None, validation_alias=AliasChoices("msg", "message")
    )

    @property
    def is_success(self) -> bool:
        return self.code == SUCCESS_CODE


def error_for_code(code: int, message: str | None) -> ApiError:
    """Map a non-zero envelope code to its exception."""
    error_cls = API_ERRORS.get(code, ApiError)
    return error_cls(code, message or "")


def parse_body(body: bytes | str) -> dict[str, Any]:
    """Parse a response body into a JSON object."""
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ProtocolDecodeError(f"Response body is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ProtocolDecodeError(
            f"Response envelope must be a JSON object, got {type(data).__name__}"
        )
    return data


def read_envelope(data: dict[str, Any]) -> ApiResponse:
    try:
        return ApiResponse.model_validate(data, strict=True)
    except PydanticValidationError as exc:
        raise ProtocolDecodeError(f"Malformed response envelope: {exc}") from exc


@lru_cache(maxsize=256)
def type_adapter(schema: Any) -> TypeAdapter[Any]:
    """Cached TypeAdapter for any schema pydantic accepts."""
    return TypeAdapter(schema)


@dataclass(frozen=True)
class EnvelopeDecoder(Generic[T]):
    """Decode one envelope shape.

    With ``schema`` unset the envelope is plain and decodes to None.
    Otherwise ``body[field]`` is validated against ``schema``, but only after
    the envelope code reported success.
    """

    schema: Any = None
    field: str = "data"

    @classmethod
    def payload(cls, schema: type[T] | Any, field: str = "data") -> "EnvelopeDecoder[T]":
        return cls(schema=schema, field=field)

    @property
    def has_payload(self) -> bool:
        return self.schema is not None

    def decode(self, body: bytes | str) -> T:
        """Decode a raw body.

        Raises:
            ApiError: Envelope code is non-zero (subclass picked by code).
            ProtocolDecodeError: Body or payload does not match the expected shape.
        """
        data = parse_body(body)
        envelope = read_envelope(data)
        if not envelope.is_success:
            raise error_for_code(envelope.code, envelope.message)
        if self.schema is None:
            return None  # type: ignore[return-value]
        if self.field not in data:
            raise ProtocolDecodeError(
                f"Success envelope is missing payload field '{self.field}'"
            )
        try:
            # Strict JSON mode: no string-to-number or string-to-bool coercion.
            return type_adapter(self.schema).validate_json(
                json.dumps(data[self.field]), strict=True
            )
        except PydanticValidationError as exc:
            raise ProtocolDecodeError(
                f"Payload field '{self.field}' does not match expected shape: {exc}"
            ) from exc


PLAIN: EnvelopeDecoder[None] = EnvelopeDecoder()


def decode_plain(body: bytes | str) -> None:
    PLAIN.decode(body)


def decode_payload(body: bytes | str, schema: type[T] | Any, field: str = "data") -> T:
    return EnvelopeDecoder.payload(schema, field).decode(body)
