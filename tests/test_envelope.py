"""Tests for response envelope decoding."""

import json
from datetime import UTC, datetime

import pytest

from bot_gateway import (
    ApiError,
    ChatMessage,
    EnvelopeDecoder,
    GroupFileInfo,
    InvalidSessionError,
    InvalidVerifyKeyError,
    PokeKind,
    ProtocolDecodeError,
)
from bot_gateway.envelope import decode_payload, decode_plain, error_for_code


def body(**fields: object) -> bytes:
    return json.dumps(fields).encode()


class TestPlainEnvelope:
    """Tests for envelopes without a payload."""

    def test_success_decodes_to_none(self) -> None:
        """Test code 0 yields no value."""
        assert decode_plain(body(code=0, msg="success")) is None

    def test_error_code_maps_to_subclass(self) -> None:
        """Test code 1 surfaces the server message verbatim."""
        with pytest.raises(InvalidVerifyKeyError) as exc_info:
            decode_plain(body(code=1, msg="Auth Key错误"))

        error = exc_info.value
        assert isinstance(error, ApiError)
        assert error.code == 1
        assert error.message == "Auth Key错误"
        assert str(error) == "[1] Auth Key错误"

    def test_unknown_code_is_plain_api_error(self) -> None:
        """Test an unmapped code still raises ApiError."""
        with pytest.raises(ApiError) as exc_info:
            decode_plain(body(code=9999, msg="weird"))

        assert type(exc_info.value) is ApiError
        assert exc_info.value.code == 9999

    def test_message_alias(self) -> None:
        """Test gateways that send 'message' instead of 'msg'."""
        with pytest.raises(InvalidSessionError) as exc_info:
            decode_plain(body(code=3, message="session expired"))

        assert exc_info.value.message == "session expired"

    def test_missing_message_is_empty(self) -> None:
        """Test an error without text has an empty message."""
        with pytest.raises(ApiError) as exc_info:
            decode_plain(body(code=5))

        assert exc_info.value.message == ""

    def test_extra_fields_ignored(self) -> None:
        """Test unknown top-level fields do not break plain decoding."""
        assert decode_plain(body(code=0, msg="", data=[1, 2, 3], extra=True)) is None


class TestPayloadEnvelope:
    """Tests for envelopes with a typed payload field."""

    def test_payload_decoded(self) -> None:
        """Test the payload field is validated into the schema."""
        files = decode_payload(
            body(code=0, msg="", data=[{"id": "1", "name": "f.txt"}]),
            list[GroupFileInfo],
        )

        assert len(files) == 1
        assert files[0].id == "1"
        assert files[0].name == "f.txt"

    def test_custom_field_name(self) -> None:
        """Test payloads living outside 'data'."""
        decoder = EnvelopeDecoder.payload(int, field="messageId")

        assert decoder.has_payload is True
        assert decoder.decode(body(code=0, msg="success", messageId=42)) == 42

    def test_error_wins_over_malformed_payload(self) -> None:
        """Test the payload is never looked at when the code is non-zero."""
        decoder = EnvelopeDecoder.payload(list[GroupFileInfo])

        with pytest.raises(ApiError) as exc_info:
            decoder.decode(body(code=10, msg="no permission", data="garbage"))

        assert exc_info.value.code == 10

    def test_missing_required_payload_field(self) -> None:
        """Test success with a payload lacking a required field is a decode error."""
        with pytest.raises(ProtocolDecodeError) as exc_info:
            decode_payload(body(code=0, msg="", data=[{"name": "f.txt"}]), list[GroupFileInfo])

        assert not isinstance(exc_info.value, ApiError)

    def test_missing_payload_field(self) -> None:
        """Test success without the payload field is a decode error."""
        with pytest.raises(ProtocolDecodeError):
            decode_payload(body(code=0, msg="success"), list[GroupFileInfo])

    @pytest.mark.parametrize("message_id", ["not-a-number", "42", 42.5, True])
    def test_wrong_primitive_kind(self, message_id: object) -> None:
        """Test a message id of the wrong JSON kind is never coerced."""
        with pytest.raises(ProtocolDecodeError):
            decode_payload(body(code=0, messageId=message_id), int, field="messageId")

    @pytest.mark.parametrize(
        "overrides",
        [{"size": "12"}, {"isFile": "yes"}, {"isFile": "true"}, {"id": 1}],
    )
    def test_file_field_not_coerced(self, overrides: dict[str, object]) -> None:
        """Test string-for-int, string-for-bool and int-for-str file fields fail."""
        item = {"id": "1", "name": "f.txt", "size": 12, "isFile": True, **overrides}

        with pytest.raises(ProtocolDecodeError):
            decode_payload(body(code=0, data=[item]), list[GroupFileInfo])

    def test_strict_payload_keeps_converters_and_enums(self) -> None:
        """Test timestamps and enum values still decode under strict validation."""
        chain = decode_payload(
            body(
                code=0,
                data=[
                    {"type": "Source", "id": 1, "time": 1700000000},
                    {"type": "Poke", "name": "ShowLove"},
                ],
            ),
            list[ChatMessage],
        )

        source, poke = chain
        assert source.time == datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)
        assert poke.name is PokeKind.SHOW_LOVE


class TestMalformedBody:
    """Tests for bodies that are not envelopes at all."""

    @pytest.mark.parametrize(
        "raw",
        [
            b"<html>Bad Gateway</html>",
            b"",
            b"[1, 2, 3]",
            b'"just a string"',
            b'{"msg": "no code"}',
            b'{"code": "zero"}',
            b'{"code": "0"}',
            b'{"code": 0.0}',
            b'{"code": 0, "msg": 5}',
        ],
    )
    def test_malformed_body(self, raw: bytes) -> None:
        """Test non-envelope bodies raise ProtocolDecodeError."""
        with pytest.raises(ProtocolDecodeError):
            decode_plain(raw)


class TestErrorForCode:
    """Tests for the code to exception mapping."""

    @pytest.mark.parametrize(
        ("code", "name"),
        [
            (1, "InvalidVerifyKeyError"),
            (2, "BotNotFoundError"),
            (3, "InvalidSessionError"),
            (4, "UnverifiedSessionError"),
            (5, "TargetNotFoundError"),
            (6, "RemoteFileNotFoundError"),
            (10, "PermissionDeniedError"),
            (20, "BotMutedError"),
            (30, "MessageTooLongError"),
            (400, "BadRequestError"),
            (500, "ApiError"),
        ],
    )
    def test_mapping(self, code: int, name: str) -> None:
        error = error_for_code(code, "text")
        assert type(error).__name__ == name
        assert error.code == code
