"""Shared pytest fixtures."""

from collections.abc import Awaitable, Callable

import httpx
import pytest

from bot_gateway import GatewaySettings, Session, create_session

BASE_URL = "http://gateway.test"

MockHandler = Callable[[httpx.Request], Awaitable[httpx.Response]]


@pytest.fixture
def settings() -> GatewaySettings:
    """Settings pointing at the fake gateway, independent of the environment."""
    return GatewaySettings(base_url=BASE_URL, verify_key="secret-key", timeout=5.0)


@pytest.fixture
def session() -> Session:
    """A live session bound to bot 10001."""
    return create_session("abc", BASE_URL, bot_id=10001)


def mock_http(handler: MockHandler) -> httpx.AsyncClient:
    """Pooled client whose transport is an async handler under test control."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def ok(**payload: object) -> httpx.Response:
    """Success envelope with optional payload fields."""
    return httpx.Response(200, json={"code": 0, "msg": "success", **payload})
