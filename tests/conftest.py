"""Shared test fixtures for vkid_auth.

Provides a VK driver configuration, an in-memory session store and a fake
VK ID server built on :class:`httpx.MockTransport` that records every
request it receives.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest

from vkid_auth.auth.config import VkDriverConfig, get_auth_config
from vkid_auth.auth.session import MemorySessionStore


TOKEN_URL = "https://id.vk.com/oauth2/auth"
USER_INFO_URL = "https://id.vk.com/oauth2/user_info"


def make_token_response(**overrides: Any) -> dict[str, Any]:
    """Build a VK ID token endpoint JSON response."""
    data: dict[str, Any] = {
        "access_token": "vk-access-token",
        "refresh_token": "vk-refresh-token",
        "id_token": "vk-id-token",
        "token_type": "Bearer",
        "expires_in": 3600,
        "user_id": 1,
        "state": "returned-state",
        "scope": "vkid.personal_info email",
    }
    data.update(overrides)
    return data


def make_user_info_response(**overrides: Any) -> dict[str, Any]:
    """Build a VK ID user info JSON response."""
    user: dict[str, Any] = {
        "user_id": "1",
        "first_name": "A",
        "last_name": "B",
        "phone": "79991234567",
        "avatar": "http://x/y.png",
        "email": "a@b.com",
        "sex": 2,
        "verified": False,
        "birthday": "01.01.2000",
    }
    user.update(overrides)
    return {"user": user}


class FakeVkServer:
    """Records requests and answers like VK ID's token and user info endpoints."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.token_response: dict[str, Any] = make_token_response()
        self.user_info_response: dict[str, Any] = make_user_info_response()
        self.status_code = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "invalid_request"})

        url = str(request.url).split("?")[0]
        if url == TOKEN_URL:
            return httpx.Response(200, json=self.token_response)
        if url == USER_INFO_URL:
            return httpx.Response(200, json=self.user_info_response)
        return httpx.Response(404, json={"error": "not_found"})

    def requests_to(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url).split("?")[0] == url]

    @staticmethod
    def form(request: httpx.Request) -> dict[str, str]:
        """Decode a form-encoded request body."""
        parsed = parse_qs(request.content.decode("utf-8"))
        return {k: v[0] for k, v in parsed.items()}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_auth_config() -> None:
    """Drop the cached environment config before and after every test."""
    get_auth_config.cache_clear()
    yield
    get_auth_config.cache_clear()


@pytest.fixture
def vk_config() -> VkDriverConfig:
    return VkDriverConfig(
        client_id="51234567",
        client_secret="vk-secret",
        callback_url="https://app.example.com/auth/vk/callback",
    )


@pytest.fixture
def store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture
def vk_server() -> FakeVkServer:
    return FakeVkServer()


@pytest.fixture
def make_client(vk_server: FakeVkServer) -> Callable[[], httpx.AsyncClient]:
    """Factory for async clients wired to the fake VK server."""

    def _make() -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(vk_server.handler))

    return _make
