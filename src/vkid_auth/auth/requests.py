"""Mutable request builders handed to providers and caller callbacks."""

import logging
from typing import Any
from urllib.parse import urlencode

import httpx

logger = logging.getLogger(__name__)


class ProviderRequestError(Exception):
    """The OAuth provider answered with a non-success status."""

    def __init__(self, url: str, status_code: int, body: str):
        super().__init__(f"Request to {url} failed: {status_code}")
        self.url = url
        self.status_code = status_code
        self.body = body


class RedirectRequest:
    """Builder for the authorization URL the user is redirected to."""

    def __init__(self, url: str, scope_param_name: str = "scope", scopes_separator: str = " "):
        self.url = url
        self.scope_param_name = scope_param_name
        self.scopes_separator = scopes_separator
        self._params: dict[str, str] = {}
        self._scopes: list[str] = []

    def param(self, key: str, value: Any) -> "RedirectRequest":
        """Set a query string parameter."""
        self._params[key] = str(value)
        return self

    def clear_param(self, key: str) -> "RedirectRequest":
        self._params.pop(key, None)
        return self

    def get_params(self) -> dict[str, str]:
        return dict(self._params)

    def scopes(self, scopes: list[str]) -> "RedirectRequest":
        """Replace the requested scopes."""
        self._scopes = list(scopes)
        return self

    def merge_scopes(self, scopes: list[str]) -> "RedirectRequest":
        """Add scopes, keeping the existing ones."""
        for scope in scopes:
            if scope not in self._scopes:
                self._scopes.append(scope)
        return self

    def clear_scopes(self) -> "RedirectRequest":
        self._scopes = []
        return self

    def get_scopes(self) -> list[str]:
        return list(self._scopes)

    def make_url(self) -> str:
        """Return the authorization URL with all parameters encoded."""
        params = dict(self._params)
        if self._scopes:
            params[self.scope_param_name] = self.scopes_separator.join(self._scopes)
        separator = "&" if "?" in self.url else "?"
        return f"{self.url}{separator}{urlencode(params)}"


class ApiRequest:
    """Builder for a server-to-server request to the OAuth provider."""

    def __init__(self, url: str, method: str = "POST"):
        self.url = url
        self.method = method
        self.fields: dict[str, str] = {}
        self.params: dict[str, str] = {}
        self.headers: dict[str, str] = {"Accept": "application/json"}
        self.response_type = "json"

    def field(self, key: str, value: Any) -> "ApiRequest":
        """Set a form body field. ``None`` values are skipped."""
        if value is not None:
            self.fields[key] = str(value)
        return self

    def clear_field(self, key: str) -> "ApiRequest":
        self.fields.pop(key, None)
        return self

    def param(self, key: str, value: Any) -> "ApiRequest":
        """Set a query string parameter. ``None`` values are skipped."""
        if value is not None:
            self.params[key] = str(value)
        return self

    def header(self, key: str, value: str) -> "ApiRequest":
        self.headers[key] = value
        return self

    def parse_as(self, response_type: str) -> "ApiRequest":
        """Choose how the response body is decoded: ``json`` or ``text``."""
        if response_type not in ("json", "text"):
            raise ValueError(f"Unsupported response type: {response_type}")
        self.response_type = response_type
        return self

    async def send(self, client: httpx.AsyncClient) -> Any:
        """Send the request and return the decoded body."""
        response = await client.request(
            self.method,
            self.url,
            params=self.params or None,
            data=self.fields or None,
            headers=self.headers,
        )

        if not response.is_success:
            logger.error(f"Provider request to {self.url} failed: {response.status_code}")
            raise ProviderRequestError(self.url, response.status_code, response.text)

        if self.response_type == "text":
            return response.text
        return response.json()
