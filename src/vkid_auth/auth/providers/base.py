"""Base OAuth provider interface."""

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

from ..requests import ApiRequest, RedirectRequest
from ..session import SessionStore


class ProviderResponseError(Exception):
    """The provider response is missing required data."""

    pass


@dataclass
class AccessToken:
    """Access token returned by the provider's token endpoint."""

    token: str
    type: str = "bearer"
    token_type: str | None = None
    refresh_token: str | None = None
    id_token: str | None = None
    expires_in: int | None = None
    expires_at: datetime | None = None
    scope: str | None = None
    user_id: str | None = None
    state: str | None = None
    original: dict[str, Any] | None = None

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> "AccessToken":
        """Build a token from a token endpoint JSON payload."""
        token = data.get("access_token")
        if not token:
            raise ProviderResponseError("No access token in response")

        expires_in = data.get("expires_in")
        expires_at = None
        if expires_in is not None:
            expires_in = int(expires_in)
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=expires_in)

        user_id = data.get("user_id")

        return cls(
            token=token,
            token_type=data.get("token_type"),
            refresh_token=data.get("refresh_token"),
            id_token=data.get("id_token"),
            expires_in=expires_in,
            expires_at=expires_at,
            scope=data.get("scope"),
            user_id=str(user_id) if user_id is not None else None,
            state=data.get("state"),
            original=data,
        )


@dataclass
class OAuthUser:
    """User information from OAuth provider."""

    id: str  # Provider-specific user ID
    nick_name: str
    name: str
    email: str | None = None
    email_verification_state: str = "unsupported"  # verified | unverified | unsupported
    avatar_url: str | None = None
    original: dict[str, Any] | None = field(default=None, repr=False)
    token: AccessToken | None = field(default=None, repr=False)

    def to_dict(self) -> dict[str, Any]:
        """Return the normalized profile fields."""
        return {
            "id": self.id,
            "nickName": self.nick_name,
            "name": self.name,
            "email": self.email,
            "avatarUrl": self.avatar_url,
            "emailVerificationState": self.email_verification_state,
        }


RedirectCallback = Callable[[RedirectRequest], None]
ApiCallback = Callable[[ApiRequest], None]


class OAuthProvider(ABC):
    """
    Provider-specific half of the OAuth2 authorization-code flow.

    :class:`~vkid_auth.auth.flow.OAuth2Flow` runs the generic steps (state,
    client credentials, HTTP) and asks the provider for its URLs, parameter
    names and the three provider-specific capabilities below.
    """

    # Query string names used by the provider on the callback
    code_param_name = "code"
    error_param_name = "error"
    state_param_name = "state"

    scope_param_name = "scope"
    scopes_separator = " "

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'vk')."""
        pass

    @property
    @abstractmethod
    def state_cookie_name(self) -> str:
        """Session key holding the CSRF state. Unique per provider."""
        pass

    @property
    @abstractmethod
    def authorize_url(self) -> str:
        pass

    @property
    @abstractmethod
    def access_token_url(self) -> str:
        pass

    @property
    @abstractmethod
    def user_info_url(self) -> str:
        pass

    @property
    def default_scopes(self) -> list[str]:
        """Scopes requested when the caller configures none."""
        return []

    @abstractmethod
    def build_redirect_extras(self, request: RedirectRequest, store: SessionStore) -> None:
        """
        Add provider-specific parameters to the authorization URL.

        Args:
            request: Redirect request, already holding client id, callback
                URL, state and scopes
            store: Session store that survives until the callback
        """
        pass

    @abstractmethod
    def configure_token_request(
        self,
        request: ApiRequest,
        params: Mapping[str, str],
        store: SessionStore,
    ) -> None:
        """
        Add provider-specific fields to the code-for-token request.

        Args:
            request: Token request, already holding client credentials
            params: Query string of the callback request
            store: Session store written during the redirect
        """
        pass

    @abstractmethod
    async def fetch_user_info(
        self,
        client: httpx.AsyncClient,
        token: str,
        callback: ApiCallback | None = None,
    ) -> OAuthUser:
        """
        Fetch and normalize user information using the access token.

        Args:
            client: HTTP client for the request
            token: Provider access token
            callback: Optional hook to customize the request before sending

        Returns:
            User information (``token`` left unset)
        """
        pass

    def access_denied(self, error: str) -> bool:
        """Whether a callback error code means the user denied access."""
        return error == "access_denied"

    def parse_access_token(self, data: dict[str, Any]) -> AccessToken:
        """Build the access token from the token endpoint response."""
        return AccessToken.from_response(data)
