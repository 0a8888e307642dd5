"""Generic OAuth2 authorization-code flow.

:class:`OAuth2Flow` owns the provider-independent parts of the flow: the
CSRF ``state`` round trip, reading the callback query string, sending the
client credentials with the code-for-token request, and HTTP plumbing.
Everything provider-specific is delegated to an
:class:`~vkid_auth.auth.providers.base.OAuthProvider`.
"""

import logging
import secrets
from collections.abc import Mapping

import httpx

from .providers.base import AccessToken, ApiCallback, OAuthProvider, OAuthUser, RedirectCallback
from .requests import ApiRequest, RedirectRequest
from .session import SessionStore

logger = logging.getLogger(__name__)


class OAuthFlowError(Exception):
    """OAuth flow error."""

    pass


class AuthorizationError(OAuthFlowError):
    """The provider redirected back with an error instead of a code."""

    def __init__(self, error: str):
        super().__init__(f"Authorization failed: {error}")
        self.error = error


class StateMismatchError(OAuthFlowError):
    """The callback state does not match the one stored at redirect time."""

    pass


class MissingCodeError(OAuthFlowError):
    """The callback carries no authorization code."""

    pass


class OAuth2Flow:
    """One OAuth2 authorization-code interaction, built per HTTP request."""

    def __init__(
        self,
        provider: OAuthProvider,
        client_id: str,
        client_secret: str,
        callback_url: str,
        store: SessionStore,
        params: Mapping[str, str] | None = None,
        scopes: list[str] | None = None,
        http_client: httpx.AsyncClient | None = None,
        http_timeout: float = 30.0,
        cookie_max_age: int | None = None,
    ):
        self.provider = provider
        self.client_id = client_id
        self.client_secret = client_secret
        self.callback_url = callback_url
        self.store = store
        self.params = dict(params or {})
        self.scopes = list(scopes) if scopes else None
        self.http_client = http_client
        self.http_timeout = http_timeout
        self.cookie_max_age = cookie_max_age

        self._state = self._load_state()

    def _load_state(self) -> str | None:
        """Read the state stored at redirect time. It is valid for one callback."""
        return self.store.pop(self.provider.state_cookie_name)

    # =========================================================================
    # Redirect
    # =========================================================================

    async def redirect_url(self, callback: RedirectCallback | None = None) -> str:
        """
        Build the authorization URL to redirect the user to.

        Args:
            callback: Optional hook to customize scopes and parameters

        Returns:
            Authorization URL
        """
        state = secrets.token_urlsafe(32)
        self.store.set(
            self.provider.state_cookie_name,
            state,
            http_only=True,
            same_site="lax",
            max_age=self.cookie_max_age,
        )

        request = RedirectRequest(
            self.provider.authorize_url,
            scope_param_name=self.provider.scope_param_name,
            scopes_separator=self.provider.scopes_separator,
        )
        request.param("client_id", self.client_id)
        request.param("redirect_uri", self.callback_url)
        request.param(self.provider.state_param_name, state)
        request.scopes(self.scopes or self.provider.default_scopes)

        if callback is not None:
            callback(request)

        self.provider.build_redirect_extras(request, self.store)

        logger.info(f"Redirecting to {self.provider.name} for authorization")
        return request.make_url()

    # =========================================================================
    # Callback inspection
    # =========================================================================

    def get_code(self) -> str | None:
        return self.params.get(self.provider.code_param_name) or None

    def has_code(self) -> bool:
        return self.get_code() is not None

    def get_error(self) -> str | None:
        """
        Return the error reported on the callback.

        A callback carrying neither a code nor an error yields
        ``"unknown_error"``.
        """
        error = self.params.get(self.provider.error_param_name)
        if error:
            return error
        if not self.has_code():
            return "unknown_error"
        return None

    def has_error(self) -> bool:
        return self.get_error() is not None

    def state_mismatch(self) -> bool:
        """Whether the callback state differs from the stored one."""
        if not self._state:
            return True
        received = self.params.get(self.provider.state_param_name)
        return not received or not secrets.compare_digest(self._state, received)

    def access_denied(self) -> bool:
        """Whether the current callback error is classified as access denied."""
        error = self.get_error()
        if not error:
            return False
        return self.provider.access_denied(error)

    # =========================================================================
    # Token exchange and user info
    # =========================================================================

    async def access_token(self, callback: ApiCallback | None = None) -> AccessToken:
        """
        Exchange the authorization code for an access token.

        Raises:
            AuthorizationError: If the provider returned an error
            StateMismatchError: If the state check fails
            MissingCodeError: If the callback carries no code
        """
        error = self.params.get(self.provider.error_param_name)
        if error:
            raise AuthorizationError(error)
        if self.state_mismatch():
            raise StateMismatchError("Invalid or missing state")
        if not self.has_code():
            raise MissingCodeError("No authorization code in callback")

        request = ApiRequest(self.provider.access_token_url)
        request.field("client_id", self.client_id)
        request.field("client_secret", self.client_secret)

        self.provider.configure_token_request(request, self.params, self.store)

        if callback is not None:
            callback(request)

        async with self._client() as client:
            data = await request.send(client)

        return self.provider.parse_access_token(data)

    async def user(self, callback: ApiCallback | None = None) -> OAuthUser:
        """Exchange the code for a token, then fetch the user it belongs to."""
        token = await self.access_token()

        async with self._client() as client:
            user = await self.provider.fetch_user_info(client, token.token, callback)

        user.token = token
        logger.info(f"{self.provider.name} login successful: user {user.id}")
        return user

    async def user_from_token(self, token: str, callback: ApiCallback | None = None) -> OAuthUser:
        """Fetch the user for an already known access token."""
        async with self._client() as client:
            user = await self.provider.fetch_user_info(client, token, callback)

        user.token = AccessToken(token=token, type="bearer")
        return user

    def _client(self) -> "_ClientContext":
        return _ClientContext(self.http_client, self.http_timeout)


class _ClientContext:
    """Yields the injected client, or a short-lived one closed on exit."""

    def __init__(self, client: httpx.AsyncClient | None, timeout: float):
        self._injected = client
        self._timeout = timeout
        self._owned: httpx.AsyncClient | None = None

    async def __aenter__(self) -> httpx.AsyncClient:
        if self._injected is not None:
            return self._injected
        self._owned = httpx.AsyncClient(timeout=self._timeout)
        return self._owned

    async def __aexit__(self, *exc_info) -> None:
        if self._owned is not None:
            await self._owned.aclose()
            self._owned = None
