"""VK ID OAuth provider."""

import logging
from collections.abc import Callable, Mapping
from dataclasses import replace

import httpx
from pydantic import BaseModel, ConfigDict

from ..config import VkDriverConfig
from ..flow import OAuth2Flow, OAuthFlowError
from ..pkce import CHALLENGE_METHOD, derive_code_challenge, generate_code_verifier
from ..requests import ApiRequest, RedirectRequest
from ..session import SessionStore
from .base import ApiCallback, OAuthProvider, OAuthUser

logger = logging.getLogger(__name__)

# VK ID OAuth URLs
VK_AUTHORIZE_URL = "https://id.vk.com/authorize"
VK_ACCESS_TOKEN_URL = "https://id.vk.com/oauth2/auth"
VK_USER_INFO_URL = "https://id.vk.com/oauth2/user_info"

VK_STATE_COOKIE = "vk_oauth_state"
VK_CODE_VERIFIER_COOKIE = "vk_code_verifier"

VK_DEFAULT_SCOPES = ["vkid.personal_info", "email"]

# Callback error codes treated as "the user cannot be let in"
ACCESS_DENIED_ERRORS = frozenset(
    {
        "access_denied",
        "invalid_token",
        "server_error",
        "slow_down",
        "temporarily_unavailable",
        "invalid_client",
    }
)


class MissingVerifierError(OAuthFlowError):
    """No PKCE code verifier was stored for this callback."""

    pass


class VkUser(BaseModel):
    """The ``user`` object of the VK ID user info response."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    user_id: str
    first_name: str = ""
    last_name: str = ""
    phone: str | None = None
    avatar: str | None = None
    email: str | None = None
    sex: int | None = None
    verified: bool | None = None
    birthday: str | None = None


class VkUserInfoResponse(BaseModel):
    """VK ID user info response."""

    user: VkUser


class VkProvider(OAuthProvider):
    """VK ID OAuth2 provider with PKCE."""

    def __init__(self, config: VkDriverConfig, verifier_max_age: int | None = None):
        self.config = config
        self.verifier_max_age = verifier_max_age

    @property
    def name(self) -> str:
        return "vk"

    @property
    def state_cookie_name(self) -> str:
        return VK_STATE_COOKIE

    @property
    def authorize_url(self) -> str:
        return self.config.authorize_url or VK_AUTHORIZE_URL

    @property
    def access_token_url(self) -> str:
        return self.config.access_token_url or VK_ACCESS_TOKEN_URL

    @property
    def user_info_url(self) -> str:
        return self.config.user_info_url or VK_USER_INFO_URL

    @property
    def default_scopes(self) -> list[str]:
        return list(VK_DEFAULT_SCOPES)

    def get_code_verifier(self, store: SessionStore) -> str:
        """Return the verifier of the flow in progress, or a new one."""
        verifier = store.get(VK_CODE_VERIFIER_COOKIE)
        if verifier:
            return verifier
        return generate_code_verifier()

    def build_redirect_extras(self, request: RedirectRequest, store: SessionStore) -> None:
        """Add PKCE and VK ID login screen parameters."""
        verifier = self.get_code_verifier(store)
        store.set(
            VK_CODE_VERIFIER_COOKIE,
            verifier,
            http_only=True,
            same_site="lax",
            max_age=self.verifier_max_age,
        )

        request.param("response_type", "code")
        request.param("code_challenge", derive_code_challenge(verifier))
        request.param("code_challenge_method", CHALLENGE_METHOD)

        # 0 is a language (Russian), not "unset"
        if self.config.lang_id is not None:
            request.param("lang_id", self.config.lang_id)
        if self.config.vk_id_provider:
            request.param("vk_id_provider", self.config.vk_id_provider)

    def configure_token_request(
        self,
        request: ApiRequest,
        params: Mapping[str, str],
        store: SessionStore,
    ) -> None:
        """Attach the code, device id and stored PKCE verifier."""
        verifier = store.pop(VK_CODE_VERIFIER_COOKIE)
        if not verifier:
            # A fresh verifier would never match the challenge sent at redirect
            logger.error("VK callback without a stored code verifier")
            raise MissingVerifierError("No PKCE code verifier stored for this login")

        device_id = params.get("device_id")
        if not device_id:
            logger.warning("VK callback without device_id")

        request.field("grant_type", "authorization_code")
        request.field("code_verifier", verifier)
        request.field("redirect_uri", self.config.callback_url)
        request.field("code", params.get("code"))
        request.field("device_id", device_id)

    def get_authenticated_request(self, url: str, token: str) -> ApiRequest:
        """Build a POST request authenticated with the access token."""
        request = ApiRequest(url, method="POST")
        request.field("client_id", self.config.client_id)
        request.field("access_token", token)
        request.header("Content-Type", "application/x-www-form-urlencoded")
        request.parse_as("json")
        return request

    async def fetch_user_info(
        self,
        client: httpx.AsyncClient,
        token: str,
        callback: ApiCallback | None = None,
    ) -> OAuthUser:
        """Fetch user information from VK ID."""
        request = self.get_authenticated_request(self.user_info_url, token)
        if callback is not None:
            callback(request)

        data = await request.send(client)
        user = VkUserInfoResponse.model_validate(data).user

        return OAuthUser(
            id=user.user_id,
            nick_name=user.first_name,
            name=f"{user.first_name} {user.last_name}".strip(),
            email=user.email,
            # VK ID does not report whether the email is verified
            email_verification_state="unsupported",
            avatar_url=user.avatar,
            original=data,
        )

    def access_denied(self, error: str) -> bool:
        return error in ACCESS_DENIED_ERRORS


VkDriverFactory = Callable[..., OAuth2Flow]


def vk_driver_service(
    config: VkDriverConfig,
    http_timeout: float = 30.0,
    cookie_max_age: int | None = None,
) -> VkDriverFactory:
    """
    Return a factory that builds a VK flow for one request.

    The factory takes the request's session store, its query parameters, an
    optional HTTP client and the callback URL to use when ``config`` has none.
    """

    def factory(
        store: SessionStore,
        params: Mapping[str, str] | None = None,
        http_client: httpx.AsyncClient | None = None,
        default_callback_url: str | None = None,
    ) -> OAuth2Flow:
        driver_config = config
        if not driver_config.callback_url:
            if not default_callback_url:
                raise ValueError("VK callback_url is required")
            driver_config = replace(config, callback_url=default_callback_url)

        return OAuth2Flow(
            provider=VkProvider(driver_config, verifier_max_age=cookie_max_age),
            client_id=driver_config.client_id,
            client_secret=driver_config.client_secret,
            callback_url=driver_config.callback_url,
            store=store,
            params=params,
            scopes=list(config.scopes) if config.scopes else None,
            http_client=http_client,
            http_timeout=http_timeout,
            cookie_max_age=cookie_max_age,
        )

    return factory
