"""OAuth2 authentication through VK ID."""

from .config import AuthConfig, VkDriverConfig, get_auth_config
from .flow import (
    AuthorizationError,
    MissingCodeError,
    OAuth2Flow,
    OAuthFlowError,
    StateMismatchError,
)
from .pkce import derive_code_challenge, generate_code_verifier
from .providers import AccessToken, OAuthProvider, OAuthUser, ProviderResponseError
from .providers.vk import MissingVerifierError, VkProvider, vk_driver_service
from .requests import ApiRequest, ProviderRequestError, RedirectRequest
from .session import CookieSessionStore, MemorySessionStore, SessionStore

__all__ = [
    "AccessToken",
    "ApiRequest",
    "AuthConfig",
    "AuthorizationError",
    "CookieSessionStore",
    "MemorySessionStore",
    "MissingCodeError",
    "MissingVerifierError",
    "OAuth2Flow",
    "OAuthFlowError",
    "OAuthProvider",
    "OAuthUser",
    "ProviderRequestError",
    "ProviderResponseError",
    "RedirectRequest",
    "SessionStore",
    "StateMismatchError",
    "VkDriverConfig",
    "VkProvider",
    "derive_code_challenge",
    "generate_code_verifier",
    "get_auth_config",
    "vk_driver_service",
]
