"""OAuth2 providers for VK ID auth."""

from .base import AccessToken, OAuthProvider, OAuthUser, ProviderResponseError

__all__ = ["AccessToken", "OAuthProvider", "OAuthUser", "ProviderResponseError"]
