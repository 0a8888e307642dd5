"""Pydantic models for the VK ID auth API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .auth.providers.base import AccessToken, OAuthUser


class TokenResponse(BaseModel):
    """Access token details returned alongside a user."""

    token: str
    type: str = "bearer"
    refresh_token: str | None = None
    id_token: str | None = None
    expires_in: int | None = None
    expires_at: datetime | None = None
    scope: str | None = None
    user_id: str | None = None

    @classmethod
    def from_token(cls, token: AccessToken) -> "TokenResponse":
        return cls(
            token=token.token,
            type=token.type,
            refresh_token=token.refresh_token,
            id_token=token.id_token,
            expires_in=token.expires_in,
            expires_at=token.expires_at,
            scope=token.scope,
            user_id=token.user_id,
        )


class UserResponse(BaseModel):
    """Normalized user returned after login."""

    id: str
    nick_name: str
    name: str
    email: str | None = None
    email_verification_state: str
    avatar_url: str | None = None
    original: dict[str, Any] = Field(default_factory=dict)
    token: TokenResponse | None = None

    @classmethod
    def from_user(cls, user: OAuthUser) -> "UserResponse":
        return cls(
            id=user.id,
            nick_name=user.nick_name,
            name=user.name,
            email=user.email,
            email_verification_state=user.email_verification_state,
            avatar_url=user.avatar_url,
            original=user.original or {},
            token=TokenResponse.from_token(user.token) if user.token else None,
        )


class UserFromTokenRequest(BaseModel):
    """Request to resolve the user behind a known access token."""

    access_token: str


class AuthStatus(BaseModel):
    """Which login methods are available."""

    auth_type: str
    auth_enabled: bool
    login_url: str | None = None
