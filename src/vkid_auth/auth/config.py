"""OAuth2 configuration for the VK ID driver."""

import os
import secrets
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

# Scopes VK ID accepts in the authorization request
VK_SCOPES = frozenset(
    {
        "vkid.personal_info",
        "notify",
        "friends",
        "photos",
        "audio",
        "video",
        "stories",
        "pages",
        "menu",
        "status",
        "notes",
        "messages",
        "wall",
        "ads",
        "offline",
        "docs",
        "groups",
        "notifications",
        "stats",
        "email",
        "market",
        "phone_number",
    }
)

# Which account the VK ID login screen offers first
VK_ID_PROVIDERS = ("vkid", "ok_ru", "mail_ru")

# Interface languages supported by the VK ID login screen
VK_LANG_IDS = (0, 1, 3, 4, 6, 15, 16, 82)


@dataclass(frozen=True)
class VkDriverConfig:
    """Credentials and options for one VK ID application."""

    client_id: str
    client_secret: str

    # Empty = {base URL of the request}/auth/vk/callback
    callback_url: str = ""

    # Endpoint overrides (None = VK ID defaults)
    authorize_url: str | None = None
    access_token_url: str | None = None
    user_info_url: str | None = None

    # None = driver default scopes
    scopes: tuple[str, ...] | None = None

    vk_id_provider: str | None = None
    lang_id: int | None = None

    def __post_init__(self):
        """Validate configuration."""
        if not self.client_id:
            raise ValueError("VK client_id is required")
        if not self.client_secret:
            raise ValueError("VK client_secret is required")

        if self.scopes is not None:
            # Accept lists from callers, store an immutable tuple
            object.__setattr__(self, "scopes", tuple(self.scopes))
            unknown = [s for s in self.scopes if s not in VK_SCOPES]
            if unknown:
                raise ValueError(f"Unknown VK scopes: {', '.join(unknown)}")

        if self.vk_id_provider is not None and self.vk_id_provider not in VK_ID_PROVIDERS:
            raise ValueError(
                f"vk_id_provider must be one of {', '.join(VK_ID_PROVIDERS)}, "
                f"got {self.vk_id_provider!r}"
            )

        if self.lang_id is not None and self.lang_id not in VK_LANG_IDS:
            raise ValueError(f"Unsupported lang_id: {self.lang_id}")


@dataclass
class AuthConfig:
    """Application-level authentication configuration."""

    # Whether VK login is available (both client credentials present)
    enabled: bool = False

    vk: VkDriverConfig | None = None

    # Key for signing the state and code verifier cookies
    cookie_secret: str = ""
    secure_cookies: bool = False

    # Lifetime of the state and verifier cookies, in seconds
    verifier_max_age: int = 600

    # Timeout for requests to VK ID, in seconds
    http_timeout: float = 30.0

    # Base URL for login links and the default callback (auto-detected from
    # the request if not set)
    base_url: str = ""

    def __post_init__(self):
        """Validate configuration."""
        if self.enabled and self.vk is None:
            raise ValueError("VK driver configuration required when VK login is enabled")
        if not self.cookie_secret:
            # Cookies signed with a per-process key do not survive restarts
            self.cookie_secret = secrets.token_urlsafe(32)


def _read_secret_file(path: str) -> str:
    """Read a secret from a file path."""
    try:
        return Path(path).read_text().strip()
    except (FileNotFoundError, PermissionError):
        return ""


def _env_secret(name: str) -> str:
    """Read a secret from ``name`` or from the file named by ``name_FILE``."""
    value = os.environ.get(name, "")
    if not value:
        secret_file = os.environ.get(f"{name}_FILE", "")
        if secret_file:
            value = _read_secret_file(secret_file)
    return value


def _parse_scopes(value: str) -> tuple[str, ...] | None:
    """Split a space or comma separated scope list."""
    scopes = [s for s in value.replace(",", " ").split() if s]
    return tuple(scopes) or None


@lru_cache
def get_auth_config() -> AuthConfig:
    """Load authentication configuration from environment variables."""

    base_url = os.environ.get("VKID_AUTH_BASE_URL", "").rstrip("/")
    common = {
        "cookie_secret": _env_secret("VKID_AUTH_COOKIE_SECRET"),
        "secure_cookies": os.environ.get("VKID_AUTH_SECURE_COOKIES", "").lower()
        in ("true", "1", "yes"),
        "verifier_max_age": int(os.environ.get("VKID_AUTH_COOKIE_MAX_AGE", "600")),
        "http_timeout": float(os.environ.get("VKID_AUTH_HTTP_TIMEOUT", "30")),
        "base_url": base_url,
    }

    client_id = os.environ.get("VK_CLIENT_ID", "")
    client_secret = _env_secret("VK_CLIENT_SECRET")

    if not client_id or not client_secret:
        return AuthConfig(enabled=False, **common)

    lang_id = os.environ.get("VK_LANG_ID", "")

    vk = VkDriverConfig(
        client_id=client_id,
        client_secret=client_secret,
        callback_url=os.environ.get("VK_CALLBACK_URL", ""),
        authorize_url=os.environ.get("VK_AUTHORIZE_URL") or None,
        access_token_url=os.environ.get("VK_ACCESS_TOKEN_URL") or None,
        user_info_url=os.environ.get("VK_USER_INFO_URL") or None,
        scopes=_parse_scopes(os.environ.get("VK_SCOPES", "")),
        vk_id_provider=os.environ.get("VK_ID_PROVIDER") or None,
        lang_id=int(lang_id) if lang_id else None,
    )

    return AuthConfig(enabled=True, vk=vk, **common)
