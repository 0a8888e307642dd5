"""Tests for driver and environment configuration."""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

from vkid_auth.auth.config import AuthConfig, VkDriverConfig, get_auth_config


def _driver_config(**kwargs: object) -> VkDriverConfig:
    defaults: dict[str, object] = {
        "client_id": "id",
        "client_secret": "secret",
        "callback_url": "https://app.example.com/cb",
    }
    defaults.update(kwargs)
    return VkDriverConfig(**defaults)  # type: ignore[arg-type]


def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "VK_CLIENT_ID",
        "VK_CLIENT_SECRET",
        "VK_CLIENT_SECRET_FILE",
        "VK_CALLBACK_URL",
        "VK_SCOPES",
        "VK_ID_PROVIDER",
        "VK_LANG_ID",
        "VK_AUTHORIZE_URL",
        "VK_ACCESS_TOKEN_URL",
        "VK_USER_INFO_URL",
        "VKID_AUTH_BASE_URL",
        "VKID_AUTH_COOKIE_SECRET",
        "VKID_AUTH_COOKIE_SECRET_FILE",
        "VKID_AUTH_SECURE_COOKIES",
    ):
        monkeypatch.delenv(name, raising=False)


# ---------------------------------------------------------------------------
# VkDriverConfig
# ---------------------------------------------------------------------------


class TestVkDriverConfig:
    def test_minimal(self) -> None:
        config = _driver_config()
        assert config.scopes is None
        assert config.authorize_url is None
        assert config.lang_id is None

    def test_immutable(self) -> None:
        config = _driver_config()
        with pytest.raises(FrozenInstanceError):
            config.client_id = "other"  # type: ignore[misc]

    def test_scopes_stored_as_tuple(self) -> None:
        config = _driver_config(scopes=["email", "phone_number"])
        assert config.scopes == ("email", "phone_number")

    @pytest.mark.parametrize("field", ["client_id", "client_secret"])
    def test_required_fields(self, field: str) -> None:
        with pytest.raises(ValueError, match=field):
            _driver_config(**{field: ""})

    def test_callback_url_optional(self) -> None:
        config = VkDriverConfig(client_id="id", client_secret="secret")
        assert config.callback_url == ""

    def test_unknown_scope_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown VK scopes: bogus"):
            _driver_config(scopes=["email", "bogus"])

    def test_unknown_vk_id_provider_rejected(self) -> None:
        with pytest.raises(ValueError, match="vk_id_provider"):
            _driver_config(vk_id_provider="facebook")

    def test_unsupported_lang_id_rejected(self) -> None:
        with pytest.raises(ValueError, match="lang_id"):
            _driver_config(lang_id=2)

    def test_valid_options(self) -> None:
        config = _driver_config(vk_id_provider="ok_ru", lang_id=3)
        assert config.vk_id_provider == "ok_ru"
        assert config.lang_id == 3


# ---------------------------------------------------------------------------
# AuthConfig / get_auth_config
# ---------------------------------------------------------------------------


class TestAuthConfig:
    def test_enabled_requires_driver_config(self) -> None:
        with pytest.raises(ValueError):
            AuthConfig(enabled=True)

    def test_generates_cookie_secret(self) -> None:
        assert AuthConfig().cookie_secret


class TestGetAuthConfig:
    def test_disabled_without_credentials(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _clear_env(monkeypatch)
        config = get_auth_config()
        assert config.enabled is False
        assert config.vk is None

    def test_disabled_without_secret(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _clear_env(monkeypatch)
        monkeypatch.setenv("VK_CLIENT_ID", "51234567")
        assert get_auth_config().enabled is False

    def test_loads_driver_config(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _clear_env(monkeypatch)
        monkeypatch.setenv("VK_CLIENT_ID", "51234567")
        monkeypatch.setenv("VK_CLIENT_SECRET", "vk-secret")
        monkeypatch.setenv("VK_CALLBACK_URL", "https://app.example.com/cb")
        monkeypatch.setenv("VK_SCOPES", "vkid.personal_info, email phone_number")
        monkeypatch.setenv("VK_ID_PROVIDER", "mail_ru")
        monkeypatch.setenv("VK_LANG_ID", "3")

        config = get_auth_config()

        assert config.enabled is True
        assert config.vk is not None
        assert config.vk.client_id == "51234567"
        assert config.vk.client_secret == "vk-secret"
        assert config.vk.callback_url == "https://app.example.com/cb"
        assert config.vk.scopes == ("vkid.personal_info", "email", "phone_number")
        assert config.vk.vk_id_provider == "mail_ru"
        assert config.vk.lang_id == 3

    def test_callback_left_for_request_time(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _clear_env(monkeypatch)
        monkeypatch.setenv("VK_CLIENT_ID", "51234567")
        monkeypatch.setenv("VK_CLIENT_SECRET", "vk-secret")

        config = get_auth_config()

        assert config.enabled is True
        assert config.vk is not None
        assert config.vk.callback_url == ""
        assert config.base_url == ""

    def test_secret_from_file(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        _clear_env(monkeypatch)
        secret_file = tmp_path / "vk_secret"
        secret_file.write_text("file-secret\n")
        monkeypatch.setenv("VK_CLIENT_ID", "51234567")
        monkeypatch.setenv("VK_CLIENT_SECRET_FILE", str(secret_file))
        monkeypatch.setenv("VK_CALLBACK_URL", "https://app.example.com/cb")

        config = get_auth_config()

        assert config.vk is not None
        assert config.vk.client_secret == "file-secret"

    def test_missing_secret_file_disables(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        _clear_env(monkeypatch)
        monkeypatch.setenv("VK_CLIENT_ID", "51234567")
        monkeypatch.setenv("VK_CLIENT_SECRET_FILE", str(tmp_path / "missing"))
        assert get_auth_config().enabled is False

    def test_cookie_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _clear_env(monkeypatch)
        monkeypatch.setenv("VKID_AUTH_COOKIE_SECRET", "cookie-key")
        monkeypatch.setenv("VKID_AUTH_SECURE_COOKIES", "true")

        config = get_auth_config()

        assert config.cookie_secret == "cookie-key"
        assert config.secure_cookies is True

    def test_cached(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _clear_env(monkeypatch)
        assert get_auth_config() is get_auth_config()
