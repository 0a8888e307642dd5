"""OAuth2 endpoints for VK ID login."""

import logging
from collections.abc import AsyncIterator

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import ValidationError

from ..models import AuthStatus, UserFromTokenRequest, UserResponse
from .config import AuthConfig, VkDriverConfig, get_auth_config
from .flow import OAuth2Flow, OAuthFlowError
from .providers.base import ProviderResponseError
from .providers.vk import vk_driver_service
from .requests import ProviderRequestError
from .session import CookieSessionStore, MemorySessionStore, SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["OAuth"])


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """HTTP client for requests to VK ID, closed after the request."""
    config = get_auth_config()
    async with httpx.AsyncClient(timeout=config.http_timeout) as client:
        yield client


def _get_base_url(request: Request) -> str:
    """Get the base URL for login links."""
    config = get_auth_config()
    if config.base_url:
        return config.base_url.rstrip("/")

    # Auto-detect from request
    scheme = request.headers.get("x-forwarded-proto", request.url.scheme)
    host = request.headers.get("x-forwarded-host", request.url.netloc)
    return f"{scheme}://{host}"


def _callback_url(request: Request) -> str:
    """Callback used when VK_CALLBACK_URL is not configured."""
    return f"{_get_base_url(request)}/auth/vk/callback"


def _require_vk(config: AuthConfig) -> VkDriverConfig:
    if not config.enabled or config.vk is None:
        raise HTTPException(status_code=404, detail="VK login not enabled")
    return config.vk


def _build_driver(
    config: AuthConfig,
    store: SessionStore,
    request: Request,
    client: httpx.AsyncClient,
) -> OAuth2Flow:
    factory = vk_driver_service(
        _require_vk(config),
        http_timeout=config.http_timeout,
        cookie_max_age=config.verifier_max_age,
    )
    return factory(store, dict(request.query_params), client, _callback_url(request))


def _session_store(request: Request, config: AuthConfig) -> CookieSessionStore:
    return CookieSessionStore(
        request,
        config.cookie_secret,
        secure=config.secure_cookies,
        max_age=config.verifier_max_age,
    )


def _error_response(store: CookieSessionStore, status_code: int, detail: str) -> JSONResponse:
    """Error response that still applies the store's cookie changes."""
    return store.commit(JSONResponse(content={"detail": detail}, status_code=status_code))


# =============================================================================
# Login
# =============================================================================


@router.get("/auth/vk/redirect")
async def vk_redirect(request: Request, client: httpx.AsyncClient = Depends(get_http_client)):
    """Redirect the user to VK ID to authorize the login."""
    config = get_auth_config()
    _require_vk(config)

    store = _session_store(request, config)
    driver = _build_driver(config, store, request, client)

    url = await driver.redirect_url()
    return store.commit(RedirectResponse(url=url))


@router.get("/auth/vk/callback")
async def vk_callback(request: Request, client: httpx.AsyncClient = Depends(get_http_client)):
    """
    Handle the VK ID callback.

    Exchanges the authorization code for tokens and returns the user.
    """
    config = get_auth_config()
    _require_vk(config)

    store = _session_store(request, config)
    driver = _build_driver(config, store, request, client)

    if driver.access_denied():
        logger.warning(f"VK login denied: {driver.get_error()}")
        return _error_response(store, 403, "Access denied")

    if driver.state_mismatch():
        logger.error("VK callback with invalid state")
        return _error_response(store, 400, "Invalid or expired state")

    if driver.has_error():
        error = driver.get_error()
        description = request.query_params.get("error_description")
        logger.error(f"VK callback error: {error} - {description}")
        return _error_response(store, 400, description or error)

    try:
        user = await driver.user()
    except ProviderRequestError as e:
        logger.error(f"VK request failed: {e}")
        return _error_response(store, 502, "VK ID request failed")
    except (ProviderResponseError, ValidationError) as e:
        logger.error(f"Unexpected VK response: {e}")
        return _error_response(store, 502, "Unexpected VK ID response")
    except OAuthFlowError as e:
        logger.error(f"VK login failed: {e}")
        return _error_response(store, 400, str(e))

    content = UserResponse.from_user(user).model_dump(mode="json")
    return store.commit(JSONResponse(content=content))


@router.post("/auth/vk/user", response_model=UserResponse)
async def vk_user_from_token(
    request: Request,
    body: UserFromTokenRequest,
    client: httpx.AsyncClient = Depends(get_http_client),
):
    """Return the VK user for an access token obtained earlier."""
    config = get_auth_config()
    vk = _require_vk(config)

    factory = vk_driver_service(vk, http_timeout=config.http_timeout)
    driver = factory(MemorySessionStore(), None, client, _callback_url(request))

    try:
        user = await driver.user_from_token(body.access_token)
    except ProviderRequestError as e:
        logger.error(f"VK user info failed: {e}")
        raise HTTPException(status_code=502, detail="VK ID request failed")
    except ValidationError as e:
        logger.error(f"Unexpected VK response: {e}")
        raise HTTPException(status_code=502, detail="Unexpected VK ID response")

    return UserResponse.from_user(user)


@router.get("/auth/status", response_model=AuthStatus)
async def auth_status(request: Request):
    """Authentication status: whether VK login is configured and where it starts."""
    config = get_auth_config()
    base_url = _get_base_url(request)

    return AuthStatus(
        auth_type="vk_id" if config.enabled else "none",
        auth_enabled=config.enabled,
        login_url=f"{base_url}/auth/vk/redirect" if config.enabled else None,
    )
