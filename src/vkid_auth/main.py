"""VK ID auth - FastAPI application exposing VK ID login."""

import logging
import os

from fastapi import FastAPI

from . import __version__
from .auth.config import get_auth_config
from .auth.routes import router as auth_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Build the application with the VK ID login routes."""
    app = FastAPI(
        title="VK ID Auth",
        description="OAuth2 login through VK ID with PKCE",
        version=__version__,
    )
    app.include_router(auth_router)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "vk_login": get_auth_config().enabled}

    return app


app = create_app()


def main():
    """Run the auth server."""
    import uvicorn

    host = os.environ.get("VKID_AUTH_HOST", "127.0.0.1")
    port = int(os.environ.get("VKID_AUTH_PORT", "8086"))

    config = get_auth_config()
    if not config.enabled:
        logger.warning("VK_CLIENT_ID / VK_CLIENT_SECRET not set, VK login disabled")

    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
