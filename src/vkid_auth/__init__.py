"""VK ID OAuth2 login for FastAPI applications."""

__version__ = "0.1.0"
