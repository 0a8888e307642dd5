"""Session storage for values that must survive the OAuth redirect round trip.

The OAuth2 flow keeps two values between the redirect and the callback
request: the CSRF ``state`` and the PKCE code verifier. Both live in a
:class:`SessionStore`, so the flow can run against real cookies
(:class:`CookieSessionStore`) or an in-process dict (:class:`MemorySessionStore`).
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from fastapi import Request, Response
from itsdangerous import BadSignature, URLSafeTimedSerializer

logger = logging.getLogger(__name__)


@dataclass
class CookieOptions:
    """Attributes applied when a value is written as a cookie."""

    http_only: bool = True
    same_site: str = "lax"
    max_age: int | None = None


class SessionStore(ABC):
    """Key-value storage scoped to one browser session."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or None if absent."""
        pass

    @abstractmethod
    def set(
        self,
        key: str,
        value: str,
        *,
        http_only: bool = True,
        same_site: str = "lax",
        max_age: int | None = None,
    ) -> None:
        """Store a value."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a value. Removing a missing key is not an error."""
        pass

    def pop(self, key: str) -> str | None:
        """Return the stored value and remove it."""
        value = self.get(key)
        if value is not None:
            self.delete(key)
        return value


class MemorySessionStore(SessionStore):
    """Dict-backed store for tests and non-HTTP callers."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.values: dict[str, str] = dict(initial or {})
        self.options: dict[str, CookieOptions] = {}

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def set(self, key, value, *, http_only=True, same_site="lax", max_age=None) -> None:
        self.values[key] = value
        self.options[key] = CookieOptions(http_only=http_only, same_site=same_site, max_age=max_age)

    def delete(self, key: str) -> None:
        self.values.pop(key, None)
        self.options.pop(key, None)


class CookieSessionStore(SessionStore):
    """
    Store backed by signed cookies on the current request.

    Reads come from the incoming request's cookies. Writes and deletes are
    buffered and applied to an outgoing response by :meth:`commit`, so the
    store can be filled before the response object exists. Reads see the
    buffered writes of the same request.
    """

    def __init__(
        self,
        request: Request,
        secret: str,
        secure: bool = False,
        max_age: int | None = None,
    ):
        self._cookies = dict(request.cookies)
        self._serializer = URLSafeTimedSerializer(secret, salt="vkid-auth-session")
        self._max_age = max_age
        self._secure = secure
        # key -> (signed value, options), or None for a pending delete
        self._pending: dict[str, tuple[str, CookieOptions] | None] = {}

    def get(self, key: str) -> str | None:
        if key in self._pending:
            pending = self._pending[key]
            return self._unsign(key, pending[0]) if pending else None

        raw = self._cookies.get(key)
        if raw is None:
            return None
        return self._unsign(key, raw)

    def set(self, key, value, *, http_only=True, same_site="lax", max_age=None) -> None:
        signed = self._serializer.dumps(value)
        self._pending[key] = (
            signed,
            CookieOptions(http_only=http_only, same_site=same_site, max_age=max_age),
        )

    def delete(self, key: str) -> None:
        self._pending[key] = None

    def commit(self, response: Response) -> Response:
        """Apply buffered cookie writes and deletes to ``response``."""
        for key, pending in self._pending.items():
            if pending is None:
                if key in self._cookies:
                    response.delete_cookie(key, secure=self._secure, httponly=True, samesite="lax")
                continue

            signed, options = pending
            response.set_cookie(
                key,
                signed,
                max_age=options.max_age,
                httponly=options.http_only,
                samesite=options.same_site,
                secure=self._secure,
            )
        return response

    def _unsign(self, key: str, raw: str) -> str | None:
        try:
            value = self._serializer.loads(raw, max_age=self._max_age)
        except BadSignature:
            # SignatureExpired is a BadSignature
            logger.warning(f"Ignoring expired or invalid cookie: {key}")
            return None
        return value if isinstance(value, str) else None
