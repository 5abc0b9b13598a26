"""
Cookie access shared by the PKCE verifier store and the session store.

CookieStore is the minimal read/write surface both stores need. It uses the
same keyword arguments as Starlette's Response.set_cookie/delete_cookie so a
server-side implementation can replay writes onto any response.

Implementations:
- ResponseCookies: request cookies plus pending writes (server side, request-scoped)
- ClientCookieJar: browser-style jar with expiry (client side)
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Literal, Mapping, Protocol

from starlette.requests import Request
from starlette.responses import Response

SameSite = Literal["lax", "strict", "none"]


class CookieStore(Protocol):
    """Readable and writable cookie collection."""

    def get(self, key: str) -> str | None:
        ...

    def set_cookie(
        self,
        key: str,
        value: str = "",
        max_age: int | None = None,
        path: str = "/",
        secure: bool = False,
        httponly: bool = False,
        samesite: SameSite = "lax",
    ) -> None:
        ...

    def delete_cookie(
        self,
        key: str,
        path: str = "/",
        secure: bool = False,
        httponly: bool = False,
        samesite: SameSite = "lax",
    ) -> None:
        ...


def is_secure_request(request: Request) -> bool:
    """
    Check whether the request reached us over an encrypted transport.

    Honors X-Forwarded-Proto from a TLS-terminating proxy, falling back to
    the request scheme. Plain-HTTP local development returns False.
    """
    forwarded_proto = request.headers.get("x-forwarded-proto")
    if forwarded_proto:
        return forwarded_proto.split(",")[0].strip().lower() == "https"
    return request.url.scheme == "https"


class ResponseCookies:
    """
    Request-scoped cookie view for the server.

    Reads see the incoming request cookies overlaid with any writes made
    during this request, so a refreshed session or a cleared verifier is
    visible to later readers in the same request. Writes are buffered and
    replayed onto the outgoing response with apply().
    """

    def __init__(self, request_cookies: Mapping[str, str]):
        self._request_cookies = dict(request_cookies)
        # key -> (value or None for deletion, Starlette cookie kwargs)
        self._pending: dict[str, tuple[str | None, dict[str, Any]]] = {}

    def get(self, key: str) -> str | None:
        if key in self._pending:
            return self._pending[key][0]
        return self._request_cookies.get(key)

    def set_cookie(
        self,
        key: str,
        value: str = "",
        max_age: int | None = None,
        path: str = "/",
        secure: bool = False,
        httponly: bool = False,
        samesite: SameSite = "lax",
    ) -> None:
        self._pending[key] = (
            value,
            {
                "max_age": max_age,
                "path": path,
                "secure": secure,
                "httponly": httponly,
                "samesite": samesite,
            },
        )

    def delete_cookie(
        self,
        key: str,
        path: str = "/",
        secure: bool = False,
        httponly: bool = False,
        samesite: SameSite = "lax",
    ) -> None:
        self._pending[key] = (
            None,
            {"path": path, "secure": secure, "httponly": httponly, "samesite": samesite},
        )

    def apply(self, response: Response) -> None:
        """Replay buffered writes as Set-Cookie headers on the response."""
        for key, (value, options) in self._pending.items():
            if value is None:
                # Starlette writes an already-expired cookie (max-age=0)
                response.delete_cookie(key, **options)
            else:
                response.set_cookie(key, value, **options)


@dataclass
class StoredCookie:
    value: str
    path: str
    secure: bool
    httponly: bool
    samesite: SameSite
    expires_at: datetime | None


class ClientCookieJar:
    """
    Browser-style cookie jar for client-side flows.

    Cookies expire after max_age seconds; writing max_age <= 0 removes the
    cookie the same way a browser drops an already-expired cookie.
    """

    def __init__(self) -> None:
        self._cookies: dict[str, StoredCookie] = {}

    def get(self, key: str) -> str | None:
        cookie = self._live(key)
        return cookie.value if cookie else None

    def attributes(self, key: str) -> StoredCookie | None:
        """Return the stored cookie with its attributes, if still live."""
        return self._live(key)

    def set_cookie(
        self,
        key: str,
        value: str = "",
        max_age: int | None = None,
        path: str = "/",
        secure: bool = False,
        httponly: bool = False,
        samesite: SameSite = "lax",
    ) -> None:
        if max_age is not None and max_age <= 0:
            self._cookies.pop(key, None)
            return

        expires_at = None
        if max_age is not None:
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=max_age)

        self._cookies[key] = StoredCookie(
            value=value,
            path=path,
            secure=secure,
            httponly=httponly,
            samesite=samesite,
            expires_at=expires_at,
        )

    def delete_cookie(
        self,
        key: str,
        path: str = "/",
        secure: bool = False,
        httponly: bool = False,
        samesite: SameSite = "lax",
    ) -> None:
        self.set_cookie(
            key, "", max_age=0, path=path, secure=secure, httponly=httponly, samesite=samesite
        )

    def _live(self, key: str) -> StoredCookie | None:
        cookie = self._cookies.get(key)
        if cookie is None:
            return None
        if cookie.expires_at is not None and cookie.expires_at <= datetime.now(timezone.utc):
            del self._cookies[key]
            return None
        return cookie
