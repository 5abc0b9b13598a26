"""
Route guard middleware.

Requests under the protected path prefixes need a session that the identity
provider still accepts. Without one the request is redirected to the
sign-in page with its query string dropped. Role checks are not done here;
pages do them with gate_page once the full AuthState is resolved.

The middleware also owns the request-scoped cookie buffer
(request.state.response_cookies). Anything written to it during the request
(a refreshed session, a cleared verifier) is replayed onto the response.
"""

import logging
from typing import Callable, Sequence

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response
from starlette.types import ASGIApp

from rentcalc.auth.cookies import ResponseCookies, is_secure_request
from rentcalc.auth.session_client import CookieSessionStore, IdentitySessionClient
from rentcalc.core.config import settings
from rentcalc.services.identity import get_identity_provider
from rentcalc.services.protocols import IdentityProviderProtocol

logger = logging.getLogger(__name__)


# Role roots without a page of their own
ROLE_ROOT_PATHS = ("/owner", "/tenant")

# Methods that may be replayed on the redirect target as-is
REPLAYABLE_METHODS = ("GET", "HEAD")


def is_protected_path(path: str, prefixes: Sequence[str]) -> bool:
    """Prefix match on path segment boundaries ("/owner" covers "/owner/x", not "/owners")."""
    for prefix in prefixes:
        prefix = prefix.rstrip("/")
        if path == prefix or path.startswith(prefix + "/"):
            return True
    return False


def _redirect(request: Request, location: str) -> RedirectResponse:
    """307 for GET/HEAD; 303 for other methods, which the client follows with a GET."""
    status_code = 307 if request.method in REPLAYABLE_METHODS else 303
    return RedirectResponse(location, status_code=status_code)


class RouteGuardMiddleware(BaseHTTPMiddleware):
    """
    Redirect unauthenticated requests for protected paths to sign-in.

    Holds no per-request state; everything request-specific lives on
    request.state.
    """

    def __init__(
        self,
        app: ASGIApp,
        provider_factory: Callable[[], IdentityProviderProtocol] = get_identity_provider,
        protected_prefixes: Sequence[str] | None = None,
    ):
        super().__init__(app)
        self.provider_factory = provider_factory
        self.protected_prefixes = tuple(
            protected_prefixes if protected_prefixes is not None else settings.PROTECTED_PATH_PREFIXES
        )

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        cookies = ResponseCookies(request.cookies)
        request.state.response_cookies = cookies

        path = request.url.path
        if is_protected_path(path, self.protected_prefixes):
            if not await self._has_session(request, cookies):
                logger.info(f"No session for protected path {path}, redirecting to sign-in")
                response: Response = _redirect(request, settings.SIGN_IN_PATH)
            elif path.rstrip("/") in ROLE_ROOT_PATHS:
                response = _redirect(request, settings.USER_TYPE_SELECTION_PATH)
            else:
                response = await call_next(request)
        else:
            response = await call_next(request)

        cookies.apply(response)
        return response

    async def _has_session(self, request: Request, cookies: ResponseCookies) -> bool:
        """Check the session with the provider. Any failure counts as no session."""
        try:
            session_client = IdentitySessionClient(
                self.provider_factory(),
                CookieSessionStore(cookies, secure=is_secure_request(request)),
            )
            return await session_client.get_user() is not None
        except Exception:
            logger.exception("Session check failed in route guard")
            return False
