"""
FastAPI dependencies.

Request-scoped wiring of the auth layer: the session client reads and writes
the session cookie through request.state.response_cookies (owned by
RouteGuardMiddleware), and the resolver reads ApplicationUsers through the
request's database session.
"""

from typing import Annotated, Generator

from fastapi import Depends, Request
from sqlmodel import Session

from rentcalc.auth.cookies import ResponseCookies, is_secure_request
from rentcalc.auth.pkce import CookieVerifierBackend, PkceVerifierStore
from rentcalc.auth.resolver import AuthStateResolver
from rentcalc.auth.session_client import CookieSessionStore, IdentitySessionClient
from rentcalc.core.db import engine
from rentcalc.services.app_user_store import SqlApplicationUserStore
from rentcalc.services.identity import get_identity_provider
from rentcalc.services.protocols import IdentityProviderProtocol
from rentcalc.services.rent_api import RentApiClient


def get_db() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_db)]
IdentityProviderDep = Annotated[IdentityProviderProtocol, Depends(get_identity_provider)]


def get_response_cookies(request: Request) -> ResponseCookies:
    """Request-scoped cookie buffer, shared with the route guard."""
    cookies = getattr(request.state, "response_cookies", None)
    if cookies is None:
        cookies = ResponseCookies(request.cookies)
        request.state.response_cookies = cookies
    return cookies


ResponseCookiesDep = Annotated[ResponseCookies, Depends(get_response_cookies)]


def get_session_client(
    request: Request,
    provider: IdentityProviderDep,
    cookies: ResponseCookiesDep,
) -> IdentitySessionClient:
    return IdentitySessionClient(
        provider,
        CookieSessionStore(cookies, secure=is_secure_request(request)),
    )


SessionClientDep = Annotated[IdentitySessionClient, Depends(get_session_client)]


def get_verifier_store(request: Request, cookies: ResponseCookiesDep) -> PkceVerifierStore:
    """Server-side verifier storage: the pkce_code_verifier cookie."""
    return PkceVerifierStore(CookieVerifierBackend(cookies, secure=is_secure_request(request)))


VerifierStoreDep = Annotated[PkceVerifierStore, Depends(get_verifier_store)]


def get_user_store(session: SessionDep) -> SqlApplicationUserStore:
    return SqlApplicationUserStore(session)


def get_resolver(
    session_client: SessionClientDep,
    user_store: Annotated[SqlApplicationUserStore, Depends(get_user_store)],
) -> AuthStateResolver:
    return AuthStateResolver(session_client, user_store)


ResolverDep = Annotated[AuthStateResolver, Depends(get_resolver)]


def get_rent_api_client() -> RentApiClient:
    return RentApiClient()


RentApiDep = Annotated[RentApiClient, Depends(get_rent_api_client)]
