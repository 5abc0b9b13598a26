"""
Server-driven OAuth routes.

Provides endpoints for:
- Starting sign-in (verifier in the pkce_code_verifier cookie)
- Handling the provider callback
- Signing out
- Reporting the current AuthState (under the versioned API)
"""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from rentcalc.api.deps import ResolverDep, SessionClientDep, VerifierStoreDep
from rentcalc.auth.callback import SIGN_IN_FAILED, complete_oauth_callback, sign_in_location
from rentcalc.auth.errors import ProviderError, SignOutError
from rentcalc.auth.pkce import generate_pkce_pair
from rentcalc.core.config import settings
from rentcalc.models import Authenticated, Authenticating

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

# Mounted under API_V1_STR
api_router = APIRouter(prefix="/auth", tags=["auth"])


class AuthStateResponse(BaseModel):
    """Resolved AuthState."""

    state: str
    user_id: str | None = None
    email: str | None = None
    role: str | None = None
    lookup_failed: bool = False


@router.get("/auth/sign-in")
async def sign_in(
    request: Request,
    session_client: SessionClientDep,
    verifier_store: VerifierStoreDep,
    provider: str | None = None,
):
    """
    Start the OAuth redirect.

    Stores a fresh PKCE verifier in the pkce_code_verifier cookie and
    redirects the browser to the identity provider.
    """
    pair = generate_pkce_pair()
    verifier_store.store(pair.code_verifier)

    redirect_to = str(request.url_for("oauth_callback"))
    try:
        authorize_url = await session_client.begin_sign_in(
            provider or settings.OAUTH_PROVIDER,
            redirect_to,
            pair.code_challenge,
        )
    except ProviderError as e:
        logger.error(f"Sign-in could not be started: {e}")
        verifier_store.clear()
        return RedirectResponse(
            url=sign_in_location(SIGN_IN_FAILED), status_code=status.HTTP_302_FOUND
        )

    return RedirectResponse(url=authorize_url, status_code=status.HTTP_302_FOUND)


@router.get(settings.SERVER_CALLBACK_PATH, name="oauth_callback")
async def oauth_callback(
    request: Request,
    session_client: SessionClientDep,
    verifier_store: VerifierStoreDep,
    resolver: ResolverDep,
):
    """
    Handle the OAuth callback from the identity provider.

    Exchanges the authorization code for a session (stored in the session
    cookie) and redirects to the destination for the resulting AuthState,
    or to the sign-in page with an error tag.
    """
    result = await complete_oauth_callback(
        params=dict(request.query_params),
        verifier_store=verifier_store,
        session_client=session_client,
        resolver=resolver,
        require_verifier=settings.SERVER_CALLBACK_REQUIRES_VERIFIER,
    )
    return RedirectResponse(url=result.location, status_code=status.HTTP_302_FOUND)


@router.post("/auth/sign-out")
async def sign_out(session_client: SessionClientDep):
    """
    Sign out and return to the sign-in page.

    The session cookie is cleared even if the provider could not revoke
    the session.
    """
    try:
        await session_client.sign_out()
    except SignOutError as e:
        logger.warning(f"Provider sign-out failed, local session cleared: {e}")

    return RedirectResponse(url=settings.SIGN_IN_PATH, status_code=status.HTTP_303_SEE_OTHER)


@api_router.get("/state", response_model=AuthStateResponse)
async def read_auth_state(resolver: ResolverDep) -> AuthStateResponse:
    """Resolve and return the current AuthState."""
    state = await resolver.resolve()

    if isinstance(state, Authenticated):
        return AuthStateResponse(
            state=state.kind,
            user_id=state.user.id,
            email=state.user.email,
            role=state.role.value,
        )

    if isinstance(state, Authenticating):
        return AuthStateResponse(
            state=state.kind,
            user_id=state.user.id,
            email=state.user.email,
            lookup_failed=state.lookup_failed,
        )

    return AuthStateResponse(state=state.kind)
