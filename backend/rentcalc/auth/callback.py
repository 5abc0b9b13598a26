"""
OAuth callback completion shared by the client-driven and server-driven paths.

complete_oauth_callback inspects the query parameters the provider sent back
and decides where the user goes next. It never raises: every failure ends
as a redirect to the sign-in page carrying a coarse error tag.

Error tags (query parameter "error" on the sign-in page):
- auth_failed: provider reported an error, or the code exchange failed
- no_code_verifier: the locally stored PKCE verifier is gone
- session_failed: the exchange succeeded but no session could be resolved
- no_session: callback hit without a code and there is no session
"""

import logging
from dataclasses import dataclass
from typing import Mapping
from urllib.parse import urlencode

from rentcalc.auth.errors import AuthError, ExchangeError, MissingVerifierError
from rentcalc.auth.pkce import PkceVerifierStore
from rentcalc.auth.resolver import AuthStateResolver, destination_for
from rentcalc.auth.session_client import IdentitySessionClient
from rentcalc.core.config import settings
from rentcalc.models import Unauthenticated

logger = logging.getLogger(__name__)


AUTH_FAILED = "auth_failed"
NO_CODE_VERIFIER = "no_code_verifier"
SESSION_FAILED = "session_failed"
NO_SESSION = "no_session"
SIGN_IN_FAILED = "sign_in_failed"


def sign_in_location(error: str | None = None) -> str:
    """Sign-in page URL, optionally carrying an error tag."""
    if not error:
        return settings.SIGN_IN_PATH
    return f"{settings.SIGN_IN_PATH}?{urlencode({'error': error})}"


@dataclass(frozen=True)
class CallbackResult:
    """Where to send the user after the callback, and the error tag if it failed."""

    location: str
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _failed(error: str) -> CallbackResult:
    return CallbackResult(location=sign_in_location(error), error=error)


async def complete_oauth_callback(
    *,
    params: Mapping[str, str],
    verifier_store: PkceVerifierStore,
    session_client: IdentitySessionClient,
    resolver: AuthStateResolver,
    require_verifier: bool,
) -> CallbackResult:
    """
    Complete the sign-in after the provider redirected back.

    Args:
        params: Query parameters of the callback URL (first value per key)
        verifier_store: Where the PKCE verifier was stored at sign-in
        session_client: Session owner used for the exchange
        resolver: Resolves the post-exchange AuthState
        require_verifier: Fail with no_code_verifier when the verifier is
            missing instead of attempting the exchange without it

    Returns:
        CallbackResult with the redirect location
    """
    provider_error = params.get("error")
    if provider_error:
        # Raw provider tag is logged, never shown
        logger.warning(
            f"OAuth provider returned error: {provider_error} "
            f"({params.get('error_description') or 'no description'})"
        )
        verifier_store.clear()
        return _failed(AUTH_FAILED)

    code = params.get("code")
    if code:
        return await _exchange(
            code=code,
            verifier_store=verifier_store,
            session_client=session_client,
            resolver=resolver,
            require_verifier=require_verifier,
        )

    # No code: the provider may have completed the session some other way
    try:
        session = await session_client.get_session()
    except Exception:
        logger.exception("Unexpected error while loading the session in OAuth callback")
        return _failed(AUTH_FAILED)

    if session is None:
        logger.info("OAuth callback without code and without session")
        return _failed(NO_SESSION)

    return await _route_resolved(resolver)


async def _exchange(
    *,
    code: str,
    verifier_store: PkceVerifierStore,
    session_client: IdentitySessionClient,
    resolver: AuthStateResolver,
    require_verifier: bool,
) -> CallbackResult:
    code_verifier = verifier_store.retrieve()

    try:
        if code_verifier is None and require_verifier:
            raise MissingVerifierError("PKCE code verifier not found in storage")
        await session_client.exchange_code(code, code_verifier)
    except MissingVerifierError as e:
        logger.warning(f"OAuth callback aborted: {e}")
        return _failed(NO_CODE_VERIFIER)
    except ExchangeError as e:
        logger.warning(f"Authorization code exchange rejected: {e}")
        return _failed(AUTH_FAILED)
    except AuthError as e:
        logger.error(f"Authorization code exchange failed: {e}")
        return _failed(AUTH_FAILED)
    except Exception:
        logger.exception("Unexpected error during authorization code exchange")
        return _failed(AUTH_FAILED)

    # The verifier is single-use; drop it as soon as the code is redeemed
    verifier_store.clear()

    return await _route_resolved(resolver)


async def _route_resolved(resolver: AuthStateResolver) -> CallbackResult:
    try:
        state = await resolver.resolve()
    except Exception:
        logger.exception("Auth state resolution failed after OAuth callback")
        return _failed(SESSION_FAILED)

    if isinstance(state, Unauthenticated):
        logger.error("OAuth callback finished but the session did not resolve")
        return _failed(SESSION_FAILED)

    return CallbackResult(location=destination_for(state))
