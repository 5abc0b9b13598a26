"""
Identity session client.

IdentitySessionClient is the single owner of the session. It wraps the
identity provider and a SessionStore, and is the only place a Session is
created, refreshed or dropped:

- begin_sign_in / exchange_code: PKCE sign-in
- get_session: local session, refreshed once when expired
- get_user: session verified with the provider (used for auth decisions)
- sign_out: local state first, then provider revocation
- on_session_change: change notifications (SIGNED_IN, SIGNED_OUT, TOKEN_REFRESHED)

Session stores:
- MemorySessionStore: in-process (client side)
- CookieSessionStore: Fernet-encrypted, HttpOnly cookie (server side)
"""

import logging
from enum import Enum
from typing import Callable, Protocol

from cryptography.fernet import InvalidToken
from pydantic import ValidationError

from rentcalc.auth.cookies import CookieStore
from rentcalc.auth.errors import ProviderError, SessionError
from rentcalc.core.config import settings
from rentcalc.core.encryption import SessionEncryption, get_encryption
from rentcalc.models import Session, SessionUser
from rentcalc.services.protocols import IdentityProviderProtocol

logger = logging.getLogger(__name__)


class AuthChangeEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"


SessionChangeHandler = Callable[[AuthChangeEvent, Session | None], None]


class SessionSubscription:
    """
    Handle returned by on_session_change.

    Usage:
        with client.on_session_change(handler):
            ...  # handler receives events here

        subscription = client.on_session_change(handler)
        subscription.unsubscribe()
    """

    def __init__(self, handlers: list[SessionChangeHandler], handler: SessionChangeHandler):
        self._handlers = handlers
        self._handler = handler
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self._handlers.remove(self._handler)
        self.active = False

    def __enter__(self) -> "SessionSubscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.unsubscribe()


class SessionStore(Protocol):
    """Where the current session lives between calls."""

    def load(self) -> Session | None:
        ...

    def save(self, session: Session) -> None:
        ...

    def clear(self) -> None:
        ...


class MemorySessionStore:
    def __init__(self, session: Session | None = None):
        self._session = session

    def load(self) -> Session | None:
        return self._session

    def save(self, session: Session) -> None:
        self._session = session

    def clear(self) -> None:
        self._session = None


class CookieSessionStore:
    """
    Session persisted in an encrypted, HttpOnly cookie.

    A cookie that cannot be decrypted (rotated key, tampering) or does not
    parse as a Session reads as "no session".
    """

    def __init__(
        self,
        cookies: CookieStore,
        secure: bool,
        encryption: SessionEncryption | None = None,
        name: str | None = None,
        max_age: int | None = None,
    ):
        self.cookies = cookies
        self.secure = secure
        self.encryption = encryption or get_encryption()
        self.name = name or settings.SESSION_COOKIE_NAME
        self.max_age = max_age if max_age is not None else settings.SESSION_COOKIE_MAX_AGE_SECONDS

    def load(self) -> Session | None:
        value = self.cookies.get(self.name)
        if not value:
            return None

        try:
            return Session.model_validate_json(self.encryption.decrypt(value))
        except InvalidToken:
            logger.warning("Session cookie could not be decrypted, ignoring it")
        except ValidationError:
            logger.warning("Session cookie is malformed, ignoring it")
        return None

    def save(self, session: Session) -> None:
        self.cookies.set_cookie(
            self.name,
            self.encryption.encrypt(session.model_dump_json()),
            max_age=self.max_age,
            path="/",
            secure=self.secure,
            httponly=True,
            samesite="lax",
        )

    def clear(self) -> None:
        self.cookies.delete_cookie(
            self.name, path="/", secure=self.secure, httponly=True, samesite="lax"
        )


class IdentitySessionClient:
    """
    Session owner on top of an identity provider.

    Args:
        provider: Identity provider client
        store: Where the session is kept
        refresh_leeway_seconds: Refresh sessions this many seconds before expiry
    """

    def __init__(
        self,
        provider: IdentityProviderProtocol,
        store: SessionStore,
        refresh_leeway_seconds: int | None = None,
    ):
        self.provider = provider
        self.store = store
        self.refresh_leeway_seconds = (
            refresh_leeway_seconds
            if refresh_leeway_seconds is not None
            else settings.SESSION_REFRESH_LEEWAY_SECONDS
        )
        self._handlers: list[SessionChangeHandler] = []

    async def begin_sign_in(self, provider: str, redirect_to: str, code_challenge: str) -> str:
        """
        Get the provider URL that starts the sign-in redirect.

        Raises:
            ProviderError: If the provider rejects the request
        """
        return await self.provider.authorize_url(provider, redirect_to, code_challenge)

    async def exchange_code(self, code: str, code_verifier: str | None) -> Session:
        """
        Exchange an authorization code and persist the resulting session.

        Raises:
            ExchangeError: If the provider rejects the exchange
        """
        session = await self.provider.exchange_code(code, code_verifier)
        self.store.save(session)
        logger.info(f"Session established for subject {session.subject_id}")
        self._emit(AuthChangeEvent.SIGNED_IN, session)
        return session

    async def get_session(self) -> Session | None:
        """
        Return the current session, refreshing it once if it has expired.

        A rejected refresh drops the session. An unreachable provider
        returns None but keeps the session for a later attempt.
        """
        session = self.store.load()
        if session is None:
            return None

        if not session.is_expired(self.refresh_leeway_seconds):
            return session

        if not session.refresh_token:
            logger.info("Session expired and has no refresh token")
            self._drop_session()
            return None

        try:
            refreshed = await self.provider.refresh_session(session.refresh_token)
        except SessionError as e:
            logger.info(f"Session refresh rejected: {e.error}")
            self._drop_session()
            return None
        except ProviderError as e:
            logger.warning(f"Session refresh failed, provider unavailable: {e.error}")
            return None

        self.store.save(refreshed)
        logger.debug(f"Session refreshed for subject {refreshed.subject_id}")
        self._emit(AuthChangeEvent.TOKEN_REFRESHED, refreshed)
        return refreshed

    async def get_user(self) -> SessionUser | None:
        """
        Return the session's user after verifying the access token with the provider.

        Authorization decisions go through here, never through the locally
        stored user, which is not authenticated by itself.
        """
        session = await self.get_session()
        if session is None:
            return None

        try:
            return await self.provider.get_user(session.access_token)
        except SessionError as e:
            logger.info(f"Access token rejected by provider: {e.error}")
            self._drop_session()
            return None
        except ProviderError as e:
            logger.warning(f"Could not verify session with provider: {e.error}")
            return None

    async def sign_out(self) -> None:
        """
        Sign out locally, then revoke the session at the provider.

        Local state is cleared and SIGNED_OUT emitted before the provider is
        contacted, so a provider failure never leaves the user signed in here.

        Raises:
            SignOutError: If the provider-side revocation failed
        """
        session = self.store.load()
        self.store.clear()
        self._emit(AuthChangeEvent.SIGNED_OUT, None)

        if session is None:
            return

        await self.provider.sign_out(session.access_token)
        logger.info(f"Signed out subject {session.subject_id}")

    def on_session_change(self, handler: SessionChangeHandler) -> SessionSubscription:
        self._handlers.append(handler)
        return SessionSubscription(self._handlers, handler)

    def handle_provider_sign_out(self) -> None:
        """Apply a sign-out pushed by the provider (e.g. signed out in another tab)."""
        self._drop_session()

    def _drop_session(self) -> None:
        if self.store.load() is None:
            return
        self.store.clear()
        self._emit(AuthChangeEvent.SIGNED_OUT, None)

    def _emit(self, event: AuthChangeEvent, session: Session | None) -> None:
        for handler in list(self._handlers):
            try:
                handler(event, session)
            except Exception:
                logger.exception(f"Session change handler failed for {event.value}")
