"""
Mock identity provider for testing and development without a real auth server.

This module provides a mock implementation of the IdentityProviderProtocol that:
- Issues single-use authorization codes bound to a PKCE challenge
- Verifies the code verifier on exchange the way a real provider does
- Tracks issued access and refresh tokens so verification, refresh rotation
  and revocation behave like the real thing
- Supports error simulation for testing error handling

With IDENTITY_PROVIDER_URL=mock the full sign-in flow runs locally: the
"authorize URL" points straight back at the callback with a fresh code.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode, urlsplit

from rentcalc.auth.errors import ExchangeError, ProviderError, SessionError, SignOutError
from rentcalc.auth.pkce import generate_code_challenge
from rentcalc.models import Session, SessionUser

logger = logging.getLogger(__name__)


DEFAULT_MOCK_USER = SessionUser(
    id="mock-user-1",
    email="dev@example.com",
    user_metadata={"full_name": "Mock User"},
)

DEFAULT_PROVIDERS = ("google",)


@dataclass
class _IssuedCode:
    user: SessionUser
    code_challenge: str | None


class MockIdentityProvider:
    """
    Mock identity provider for testing without a real auth server.

    Usage:
        provider = MockIdentityProvider()
        url = await provider.authorize_url("google", "http://app/auth/callback", challenge)
        # url = "http://app/auth/callback?code=..."
        session = await provider.exchange_code(code, verifier)

        # For testing errors
        provider = MockIdentityProvider(fail_sign_in=True)
        await provider.authorize_url(...)  # Raises ProviderError

    Configuration:
        - user: Identity returned for every sign-in
        - providers: Names of enabled external OAuth providers
        - session_ttl_seconds: Lifetime of issued access tokens
        - fail_sign_in: If True, authorize_url raises ProviderError
        - fail_sign_out: If True, sign_out raises SignOutError
    """

    def __init__(
        self,
        user: SessionUser | None = None,
        providers: tuple[str, ...] = DEFAULT_PROVIDERS,
        session_ttl_seconds: int = 3600,
        fail_sign_in: bool = False,
        fail_sign_out: bool = False,
    ):
        self.user = user or DEFAULT_MOCK_USER
        self.providers = providers
        self.session_ttl_seconds = session_ttl_seconds
        self.fail_sign_in = fail_sign_in
        self.fail_sign_out = fail_sign_out
        self._codes: dict[str, _IssuedCode] = {}
        self._access_tokens: dict[str, tuple[SessionUser, datetime]] = {}
        self._refresh_tokens: dict[str, SessionUser] = {}
        self._call_history: list[dict] = []

        logger.info("[MOCK] MockIdentityProvider initialized")

    def _record_call(self, method: str, **details) -> None:
        """Record a call for test verification."""
        self._call_history.append({"method": method, **details})

    def issue_code(
        self,
        user: SessionUser | None = None,
        code_challenge: str | None = None,
    ) -> str:
        """
        Issue an authorization code directly, as if the user had consented.

        Args:
            user: Identity the code resolves to (defaults to the configured user)
            code_challenge: PKCE challenge to bind, or None for an unbound code
        """
        code = secrets.token_urlsafe(16)
        self._codes[code] = _IssuedCode(user=user or self.user, code_challenge=code_challenge)
        return code

    def _new_session(self, user: SessionUser) -> Session:
        access_token = secrets.token_urlsafe(24)
        refresh_token = secrets.token_urlsafe(24)
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=self.session_ttl_seconds)
        self._access_tokens[access_token] = (user, expires_at)
        self._refresh_tokens[refresh_token] = user
        return Session(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
            user=user,
        )

    def expire_access_token(self, access_token: str) -> None:
        """Force an issued access token to be expired (testing helper)."""
        if access_token in self._access_tokens:
            user, _ = self._access_tokens[access_token]
            self._access_tokens[access_token] = (user, datetime.now(timezone.utc))

    async def authorize_url(
        self,
        provider: str,
        redirect_to: str,
        code_challenge: str,
    ) -> str:
        """Return the callback URL with a freshly issued code."""
        self._record_call("authorize_url", provider=provider, redirect_to=redirect_to)

        if self.fail_sign_in:
            raise ProviderError("provider_unavailable", "Simulated sign-in failure")
        if provider not in self.providers:
            raise ProviderError("provider_disabled", f"OAuth provider '{provider}' is not enabled")

        code = self.issue_code(code_challenge=code_challenge)
        separator = "&" if urlsplit(redirect_to).query else "?"
        return f"{redirect_to}{separator}{urlencode({'code': code})}"

    async def exchange_code(self, code: str, code_verifier: str | None) -> Session:
        """Redeem a code once, checking the verifier against the bound challenge."""
        self._record_call("exchange_code", code=code, has_verifier=code_verifier is not None)

        issued = self._codes.pop(code, None)
        if issued is None:
            raise ExchangeError("invalid_grant", "Authorization code is invalid or has been used")

        if issued.code_challenge is not None:
            if not code_verifier:
                raise ExchangeError("invalid_request", "code_verifier is required")
            if generate_code_challenge(code_verifier) != issued.code_challenge:
                raise ExchangeError("invalid_grant", "code_verifier does not match code_challenge")

        return self._new_session(issued.user)

    async def get_user(self, access_token: str) -> SessionUser:
        self._record_call("get_user")

        entry = self._access_tokens.get(access_token)
        if entry is None:
            raise SessionError("invalid_token", "Access token is invalid or revoked")

        user, expires_at = entry
        if expires_at <= datetime.now(timezone.utc):
            raise SessionError("token_expired", "Access token has expired")
        return user

    async def refresh_session(self, refresh_token: str) -> Session:
        """Rotate a refresh token. The old refresh token stops working."""
        self._record_call("refresh_session")

        user = self._refresh_tokens.pop(refresh_token, None)
        if user is None:
            raise SessionError("invalid_grant", "Refresh token is invalid or has been used")
        return self._new_session(user)

    async def sign_out(self, access_token: str) -> None:
        self._record_call("sign_out")

        if self.fail_sign_out:
            raise SignOutError("server_error", "Simulated sign-out failure")

        entry = self._access_tokens.pop(access_token, None)
        if entry is None:
            return

        user, _ = entry
        # Revoking the session ends every refresh token for the same user
        for token, owner in list(self._refresh_tokens.items()):
            if owner.id == user.id:
                del self._refresh_tokens[token]
