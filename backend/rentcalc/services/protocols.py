"""
Protocol definitions for external service clients.

This module defines Protocol classes (PEP 544) for the identity provider and
the ApplicationUser store, enabling type-safe dependency injection and easy
mocking for tests.

Both real and mock implementations must satisfy these protocols.
"""

from typing import Protocol, runtime_checkable

from rentcalc.models import ApplicationUser, Session, SessionUser


@runtime_checkable
class IdentityProviderProtocol(Protocol):
    """
    Protocol defining the interface for identity provider clients.

    Both GoTrueIdentityProvider (real) and MockIdentityProvider (mock)
    implement this protocol, allowing substitution via get_identity_provider().
    """

    async def authorize_url(
        self,
        provider: str,
        redirect_to: str,
        code_challenge: str,
    ) -> str:
        """
        Build the URL that starts the redirect-based OAuth flow.

        Args:
            provider: External OAuth provider name (e.g., "google")
            redirect_to: Callback URL the provider returns to
            code_challenge: PKCE S256 challenge

        Returns:
            Absolute URL to redirect the browser to

        Raises:
            ProviderError: If the provider is unknown, disabled or unreachable
        """
        ...

    async def exchange_code(self, code: str, code_verifier: str | None) -> Session:
        """
        Exchange an authorization code for a session.

        Raises:
            ExchangeError: If the code is expired, reused or the verifier mismatches
        """
        ...

    async def get_user(self, access_token: str) -> SessionUser:
        """
        Verify an access token with the provider and return its subject.

        Raises:
            SessionError: If the token is invalid or expired
            ProviderError: If the provider could not be asked
        """
        ...

    async def refresh_session(self, refresh_token: str) -> Session:
        """
        Obtain a new session from a refresh token.

        Raises:
            SessionError: If the refresh token is invalid, revoked or already used
            ProviderError: If the provider could not be asked
        """
        ...

    async def sign_out(self, access_token: str) -> None:
        """
        Revoke the session at the provider.

        Raises:
            SignOutError: If the provider could not revoke the session
        """
        ...


@runtime_checkable
class ApplicationUserStoreProtocol(Protocol):
    """Keyed lookup of ApplicationUser records by session subject id."""

    async def get_by_subject(self, subject_id: str) -> ApplicationUser | None:
        """
        Look up the application user for a subject id.

        Returns:
            ApplicationUser, or None when the identity is not provisioned yet

        Raises:
            UserLookupError: If the lookup itself failed
        """
        ...
