"""
Identity provider client for a Supabase/GoTrue compatible auth server.

This module provides:
- GoTrueIdentityProvider: HTTP client for the provider's auth endpoints
- Session parsing from token responses

Endpoints used (relative to {IDENTITY_PROVIDER_URL}/auth/v1):
- GET  /settings                          enabled external OAuth providers
- GET  /authorize                         start of the redirect flow (browser)
- POST /token?grant_type=pkce             authorization code exchange
- POST /token?grant_type=refresh_token    session refresh
- GET  /user                              access token verification
- POST /logout                            session revocation
"""

import logging
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode

import httpx

from rentcalc.auth.errors import ExchangeError, ProviderError, SessionError, SignOutError
from rentcalc.auth.pkce import CODE_CHALLENGE_METHOD
from rentcalc.core.config import settings
from rentcalc.models import Session, SessionUser

logger = logging.getLogger(__name__)

# HTTP timeout (seconds)
IDENTITY_TIMEOUT = 30.0


def _error_details(response: httpx.Response) -> tuple[str, str]:
    """
    Extract an error tag and description from a provider error response.

    Handles both the OAuth style ({"error", "error_description"}) and the
    GoTrue style ({"error_code", "msg"}), and non-JSON bodies such as HTML
    error pages from a proxy.
    """
    try:
        body = response.json()
    except ValueError:
        body = None

    if not isinstance(body, dict):
        error = "server_error" if response.status_code >= 500 else "http_error"
        text = (response.text or "").strip()[:200]
        return error, f"HTTP {response.status_code}: {text}" if text else f"HTTP {response.status_code}"

    error = body.get("error_code") or body.get("error") or "unknown_error"
    description = (
        body.get("error_description")
        or body.get("msg")
        or body.get("message")
        or f"HTTP {response.status_code}"
    )
    return str(error), str(description)


def parse_user(data: dict) -> SessionUser:
    """Build a SessionUser from a provider user object."""
    return SessionUser(
        id=str(data["id"]),
        email=data.get("email"),
        user_metadata=data.get("user_metadata") or {},
    )


def parse_session(data: dict) -> Session:
    """
    Build a Session from a provider token response.

    expires_at (epoch seconds) is preferred; expires_in is used as fallback.
    """
    expires_at = None
    if data.get("expires_at") is not None:
        expires_at = datetime.fromtimestamp(int(data["expires_at"]), tz=timezone.utc)
    elif data.get("expires_in") is not None:
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=int(data["expires_in"]))

    return Session(
        access_token=data["access_token"],
        refresh_token=data.get("refresh_token"),
        token_type=data.get("token_type", "bearer"),
        expires_at=expires_at,
        user=parse_user(data["user"]),
    )


class GoTrueIdentityProvider:
    """
    HTTP client for a GoTrue compatible identity provider.

    Configuration is read from environment variables:
    - IDENTITY_PROVIDER_URL: Base URL of the provider (project URL)
    - IDENTITY_PROVIDER_API_KEY: Public API key sent as the "apikey" header
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float = IDENTITY_TIMEOUT,
    ):
        """
        Initialize the identity provider client.

        Args:
            base_url: Provider URL (defaults to settings.IDENTITY_PROVIDER_URL)
            api_key: Public API key (defaults to settings.IDENTITY_PROVIDER_API_KEY)
            timeout: HTTP timeout in seconds
        """
        self.base_url = (base_url or settings.IDENTITY_PROVIDER_URL).rstrip("/")
        self.api_key = api_key or settings.IDENTITY_PROVIDER_API_KEY
        self.timeout = timeout
        self.auth_url = f"{self.base_url}/auth/v1"

    def _headers(self, access_token: str | None = None) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def authorize_url(
        self,
        provider: str,
        redirect_to: str,
        code_challenge: str,
    ) -> str:
        """
        Build the authorize URL after checking the provider is enabled.

        Raises:
            ProviderError: If the provider is disabled or the server is unreachable
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    f"{self.auth_url}/settings",
                    headers=self._headers(),
                )
        except httpx.HTTPError as e:
            logger.error(f"Identity provider connection error: {e}")
            raise ProviderError("network_error", f"Could not reach identity provider: {e}") from e

        if response.status_code != 200:
            error, description = _error_details(response)
            raise ProviderError(error, description)

        try:
            external = response.json().get("external") or {}
        except (ValueError, AttributeError) as e:
            raise ProviderError("invalid_response", "Malformed provider settings") from e

        if not external.get(provider):
            raise ProviderError(
                "provider_disabled",
                f"OAuth provider '{provider}' is not enabled",
            )

        params = {
            "provider": provider,
            "redirect_to": redirect_to,
            "code_challenge": code_challenge,
            "code_challenge_method": CODE_CHALLENGE_METHOD,
        }
        return f"{self.auth_url}/authorize?{urlencode(params)}"

    async def exchange_code(self, code: str, code_verifier: str | None) -> Session:
        """
        Exchange an authorization code (and verifier) for a session.

        Raises:
            ExchangeError: If the provider rejects the exchange or is unreachable
        """
        payload = {"auth_code": code}
        if code_verifier:
            payload["code_verifier"] = code_verifier

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.auth_url}/token",
                    params={"grant_type": "pkce"},
                    json=payload,
                    headers=self._headers(),
                )
        except httpx.HTTPError as e:
            logger.error(f"Identity provider connection error: {e}")
            raise ExchangeError("network_error", f"Code exchange request failed: {e}") from e

        if response.status_code != 200:
            error, description = _error_details(response)
            raise ExchangeError(error, description)

        try:
            return parse_session(response.json())
        except (ValueError, KeyError, TypeError) as e:
            raise ExchangeError("invalid_response", "Malformed token response") from e

    async def get_user(self, access_token: str) -> SessionUser:
        """
        Verify an access token and return the subject.

        Raises:
            SessionError: If the provider rejects the token
            ProviderError: If the provider could not be asked
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    f"{self.auth_url}/user",
                    headers=self._headers(access_token),
                )
        except httpx.HTTPError as e:
            logger.error(f"Identity provider connection error: {e}")
            raise ProviderError("network_error", f"User verification request failed: {e}") from e

        if response.status_code >= 500:
            error, description = _error_details(response)
            logger.error(f"Identity provider error: {response.status_code} - {error}")
            raise ProviderError(error, description)

        if response.status_code != 200:
            error, description = _error_details(response)
            raise SessionError(error, description)

        try:
            return parse_user(response.json())
        except (ValueError, KeyError, TypeError) as e:
            raise ProviderError("invalid_response", "Malformed user response") from e

    async def refresh_session(self, refresh_token: str) -> Session:
        """
        Refresh a session. Refresh tokens are single-use on the provider side.

        Raises:
            SessionError: If the refresh token is rejected
            ProviderError: If the provider could not be asked
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.auth_url}/token",
                    params={"grant_type": "refresh_token"},
                    json={"refresh_token": refresh_token},
                    headers=self._headers(),
                )
        except httpx.HTTPError as e:
            logger.error(f"Identity provider connection error: {e}")
            raise ProviderError("network_error", f"Session refresh request failed: {e}") from e

        if response.status_code >= 500:
            error, description = _error_details(response)
            logger.error(f"Identity provider error: {response.status_code} - {error}")
            raise ProviderError(error, description)

        if response.status_code != 200:
            error, description = _error_details(response)
            raise SessionError(error, description)

        try:
            return parse_session(response.json())
        except (ValueError, KeyError, TypeError) as e:
            raise ProviderError("invalid_response", "Malformed token response") from e

    async def sign_out(self, access_token: str) -> None:
        """
        Revoke the session at the provider.

        A 401 means the token is already invalid, which is what sign-out
        wants, so it is not an error.

        Raises:
            SignOutError: If revocation failed
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.auth_url}/logout",
                    headers=self._headers(access_token),
                )
        except httpx.HTTPError as e:
            logger.error(f"Identity provider connection error: {e}")
            raise SignOutError("network_error", f"Sign-out request failed: {e}") from e

        if response.status_code in (200, 204, 401, 404):
            return

        error, description = _error_details(response)
        raise SignOutError(error, description)
