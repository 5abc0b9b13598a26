"""
Client-driven sign-in flow.

The client keeps the PKCE verifier itself (per-tab storage, mirrored into
the pkce_code_verifier cookie) and completes the code exchange when the
provider redirects back to CLIENT_CALLBACK_PATH.

Usage:
    flow = ClientAuthFlow(
        session_client=IdentitySessionClient(provider, MemorySessionStore()),
        resolver=AuthStateResolver(session_client, user_store),
        verifier_store=PkceVerifierStore(
            EphemeralVerifierBackend(tab_storage),
            mirrors=[CookieVerifierBackend(cookie_jar, secure=False)],
        ),
        navigator=browser,
    )
    await flow.sign_in()                     # navigates to the provider
    await flow.handle_callback(current_url)  # navigates to the destination
"""

import logging
from typing import Protocol
from urllib.parse import parse_qs, urlsplit

from rentcalc.auth.callback import CallbackResult, complete_oauth_callback
from rentcalc.auth.errors import ProviderError
from rentcalc.auth.pkce import PkceVerifierStore, generate_pkce_pair
from rentcalc.auth.resolver import AuthStateResolver
from rentcalc.auth.session_client import IdentitySessionClient
from rentcalc.core.config import settings

logger = logging.getLogger(__name__)


class Navigator(Protocol):
    """Moves the client to another URL."""

    def push(self, location: str) -> None:
        ...


def client_callback_url() -> str:
    """Absolute CLIENT_CALLBACK_PATH on FRONTEND_HOST (path only when no host is set)."""
    host = (settings.FRONTEND_HOST or "").rstrip("/")
    return f"{host}{settings.CLIENT_CALLBACK_PATH}"


class ClientAuthFlow:
    def __init__(
        self,
        session_client: IdentitySessionClient,
        resolver: AuthStateResolver,
        verifier_store: PkceVerifierStore,
        navigator: Navigator,
        callback_url: str | None = None,
        provider: str | None = None,
    ):
        self.session_client = session_client
        self.resolver = resolver
        self.verifier_store = verifier_store
        self.navigator = navigator
        self.callback_url = callback_url or client_callback_url()
        self.provider = provider or settings.OAUTH_PROVIDER

    async def sign_in(self) -> str:
        """
        Start sign-in: store a fresh verifier and navigate to the provider.

        Returns:
            The provider URL navigated to

        Raises:
            ProviderError: If the provider rejected the request (verifier is cleared)
        """
        pair = generate_pkce_pair()
        self.verifier_store.store(pair.code_verifier)

        try:
            url = await self.session_client.begin_sign_in(
                self.provider, self.callback_url, pair.code_challenge
            )
        except ProviderError as e:
            logger.error(f"Sign-in could not be started: {e}")
            self.verifier_store.clear()
            raise

        self.navigator.push(url)
        return url

    async def handle_callback(self, url: str) -> CallbackResult:
        """Complete the sign-in from the callback URL and navigate to the result."""
        query = parse_qs(urlsplit(url).query)
        params = {key: values[0] for key, values in query.items() if values}

        result = await complete_oauth_callback(
            params=params,
            verifier_store=self.verifier_store,
            session_client=self.session_client,
            resolver=self.resolver,
            require_verifier=True,
        )
        self.navigator.push(result.location)
        return result

    def cancel(self) -> None:
        """Abandon a sign-in in progress."""
        self.verifier_store.clear()
