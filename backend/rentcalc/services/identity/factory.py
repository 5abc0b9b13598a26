"""
Factory functions for identity provider creation.

Usage:
    from rentcalc.services.identity import get_identity_provider

    # Returns GoTrueIdentityProvider if IDENTITY_PROVIDER_URL is configured
    # (not "mock"), otherwise returns MockIdentityProvider
    provider = get_identity_provider()

The instance is cached for the life of the process. The mock keeps issued
codes and tokens in memory, so every request must see the same instance.
Tests reset it with get_identity_provider.cache_clear().

Environment Variables:
    IDENTITY_PROVIDER_URL: Provider URL. Set to "mock" for testing.
    IDENTITY_PROVIDER_API_KEY: Public API key (loaded from K8s secret)
"""

import logging
from functools import lru_cache

from rentcalc.core.config import settings
from rentcalc.services.protocols import IdentityProviderProtocol

from .client import GoTrueIdentityProvider
from .mock_client import MockIdentityProvider

logger = logging.getLogger(__name__)


# Special value to explicitly enable the mock provider
MOCK_IDENTITY_PROVIDER_URL = "mock"


def is_mock_identity_provider_enabled() -> bool:
    """Check if mock mode is explicitly enabled (IDENTITY_PROVIDER_URL=mock)."""
    return bool(settings.IDENTITY_PROVIDER_URL) and (
        settings.IDENTITY_PROVIDER_URL.lower() == MOCK_IDENTITY_PROVIDER_URL
    )


@lru_cache(maxsize=1)
def get_identity_provider() -> IdentityProviderProtocol:
    """
    Get the identity provider instance.

    - If IDENTITY_PROVIDER_URL is "mock": MockIdentityProvider (explicit mock mode)
    - If IDENTITY_PROVIDER_URL is set: GoTrueIdentityProvider
    - Otherwise: RuntimeError in production/staging, mock with a warning elsewhere
    """
    if is_mock_identity_provider_enabled():
        logger.info("Using mock identity provider (IDENTITY_PROVIDER_URL=mock)")
        return MockIdentityProvider(providers=(settings.OAUTH_PROVIDER,))

    if settings.IDENTITY_PROVIDER_URL:
        logger.info(f"Using identity provider at {settings.IDENTITY_PROVIDER_URL}")
        return GoTrueIdentityProvider()

    # In production/staging, fail explicitly rather than silently using mock
    if settings.ENVIRONMENT in ("production", "staging"):
        raise RuntimeError(
            "Identity provider not configured. IDENTITY_PROVIDER_URL must be set in "
            "production/staging. Set IDENTITY_PROVIDER_URL=mock to explicitly use "
            "the mock provider for testing."
        )

    logger.warning(
        "Identity provider not configured. Set IDENTITY_PROVIDER_URL=mock for testing, "
        "or provide IDENTITY_PROVIDER_URL for production. "
        "Falling back to mock provider in development."
    )
    return MockIdentityProvider(providers=(settings.OAUTH_PROVIDER,))
