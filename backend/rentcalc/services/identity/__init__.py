"""
Identity provider client package.

This package provides an identity provider client with automatic mock/real
selection:

    from rentcalc.services.identity import get_identity_provider

    provider = get_identity_provider()  # Auto-selects based on config
    url = await provider.authorize_url("google", callback_url, challenge)

Configuration (environment variables):
    IDENTITY_PROVIDER_URL: Provider URL or "mock" for testing
    IDENTITY_PROVIDER_API_KEY: Public API key (from K8s secret in production)
"""

from .client import GoTrueIdentityProvider, parse_session, parse_user
from .factory import get_identity_provider, is_mock_identity_provider_enabled
from .mock_client import MockIdentityProvider

__all__ = [
    "GoTrueIdentityProvider",
    "MockIdentityProvider",
    "get_identity_provider",
    "is_mock_identity_provider_enabled",
    "parse_session",
    "parse_user",
]
