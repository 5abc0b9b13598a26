"""
Services package for external integrations.

This package provides clients for external services with automatic
mock/real selection based on configuration.

Usage:
    from rentcalc.services.identity import get_identity_provider
    from rentcalc.services.protocols import IdentityProviderProtocol

Available services:
    - identity: OAuth sign-in and sessions via the identity provider
    - rent_api: provisioning calls to the REST API server
    - app_user_store: ApplicationUser lookup
"""

from .protocols import ApplicationUserStoreProtocol, IdentityProviderProtocol
from .identity import (
    GoTrueIdentityProvider,
    MockIdentityProvider,
    get_identity_provider,
)
from .app_user_store import SqlApplicationUserStore
from .rent_api import RentApiClient, RentApiError, SelectUserTypeResult

__all__ = [
    # Protocols
    "ApplicationUserStoreProtocol",
    "IdentityProviderProtocol",
    # Identity provider
    "GoTrueIdentityProvider",
    "MockIdentityProvider",
    "get_identity_provider",
    # Application users
    "SqlApplicationUserStore",
    # REST API
    "RentApiClient",
    "RentApiError",
    "SelectUserTypeResult",
]
