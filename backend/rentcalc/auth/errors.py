"""
Error taxonomy for the authentication layer.

Every error carries a short machine-readable tag (``error``) and an optional
human-readable description. Tags are logged; they are never shown verbatim
to the end user. The callback boundary maps them to coarse sign-in error tags.
"""


class AuthError(Exception):
    """Base class for authentication errors."""

    def __init__(self, error: str, description: str | None = None):
        self.error = error
        self.description = description
        super().__init__(f"{error}: {description}" if description else error)


class ProviderError(AuthError):
    """Sign-in initiation failed (provider rejected the request, network or config)."""


class ExchangeError(AuthError):
    """Code exchange rejected: expired or reused code, or verifier mismatch."""


class MissingVerifierError(AuthError):
    """The locally stored PKCE verifier is gone; no exchange was attempted."""

    def __init__(self, description: str | None = None):
        super().__init__("no_code_verifier", description)


class UserLookupError(AuthError, LookupError):
    """ApplicationUser lookup failed (infrastructure fault, not "record absent")."""


class SignOutError(AuthError):
    """Provider-side sign-out failed; local state is cleared regardless."""


class SessionError(AuthError):
    """The provider rejected the session (invalid access token or failed refresh)."""
