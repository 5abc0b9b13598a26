"""
PKCE (Proof Key for Code Exchange) utilities.

RFC 7636: https://www.rfc-editor.org/rfc/rfc7636

Flow:
1. Client generates code_verifier (secret) and code_challenge (derived)
2. Client sends code_challenge with the sign-in redirect
3. Provider binds the authorization code to the code_challenge
4. Client sends code_verifier with the code exchange
5. Provider verifies SHA256(code_verifier) == code_challenge

The verifier is kept until the exchange completes. Where it is kept depends
on which side completes the exchange, so storage goes through a
VerifierBackend:
- EphemeralVerifierBackend: per-tab key-value storage (client-driven exchange)
- CookieVerifierBackend: the pkce_code_verifier cookie (server-driven exchange)

PkceVerifierStore combines a primary backend, which is the one read back,
with mirror backends that only receive writes and erasures.
"""

import base64
import hashlib
import logging
import secrets
from typing import MutableMapping, NamedTuple, Protocol, Sequence

from rentcalc.auth.cookies import CookieStore
from rentcalc.core.config import settings

logger = logging.getLogger(__name__)

# Key used for the ephemeral store, same name as the cookie
PKCE_VERIFIER_KEY = "pkce_code_verifier"

# 32 random bytes -> 43 base64url characters
VERIFIER_BYTES = 32

CODE_CHALLENGE_METHOD = "S256"


class PKCEPair(NamedTuple):
    """PKCE verifier and its derived challenge."""

    code_verifier: str
    code_challenge: str


def generate_code_verifier() -> str:
    """
    Generate a cryptographically random code verifier.

    Uses the OS CSPRNG through ``secrets``. If no entropy source is
    available the error propagates; there is no fallback.

    Returns:
        43-character URL-safe base64 string without padding
    """
    return secrets.token_urlsafe(VERIFIER_BYTES)


def generate_code_challenge(code_verifier: str) -> str:
    """
    Compute the S256 code challenge for a verifier.

    code_challenge = BASE64URL(SHA256(UTF8(code_verifier))), no padding

    Args:
        code_verifier: The PKCE code verifier string

    Returns:
        43-character URL-safe base64 string without padding
    """
    digest = hashlib.sha256(code_verifier.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def generate_pkce_pair() -> PKCEPair:
    """Generate a fresh verifier together with its challenge."""
    code_verifier = generate_code_verifier()
    return PKCEPair(code_verifier, generate_code_challenge(code_verifier))


class VerifierBackend(Protocol):
    """Storage location for the code verifier."""

    def read(self) -> str | None:
        ...

    def write(self, code_verifier: str) -> None:
        ...

    def erase(self) -> None:
        ...


class EphemeralVerifierBackend:
    """Verifier kept in per-tab storage that does not outlive the tab."""

    def __init__(self, storage: MutableMapping[str, str], key: str = PKCE_VERIFIER_KEY):
        self.storage = storage
        self.key = key

    def read(self) -> str | None:
        return self.storage.get(self.key)

    def write(self, code_verifier: str) -> None:
        self.storage[self.key] = code_verifier

    def erase(self) -> None:
        self.storage.pop(self.key, None)


class CookieVerifierBackend:
    """
    Verifier kept in a short-lived cookie scoped to the site root.

    The cookie is SameSite=Lax so it survives the top-level redirect back
    from the provider. It is marked Secure only over HTTPS so local plain-HTTP
    development keeps working.
    """

    def __init__(
        self,
        cookies: CookieStore,
        secure: bool,
        name: str | None = None,
        max_age: int | None = None,
    ):
        self.cookies = cookies
        self.secure = secure
        self.name = name or settings.PKCE_COOKIE_NAME
        self.max_age = max_age if max_age is not None else settings.PKCE_COOKIE_MAX_AGE_SECONDS

    def read(self) -> str | None:
        return self.cookies.get(self.name) or None

    def write(self, code_verifier: str) -> None:
        self.cookies.set_cookie(
            self.name,
            code_verifier,
            max_age=self.max_age,
            path="/",
            secure=self.secure,
            samesite="lax",
        )

    def erase(self) -> None:
        self.cookies.delete_cookie(self.name, path="/", secure=self.secure, samesite="lax")


class PkceVerifierStore:
    """
    Store, retrieve and clear the code verifier.

    Usage (client-driven exchange, verifier in both tab storage and cookie):
        store = PkceVerifierStore(
            EphemeralVerifierBackend(tab_storage),
            mirrors=[CookieVerifierBackend(cookie_jar, secure=False)],
        )
        store.store(verifier)
        store.retrieve()  # reads tab storage only
        store.clear()     # removes from both
    """

    def __init__(self, primary: VerifierBackend, mirrors: Sequence[VerifierBackend] = ()):
        self.primary = primary
        self.mirrors = list(mirrors)

    def store(self, code_verifier: str) -> None:
        for backend in (self.primary, *self.mirrors):
            backend.write(code_verifier)

    def retrieve(self) -> str | None:
        return self.primary.read()

    def clear(self) -> None:
        """Remove the verifier everywhere. Safe to call more than once."""
        for backend in (self.primary, *self.mirrors):
            backend.erase()
        logger.debug("Cleared PKCE code verifier")
