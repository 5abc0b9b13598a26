"""
Session cookie encryption.

The session cookie holds the whole provider session (access and refresh
tokens included), so its value is the Fernet token of the session JSON
rather than the JSON itself. A cookie that fails to decrypt, whether
tampered with, truncated or written under a previous key, is treated by
CookieSessionStore as no session at all.

Rotating SESSION_ENCRYPTION_KEY therefore signs every user out.
"""

from functools import lru_cache

from cryptography.fernet import Fernet

from rentcalc.core.config import settings


class SessionEncryption:
    """Seal and open session cookie values with a single Fernet key."""

    def __init__(self, key: str | None = None):
        """
        Args:
            key: Urlsafe base64 Fernet key. Defaults to SESSION_ENCRYPTION_KEY.

        Raises:
            ValueError: If the key is empty.
        """
        if key is None:
            key = settings.SESSION_ENCRYPTION_KEY

        if not key:
            raise ValueError(
                "SESSION_ENCRYPTION_KEY must be set to sign session cookies. "
                "Generate one with: python -c \"from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())\""
            )

        self.fernet = Fernet(key.encode())

    def encrypt(self, plaintext: str) -> str:
        """Return the cookie value for a serialized session."""
        return self.fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: str) -> str:
        """
        Return the serialized session held in a cookie value.

        Raises:
            cryptography.fernet.InvalidToken: If the value was not produced
                with the current key or has been altered.
        """
        return self.fernet.decrypt(ciphertext.encode()).decode()


@lru_cache(maxsize=1)
def get_encryption() -> SessionEncryption:
    """Process-wide SessionEncryption built from settings."""
    return SessionEncryption()
