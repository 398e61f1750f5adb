"""
At-rest encryption for provider OAuth credentials.

Tokens are sealed with Fernet. ``ENCRYPTION_KEY`` values that are not a raw
32-byte secret are stretched with PBKDF2 first.
"""

import base64
from functools import lru_cache
from typing import Optional

from cryptography.fernet import Fernet
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from config import settings

KDF_SALT = b"television_provider_tokens"
KDF_ITERATIONS = 100000


@lru_cache(maxsize=4)
def _fernet_for(secret: str) -> Fernet:
    raw = secret.encode()
    if len(raw) == 32:
        return Fernet(base64.urlsafe_b64encode(raw))
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=KDF_SALT,
        iterations=KDF_ITERATIONS,
    )
    return Fernet(base64.urlsafe_b64encode(kdf.derive(raw)))


def token_cipher(secret: Optional[str] = None) -> Fernet:
    """Cipher for ``secret``, defaulting to the configured ``ENCRYPTION_KEY``."""
    return _fernet_for(secret if secret is not None else settings.ENCRYPTION_KEY)


def encrypt_token(token: str) -> str:
    """Seal a provider access or refresh token for the ``provider_tokens`` table."""
    return token_cipher().encrypt(token.encode()).decode()


def decrypt_token(encrypted_token: str) -> str:
    """
    Open a sealed provider token.

    Raises ``cryptography.fernet.InvalidToken`` when the value was sealed
    under a different key or has been tampered with.
    """
    return token_cipher().decrypt(encrypted_token.encode()).decode()
