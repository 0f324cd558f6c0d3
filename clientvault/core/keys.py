# clientvault/core/keys.py
"""
Encryption key derivation
Derives the single AES-256 key used for the lifetime of the process
"""

import logging
import os
from typing import Optional

from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from clientvault.core.exceptions import MissingEncryptionKeyError

logger = logging.getLogger("clientvault.keys")

KEY_LENGTH = 32  # 256 bits

# Fixed salts: the same secret must re-derive the same key after a restart
APPLICATION_SALT = b"clientvault-salt-v1"
DEV_SALT = b"dev-salt"
DEV_PLACEHOLDER_SECRET = "dev-encryption-key-for-testing-only"

SCRYPT_N = 2 ** 14
SCRYPT_R = 8
SCRYPT_P = 1


class DerivedKey:
    """Immutable 256-bit key material.

    ``source`` records where the key came from ("configured", "dev-random"
    or "dev-fixed") so callers can report it without exposing the key.
    """

    __slots__ = ("_material", "_source")

    def __init__(self, material: bytes, source: str = "configured"):
        if len(material) != KEY_LENGTH:
            raise ValueError(f"Derived key must be {KEY_LENGTH} bytes")
        object.__setattr__(self, "_material", bytes(material))
        object.__setattr__(self, "_source", source)

    def __setattr__(self, name, value):
        raise AttributeError("DerivedKey is immutable")

    @property
    def material(self) -> bytes:
        return self._material

    @property
    def source(self) -> str:
        return self._source

    @property
    def is_development(self) -> bool:
        return self._source != "configured"

    def __repr__(self) -> str:
        return f"DerivedKey(source={self._source!r})"

    def __reduce__(self):
        raise TypeError("DerivedKey cannot be serialized")


def _scrypt(secret: str, salt: bytes) -> bytes:
    kdf = Scrypt(salt=salt, length=KEY_LENGTH, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)
    return kdf.derive(secret.encode("utf-8"))


def derive_key(
    secret: Optional[str],
    environment: str,
    *,
    stable_dev_key: bool = False,
) -> DerivedKey:
    """
    Derive the process encryption key.

    Key derivation is deliberately slow. Call this once at startup and
    share the result; never derive per request.

    Args:
        secret: Configured master secret, or None when unset
        environment: Deployment environment name
        stable_dev_key: Use the fixed development placeholder instead of a
            random one when no secret is configured

    Returns:
        DerivedKey holding 32 bytes of key material

    Raises:
        MissingEncryptionKeyError: No secret configured in production
    """
    environment = (environment or "").strip().lower()

    if secret:
        return DerivedKey(_scrypt(secret, APPLICATION_SALT), source="configured")

    if environment == "production":
        raise MissingEncryptionKeyError(environment)

    if stable_dev_key:
        logger.warning(
            "ENCRYPTION_KEY not set - using the fixed development key. "
            "This key is public and insecure; use it for local development only."
        )
        return DerivedKey(_scrypt(DEV_PLACEHOLDER_SECRET, DEV_SALT), source="dev-fixed")

    logger.warning(
        "ENCRYPTION_KEY not set - using an auto-generated development key. "
        "Encrypted data will NOT be recoverable after restart. "
        "Set ENCRYPTION_KEY for persistence."
    )
    return DerivedKey(_scrypt(os.urandom(32).hex(), DEV_SALT), source="dev-random")


def derive_key_from_settings(settings) -> DerivedKey:
    """Derive the key from application settings"""
    return derive_key(
        settings.ENCRYPTION_KEY,
        settings.ENVIRONMENT,
        stable_dev_key=settings.ENCRYPTION_STABLE_DEV_KEY,
    )
