# clientvault/core/encryption.py
"""
Database field-level encryption for sensitive data
Implements AES-256-GCM encryption

Fields encrypted for client records:
- SSN (Social Security Number)
- Date of Birth
- Email addresses
- Phone numbers
- Physical addresses
- Account numbers
"""

import logging
import os
from datetime import date, datetime, time, timezone
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from clientvault.core import envelope, masking
from clientvault.core.hashing import search_digest
from clientvault.core.keys import DerivedKey, derive_key_from_settings

logger = logging.getLogger("clientvault.encryption")


def canonical_timestamp(value: date) -> str:
    """Render a date or datetime as a UTC ISO-8601 string, e.g. 1990-05-15T00:00:00.000Z"""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        else:
            value = value.astimezone(timezone.utc)
    else:
        value = datetime.combine(value, time(), tzinfo=timezone.utc)

    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp, returning None if it is not one"""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


class EncryptionService:
    """Encrypt sensitive database fields"""

    def __init__(self, key: DerivedKey):
        self._key = key
        self._aead = AESGCM(key.material)

    @classmethod
    def from_settings(cls, settings) -> "EncryptionService":
        """Build the service, deriving the key once from settings"""
        return cls(derive_key_from_settings(settings))

    @property
    def key_source(self) -> str:
        return self._key.source

    def encrypt(self, plaintext):
        """
        Encrypt sensitive data (PII)

        Dates are encrypted as their canonical UTC timestamp string.
        Returns base64 of IV + AuthTag + Ciphertext; None and "" pass through.
        """
        if plaintext is None or plaintext == "":
            return plaintext

        if isinstance(plaintext, date):
            plaintext = canonical_timestamp(plaintext)
        elif not isinstance(plaintext, str):
            plaintext = str(plaintext)

        iv = os.urandom(envelope.IV_LENGTH)
        # AESGCM appends the tag to the ciphertext
        sealed = self._aead.encrypt(iv, plaintext.encode("utf-8"), None)
        ciphertext = sealed[:-envelope.AUTH_TAG_LENGTH]
        auth_tag = sealed[-envelope.AUTH_TAG_LENGTH:]

        return envelope.pack(iv, auth_tag, ciphertext)

    def decrypt_or_none(self, value: str) -> Optional[str]:
        """Decrypt an envelope, or return None if it cannot be authenticated"""
        if not value or not isinstance(value, str):
            return None

        parts = envelope.unpack(value)
        if parts is None:
            return None

        try:
            plaintext = self._aead.decrypt(parts.iv, parts.ciphertext + parts.auth_tag, None)
            return plaintext.decode("utf-8")
        except (InvalidTag, UnicodeDecodeError):
            logger.debug("Stored value failed authentication; treating it as plaintext")
            return None

    def decrypt(self, value):
        """
        Decrypt sensitive data (PII)

        Never raises. Values that are not envelopes from this key (legacy
        plaintext, tampered or foreign ciphertext) are returned unchanged.
        Use ``is_encrypted`` or ``decrypt_or_none`` to tell the cases apart.
        """
        if not value or not isinstance(value, str):
            return value

        plaintext = self.decrypt_or_none(value)
        return value if plaintext is None else plaintext

    def is_encrypted(self, value) -> bool:
        """Check if a value appears to be encrypted"""
        return envelope.looks_encrypted(value)

    def mask_ssn(self, ssn):
        """Mask SSN for display, e.g. XXX-XX-1234 (accepts encrypted or plain)"""
        if not ssn:
            return ssn

        plain = self.decrypt(ssn) if self.is_encrypted(ssn) else ssn
        return masking.redact_ssn(plain)

    def mask_account_number(self, account_number):
        """Mask account number for display, e.g. ****7890 (accepts encrypted or plain)"""
        if not account_number:
            return account_number

        plain = self.decrypt(account_number) if self.is_encrypted(account_number) else account_number
        return masking.redact_account_number(plain)

    def hash(self, value):
        """Hash a value for indexing (one-way, for searching without decryption)"""
        return search_digest(self._key, value)
