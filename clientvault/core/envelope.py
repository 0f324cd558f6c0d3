# clientvault/core/envelope.py
"""
Stored ciphertext format

    base64( IV (16 bytes) || AuthTag (16 bytes) || Ciphertext )

The envelope carries no version or algorithm tag: one algorithm
(AES-256-GCM) and one key for the lifetime of the dataset.
"""

import base64
import binascii
import math
import re
from typing import NamedTuple, Optional

IV_LENGTH = 16  # 128 bits
AUTH_TAG_LENGTH = 16  # 128 bits
MIN_ENVELOPE_BYTES = IV_LENGTH + AUTH_TAG_LENGTH + 1
MIN_ENCODED_LENGTH = math.ceil(MIN_ENVELOPE_BYTES * 4 / 3)

_BASE64_PATTERN = re.compile(r"[A-Za-z0-9+/]+=*")


class Envelope(NamedTuple):
    iv: bytes
    auth_tag: bytes
    ciphertext: bytes


def pack(iv: bytes, auth_tag: bytes, ciphertext: bytes) -> str:
    """Concatenate envelope parts and base64 encode"""
    return base64.b64encode(iv + auth_tag + ciphertext).decode("ascii")


def unpack(value: str) -> Optional[Envelope]:
    """Split an encoded envelope, or return None if it cannot be one"""
    try:
        combined = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return None

    if len(combined) < MIN_ENVELOPE_BYTES:
        # Too short to hold IV + tag + 1 byte: legacy plaintext
        return None

    return Envelope(
        iv=combined[:IV_LENGTH],
        auth_tag=combined[IV_LENGTH:IV_LENGTH + AUTH_TAG_LENGTH],
        ciphertext=combined[IV_LENGTH + AUTH_TAG_LENGTH:],
    )


def looks_encrypted(value) -> bool:
    """
    Heuristic check for values produced by ``EncryptionService.encrypt``.

    A value qualifies when it is long enough to hold an envelope and uses
    only the base64 alphabet. Long plaintext made only of base64 characters
    is misclassified as ciphertext; callers gating encryption on this check
    will leave such a value unencrypted.
    """
    if not value or not isinstance(value, str):
        return False

    if len(value) < MIN_ENCODED_LENGTH:
        return False

    return _BASE64_PATTERN.fullmatch(value) is not None
