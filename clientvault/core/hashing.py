# clientvault/core/hashing.py
import hashlib
import hmac
from typing import Optional

from clientvault.core.keys import DerivedKey


def search_digest(key: DerivedKey, value: Optional[str]) -> Optional[str]:
    """
    Generate a deterministic, case-insensitive search digest.

    Exact-match lookups on encrypted columns depend on stable hashing.
    Every invocation with the same key and the same value (ignoring case)
    must produce identical output. The digest is stored next to the
    ciphertext, never instead of it.

    Args:
        key: Process encryption key, used as the HMAC key
        value: Plaintext to index (e.g., an email address)

    Returns:
        HMAC-SHA256 hexdigest of the lowercased value, or the value itself
        when it is None or empty
    """
    if not value:
        return value

    normalized = str(value).lower()
    return hmac.new(key.material, normalized.encode("utf-8"), hashlib.sha256).hexdigest()
