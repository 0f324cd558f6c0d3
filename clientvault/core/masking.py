# clientvault/core/masking.py
"""
Display masking for sensitive identifiers
Operates on plaintext; EncryptionService decrypts before calling these
"""

import re

SSN_REDACTED = "XXX-XX-XXXX"
SSN_MASK_PREFIX = "XXX-XX-"
ACCOUNT_MASK_PREFIX = "****"
VISIBLE_CHARS = 4

_NON_DIGITS = re.compile(r"\D", re.ASCII)


def redact_ssn(value):
    """Show only the last 4 digits of a 9-digit SSN"""
    if not value:
        return value

    digits = _NON_DIGITS.sub("", str(value))

    if len(digits) != 9:
        return SSN_REDACTED

    return f"{SSN_MASK_PREFIX}{digits[-VISIBLE_CHARS:]}"


def redact_account_number(value):
    """Show only the last 4 characters of an account number"""
    if not value:
        return value

    value = str(value)

    # Nothing meaningful to hide
    if len(value) <= VISIBLE_CHARS:
        return value

    return f"{ACCOUNT_MASK_PREFIX}{value[-VISIBLE_CHARS:]}"
