# clientvault/core/exceptions.py
"""Error types raised by ClientVault.

Decryption problems are never raised; see ``EncryptionService.decrypt``.
Only configuration errors surface, and they surface at startup.
"""


class ClientVaultError(Exception):
    """Base class for ClientVault errors"""


class ConfigurationError(ClientVaultError):
    """Invalid or incomplete configuration"""


class MissingEncryptionKeyError(ConfigurationError):
    """No encryption secret configured in production"""

    def __init__(self, environment: str = "production"):
        super().__init__(
            f"ENCRYPTION_KEY must be set in the {environment} environment. "
            "PII data cannot be secured without it."
        )
        self.environment = environment


class UnsearchableFieldError(ClientVaultError, ValueError):
    """Query compares an encrypted column to a plaintext value"""

    def __init__(self, record_type: str, field: str):
        super().__init__(
            f"{record_type}.{field} is stored encrypted and cannot be filtered on; "
            "use the search digest lookup instead"
        )
        self.record_type = record_type
        self.field = field
