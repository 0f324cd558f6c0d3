"""ClientVault: transparent field-level encryption for client PII."""

__version__ = "1.0.0"
