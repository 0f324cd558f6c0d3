# clientvault/db/types.py
"""
Column-level encryption for individual Text columns

    notes = Column(EncryptedText(service), nullable=True)

An alternative to the session interceptor for columns outside the
sensitive field registry. Do not combine both on the same column.
"""

from sqlalchemy.types import Text, TypeDecorator

from clientvault.core.encryption import EncryptionService


class EncryptedText(TypeDecorator):
    """Encrypt on write, decrypt on read; legacy plaintext reads back unchanged"""

    impl = Text
    cache_ok = True

    def __init__(self, service: EncryptionService, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.service = service

    def process_bind_param(self, value, dialect):
        if value is None or value == "":
            return value

        if isinstance(value, str) and self.service.is_encrypted(value):
            return value

        return self.service.encrypt(value)

    def process_result_value(self, value, dialect):
        return self.service.decrypt(value)
