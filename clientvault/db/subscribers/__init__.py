# clientvault/db/subscribers/__init__.py
# Importing this package registers the SQLAlchemy event listeners.
from clientvault.db.subscribers.encryption import EncryptionInterceptor, INTERCEPTOR_INFO_KEY

__all__ = ["EncryptionInterceptor", "INTERCEPTOR_INFO_KEY"]
