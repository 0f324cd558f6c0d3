# clientvault/db/models/__init__.py
from clientvault.db.models.person import Person
from clientvault.db.models.account import Account

__all__ = ["Person", "Account"]
