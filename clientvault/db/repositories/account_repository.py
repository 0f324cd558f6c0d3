# clientvault/db/repositories/account_repository.py
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clientvault.core.encryption import EncryptionService
from clientvault.db.models.account import Account
from clientvault.db.repositories.base import BaseRepository


class AccountRepository(BaseRepository[Account]):
    """Repository for Account operations"""

    def __init__(self, session: AsyncSession, encryption: EncryptionService):
        super().__init__(Account, session)
        self.encryption = encryption

    async def get_by_account_number(self, tenant_id: str, account_number: str) -> Optional[Account]:
        """Get account by its number without decrypting every row"""
        digest = self.encryption.hash(account_number)
        if not digest:
            return None

        result = await self.session.execute(
            select(Account)
            .where(Account.tenant_id == tenant_id)
            .where(Account.account_number_hash == digest)
        )
        return result.scalar_one_or_none()

    def masked_account_number(self, account: Account) -> Optional[str]:
        """Account number for display"""
        return self.encryption.mask_account_number(account.account_number)
