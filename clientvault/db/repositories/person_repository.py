# clientvault/db/repositories/person_repository.py
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clientvault.core.encryption import EncryptionService
from clientvault.db.models.person import Person
from clientvault.db.repositories.base import BaseRepository


class PersonRepository(BaseRepository[Person]):
    """Repository for Person operations"""

    def __init__(self, session: AsyncSession, encryption: EncryptionService):
        super().__init__(Person, session)
        self.encryption = encryption

    async def get_by_email(self, tenant_id: str, email: str) -> Optional[Person]:
        """Get person by email (case-insensitive, via the search digest)"""
        digest = self.encryption.hash(email)
        if not digest:
            return None

        result = await self.session.execute(
            select(Person)
            .where(Person.tenant_id == tenant_id)
            .where(Person.email_hash == digest)
        )
        return result.scalars().first()

    async def get_by_household(self, tenant_id: str, household_id: str) -> List[Person]:
        """Get members of a household"""
        result = await self.session.execute(
            select(Person)
            .where(Person.tenant_id == tenant_id)
            .where(Person.household_id == household_id)
        )
        return list(result.scalars().all())

    def masked_ssn(self, person: Person) -> Optional[str]:
        """SSN for display"""
        return self.encryption.mask_ssn(person.ssn)
