# clientvault/db/repositories/base.py
from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from clientvault.core.exceptions import UnsearchableFieldError
from clientvault.db.sensitive_fields import SensitiveFieldRegistry
from clientvault.db.subscribers import EncryptionInterceptor

ModelType = TypeVar("ModelType")


class BaseRepository(Generic[ModelType]):
    """Base repository with common CRUD operations

    Writes go through the ORM unit of work so the encryption hooks run;
    bulk UPDATE statements would store plaintext.
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    def _registry(self) -> SensitiveFieldRegistry:
        interceptor = EncryptionInterceptor.for_session(self.session)
        return interceptor.registry if interceptor else SensitiveFieldRegistry.default()

    async def get(self, id: Any) -> Optional[ModelType]:
        """Get by ID"""
        return await self.session.get(self.model, id)

    async def get_multi(
        self,
        tenant_id: str,
        skip: int = 0,
        limit: int = 100,
        filters: Optional[dict] = None
    ) -> List[ModelType]:
        """Get multiple records for a tenant

        Filters on encrypted columns raise UnsearchableFieldError; stored
        ciphertext never equals the plaintext being searched for.
        """
        query = select(self.model).where(self.model.tenant_id == tenant_id)

        if filters:
            registry = self._registry()
            record_type = self.model.__tablename__
            for key, value in filters.items():
                if registry.is_sensitive(record_type, key):
                    raise UnsearchableFieldError(record_type, key)
                query = query.where(getattr(self.model, key) == value)

        query = query.offset(skip).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def create(self, obj_in: dict) -> ModelType:
        """Create new record"""
        db_obj = self.model(**obj_in)
        self.session.add(db_obj)
        await self.session.commit()
        await self.session.refresh(db_obj)
        return db_obj

    async def update(self, id: Any, obj_in: dict) -> Optional[ModelType]:
        """Update record"""
        db_obj = await self.get(id)
        if db_obj is None:
            return None

        for key, value in obj_in.items():
            setattr(db_obj, key, value)
        await self.session.commit()
        await self.session.refresh(db_obj)
        return db_obj

    async def delete(self, id: Any) -> bool:
        """Delete record"""
        result = await self.session.execute(
            delete(self.model).where(self.model.id == id)
        )
        await self.session.commit()
        return result.rowcount > 0
