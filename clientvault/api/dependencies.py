# clientvault/api/dependencies.py
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from clientvault.core.encryption import EncryptionService
from clientvault.db.database import get_db
from clientvault.db.repositories.account_repository import AccountRepository
from clientvault.db.repositories.person_repository import PersonRepository
from clientvault.db.subscribers import EncryptionInterceptor


def get_encryption_service(request: Request) -> EncryptionService:
    """Process-wide encryption service built at startup"""
    return request.app.state.encryption_service


def get_interceptor(request: Request) -> EncryptionInterceptor:
    return request.app.state.encryption_interceptor


def get_person_repository(
    db: AsyncSession = Depends(get_db),
    encryption: EncryptionService = Depends(get_encryption_service),
) -> PersonRepository:
    return PersonRepository(db, encryption)


def get_account_repository(
    db: AsyncSession = Depends(get_db),
    encryption: EncryptionService = Depends(get_encryption_service),
) -> AccountRepository:
    return AccountRepository(db, encryption)
