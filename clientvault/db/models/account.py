# clientvault/db/models/account.py
import uuid

from sqlalchemy import Column, String, Text, Uuid

from clientvault.db.base import BaseModel


class Account(BaseModel):
    """Custodial account"""
    __tablename__ = "accounts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    household_id = Column(String(100), nullable=True, index=True)

    account_number = Column(Text, nullable=False)  # encrypted
    account_number_hash = Column(String(64), nullable=True, unique=True, index=True)
    account_name = Column(String(255), nullable=False)
    account_type = Column(String(50), default="individual", nullable=False)  # individual, joint, trust, ira, ...
    status = Column(String(50), default="pending", nullable=False)  # pending, open, closed, restricted
