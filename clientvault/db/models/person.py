# clientvault/db/models/person.py
import uuid

from sqlalchemy import Boolean, Column, String, Text, Uuid

from clientvault.db.base import BaseModel


class Person(BaseModel):
    """Household member; PII columns hold ciphertext at rest"""
    __tablename__ = "persons"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    household_id = Column(String(100), nullable=True, index=True)

    # Profile
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    middle_name = Column(String(255), nullable=True)

    # Encrypted (see clientvault.db.sensitive_fields)
    date_of_birth = Column(Text, nullable=True)
    email = Column(Text, nullable=True)
    phone_primary = Column(Text, nullable=True)
    address = Column(Text, nullable=True)
    ssn = Column(Text, nullable=True)

    # Search digest of email
    email_hash = Column(String(64), nullable=True, index=True)

    # Status
    is_primary_contact = Column(Boolean, default=False, nullable=False)
    kyc_status = Column(String(20), default="pending", nullable=False)  # pending, verified, failed
