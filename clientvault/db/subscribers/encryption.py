# clientvault/db/subscribers/encryption.py
"""
SQLAlchemy hooks that encrypt sensitive fields on flush and decrypt
them on load.

Fields listed in the SensitiveFieldRegistry are processed automatically
for every session that has an EncryptionInterceptor attached. Sessions
without one are left alone.
"""

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from clientvault.core.encryption import EncryptionService, canonical_timestamp, parse_timestamp
from clientvault.db.base import Base
from clientvault.db.sensitive_fields import SensitiveFieldRegistry

logger = logging.getLogger("clientvault.interceptor")

INTERCEPTOR_INFO_KEY = "clientvault.encryption_interceptor"
_PENDING_PLAINTEXT_KEY = "clientvault.pending_plaintext"

# Field names that hold dates/timestamps
_DATE_FIELD_MARKERS = ("date", "dob")


def _is_date_field(field: str) -> bool:
    name = field.lower()
    return any(marker in name for marker in _DATE_FIELD_MARKERS)


class EncryptionInterceptor:
    """Encrypt/decrypt a record's sensitive fields on write/read"""

    def __init__(self, service: EncryptionService, registry: SensitiveFieldRegistry):
        self.service = service
        self.registry = registry

    def session_info(self) -> Dict[str, Any]:
        """``info`` for a session factory whose sessions use this interceptor"""
        return {INTERCEPTOR_INFO_KEY: self}

    def attach(self, session):
        """Route an existing session's flushes and loads through this interceptor"""
        session.info[INTERCEPTOR_INFO_KEY] = self
        return session

    @staticmethod
    def for_session(session) -> Optional["EncryptionInterceptor"]:
        if session is None:
            return None
        return session.info.get(INTERCEPTOR_INFO_KEY)

    def encrypt_fields(self, record_type: str, values: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Compute the stored form of a record's sensitive fields.

        Returns only the attributes that change: encrypted fields plus any
        search digest columns refreshed from plaintext, or cleared when
        their field is set to None or "". Values already
        classified as ciphertext are skipped so repeated writes never
        double-encrypt.
        """
        updates: Dict[str, Any] = {}
        indexes = self.registry.get_search_indexes(record_type)

        for field in self.registry.get_sensitive_fields(record_type):
            value = values.get(field)
            if value is None or value == "":
                # A cleared value must not stay findable; unloaded fields keep their digest
                if field in values and field in indexes:
                    updates[indexes[field]] = None
                continue

            try:
                if isinstance(value, date):
                    plaintext = canonical_timestamp(value)
                elif isinstance(value, str) and not self.service.is_encrypted(value):
                    plaintext = value
                else:
                    continue

                encrypted = self.service.encrypt(plaintext)
                digest_field = indexes.get(field)
                digest = self.service.hash(plaintext) if digest_field else None
            except Exception as exc:
                logger.warning(
                    "Could not encrypt sensitive field; leaving value as-is",
                    extra={"record_type": record_type, "field": field, "error": type(exc).__name__},
                )
                continue

            updates[field] = encrypted
            if digest_field:
                updates[digest_field] = digest

        return updates

    def decrypt_fields(
        self,
        record_type: str,
        values: Mapping[str, Any],
        only: Optional[Iterable[str]] = None,
    ) -> Dict[str, Any]:
        """Compute the in-memory form of a record's stored sensitive fields"""
        updates: Dict[str, Any] = {}
        fields = self.registry.get_sensitive_fields(record_type)
        if only is not None:
            wanted = set(only)
            fields = tuple(f for f in fields if f in wanted)

        for field in fields:
            value = values.get(field)
            if not isinstance(value, str) or not self.service.is_encrypted(value):
                continue

            try:
                decrypted = self.service.decrypt(value)
                if _is_date_field(field):
                    parsed = parse_timestamp(decrypted)
                    if parsed is not None:
                        decrypted = parsed
            except Exception as exc:
                logger.warning(
                    "Could not decrypt sensitive field; leaving value as-is",
                    extra={"record_type": record_type, "field": field, "error": type(exc).__name__},
                )
                continue

            updates[field] = decrypted

        return updates

    def before_write(self, record) -> Dict[str, Any]:
        """Encrypt sensitive fields in place before insert/update.

        Returns the original plaintext of every field that was encrypted.
        """
        if record is None:
            return {}

        record_type = self.registry.record_type_of(record)
        fields = self.registry.get_sensitive_fields(record_type)
        if not fields:
            return {}

        values = {field: getattr(record, field, None) for field in fields}
        updates = self.encrypt_fields(record_type, values)

        for attr, value in updates.items():
            setattr(record, attr, value)

        return {field: values[field] for field in fields if field in updates}

    def after_read(self, record) -> Dict[str, Any]:
        """Decrypt sensitive fields in place after a record is loaded"""
        if record is None:
            return {}

        record_type = self.registry.record_type_of(record)
        fields = self.registry.get_sensitive_fields(record_type)
        if not fields:
            return {}

        values = {field: getattr(record, field, None) for field in fields}
        updates = self.decrypt_fields(record_type, values)

        for attr, value in updates.items():
            setattr(record, attr, value)

        return updates


def _restore_committed(record, values: Mapping[str, Any]) -> None:
    # Set without history so the record is not marked dirty
    for attr, value in values.items():
        set_committed_value(record, attr, value)


@event.listens_for(Session, "before_flush")
def _encrypt_before_flush(session, flush_context, instances):
    interceptor = EncryptionInterceptor.for_session(session)
    if interceptor is None:
        return

    pending: List[Tuple[Any, Dict[str, Any]]] = []
    session.info[_PENDING_PLAINTEXT_KEY] = pending

    for record in list(session.new) + list(session.dirty):
        record_type = interceptor.registry.record_type_of(record)
        fields = interceptor.registry.get_sensitive_fields(record_type)
        if not fields:
            continue

        # Read the state dict so expired attributes are not loaded mid-flush
        values = inspect(record).dict
        updates = interceptor.encrypt_fields(record_type, values)
        if not updates:
            continue

        originals = {field: values[field] for field in fields if field in updates}
        for attr, value in updates.items():
            setattr(record, attr, value)
        pending.append((record, originals))


@event.listens_for(Session, "after_flush_postexec")
def _restore_plaintext_after_flush(session, flush_context):
    pending = session.info.pop(_PENDING_PLAINTEXT_KEY, None)
    if not pending:
        return

    for record, originals in pending:
        state = inspect(record)
        if state.deleted or state.detached:
            continue
        _restore_committed(record, originals)


def _decrypt_loaded(target, context, attrs=None) -> None:
    interceptor = EncryptionInterceptor.for_session(getattr(context, "session", None))
    if interceptor is None:
        return

    record_type = interceptor.registry.record_type_of(target)
    if not interceptor.registry.get_sensitive_fields(record_type):
        return

    updates = interceptor.decrypt_fields(record_type, inspect(target).dict, only=attrs)
    _restore_committed(target, updates)


@event.listens_for(Base, "load", propagate=True)
def _decrypt_on_load(target, context):
    _decrypt_loaded(target, context)


@event.listens_for(Base, "refresh", propagate=True)
def _decrypt_on_refresh(target, context, attrs):
    _decrypt_loaded(target, context, attrs)
