# tests/test_interceptor.py
"""
Field interceptor tests
Tests: encrypt on flush, decrypt on load, idempotent writes, per-field failures
"""

import uuid
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from sqlalchemy import select

from clientvault.db.models.account import Account
from clientvault.db.models.person import Person

TEST_TENANT_ID = "test-tenant-123"

persons = Person.__table__
accounts = Account.__table__


def make_person(**overrides) -> Person:
    values = dict(
        tenant_id=TEST_TENANT_ID,
        first_name="Jane",
        last_name="Doe",
        email="Jane.Doe@Example.com",
        ssn="123-45-6789",
        phone_primary="+1 555 0100",
        address="1 Main Street, Springfield",
        date_of_birth=datetime(1990, 5, 15, tzinfo=timezone.utc),
    )
    values.update(overrides)
    return Person(**values)


def stored(session, column, record_id):
    """Read a column straight from the table, bypassing the ORM hooks"""
    return session.execute(select(column).where(persons.c.id == record_id)).scalar_one()


class TestBeforeWrite:
    """Test the pre-write hook on plain objects"""

    def test_encrypts_sensitive_fields(self, interceptor, encryption_service):
        person = make_person()

        originals = interceptor.before_write(person)

        assert set(originals) == {"date_of_birth", "email", "phone_primary", "address", "ssn"}
        assert encryption_service.decrypt(person.ssn) == "123-45-6789"
        assert encryption_service.decrypt(person.date_of_birth) == "1990-05-15T00:00:00.000Z"
        assert person.first_name == "Jane"

    def test_search_digest_from_plaintext(self, interceptor, encryption_service):
        person = make_person()

        interceptor.before_write(person)

        assert person.email_hash == encryption_service.hash("jane.doe@example.com")

    def test_already_encrypted_value_not_reencrypted(self, interceptor, encryption_service):
        """Test the classifier gates encryption so repeated writes are idempotent"""
        envelope = encryption_service.encrypt("123-45-6789")
        person = make_person(ssn=envelope)

        originals = interceptor.before_write(person)

        assert person.ssn == envelope
        assert "ssn" not in originals

    def test_encrypt_called_once_per_plaintext_field(self, interceptor, encryption_service, monkeypatch):
        person = make_person(email=None, phone_primary=None, address=None, date_of_birth=None)
        calls = []
        original_encrypt = encryption_service.encrypt
        monkeypatch.setattr(encryption_service, "encrypt", lambda v: calls.append(v) or original_encrypt(v))

        interceptor.before_write(person)
        interceptor.before_write(person)

        assert calls == ["123-45-6789"]

    def test_none_and_empty_untouched(self, interceptor):
        person = make_person(email=None, ssn="")

        interceptor.before_write(person)

        assert person.email is None
        assert person.ssn == ""
        assert person.email_hash is None

    def test_cleared_field_clears_search_digest(self, interceptor, encryption_service):
        person = make_person(email=None, email_hash=encryption_service.hash("jane.doe@example.com"))

        interceptor.before_write(person)

        assert person.email_hash is None

    def test_missing_field_keeps_search_digest(self, interceptor):
        """Test fields absent from the values never wipe their digest"""
        assert interceptor.encrypt_fields("persons", {"ssn": None}) == {}
        assert interceptor.encrypt_fields("persons", {"email": ""}) == {"email_hash": None}

    def test_long_base64_shaped_plaintext_is_left_unencrypted(self, interceptor):
        """Known limitation: plaintext that looks like ciphertext is skipped on write"""
        lookalike = "A" * 48
        person = make_person(address=lookalike)

        interceptor.before_write(person)

        assert person.address == lookalike

    def test_unregistered_record_type_untouched(self, interceptor):
        record = SimpleNamespace(ssn="123-45-6789")

        assert interceptor.before_write(record) == {}
        assert record.ssn == "123-45-6789"

    def test_field_failure_isolated(self, interceptor, encryption_service, monkeypatch, clientvault_logs):
        """Test one field's crypto failure does not affect the others"""
        original_encrypt = encryption_service.encrypt

        def flaky_encrypt(value):
            if value == "123-45-6789":
                raise RuntimeError("boom")
            return original_encrypt(value)

        monkeypatch.setattr(encryption_service, "encrypt", flaky_encrypt)
        person = make_person()

        interceptor.before_write(person)

        assert person.ssn == "123-45-6789"
        assert encryption_service.is_encrypted(person.email)
        warning = next(r for r in clientvault_logs.records if r.levelname == "WARNING")
        assert warning.field == "ssn"
        assert warning.record_type == "persons"
        assert "123-45-6789" not in warning.getMessage()


class TestAfterRead:
    """Test the post-read hook on plain objects"""

    def test_decrypts_and_parses_dates(self, interceptor):
        person = make_person()
        interceptor.before_write(person)

        interceptor.after_read(person)

        assert person.ssn == "123-45-6789"
        assert person.email == "Jane.Doe@Example.com"
        assert person.date_of_birth == datetime(1990, 5, 15, tzinfo=timezone.utc)

    def test_legacy_plaintext_left_alone(self, interceptor):
        person = make_person(date_of_birth="1990-05-15")

        assert interceptor.after_read(person) == {}
        assert person.ssn == "123-45-6789"
        assert person.date_of_birth == "1990-05-15"

    def test_unparseable_date_kept_as_string(self, interceptor, encryption_service):
        person = make_person(date_of_birth=encryption_service.encrypt("sometime in May"))

        interceptor.after_read(person)

        assert person.date_of_birth == "sometime in May"

    def test_non_date_field_stays_string(self, interceptor, encryption_service):
        person = make_person(address=encryption_service.encrypt("2020-01-01T00:00:00.000Z"))

        interceptor.after_read(person)

        assert person.address == "2020-01-01T00:00:00.000Z"

    def test_foreign_ciphertext_left_as_is(self, interceptor, other_key):
        from clientvault.core.encryption import EncryptionService

        foreign = EncryptionService(other_key).encrypt("123-45-6789")
        person = make_person(ssn=foreign)

        interceptor.after_read(person)

        assert person.ssn == foreign


class TestSessionHooks:
    """Test automatic encryption through SQLAlchemy sessions"""

    def test_stored_values_are_ciphertext(self, db_session, encryption_service):
        person = make_person()
        db_session.add(person)
        db_session.commit()

        raw_ssn = stored(db_session, persons.c.ssn, person.id)
        raw_email = stored(db_session, persons.c.email, person.id)
        raw_dob = stored(db_session, persons.c.date_of_birth, person.id)

        assert "123-45-6789" not in raw_ssn
        assert encryption_service.decrypt(raw_ssn) == "123-45-6789"
        assert encryption_service.decrypt(raw_email) == "Jane.Doe@Example.com"
        assert encryption_service.decrypt(raw_dob) == "1990-05-15T00:00:00.000Z"
        assert stored(db_session, persons.c.first_name, person.id) == "Jane"

    def test_plaintext_kept_in_memory_after_flush(self, db_session):
        person = make_person()
        db_session.add(person)
        db_session.flush()

        assert person.ssn == "123-45-6789"
        assert person.date_of_birth == datetime(1990, 5, 15, tzinfo=timezone.utc)
        assert not db_session.is_modified(person)

    def test_decrypted_on_load(self, db_session):
        person = make_person()
        db_session.add(person)
        db_session.commit()
        person_id = person.id
        db_session.expunge_all()

        loaded = db_session.get(Person, person_id)

        assert loaded.ssn == "123-45-6789"
        assert loaded.email == "Jane.Doe@Example.com"
        assert loaded.date_of_birth == datetime(1990, 5, 15, tzinfo=timezone.utc)
        assert loaded not in db_session.dirty

    def test_decrypted_after_expire(self, db_session):
        """Test expired attributes are decrypted when refreshed"""
        person = make_person()
        db_session.add(person)
        db_session.commit()

        assert person.ssn == "123-45-6789"

    def test_update_reencrypts(self, db_session, encryption_service):
        person = make_person()
        db_session.add(person)
        db_session.commit()

        person.ssn = "987-65-4321"
        db_session.commit()

        assert encryption_service.decrypt(stored(db_session, persons.c.ssn, person.id)) == "987-65-4321"
        assert person.ssn == "987-65-4321"

    def test_update_refreshes_search_digest(self, db_session, encryption_service):
        person = make_person()
        db_session.add(person)
        db_session.commit()

        person.email = "new@example.com"
        db_session.commit()

        assert stored(db_session, persons.c.email_hash, person.id) == encryption_service.hash("NEW@example.com")

    def test_clearing_field_clears_search_digest(self, db_session):
        person = make_person(email="old@example.com")
        db_session.add(person)
        db_session.commit()

        person.email = None
        db_session.commit()

        assert stored(db_session, persons.c.email_hash, person.id) is None
        assert stored(db_session, persons.c.email, person.id) is None

    def test_unrelated_update_keeps_search_digest(self, db_session, encryption_service):
        """Test updating another field does not touch an unloaded digest"""
        person = make_person()
        db_session.add(person)
        db_session.commit()

        person.kyc_status = "verified"
        db_session.commit()

        assert stored(db_session, persons.c.email_hash, person.id) == encryption_service.hash("jane.doe@example.com")

    def test_legacy_rows_readable(self, db_session):
        """Test rows written before encryption existed load unchanged"""
        db_session.execute(persons.insert().values(
            id=uuid.uuid4(),
            tenant_id=TEST_TENANT_ID,
            first_name="Legacy",
            last_name="Row",
            ssn="111-22-3333",
            email="legacy@example.com",
            date_of_birth="1970-01-01",
            is_primary_contact=False,
            kyc_status="pending",
            created_at=datetime(2020, 1, 1),
            updated_at=datetime(2020, 1, 1),
        ))
        db_session.commit()

        legacy = db_session.execute(select(Person).where(Person.first_name == "Legacy")).scalar_one()

        assert legacy.ssn == "111-22-3333"
        assert legacy.email == "legacy@example.com"
        assert legacy.date_of_birth == "1970-01-01"

    def test_legacy_row_encrypted_on_next_write(self, db_session, encryption_service):
        """Test touching a legacy row migrates its plaintext to ciphertext"""
        legacy_id = uuid.uuid4()
        db_session.execute(persons.insert().values(
            id=legacy_id,
            tenant_id=TEST_TENANT_ID,
            first_name="Legacy",
            last_name="Row",
            ssn="111-22-3333",
            is_primary_contact=False,
            kyc_status="pending",
            created_at=datetime(2020, 1, 1),
            updated_at=datetime(2020, 1, 1),
        ))
        db_session.commit()

        legacy = db_session.get(Person, legacy_id)
        legacy.kyc_status = "verified"
        db_session.commit()

        raw = stored(db_session, persons.c.ssn, legacy_id)
        assert encryption_service.is_encrypted(raw)
        assert encryption_service.decrypt(raw) == "111-22-3333"

    def test_accounts(self, db_session, encryption_service):
        account = Account(tenant_id=TEST_TENANT_ID, account_number="1234567890", account_name="Joint")
        db_session.add(account)
        db_session.commit()

        raw = db_session.execute(
            select(accounts.c.account_number).where(accounts.c.id == account.id)
        ).scalar_one()

        assert encryption_service.decrypt(raw) == "1234567890"
        assert encryption_service.mask_account_number(raw) == "****7890"

    def test_session_without_interceptor_untouched(self, raw_session):
        """Test sessions only encrypt when an interceptor is attached"""
        person = make_person(date_of_birth=None)
        raw_session.add(person)
        raw_session.commit()

        assert stored(raw_session, persons.c.ssn, person.id) == "123-45-6789"

    def test_ciphertext_unreadable_without_interceptor(self, db_session, raw_session):
        person = make_person()
        db_session.add(person)
        db_session.commit()

        other = raw_session.get(Person, person.id)

        assert other.ssn != "123-45-6789"

    def test_interceptors_isolated_per_session(self, engine, other_key, registry, encryption_service):
        """Test a session keyed differently cannot read another key's data"""
        from sqlalchemy.orm import Session

        from clientvault.core.encryption import EncryptionService
        from clientvault.db.subscribers import EncryptionInterceptor

        other = EncryptionInterceptor(EncryptionService(other_key), registry)
        with Session(engine) as session:
            other.attach(session)
            person = make_person(date_of_birth=None)
            session.add(person)
            session.commit()
            raw = stored(session, persons.c.ssn, person.id)

        assert EncryptionService(other_key).decrypt(raw) == "123-45-6789"
        assert encryption_service.decrypt(raw) == raw


@pytest.mark.parametrize("field", ["date_of_birth", "dob", "StartDate"])
def test_date_fields_recognized(field):
    from clientvault.db.subscribers.encryption import _is_date_field

    assert _is_date_field(field)


def test_non_date_field():
    from clientvault.db.subscribers.encryption import _is_date_field

    assert not _is_date_field("email")
