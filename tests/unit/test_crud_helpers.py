"""
Tests for the generic CRUD helpers.
"""

import pytest

from consent_exchange_core.db import Credential, DataItem
from consent_exchange_core.exceptions import ErrorCode, NotFoundError, RepositoryError
from consent_exchange_core.utils.crud_helpers import (
    conditional_update,
    count_records,
    create_record,
    get_record,
    get_record_by_id,
    list_records,
    record_exists,
    update_record,
)
from tests.fixtures.factories import CredentialFactory, DataItemFactory, ProviderFactory


class TestCreateRecord:
    def test_create_assigns_id(self, db_session):
        """Created records are flushed, so defaults such as the id are populated."""
        record = create_record(
            db_session,
            Credential,
            {"username": "new_user", "password_hash": "h", "role": "seeker"},
        )

        assert record.id
        assert record.created_at is not None

    def test_duplicate_unique_column(self, db_session):
        CredentialFactory(username="dup")

        with pytest.raises(RepositoryError) as exc_info:
            create_record(
                db_session,
                Credential,
                {"username": "dup", "password_hash": "h", "role": "seeker"},
            )

        assert exc_info.value.error_code == ErrorCode.DUPLICATE
        assert exc_info.value.status_code == 409


class TestReadHelpers:
    def test_get_record_ignores_none_filters(self, db_session):
        credential = CredentialFactory(username="alpha", role="admin")

        assert get_record(db_session, Credential, {"username": "alpha", "role": None}) is credential
        assert get_record(db_session, Credential, {"username": "beta"}) is None

    @pytest.mark.parametrize("record_id", [None, ""])
    def test_get_by_empty_id(self, db_session, record_id):
        assert get_record_by_id(db_session, Credential, record_id) is None

    def test_list_count_and_exists(self, db_session):
        provider = ProviderFactory()
        DataItemFactory.create_batch(3, provider_id=provider.id)
        DataItemFactory(provider_id=provider.id, is_active=False)

        filters = {"provider_id": provider.id, "is_active": True}
        assert len(list_records(db_session, DataItem, filters=filters)) == 3
        assert len(list_records(db_session, DataItem, filters=filters, limit=2)) == 2
        assert count_records(db_session, DataItem, {"provider_id": provider.id}) == 4
        assert record_exists(db_session, DataItem, {"is_active": False})
        assert not record_exists(db_session, DataItem, {"provider_id": "nobody"})

    def test_list_order_by_field(self, db_session):
        for name in ["charlie", "alpha", "bravo"]:
            CredentialFactory(username=name)

        names = [c.username for c in list_records(db_session, Credential, order_by="username")]

        assert names == ["alpha", "bravo", "charlie"]


class TestUpdateRecord:
    def test_update_applies_non_none_values(self, db_session):
        item = DataItemFactory(name="Before", description="Kept")

        update_record(db_session, DataItem, item.id, {"name": "After", "description": None})

        assert item.name == "After"
        assert item.description == "Kept"

    def test_update_missing_record(self, db_session):
        with pytest.raises(NotFoundError):
            update_record(db_session, DataItem, "missing", {"name": "x"})


class TestConditionalUpdate:
    def test_update_when_expected_matches(self, db_session):
        credential = CredentialFactory(role="seeker")

        landed = conditional_update(
            db_session, Credential, credential.id, expected={"role": "seeker"}, values={"role": "admin"}
        )
        db_session.refresh(credential)

        assert landed is True
        assert credential.role == "admin"

    def test_no_update_when_expected_differs(self, db_session):
        credential = CredentialFactory(role="seeker")

        landed = conditional_update(
            db_session,
            Credential,
            credential.id,
            expected={"role": "provider"},
            values={"role": "admin"},
        )
        db_session.refresh(credential)

        assert landed is False
        assert credential.role == "seeker"
