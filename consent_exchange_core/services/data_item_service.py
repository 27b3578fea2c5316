"""
Provider data items.

Text content is sealed through the envelope key manager before it touches the
database; file items store a storage pointer. Items are never deleted, only
deactivated, so existing consents keep resolving.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..context.operation_context import operation
from ..crypto.envelope import EnvelopeKeyManager
from ..db.db_account_models import Provider
from ..db.db_consent_models import Consent
from ..db.db_data_item_models import DataItem
from ..enums import ACTIVE_CONSENT_STATUSES, ItemType
from ..exceptions import not_found, permission_denied
from ..schemas.data_item_schemas import DataItemCreate, DataItemRead, DataItemUpdate
from ..utils.crud_helpers import create_record, get_record_by_id, list_records, update_record
from ..utils.logger import ContextAwareLogger
from .base_service import SessionManagedService


class DataItemService(SessionManagedService):
    def __init__(
        self,
        envelope: EnvelopeKeyManager,
        session: Optional[Session] = None,
        logger: Optional[ContextAwareLogger] = None,
    ):
        super().__init__(session=session, logger=logger)
        self.envelope = envelope

    def _owned_item(self, provider_id: str, item_id: str) -> DataItem:
        item = get_record_by_id(self.session, DataItem, item_id)
        if item is None:
            raise not_found("DataItem", data_item_id=item_id)
        if item.provider_id != provider_id:
            raise permission_denied("access", f"data item {item_id}", provider_id=provider_id)
        return item

    @operation()
    def create_item(self, provider_id: str, item: DataItemCreate) -> DataItemRead:
        """
        Publish a data item for a provider.

        With ``encrypt`` set, text content (or inline file content) is sealed
        and only the ciphertext and system-wrapped key are stored.
        """
        try:
            with self.transaction():
                if get_record_by_id(self.session, Provider, provider_id) is None:
                    raise not_found("Provider", provider_id=provider_id)

                payload, wrapped_key = item.content, None
                if item.encrypt and item.content:
                    sealed = self.envelope.store(item.content)
                    payload, wrapped_key = sealed.ciphertext_b64, sealed.wrapped_key_b64

                record = create_record(
                    self.session,
                    DataItem,
                    {
                        "provider_id": provider_id,
                        "item_type": ItemType(item.item_type).value,
                        "name": item.name,
                        "description": item.description,
                        "payload": payload,
                        "location": item.location,
                        "file_name": item.file_name,
                        "wrapped_key": wrapped_key,
                        "is_active": True,
                    },
                )
                self.logger.info(
                    "Data item created",
                    extra={
                        "data_item_id": record.id,
                        "provider_id": provider_id,
                        "item_type": record.item_type,
                        "encrypted": wrapped_key is not None,
                    },
                )
                return DataItemRead.from_model(record)

        except Exception as e:
            self._handle_service_exception("create_item", e)

    @operation()
    def list_for_provider(
        self, provider_id: str, include_inactive: bool = False
    ) -> List[DataItemRead]:
        items = list_records(
            self.session,
            DataItem,
            filters={"provider_id": provider_id, "is_active": None if include_inactive else True},
        )
        return [DataItemRead.from_model(item) for item in items]

    @operation()
    def get_for_provider(self, provider_id: str, item_id: str) -> DataItemRead:
        return DataItemRead.from_model(self._owned_item(provider_id, item_id))

    @operation()
    def update_item(self, provider_id: str, item_id: str, changes: DataItemUpdate) -> DataItemRead:
        """Rename or re-describe an item; content and keys are immutable."""
        try:
            with self.transaction():
                self._owned_item(provider_id, item_id)
                item = update_record(
                    self.session, DataItem, item_id, changes.model_dump(exclude_none=True)
                )
                return DataItemRead.from_model(item)

        except Exception as e:
            self._handle_service_exception("update_item", e, item_id)

    @operation()
    def deactivate_item(self, provider_id: str, item_id: str) -> DataItemRead:
        """Hide an item from discovery and new requests; existing consents are left alone."""
        try:
            with self.transaction():
                item = self._owned_item(provider_id, item_id)
                item.is_active = False
                self.session.flush()
                return DataItemRead.from_model(item)

        except Exception as e:
            self._handle_service_exception("deactivate_item", e, item_id)

    @operation()
    def list_discoverable(self, seeker_id: str) -> List[DataItemRead]:
        """Active items the seeker holds no pending or approved consent for."""
        requested = select(Consent.data_item_id).where(
            Consent.seeker_id == seeker_id,
            Consent.status.in_(ACTIVE_CONSENT_STATUSES),
        )
        items = (
            self.session.query(DataItem)
            .filter(DataItem.is_active.is_(True), DataItem.id.not_in(requested))
            .order_by(DataItem.created_at.desc())
            .all()
        )
        return [DataItemRead.from_model(item) for item in items]
