"""
Access gate for approved consents.

Checks the latest consent for a (data item, seeker) pair, counts the access
with one guarded UPDATE and releases the item's payload together with the
data key wrapped for the seeker.
"""

from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ..context.operation_context import operation
from ..db.db_base import utc_now
from ..db.db_consent_models import Consent
from ..db.db_data_item_models import DataItem
from ..enums import ConsentStatus, HistoryAction, Role
from ..exceptions import (
    ConflictError,
    ErrorCode,
    ExhaustedError,
    ExpiredError,
    NotApprovedError,
    ValidationError,
    not_found,
)
from ..schemas.consent_schemas import AccessGrant
from ..utils.consent_utils import increment_access_count
from ..utils.crud_helpers import get_record_by_id
from ..utils.logger import ContextAwareLogger
from .audit_log import AuditLog
from .base_service import SessionManagedService


class AccessGate(SessionManagedService):
    def __init__(
        self,
        session: Optional[Session] = None,
        audit_log: Optional[AuditLog] = None,
        clock: Optional[Callable[[], datetime]] = None,
        logger: Optional[ContextAwareLogger] = None,
    ):
        super().__init__(session=session, logger=logger)
        self.audit_log = audit_log or AuditLog(session=self.session, logger=self.logger)
        self.clock = clock or utc_now

    def _latest_consent(self, seeker_id: str, data_item_id: str) -> Optional[Consent]:
        return (
            self.session.query(Consent)
            .filter(Consent.data_item_id == data_item_id, Consent.seeker_id == seeker_id)
            .order_by(Consent.requested_at.desc())
            .first()
        )

    @staticmethod
    def _check_usable(consent: Consent, now: datetime) -> None:
        """Raise the error matching the first guard the consent fails."""
        if consent.status != ConsentStatus.APPROVED.value:
            raise NotApprovedError(
                f"Consent is {consent.status}, not approved",
                consent_id=consent.id,
                status=consent.status,
            )
        if consent.expires_at is not None and now > consent.expires_at:
            raise ExpiredError(
                consent_id=consent.id, expires_at=consent.expires_at.isoformat()
            )
        if consent.max_access_count is not None and consent.access_count >= consent.max_access_count:
            raise ExhaustedError(
                consent_id=consent.id,
                access_count=consent.access_count,
                max_access_count=consent.max_access_count,
            )

    @operation()
    def authorize(self, seeker_id: str, data_item_id: str) -> AccessGrant:
        """
        Release a data item to a seeker holding a usable consent.

        Stored status is never changed here; an expired or exhausted consent
        stays APPROVED and simply stops granting access.

        Raises:
            NotFoundError: No consent exists for the pair
            NotApprovedError: Latest consent is pending or rejected
            ExpiredError: Consent is past its expiry
            ExhaustedError: Consent has used its maximum access count
        """
        if not seeker_id or not data_item_id:
            raise ValidationError(
                "seeker_id and data_item_id are required",
                error_code=ErrorCode.MISSING_REQUIRED,
                field="data_item_id" if seeker_id else "seeker_id",
            )

        try:
            with self.transaction():
                consent = self._latest_consent(seeker_id, data_item_id)
                if consent is None:
                    raise not_found("Consent", seeker_id=seeker_id, data_item_id=data_item_id)

                now = self.clock()
                self._check_usable(consent, now)

                if not increment_access_count(self.session, consent.id, now):
                    # Another access or decision got there first
                    self.session.refresh(consent)
                    self._check_usable(consent, now)
                    raise ConflictError(
                        "Consent changed while access was being granted", consent_id=consent.id
                    )
                self.session.refresh(consent)

                item = get_record_by_id(self.session, DataItem, data_item_id)
                if item is None:
                    raise not_found("DataItem", data_item_id=data_item_id)

                self.audit_log.record(
                    consent.id,
                    HistoryAction.ACCESSED,
                    seeker_id,
                    Role.SEEKER,
                    details=f"Access {consent.access_count}"
                    + (f" of {consent.max_access_count}" if consent.max_access_count else ""),
                    timestamp=now,
                )

                return AccessGrant(
                    consent_id=consent.id,
                    data_item_id=item.id,
                    item_type=item.item_type,
                    display_name=item.file_name or item.name,
                    payload=item.payload,
                    location=item.location,
                    file_name=item.file_name,
                    wrapped_key_for_seeker=consent.wrapped_key_for_seeker,
                    access_count=consent.access_count,
                    max_access_count=consent.max_access_count,
                    expires_at=consent.expires_at,
                )

        except Exception as e:
            self._handle_service_exception("authorize", e, data_item_id)
