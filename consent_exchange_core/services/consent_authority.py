"""
Consent state machine.

A consent starts PENDING and moves exactly once, to APPROVED or REJECTED.
Expiry and exhaustion are never stored; the access gate evaluates them at
read time. Each transition is a single conditional UPDATE on
``status = 'pending'`` so concurrent deciders cannot both win.
"""

from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from ..context.operation_context import operation
from ..crypto.envelope import EnvelopeKeyManager, b64decode, b64encode
from ..db.db_account_models import Seeker
from ..db.db_base import as_utc, utc_now
from ..db.db_consent_models import Consent
from ..db.db_data_item_models import DataItem
from ..enums import ACTIVE_CONSENT_STATUSES, ConsentStatus, HistoryAction, Role
from ..exceptions import (
    CryptoError,
    ErrorCode,
    RepositoryError,
    ValidationError,
    invalid_transition,
    not_found,
    permission_denied,
    validation_failed,
)
from ..schemas.consent_schemas import ConsentRead
from ..utils.consent_utils import transition_consent_status
from ..utils.crud_helpers import create_record, get_record_by_id, list_records
from ..utils.logger import ContextAwareLogger
from .audit_log import AuditLog
from .base_service import SessionManagedService


class ConsentAuthority(SessionManagedService):
    """Request, approve and reject consents on provider data items."""

    def __init__(
        self,
        envelope: EnvelopeKeyManager,
        session: Optional[Session] = None,
        audit_log: Optional[AuditLog] = None,
        clock: Optional[Callable[[], datetime]] = None,
        logger: Optional[ContextAwareLogger] = None,
    ):
        super().__init__(session=session, logger=logger)
        self.envelope = envelope
        self.audit_log = audit_log or AuditLog(session=self.session, logger=self.logger)
        self.clock = clock or utc_now

    # ==================== VALIDATION ====================

    def _validate_limits(
        self, expires_at: Optional[datetime], max_access_count: Optional[int]
    ) -> Optional[datetime]:
        if max_access_count is not None and max_access_count < 1:
            raise validation_failed("max_access_count", max_access_count, "must be at least 1")
        expires_at = as_utc(expires_at)
        if expires_at is not None and expires_at <= self.clock():
            raise validation_failed("expires_at", expires_at, "must be in the future")
        return expires_at

    def _find_active(self, data_item_id: str, seeker_id: str) -> Optional[Consent]:
        return (
            self.session.query(Consent)
            .filter(
                Consent.data_item_id == data_item_id,
                Consent.seeker_id == seeker_id,
                Consent.status.in_(ACTIVE_CONSENT_STATUSES),
            )
            .first()
        )

    def _load_for_decision(self, provider_id: str, consent_id: str, target: ConsentStatus):
        """Fetch a consent and its item, enforcing existence, ownership and PENDING."""
        if not provider_id or not consent_id:
            raise ValidationError(
                "provider_id and consent_id are required",
                error_code=ErrorCode.MISSING_REQUIRED,
                field="consent_id" if provider_id else "provider_id",
            )

        consent = get_record_by_id(self.session, Consent, consent_id)
        if consent is None:
            raise not_found("Consent", consent_id=consent_id)

        item = get_record_by_id(self.session, DataItem, consent.data_item_id)
        if item is None:
            raise not_found("DataItem", data_item_id=consent.data_item_id)

        if item.provider_id != provider_id:
            raise permission_denied("decide", f"consent {consent_id}", provider_id=provider_id)

        if consent.status != ConsentStatus.PENDING.value:
            raise invalid_transition(
                "Consent", consent.status, target.value, consent_id=consent_id
            )

        return consent, item

    def _transition(self, consent: Consent, target: ConsentStatus, **values) -> None:
        if not transition_consent_status(self.session, consent.id, target, **values):
            # Lost a race with another decision; report what the row holds now
            self.session.refresh(consent)
            raise invalid_transition(
                "Consent", consent.status, target.value, consent_id=consent.id
            )
        self.session.refresh(consent)

    # ==================== OPERATIONS ====================

    @operation()
    def request(
        self,
        seeker_id: str,
        data_item_id: str,
        expires_at: Optional[datetime] = None,
        max_access_count: Optional[int] = None,
    ) -> ConsentRead:
        """
        Ask for access to a data item.

        Returns the existing pending or approved consent for the pair when
        there is one; otherwise creates a PENDING consent.

        Raises:
            ValidationError: Missing ids, non-positive max_access_count or past expiry
            NotFoundError: Seeker or data item does not exist, or the item is deactivated
        """
        if not seeker_id or not data_item_id:
            raise ValidationError(
                "seeker_id and data_item_id are required",
                error_code=ErrorCode.MISSING_REQUIRED,
                field="data_item_id" if seeker_id else "seeker_id",
            )
        expires_at = self._validate_limits(expires_at, max_access_count)

        try:
            with self.transaction():
                if get_record_by_id(self.session, Seeker, seeker_id) is None:
                    raise not_found("Seeker", seeker_id=seeker_id)

                item = get_record_by_id(self.session, DataItem, data_item_id)
                if item is None or not item.is_active:
                    raise not_found("DataItem", data_item_id=data_item_id)

                existing = self._find_active(data_item_id, seeker_id)
                if existing is not None:
                    self.logger.info(
                        "Returning existing consent",
                        extra={"consent_id": existing.id, "status": existing.status},
                    )
                    return ConsentRead.model_validate(existing)

                now = self.clock()
                try:
                    with self.session.begin_nested():
                        consent = create_record(
                            self.session,
                            Consent,
                            {
                                "data_item_id": data_item_id,
                                "seeker_id": seeker_id,
                                "provider_id": item.provider_id,
                                "status": ConsentStatus.PENDING.value,
                                "requested_at": now,
                                "expires_at": expires_at,
                                "access_count": 0,
                                "max_access_count": max_access_count,
                            },
                        )
                        self.audit_log.record(
                            consent.id,
                            HistoryAction.REQUESTED,
                            seeker_id,
                            Role.SEEKER,
                            details=f"Consent requested for data item {item.name}",
                            timestamp=now,
                        )
                except RepositoryError as e:
                    # The partial unique index caught a concurrent request for the same pair
                    if e.error_code != ErrorCode.DUPLICATE:
                        raise
                    existing = self._find_active(data_item_id, seeker_id)
                    if existing is None:
                        raise
                    self.logger.info(
                        "Concurrent request already created the consent",
                        extra={"consent_id": existing.id, "status": existing.status},
                    )
                    return ConsentRead.model_validate(existing)

                return ConsentRead.model_validate(consent)

        except Exception as e:
            self._handle_service_exception("request", e, data_item_id)

    @operation()
    def approve(
        self,
        provider_id: str,
        consent_id: str,
        expires_at: Optional[datetime] = None,
        max_access_count: Optional[int] = None,
    ) -> ConsentRead:
        """
        Grant a pending consent.

        When the item is encrypted its data key is re-wrapped for the seeker's
        public key before the status flips. Expiry and access-count limits
        given here override those from the request.

        Raises:
            NotFoundError: Consent or item does not exist
            ForbiddenError: Caller does not own the item
            ConflictError: Consent is not PENDING, including losing a concurrent decision
            CryptoError: Seeker has no usable public key or the data key cannot be moved
        """
        expires_at = self._validate_limits(expires_at, max_access_count)

        try:
            with self.transaction():
                consent, item = self._load_for_decision(
                    provider_id, consent_id, ConsentStatus.APPROVED
                )

                wrapped_for_seeker = None
                if item.wrapped_key:
                    seeker = get_record_by_id(self.session, Seeker, consent.seeker_id)
                    public_key = seeker.public_key if seeker else None
                    if not public_key or not public_key.strip():
                        raise CryptoError(
                            "Seeker has no public key to receive the data key",
                            seeker_id=consent.seeker_id,
                        )
                    rewrapped = self.envelope.re_encrypt_for_recipient(
                        b64decode(item.wrapped_key, field="wrapped_key"), public_key
                    )
                    wrapped_for_seeker = b64encode(rewrapped)

                now = self.clock()
                values = {"approved_at": now, "wrapped_key_for_seeker": wrapped_for_seeker}
                if expires_at is not None:
                    values["expires_at"] = expires_at
                if max_access_count is not None:
                    values["max_access_count"] = max_access_count

                self._transition(consent, ConsentStatus.APPROVED, **values)

                details = "Consent approved by provider"
                if expires_at is not None or max_access_count is not None:
                    details += (
                        f". Limits: expires_at={consent.expires_at}, "
                        f"max_access_count={consent.max_access_count}"
                    )
                self.audit_log.record(
                    consent.id,
                    HistoryAction.APPROVED,
                    provider_id,
                    Role.PROVIDER,
                    details=details,
                    timestamp=now,
                )
                return ConsentRead.model_validate(consent)

        except Exception as e:
            self._handle_service_exception("approve", e, consent_id)

    @operation()
    def reject(
        self, provider_id: str, consent_id: str, reason: Optional[str] = None
    ) -> ConsentRead:
        """Refuse a pending consent; same guards as approve, no key material moves."""
        try:
            with self.transaction():
                consent, _ = self._load_for_decision(
                    provider_id, consent_id, ConsentStatus.REJECTED
                )
                now = self.clock()
                self._transition(consent, ConsentStatus.REJECTED)

                details = "Consent rejected by provider"
                if reason:
                    details += f". Details: {reason}"
                self.audit_log.record(
                    consent.id,
                    HistoryAction.REJECTED,
                    provider_id,
                    Role.PROVIDER,
                    details=details,
                    timestamp=now,
                )
                return ConsentRead.model_validate(consent)

        except Exception as e:
            self._handle_service_exception("reject", e, consent_id)

    # ==================== QUERIES ====================

    @operation()
    def get(self, consent_id: str) -> Optional[ConsentRead]:
        consent = get_record_by_id(self.session, Consent, consent_id)
        return ConsentRead.model_validate(consent) if consent else None

    @operation()
    def list_for_provider(
        self, provider_id: str, status: Optional[ConsentStatus] = None
    ) -> List[ConsentRead]:
        consents = list_records(
            self.session,
            Consent,
            filters={
                "provider_id": provider_id,
                "status": ConsentStatus(status).value if status else None,
            },
        )
        return [ConsentRead.model_validate(c) for c in consents]

    @operation()
    def list_for_seeker(
        self, seeker_id: str, status: Optional[ConsentStatus] = None
    ) -> List[ConsentRead]:
        consents = list_records(
            self.session,
            Consent,
            filters={
                "seeker_id": seeker_id,
                "status": ConsentStatus(status).value if status else None,
            },
        )
        return [ConsentRead.model_validate(c) for c in consents]
