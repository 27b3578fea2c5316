"""
Append-only consent history.

Entries are written inside the caller's unit of work, so a history row
exists exactly when the transition it describes was committed. There is no
update or delete path.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from ..config import get_config
from ..context.operation_context import operation
from ..db.db_base import utc_now
from ..db.db_consent_models import Consent, ConsentHistory
from ..enums import HistoryAction, Role
from ..exceptions import ValidationError
from ..schemas.consent_schemas import ConsentHistoryRead
from ..utils.crud_helpers import create_record
from ..utils.logger import ContextAwareLogger
from .base_service import SessionManagedService


class AuditLog(SessionManagedService):
    def __init__(
        self,
        session: Optional[Session] = None,
        logger: Optional[ContextAwareLogger] = None,
    ):
        super().__init__(session=session, logger=logger)
        self.enabled = get_config().features.enable_audit_logging

    def record(
        self,
        consent_id: str,
        action: HistoryAction,
        actor_id: Optional[str],
        actor_role: Optional[Role],
        details: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> Optional[ConsentHistoryRead]:
        """
        Append one history entry.

        Flushed but not committed; the caller's transaction decides whether it
        persists. Returns None when audit logging is switched off.
        """
        if not consent_id:
            raise ValidationError("consent_id is required", field="consent_id")
        if not self.enabled:
            return None

        entry = create_record(
            self.session,
            ConsentHistory,
            {
                "consent_id": consent_id,
                "action": HistoryAction(action).value,
                "actor_id": actor_id,
                "actor_role": Role(actor_role).value if actor_role else None,
                "details": details,
                "timestamp": timestamp or utc_now(),
            },
        )

        self.logger.info(
            f"Consent {entry.action}",
            extra={"consent_id": consent_id, "actor_id": actor_id, "actor_role": entry.actor_role},
        )
        return ConsentHistoryRead.model_validate(entry)

    @operation()
    def history_for_consent(self, consent_id: str) -> List[ConsentHistoryRead]:
        rows = (
            self.session.query(ConsentHistory)
            .filter(ConsentHistory.consent_id == consent_id)
            .order_by(ConsentHistory.timestamp)
            .all()
        )
        return [ConsentHistoryRead.model_validate(row) for row in rows]

    @operation()
    def history_for_provider(self, provider_id: str) -> List[ConsentHistoryRead]:
        """History of every consent on the provider's items, oldest first."""
        rows = (
            self.session.query(ConsentHistory)
            .join(Consent, Consent.id == ConsentHistory.consent_id)
            .filter(Consent.provider_id == provider_id)
            .order_by(ConsentHistory.timestamp)
            .all()
        )
        return [ConsentHistoryRead.model_validate(row) for row in rows]

    @operation()
    def history_for_seeker(self, seeker_id: str) -> List[ConsentHistoryRead]:
        """History of every consent the seeker requested, oldest first."""
        rows = (
            self.session.query(ConsentHistory)
            .join(Consent, Consent.id == ConsentHistory.consent_id)
            .filter(Consent.seeker_id == seeker_id)
            .order_by(ConsentHistory.timestamp)
            .all()
        )
        return [ConsentHistoryRead.model_validate(row) for row in rows]
