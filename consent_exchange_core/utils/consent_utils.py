"""
Conditional consent writes.

Each helper issues a single UPDATE whose WHERE clause carries the guard, so
two callers racing on the same row cannot both succeed. The return value
says whether this caller's write landed.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..db.db_base import utc_now
from ..db.db_consent_models import Consent
from ..enums import ConsentStatus
from .crud_helpers import conditional_update


def transition_consent_status(
    session: Session, consent_id: str, target_status: ConsentStatus, **values: Any
) -> bool:
    """
    Move a consent out of PENDING.

    Args:
        session: Database session
        consent_id: Consent to update
        target_status: APPROVED or REJECTED
        **values: Extra columns written in the same statement

    Returns:
        True if the row was still pending and is now ``target_status``
    """
    return conditional_update(
        session,
        Consent,
        consent_id,
        expected={"status": ConsentStatus.PENDING.value},
        values={"status": target_status.value, **values},
    )


def increment_access_count(
    session: Session, consent_id: str, now: Optional[datetime] = None
) -> bool:
    """
    Count one access against an approved, unexpired, non-exhausted consent.

    Returns:
        True if the counter moved; False if any guard failed at write time
    """
    now = now or utc_now()

    updated = (
        session.query(Consent)
        .filter(
            Consent.id == consent_id,
            Consent.status == ConsentStatus.APPROVED.value,
            or_(
                Consent.max_access_count.is_(None),
                Consent.access_count < Consent.max_access_count,
            ),
            or_(Consent.expires_at.is_(None), Consent.expires_at >= now),
        )
        .update(
            {Consent.access_count: Consent.access_count + 1, Consent.updated_at: utc_now()},
            synchronize_session=False,
        )
    )
    return updated == 1
