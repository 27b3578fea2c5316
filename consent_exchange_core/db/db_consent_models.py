"""
Consent and consent history models.

Just the data structure - no business logic or class methods.
"""

from sqlalchemy import Column, ForeignKey, Index, Integer, String, Text, text

from ..enums import ConsentStatus
from .db_base import TimestampMixin, UTCDateTime, UUIDMixin, utc_now
from .db_config import Base

_ACTIVE_CONSENT_CLAUSE = text("status IN ('pending', 'approved')")


class Consent(Base, UUIDMixin, TimestampMixin):
    """Access grant for one seeker on one data item."""

    __tablename__ = "consent"

    data_item_id = Column(String(36), ForeignKey("data_item.id"), nullable=False)
    seeker_id = Column(String(36), ForeignKey("seeker.id"), nullable=False)
    provider_id = Column(String(36), ForeignKey("provider.id"), nullable=False)
    status = Column(String(20), nullable=False, default=ConsentStatus.PENDING.value)

    # Base64 data key wrapped under the seeker's public key; set only on approval
    wrapped_key_for_seeker = Column(Text, nullable=True)

    requested_at = Column(UTCDateTime, nullable=False, default=utc_now)
    approved_at = Column(UTCDateTime, nullable=True)
    expires_at = Column(UTCDateTime, nullable=True)

    access_count = Column(Integer, nullable=False, default=0)
    # NULL means unlimited
    max_access_count = Column(Integer, nullable=True)

    __table_args__ = (
        Index("ix_consent_pair", "data_item_id", "seeker_id"),
        Index("ix_consent_provider_status", "provider_id", "status"),
        Index("ix_consent_seeker", "seeker_id"),
        # One live consent per (item, seeker)
        Index(
            "uq_consent_active_pair",
            "data_item_id",
            "seeker_id",
            unique=True,
            sqlite_where=_ACTIVE_CONSENT_CLAUSE,
            postgresql_where=_ACTIVE_CONSENT_CLAUSE,
        ),
    )


class ConsentHistory(Base, UUIDMixin):
    """Append-only record of consent transitions and accesses."""

    __tablename__ = "consent_history"

    consent_id = Column(String(36), ForeignKey("consent.id"), nullable=False)
    action = Column(String(20), nullable=False)
    # NULL for system actions
    actor_id = Column(String(36), nullable=True)
    actor_role = Column(String(20), nullable=True)
    timestamp = Column(UTCDateTime, nullable=False, default=utc_now)
    details = Column(Text, nullable=True)

    __table_args__ = (Index("ix_consent_history_consent", "consent_id", "timestamp"),)
