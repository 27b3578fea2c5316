"""
Account models: credentials, principal profiles and signup backlogs.

Just the data structure - no business logic or class methods.
"""

from sqlalchemy import Boolean, Column, Date, ForeignKey, Index, Integer, String, Text

from ..enums import BacklogStatus
from .db_base import TimestampMixin, UUIDMixin
from .db_config import Base


class Credential(Base, UUIDMixin, TimestampMixin):
    """Login identity shared by every role."""

    __tablename__ = "credential"

    username = Column(String(100), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False)

    __table_args__ = (Index("ix_credential_role", "role"),)


class Provider(Base, UUIDMixin, TimestampMixin):
    """Data owner profile."""

    __tablename__ = "provider"

    credential_id = Column(String(36), ForeignKey("credential.id"), nullable=False, unique=True)
    first_name = Column(String(100), nullable=False)
    middle_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    mobile_no = Column(String(20), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    age = Column(Integer, nullable=True)
    public_key = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


class Seeker(Base, UUIDMixin, TimestampMixin):
    """Organisation profile that requests access to provider data."""

    __tablename__ = "seeker"

    credential_id = Column(String(36), ForeignKey("credential.id"), nullable=False, unique=True)
    name = Column(String(200), nullable=False)
    seeker_type = Column(String(50), nullable=False)
    registration_no = Column(String(100), nullable=False, unique=True)
    email = Column(String(255), nullable=False, unique=True)
    contact_no = Column(String(20), nullable=True)
    address = Column(String(500), nullable=True)
    public_key = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


class Admin(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "admin"

    credential_id = Column(String(36), ForeignKey("credential.id"), nullable=False, unique=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    mobile_no = Column(String(20), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


class ProviderBacklog(Base, UUIDMixin, TimestampMixin):
    """Provider signup awaiting an admin decision."""

    __tablename__ = "provider_backlog"

    username = Column(String(100), nullable=False)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    middle_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    mobile_no = Column(String(20), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    age = Column(Integer, nullable=True)
    public_key = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=BacklogStatus.PENDING.value)

    __table_args__ = (
        Index("ix_provider_backlog_username", "username"),
        Index("ix_provider_backlog_status", "status"),
    )


class SeekerBacklog(Base, UUIDMixin, TimestampMixin):
    """Seeker signup awaiting an admin decision."""

    __tablename__ = "seeker_backlog"

    username = Column(String(100), nullable=False)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(200), nullable=False)
    seeker_type = Column(String(50), nullable=False)
    registration_no = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    contact_no = Column(String(20), nullable=True)
    address = Column(String(500), nullable=True)
    public_key = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=BacklogStatus.PENDING.value)

    __table_args__ = (
        Index("ix_seeker_backlog_username", "username"),
        Index("ix_seeker_backlog_status", "status"),
    )
