"""
Domain enums shared by models, schemas and services.

Kept in their own module to avoid circular imports between the db and
service layers.
"""

from enum import Enum


class Role(str, Enum):
    """Principal roles carried on a Credential."""

    PROVIDER = "provider"
    SEEKER = "seeker"
    ADMIN = "admin"


class ConsentStatus(str, Enum):
    """Stored consent states. PENDING is initial, the other two are terminal."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class BacklogStatus(str, Enum):
    """Signup backlog states."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ItemType(str, Enum):
    """Kinds of data items a provider can publish."""

    TEXT = "text"
    FILE = "file"


class HistoryAction(str, Enum):
    """Actions recorded in the consent history."""

    REQUESTED = "requested"
    APPROVED = "approved"
    REJECTED = "rejected"
    ACCESSED = "accessed"


class SeekerType(str, Enum):
    """Organisation categories a seeker may register as."""

    BANK = "Bank"
    GOVERNMENT = "Government"
    PRIVATE_COMPANY = "Private Company"
    OTHER = "Other"


# Consent states that block a fresh request for the same (item, seeker) pair
ACTIVE_CONSENT_STATUSES = (ConsentStatus.PENDING.value, ConsentStatus.APPROVED.value)
