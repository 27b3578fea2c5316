"""Pydantic schemas for the consent exchange core."""

from .account_schemas import (
    AdminRead,
    AdminSignup,
    BacklogRead,
    CredentialRead,
    LoginResult,
    PromotionResult,
    ProviderRead,
    ProviderSignup,
    SeekerRead,
    SeekerSignup,
    UserSummary,
)
from .consent_schemas import AccessGrant, ConsentHistoryRead, ConsentRead
from .data_item_schemas import DataItemCreate, DataItemRead, DataItemUpdate

__all__ = [
    "AccessGrant",
    "AdminRead",
    "AdminSignup",
    "BacklogRead",
    "ConsentHistoryRead",
    "ConsentRead",
    "CredentialRead",
    "DataItemCreate",
    "DataItemRead",
    "DataItemUpdate",
    "LoginResult",
    "PromotionResult",
    "ProviderRead",
    "ProviderSignup",
    "SeekerRead",
    "SeekerSignup",
    "UserSummary",
]
