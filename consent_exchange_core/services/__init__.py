"""Services for the consent exchange core."""

from .access_gate import AccessGate
from .account_promotion import AccountPromotionPipeline
from .audit_log import AuditLog
from .auth_service import AuthService
from .base_service import SessionManagedService
from .consent_authority import ConsentAuthority
from .data_item_service import DataItemService

__all__ = [
    "AccessGate",
    "AccountPromotionPipeline",
    "AuditLog",
    "AuthService",
    "ConsentAuthority",
    "DataItemService",
    "SessionManagedService",
]
