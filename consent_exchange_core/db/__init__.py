"""
SQLAlchemy models and database configuration.

This module provides a common entry point for all models.
"""

from .db_account_models import Admin, Credential, Provider, ProviderBacklog, Seeker, SeekerBacklog
from .db_base import TimestampMixin, UTCDateTime, UUIDMixin, as_utc, utc_now
from .db_config import (
    Base,
    DatabaseManager,
    close_db,
    get_db_manager,
    get_development_config,
    import_all_models,
    initialize_db,
    set_db_manager,
)
from .db_consent_models import Consent, ConsentHistory
from .db_data_item_models import DataItem

__all__ = [
    # Base definitions
    "Base",
    "TimestampMixin",
    "UTCDateTime",
    "UUIDMixin",
    "as_utc",
    "utc_now",
    # Configuration
    "DatabaseManager",
    "close_db",
    "get_db_manager",
    "get_development_config",
    "import_all_models",
    "initialize_db",
    "set_db_manager",
    # Models
    "Admin",
    "Consent",
    "ConsentHistory",
    "Credential",
    "DataItem",
    "Provider",
    "ProviderBacklog",
    "Seeker",
    "SeekerBacklog",
]
