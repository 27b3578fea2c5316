"""Utility modules for the consent exchange core."""

# Generic CRUD helpers
from .crud_helpers import (
    conditional_update,
    count_records,
    create_record,
    get_record,
    get_record_by_id,
    list_records,
    record_exists,
    update_record,
)
from .json_utils import EnhancedJSONEncoder, dumps, loads

# Logging utilities
from .logger import (
    AzureQueueHandler,
    ContextAwareLogger,
    configure_logging,
    get_logger,
)

# Credential collaborators
from .password_utils import PasswordHasher
from .token_utils import TokenClaims, TokenService

__all__ = [
    "AzureQueueHandler",
    "ContextAwareLogger",
    "EnhancedJSONEncoder",
    "PasswordHasher",
    "TokenClaims",
    "TokenService",
    "conditional_update",
    "configure_logging",
    "count_records",
    "create_record",
    "dumps",
    "get_logger",
    "get_record",
    "get_record_by_id",
    "list_records",
    "loads",
    "record_exists",
    "update_record",
]
