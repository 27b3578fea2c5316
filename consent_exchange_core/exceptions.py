"""
Consolidated exception system with error codes, context, and correlation support.

Every error raised by the consent core derives from BaseError. Callers at the
transport edge map ``status_code`` onto their own protocol and use
``to_dict()`` for the response body.
"""

import threading
import traceback
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

# Removed logger import to avoid circular dependency - logger is imported lazily

_thread_local = threading.local()


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # System errors (1xxx)
    INTERNAL_ERROR = "1000"
    DATABASE_ERROR = "1001"
    CONFIGURATION_ERROR = "1003"
    CRYPTO_ERROR = "1005"
    INCONSISTENT_STATE = "1006"

    # Validation errors (2xxx)
    VALIDATION_FAILED = "2000"
    INVALID_FORMAT = "2001"
    MISSING_REQUIRED = "2002"

    # Resource errors (3xxx)
    NOT_FOUND = "3000"
    DUPLICATE = "3001"
    CONFLICT = "3002"
    EXPIRED = "3004"
    LIMIT_EXCEEDED = "3005"

    # Business logic errors (4xxx)
    INVALID_STATE_TRANSITION = "4001"
    PERMISSION_DENIED = "4003"
    NOT_APPROVED = "4005"
    UNAUTHENTICATED = "4006"


class BaseError(Exception):
    """Base exception with context, error codes, logging, and error chaining."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        cause: Optional[Exception] = None,
        **context: Any,
    ):
        """
        Initialize base error with rich context.

        Args:
            message: Human-readable error message
            error_code: Standardized error code from ErrorCode enum
            status_code: HTTP-style status code for the transport layer
            cause: Original exception that caused this error
            **context: Additional context information
        """
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.error_id = str(uuid.uuid4())
        self.context = context

        correlation_id = get_correlation_id()
        if correlation_id:
            self.context["correlation_id"] = correlation_id

        self.context["error_id"] = self.error_id

        if cause:
            self.context["cause"] = {
                "type": type(cause).__name__,
                "message": str(cause),
                "traceback": traceback.format_exception(type(cause), cause, cause.__traceback__),
            }

        self._log_error()

        super().__init__(message)

    def _log_error(self) -> None:
        """Log error with appropriate level based on status code."""
        from .utils.logger import get_logger

        logger = get_logger()

        log_data = {
            "error_id": self.error_id,
            "error_code": self.error_code.value,
            "status_code": self.status_code,
            "error_message": self.message,
            "timestamp": self.timestamp,
            "context": {k: v for k, v in self.context.items() if k not in ["cause", "traceback"]},
        }

        if "correlation_id" in self.context:
            log_data["correlation_id"] = self.context["correlation_id"]

        if self.status_code >= 500:
            logger.error(
                f"Error {self.error_code.value}: {self.message}", extra=log_data, exc_info=self.cause
            )
        elif self.status_code >= 400:
            logger.warning(f"Client error {self.error_code.value}: {self.message}", extra=log_data)
        else:
            logger.info(f"Error {self.error_code.value}: {self.message}", extra=log_data)

    def to_dict(
        self, include_cause: bool = False, include_traceback: bool = False
    ) -> Dict[str, Any]:
        """
        Convert to dict for API responses.

        Args:
            include_cause: Include cause information (useful for debugging)
            include_traceback: Include full traceback (only in debug mode)

        Returns:
            Dictionary representation suitable for JSON serialization
        """
        result: Dict[str, Any] = {
            "error": {
                "id": self.error_id,
                "code": self.error_code.value,
                "message": self.message,
                "timestamp": self.timestamp,
                "context": {
                    k: v
                    for k, v in self.context.items()
                    if k not in ["cause", "error_id", "correlation_id"]
                },
            }
        }

        if "correlation_id" in self.context:
            result["error"]["correlation_id"] = self.context["correlation_id"]

        if include_cause and "cause" in self.context:
            result["error"]["cause"] = {
                "type": self.context["cause"]["type"],
                "message": self.context["cause"]["message"],
            }
            if include_traceback:
                result["error"]["cause"]["traceback"] = self.context["cause"]["traceback"]

        return result

    def add_context(self, **kwargs: Any) -> "BaseError":
        """
        Add additional context to the error (fluent interface).

        Returns:
            Self for method chaining
        """
        self.context.update(kwargs)
        return self

    @property
    def error_chain(self) -> List[Exception]:
        """Get the full chain of errors."""
        chain: List[Exception] = [self]
        current = self.cause
        while current:
            chain.append(current)
            current = getattr(current, "cause", None)
        return chain


# Layer-specific base exceptions
class RepositoryError(BaseError):
    """Persistence layer errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.DATABASE_ERROR,
        status_code: int = 500,
        cause: Optional[Exception] = None,
        **context,
    ):
        super().__init__(message, error_code, status_code, cause, **context)


class ServiceError(BaseError):
    """Service layer errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        operation: Optional[str] = None,
        cause: Optional[Exception] = None,
        **context,
    ):
        if operation:
            context["operation"] = operation
        super().__init__(message, error_code, 500, cause, **context)


class ValidationError(BaseError):
    """Malformed or missing input."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        cause: Optional[Exception] = None,
        **context,
    ):
        if field:
            context["field"] = field
        super().__init__(message, error_code, 400, cause, **context)


class NotFoundError(BaseError):
    """A referenced Credential, Profile, DataItem, Consent or BacklogEntry does not exist."""

    def __init__(self, message: str = "Resource not found", **kwargs):
        super().__init__(message=message, error_code=ErrorCode.NOT_FOUND, status_code=404, **kwargs)


class ConflictError(BaseError):
    """Duplicate username/email or a transition attempted from a non-pending state."""

    def __init__(
        self, message: str = "Conflict", error_code: ErrorCode = ErrorCode.CONFLICT, **kwargs
    ):
        super().__init__(message=message, error_code=error_code, status_code=409, **kwargs)


class ForbiddenError(BaseError):
    """Caller does not own the referenced resource."""

    def __init__(self, message: str = "Permission denied", **kwargs):
        super().__init__(
            message=message, error_code=ErrorCode.PERMISSION_DENIED, status_code=403, **kwargs
        )


class AuthenticationError(BaseError):
    """Credentials or token could not be verified."""

    def __init__(self, message: str = "Authentication failed", **kwargs):
        super().__init__(
            message=message, error_code=ErrorCode.UNAUTHENTICATED, status_code=401, **kwargs
        )


# ==================== ACCESS GATE EXCEPTIONS ====================


class NotApprovedError(BaseError):
    """Consent exists but is not in the approved state."""

    def __init__(self, message: str = "Consent is not approved", **kwargs):
        super().__init__(
            message=message, error_code=ErrorCode.NOT_APPROVED, status_code=403, **kwargs
        )


class ExpiredError(BaseError):
    """Consent is past its expiry time."""

    def __init__(self, message: str = "Consent has expired", **kwargs):
        super().__init__(message=message, error_code=ErrorCode.EXPIRED, status_code=410, **kwargs)


class ExhaustedError(BaseError):
    """Consent has used up its maximum access count."""

    def __init__(self, message: str = "Consent access count exhausted", **kwargs):
        super().__init__(
            message=message, error_code=ErrorCode.LIMIT_EXCEEDED, status_code=429, **kwargs
        )


# ==================== CRYPTO / CONSISTENCY EXCEPTIONS ====================


class CryptoError(BaseError):
    """Wrap/unwrap failure, undecryptable payload, or missing recipient key."""

    def __init__(self, message: str = "Cryptographic operation failed", **kwargs):
        super().__init__(
            message=message, error_code=ErrorCode.CRYPTO_ERROR, status_code=500, **kwargs
        )


class PersistenceInconsistencyError(BaseError):
    """A multi-step write completed only partially and was not compensated."""

    def __init__(self, message: str = "Persistence left in an inconsistent state", **kwargs):
        super().__init__(
            message=message, error_code=ErrorCode.INCONSISTENT_STATE, status_code=500, **kwargs
        )


# Factory functions for common error patterns
def not_found(resource_type: str, cause: Optional[Exception] = None, **identifiers) -> NotFoundError:
    """
    Factory for not found errors.

    Args:
        resource_type: Type of resource (e.g., 'Consent', 'DataItem')
        cause: Original exception if any
        **identifiers: Resource identifiers (e.g., consent_id='123')

    Returns:
        Configured NotFoundError instance
    """
    id_parts = [f"{k}={v}" for k, v in identifiers.items()]
    message = f"{resource_type} not found"
    if id_parts:
        message += f": {', '.join(id_parts)}"

    return NotFoundError(message, cause=cause, resource_type=resource_type, **identifiers)


def duplicate(resource_type: str, cause: Optional[Exception] = None, **identifiers) -> ConflictError:
    """
    Factory for duplicate resource errors.

    Args:
        resource_type: Type of resource (e.g., 'Credential')
        cause: Original exception if any
        **identifiers: Conflicting field values

    Returns:
        Configured ConflictError instance
    """
    id_parts = [f"{k}={v}" for k, v in identifiers.items()]
    message = f"Duplicate {resource_type}"
    if id_parts:
        message += f": {', '.join(id_parts)}"

    return ConflictError(
        message,
        error_code=ErrorCode.DUPLICATE,
        cause=cause,
        resource_type=resource_type,
        **identifiers,
    )


def invalid_transition(
    resource_type: str, current_status: str, target_status: str, **identifiers
) -> ConflictError:
    """Factory for a state change attempted from a non-pending state."""
    return ConflictError(
        f"{resource_type} cannot move from '{current_status}' to '{target_status}'",
        error_code=ErrorCode.INVALID_STATE_TRANSITION,
        resource_type=resource_type,
        current_status=current_status,
        target_status=target_status,
        **identifiers,
    )


def validation_failed(
    field: str, value: Any, reason: str, cause: Optional[Exception] = None
) -> ValidationError:
    """
    Factory for validation errors.

    Args:
        field: Field that failed validation
        value: The invalid value
        reason: Why validation failed
        cause: Original exception if any

    Returns:
        Configured ValidationError instance
    """
    return ValidationError(
        f"Validation failed for {field}: {reason}",
        field=field,
        error_code=ErrorCode.VALIDATION_FAILED,
        cause=cause,
        value=str(value),
        reason=reason,
    )


def permission_denied(
    action: str, resource: str, cause: Optional[Exception] = None, **context
) -> ForbiddenError:
    """
    Factory for permission denied errors.

    Args:
        action: Action that was denied (e.g., 'approve')
        resource: Resource being accessed
        cause: Original exception if any
        **context: Additional context

    Returns:
        Configured ForbiddenError instance
    """
    return ForbiddenError(
        f"Permission denied: {action} on {resource}",
        cause=cause,
        action=action,
        resource=resource,
        **context,
    )


# Correlation ID management
def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current thread."""
    _thread_local.correlation_id = correlation_id


def get_correlation_id() -> Optional[str]:
    """Get the current thread's correlation ID."""
    return getattr(_thread_local, "correlation_id", None)


def clear_correlation_id() -> None:
    """Clear the current thread's correlation ID."""
    if hasattr(_thread_local, "correlation_id"):
        delattr(_thread_local, "correlation_id")
