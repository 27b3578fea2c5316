"""
Base service implementation with common functionality for all services.

Every service works on one SQLAlchemy session. A service given a session
by its caller never commits or rolls it back; a service that opened its own
session owns the unit of work.
"""

from contextlib import contextmanager
from typing import NoReturn, Optional

from sqlalchemy.orm import Session

from ..db.db_config import get_db_manager
from ..exceptions import BaseError, ErrorCode, ServiceError
from ..utils.logger import ContextAwareLogger, get_logger


class SessionManagedService:
    """
    Service that owns or borrows a database session.
    """

    def __init__(
        self,
        session: Optional[Session] = None,
        logger: Optional[ContextAwareLogger] = None,
    ):
        """
        Initialize service with a session.

        Args:
            session: Optional existing session (for testing or coordination)
            logger: Optional logger instance
        """
        if session is not None:
            self.session = session
            self._owns_session = False
        else:
            self.session = self._create_session()
            self._owns_session = True

        self.logger = logger or get_logger()

    def _create_session(self) -> Session:
        """Create a new database session from the global database manager."""
        return get_db_manager().new_session()

    def _handle_service_exception(
        self, operation: str, exception: Exception, entity_id: Optional[str] = None
    ) -> NoReturn:
        """
        Re-raise domain errors as they are; wrap anything else in ServiceError.

        Args:
            operation: Operation being performed
            exception: Exception that occurred
            entity_id: Optional ID of the entity involved
        """
        if isinstance(exception, BaseError):
            raise exception

        error_msg = f"Error in {operation}: {str(exception)}"
        self.logger.error(
            error_msg,
            extra={
                "operation": operation,
                "entity_id": entity_id,
                "error_type": type(exception).__name__,
            },
        )
        raise ServiceError(
            error_msg,
            error_code=ErrorCode.INTERNAL_ERROR,
            operation=operation,
            entity_id=entity_id,
            cause=exception,
        )

    @contextmanager
    def transaction(self):
        """
        Context manager for transactional operations.

        Usage:
            with service.transaction():
                service.create_something()
                service.update_something()
                # Auto-commits on success, rollback on exception (owned sessions only)
        """
        try:
            yield self.session
            if self._owns_session:
                self.session.commit()
        except Exception:
            if self._owns_session:
                self.session.rollback()
            raise

    def commit(self):
        """Manually commit the current transaction."""
        if self._owns_session:
            self.session.commit()

    def rollback(self):
        """Manually rollback the current transaction."""
        if self._owns_session:
            self.session.rollback()

    def close(self):
        """Close the session if we own it."""
        if self._owns_session and self.session:
            self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Commit or roll back an owned session, then close it."""
        if exc_type:
            self.rollback()
        else:
            self.commit()
        self.close()
