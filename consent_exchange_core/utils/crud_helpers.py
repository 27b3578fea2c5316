"""
Generic CRUD helpers shared by the services.

These work with any SQLAlchemy model. Writes are flushed, never committed:
the calling service decides when its unit of work ends.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import ErrorCode, RepositoryError, not_found
from ..utils.logger import get_logger

T = TypeVar("T")


def create_record(session: Session, model_class: Type[T], data: Dict[str, Any]) -> T:
    """
    Generic create operation for any model.

    Args:
        session: Database session
        model_class: SQLAlchemy model class
        data: Column values

    Returns:
        Created (flushed) record instance

    Raises:
        RepositoryError: If the insert fails; DUPLICATE when a unique constraint fires
    """
    logger = get_logger()

    try:
        record = model_class(**data)
        session.add(record)
        session.flush()

        logger.debug(
            f"Created {model_class.__name__}",
            extra={"model": model_class.__name__, "record_id": getattr(record, "id", None)},
        )

        return record

    except IntegrityError as e:
        raise RepositoryError(
            f"Duplicate {model_class.__name__}",
            error_code=ErrorCode.DUPLICATE,
            status_code=409,
            cause=e,
            model=model_class.__name__,
        )
    except SQLAlchemyError as e:
        raise RepositoryError(
            f"Failed to create {model_class.__name__}: {str(e)}",
            cause=e,
            model=model_class.__name__,
        )


def get_record(session: Session, model_class: Type[T], filters: Dict[str, Any]) -> Optional[T]:
    """
    Generic get operation for any model.

    Filters with a None value are ignored.

    Returns:
        Record instance or None
    """
    query = session.query(model_class)

    for key, value in filters.items():
        if hasattr(model_class, key) and value is not None:
            query = query.filter(getattr(model_class, key) == value)

    return query.first()


def get_record_by_id(session: Session, model_class: Type[T], record_id: str) -> Optional[T]:
    """Generic get by ID operation."""
    if not record_id:
        return None
    return session.get(model_class, record_id)


def update_record(
    session: Session,
    model_class: Type[T],
    record_id: str,
    data: Dict[str, Any],
) -> T:
    """
    Generic update operation for any model.

    Only keys present on the model with a non-None value are applied.

    Raises:
        NotFoundError: If the record does not exist
        RepositoryError: If the flush fails
    """
    record = get_record_by_id(session, model_class, record_id)
    if record is None:
        raise not_found(model_class.__name__, record_id=record_id)

    try:
        for key, value in data.items():
            if hasattr(record, key) and value is not None:
                setattr(record, key, value)

        session.flush()

        get_logger().debug(
            f"Updated {model_class.__name__}",
            extra={"model": model_class.__name__, "record_id": record_id},
        )

        return record

    except SQLAlchemyError as e:
        raise RepositoryError(
            f"Failed to update {model_class.__name__}: {str(e)}",
            cause=e,
            model=model_class.__name__,
            record_id=record_id,
        )


def list_records(
    session: Session,
    model_class: Type[T],
    filters: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    order_by: Optional[str] = None,
) -> List[T]:
    """
    Generic list operation for any model.

    Args:
        session: Database session
        model_class: SQLAlchemy model class
        filters: Optional equality filters; None values are ignored
        limit: Optional limit
        offset: Optional offset
        order_by: Optional order by field, ascending; newest first by default

    Returns:
        List of record instances
    """
    query = session.query(model_class)

    if filters:
        for key, value in filters.items():
            if hasattr(model_class, key) and value is not None:
                query = query.filter(getattr(model_class, key) == value)

    if order_by and hasattr(model_class, order_by):
        query = query.order_by(getattr(model_class, order_by))
    elif hasattr(model_class, "created_at"):
        query = query.order_by(model_class.created_at.desc())  # type: ignore[attr-defined]

    if offset:
        query = query.offset(offset)
    if limit:
        query = query.limit(limit)

    return query.all()


def count_records(
    session: Session, model_class: Type[T], filters: Optional[Dict[str, Any]] = None
) -> int:
    """Generic count operation for any model."""
    query = session.query(model_class)

    if filters:
        for key, value in filters.items():
            if hasattr(model_class, key) and value is not None:
                query = query.filter(getattr(model_class, key) == value)

    return query.count()


def record_exists(session: Session, model_class: Type[T], filters: Dict[str, Any]) -> bool:
    """Check if a record exists with the given filters."""
    return get_record(session, model_class, filters) is not None


def conditional_update(
    session: Session,
    model_class: Type[T],
    record_id: str,
    expected: Dict[str, Any],
    values: Dict[str, Any],
) -> bool:
    """
    Update one row only if its current column values match ``expected``.

    The guard is part of the UPDATE statement, so it holds under concurrent
    writers. Loaded instances are not synchronized; refresh them afterwards.

    Returns:
        True if exactly one row was updated
    """
    query = session.query(model_class).filter(model_class.id == record_id)  # type: ignore[attr-defined]
    for key, value in expected.items():
        query = query.filter(getattr(model_class, key) == value)

    changes = {getattr(model_class, key): value for key, value in values.items()}
    if hasattr(model_class, "updated_at") and "updated_at" not in values:
        changes[model_class.updated_at] = datetime.now(timezone.utc)  # type: ignore[attr-defined]

    return query.update(changes, synchronize_session=False) == 1
