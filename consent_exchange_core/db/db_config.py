import os
from typing import Any, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, declarative_base, scoped_session, sessionmaker

from ..config import DatabaseConfig, get_config
from ..exceptions import ErrorCode, ServiceError
from ..utils.logger import get_logger

# Base class for all SQLAlchemy models
Base: Any = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class DatabaseManager:
    """
    Database connection manager that uses a Pydantic DatabaseConfig.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.engine = self._create_engine()
        self.session_factory = sessionmaker(bind=self.engine)
        self.scoped_session = scoped_session(self.session_factory)

    def _create_engine(self):
        if self.config.is_sqlite:
            engine = create_engine(
                self.config.connection_string,
                echo=self.config.echo,
                connect_args={"check_same_thread": False},
            )
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)
            return engine
        return create_engine(
            self.config.connection_string,
            echo=self.config.echo,
            pool_size=self.config.pool_size,
            max_overflow=self.config.max_overflow,
            pool_timeout=self.config.pool_timeout,
        )

    def create_tables(self) -> None:
        Base.metadata.create_all(self.engine)

    def drop_tables(self) -> None:
        if self.config.development_mode:
            Base.metadata.drop_all(self.engine)
        else:
            raise ServiceError(
                "Cannot drop tables: not in development mode",
                error_code=ErrorCode.CONFIGURATION_ERROR,
                operation="drop_tables",
                development_mode=self.config.development_mode,
            )

    def get_session(self) -> Session:
        return self.scoped_session()

    def new_session(self) -> Session:
        """Independent session outside the scoped registry."""
        return self.session_factory()

    def close_session(self, session: Optional[Session] = None) -> None:
        if session:
            session.close()
        else:
            self.scoped_session.remove()

    def close(self) -> None:
        self.scoped_session.remove()
        self.engine.dispose()


def get_development_config() -> DatabaseConfig:
    """
    Get SQLite configuration for development.
    """
    db_path = os.environ.get("DEV_DB_PATH", ":memory:")
    return DatabaseConfig(
        connection_string=f"sqlite:///{db_path}",
        echo=os.environ.get("DB_ECHO", "False").lower() == "true",
        development_mode=True,
    )


def import_all_models():
    """Import all models to ensure they're registered with SQLAlchemy metadata."""
    from sqlalchemy.orm import configure_mappers

    from .db_account_models import (  # noqa
        Admin,
        Credential,
        Provider,
        ProviderBacklog,
        Seeker,
        SeekerBacklog,
    )
    from .db_consent_models import Consent, ConsentHistory  # noqa
    from .db_data_item_models import DataItem  # noqa

    configure_mappers()


# Global database manager instance
_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """
    Get the global database manager instance.

    Returns:
        DatabaseManager: The current database manager

    Raises:
        ServiceError: If no database manager has been initialized
    """
    if _db_manager is None:
        raise ServiceError(
            "Database manager not initialized. Call initialize_db() first.",
            error_code=ErrorCode.CONFIGURATION_ERROR,
            operation="get_db_manager",
        )
    return _db_manager


def set_db_manager(manager: Optional[DatabaseManager]) -> None:
    """
    Set the global database manager instance.

    This is primarily used for testing to inject a test database manager.
    """
    global _db_manager
    _db_manager = manager


def initialize_db(config: Optional[DatabaseConfig] = None) -> DatabaseManager:
    """
    Initialize the global database manager with the given config.

    Args:
        config: Optional DatabaseConfig. If None, uses the application config.

    Returns:
        DatabaseManager: The initialized database manager
    """
    global _db_manager

    if config is None:
        config = get_config().database

    get_logger().info("Initializing database", extra={"database": repr(config)})
    _db_manager = DatabaseManager(config)

    import_all_models()
    _db_manager.create_tables()

    return _db_manager


def close_db() -> None:
    """
    Close the database connections and dispose of the engine.
    """
    global _db_manager
    if _db_manager:
        _db_manager.close()
        _db_manager = None
