"""
Shared test fixtures.

Provides the in-memory SQLite database, a per-test session that is rolled
back afterwards, and global config/logging isolation.
"""

import pytest
from sqlalchemy.orm import Session

from consent_exchange_core.config import DatabaseConfig, reset_config
from consent_exchange_core.db import DatabaseManager, import_all_models
from consent_exchange_core.db.db_config import Base, close_db, initialize_db
from consent_exchange_core.exceptions import clear_correlation_id
from consent_exchange_core.utils.logger import reset_logging
from tests.fixtures.factories import configure_factories


@pytest.fixture(scope="session")
def db_config() -> DatabaseConfig:
    """SQLite in-memory database configuration for testing."""
    return DatabaseConfig(
        connection_string="sqlite:///:memory:",
        echo=False,
        development_mode=True,
    )


@pytest.fixture(scope="session")
def db_manager(db_config: DatabaseConfig) -> DatabaseManager:
    """Create and initialize the database manager with all models."""
    import_all_models()
    manager = initialize_db(db_config)

    yield manager

    close_db()


@pytest.fixture(scope="function")
def db_session(db_manager: DatabaseManager) -> Session:
    """
    Database session for one test.

    Tables are created fresh, factories are bound to the session, and
    everything is rolled back and dropped afterwards.
    """
    Base.metadata.create_all(db_manager.engine)
    session = db_manager.get_session()
    configure_factories(session)

    yield session

    session.rollback()
    db_manager.close_session()
    Base.metadata.drop_all(db_manager.engine)


@pytest.fixture(autouse=True)
def isolate_globals():
    """Reset global config, logger and correlation id between tests."""
    yield
    reset_config()
    reset_logging()
    clear_correlation_id()
