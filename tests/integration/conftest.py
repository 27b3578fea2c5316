"""
Fixtures for integration tests.

Each test gets its own file-backed SQLite database so that several
independent sessions see each other's committed writes.
"""

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from consent_exchange_core.config import DatabaseConfig
from consent_exchange_core.crypto import EnvelopeKeyManager, KeyCustodian
from consent_exchange_core.db import DatabaseManager, import_all_models, set_db_manager
from consent_exchange_core.db import db_config as db_config_module


@pytest.fixture(scope="session")
def system_custodian() -> KeyCustodian:
    return KeyCustodian.generate(2048)


@pytest.fixture
def file_db(tmp_path) -> DatabaseManager:
    import_all_models()
    manager = DatabaseManager(
        DatabaseConfig(
            connection_string=f"sqlite:///{tmp_path / 'consent.db'}",
            development_mode=True,
        )
    )
    manager.create_tables()

    yield manager

    manager.drop_tables()
    manager.close()


@pytest.fixture
def envelope(system_custodian) -> EnvelopeKeyManager:
    return EnvelopeKeyManager(system_custodian)


@pytest.fixture(scope="session")
def seeker_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def seeker_public_pem(seeker_key) -> str:
    return (
        seeker_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode("utf-8")
    )


@pytest.fixture
def global_db(file_db):
    """Install the file database as the global manager so services can open their own sessions."""
    previous = db_config_module._db_manager
    set_db_manager(file_db)

    yield file_db

    set_db_manager(previous)
