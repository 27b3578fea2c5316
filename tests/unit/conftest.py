"""
Fixtures for unit tests: key material, a controllable clock, services bound
to the test session, and a provider/seeker pair with an encrypted item.
"""

from datetime import UTC, datetime, timedelta

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from consent_exchange_core.crypto import EnvelopeKeyManager, KeyCustodian
from consent_exchange_core.enums import ItemType
from consent_exchange_core.schemas import DataItemCreate
from consent_exchange_core.services import (
    AccessGate,
    AccountPromotionPipeline,
    AuditLog,
    AuthService,
    ConsentAuthority,
    DataItemService,
)
from consent_exchange_core.utils import PasswordHasher, TokenService
from tests.fixtures.factories import ProviderFactory, SeekerFactory


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# ==================== KEY MATERIAL ====================


@pytest.fixture(scope="session")
def key_custodian() -> KeyCustodian:
    """System keypair shared by the whole run; RSA generation is slow."""
    return KeyCustodian.generate(2048)


@pytest.fixture(scope="session")
def seeker_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def seeker_public_pem(seeker_private_key) -> str:
    return (
        seeker_private_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode("utf-8")
    )


@pytest.fixture
def envelope(key_custodian) -> EnvelopeKeyManager:
    return EnvelopeKeyManager(key_custodian)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 1, 9, 0, tzinfo=UTC))


@pytest.fixture
def hasher() -> PasswordHasher:
    """bcrypt at its minimum cost so the suite stays fast."""
    return PasswordHasher(rounds=4)


@pytest.fixture
def token_service() -> TokenService:
    return TokenService()


# ==================== SERVICES ====================


@pytest.fixture
def audit_log(db_session) -> AuditLog:
    return AuditLog(session=db_session)


@pytest.fixture
def consent_authority(db_session, envelope, audit_log, clock) -> ConsentAuthority:
    return ConsentAuthority(envelope, session=db_session, audit_log=audit_log, clock=clock)


@pytest.fixture
def access_gate(db_session, audit_log, clock) -> AccessGate:
    return AccessGate(session=db_session, audit_log=audit_log, clock=clock)


@pytest.fixture
def data_item_service(db_session, envelope) -> DataItemService:
    return DataItemService(envelope, session=db_session)


@pytest.fixture
def account_pipeline(db_session, hasher) -> AccountPromotionPipeline:
    return AccountPromotionPipeline(session=db_session, hasher=hasher)


@pytest.fixture
def auth_service(db_session, hasher, token_service) -> AuthService:
    return AuthService(session=db_session, hasher=hasher, tokens=token_service)


# ==================== SCENARIO DATA ====================


@pytest.fixture
def provider(db_session):
    return ProviderFactory()


@pytest.fixture
def seeker(db_session, seeker_public_pem):
    return SeekerFactory(public_key=seeker_public_pem)


@pytest.fixture
def encrypted_item(data_item_service, provider):
    """Encrypted text item owned by ``provider`` with content "hello"."""
    return data_item_service.create_item(
        provider.id,
        DataItemCreate(item_type=ItemType.TEXT, name="Medical record", content="hello"),
    )
