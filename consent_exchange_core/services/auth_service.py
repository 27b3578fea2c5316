"""
Login and token authentication.

Promoted users log in against their Credential. Users still in a signup
backlog get their backlog status back instead of a token, so a client can
tell "awaiting approval" apart from "wrong password".
"""

from typing import Optional

from sqlalchemy.orm import Session

from ..context.operation_context import operation
from ..db.db_account_models import (
    Admin,
    Credential,
    Provider,
    ProviderBacklog,
    Seeker,
    SeekerBacklog,
)
from ..enums import Role
from ..exceptions import AuthenticationError, PersistenceInconsistencyError
from ..schemas.account_schemas import LoginResult
from ..utils.crud_helpers import get_record
from ..utils.logger import ContextAwareLogger
from ..utils.password_utils import PasswordHasher
from ..utils.token_utils import TokenClaims, TokenService
from .base_service import SessionManagedService

_PROFILE_MODELS = {Role.PROVIDER: Provider, Role.SEEKER: Seeker, Role.ADMIN: Admin}
_BACKLOG_MODELS = {Role.PROVIDER: ProviderBacklog, Role.SEEKER: SeekerBacklog}


class AuthService(SessionManagedService):
    def __init__(
        self,
        session: Optional[Session] = None,
        hasher: Optional[PasswordHasher] = None,
        tokens: Optional[TokenService] = None,
        logger: Optional[ContextAwareLogger] = None,
    ):
        super().__init__(session=session, logger=logger)
        self.hasher = hasher or PasswordHasher()
        self.tokens = tokens or TokenService()

    def _backlog_login(self, username: str, password: str, role: Role) -> LoginResult:
        backlog_model = _BACKLOG_MODELS.get(role)
        entry = None
        if backlog_model is not None:
            entry = (
                self.session.query(backlog_model)
                .filter(backlog_model.username == username)
                .order_by(backlog_model.created_at.desc())
                .first()
            )
        if entry is None or not self.hasher.verify(password, entry.password_hash):
            raise AuthenticationError("Invalid username or password", username=username)

        self.logger.info(
            "Login refused: signup not promoted",
            extra={"username": username, "backlog_status": entry.status},
        )
        return LoginResult(success=False, status=entry.status, role=role)

    @operation()
    def login(self, username: str, password: str, role: Role) -> LoginResult:
        """
        Authenticate a user for a role.

        Raises:
            AuthenticationError: Unknown user, wrong password or role mismatch
            PersistenceInconsistencyError: Credential exists without its profile
        """
        if not username or not password:
            raise AuthenticationError("Username and password are required")
        role = Role(role)

        credential = get_record(self.session, Credential, {"username": username})
        if credential is None:
            return self._backlog_login(username, password, role)

        if credential.role != role.value or not self.hasher.verify(
            password, credential.password_hash
        ):
            raise AuthenticationError("Invalid username or password", username=username)

        profile = get_record(self.session, _PROFILE_MODELS[role], {"credential_id": credential.id})
        if profile is None:
            raise PersistenceInconsistencyError(
                "Credential has no profile", credential_id=credential.id, role=role.value
            )

        if not profile.is_active:
            self.logger.info("Login refused: account inactive", extra={"username": username})
            return LoginResult(
                success=False,
                status="inactive",
                role=role,
                credential_id=credential.id,
                profile_id=profile.id,
            )

        token = self.tokens.issue(profile.id, role.value)
        self.logger.info("Login succeeded", extra={"username": username, "role": role.value})
        return LoginResult(
            success=True,
            status="active",
            token=token,
            role=role,
            credential_id=credential.id,
            profile_id=profile.id,
        )

    def authenticate(self, token: str) -> TokenClaims:
        """Verify a bearer token and return its claims; AuthenticationError if it does not verify."""
        claims = self.tokens.verify(token)
        if claims is None:
            raise AuthenticationError("Invalid or expired token")
        return claims
