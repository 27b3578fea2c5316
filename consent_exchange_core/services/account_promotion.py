"""
Account promotion pipeline.

Signups land in a per-role backlog with a hashed password. An admin decision
either rejects the entry or promotes it: uniqueness is re-checked against the
live tables, then a Credential and an active profile are created and the
entry is marked approved.

Credential and profile are written as two separate steps. If the profile
write fails the credential is left in place and PersistenceInconsistencyError
is raised for an operator to resolve.
"""

from typing import List, Optional, Type, Union

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
from ..enums import BacklogStatus, Role
from ..exceptions import (
    ErrorCode,
    PersistenceInconsistencyError,
    ValidationError,
    duplicate,
    invalid_transition,
    not_found,
)
from ..schemas.account_schemas import (
    AdminRead,
    AdminSignup,
    BacklogRead,
    PromotionResult,
    ProviderSignup,
    SeekerSignup,
    UserSummary,
)
from ..utils.crud_helpers import (
    conditional_update,
    create_record,
    get_record_by_id,
    list_records,
    record_exists,
)
from ..utils.logger import ContextAwareLogger
from ..utils.password_utils import PasswordHasher
from .base_service import SessionManagedService

BacklogEntry = Union[ProviderBacklog, SeekerBacklog]

_BACKLOG_MODELS = {Role.PROVIDER: ProviderBacklog, Role.SEEKER: SeekerBacklog}
_PROFILE_MODELS = {Role.PROVIDER: Provider, Role.SEEKER: Seeker, Role.ADMIN: Admin}


def _display_name(role: Role, profile) -> str:
    if role == Role.SEEKER:
        return profile.name
    parts = [profile.first_name, getattr(profile, "middle_name", None), profile.last_name]
    return " ".join(part for part in parts if part)


class AccountPromotionPipeline(SessionManagedService):
    def __init__(
        self,
        session: Optional[Session] = None,
        hasher: Optional[PasswordHasher] = None,
        logger: Optional[ContextAwareLogger] = None,
    ):
        super().__init__(session=session, logger=logger)
        self.hasher = hasher or PasswordHasher()

    # ==================== UNIQUENESS ====================

    def _username_taken(self, username: str) -> bool:
        """Username in Credential or in either backlog, whatever the backlog status."""
        if record_exists(self.session, Credential, {"username": username}):
            return True
        return any(
            record_exists(self.session, model, {"username": username})
            for model in _BACKLOG_MODELS.values()
        )

    def _signup_conflict(self, role: Role, entry: Union[ProviderSignup, SeekerSignup]):
        """Return the (field, value) that collides with a profile or earlier signup, if any."""
        if self._username_taken(entry.username):
            return "username", entry.username

        backlog_model = _BACKLOG_MODELS[role]
        checks = [("email", entry.email)]
        if role == Role.SEEKER:
            checks.append(("registration_no", entry.registration_no))

        for field, value in checks:
            if record_exists(self.session, _PROFILE_MODELS[role], {field: value}):
                return field, value
            if record_exists(self.session, backlog_model, {field: value}):
                return field, value
        return None

    def _live_conflict(self, role: Role, entry: BacklogEntry):
        """Collisions against promoted principals only, evaluated at decision time."""
        if record_exists(self.session, Credential, {"username": entry.username}):
            return "username", entry.username
        profile_model = _PROFILE_MODELS[role]
        if record_exists(self.session, profile_model, {"email": entry.email}):
            return "email", entry.email
        if role == Role.SEEKER and record_exists(
            self.session, Seeker, {"registration_no": entry.registration_no}
        ):
            return "registration_no", entry.registration_no
        return None

    # ==================== SIGNUP ====================

    @operation()
    def submit(self, entry: Union[ProviderSignup, SeekerSignup]) -> BacklogRead:
        """
        Stage a provider or seeker signup for admin review.

        Raises:
            ConflictError: Username, email or registration number already in use
        """
        role = Role.SEEKER if isinstance(entry, SeekerSignup) else Role.PROVIDER

        try:
            with self.transaction():
                conflict = self._signup_conflict(role, entry)
                if conflict:
                    field, value = conflict
                    raise duplicate("Account", **{field: value})

                data = entry.model_dump(exclude={"password"})
                if role == Role.SEEKER:
                    data["seeker_type"] = entry.seeker_type.value
                data["password_hash"] = self.hasher.hash(entry.password)
                data["status"] = BacklogStatus.PENDING.value

                backlog = create_record(self.session, _BACKLOG_MODELS[role], data)
                self.logger.info(
                    "Signup submitted",
                    extra={"backlog_id": backlog.id, "role": role.value, "username": entry.username},
                )
                return BacklogRead.model_validate(backlog).model_copy(update={"role": role})

        except Exception as e:
            self._handle_service_exception("submit", e)

    # ==================== DECISION ====================

    def _find_backlog(self, backlog_id: str, role: Optional[Role]):
        roles = [Role(role)] if role else list(_BACKLOG_MODELS)
        for candidate in roles:
            if candidate not in _BACKLOG_MODELS:
                raise ValidationError(
                    f"Role {candidate.value} has no signup backlog",
                    error_code=ErrorCode.INVALID_FORMAT,
                    field="role",
                )
            entry = get_record_by_id(self.session, _BACKLOG_MODELS[candidate], backlog_id)
            if entry is not None:
                return candidate, entry
        raise not_found("BacklogEntry", backlog_id=backlog_id)

    def _set_backlog_status(self, role: Role, entry: BacklogEntry, status: BacklogStatus) -> None:
        landed = conditional_update(
            self.session,
            _BACKLOG_MODELS[role],
            entry.id,
            expected={"status": BacklogStatus.PENDING.value},
            values={"status": status.value},
        )
        self.session.refresh(entry)
        if not landed:
            raise invalid_transition(
                "BacklogEntry", entry.status, status.value, backlog_id=entry.id
            )

    def _create_profile(self, role: Role, entry, credential_id: str):
        if role == Role.PROVIDER:
            data = {
                "first_name": entry.first_name,
                "middle_name": entry.middle_name,
                "last_name": entry.last_name,
                "email": entry.email,
                "mobile_no": entry.mobile_no,
                "date_of_birth": entry.date_of_birth,
                "age": entry.age,
                "public_key": entry.public_key,
            }
        elif role == Role.SEEKER:
            data = {
                "name": entry.name,
                "seeker_type": entry.seeker_type,
                "registration_no": entry.registration_no,
                "email": entry.email,
                "contact_no": entry.contact_no,
                "address": entry.address,
                "public_key": entry.public_key,
            }
        else:
            data = {
                "first_name": entry.first_name,
                "last_name": entry.last_name,
                "email": entry.email,
                "mobile_no": entry.mobile_no,
            }
        data["credential_id"] = credential_id
        data["is_active"] = True
        return create_record(self.session, _PROFILE_MODELS[role], data)

    def _create_principal(self, role: Role, entry, password_hash: str, **context):
        """
        Create the credential, commit it, then create the profile.

        A profile failure is not compensated: the credential stays and
        PersistenceInconsistencyError is raised.
        """
        credential = create_record(
            self.session,
            Credential,
            {"username": entry.username, "password_hash": password_hash, "role": role.value},
        )
        credential_id = credential.id
        self.commit()

        try:
            profile = self._create_profile(role, entry, credential_id)
        except Exception as e:
            self.logger.error(
                "Profile creation failed after credential was stored",
                extra={"credential_id": credential_id, "role": role.value, **context},
            )
            raise PersistenceInconsistencyError(
                "Credential created but profile creation failed",
                cause=e,
                credential_id=credential_id,
                role=role.value,
                **context,
            )
        return credential, profile

    @operation()
    def decide(
        self, backlog_id: str, approve: bool, role: Optional[Role] = None
    ) -> PromotionResult:
        """
        Approve or reject a pending signup.

        A collision found at approval time rejects the entry and returns an
        unsuccessful result instead of raising.

        Raises:
            NotFoundError: No backlog entry with this id
            ConflictError: Entry already decided
            PersistenceInconsistencyError: Credential stored but profile write failed
        """
        try:
            with self.transaction():
                role, entry = self._find_backlog(backlog_id, role)
                if entry.status != BacklogStatus.PENDING.value:
                    target = BacklogStatus.APPROVED if approve else BacklogStatus.REJECTED
                    raise invalid_transition(
                        "BacklogEntry", entry.status, target.value, backlog_id=backlog_id
                    )

                if not approve:
                    self._set_backlog_status(role, entry, BacklogStatus.REJECTED)
                    self.logger.info(
                        "Signup rejected", extra={"backlog_id": backlog_id, "role": role.value}
                    )
                    return PromotionResult(
                        success=True, backlog_id=backlog_id, status=BacklogStatus.REJECTED
                    )

                conflict = self._live_conflict(role, entry)
                if conflict:
                    field, value = conflict
                    self._set_backlog_status(role, entry, BacklogStatus.REJECTED)
                    self.logger.warning(
                        "Signup rejected at approval: identity already registered",
                        extra={"backlog_id": backlog_id, "field": field, "value": value},
                    )
                    return PromotionResult(
                        success=False,
                        backlog_id=backlog_id,
                        status=BacklogStatus.REJECTED,
                        reason=f"{field} already registered",
                    )

                credential, profile = self._create_principal(
                    role, entry, entry.password_hash, backlog_id=backlog_id
                )
                self._set_backlog_status(role, entry, BacklogStatus.APPROVED)

                self.logger.info(
                    "Signup promoted",
                    extra={
                        "backlog_id": backlog_id,
                        "credential_id": credential.id,
                        "profile_id": profile.id,
                        "role": role.value,
                    },
                )
                return PromotionResult(
                    success=True,
                    backlog_id=backlog_id,
                    status=BacklogStatus.APPROVED,
                    credential_id=credential.id,
                    profile_id=profile.id,
                )

        except Exception as e:
            self._handle_service_exception("decide", e, backlog_id)

    @operation()
    def register_admin(self, entry: AdminSignup) -> AdminRead:
        """Create an admin directly; admins have no backlog."""
        try:
            with self.transaction():
                if self._username_taken(entry.username):
                    raise duplicate("Account", username=entry.username)
                if record_exists(self.session, Admin, {"email": entry.email}):
                    raise duplicate("Account", email=entry.email)

                _, profile = self._create_principal(
                    Role.ADMIN, entry, self.hasher.hash(entry.password)
                )
                return AdminRead.model_validate(profile)

        except Exception as e:
            self._handle_service_exception("register_admin", e)

    # ==================== ADMINISTRATION ====================

    def _profile_model(self, role: Role) -> Type:
        return _PROFILE_MODELS[Role(role)]

    def _summarize(self, role: Role, profile, username: str) -> UserSummary:
        return UserSummary(
            id=profile.id,
            credential_id=profile.credential_id,
            username=username,
            role=role,
            email=profile.email,
            name=_display_name(role, profile),
            is_active=profile.is_active,
        )

    @operation()
    def set_active_status(self, profile_id: str, role: Role, active: bool) -> UserSummary:
        """
        Activate or deactivate a principal.

        Only the profile flag changes; consents and data items are untouched.
        """
        role = Role(role)
        try:
            with self.transaction():
                profile = get_record_by_id(self.session, self._profile_model(role), profile_id)
                if profile is None:
                    raise not_found(role.value.capitalize(), profile_id=profile_id)

                profile.is_active = bool(active)
                self.session.flush()

                credential = get_record_by_id(self.session, Credential, profile.credential_id)
                self.logger.info(
                    "Active status changed",
                    extra={"profile_id": profile_id, "role": role.value, "is_active": active},
                )
                return self._summarize(role, profile, credential.username if credential else "")

        except Exception as e:
            self._handle_service_exception("set_active_status", e, profile_id)

    @operation()
    def list_backlog(
        self, role: Role, status: Optional[BacklogStatus] = BacklogStatus.PENDING
    ) -> List[BacklogRead]:
        """Backlog entries for a role, newest first; ``status=None`` lists every entry."""
        role = Role(role)
        if role not in _BACKLOG_MODELS:
            raise ValidationError(
                f"Role {role.value} has no signup backlog",
                error_code=ErrorCode.INVALID_FORMAT,
                field="role",
            )
        entries = list_records(
            self.session,
            _BACKLOG_MODELS[role],
            filters={"status": BacklogStatus(status).value if status else None},
        )
        return [
            BacklogRead.model_validate(entry).model_copy(update={"role": role})
            for entry in entries
        ]

    @operation()
    def list_users(self, role: Role, active: Optional[bool] = None) -> List[UserSummary]:
        """Promoted principals of a role with their usernames."""
        role = Role(role)
        profile_model = self._profile_model(role)
        query = self.session.query(profile_model, Credential.username).join(
            Credential, Credential.id == profile_model.credential_id
        )
        if active is not None:
            query = query.filter(profile_model.is_active == active)
        rows = query.order_by(Credential.username).all()
        return [self._summarize(role, profile, username) for profile, username in rows]
