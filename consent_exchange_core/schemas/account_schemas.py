"""
Pydantic schemas for credentials, principal profiles and signup backlogs.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..enums import BacklogStatus, Role, SeekerType
from ..exceptions import ErrorCode, ValidationError


def _check_email(v: Optional[str], field: str = "email") -> Optional[str]:
    if v is not None and ("@" not in v or v.startswith("@") or v.endswith("@")):
        raise ValidationError(
            "Invalid email address", error_code=ErrorCode.INVALID_FORMAT, field=field, value=v
        )
    return v.strip().lower() if v else v


class SignupBase(BaseModel):
    """Fields shared by every signup."""

    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1, max_length=72)

    model_config = ConfigDict(extra="ignore")

    @field_validator("username")
    def validate_username(cls, v: str) -> str:
        if any(ch.isspace() for ch in v):
            raise ValidationError(
                "Username must not contain whitespace",
                error_code=ErrorCode.INVALID_FORMAT,
                field="username",
                value=v,
            )
        return v


class ProviderSignup(SignupBase):
    first_name: str = Field(min_length=1, max_length=100)
    middle_name: Optional[str] = Field(default=None, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=255)
    mobile_no: Optional[str] = Field(default=None, max_length=20)
    date_of_birth: Optional[date] = None
    age: Optional[int] = Field(default=None, ge=0, le=150)
    public_key: Optional[str] = None

    @field_validator("email")
    def validate_email(cls, v: str) -> str:
        return _check_email(v)


class SeekerSignup(SignupBase):
    name: str = Field(min_length=1, max_length=200)
    seeker_type: SeekerType
    registration_no: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=255)
    contact_no: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = Field(default=None, max_length=500)
    public_key: Optional[str] = None

    @field_validator("email")
    def validate_email(cls, v: str) -> str:
        return _check_email(v)


class AdminSignup(SignupBase):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=255)
    mobile_no: Optional[str] = Field(default=None, max_length=20)

    @field_validator("email")
    def validate_email(cls, v: str) -> str:
        return _check_email(v)


class CredentialRead(BaseModel):
    """Credential without its password hash."""

    id: str
    username: str
    role: Role
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProviderRead(BaseModel):
    id: str
    credential_id: str
    first_name: str
    middle_name: Optional[str] = None
    last_name: str
    email: str
    mobile_no: Optional[str] = None
    date_of_birth: Optional[date] = None
    age: Optional[int] = None
    public_key: Optional[str] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class SeekerRead(BaseModel):
    id: str
    credential_id: str
    name: str
    seeker_type: SeekerType
    registration_no: str
    email: str
    contact_no: Optional[str] = None
    address: Optional[str] = None
    public_key: Optional[str] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class AdminRead(BaseModel):
    id: str
    credential_id: str
    first_name: str
    last_name: str
    email: str
    mobile_no: Optional[str] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class BacklogRead(BaseModel):
    """A signup awaiting (or past) an admin decision; password hash is never exposed."""

    id: str
    username: str
    email: str
    status: BacklogStatus
    role: Optional[Role] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, extra="ignore")


class PromotionResult(BaseModel):
    """
    Outcome of an admin decision on a backlog entry.

    ``success`` is False only when an approval could not be carried out
    because the identity was already registered; ``reason`` says why.
    """

    success: bool
    backlog_id: str
    status: BacklogStatus
    credential_id: Optional[str] = None
    profile_id: Optional[str] = None
    reason: Optional[str] = None


class UserSummary(BaseModel):
    """Admin-facing summary of a promoted principal."""

    id: str
    credential_id: str
    username: str
    role: Role
    email: str
    name: str
    is_active: bool


class LoginResult(BaseModel):
    """
    Result of a login attempt for a known user.

    ``status`` is "active" on success, "inactive" for a deactivated profile,
    or the backlog status for a signup that has not been promoted.
    """

    success: bool
    status: str
    token: Optional[str] = None
    role: Optional[Role] = None
    credential_id: Optional[str] = None
    profile_id: Optional[str] = None
