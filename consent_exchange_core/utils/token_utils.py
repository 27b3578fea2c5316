"""Bearer token issuance and verification backed by PyJWT."""

from datetime import UTC, datetime, timedelta
from typing import Optional

import jwt
from pydantic import BaseModel

from ..config import SecurityConfig, get_config
from ..constants import MIN_JWT_SECRET_LENGTH
from ..exceptions import ErrorCode, ValidationError
from .logger import get_logger


class TokenClaims(BaseModel):
    subject_id: str
    role: str
    issued_at: datetime
    expires_at: datetime


class TokenService:
    """Signs and verifies HMAC tokens carrying a subject id and role."""

    def __init__(self, security: Optional[SecurityConfig] = None):
        security = security or get_config().security
        if len(security.jwt_secret) < MIN_JWT_SECRET_LENGTH:
            raise ValidationError(
                f"JWT secret must be at least {MIN_JWT_SECRET_LENGTH} characters",
                field="jwt_secret",
                error_code=ErrorCode.CONFIGURATION_ERROR,
            )
        self._secret = security.jwt_secret
        self._algorithm = security.jwt_algorithm
        self._ttl = timedelta(seconds=security.token_ttl_seconds)
        self.logger = get_logger()

    def issue(self, subject_id: str, role: str, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(UTC)
        payload = {
            "sub": subject_id,
            "role": role,
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttl).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> Optional[TokenClaims]:
        """
        Decode and validate a token.

        Returns:
            TokenClaims, or None when the token is expired, tampered or malformed
        """
        if not token:
            return None
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            self.logger.warning("Token expired")
            return None
        except jwt.InvalidTokenError as e:
            self.logger.warning("Invalid token", extra={"reason": str(e)})
            return None

        return TokenClaims(
            subject_id=payload["sub"],
            role=payload.get("role", ""),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=UTC),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=UTC),
        )
