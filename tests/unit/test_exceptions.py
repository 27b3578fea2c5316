"""
Tests for the exception hierarchy, factories and correlation ids.
"""

import pytest

from consent_exchange_core.exceptions import (
    AuthenticationError,
    BaseError,
    ConflictError,
    CryptoError,
    ErrorCode,
    ExhaustedError,
    ExpiredError,
    ForbiddenError,
    NotApprovedError,
    NotFoundError,
    PersistenceInconsistencyError,
    RepositoryError,
    ServiceError,
    ValidationError,
    clear_correlation_id,
    duplicate,
    get_correlation_id,
    invalid_transition,
    not_found,
    permission_denied,
    set_correlation_id,
    validation_failed,
)


class TestStatusCodes:
    @pytest.mark.parametrize(
        "error,status_code,error_code",
        [
            (NotFoundError(), 404, ErrorCode.NOT_FOUND),
            (ConflictError(), 409, ErrorCode.CONFLICT),
            (ForbiddenError(), 403, ErrorCode.PERMISSION_DENIED),
            (AuthenticationError(), 401, ErrorCode.UNAUTHENTICATED),
            (NotApprovedError(), 403, ErrorCode.NOT_APPROVED),
            (ExpiredError(), 410, ErrorCode.EXPIRED),
            (ExhaustedError(), 429, ErrorCode.LIMIT_EXCEEDED),
            (CryptoError(), 500, ErrorCode.CRYPTO_ERROR),
            (PersistenceInconsistencyError(), 500, ErrorCode.INCONSISTENT_STATE),
            (ValidationError("bad"), 400, ErrorCode.VALIDATION_FAILED),
            (RepositoryError("db down"), 500, ErrorCode.DATABASE_ERROR),
            (ServiceError("boom"), 500, ErrorCode.INTERNAL_ERROR),
        ],
    )
    def test_status_and_code(self, error, status_code, error_code):
        assert isinstance(error, BaseError)
        assert error.status_code == status_code
        assert error.error_code == error_code


class TestFactories:
    def test_not_found_message(self):
        error = not_found("Consent", consent_id="c-1")

        assert error.message == "Consent not found: consent_id=c-1"
        assert error.context["consent_id"] == "c-1"

    def test_duplicate(self):
        error = duplicate("Account", email="a@example.com")

        assert isinstance(error, ConflictError)
        assert error.error_code == ErrorCode.DUPLICATE
        assert "email=a@example.com" in error.message

    def test_invalid_transition(self):
        error = invalid_transition("Consent", "approved", "rejected", consent_id="c-1")

        assert error.status_code == 409
        assert error.error_code == ErrorCode.INVALID_STATE_TRANSITION
        assert error.context["current_status"] == "approved"
        assert error.context["target_status"] == "rejected"

    def test_validation_failed(self):
        error = validation_failed("max_access_count", 0, "must be at least 1")

        assert error.context["field"] == "max_access_count"
        assert error.context["value"] == "0"

    def test_permission_denied(self):
        error = permission_denied("decide", "consent c-1", provider_id="p-2")

        assert isinstance(error, ForbiddenError)
        assert error.message == "Permission denied: decide on consent c-1"
        assert error.context["provider_id"] == "p-2"


class TestErrorDetails:
    def test_to_dict_hides_cause_by_default(self):
        error = ServiceError("wrapped", cause=RuntimeError("inner"), operation="approve")

        body = error.to_dict()

        assert body["error"]["code"] == ErrorCode.INTERNAL_ERROR.value
        assert body["error"]["context"]["operation"] == "approve"
        assert "cause" not in body["error"]

        detailed = error.to_dict(include_cause=True)
        assert detailed["error"]["cause"] == {"type": "RuntimeError", "message": "inner"}

    def test_error_chain(self):
        root = ValueError("root")
        middle = RepositoryError("middle", cause=root)
        top = ServiceError("top", cause=middle)

        assert top.error_chain == [top, middle, root]

    def test_add_context_is_fluent(self):
        error = CryptoError().add_context(seeker_id="s-1")

        assert error.context["seeker_id"] == "s-1"


class TestCorrelationId:
    def test_correlation_id_is_attached(self):
        set_correlation_id("corr-123")

        error = NotFoundError()

        assert error.context["correlation_id"] == "corr-123"
        assert error.to_dict()["error"]["correlation_id"] == "corr-123"

    def test_clear(self):
        set_correlation_id("corr-123")
        clear_correlation_id()

        assert get_correlation_id() is None
        assert "correlation_id" not in NotFoundError().context
