"""Tests for custom exceptions in core.exceptions."""

from src.provider_portal.core.exceptions import (
    AppException,
    BadRequestError,
    ConflictError,
    ExternalServiceError,
    FileValidationError,
    ForbiddenError,
    InvalidUploadSignatureError,
    NotFoundError,
    PayloadTooLargeError,
    ProviderAlreadyExistsError,
    ProviderNotFoundError,
    ProviderRecordError,
    ReviewImportError,
    ServiceUnavailableError,
    ValidationError,
)


def test_app_exception_to_dict():
    """Test the to_dict method serialization."""
    exc = AppException("Test message", "TEST_CODE", 400, {"key": "value"})
    data = exc.to_dict()
    assert data["error"]["code"] == "TEST_CODE"
    assert data["error"]["message"] == "Test message"
    assert data["error"]["details"]["key"] == "value"
    assert exc.status_code == 400
    assert str(exc) == "Test message"


def test_http_error_instantiation():
    assert BadRequestError().status_code == 400
    assert ForbiddenError().status_code == 403

    not_found = NotFoundError(resource_type="blob", resource_id="providers/x.jpg")
    assert not_found.status_code == 404
    assert not_found.details["resource_type"] == "blob"
    assert not_found.details["resource_id"] == "providers/x.jpg"

    assert ConflictError().status_code == 409

    too_large = PayloadTooLargeError(limit=1000)
    assert too_large.status_code == 413
    assert too_large.details["limit"] == 1000

    validation = ValidationError(errors=[{"msg": "bad"}])
    assert validation.status_code == 422
    assert "validation_errors" in validation.details

    svc_unavail = ServiceUnavailableError(retry_after=120)
    assert svc_unavail.status_code == 503
    assert svc_unavail.details["retry_after_seconds"] == 120


def test_external_service_error():
    exc = ExternalServiceError("storage", details={"status_code": 403})
    assert exc.status_code == 502
    assert exc.details == {"status_code": 403, "service": "storage"}
    assert "storage" in exc.message


def test_domain_errors():
    missing = ProviderNotFoundError(provider_id=7)
    assert missing.error_code == "PROVIDER_NOT_FOUND"
    assert missing.message == "Provider not found: 7"
    assert isinstance(missing, NotFoundError)

    duplicate = ProviderAlreadyExistsError("a@b.com")
    assert duplicate.status_code == 409
    assert duplicate.details["email"] == "a@b.com"

    file_error = FileValidationError("Bad type", filename="x.pdf", allowed_types=["image/png"])
    assert file_error.status_code == 400
    assert file_error.details == {"filename": "x.pdf", "allowed_types": ["image/png"]}

    signature = InvalidUploadSignatureError("providers/a.jpg", "signature mismatch")
    assert signature.status_code == 403
    assert signature.message == "Upload URL rejected: signature mismatch"

    review = ReviewImportError("No rows")
    assert review.error_code == "REVIEW_IMPORT_ERROR"
    assert isinstance(review, BadRequestError)


def test_provider_record_error_keeps_message():
    exc = ProviderRecordError("Images were not properly saved to provider record", provider_id="p1")
    assert str(exc) == "Images were not properly saved to provider record"
    assert exc.details == {"provider_id": "p1"}
    assert exc.status_code == 502
