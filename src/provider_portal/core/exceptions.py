"""
Custom Exception Classes.

Provides a hierarchy of domain-specific exceptions that are automatically
converted to appropriate HTTP responses by the global exception handler.
The client workflow raises the same classes so that a failure observed over
HTTP and one raised locally carry the same code and message.
"""

from typing import Any


class AppException(Exception):
    """
    Base exception for all application-specific errors.

    All custom exceptions should inherit from this class.
    The global exception handler converts these to HTTP responses.
    """

    def __init__(
        self,
        message: str,
        error_code: str = "APP_ERROR",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
            }
        }

# ============================================
# 4xx Client Errors
# ============================================

class BadRequestError(AppException):
    """Invalid request data or parameters (400)."""

    def __init__(
        self,
        message: str = "Invalid request",
        error_code: str = "BAD_REQUEST",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=400,
            details=details,
        )

class ForbiddenError(AppException):
    """Permission denied (403)."""

    def __init__(
        self,
        message: str = "Permission denied",
        error_code: str = "FORBIDDEN",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=403,
            details=details,
        )

class NotFoundError(AppException):
    """Resource not found (404)."""

    def __init__(
        self,
        message: str = "Resource not found",
        error_code: str = "NOT_FOUND",
        resource_type: str | None = None,
        resource_id: str | int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = resource_id
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=404,
            details=details,
        )

class ConflictError(AppException):
    """Resource conflict, e.g., duplicate entry (409)."""

    def __init__(
        self,
        message: str = "Resource conflict",
        error_code: str = "CONFLICT",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=409,
            details=details,
        )

class PayloadTooLargeError(AppException):
    """Uploaded content exceeds a size or row limit (413)."""

    def __init__(
        self,
        message: str = "Payload too large",
        error_code: str = "PAYLOAD_TOO_LARGE",
        limit: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if limit:
            details["limit"] = limit
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=413,
            details=details,
        )

class ValidationError(AppException):
    """Data validation failed (422)."""

    def __init__(
        self,
        message: str = "Validation failed",
        error_code: str = "VALIDATION_ERROR",
        errors: list[dict[str, Any]] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if errors:
            details["validation_errors"] = errors
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=422,
            details=details,
        )

# ============================================
# 5xx Server Errors
# ============================================

class ServiceUnavailableError(AppException):
    """Service temporarily unavailable (503)."""

    def __init__(
        self,
        message: str = "Service temporarily unavailable",
        error_code: str = "SERVICE_UNAVAILABLE",
        retry_after: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if retry_after:
            details["retry_after_seconds"] = retry_after
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=503,
            details=details,
        )

class ExternalServiceError(AppException):
    """External service call failed (502)."""

    def __init__(
        self,
        service_name: str,
        message: str | None = None,
        error_code: str = "EXTERNAL_SERVICE_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details["service"] = service_name
        super().__init__(
            message=message or f"External service '{service_name}' is unavailable or returned an error",
            error_code=error_code,
            status_code=502,
            details=details,
        )

# ============================================
# Domain-Specific Exceptions
# ============================================

class ProviderNotFoundError(NotFoundError):
    """Provider record not found."""

    def __init__(self, provider_id: int | str | None = None, message: str | None = None) -> None:
        super().__init__(
            message=message or f"Provider not found: {provider_id}",
            error_code="PROVIDER_NOT_FOUND",
            resource_type="provider",
            resource_id=provider_id,
        )

class ProviderAlreadyExistsError(ConflictError):
    """Provider with the same email already exists."""

    def __init__(self, email: str) -> None:
        super().__init__(
            message=f"Provider with email '{email}' already exists",
            error_code="PROVIDER_ALREADY_EXISTS",
            details={"email": email},
        )

class FileValidationError(BadRequestError):
    """File upload validation failed."""

    def __init__(
        self,
        message: str,
        filename: str | None = None,
        allowed_types: list[str] | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if filename:
            details["filename"] = filename
        if allowed_types:
            details["allowed_types"] = allowed_types
        super().__init__(
            message=message,
            error_code="FILE_VALIDATION_ERROR",
            details=details,
        )

class InvalidUploadSignatureError(ForbiddenError):
    """A signed upload URL was tampered with or has expired."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(
            message=f"Upload URL rejected: {reason}",
            error_code="INVALID_UPLOAD_SIGNATURE",
            details={"key": key},
        )

class ReviewImportError(BadRequestError):
    """The client reviews spreadsheet could not be imported."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            error_code="REVIEW_IMPORT_ERROR",
            details=details,
        )

class ProviderRecordError(AppException):
    """The record store acknowledged a write but returned an inconsistent record."""

    def __init__(self, message: str, provider_id: str | None = None) -> None:
        details: dict[str, Any] = {}
        if provider_id:
            details["provider_id"] = provider_id
        super().__init__(
            message=message,
            error_code="PROVIDER_RECORD_INCONSISTENT",
            status_code=502,
            details=details,
        )
