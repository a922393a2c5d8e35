"""
Standardized API Response Schemas.

Provides consistent response structures across all API endpoints.
Uses generic types for type-safe responses.
"""
from datetime import UTC, datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ResponseMeta(BaseModel):
    """Metadata included in all API responses."""

    request_id: str | None = Field(
        default=None,
        description="Unique request identifier for tracing"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Response timestamp (UTC)"
    )
    version: str = Field(
        default="1.0.0",
        description="API version"
    )


class GenericResponse(BaseModel, Generic[T]):
    """
    Generic wrapper for successful API responses.

    Provides a consistent structure for all successful responses:
    - success: Always True for successful responses
    - message: Human-readable success message
    - data: The actual response payload (typed via generic)
    - meta: Request metadata for tracing and debugging

    Example:
        ```python
        @router.get("/providers/{provider_id}", response_model=GenericResponse[ProviderResponse])
        async def get_provider(provider_id: int) -> GenericResponse[ProviderResponse]:
            provider = await repo.get_or_raise(provider_id)
            return GenericResponse(
                message="Provider retrieved successfully",
                data=ProviderResponse.model_validate(provider),
            )
        ```
    """

    success: bool = Field(
        default=True,
        description="Indicates successful response"
    )
    message: str = Field(
        description="Human-readable response message"
    )
    data: T = Field(
        description="Response payload"
    )
    meta: ResponseMeta = Field(
        default_factory=ResponseMeta,
        description="Response metadata"
    )


class ErrorDetail(BaseModel):
    """Detailed error information."""

    code: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error message")
    details: dict | None = Field(
        default=None,
        description="Additional error context"
    )


class ErrorResponse(BaseModel):
    """
    Standardized error response structure.

    Used by the global exception handler for all error responses.
    """

    success: bool = Field(default=False)
    error: ErrorDetail
    meta: ResponseMeta = Field(default_factory=ResponseMeta)


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str = Field(description="Service health status")
    service: str = Field(description="Service name")
    version: str = Field(description="Service version")
    environment: str = Field(description="Deployment environment")
    checks: dict[str, "HealthCheck"] = Field(
        default_factory=dict,
        description="Individual component health checks"
    )


class HealthCheck(BaseModel):
    """Individual health check result."""

    status: str = Field(description="Component status: healthy/unhealthy/degraded")
    latency_ms: float | None = Field(
        default=None,
        description="Response time in milliseconds"
    )
    message: str | None = Field(
        default=None,
        description="Additional status information"
    )


HealthResponse.model_rebuild()
