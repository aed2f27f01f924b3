# backend/pricesync/schemas/errors.py
"""
Error bodies returned by the global exception handlers in main.py.

Every failure carries the domain `error_kind` as `error`, so a client can
branch on TickerNotFoundError vs ProviderUnavailableError without parsing
messages.
"""

from typing import Any

from pydantic import BaseModel, Field

from pricesync.services.exceptions import AllProvidersExhausted, ServiceError


class ProviderAttempt(BaseModel):
    """One provider tried while resolving a quote."""

    provider: str
    error: str = Field(description="Error kind raised by that provider")
    message: str


class ErrorDetail(BaseModel):
    error: str = Field(
        ...,
        description="Error kind (e.g., 'TickerNotFoundError')"
    )
    message: str
    details: dict[str, Any] | None = None

    @classmethod
    def from_error(cls, exc: ServiceError, details: dict[str, Any] | None = None) -> "ErrorDetail":
        return cls(error=exc.error_kind, message=str(exc), details=details)

    @classmethod
    def from_exhausted(cls, exc: AllProvidersExhausted) -> "ErrorDetail":
        """Exhausted fallback chain, listing every attempt in order."""
        attempts = [
            ProviderAttempt(provider=provider, error=error.error_kind, message=str(error))
            for provider, error in exc.attempts
        ]
        return cls.from_error(exc, {
            "identifier": exc.identifier,
            "transient": exc.is_transient,
            "attempts": [attempt.model_dump() for attempt in attempts],
        })


class FieldError(BaseModel):
    field: str = Field(description="Dotted location, e.g. 'body.investments.0.quantity'")
    message: str
    type: str


class ValidationErrorDetail(BaseModel):
    """Request validation errors (422 responses)."""

    error: str = "ValidationError"
    message: str = "Request validation failed"
    details: list[FieldError]

    @classmethod
    def from_errors(cls, errors: list[dict[str, Any]]) -> "ValidationErrorDetail":
        """Build from pydantic's `errors()` list."""
        return cls(details=[
            FieldError(
                field=".".join(str(loc) for loc in error["loc"]),
                message=error["msg"],
                type=error["type"],
            )
            for error in errors
        ])
