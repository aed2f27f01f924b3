# backend/pricesync/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain-specific errors and contain NO HTTP knowledge.
The router layer is responsible for mapping these to appropriate HTTP responses.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    ├── ConfigurationError
    └── MarketDataError
        ├── TransientProviderError
        │   ├── ProviderUnavailableError
        │   ├── ProviderTimeoutError
        │   ├── RateLimitError
        │   └── CircuitBreakerOpen
        ├── PermanentProviderError
        │   ├── TickerNotFoundError
        │   ├── ProviderAuthError
        │   └── ProviderSchemaError
        └── AllProvidersExhausted

Transient errors may succeed on a later sync cycle. Permanent errors will not
succeed until the investment record or the configuration changes. Neither is
retried within a cycle.
"""

from __future__ import annotations


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    @property
    def error_kind(self) -> str:
        """Short machine-readable error type used in failure reports."""
        return type(self).__name__


# =============================================================================
# VALIDATION & CONFIGURATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when input validation fails.

    This is for programmatic validation errors (malformed investment records,
    invalid numeric fields, etc.), NOT for request body validation which is
    handled by Pydantic.

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class ConfigurationError(ServiceError):
    """
    Raised when the provider configuration is unusable.

    Examples:
    - A selected provider has no credential configured
    - A rate limit quota is zero, negative or unparseable
    - A route references an unknown provider

    This is fatal and raised at construction time, never during a sync cycle.

    Attributes:
        provider: Provider the problem belongs to (optional)
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        self.provider = provider
        super().__init__(message)


# =============================================================================
# MARKET DATA PROVIDER ERRORS
# =============================================================================


class MarketDataError(ServiceError):
    """
    Base exception for market data provider failures.

    Attributes:
        provider: Name of the provider that failed
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        self.provider = provider
        super().__init__(message)


class TransientProviderError(MarketDataError):
    """
    A failure that may go away on a later sync cycle.

    Timeouts, 5xx responses and provider-declared throttling all land here.
    """


class PermanentProviderError(MarketDataError):
    """
    A failure that will repeat until the input or configuration changes.

    Unknown symbols, rejected credentials and unparseable responses land here.
    """


class ProviderUnavailableError(TransientProviderError):
    """
    Raised when a market data provider is temporarily unavailable.

    Examples:
    - Connection refused / DNS failure
    - Server errors (500, 502, 503)
    - API maintenance
    """

    def __init__(self, provider: str, reason: str) -> None:
        message = f"Provider '{provider}' is unavailable: {reason}"
        super().__init__(message, provider=provider)
        self.reason = reason


class ProviderTimeoutError(TransientProviderError):
    """
    Raised when a provider call (or a whole sync item) exceeds its time budget.

    Attributes:
        timeout: The budget in seconds that was exceeded (if known)
    """

    def __init__(self, provider: str | None, timeout: float | None = None) -> None:
        target = f"provider '{provider}'" if provider else "quote fetch"
        message = f"Timed out waiting for {target}"
        if timeout is not None:
            message += f" after {timeout:g}s"
        super().__init__(message, provider=provider)
        self.timeout = timeout


class RateLimitError(TransientProviderError):
    """
    Raised when the provider reports that its rate limit has been exceeded.

    Attributes:
        retry_after: Seconds to wait before retrying (if provided by API)
    """

    def __init__(self, provider: str, retry_after: int | None = None) -> None:
        message = f"Rate limit exceeded for provider '{provider}'"
        if retry_after:
            message += f" (retry after {retry_after}s)"
        super().__init__(message, provider=provider)
        self.retry_after = retry_after


class CircuitBreakerOpen(TransientProviderError):
    """
    Exception raised when a provider's circuit breaker is open.

    The provider is not called at all while the breaker is open.

    Attributes:
        breaker_name: Name of the circuit breaker (the provider id)
        time_remaining: Seconds until recovery timeout expires
    """

    def __init__(self, breaker_name: str, time_remaining: float) -> None:
        self.breaker_name = breaker_name
        self.time_remaining = time_remaining
        super().__init__(
            f"Circuit breaker '{breaker_name}' is open. "
            f"Retry in {time_remaining:.1f} seconds.",
            provider=breaker_name,
        )


class TickerNotFoundError(PermanentProviderError):
    """
    Raised when a symbol or scheme code is not known to the provider.

    Attributes:
        identifier: The symbol / scheme code that was requested
    """

    def __init__(self, identifier: str, provider: str, detail: str | None = None) -> None:
        message = f"'{identifier}' not found by {provider}"
        if detail:
            message += f": {detail}"
        super().__init__(message, provider=provider)
        self.identifier = identifier


class ProviderAuthError(PermanentProviderError):
    """Raised when the provider rejects our credentials (401/403, token errors)."""

    def __init__(self, provider: str, reason: str) -> None:
        super().__init__(f"Provider '{provider}' rejected credentials: {reason}", provider=provider)
        self.reason = reason


class ProviderSchemaError(PermanentProviderError):
    """Raised when a provider response cannot be mapped into a Quote."""

    def __init__(self, provider: str, reason: str) -> None:
        super().__init__(f"Unexpected response from '{provider}': {reason}", provider=provider)
        self.reason = reason


class AllProvidersExhausted(MarketDataError):
    """
    Raised when every adapter in a fallback chain failed.

    Attributes:
        identifier: The symbol / scheme code being resolved
        attempts: Ordered (provider_id, error) pairs, one per adapter tried
    """

    def __init__(
            self,
            identifier: str,
            attempts: list[tuple[str, MarketDataError]],
    ) -> None:
        self.identifier = identifier
        self.attempts = list(attempts)
        tried = ", ".join(f"{provider}: {error.error_kind}" for provider, error in self.attempts)
        super().__init__(f"All providers failed for '{identifier}' ({tried})")

    @property
    def errors(self) -> list[MarketDataError]:
        """Underlying errors in adapter order."""
        return [error for _, error in self.attempts]

    @property
    def is_transient(self) -> bool:
        """True if any attempt failed transiently (a later cycle may succeed)."""
        return any(isinstance(error, TransientProviderError) for error in self.errors)
