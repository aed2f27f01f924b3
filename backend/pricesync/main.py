# backend/pricesync/main.py
"""
FastAPI application entry point.

This file:
- Configures application-wide logging
- Creates the FastAPI application
- Registers global exception handlers (domain errors -> HTTP)
- Registers all routers
- Defines the health endpoint
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from pricesync.config import settings
from pricesync.dependencies import close_provider_registry
from pricesync.middleware import (
    RATE_LIMIT_HEALTH,
    CorrelationIdMiddleware,
    SlowAPIMiddleware,
    limiter,
    rate_limit_exceeded_handler,
)
from pricesync.routers import market_router, quotes_router, sync_router, valuation_router
from pricesync.schemas.errors import ErrorDetail, ValidationErrorDetail
from pricesync.services.exceptions import (
    AllProvidersExhausted,
    CircuitBreakerOpen,
    ConfigurationError,
    PermanentProviderError,
    ProviderAuthError,
    RateLimitError,
    ServiceError,
    TickerNotFoundError,
    TransientProviderError,
    ValidationError,
)
from pricesync.utils import setup_logging

logger = logging.getLogger(__name__)

# =============================================================================
# LOGGING SETUP (must be before app creation)
# =============================================================================

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    await close_provider_registry()


# =============================================================================
# APPLICATION SETUP
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Price synchronization and valuation for investment portfolios",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Middleware order matters: last added = first executed
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# GLOBAL EXCEPTION HANDLERS
# =============================================================================
# Starlette picks the handler of the most specific class in the exception's
# MRO, so the generic Transient/Permanent/Service handlers only catch what
# the specific ones do not.

app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


def _error_response(
        status_code: int,
        exc: ServiceError,
        details: dict | None = None,
        headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorDetail.from_error(exc, details).model_dump(),
        headers=headers,
    )


@app.exception_handler(TickerNotFoundError)
async def ticker_not_found_handler(request: Request, exc: TickerNotFoundError) -> JSONResponse:
    """Unknown symbol / scheme code (404)."""
    logger.warning(f"Ticker not found: {exc}")
    return _error_response(404, exc, {"identifier": exc.identifier, "provider": exc.provider})


@app.exception_handler(ProviderAuthError)
async def provider_auth_handler(request: Request, exc: ProviderAuthError) -> JSONResponse:
    """Our credentials were rejected upstream (502)."""
    logger.error(f"Provider auth failed: {exc}")
    return _error_response(502, exc, {"provider": exc.provider})


@app.exception_handler(PermanentProviderError)
async def permanent_provider_handler(request: Request, exc: PermanentProviderError) -> JSONResponse:
    """Upstream answered with something unusable (502)."""
    logger.error(f"Provider error: {exc}")
    return _error_response(502, exc, {"provider": exc.provider})


@app.exception_handler(RateLimitError)
async def rate_limit_handler(request: Request, exc: RateLimitError) -> JSONResponse:
    """Provider throttled us (429)."""
    logger.warning(f"Provider rate limit: {exc}")
    headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
    details = {"provider": exc.provider, "retry_after": exc.retry_after}
    return _error_response(429, exc, details, headers)


@app.exception_handler(CircuitBreakerOpen)
async def circuit_breaker_handler(request: Request, exc: CircuitBreakerOpen) -> JSONResponse:
    """Provider skipped while its breaker is open (503 with Retry-After)."""
    logger.warning(f"Circuit breaker open: {exc.breaker_name}")
    retry_after = int(exc.time_remaining) + 1
    return _error_response(
        503,
        exc,
        {"breaker_name": exc.breaker_name, "retry_after": retry_after},
        {"Retry-After": str(retry_after)},
    )


@app.exception_handler(TransientProviderError)
async def transient_provider_handler(request: Request, exc: TransientProviderError) -> JSONResponse:
    """Timeouts and provider outages (503)."""
    logger.error(f"Provider unavailable: {exc}")
    return _error_response(503, exc, {"provider": exc.provider})


@app.exception_handler(AllProvidersExhausted)
async def all_providers_exhausted_handler(request: Request, exc: AllProvidersExhausted) -> JSONResponse:
    """Every provider in the chain failed (502, with each attempt)."""
    logger.error(f"All providers failed: {exc}")
    return JSONResponse(status_code=502, content=ErrorDetail.from_exhausted(exc).model_dump())


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Malformed investment record or parameter (400)."""
    logger.warning(f"Validation error: {exc}")
    return _error_response(400, exc, {"field": exc.field} if exc.field else None)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    """Provider setup is unusable (500)."""
    logger.error(f"Configuration error: {exc}")
    return _error_response(500, exc, {"provider": exc.provider} if exc.provider else None)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Any other service error (500)."""
    logger.error(f"Service error: {exc}")
    return _error_response(500, exc)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request body validation errors in the ValidationErrorDetail format (422)."""
    return JSONResponse(
        status_code=422,
        content=ValidationErrorDetail.from_errors(exc.errors()).model_dump(),
    )


# =============================================================================
# ROUTERS
# =============================================================================

app.include_router(sync_router)  # /sync
app.include_router(valuation_router)  # /valuation
app.include_router(quotes_router)  # /quotes/*, /providers
app.include_router(market_router)  # /market/*


# =============================================================================
# GLOBAL ENDPOINTS
# =============================================================================

@app.get("/health", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
async def health_check(request: Request) -> dict:
    """Liveness check; does not call any provider."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "environment": settings.environment,
    }
