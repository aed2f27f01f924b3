# backend/pricesync/routers/quotes.py
"""
Single-quote lookups and provider listing.

A quote request goes through the same rate limiter, circuit breakers and
fallback chain as a sync cycle.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request

from pricesync.dependencies import get_provider_registry
from pricesync.middleware.rate_limit import RATE_LIMIT_DEFAULT, RATE_LIMIT_QUOTES, limiter
from pricesync.schemas.quotes import ProviderResponse, QuoteResponse
from pricesync.services.exceptions import AllProvidersExhausted, ValidationError
from pricesync.services.market_data import ProviderRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Quotes"])


@router.get(
    "/quotes/{investment_type}/{identifier}",
    response_model=QuoteResponse,
    summary="Current quote for one symbol or scheme code",
)
@limiter.limit(RATE_LIMIT_QUOTES)
async def get_quote(
        request: Request,  # Required for rate limiting
        investment_type: str,
        identifier: str,
        provider: str | None = Query(default=None, description="Ask only this provider"),
        registry: ProviderRegistry = Depends(get_provider_registry),
) -> QuoteResponse:
    """
    Resolve a quote through the route configured for `investment_type`
    (or through `provider` alone).

    Raises **404** if the identifier is unknown, **400** if the type has
    no price source, **502/503** when providers fail.
    """
    if provider:
        adapters = [registry.adapter(provider)]
    else:
        adapters = registry.route(investment_type)
        if not adapters:
            raise ValidationError(
                f"No price source configured for investment type '{investment_type}'",
                field="investment_type",
            )

    try:
        quote = await registry.resolver.resolve(identifier, adapters)
    except AllProvidersExhausted as e:
        if len(e.attempts) == 1:
            # A single provider's own error maps to a more precise status
            raise e.errors[0] from e
        raise

    return QuoteResponse.from_quote(quote)


@router.get(
    "/providers",
    response_model=list[ProviderResponse],
    summary="Enabled providers with quota and breaker state",
)
@limiter.limit(RATE_LIMIT_DEFAULT)
async def list_providers(
        request: Request,  # Required for rate limiting
        registry: ProviderRegistry = Depends(get_provider_registry),
) -> list[ProviderResponse]:
    return [ProviderResponse.model_validate(status) for status in registry.available_providers()]
