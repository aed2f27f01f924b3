# backend/pricesync/services/__init__.py
"""
Service layer: price sync core and valuation.

Services have NO knowledge of HTTP (no HTTPException, no status codes);
they raise the domain exceptions in services/exceptions.py and the router
layer maps them to responses.

Architecture:
    services/
    ├── __init__.py          # This file (kept import-free: config imports constants)
    ├── exceptions.py        # Domain exceptions
    ├── constants.py         # Defaults and limits
    ├── circuit_breaker.py   # Per-provider breaker
    ├── market_data/         # Rate limiter, adapters, fallback, registry, sync
    └── valuation/           # Portfolio totals
"""
