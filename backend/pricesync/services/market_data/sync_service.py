# backend/pricesync/services/market_data/sync_service.py
"""
Sync orchestrator: refreshes the price fields of a batch of investments.

This service handles:
- Routing each investment to its provider chain by investment type
- Fetching all investments concurrently (bounded), each with its own timeout
  (each provider attempt inside it is bounded by the resolver, so a slow
  provider falls back instead of using up the item's budget)
- A deadline for the whole cycle; unfinished items are cancelled
- Repricing successful items, leaving failed items untouched
- Reporting every item's outcome

Design Principles:
- Partial Success: one investment's failure never affects another's
- No Retries: a failed item waits for the next cycle
- Immutable Inputs: failed and skipped investments are returned as the
  very same objects that came in
- No HTTP Knowledge: raises and reports domain errors only

Item states:
    PENDING -> FETCHING -> UPDATED | FAILED
    PENDING -> SKIPPED   (type has no price source, e.g. fixed deposits)

Usage:
    orchestrator = SyncOrchestrator.from_registry(registry, settings)
    report = await orchestrator.sync(investments)

    for failure in report.failures:
        print(failure.investment_id, failure.error_kind, failure.message)
"""

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Sequence

from pricesync.config import Settings
from pricesync.models import Investment, InvestmentType
from pricesync.services import constants as c
from pricesync.services.exceptions import (
    AllProvidersExhausted,
    ProviderTimeoutError,
    ServiceError,
    TransientProviderError,
    ValidationError,
)
from pricesync.services.market_data.base import ProviderAdapter
from pricesync.services.market_data.fallback import FallbackResolver
from pricesync.services.market_data.registry import ProviderRegistry
from pricesync.utils.context import correlation_scope

logger = logging.getLogger(__name__)

# Failure kind reported for exceptions outside the domain hierarchy
UNEXPECTED_ERROR_KIND = "UnexpectedError"

Router = Callable[[InvestmentType], Sequence[ProviderAdapter]]


# =============================================================================
# DATA CLASSES
# =============================================================================

class ItemState(str, enum.Enum):
    PENDING = "pending"
    FETCHING = "fetching"
    UPDATED = "updated"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class SyncFailure:
    """
    Why one investment was not updated.

    Attributes:
        investment_id: Id of the failed investment
        error_kind: Error class name ("TickerNotFoundError", "AllProvidersExhausted", ...)
        message: Human-readable description
        provider: Provider that failed (last one tried for a chain)
        transient: True if a later cycle may succeed
        attempts: (provider_id, error_kind) per provider tried, in order
    """

    investment_id: int | str
    error_kind: str
    message: str
    provider: str | None = None
    transient: bool = False
    attempts: tuple[tuple[str, str], ...] = ()


@dataclass
class ItemOutcome:
    """Progress of one investment through a cycle."""

    investment: Investment
    state: ItemState = ItemState.PENDING
    result: Investment | None = None
    provider: str | None = None
    failure: SyncFailure | None = None


@dataclass
class SyncReport:
    """
    Complete result of one sync cycle.

    `outcomes` keeps input order; the list properties are derived from it.
    """

    started_at: datetime
    completed_at: datetime | None = None
    outcomes: list[ItemOutcome] = field(default_factory=list)

    @property
    def updated(self) -> list[Investment]:
        return [o.result for o in self.outcomes if o.state == ItemState.UPDATED]

    @property
    def failures(self) -> list[SyncFailure]:
        return [o.failure for o in self.outcomes if o.state == ItemState.FAILED]

    @property
    def unchanged(self) -> list[Investment]:
        """Failed and skipped investments, as the same objects that came in."""
        return [o.investment for o in self.outcomes if o.state in (ItemState.FAILED, ItemState.SKIPPED)]

    @property
    def skipped(self) -> list[int | str]:
        return [o.investment.id for o in self.outcomes if o.state == ItemState.SKIPPED]

    @property
    def investments(self) -> list[Investment]:
        """Every investment in input order, repriced where the fetch succeeded."""
        return [o.result if o.state == ItemState.UPDATED else o.investment for o in self.outcomes]

    @property
    def status(self) -> str:
        """One of "completed" (no failures), "partial" or "failed" (nothing updated)."""
        failed = sum(1 for o in self.outcomes if o.state == ItemState.FAILED)
        if not failed:
            return "completed"
        if any(o.state == ItemState.UPDATED for o in self.outcomes):
            return "partial"
        return "failed"


# =============================================================================
# ORCHESTRATOR
# =============================================================================

class SyncOrchestrator:
    """
    Runs sync cycles over batches of investments.

    Attributes:
        _resolver: Fallback resolver (rate limiting + breakers + fallback)
        _router: Maps an investment type to its ordered adapters
        _item_timeout: Budget for one investment, rate-limit waits included
        _deadline: Default budget for a whole cycle
        _max_concurrency: Investments fetched at the same time
    """

    def __init__(
            self,
            resolver: FallbackResolver,
            router: Router,
            item_timeout: float = c.DEFAULT_SYNC_ITEM_TIMEOUT_SECONDS,
            deadline: float = c.DEFAULT_SYNC_DEADLINE_SECONDS,
            max_concurrency: int = c.DEFAULT_SYNC_MAX_CONCURRENCY,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._resolver = resolver
        self._router = router
        self._item_timeout = item_timeout
        self._deadline = deadline
        self._max_concurrency = max_concurrency

    @classmethod
    def from_registry(cls, registry: ProviderRegistry, settings: Settings) -> "SyncOrchestrator":
        return cls(
            resolver=registry.resolver,
            router=registry.route,
            item_timeout=settings.sync_item_timeout_seconds,
            deadline=settings.sync_deadline_seconds,
            max_concurrency=settings.sync_max_concurrency,
        )

    async def sync(
            self,
            investments: Sequence[Investment],
            deadline: float | None = None,
    ) -> SyncReport:
        """
        Refresh prices for a batch of investments.

        Never raises for per-item problems; every item ends UPDATED, FAILED
        or SKIPPED in the returned report.

        Args:
            investments: Investments to refresh
            deadline: Cycle budget in seconds (defaults to the configured one)

        Returns:
            SyncReport with one outcome per investment, in input order
        """
        deadline = self._deadline if deadline is None else deadline
        report = SyncReport(
            started_at=datetime.now(timezone.utc),
            outcomes=[ItemOutcome(investment=inv) for inv in investments],
        )

        with correlation_scope():
            logger.info(f"Sync started: {len(report.outcomes)} investments (deadline={deadline:g}s)")

            semaphore = asyncio.Semaphore(self._max_concurrency)
            tasks = []
            for outcome in report.outcomes:
                adapters = self._router(outcome.investment.type)
                if not adapters:
                    outcome.state = ItemState.SKIPPED
                    logger.debug(
                        f"Investment {outcome.investment.id}: no price source for "
                        f"type '{outcome.investment.type.value}', skipped"
                    )
                    continue
                tasks.append(asyncio.create_task(self._run_item(outcome, adapters, semaphore)))

            if tasks:
                _, pending = await asyncio.wait(tasks, timeout=deadline)
                for task in pending:
                    task.cancel()
                if pending:
                    await asyncio.gather(*pending, return_exceptions=True)
                    logger.warning(f"Sync deadline of {deadline:g}s reached, {len(pending)} item(s) cancelled")

            for outcome in report.outcomes:
                if outcome.state in (ItemState.PENDING, ItemState.FETCHING):
                    self._fail(outcome, ProviderTimeoutError(None, deadline))

            report.completed_at = datetime.now(timezone.utc)
            logger.info(
                f"Sync {report.status}: {len(report.updated)} updated, "
                f"{len(report.failures)} failed, {len(report.skipped)} skipped"
            )

        return report

    async def _run_item(
            self,
            outcome: ItemOutcome,
            adapters: Sequence[ProviderAdapter],
            semaphore: asyncio.Semaphore,
    ) -> None:
        investment = outcome.investment

        async with semaphore:
            outcome.state = ItemState.FETCHING
            identifier = investment.identifier
            if not identifier:
                self._fail(outcome, ValidationError(
                    f"Investment {investment.id} has no symbol or scheme code", field="symbol"
                ))
                return

            try:
                quote = await asyncio.wait_for(
                    self._resolver.resolve(identifier, adapters),
                    timeout=self._item_timeout,
                )
            except asyncio.TimeoutError:
                self._fail(outcome, ProviderTimeoutError(None, self._item_timeout))
            except ServiceError as e:
                self._fail(outcome, e)
            except Exception as e:
                logger.exception(f"Investment {investment.id}: unexpected error while syncing '{identifier}'")
                self._fail(outcome, e)
            else:
                outcome.result = investment.with_price(quote.price, as_of=quote.timestamp)
                outcome.provider = quote.provider
                outcome.state = ItemState.UPDATED
                logger.debug(f"Investment {investment.id}: '{identifier}' = {quote.price} via {quote.provider}")

    def _fail(self, outcome: ItemOutcome, error: Exception) -> None:
        outcome.failure = _to_failure(outcome.investment.id, error)
        outcome.state = ItemState.FAILED
        logger.warning(
            f"Investment {outcome.investment.id} not updated: "
            f"{outcome.failure.error_kind}: {outcome.failure.message}"
        )


def _to_failure(investment_id: int | str, error: Exception) -> SyncFailure:
    if not isinstance(error, ServiceError):
        return SyncFailure(investment_id, UNEXPECTED_ERROR_KIND, str(error) or type(error).__name__)

    attempts: tuple[tuple[str, str], ...] = ()
    provider = getattr(error, "provider", None)
    transient = isinstance(error, TransientProviderError)

    if isinstance(error, AllProvidersExhausted):
        attempts = tuple((pid, err.error_kind) for pid, err in error.attempts)
        provider = error.attempts[-1][0] if error.attempts else None
        transient = error.is_transient

    return SyncFailure(
        investment_id=investment_id,
        error_kind=error.error_kind,
        message=error.message,
        provider=provider,
        transient=transient,
        attempts=attempts,
    )
