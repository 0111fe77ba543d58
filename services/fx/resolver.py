"""Exchange rate resolution with caching, single-flight and fallback.

Resolution order for a ``(currency, date)`` pair:
1. Reporting currency resolves to 1 without any lookup
2. Cached rate if one exists
3. An in-flight lookup for the same pair, if another caller started one
4. One provider call, bounded by a timeout, stored in the cache on success

Failures never propagate. A failed lookup resolves to the fallback rate of 1
(the amount is treated as already being in the reporting currency) and is
marked ``estimated`` so callers can flag the conversion.
"""

import asyncio
import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from prometheus_client import Counter, Histogram

from services.fx.base import RateProvider, RateUnavailableError
from services.fx.cache import RateCache, RateKey
from services.shared.dates import parse_iso_date

logger = logging.getLogger(__name__)

FALLBACK_RATE = Decimal("1")

DateLike = date | str


fx_rate_lookups_total = Counter(
    "fx_rate_lookups_total",
    "Exchange rate resolutions by outcome",
    ["result"],  # cache_hit, fetched, fallback
)

fx_rate_lookup_duration_seconds = Histogram(
    "fx_rate_lookup_duration_seconds",
    "Duration of exchange rate provider calls in seconds",
    ["provider"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)


class InvalidInputError(ValueError):
    """Raised when a required identifier such as a currency code is empty."""


@dataclass(frozen=True)
class RateResolution:
    """Outcome of resolving one rate.

    Attributes:
        rate: Value of one unit of the currency in the reporting currency
        estimated: True when the fallback rate was substituted
    """

    rate: Decimal
    estimated: bool = False


class RateResolver:
    """Resolves historical rates against the reporting currency.

    Attributes:
        provider: Rate source consulted on cache misses
        cache: Store of successfully fetched rates
        reporting_currency: Currency every rate is quoted in
        timeout: Upper bound in seconds for one provider call
    """

    def __init__(
        self,
        provider: RateProvider,
        cache: RateCache | None = None,
        reporting_currency: str = "USD",
        timeout: float = 10.0,
    ) -> None:
        self.provider = provider
        self.cache = cache if cache is not None else RateCache()
        self.reporting_currency = reporting_currency.upper()
        self.timeout = timeout
        self._in_flight: dict[RateKey, asyncio.Task[RateResolution]] = {}

    async def resolve(self, currency: str, on_date: DateLike) -> Decimal:
        """Resolve the rate of ``currency`` on ``on_date``.

        Args:
            currency: ISO 4217 code
            on_date: Valuation date or ISO date string

        Returns:
            Rate, or FALLBACK_RATE if it could not be obtained

        Raises:
            InvalidInputError: If currency is empty
        """
        resolution = await self.resolve_detailed(currency, on_date)
        return resolution.rate

    async def resolve_detailed(self, currency: str, on_date: DateLike) -> RateResolution:
        """Resolve a rate and report whether the fallback was used.

        Raises:
            InvalidInputError: If currency is empty
        """
        code = self._validate_currency(currency)
        if code == self.reporting_currency:
            return RateResolution(Decimal("1"))

        valuation_date = parse_iso_date(on_date)
        if valuation_date is None:
            logger.warning(
                f"Cannot parse date {on_date!r} for {code}, using fallback rate {FALLBACK_RATE}"
            )
            return self._fallback()

        cached = self.cache.get(valuation_date, code)
        if cached is not None:
            fx_rate_lookups_total.labels(result="cache_hit").inc()
            return RateResolution(cached)

        key = RateCache.make_key(valuation_date, code)
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.create_task(self._fetch(code, valuation_date))
            self._in_flight[key] = task
            task.add_done_callback(lambda _: self._in_flight.pop(key, None))

        # Shielded so one cancelled waiter does not cancel the shared lookup
        return await asyncio.shield(task)

    async def resolve_all(
        self, pairs: Iterable[tuple[DateLike, str]], max_concurrency: int = 8
    ) -> dict[tuple[DateLike, str], RateResolution]:
        """Resolve many ``(date, currency)`` pairs concurrently.

        Pairs are de-duplicated first. Every currency is validated before any
        lookup starts.

        Args:
            pairs: (valuation date, currency) pairs, duplicates allowed
            max_concurrency: Maximum simultaneous resolutions

        Returns:
            Mapping of (date as given, uppercase currency) to its resolution

        Raises:
            InvalidInputError: If any currency is empty
        """
        requested: dict[tuple[DateLike, str], None] = {}
        for on_date, currency in pairs:
            requested.setdefault((on_date, self._validate_currency(currency)), None)

        if not requested:
            return {}

        semaphore = asyncio.Semaphore(max_concurrency)

        async def bounded(on_date: DateLike, code: str) -> RateResolution:
            async with semaphore:
                return await self.resolve_detailed(code, on_date)

        keys = list(requested)
        resolutions = await asyncio.gather(*(bounded(on_date, code) for on_date, code in keys))
        logger.info(
            f"Resolved {len(keys)} distinct rate(s), "
            f"{sum(r.estimated for r in resolutions)} using fallback"
        )
        return dict(zip(keys, resolutions, strict=True))

    async def _fetch(self, currency: str, valuation_date: date) -> RateResolution:
        """Call the provider once and cache a successful result."""
        start_time = time.time()
        try:
            rate = await asyncio.wait_for(
                self.provider.get_rate(currency, self.reporting_currency, valuation_date),
                timeout=self.timeout,
            )
        except TimeoutError:
            logger.warning(
                f"Rate lookup for {currency} on {valuation_date} timed out after "
                f"{self.timeout}s, using fallback rate {FALLBACK_RATE}"
            )
            return self._fallback()
        except RateUnavailableError as e:
            logger.warning(f"{e}; using fallback rate {FALLBACK_RATE}")
            return self._fallback()
        except Exception as e:
            logger.warning(
                f"Unexpected error from {self.provider.provider_name} for {currency} on "
                f"{valuation_date}: {e}; using fallback rate {FALLBACK_RATE}"
            )
            return self._fallback()
        finally:
            fx_rate_lookup_duration_seconds.labels(provider=self.provider.provider_name).observe(
                time.time() - start_time
            )

        self.cache.put(valuation_date, currency, rate)
        fx_rate_lookups_total.labels(result="fetched").inc()
        logger.debug(f"Fetched {currency} rate {rate} for {valuation_date}")
        return RateResolution(rate)

    def _validate_currency(self, currency: str | None) -> str:
        if currency is None or not str(currency).strip():
            raise InvalidInputError("Currency is undefined or empty")
        return str(currency).strip().upper()

    @staticmethod
    def _fallback() -> RateResolution:
        fx_rate_lookups_total.labels(result="fallback").inc()
        return RateResolution(FALLBACK_RATE, estimated=True)
