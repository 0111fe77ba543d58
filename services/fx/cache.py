"""In-memory store of resolved exchange rates.

Historical rates are immutable once published, so entries are never
invalidated or evicted. One cache is owned by a resolver; share a resolver
to share its cache across batches.
"""

from datetime import date
from decimal import Decimal

RateKey = tuple[date, str]


class RateCache:
    """Maps ``(valuation date, currency)`` to the rate of one unit in the reporting currency."""

    def __init__(self) -> None:
        self._rates: dict[RateKey, Decimal] = {}

    @staticmethod
    def make_key(on_date: date, currency: str) -> RateKey:
        return (on_date, currency.upper())

    def get(self, on_date: date, currency: str) -> Decimal | None:
        return self._rates.get(self.make_key(on_date, currency))

    def put(self, on_date: date, currency: str, rate: Decimal) -> None:
        self._rates[self.make_key(on_date, currency)] = rate

    def __contains__(self, key: object) -> bool:
        return key in self._rates

    def __len__(self) -> int:
        return len(self._rates)
