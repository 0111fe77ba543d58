"""Offline provider with a fixed table of approximate rates.

Useful for development without network access and for deterministic tests.
Rates do not vary by date.
"""

from datetime import date
from decimal import Decimal

from services.fx.base import RateProvider, RateUnavailableError

# Approximate mid-market value of one unit in USD
USD_VALUES: dict[str, Decimal] = {
    "USD": Decimal("1.0"),
    "EUR": Decimal("1.08"),
    "GBP": Decimal("1.27"),
    "CAD": Decimal("0.74"),
    "AUD": Decimal("0.65"),
    "JPY": Decimal("0.0067"),
    "CNY": Decimal("0.14"),
    "INR": Decimal("0.012"),
    "MXN": Decimal("0.058"),
    "CHF": Decimal("1.13"),
}


class StaticRateProvider(RateProvider):
    """Provider answering from ``USD_VALUES`` via cross rates."""

    @property
    def provider_name(self) -> str:
        return "static"

    def is_available(self) -> bool:
        return True

    async def get_rate(self, currency: str, quote_currency: str, on_date: date) -> Decimal:
        source_value = USD_VALUES.get(currency)
        quote_value = USD_VALUES.get(quote_currency)

        if source_value is None or quote_value is None:
            raise RateUnavailableError(
                f"Unsupported currency pair {currency}/{quote_currency} in static table"
            )

        return (source_value / quote_value).quantize(Decimal("0.000001"))
