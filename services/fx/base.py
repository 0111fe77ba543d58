"""Abstract base class for historical exchange rate providers.

Enables switching between rate sources (Frankfurter API, offline table)
while keeping one interface for the resolver.

Based on Strategy Pattern:
https://refactoring.guru/design-patterns/strategy/python
"""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal

from services.shared.config import Settings


class RateUnavailableError(Exception):
    """Raised by a provider when no usable rate could be obtained.

    Covers network failures, non-2xx responses, malformed payloads and
    currencies the provider does not know.
    """


class RateProvider(ABC):
    """Abstract base class for exchange rate providers.

    Example implementations:
    - FrankfurterRateProvider: ECB reference rates over HTTP
    - StaticRateProvider: fixed offline table
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize provider with settings.

        Args:
            settings: Application settings
        """
        self.settings = settings

    @abstractmethod
    async def get_rate(self, currency: str, quote_currency: str, on_date: date) -> Decimal:
        """Get the value of one unit of ``currency`` in ``quote_currency``.

        Args:
            currency: ISO 4217 code of the invoice currency (e.g. EUR)
            quote_currency: ISO 4217 code of the reporting currency (e.g. USD)
            on_date: Valuation date

        Returns:
            Positive exchange rate

        Raises:
            RateUnavailableError: If the rate cannot be obtained
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this provider is configured.

        Returns:
            True if provider can be used, False otherwise
        """
        pass

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Get provider name for logging/metrics.

        Returns:
            Provider identifier (e.g., 'frankfurter', 'static')
        """
        pass
