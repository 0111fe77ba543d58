"""Frankfurter-based provider for historical exchange rates.

Frankfurter publishes European Central Bank reference rates and needs no
API key. Requests for weekends and holidays resolve to the previous
business day.

Endpoint: GET {base_url}/{YYYY-MM-DD}?from=EUR&to=USD
Response: {"amount": 1.0, "base": "EUR", "date": "2024-01-15", "rates": {"USD": 1.0945}}

See: https://www.frankfurter.app/docs/
"""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from services.fx.base import RateProvider, RateUnavailableError
from services.shared.config import Settings

logger = logging.getLogger(__name__)

RETRY_WAIT_MAX = 5.0


class FrankfurterRateProvider(RateProvider):
    """Historical rate provider backed by the Frankfurter API."""

    def __init__(
        self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> None:
        """Initialize Frankfurter provider.

        Args:
            settings: Application settings
            transport: Optional httpx transport (used to stub the API in tests)
        """
        super().__init__(settings)
        self._base_url = settings.frankfurter_base_url.rstrip("/")
        self._timeout = settings.fx_request_timeout
        self._retry_attempts = settings.fx_retry_attempts
        self._transport = transport

    @property
    def provider_name(self) -> str:
        """Get provider name for logging/metrics.

        Returns:
            Provider identifier 'frankfurter'
        """
        return "frankfurter"

    def is_available(self) -> bool:
        """Check that a base URL is configured.

        Returns:
            True if the provider has somewhere to send requests
        """
        return bool(self._base_url)

    async def get_rate(self, currency: str, quote_currency: str, on_date: date) -> Decimal:
        """Fetch the historical rate of ``currency`` in ``quote_currency``.

        Args:
            currency: Invoice currency code
            quote_currency: Reporting currency code
            on_date: Valuation date

        Returns:
            Rate as Decimal

        Raises:
            RateUnavailableError: On HTTP errors or malformed responses
        """
        date_str = on_date.isoformat()
        try:
            payload = await self._fetch_with_retry(currency, quote_currency, date_str)
        except httpx.HTTPStatusError as e:
            raise RateUnavailableError(
                f"Frankfurter returned HTTP {e.response.status_code} "
                f"for {currency}/{quote_currency} on {date_str}"
            ) from e
        except httpx.HTTPError as e:
            raise RateUnavailableError(
                f"Request to Frankfurter failed for {currency}/{quote_currency} on {date_str}: {e}"
            ) from e
        except ValueError as e:
            raise RateUnavailableError(f"Frankfurter returned invalid JSON: {e}") from e

        return self._parse_rate(payload, currency, quote_currency, date_str)

    async def _fetch_with_retry(
        self, currency: str, quote_currency: str, date_str: str
    ) -> Any:
        """Call Frankfurter, retrying transient transport errors.

        Args:
            currency: Invoice currency code
            quote_currency: Reporting currency code
            date_str: Valuation date as YYYY-MM-DD

        Returns:
            Decoded JSON payload

        Raises:
            httpx.HTTPError: After all retry attempts exhausted, or on non-2xx status
        """
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            wait=wait_exponential_jitter(initial=0.5, max=RETRY_WAIT_MAX),
            stop=stop_after_attempt(self._retry_attempts),
            reraise=True,
        ):
            with attempt:
                async with httpx.AsyncClient(
                    base_url=self._base_url,
                    timeout=self._timeout,
                    transport=self._transport,
                    follow_redirects=True,
                ) as client:
                    logger.debug(f"Fetching {currency}/{quote_currency} rate for {date_str}")
                    response = await client.get(
                        f"/{date_str}", params={"from": currency, "to": quote_currency}
                    )
                    response.raise_for_status()
                    return response.json()

    @staticmethod
    def _parse_rate(payload: Any, currency: str, quote_currency: str, date_str: str) -> Decimal:
        """Read ``rates.<quote_currency>`` from a Frankfurter payload.

        Raises:
            RateUnavailableError: If the rate is missing, non-numeric or not positive
        """
        try:
            raw_rate = payload["rates"][quote_currency]
            rate = Decimal(str(raw_rate))
        except (KeyError, TypeError, InvalidOperation) as e:
            raise RateUnavailableError(
                f"No {quote_currency} rate found for {currency} on {date_str}"
            ) from e

        if not rate.is_finite() or rate <= 0:
            raise RateUnavailableError(
                f"Invalid {quote_currency} rate {raw_rate!r} for {currency} on {date_str}"
            )
        return rate
