"""FX conversion pipeline: raw spreadsheet rows to fully derived invoices.

Processing steps for a batch:
1. Normalize every row independently
2. Collect the distinct (date, currency) pairs the batch needs and resolve
   each one once, concurrently
3. Convert invoice and payment amounts, derive FX gain/loss
4. Classify status and compute aging against ``today``

The output has one record per input row, in input order. Rate source
failures degrade accuracy (fallback rate, ``fx_rate_estimated``) but never
drop a row or fail the batch.
"""

import asyncio
import logging
from collections.abc import Iterable, Iterator, Mapping
from datetime import date
from decimal import Decimal
from typing import Any

from services.fx.resolver import RateResolution, RateResolver
from services.invoices.aging import calculate_days_outstanding, classify_status
from services.invoices.normalizer import normalize_invoice
from services.invoices.schema import Invoice
from services.shared.config import Settings, get_settings

logger = logging.getLogger(__name__)

_PAR = RateResolution(Decimal("1"))


class FXConversionPipeline:
    """Converts batches of raw invoice rows into derived Invoice records.

    Attributes:
        resolver: Rate resolver; its cache lives as long as the resolver
        max_concurrency: Maximum simultaneous rate lookups per batch
    """

    def __init__(self, resolver: RateResolver, max_concurrency: int = 8) -> None:
        self.resolver = resolver
        self.max_concurrency = max_concurrency

    @property
    def reporting_currency(self) -> str:
        return self.resolver.reporting_currency

    async def process(
        self, raw_rows: Iterable[Mapping[str, Any]], today: date | None = None
    ) -> list[Invoice]:
        """Normalize, convert and classify a batch of rows.

        Args:
            raw_rows: Rows as mappings of column name to cell value
            today: Reference date for status and aging (defaults to today)

        Returns:
            One Invoice per row, in input order
        """
        today = today or date.today()
        invoices = [normalize_invoice(row, self.reporting_currency) for row in raw_rows]

        rates = await self.resolver.resolve_all(
            self._rate_pairs(invoices), max_concurrency=self.max_concurrency
        )
        processed = [self._derive(invoice, rates, today) for invoice in invoices]

        estimated = sum(invoice.fx_rate_estimated for invoice in processed)
        logger.info(
            f"Processed {len(processed)} invoice(s), {estimated} with estimated FX rates"
        )
        return processed

    def _rate_pairs(self, invoices: list[Invoice]) -> Iterator[tuple[str, str]]:
        """Yield every (date, currency) pair the batch needs converted."""
        for invoice in invoices:
            if invoice.currency == self.reporting_currency:
                continue
            yield (invoice.invoice_date, invoice.currency)
            if self._has_payment(invoice):
                yield (invoice.payment_date or "", invoice.currency)

    @staticmethod
    def _has_payment(invoice: Invoice) -> bool:
        return bool(invoice.payment_date) and invoice.payment_amount is not None

    def _rate_for(
        self, rates: Mapping[tuple[Any, str], RateResolution], on_date: str, currency: str
    ) -> RateResolution:
        if currency == self.reporting_currency:
            return _PAR
        return rates[(on_date, currency)]

    def _derive(
        self,
        invoice: Invoice,
        rates: Mapping[tuple[Any, str], RateResolution],
        today: date,
    ) -> Invoice:
        invoice_rate = self._rate_for(rates, invoice.invoice_date, invoice.currency)
        usd_at_invoice = invoice.invoice_amount * invoice_rate.rate
        estimated = invoice_rate.estimated

        usd_at_payment = None
        fx_gain_loss = None
        if self._has_payment(invoice):
            payment_rate = self._rate_for(rates, invoice.payment_date or "", invoice.currency)
            usd_at_payment = (invoice.payment_amount or Decimal("0")) * payment_rate.rate
            estimated = estimated or payment_rate.estimated
            if invoice.currency == self.reporting_currency:
                fx_gain_loss = Decimal("0")
            else:
                fx_gain_loss = usd_at_payment - usd_at_invoice

        return invoice.model_copy(
            update={
                "usd_amount_at_invoice": usd_at_invoice,
                "usd_amount_at_payment": usd_at_payment,
                "fx_gain_loss": fx_gain_loss,
                "status": classify_status(invoice.payment_date, invoice.due_date, today),
                "days_outstanding": calculate_days_outstanding(invoice.due_date, today),
                "fx_rate_estimated": estimated,
            }
        )


def process_invoices(
    raw_rows: Iterable[Mapping[str, Any]],
    settings: Settings | None = None,
    today: date | None = None,
) -> list[Invoice]:
    """Synchronous entry point for scripts.

    Builds a pipeline from settings and runs one batch in a fresh event loop.
    Not for use inside a running event loop.
    """
    from services.fx.factory import create_pipeline

    pipeline = create_pipeline(settings or get_settings())
    return asyncio.run(pipeline.process(raw_rows, today=today))
