"""KPI and chart aggregations over processed invoices.

Presentation-neutral: each function returns plain models that a dashboard,
API client or report can render however it likes. Amounts are in the
reporting currency.
"""

from collections import defaultdict
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel

from services.invoices.schema import Invoice, InvoiceStatus
from services.shared.dates import parse_iso_date

AGING_PERIODS: tuple[str, ...] = ("Current", "1-30 days", "31-60 days", "61-90 days", "90+ days")


class KPISummary(BaseModel):
    """Headline figures for a batch of invoices.

    Attributes:
        total_outstanding: Sum of invoice-date USD amounts not yet paid
        outstanding_count: Number of unpaid invoices (Outstanding or Overdue)
        total_fx_gain_loss: Sum of realized FX gain/loss over paid invoices
        currency_count: Number of distinct invoice currencies
        overdue_count: Number of overdue invoices
        estimated_count: Number of invoices converted with a fallback rate
    """

    total_outstanding: Decimal
    outstanding_count: int
    total_fx_gain_loss: Decimal
    currency_count: int
    overdue_count: int
    estimated_count: int


class CurrencyExposure(BaseModel):
    """Unpaid amount held in one currency."""

    currency: str
    amount: Decimal
    percentage: Decimal


class AgingBucket(BaseModel):
    """Unpaid amount falling in one aging period."""

    period: str
    amount: Decimal


class FXTrendPoint(BaseModel):
    """FX gain/loss realized in one payment month."""

    month: str  # YYYY-MM
    label: str  # e.g. "Feb 2024"
    fx_gain_loss: Decimal


class ReportSummary(BaseModel):
    """All aggregations for one batch."""

    kpis: KPISummary
    outstanding_by_currency: list[CurrencyExposure]
    aging: list[AgingBucket]
    fx_trend: list[FXTrendPoint]


def _unpaid(invoices: Iterable[Invoice]) -> list[Invoice]:
    return [invoice for invoice in invoices if invoice.status != InvoiceStatus.PAID]


def build_kpi_summary(invoices: list[Invoice]) -> KPISummary:
    unpaid = _unpaid(invoices)
    return KPISummary(
        total_outstanding=sum(
            (invoice.usd_amount_at_invoice or Decimal("0") for invoice in unpaid), Decimal("0")
        ),
        outstanding_count=len(unpaid),
        total_fx_gain_loss=sum(
            (invoice.fx_gain_loss or Decimal("0") for invoice in invoices), Decimal("0")
        ),
        currency_count=len({invoice.currency for invoice in invoices}),
        overdue_count=sum(invoice.status == InvoiceStatus.OVERDUE for invoice in invoices),
        estimated_count=sum(invoice.fx_rate_estimated for invoice in invoices),
    )


def outstanding_by_currency(invoices: list[Invoice]) -> list[CurrencyExposure]:
    """Unpaid USD amounts per currency with their share of the total.

    Currencies appear in order of first occurrence. Shares are rounded to one
    decimal place and are 0 when nothing is outstanding.
    """
    totals: dict[str, Decimal] = {}
    for invoice in _unpaid(invoices):
        totals[invoice.currency] = totals.get(invoice.currency, Decimal("0")) + (
            invoice.usd_amount_at_invoice or Decimal("0")
        )

    grand_total = sum(totals.values(), Decimal("0"))
    exposures = []
    for currency, amount in totals.items():
        share = amount / grand_total * 100 if grand_total else Decimal("0")
        exposures.append(
            CurrencyExposure(
                currency=currency,
                amount=amount,
                percentage=share.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP),
            )
        )
    return exposures


def aging_bucket_for(days: int) -> str:
    if days <= 0:
        return "Current"
    if days <= 30:
        return "1-30 days"
    if days <= 60:
        return "31-60 days"
    if days <= 90:
        return "61-90 days"
    return "90+ days"


def aging_buckets(invoices: list[Invoice]) -> list[AgingBucket]:
    """Unpaid USD amounts grouped by days past due; every period is present."""
    totals = {period: Decimal("0") for period in AGING_PERIODS}
    for invoice in _unpaid(invoices):
        period = aging_bucket_for(invoice.days_outstanding or 0)
        totals[period] += invoice.usd_amount_at_invoice or Decimal("0")
    return [AgingBucket(period=period, amount=amount) for period, amount in totals.items()]


def monthly_fx_trend(invoices: list[Invoice]) -> list[FXTrendPoint]:
    """FX gain/loss by payment month, oldest first.

    Invoices without a gain/loss figure or with an unparseable payment date
    are skipped.
    """
    monthly: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
    labels: dict[str, str] = {}
    for invoice in invoices:
        if invoice.fx_gain_loss is None:
            continue
        paid_on = parse_iso_date(invoice.payment_date)
        if paid_on is None:
            continue
        month = paid_on.strftime("%Y-%m")
        monthly[month] += invoice.fx_gain_loss
        labels[month] = paid_on.strftime("%b %Y")

    return [
        FXTrendPoint(month=month, label=labels[month], fx_gain_loss=monthly[month])
        for month in sorted(monthly)
    ]


def build_report_summary(invoices: list[Invoice]) -> ReportSummary:
    return ReportSummary(
        kpis=build_kpi_summary(invoices),
        outstanding_by_currency=outstanding_by_currency(invoices),
        aging=aging_buckets(invoices),
        fx_trend=monthly_fx_trend(invoices),
    )
