"""Tabular report export for processed invoices.

Report layout: one header row, then one row per invoice. Numbers are
formatted to two decimals and derived values that are absent render as
empty cells. Client names are always double-quoted with embedded quotes
doubled, so names containing commas or quotes survive a round trip.
"""

from collections.abc import Iterable
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from services.invoices.schema import Invoice, InvoiceStatus

REPORT_HEADERS: tuple[str, ...] = (
    "Client",
    "Invoice Amount",
    "Currency",
    "USD Amount (Invoice)",
    "USD Amount (Payment)",
    "FX Gain/Loss",
    "Invoice Date",
    "Due Date",
    "Payment Date",
    "Status",
    "Days Outstanding",
)

_CENTS = Decimal("0.01")


def format_amount(value: Decimal | None) -> str:
    """Format a money value to two decimals; None renders as ""."""
    if value is None:
        return ""
    return str(value.quantize(_CENTS, rounding=ROUND_HALF_UP))


def build_report_rows(invoices: Iterable[Invoice]) -> list[list[str]]:
    """Build report cells (header excluded) for each invoice."""
    rows = []
    for invoice in invoices:
        rows.append(
            [
                invoice.client,
                format_amount(invoice.invoice_amount),
                invoice.currency,
                format_amount(invoice.usd_amount_at_invoice),
                format_amount(invoice.usd_amount_at_payment),
                format_amount(invoice.fx_gain_loss),
                invoice.invoice_date,
                invoice.due_date,
                invoice.payment_date or "",
                invoice.status.value if invoice.status else "",
                "" if invoice.days_outstanding is None else str(invoice.days_outstanding),
            ]
        )
    return rows


def _quote_always(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def _quote_if_needed(value: str) -> str:
    if any(char in value for char in ',"\r\n'):
        return _quote_always(value)
    return value


def export_invoices_csv(invoices: Iterable[Invoice]) -> str:
    """Render invoices as CSV report text.

    Args:
        invoices: Processed invoices

    Returns:
        CSV text with "\\n" line endings
    """
    lines = [",".join(REPORT_HEADERS)]
    for client, *rest in build_report_rows(invoices):
        lines.append(",".join([_quote_always(client), *(_quote_if_needed(cell) for cell in rest)]))
    return "\n".join(lines)


def report_filename(today: date | None = None) -> str:
    """Download filename for a report generated on ``today``."""
    return f"fx_invoices_{(today or date.today()).isoformat()}.csv"


def filter_invoices(
    invoices: Iterable[Invoice],
    search: str | None = None,
    status: InvoiceStatus | None = None,
    currency: str | None = None,
) -> list[Invoice]:
    """Select invoices the way the invoice table filters them.

    Args:
        invoices: Processed invoices
        search: Case-insensitive substring of the client name
        status: Keep only this status
        currency: Keep only this currency code (case-insensitive)

    Returns:
        Matching invoices in original order
    """
    needle = (search or "").strip().lower()
    code = (currency or "").strip().upper()
    return [
        invoice
        for invoice in invoices
        if needle in invoice.client.lower()
        and (status is None or invoice.status == status)
        and (not code or invoice.currency == code)
    ]
