"""Payment status and aging derivations.

Both functions take ``today`` explicitly so results are deterministic.
"""

from datetime import date

from services.invoices.schema import InvoiceStatus
from services.shared.dates import parse_iso_date


def classify_status(payment_date: str | None, due_date: str, today: date) -> InvoiceStatus:
    """Derive the lifecycle state of an invoice.

    A recorded payment always wins, however late it was. An empty or
    unparseable due date never makes an invoice overdue.

    Args:
        payment_date: Payment date text, None when unpaid
        due_date: Due date text
        today: Reference date

    Returns:
        InvoiceStatus
    """
    if payment_date:
        return InvoiceStatus.PAID

    due = parse_iso_date(due_date)
    if due is not None and due < today:
        return InvoiceStatus.OVERDUE
    return InvoiceStatus.OUTSTANDING


def calculate_days_outstanding(due_date: str, today: date) -> int:
    """Whole days elapsed since the due date, never negative.

    Returns 0 for invoices not yet due and for unparseable due dates.
    """
    due = parse_iso_date(due_date)
    if due is None:
        return 0
    return max(0, (today - due).days)
