"""Normalization of raw spreadsheet rows into Invoice records.

Rows arrive as loosely typed mappings of column name to cell value. Malformed
cells never raise: each field degrades to a documented default so one bad
row cannot abort a batch.

Column rules:
- Client, Invoice_Date, Due_Date: blank -> ""
- Invoice_Amount: blank, unparseable, negative, too large -> 0
- Payment_Amount: blank, unparseable, negative, too large -> omitted (None), not zero
- Currency: uppercased, blank -> reporting currency
- Payment_Date: blank -> omitted (None); its presence marks the invoice paid
"""

import logging
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from services.invoices.schema import Invoice

logger = logging.getLogger(__name__)

# Largest accepted power of ten; conversions and cent rounding of anything
# below 10**16 fit the default 28-digit decimal context
MAX_AMOUNT_EXPONENT = 15


def _text(row: Mapping[str, Any], column: str) -> str:
    """Return the stripped cell text, or "" for missing and None cells."""
    value = row.get(column)
    if value is None:
        return ""
    return str(value).strip()


def parse_amount(value: str) -> Decimal | None:
    """Parse a monetary cell such as "10000", "1,250.50" or "99.9".

    Returns:
        Non-negative finite Decimal below 10**16, or None if the cell is
        blank or invalid
    """
    cleaned = value.replace(",", "").strip()
    if not cleaned:
        return None
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount < 0:
        return None
    if amount and amount.adjusted() > MAX_AMOUNT_EXPONENT:
        return None
    return amount


def normalize_invoice(raw_row: Mapping[str, Any], reporting_currency: str = "USD") -> Invoice:
    """Build a canonical Invoice from one raw row.

    Args:
        raw_row: Mapping of column name to cell value
        reporting_currency: Currency assumed when the Currency cell is blank

    Returns:
        Invoice with input fields populated and derived fields unset
    """
    if not isinstance(raw_row, Mapping):
        logger.debug(f"Row of type {type(raw_row).__name__} is not a mapping, using defaults")
        raw_row = {}

    amount_text = _text(raw_row, "Invoice_Amount")
    invoice_amount = parse_amount(amount_text)
    if invoice_amount is None:
        if amount_text:
            logger.debug(f"Unparseable Invoice_Amount {amount_text!r}, defaulting to 0")
        invoice_amount = Decimal("0")

    payment_text = _text(raw_row, "Payment_Amount")
    payment_amount = parse_amount(payment_text)
    if payment_amount is None and payment_text:
        logger.debug(f"Unparseable Payment_Amount {payment_text!r}, treating as not recorded")

    return Invoice(
        client=_text(raw_row, "Client"),
        invoice_amount=invoice_amount,
        currency=_text(raw_row, "Currency").upper() or reporting_currency.upper(),
        invoice_date=_text(raw_row, "Invoice_Date"),
        due_date=_text(raw_row, "Due_Date"),
        payment_date=_text(raw_row, "Payment_Date") or None,
        payment_amount=payment_amount,
    )
