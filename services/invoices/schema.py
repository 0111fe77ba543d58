"""Invoice data models for the FX conversion pipeline."""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field


class InvoiceStatus(str, Enum):
    """Lifecycle state of an invoice."""

    OUTSTANDING = "Outstanding"
    PAID = "Paid"
    OVERDUE = "Overdue"


class Invoice(BaseModel):
    """Canonical invoice record.

    Input fields come from one spreadsheet row after normalization. Derived
    fields are filled in by the conversion pipeline and are never taken from
    the input.
    """

    client: str = Field("", description="Client display name")
    invoice_amount: Decimal = Field(Decimal("0"), ge=0, description="Amount in invoice currency")
    currency: str = Field("USD", description="Currency code (ISO 4217), uppercase")
    invoice_date: str = Field("", description="Invoice date as ISO text")
    due_date: str = Field("", description="Due date as ISO text")
    payment_date: str | None = Field(None, description="Payment date; None means unpaid")
    payment_amount: Decimal | None = Field(None, description="Amount paid in invoice currency")

    # Derived
    usd_amount_at_invoice: Decimal | None = Field(None, description="Amount at invoice-date rate")
    usd_amount_at_payment: Decimal | None = Field(None, description="Payment at payment-date rate")
    fx_gain_loss: Decimal | None = Field(None, description="Payment value minus invoice value")
    status: InvoiceStatus | None = Field(None, description="Outstanding, Paid or Overdue")
    days_outstanding: int | None = Field(None, ge=0, description="Days past due date")
    fx_rate_estimated: bool = Field(
        False, description="True when a fallback rate was used for any conversion"
    )
