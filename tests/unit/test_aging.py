"""Unit tests for status classification and aging."""

from datetime import date, timedelta

import pytest

from services.invoices.aging import calculate_days_outstanding, classify_status
from services.invoices.schema import InvoiceStatus
from services.shared.dates import parse_iso_date

TODAY = date(2024, 3, 1)


class TestClassifyStatus:
    """Test lifecycle classification."""

    def test_payment_date_means_paid(self) -> None:
        """Payment presence dominates even when paid after the due date."""
        assert classify_status("2024-02-25", "2024-02-15", TODAY) == InvoiceStatus.PAID

    def test_payment_before_due_is_paid(self) -> None:
        """An early payment is paid."""
        assert classify_status("2024-02-10", "2024-03-15", TODAY) == InvoiceStatus.PAID

    def test_past_due_unpaid_is_overdue(self) -> None:
        """A due date strictly before today is overdue."""
        assert classify_status(None, "2024-02-28", TODAY) == InvoiceStatus.OVERDUE

    def test_due_today_is_outstanding(self) -> None:
        """An invoice due today is not yet overdue."""
        assert classify_status(None, "2024-03-01", TODAY) == InvoiceStatus.OUTSTANDING

    def test_future_due_is_outstanding(self) -> None:
        """An invoice due in the future is outstanding."""
        assert classify_status(None, "2024-04-01", TODAY) == InvoiceStatus.OUTSTANDING

    @pytest.mark.parametrize("due_date", ["", "garbage", "31/12/2023"])
    def test_unparseable_due_date_is_outstanding(self, due_date: str) -> None:
        """Malformed due dates never classify as overdue."""
        assert classify_status(None, due_date, TODAY) == InvoiceStatus.OUTSTANDING


class TestDaysOutstanding:
    """Test aging calculation."""

    def test_days_past_due(self) -> None:
        """Whole days since the due date."""
        assert calculate_days_outstanding("2024-02-15", TODAY) == 15

    def test_two_days_past_due(self) -> None:
        """Two days ago reports at least two days."""
        due = (TODAY - timedelta(days=2)).isoformat()
        assert calculate_days_outstanding(due, TODAY) == 2

    def test_due_today_is_zero(self) -> None:
        """Due today is zero days."""
        assert calculate_days_outstanding("2024-03-01", TODAY) == 0

    def test_future_due_is_zero_not_negative(self) -> None:
        """Not-yet-due invoices report zero."""
        assert calculate_days_outstanding("2024-12-31", TODAY) == 0

    def test_unparseable_due_date_is_zero(self) -> None:
        """Malformed due dates report zero."""
        assert calculate_days_outstanding("", TODAY) == 0
        assert calculate_days_outstanding("next week", TODAY) == 0

    def test_datetime_due_date_uses_date_part(self) -> None:
        """ISO datetimes count from their calendar date."""
        assert calculate_days_outstanding("2024-02-29T23:59:59", TODAY) == 1


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("2024-01-15", date(2024, 1, 15)),
        (" 2024-01-15 ", date(2024, 1, 15)),
        ("2024-01-15T10:30:00", date(2024, 1, 15)),
        ("2024-01-15T10:30:00Z", date(2024, 1, 15)),
        (date(2024, 1, 15), date(2024, 1, 15)),
        ("", None),
        ("15/01/2024", None),
        (None, None),
        (20240115.0, None),
    ],
)
def test_parse_iso_date(value: object, expected: date | None) -> None:
    """Test ISO date parsing shared by aging and rate resolution."""
    assert parse_iso_date(value) == expected
