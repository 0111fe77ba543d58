"""Unit tests for invoice CSV ingestion."""

import pytest

from services.ingest.csv_parser import (
    REQUIRED_COLUMNS,
    SAMPLE_CSV,
    CSVValidationError,
    parse_invoice_csv,
)

HEADER = "Client,Invoice_Amount,Currency,Invoice_Date,Due_Date,Payment_Date,Payment_Amount\n"


def test_parse_sample_csv() -> None:
    """Test that the bundled sample parses into five rows in file order."""
    rows = parse_invoice_csv(SAMPLE_CSV)

    assert [row["Client"] for row in rows] == [
        "Acme Corp",
        "Global Inc",
        "Tech Solutions",
        "Finance Ltd",
        "International Co",
    ]
    assert rows[0]["Invoice_Amount"] == "10000"
    assert rows[1]["Payment_Date"] == ""


def test_parse_bytes_with_bom() -> None:
    """Test that a UTF-8 byte-order mark does not corrupt the first column name."""
    content = ("\ufeff" + HEADER + "Acme,100,EUR,2024-01-15,2024-02-15,,\n").encode("utf-8")

    rows = parse_invoice_csv(content)

    assert rows == [
        {
            "Client": "Acme",
            "Invoice_Amount": "100",
            "Currency": "EUR",
            "Invoice_Date": "2024-01-15",
            "Due_Date": "2024-02-15",
            "Payment_Date": "",
            "Payment_Amount": "",
        }
    ]


def test_parse_quoted_client_with_comma() -> None:
    """Test that quoted cells keep their embedded separators."""
    rows = parse_invoice_csv(HEADER + '"Smith, Jones & Co",100,EUR,2024-01-15,2024-02-15,,\n')

    assert rows[0]["Client"] == "Smith, Jones & Co"


def test_parse_header_whitespace_is_stripped() -> None:
    """Test that padded header names still match."""
    rows = parse_invoice_csv(
        " Client , Invoice_Amount ,Currency,Invoice_Date,Due_Date\nAcme,1,USD,2024-01-01,2024-01-31\n"
    )

    assert rows[0]["Client"] == "Acme"
    assert rows[0]["Invoice_Amount"] == "1"


def test_parse_optional_columns_may_be_absent() -> None:
    """Test that payment columns are not required."""
    rows = parse_invoice_csv(
        "Client,Invoice_Amount,Currency,Invoice_Date,Due_Date\nAcme,1,USD,2024-01-01,2024-01-31\n"
    )

    assert "Payment_Date" not in rows[0]


def test_parse_skips_blank_rows() -> None:
    """Test that empty and all-blank lines produce no rows."""
    rows = parse_invoice_csv(HEADER + "\n,,,,,,\nAcme,1,USD,2024-01-01,2024-01-31,,\n\n")

    assert len(rows) == 1


def test_parse_short_row_fills_missing_cells() -> None:
    """Test that a row with too few cells yields empty strings, not None."""
    rows = parse_invoice_csv(HEADER + "Acme,100\n")

    assert rows[0]["Currency"] == ""
    assert rows[0]["Payment_Amount"] == ""


def test_parse_long_row_drops_extra_cells() -> None:
    """Test that surplus cells beyond the header are discarded."""
    rows = parse_invoice_csv(HEADER + "Acme,1,USD,2024-01-01,2024-01-31,,,extra,more\n")

    assert None not in rows[0]
    assert len(rows[0]) == 7


def test_parse_header_only_returns_no_rows() -> None:
    """Test that a header without data is valid and empty."""
    assert parse_invoice_csv(HEADER) == []


@pytest.mark.parametrize("content", [b"", "", "   \n\n"])
def test_parse_empty_file(content: bytes | str) -> None:
    """Test that empty content is rejected."""
    with pytest.raises(CSVValidationError, match="File is empty"):
        parse_invoice_csv(content)


def test_parse_missing_required_columns() -> None:
    """Test that every missing required column is reported."""
    with pytest.raises(CSVValidationError, match="Missing required columns") as exc_info:
        parse_invoice_csv("Client,Amount\nAcme,1\n")

    message = str(exc_info.value)
    assert "Invoice_Amount" in message
    assert "Due_Date" in message
    assert "Client," not in message


def test_parse_invalid_utf8() -> None:
    """Test that undecodable bytes are rejected."""
    with pytest.raises(CSVValidationError, match="not valid UTF-8"):
        parse_invoice_csv(b"\xff\xfe\x00C\x00l")


def test_required_columns() -> None:
    """Test the documented required header."""
    assert REQUIRED_COLUMNS == ("Client", "Invoice_Amount", "Currency", "Invoice_Date", "Due_Date")
