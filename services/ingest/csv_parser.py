"""CSV ingestion for invoice spreadsheets.

Turns an uploaded delimited-text file into ordered row mappings and checks
the header before anything reaches the conversion pipeline. Structural
problems are reported here; cell-level problems are left to the normalizer.
"""

import csv
import io
import logging

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: tuple[str, ...] = (
    "Client",
    "Invoice_Amount",
    "Currency",
    "Invoice_Date",
    "Due_Date",
)

OPTIONAL_COLUMNS: tuple[str, ...] = ("Payment_Date", "Payment_Amount")

SAMPLE_CSV = """\
Client,Invoice_Amount,Currency,Invoice_Date,Due_Date,Payment_Date,Payment_Amount
Acme Corp,10000,EUR,2024-01-15,2024-02-15,2024-02-10,10000
Global Inc,25000,GBP,2024-01-20,2024-02-20,,
Tech Solutions,15000,JPY,2024-01-25,2024-02-25,2024-02-20,15000
Finance Ltd,50000,USD,2024-02-01,2024-03-01,2024-02-28,50000
International Co,30000,CAD,2024-02-05,2024-03-05,,
"""


class CSVValidationError(ValueError):
    """Raised when an uploaded file cannot be used as an invoice sheet."""


def parse_invoice_csv(content: bytes | str) -> list[dict[str, str]]:
    """Parse invoice CSV content into row mappings.

    Args:
        content: Raw file bytes (UTF-8, optional BOM) or decoded text

    Returns:
        Rows in file order as {column: cell text}; blank lines are skipped

    Raises:
        CSVValidationError: If the file is empty, undecodable, malformed,
            or missing a required column
    """
    if isinstance(content, bytes):
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise CSVValidationError(f"File is not valid UTF-8: {e}") from e
    else:
        text = content.lstrip("\ufeff")

    if not text.strip():
        raise CSVValidationError("File is empty")

    reader = csv.DictReader(io.StringIO(text, newline=""), skipinitialspace=True)
    try:
        fieldnames = [name.strip() for name in (reader.fieldnames or [])]
        reader.fieldnames = fieldnames

        missing = [column for column in REQUIRED_COLUMNS if column not in fieldnames]
        if missing:
            raise CSVValidationError(f"Missing required columns: {', '.join(missing)}")

        rows = []
        for row in reader:
            values = [value for key, value in row.items() if key is not None]
            if all(value is None or not str(value).strip() for value in values):
                continue
            rows.append({key: value or "" for key, value in row.items() if key is not None})
    except csv.Error as e:
        raise CSVValidationError(f"CSV parsing error on line {reader.line_num}: {e}") from e

    logger.info(f"Parsed {len(rows)} invoice row(s)")
    return rows
