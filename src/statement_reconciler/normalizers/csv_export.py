"""Bank CSV export normalizer.

Expected header::

    "Account Type","Account Number","Transaction Date","Cheque Number",
    "Description 1","Description 2","CAD$","USD$"

Rows that cannot be read are skipped with a warning; the export is partial
by nature and one bad line should not stop a run.
"""

import csv
import math
from collections.abc import Iterable, Sequence

from statement_reconciler.domain.accounts import parse_source_account_type
from statement_reconciler.domain.timefmt import parse_export_date
from statement_reconciler.errors import ExportFormatError
from statement_reconciler.logger import get_logger
from statement_reconciler.models import CanonicalTransaction, Direction

logger = get_logger(__name__)

REQUIRED_COLUMNS = (
    "Account Type",
    "Account Number",
    "Transaction Date",
    "Description 1",
    "CAD$",
    "USD$",
)

# Column order decides which amount wins when both are filled
AMOUNT_COLUMNS = (("CAD$", "CAD"), ("USD$", "USD"))


class RowFormatError(ValueError):
    pass


def _parse_amount(raw: str, column: str) -> float:
    cleaned = raw.replace(",", "")
    try:
        value = float(cleaned)
    except ValueError as exc:
        raise RowFormatError(f"invalid {column} amount: {raw}") from exc
    # float() also accepts nan and inf
    if not math.isfinite(value):
        raise RowFormatError(f"invalid {column} amount: {raw}")
    return value


def parse_row(
    record: Sequence[str], columns: dict[str, int], source_path: str
) -> CanonicalTransaction | None:
    """Normalize one data row. Returns ``None`` for zero-amount rows."""

    def get_col(name: str) -> str:
        idx = columns.get(name)
        if idx is not None and idx < len(record):
            return record[idx].strip()
        return ""

    raw_type = get_col("Account Type")
    if not raw_type:
        raise RowFormatError("empty account type")
    account_type = parse_source_account_type(raw_type)
    if account_type is None:
        raise RowFormatError(f"unknown account type: {raw_type}")

    account_number = get_col("Account Number")
    if not account_number:
        raise RowFormatError("empty account number")

    date_str = get_col("Transaction Date")
    try:
        tx_date = parse_export_date(date_str)
    except ValueError as exc:
        raise RowFormatError(f"invalid date format: {date_str}") from exc

    description = f"{get_col('Description 1')} {get_col('Description 2')}".strip()
    if not description:
        raise RowFormatError("empty description")

    for column, currency in AMOUNT_COLUMNS:
        raw_amount = get_col(column)
        if raw_amount:
            amount = _parse_amount(raw_amount, column)
            break
    else:
        raise RowFormatError("no amount specified")

    if amount == 0:
        return None

    return CanonicalTransaction(
        date=tx_date,
        amount=abs(amount),
        direction=Direction.OUTGOING if amount < 0 else Direction.INCOMING,
        currency=currency,
        description=description,
        source_account_number=account_number,
        source_account_type=account_type,
        source_account_name=None,
        source_path=source_path,
    )


def parse_csv_rows(rows: Iterable[Sequence[str]], source_path: str) -> list[CanonicalTransaction]:
    records = list(rows)
    if len(records) < 2:
        raise ExportFormatError(f"{source_path}: CSV file is empty or has no data rows")

    columns = {name.strip(): idx for idx, name in enumerate(records[0])}
    for name in REQUIRED_COLUMNS:
        if name not in columns:
            raise ExportFormatError(f"{source_path}: missing required column: {name}")

    transactions: list[CanonicalTransaction] = []
    skipped = 0
    # Row numbers are 1-based and count the header
    for row_no, record in enumerate(records[1:], start=2):
        if not any(cell.strip() for cell in record):
            continue
        try:
            tx = parse_row(record, columns, source_path)
        except RowFormatError as exc:
            skipped += 1
            logger.warning("[CSV] Skipping row %d: %s", row_no, exc)
            continue
        if tx is not None:
            transactions.append(tx)

    logger.info(
        "[CSV] Parsed %d transactions from %s (%d rows skipped)",
        len(transactions),
        source_path,
        skipped,
    )
    return transactions


def parse_csv_export(path: str) -> list[CanonicalTransaction]:
    try:
        with open(path, newline="", encoding="utf-8-sig") as handle:
            rows = list(csv.reader(handle, skipinitialspace=True))
    except OSError as exc:
        raise ExportFormatError(f"failed to open CSV file {path}: {exc}") from exc
    except csv.Error as exc:
        raise ExportFormatError(f"failed to read CSV {path}: {exc}") from exc
    return parse_csv_rows(rows, path)
