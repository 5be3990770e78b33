import math
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from statement_reconciler.domain.accounts import parse_source_account_type
from statement_reconciler.domain.timefmt import parse_statement_date
from statement_reconciler.errors import ExtractionError
from statement_reconciler.logger import get_logger
from statement_reconciler.models import CanonicalTransaction, Direction

logger = get_logger(__name__)

STATEMENT_CURRENCY = "CAD"


class ExtractedTransaction(BaseModel):
    date: str
    amount: float
    description: str = ""
    account_number: Optional[str] = None
    account_type: str = ""
    account_name: str = ""
    source_file: str = ""
    method: Optional[str] = None
    category: Optional[str] = None
    code: Optional[str] = None
    posting_date: Optional[str] = None


class FileResult(BaseModel):
    file: str
    transaction_count: int = 0
    processed: bool = False


class ExtractionSummary(BaseModel):
    total_files: int = 0
    processed_files: int = 0
    total_transactions: int = 0


class ExtractionResult(BaseModel):
    transactions: list[ExtractedTransaction] = Field(default_factory=list)
    file_results: list[FileResult] = Field(default_factory=list)
    summary: ExtractionSummary = Field(default_factory=ExtractionSummary)


def parse_extraction_document(output: str) -> ExtractionResult:
    try:
        return ExtractionResult.model_validate_json(output)
    except ValidationError as exc:
        raise ExtractionError(f"failed to parse extraction output: {exc}") from exc


def normalize_extracted(
    extracted: list[ExtractedTransaction],
    currency: str = STATEMENT_CURRENCY,
) -> list[CanonicalTransaction]:
    transactions: list[CanonicalTransaction] = []
    for item in extracted:
        try:
            tx_date = parse_statement_date(item.date)
        except ValueError as exc:
            raise ExtractionError(f"failed to parse date {item.date}: {exc}") from exc

        if not math.isfinite(item.amount):
            raise ExtractionError(
                f"invalid amount {item.amount} for '{item.description}' on {item.date}"
            )
        if item.amount == 0:
            continue

        account_type = parse_source_account_type(item.account_type)
        if account_type is None:
            logger.warning(
                "[EXTRACT] Skipping '%s' on %s: unknown account type '%s'",
                item.description,
                item.date,
                item.account_type,
            )
            continue

        direction = Direction.OUTGOING if item.amount < 0 else Direction.INCOMING
        transactions.append(CanonicalTransaction(
            date=tx_date,
            amount=abs(item.amount),
            direction=direction,
            currency=currency,
            description=item.description,
            source_account_number=item.account_number or None,
            source_account_type=account_type,
            source_account_name=item.account_name or None,
            source_path=item.source_file,
        ))
    return transactions


def count_unknown_account_types(extracted: list[ExtractedTransaction]) -> int:
    """Non-zero records that ``normalize_extracted`` drops for their account type."""
    return sum(
        1
        for item in extracted
        if item.amount != 0 and parse_source_account_type(item.account_type) is None
    )


def parse_extraction_output(
    output: str, currency: str = STATEMENT_CURRENCY
) -> tuple[ExtractionResult, list[CanonicalTransaction]]:
    result = parse_extraction_document(output)
    return result, normalize_extracted(result.transactions, currency=currency)
