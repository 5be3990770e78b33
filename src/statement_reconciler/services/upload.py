from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from time import perf_counter

from statement_reconciler.domain.timefmt import format_duration
from statement_reconciler.errors import LedgerTransportError, ResolutionError
from statement_reconciler.logger import get_logger
from statement_reconciler.models import CanonicalTransaction

logger = get_logger(__name__)

DEFAULT_BATCH_SIZE = 1000

SubmitFn = Callable[[Sequence[CanonicalTransaction]], tuple[int, list[str]]]


@dataclass
class UploadSummary:
    created: int = 0
    failed: int = 0
    batches: int = 0
    errors: list[str] = field(default_factory=list)
    elapsed: float = 0.0


class UploadCoordinator:
    def __init__(
        self,
        submit: SubmitFn,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_attempts: int = 2,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.submit = submit
        self.batch_size = batch_size
        self.max_attempts = max(1, max_attempts)

    def _submit_batch(self, batch: Sequence[CanonicalTransaction]) -> tuple[int, list[str]]:
        last_error = ""
        for attempt in range(1, self.max_attempts + 1):
            try:
                return self.submit(batch)
            except LedgerTransportError as exc:
                logger.warning(
                    "[UPLOAD] Batch attempt %d/%d failed: %s",
                    attempt,
                    self.max_attempts,
                    exc,
                )
                last_error = str(exc)
        return 0, [last_error]

    def upload(self, transactions: Sequence[CanonicalTransaction]) -> UploadSummary:
        unresolved = sum(1 for tx in transactions if tx.resolved_account_id is None)
        if unresolved:
            raise ResolutionError(f"{unresolved} transactions have no ledger account")

        summary = UploadSummary()
        started = perf_counter()
        total = len(transactions)

        for start in range(0, total, self.batch_size):
            end = min(start + self.batch_size, total)
            batch = transactions[start:end]
            created, errors = self._submit_batch(batch)
            summary.batches += 1
            summary.created += created
            if errors:
                # An error fails the whole batch on the ledger side
                summary.failed += len(batch)
                summary.errors.extend(errors)
                for message in errors:
                    logger.error("[UPLOAD] %s", message)
            logger.info("[UPLOAD] %d/%d", end, total)

        summary.elapsed = perf_counter() - started
        logger.info(
            "[UPLOAD] Done in %s: %d created, %d failed",
            format_duration(summary.elapsed),
            summary.created,
            summary.failed,
        )
        return summary
