from collections import Counter
from collections.abc import Sequence
from datetime import datetime

from statement_reconciler.domain.accounts import account_suffix, matches_suffix
from statement_reconciler.logger import get_logger
from statement_reconciler.models import CanonicalTransaction

logger = get_logger(__name__)


def find_cutoff_date(
    primary: Sequence[CanonicalTransaction], suffix: str
) -> datetime | None:
    """Latest primary date for the account ending in ``suffix``, if any."""
    latest: datetime | None = None
    for tx in primary:
        if matches_suffix(tx.source_account_number, suffix):
            if latest is None or tx.date > latest:
                latest = tx.date
    return latest


def merge_transactions(
    primary: Sequence[CanonicalTransaction],
    secondary: Sequence[CanonicalTransaction],
) -> list[CanonicalTransaction]:
    """Append the secondary records that extend an account past its primary history.

    The primary source is authoritative for every date it covers, so a
    secondary record is kept only when it is dated strictly after the latest
    primary record of the same account, or when the primary source has no
    record for that account at all. Both sides keep their original order.
    """
    cutoffs: dict[str, datetime | None] = {}
    kept: list[CanonicalTransaction] = []
    kept_by_account: Counter[str] = Counter()
    dropped_by_account: Counter[str] = Counter()

    for tx in secondary:
        suffix = account_suffix(tx.source_account_number)
        if suffix not in cutoffs:
            cutoffs[suffix] = find_cutoff_date(primary, suffix)
        cutoff = cutoffs[suffix]

        if cutoff is None or tx.date > cutoff:
            kept.append(tx)
            kept_by_account[suffix] += 1
        else:
            dropped_by_account[suffix] += 1

    for suffix, cutoff in cutoffs.items():
        logger.info(
            "[MERGE] Account *%s: cutoff %s, kept %d, dropped %d",
            suffix,
            cutoff.strftime("%Y-%m-%d") if cutoff else "none",
            kept_by_account[suffix],
            dropped_by_account[suffix],
        )

    return [*primary, *kept]
