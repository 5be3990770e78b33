from collections.abc import Callable
from datetime import datetime

import pytest

from statement_reconciler.models import (
    CanonicalTransaction,
    Direction,
    SourceAccountType,
    TargetAccount,
    TargetAccountType,
)


def make_tx(
    date: str,
    number: str | None = "05172-5163878",
    account_type: SourceAccountType = SourceAccountType.CHEQUING,
    amount: float = 10.0,
    description: str = "purchase",
    source_path: str = "statement.pdf",
) -> CanonicalTransaction:
    return CanonicalTransaction(
        date=datetime.fromisoformat(date),
        amount=amount,
        direction=Direction.OUTGOING,
        currency="CAD",
        description=description,
        source_account_number=number,
        source_account_type=account_type,
        source_path=source_path,
    )


@pytest.fixture
def tx_factory() -> Callable[..., CanonicalTransaction]:
    return make_tx


@pytest.fixture
def accounts() -> list[TargetAccount]:
    return [
        TargetAccount(id=1, name="Everyday Chequing", bank="RBC", type=TargetAccountType.CHEQUING),
        TargetAccount(id=2, name="High Interest", bank="RBC", type=TargetAccountType.SAVINGS),
        TargetAccount(id=3, name="Visa Infinite", bank="RBC", type=TargetAccountType.CREDIT_CARD),
    ]
