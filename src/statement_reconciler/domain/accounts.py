from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from statement_reconciler.models import (
    CanonicalTransaction,
    SourceAccountType,
    TargetAccount,
    TargetAccountType,
)

UNKNOWN_ACCOUNT = "Unknown"
SUFFIX_LENGTH = 4

_SOURCE_TYPE_ALIASES: dict[str, SourceAccountType] = {
    "chequing": SourceAccountType.CHEQUING,
    "checking": SourceAccountType.CHEQUING,
    "cheque": SourceAccountType.CHEQUING,
    "savings": SourceAccountType.SAVINGS,
    "saving": SourceAccountType.SAVINGS,
    "visa": SourceAccountType.CREDIT_CARD,
    "mastercard": SourceAccountType.CREDIT_CARD,
    "credit card": SourceAccountType.CREDIT_CARD,
    "credit-card": SourceAccountType.CREDIT_CARD,
    "credit_card": SourceAccountType.CREDIT_CARD,
    "creditcard": SourceAccountType.CREDIT_CARD,
}

_EXPECTED_TARGET_TYPES: dict[SourceAccountType, TargetAccountType] = {
    SourceAccountType.CHEQUING: TargetAccountType.CHEQUING,
    SourceAccountType.SAVINGS: TargetAccountType.SAVINGS,
    SourceAccountType.CREDIT_CARD: TargetAccountType.CREDIT_CARD,
}


@dataclass(frozen=True)
class AccountKey:
    number: str
    account_type: SourceAccountType

    @classmethod
    def for_transaction(cls, tx: CanonicalTransaction) -> AccountKey:
        number = tx.source_account_number or UNKNOWN_ACCOUNT
        return cls(number=number, account_type=tx.source_account_type)

    @property
    def display_name(self) -> str:
        return self.number

    @property
    def identity(self) -> str:
        return f"{self.number}|{self.account_type.value}"

    @property
    def expected_type(self) -> TargetAccountType:
        return expected_target_type(self.account_type)

    def __str__(self) -> str:
        return self.identity


def parse_source_account_type(raw: str | None) -> SourceAccountType | None:
    if not raw:
        return None
    return _SOURCE_TYPE_ALIASES.get(" ".join(raw.strip().lower().split()))


def expected_target_type(source_type: SourceAccountType) -> TargetAccountType:
    return _EXPECTED_TARGET_TYPES.get(source_type, TargetAccountType.UNSPECIFIED)


def account_suffix(number: str | None) -> str:
    """Key used to line up account numbers reported with different lengths.

    Separators are ignored, so ``05172-5163878`` and ``5163878`` share the
    suffix ``3878``. Numbers with fewer than four digits are used as-is.
    """
    if not number:
        return UNKNOWN_ACCOUNT
    digits = "".join(ch for ch in number if ch.isdigit())
    if len(digits) < SUFFIX_LENGTH:
        return number
    return digits[-SUFFIX_LENGTH:]


def matches_suffix(number: str | None, suffix: str) -> bool:
    if not number:
        return suffix == UNKNOWN_ACCOUNT
    if number == suffix:
        return True
    digits = "".join(ch for ch in number if ch.isdigit())
    return bool(digits) and digits.endswith(suffix)


def find_account_by_name(name: str | None, accounts: Iterable[TargetAccount]) -> TargetAccount | None:
    if not name:
        return None
    wanted = name.casefold()
    for account in accounts:
        if account.name.casefold() == wanted:
            return account
    return None


def find_account_by_id(account_id: int, accounts: Iterable[TargetAccount]) -> TargetAccount | None:
    for account in accounts:
        if account.id == account_id:
            return account
    return None


def find_matching_account(key: AccountKey, accounts: Iterable[TargetAccount]) -> TargetAccount | None:
    """Account whose type and name already agree with the statement account."""
    expected = key.expected_type
    wanted = key.display_name.casefold()
    for account in accounts:
        if account.type == expected and account.name.casefold() == wanted:
            return account
    return None
