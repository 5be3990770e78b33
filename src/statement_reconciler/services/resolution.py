from __future__ import annotations

from collections import Counter
from collections.abc import Callable, MutableSequence, Sequence
from dataclasses import dataclass, field

from statement_reconciler.domain.accounts import (
    AccountKey,
    find_account_by_id,
    find_matching_account,
)
from statement_reconciler.errors import DecisionError, ResolutionError
from statement_reconciler.logger import get_logger
from statement_reconciler.mapping.store import MappingStore
from statement_reconciler.models import CanonicalTransaction, TargetAccount, TargetAccountType

logger = get_logger(__name__)

DEFAULT_BANK = "RBC"
DEFAULT_CURRENCY = "CAD"


@dataclass(frozen=True)
class AccountDecision:
    """Operator answer for a statement account that could not be matched."""

    create_new: bool
    account_id: int | None = None

    @classmethod
    def new_account(cls) -> AccountDecision:
        return cls(create_new=True)

    @classmethod
    def select(cls, account_id: int) -> AccountDecision:
        return cls(create_new=False, account_id=account_id)


DecideFn = Callable[[AccountKey, Sequence[TargetAccount]], AccountDecision]
CreateAccountFn = Callable[[str, str, TargetAccountType, str], TargetAccount]


@dataclass
class ResolutionReport:
    assigned: Counter[str] = field(default_factory=Counter)
    new_mappings: list[str] = field(default_factory=list)
    created_accounts: list[TargetAccount] = field(default_factory=list)


class AccountResolver:
    """Assigns a ledger account to every transaction.

    Pass 1 settles each distinct statement account once, from the mapping
    store, an exact name/type match, or the ``decide`` callback. Pass 2 is a
    plain lookup over all transactions and never prompts.
    """

    def __init__(
        self,
        store: MappingStore,
        create_account: CreateAccountFn,
        decide: DecideFn,
        *,
        bank: str = DEFAULT_BANK,
        currency: str = DEFAULT_CURRENCY,
    ) -> None:
        self.store = store
        self.create_account = create_account
        self.decide = decide
        self.bank = bank
        self.currency = currency

    def resolve(
        self,
        transactions: Sequence[CanonicalTransaction],
        accounts: MutableSequence[TargetAccount],
    ) -> ResolutionReport:
        report = ResolutionReport()

        seen: set[AccountKey] = set()
        for tx in transactions:
            key = AccountKey.for_transaction(tx)
            if key in seen:
                continue
            seen.add(key)
            self._resolve_key(key, accounts, report)

        for tx in transactions:
            key = AccountKey.for_transaction(tx)
            account = self._lookup(key, accounts)
            if account is None:
                raise ResolutionError(
                    f"no ledger account for statement account '{key.identity}' after resolution"
                )
            tx.assign_account(account.id)
            report.assigned[key.display_name] += 1

        logger.info(
            "[RESOLVE] Assigned %d transactions across %d statement accounts",
            len(transactions),
            len(seen),
        )
        return report

    def _lookup(
        self, key: AccountKey, accounts: Sequence[TargetAccount]
    ) -> TargetAccount | None:
        mapped_name = self.store.find_mapping(key)
        if mapped_name:
            return self.store.resolve_account(mapped_name, accounts)
        return find_matching_account(key, accounts)

    def _resolve_key(
        self,
        key: AccountKey,
        accounts: MutableSequence[TargetAccount],
        report: ResolutionReport,
    ) -> None:
        mapped_name = self.store.find_mapping(key)
        if mapped_name:
            account = self.store.resolve_account(mapped_name, accounts)
            if account is not None:
                logger.debug("[RESOLVE] %s -> %s (saved mapping)", key, account.name)
                return
            logger.warning(
                "[RESOLVE] Saved mapping for '%s' points to missing account '%s', asking again",
                key.display_name,
                mapped_name,
            )

        account = find_matching_account(key, accounts)
        if account is not None:
            if mapped_name:
                # Replace the stale entry so pass 2 does not follow it
                self._save_mapping(key, account.name, report)
            logger.debug("[RESOLVE] %s -> %s (name match)", key, account.name)
            return

        try:
            decision = self.decide(key, list(accounts))
        except Exception as exc:
            raise DecisionError(
                f"account decision for '{key.display_name}' failed: {exc}"
            ) from exc

        if decision.create_new:
            account = self.create_account(
                key.display_name, self.bank, key.expected_type, self.currency
            )
            accounts.append(account)
            report.created_accounts.append(account)
            logger.info(
                "[RESOLVE] Created ledger account '%s' (id=%s) for %s",
                account.name,
                account.id,
                key,
            )
            self._save_mapping(key, account.name, report)
            return

        if decision.account_id is None:
            raise DecisionError(f"no account selected for '{key.display_name}'")
        account = find_account_by_id(decision.account_id, accounts)
        if account is None:
            raise DecisionError(
                f"selected account {decision.account_id} for '{key.display_name}' does not exist"
            )
        self._save_mapping(key, account.name, report)

        if account.type != key.expected_type:
            logger.warning(
                "[RESOLVE] Account '%s' type mismatch: statement expects %s but '%s' is %s (continuing anyway)",
                key.display_name,
                key.expected_type.value,
                account.name,
                account.type.value,
            )

    def _save_mapping(self, key: AccountKey, account_name: str, report: ResolutionReport) -> None:
        try:
            self.store.add_mapping(key, account_name)
        except OSError as exc:
            logger.warning(
                "[MAPPING] Failed to save mapping %s -> %s: %s", key, account_name, exc
            )
            return
        report.new_mappings.append(key.identity)
