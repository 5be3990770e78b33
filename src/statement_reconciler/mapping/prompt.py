from collections.abc import Callable, Sequence
from typing import Any

import typer
from rapidfuzz import fuzz

from statement_reconciler.domain.accounts import AccountKey
from statement_reconciler.models import TargetAccount
from statement_reconciler.services.resolution import AccountDecision

NEW_ACCOUNT_OPTION = 0


def rank_accounts(key: AccountKey, accounts: Sequence[TargetAccount]) -> list[TargetAccount]:
    """Order accounts for display: same type first, then by name similarity."""

    def sort_key(account: TargetAccount) -> tuple[bool, float, str]:
        score = fuzz.WRatio(key.display_name, account.name)
        return (account.type != key.expected_type, -score, account.name.casefold())

    return sorted(accounts, key=sort_key)


class TerminalDecider:
    """Asks the operator where an unmatched statement account belongs.

    Only the display order is influenced by similarity scores; nothing is
    picked without an explicit answer.
    """

    def __init__(
        self,
        prompt: Callable[..., Any] = typer.prompt,
        echo: Callable[[str], Any] = typer.echo,
    ) -> None:
        self.prompt = prompt
        self.echo = echo

    def __call__(self, key: AccountKey, accounts: Sequence[TargetAccount]) -> AccountDecision:
        ranked = rank_accounts(key, accounts)

        self.echo("")
        self.echo(f"Found account '{key.display_name}' ({key.account_type.value}) in statement")
        self.echo("Map this to:")
        self.echo(f"  {NEW_ACCOUNT_OPTION}) Create new account")
        for index, account in enumerate(ranked, start=1):
            self.echo(f"  {index}) {account.label()}")

        while True:
            choice = self.prompt("Choice", type=int)
            if choice == NEW_ACCOUNT_OPTION:
                return AccountDecision.new_account()
            if 1 <= choice <= len(ranked):
                return AccountDecision.select(ranked[choice - 1].id)
            self.echo(f"Please enter a number between 0 and {len(ranked)}.")
