import os
from typing import Annotated, NoReturn, Optional

import typer

from statement_reconciler.core import settings
from statement_reconciler.errors import ReconcilerError
from statement_reconciler.integration.extractor import StatementExtractor
from statement_reconciler.integration.ledger import LedgerClient
from statement_reconciler.logger import get_logger, setup_logging
from statement_reconciler.mapping.prompt import TerminalDecider
from statement_reconciler.mapping.store import MappingStore
from statement_reconciler.models import CanonicalTransaction
from statement_reconciler.normalizers.csv_export import parse_csv_export
from statement_reconciler.normalizers.statements import count_unknown_account_types
from statement_reconciler.services.merge import merge_transactions
from statement_reconciler.services.resolution import AccountResolver
from statement_reconciler.services.upload import UploadCoordinator

logger = get_logger(__name__)

app = typer.Typer(
    name="statement-reconciler",
    help="Merge bank statements with a CSV export and upload them to the ledger.",
    no_args_is_help=True,
)


def _fail(message: str) -> NoReturn:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(1)


@app.callback()
def main(
    log_level: Annotated[
        Optional[str], typer.Option("--log-level", help="Override LOG_LEVEL")
    ] = None,
) -> None:
    setup_logging(log_level)
    settings.log_environment()


def load_transactions(
    pdf_path: str | None, csv_path: str | None, config_path: str | None
) -> list[CanonicalTransaction]:
    transactions: list[CanonicalTransaction] = []

    if pdf_path:
        result, transactions = StatementExtractor().extract(pdf_path, config_path)
        line = f"statement transactions: {len(transactions)}"
        skipped = count_unknown_account_types(result.transactions)
        if skipped:
            line += f" ({skipped} skipped, unknown account type)"
        typer.echo(line)

    if csv_path:
        csv_transactions = parse_csv_export(csv_path)
        typer.echo(f"CSV transactions: {len(csv_transactions)}")

        original_count = len(transactions)
        transactions = merge_transactions(transactions, csv_transactions)
        typer.echo(f"merged: {len(transactions) - original_count} new from CSV (after deduplication)")

    return transactions


@app.command()
def reconcile(
    pdf: Annotated[
        Optional[str], typer.Option(help="Statement PDF file or directory (falls back to PDF_PATH)")
    ] = None,
    csv: Annotated[
        Optional[str], typer.Option(help="Optional CSV export to merge with the statements")
    ] = None,
    config: Annotated[
        Optional[str], typer.Option(help="Config file passed to the extraction engine")
    ] = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Upload without asking")] = False,
) -> None:
    """Parse, merge, resolve accounts and upload transactions."""
    pdf_path = pdf or os.getenv("PDF_PATH")
    if not pdf_path and not csv:
        _fail("need --pdf or --csv")

    for name in ("USER_ID", "LEDGER_URL", "LEDGER_TOKEN"):
        if not os.getenv(name):
            _fail(f"need {name}")

    try:
        transactions = load_transactions(pdf_path, csv, config)
        if not transactions:
            typer.echo("nothing to upload")
            return

        if not yes and not typer.confirm(f"upload {len(transactions)} transactions?", default=False):
            return

        with LedgerClient() as ledger:
            ledger.get_user()
            accounts = ledger.list_accounts()

            resolver = AccountResolver(
                store=MappingStore(settings.mappings_path()),
                create_account=ledger.create_account,
                decide=TerminalDecider(),
                bank=settings.get_env_str("BANK_TAG", settings.DEFAULT_BANK_TAG),
                currency=settings.get_env_str("DEFAULT_CURRENCY", settings.DEFAULT_CURRENCY),
            )
            report = resolver.resolve(transactions, accounts)

            coordinator = UploadCoordinator(
                ledger.create_transactions,
                batch_size=settings.get_env_int(
                    "UPLOAD_BATCH_SIZE", settings.DEFAULT_UPLOAD_BATCH_SIZE, min_value=1
                ),
            )
            summary = coordinator.upload(transactions)
    except ReconcilerError as exc:
        logger.error("Run aborted: %s", exc)
        _fail(str(exc))

    typer.echo(f"\n{summary.created} ok, {summary.failed} failed")
    for account, count in sorted(report.assigned.items()):
        typer.echo(f"  {account}: {count}")
    if summary.failed:
        raise typer.Exit(1)


@app.command()
def mappings() -> None:
    """List saved statement-to-ledger account mappings."""
    store = MappingStore(settings.mappings_path())
    if not len(store):
        typer.echo(f"no mappings in {store.data_path}")
        return
    for key, name in store.items():
        typer.echo(f"{key}: {name}")


if __name__ == "__main__":
    app()
