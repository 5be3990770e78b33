import os
import shlex
import subprocess

from statement_reconciler.errors import ExtractionError
from statement_reconciler.logger import get_logger
from statement_reconciler.models import CanonicalTransaction
from statement_reconciler.normalizers.statements import (
    STATEMENT_CURRENCY,
    ExtractionResult,
    parse_extraction_output,
)

logger = get_logger(__name__)

DEFAULT_EXTRACTOR_COMMAND = "uv run python main.py"
DEFAULT_EXTRACTOR_DIR = "rbc-statement-parser"


class StatementExtractor:
    """Runs the external statement extraction engine and reads its JSON output."""

    def __init__(
        self,
        command: str | list[str] | None = None,
        workdir: str | None = None,
        currency: str = STATEMENT_CURRENCY,
    ):
        raw_command = command or os.getenv("EXTRACTOR_COMMAND") or DEFAULT_EXTRACTOR_COMMAND
        self.command = shlex.split(raw_command) if isinstance(raw_command, str) else list(raw_command)
        self.workdir = workdir or os.getenv("EXTRACTOR_DIR") or DEFAULT_EXTRACTOR_DIR
        self.currency = currency

    def build_args(self, pdf_path: str, config_path: str | None = None) -> list[str]:
        # The engine runs in its own directory, so hand it absolute paths
        args = [*self.command, os.path.abspath(pdf_path), "--format", "json"]
        if config_path:
            args.extend(["--config", os.path.abspath(config_path)])
        return args

    def extract(
        self, pdf_path: str, config_path: str | None = None
    ) -> tuple[ExtractionResult, list[CanonicalTransaction]]:
        args = self.build_args(pdf_path, config_path)
        logger.info("[EXTRACT] Parsing %s", pdf_path)
        logger.debug("[EXTRACT] Running %s in %s", args, self.workdir)
        try:
            completed = subprocess.run(
                args,
                cwd=self.workdir,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise ExtractionError(f"failed to execute extraction engine: {exc}") from exc

        if completed.returncode != 0:
            raise ExtractionError(
                f"extraction engine exited with {completed.returncode}\n"
                f"Output: {completed.stdout}{completed.stderr}"
            )

        if completed.stderr:
            logger.debug("[EXTRACT] Engine stderr: %s", completed.stderr.strip())

        result, transactions = parse_extraction_output(completed.stdout, currency=self.currency)
        logger.info(
            "[EXTRACT] files: %d/%d, transactions: %d",
            result.summary.processed_files,
            result.summary.total_files,
            result.summary.total_transactions,
        )
        for file_result in result.file_results:
            if file_result.processed:
                logger.info(
                    "[EXTRACT]   %s: %d",
                    os.path.basename(file_result.file),
                    file_result.transaction_count,
                )
        return result, transactions
