import os
import tempfile
from collections.abc import Iterable

from statement_reconciler.domain.accounts import AccountKey, find_account_by_name
from statement_reconciler.logger import get_logger
from statement_reconciler.models import TargetAccount

logger = get_logger(__name__)

HEADER = "# Account mappings: statement_account -> ledger_account\n"


class MappingStore:
    """Persisted relation from statement account identity to ledger account name.

    The whole relation lives in memory; every ``add_mapping`` rewrites the
    file so it always matches the in-memory state after a successful call.
    Only one process may use a mapping file at a time.
    """

    def __init__(self, data_path: str = "account-mappings.txt"):
        self.data_path = data_path
        self.mappings: dict[str, str] = {}
        self.load()

    def load(self) -> dict[str, str]:
        self.mappings = {}
        if not os.path.exists(self.data_path):
            return self.mappings

        with open(self.data_path, encoding="utf-8") as handle:
            for line_no, line in enumerate(handle, start=1):
                stripped = line.strip()
                if not stripped or stripped.startswith("#"):
                    continue
                if ":" not in stripped:
                    logger.warning(
                        "[MAPPING] Ignoring malformed line %d in %s: '%s'",
                        line_no,
                        self.data_path,
                        stripped,
                    )
                    continue
                key, name = stripped.split(":", 1)
                key = key.strip()
                name = name.strip()
                if key and name:
                    self.mappings[key] = name

        logger.debug("[MAPPING] Loaded %d mappings from %s", len(self.mappings), self.data_path)
        return self.mappings

    def save(self) -> None:
        directory = os.path.dirname(os.path.abspath(self.data_path))
        fd, tmp_path = tempfile.mkstemp(prefix=".account-mappings-", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(HEADER)
                for key in sorted(self.mappings):
                    handle.write(f"{key}: {self.mappings[key]}\n")
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self.data_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def find_mapping(self, key: AccountKey | str) -> str | None:
        if isinstance(key, AccountKey):
            found = self.mappings.get(key.identity)
            if found is None:
                # Entries written before account types were part of the key
                found = self.mappings.get(key.number)
            return found
        return self.mappings.get(key)

    def add_mapping(self, key: AccountKey | str, account_name: str) -> None:
        """Record a mapping and persist it. Raises ``OSError`` if the write fails;
        the in-memory mapping is kept either way."""
        identity = key.identity if isinstance(key, AccountKey) else key
        self.mappings[identity] = account_name
        self.save()
        logger.info("[MAPPING] Saved %s -> %s", identity, account_name)

    def resolve_account(
        self, account_name: str | None, accounts: Iterable[TargetAccount]
    ) -> TargetAccount | None:
        return find_account_by_name(account_name, accounts)

    def __len__(self) -> int:
        return len(self.mappings)

    def items(self) -> list[tuple[str, str]]:
        return sorted(self.mappings.items())
