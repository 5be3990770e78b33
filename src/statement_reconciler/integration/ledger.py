import os
from collections.abc import Sequence
from typing import Any

import httpx

from statement_reconciler.errors import LedgerError, LedgerTransportError
from statement_reconciler.logger import get_logger
from statement_reconciler.models import (
    CanonicalTransaction,
    Direction,
    TargetAccount,
    TargetAccountType,
)

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0

_DIRECTIONS = {
    Direction.INCOMING: "DIRECTION_INCOMING",
    Direction.OUTGOING: "DIRECTION_OUTGOING",
}


def transaction_payload(tx: CanonicalTransaction) -> dict[str, Any]:
    if tx.resolved_account_id is None:
        raise ValueError("transaction has no resolved account")
    payload: dict[str, Any] = {
        "account_id": tx.resolved_account_id,
        "tx_date": tx.date.isoformat(),
        "tx_amount": {
            "currency_code": tx.currency,
            "amount": f"{tx.amount:.2f}",
        },
        "direction": _DIRECTIONS[tx.direction],
    }
    if tx.description:
        payload["description"] = tx.description
    return payload


class LedgerClient:
    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        user_id: str | None = None,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.base_url = (base_url or os.getenv("LEDGER_URL") or "").rstrip("/")
        self.token = token or os.getenv("LEDGER_TOKEN")
        self.user_id = user_id or os.getenv("USER_ID")
        if not self.base_url or not self.token:
            raise LedgerError("LEDGER_URL and LEDGER_TOKEN must be set")
        if not self.user_id:
            raise LedgerError("USER_ID must be set")
        self.headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        self.timeout = timeout
        self._client = client

    def __enter__(self) -> "LedgerClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            self._client.close()

    def _get_client(self) -> httpx.Client:
        client = self._client
        if client is None or client.is_closed:
            client = httpx.Client(timeout=self.timeout)
            self._client = client
        return client

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        client = self._get_client()
        try:
            response = client.request(
                method,
                f"{self.base_url}{path}",
                headers=self.headers,
                **kwargs,
            )
        except httpx.TransportError as exc:
            raise LedgerTransportError(f"{method} {path} failed: {exc}") from exc
        return response

    def get_user(self) -> dict[str, Any]:
        response = self._request("GET", f"/api/v1/users/{self.user_id}")
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise LedgerError(f"failed to get user {self.user_id}: {exc}") from exc
        logger.info("[LEDGER] Fetched user %s", self.user_id)
        return response.json().get("data", {})

    def list_accounts(self) -> list[TargetAccount]:
        response = self._request("GET", "/api/v1/accounts", params={"user_id": self.user_id})
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise LedgerError(f"failed to list accounts: {exc}") from exc
        accounts = [TargetAccount.model_validate(item) for item in response.json().get("data", [])]
        logger.info("[LEDGER] Fetched %d accounts", len(accounts))
        return accounts

    def create_account(
        self,
        name: str,
        bank: str,
        account_type: TargetAccountType,
        currency: str,
    ) -> TargetAccount:
        payload = {
            "user_id": self.user_id,
            "name": name,
            "bank": bank,
            "type": account_type.value,
            "main_currency": currency,
            "anchor_balance": {"currency_code": currency, "amount": "0.00"},
        }
        response = self._request("POST", "/api/v1/accounts", json=payload)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise LedgerError(f"failed to create account '{name}': {exc}") from exc
        account = TargetAccount.model_validate(response.json().get("data", {}))
        logger.info(
            "[LEDGER] Created account '%s' (type=%s, id=%s)",
            account.name,
            account.type.value,
            account.id,
        )
        return account

    def create_transactions(
        self, transactions: Sequence[CanonicalTransaction]
    ) -> tuple[int, list[str]]:
        """Submit one batch. Returns the created count and per-batch error messages."""
        if not transactions:
            return 0, []

        payload = {
            "user_id": self.user_id,
            "transactions": [transaction_payload(tx) for tx in transactions],
        }
        response = self._request("POST", "/api/v1/transactions", json=payload)
        if response.status_code == httpx.codes.CONFLICT:
            logger.info("[LEDGER] Skipping duplicate transactions")
            return 0, []
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            return 0, [f"failed to create transactions: {exc}"]

        created = int(response.json().get("created_count", 0))
        logger.info("[LEDGER] Created %d transactions", created)
        return created, []
