from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Direction(str, Enum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"


class SourceAccountType(str, Enum):
    CHEQUING = "chequing"
    SAVINGS = "savings"
    CREDIT_CARD = "credit-card"


class TargetAccountType(str, Enum):
    UNSPECIFIED = "ACCOUNT_UNSPECIFIED"
    CHEQUING = "ACCOUNT_CHEQUING"
    SAVINGS = "ACCOUNT_SAVINGS"
    CREDIT_CARD = "ACCOUNT_CREDIT_CARD"


class CanonicalTransaction(BaseModel):
    date: datetime
    amount: float = Field(ge=0)
    direction: Direction
    currency: str = "CAD"
    description: str
    source_account_number: Optional[str] = None
    source_account_type: SourceAccountType
    source_account_name: Optional[str] = None
    source_path: str = ""
    resolved_account_id: Optional[int] = None

    def assign_account(self, account_id: int) -> None:
        if self.resolved_account_id is not None and self.resolved_account_id != account_id:
            raise ValueError(
                f"transaction already assigned to account {self.resolved_account_id}"
            )
        self.resolved_account_id = account_id


class TargetAccount(BaseModel):
    id: int
    name: str
    bank: str = ""
    type: TargetAccountType = TargetAccountType.UNSPECIFIED
    main_currency: str = "CAD"

    def label(self) -> str:
        return f"{self.name} ({self.bank} - {self.type.value})"
