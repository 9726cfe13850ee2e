"""Pydantic schemas and cursor utilities for ic_account API."""

import base64
import json
from typing import Any

from pydantic import BaseModel, Field, field_validator

from src.ic_account.domain.models import Account, CreditBalance, Eligibility, LedgerEntry
from src.ic_common.enums import TransactionKind
from src.ic_common.errors import ValidationError

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: str) -> str:
    """Encode the last seen transaction id into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.urlsafe_b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> str | None:
    """Decode a cursor string back to the last seen id.

    Raises ValidationError for a cursor this service did not issue.
    """
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.urlsafe_b64decode(cursor.encode()).decode())
        return str(payload["id"])
    except (ValueError, KeyError, TypeError) as exc:
        raise ValidationError(f"Malformed ledger cursor: {cursor!r}") from exc


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class OpenAccountRequest(BaseModel):
    credits: int | None = Field(None, ge=0, description="Starting balance; defaults to 3")


class AddCreditsRequest(BaseModel):
    amount: int = Field(..., description="Credits to add; negative only for ADMIN_ADJUSTMENT")
    kind: TransactionKind = TransactionKind.ADD
    description: str = Field(..., min_length=1, max_length=500)
    metadata: dict[str, Any] | None = None

    @field_validator("amount")
    @classmethod
    def _non_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("amount cannot be zero")
        return v


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class AccountResponse(BaseModel):
    account_id: str
    credits: int
    tier: str
    updated_at: str

    @classmethod
    def from_domain(cls, account: Account) -> "AccountResponse":
        return cls(
            account_id=account.id,
            credits=account.credits,
            tier=account.tier.value,
            updated_at=account.updated_at.isoformat(),
        )


class BalanceResponse(BaseModel):
    account_id: str
    credits: int
    tier: str

    @classmethod
    def from_domain(cls, balance: CreditBalance) -> "BalanceResponse":
        return cls(account_id=balance.account_id, credits=balance.credits, tier=balance.tier.value)


class EligibilityResponse(BaseModel):
    account_id: str
    operation: str
    allowed: bool
    credits: int
    cost: int
    tier: str
    show_warning: bool

    @classmethod
    def from_domain(cls, e: Eligibility) -> "EligibilityResponse":
        return cls(
            account_id=e.account_id,
            operation=e.operation,
            allowed=e.allowed,
            credits=e.credits,
            cost=e.cost,
            tier=e.tier.value,
            show_warning=e.show_warning,
        )


class LedgerEntryItem(BaseModel):
    id: str
    kind: str
    amount: int
    description: str
    metadata: dict[str, Any]
    timestamp: str  # ISO8601 string

    @classmethod
    def from_domain(cls, entry: LedgerEntry) -> "LedgerEntryItem":
        return cls(
            id=entry.id,
            kind=entry.kind.value,
            amount=entry.amount,
            description=entry.description,
            metadata=dict(entry.metadata),
            timestamp=entry.timestamp.isoformat(),
        )


class LedgerResponse(BaseModel):
    items: list[LedgerEntryItem]
    next_cursor: str | None
    has_more: bool
