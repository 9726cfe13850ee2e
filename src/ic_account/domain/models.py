"""Domain models for ic_account: pure dataclasses, no SQLAlchemy dependency."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any

from src.ic_common.datetime_utils import utc_now
from src.ic_common.enums import TransactionKind, UserTier
from src.ic_common.errors import InsufficientCreditsError, InvariantViolationError
from src.ic_common.id_generator import generate_id

DEFAULT_CREDITS = 3
MAX_DESCRIPTION_LENGTH = 500


def _require_positive_int(n: int, what: str) -> None:
    if isinstance(n, bool) or not isinstance(n, int) or n <= 0:
        raise InvariantViolationError(f"{what} must be a positive integer, got {n!r}")


@dataclass
class Account:
    id: str
    credits: int
    tier: UserTier = UserTier.FREE
    version: int = 0
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if isinstance(self.credits, bool) or not isinstance(self.credits, int):
            raise InvariantViolationError("Account credits must be an integer")
        if self.credits < 0:
            raise InvariantViolationError("Account credits cannot be negative")
        self.tier = UserTier(self.tier)

    @classmethod
    def open(
        cls,
        account_id: str,
        credits: int | None = None,
        tier: UserTier = UserTier.FREE,
    ) -> "Account":
        """New account with the default balance unless one is given explicitly."""
        return cls(
            id=account_id,
            credits=DEFAULT_CREDITS if credits is None else credits,
            tier=tier,
        )

    def can_afford(self, cost: int) -> bool:
        return self.credits >= cost

    def deduct(self, n: int) -> None:
        """All-or-nothing debit. Raises InsufficientCreditsError and leaves credits untouched."""
        _require_positive_int(n, "Deduction")
        if self.credits < n:
            raise InsufficientCreditsError(self.id, required=n, available=self.credits)
        self.credits -= n
        self.updated_at = utc_now()

    def add(self, n: int) -> None:
        """Top-ups and refunds."""
        _require_positive_int(n, "Credit addition")
        self.credits += n
        self.updated_at = utc_now()


@dataclass(frozen=True)
class LedgerEntry:
    """One immutable credit transaction. Corrections are new entries, never edits.

    Sign rules:
      DEDUCT            amount < 0
      ADD, REFUND       amount > 0
      ADMIN_ADJUSTMENT  amount != 0
    """

    id: str
    account_id: str
    amount: int
    kind: TransactionKind
    description: str
    metadata: Mapping[str, Any] = field(default_factory=dict, hash=False)
    timestamp: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        try:
            kind = TransactionKind(self.kind)
        except ValueError as exc:
            raise InvariantViolationError(f"Unknown transaction kind: {self.kind!r}") from exc
        object.__setattr__(self, "kind", kind)

        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise InvariantViolationError("Transaction amount must be an integer")
        if self.amount == 0:
            raise InvariantViolationError("Transaction amount cannot be zero")
        if not self.description or not self.description.strip():
            raise InvariantViolationError("Transaction description cannot be empty")
        if len(self.description) > MAX_DESCRIPTION_LENGTH:
            raise InvariantViolationError(
                f"Transaction description cannot exceed {MAX_DESCRIPTION_LENGTH} characters"
            )
        if kind is TransactionKind.DEDUCT and self.amount > 0:
            raise InvariantViolationError("DEDUCT transaction must have negative amount")
        if kind in (TransactionKind.ADD, TransactionKind.REFUND) and self.amount < 0:
            raise InvariantViolationError(f"{kind.value} transaction must have positive amount")

        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata or {})))

    @classmethod
    def create(
        cls,
        account_id: str,
        amount: int,
        kind: TransactionKind,
        description: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> "LedgerEntry":
        return cls(
            id=generate_id("txn_"),
            account_id=account_id,
            amount=amount,
            kind=kind,
            description=description,
            metadata=metadata or {},
            timestamp=utc_now(),
        )

    @property
    def is_deduction(self) -> bool:
        return self.kind is TransactionKind.DEDUCT

    @property
    def is_addition(self) -> bool:
        return self.kind in (TransactionKind.ADD, TransactionKind.REFUND)

    @property
    def is_admin_adjustment(self) -> bool:
        return self.kind is TransactionKind.ADMIN_ADJUSTMENT

    @property
    def absolute_amount(self) -> int:
        return abs(self.amount)

    def summary(self) -> str:
        sign = "+" if self.amount > 0 else ""
        return f"{self.kind.value}: {sign}{self.amount} credits - {self.description}"


@dataclass(frozen=True)
class CreditBalance:
    """Read-side snapshot of an account balance, safe to cache."""
    account_id: str
    credits: int
    tier: UserTier


@dataclass(frozen=True)
class Eligibility:
    account_id: str
    operation: str
    allowed: bool
    credits: int
    cost: int
    tier: UserTier
    show_warning: bool
