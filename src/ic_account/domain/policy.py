"""Credit policies: what an operation costs and who may run it.

Two strategies behind one Protocol. Services and the generation saga are
written against ``CreditPolicy`` only; which one is active is decided once,
when the application container is built from settings.
"""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Protocol

from src.ic_account.domain.models import CreditBalance
from src.ic_common.enums import OperationKind, UserTier
from src.ic_common.errors import ValidationError

UNMETERED_CREDITS = 9999
UNMETERED_TIER = UserTier.ADMIN
DEFAULT_WARNING_THRESHOLD = 1

# Every generation costs 1 credit regardless of analysis or document subtype.
_OPERATION_COSTS: Mapping[OperationKind, int] = MappingProxyType(
    {kind: 1 for kind in OperationKind}
)


def parse_operation(value: OperationKind | str) -> OperationKind:
    if isinstance(value, OperationKind):
        return value
    try:
        return OperationKind(str(value).strip().lower())
    except ValueError as exc:
        allowed = ", ".join(k.value for k in OperationKind)
        raise ValidationError(f"unknown operation {value!r}, expected one of: {allowed}") from exc


class HasCredits(Protocol):
    """Account or cached CreditBalance snapshot."""

    @property
    def credits(self) -> int: ...


class CreditPolicy(Protocol):
    @property
    def metered(self) -> bool: ...

    def cost_of(self, operation: OperationKind | str) -> int: ...

    def can_afford(self, account: HasCredits | None, operation: OperationKind | str) -> bool: ...

    def should_show_warning(self, credits: int) -> bool: ...

    def balance_override(self, account_id: str) -> CreditBalance | None: ...


class MeteredCreditPolicy:
    """Normal operation: static cost table, balance must cover the cost (inclusive)."""

    def __init__(self, warning_threshold: int = DEFAULT_WARNING_THRESHOLD) -> None:
        self._warning_threshold = warning_threshold

    @property
    def metered(self) -> bool:
        return True

    def cost_of(self, operation: OperationKind | str) -> int:
        return _OPERATION_COSTS[parse_operation(operation)]

    def can_afford(self, account: HasCredits | None, operation: OperationKind | str) -> bool:
        if account is None:
            return False
        return account.credits >= self.cost_of(operation)

    def should_show_warning(self, credits: int) -> bool:
        return credits <= self._warning_threshold

    def balance_override(self, account_id: str) -> CreditBalance | None:
        return None


class UnmeteredCreditPolicy:
    """Unlimited mode: every check passes and balances read as a fixed sentinel.

    Never needs the account, so callers can skip repository and cache reads.
    """

    @property
    def metered(self) -> bool:
        return False

    def cost_of(self, operation: OperationKind | str) -> int:
        return _OPERATION_COSTS[parse_operation(operation)]

    def can_afford(self, account: HasCredits | None, operation: OperationKind | str) -> bool:
        parse_operation(operation)
        return True

    def should_show_warning(self, credits: int) -> bool:
        return False

    def balance_override(self, account_id: str) -> CreditBalance | None:
        return CreditBalance(account_id=account_id, credits=UNMETERED_CREDITS, tier=UNMETERED_TIER)


def select_credit_policy(
    unmetered: bool, warning_threshold: int = DEFAULT_WARNING_THRESHOLD
) -> CreditPolicy:
    if unmetered:
        return UnmeteredCreditPolicy()
    return MeteredCreditPolicy(warning_threshold=warning_threshold)
