"""Account balance cache contract.

  - Cache key: f"credit_balance:{account_id}" holding a CreditBalance snapshot
  - Write path: store first, then invalidate the key before returning
  - Read path: cache-aside (check cache -> store on miss -> populate cache)

The cache only ever holds derived snapshots; the account store is the system
of record and the cache can be dropped at any time.
"""

from typing import Any, Protocol

BALANCE_KEY_PREFIX = "credit_balance:"


def balance_key(account_id: str) -> str:
    return f"{BALANCE_KEY_PREFIX}{account_id}"


class BalanceCacheProtocol(Protocol):
    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any, ttl_seconds: float) -> None: ...

    async def delete(self, key: str) -> None: ...
