"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Validation
  2xxx: Account / Credits
  3xxx: Generation
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Validation ---

class ValidationError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(1001, f"Invalid input: {detail}", 422)


class InvariantViolationError(AppError):
    """A domain object was constructed or mutated into an illegal state."""

    def __init__(self, detail: str) -> None:
        super().__init__(1002, detail, 422)


# --- 2xxx: Account / Credits ---

class InsufficientCreditsError(AppError):
    def __init__(self, account_id: str, required: int, available: int) -> None:
        self.account_id = account_id
        self.required = required
        self.available = available
        super().__init__(
            2001,
            f"Insufficient credits: required {required}, available {available}",
            402,
        )


class AccountNotFoundError(AppError):
    def __init__(self, account_id: str) -> None:
        super().__init__(2002, f"Account not found: {account_id}", 404)


class LedgerWriteError(AppError):
    """A credit transaction could not be recorded.

    The balance store and the audit trail may now disagree, so this is never
    retried silently: callers log it at CRITICAL and surface it.
    """

    def __init__(self, detail: str) -> None:
        super().__init__(2003, f"Ledger write failed: {detail}", 500)


class BalanceUpdateError(AppError):
    def __init__(self, account_id: str, detail: str) -> None:
        super().__init__(2004, f"Balance update failed for {account_id}: {detail}", 500)


# --- 3xxx: Generation ---

class ProviderError(AppError):
    def __init__(self, detail: str, timed_out: bool = False) -> None:
        self.timed_out = timed_out
        super().__init__(3001, f"Generator failed: {detail}", 502)


class PersistenceError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3002, f"Artifact could not be saved: {detail}", 500)


class ArtifactNotFoundError(AppError):
    def __init__(self, artifact_id: str) -> None:
        super().__init__(3003, f"Artifact not found: {artifact_id}", 404)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
