"""GenerationSaga: spend a credit, call the generator, keep the result.

    START -> COST_CHECKED -> DEBITED -> GENERATED -> PERSISTED -> SUCCESS
                                  \\-> (generate fails | persist fails) -> REFUNDED -> FAILURE

Ordering (never reorder):
  1. validate input                 -- ValidationError, nothing touched
  2. load account + cost, can_afford
  3. short balance                  -- InsufficientCreditsError, nothing touched
  4. debit: deduct, persist, invalidate cache, record DEDUCT(-cost)
  5. generate                       -- only after the debit is fully recorded
  6. persist the artifact
  7. success: exactly one DEDUCT for this run
  8. failure after 4: add(cost), persist, invalidate, record REFUND(+cost),
     then return the ORIGINAL error
  Cancellation during 5 or 6 runs step 8 under asyncio.shield, then re-raises.

Accounts and the ledger are separate stores with no shared transaction; the
ordered debit/compensate sequence is the only thing keeping them consistent.
Concurrent runs for the same account are not serialized here.

Under an unmetered CreditPolicy steps 2-4 and 8 are skipped entirely: no
account read, no debit, no refund, no ledger entries.
"""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from src.ic_account.application.ledger_writer import CreditLedgerWriter
from src.ic_account.domain.models import Account
from src.ic_account.domain.policy import CreditPolicy, parse_operation
from src.ic_account.domain.repository import AccountRepositoryProtocol
from src.ic_common.enums import OperationKind, SagaState, TransactionKind
from src.ic_common.errors import (
    AppError,
    InsufficientCreditsError,
    PersistenceError,
    ProviderError,
    ValidationError,
)
from src.ic_common.id_generator import generate_id
from src.ic_common.result import Err, Ok, Result
from src.ic_generation.domain.models import (
    Artifact,
    GeneratedContent,
    GenerationRequest,
    SagaRun,
)
from src.ic_generation.domain.repository import (
    ArtifactRepositoryProtocol,
    GeneratorProviderProtocol,
)

logger = logging.getLogger(__name__)

DEFAULT_GENERATOR_TIMEOUT_SECONDS = 60.0


class GenerationSaga:
    def __init__(
        self,
        accounts: AccountRepositoryProtocol,
        writer: CreditLedgerWriter,
        generator: GeneratorProviderProtocol,
        artifacts: ArtifactRepositoryProtocol,
        policy: CreditPolicy,
        generator_timeout_seconds: float | None = DEFAULT_GENERATOR_TIMEOUT_SECONDS,
    ) -> None:
        self._accounts = accounts
        self._writer = writer
        self._generator = generator
        self._artifacts = artifacts
        self._policy = policy
        self._timeout = generator_timeout_seconds

    async def execute(
        self,
        account_id: str,
        operation: OperationKind | str,
        input_text: Any,
        context: Mapping[str, Any] | None = None,
    ) -> Result[Artifact, AppError]:
        run = await self.run(account_id, operation, input_text, context)
        return run.outcome()

    async def run(
        self,
        account_id: str,
        operation: OperationKind | str,
        input_text: Any,
        context: Mapping[str, Any] | None = None,
    ) -> SagaRun:
        run = SagaRun(saga_id=generate_id("saga_"), account_id=account_id, operation=str(operation))

        # Step 1: validate
        try:
            op = parse_operation(operation)
            request = GenerationRequest.validated(account_id, op, input_text, context)
        except ValidationError as exc:
            logger.info("Generation rejected: saga=%s reason=%s", run.saga_id, exc.message)
            return self._fail(run, exc)
        run.operation = op.value
        run.cost = self._policy.cost_of(op)

        # Steps 2-4: cost check and debit
        account: Account | None = None
        if self._policy.metered:
            match await self._accounts.find_by_id(request.account_id):
                case Err(error):
                    return self._fail(run, error)
                case Ok(loaded):
                    account = loaded
            if not self._policy.can_afford(account, op):
                logger.warning(
                    "Insufficient credits: saga=%s account=%s required=%d available=%d",
                    run.saga_id, account.id, run.cost, account.credits,
                )
                return self._fail(
                    run, InsufficientCreditsError(account.id, run.cost, account.credits)
                )
            run.advance(SagaState.COST_CHECKED)

            debit = await self._writer.debit(
                account,
                run.cost,
                f"Generation: {op.display_name}",
                {"operation": op.value, "saga_id": run.saga_id},
            )
            if isinstance(debit, Err):
                return self._fail(run, debit.error)
            run.advance(SagaState.DEBITED)
        else:
            run.advance(SagaState.COST_CHECKED)

        try:
            saved = await self._generate_and_save(run, request, op)
        except asyncio.CancelledError:
            if account is not None and SagaState.PERSISTED not in run.trace:
                await asyncio.shield(
                    self._compensate(run, account, ProviderError("generation cancelled"))
                )
            raise
        if isinstance(saved, Err):
            return await self._fail_and_compensate(run, account, saved.error)

        # Step 7
        run.advance(SagaState.SUCCESS)
        run.result = Ok(saved.value)
        logger.info("Generation succeeded: saga=%s account=%s operation=%s artifact=%s",
                    run.saga_id, request.account_id, op.value, saved.value.id)
        return run

    async def _generate_and_save(
        self,
        run: SagaRun,
        request: GenerationRequest,
        op: OperationKind,
    ) -> Result[Artifact, AppError]:
        """Steps 5-6. Cancellation anywhere in here is refunded by the caller."""
        generated = await self._generate(request)
        if isinstance(generated, Err):
            logger.error("Generator failed: saga=%s account=%s error=%s",
                         run.saga_id, request.account_id, generated.error.message)
            return generated
        run.advance(SagaState.GENERATED)

        artifact = Artifact.create(request.account_id, op, generated.value, run.saga_id)
        saved = await self._save(artifact)
        if isinstance(saved, Err):
            logger.error("Artifact persistence failed: saga=%s account=%s error=%s",
                         run.saga_id, request.account_id, saved.error.message)
            return saved
        run.advance(SagaState.PERSISTED)
        return saved

    async def _generate(self, request: GenerationRequest) -> Result[GeneratedContent, ProviderError]:
        """Timeouts, raised exceptions and Err results all become ProviderError."""
        try:
            if self._timeout is None:
                result = await self._generator.generate(request)
            else:
                result = await asyncio.wait_for(self._generator.generate(request), self._timeout)
        except asyncio.TimeoutError:
            return Err(ProviderError(f"timed out after {self._timeout}s", timed_out=True))
        except ProviderError as exc:
            return Err(exc)
        except Exception as exc:  # noqa: BLE001 -- any generator crash is a provider failure
            return Err(ProviderError(f"{type(exc).__name__}: {exc}"))

        if isinstance(result, Err):
            error = result.error
            if not isinstance(error, ProviderError):
                error = ProviderError(str(error))
            return Err(error)
        if not result.value:
            return Err(ProviderError("empty content"))
        return result

    async def _save(self, artifact: Artifact) -> Result[Artifact, PersistenceError]:
        try:
            result = await self._artifacts.save(artifact)
        except Exception as exc:  # noqa: BLE001 -- surfaced as PersistenceError, then refunded
            return Err(PersistenceError(f"{type(exc).__name__}: {exc}"))
        if isinstance(result, Err) and not isinstance(result.error, PersistenceError):
            return Err(PersistenceError(str(result.error)))
        return result

    async def _fail_and_compensate(
        self, run: SagaRun, account: Account | None, error: AppError
    ) -> SagaRun:
        if account is not None:
            await self._compensate(run, account, error)
        return self._fail(run, error)

    async def _compensate(self, run: SagaRun, account: Account, cause: AppError) -> None:
        logger.warning("Refunding %d credit(s): saga=%s account=%s cause=%s",
                       run.cost, run.saga_id, account.id, cause.message)
        refund = await self._writer.credit(
            account,
            run.cost,
            TransactionKind.REFUND,
            f"Refund for failed generation: {parse_operation(run.operation).display_name}",
            {"operation": run.operation, "saga_id": run.saga_id, "reason": cause.message},
        )
        if isinstance(refund, Err):
            run.compensation_error = refund.error
            logger.critical(
                "COMPENSATION INCOMPLETE: saga=%s account=%s cost=%d error=%s",
                run.saga_id, account.id, run.cost, refund.error.message,
            )
            return
        run.advance(SagaState.REFUNDED)

    def _fail(self, run: SagaRun, error: AppError) -> SagaRun:
        run.advance(SagaState.FAILURE)
        run.result = Err(error)
        return run
