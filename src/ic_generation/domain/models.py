"""Domain models for ic_generation: pure dataclasses, no SQLAlchemy dependency."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Union

from src.ic_common.datetime_utils import utc_now
from src.ic_common.enums import OperationKind, SagaState
from src.ic_common.errors import AppError, InternalError, ValidationError
from src.ic_common.id_generator import generate_id
from src.ic_common.result import Result

MAX_INPUT_LENGTH = 20_000

# Markdown for documents, structured JSON for analyses.
GeneratedContent = Union[str, dict[str, Any]]


@dataclass(frozen=True)
class GenerationRequest:
    account_id: str
    operation: OperationKind
    input_text: str
    context: Mapping[str, Any] = field(default_factory=dict, hash=False)

    @classmethod
    def validated(
        cls,
        account_id: str,
        operation: OperationKind,
        input_text: Any,
        context: Mapping[str, Any] | None = None,
    ) -> "GenerationRequest":
        """Raises ValidationError for empty or malformed input."""
        if not isinstance(account_id, str) or not account_id.strip():
            raise ValidationError("account id cannot be empty")
        if not isinstance(input_text, str):
            raise ValidationError("input must be text")
        text = input_text.strip()
        if not text:
            raise ValidationError("input cannot be empty")
        if len(text) > MAX_INPUT_LENGTH:
            raise ValidationError(f"input exceeds {MAX_INPUT_LENGTH} characters")
        if context is not None and not isinstance(context, Mapping):
            raise ValidationError("context must be an object")
        return cls(
            account_id=account_id.strip(),
            operation=operation,
            input_text=text,
            context=dict(context or {}),
        )


@dataclass(frozen=True)
class Artifact:
    id: str
    account_id: str
    operation: OperationKind
    content: GeneratedContent = field(hash=False)
    saga_id: str
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def create(
        cls, account_id: str, operation: OperationKind, content: GeneratedContent, saga_id: str
    ) -> "Artifact":
        return cls(
            id=generate_id("art_"),
            account_id=account_id,
            operation=operation,
            content=content,
            saga_id=saga_id,
        )

    @property
    def title(self) -> str:
        return f"{self.operation.display_name} - {self.created_at:%Y-%m-%d}"


@dataclass
class SagaRun:
    """Everything one saga invocation did, for callers that want more than the Result."""
    saga_id: str
    account_id: str
    operation: str
    cost: int = 0
    trace: list[SagaState] = field(default_factory=lambda: [SagaState.START])
    result: Result[Artifact, AppError] | None = None
    compensation_error: AppError | None = None

    def advance(self, state: SagaState) -> None:
        self.trace.append(state)

    @property
    def state(self) -> SagaState:
        return self.trace[-1]

    @property
    def succeeded(self) -> bool:
        return self.state is SagaState.SUCCESS

    def outcome(self) -> Result[Artifact, AppError]:
        if self.result is None:
            raise InternalError(f"Saga {self.saga_id} finished without a result")
        return self.result
