"""Pydantic schemas for ic_generation API."""

from typing import Any

from pydantic import BaseModel, Field

from src.ic_common.enums import SagaState
from src.ic_generation.domain.models import Artifact, SagaRun


class GenerateRequest(BaseModel):
    operation: str = Field(..., description="OperationKind value, e.g. 'prd'")
    input: str = Field(..., min_length=1, description="Idea text the generator works from")
    context: dict[str, Any] | None = None


class ArtifactResponse(BaseModel):
    id: str
    account_id: str
    operation: str
    title: str
    content: str | dict[str, Any]
    saga_id: str
    created_at: str  # ISO8601 string

    @classmethod
    def from_domain(cls, artifact: Artifact) -> "ArtifactResponse":
        return cls(
            id=artifact.id,
            account_id=artifact.account_id,
            operation=artifact.operation.value,
            title=artifact.title,
            content=artifact.content,
            saga_id=artifact.saga_id,
            created_at=artifact.created_at.isoformat(),
        )


class GenerationResponse(BaseModel):
    saga_id: str
    credits_charged: int
    trace: list[str]
    artifact: ArtifactResponse

    @classmethod
    def from_run(cls, run: SagaRun, artifact: Artifact) -> "GenerationResponse":
        return cls(
            saga_id=run.saga_id,
            credits_charged=run.cost if SagaState.DEBITED in run.trace else 0,
            trace=[s.value for s in run.trace],
            artifact=ArtifactResponse.from_domain(artifact),
        )
