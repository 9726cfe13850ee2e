"""External collaborators of the generation saga: Protocols only."""

from typing import Protocol

from src.ic_common.errors import AppError, PersistenceError, ProviderError
from src.ic_common.result import Result
from src.ic_generation.domain.models import Artifact, GeneratedContent, GenerationRequest


class GeneratorProviderProtocol(Protocol):
    """The unreliable external call. Latency and failure are unbounded."""

    async def generate(self, request: GenerationRequest) -> Result[GeneratedContent, ProviderError]: ...


class ArtifactRepositoryProtocol(Protocol):
    async def save(self, artifact: Artifact) -> Result[Artifact, PersistenceError]: ...

    async def find_by_id(self, artifact_id: str) -> Result[Artifact, AppError]: ...
