"""Artifact repositories: PostgreSQL and in-memory."""

import json
import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.ic_common.datetime_utils import as_utc
from src.ic_common.enums import OperationKind
from src.ic_common.errors import (
    AppError,
    ArtifactNotFoundError,
    InternalError,
    PersistenceError,
)
from src.ic_common.result import Err, Ok, Result
from src.ic_generation.domain.models import Artifact, GeneratedContent

logger = logging.getLogger(__name__)

_INSERT_ARTIFACT_SQL = text("""
    INSERT INTO artifacts (id, account_id, operation, content, saga_id, created_at)
    VALUES (:id, :account_id, :operation, CAST(:content AS JSONB), :saga_id, :created_at)
""")

_GET_ARTIFACT_SQL = text("""
    SELECT id, account_id, operation, content, saga_id, created_at
    FROM artifacts
    WHERE id = :id
""")


def _encode_content(content: GeneratedContent) -> str:
    if isinstance(content, str):
        return json.dumps({"markdown": content})
    return json.dumps(content)


def _decode_content(raw: object) -> GeneratedContent:
    data = json.loads(raw) if isinstance(raw, str) else raw
    if isinstance(data, dict) and set(data) == {"markdown"}:
        return str(data["markdown"])
    return data  # type: ignore[return-value]


class SqlArtifactRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def save(self, artifact: Artifact) -> Result[Artifact, PersistenceError]:
        params = {
            "id": artifact.id,
            "account_id": artifact.account_id,
            "operation": artifact.operation.value,
            "content": _encode_content(artifact.content),
            "saga_id": artifact.saga_id,
            "created_at": artifact.created_at,
        }
        try:
            async with self._session_factory() as db, db.begin():
                await db.execute(_INSERT_ARTIFACT_SQL, params)
        except (SQLAlchemyError, TypeError, ValueError) as exc:
            return Err(PersistenceError(f"artifact {artifact.id}: {exc}"))
        return Ok(artifact)

    async def find_by_id(self, artifact_id: str) -> Result[Artifact, AppError]:
        try:
            async with self._session_factory() as db:
                row = (await db.execute(_GET_ARTIFACT_SQL, {"id": artifact_id})).fetchone()
        except SQLAlchemyError as exc:
            logger.error("Artifact lookup failed: artifact=%s error=%s", artifact_id, exc)
            return Err(InternalError(f"Artifact lookup failed for {artifact_id}"))
        if row is None:
            return Err(ArtifactNotFoundError(artifact_id))
        return Ok(
            Artifact(
                id=row.id,
                account_id=row.account_id,
                operation=OperationKind(row.operation),
                content=_decode_content(row.content),
                saga_id=row.saga_id,
                created_at=as_utc(row.created_at),
            )
        )


class InMemoryArtifactRepository:
    def __init__(self) -> None:
        self._artifacts: dict[str, Artifact] = {}

    async def save(self, artifact: Artifact) -> Result[Artifact, PersistenceError]:
        if artifact.id in self._artifacts:
            return Err(PersistenceError(f"duplicate artifact id {artifact.id}"))
        self._artifacts[artifact.id] = artifact
        return Ok(artifact)

    async def find_by_id(self, artifact_id: str) -> Result[Artifact, AppError]:
        artifact = self._artifacts.get(artifact_id)
        if artifact is None:
            return Err(ArtifactNotFoundError(artifact_id))
        return Ok(artifact)

    def count(self) -> int:
        return len(self._artifacts)
