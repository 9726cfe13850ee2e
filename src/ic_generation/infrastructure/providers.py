"""Generator provider adapters.

HttpGeneratorProvider calls the hosted model gateway; EchoGeneratorProvider
is the offline stand-in used by STORAGE_BACKEND=memory.
"""

import logging
from typing import Any

import httpx

from src.ic_common.errors import ProviderError
from src.ic_common.result import Err, Ok, Result
from src.ic_generation.domain.models import GeneratedContent, GenerationRequest

logger = logging.getLogger(__name__)


class HttpGeneratorProvider:
    """POST {"operation", "input", "context"} -> {"content": <markdown or object>}.

    Any transport error, non-2xx status or malformed body is a ProviderError.
    The overall deadline is enforced by the saga; ``timeout`` here only bounds
    individual socket operations.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = base_url
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = client or httpx.AsyncClient(timeout=timeout, headers=headers)
        self._owns_client = client is None

    async def generate(self, request: GenerationRequest) -> Result[GeneratedContent, ProviderError]:
        body: dict[str, Any] = {
            "operation": request.operation.value,
            "input": request.input_text,
            "context": dict(request.context),
        }
        try:
            resp = await self._client.post(self._url, json=body)
        except httpx.TimeoutException as exc:
            return Err(ProviderError(f"upstream timeout: {exc}", timed_out=True))
        except httpx.HTTPError as exc:
            return Err(ProviderError(f"transport error: {exc}"))

        if resp.status_code >= 400:
            logger.warning("Generator returned HTTP %d for %s", resp.status_code, request.operation.value)
            return Err(ProviderError(f"upstream returned HTTP {resp.status_code}"))
        try:
            payload = resp.json()
        except ValueError:
            return Err(ProviderError("upstream returned a non-JSON body"))

        content = payload.get("content") if isinstance(payload, dict) else None
        if not isinstance(content, (str, dict)) or not content:
            return Err(ProviderError("upstream response has no content"))
        return Ok(content)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class EchoGeneratorProvider:
    """Deterministic local generator: wraps the input in a small document."""

    async def generate(self, request: GenerationRequest) -> Result[GeneratedContent, ProviderError]:
        op = request.operation
        if op.is_analysis:
            return Ok({"summary": request.input_text[:280], "operation": op.value})
        return Ok(f"# {op.display_name}\n\n{request.input_text}\n")
