"""ic_generation REST API: one endpoint that runs the generation saga."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from src.container import AppContainer, get_container
from src.ic_common.response import ApiResponse, success_response
from src.ic_generation.application.schemas import GenerateRequest, GenerationResponse

router = APIRouter(prefix="/accounts", tags=["generations"])


@router.post("/{account_id}/generations", status_code=201)
async def create_generation(
    account_id: str,
    body: GenerateRequest,
    container: Annotated[AppContainer, Depends(get_container)],
    request: Request,
) -> ApiResponse:
    run = await container.saga.run(account_id, body.operation, body.input, body.context)
    artifact = run.outcome().unwrap()
    resp = success_response(GenerationResponse.from_run(run, artifact).model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
