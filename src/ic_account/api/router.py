"""ic_account REST API: balance, eligibility, ledger history and top-ups."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from src.container import AppContainer, get_container
from src.ic_account.application.schemas import (
    AccountResponse,
    AddCreditsRequest,
    BalanceResponse,
    EligibilityResponse,
    OpenAccountRequest,
)
from src.ic_common.enums import TransactionKind
from src.ic_common.response import ApiResponse, success_response

router = APIRouter(prefix="/accounts", tags=["accounts"])


def _respond(request: Request, data: object) -> ApiResponse:
    resp = success_response(data)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{account_id}", status_code=201)
async def open_account(
    account_id: str,
    body: OpenAccountRequest,
    container: Annotated[AppContainer, Depends(get_container)],
    request: Request,
) -> ApiResponse:
    account = (await container.balance_service.open_account(account_id, body.credits)).unwrap()
    return _respond(request, AccountResponse.from_domain(account).model_dump())


@router.get("/{account_id}/balance")
async def get_balance(
    account_id: str,
    container: Annotated[AppContainer, Depends(get_container)],
    request: Request,
) -> ApiResponse:
    balance = (await container.balance_service.get_balance(account_id)).unwrap()
    return _respond(request, BalanceResponse.from_domain(balance).model_dump())


@router.get("/{account_id}/eligibility")
async def check_eligibility(
    account_id: str,
    container: Annotated[AppContainer, Depends(get_container)],
    request: Request,
    operation: str = Query(..., description="OperationKind value, e.g. 'prd'"),
) -> ApiResponse:
    result = await container.balance_service.check_eligibility(account_id, operation)
    return _respond(request, EligibilityResponse.from_domain(result.unwrap()).model_dump())


@router.get("/{account_id}/ledger")
async def list_ledger(
    account_id: str,
    container: Annotated[AppContainer, Depends(get_container)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    kind: TransactionKind | None = Query(None, description="Filter by TransactionKind"),
) -> ApiResponse:
    page = (await container.balance_service.list_ledger(account_id, cursor, limit, kind)).unwrap()
    return _respond(request, page.model_dump())


@router.post("/{account_id}/credits")
async def add_credits(
    account_id: str,
    body: AddCreditsRequest,
    container: Annotated[AppContainer, Depends(get_container)],
    request: Request,
) -> ApiResponse:
    service = container.balance_service
    (await service.add_credits(
        account_id, body.amount, body.kind, body.description, body.metadata
    )).unwrap()
    balance = (await service.get_balance(account_id)).unwrap()
    return _respond(request, BalanceResponse.from_domain(balance).model_dump())
