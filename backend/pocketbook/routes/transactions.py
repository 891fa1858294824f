"""
Pocketbook Backend — Transaction Routes
========================================

Transactions are addressed through their wallet:
/api/1/users/{user_id}/wallets/{wallet_id}/transactions[/{transaction_id}].
The list endpoint returns the wallet's transactions only.
"""

from fastapi import APIRouter, Depends, Response, status

from pocketbook.domain import Session
from pocketbook.routes.accounts import AUTH_RESPONSES
from pocketbook.routes.deps import get_interactor, require_session
from pocketbook.schemas.common import ErrorResponse
from pocketbook.schemas.ledger import (
    TransactionBatchRequest,
    TransactionListResponse,
    TransactionResponse,
    TransactionUpdateRequest,
)
from pocketbook.services.interactor import Interactor

router = APIRouter(
    prefix="/api/1/users/{user_id}/wallets/{wallet_id}/transactions", tags=["Transactions"]
)


@router.get("", response_model=TransactionListResponse, responses=AUTH_RESPONSES)
async def list_transactions(
    user_id: str,
    wallet_id: str,
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
) -> TransactionListResponse:
    transactions = await interactor.list_transactions(user_id, wallet_id)
    return TransactionListResponse(
        transactions=[TransactionResponse.from_domain(t) for t in transactions]
    )


@router.get("/{transaction_id}", response_model=TransactionResponse, responses=AUTH_RESPONSES)
async def get_transaction(
    user_id: str,
    wallet_id: str,
    transaction_id: str,
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
) -> TransactionResponse:
    transaction = await interactor.get_transaction(user_id, wallet_id, transaction_id)
    return TransactionResponse.from_domain(transaction)


@router.post(
    "",
    response_model=TransactionListResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        **AUTH_RESPONSES,
        409: {"description": "Batch rejected, nothing was created", "model": ErrorResponse},
    },
    summary="Create a batch of transactions on one wallet",
)
async def create_transactions(
    user_id: str,
    wallet_id: str,
    body: TransactionBatchRequest,
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
) -> TransactionListResponse:
    drafts = [draft.to_domain(user_id, wallet_id) for draft in body.transactions]
    transactions = await interactor.create_transactions(user_id, wallet_id, drafts)
    return TransactionListResponse(
        transactions=[TransactionResponse.from_domain(t) for t in transactions]
    )


@router.put("/{transaction_id}", response_model=TransactionResponse, responses=AUTH_RESPONSES)
async def update_transaction(
    user_id: str,
    wallet_id: str,
    transaction_id: str,
    body: TransactionUpdateRequest,
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
) -> TransactionResponse:
    transaction = await interactor.update_transaction(
        user_id, wallet_id, transaction_id, body.changes()
    )
    return TransactionResponse.from_domain(transaction)


@router.delete(
    "/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT, responses=AUTH_RESPONSES
)
async def delete_transaction(
    user_id: str,
    wallet_id: str,
    transaction_id: str,
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
) -> Response:
    await interactor.delete_transaction(user_id, wallet_id, transaction_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
