"""
Pocketbook Backend — Wallet Routes
===================================

POST takes a list and creates all wallets in one atomic batch; the
response lists them in the submitted order.
"""

from fastapi import APIRouter, Depends, Response, status

from pocketbook.domain import Session
from pocketbook.routes.accounts import AUTH_RESPONSES
from pocketbook.routes.deps import get_interactor, require_session
from pocketbook.schemas.common import ErrorResponse
from pocketbook.schemas.ledger import (
    WalletBatchRequest,
    WalletListResponse,
    WalletResponse,
    WalletUpdateRequest,
)
from pocketbook.services.interactor import Interactor

router = APIRouter(prefix="/api/1/users/{user_id}/wallets", tags=["Wallets"])


@router.get("", response_model=WalletListResponse, responses=AUTH_RESPONSES)
async def list_wallets(
    user_id: str,
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
) -> WalletListResponse:
    wallets = await interactor.list_wallets(user_id)
    return WalletListResponse(wallets=[WalletResponse.from_domain(w) for w in wallets])


@router.get("/{wallet_id}", response_model=WalletResponse, responses=AUTH_RESPONSES)
async def get_wallet(
    user_id: str,
    wallet_id: str,
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
) -> WalletResponse:
    return WalletResponse.from_domain(await interactor.get_wallet(user_id, wallet_id))


@router.post(
    "",
    response_model=WalletListResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        **AUTH_RESPONSES,
        409: {"description": "Batch rejected, nothing was created", "model": ErrorResponse},
    },
    summary="Create a batch of wallets",
)
async def create_wallets(
    user_id: str,
    body: WalletBatchRequest,
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
) -> WalletListResponse:
    drafts = [draft.to_domain(user_id) for draft in body.wallets]
    wallets = await interactor.create_wallets(user_id, drafts)
    return WalletListResponse(wallets=[WalletResponse.from_domain(w) for w in wallets])


@router.put("/{wallet_id}", response_model=WalletResponse, responses=AUTH_RESPONSES)
async def update_wallet(
    user_id: str,
    wallet_id: str,
    body: WalletUpdateRequest,
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
) -> WalletResponse:
    wallet = await interactor.update_wallet(user_id, wallet_id, body.changes())
    return WalletResponse.from_domain(wallet)


@router.delete("/{wallet_id}", status_code=status.HTTP_204_NO_CONTENT, responses=AUTH_RESPONSES)
async def delete_wallet(
    user_id: str,
    wallet_id: str,
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
) -> Response:
    await interactor.delete_wallet(user_id, wallet_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
