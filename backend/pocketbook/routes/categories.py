"""Category routes. Deleting a category that transactions still use is a 409."""

from fastapi import APIRouter, Depends, Response, status

from pocketbook.domain import Session
from pocketbook.routes.accounts import AUTH_RESPONSES
from pocketbook.routes.deps import get_interactor, require_session
from pocketbook.schemas.common import ErrorResponse
from pocketbook.schemas.ledger import (
    CategoryBatchRequest,
    CategoryListResponse,
    CategoryResponse,
    CategoryUpdateRequest,
)
from pocketbook.services.interactor import Interactor

router = APIRouter(prefix="/api/1/users/{user_id}/categories", tags=["Categories"])

CONFLICT = {409: {"description": "Constraint violated, nothing was written", "model": ErrorResponse}}


@router.get("", response_model=CategoryListResponse, responses=AUTH_RESPONSES)
async def list_categories(
    user_id: str,
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
) -> CategoryListResponse:
    categories = await interactor.list_categories(user_id)
    return CategoryListResponse(categories=[CategoryResponse.from_domain(c) for c in categories])


@router.get("/{category_id}", response_model=CategoryResponse, responses=AUTH_RESPONSES)
async def get_category(
    user_id: str,
    category_id: str,
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
) -> CategoryResponse:
    return CategoryResponse.from_domain(await interactor.get_category(user_id, category_id))


@router.post(
    "",
    response_model=CategoryListResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**AUTH_RESPONSES, **CONFLICT},
    summary="Create a batch of categories",
)
async def create_categories(
    user_id: str,
    body: CategoryBatchRequest,
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
) -> CategoryListResponse:
    drafts = [draft.to_domain(user_id) for draft in body.categories]
    categories = await interactor.create_categories(user_id, drafts)
    return CategoryListResponse(categories=[CategoryResponse.from_domain(c) for c in categories])


@router.put(
    "/{category_id}", response_model=CategoryResponse, responses={**AUTH_RESPONSES, **CONFLICT}
)
async def update_category(
    user_id: str,
    category_id: str,
    body: CategoryUpdateRequest,
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
) -> CategoryResponse:
    category = await interactor.update_category(user_id, category_id, body.changes())
    return CategoryResponse.from_domain(category)


@router.delete(
    "/{category_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**AUTH_RESPONSES, **CONFLICT},
)
async def delete_category(
    user_id: str,
    category_id: str,
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
) -> Response:
    await interactor.delete_category(user_id, category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
