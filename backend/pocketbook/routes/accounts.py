"""
Pocketbook Backend — User and Session Routes
=============================================

    POST   /api/1/users                        register (no session needed)
    GET    /api/1/users/{user_id}              profile
    PUT    /api/1/users/{user_id}              update profile / password
    DELETE /api/1/users/{user_id}              delete user and everything owned
    POST   /api/1/sessions                     login
    GET    /api/1/users/{user_id}/sessions     list sessions
    DELETE /api/1/users/{user_id}/session      logout (the calling session)
    DELETE /api/1/users/{user_id}/sessions     logout everywhere
"""

from typing import List

from fastapi import APIRouter, Depends, Response, status

from pocketbook.domain import Session
from pocketbook.routes.deps import get_interactor, require_session
from pocketbook.schemas.accounts import (
    AccountCreateRequest,
    AccountResponse,
    AccountUpdateRequest,
    SessionCreateRequest,
    SessionResponse,
)
from pocketbook.schemas.common import ErrorResponse
from pocketbook.services.interactor import Interactor

router = APIRouter(prefix="/api/1", tags=["Users"])

AUTH_RESPONSES = {
    401: {"description": "Missing, unknown or revoked session", "model": ErrorResponse},
    503: {"description": "Store unavailable", "model": ErrorResponse},
}


@router.post(
    "/users",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "Email already registered", "model": ErrorResponse}},
    summary="Register a user",
)
async def create_user(
    body: AccountCreateRequest,
    interactor: Interactor = Depends(get_interactor),
) -> AccountResponse:
    account = await interactor.register_account(
        name=body.name, email=body.email, secret=body.password, description=body.description
    )
    return AccountResponse.from_domain(account)


@router.get("/users/{user_id}", response_model=AccountResponse, responses=AUTH_RESPONSES)
async def get_user(
    user_id: str,
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
) -> AccountResponse:
    return AccountResponse.from_domain(await interactor.get_account(user_id))


@router.put("/users/{user_id}", response_model=AccountResponse, responses=AUTH_RESPONSES)
async def update_user(
    user_id: str,
    body: AccountUpdateRequest,
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
) -> AccountResponse:
    return AccountResponse.from_domain(await interactor.update_account(user_id, body.changes()))


@router.delete(
    "/users/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=AUTH_RESPONSES,
    summary="Delete a user, its sessions and everything it owns",
)
async def delete_user(
    user_id: str,
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
) -> Response:
    await interactor.delete_account(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/sessions",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={401: {"description": "Wrong email or password", "model": ErrorResponse}},
    summary="Log in",
)
async def create_session(
    body: SessionCreateRequest,
    response: Response,
    interactor: Interactor = Depends(get_interactor),
) -> SessionResponse:
    """
    Issue a session. The token is returned once, in the body and in the
    Authorization response header; send it back as "Bearer <token>".
    """
    session = await interactor.login(body.email, body.password, body.description)
    response.headers["Authorization"] = f"Bearer {session.token}"
    return SessionResponse.from_domain(session, include_token=True)


@router.get(
    "/users/{user_id}/sessions", response_model=List[SessionResponse], responses=AUTH_RESPONSES
)
async def list_sessions(
    user_id: str,
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
) -> List[SessionResponse]:
    return [SessionResponse.from_domain(s) for s in await interactor.list_sessions(user_id)]


@router.delete(
    "/users/{user_id}/session", status_code=status.HTTP_204_NO_CONTENT, responses=AUTH_RESPONSES
)
async def delete_session(
    user_id: str,
    session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
) -> Response:
    await interactor.logout(user_id, session.token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/users/{user_id}/sessions", status_code=status.HTTP_204_NO_CONTENT, responses=AUTH_RESPONSES
)
async def delete_sessions(
    user_id: str,
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
) -> Response:
    await interactor.logout_everywhere(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
