"""
Pocketbook Backend — Route Dependencies
========================================

What:  FastAPI dependencies shared by the routers.
How:   The application factory stores the Settings and the Interactor on
       `app.state`; these functions hand them to handlers. `require_session`
       guards every route with a `{user_id}` path segment: the
       Authorization header must resolve to a live session of that user.
"""

from typing import Optional

from fastapi import Depends, Header, Request

from pocketbook.config import Settings
from pocketbook.domain import Session
from pocketbook.services.interactor import Interactor


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_interactor(request: Request) -> Interactor:
    return request.app.state.interactor


async def require_session(
    user_id: str,
    authorization: Optional[str] = Header(default=None),
    interactor: Interactor = Depends(get_interactor),
) -> Session:
    """Raises UnauthorizedError (401) unless the bearer token belongs to `user_id`."""
    return await interactor.authorize(user_id, authorization)
