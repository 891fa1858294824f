"""
Pocketbook Backend — Account and Session Schemas
=================================================

Wire names follow the public API: an account is a "user" identified by
`user_id`, and its secret travels as `password`. Secrets, credentials and
session originals never appear in a response.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, Optional

from pydantic import BaseModel, Field

from pocketbook.domain import Account, Session

# Shape check only; ownership of the address is not verified.
Email = Annotated[str, Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")]


class AccountCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: Email
    password: str = Field(min_length=1, description="Account secret; only a derived credential is stored")
    description: str = Field(default="", max_length=4096)


class AccountUpdateRequest(BaseModel):
    """Every field optional; omitted fields keep their current value."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[Email] = None
    password: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, max_length=4096)

    def changes(self) -> Dict[str, Any]:
        values = self.model_dump(exclude_unset=True, exclude_none=True)
        if "password" in values:
            values["secret"] = values.pop("password")
        return values


class AccountResponse(BaseModel):
    user_id: str
    name: str
    email: str
    description: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, account: Account) -> "AccountResponse":
        return cls(
            user_id=account.id,
            name=account.name,
            email=account.email,
            description=account.description,
            created_at=account.created_at,
            updated_at=account.updated_at,
        )


class SessionCreateRequest(BaseModel):
    email: Email
    password: str = Field(min_length=1)
    description: str = Field(default="", max_length=255, description="e.g. the device name")


class SessionResponse(BaseModel):
    """`token` is only filled in right after login."""
    session_id: str
    user_id: str
    description: str
    token: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, session: Session, include_token: bool = False) -> "SessionResponse":
        return cls(
            session_id=session.id,
            user_id=session.account_id,
            description=session.description,
            token=session.token if include_token else None,
            created_at=session.created_at,
            updated_at=session.updated_at,
        )
