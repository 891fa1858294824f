"""
Pocketbook Backend — Domain Records
====================================

What:  Pydantic models for the six entities the core works with.
How:   Plain value objects. Identifiers are None until the interactor
       assigns them; timestamps are None until the store fills them in.
Who:   Produced and consumed by storage adapters, the session
       authenticator and the interactor. The HTTP schemas in
       `pocketbook.schemas` convert to and from these.

Ownership:
    Every record except Account carries `account_id`. It is set once when
    the record is created and never reassigned; updates look records up by
    (account_id, id) so a record can never move to another account.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DomainRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True, validate_assignment=True)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Account(DomainRecord):
    """
    A registered user.

    `credential` is the irreversible value derived from the account secret
    by the CredentialHasher; the secret itself is never stored.
    """
    id: Optional[str] = None
    name: str
    email: str
    credential: str = Field(default="", repr=False)
    description: str = ""


class Session(DomainRecord):
    """
    A login of one account.

    `original` is the random secret generated at issue time and `token`
    the bearer token signed with it. Both stay out of repr() so they
    never end up in log lines.
    """
    id: Optional[str] = None
    account_id: str
    original: str = Field(default="", repr=False)
    token: str = Field(default="", repr=False)
    description: str = ""


class Wallet(DomainRecord):
    id: Optional[str] = None
    account_id: str
    name: str
    description: str = ""
    secret: Optional[str] = Field(default=None, repr=False)


class Image(DomainRecord):
    """
    Image metadata plus its raw payload.

    The payload is always written to the relational row. Whether reads come
    from the row or from the blob store is decided by the configured
    PayloadStrategy, not by this record.
    """
    id: Optional[str] = None
    account_id: str
    name: str
    description: str = ""
    url: Optional[str] = None
    file_name: str = ""
    format: str = ""
    payload: bytes = Field(default=b"", repr=False)


class Category(DomainRecord):
    id: Optional[str] = None
    account_id: str
    image_id: Optional[str] = None
    name: str
    description: str = ""


class Transaction(DomainRecord):
    """
    A signed monetary movement on one wallet.

    `amount` is a Decimal of arbitrary precision; negative values are
    expenses. `date` is when the movement happened, unrelated to the
    record timestamps.
    """
    id: Optional[str] = None
    account_id: str
    wallet_id: str
    category_id: str
    amount: Decimal
    description: str = ""
    date: datetime
