"""
Pocketbook Backend — Custom Exception Hierarchy
================================================

What:  Application-specific exceptions for every outcome the core can report.
How:   Each exception carries a message and an optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with the matching status code.
Who:   Raised by storage adapters, the session authenticator and the
       interactor; caught by the handlers in main.py.

Exception Hierarchy:
    PocketbookError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── UnauthorizedError        → 401 Unauthorized
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict (whole batch rejected)
    ├── PartialConsistencyError  → 502 Bad Gateway (secondary store lagging)
    └── StoreUnavailableError    → 503 Service Unavailable (retry later)

    "Absent" (NotFoundError), "forbidden" (UnauthorizedError) and "broken"
    (StoreUnavailableError) are separate classes and are never converted
    into one another on the way up.

Stages:
    Errors forwarded by the interactor record which sub-operation produced
    them in `stage` (one of the STAGE_* constants below). The value is also
    copied into `context["stage"]` so it reaches the logs.
"""

from typing import Any, Dict, Optional

STAGE_SESSION_CHECK = "session_check"
STAGE_PRIMARY_READ = "primary_read"
STAGE_PRIMARY_WRITE = "primary_write"
STAGE_SECONDARY_READ = "secondary_read"
STAGE_SECONDARY_WRITE = "secondary_write"


class PocketbookError(Exception):
    """
    Base exception for all Pocketbook application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned for 5xx errors)
        stage:    Sub-operation that produced the error, once known
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        self.stage: Optional[str] = self.context.get("stage")
        super().__init__(self.message)

    def at_stage(self, stage: str) -> "PocketbookError":
        """Record the sub-operation that produced this error, keeping the first one set."""
        if self.stage is None:
            self.stage = stage
            self.context["stage"] = stage
        return self


class ValidationError(PocketbookError):
    """
    Raised when client input fails validation at the HTTP boundary.

    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class UnauthorizedError(PocketbookError):
    """
    Raised when a credential does not resolve to a live session, or when a
    secret comparison fails at login.

    HTTP:    401 Unauthorized

    The message is always the same generic text. Whether the account, the
    secret or the token was wrong only goes into `context` for the logs.
    """

    GENERIC_MESSAGE = "Invalid or expired credentials"

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message=self.GENERIC_MESSAGE, context=context)


class NotFoundError(PocketbookError):
    """
    Raised when a lookup by id or composite key returned no row.

    HTTP:    404 Not Found

    Storage adapters return None for a missing row. The interactor converts
    that None into this exception so the distinction from an unreachable
    store survives all the way to the HTTP response.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(PocketbookError):
    """
    Raised when a write violates a uniqueness or foreign-key constraint.

    HTTP:    409 Conflict

    For batch writes this is reported once for the whole batch; no
    per-item errors are produced and no item of the batch was persisted.
    """

    def __init__(
        self,
        message: str = "The request conflicts with existing data",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DuplicateKeyError(ConflictError):
    """
    A primary-key or unique-key collision on insert.

    Separate from ConflictError so the session authenticator can retry a
    colliding random session id without retrying genuine constraint
    violations.
    """


class StoreUnavailableError(PocketbookError):
    """
    Raised when an adapter could not reach its backing store at all.

    HTTP:    503 Service Unavailable

    This is an infrastructure fault, not a statement about the data:
    callers may retry later.
    """

    def __init__(
        self,
        store: str = "database",
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["store"] = store
        super().__init__(
            message=message or f"The {store} is temporarily unavailable. Please try again later.",
            context=ctx,
        )
        self.store = store


class PartialConsistencyError(PocketbookError):
    """
    Raised when a dual-write succeeded in the relational store but failed
    in the blob store.

    HTTP:    502 Bad Gateway

    `cause` holds the blob store error. The relational record is intact.
    After a failed create or update, an update of the same image id pushes
    the stored payload again to the path derived from (account_id, image_id),
    overwriting whatever is there. Repeating a create does not: it records a
    second image under a new id and leaves the first one without a blob.
    After a failed delete the row is gone and the blob is left in place.
    """

    def __init__(
        self,
        operation: str,
        account_id: str,
        image_id: str,
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.update({
            "operation": operation,
            "account_id": account_id,
            "image_id": image_id,
            "cause": type(cause).__name__ if cause else None,
        })
        if operation == "delete":
            message = (
                f"Image '{image_id}' was deleted but its payload could not be removed "
                "from the blob store."
            )
        else:
            message = (
                f"Image {operation} was recorded but the blob store could not be updated. "
                f"Update image '{image_id}' (PUT) to reconcile; do not repeat the create."
            )
        super().__init__(
            message=message,
            context=ctx,
        )
        self.operation = operation
        self.cause = cause
