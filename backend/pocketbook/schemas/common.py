"""Schemas shared by every router: the error body and the health report."""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Body of every error response.

    Example:
        {
            "error": "conflict",
            "message": "A record with the same key already exists",
            "details": {"operation": "create_wallets", "stage": "primary_write"},
            "request_id": "3f2a9c1e"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="healthy or unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="connected or unavailable")
    blob_store: str = Field(description="connected, unavailable or disabled")
    uptime_seconds: float = Field(description="Seconds since the process started")
