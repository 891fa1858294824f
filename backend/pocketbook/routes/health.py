"""
Pocketbook Backend — Health Check Route
========================================

What:  GET /health for container and load balancer health checks.
How:   Pings the relational store and, when payloads are offloaded, the
       blob store. Either being unreachable makes the service unhealthy
       (HTTP 503): image reads depend on both.
"""

import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from pocketbook import __version__
from pocketbook.routes.deps import get_interactor
from pocketbook.schemas.common import HealthResponse
from pocketbook.services.interactor import Interactor

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "A backing store is unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(interactor: Interactor = Depends(get_interactor)):
    status = await interactor.check_health()
    healthy = "unavailable" not in status.values()
    body = HealthResponse(
        status="healthy" if healthy else "unhealthy",
        version=__version__,
        database=status["database"],
        blob_store=status["blob_store"],
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if healthy:
        return body
    return JSONResponse(status_code=503, content=body.model_dump())
