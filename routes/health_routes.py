"""
Health check endpoint.

GET /health - checks MongoDB connectivity.
Rules:
- MongoDB failure → "unhealthy" (503); the API cannot serve anything without it.
- Image storage not configured → "degraded" (200); only issue reporting is affected.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from schemas.dto.responses.common import HealthResponse

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
)
async def health_check(request: Request) -> JSONResponse:
    checks: dict[str, str] = {}
    overall = "healthy"

    try:
        db = request.app.state.db
        await db.client.admin.command("ping")
        checks["mongodb"] = "ok"
    except Exception:
        checks["mongodb"] = "error"
        overall = "unhealthy"

    settings = request.app.state.settings
    if settings.storage.is_configured:
        checks["storage"] = "ok"
    else:
        checks["storage"] = "not_configured"
        if overall == "healthy":
            overall = "degraded"

    status_code = 503 if overall == "unhealthy" else 200
    return JSONResponse(
        status_code=status_code,
        content={"status": overall, "checks": checks},
    )
