from __future__ import annotations

from fastapi import APIRouter, Depends

from ...core.config import Settings
from ...schemas.response import HealthResponse
from ..deps import get_app_settings

router = APIRouter(
    prefix="/health",
    tags=["health"],
)


@router.get(
    "",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(cfg: Settings = Depends(get_app_settings)) -> HealthResponse:
    """
    Lightweight liveness probe endpoint.
    Can be used by Docker healthcheck, or monitoring.
    """
    return HealthResponse(status="ok", service=cfg.app.name)
