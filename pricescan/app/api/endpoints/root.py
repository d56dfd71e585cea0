from __future__ import annotations

from fastapi import APIRouter, Depends

from ...core.config import Settings
from ..deps import get_app_settings

router = APIRouter()


@router.get(
    "/",
    tags=["root"],
    summary="API root – basic sanity check",
)
async def root(cfg: Settings = Depends(get_app_settings)) -> dict:
    """
    Basic root endpoint.
    Useful for smoke tests and quick verification that the service is up.
    """
    return {
        "status": "ok",
        "service": cfg.app.name,
        "message": f"{cfg.app.name} is running",
        "endpoints": {
            "health": "/api/health",
            "analyze": "/api/analyze (POST)",
        },
    }
