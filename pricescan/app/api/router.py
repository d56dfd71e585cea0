from __future__ import annotations

from fastapi import APIRouter

from .endpoints.analyze import router as analyze_router
from .endpoints.health import router as health_router

# Mounted under /api
router = APIRouter()

router.include_router(health_router)
router.include_router(analyze_router)
