from __future__ import annotations

from fastapi import Request

from ..core.config import Settings
from ..services.appraiser import ImageAppraiser


def get_appraiser(request: Request) -> ImageAppraiser:
    """The process-wide pipeline built by `create_app`."""
    return request.app.state.appraiser


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
