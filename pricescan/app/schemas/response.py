from __future__ import annotations

from typing import Any, Dict, Literal

from pydantic import BaseModel, Field


class AnalyzeSuccess(BaseModel):
    success: Literal[True] = True
    data: Dict[str, Any] = Field(
        ...,
        description="AnalysisResult with camelCase keys.",
    )


class AnalyzeFailure(BaseModel):
    success: Literal[False] = False
    error: str = Field(..., description="User-facing failure message.")


class HealthResponse(BaseModel):
    status: str
    service: str
