from __future__ import annotations

from typing import Dict, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse

from ...core.errors import AppraisalError, AppraisalOutcome, ErrorKind
from ...schemas.request import ImageUpload
from ...schemas.response import AnalyzeFailure, AnalyzeSuccess
from ...services.appraiser import ImageAppraiser
from ..deps import get_appraiser

router = APIRouter(tags=["analyze"])

_STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.CONFIGURATION: 500,
    ErrorKind.UPSTREAM: 500,
    ErrorKind.MALFORMED_OUTPUT: 500,
}


def failure_response(error: AppraisalError) -> JSONResponse:
    body = AnalyzeFailure(error=error.public_message)
    return JSONResponse(
        status_code=_STATUS_BY_KIND.get(error.kind, 500),
        content=body.model_dump(),
    )


def outcome_response(outcome: AppraisalOutcome) -> JSONResponse:
    if outcome.error is not None:
        return failure_response(outcome.error)
    body = AnalyzeSuccess(data=outcome.data or {})
    return JSONResponse(status_code=200, content=body.model_dump())


async def _read_bounded(upload: UploadFile, limit: int) -> bytes:
    # One byte past the limit is enough to reject; never buffer more.
    return await upload.read(limit + 1)


@router.post(
    "/analyze",
    response_model=AnalyzeSuccess,
    responses={400: {"model": AnalyzeFailure}, 500: {"model": AnalyzeFailure}},
    summary="Identify the item in an image and estimate its price.",
)
async def analyze(
    image: Optional[UploadFile] = File(default=None),
    question: Optional[str] = Form(default=None),
    appraiser: ImageAppraiser = Depends(get_appraiser),
) -> JSONResponse:
    """
    Main analyze endpoint.

    Flow:
      1. Read the multipart upload (bounded by the configured size limit).
      2. Run the appraisal pipeline.
      3. Map the outcome to `{success, data}` or `{success, error}`.
    """
    data: Optional[bytes] = None
    content_type: Optional[str] = None
    filename: Optional[str] = None
    if image is not None:
        try:
            data = await _read_bounded(image, appraiser.upload.max_upload_bytes)
        finally:
            await image.close()
        content_type = image.content_type
        filename = image.filename

    outcome = await appraiser.appraise(
        ImageUpload(
            image=data,
            content_type=content_type,
            filename=filename,
            question=question,
        )
    )
    return outcome_response(outcome)
