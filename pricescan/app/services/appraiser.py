from __future__ import annotations

import base64
import time
from typing import Optional, Protocol

from ..core.config import ResponsePolicy, UploadSettings, VisionSettings
from ..core.errors import (
    AppraisalError,
    AppraisalOutcome,
    ConfigurationError,
    UploadValidationError,
    UpstreamError,
)
from ..core.llm import VisionCompletion
from ..core.prompt import build_analysis_prompt
from ..observability.domain_metrics import (
    analyze_latency_seconds,
    analyze_requests_total,
    upstream_tokens_total,
)
from ..observability.logging import get_logger
from ..schemas.analysis import AnalysisResult
from ..schemas.request import ImageUpload
from .freetext import parse_freetext
from .structured import shape_structured

logger = get_logger("services.appraiser")

DEFAULT_IMAGE_MIME = "image/jpeg"


class VisionClient(Protocol):
    async def complete(
        self,
        prompt: str,
        image_data_url: str,
        json_mode: bool = True,
    ) -> VisionCompletion: ...


def to_data_url(image: bytes, content_type: Optional[str]) -> str:
    mime = content_type if content_type and content_type.startswith("image/") else DEFAULT_IMAGE_MIME
    encoded = base64.b64encode(image).decode("ascii")
    return f"data:{mime};base64,{encoded}"


class ImageAppraiser:
    """
    The analyze pipeline: validate -> encode -> call vision model -> shape.

    Built once per process by the app factory; holds no per-request state.
    """

    def __init__(
        self,
        vision: VisionSettings,
        upload: UploadSettings,
        client: VisionClient,
    ) -> None:
        self.vision = vision
        self.upload = upload
        self.client = client

    @property
    def policy(self) -> ResponsePolicy:
        return self.vision.response_policy

    def validate(self, req: ImageUpload) -> None:
        if req.image is None:
            raise UploadValidationError("No image field in request")
        if len(req.image) == 0:
            raise UploadValidationError("Uploaded image is empty")
        if len(req.image) > self.upload.max_upload_bytes:
            raise UploadValidationError(
                f"Image is {len(req.image)} bytes, limit is {self.upload.max_upload_bytes}",
                public_message="Image is too large (limit is "
                f"{self.upload.max_upload_bytes // (1024 * 1024)} MB).",
            )
        content_type = (req.content_type or "").lower()
        if content_type and not (
            content_type.startswith("image/") or content_type == "application/octet-stream"
        ):
            raise UploadValidationError(
                f"Unsupported content type {content_type}",
                public_message="The uploaded file is not an image.",
            )
        if req.question and len(req.question) > self.upload.max_question_chars:
            raise UploadValidationError(
                f"Question has {len(req.question)} characters",
                public_message="Question is too long (limit is "
                f"{self.upload.max_question_chars} characters).",
            )
        if not self.vision.has_credential:
            raise ConfigurationError("OPENAI_API_KEY is not set")

    def shape(self, completion: VisionCompletion) -> AnalysisResult:
        if self.policy is ResponsePolicy.FREETEXT:
            return parse_freetext(completion.content)
        return shape_structured(completion.content)

    async def _run(self, req: ImageUpload) -> AnalysisResult:
        self.validate(req)
        image: bytes = req.image  # type: ignore[assignment]

        prompt = build_analysis_prompt(
            self.policy,
            req.question,
            self.vision.response_language,
            version=self.vision.prompt_version,
        )
        completion = await self.client.complete(
            prompt,
            to_data_url(image, req.content_type),
            json_mode=self.policy is ResponsePolicy.SCHEMA,
        )

        upstream_tokens_total.labels(direction="input").inc(completion.input_tokens)
        upstream_tokens_total.labels(direction="output").inc(completion.output_tokens)
        logger.info(
            "Vision model call completed",
            extra={
                "model": completion.model,
                "input_tokens": completion.input_tokens,
                "output_tokens": completion.output_tokens,
                "upstream_latency_ms": completion.latency_ms,
            },
        )

        return self.shape(completion)

    async def appraise(self, req: ImageUpload) -> AppraisalOutcome:
        """
        Run the pipeline for one request. Expected failures come back as
        `AppraisalOutcome.failure`; this method does not raise for them.
        """
        start_time = time.perf_counter()
        policy_label = self.policy.value

        logger.info(
            "Analyze request received",
            extra={
                "image_bytes": len(req.image) if req.image is not None else None,
                "content_type": req.content_type,
                "policy": policy_label,
                "has_question": bool(req.question and req.question.strip()),
            },
        )

        try:
            result = await self._run(req)
            outcome = AppraisalOutcome.success(result.to_payload())
        except AppraisalError as exc:
            logger.error(
                "Analyze request failed",
                extra={"kind": exc.kind.value, "error": str(exc)},
                exc_info=exc.__cause__ is not None,
            )
            outcome = AppraisalOutcome.failure(exc)
        except Exception as exc:
            logger.exception(
                "Unhandled error in analyze pipeline",
                extra={"error": str(exc)},
            )
            outcome = AppraisalOutcome.failure(UpstreamError(f"Unexpected error: {exc}"))
        finally:
            analyze_latency_seconds.labels(policy=policy_label).observe(
                time.perf_counter() - start_time
            )

        analyze_requests_total.labels(
            policy=policy_label,
            outcome="success" if outcome.ok else outcome.error.kind.value,
        ).inc()
        return outcome
