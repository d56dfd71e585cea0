from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from ..observability.llm_obs import traceable_node
from ..observability.logging import get_logger
from .config import VisionSettings
from .errors import ConfigurationError, UpstreamError

logger = get_logger("core.llm")


@dataclass(frozen=True)
class VisionCompletion:
    """Raw text answer from one vision chat completion, plus usage."""

    content: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    latency_ms: int = 0


def build_vision_messages(
    prompt: str,
    image_data_url: str,
    detail: str = "high",
) -> List[Dict[str, Any]]:
    """
    A single user message with a text part and an image part.
    """
    return [
        {
            "role": "user",
            "content": [
                {"type": "text", "text": prompt},
                {
                    "type": "image_url",
                    "image_url": {"url": image_data_url, "detail": detail},
                },
            ],
        }
    ]


class OpenAIVisionClient:
    """
    Async client for OpenAI-compatible vision chat completions.

    The underlying AsyncOpenAI instance is created on first use, so the
    service starts (and answers health checks) without a credential.
    """

    def __init__(self, cfg: VisionSettings) -> None:
        self.cfg = cfg
        self._client: Optional[AsyncOpenAI] = None

    def _get_client(self) -> AsyncOpenAI:
        if not self.cfg.has_credential:
            raise ConfigurationError("OPENAI_API_KEY is not set")
        if self._client is None:
            kwargs: Dict[str, Any] = {"api_key": self.cfg.api_key}
            if self.cfg.base_url:
                kwargs["base_url"] = self.cfg.base_url
            if self.cfg.timeout_seconds is not None:
                kwargs["timeout"] = self.cfg.timeout_seconds
            self._client = AsyncOpenAI(**kwargs)
        return self._client

    @traceable_node("vision.chat_completion")
    async def complete(
        self,
        prompt: str,
        image_data_url: str,
        json_mode: bool = True,
    ) -> VisionCompletion:
        client = self._get_client()
        request: Dict[str, Any] = {
            "model": self.cfg.model,
            "messages": build_vision_messages(
                prompt, image_data_url, detail=self.cfg.image_detail
            ),
            "max_tokens": self.cfg.max_tokens,
            "temperature": self.cfg.temperature,
        }
        if json_mode:
            request["response_format"] = {"type": "json_object"}

        t0 = time.monotonic()
        try:
            response = await client.chat.completions.create(**request)
        except Exception as exc:
            raise UpstreamError(f"OpenAI chat request failed: {exc}") from exc
        latency_ms = int((time.monotonic() - t0) * 1000)

        if not response.choices:
            raise UpstreamError("OpenAI returned no choices")
        content = response.choices[0].message.content
        if not content:
            raise UpstreamError(
                f"OpenAI returned empty content (finish_reason={response.choices[0].finish_reason})"
            )

        usage = response.usage
        return VisionCompletion(
            content=content,
            model=response.model or self.cfg.model,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            latency_ms=latency_ms,
        )


def build_vision_client(cfg: VisionSettings) -> OpenAIVisionClient:
    logger.info(
        "Initializing vision client",
        extra={
            "model": cfg.model,
            "response_policy": cfg.response_policy.value,
            "credential_configured": cfg.has_credential,
        },
    )
    return OpenAIVisionClient(cfg)
