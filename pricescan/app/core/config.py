from __future__ import annotations

from enum import Enum
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

DEFAULT_ALLOWED_ORIGINS = "http://localhost:3000,https://lynn800741.github.io"


class AppEnv(str, Enum):
    LOCAL = "local"
    DEV = "dev"
    PROD = "prod"


class ResponsePolicy(str, Enum):
    """
    How the vision model's reply is turned into an analysis result.

    SCHEMA asks for a JSON object and validates it; FREETEXT is the legacy
    label-scanning parser kept for old clients.
    """

    SCHEMA = "schema"
    FREETEXT = "freetext"


class AppSettings(BaseModel):
    name: str = Field(default="Price Scanner API")
    env: AppEnv = Field(default=AppEnv.DEV)
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3001)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )
    allowed_origins: List[str] = Field(
        default_factory=lambda: _split_csv(DEFAULT_ALLOWED_ORIGINS)
    )

    @field_validator("port")
    @classmethod
    def validate_port(cls, value: int) -> int:
        if not (1 <= value <= 65535):
            raise ValueError("PORT must be between 1 and 65535")
        return value


class VisionSettings(BaseModel):
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    model: str = Field(default="gpt-4o")
    max_tokens: int = Field(default=2000, ge=1)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    image_detail: Literal["low", "high", "auto"] = Field(default="high")
    timeout_seconds: Optional[float] = None
    response_policy: ResponsePolicy = Field(default=ResponsePolicy.SCHEMA)
    response_language: str = Field(default="Traditional Chinese (zh-TW)")
    prompt_version: str = Field(default="v1")

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key and self.api_key.strip())


class UploadSettings(BaseModel):
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, ge=1)
    max_question_chars: int = Field(default=500, ge=1)


class OTELSettings(BaseModel):
    enabled: bool = False
    service_name: str = Field(default="price-scanner-api")
    exporter_otlp_endpoint: str = Field(default="http://alloy:4317")
    exporter_otlp_protocol: Literal["grpc", "http/protobuf", "http/json"] = Field(
        default="grpc"
    )


class LLMObservabilitySettings(BaseModel):
    tracing_v2: bool = False
    langsmith_api_key: Optional[str] = None
    langsmith_project: Optional[str] = "price-scanner"


class Settings(BaseSettings):
    """
    Top-level application settings loaded from environment.

    Priority:
      1. PRICESCAN_* variables (namespaced)
      2. Legacy OPENAI_API_KEY / PORT / ALLOWED_ORIGINS / OTEL_* where appropriate
      3. Defaults on the grouped models below
    """

    # App
    app_name: Optional[str] = None
    app_env: Optional[str] = None
    app_host: Optional[str] = None
    app_port: Optional[int] = None
    log_level: Optional[str] = None
    allowed_origins: Optional[str] = None

    # Vision model
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    vision_model: Optional[str] = None
    vision_max_tokens: Optional[int] = None
    vision_temperature: Optional[float] = None
    vision_image_detail: Optional[str] = None
    vision_timeout_seconds: Optional[float] = None
    response_policy: Optional[str] = None
    response_language: Optional[str] = None
    prompt_version: Optional[str] = None

    # Upload limits
    max_upload_bytes: Optional[int] = None
    max_question_chars: Optional[int] = None

    # OTEL
    otel_enabled: Optional[bool] = None
    otel_service_name: Optional[str] = None
    otel_exporter_otlp_endpoint: Optional[str] = None
    otel_exporter_otlp_protocol: Optional[str] = None

    # LLM Observability
    langsmith_tracing: Optional[str] = None
    langsmith_api_key: Optional[str] = None
    langsmith_project: Optional[str] = None

    class Config:
        env_prefix = "PRICESCAN_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def app(self) -> AppSettings:
        name = self.app_name or self._get_legacy("APP_NAME") or AppSettings().name
        env_str = self.app_env or self._get_legacy("APP_ENV") or AppSettings().env
        host = self.app_host or self._get_legacy("APP_HOST") or AppSettings().host
        port = self.app_port or int(
            self._get_legacy("PORT", str(AppSettings().port))
        )
        log_level = (
            self.log_level or self._get_legacy("LOG_LEVEL") or AppSettings().log_level
        )
        origins_raw = (
            self.allowed_origins
            or self._get_legacy("ALLOWED_ORIGINS")
            or DEFAULT_ALLOWED_ORIGINS
        )

        return AppSettings(
            name=name,
            env=AppEnv(env_str),
            host=host,
            port=port,
            log_level=str(log_level).upper(),  # validated by AppSettings
            allowed_origins=_split_csv(origins_raw),
        )

    @property
    def vision(self) -> VisionSettings:
        defaults = VisionSettings()
        return VisionSettings(
            api_key=self.openai_api_key or self._get_legacy("OPENAI_API_KEY"),
            base_url=self.openai_base_url or self._get_legacy("OPENAI_BASE_URL"),
            model=self.vision_model or defaults.model,
            max_tokens=self.vision_max_tokens or defaults.max_tokens,
            temperature=(
                self.vision_temperature
                if self.vision_temperature is not None
                else defaults.temperature
            ),
            image_detail=self.vision_image_detail or defaults.image_detail,
            timeout_seconds=self.vision_timeout_seconds,
            response_policy=ResponsePolicy(
                self.response_policy or defaults.response_policy
            ),
            response_language=self.response_language or defaults.response_language,
            prompt_version=self.prompt_version or defaults.prompt_version,
        )

    @property
    def upload(self) -> UploadSettings:
        defaults = UploadSettings()
        return UploadSettings(
            max_upload_bytes=self.max_upload_bytes or defaults.max_upload_bytes,
            max_question_chars=self.max_question_chars or defaults.max_question_chars,
        )

    @property
    def otel(self) -> OTELSettings:
        service_name = (
            self.otel_service_name
            or self._get_legacy("OTEL_SERVICE_NAME")
            or OTELSettings().service_name
        )
        endpoint = (
            self.otel_exporter_otlp_endpoint
            or self._get_legacy("OTEL_EXPORTER_OTLP_ENDPOINT")
            or OTELSettings().exporter_otlp_endpoint
        )
        protocol = (
            self.otel_exporter_otlp_protocol
            or self._get_legacy("OTEL_EXPORTER_OTLP_PROTOCOL")
            or OTELSettings().exporter_otlp_protocol
        )

        return OTELSettings(
            enabled=bool(self.otel_enabled),
            service_name=service_name,
            exporter_otlp_endpoint=endpoint,
            exporter_otlp_protocol=protocol,
        )

    @property
    def llm_obs(self) -> LLMObservabilitySettings:
        tracing_raw = self.langsmith_tracing or self._get_legacy(
            "LANGCHAIN_TRACING_V2", "false"
        )
        tracing_v2 = str(tracing_raw).strip().lower() in ("1", "true", "yes", "on")

        return LLMObservabilitySettings(
            tracing_v2=tracing_v2,
            langsmith_api_key=self.langsmith_api_key
            or self._get_legacy("LANGCHAIN_API_KEY"),
            langsmith_project=self.langsmith_project
            or self._get_legacy("LANGCHAIN_PROJECT")
            or LLMObservabilitySettings().langsmith_project,
        )

    # Helpers

    @staticmethod
    def _get_legacy(name: str, default: Optional[str] = None) -> Optional[str]:
        """Read legacy env vars (OPENAI_API_KEY, PORT, OTEL_*) directly if needed."""
        import os

        return os.getenv(name, default)


def _split_csv(raw: str) -> List[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings instance to avoid re-parsing env on every import.

    Usage:
        from pricescan.app.core.config import get_settings
        settings = get_settings()
        settings.app.port, settings.vision.model, ...
    """
    return Settings()


settings = get_settings()
