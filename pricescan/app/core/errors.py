from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    UPSTREAM = "upstream"
    MALFORMED_OUTPUT = "malformed_output"


class AppraisalError(Exception):
    """
    Base class for expected failures of the appraisal pipeline.

    `public_message` is what the caller sees; the exception text (and any
    chained cause) is only ever logged.
    """

    kind: ErrorKind = ErrorKind.UPSTREAM
    public_message: str = "Analysis failed, please try again later."

    def __init__(self, detail: str, public_message: Optional[str] = None) -> None:
        super().__init__(detail)
        if public_message is not None:
            self.public_message = public_message


class UploadValidationError(AppraisalError):
    """Missing, empty, oversized or non-image upload; bad question field."""

    kind = ErrorKind.VALIDATION
    public_message = "Please provide an image."


class ConfigurationError(AppraisalError):
    """The service cannot call the vision model as configured."""

    kind = ErrorKind.CONFIGURATION
    public_message = "The analysis service is not configured."


class UpstreamError(AppraisalError):
    """The vision model call failed (network, auth, rate limit, timeout)."""

    kind = ErrorKind.UPSTREAM


class MalformedModelOutput(UpstreamError):
    """The vision model answered, but not with a usable analysis object."""

    kind = ErrorKind.MALFORMED_OUTPUT


@dataclass(frozen=True)
class AppraisalOutcome:
    """
    Result of one pipeline run: exactly one of `data` / `error` is set.
    """

    data: Optional[Dict[str, Any]] = None
    error: Optional[AppraisalError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: Dict[str, Any]) -> "AppraisalOutcome":
        return cls(data=data)

    @classmethod
    def failure(cls, error: AppraisalError) -> "AppraisalOutcome":
        return cls(error=error)
