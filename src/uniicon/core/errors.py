"""Error taxonomy for the generation pipeline.

Remote failures are classified exactly once, at the call boundary, into a
closed :class:`ServiceErrorKind`.  Everything downstream (fallback policy,
HTTP hints) switches on that enum instead of inspecting exception names or
message text.

Hierarchy
---------
PipelineError
    ExtractionError
    GenerationError
        ThrottledError
        ModelNotReadyError
        NoImageGeneratedError
    CleaningError
    ArchiveError          (never reaches the caller)
    PackagingError
PipelineFailedError       (terminal, structured failure returned to HTTP)
"""

from __future__ import annotations

import asyncio
from enum import Enum

from botocore.exceptions import ClientError, NoCredentialsError, PartialCredentialsError


class PipelineState(str, Enum):
    """States of a single pipeline run."""

    EXTRACTING = "Extracting"
    GENERATING = "Generating"
    CLEANING = "Cleaning"
    ARCHIVING = "Archiving"
    PACKAGING = "Packaging"
    DONE = "Done"
    FAILED = "Failed"


class ServiceErrorKind(str, Enum):
    """Closed set of remote-service failure kinds."""

    NOT_CONFIGURED = "not_configured"
    VALIDATION = "validation"
    ACCESS_DENIED = "access_denied"
    THROTTLED = "throttled"
    MODEL_NOT_READY = "model_not_ready"
    NO_IMAGE = "no_image"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


# Kinds that are never replaced by a local fallback.
NON_SUBSTITUTABLE_KINDS = frozenset({ServiceErrorKind.THROTTLED, ServiceErrorKind.MODEL_NOT_READY})

_CLIENT_ERROR_CODES: dict[str, ServiceErrorKind] = {
    "ValidationException": ServiceErrorKind.VALIDATION,
    "AccessDeniedException": ServiceErrorKind.ACCESS_DENIED,
    "UnauthorizedException": ServiceErrorKind.ACCESS_DENIED,
    "AccessDenied": ServiceErrorKind.ACCESS_DENIED,
    "ThrottlingException": ServiceErrorKind.THROTTLED,
    "TooManyRequestsException": ServiceErrorKind.THROTTLED,
    "ServiceQuotaExceededException": ServiceErrorKind.THROTTLED,
    "ModelNotReadyException": ServiceErrorKind.MODEL_NOT_READY,
    "ModelTimeoutException": ServiceErrorKind.TIMEOUT,
}


def classify_service_error(exc: BaseException) -> ServiceErrorKind:
    """Map an exception raised by a remote call to a :class:`ServiceErrorKind`.

    Args:
        exc: Exception raised by a boto3 client call or by the timeout wrapper.

    Returns:
        The matching kind; anything unrecognised is ``UNKNOWN``.
    """
    if isinstance(exc, PipelineError):
        return exc.kind
    if isinstance(exc, ClientError):
        code = exc.response.get("Error", {}).get("Code", "")
        return _CLIENT_ERROR_CODES.get(code, ServiceErrorKind.UNKNOWN)
    if isinstance(exc, (NoCredentialsError, PartialCredentialsError)):
        return ServiceErrorKind.NOT_CONFIGURED
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return ServiceErrorKind.TIMEOUT
    # Connection problems and other botocore failures are unrecognised.
    return ServiceErrorKind.UNKNOWN


class PipelineError(Exception):
    """Base class for stage-tagged pipeline errors."""

    stage: PipelineState = PipelineState.FAILED

    def __init__(self, message: str, *, kind: ServiceErrorKind = ServiceErrorKind.UNKNOWN):
        super().__init__(message)
        self.message = message
        self.kind = kind

    @property
    def substitutable(self) -> bool:
        """Whether the orchestrator may replace this failure with a fallback."""
        return self.kind not in NON_SUBSTITUTABLE_KINDS


class ExtractionError(PipelineError):
    """Prompt extraction failed."""

    stage = PipelineState.EXTRACTING


class GenerationError(PipelineError):
    """Image generation failed."""

    stage = PipelineState.GENERATING


class ThrottledError(GenerationError):
    """The image service throttled the request; retry later."""

    def __init__(self, message: str = "Request throttled. Please try again later."):
        super().__init__(message, kind=ServiceErrorKind.THROTTLED)


class ModelNotReadyError(GenerationError):
    """The image model is warming up; transient."""

    def __init__(self, message: str = "Model not ready. Please try again in a few moments."):
        super().__init__(message, kind=ServiceErrorKind.MODEL_NOT_READY)


class NoImageGeneratedError(GenerationError):
    """The image service answered without any image."""

    def __init__(self, message: str = "No images generated in response"):
        super().__init__(message, kind=ServiceErrorKind.NO_IMAGE)


class CleaningError(PipelineError):
    """Background cleaning failed (reserved; cleaning is currently a passthrough)."""

    stage = PipelineState.CLEANING


class ArchiveError(PipelineError):
    """Archival failed.  Always swallowed by the archiver."""

    stage = PipelineState.ARCHIVING


class PackagingError(PipelineError):
    """The final image bytes could not be packaged."""

    stage = PipelineState.PACKAGING


def generation_error_for(exc: BaseException) -> GenerationError:
    """Build the :class:`GenerationError` subclass matching *exc*'s kind."""
    kind = classify_service_error(exc)
    if kind is ServiceErrorKind.THROTTLED:
        return ThrottledError()
    if kind is ServiceErrorKind.MODEL_NOT_READY:
        return ModelNotReadyError()
    return GenerationError(f"Image generation failed: {exc}", kind=kind)


ACCESS_DENIED_MESSAGE = (
    "AWS Access Denied: Your IAM user doesn't have permission to use Bedrock services."
)
ACCESS_DENIED_HINT = (
    "To fix this, update your IAM policy to allow bedrock:InvokeModel and "
    "bedrock:InvokeAgent permissions, or remove any explicit DENY policies."
)
RETRY_LATER_HINT = "The image service is temporarily unavailable. Wait a moment and retry."
DEFAULT_HINT = "Set DISABLE_FALLBACKS=0 to enable graceful fallbacks."


class PipelineFailedError(Exception):
    """Terminal pipeline failure with a user-facing message and remediation hint.

    Attributes:
        stage: The state the pipeline was in when it failed.
        message: Concise human-readable error.
        hint: Remediation guidance.
        details: The underlying error text.
        states: Every state the run entered, ending with ``Failed``.
    """

    def __init__(
        self,
        stage: PipelineState,
        message: str,
        hint: str,
        details: str,
        states: list[PipelineState] | None = None,
    ):
        super().__init__(message)
        self.stage = stage
        self.message = message
        self.hint = hint
        self.details = details
        self.states = list(states or [])

    @classmethod
    def from_error(
        cls,
        stage: PipelineState,
        error: PipelineError,
        states: list[PipelineState] | None = None,
    ) -> PipelineFailedError:
        """Build the structured failure for *error* raised while in *stage*."""
        if error.kind is ServiceErrorKind.ACCESS_DENIED:
            message, hint = ACCESS_DENIED_MESSAGE, ACCESS_DENIED_HINT
        elif not error.substitutable:
            message, hint = error.message, RETRY_LATER_HINT
        else:
            message, hint = error.message, DEFAULT_HINT
        return cls(stage, message, hint, error.message, states)

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "hint": self.hint,
            "details": self.details,
            "stage": self.stage.value,
        }
