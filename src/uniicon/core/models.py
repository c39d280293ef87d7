"""Request-scoped data models for the generation pipeline.

Every value here is created once and never mutated; a pipeline run is a
left-to-right chain of these frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

Source = Literal["service", "local-fallback"]
ImageFormat = Literal["png", "svg"]

SERVICE: Source = "service"
LOCAL_FALLBACK: Source = "local-fallback"

# Prompt length cap applied before any downstream request.
MAX_PROMPT_LENGTH = 200
ELLIPSIS = "..."


def truncate_prompt(text: str, limit: int = MAX_PROMPT_LENGTH) -> str:
    """Cap *text* at *limit* characters, appending an ellipsis when cut.

    Args:
        text: Prompt text.
        limit: Maximum number of characters kept.

    Returns:
        The text itself when short enough, otherwise ``text[:limit] + "..."``.
    """
    if len(text) > limit:
        return text[:limit] + ELLIPSIS
    return text


@dataclass(frozen=True)
class GenerationRequest:
    """A single user-submitted generation request."""

    raw_input: str


@dataclass(frozen=True)
class ExtractedPrompt:
    """Generation-ready prompt and where it came from."""

    text: str
    source: Source


@dataclass(frozen=True)
class GeneratedImage:
    """Raw icon bytes produced by the image generator.

    Attributes:
        data: Raw image bytes (PNG binary or SVG markup).
        mime_format: ``"png"`` or ``"svg"``.
        source: ``"service"`` when the remote model produced it,
            ``"local-fallback"`` otherwise.
        encoding: Transport encoding used when the bytes are packaged.
    """

    data: bytes
    mime_format: ImageFormat
    source: Source
    encoding: Literal["base64"] = "base64"

    @property
    def content_type(self) -> str:
        return "image/svg+xml" if self.mime_format == "svg" else "image/png"


@dataclass(frozen=True)
class ArchivedAsset:
    """Location of an archived image in object storage."""

    url: str
    key: str
    bucket: str

    def to_dict(self) -> dict:
        return {"url": self.url, "key": self.key, "bucket": self.bucket}


@dataclass(frozen=True)
class PipelineResult:
    """Terminal artifact of a successful pipeline run."""

    display_url: str
    base64: str
    format: ImageFormat
    generation_method: Source
    archived_asset: Optional[ArchivedAsset]
    message: str = ""

    def to_dict(self) -> dict:
        """Serialise with the camelCase keys used on the wire."""
        return {
            "displayUrl": self.display_url,
            "base64": self.base64,
            "format": self.format,
            "generationMethod": self.generation_method,
            "archivedAsset": self.archived_asset.to_dict() if self.archived_asset else None,
            "message": self.message,
        }
