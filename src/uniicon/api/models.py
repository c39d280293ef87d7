"""Pydantic request and response models for the Uniicon API.

The JSON contract uses camelCase keys; the models expose snake_case
attributes and camelCase aliases.

Models
------
GenerateRequest
    Payload for ``POST /api/generate``.
PipelineResultModel / GenerateResponse
    Successful generation response.
ErrorResponse
    Structured pipeline failure.
NftMetadataRequest
    Payload for ``POST /api/nft/metadata``.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from uniicon.core.models import PipelineResult


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GenerateRequest(BaseModel):
    """Request body for ``POST /api/generate``.

    Attributes:
        input: Free-text description of the icon.  Must be non-empty after
            trimming (checked by the route handler).
    """

    input: str = Field(..., description="Free-text description of the icon to generate.")


class ArchivedAssetModel(_CamelModel):
    url: str
    key: str
    bucket: str


class PipelineResultModel(_CamelModel):
    """Wire form of :class:`~uniicon.core.models.PipelineResult`."""

    display_url: str = Field(..., description="data: URL for direct display.")
    base64: str
    format: Literal["png", "svg"]
    generation_method: Literal["service", "local-fallback"]
    archived_asset: ArchivedAssetModel | None = None
    message: str = ""

    @classmethod
    def from_result(cls, result: PipelineResult) -> PipelineResultModel:
        return cls.model_validate(result.to_dict())


class GenerateResponse(BaseModel):
    result: PipelineResultModel


class ErrorResponse(BaseModel):
    """Body of a failed generation (HTTP 500)."""

    error: str
    hint: str
    details: str
    stage: str | None = None


class NftMetadataRequest(_CamelModel):
    """Request body for ``POST /api/nft/metadata``.

    Attributes:
        image_data_url: Icon as a base64 ``data:`` URL (``imageDataUrl``).
        name: NFT name; a default is used when omitted.
        description: NFT description; a default is used when omitted.
        attributes: Extra ``{"trait_type", "value"}`` entries.
    """

    image_data_url: str
    name: str | None = None
    description: str | None = None
    attributes: list[dict[str, Any]] = Field(default_factory=list)
