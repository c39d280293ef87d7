"""Image generation stage.

The primary path invokes the Titan image model on Bedrock.  The fallback
path synthesizes a deterministic SVG icon locally (see
:mod:`uniicon.core.stages.fallback_icon`) and optionally rasterizes it.

Error policy
------------
``generate()`` never substitutes a fallback for a failed remote call; it
raises a typed :class:`GenerationError` and leaves the decision to the
orchestrator.  Throttling and model-not-ready errors are not substitutable
at all.  The only built-in substitution is credential gating: without
credentials no call is attempted and the fallback image is returned.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import random
from typing import Any

from ..clients import ServiceClients
from ..config import UniiconConfig
from ..errors import (
    GenerationError,
    NoImageGeneratedError,
    PipelineState,
    ServiceErrorKind,
    generation_error_for,
)
from ..models import LOCAL_FALLBACK, SERVICE, GeneratedImage, truncate_prompt
from .base import Stage, call_remote
from .fallback_icon import ICON_SIZE, build_fallback_svg, rasterize_svg

logger = logging.getLogger(__name__)

CFG_SCALE = 8.0
MAX_SEED = 1_000_000
NEGATIVE_TEXT = "blurry, low quality, distorted"


def build_prompt_text(prompt: str) -> str:
    """Embed the (truncated) prompt in the icon style instruction."""
    return (
        f"Create a 3D isometric icon of: {truncate_prompt(prompt)}. "
        "Clean lines, soft shadows, white background."
    )


def build_request_payload(prompt: str, seed: int | None = None) -> dict[str, Any]:
    """Build the Titan TEXT_IMAGE request body.

    Args:
        prompt: Extracted prompt text.
        seed: Explicit seed; a random one is drawn when None.

    Returns:
        JSON-serialisable request body.
    """
    return {
        "taskType": "TEXT_IMAGE",
        "textToImageParams": {
            "text": build_prompt_text(prompt),
            "negativeText": NEGATIVE_TEXT,
        },
        "imageGenerationConfig": {
            "numberOfImages": 1,
            "height": ICON_SIZE,
            "width": ICON_SIZE,
            "cfgScale": CFG_SCALE,
            "seed": seed if seed is not None else random.randrange(MAX_SEED),
        },
    }


class ImageGenerator:
    """Produces a :class:`GeneratedImage` for a prompt."""

    def __init__(self, config: UniiconConfig, clients: ServiceClients) -> None:
        self.config = config
        self.client = clients.bedrock_runtime

    @property
    def is_configured(self) -> bool:
        return self.client is not None and self.config.bedrock_configured

    def _invoke_model(self, payload: dict[str, Any]) -> dict[str, Any]:
        response = self.client.invoke_model(
            modelId=self.config.generate_model_id,
            contentType="application/json",
            accept="application/json",
            body=json.dumps(payload),
        )
        return json.loads(response["body"].read())

    async def generate(self, prompt: str) -> GeneratedImage:
        """Generate an icon with the remote model.

        Without credentials the fallback icon is returned and no network call
        is made.

        Raises:
            ThrottledError: The service throttled the request.
            ModelNotReadyError: The model is not ready yet.
            NoImageGeneratedError: The response contained no image.
            GenerationError: Any other failure, or missing credentials while
                fallbacks are disabled.
        """
        if not self.is_configured:
            if self.config.disable_fallbacks:
                raise GenerationError(
                    "No AWS credentials configured for image generation",
                    kind=ServiceErrorKind.NOT_CONFIGURED,
                )
            logger.warning("No AWS credentials found, using fallback image generation")
            return await self.generate_fallback(prompt)

        payload = build_request_payload(prompt)
        try:
            body = await call_remote(
                self._invoke_model, payload, timeout=self.config.stage_timeout_seconds
            )
        except Exception as e:
            logger.error(f"Error generating image with {self.config.generate_model_id}: {e}")
            raise generation_error_for(e) from e

        images = body.get("images") or []
        if not images:
            raise NoImageGeneratedError()
        try:
            data = base64.b64decode(images[0], validate=True)
        except (binascii.Error, TypeError, ValueError) as e:
            raise GenerationError(f"Invalid image data in response: {e}") from e

        logger.info("Image generated by remote model")
        return GeneratedImage(data=data, mime_format="png", source=SERVICE)

    async def generate_fallback(self, prompt: str) -> GeneratedImage:
        """Synthesize the deterministic local icon.

        Rasterizes to PNG when enabled; a failed rasterization degrades to
        the SVG form.
        """
        logger.warning(f"Using fallback image generation for: {prompt[:50]}")
        svg = build_fallback_svg(prompt)
        if self.config.fallback_rasterize:
            try:
                png = rasterize_svg(svg)
                return GeneratedImage(data=png, mime_format="png", source=LOCAL_FALLBACK)
            except Exception as e:
                logger.warning(f"Fallback rasterization failed, returning SVG: {e}")
        return GeneratedImage(data=svg.encode("utf-8"), mime_format="svg", source=LOCAL_FALLBACK)

    def stage(self, prompt: str) -> Stage[GeneratedImage]:
        """Declare the generation stage for one request."""
        return Stage(
            state=PipelineState.GENERATING,
            primary=lambda: self.generate(prompt),
            fallback=lambda: self.generate_fallback(prompt),
            error_type=GenerationError,
        )
