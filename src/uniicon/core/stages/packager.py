"""Result packaging: turn image bytes into a displayable payload."""

from __future__ import annotations

import base64
import io
import logging
from typing import Optional

from PIL import Image, UnidentifiedImageError

from ..errors import PackagingError
from ..models import SERVICE, ArchivedAsset, GeneratedImage, PipelineResult, Source

logger = logging.getLogger(__name__)

MESSAGES: dict[str, str] = {
    "service": "Icon generated successfully using AWS Bedrock.",
    "local-fallback": "Icon generated successfully using fallback system.",
}


def _verify(image: GeneratedImage) -> None:
    if image.mime_format == "svg":
        try:
            markup = image.data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise PackagingError(f"SVG data is not valid UTF-8: {e}") from e
        if "<svg" not in markup:
            raise PackagingError("SVG data does not contain an <svg> element")
        return

    try:
        with Image.open(io.BytesIO(image.data)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise PackagingError(f"Raster data is not a readable image: {e}") from e


def package_result(
    image: GeneratedImage,
    archived: Optional[ArchivedAsset],
    method: Source,
) -> PipelineResult:
    """Build the client-facing :class:`PipelineResult`.

    Args:
        image: Final image.
        archived: Archived location, if archival succeeded.
        method: Which generation path produced the image.

    Returns:
        PipelineResult with a ``data:`` URL for direct display.

    Raises:
        PackagingError: The image bytes are corrupted.
    """
    _verify(image)
    encoded = base64.b64encode(image.data).decode("ascii")
    display_url = f"data:{image.content_type};base64,{encoded}"
    logger.info(f"Packaged {image.mime_format} image ({len(image.data)} bytes, {method})")
    return PipelineResult(
        display_url=display_url,
        base64=encoded,
        format=image.mime_format,
        generation_method=method,
        archived_asset=archived,
        message=MESSAGES.get(method, MESSAGES[SERVICE]),
    )
