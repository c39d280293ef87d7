"""Background cleaning stage.

Cleaning is disabled: the stage returns its input unchanged.  It is still
declared with a fallback (the untouched input) so a re-enabled cleaner fails
open unless fallbacks are disabled.
"""

from __future__ import annotations

import logging

from ..errors import CleaningError, PipelineState
from ..models import GeneratedImage
from .base import Stage

logger = logging.getLogger(__name__)


class BackgroundCleaner:
    async def clean(self, image: GeneratedImage) -> GeneratedImage:
        logger.info("Background cleaning disabled, returning original image")
        return image

    def stage(self, image: GeneratedImage) -> Stage[GeneratedImage]:
        async def keep_original() -> GeneratedImage:
            return image

        return Stage(
            state=PipelineState.CLEANING,
            primary=lambda: self.clean(image),
            fallback=keep_original,
            error_type=CleaningError,
        )
