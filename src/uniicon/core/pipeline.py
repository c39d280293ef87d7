"""Generation pipeline orchestrator.

A run moves through a fixed sequence of states::

    Extracting -> Generating -> Cleaning -> Archiving -> Packaging -> Done

with ``Failed`` reachable from any of them.  Each stage is declared as a
:class:`~uniicon.core.stages.base.Stage` value and executed by
:func:`~uniicon.core.stages.base.run_stage`, so the fallback policy is
applied uniformly in one place.  Archiving is the exception: it is always
best-effort and ignores the disable-fallbacks flag.

Usage Example
-------------
    from uniicon.core.clients import build_service_clients
    from uniicon.core.config import config
    from uniicon.core.models import GenerationRequest
    from uniicon.core.pipeline import IconPipeline

    pipeline = IconPipeline(config, build_service_clients(config))
    result = await pipeline.run(GenerationRequest(raw_input="a blue water droplet"))
    print(result.generation_method, result.display_url[:40])
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Optional, TypeVar

from .clients import ServiceClients
from .config import UniiconConfig
from .errors import PackagingError, PipelineError, PipelineFailedError, PipelineState
from .models import GeneratedImage, GenerationRequest, PipelineResult
from .stages import (
    BackgroundCleaner,
    ImageGenerator,
    PromptExtractor,
    RemoteArchiver,
    Stage,
    package_result,
    run_stage,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

StateObserver = Callable[[PipelineState], None]


class IconPipeline:
    """Runs the generation stages for one request at a time.

    The pipeline itself holds only read-only collaborators, so one instance
    serves any number of concurrent requests.

    Args:
        config: Application configuration.
        clients: Injected remote service clients.
        extractor: Override for the extraction stage (tests).
        generator: Override for the generation stage (tests).
        cleaner: Override for the cleaning stage (tests).
        archiver: Override for the archival stage (tests).
    """

    def __init__(
        self,
        config: UniiconConfig,
        clients: ServiceClients,
        *,
        extractor: Optional[PromptExtractor] = None,
        generator: Optional[ImageGenerator] = None,
        cleaner: Optional[BackgroundCleaner] = None,
        archiver: Optional[RemoteArchiver] = None,
    ) -> None:
        self.config = config
        self.extractor = extractor or PromptExtractor(config, clients)
        self.generator = generator or ImageGenerator(config, clients)
        self.cleaner = cleaner or BackgroundCleaner()
        self.archiver = archiver or RemoteArchiver(config, clients)

    async def _run(self, stage: Stage[T]) -> T:
        outcome = await run_stage(stage, disable_fallbacks=self.config.disable_fallbacks)
        if not outcome.ok:
            raise outcome.error
        return outcome.value

    def _package_stage(self, image: GeneratedImage, archived) -> Stage[PipelineResult]:
        async def package() -> PipelineResult:
            return package_result(image, archived, image.source)

        return Stage(state=PipelineState.PACKAGING, primary=package, error_type=PackagingError)

    async def run(
        self, request: GenerationRequest, on_state: Optional[StateObserver] = None
    ) -> PipelineResult:
        """Run the full pipeline for *request*.

        Args:
            request: The user's generation request.
            on_state: Optional callback invoked on every state transition.

        Returns:
            The packaged result.

        Raises:
            PipelineFailedError: A stage failed and no fallback applied.
        """
        states: list[PipelineState] = []

        def enter(state: PipelineState) -> None:
            states.append(state)
            if on_state is not None:
                on_state(state)

        raw_input = request.raw_input
        logger.info(f"Starting icon generation pipeline for input: {raw_input[:80]}")

        try:
            enter(PipelineState.EXTRACTING)
            prompt = await self._run(self.extractor.stage(raw_input))
            logger.info(f"Prompt extracted ({prompt.source})")

            enter(PipelineState.GENERATING)
            image = await self._run(self.generator.stage(prompt.text))
            logger.info(f"Image generated ({image.source}, {image.mime_format})")

            enter(PipelineState.CLEANING)
            image = await self._run(self.cleaner.stage(image))

            enter(PipelineState.ARCHIVING)
            archived = await self.archiver.archive(image, raw_input)

            enter(PipelineState.PACKAGING)
            result = await self._run(self._package_stage(image, archived))
        except PipelineError as e:
            failed_in = states[-1]
            enter(PipelineState.FAILED)
            logger.error(f"Icon generation failed while {failed_in.value}: {e.message}", exc_info=True)
            raise PipelineFailedError.from_error(failed_in, e, states) from e

        enter(PipelineState.DONE)
        logger.info("Icon generation pipeline completed successfully")
        return result
