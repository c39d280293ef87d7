"""Prompt extraction stage.

Free-text user input is rewritten into an icon prompt by a Bedrock agent.
When the agent is unavailable (no credentials, error, empty answer) the
input is sanitized locally instead.
"""

from __future__ import annotations

import logging
import re
import uuid

from ..clients import ServiceClients
from ..config import UniiconConfig
from ..errors import ExtractionError, PipelineState, ServiceErrorKind, classify_service_error
from ..models import LOCAL_FALLBACK, SERVICE, ExtractedPrompt, truncate_prompt
from .base import Stage, call_remote, run_stage

logger = logging.getLogger(__name__)

# Everything except word characters, whitespace and basic punctuation.
_UNSAFE_CHARS = re.compile(r"[^\w\s\-.,!?]", re.ASCII)


def sanitize_input(raw_input: str) -> str:
    """Clean user input locally.

    Trims, drops characters outside the safe set, and caps the length at
    200 characters (plus ``...`` when truncated).

    Args:
        raw_input: Arbitrary user text.

    Returns:
        Sanitized prompt text of at most 203 characters.
    """
    return truncate_prompt(_UNSAFE_CHARS.sub("", raw_input.strip()))


class PromptExtractor:
    """Turns raw user input into an :class:`ExtractedPrompt`."""

    def __init__(self, config: UniiconConfig, clients: ServiceClients) -> None:
        self.config = config
        self.client = clients.agent_runtime

    @property
    def is_configured(self) -> bool:
        return self.client is not None and self.config.bedrock_configured

    def _invoke_agent(self, raw_input: str) -> str:
        response = self.client.invoke_agent(
            agentId=self.config.extract_agent_id,
            agentAliasId=self.config.extract_agent_alias_id,
            sessionId=str(uuid.uuid4()),
            inputText=raw_input,
        )
        # The completion is an event stream; chunks arrive as raw bytes.
        parts = []
        for event in response["completion"]:
            chunk = event.get("chunk")
            if chunk and chunk.get("bytes"):
                parts.append(chunk["bytes"].decode("utf-8"))
        return "".join(parts)

    async def extract_remote(self, raw_input: str) -> ExtractedPrompt:
        """Ask the extraction agent for a prompt.

        An empty agent answer falls through to local sanitization, matching
        the behavior of a successful call that returned nothing useful.

        Raises:
            ExtractionError: No credentials, or the agent call failed.
        """
        if not self.is_configured:
            raise ExtractionError(
                "No AWS credentials configured for prompt extraction",
                kind=ServiceErrorKind.NOT_CONFIGURED,
            )
        try:
            text = await call_remote(
                self._invoke_agent, raw_input, timeout=self.config.stage_timeout_seconds
            )
        except Exception as e:
            raise ExtractionError(
                f"Extraction failed: {e}", kind=classify_service_error(e)
            ) from e

        if not text.strip():
            logger.info("Extraction agent returned no text, sanitizing input locally")
            return self.extract_local(raw_input)
        return ExtractedPrompt(text=text.strip(), source=SERVICE)

    def extract_local(self, raw_input: str) -> ExtractedPrompt:
        return ExtractedPrompt(text=sanitize_input(raw_input), source=LOCAL_FALLBACK)

    async def _extract_local(self, raw_input: str) -> ExtractedPrompt:
        return self.extract_local(raw_input)

    def stage(self, raw_input: str) -> Stage[ExtractedPrompt]:
        """Declare the extraction stage for one request."""
        return Stage(
            state=PipelineState.EXTRACTING,
            primary=lambda: self.extract_remote(raw_input),
            fallback=lambda: self._extract_local(raw_input),
            error_type=ExtractionError,
        )

    async def extract(self, raw_input: str) -> ExtractedPrompt:
        """Extract a prompt, falling back to local sanitization on failure.

        Raises:
            ExtractionError: Only when fallbacks are disabled.
        """
        outcome = await run_stage(
            self.stage(raw_input), disable_fallbacks=self.config.disable_fallbacks
        )
        if not outcome.ok:
            raise outcome.error
        return outcome.value
