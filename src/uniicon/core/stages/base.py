"""Stage declaration and the shared fallback policy.

A stage is declared as a value: a primary coroutine factory, an optional
fallback coroutine factory, and the error type its failures are tagged with.
:func:`run_stage` is the single place where the fallback policy lives:

- primary succeeds: its value is used;
- primary fails with a non-substitutable error, or fallbacks are disabled,
  or the stage declares no fallback: the error propagates;
- otherwise the fallback runs and its value is used.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from ..errors import PipelineError, PipelineState, classify_service_error

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Stage(Generic[T]):
    """One pipeline step.

    Attributes:
        state: Pipeline state this stage runs in.
        primary: Zero-argument coroutine factory for the primary behavior.
        fallback: Zero-argument coroutine factory for the fallback, if any.
        error_type: PipelineError subclass used to tag unexpected failures.
    """

    state: PipelineState
    primary: Callable[[], Awaitable[T]]
    fallback: Optional[Callable[[], Awaitable[T]]] = None
    error_type: type[PipelineError] = PipelineError


@dataclass(frozen=True)
class StageOutcome(Generic[T]):
    """Result of one attempt: either a value or a stage-tagged error."""

    value: Optional[T] = None
    error: Optional[PipelineError] = None
    used_fallback: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


def as_stage_error(exc: BaseException, error_type: type[PipelineError]) -> PipelineError:
    """Tag *exc* with the stage's error type unless it already is one."""
    if isinstance(exc, PipelineError):
        return exc
    return error_type(str(exc) or type(exc).__name__, kind=classify_service_error(exc))


async def attempt(factory: Callable[[], Awaitable[T]], error_type: type[PipelineError]) -> StageOutcome[T]:
    """Await *factory()* and capture any failure as a StageOutcome."""
    try:
        return StageOutcome(value=await factory())
    except Exception as exc:
        return StageOutcome(error=as_stage_error(exc, error_type))


async def run_stage(stage: Stage[T], *, disable_fallbacks: bool) -> StageOutcome[T]:
    """Run *stage* under the fallback policy.

    Args:
        stage: Stage declaration.
        disable_fallbacks: When True no fallback is ever substituted.

    Returns:
        A successful outcome (possibly from the fallback) or the failing one.
    """
    outcome = await attempt(stage.primary, stage.error_type)
    if outcome.ok:
        return outcome

    error = outcome.error
    if stage.fallback is None or disable_fallbacks or not error.substitutable:
        return outcome

    logger.warning(f"{stage.state.value} failed, using fallback: {error.message}")
    fallback = await attempt(stage.fallback, stage.error_type)
    if not fallback.ok:
        return fallback
    return StageOutcome(value=fallback.value, used_fallback=True)


async def call_remote(
    func: Callable[..., Any], *args: Any, timeout: Optional[float] = None, **kwargs: Any
) -> Any:
    """Run a blocking client call in a worker thread, bounded by *timeout*.

    Raises:
        asyncio.TimeoutError: If the call does not finish in time.
    """
    call = asyncio.to_thread(func, *args, **kwargs)
    if timeout is None:
        return await call
    return await asyncio.wait_for(call, timeout=timeout)
