"""Tests for uniicon.core.stages.base: the shared fallback policy."""

from __future__ import annotations

import asyncio
import time

import pytest

from uniicon.core.errors import (
    ExtractionError,
    GenerationError,
    PipelineState,
    ServiceErrorKind,
    ThrottledError,
)
from uniicon.core.stages.base import Stage, call_remote, run_stage


def _stage(primary, fallback=None, error_type=GenerationError) -> Stage:
    return Stage(
        state=PipelineState.GENERATING, primary=primary, fallback=fallback, error_type=error_type
    )


async def _value(value):
    return value


async def _raise(exc):
    raise exc


class TestRunStage:
    @pytest.mark.anyio
    async def test_primary_success(self):
        outcome = await run_stage(_stage(lambda: _value("primary"), lambda: _value("fb")), disable_fallbacks=False)
        assert outcome.ok
        assert outcome.value == "primary"
        assert outcome.used_fallback is False

    @pytest.mark.anyio
    async def test_substitutable_failure_uses_fallback(self):
        stage = _stage(lambda: _raise(GenerationError("nope")), lambda: _value("fb"))
        outcome = await run_stage(stage, disable_fallbacks=False)
        assert outcome.ok
        assert outcome.value == "fb"
        assert outcome.used_fallback is True

    @pytest.mark.anyio
    async def test_non_substitutable_failure_propagates(self):
        fallback_calls = []

        async def fallback():
            fallback_calls.append(1)
            return "fb"

        outcome = await run_stage(_stage(lambda: _raise(ThrottledError()), fallback), disable_fallbacks=False)
        assert not outcome.ok
        assert isinstance(outcome.error, ThrottledError)
        assert fallback_calls == []

    @pytest.mark.anyio
    async def test_disabled_fallbacks_propagate(self):
        stage = _stage(lambda: _raise(GenerationError("nope")), lambda: _value("fb"))
        outcome = await run_stage(stage, disable_fallbacks=True)
        assert not outcome.ok
        assert outcome.error.message == "nope"

    @pytest.mark.anyio
    async def test_no_fallback_propagates(self):
        outcome = await run_stage(_stage(lambda: _raise(GenerationError("nope"))), disable_fallbacks=False)
        assert not outcome.ok

    @pytest.mark.anyio
    async def test_unexpected_exception_is_tagged(self):
        stage = _stage(lambda: _raise(KeyError("x")), error_type=ExtractionError)
        outcome = await run_stage(stage, disable_fallbacks=False)
        assert isinstance(outcome.error, ExtractionError)
        assert outcome.error.kind is ServiceErrorKind.UNKNOWN

    @pytest.mark.anyio
    async def test_failing_fallback_propagates(self):
        stage = _stage(
            lambda: _raise(GenerationError("primary")),
            lambda: _raise(RuntimeError("fallback broke")),
        )
        outcome = await run_stage(stage, disable_fallbacks=False)
        assert not outcome.ok
        assert "fallback broke" in outcome.error.message


class TestCallRemote:
    @pytest.mark.anyio
    async def test_returns_value(self):
        assert await call_remote(lambda a, b=0: a + b, 1, b=2, timeout=1.0) == 3

    @pytest.mark.anyio
    async def test_timeout(self):
        with pytest.raises(asyncio.TimeoutError):
            await call_remote(time.sleep, 0.5, timeout=0.01)
