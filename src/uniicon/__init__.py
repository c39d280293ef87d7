"""Uniicon - AI icon generation with graceful local fallbacks."""

__version__ = "0.3.0"

from uniicon.core.config import UniiconConfig, config
from uniicon.core.pipeline import IconPipeline

__all__ = [
    "IconPipeline",
    "UniiconConfig",
    "config",
]
