"""Pipeline stages.

Each stage module exposes a class (or function) with a primary behavior and,
where one exists, a local fallback:

- extractor: Bedrock agent prompt extraction / local sanitization
- generator: Bedrock image model / deterministic SVG icon
- cleaner: background cleaning passthrough
- archiver: best-effort S3 upload
- packager: data URL packaging
"""

from .archiver import RemoteArchiver
from .base import Stage, StageOutcome, run_stage
from .cleaner import BackgroundCleaner
from .extractor import PromptExtractor, sanitize_input
from .generator import ImageGenerator
from .packager import package_result

__all__ = [
    "BackgroundCleaner",
    "ImageGenerator",
    "PromptExtractor",
    "RemoteArchiver",
    "Stage",
    "StageOutcome",
    "package_result",
    "run_stage",
    "sanitize_input",
]
