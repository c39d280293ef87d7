"""Core functionality for icon generation.

Architecture Overview
---------------------
The core module follows a layered architecture:

1. **Configuration Layer** (config.py):
   - Environment-based configuration using Pydantic Settings
   - UNIICON_ prefix plus the standard AWS / Pinata variable names

2. **Service Layer** (clients.py, ipfs.py):
   - boto3 clients built once and injected into the stages
   - Pinata client for NFT metadata pinning

3. **Stage Layer** (stages/):
   - extraction, generation, cleaning, archival, packaging
   - each stage declares its primary behavior and its fallback

4. **Orchestration Layer** (pipeline.py):
   - IconPipeline sequences the stages and applies the fallback policy
   - errors.py holds the stage-tagged error taxonomy

Usage Example
-------------
    from uniicon.core import IconPipeline, build_service_clients, config

    pipeline = IconPipeline(config, build_service_clients(config))
"""

from uniicon.core.clients import ServiceClients, build_service_clients
from uniicon.core.config import UniiconConfig, config
from uniicon.core.errors import PipelineFailedError, PipelineState
from uniicon.core.pipeline import IconPipeline

__all__ = [
    "IconPipeline",
    "PipelineFailedError",
    "PipelineState",
    "ServiceClients",
    "UniiconConfig",
    "build_service_clients",
    "config",
]
