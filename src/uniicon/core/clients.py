"""Remote service clients shared by the pipeline stages.

Clients are built once per process (in the FastAPI lifespan) and injected
into the stages.  boto3 clients are thread-safe for concurrent calls, so a
single set is shared read-only across requests.  A client is ``None`` when
its credentials are not configured; stages treat that as "use the fallback".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError

from .config import UniiconConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceClients:
    """Injected remote clients.

    Attributes:
        agent_runtime: ``bedrock-agent-runtime`` client used for extraction.
        bedrock_runtime: ``bedrock-runtime`` client used for generation.
        s3: ``s3`` client used for archival.
    """

    agent_runtime: Any = None
    bedrock_runtime: Any = None
    s3: Any = None


def _create_client(service: str, region: str, config: UniiconConfig) -> Any:
    """Create one boto3 client, or None when botocore rejects the credentials.

    A half-configured key pair (only the access key or only the secret) makes
    botocore raise at construction time; the stage then runs its fallback.
    """
    try:
        return boto3.client(
            service,
            region_name=region,
            aws_access_key_id=config.aws_access_key_id,
            aws_secret_access_key=config.aws_secret_access_key,
        )
    except BotoCoreError as e:
        logger.warning(f"Could not create {service} client, using local fallback: {e}")
        return None


def build_service_clients(config: UniiconConfig) -> ServiceClients:
    """Construct boto3 clients for every configured service.

    Args:
        config: Application configuration.

    Returns:
        ServiceClients with ``None`` for services lacking usable credentials.
    """
    agent_runtime = None
    bedrock_runtime = None
    if config.bedrock_configured:
        agent_runtime = _create_client("bedrock-agent-runtime", config.aws_region, config)
        bedrock_runtime = _create_client("bedrock-runtime", config.aws_region, config)
        if bedrock_runtime is not None:
            logger.info(f"Bedrock clients created for region {config.aws_region}")
    else:
        logger.info("No AWS credentials found, Bedrock stages will use local fallbacks")

    s3 = None
    if config.storage_configured:
        s3 = _create_client("s3", config.s3_region, config)
        if s3 is not None:
            logger.info(f"S3 client created for bucket {config.s3_bucket}")
    else:
        logger.info("S3 not configured, archival disabled")

    return ServiceClients(agent_runtime=agent_runtime, bedrock_runtime=bedrock_runtime, s3=s3)
