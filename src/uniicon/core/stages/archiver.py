"""Best-effort archival of generated icons to S3.

Archival never fails a request: a missing configuration returns ``None``
before any call, and an upload error is logged and also returns ``None``.
The disable-fallbacks flag does not apply here.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Optional

from ..clients import ServiceClients
from ..config import UniiconConfig
from ..errors import ArchiveError, classify_service_error
from ..models import ArchivedAsset, GeneratedImage
from .base import call_remote

logger = logging.getLogger(__name__)

SLUG_LENGTH = 50
ARCHIVE_SOURCE = "uniicon-ai-generator"


def iso_timestamp(now: datetime) -> str:
    """Format *now* as UTC ISO-8601 with milliseconds and a ``Z`` suffix."""
    now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def build_object_key(prompt: str, now: datetime, prefix: str = "images/") -> str:
    """Derive the object key ``<prefix><slug>_<timestamp>.png``.

    Args:
        prompt: Prompt the icon was generated from.
        now: Upload time.
        prefix: Key prefix inside the bucket.

    Returns:
        Object key with ``:`` and ``.`` in the timestamp replaced by ``-``.
    """
    slug = re.sub(r"[^a-zA-Z0-9]", "_", prompt)[:SLUG_LENGTH]
    timestamp = re.sub(r"[:.]", "-", iso_timestamp(now))
    return f"{prefix}{slug}_{timestamp}.png"


class RemoteArchiver:
    """Uploads icon bytes to the configured bucket."""

    def __init__(self, config: UniiconConfig, clients: ServiceClients) -> None:
        self.config = config
        self.client = clients.s3

    @property
    def is_configured(self) -> bool:
        return self.client is not None and self.config.storage_configured

    def _put_object(self, image: GeneratedImage, prompt: str, key: str, now: datetime) -> None:
        self.client.put_object(
            Bucket=self.config.s3_bucket,
            Key=key,
            Body=image.data,
            ContentType=image.content_type,
            Metadata={
                # S3 user metadata must be ASCII.
                "prompt": prompt.encode("ascii", "ignore").decode("ascii")[:1024],
                "generated-at": iso_timestamp(now),
                "source": ARCHIVE_SOURCE,
            },
        )

    async def upload(self, image: GeneratedImage, prompt: str) -> ArchivedAsset:
        """Upload *image* and return its location.

        Raises:
            ArchiveError: The upload failed.
        """
        now = datetime.now(timezone.utc)
        key = build_object_key(prompt, now, self.config.s3_prefix)
        bucket = self.config.s3_bucket
        region = self.config.s3_region

        logger.info(f"Uploading image to S3: s3://{bucket}/{key} ({region})")
        try:
            await call_remote(
                self._put_object, image, prompt, key, now,
                timeout=self.config.stage_timeout_seconds,
            )
        except Exception as e:
            raise ArchiveError(
                f"S3 upload failed: {e}", kind=classify_service_error(e)
            ) from e

        url = f"https://{bucket}.s3.{region}.amazonaws.com/{key}"
        logger.info(f"Image uploaded successfully to S3: {url}")
        return ArchivedAsset(url=url, key=key, bucket=bucket)

    async def archive(self, image: GeneratedImage, prompt: str) -> Optional[ArchivedAsset]:
        """Archive *image*; never raises.

        Returns:
            The archived location, or None when not configured or on failure.
        """
        if not self.is_configured:
            logger.info("S3 not configured, skipping upload")
            return None
        try:
            return await self.upload(image, prompt)
        except ArchiveError as e:
            logger.warning(f"S3 upload failed, continuing without upload: {e.message}")
            return None
