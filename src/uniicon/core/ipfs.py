"""IPFS pinning of generated icons and NFT metadata through Pinata.

The mint flow needs a token URI: the icon is pinned first, then an ERC-721
style metadata document that points at the pinned image.  Pinning is
independent of the generation pipeline and is triggered by the client after
it has received an icon.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from .config import UniiconConfig

logger = logging.getLogger(__name__)

PINATA_API_URL = "https://api.pinata.cloud"

DEFAULT_NFT_NAME = "Uniicon Generated Icon"
DEFAULT_NFT_DESCRIPTION = "AI-generated icon created with Uniicon on Avalanche"
EXTERNAL_URL = "https://uniicon.com"

_DATA_URL = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.+)$", re.DOTALL)


class IpfsError(Exception):
    """Pinning failed or Pinata is not configured."""


@dataclass(frozen=True)
class PinnedNft:
    image_url: str
    metadata_url: str
    metadata: dict[str, Any]

    @property
    def token_uri(self) -> str:
        return self.metadata_url

    def to_dict(self) -> dict[str, Any]:
        return {
            "imageUrl": self.image_url,
            "metadataUrl": self.metadata_url,
            "tokenUri": self.token_uri,
            "metadata": self.metadata,
        }


def parse_data_url(data_url: str) -> tuple[str, bytes]:
    """Split a base64 ``data:`` URL into its MIME type and raw bytes.

    Raises:
        ValueError: The string is not a base64 data URL.
    """
    match = _DATA_URL.match(data_url.strip())
    if not match:
        raise ValueError("Expected a base64 data URL")
    try:
        data = base64.b64decode(match.group("data"), validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e
    return match.group("mime"), data


def build_nft_metadata(
    image_url: str,
    name: Optional[str] = None,
    description: Optional[str] = None,
    attributes: Optional[list[dict[str, Any]]] = None,
    created: Optional[datetime] = None,
) -> dict[str, Any]:
    """Build the ERC-721 metadata document for a pinned icon."""
    created = created or datetime.now(timezone.utc)
    return {
        "name": name or DEFAULT_NFT_NAME,
        "description": description or DEFAULT_NFT_DESCRIPTION,
        "image": image_url,
        "external_url": EXTERNAL_URL,
        "attributes": [
            {"trait_type": "Generator", "value": "Uniicon AI"},
            {"trait_type": "Blockchain", "value": "Avalanche"},
            {"trait_type": "Created", "value": created.isoformat()},
            *(attributes or []),
        ],
    }


class PinataClient:
    """Minimal async Pinata client.

    Args:
        config: Application configuration (JWT and gateway).
        transport: Optional httpx transport, used by tests.
    """

    def __init__(self, config: UniiconConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return self.config.ipfs_configured

    def gateway_url(self, ipfs_hash: str) -> str:
        return f"https://{self.config.pinata_gateway}/ipfs/{ipfs_hash}"

    def _client(self) -> httpx.AsyncClient:
        if not self.is_configured:
            raise IpfsError("Pinata JWT not configured. Set PINATA_JWT to enable IPFS uploads.")
        return httpx.AsyncClient(
            base_url=PINATA_API_URL,
            headers={"Authorization": f"Bearer {self.config.pinata_jwt}"},
            timeout=self.config.stage_timeout_seconds,
            transport=self._transport,
        )

    @staticmethod
    def _ipfs_hash(response: httpx.Response) -> str:
        try:
            response.raise_for_status()
            return response.json()["IpfsHash"]
        except (httpx.HTTPStatusError, KeyError, ValueError) as e:
            raise IpfsError(f"Pinata request failed: {e}") from e

    async def pin_file(self, data: bytes, filename: str, mime_type: str) -> str:
        """Pin raw file bytes; returns the IPFS hash."""
        metadata = {"name": f"Uniicon Generated Icon - {int(time.time() * 1000)}"}
        async with self._client() as client:
            try:
                response = await client.post(
                    "/pinning/pinFileToIPFS",
                    files={"file": (filename, data, mime_type)},
                    data={
                        "pinataMetadata": json.dumps(metadata),
                        "pinataOptions": json.dumps({"cidVersion": 1}),
                    },
                )
            except httpx.HTTPError as e:
                raise IpfsError(f"Pinata request failed: {e}") from e
        return self._ipfs_hash(response)

    async def pin_json(self, content: dict[str, Any], name: str) -> str:
        """Pin a JSON document; returns the IPFS hash."""
        async with self._client() as client:
            try:
                response = await client.post(
                    "/pinning/pinJSONToIPFS",
                    json={
                        "pinataContent": content,
                        "pinataMetadata": {"name": name},
                        "pinataOptions": {"cidVersion": 1},
                    },
                )
            except httpx.HTTPError as e:
                raise IpfsError(f"Pinata request failed: {e}") from e
        return self._ipfs_hash(response)

    async def pin_nft(
        self,
        image_data_url: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        attributes: Optional[list[dict[str, Any]]] = None,
    ) -> PinnedNft:
        """Pin the icon and its metadata document.

        Raises:
            ValueError: *image_data_url* is malformed.
            IpfsError: Pinata is not configured or a request failed.
        """
        mime_type, data = parse_data_url(image_data_url)
        extension = "svg" if mime_type == "image/svg+xml" else "png"

        logger.info("Uploading image to IPFS...")
        image_hash = await self.pin_file(data, f"uniicon-generated.{extension}", mime_type)
        image_url = self.gateway_url(image_hash)

        metadata = build_nft_metadata(image_url, name, description, attributes)
        logger.info("Uploading metadata to IPFS...")
        metadata_hash = await self.pin_json(
            metadata, f"Uniicon NFT Metadata - {int(time.time() * 1000)}"
        )
        metadata_url = self.gateway_url(metadata_hash)
        logger.info(f"NFT metadata pinned: {metadata_url}")
        return PinnedNft(image_url=image_url, metadata_url=metadata_url, metadata=metadata)
