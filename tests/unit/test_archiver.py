"""Tests for uniicon.core.stages.archiver: best-effort S3 archival."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from uniicon.core.clients import ServiceClients
from uniicon.core.models import LOCAL_FALLBACK, SERVICE, GeneratedImage
from uniicon.core.stages.archiver import RemoteArchiver, build_object_key, iso_timestamp

NOW = datetime(2025, 3, 14, 9, 26, 53, 589000, tzinfo=timezone.utc)


class TestObjectKey:
    def test_timestamp_format(self):
        assert iso_timestamp(NOW) == "2025-03-14T09:26:53.589Z"

    def test_key_layout(self):
        key = build_object_key("a blue water droplet", NOW)
        assert key == "images/a_blue_water_droplet_2025-03-14T09-26-53-589Z.png"

    def test_slug_capped_at_50(self):
        key = build_object_key("x" * 80, NOW)
        slug = key[len("images/"):].rsplit("_", 1)[0]
        assert slug == "x" * 50

    def test_non_alphanumeric_replaced(self):
        key = build_object_key("héllo/wörld!", NOW)
        assert key.startswith("images/h_llo_w_rld__")

    def test_custom_prefix(self):
        assert build_object_key("a", NOW, prefix="icons/").startswith("icons/a_")


class TestArchive:
    @pytest.fixture
    def image(self, png_bytes) -> GeneratedImage:
        return GeneratedImage(data=png_bytes, mime_format="png", source=SERVICE)

    @pytest.mark.anyio
    async def test_not_configured_returns_none(self, test_config, s3_client, image):
        archiver = RemoteArchiver(test_config, ServiceClients(s3=s3_client))
        assert await archiver.archive(image, "a star") is None
        s3_client.put_object.assert_not_called()

    @pytest.mark.anyio
    async def test_upload(self, aws_config, s3_client, image):
        archiver = RemoteArchiver(aws_config, ServiceClients(s3=s3_client))
        asset = await archiver.archive(image, "a star")

        assert asset is not None
        assert asset.bucket == "uniicon-assets-dev"
        assert asset.key.startswith("images/a_star_")
        assert asset.key.endswith(".png")
        assert asset.url == f"https://uniicon-assets-dev.s3.us-east-1.amazonaws.com/{asset.key}"

        kwargs = s3_client.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "uniicon-assets-dev"
        assert kwargs["Key"] == asset.key
        assert kwargs["Body"] == image.data
        assert kwargs["ContentType"] == "image/png"
        assert kwargs["Metadata"]["prompt"] == "a star"
        assert kwargs["Metadata"]["source"] == "uniicon-ai-generator"

    @pytest.mark.anyio
    async def test_svg_content_type(self, aws_config, s3_client):
        archiver = RemoteArchiver(aws_config, ServiceClients(s3=s3_client))
        svg = GeneratedImage(data=b"<svg/>", mime_format="svg", source=LOCAL_FALLBACK)
        await archiver.archive(svg, "a star")
        assert s3_client.put_object.call_args.kwargs["ContentType"] == "image/svg+xml"

    @pytest.mark.anyio
    async def test_metadata_is_ascii(self, aws_config, s3_client, image):
        archiver = RemoteArchiver(aws_config, ServiceClients(s3=s3_client))
        await archiver.archive(image, "café ☕")
        assert s3_client.put_object.call_args.kwargs["Metadata"]["prompt"] == "caf "

    @pytest.mark.anyio
    async def test_upload_failure_returns_none(self, aws_config, s3_client, image, client_error):
        s3_client.put_object.side_effect = client_error("AccessDenied", operation="PutObject")
        archiver = RemoteArchiver(aws_config, ServiceClients(s3=s3_client))
        assert await archiver.archive(image, "a star") is None

    @pytest.mark.anyio
    async def test_failure_ignores_disable_flag(self, make_config, s3_client, image):
        cfg = make_config(
            aws_access_key_id="AKIATEST", aws_secret_access_key="s", disable_fallbacks=True
        )
        s3_client.put_object.side_effect = RuntimeError("bucket gone")
        archiver = RemoteArchiver(cfg, ServiceClients(s3=s3_client))
        assert await archiver.archive(image, "a star") is None
