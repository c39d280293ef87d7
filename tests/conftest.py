"""Shared pytest fixtures for Uniicon tests."""

from __future__ import annotations

import base64
import io
import json
from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError
from PIL import Image

from uniicon.core.clients import ServiceClients
from uniicon.core.config import UniiconConfig

# Environment variables that would leak real credentials or flags into tests.
_ENV_VARS = (
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "BEDROCK_ACCESS_KEY_ID",
    "BEDROCK_SECRET_ACCESS_KEY",
    "AWS_REGION",
    "BEDROCK_REGION",
    "BEDROCK_GENERATE_MODEL_ID",
    "DISABLE_FALLBACKS",
    "UNIICON_DISABLE_FALLBACKS",
    "QUIET_LOGS",
    "UNIICON_QUIET_LOGS",
    "PINATA_JWT",
    "NEXT_PUBLIC_PINATA_JWT",
    "PINATA_GATEWAY",
    "NEXT_PUBLIC_PINATA_GATEWAY",
    "UNIICON_FALLBACK_RASTERIZE",
    "UNIICON_STAGE_TIMEOUT_SECONDS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove credential and flag variables so every test starts unconfigured."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def anyio_backend() -> str:
    """Run async tests on asyncio only."""
    return "asyncio"


@pytest.fixture
def make_config() -> Callable[..., UniiconConfig]:
    """Factory for isolated configurations (no .env file).

    Returns:
        Callable accepting UniiconConfig field overrides.
    """

    def _make(**overrides: Any) -> UniiconConfig:
        overrides.setdefault("stage_timeout_seconds", 5.0)
        return UniiconConfig(_env_file=None, **overrides)

    return _make


@pytest.fixture
def test_config(make_config) -> UniiconConfig:
    """Configuration without any credentials."""
    return make_config()


@pytest.fixture
def aws_config(make_config) -> UniiconConfig:
    """Configuration with AWS credentials (no real calls are made)."""
    return make_config(aws_access_key_id="AKIATEST", aws_secret_access_key="test-secret")


@pytest.fixture
def no_clients() -> ServiceClients:
    return ServiceClients()


@pytest.fixture
def png_bytes() -> bytes:
    """A small valid PNG image."""
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color=(59, 130, 246)).save(buffer, format="PNG")
    return buffer.getvalue()


def _client_error(code: str, message: str = "boom", operation: str = "InvokeModel") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


@pytest.fixture
def client_error() -> Callable[..., ClientError]:
    """Factory building a botocore ClientError with the given error code."""
    return _client_error


def _bedrock_image_response(images: list[str]) -> dict:
    return {"body": io.BytesIO(json.dumps({"images": images}).encode("utf-8"))}


@pytest.fixture
def bedrock_image_response() -> Callable[[list[str]], dict]:
    """Factory for the shape of a bedrock-runtime ``invoke_model`` response."""
    return _bedrock_image_response


@pytest.fixture
def bedrock_runtime(png_bytes: bytes) -> MagicMock:
    """Mock bedrock-runtime client that returns one PNG image."""
    client = MagicMock()
    client.invoke_model.side_effect = lambda **_: _bedrock_image_response(
        [base64.b64encode(png_bytes).decode("ascii")]
    )
    return client


@pytest.fixture
def agent_runtime() -> MagicMock:
    """Mock bedrock-agent-runtime client streaming a two-chunk answer."""
    client = MagicMock()
    client.invoke_agent.return_value = {
        "completion": [
            {"chunk": {"bytes": b"A glossy blue "}},
            {"trace": {}},
            {"chunk": {"bytes": b"water droplet icon"}},
        ]
    }
    return client


@pytest.fixture
def s3_client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def make_test_client():
    """Factory for a TestClient around an app with injected dependencies.

    Without injected clients the app builds its own from *config*; with no
    credentials configured that yields no clients, so every stage runs its
    local fallback.
    """
    from fastapi.testclient import TestClient

    from uniicon.api.main import create_app

    clients_opened = []

    def _make(config: UniiconConfig, clients: ServiceClients | None = None, pinata=None) -> TestClient:
        app = create_app(config, clients=clients, pinata=pinata)
        client = TestClient(app)
        client.__enter__()
        clients_opened.append(client)
        return client

    yield _make
    for client in clients_opened:
        client.__exit__(None, None, None)


@pytest.fixture
def test_client(make_test_client, test_config):
    """TestClient for an app without any remote services configured."""
    return make_test_client(test_config)
