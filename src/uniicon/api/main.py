"""Uniicon: FastAPI Application.

This module defines the application factory, all REST API routes, and the
``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Configuration** comes from :class:`~uniicon.core.config.UniiconConfig`.
- **Service clients** (Bedrock, S3) are built once in the lifespan and
  stored on ``app.state``; tests inject their own.
- **Icon generation** is performed by :class:`~uniicon.core.pipeline.IconPipeline`.
  Nothing is stored server-side; each response carries the image as a
  ``data:`` URL.

Endpoints
---------
========  ============================  ====================================
Method    Path                          Purpose
========  ============================  ====================================
POST      ``/api/generate``             Run the generation pipeline
POST      ``/generate``                 Alias of ``/api/generate``
GET       ``/api/generate``             405 Method Not Allowed
GET       ``/api/status``               Service configuration status
POST      ``/api/nft/metadata``         Pin icon + NFT metadata to IPFS
========  ============================  ====================================

Usage
-----
CLI (installed entry point)::

    uniicon

Direct invocation::

    python -m uniicon.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from uniicon import __version__
from uniicon.api.models import (
    ErrorResponse,
    GenerateRequest,
    GenerateResponse,
    NftMetadataRequest,
    PipelineResultModel,
)
from uniicon.core.clients import ServiceClients, build_service_clients
from uniicon.core.config import UniiconConfig, config as default_config
from uniicon.core.errors import PipelineFailedError
from uniicon.core.ipfs import IpfsError, PinataClient
from uniicon.core.models import GenerationRequest
from uniicon.core.pipeline import IconPipeline

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(config: UniiconConfig) -> None:
    """Configure root logging; ``quiet_logs`` keeps only errors."""
    logging.basicConfig(
        level=logging.ERROR if config.quiet_logs else logging.INFO,
        format=LOG_FORMAT,
    )


def create_app(
    config: Optional[UniiconConfig] = None,
    clients: Optional[ServiceClients] = None,
    pinata: Optional[PinataClient] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Configuration; the global instance when None.
        clients: Pre-built service clients; built from *config* at startup
            when None.
        pinata: Pinata client; built from *config* when None.

    Returns:
        Configured FastAPI application.
    """
    config = config or default_config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Configure logging, then build the service clients and the pipeline."""
        configure_logging(config)
        service_clients = clients if clients is not None else build_service_clients(config)
        app.state.config = config
        app.state.clients = service_clients
        app.state.pipeline = IconPipeline(config, service_clients)
        app.state.pinata = pinata or PinataClient(config)
        logger.info(
            f"Uniicon {__version__} ready (fallbacks {'disabled' if config.disable_fallbacks else 'enabled'})"
        )
        yield
        logger.info("Uniicon shutting down")

    app = FastAPI(
        title="Uniicon",
        description="AI icon generation with local fallbacks and IPFS pinning.",
        version=__version__,
        lifespan=lifespan,
    )

    # The wallet frontend is served from a different origin during development.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.post(
        "/api/generate",
        response_model=GenerateResponse,
        responses={500: {"model": ErrorResponse}},
    )
    @app.post(
        "/generate",
        response_model=GenerateResponse,
        responses={500: {"model": ErrorResponse}},
        include_in_schema=False,
    )
    async def generate_icon(req: GenerateRequest, request: Request):
        """Run the icon generation pipeline.

        Returns:
            ``{"result": PipelineResult}`` on success, or a 500 response with
            ``error``, ``hint``, ``details`` and ``stage`` on failure.

        Raises:
            HTTPException: 400 when the input is empty.
        """
        raw_input = req.input.strip()
        if not raw_input:
            raise HTTPException(status_code=400, detail="input must not be empty")

        pipeline: IconPipeline = request.app.state.pipeline
        try:
            result = await pipeline.run(GenerationRequest(raw_input=raw_input))
        except PipelineFailedError as e:
            return JSONResponse(status_code=500, content=e.to_dict())

        return GenerateResponse(result=PipelineResultModel.from_result(result))

    @app.get("/api/generate", include_in_schema=False)
    @app.get("/generate", include_in_schema=False)
    async def generate_not_allowed() -> PlainTextResponse:
        return PlainTextResponse("Method Not Allowed", status_code=405)

    @app.get("/api/status")
    async def get_status(request: Request) -> dict:
        """Report which remote services are configured.

        Returns:
            Dictionary with ``version``, ``disableFallbacks`` and a
            ``services`` mapping of service name to configured flag.
        """
        state = request.app.state
        return {
            "version": __version__,
            "disableFallbacks": state.config.disable_fallbacks,
            "services": {
                "extraction": state.pipeline.extractor.is_configured,
                "generation": state.pipeline.generator.is_configured,
                "archival": state.pipeline.archiver.is_configured,
                "ipfs": state.pinata.is_configured,
            },
        }

    @app.post("/api/nft/metadata")
    async def pin_nft_metadata(req: NftMetadataRequest, request: Request) -> dict:
        """Pin an icon and its NFT metadata to IPFS.

        Returns:
            Dictionary with ``imageUrl``, ``metadataUrl``, ``tokenUri`` and
            ``metadata``.

        Raises:
            HTTPException: 503 when Pinata is not configured, 400 for a
                malformed data URL, 502 when pinning fails.
        """
        pinata: PinataClient = request.app.state.pinata
        if not pinata.is_configured:
            raise HTTPException(status_code=503, detail="IPFS pinning is not configured")
        try:
            pinned = await pinata.pin_nft(
                req.image_data_url, req.name, req.description, req.attributes
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        except IpfsError as e:
            logger.error(f"IPFS upload failed: {e}")
            raise HTTPException(status_code=502, detail=str(e)) from e
        return pinned.to_dict()

    return app


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from the global configuration
    (``UNIICON_SERVER_HOST`` / ``UNIICON_SERVER_PORT``).
    """
    import uvicorn

    configure_logging(default_config)
    uvicorn.run(
        "uniicon.api.main:app",
        host=default_config.server_host,
        port=default_config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
