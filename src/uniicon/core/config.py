"""Configuration management for the Uniicon generation service.

This module provides centralized configuration management using Pydantic Settings.
Project settings are loaded from environment variables with the UNIICON_ prefix.
Credentials and a few operational flags also accept the un-prefixed names the
deployment environment already exports (``AWS_ACCESS_KEY_ID``,
``DISABLE_FALLBACKS``, ``PINATA_JWT`` ...).

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables
2. .env file in the project root
3. Default values defined in UniiconConfig

Example .env file:
    AWS_ACCESS_KEY_ID=AKIA...
    AWS_SECRET_ACCESS_KEY=...
    AWS_REGION=us-east-1
    DISABLE_FALLBACKS=0
    UNIICON_S3_BUCKET=uniicon-assets-dev

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
The application factory accepts an explicit instance so tests can build
isolated configurations.

Usage Example
-------------
    from uniicon.core.config import config

    print(config.generate_model_id)
    print(config.bedrock_configured)

Credential Gating
-----------------
Each remote stage checks credentials before any call is attempted:
- Bedrock stages (extraction, generation) need an access key or a secret key.
- Archival needs both the access key and the secret key.
- IPFS pinning needs a Pinata JWT.
A stage without credentials behaves exactly as if its remote call had failed.
"""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class UniiconConfig(BaseSettings):
    """Main configuration for the Uniicon generation service.

    Attributes
    ----------
    Pipeline Policy:
        disable_fallbacks : bool
            Turn every recoverable stage failure into a hard failure
        stage_timeout_seconds : float | None
            Upper bound for each remote call (None disables the bound)
        fallback_rasterize : bool
            Render the local SVG fallback icon to PNG when possible

    AWS Credentials:
        aws_access_key_id : str | None
        aws_secret_access_key : str | None
        aws_region : str
            Region for the Bedrock clients

    Bedrock Settings:
        generate_model_id : str
            Image model invoked by the generation stage
        extract_agent_id : str
        extract_agent_alias_id : str
            Agent used by the extraction stage

    Archive Settings:
        s3_bucket : str
        s3_region : str
        s3_prefix : str

    IPFS Settings:
        pinata_jwt : str | None
        pinata_gateway : str

    Server Settings:
        server_host : str
        server_port : int
        quiet_logs : bool
            Only log errors

    Notes
    -----
    - Configuration is immutable after initialization
    - To modify config, set environment variables and restart the application
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="UNIICON_",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    # Pipeline policy
    disable_fallbacks: bool = Field(
        default=False,
        validation_alias=AliasChoices("DISABLE_FALLBACKS", "UNIICON_DISABLE_FALLBACKS"),
        description="Suppress fallback substitution; stage failures become hard failures",
    )
    stage_timeout_seconds: Optional[float] = Field(
        default=60.0,
        gt=0,
        description="Timeout applied to each remote service call (None disables it)",
    )
    fallback_rasterize: bool = Field(
        default=False,
        description="Rasterize the local fallback icon to PNG (requires cairosvg)",
    )

    # AWS credentials (shared by Bedrock and S3)
    aws_access_key_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("AWS_ACCESS_KEY_ID", "BEDROCK_ACCESS_KEY_ID"),
    )
    aws_secret_access_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("AWS_SECRET_ACCESS_KEY", "BEDROCK_SECRET_ACCESS_KEY"),
    )
    aws_region: str = Field(
        default="us-east-1",
        validation_alias=AliasChoices("AWS_REGION", "BEDROCK_REGION"),
    )

    # Bedrock settings
    generate_model_id: str = Field(
        default="amazon.titan-image-generator-v1",
        validation_alias=AliasChoices("BEDROCK_GENERATE_MODEL_ID", "UNIICON_GENERATE_MODEL_ID"),
        description="Bedrock model used for icon generation",
    )
    extract_agent_id: str = Field(
        default="AIN8HDRSBV",
        description="Bedrock agent that rewrites user input into an icon prompt",
    )
    extract_agent_alias_id: str = Field(
        default="6QBYKHARVB",
        description="Alias of the extraction agent",
    )

    # Archive settings
    s3_bucket: str = Field(default="uniicon-assets-dev")
    s3_region: str = Field(default="us-east-1")
    s3_prefix: str = Field(default="images/")

    # IPFS settings
    pinata_jwt: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("PINATA_JWT", "NEXT_PUBLIC_PINATA_JWT"),
    )
    pinata_gateway: str = Field(
        default="gateway.pinata.cloud",
        validation_alias=AliasChoices("PINATA_GATEWAY", "NEXT_PUBLIC_PINATA_GATEWAY"),
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    server_port: int = Field(
        default=7860,
        description="Server port",
        ge=1024,
        le=65535,
    )
    quiet_logs: bool = Field(
        default=False,
        validation_alias=AliasChoices("QUIET_LOGS", "UNIICON_QUIET_LOGS"),
        description="Only emit error-level log records",
    )

    @property
    def bedrock_configured(self) -> bool:
        """True when the Bedrock stages may attempt a remote call."""
        return bool(self.aws_access_key_id or self.aws_secret_access_key)

    @property
    def storage_configured(self) -> bool:
        """True when archival to S3 may be attempted."""
        return bool(self.aws_access_key_id and self.aws_secret_access_key)

    @property
    def ipfs_configured(self) -> bool:
        """True when Pinata pinning may be attempted."""
        return bool(self.pinata_jwt)


# Global configuration instance
# Loads values from the environment and .env file at import time.
config = UniiconConfig()
