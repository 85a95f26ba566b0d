"""Configuration management for the Slab Design Engine.

This module provides centralized configuration management using Pydantic Settings.
Configuration is loaded from environment variables with the SLABDESIGN_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Keyword arguments passed to SlabDesignConfig (tests)
2. Environment variables (SLABDESIGN_* prefix)
3. .env file in the working directory
4. Default values defined in SlabDesignConfig

Two fields also accept the plain names used by hosting platforms and by the
Google SDK documentation:

- the API key: ``GEMINI_API_KEY``, ``GOOGLE_API_KEY`` or ``GOOGLE_GENAI_API_KEY``
- the port: ``PORT``

Example .env file:
    SLABDESIGN_GEMINI_API_KEY=...
    SLABDESIGN_MODEL_ID=gemini-3-pro-image-preview
    SLABDESIGN_GENERATION_TIMEOUT=240
    SLABDESIGN_FETCH_USER_AGENT=Mozilla/5.0

No Global Instance
------------------
The API key is required, so building the configuration fails when it is
missing.  There is no module-level ``config`` object: the
configuration is built once by :func:`load_config` at startup and passed
explicitly to the pipeline and the server.  A missing key therefore stops
the process before it binds a port instead of failing every request.

Timeout Constraints
-------------------
Image generation routinely takes longer than one minute, so the generation
timeout is bounded to 120-300 seconds.  The slab download timeout may not
exceed it, and the server keep-alive timeout is derived from it (see
:attr:`SlabDesignConfig.server_keep_alive`).
"""

from __future__ import annotations

import math
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SlabDesignConfig(BaseSettings):
    """Main configuration for the Slab Design Engine.

    Attributes
    ----------
    Generation Backend:
        gemini_api_key : SecretStr
            Credential for the Gemini API (required)
        model_id : str
            Image model identifier sent with every generation call
        generation_timeout : float
            Upper bound in seconds for one generation call (120-300)
        reference_first : bool
            Send the slab image part before the text part

    Reference Resolution:
        static_host : str
            Host serving CMS media by identifier
        raw_passthrough : bool
            Append ``?raw=1`` to resolved media URLs
        keep_filename : bool
            Keep the display filename segment in resolved media URLs

    Slab Download:
        fetch_timeout : float
            Timeout in seconds for the slab image download
        fetch_user_agent : str | None
            Optional User-Agent header for hotlink-protected hosts
        fetch_referer : str | None
            Optional Referer header for hotlink-protected hosts

    Server:
        server_host : str
            Bind address
        server_port : int
            Listening port
        log_level : str
            Root logging level

    Examples
    --------
        >>> cfg = SlabDesignConfig(gemini_api_key="test-key", _env_file=None)
        >>> cfg.model_id
        'gemini-3-pro-image-preview'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SLABDESIGN_",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    # Generation backend
    gemini_api_key: SecretStr = Field(
        ...,
        validation_alias=AliasChoices(
            "SLABDESIGN_GEMINI_API_KEY",
            "GEMINI_API_KEY",
            "GOOGLE_API_KEY",
            "GOOGLE_GENAI_API_KEY",
        ),
        description="Gemini API key",
    )
    model_id: str = Field(
        default="gemini-3-pro-image-preview",
        description="Image generation model identifier",
    )
    generation_timeout: float = Field(
        default=180.0,
        ge=120.0,
        le=300.0,
        description="Generation call timeout in seconds",
    )
    reference_first: bool = Field(
        default=False,
        description="Place the slab image part before the prompt text part",
    )

    # Reference resolution
    static_host: str = Field(
        default="static.wixstatic.com",
        description="Host serving CMS media files by media identifier",
    )
    raw_passthrough: bool = Field(
        default=True,
        description="Append the raw passthrough query to resolved media URLs",
    )
    keep_filename: bool = Field(
        default=False,
        description="Keep the display filename in resolved media URLs",
    )

    # Slab download
    fetch_timeout: float = Field(
        default=30.0,
        gt=0.0,
        description="Slab image download timeout in seconds",
    )
    fetch_user_agent: str | None = Field(
        default=None,
        description="User-Agent header for slab downloads",
    )
    fetch_referer: str | None = Field(
        default=None,
        description="Referer header for slab downloads",
    )

    # Server
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    server_port: int = Field(
        default=8080,
        validation_alias=AliasChoices("SLABDESIGN_SERVER_PORT", "PORT"),
        description="Server port",
        ge=1,
        le=65535,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Root logging level",
    )

    @model_validator(mode="after")
    def _check_timeouts(self) -> SlabDesignConfig:
        if self.fetch_timeout > self.generation_timeout:
            raise ValueError(
                f"fetch_timeout ({self.fetch_timeout}s) must not exceed "
                f"generation_timeout ({self.generation_timeout}s)"
            )
        return self

    @property
    def generation_timeout_ms(self) -> int:
        """Generation timeout in milliseconds, the unit the Gemini SDK expects."""
        return int(self.generation_timeout * 1000)

    @property
    def server_keep_alive(self) -> int:
        """Keep-alive timeout for uvicorn, never shorter than a generation call."""
        return math.ceil(self.generation_timeout) + 5

    @property
    def fetch_headers(self) -> dict[str, str]:
        """Extra headers for slab downloads; empty unless configured."""
        headers: dict[str, str] = {}
        if self.fetch_user_agent:
            headers["User-Agent"] = self.fetch_user_agent
        if self.fetch_referer:
            headers["Referer"] = self.fetch_referer
        return headers


def load_config(**overrides) -> SlabDesignConfig:
    """Build the configuration from the environment.

    Args:
        **overrides: Field values that take precedence over the environment.

    Returns:
        A frozen :class:`SlabDesignConfig`.

    Raises:
        pydantic.ValidationError: If the API key is missing or a value is
            out of range.
    """
    return SlabDesignConfig(**overrides)
