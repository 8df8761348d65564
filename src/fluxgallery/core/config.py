"""Configuration management for Flux Gallery.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the FLUXGALLERY_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (FLUXGALLERY_* prefix)
2. .env file in the project root
3. Default values defined in FluxGalleryConfig

Example .env file:
    FLUXGALLERY_OPENAI_API_KEY=sk-...
    FLUXGALLERY_GALLERY_BACKEND=supabase
    FLUXGALLERY_SUPABASE_URL=https://xyzcompany.supabase.co
    FLUXGALLERY_SUPABASE_KEY=eyJhbGciOi...

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
This ensures a single source of truth for all configuration values across
the application.

Usage Example
-------------
    from fluxgallery.core.config import config

    print(config.completion_model)
    print(config.downloads_dir)

Directory Management
--------------------
The configuration automatically creates required directories on initialization:
- data_dir: For the local JSON gallery store
- downloads_dir: For images saved from the gallery
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FluxGalleryConfig(BaseSettings):
    """Main configuration for Flux Gallery.

    Values are loaded from environment variables with the FLUXGALLERY_ prefix,
    with fallback to defaults defined here.

    Attributes
    ----------
    Completion Service:
        openai_api_key : str | None
            API key for the completion service (falls back to OPENAI_API_KEY
            inside the OpenAI client when unset)
        openai_base_url : str | None
            Optional OpenAI-compatible base URL
        completion_model : str
            Model identifier sent with every completion request
        completion_temperature : float
            Sampling temperature
        completion_max_tokens : int
            Maximum output length of a completion
        completion_timeout : float
            Request timeout in seconds

    Prompt Enhancement:
        default_style : str
            Style used when a request omits one
        locale : Literal["en", "ko"]
            Language of user-facing messages

    Gallery:
        gallery_backend : Literal["supabase", "local"]
            Which data service backs the gallery
        supabase_url / supabase_key / supabase_table : str
            Hosted database connection settings
        image_hosts : list[str]
            Remote hostnames gallery images may be served from
        copy_feedback_seconds : float
            How long the "copied" indicator stays on after a copy
        object_url_ttl_seconds : float
            How long a transient file made from a data URL is kept

    Paths:
        data_dir : Path
            Directory for the local JSON gallery store
        downloads_dir : Path
            Directory downloaded gallery images are written to

    Server:
        server_host : str
            Bind address
        server_port : int
            Port (1024-65535)

    Examples
    --------
        >>> custom_config = FluxGalleryConfig(
        ...     gallery_backend="local",
        ...     completion_temperature=0.2,
        ... )
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="FLUXGALLERY_",
        case_sensitive=False,
    )

    # Completion service
    openai_api_key: str | None = Field(
        default=None,
        description="API key for the completion service",
    )
    openai_base_url: str | None = Field(
        default=None,
        description="Optional OpenAI-compatible base URL",
    )
    completion_model: str = Field(
        default="gpt-4o",
        description="Model identifier for prompt enhancement",
    )
    completion_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for prompt enhancement",
    )
    completion_max_tokens: int = Field(
        default=300,
        ge=1,
        description="Maximum completion length in tokens",
    )
    completion_timeout: float = Field(
        default=30.0,
        gt=0.0,
        description="Completion request timeout in seconds",
    )

    # Prompt enhancement
    default_style: str = Field(
        default="Hyper-realism",
        description="Style applied when a request does not name one",
    )
    locale: Literal["en", "ko"] = Field(
        default="en",
        description="Language of user-facing messages",
    )

    # Gallery data service
    gallery_backend: Literal["supabase", "local"] = Field(
        default="local",
        description="Gallery data service (supabase or local JSON file)",
    )
    supabase_url: str = Field(
        default="",
        description="Base URL of the Supabase project",
    )
    supabase_key: str = Field(
        default="",
        description="Supabase anon or service key",
    )
    supabase_table: str = Field(
        default="images",
        description="Table holding gallery images",
    )
    image_hosts: list[str] = Field(
        default_factory=lambda: ["avatar.vercel.sh", "v3.fal.media", "fal.media"],
        description="Hostnames gallery images may be fetched from",
    )
    copy_feedback_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Duration of the 'copied' indicator after a prompt copy",
    )
    object_url_ttl_seconds: float = Field(
        default=60.0,
        ge=0.0,
        description="Lifetime of transient files created for data URLs",
    )

    # Paths
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory for the local gallery store",
    )
    downloads_dir: Path = Field(
        default=Path("downloads"),
        description="Directory downloaded images are saved to",
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

    def __init__(self, **kwargs):
        """Initialize configuration and create required directories.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.downloads_dir.mkdir(parents=True, exist_ok=True)

    @property
    def gallery_db(self) -> Path:
        """Path of the local JSON gallery store."""
        return self.data_dir / "gallery.json"

    @property
    def transient_dir(self) -> Path:
        """Directory holding short-lived files opened from embedded images."""
        return self.data_dir / "transient"


# Global configuration instance
# Loads values from environment variables (FLUXGALLERY_* prefix) and .env file.
config = FluxGalleryConfig()
