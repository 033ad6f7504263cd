"""
Application Configuration

Settings class using pydantic-settings for environment variable loading.
Defines encoder, frame rate and export cache configuration.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings loaded from environment variables.

    Every field can be overridden with a NEWSREEL_ prefixed variable,
    e.g. NEWSREEL_FFMPEG_BINARY=/opt/ffmpeg/bin/ffmpeg.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="NEWSREEL_",
        case_sensitive=False,
        extra="ignore",
    )

    # Binaries
    ffmpeg_binary: str = Field(default="ffmpeg", description="ffmpeg executable")

    # Headline reveal
    reveal_fps: int = Field(default=60, gt=0, le=120, description="Nominal reveal frame rate")
    label_max_length: int = Field(default=25, gt=0, description="Maximum label characters")
    font_path: Optional[str] = Field(
        default=None,
        description="TrueType font used for the highlighted label",
    )

    # Map animation
    map_fps: int = Field(default=30, gt=0, le=120, description="Nominal map animation frame rate")
    map_width: int = Field(default=800, gt=0, description="Map canvas width in pixels")
    map_height: int = Field(default=600, gt=0, description="Map canvas height in pixels")

    # Encoding
    reencode_to_mp4: bool = Field(
        default=True,
        description="Convert captured streams to H.264 MP4 before delivery",
    )
    reencode_timeout_seconds: int = Field(
        default=120,
        gt=0,
        description="Maximum runtime of the MP4 conversion step",
    )
    x264_preset: str = Field(default="veryfast", description="libx264 preset")
    crf: int = Field(default=23, ge=0, le=51, description="Constant rate factor")

    # Export cache
    cache_root: Path = Field(
        default=Path.home() / ".cache" / "newsreel" / "exports",
        description="Root directory for cached exports",
    )
    cache_max_age_hours: int = Field(
        default=168,  # 7 days
        gt=0,
        description="Cached exports older than this are treated as misses",
    )
    cache_max_entries: int = Field(
        default=64,
        gt=0,
        description="Maximum number of cached exports kept on disk",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Root log level for the CLI")


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once per process.
    Call ``get_settings.cache_clear()`` after changing the environment.

    Returns:
        Settings: settings instance

    Example:
        >>> settings = get_settings()
        >>> print(settings.reveal_fps)
        60
    """
    return Settings()
