"""
Runtime settings for the job pipeline.

Settings are read once at startup from STUDIO_PIPELINE_* environment
variables. Nothing reads os.environ after construction.

Design rules:
- Every setting has a working default for local development
- Invalid values fail loudly at startup (ConfigError), never at first use
- Tool paths fall back to PATH discovery, then common install locations
"""

import os
import shutil
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


ENV_PREFIX = "STUDIO_PIPELINE_"


class ConfigError(Exception):
    """Raised when runtime settings cannot be constructed."""
    pass


class ExecutionMode(str, Enum):
    """
    How the dispatcher chooses between live and simulated execution.

    LIVE: run external tools; a missing input file fails the job.
    FALLBACK: run external tools when the input file exists, simulate otherwise.
    DRY_RUN: never touch external tools.
    """

    LIVE = "live"
    FALLBACK = "fallback"
    DRY_RUN = "dry_run"


def find_tool(name: str) -> Optional[str]:
    """Find an external tool binary on PATH or in common install locations."""
    found = shutil.which(name)
    if found:
        return found

    common_paths = [
        f"/usr/local/bin/{name}",
        f"/usr/bin/{name}",
        f"/opt/homebrew/bin/{name}",
    ]
    for path in common_paths:
        if os.path.isfile(path) and os.access(path, os.X_OK):
            return path

    return None


class PipelineSettings(BaseModel):
    """Immutable runtime configuration for one pipeline instance."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    storage_path: str = "./storage"
    database_path: str = "./studio_pipeline.db"
    ffmpeg_path: Optional[str] = None
    ffprobe_path: Optional[str] = None
    tool_timeout_seconds: float = Field(default=600.0, gt=0)
    execution_mode: ExecutionMode = ExecutionMode.LIVE
    mock_delay_scale: float = Field(default=1.0, ge=0)
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def storage_root(self) -> Path:
        return Path(self.storage_path).resolve()

    def resolved_ffmpeg_path(self) -> Optional[str]:
        return self.ffmpeg_path or find_tool("ffmpeg")

    def resolved_ffprobe_path(self) -> Optional[str]:
        return self.ffprobe_path or find_tool("ffprobe")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PipelineSettings":
        """
        Build settings from environment variables.

        Recognized variables (all optional):
            STUDIO_PIPELINE_STORAGE_PATH, STUDIO_PIPELINE_DATABASE_PATH,
            STUDIO_PIPELINE_FFMPEG_PATH, STUDIO_PIPELINE_FFPROBE_PATH,
            STUDIO_PIPELINE_TOOL_TIMEOUT_SECONDS, STUDIO_PIPELINE_EXECUTION_MODE,
            STUDIO_PIPELINE_MOCK_DELAY_SCALE, STUDIO_PIPELINE_LOG_LEVEL

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Raises:
            ConfigError: If any variable holds an invalid value
        """
        if environ is None:
            environ = os.environ

        values = {}
        for field_name in cls.model_fields:
            raw = environ.get(ENV_PREFIX + field_name.upper())
            if raw is not None and raw != "":
                values[field_name] = raw

        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigError(f"Invalid pipeline settings: {e}") from e
