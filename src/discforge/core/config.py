"""
DiscForge configuration management.

Provides centralized configuration with validation using Pydantic.
"""

from __future__ import annotations

import json
import shutil
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from discforge.core.project import BurnOptions, ISOOptions

DEFAULT_CONFIG_PATH = Path.home() / ".discforge" / "config.json"


def _default_xorriso_path() -> str:
    return shutil.which("xorriso") or "xorriso"


class LoggingConfig(BaseModel):
    """Configuration for structured logging."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file_enabled: bool = True
    console_enabled: bool = True
    json_format: bool = False
    log_directory: Path = Field(default_factory=lambda: Path.home() / ".discforge" / "logs")

    @field_validator("log_directory", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        return Path(v).expanduser().resolve()


class XorrisoConfig(BaseModel):
    """Location of the xorriso binary and invocation time bounds."""

    binary_path: str = Field(default_factory=_default_xorriso_path)
    query_timeout_seconds: float = Field(default=15.0, gt=0)
    blank_timeout_seconds: float = Field(default=1800.0, gt=0)
    format_timeout_seconds: float = Field(default=1800.0, gt=0)
    verify_timeout_seconds: float | None = Field(default=None, gt=0)
    kill_grace_seconds: float = Field(default=5.0, ge=0)

    @field_validator("binary_path", mode="before")
    @classmethod
    def expand_binary(cls, v: str | Path) -> str:
        return str(Path(v).expanduser()) if "/" in str(v) else str(v)


class DiscForgeConfig(BaseModel):
    """Main DiscForge configuration."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    xorriso: XorrisoConfig = Field(default_factory=XorrisoConfig)
    default_burn: BurnOptions = Field(default_factory=BurnOptions)
    default_iso: ISOOptions = Field(default_factory=ISOOptions)
    device_poll_interval_seconds: float = Field(default=5.0, ge=1.0, le=300.0)
    watch_media: bool = False

    @classmethod
    def load(cls, config_path: Path | None = None) -> DiscForgeConfig:
        """Load configuration from file or create default."""
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        if config_path.exists():
            with open(config_path, encoding="utf-8") as f:
                data = json.load(f)
            return cls.model_validate(data)

        return cls()

    def save(self, config_path: Path | None = None) -> None:
        """Save configuration to file."""
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2, default=str)

    def ensure_directories(self) -> None:
        """Create all required directories."""
        if self.logging.file_enabled:
            self.logging.log_directory.mkdir(parents=True, exist_ok=True)


def get_default_config() -> DiscForgeConfig:
    """Get the default configuration."""
    return DiscForgeConfig()


def load_config(config_path: Path | None = None) -> DiscForgeConfig:
    """Load or create configuration."""
    config = DiscForgeConfig.load(config_path)
    config.ensure_directories()
    return config
