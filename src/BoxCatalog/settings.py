"""Runtime settings sourced from ``BOXCATALOG_*`` environment variables."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .artifact import SUPPORTED_ALGORITHMS
from .errors import ConfigError
from .models import DEFAULT_ARTIFACT_SUFFIX

__all__ = ["BoxCatalogSettings", "get_settings", "reset_settings"]

_VALID_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}


class BoxCatalogSettings(BaseSettings):
    """Effective configuration for catalog operations and logging."""

    model_config = SettingsConfigDict(
        env_prefix="BOXCATALOG_", case_sensitive=False, extra="ignore"
    )

    checksum_algorithm: str = Field(
        default="sha1",
        description="Digest used when deriving box checksums (md5, sha1, sha256, sha512)",
    )
    artifact_suffix: str = Field(
        default=DEFAULT_ARTIFACT_SUFFIX,
        description="File suffix for box files stored by backends",
    )
    log_level: str = Field(default="INFO", description="Logging level")
    log_dir: Optional[Path] = Field(
        default=None,
        description="Directory for JSON log files; console only when unset",
    )
    log_json: bool = Field(default=True, description="Write JSON lines to the log file")

    @field_validator("checksum_algorithm", mode="before")
    @classmethod
    def normalize_algorithm(cls, v: str) -> str:
        candidate = str(v).strip().lower()
        if candidate not in SUPPORTED_ALGORITHMS:
            raise ValueError(
                f"checksum_algorithm must be one of {sorted(SUPPORTED_ALGORITHMS)}, got '{v}'"
            )
        return candidate

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        upper = str(v).strip().upper()
        if upper not in _VALID_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_VALID_LEVELS)}, got '{v}'")
        return upper

    @field_validator("artifact_suffix")
    @classmethod
    def check_suffix(cls, v: str) -> str:
        if "/" in v or "\\" in v:
            raise ValueError("artifact_suffix must not contain path separators")
        return v

    def level_int(self) -> int:
        return getattr(logging, self.log_level, logging.INFO)


@lru_cache(maxsize=1)
def get_settings() -> BoxCatalogSettings:
    """Return the process wide settings instance.

    Raises:
        ConfigError: If an environment override fails validation.
    """

    try:
        return BoxCatalogSettings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid BOXCATALOG_* settings: {exc}") from exc


def reset_settings() -> None:
    """Forget the cached settings so the environment is read again."""

    get_settings.cache_clear()
