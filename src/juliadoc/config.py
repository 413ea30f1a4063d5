"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (JULIADOC__JULIA__PROJECT=/path/to/project)
  2. juliadoc.yaml          (searched in cwd, then the platform config dir)
  3. Hardcoded defaults

The config file is optional — all fields have sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_CONFIG_DIR = platformdirs.user_config_dir("juliadoc")


def _find_config_file() -> str | None:
    """Return the path of the first juliadoc.yaml found, or None."""
    candidates = [
        Path("juliadoc.yaml"),
        Path(_DEFAULT_CONFIG_DIR) / "juliadoc.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class JuliaSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    executable: str | None = None  # None: discover on PATH / install dirs
    project: str | None = None  # Passed to julia as --project
    timeout_seconds: float = Field(default=60.0, gt=0)


class CacheSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ttl_seconds: int = Field(default=300, ge=0)


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: JULIADOC__CACHE__TTL_SECONDS=60
        env_prefix="JULIADOC__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    julia: JuliaSettings = JuliaSettings()
    cache: CacheSettings = CacheSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
