"""
Configuration settings for the CT STH Monitor.

This module handles loading and validating configuration from TOML files
and environment variables.

Configuration hierarchy (later overrides earlier):
1. Default values (built-in)
2. config/default.toml
3. config/local.toml (gitignored)
4. File named by CT_MONITOR_CONFIG_PATH
5. Environment variables (CT_MONITOR_* prefix)
6. Command-line arguments

Example:
    >>> from ct_sth_monitor.config import get_settings
    >>>
    >>> settings = get_settings()
    >>> for log in settings.logs:
    ...     print(f"{log.name}: every {log.period_seconds}s")
"""

from __future__ import annotations

import base64
import binascii
import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ct_sth_monitor.validation.signature import hash_algorithm_from_name, load_public_key

ENV_PREFIX = "CT_MONITOR_"
CONFIG_PATH_ENV = "CT_MONITOR_CONFIG_PATH"


class LogSettings(BaseModel):
    """Settings for one monitored CT Log."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., description="Short name used in logs and the CLI")
    url: str = Field(..., description="Log base URL (or mock:// for the mock Log)")
    public_key: str = Field(
        default="",
        description="Base64 DER or PEM SubjectPublicKeyInfo of the Log's signing key",
    )
    period_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Seconds between get-sth calls",
    )
    max_clock_skew_seconds: float = Field(
        default=300.0,
        ge=0,
        description="Tolerance for STH timestamps ahead of local time",
    )
    hash_algorithm: str = Field(
        default="sha256",
        description="Hash algorithm of the Log's tree and signatures",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="HTTP timeout for each get-sth call",
    )

    @field_validator("url")
    @classmethod
    def ensure_trailing_slash(cls, v: str) -> str:
        return v if v.endswith("/") else v + "/"

    @field_validator("public_key")
    @classmethod
    def check_public_key(cls, v: str) -> str:
        if v.strip().startswith("-----BEGIN"):
            v = v.strip()
            load_public_key(v)
            return v
        v = "".join(v.split())
        if v:
            try:
                base64.b64decode(v, validate=True)
            except binascii.Error as e:
                raise ValueError(f"public_key is not valid base64: {e}") from e
        return v

    @field_validator("hash_algorithm")
    @classmethod
    def check_hash_algorithm(cls, v: str) -> str:
        hash_algorithm_from_name(v)
        return v.lower()

    @property
    def is_mock(self) -> bool:
        """True for the built-in mock Log."""
        return self.url.startswith("mock://")

    @property
    def max_clock_skew_ms(self) -> int:
        return int(self.max_clock_skew_seconds * 1000)


class DatabaseSettings(BaseModel):
    """Database settings."""

    model_config = ConfigDict(extra="ignore")

    path: str = Field(
        default="ct_monitor.db",
        description="Database file path",
    )
    timeout_seconds: float = Field(
        default=30.0,
        description="Connection timeout",
    )
    wal_mode: bool = Field(
        default=True,
        description="Enable WAL mode",
    )


class LoggingSettings(BaseModel):
    """Logging settings."""

    model_config = ConfigDict(extra="ignore")

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="console", description="Output format")
    include_timestamp: bool = Field(default=True)
    include_location: bool = Field(default=False)


class Settings(BaseModel):
    """Main settings container."""

    model_config = ConfigDict(extra="ignore")

    # General
    name: str = Field(default="ct-sth-monitor")
    base_dir: Path = Field(default=Path("data"))

    # Subsystems
    logs: list[LogSettings] = Field(default_factory=list)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("logs")
    @classmethod
    def unique_log_names(cls, v: list[LogSettings]) -> list[LogSettings]:
        names = [log.name for log in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate log names: {', '.join(duplicates)}")
        return v

    @property
    def database_path(self) -> Path:
        """Get absolute database path."""
        db_path = Path(self.database.path)
        if db_path.is_absolute():
            return db_path
        return self.base_dir / db_path

    def get_log(self, name: str) -> LogSettings:
        """Look up a configured Log by name.

        Raises:
            KeyError: If no Log has that name
        """
        for log in self.logs:
            if log.name == name:
                return log
        available = ", ".join(log.name for log in self.logs) or "none configured"
        raise KeyError(f"Log '{name}' not found. Available: {available}")


def _find_config_files() -> list[Path]:
    """Find configuration files in standard locations.

    Returns:
        List of config file paths (in order of priority)
    """
    files = []

    cwd = Path.cwd()
    for name in ["config/default.toml", "config/local.toml"]:
        path = cwd / name
        if path.exists():
            files.append(path)

    env_config = os.environ.get(CONFIG_PATH_ENV)
    if env_config:
        path = Path(env_config)
        if path.exists():
            files.append(path)

    return files


def _load_toml(path: Path) -> dict[str, Any]:
    """Load a TOML file.

    Args:
        path: Path to TOML file

    Returns:
        Parsed TOML content
    """
    with open(path, "rb") as f:
        return tomllib.load(f)


def _merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge dictionaries.

    Lists (such as ``logs``) are replaced, not concatenated.

    Args:
        base: Base dictionary
        override: Override dictionary

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dicts(result[key], value)
        else:
            result[key] = value

    return result


def _coerce(value: str, original: Any) -> Any:
    """Convert an environment string to the type of the value it replaces."""
    if isinstance(original, bool):
        return value.lower() in ("true", "1", "yes")
    if isinstance(original, int):
        return int(value)
    if isinstance(original, float):
        return float(value)
    return value


def _apply_env_overrides(
    config: dict[str, Any],
    environ: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Apply environment variable overrides.

    Variables with the CT_MONITOR_ prefix override sections that exist in
    the defaults, e.g. CT_MONITOR_DATABASE_PATH -> database.path and
    CT_MONITOR_LOGGING_LEVEL -> logging.level. The ``logs`` list cannot be
    set from the environment.

    Args:
        config: Configuration dictionary
        environ: Environment to read (defaults to os.environ)

    Returns:
        Modified configuration
    """
    environ = dict(os.environ) if environ is None else environ
    defaults = Settings().model_dump(exclude={"logs"})

    for key, value in environ.items():
        if not key.startswith(ENV_PREFIX) or key == CONFIG_PATH_ENV:
            continue

        config_key = key[len(ENV_PREFIX):].lower()

        section, _, field = config_key.partition("_")
        if field and isinstance(defaults.get(section), dict) and field in defaults[section]:
            target = config.setdefault(section, {})
            target[field] = _coerce(value, defaults[section][field])
        elif config_key in defaults and not isinstance(defaults[config_key], dict):
            config[config_key] = value

    return config


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from configuration files.

    Args:
        config_path: Optional explicit config file path

    Returns:
        Settings instance

    Raises:
        pydantic.ValidationError: If the configuration is invalid
    """
    config: dict[str, Any] = {}

    if config_path:
        files = [Path(config_path)]
    else:
        files = _find_config_files()

    for path in files:
        config = _merge_dicts(config, _load_toml(path))

    config = _apply_env_overrides(config)

    return Settings(**config)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings instance (cached after first call)
    """
    return load_settings()


def reload_settings() -> Settings:
    """Reload settings (clears cache).

    Returns:
        Fresh Settings instance
    """
    get_settings.cache_clear()
    return get_settings()
