"""Configuration management for the Aino.io agent.

Configuration is read from layered TOML files and environment variables:

1. ``<config_dir>/default.toml`` (required)
2. ``<config_dir>/<run_mode>.toml`` where run mode comes from ``RUN_MODE``
   and defaults to ``development`` (optional)
3. ``<config_dir>/local.toml`` (optional)
4. ``AINO_*`` environment variables
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional, Union

from loguru import logger
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from ..core.errors import ConfigError
from ..sender import DEFAULT_API_URL, SenderConfig

DEFAULT_RUN_MODE = "development"

# Environment variable -> (config key, type)
_ENV_OVERRIDES = {
    "AINO_URL": ("url", str),
    "AINO_API_KEY": ("api_key", str),
    "AINO_SEND_INTERVAL": ("send_interval", int),
    "AINO_TIMEOUT_SECONDS": ("timeout_seconds", float),
    "AINO_MAX_RETRIES": ("max_retries", int),
}

# Alternative key spellings accepted in configuration files
_KEY_ALIASES = {
    "endpoint_url": "url",
    "apiKey": "api_key",
    "api_credential": "api_key",
    "sendInterval": "send_interval",
    "send_interval_ms": "send_interval",
}


class AgentConfig(BaseModel):
    """Configuration needed by the Aino.io agent."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", validate_assignment=True)

    url: str = Field(
        default=DEFAULT_API_URL,
        validation_alias=AliasChoices("url", "endpoint_url"),
        description="Aino.io API URL, normally https://data.aino.io/rest/v2/transaction",
    )
    api_key: str = Field(
        default="",
        validation_alias=AliasChoices("api_key", "apiKey", "api_credential"),
        description="API key from the API Access tab of the application",
    )
    send_interval: int = Field(
        default=1000,
        ge=0,
        validation_alias=AliasChoices("send_interval", "sendInterval", "send_interval_ms"),
        description="Interval between batches in milliseconds",
    )

    # Transport settings
    timeout_seconds: float = Field(default=30.0, gt=0, description="HTTP request timeout")
    max_retries: int = Field(default=0, ge=0, description="Retries after a failed send, 0 drops failed batches")
    retry_backoff_base: float = Field(default=1.0, ge=0)
    retry_backoff_max: float = Field(default=60.0, ge=0)

    # Dispatch loop settings
    max_batch_size: int = Field(default=500, gt=0, description="Maximum transactions per batch")
    poll_interval: float = Field(default=0.01, gt=0, description="Longest idle wait of the dispatch loop in seconds")

    def get_sender_config(self) -> SenderConfig:
        """Get configuration for the HTTP sender."""
        return SenderConfig(
            url=self.url,
            api_key=self.api_key,
            timeout_seconds=self.timeout_seconds,
            max_retries=self.max_retries,
            retry_backoff_base=self.retry_backoff_base,
            retry_backoff_max=self.retry_backoff_max,
        )

    def validate_settings(self) -> tuple[bool, list[str]]:
        """Validate the configuration before starting the agent.

        Returns:
            Tuple of (is_valid, error_messages)
        """
        errors = []

        if not self.url:
            errors.append("API URL is required")

        if not self.api_key:
            errors.append("API key is required")

        if self.send_interval <= 0:
            errors.append("Send interval must be positive")

        return len(errors) == 0, errors


def _load_toml(path: Path, required: bool = False) -> Dict[str, Any]:
    """Load a TOML mapping from disk, returning an empty mapping if missing and optional."""
    if not path.exists():
        if required:
            raise ConfigError(f"Configuration file not found: {path}")
        return {}

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e

    logger.debug(f"Loaded configuration from {path}")
    return data


def _canonical_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    """Rename aliased keys to their field names so later sources override earlier ones."""
    return {_KEY_ALIASES.get(key, key): value for key, value in data.items()}


def _env_overrides(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Collect configuration overrides from ``AINO_*`` environment variables."""
    environ = os.environ if environ is None else environ
    overrides: Dict[str, Any] = {}

    for env_key, (key, kind) in _ENV_OVERRIDES.items():
        if (raw := environ.get(env_key)) is None:
            continue

        try:
            overrides[key] = kind(raw)
        except ValueError:
            logger.warning(f"Invalid value for {env_key}: {raw}")

    return overrides


def load_config(
    config_dir: Union[str, Path] = "config",
    run_mode: Optional[str] = None,
    environ: Optional[Dict[str, str]] = None,
) -> AgentConfig:
    """Read the configuration files and environment and build the configuration.

    Args:
        config_dir: Directory holding the TOML files
        run_mode: Name of the run mode file (defaults to ``RUN_MODE``)
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        Validated agent configuration

    Raises:
        ConfigError: If the default file is missing or the result is invalid
    """
    environ = os.environ if environ is None else environ
    config_dir = Path(config_dir)
    run_mode = run_mode or environ.get("RUN_MODE", DEFAULT_RUN_MODE)

    merged: Dict[str, Any] = {}
    merged.update(_canonical_keys(_load_toml(config_dir / "default.toml", required=True)))
    merged.update(_canonical_keys(_load_toml(config_dir / f"{run_mode}.toml")))
    merged.update(_canonical_keys(_load_toml(config_dir / "local.toml")))
    merged.update(_env_overrides(environ))

    try:
        config = AgentConfig.model_validate(merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    logger.info(f"Loaded configuration for run mode '{run_mode}': {config.url}")
    return config
