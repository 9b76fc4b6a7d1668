"""
Configuration Loader for Spotlight

Loads configuration from YAML file with environment variable interpolation.
Follows Fast Fail principle - crashes immediately if config is invalid.
"""

import os
import re
from pathlib import Path
from typing import Any, Dict

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

from src.errors import ConfigurationError

DEFAULT_CONFIG_PATH = "config/config.yaml"


class Config(BaseModel):
    """
    Master configuration model for Spotlight

    Sections: system, database, schedule, ledger, logging, api.
    Missing or invalid critical values crash the process at startup (Fast Fail).
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="allow")

    # Raw config data (loaded from YAML)
    _raw_config: Dict[str, Any] = {}

    def __init__(self, **data):
        """Initialize with raw config data"""
        super().__init__(**data)
        self._raw_config = data

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get nested config value using dot notation

        Example:
            config.get('schedule.active_coins')  # Returns 15
            config.get('database.url')

        Args:
            key_path: Dot-separated path to config key
            default: Default value if key not found

        Returns:
            Config value or default
        """
        keys = key_path.split('.')
        value = self._raw_config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def get_required(self, key_path: str) -> Any:
        """
        Get required config value - raises error if missing

        Raises:
            ValueError: If key not found
        """
        value = self.get(key_path)
        if value is None:
            raise ValueError(f"Required config key not found: {key_path}")
        return value

    def as_dict(self) -> Dict[str, Any]:
        """Raw configuration as loaded from YAML"""
        return self._raw_config


def _interpolate_env_vars(config_str: str) -> str:
    """
    Replace ${VAR_NAME} placeholders with environment variables

    Supports:
    - ${VAR_NAME} - Required, crashes if missing
    - ${VAR_NAME:-} - Optional, empty string if missing
    - ${VAR_NAME:-default} - Optional, uses default if missing

    Raises:
        ValueError: If required env var is missing
    """
    pattern = re.compile(r'\$\{(\w+)(:-([^}]*))?\}')

    def replacer(match):
        var_name = match.group(1)
        has_default = match.group(2) is not None
        default_value = match.group(3) if match.group(3) else ""

        value = os.getenv(var_name)

        if value is None:
            if has_default:
                return default_value
            raise ValueError(
                f"Environment variable '{var_name}' is required but not set. "
                f"Check your .env file or environment."
            )

        return value

    return pattern.sub(replacer, config_str)


# Global config cache to avoid duplicate loads
_cached_config: Config | None = None


def load_config(config_path: str | Path | None = None) -> Config:
    """
    Load Spotlight configuration from YAML file (cached)

    Process:
    1. Return cached config if available
    2. Load .env file (if exists)
    3. Read YAML config (SPOTLIGHT_CONFIG overrides the default path)
    4. Interpolate environment variables (${VAR})
    5. Parse and validate YAML
    6. Cache and return Config object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If YAML structure is invalid or env vars missing
        ConfigurationError: If schedule/ledger settings are invalid
        yaml.YAMLError: If YAML parsing fails
    """
    global _cached_config

    if _cached_config is not None:
        return _cached_config

    env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    if config_path is None:
        config_path = os.getenv("SPOTLIGHT_CONFIG", DEFAULT_CONFIG_PATH)

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            f"Expected location: {config_path.absolute()}"
        )

    with open(config_path, 'r') as f:
        config_str = f.read()

    try:
        config_str = _interpolate_env_vars(config_str)
    except ValueError as e:
        raise ValueError(
            f"Failed to interpolate environment variables in {config_path}: {e}"
        ) from e

    try:
        config_dict = yaml.safe_load(config_str)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(
            f"Failed to parse YAML config {config_path}: {e}"
        ) from e

    if not isinstance(config_dict, dict):
        raise ValueError(
            f"Config file {config_path} must contain a YAML dictionary, "
            f"got {type(config_dict)}"
        )

    config = Config(**config_dict)
    _validate_config(config)

    _cached_config = config

    return config


def _validate_config(config: Config) -> None:
    """
    Validate critical configuration settings

    Raises:
        ValueError: If the database section is incomplete
        ConfigurationError: If schedule or ledger settings are invalid
    """
    from src.rotation.schedule import ScheduleConfig

    if not config.get('database.url'):
        raise ValueError("Database configuration incomplete. Required: database.url")

    # Builds and validates the rotation parameters
    ScheduleConfig.from_config(config)

    currency = config.get('ledger.currency')
    if not currency or not isinstance(currency, str):
        raise ConfigurationError("ledger.currency must be a non-empty string")

    retries = config.get('ledger.storage_retries', 0)
    if not isinstance(retries, int) or retries < 0:
        raise ConfigurationError(
            f"ledger.storage_retries must be a non-negative integer, got {retries!r}"
        )
