"""Configuration management for curvectl.

Settings are read from a YAML file (``curvectl.yaml`` in the working
directory by default). Command-line options always take precedence over
values from the file.

Example::

    env: devnet
    keypair: ~/.config/solana/id.json
    operations: pumpfun
    faucet:
      amount_sol: 5
      backoff_seconds: 1
    launch_config:
      team_wallet: 9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin
      platform_buy_fee: 1.0
      platform_sell_fee: 1.0
      curve_limit: 85000000000
    token:
      name: Example
      symbol: EXM
      uri: https://example.com/meta.json
"""

import logging
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ConfigurationError
from .models import LaunchConfig, TokenMetadata
from .types import Cluster

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_FILE = Path("curvectl.yaml")
DEFAULT_KEYPAIR_PATH = "~/.config/solana/id.json"


class FaucetSettings(BaseModel):
    """Funding loop parameters."""

    amount_sol: float = Field(default=5.0, gt=0, allow_inf_nan=False)
    backoff_seconds: float = Field(default=1.0, ge=0, allow_inf_nan=False)

    model_config = {"frozen": True}


class Settings(BaseModel):
    """Top-level settings."""

    env: str = Cluster.DEVNET.value
    rpc: Optional[str] = None
    keypair: str = DEFAULT_KEYPAIR_PATH

    # Entry-point name or "module:attribute" of the lifecycle operations backend
    operations: Optional[str] = None

    faucet: FaucetSettings = Field(default_factory=FaucetSettings)
    launch_config: LaunchConfig = Field(default_factory=LaunchConfig)
    token: Optional[TokenMetadata] = None

    model_config = {"frozen": True}

    @classmethod
    def from_dict(cls, data: dict[str, Any], source: str = "<dict>") -> "Settings":
        """Build settings from parsed YAML data."""
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            first = e.errors()[0]
            key = ".".join(str(part) for part in first["loc"]) or "settings"
            raise ConfigurationError(key, f"{first['msg']} (in {source})") from e

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Settings":
        """
        Load settings from a YAML file.

        Args:
            path: Settings file. If not provided, ``curvectl.yaml`` in the
                  working directory is used when present.

        Returns:
            Settings instance; defaults when no file is found

        Raises:
            ConfigurationError: If an explicit file is missing or the file
                is not valid YAML / does not match the schema
        """
        if path is None:
            if not DEFAULT_SETTINGS_FILE.exists():
                return cls()
            path = DEFAULT_SETTINGS_FILE
        elif not path.exists():
            raise ConfigurationError("config", f"settings file not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError("config", f"invalid YAML in {path}: {e}") from e
        except OSError as e:
            raise ConfigurationError("config", f"cannot read {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError("config", f"{path} must contain a mapping")

        logger.debug(f"Loaded settings from {path}")
        return cls.from_dict(data, source=str(path))


# Global settings instance (lazy loaded)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reload_settings(path: Optional[Path] = None) -> Settings:
    """Reload settings from disk."""
    global _settings
    _settings = Settings.load(path)
    return _settings
