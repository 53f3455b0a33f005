"""CLI configuration management."""

import json
import logging
from pathlib import Path
from typing import Dict, Any

from broker_cli.config import config
from broker_cli.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = '~/.broker-cli/config.json'


def default_cli_config() -> Dict[str, Any]:
    """Defaults taken from the environment configuration."""
    return {
        'host': config.broker.host,
        'api_version': config.broker.api_version,
        'creds': config.broker.credentials_file
    }


def load_cli_config(config_path: Path) -> Dict[str, Any]:
    """Load CLI configuration from file, merged over the defaults."""

    defaults = default_cli_config()

    if not config_path.exists():
        return defaults

    try:
        with open(config_path, 'r') as f:
            saved = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Failed to load config from {config_path}, using defaults: {e}")
        return defaults

    if not isinstance(saved, dict):
        logger.warning(f"Ignoring config file {config_path}: expected a JSON object")
        return defaults

    merged = defaults.copy()
    merged.update({k: v for k, v in saved.items() if v is not None})
    return merged


def save_cli_config(config_path: Path, cli_config: Dict[str, Any]) -> None:
    """Save CLI configuration to file."""

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w') as f:
            json.dump(cli_config, f, indent=2)
    except OSError as e:
        raise ConfigurationError(
            f"Failed to save config to {config_path}", config_key='config_file', cause=e
        ) from e
