"""
Configuration management module for the budget ledger.

This module loads and saves config.yaml and merges user values over the
defaults (store backend, database location, currency and logging).
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from exceptions import ConfigError

logger = logging.getLogger(__name__)

# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    'store': 'sqlite',
    'currency': 'USD',
    'database': {
        'data_dir': 'data',
        'path': 'budget.db',
        'connection_string': None,
    },
    'logging': {
        'level': 'INFO',
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        'file': None,
    },
}

CONFIG_FILE = 'config.yaml'

VALID_STORES = ('sqlite', 'memory')


def _merge(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge overrides onto a copy of defaults."""
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration from a YAML file.

    A missing file yields the defaults.

    Args:
        config_path: Path to the YAML file (defaults to config.yaml)

    Returns:
        Configuration dictionary with defaults for missing values

    Raises:
        ConfigError: If the file is not valid YAML or has invalid values
    """
    path = Path(config_path or CONFIG_FILE)
    config: Dict[str, Any] = {}
    if path.exists():
        try:
            with open(path, 'r') as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Invalid YAML in configuration file {path}: {e}")
            raise ConfigError("Invalid configuration file", details={"path": str(path)}, original_error=e) from e

    if not isinstance(config, dict):
        raise ConfigError("Configuration root must be a mapping", details={"path": str(path)})

    merged = _merge(DEFAULT_CONFIG, config)
    if merged.get('store') not in VALID_STORES:
        raise ConfigError(
            f"Unknown store backend '{merged.get('store')}'",
            details={"valid": ", ".join(VALID_STORES)}
        )

    logger.info("Configuration loaded successfully")
    return merged


def save_config(config: Dict[str, Any], config_path: Optional[Union[str, Path]] = None) -> bool:
    """
    Save configuration to a YAML file, preserving keys not in `config`.

    Args:
        config: Configuration values to write
        config_path: Path to the YAML file (defaults to config.yaml)

    Returns:
        True if successful, False otherwise
    """
    path = Path(config_path or CONFIG_FILE)
    try:
        existing_config: Dict[str, Any] = {}
        if path.exists():
            with open(path, 'r') as f:
                existing_config = yaml.safe_load(f) or {}

        existing_config = _merge(existing_config, config)

        with open(path, 'w') as f:
            yaml.dump(existing_config, f, default_flow_style=False)

        logger.info("Configuration saved successfully")
        return True

    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error saving configuration: {e}", exc_info=True)
        return False
