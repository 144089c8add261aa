"""Configuration loader for product-describer."""
import logging
import os
from pathlib import Path
from typing import Any, Dict

import yaml

from .preferences import get_preference

logger = logging.getLogger(__name__)

PLATFORM_DEFAULTS = {
    "base_url": "https://api.stripe.com",
    "timeout": 10,
}

GENERATION_DEFAULTS = {
    "base_url": "https://api.openai.com/v1",
    "model": "gpt-3.5-turbo",
    "max_tokens": 100,
    "timeout": 30,
}


def default_config_path() -> Path:
    return Path.home() / ".config" / "product-describer" / "config.yml"


def _get_config_path() -> str:
    """
    Get config file path using XDG Base Directory standard.

    Priority order:
    1. User preference (stored in ~/.config/product-describer/preferences.json)
    2. Default location: ~/.config/product-describer/config.yml

    Returns:
        Absolute path to config file

    Raises:
        FileNotFoundError: If config file doesn't exist in any location
    """
    config_path_pref = get_preference("config_path")
    if config_path_pref:
        config_path = Path(config_path_pref)
        if config_path.exists():
            logger.info(f"Using config from preference: {config_path}")
            return str(config_path)
        logger.warning(f"Config path from preference doesn't exist: {config_path}")

    default_config = default_config_path()
    if default_config.exists():
        logger.info(f"Using default config location: {default_config}")
        return str(default_config)

    raise FileNotFoundError(
        "Configuration file not found. Please set up your config file using one of these methods:\n\n"
        "1. Use the default location:\n"
        f"   mkdir -p {default_config.parent}\n"
        f"   cp /path/to/your/config.yml {default_config}\n\n"
        "2. Point to an existing config file:\n"
        "   product-describer config set-path /path/to/your/config.yml\n\n"
        "3. Run interactive setup:\n"
        "   product-describer config init\n"
    )


class ConfigError(Exception):
    """Configuration error exception."""
    pass


def _validate_authentication(auth: Any, config_path: str) -> None:
    if not isinstance(auth, dict) or 'type' not in auth:
        raise ConfigError("Missing 'authentication.type' in config")

    if auth['type'] != 'service_account':
        raise ConfigError(
            f"Unsupported authentication type: {auth['type']}\n"
            f"Only 'service_account' is supported."
        )

    service_account_path = auth.get('service_account_path')
    if not service_account_path:
        raise ConfigError(
            "Missing 'authentication.service_account_path' in config\n"
            "Please specify the absolute path to your service account JSON file."
        )

    if not os.path.exists(service_account_path):
        raise ConfigError(
            f"Service account file not found at: {service_account_path}\n"
            f"Please ensure the file exists or update the path in {config_path}"
        )

    if not os.path.isfile(service_account_path):
        raise ConfigError(f"Service account path is not a file: {service_account_path}")


def _with_defaults(section: Any, defaults: Dict[str, Any], name: str) -> Dict[str, Any]:
    if section is None:
        section = {}
    if not isinstance(section, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")
    merged = dict(defaults)
    merged.update(section)
    return merged


def _require_positive(section: Dict[str, Any], key: str, name: str) -> None:
    value = section[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"'{name}.{key}' must be a positive number, got: {value!r}")


def load_config() -> Dict[str, Any]:
    """
    Load and validate configuration from YAML file.

    Returns:
        Dict containing configuration with keys:
        - platform: api_key_secret, base_url, timeout
        - generation: base_url, model, max_tokens, timeout
        - gcp, authentication, host: passed through when present

    Raises:
        FileNotFoundError: If no config file can be located
        ConfigError: If config file is invalid
    """
    # Resolved on every call so a changed preference takes effect immediately
    config_path = _get_config_path()

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    if not config:
        raise ConfigError(f"Config file at {config_path} is empty")

    if not isinstance(config, dict):
        raise ConfigError(f"Config file at {config_path} must contain a mapping")

    platform = _with_defaults(config.get('platform'), PLATFORM_DEFAULTS, 'platform')
    if not platform.get('api_key_secret'):
        raise ConfigError(
            f"Missing 'platform.api_key_secret' in config at {config_path}\n"
            f"Required format:\n"
            f"platform:\n"
            f"  api_key_secret: STRIPE_API_KEY"
        )
    _require_positive(platform, 'timeout', 'platform')
    config['platform'] = platform

    generation = _with_defaults(config.get('generation'), GENERATION_DEFAULTS, 'generation')
    _require_positive(generation, 'max_tokens', 'generation')
    _require_positive(generation, 'timeout', 'generation')
    config['generation'] = generation

    if 'authentication' in config:
        _validate_authentication(config['authentication'], config_path)

    config['host'] = _with_defaults(config.get('host'), {}, 'host')

    logger.info(f"Configuration loaded successfully from {config_path}")
    logger.debug(f"Using platform API at: {platform['base_url']}")
    logger.debug(f"Using generation model: {generation['model']}")

    return config
