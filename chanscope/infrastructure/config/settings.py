"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
YAML configuration file (~/.chanscope/config.yaml).
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from chanscope.domain.models.common import BackoffPolicy

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".chanscope"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "CHANSCOPE_"
DEFAULT_API_BASE_URL = "https://api.warpcast.com"
DEFAULT_GRAPH_BASE_URL = "https://graph.cast.k3l.io"

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flattens nested YAML mappings into dotted keys ('cache': {'ttl_seconds': 1} -> 'cache.ttl_seconds')."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        full_key = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, prefix=f"{full_key}."))
        else:
            flat[full_key] = value
    return flat


def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values passed to get_config

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
    """
    global _config, _loaded
    if _loaded:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. YAML file (lowest priority)
    if config_file.exists():
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(_flatten(yaml_config))
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a mapping.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. .env file; override=False so real environment variables win
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("No .env file found at or above the current directory.")

    _loaded = True
    logger.debug("Configuration loading process completed.")


def reset_configuration() -> None:
    """Forgets loaded configuration so the next load_configuration re-reads sources."""
    global _config, _loaded
    _config = {}
    _loaded = False


def _env_names(key: str) -> tuple:
    base = key.upper().replace(".", "_")
    return (f"{ENV_PREFIX}{base}", base)


def get_config(key: str, default: Any = None) -> Any:
    """Get a configuration value by dotted key.

    Priority:
    1. Test configuration
    2. Environment variable (CHANSCOPE_CACHE_TTL_SECONDS, then CACHE_TTL_SECONDS), as a raw string
    3. YAML config
    4. Default value
    """
    if key in _test_config:
        return _test_config[key]

    for env_name in _env_names(key):
        if env_name in os.environ:
            return os.environ[env_name]

    if key in _config:
        return _config[key]

    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


def _get_number(key: str, default: float, cast: type) -> Any:
    """Numeric accessors are the only place config values get coerced."""
    value = get_config(key, default)
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
    try:
        return cast(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid value for '{key}': {value!r}. Using default {default!r}.")
        return default


# --- Convenience Functions ---

def get_api_base_url() -> str:
    return str(get_config("warpcast.base_url", DEFAULT_API_BASE_URL)).rstrip("/")


def get_graph_base_url() -> str:
    return str(get_config("graph.base_url", DEFAULT_GRAPH_BASE_URL)).rstrip("/")


def get_api_token() -> Optional[str]:
    """Optional pre-issued bearer token (WARPCAST_API_TOKEN). Tokens are never minted here."""
    token = get_config("warpcast.api_token")
    return str(token) if token else None


def get_cache_ttl_seconds() -> float:
    return _get_number("cache.ttl_seconds", 300, float)


def get_retry_max_attempts() -> int:
    return _get_number("retry.max_attempts", 3, int)


def get_retry_base_delay() -> float:
    return _get_number("retry.base_delay_seconds", 1.0, float)


def get_retry_backoff() -> BackoffPolicy:
    return BackoffPolicy(max_attempts=get_retry_max_attempts(), base_delay=get_retry_base_delay())


def get_max_pages() -> int:
    return _get_number("pagination.max_pages", 100, int)


def get_page_limit() -> Optional[int]:
    return _get_number("pagination.limit", None, int)


def get_membership_concurrency() -> int:
    return _get_number("membership.max_concurrency", 10, int)


def get_http_timeout() -> float:
    return _get_number("http.timeout_seconds", 10.0, float)


def get_request_timeout() -> Optional[float]:
    """Overall deadline for one caller request, or None for no deadline."""
    return _get_number("request.timeout_seconds", None, float)


def get_rate_limit() -> Optional[int]:
    """Client-side requests per minute, or None to disable pacing."""
    return _get_number("rate_limit.requests_per_minute", None, int)


def get_frames_top_fids() -> int:
    return _get_number("frames.top_fids", 20, int)


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """Set configuration values that override every other source."""
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
