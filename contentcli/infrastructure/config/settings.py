"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
configuration file (~/.contentcli/config.yaml).
"""

import dataclasses
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from contentcli.domain.models.throttling import DEFAULT_SERVICE_CONFIGS, ServiceConfig

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".contentcli"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
DEFAULT_CACHE_DIR = DEFAULT_CONFIG_DIR / "cache"
ENV_FILE_NAME = ".env"

# ServiceConfig fields that may be overridden through rate_limits.<service>.<field>
RATE_LIMIT_FIELDS = (
    "max_requests",
    "window_seconds",
    "backoff_multiplier",
    "max_backoff_seconds",
    "max_retries",
    "timeout_seconds",
    "base_backoff_seconds",
    "jitter_seconds",
)

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values passed to get_config()

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
    """
    global _config, _loaded
    if _loaded:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. Load from YAML file (Lowest priority)
    if config_file.exists():
        try:
            with open(config_file, "r") as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(yaml_config)
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. Load from .env file (Medium priority)
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        # override=False: ENV VARS take precedence
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("Skipping .env file loading (no .env found).")

    # 3. Environment Variables (Highest priority) are handled in get_config

    _loaded = True
    logger.info("Configuration loading process completed.")


def reset_configuration() -> None:
    """Forgets loaded configuration so load_configuration() reads again."""
    global _config, _loaded
    _config = {}
    _loaded = False


def _coerce_env_value(value: str) -> Any:
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False
    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


def _lookup_yaml(key: str) -> Any:
    """Finds a key in the YAML config, either flat or as a dotted path into nested dicts."""
    if key in _config:
        return _config[key]
    node: Any = _config
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration (if in testing mode)
    2. Environment variable (key upper-cased, dots replaced by underscores)
    3. YAML config
    4. Default value

    Args:
        key: The configuration key (e.g. 'rate_limits.llm.max_requests')
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = key.upper().replace(".", "_")
    if env_key in os.environ:
        return _coerce_env_value(os.environ[env_key])

    value = _lookup_yaml(key)
    if value is not None:
        return value

    logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


# --- Convenience Functions ---

def _get_str(*keys: str) -> Optional[str]:
    for key in keys:
        value = get_config(key)
        if value:
            return str(value)
    return None


def get_openai_api_key() -> Optional[str]:
    """Convenience function to get the OpenAI API key."""
    return _get_str("OPENAI_API_KEY", "openai.api_key")


def get_openai_base_url() -> Optional[str]:
    """Base URL of an OpenAI-compatible endpoint. None targets OpenAI itself."""
    return _get_str("OPENAI_BASE_URL", "openai.base_url")


def get_groq_api_key() -> Optional[str]:
    """Convenience function to get the Groq API key."""
    return _get_str("GROQ_API_KEY", "groq.api_key")


def get_serpapi_key() -> Optional[str]:
    """Convenience function to get the SerpAPI key."""
    return _get_str("SERPAPI_KEY", "serpapi.api_key")


def get_reddit_user_agent() -> str:
    return _get_str("REDDIT_USER_AGENT", "reddit.user_agent") or "contentcli/0.1"


def get_default_provider() -> str:
    """Gets the default AI provider ('openai' or 'groq')."""
    provider = get_config("ai.default_provider", "openai")
    return str(provider) if provider is not None else "openai"


def get_default_model(provider: Optional[str] = None) -> Optional[str]:
    """Gets the default model for a given provider."""
    selected_provider = provider or get_default_provider()
    model = get_config(f"ai.{selected_provider}.default_model")
    return str(model) if model is not None else None


def get_cache_dir() -> Path:
    cache_dir = get_config("cache.dir")
    return Path(cache_dir).expanduser() if cache_dir else DEFAULT_CACHE_DIR


def get_cache_enabled() -> bool:
    flag = get_config("cache.enabled", True)
    if isinstance(flag, str):
        return flag.lower() not in ("false", "0", "no")
    return bool(flag)


def get_rate_limit_configs() -> List[ServiceConfig]:
    """Default service limits with any rate_limits.<service>.<field> overrides applied.

    Services that only appear in the YAML 'rate_limits' section are added too;
    they must at least define max_requests and window_seconds.
    """
    service_names = list(DEFAULT_SERVICE_CONFIGS)
    yaml_limits = _lookup_yaml("rate_limits")
    if isinstance(yaml_limits, dict):
        service_names.extend(name for name in yaml_limits if name not in service_names)

    configs = []
    for name in service_names:
        overrides = {}
        for field_name in RATE_LIMIT_FIELDS:
            value = get_config(f"rate_limits.{name}.{field_name}")
            if value is not None:
                overrides[field_name] = value

        base = DEFAULT_SERVICE_CONFIGS.get(name)
        try:
            if base is None:
                configs.append(ServiceConfig(name=name, **overrides))
            else:
                configs.append(dataclasses.replace(base, **overrides) if overrides else base)
        except (TypeError, ValueError) as e:
            logger.error(f"Invalid rate limit configuration for '{name}': {e}. Using defaults.")
            if base is not None:
                configs.append(base)
    return configs


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")


# Load configuration when the module is imported
load_configuration()
