"""
Configuration loading.

Configuration (in order of priority):
1. Config file: ~/.todoist-mcp/config.yaml
2. Environment: TODOIST_API_TOKEN, TODOIST_API_URL, TODOIST_CACHE_TTL,
   TODOIST_DRY_RUN

Config file example:
    api_token: ${TODOIST_TOKEN}
    cache_ttl: 30
    dry_run: false
"""

import os
from pathlib import Path

import yaml
from pydantic import BaseModel

from .errors import ConfigurationError

CONFIG_DIR = Path.home() / ".todoist-mcp"
CONFIG_FILE = CONFIG_DIR / "config.yaml"

DEFAULT_API_URL = "https://api.todoist.com/api/v1"
DEFAULT_CACHE_TTL = 30.0

TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    api_token: str
    api_url: str = DEFAULT_API_URL
    cache_ttl: float = DEFAULT_CACHE_TTL
    dry_run: bool = False


def _load_config() -> dict:
    """Load config from YAML file."""
    if not CONFIG_FILE.exists():
        return {}
    try:
        with open(CONFIG_FILE, "r") as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Malformed config file: {e}")
    if not isinstance(config, dict):
        raise ConfigurationError(f"Malformed config file: expected a mapping in {CONFIG_FILE}")
    return config


def _resolve_token(token: str) -> str:
    """Support env var references: ${VAR_NAME}"""
    if token.startswith("${") and token.endswith("}"):
        env_var = token[2:-1]
        resolved = os.environ.get(env_var)
        if not resolved:
            raise ConfigurationError(f"Environment variable {env_var} not set for api_token")
        return resolved
    return token


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUTHY


def get_settings() -> Settings:
    """Build settings from the config file, falling back to environment variables."""
    config = _load_config()

    token = config.get("api_token") or os.environ.get("TODOIST_API_TOKEN", "")
    if not token:
        raise ConfigurationError(
            "No Todoist API token configured. Set TODOIST_API_TOKEN or add api_token "
            f"to {CONFIG_FILE}. Get your token at "
            "https://app.todoist.com/app/settings/integrations/developer"
        )

    api_url = config.get("api_url") or os.environ.get("TODOIST_API_URL") or DEFAULT_API_URL

    cache_ttl = config.get("cache_ttl", os.environ.get("TODOIST_CACHE_TTL", DEFAULT_CACHE_TTL))
    try:
        cache_ttl = float(cache_ttl)
    except (TypeError, ValueError):
        raise ConfigurationError(f"cache_ttl must be a number of seconds, got {cache_ttl!r}")

    dry_run = config.get("dry_run", os.environ.get("TODOIST_DRY_RUN", False))

    return Settings(
        api_token=_resolve_token(str(token)),
        api_url=str(api_url).rstrip("/"),
        cache_ttl=cache_ttl,
        dry_run=_as_bool(dry_run),
    )
