"""
t0ggles node Configuration — Load and validate t0ggles.yaml at startup.

Usage:
    from t0ggles_node.engine.config import load_node_config, get_node_config
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, field_validator

from t0ggles_node.engine.errors import ConfigError

CONFIG_FILENAME = "t0ggles.yaml"
DEFAULT_BASE_URL = "https://t0ggles.com/api/v1"


# ---------------------------------------------------------------------------
# Pydantic models for t0ggles.yaml
# ---------------------------------------------------------------------------

class ApiConfig(BaseModel):
    base_url: str = DEFAULT_BASE_URL
    timeout: int = 30
    log_payload: bool = False

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class CredentialsConfig(BaseModel):
    store_path: str = ".t0ggles/credentials.json"
    env_var: str = "T0GGLES_API_KEY"


class LogAsyncQueueConfig(BaseModel):
    flush_interval_ms: int = 100
    flush_batch_size: int = 50
    max_queue_size: int = 10000


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "json"
    directory: str = ".t0ggles/logs"
    async_queue: LogAsyncQueueConfig = LogAsyncQueueConfig()

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"level must be a standard logging level, got '{v}'")
        return v


class NodeConfig(BaseModel):
    """Root model for t0ggles.yaml."""
    name: str = "t0ggles"
    version: str = "1.0.0"
    environment: str = "dev"

    api: ApiConfig = ApiConfig()
    credentials: CredentialsConfig = CredentialsConfig()
    logging: LoggingConfig = LoggingConfig()

    # Per-environment base_url overrides, e.g. {"staging": "https://staging.t0ggles.com/api/v1"}
    environment_overrides: Dict[str, str] = {}

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        if v not in ("dev", "staging", "prod"):
            raise ValueError(f"environment must be dev/staging/prod, got '{v}'")
        return v

    @property
    def base_url(self) -> str:
        """API base URL with the current environment's override applied."""
        override = self.environment_overrides.get(self.environment)
        return override.rstrip("/") if override else self.api.base_url


# ---------------------------------------------------------------------------
# Config Loading Functions
# ---------------------------------------------------------------------------

_node_config: Optional[NodeConfig] = None


def _find_project_root() -> Path:
    """Find the project root by looking for t0ggles.yaml."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        if (parent / CONFIG_FILENAME).exists():
            return parent
    return current


def load_node_config(config_path: Optional[str] = None) -> NodeConfig:
    """
    Load and validate t0ggles.yaml.

    Args:
        config_path: Explicit path to t0ggles.yaml. If None, auto-discovers.

    Returns:
        Validated NodeConfig instance.
    """
    global _node_config

    if config_path is None:
        config_path = os.environ.get("T0GGLES_CONFIG") or str(_find_project_root() / CONFIG_FILENAME)

    path = Path(config_path)
    if not path.exists():
        _node_config = NodeConfig()
        return _node_config

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse {path}: {e}", config_path=str(path)) from e

    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level", config_path=str(path))

    # Flatten the top-level "node" key if present
    node_data = raw.get("node", {}) or {}
    config_data = {
        "name": node_data.get("name", raw.get("name", "t0ggles")),
        "version": node_data.get("version", raw.get("version", "1.0.0")),
        "environment": node_data.get("environment", raw.get("environment", "dev")),
        "api": raw.get("api", {}) or {},
        "credentials": raw.get("credentials", {}) or {},
        "logging": raw.get("logging", {}) or {},
        "environment_overrides": raw.get("environment_overrides", {}) or {},
    }

    _node_config = NodeConfig(**config_data)
    return _node_config


def get_node_config() -> NodeConfig:
    """Get the currently loaded node config, loading if necessary."""
    global _node_config
    if _node_config is None:
        _node_config = load_node_config()
    return _node_config
