"""
Service Manager Configuration — Load and validate servicemanager.yaml at startup.

Usage:
    from servicemanager.engine.config import load_config, get_config
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from servicemanager.engine.errors import ConfigError

CONFIG_FILENAME = "servicemanager.yaml"


# ---------------------------------------------------------------------------
# Pydantic models for servicemanager.yaml
# ---------------------------------------------------------------------------

class AppSection(BaseModel):
    name: str = "Service Manager"
    environment: str = "dev"

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        if v not in ("dev", "staging", "prod"):
            raise ValueError(f"environment must be dev/staging/prod, got '{v}'")
        return v


class RemoteConfig(BaseModel):
    """Where folder data comes from: the in-process simulation or an HTTP backend."""
    mode: str = "simulated"
    latency_seconds: float = 1.0
    failure_rate: float = 0.0
    base_url: str = "http://localhost:9100"
    timeout: float = 15
    headers: Dict[str, str] = Field(default_factory=dict)

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v: str) -> str:
        if v not in ("simulated", "http"):
            raise ValueError(f"remote mode must be simulated/http, got '{v}'")
        return v

    @field_validator("latency_seconds", "timeout")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"must be >= 0, got {v}")
        return v

    @field_validator("failure_rate")
    @classmethod
    def validate_failure_rate(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"failure_rate must be between 0 and 1, got {v}")
        return v


class SessionConfig(BaseModel):
    single_flight: bool = False


class LoggingConfig(BaseModel):
    level: str = "INFO"
    directory: str = ".servicemanager/logs"
    enabled: bool = True
    flush_interval_ms: int = 100
    flush_batch_size: int = 50


class ServiceManagerConfig(BaseModel):
    """Root model for servicemanager.yaml."""
    app: AppSection = AppSection()
    remote: RemoteConfig = RemoteConfig()
    session: SessionConfig = SessionConfig()
    logging: LoggingConfig = LoggingConfig()


# ---------------------------------------------------------------------------
# Config Loading Functions
# ---------------------------------------------------------------------------

_config: Optional[ServiceManagerConfig] = None


def _find_project_root() -> Path:
    """Find the project root by looking for servicemanager.yaml."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        if (parent / CONFIG_FILENAME).exists():
            return parent
    return current


def load_config(config_path: Optional[str] = None) -> ServiceManagerConfig:
    """
    Load and validate servicemanager.yaml.

    Args:
        config_path: Explicit path to the YAML file. If None, auto-discovers.

    Returns:
        Validated ServiceManagerConfig. Defaults when the file does not exist.

    Raises:
        ConfigError: the file is not valid YAML or fails validation.
    """
    global _config

    if config_path is None:
        config_path = str(_find_project_root() / CONFIG_FILENAME)

    path = Path(config_path)
    if not path.exists():
        _config = ServiceManagerConfig()
        return _config

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse {path}: {e}", path=str(path)) from e

    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level", path=str(path))

    try:
        _config = ServiceManagerConfig(**raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}", path=str(path)) from e
    return _config


def get_config() -> ServiceManagerConfig:
    """Get the currently loaded config, loading if necessary."""
    global _config
    if _config is None:
        _config = load_config()
    return _config
