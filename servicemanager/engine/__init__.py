"""Service Manager Engine — Configuration, errors, structured logging."""

from servicemanager.engine.config import ServiceManagerConfig, get_config, load_config  # noqa: F401
from servicemanager.engine.errors import (  # noqa: F401
    ConfigError,
    RemoteFailure,
    ServiceManagerError,
    SessionBusyError,
    ValidationError,
)

__all__ = [
    "ServiceManagerConfig",
    "get_config",
    "load_config",
    "ServiceManagerError",
    "ValidationError",
    "RemoteFailure",
    "SessionBusyError",
    "ConfigError",
]
