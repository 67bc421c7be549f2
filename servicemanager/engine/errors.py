"""
Service Manager Error Hierarchy — Structured exceptions surfaced as status messages.

Every error carries a message plus keyword context, and serializes to a
JSON-compatible dict for the structured event log.

Hierarchy:
    ServiceManagerError
    ├── ValidationError    — Required form field empty or whitespace
    ├── RemoteFailure      — Remote folder call failed (simulated or real I/O)
    ├── SessionBusyError   — Operation rejected while another is in flight
    └── ConfigError        — Invalid servicemanager.yaml
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class ServiceManagerError(Exception):
    """
    Base error for all Service Manager failures.
    Context keywords are kept verbatim and serialized with str().
    """

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.error_type: str = self.__class__.__name__
        self.operation: Optional[str] = context.get("operation")
        self.context: Dict[str, Any] = context
        self.timestamp: str = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error to a JSON-compatible dict for logging."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "operation": self.operation,
            "timestamp": self.timestamp,
            "context": {
                k: str(v) for k, v in self.context.items()
                if k != "operation"
            },
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    def __repr__(self) -> str:
        parts = [f"{self.error_type}: {self.message}"]
        if self.operation:
            parts.append(f"operation={self.operation}")
        return " | ".join(parts)


class ValidationError(ServiceManagerError):
    """
    A required field was empty after trimming.
    Raised before any remote call is made.
    """

    def __init__(self, message: str, **context: Any):
        self.fields: list = list(context.get("fields", []))
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["fields"] = self.fields
        return d


class RemoteFailure(ServiceManagerError):
    """Remote folder call failed (transport error, HTTP status, bad payload)."""

    def __init__(self, message: str, **context: Any):
        self.status_code: Optional[int] = context.get("status_code")
        self.folder_id: Optional[str] = context.get("folder_id")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["status_code"] = self.status_code
        d["folder_id"] = self.folder_id
        return d


class SessionBusyError(ServiceManagerError):
    """Async operation rejected because the session is busy (single-flight mode)."""
    pass


class ConfigError(ServiceManagerError):
    """Configuration error — invalid servicemanager.yaml."""

    def __init__(self, message: str, **context: Any):
        self.path: Optional[str] = context.get("path")
        super().__init__(message, **context)
