"""
t0ggles node Error Hierarchy — Structured exceptions surfaced to the workflow host.

All errors carry execution_id for end-to-end tracing, and item_index when the
failure can be attributed to one input item. Serializable via to_dict() so the
host can store or render them without knowing the concrete type.

Hierarchy:
    T0gglesError
    ├── ValidationError            — Bad JSON text, bad date/key, empty batch
    ├── AuthenticationError        — Missing API key / unreadable credentials
    ├── RemoteApiError             — Transport failure or non-2xx response
    ├── UnsupportedOperationError  — Unknown resource/operation combination
    └── ConfigError                — Invalid t0ggles.yaml
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class T0gglesError(Exception):
    """
    Base error for all node failures.
    Structured for the host — all context serializable to JSON.
    """

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.execution_id: Optional[str] = context.get("execution_id")
        self.item_index: Optional[int] = context.get("item_index")
        self.resource: Optional[str] = context.get("resource")
        self.operation: Optional[str] = context.get("operation")
        self.error_type: str = self.__class__.__name__
        self.context: Dict[str, Any] = context
        self.timestamp: str = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def with_context(self, **context: Any) -> "T0gglesError":
        """Attach routing context (item index, execution id) without losing existing keys."""
        for key, value in context.items():
            if value is None or self.context.get(key) is not None:
                continue
            self.context[key] = value
            if key in ("execution_id", "item_index", "resource", "operation"):
                setattr(self, key, value)
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error to a JSON-compatible dict for logging and error records."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "execution_id": self.execution_id,
            "item_index": self.item_index,
            "resource": self.resource,
            "operation": self.operation,
            "timestamp": self.timestamp,
            "context": {
                k: str(v) for k, v in self.context.items()
                if k not in ("execution_id", "item_index", "resource", "operation")
            },
        }

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    def __repr__(self) -> str:
        parts = [f"{self.error_type}: {self.message}"]
        if self.item_index is not None:
            parts.append(f"item_index={self.item_index}")
        if self.execution_id:
            parts.append(f"execution_id={self.execution_id}")
        return " | ".join(parts)


class ValidationError(T0gglesError):
    """
    Parameter validation failed (malformed JSON text, non-object JSON,
    unparseable date, non-integer key, empty batch).
    """

    def __init__(self, message: str, **context: Any):
        self.field: Optional[str] = context.get("field")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["field"] = self.field
        return d


class AuthenticationError(T0gglesError):
    """No API key configured, or the credential store could not be read."""

    def __init__(self, message: str, **context: Any):
        self.credential_name: Optional[str] = context.get("credential_name")
        super().__init__(message, **context)


class RemoteApiError(T0gglesError):
    """The t0ggles API call failed in transport or returned a non-success status."""

    def __init__(self, message: str, **context: Any):
        self.status_code: Optional[int] = context.get("status_code")
        self.response_body: Any = context.get("response_body")
        self.method: Optional[str] = context.get("method")
        self.url: Optional[str] = context.get("url")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["status_code"] = self.status_code
        d["response_body"] = self.response_body
        d["method"] = self.method
        d["url"] = self.url
        return d


class UnsupportedOperationError(T0gglesError):
    """Resource/operation combination not implemented."""
    pass


class ConfigError(T0gglesError):
    """Configuration error — unreadable or invalid t0ggles.yaml."""
    pass
