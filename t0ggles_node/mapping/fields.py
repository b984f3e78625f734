"""
Field helpers shared by the payload mappers.

Presence is tracked as a tri-state (ABSENT / EMPTY / VALUE) so update payloads
can tell "leave unchanged" (key absent) from "clear" (key present, empty).
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from t0ggles_node.engine.errors import ValidationError

IDENTIFIER_BY_ID = "id"
IDENTIFIER_BY_KEY = "projectKeyAndKey"


class Presence(enum.Enum):
    ABSENT = "absent"
    EMPTY = "empty"
    VALUE = "value"


def presence(fields: Mapping[str, Any], name: str) -> Presence:
    """Classify a parameter: missing key, present-but-empty, or carrying a value."""
    if name not in fields:
        return Presence.ABSENT
    value = fields[name]
    if value is None or value == "":
        return Presence.EMPTY
    return Presence.VALUE


def is_truthy(fields: Mapping[str, Any], name: str) -> bool:
    """True when the parameter is present with a truthy value."""
    return bool(fields.get(name))


def prefixed(prefix: str, name: str) -> str:
    """prefixed("predecessor", "projectKey") -> "predecessorProjectKey"."""
    if not prefix:
        return name
    return prefix + name[0].upper() + name[1:]


def normalize_timestamp(value: Any, field: str) -> str:
    """
    Normalize a date/datetime input to UTC ISO-8601 with milliseconds and a Z suffix.

    Accepts datetime/date objects, ISO strings and epoch milliseconds.
    Naive values are taken as UTC.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            dt = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise ValidationError(f"Invalid date for {field}: {value!r}", field=field)
    else:
        text = str(value).strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"Invalid date for {field}: {value!r}", field=field)

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def clean_tags(value: Any) -> List[str]:
    """Split comma-separated tags, trim each and drop empties. Order and duplicates are kept."""
    if isinstance(value, str):
        parts = value.split(",")
    elif isinstance(value, (list, tuple)):
        parts = [str(part) for part in value]
    else:
        raise ValidationError(f"Tags must be a comma-separated string or a list, got {value!r}", field="tags")
    return [tag.strip() for tag in parts if tag.strip() != ""]


def parse_json_object(text: Any, label: str, field: str) -> Dict[str, Any]:
    """Parse JSON text that must define an object."""
    if isinstance(text, dict):
        return dict(text)
    try:
        parsed = json.loads(text)
    except (TypeError, ValueError):
        raise ValidationError(f"Could not parse {label}. Ensure it is valid JSON.", field=field)
    if not isinstance(parsed, dict):
        raise ValidationError(f"{label} must define an object.", field=field)
    return parsed


def coerce_key(value: Any, field: str) -> int:
    """Task keys are integers; accept ints and integral strings/floats."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer, got {value!r}", field=field)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValidationError(f"{field} must be an integer, got {value!r}", field=field)


@dataclass(frozen=True)
class TaskIdentifier:
    """
    Reference to a task: either an opaque id or a projectKey + key pair.

    Exactly one variant is set. Use by_id() / by_key() / from_parameters()
    rather than the constructor where possible.
    """

    id: Optional[str] = None
    project_key: Optional[str] = None
    key: Optional[int] = None

    def __post_init__(self) -> None:
        has_id = bool(self.id)
        has_pair = bool(self.project_key) or self.key is not None
        if has_id == has_pair:
            raise ValidationError(
                "A task identifier needs either an id or a project key and key, not both"
                if has_id else
                "A task identifier needs either an id or a project key and key",
            )
        if has_pair and (not self.project_key or self.key is None):
            raise ValidationError("A project key and key must be given together")

    @classmethod
    def by_id(cls, task_id: str) -> "TaskIdentifier":
        return cls(id=str(task_id))

    @classmethod
    def by_key(cls, project_key: str, key: Any) -> "TaskIdentifier":
        return cls(project_key=project_key, key=coerce_key(key, "key"))

    @classmethod
    def from_parameters(
        cls,
        kind: str,
        values: Mapping[str, Any],
        prefix: str = "",
    ) -> "TaskIdentifier":
        """
        Build from UI parameters. kind "id" reads <prefix>Id; any other kind
        reads <prefix>ProjectKey and <prefix>Key.
        """
        if kind == IDENTIFIER_BY_ID:
            id_field = prefixed(prefix, "id")
            task_id = values.get(id_field)
            if not task_id:
                raise ValidationError(f"{id_field} is required", field=id_field)
            return cls(id=str(task_id))

        pk_field = prefixed(prefix, "projectKey")
        key_field = prefixed(prefix, "key")
        project_key = values.get(pk_field)
        if not project_key:
            raise ValidationError(f"{pk_field} is required", field=pk_field)
        raw_key = values.get(key_field)
        if raw_key is None or raw_key == "":
            raise ValidationError(f"{key_field} is required", field=key_field)
        return cls(project_key=str(project_key), key=coerce_key(raw_key, key_field))

    def to_payload(self, prefix: str = "") -> Dict[str, Any]:
        """{"id"} or {"projectKey", "key"}, each name prefixed when prefix is given."""
        if self.id:
            return {prefixed(prefix, "id"): self.id}
        return {
            prefixed(prefix, "projectKey"): self.project_key,
            prefixed(prefix, "key"): self.key,
        }
