"""
Parameter source — how the router reads UI parameters.

The host supplies parameter values per input item; a missing value falls back
to the caller's default. Dotted names walk into collections
("tasks.task" → params["tasks"]["task"]).
"""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

_MISSING = object()


class ParameterSource(Protocol):
    """Anything the router can read parameters from."""

    @property
    def item_count(self) -> int: ...

    def get(self, name: str, item_index: int = 0, default: Any = None) -> Any: ...


def _lookup(data: Mapping[str, Any], dotted: str) -> Any:
    current: Any = data
    for part in dotted.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return _MISSING
        current = current[part]
    return current


class ItemParameters:
    """
    In-memory ParameterSource.

    node_parameters apply to every item; per_item[i] overrides them for item i.
    At least one item always exists so node-level operations can read index 0.

    Usage:
        params = ItemParameters(
            {"resource": "task", "operation": "create"},
            per_item=[{"tasks": {"task": [...]}}, {"tasks": {"task": [...]}}],
        )
        params.get("tasks.task", 1, [])
    """

    def __init__(
        self,
        node_parameters: Optional[Mapping[str, Any]] = None,
        per_item: Optional[Sequence[Mapping[str, Any]]] = None,
    ):
        self._node = dict(node_parameters or {})
        self._items: List[Dict[str, Any]] = [dict(p) for p in (per_item or [])] or [{}]

    @property
    def item_count(self) -> int:
        return len(self._items)

    def get(self, name: str, item_index: int = 0, default: Any = None) -> Any:
        if item_index < 0 or item_index >= len(self._items):
            raise IndexError(f"Item index {item_index} out of range (items: {len(self._items)})")

        value = _lookup(self._items[item_index], name)
        if value is _MISSING:
            value = _lookup(self._node, name)
        if value is _MISSING or value is None:
            return default
        # Callers may mutate what they get back
        return copy.deepcopy(value)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ItemParameters":
        """Build from {"parameters": {...}, "items": [{...}, ...]}."""
        return cls(data.get("parameters") or {}, data.get("items") or [])
