"""
Payload mapper — turns UI parameters into the JSON bodies and query objects the
t0ggles API expects.

Pure functions, no I/O. Inclusion rules differ per operation:

    create   optional fields are sent only when truthy (pinToTop when present)
    update   clearable fields (assignedUserEmail, priority, startDate, dueDate)
             are sent whenever the key is present, "" meaning "clear";
             the rest only when truthy
    list     filters are sent when non-empty; descriptionType whenever set
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from t0ggles_node.engine.errors import ValidationError
from t0ggles_node.mapping.fields import (
    IDENTIFIER_BY_ID,
    IDENTIFIER_BY_KEY,
    Presence,
    TaskIdentifier,
    clean_tags,
    coerce_key,
    is_truthy,
    normalize_timestamp,
    parse_json_object,
    presence,
)

CLEARABLE_UPDATE_FIELDS = ("assignedUserEmail", "priority", "startDate", "dueDate")
DATE_FIELDS = ("startDate", "dueDate")

LIST_FILTER_KEYS = ("projectKey", "status", "assignedUserEmail", "tag", "startDate", "dueDate")
DEPENDENCY_FILTER_KEYS = ("projectKey", "taskId")

PARENT_NONE = "none"
PARENT_BY_ID = "parentId"
PARENT_BY_KEY = "parentProjectKeyAndKey"

DELETE_BY_ID = "id"
DELETE_BY_TASK_IDENTIFIERS = "taskIdentifiers"


def _properties(fields: Mapping[str, Any]) -> Dict[str, Any]:
    return parse_json_object(fields["propertiesJson"], "Properties JSON", "propertiesJson")


def _tags_into(payload: Dict[str, Any], fields: Mapping[str, Any]) -> None:
    tags = clean_tags(fields["tags"])
    if tags:
        payload["tags"] = tags


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

def map_create_task(
    title: str,
    project_key: str,
    description_type: str,
    description_content: str,
    additional_fields: Optional[Mapping[str, Any]] = None,
    subtasks: Optional[Iterable[Mapping[str, Any]]] = None,
) -> Dict[str, Any]:
    """
    Build one task for POST /tasks.

    Fields missing from additional_fields are omitted, never sent as null/"".
    Subtask entries use the same shape as a task entry (title, projectKey,
    descriptionType, descriptionContent, additionalFields) and are attached
    only when at least one is given.
    """
    fields = additional_fields or {}
    task: Dict[str, Any] = {
        "title": title,
        "projectKey": project_key,
        "descriptionType": description_type,
        "descriptionContent": description_content,
    }

    if is_truthy(fields, "status"):
        task["status"] = fields["status"]

    if is_truthy(fields, "assignedUserEmail"):
        task["assignedUserEmail"] = fields["assignedUserEmail"]

    if is_truthy(fields, "priority"):
        task["priority"] = fields["priority"]

    if "pinToTop" in fields:
        task["pinToTop"] = fields["pinToTop"]

    if is_truthy(fields, "tags"):
        _tags_into(task, fields)

    for name in DATE_FIELDS:
        if is_truthy(fields, name):
            task[name] = normalize_timestamp(fields[name], name)

    if is_truthy(fields, "propertiesJson"):
        task["properties"] = _properties(fields)

    mapped_subtasks = [map_task_entry(entry) for entry in (subtasks or [])]
    if mapped_subtasks:
        task["subtasks"] = mapped_subtasks

    return task


def map_task_entry(entry: Mapping[str, Any], allow_subtasks: bool = False) -> Dict[str, Any]:
    """Map one entry of the 'tasks.task' (or 'subtasks.subtask') collection."""
    subtasks: List[Mapping[str, Any]] = []
    if allow_subtasks:
        container = entry.get("subtasks")
        if isinstance(container, Mapping) and isinstance(container.get("subtask"), list):
            subtasks = container["subtask"]
    return map_create_task(
        entry.get("title", ""),
        entry.get("projectKey", ""),
        entry.get("descriptionType", "text"),
        entry.get("descriptionContent", ""),
        entry.get("additionalFields") or {},
        subtasks=subtasks,
    )


def map_update_task(
    identifier_kind: str,
    identifier_value: Mapping[str, Any],
    update_fields: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Build one task for PUT /tasks.

    identifier_kind "id" reads identifier_value["id"]; anything else reads
    identifier_value["projectKey"] and identifier_value["key"].
    """
    fields = update_fields or {}
    task: Dict[str, Any] = TaskIdentifier.from_parameters(identifier_kind, identifier_value).to_payload()

    for name in ("title", "descriptionType", "descriptionContent", "status"):
        if is_truthy(fields, name):
            task[name] = fields[name]

    for name in CLEARABLE_UPDATE_FIELDS:
        state = presence(fields, name)
        if state is Presence.ABSENT:
            continue
        if state is Presence.EMPTY:
            task[name] = ""
        elif name in DATE_FIELDS:
            task[name] = normalize_timestamp(fields[name], name)
        else:
            task[name] = fields[name]

    if "pinToTop" in fields:
        task["pinToTop"] = fields["pinToTop"]

    if is_truthy(fields, "tags"):
        _tags_into(task, fields)

    if is_truthy(fields, "propertiesJson"):
        task["properties"] = _properties(fields)

    task.update(map_parent(fields))
    return task


def map_parent(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Parent linkage for an update: clear, set by id, set by key pair, or untouched."""
    selector = fields.get("parentIdentifier")
    if not selector:
        return {}
    if selector == PARENT_NONE:
        return {"parentId": ""}
    if selector == PARENT_BY_ID:
        kind = IDENTIFIER_BY_ID
    elif selector == PARENT_BY_KEY:
        kind = IDENTIFIER_BY_KEY
    else:
        raise ValidationError(f"Unknown parent identifier: {selector!r}", field="parentIdentifier")
    return TaskIdentifier.from_parameters(kind, fields, prefix="parent").to_payload("parent")


def map_list_filters(filters: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Build the query string object for GET /tasks."""
    filters = filters or {}
    qs: Dict[str, Any] = {}

    for key in LIST_FILTER_KEYS:
        if presence(filters, key) is Presence.VALUE:
            qs[key] = filters[key]

    # Sent even when it equals the default "text"
    if is_truthy(filters, "descriptionType"):
        qs["descriptionType"] = filters["descriptionType"]

    for key in ("priority", "pinToTop"):
        if presence(filters, key) is Presence.VALUE:
            qs[key] = filters[key]

    if is_truthy(filters, "customPropertyFiltersJson"):
        parsed = parse_json_object(
            filters["customPropertyFiltersJson"],
            "Custom Property Filters JSON",
            "customPropertyFiltersJson",
        )
        qs.update(parsed)

    return qs


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def map_dependency_create(
    predecessor: TaskIdentifier,
    successor: TaskIdentifier,
    additional_fields: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Build the body for POST /dependencies. lagDays is kept when present, zero included."""
    fields = additional_fields or {}
    body: Dict[str, Any] = {}
    body.update(predecessor.to_payload("predecessor"))
    body.update(successor.to_payload("successor"))
    if "lagDays" in fields and fields["lagDays"] is not None and fields["lagDays"] != "":
        body["lagDays"] = coerce_key(fields["lagDays"], "lagDays")
    return body


def map_dependency_delete(
    mode: str,
    dependency_id: Optional[str] = None,
    predecessor: Optional[TaskIdentifier] = None,
    successor: Optional[TaskIdentifier] = None,
) -> Dict[str, Any]:
    """Build the body for DELETE /dependencies, by dependency id or by the two task identifiers."""
    if mode == DELETE_BY_ID:
        if not dependency_id:
            raise ValidationError("dependencyId is required", field="dependencyId")
        return {"id": dependency_id}

    if predecessor is None or successor is None:
        raise ValidationError("Both predecessor and successor are required to delete by task identifiers")
    body: Dict[str, Any] = {}
    body.update(predecessor.to_payload("predecessor"))
    body.update(successor.to_payload("successor"))
    return body


def map_dependency_list_filters(filters: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Build the query string object for GET /dependencies."""
    filters = filters or {}
    return {
        key: filters[key]
        for key in DEPENDENCY_FILTER_KEYS
        if presence(filters, key) is Presence.VALUE
    }
