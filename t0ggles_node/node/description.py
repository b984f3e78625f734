"""
t0ggles node description — resources, operations and the recognised values of
every enumerated parameter.

This is configuration, not behaviour: the host renders it however it likes,
the router consults it to decide whether a resource/operation pair exists and
which HTTP method/endpoint serves it.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from t0ggles_node.engine.credentials import CREDENTIAL_NAME


@dataclass(frozen=True)
class Option:
    name: str
    value: Any


@dataclass(frozen=True)
class FieldSpec:
    """One UI parameter. type is string | options | boolean | dateTime | number | collection | fixedCollection."""

    name: str
    display_name: str
    type: str = "string"
    default: Any = ""
    required: bool = False
    description: str = ""
    options: Tuple[Option, ...] = ()
    children: Tuple["FieldSpec", ...] = ()
    multiple: bool = False
    show_when: Optional[Dict[str, Tuple[str, ...]]] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "name": self.name,
            "displayName": self.display_name,
            "type": self.type,
            "default": copy.deepcopy(self.default),
        }
        if self.required:
            d["required"] = True
        if self.description:
            d["description"] = self.description
        if self.options:
            d["options"] = [{"name": o.name, "value": o.value} for o in self.options]
        if self.children:
            d["values"] = [c.to_dict() for c in self.children]
        if self.multiple:
            d["multipleValues"] = True
        if self.show_when:
            d["displayOptions"] = {"show": {k: list(v) for k, v in self.show_when.items()}}
        return d


@dataclass(frozen=True)
class OperationSpec:
    resource: str
    value: str
    display_name: str
    action: str
    method: str
    endpoint: str
    parameters: Tuple[FieldSpec, ...] = ()
    # Parameters read once per input item (batched) vs. once for the node
    per_item: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.display_name,
            "value": self.value,
            "action": self.action,
            "method": self.method,
            "endpoint": self.endpoint,
            "perItem": self.per_item,
            "parameters": [p.to_dict() for p in self.parameters],
        }


@dataclass(frozen=True)
class NodeDescription:
    name: str
    display_name: str
    description: str
    version: int
    credential_name: str
    operations: Tuple[OperationSpec, ...] = field(default_factory=tuple)

    @property
    def resources(self) -> List[str]:
        seen: List[str] = []
        for op in self.operations:
            if op.resource not in seen:
                seen.append(op.resource)
        return seen

    def operations_for(self, resource: str) -> List[OperationSpec]:
        return [op for op in self.operations if op.resource == resource]

    def get_operation(self, resource: str, operation: str) -> Optional[OperationSpec]:
        for op in self.operations:
            if op.resource == resource and op.value == operation:
                return op
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "displayName": self.display_name,
            "description": self.description,
            "version": self.version,
            "credentials": [{"name": self.credential_name, "required": True}],
            "resources": {
                resource: [op.to_dict() for op in self.operations_for(resource)]
                for resource in self.resources
            },
        }


# ---------------------------------------------------------------------------
# Enumerated values
# ---------------------------------------------------------------------------

DESCRIPTION_TYPES = (
    Option("HTML", "html"),
    Option("Markdown", "markdown"),
    Option("Text", "text"),
)

PRIORITIES = (
    Option("High", "high"),
    Option("Low", "low"),
    Option("Medium", "medium"),
)

# "Any" / "None" are the empty string: excluded from filters, clears on update
PRIORITY_FILTERS = (Option("Any", ""),) + PRIORITIES
PRIORITY_UPDATES = (Option("None (Clear)", ""),) + PRIORITIES

PIN_TO_TOP_FILTERS = (
    Option("Any", ""),
    Option("False", "false"),
    Option("True", "true"),
)

IDENTIFIER_KINDS = (
    Option("ID", "id"),
    Option("Project Key and Key", "projectKeyAndKey"),
)

PARENT_IDENTIFIERS = (
    Option("Remove Parent", "none"),
    Option("Parent ID", "parentId"),
    Option("Parent Project Key and Key", "parentProjectKeyAndKey"),
)

DELETE_MODES = (
    Option("Dependency ID", "id"),
    Option("Task Identifiers", "taskIdentifiers"),
)


# ---------------------------------------------------------------------------
# Parameter groups
# ---------------------------------------------------------------------------

def _task_additional_fields() -> FieldSpec:
    return FieldSpec(
        "additionalFields", "Additional Fields", type="collection", default={},
        children=(
            FieldSpec("assignedUserEmail", "Assigned User Email"),
            FieldSpec("dueDate", "Due Date", type="dateTime"),
            FieldSpec("pinToTop", "Pin To Top", type="boolean", default=False),
            FieldSpec("priority", "Priority", type="options", default="medium", options=PRIORITIES),
            FieldSpec("propertiesJson", "Properties (JSON)", description="JSON object defining custom property values"),
            FieldSpec("startDate", "Start Date", type="dateTime"),
            FieldSpec("status", "Status"),
            FieldSpec("tags", "Tags", description="Comma-separated list of tags"),
        ),
    )


def _task_required_fields(what: str) -> Tuple[FieldSpec, ...]:
    return (
        FieldSpec("title", "Title", required=True, description=f"{what} title"),
        FieldSpec("projectKey", "Project Key", required=True, description="Project key (e.g., SWIPER, MARKETING)"),
        FieldSpec("descriptionType", "Description Type", type="options", default="text",
                  required=True, options=DESCRIPTION_TYPES),
        FieldSpec("descriptionContent", "Description Content", required=True),
    )


def _identifier_fields(prefix: str, label: str) -> Tuple[FieldSpec, ...]:
    kind_name = f"{prefix}IdentifierType" if prefix else "identifierType"
    id_name = f"{prefix}Id" if prefix else "id"
    pk_name = f"{prefix}ProjectKey" if prefix else "projectKey"
    key_name = f"{prefix}Key" if prefix else "key"
    return (
        FieldSpec(kind_name, f"{label} Identify By", type="options", default="id", options=IDENTIFIER_KINDS),
        FieldSpec(id_name, f"{label} ID", show_when={kind_name: ("id",)}),
        FieldSpec(pk_name, f"{label} Project Key", show_when={kind_name: ("projectKeyAndKey",)}),
        FieldSpec(key_name, f"{label} Key", type="number", default=None, show_when={kind_name: ("projectKeyAndKey",)}),
    )


TASK_LIST_FILTERS = FieldSpec(
    "filters", "Filters", type="collection", default={},
    children=(
        FieldSpec("projectKey", "Project Key", description="Comma-separated project keys to filter tasks by"),
        FieldSpec("status", "Status", description="Comma-separated status names to filter tasks by"),
        FieldSpec("descriptionType", "Description Type", type="options", default="text", options=DESCRIPTION_TYPES),
        FieldSpec("assignedUserEmail", "Assigned User Email",
                  description="Comma-separated emails to filter tasks by assignee"),
        FieldSpec("priority", "Priority", type="options", options=PRIORITY_FILTERS),
        FieldSpec("pinToTop", "Pin To Top", type="options", options=PIN_TO_TOP_FILTERS),
        FieldSpec("tag", "Tag", description="Comma-separated tags to filter tasks by"),
        FieldSpec("startDate", "Start Date", description="Single date or range (YYYY-MM-DD or YYYY-MM-DD,YYYY-MM-DD)"),
        FieldSpec("dueDate", "Due Date", description="Single date or range (YYYY-MM-DD or YYYY-MM-DD,YYYY-MM-DD)"),
        FieldSpec("customPropertyFiltersJson", "Custom Property Filters (JSON)",
                  description='JSON object with custom property filters, e.g. {"prop_Region": "North America"}'),
    ),
)

TASK_CREATE_TASKS = FieldSpec(
    "tasks", "Tasks", type="fixedCollection", default={}, multiple=True,
    children=(
        FieldSpec(
            "task", "Task", type="collection",
            children=_task_required_fields("Task") + (
                _task_additional_fields(),
                FieldSpec(
                    "subtasks", "Subtasks", type="fixedCollection", default={}, multiple=True,
                    children=(
                        FieldSpec(
                            "subtask", "Subtask", type="collection",
                            children=_task_required_fields("Subtask") + (_task_additional_fields(),),
                        ),
                    ),
                ),
            ),
        ),
    ),
)

TASK_UPDATE_TASKS = FieldSpec(
    "tasks", "Tasks", type="fixedCollection", default={}, multiple=True,
    children=(
        FieldSpec(
            "task", "Task", type="collection",
            children=_identifier_fields("", "Task") + (
                FieldSpec(
                    "updateFields", "Update Fields", type="collection", default={},
                    children=(
                        FieldSpec("assignedUserEmail", "Assigned User Email",
                                  description="Leave empty to unassign"),
                        FieldSpec("descriptionContent", "Description Content"),
                        FieldSpec("descriptionType", "Description Type", type="options", default="text",
                                  options=DESCRIPTION_TYPES),
                        FieldSpec("dueDate", "Due Date", type="dateTime", description="Leave empty to clear"),
                        FieldSpec("parentIdentifier", "Parent", type="options", default="parentId",
                                  options=PARENT_IDENTIFIERS),
                        FieldSpec("parentId", "Parent ID", show_when={"parentIdentifier": ("parentId",)}),
                        FieldSpec("parentProjectKey", "Parent Project Key",
                                  show_when={"parentIdentifier": ("parentProjectKeyAndKey",)}),
                        FieldSpec("parentKey", "Parent Key", type="number", default=None,
                                  show_when={"parentIdentifier": ("parentProjectKeyAndKey",)}),
                        FieldSpec("pinToTop", "Pin To Top", type="boolean", default=False),
                        FieldSpec("priority", "Priority", type="options", options=PRIORITY_UPDATES),
                        FieldSpec("propertiesJson", "Properties (JSON)"),
                        FieldSpec("startDate", "Start Date", type="dateTime", description="Leave empty to clear"),
                        FieldSpec("status", "Status"),
                        FieldSpec("tags", "Tags", description="Comma-separated list of tags"),
                        FieldSpec("title", "Title"),
                    ),
                ),
            ),
        ),
    ),
)

DEPENDENCY_LIST_FILTERS = FieldSpec(
    "filters", "Filters", type="collection", default={},
    children=(
        FieldSpec("projectKey", "Project Key", description="Comma-separated project keys"),
        FieldSpec("taskId", "Task ID", description="Only dependencies where this task is predecessor or successor"),
    ),
)

DEPENDENCY_ADDITIONAL_FIELDS = FieldSpec(
    "additionalFields", "Additional Fields", type="collection", default={},
    children=(
        FieldSpec("lagDays", "Lag Days", type="number", default=0, description="Days between the two tasks"),
    ),
)


T0GGLES_NODE = NodeDescription(
    name="t0ggles",
    display_name="t0ggles",
    description="Interact with t0ggles tasks API",
    version=1,
    credential_name=CREDENTIAL_NAME,
    operations=(
        OperationSpec("task", "create", "Create", "Create tasks", "POST", "/tasks",
                      parameters=(TASK_CREATE_TASKS,), per_item=True),
        OperationSpec("task", "update", "Update", "Update tasks", "PUT", "/tasks",
                      parameters=(TASK_UPDATE_TASKS,), per_item=True),
        OperationSpec("task", "getAll", "Get Many", "Get many tasks", "GET", "/tasks",
                      parameters=(TASK_LIST_FILTERS,)),
        OperationSpec("dependency", "create", "Create", "Create a dependency", "POST", "/dependencies",
                      parameters=_identifier_fields("predecessor", "Predecessor")
                      + _identifier_fields("successor", "Successor")
                      + (DEPENDENCY_ADDITIONAL_FIELDS,)),
        OperationSpec("dependency", "getAll", "Get Many", "Get many dependencies", "GET", "/dependencies",
                      parameters=(DEPENDENCY_LIST_FILTERS,)),
        OperationSpec("dependency", "delete", "Delete", "Delete a dependency", "DELETE", "/dependencies",
                      parameters=(
                          FieldSpec("deleteBy", "Delete By", type="options", default="id", options=DELETE_MODES),
                          FieldSpec("dependencyId", "Dependency ID", show_when={"deleteBy": ("id",)}),
                      ) + _identifier_fields("predecessor", "Predecessor")
                      + _identifier_fields("successor", "Successor")),
    ),
)
