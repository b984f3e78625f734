"""Unit tests for t0ggles_node.mapping.payloads — create/update/list/dependency mapping."""

import pytest

from t0ggles_node.engine.dispatcher import _encode_query
from t0ggles_node.engine.errors import ValidationError
from t0ggles_node.mapping.fields import TaskIdentifier
from t0ggles_node.mapping.payloads import (
    map_create_task,
    map_dependency_create,
    map_dependency_delete,
    map_dependency_list_filters,
    map_list_filters,
    map_parent,
    map_task_entry,
    map_update_task,
)

OPTIONAL_CREATE_KEYS = (
    "status", "assignedUserEmail", "priority", "pinToTop", "tags",
    "startDate", "dueDate", "properties", "subtasks",
)


class TestMapCreateTask:

    def test_required_only(self):
        task = map_create_task("T", "P", "text", "body")
        assert task == {
            "title": "T",
            "projectKey": "P",
            "descriptionType": "text",
            "descriptionContent": "body",
        }

    def test_optional_fields_omitted_not_null(self):
        task = map_create_task("T", "P", "text", "body", {
            "status": "", "assignedUserEmail": "", "priority": "", "tags": "",
            "startDate": "", "dueDate": "", "propertiesJson": "",
        })
        for key in OPTIONAL_CREATE_KEYS:
            assert key not in task

    def test_all_fields(self):
        task = map_create_task("T", "P", "markdown", "# hi", {
            "status": "In Progress",
            "assignedUserEmail": "ana@example.com",
            "priority": "high",
            "pinToTop": True,
            "tags": "a, b ,a",
            "startDate": "2024-05-01T10:00:00Z",
            "dueDate": "2024-05-02",
            "propertiesJson": '{"prop_Region": "EU"}',
        })
        assert task["status"] == "In Progress"
        assert task["assignedUserEmail"] == "ana@example.com"
        assert task["priority"] == "high"
        assert task["pinToTop"] is True
        assert task["tags"] == ["a", "b", "a"]
        assert task["startDate"] == "2024-05-01T10:00:00.000Z"
        assert task["dueDate"] == "2024-05-02T00:00:00.000Z"
        assert task["properties"] == {"prop_Region": "EU"}

    def test_pin_to_top_false_kept(self):
        assert map_create_task("T", "P", "text", "", {"pinToTop": False})["pinToTop"] is False

    def test_blank_tags_omitted(self):
        assert "tags" not in map_create_task("T", "P", "text", "", {"tags": " , "})

    def test_invalid_properties_json(self):
        with pytest.raises(ValidationError, match="Could not parse Properties JSON"):
            map_create_task("T", "P", "text", "", {"propertiesJson": "{oops"})

    def test_properties_must_be_object(self):
        with pytest.raises(ValidationError, match="Properties JSON must define an object"):
            map_create_task("T", "P", "text", "", {"propertiesJson": '"text"'})

    def test_subtasks(self):
        task = map_create_task("Parent", "P", "text", "", subtasks=[
            {"title": "Child", "projectKey": "P", "descriptionContent": "c",
             "additionalFields": {"priority": "low"}},
        ])
        assert task["subtasks"] == [{
            "title": "Child",
            "projectKey": "P",
            "descriptionType": "text",
            "descriptionContent": "c",
            "priority": "low",
        }]

    def test_empty_subtasks_omitted(self):
        assert "subtasks" not in map_create_task("T", "P", "text", "", subtasks=[])


class TestMapTaskEntry:

    def test_subtasks_read_when_allowed(self):
        entry = {
            "title": "T", "projectKey": "P", "descriptionType": "html", "descriptionContent": "<p>x</p>",
            "subtasks": {"subtask": [{"title": "S", "projectKey": "P"}]},
        }
        assert map_task_entry(entry, allow_subtasks=True)["subtasks"][0]["title"] == "S"
        assert "subtasks" not in map_task_entry(entry)

    def test_subtasks_without_collection_ignored(self):
        for subtasks in ([{"title": "S", "projectKey": "P"}], {"subtask": "S"}, "S"):
            entry = {"title": "T", "projectKey": "P", "subtasks": subtasks}
            assert "subtasks" not in map_task_entry(entry, allow_subtasks=True)

    def test_defaults(self):
        assert map_task_entry({"title": "T", "projectKey": "P"})["descriptionType"] == "text"


class TestMapUpdateTask:

    def test_identity_by_id(self):
        assert map_update_task("id", {"id": "t_1"}) == {"id": "t_1"}

    def test_identity_by_key(self):
        task = map_update_task("projectKeyAndKey", {"projectKey": "P", "key": "12"})
        assert task == {"projectKey": "P", "key": 12}

    def test_missing_identity(self):
        with pytest.raises(ValidationError, match="id is required"):
            map_update_task("id", {})

    @pytest.mark.parametrize("name", ["assignedUserEmail", "priority", "startDate", "dueDate"])
    def test_clearable_empty_sent_as_empty(self, name):
        assert map_update_task("id", {"id": "t_1"}, {name: ""})[name] == ""

    @pytest.mark.parametrize("name", ["assignedUserEmail", "priority", "startDate", "dueDate"])
    def test_clearable_absent_omitted(self, name):
        assert name not in map_update_task("id", {"id": "t_1"}, {})

    def test_clearable_values(self):
        task = map_update_task("id", {"id": "t_1"}, {
            "assignedUserEmail": "bo@example.com",
            "priority": "medium",
            "dueDate": "2024-05-01T10:00:00+00:00",
        })
        assert task["assignedUserEmail"] == "bo@example.com"
        assert task["priority"] == "medium"
        assert task["dueDate"] == "2024-05-01T10:00:00.000Z"

    def test_non_clearable_empty_omitted(self):
        task = map_update_task("id", {"id": "t_1"}, {
            "title": "", "status": "", "descriptionContent": "", "tags": "", "propertiesJson": "",
        })
        assert task == {"id": "t_1"}

    def test_non_clearable_values(self):
        task = map_update_task("id", {"id": "t_1"}, {
            "title": "Renamed", "status": "Done", "descriptionType": "markdown",
            "descriptionContent": "**x**", "tags": "x,y", "propertiesJson": '{"a": 1}',
            "pinToTop": False,
        })
        assert task["title"] == "Renamed"
        assert task["status"] == "Done"
        assert task["descriptionType"] == "markdown"
        assert task["tags"] == ["x", "y"]
        assert task["properties"] == {"a": 1}
        assert task["pinToTop"] is False

    def test_invalid_properties_json(self):
        with pytest.raises(ValidationError, match="Could not parse Properties JSON"):
            map_update_task("id", {"id": "t_1"}, {"propertiesJson": "nope"})


class TestMapParent:

    def test_untouched(self):
        assert map_parent({}) == {}

    def test_remove(self):
        assert map_parent({"parentIdentifier": "none"}) == {"parentId": ""}

    def test_by_id(self):
        assert map_parent({"parentIdentifier": "parentId", "parentId": "t_2"}) == {"parentId": "t_2"}

    def test_by_key(self):
        fields = {"parentIdentifier": "parentProjectKeyAndKey", "parentProjectKey": "P", "parentKey": 4}
        assert map_parent(fields) == {"parentProjectKey": "P", "parentKey": 4}

    def test_by_id_missing_value(self):
        with pytest.raises(ValidationError, match="parentId is required"):
            map_parent({"parentIdentifier": "parentId"})

    def test_unknown_selector(self):
        with pytest.raises(ValidationError, match="Unknown parent identifier"):
            map_parent({"parentIdentifier": "grandparent"})

    def test_applied_in_update(self):
        task = map_update_task("id", {"id": "t_1"}, {"parentIdentifier": "none"})
        assert task == {"id": "t_1", "parentId": ""}


class TestMapListFilters:

    def test_empty(self):
        assert map_list_filters({}) == {}
        assert map_list_filters(None) == {}

    def test_priority_empty_excluded(self):
        assert "priority" not in map_list_filters({"priority": ""})

    def test_pin_to_top_empty_excluded(self):
        assert "pinToTop" not in map_list_filters({"pinToTop": ""})

    def test_pin_to_top_false_kept(self):
        qs = map_list_filters({"pinToTop": False})
        assert qs == {"pinToTop": False}
        assert _encode_query(qs) == {"pinToTop": "false"}

    def test_priority_value_included(self):
        assert map_list_filters({"priority": "high"}) == {"priority": "high"}

    def test_description_type_sent_at_default(self):
        assert map_list_filters({"descriptionType": "text"}) == {"descriptionType": "text"}

    def test_simple_filters(self):
        qs = map_list_filters({
            "projectKey": "SWIPER,MARKETING", "status": "", "tag": "bug",
            "startDate": "2024-01-01,2024-01-31", "pinToTop": "true",
        })
        assert qs == {
            "projectKey": "SWIPER,MARKETING",
            "tag": "bug",
            "startDate": "2024-01-01,2024-01-31",
            "pinToTop": "true",
        }

    def test_custom_property_filters_merged(self):
        qs = map_list_filters({"projectKey": "P", "customPropertyFiltersJson": '{"prop_Region": "North America"}'})
        assert qs == {"projectKey": "P", "prop_Region": "North America"}

    def test_custom_property_filters_invalid(self):
        with pytest.raises(ValidationError, match="Could not parse Custom Property Filters JSON"):
            map_list_filters({"customPropertyFiltersJson": "{"})


class TestDependencyMapping:

    def test_create_by_id(self):
        body = map_dependency_create(TaskIdentifier.by_id("t_1"), TaskIdentifier.by_id("t_2"))
        assert body == {"predecessorId": "t_1", "successorId": "t_2"}

    def test_create_mixed_identifiers(self):
        body = map_dependency_create(TaskIdentifier.by_key("P", 1), TaskIdentifier.by_id("t_2"))
        assert body == {"predecessorProjectKey": "P", "predecessorKey": 1, "successorId": "t_2"}

    def test_lag_days_zero_kept(self):
        body = map_dependency_create(TaskIdentifier.by_id("a"), TaskIdentifier.by_id("b"), {"lagDays": 0})
        assert body["lagDays"] == 0

    def test_lag_days_coerced(self):
        body = map_dependency_create(TaskIdentifier.by_id("a"), TaskIdentifier.by_id("b"), {"lagDays": "3"})
        assert body["lagDays"] == 3

    def test_lag_days_blank_omitted(self):
        body = map_dependency_create(TaskIdentifier.by_id("a"), TaskIdentifier.by_id("b"), {"lagDays": ""})
        assert "lagDays" not in body

    def test_lag_days_invalid(self):
        with pytest.raises(ValidationError, match="lagDays must be an integer"):
            map_dependency_create(TaskIdentifier.by_id("a"), TaskIdentifier.by_id("b"), {"lagDays": "soon"})

    @pytest.mark.parametrize("value", [2.7, True])
    def test_lag_days_must_be_whole(self, value):
        with pytest.raises(ValidationError, match="lagDays must be an integer"):
            map_dependency_create(TaskIdentifier.by_id("a"), TaskIdentifier.by_id("b"), {"lagDays": value})

    def test_lag_days_integral_float(self):
        body = map_dependency_create(TaskIdentifier.by_id("a"), TaskIdentifier.by_id("b"), {"lagDays": 4.0})
        assert body["lagDays"] == 4

    def test_delete_by_id(self):
        assert map_dependency_delete("id", dependency_id="dep_1") == {"id": "dep_1"}

    def test_delete_by_id_missing(self):
        with pytest.raises(ValidationError, match="dependencyId is required"):
            map_dependency_delete("id")

    def test_delete_by_task_identifiers(self):
        body = map_dependency_delete(
            "taskIdentifiers",
            predecessor=TaskIdentifier.by_id("a"),
            successor=TaskIdentifier.by_key("P", 2),
        )
        assert body == {"predecessorId": "a", "successorProjectKey": "P", "successorKey": 2}

    def test_delete_by_task_identifiers_missing(self):
        with pytest.raises(ValidationError):
            map_dependency_delete("taskIdentifiers", predecessor=TaskIdentifier.by_id("a"))

    def test_list_filters(self):
        assert map_dependency_list_filters({"projectKey": "P", "taskId": ""}) == {"projectKey": "P"}
        assert map_dependency_list_filters(None) == {}
