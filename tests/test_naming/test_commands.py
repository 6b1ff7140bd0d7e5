"""Tests for awkgen.naming.commands.

Covers:
- Base names from the rule table (collections, items, actions, current
  entity, name-like parameters, nested resources)
- Segment normalisation and action parent insertion
- Collision resolution order within a tag group
- Handler identifiers and the generic operation-id fallback
- strip_verb and method_name_candidates
"""

from __future__ import annotations

import itertools

import pytest

from awkgen.models import HTTPMethod
from awkgen.naming.commands import (
    NAMING_RULES,
    CommandNamer,
    NamingRule,
    method_name_candidates,
    strip_verb,
)
from awkgen.naming.identifiers import IdentifierSanitizer
from awkgen.naming.tables import DEFAULT_TABLES


@pytest.fixture
def namer() -> CommandNamer:
    return CommandNamer()


def _name(namer, op, *others):
    paths = namer.collection_paths_with_item([op, *others])
    return namer.name_for(op, paths)


# ------------------------------------------------------------------ #
# Base names
# ------------------------------------------------------------------ #


class TestBaseNames:
    @pytest.mark.parametrize(
        "path, method, tag, expected",
        [
            ("/users", "get", "Users", "list"),
            ("/users", "post", "Users", "create"),
            ("/users/{userId}", "get", "Users", "get"),
            ("/users/{userId}", "put", "Users", "update"),
            ("/users/{userId}", "delete", "Users", "delete"),
            ("/me", "get", "Users", "me"),
            ("/taskstatuses/{taskStatusId}", "put", "TaskStatuses", "update"),
            ("/search", "get", "Search", "get-search"),
            ("/workload", "get", "Workload", "get-workload"),
            ("/tasks/changebasetypes", "post", "Tasks", "change-base-types"),
            ("/users/deletetags", "post", "UserTags", "delete-tags"),
            ("/absenceregions/users/assign", "put", "AbsenceRegions", "assign"),
            ("/users/{userId}/contactinfo/{contactInfoId}", "get", "Users", "get-contact-info"),
            ("/users/{userId}/tags/{tagId}", "delete", "UserTags", "delete-tag"),
            ("/projects/{projectId}/tasks", "get", "ProjectTasks", "list-project-tasks"),
            ("/users/{userName}", "get", "Users", "get-by-user-name"),
        ],
    )
    def test_rule_table(self, namer, make_op, path, method, tag, expected):
        assert _name(namer, make_op(path, method, tag)) == expected

    def test_action_gets_parent_inserted(self, namer, make_op):
        op = make_op("/projects/{projectId}/deletetags", "post", "ProjectTags")
        assert _name(namer, op) == "delete-project-tags"

    def test_action_without_tags_keeps_name(self, namer, make_op):
        op = make_op("/tasks/{taskId}/setassignees", "post", "Tasks")
        assert _name(namer, op) == "set-assignees"

    def test_nested_current_entity(self, namer, make_op):
        assert _name(namer, make_op("/users/me", "get", "Users")) == "users-me"

    def test_unhandled_method_falls_back_to_operation_id(self, namer, make_op):
        op = make_op("/users", "head", "Users", operation_id="UsersCount")
        assert _name(namer, op) == "count"

    def test_names_are_kebab(self, namer, make_op):
        op = make_op("/users/{userId}/Contact_Info", "get", "Users")
        assert _name(namer, op) == "get-contact-info"

    def test_custom_rule_table(self, make_op):
        rules = (NamingRule("everything", None, lambda s: True, "op-{first_segment}"),)
        namer = CommandNamer(rules=rules)
        assert _name(namer, make_op("/users/{userId}")) == "op-users"


class TestSegments:
    def test_alias_table_wins(self, namer):
        assert namer.normalize_segment("changebasetypes") == "change-base-types"

    def test_compound_action_before_known_resource(self, namer):
        assert namer.normalize_segment("addteams") == "add-teams"
        assert namer.normalize_segment("removeroles") == "remove-roles"

    def test_unknown_segment_unchanged(self, namer):
        assert namer.normalize_segment("frobnicate") == "frobnicate"

    def test_singularize(self):
        assert CommandNamer.singularize("task-statuses") == "task-status"
        assert CommandNamer.singularize("companies") == "company"
        assert CommandNamer.singularize("projects") == "project"
        assert CommandNamer.singularize("address") == "address"

    def test_plural_detection(self, namer):
        assert namer.is_plural("users")
        assert namer.is_plural("checklist-items")
        assert not namer.is_plural("add-users")
        assert not namer.is_plural("search")


# ------------------------------------------------------------------ #
# Collisions
# ------------------------------------------------------------------ #


class TestCollisions:
    def test_parent_prefix_for_shared_base(self, namer, make_op):
        ops = [
            make_op("/tasks/updatetags", "post", "TaskTags", operation_id="UpdateTaskTags"),
            make_op("/tasktemplates/updatetags", "post", "TaskTags", operation_id="UpdateTemplateTags"),
        ]
        names = [c.command_name for c in namer.name_operations(ops)]
        assert names == ["tasks-update-tags", "task-templates-update-tags"]

    def test_resolution_order(self, namer, make_op):
        ops = [
            make_op("/users", "put", "Users", operation_id="PutUsers"),
            make_op("/users/{userId}", "put", "Users", operation_id="PutUser"),
            make_op("/users/{userId}/{otherId}", "put", "Users", operation_id="PutUserPair"),
            make_op("/users/{a}/{b}/{c}", "put", "Users", operation_id="PutUserPair"),
        ]
        names = [c.command_name for c in namer.name_operations(ops)]
        assert names == ["update", "update-put", "update-user-pair", "update-2"]

    def test_uniqueness_is_per_tag(self, namer, make_op):
        ops = [
            make_op("/users", "get", "Users", operation_id="GetUsers"),
            make_op("/projects", "get", "Projects", operation_id="GetProjects"),
        ]
        commands = namer.name_operations(ops)
        assert [c.command_name for c in commands] == ["list", "list"]

    def test_groups_emitted_in_tag_order(self, namer, make_op):
        ops = [
            make_op("/users", "get", "Users", operation_id="GetUsers"),
            make_op("/projects", "get", "projects", operation_id="GetProjects"),
        ]
        assert [c.tag for c in namer.name_operations(ops)] == ["projects", "Users"]


# ------------------------------------------------------------------ #
# Handler identifiers
# ------------------------------------------------------------------ #


class TestHandlerNames:
    def test_handler_is_operation_id(self, namer, make_op):
        [command] = namer.name_operations([make_op("/users", operation_id="GetUsers")])
        assert command.class_name == "GetUsers"

    def test_reserved_handler_names_avoided(self, namer, make_op):
        [command] = namer.name_operations(
            [make_op("/users", operation_id="GetUsers")], reserved_handlers=("getusers",)
        )
        assert command.class_name == "GetUsersUsersGET"

    def test_handlers_unique_across_tags(self, namer, make_op):
        ops = [
            make_op("/users", operation_id="List", tag="Users"),
            make_op("/projects", operation_id="List", tag="Projects"),
        ]
        names = {c.operation.path_template: c.class_name for c in namer.name_operations(ops)}
        assert names == {"/projects": "List", "/users": "ListUsersGET"}


class TestMethodNameCandidates:
    def _first(self, operation_id, path, method=HTTPMethod.GET, n=1):
        chain = method_name_candidates(
            IdentifierSanitizer(), operation_id, path, method, DEFAULT_TABLES
        )
        return list(itertools.islice(chain, n))

    def test_plain_operation_id(self):
        assert self._first("GetUsers", "/users") == ["GetUsers"]

    def test_generic_operation_id_gets_path(self):
        assert self._first("Get", "/workload") == ["GetWorkload"]

    def test_generic_operation_id_chain_keeps_path(self):
        assert self._first("Get", "/workload", n=3) == [
            "GetWorkload",
            "GetWorkloadWorkloadGET",
            "GetWorkloadWorkloadGET2",
        ]

    def test_chain_order(self):
        assert self._first("GetUsers", "/users/{userId}", n=4) == [
            "GetUsers",
            "GetUsersUsersByUserIdGET",
            "GetUsersUsersByUserIdGET2",
            "GetUsersUsersByUserIdGET3",
        ]

    def test_operation_id_sanitized(self):
        assert self._first("get-users.v2", "/users") == ["getusersv2"]


def test_strip_verb():
    assert strip_verb("GetUsers") == "Users"
    assert strip_verb("PostTask") == "Task"
    assert strip_verb("getUsers") == "getUsers"
    assert strip_verb("Search") == "Search"


def test_rule_table_covers_crud_methods():
    methods = {m for rule in NAMING_RULES if rule.methods for m in rule.methods}
    assert {HTTPMethod.GET, HTTPMethod.POST, HTTPMethod.PUT, HTTPMethod.PATCH, HTTPMethod.DELETE} <= methods
