"""Immutable lookup tables that drive command naming and domain grouping.

Every heuristic in :mod:`awkgen.naming` reads its vocabulary from a
:class:`NamingTables` instance handed to it at construction. Nothing is
process-global: tests build alternative tables with
:meth:`NamingTables.with_overrides`, and ``awkgen generate --tables FILE``
layers a JSON/YAML file over :data:`DEFAULT_TABLES`.

Lookups are case-insensitive. Dictionary keys and set members are
lower-cased during validation, so callers always look up ``value.lower()``.

Example::

    tables = DEFAULT_TABLES.with_overrides({"tag_domains": {"Reports": "times"}})
    tables.domain_for_tag("reports")   # Domain.TIMES
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from awkgen.models import Domain


def _lower_keys(value: dict[str, Any]) -> dict[str, Any]:
    return {str(k).lower(): v for k, v in value.items()}


class NamingTables(BaseModel):
    """Vocabulary consumed by the sanitizer, the command namer, and the domain grouper.

    The ordered tuples (``word_fragments``, ``action_prefixes``,
    ``compound_action_prefixes``) are evaluated in declaration order.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    # --- Domains ---

    domain_order: tuple[Domain, ...] = Field(
        description="Emission order of domains; unlisted domains sort last, then alphabetically"
    )
    domain_descriptions: dict[Domain, str] = Field(default_factory=dict)
    tag_domains: dict[str, Domain] = Field(
        description="Spec tag to domain; tags missing here are unmapped"
    )
    root_tags: frozenset[str] = Field(
        description="Tags whose commands attach directly to their domain branch"
    )
    tag_sub_overrides: dict[str, str] = Field(
        default_factory=dict, description="Tag to fixed sub-branch name"
    )
    domain_prefixes: dict[Domain, str] = Field(
        default_factory=dict, description="Resource noun stripped from the front of a tag"
    )
    suffix_strip_domains: dict[Domain, str] = Field(
        default_factory=dict, description="Plural noun stripped from the end of a tag"
    )
    auth_domain: Domain = Domain.AUTH
    fallback_tag: str = "Core"

    # --- Path segments ---

    segment_aliases: dict[str, str] = Field(
        default_factory=dict, description="Glued lower-case path segment to its kebab form"
    )
    known_resources: frozenset[str] = Field(default_factory=frozenset)
    compound_action_prefixes: tuple[str, ...] = ()
    action_prefixes: tuple[str, ...] = ()
    non_plural_prefixes: tuple[str, ...] = ()
    current_entity_aliases: frozenset[str] = Field(
        default_factory=lambda: frozenset({"me"}),
        description="Final segments that address the caller rather than a resource",
    )
    name_param_suffixes: tuple[str, ...] = ("name",)
    id_param_suffixes: tuple[str, ...] = ("id",)

    # --- Words ---

    word_fragments: tuple[str, ...] = Field(
        default=(), description="Known fragments used to split glued lower-case words"
    )
    unsplittable_words: frozenset[str] = Field(default_factory=frozenset)
    word_replacements: dict[str, str] = Field(default_factory=dict)
    generic_operation_ids: frozenset[str] = Field(
        default_factory=lambda: frozenset({"Get", "Post", "Put", "Delete", "Patch"})
    )
    reserved_option_names: frozenset[str] = Field(
        default_factory=frozenset,
        description="Option names owned by the host CLI; clashing query options get a prefix",
    )

    @field_validator(
        "tag_domains", "tag_sub_overrides", "segment_aliases", mode="before"
    )
    @classmethod
    def _normalise_keys(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return _lower_keys(value)
        return value

    @field_validator(
        "root_tags", "known_resources", "current_entity_aliases",
        "unsplittable_words", "reserved_option_names", mode="before",
    )
    @classmethod
    def _normalise_members(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple, set, frozenset)):
            return frozenset(str(v).lower() for v in value)
        return value

    # ------------------------------------------------------------------ #
    # Lookups
    # ------------------------------------------------------------------ #

    def domain_for_tag(self, tag: str) -> Domain:
        """Return the domain of *tag*, or :attr:`Domain.UNMAPPED`."""
        return self.tag_domains.get(tag.lower(), Domain.UNMAPPED)

    def is_root_tag(self, tag: str) -> bool:
        return tag.lower() in self.root_tags

    def sub_override(self, tag: str) -> Optional[str]:
        return self.tag_sub_overrides.get(tag.lower())

    def alias_for_segment(self, segment: str) -> Optional[str]:
        return self.segment_aliases.get(segment.lower())

    def is_current_entity(self, segment: str) -> bool:
        return segment.lower() in self.current_entity_aliases

    def is_name_like_param(self, param_name: str) -> bool:
        """True when *param_name* ends in a name suffix and not in an id suffix."""
        lower = param_name.lower()
        if any(lower.endswith(s) for s in self.id_param_suffixes):
            return False
        return any(lower.endswith(s) for s in self.name_param_suffixes)

    def domain_sort_key(self, domain: Domain) -> tuple[int, str]:
        try:
            return (self.domain_order.index(domain), domain.value)
        except ValueError:
            return (len(self.domain_order), domain.value)

    def describe_domain(self, domain: Domain) -> str:
        return self.domain_descriptions.get(domain, domain.value.capitalize())

    def with_overrides(self, overrides: dict[str, Any]) -> "NamingTables":
        """Return new tables with *overrides* replacing whole fields.

        Raises:
            pydantic.ValidationError: If the merged data is invalid.
        """
        data = self.model_dump()
        data.update(overrides)
        return NamingTables.model_validate(data)


# ------------------------------------------------------------------ #
# awork defaults
# ------------------------------------------------------------------ #

_SEGMENT_ALIASES: dict[str, str] = {
    "absenceregions": "absence-regions",
    "addprojectmember": "add-project-member",
    "addprojects": "add-projects",
    "addtaskbundle": "add-task-bundle",
    "addtasktemplates": "add-task-templates",
    "allavailabletasks": "all-available-tasks",
    "assignedtasks": "assigned-tasks",
    "assignuserbyemail": "assign-user-by-email",
    "changebasetypes": "change-base-types",
    "changelists": "change-lists",
    "changestatuses": "change-statuses",
    "changesubtasks": "change-subtasks",
    "changesubtaskstoparent": "change-subtasks-to-parent",
    "changetypeofwork": "change-type-of-work",
    "checklistitems": "checklist-items",
    "checklistitemtemplates": "checklist-item-templates",
    "clientapplications": "client-applications",
    "contactinfo": "contact-info",
    "contactpersons": "contact-persons",
    "customfielddefinitions": "custom-field-definitions",
    "deactivatedmenuitems": "deactivated-menu-items",
    "deleterecurrency": "delete-recurrency",
    "deletetags": "delete-tags",
    "documentspaces": "document-spaces",
    "eventtypes": "event-types",
    "externalfiles": "external-files",
    "generateapikey": "generate-api-key",
    "generatesecret": "generate-secret",
    "generateuploadurl": "generate-upload-url",
    "otherprivatetasks": "other-private-tasks",
    "privatedocuments": "private-documents",
    "privatetasks": "private-tasks",
    "projectfeatures": "project-features",
    "projectmilestones": "project-milestones",
    "projectroles": "project-roles",
    "projectstatuses": "project-statuses",
    "projecttasks": "project-tasks",
    "projecttemplates": "project-templates",
    "projecttimebookings": "project-time-bookings",
    "projecttypes": "project-types",
    "removebreaks": "remove-breaks",
    "removeprojectmember": "remove-project-member",
    "removeprojects": "remove-projects",
    "removetasks": "remove-tasks",
    "removetasktemplates": "remove-task-templates",
    "removeusers": "remove-users",
    "setarchived": "set-archived",
    "setassignees": "set-assignees",
    "setbillable": "set-billable",
    "setbilled": "set-billed",
    "setcustomfields": "set-custom-fields",
    "setentity": "set-entity",
    "setplannedefforts": "set-planned-efforts",
    "setprojectkey": "set-project-key",
    "setrecurrency": "set-recurrency",
    "setresolved": "set-resolved",
    "settaskpriority": "set-task-priority",
    "settypeofwork": "set-type-of-work",
    "setunbillable": "set-unbillable",
    "setunbilled": "set-unbilled",
    "shareddocuments": "shared-documents",
    "sharedfiles": "shared-files",
    "taskbundle": "task-bundle",
    "taskbundles": "task-bundles",
    "taskdependencies": "task-dependencies",
    "taskdependencytemplates": "task-dependency-templates",
    "tasklists": "task-lists",
    "tasklist": "task-list",
    "tasklisttemplates": "task-list-templates",
    "taskstatuses": "task-statuses",
    "taskschedules": "task-schedules",
    "tasktemplates": "task-templates",
    "taskviews": "task-views",
    "temporaryfiles": "temporary-files",
    "timebookings": "time-bookings",
    "timeentries": "time-entries",
    "timereports": "time-reports",
    "timetracking": "time-tracking",
    "typeofwork": "type-of-work",
    "unlinkcustomfielddefinition": "unlink-custom-field-definition",
    "updateorder": "update-order",
    "updateprojectmember": "update-project-member",
    "updateprojectstatusorder": "update-project-status-order",
    "updatetags": "update-tags",
    "workspaceabsences": "workspace-absences",
}

_TAG_DOMAINS: dict[str, str] = {
    "Accounts": "auth",
    "ClientApplications": "auth",
    "Users": "users",
    "ApiUsers": "users",
    "Invitations": "users",
    "UserTags": "users",
    "UserFiles": "users",
    "UserCapacities": "users",
    "Tasks": "tasks",
    "PrivateTasks": "tasks",
    "AssignedTasks": "tasks",
    "TaskComments": "tasks",
    "TaskFiles": "tasks",
    "TaskTags": "tasks",
    "TaskLists": "tasks",
    "TaskSchedules": "tasks",
    "TaskStatuses": "tasks",
    "TaskViews": "tasks",
    "TaskBundles": "tasks",
    "TaskDependencies": "tasks",
    "TaskDependencyTemplates": "tasks",
    "TaskTemplates": "tasks",
    "TaskTemplateFiles": "tasks",
    "ChecklistItems": "tasks",
    "Projects": "projects",
    "ProjectTasks": "projects",
    "ProjectMembers": "projects",
    "ProjectComments": "projects",
    "ProjectFiles": "projects",
    "ProjectTags": "projects",
    "ProjectStatuses": "projects",
    "ProjectRoles": "projects",
    "ProjectTypes": "projects",
    "ProjectMilestones": "projects",
    "ProjectMilestoneTemplates": "projects",
    "ProjectTemplates": "projects",
    "ProjectTemplateFiles": "projects",
    "ProjectTemplateTags": "projects",
    "Project Automations": "projects",
    "Project Template Automations": "projects",
    "Retainers": "projects",
    "TimeEntries": "times",
    "TimeBookings": "times",
    "TimeReports": "times",
    "TimeTracking": "times",
    "Workload": "times",
    "Absences": "times",
    "Workspaces": "workspace",
    "WorkspaceFiles": "workspace",
    "WorkspaceAbsences": "workspace",
    "Teams": "workspace",
    "Roles": "workspace",
    "Permissions": "workspace",
    "CustomFields": "workspace",
    "TypeOfWork": "workspace",
    "Companies": "workspace",
    "CompanyFiles": "workspace",
    "CompanyTags": "workspace",
    "Dashboards": "workspace",
    "Activities": "workspace",
    "AbsenceRegions": "workspace",
    "Documents": "documents",
    "DocumentFiles": "documents",
    "DocumentComments": "documents",
    "DocumentSpaces": "documents",
    "Files": "files",
    "FileUpload": "files",
    "TemporaryFiles": "files",
    "SharedFiles": "files",
    "Images": "files",
    "CommentFiles": "files",
    "Search": "search",
    "Webhooks": "integrations",
    "Autopilot": "automation",
}

DEFAULT_TABLES = NamingTables(
    domain_order=(
        Domain.USERS,
        Domain.TASKS,
        Domain.PROJECTS,
        Domain.TIMES,
        Domain.WORKSPACE,
        Domain.DOCUMENTS,
        Domain.FILES,
        Domain.SEARCH,
        Domain.INTEGRATIONS,
        Domain.AUTOMATION,
    ),
    domain_descriptions={
        Domain.USERS: "Users",
        Domain.TASKS: "Tasks",
        Domain.PROJECTS: "Projects",
        Domain.TIMES: "Times",
        Domain.WORKSPACE: "Workspace",
        Domain.DOCUMENTS: "Documents",
        Domain.FILES: "Files",
        Domain.SEARCH: "Search",
        Domain.INTEGRATIONS: "Integrations",
        Domain.AUTOMATION: "Automation",
        Domain.AUTH: "Auth",
    },
    tag_domains=_TAG_DOMAINS,
    root_tags=("Users", "Tasks", "Projects", "Workspaces", "Documents", "Files", "Search"),
    tag_sub_overrides={
        "ApiUsers": "api-users",
        "ChecklistItems": "checklist-items",
        "CompanyFiles": "company-files",
        "CompanyTags": "company-tags",
        "CommentFiles": "comment-files",
        "FileUpload": "upload",
    },
    domain_prefixes={
        Domain.USERS: "User",
        Domain.TASKS: "Task",
        Domain.PROJECTS: "Project",
        Domain.TIMES: "Time",
        Domain.WORKSPACE: "Workspace",
        Domain.DOCUMENTS: "Document",
        Domain.FILES: "File",
    },
    suffix_strip_domains={
        Domain.TASKS: "Tasks",
        Domain.FILES: "Files",
        Domain.USERS: "Users",
    },
    segment_aliases=_SEGMENT_ALIASES,
    known_resources=(
        "user", "users", "project", "projects", "tags", "team", "teams",
        "role", "roles", "member", "members", "task", "tasks", "tasklist",
        "tasklists", "taskbundle", "taskbundles", "checklistitem",
        "checklistitems", "checklist", "comment", "comments",
    ),
    compound_action_prefixes=("add", "remove", "update", "set", "assign", "unassign", "move"),
    action_prefixes=(
        "add-", "remove-", "update-", "set-", "assign", "unassign", "move-",
        "delete", "change", "accept", "activate", "deactivate", "start", "stop",
        "pause", "resume", "archive", "unarchive", "setarchived",
    ),
    non_plural_prefixes=("add-", "remove-", "update-", "set-", "accept", "assign"),
    word_fragments=(
        # compound nouns that stay together
        "subtasks", "subtask", "contactinfo",
        # plurals and conjugations
        "assignees", "statuses", "types", "lists", "tags", "members", "templates",
        "projects", "tasks", "users", "teams", "companies", "archived", "recurrency",
        # verbs
        "change", "set", "get", "list", "create", "update", "delete", "remove", "add",
        "assign", "unassign", "activate", "deactivate", "archive", "unarchive",
        "start", "stop", "enable", "disable", "accept", "reject", "approve", "deny",
        # singular nouns
        "project", "task", "user", "team", "company", "contact", "status", "type",
        "base", "work", "info", "tag", "parent", "order", "member", "template",
        # short words split aggressively
        "top", "to",
    ),
    unsplittable_words=("workspace", "workspaces", "workload"),
    word_replacements={"WorkSpace": "Workspace"},
    reserved_option_names=("env", "token", "auth-mode", "config", "body", "set", "set-json"),
)
"""Naming tables for the awork REST API."""
