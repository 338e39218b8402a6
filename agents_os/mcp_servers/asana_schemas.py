"""Input models for the Asana MCP tools, one per tool.

The models double as the tools' JSON schemas (``model_json_schema`` by
alias). Dot-noted search keys such as ``projects.any`` are declared with
aliases so they keep the vendor's spelling on both sides.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from agents_os.mcp_servers.validation import (
    BoolLike,
    CustomFieldFilter,
    Gid,
    GidList,
    HtmlText,
    IsoDate,
    IsoDateTime,
    Limit,
    NonEmptyStr,
    OptFields,
    ResourceSubtype,
    Scalar,
    SortBy,
    UserId,
    UserIdList,
)

MAX_BATCH_ACTIONS = 10
MAX_TASKS_PER_FETCH = 25

ProjectStatusColor = Literal["green", "yellow", "red"]
GoalStatus = Literal["green", "yellow", "red", "closed"]
PortfolioColor = Literal[
    "dark-pink", "dark-green", "dark-blue", "dark-red", "dark-teal",
    "dark-brown", "dark-orange", "dark-purple", "dark-warm-gray",
    "light-pink", "light-green", "light-blue", "light-red", "light-teal",
    "light-brown", "light-orange", "light-purple", "light-warm-gray",
]

BatchGidList = Annotated[GidList, Field(min_length=1, max_length=MAX_BATCH_ACTIONS)]
NonEmptyGidList = Annotated[GidList, Field(min_length=1)]
NonEmptyUserIdList = Annotated[UserIdList, Field(min_length=1)]


class ToolInput(BaseModel):
    """Base for tool inputs. Unknown keys are ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def params(self, *exclude: str) -> dict[str, Any]:
        """Dump set fields by their wire names, minus ``exclude``."""
        return self.model_dump(by_alias=True, exclude_none=True, exclude=set(exclude))

    @classmethod
    def cross_field_problems(cls, data: Mapping[str, Any]) -> list[str]:
        """Problems with rules that span several fields.

        ``data`` is either the raw arguments or the validated fields, so
        ``validate`` can report these alongside field errors.
        """
        return []

    @model_validator(mode="after")
    def _check_cross_fields(self) -> ToolInput:
        problems = self.cross_field_problems(self.model_dump())
        if problems:
            raise ValueError("; ".join(problems))
        return self


def _one_insert_position(data: Mapping[str, Any]) -> list[str]:
    if data.get("insert_after") and data.get("insert_before"):
        return ["Cannot specify both insert_after and insert_before"]
    return []


class PagedInput(ToolInput):
    limit: Limit | None = None
    offset: str | None = Field(None, description="Pagination offset token from a previous response")
    opt_fields: OptFields | None = None


# ── Workspaces & search ─────────────────────────────────────────────


class ListWorkspacesInput(PagedInput):
    pass


class SearchProjectsInput(PagedInput):
    workspace: Gid
    name_pattern: str = Field(description="Case-insensitive regular expression matched against project names")
    archived: BoolLike = False

    @field_validator("name_pattern")
    @classmethod
    def _compiles(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"Invalid regular expression: {exc}") from exc
        return value


class SearchTasksInput(ToolInput):
    """Asana task search. Keys follow the vendor's dot notation.

    Keys not declared here are forwarded to the search endpoint unchanged.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    workspace: Gid
    text: str | None = None

    projects_any: GidList | None = Field(None, alias="projects.any")
    projects_all: GidList | None = Field(None, alias="projects.all")
    projects_not: GidList | None = Field(None, alias="projects.not")
    sections_any: GidList | None = Field(None, alias="sections.any")
    sections_all: GidList | None = Field(None, alias="sections.all")
    sections_not: GidList | None = Field(None, alias="sections.not")

    assignee_any: UserIdList | None = Field(None, alias="assignee.any")
    assignee_not: GidList | None = Field(None, alias="assignee.not")
    created_by_any: GidList | None = Field(None, alias="created_by.any")
    created_by_not: GidList | None = Field(None, alias="created_by.not")
    assigned_by_any: GidList | None = Field(None, alias="assigned_by.any")
    assigned_by_not: GidList | None = Field(None, alias="assigned_by.not")
    followers_any: GidList | None = Field(None, alias="followers.any")
    followers_not: GidList | None = Field(None, alias="followers.not")
    liked_by_any: GidList | None = Field(None, alias="liked_by.any")
    liked_by_not: GidList | None = Field(None, alias="liked_by.not")
    commented_on_by_any: GidList | None = Field(None, alias="commented_on_by.any")
    commented_on_by_not: GidList | None = Field(None, alias="commented_on_by.not")

    due_on: IsoDate | None = None
    due_on_after: IsoDate | None = Field(None, alias="due_on.after")
    due_on_before: IsoDate | None = Field(None, alias="due_on.before")
    due_at_after: IsoDateTime | None = Field(None, alias="due_at.after")
    due_at_before: IsoDateTime | None = Field(None, alias="due_at.before")
    start_on: IsoDate | None = None
    start_on_after: IsoDate | None = Field(None, alias="start_on.after")
    start_on_before: IsoDate | None = Field(None, alias="start_on.before")
    created_at_after: IsoDateTime | None = Field(None, alias="created_at.after")
    created_at_before: IsoDateTime | None = Field(None, alias="created_at.before")
    created_on: IsoDate | None = None
    created_on_after: IsoDate | None = Field(None, alias="created_on.after")
    created_on_before: IsoDate | None = Field(None, alias="created_on.before")
    modified_at_after: IsoDateTime | None = Field(None, alias="modified_at.after")
    modified_at_before: IsoDateTime | None = Field(None, alias="modified_at.before")
    modified_on: IsoDate | None = None
    modified_on_after: IsoDate | None = Field(None, alias="modified_on.after")
    modified_on_before: IsoDate | None = Field(None, alias="modified_on.before")
    completed_at_after: IsoDateTime | None = Field(None, alias="completed_at.after")
    completed_at_before: IsoDateTime | None = Field(None, alias="completed_at.before")
    completed_on: IsoDate | None = None
    completed_on_after: IsoDate | None = Field(None, alias="completed_on.after")
    completed_on_before: IsoDate | None = Field(None, alias="completed_on.before")

    completed: BoolLike | None = None
    is_subtask: BoolLike | None = None
    has_attachment: BoolLike | None = None
    is_blocked: BoolLike | None = None
    is_blocking: BoolLike | None = None

    tags_any: GidList | None = Field(None, alias="tags.any")
    tags_all: GidList | None = Field(None, alias="tags.all")
    tags_not: GidList | None = Field(None, alias="tags.not")
    teams_any: GidList | None = Field(None, alias="teams.any")
    portfolios_any: GidList | None = Field(None, alias="portfolios.any")

    resource_subtype: ResourceSubtype | None = None
    custom_fields: CustomFieldFilter | None = Field(
        None,
        description=(
            'Custom field filters, e.g. {"12345": "high"} or '
            '{"12345": {"contains": "eng"}}. A JSON string is also accepted.'
        ),
    )

    sort_by: SortBy | None = None
    sort_ascending: BoolLike | None = None
    limit: Limit | None = None
    offset: str | None = None
    opt_fields: OptFields | None = None


# ── Tasks ───────────────────────────────────────────────────────────


class GetTaskInput(ToolInput):
    task_id: Gid
    opt_fields: OptFields | None = None


class CreateTaskInput(ToolInput):
    project_id: Gid
    name: NonEmptyStr
    notes: str | None = None
    html_notes: HtmlText | None = None
    due_on: IsoDate | None = None
    assignee: UserId | None = None
    followers: GidList | None = None
    parent: Gid | None = None
    projects: GidList | None = None
    resource_subtype: ResourceSubtype | None = None
    custom_fields: dict[Gid, Scalar] | None = None


class UpdateTaskInput(ToolInput):
    task_id: Gid
    name: str | None = None
    notes: str | None = None
    html_notes: HtmlText | None = None
    due_on: IsoDate | None = None
    assignee: UserId | None = None
    completed: BoolLike | None = None
    resource_subtype: ResourceSubtype | None = None
    custom_fields: dict[Gid, Scalar] | None = None


class GetMultipleTasksInput(ToolInput):
    task_ids: Annotated[GidList, Field(min_length=1, max_length=MAX_TASKS_PER_FETCH)]
    opt_fields: OptFields | None = None


class CreateSubtaskInput(ToolInput):
    parent_task_id: Gid
    name: NonEmptyStr
    notes: str | None = None
    html_notes: HtmlText | None = None
    due_on: IsoDate | None = None
    assignee: UserId | None = None
    opt_fields: OptFields | None = None


class AddTaskDependenciesInput(ToolInput):
    task_id: Gid
    dependencies: NonEmptyGidList


class AddTaskDependentsInput(ToolInput):
    task_id: Gid
    dependents: NonEmptyGidList


class SetParentForTaskInput(ToolInput):
    task_id: Gid
    parent: Gid | None = Field(description="New parent task GID, or null to detach the task")
    insert_after: Gid | None = None
    insert_before: Gid | None = None
    opt_fields: OptFields | None = None

    @classmethod
    def cross_field_problems(cls, data: Mapping[str, Any]) -> list[str]:
        return _one_insert_position(data)


# ── Stories ─────────────────────────────────────────────────────────


class GetTaskStoriesInput(ToolInput):
    task_id: Gid
    opt_fields: OptFields | None = None


class CreateTaskStoryInput(ToolInput):
    task_id: Gid
    text: str | None = None
    html_text: HtmlText | None = None
    opt_fields: OptFields | None = None

    @classmethod
    def cross_field_problems(cls, data: Mapping[str, Any]) -> list[str]:
        if not data.get("text") and not data.get("html_text"):
            return ["Either 'text' or 'html_text' must be provided"]
        return []


# ── Projects & statuses ─────────────────────────────────────────────


class ProjectInput(ToolInput):
    project_id: Gid
    opt_fields: OptFields | None = None


class GetProjectStatusInput(ToolInput):
    project_status_gid: Gid
    opt_fields: OptFields | None = None


class GetProjectStatusesInput(PagedInput):
    project_gid: Gid


class CreateProjectStatusInput(ToolInput):
    project_gid: Gid
    text: NonEmptyStr
    color: ProjectStatusColor | None = None
    title: str | None = None
    html_text: HtmlText | None = None
    opt_fields: OptFields | None = None


class DeleteProjectStatusInput(ToolInput):
    project_status_gid: Gid


# ── Tags ────────────────────────────────────────────────────────────


class GetTasksForTagInput(PagedInput):
    tag_gid: Gid
    opt_pretty: BoolLike | None = None


class GetTagsForWorkspaceInput(PagedInput):
    workspace_gid: Gid


# ── Bulk operations ─────────────────────────────────────────────────


class TaskUpdates(ToolInput):
    name: str | None = None
    notes: str | None = None
    html_notes: HtmlText | None = None
    completed: BoolLike | None = None
    assignee: UserId | None = None
    due_on: IsoDate | None = None
    resource_subtype: ResourceSubtype | None = None
    custom_fields: dict[Gid, Scalar] | None = None


class UpdateMultipleTasksInput(ToolInput):
    task_ids: BatchGidList
    updates: TaskUpdates
    opt_fields: OptFields | None = None


class BatchAction(BaseModel):
    model_config = ConfigDict(extra="forbid")

    method: Literal["GET", "POST", "PUT", "DELETE"]
    relative_path: NonEmptyStr
    data: dict[str, Any] | None = None
    options: dict[str, Any] | None = Field(
        None, description='Per-action options, e.g. {"fields": ["name"]}'
    )


class ExecuteBatchInput(ToolInput):
    actions: Annotated[list[BatchAction], Field(min_length=1, max_length=MAX_BATCH_ACTIONS)]
    opt_fields: OptFields | None = None


class NewTask(ToolInput):
    name: NonEmptyStr
    notes: str | None = None
    html_notes: HtmlText | None = None
    assignee: UserId | None = None
    due_on: IsoDate | None = None
    followers: GidList | None = None
    parent: Gid | None = None
    resource_subtype: ResourceSubtype | None = None
    custom_fields: dict[Gid, Scalar] | None = None


class CreateMultipleTasksInput(ToolInput):
    project_id: Gid
    tasks: Annotated[list[NewTask], Field(min_length=1, max_length=MAX_BATCH_ACTIONS)]
    opt_fields: OptFields | None = None


class Assignment(ToolInput):
    task_id: Gid
    assignee: UserId


class AssignMultipleTasksInput(ToolInput):
    assignments: Annotated[list[Assignment], Field(min_length=1, max_length=MAX_BATCH_ACTIONS)]
    opt_fields: OptFields | None = None


class CompleteMultipleTasksInput(ToolInput):
    task_ids: BatchGidList
    completed: BoolLike
    opt_fields: OptFields | None = None


# ── Portfolios ──────────────────────────────────────────────────────


class GetPortfoliosInput(PagedInput):
    workspace: Gid
    owner: UserId | None = None


class PortfolioInput(ToolInput):
    portfolio_gid: Gid
    opt_fields: OptFields | None = None


class CreatePortfolioInput(ToolInput):
    workspace: Gid
    name: NonEmptyStr
    color: PortfolioColor | None = None
    public: BoolLike | None = None
    owner: UserId | None = None
    start_on: IsoDate | None = None
    due_on: IsoDate | None = None
    opt_fields: OptFields | None = None


class UpdatePortfolioInput(ToolInput):
    portfolio_gid: Gid
    name: str | None = None
    color: PortfolioColor | None = None
    public: BoolLike | None = None
    start_on: IsoDate | None = None
    due_on: IsoDate | None = None
    opt_fields: OptFields | None = None


class DeletePortfolioInput(ToolInput):
    portfolio_gid: Gid


class GetPortfolioItemsInput(PagedInput):
    portfolio_gid: Gid


class AddPortfolioItemsInput(ToolInput):
    portfolio_gid: Gid
    items: NonEmptyGidList
    insert_before: Gid | None = None
    insert_after: Gid | None = None
    opt_fields: OptFields | None = None

    @classmethod
    def cross_field_problems(cls, data: Mapping[str, Any]) -> list[str]:
        return _one_insert_position(data)


class RemovePortfolioItemsInput(ToolInput):
    portfolio_gid: Gid
    items: NonEmptyGidList
    opt_fields: OptFields | None = None


class PortfolioMembersInput(ToolInput):
    portfolio_gid: Gid
    members: NonEmptyUserIdList
    opt_fields: OptFields | None = None


# ── Goals ───────────────────────────────────────────────────────────


class GoalMetric(ToolInput):
    unit: str | None = None
    target_number: float | None = None
    initial_number: float | None = None
    current_number: float | None = None

    def api_fields(self) -> dict[str, Any]:
        """Metric fields under Asana's ``*_value`` names."""
        fields: dict[str, Any] = {}
        if self.unit is not None:
            fields["unit"] = self.unit
        for name in ("target_number", "initial_number", "current_number"):
            value = getattr(self, name)
            if value is not None:
                fields[f"{name}_value"] = value
        return fields


class GetGoalsInput(PagedInput):
    workspace: Gid
    team: Gid | None = None
    time_periods: GidList | None = None


class GoalInput(ToolInput):
    goal_gid: Gid
    opt_fields: OptFields | None = None


class CreateGoalInput(ToolInput):
    workspace: Gid
    name: NonEmptyStr
    owner: UserId | None = None
    team: Gid | None = None
    time_period: Gid | None = None
    notes: str | None = None
    html_notes: HtmlText | None = None
    metric: GoalMetric | None = None
    opt_fields: OptFields | None = None


class UpdateGoalInput(ToolInput):
    goal_gid: Gid
    name: str | None = None
    notes: str | None = None
    html_notes: HtmlText | None = None
    status: GoalStatus | None = None
    metric: GoalMetric | None = None
    opt_fields: OptFields | None = None


class DeleteGoalInput(ToolInput):
    goal_gid: Gid


class GoalSupportersInput(ToolInput):
    goal_gid: Gid
    supporters: NonEmptyUserIdList
    opt_fields: OptFields | None = None
