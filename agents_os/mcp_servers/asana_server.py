"""Asana MCP Server: exposes Asana tools via Model Context Protocol.

Registers the workspace, search, task, story, project, status, tag,
bulk and portfolio tools (plus goal tools when ``ASANA_ENABLE_GOALS`` is
set) and communicates via stdio transport. With ``ASANA_READ_ONLY`` set,
only read tools are advertised and every other tool is refused before
its arguments are even validated.

Usage:
    uv run python -m agents_os.mcp_servers.asana_server
    uv run asana-mcp-server
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from mcp.server import Server

from agents_os.config import AsanaSettings, load_asana_settings
from agents_os.exceptions import ConfigError
from agents_os.mcp_servers import asana_schemas as s
from agents_os.mcp_servers.asana_client import AsanaClient
from agents_os.mcp_servers.search_params import build_search_query, pagination_params
from agents_os.mcp_servers.tooling import (
    AppContext,
    ToolSpec,
    create_server,
    serve_stdio,
    tool_table,
)
from agents_os.utils.logging_utils import configure_logging

logger = logging.getLogger(__name__)

ACTOR = "asana_mcp"


def _opts(opt_fields: str | None) -> dict[str, Any]:
    return {"opt_fields": opt_fields} if opt_fields else {}


def _paged(p: s.PagedInput, **extra: Any) -> dict[str, Any]:
    return {**extra, **pagination_params(p.limit, p.offset), **_opts(p.opt_fields)}


# ── Workspaces & search ─────────────────────────────────────────────


async def list_workspaces(client: AsanaClient, p: s.ListWorkspacesInput) -> Any:
    return await client.list_workspaces(p.params())


async def search_projects(client: AsanaClient, p: s.SearchProjectsInput) -> Any:
    return await client.search_projects(
        p.workspace, p.name_pattern, p.archived, p.params("workspace", "name_pattern", "archived")
    )


async def search_tasks(client: AsanaClient, p: s.SearchTasksInput) -> Any:
    return await client.search_tasks(p.workspace, build_search_query(p.params("workspace")))


# ── Tasks ───────────────────────────────────────────────────────────


async def get_task(client: AsanaClient, p: s.GetTaskInput) -> Any:
    return await client.get_task(p.task_id, _opts(p.opt_fields))


async def create_task(client: AsanaClient, p: s.CreateTaskInput) -> Any:
    return await client.create_task(p.project_id, p.params("project_id"))


async def update_task(client: AsanaClient, p: s.UpdateTaskInput) -> Any:
    return await client.update_task(p.task_id, p.params("task_id"))


async def get_multiple_tasks_by_gid(client: AsanaClient, p: s.GetMultipleTasksInput) -> Any:
    return await client.get_multiple_tasks(p.task_ids, _opts(p.opt_fields))


async def create_subtask(client: AsanaClient, p: s.CreateSubtaskInput) -> Any:
    return await client.create_subtask(
        p.parent_task_id, p.params("parent_task_id", "opt_fields"), _opts(p.opt_fields)
    )


async def add_task_dependencies(client: AsanaClient, p: s.AddTaskDependenciesInput) -> Any:
    return await client.add_task_dependencies(p.task_id, p.dependencies)


async def add_task_dependents(client: AsanaClient, p: s.AddTaskDependentsInput) -> Any:
    return await client.add_task_dependents(p.task_id, p.dependents)


async def set_parent_for_task(client: AsanaClient, p: s.SetParentForTaskInput) -> Any:
    data: dict[str, Any] = {"parent": p.parent}
    if p.insert_after:
        data["insert_after"] = p.insert_after
    if p.insert_before:
        data["insert_before"] = p.insert_before
    return await client.set_parent_for_task(p.task_id, data, _opts(p.opt_fields))


# ── Stories ─────────────────────────────────────────────────────────


async def get_task_stories(client: AsanaClient, p: s.GetTaskStoriesInput) -> Any:
    return await client.get_stories_for_task(p.task_id, _opts(p.opt_fields))


async def create_task_story(client: AsanaClient, p: s.CreateTaskStoryInput) -> Any:
    data = {"text": p.text} if p.text else {"html_text": p.html_text}
    return await client.create_task_story(p.task_id, data, _opts(p.opt_fields))


# ── Projects & statuses ─────────────────────────────────────────────


async def get_project(client: AsanaClient, p: s.ProjectInput) -> Any:
    return await client.get_project(p.project_id, _opts(p.opt_fields))


async def get_project_task_counts(client: AsanaClient, p: s.ProjectInput) -> Any:
    return await client.get_project_task_counts(p.project_id, _opts(p.opt_fields))


async def get_project_sections(client: AsanaClient, p: s.ProjectInput) -> Any:
    return await client.get_project_sections(p.project_id, _opts(p.opt_fields))


async def get_project_status(client: AsanaClient, p: s.GetProjectStatusInput) -> Any:
    return await client.get_project_status(p.project_status_gid, _opts(p.opt_fields))


async def get_project_statuses(client: AsanaClient, p: s.GetProjectStatusesInput) -> Any:
    return await client.get_project_statuses(p.project_gid, _paged(p))


async def create_project_status(client: AsanaClient, p: s.CreateProjectStatusInput) -> Any:
    return await client.create_project_status(
        p.project_gid, p.params("project_gid", "opt_fields"), _opts(p.opt_fields)
    )


async def delete_project_status(client: AsanaClient, p: s.DeleteProjectStatusInput) -> Any:
    return await client.delete_project_status(p.project_status_gid)


# ── Tags ────────────────────────────────────────────────────────────


async def get_tasks_for_tag(client: AsanaClient, p: s.GetTasksForTagInput) -> Any:
    extra = {"opt_pretty": p.opt_pretty} if p.opt_pretty is not None else {}
    return await client.get_tasks_for_tag(p.tag_gid, _paged(p, **extra))


async def get_tags_for_workspace(client: AsanaClient, p: s.GetTagsForWorkspaceInput) -> Any:
    return await client.get_tags_for_workspace(p.workspace_gid, _paged(p))


# ── Bulk operations ─────────────────────────────────────────────────


async def update_multiple_tasks(client: AsanaClient, p: s.UpdateMultipleTasksInput) -> Any:
    return await client.update_multiple_tasks(p.task_ids, p.updates.params())


async def execute_batch(client: AsanaClient, p: s.ExecuteBatchInput) -> Any:
    return await client.execute_batch(
        [action.model_dump(exclude_none=True) for action in p.actions]
    )


async def create_multiple_tasks(client: AsanaClient, p: s.CreateMultipleTasksInput) -> Any:
    actions = [
        {
            "method": "post",
            "relative_path": "/tasks",
            "data": {**task.params(), "projects": [p.project_id]},
        }
        for task in p.tasks
    ]
    return await client.execute_batch(actions)


async def assign_multiple_tasks(client: AsanaClient, p: s.AssignMultipleTasksInput) -> Any:
    actions = [
        {"method": "put", "relative_path": f"/tasks/{a.task_id}", "data": {"assignee": a.assignee}}
        for a in p.assignments
    ]
    return await client.execute_batch(actions)


async def complete_multiple_tasks(client: AsanaClient, p: s.CompleteMultipleTasksInput) -> Any:
    return await client.update_multiple_tasks(p.task_ids, {"completed": p.completed})


# ── Portfolios ──────────────────────────────────────────────────────


async def get_portfolios(client: AsanaClient, p: s.GetPortfoliosInput) -> Any:
    extra: dict[str, Any] = {"workspace": p.workspace}
    if p.owner:
        extra["owner"] = p.owner
    return await client.get_portfolios(_paged(p, **extra))


async def get_portfolio(client: AsanaClient, p: s.PortfolioInput) -> Any:
    return await client.get_portfolio(p.portfolio_gid, _opts(p.opt_fields))


async def create_portfolio(client: AsanaClient, p: s.CreatePortfolioInput) -> Any:
    return await client.create_portfolio(p.params("opt_fields"), _opts(p.opt_fields))


async def update_portfolio(client: AsanaClient, p: s.UpdatePortfolioInput) -> Any:
    return await client.update_portfolio(
        p.portfolio_gid, p.params("portfolio_gid", "opt_fields"), _opts(p.opt_fields)
    )


async def delete_portfolio(client: AsanaClient, p: s.DeletePortfolioInput) -> Any:
    return await client.delete_portfolio(p.portfolio_gid)


async def get_portfolio_items(client: AsanaClient, p: s.GetPortfolioItemsInput) -> Any:
    return await client.get_portfolio_items(p.portfolio_gid, _paged(p))


async def add_portfolio_items(client: AsanaClient, p: s.AddPortfolioItemsInput) -> Any:
    # Asana adds one item per request. Chain each item after the previous one
    # so the given order survives when a position was requested.
    anchor: dict[str, str] = {}
    if p.insert_before:
        anchor = {"insert_before": p.insert_before}
    elif p.insert_after:
        anchor = {"insert_after": p.insert_after}
    for item in p.items:
        await client.add_portfolio_item(p.portfolio_gid, {"item": item, **anchor})
        if anchor and "insert_after" in anchor:
            anchor = {"insert_after": item}
    return {"portfolio_gid": p.portfolio_gid, "added": p.items}


async def remove_portfolio_items(client: AsanaClient, p: s.RemovePortfolioItemsInput) -> Any:
    for item in p.items:
        await client.remove_portfolio_item(p.portfolio_gid, item)
    return {"portfolio_gid": p.portfolio_gid, "removed": p.items}


async def add_portfolio_members(client: AsanaClient, p: s.PortfolioMembersInput) -> Any:
    return await client.add_portfolio_members(p.portfolio_gid, p.members, _opts(p.opt_fields))


async def remove_portfolio_members(client: AsanaClient, p: s.PortfolioMembersInput) -> Any:
    return await client.remove_portfolio_members(p.portfolio_gid, p.members, _opts(p.opt_fields))


# ── Goals ───────────────────────────────────────────────────────────


async def get_goals(client: AsanaClient, p: s.GetGoalsInput) -> Any:
    extra: dict[str, Any] = {"workspace": p.workspace}
    if p.team:
        extra["team"] = p.team
    if p.time_periods:
        extra["time_periods"] = ",".join(p.time_periods)
    return await client.get_goals(_paged(p, **extra))


async def get_goal(client: AsanaClient, p: s.GoalInput) -> Any:
    return await client.get_goal(p.goal_gid, _opts(p.opt_fields))


async def get_parent_goals(client: AsanaClient, p: s.GoalInput) -> Any:
    return await client.get_parent_goals(p.goal_gid, _opts(p.opt_fields))


async def create_goal(client: AsanaClient, p: s.CreateGoalInput) -> Any:
    goal = await client.create_goal(p.params("metric", "opt_fields"), _opts(p.opt_fields))
    if p.metric and p.metric.api_fields():
        goal = await client.set_goal_metric(goal["gid"], p.metric.api_fields())
    return goal


async def update_goal(client: AsanaClient, p: s.UpdateGoalInput) -> Any:
    data = p.params("goal_gid", "metric", "opt_fields")
    goal = await client.update_goal(p.goal_gid, data, _opts(p.opt_fields)) if data else None
    if p.metric and p.metric.api_fields():
        goal = await client.set_goal_metric(p.goal_gid, p.metric.api_fields())
    if goal is None:
        goal = await client.get_goal(p.goal_gid, _opts(p.opt_fields))
    return goal


async def delete_goal(client: AsanaClient, p: s.DeleteGoalInput) -> Any:
    return await client.delete_goal(p.goal_gid)


async def add_goal_supporters(client: AsanaClient, p: s.GoalSupportersInput) -> Any:
    return await client.add_goal_supporters(p.goal_gid, p.supporters, _opts(p.opt_fields))


async def remove_goal_supporters(client: AsanaClient, p: s.GoalSupportersInput) -> Any:
    return await client.remove_goal_supporters(p.goal_gid, p.supporters, _opts(p.opt_fields))


# ── Tool table ──────────────────────────────────────────────────────

CORE_TOOLS = (
    ToolSpec("asana_list_workspaces", "List all available workspaces in Asana",
             s.ListWorkspacesInput, list_workspaces, read_only=True),
    ToolSpec("asana_search_projects",
             "Search for projects in Asana using a case-insensitive name pattern",
             s.SearchProjectsInput, search_projects, read_only=True, target="workspace"),
    ToolSpec("asana_search_tasks",
             "Search tasks in a workspace with Asana's dot-notation filters "
             "(e.g. projects.any, due_on.before) and custom field filters",
             s.SearchTasksInput, search_tasks, read_only=True, target="workspace",
             json_fields=("custom_fields",)),
    ToolSpec("asana_get_task", "Get detailed information about a specific task",
             s.GetTaskInput, get_task, read_only=True, target="task_id"),
    ToolSpec("asana_create_task", "Create a new task in a project",
             s.CreateTaskInput, create_task, target="project_id"),
    ToolSpec("asana_get_task_stories", "Get comments and stories for a specific task",
             s.GetTaskStoriesInput, get_task_stories, read_only=True, target="task_id"),
    ToolSpec("asana_update_task", "Update an existing task's details",
             s.UpdateTaskInput, update_task, target="task_id"),
    ToolSpec("asana_get_project", "Get detailed information about a specific project",
             s.ProjectInput, get_project, read_only=True, target="project_id"),
    ToolSpec("asana_get_project_task_counts", "Get the number of tasks in a project",
             s.ProjectInput, get_project_task_counts, read_only=True, target="project_id"),
    ToolSpec("asana_get_project_sections", "Get sections in a project",
             s.ProjectInput, get_project_sections, read_only=True, target="project_id"),
    ToolSpec("asana_create_task_story", "Create a comment or story on a task",
             s.CreateTaskStoryInput, create_task_story, target="task_id"),
    ToolSpec("asana_add_task_dependencies", "Set dependencies for a task",
             s.AddTaskDependenciesInput, add_task_dependencies, target="task_id"),
    ToolSpec("asana_add_task_dependents", "Set dependents for a task (tasks that depend on it)",
             s.AddTaskDependentsInput, add_task_dependents, target="task_id"),
    ToolSpec("asana_create_subtask", "Create a new subtask for an existing task",
             s.CreateSubtaskInput, create_subtask, target="parent_task_id"),
    ToolSpec("asana_get_multiple_tasks_by_gid",
             "Get detailed information about multiple tasks by their GIDs (maximum 25)",
             s.GetMultipleTasksInput, get_multiple_tasks_by_gid, read_only=True),
    ToolSpec("asana_get_project_status", "Get a project status update",
             s.GetProjectStatusInput, get_project_status, read_only=True,
             target="project_status_gid"),
    ToolSpec("asana_get_project_statuses", "Get all status updates for a project",
             s.GetProjectStatusesInput, get_project_statuses, read_only=True,
             target="project_gid"),
    ToolSpec("asana_create_project_status", "Create a new status update for a project",
             s.CreateProjectStatusInput, create_project_status, target="project_gid"),
    ToolSpec("asana_delete_project_status", "Delete a project status update",
             s.DeleteProjectStatusInput, delete_project_status, target="project_status_gid"),
    ToolSpec("asana_set_parent_for_task",
             "Set the parent of a task and position it among the parent's subtasks",
             s.SetParentForTaskInput, set_parent_for_task, target="task_id"),
    ToolSpec("asana_get_tasks_for_tag", "Get tasks for a specific tag",
             s.GetTasksForTagInput, get_tasks_for_tag, read_only=True, target="tag_gid"),
    ToolSpec("asana_get_tags_for_workspace", "Get tags in a workspace",
             s.GetTagsForWorkspaceInput, get_tags_for_workspace, read_only=True,
             target="workspace_gid"),
)

BULK_TOOLS = (
    ToolSpec("asana_update_multiple_tasks",
             "Update up to 10 tasks with the same changes in one batch request",
             s.UpdateMultipleTasksInput, update_multiple_tasks),
    ToolSpec("asana_execute_batch", "Execute up to 10 API actions in a single batch request",
             s.ExecuteBatchInput, execute_batch),
    ToolSpec("asana_create_multiple_tasks", "Create up to 10 tasks in a project in one batch",
             s.CreateMultipleTasksInput, create_multiple_tasks, target="project_id"),
    ToolSpec("asana_assign_multiple_tasks", "Assign up to 10 tasks in one batch request",
             s.AssignMultipleTasksInput, assign_multiple_tasks),
    ToolSpec("asana_complete_multiple_tasks",
             "Mark up to 10 tasks complete or incomplete in one batch request",
             s.CompleteMultipleTasksInput, complete_multiple_tasks),
)

PORTFOLIO_TOOLS = (
    ToolSpec("asana_get_portfolios",
             "Get portfolios from a workspace with optional owner filter and pagination",
             s.GetPortfoliosInput, get_portfolios, read_only=True, target="workspace"),
    ToolSpec("asana_get_portfolio", "Get detailed information about a specific portfolio",
             s.PortfolioInput, get_portfolio, read_only=True, target="portfolio_gid"),
    ToolSpec("asana_create_portfolio", "Create a new portfolio in a workspace",
             s.CreatePortfolioInput, create_portfolio, target="workspace"),
    ToolSpec("asana_update_portfolio", "Update an existing portfolio's properties",
             s.UpdatePortfolioInput, update_portfolio, target="portfolio_gid"),
    ToolSpec("asana_delete_portfolio", "Delete a portfolio",
             s.DeletePortfolioInput, delete_portfolio, target="portfolio_gid"),
    ToolSpec("asana_get_portfolio_items", "Get items (projects) in a portfolio",
             s.GetPortfolioItemsInput, get_portfolio_items, read_only=True,
             target="portfolio_gid"),
    ToolSpec("asana_add_portfolio_items", "Add projects to a portfolio",
             s.AddPortfolioItemsInput, add_portfolio_items, target="portfolio_gid"),
    ToolSpec("asana_remove_portfolio_items", "Remove projects from a portfolio",
             s.RemovePortfolioItemsInput, remove_portfolio_items, target="portfolio_gid"),
    ToolSpec("asana_add_portfolio_members", "Add members to a portfolio",
             s.PortfolioMembersInput, add_portfolio_members, target="portfolio_gid"),
    ToolSpec("asana_remove_portfolio_members", "Remove members from a portfolio",
             s.PortfolioMembersInput, remove_portfolio_members, target="portfolio_gid"),
)

GOAL_TOOLS = (
    ToolSpec("asana_get_goals", "Get goals from a workspace, optionally by team or time period",
             s.GetGoalsInput, get_goals, read_only=True, target="workspace"),
    ToolSpec("asana_get_goal", "Get detailed information about a specific goal",
             s.GoalInput, get_goal, read_only=True, target="goal_gid"),
    ToolSpec("asana_get_parent_goals", "Get the parent goals of a goal",
             s.GoalInput, get_parent_goals, read_only=True, target="goal_gid"),
    ToolSpec("asana_create_goal", "Create a new goal in a workspace or team",
             s.CreateGoalInput, create_goal, target="workspace"),
    ToolSpec("asana_update_goal", "Update an existing goal's properties or metric",
             s.UpdateGoalInput, update_goal, target="goal_gid"),
    ToolSpec("asana_delete_goal", "Delete a goal",
             s.DeleteGoalInput, delete_goal, target="goal_gid"),
    ToolSpec("asana_add_goal_supporters", "Add supporters to a goal",
             s.GoalSupportersInput, add_goal_supporters, target="goal_gid"),
    ToolSpec("asana_remove_goal_supporters", "Remove supporters from a goal",
             s.GoalSupportersInput, remove_goal_supporters, target="goal_gid"),
)


def build_tools(enable_goals: bool = False) -> dict[str, ToolSpec]:
    """The Asana tool table; goal tools only when enabled."""
    specs = CORE_TOOLS + BULK_TOOLS + PORTFOLIO_TOOLS
    if enable_goals:
        specs += GOAL_TOOLS
    return tool_table(*specs)


# ── Lifespan ────────────────────────────────────────────────────────


def build_app_context(settings: AsanaSettings, client: AsanaClient) -> AppContext:
    return AppContext(
        client=client,
        tools=build_tools(settings.enable_goals),
        actor=ACTOR,
        read_only=settings.read_only,
        audit_log_dir=settings.audit_log_dir,
    )


def create_asana_server(settings: AsanaSettings) -> Server:
    """Build the Asana MCP server for ``settings``."""

    @asynccontextmanager
    async def app_lifespan(server: Server) -> AsyncIterator[AppContext]:
        client = AsanaClient(
            settings.access_token, base_url=settings.base_url, timeout=settings.timeout
        )
        logger.info(
            "Asana MCP server started (read_only=%s, goals=%s)",
            settings.read_only,
            settings.enable_goals,
        )
        try:
            yield build_app_context(settings, client)
        finally:
            await client.aclose()
            logger.info("Asana MCP server shutting down")

    instructions = "Asana tools. Task search accepts Asana's dot-notation filters."
    if settings.read_only:
        instructions += " Read-only mode: only read tools are available."
    return create_server("asana-mcp-server", app_lifespan, instructions=instructions)


# ── Entry Point ─────────────────────────────────────────────────────


def main() -> None:
    """CLI entry point for the Asana MCP server."""
    try:
        settings = load_asana_settings()
    except ConfigError as exc:
        configure_logging()
        logger.error("Configuration error: %s", exc)
        sys.exit(1)

    configure_logging(settings.log_level)
    asyncio.run(serve_stdio(create_asana_server(settings)))


if __name__ == "__main__":
    main()
