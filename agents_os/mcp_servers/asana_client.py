"""Asana REST API client for the Asana MCP server.

Thin async wrapper around ``httpx.AsyncClient``. Each method maps to one
Asana endpoint, unwraps the ``data`` envelope and lets HTTP failures
propagate as ``httpx`` exceptions for the caller to classify. Nothing is
retried.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Mapping, Sequence
from typing import Any

import httpx

from agents_os.config import ASANA_BASE_URL, DEFAULT_TIMEOUT_SECONDS
from agents_os.mcp_servers.search_params import simplify_custom_fields

logger = logging.getLogger(__name__)


def _clean(params: Mapping[str, Any] | None) -> dict[str, Any] | None:
    if not params:
        return None
    return {key: value for key, value in params.items() if value is not None}


class AsanaClient:
    """Async Asana API client authenticated with a personal access token."""

    def __init__(
        self,
        access_token: str,
        *,
        base_url: str = ASANA_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._http = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
            },
        )

    async def __aenter__(self) -> AsanaClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        data: Any = None,
    ) -> Any:
        logger.debug("Asana %s %s", method, path)
        response = await self._http.request(
            method,
            path,
            params=_clean(params),
            json={"data": data} if data is not None else None,
        )
        response.raise_for_status()
        if not response.content:
            return {}
        return response.json()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        body = await self._send(method, path, **kwargs)
        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    async def _paginated(self, path: str, params: Mapping[str, Any]) -> dict[str, Any]:
        """GET a list endpoint and keep Asana's ``next_page`` token."""
        body = await self._send("GET", path, params=params)
        return {"data": body.get("data", []), "next_page": body.get("next_page")}

    # ── Workspaces & search ─────────────────────────────────────────

    async def list_workspaces(self, params: Mapping[str, Any] | None = None) -> Any:
        return await self._request("GET", "/workspaces", params=params)

    async def search_projects(
        self,
        workspace: str,
        name_pattern: str,
        archived: bool = False,
        params: Mapping[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """List the workspace's projects and keep those whose name matches."""
        projects = await self._request(
            "GET",
            f"/workspaces/{workspace}/projects",
            params={"archived": archived, **(params or {})},
        )
        pattern = re.compile(name_pattern, re.IGNORECASE)
        return [p for p in projects if pattern.search(p.get("name") or "")]

    async def search_tasks(self, workspace: str, query: Mapping[str, Any]) -> list[Any]:
        """Run a task search; ``query`` must already be in flat dot-path form."""
        tasks = await self._request("GET", f"/workspaces/{workspace}/tasks/search", params=query)
        return [simplify_custom_fields(task) for task in tasks]

    # ── Tasks ───────────────────────────────────────────────────────

    async def get_task(self, task_id: str, params: Mapping[str, Any] | None = None) -> Any:
        return await self._request("GET", f"/tasks/{task_id}", params=params)

    async def get_multiple_tasks(
        self, task_ids: Sequence[str], params: Mapping[str, Any] | None = None
    ) -> list[Any]:
        """Fetch tasks concurrently; results come back in ``task_ids`` order."""
        return list(await asyncio.gather(*(self.get_task(tid, params) for tid in task_ids)))

    async def create_task(self, project_id: str, data: Mapping[str, Any]) -> Any:
        projects = list(data.get("projects") or [])
        if project_id not in projects:
            projects.append(project_id)
        body = {
            **data,
            "projects": projects,
            "resource_subtype": data.get("resource_subtype") or "default_task",
        }
        return await self._request("POST", "/tasks", data=body)

    async def update_task(self, task_id: str, data: Mapping[str, Any]) -> Any:
        return await self._request("PUT", f"/tasks/{task_id}", data=dict(data))

    async def create_subtask(
        self, parent_task_id: str, data: Mapping[str, Any], params: Mapping[str, Any] | None = None
    ) -> Any:
        return await self._request(
            "POST", f"/tasks/{parent_task_id}/subtasks", params=params, data=dict(data)
        )

    async def add_task_dependencies(self, task_id: str, dependencies: Sequence[str]) -> Any:
        return await self._request(
            "POST", f"/tasks/{task_id}/addDependencies", data={"dependencies": list(dependencies)}
        )

    async def add_task_dependents(self, task_id: str, dependents: Sequence[str]) -> Any:
        return await self._request(
            "POST", f"/tasks/{task_id}/addDependents", data={"dependents": list(dependents)}
        )

    async def set_parent_for_task(
        self, task_id: str, data: Mapping[str, Any], params: Mapping[str, Any] | None = None
    ) -> Any:
        return await self._request(
            "POST", f"/tasks/{task_id}/setParent", params=params, data=dict(data)
        )

    # ── Stories ─────────────────────────────────────────────────────

    async def get_stories_for_task(
        self, task_id: str, params: Mapping[str, Any] | None = None
    ) -> Any:
        return await self._request("GET", f"/tasks/{task_id}/stories", params=params)

    async def create_task_story(
        self, task_id: str, data: Mapping[str, Any], params: Mapping[str, Any] | None = None
    ) -> Any:
        return await self._request(
            "POST", f"/tasks/{task_id}/stories", params=params, data=dict(data)
        )

    # ── Projects & statuses ─────────────────────────────────────────

    async def get_project(self, project_id: str, params: Mapping[str, Any] | None = None) -> Any:
        return await self._request("GET", f"/projects/{project_id}", params=params)

    async def get_project_task_counts(
        self, project_id: str, params: Mapping[str, Any] | None = None
    ) -> Any:
        return await self._request("GET", f"/projects/{project_id}/task_counts", params=params)

    async def get_project_sections(
        self, project_id: str, params: Mapping[str, Any] | None = None
    ) -> Any:
        return await self._request("GET", f"/projects/{project_id}/sections", params=params)

    async def get_project_status(
        self, status_gid: str, params: Mapping[str, Any] | None = None
    ) -> Any:
        return await self._request("GET", f"/project_statuses/{status_gid}", params=params)

    async def get_project_statuses(
        self, project_gid: str, params: Mapping[str, Any]
    ) -> dict[str, Any]:
        return await self._paginated(f"/projects/{project_gid}/project_statuses", params)

    async def create_project_status(
        self, project_gid: str, data: Mapping[str, Any], params: Mapping[str, Any] | None = None
    ) -> Any:
        return await self._request(
            "POST", f"/projects/{project_gid}/project_statuses", params=params, data=dict(data)
        )

    async def delete_project_status(self, status_gid: str) -> Any:
        return await self._request("DELETE", f"/project_statuses/{status_gid}")

    # ── Tags ────────────────────────────────────────────────────────

    async def get_tasks_for_tag(self, tag_gid: str, params: Mapping[str, Any]) -> dict[str, Any]:
        return await self._paginated(f"/tags/{tag_gid}/tasks", params)

    async def get_tags_for_workspace(
        self, workspace_gid: str, params: Mapping[str, Any]
    ) -> dict[str, Any]:
        return await self._paginated(f"/workspaces/{workspace_gid}/tags", params)

    # ── Batch ───────────────────────────────────────────────────────

    async def execute_batch(self, actions: Sequence[Mapping[str, Any]]) -> Any:
        """Submit up to ten actions through Asana's ``/batch`` endpoint.

        Each action is ``{"method", "relative_path", "data"?, "options"?}``;
        methods are sent lowercase. The result holds one
        ``{"status_code", "body", "headers"}`` entry per action, in order.
        """
        prepared = []
        for action in actions:
            entry = {"method": str(action["method"]).lower(), "relative_path": action["relative_path"]}
            for key in ("data", "options"):
                if action.get(key) is not None:
                    entry[key] = action[key]
            prepared.append(entry)
        return await self._request("POST", "/batch", data={"actions": prepared})

    async def update_multiple_tasks(
        self, task_ids: Sequence[str], updates: Mapping[str, Any]
    ) -> Any:
        actions = [
            {"method": "put", "relative_path": f"/tasks/{task_id}", "data": dict(updates)}
            for task_id in task_ids
        ]
        return await self.execute_batch(actions)

    # ── Portfolios ──────────────────────────────────────────────────

    async def get_portfolios(self, params: Mapping[str, Any]) -> dict[str, Any]:
        return await self._paginated("/portfolios", params)

    async def get_portfolio(self, portfolio_gid: str, params: Mapping[str, Any] | None = None) -> Any:
        return await self._request("GET", f"/portfolios/{portfolio_gid}", params=params)

    async def create_portfolio(
        self, data: Mapping[str, Any], params: Mapping[str, Any] | None = None
    ) -> Any:
        return await self._request("POST", "/portfolios", params=params, data=dict(data))

    async def update_portfolio(
        self, portfolio_gid: str, data: Mapping[str, Any], params: Mapping[str, Any] | None = None
    ) -> Any:
        return await self._request(
            "PUT", f"/portfolios/{portfolio_gid}", params=params, data=dict(data)
        )

    async def delete_portfolio(self, portfolio_gid: str) -> Any:
        return await self._request("DELETE", f"/portfolios/{portfolio_gid}")

    async def get_portfolio_items(
        self, portfolio_gid: str, params: Mapping[str, Any]
    ) -> dict[str, Any]:
        return await self._paginated(f"/portfolios/{portfolio_gid}/items", params)

    async def add_portfolio_item(self, portfolio_gid: str, data: Mapping[str, Any]) -> Any:
        return await self._request("POST", f"/portfolios/{portfolio_gid}/addItem", data=dict(data))

    async def remove_portfolio_item(self, portfolio_gid: str, item: str) -> Any:
        return await self._request(
            "POST", f"/portfolios/{portfolio_gid}/removeItem", data={"item": item}
        )

    async def add_portfolio_members(
        self, portfolio_gid: str, members: Sequence[str], params: Mapping[str, Any] | None = None
    ) -> Any:
        return await self._request(
            "POST",
            f"/portfolios/{portfolio_gid}/addMembers",
            params=params,
            data={"members": ",".join(members)},
        )

    async def remove_portfolio_members(
        self, portfolio_gid: str, members: Sequence[str], params: Mapping[str, Any] | None = None
    ) -> Any:
        return await self._request(
            "POST",
            f"/portfolios/{portfolio_gid}/removeMembers",
            params=params,
            data={"members": ",".join(members)},
        )

    # ── Goals ───────────────────────────────────────────────────────

    async def get_goals(self, params: Mapping[str, Any]) -> dict[str, Any]:
        return await self._paginated("/goals", params)

    async def get_goal(self, goal_gid: str, params: Mapping[str, Any] | None = None) -> Any:
        return await self._request("GET", f"/goals/{goal_gid}", params=params)

    async def get_parent_goals(self, goal_gid: str, params: Mapping[str, Any] | None = None) -> Any:
        return await self._request("GET", f"/goals/{goal_gid}/parentGoals", params=params)

    async def create_goal(
        self, data: Mapping[str, Any], params: Mapping[str, Any] | None = None
    ) -> Any:
        return await self._request("POST", "/goals", params=params, data=dict(data))

    async def update_goal(
        self, goal_gid: str, data: Mapping[str, Any], params: Mapping[str, Any] | None = None
    ) -> Any:
        return await self._request("PUT", f"/goals/{goal_gid}", params=params, data=dict(data))

    async def set_goal_metric(self, goal_gid: str, metric: Mapping[str, Any]) -> Any:
        return await self._request("POST", f"/goals/{goal_gid}/setMetric", data=dict(metric))

    async def delete_goal(self, goal_gid: str) -> Any:
        return await self._request("DELETE", f"/goals/{goal_gid}")

    async def add_goal_supporters(
        self, goal_gid: str, supporters: Sequence[str], params: Mapping[str, Any] | None = None
    ) -> Any:
        return await self._request(
            "POST",
            f"/goals/{goal_gid}/addSupporters",
            params=params,
            data={"supporters": list(supporters)},
        )

    async def remove_goal_supporters(
        self, goal_gid: str, supporters: Sequence[str], params: Mapping[str, Any] | None = None
    ) -> Any:
        return await self._request(
            "POST",
            f"/goals/{goal_gid}/removeSupporters",
            params=params,
            data={"supporters": list(supporters)},
        )
