"""Client for the sandbox supervisor's HTTP API."""

from __future__ import annotations

from typing import Any

import httpx

from athena.errors import NotFoundError, UpstreamError


class SandboxClient:
    """Platform-side view of the sandbox host."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 600.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._transport = transport

    async def list_projects(self) -> list[dict[str, Any]]:
        payload = await self._request("GET", "/projects", timeout=10.0)
        projects = payload.get("projects") or []
        return [project for project in projects if isinstance(project, dict)]

    async def used_ports(self) -> list[int]:
        return [int(project["port"]) for project in await self.list_projects() if "port" in project]

    async def create_project(
        self, *, project_id: str, title: str, port: int, overview: str
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/create-project",
            json={
                "projectId": project_id,
                "projectTitle": title,
                "port": port,
                "projectOverview": overview,
            },
        )

    async def restart_project(self, project_id: str, port: int) -> dict[str, Any]:
        return await self._request("POST", f"/restart-project/{project_id}", json={"port": port})

    async def stop_project(self, project_id: str) -> dict[str, Any]:
        return await self._request("POST", f"/stop-project/{project_id}")

    async def pull_changes(self, project_id: str) -> dict[str, Any]:
        return await self._request("POST", f"/pull-changes/{project_id}", timeout=60.0)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=timeout or self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, json=json)
        except httpx.HTTPError as exc:
            msg = f"Sandbox unreachable ({method} {path}): {exc}"
            raise UpstreamError(msg, body=str(exc)) from exc

        if response.status_code == httpx.codes.NOT_FOUND:
            raise NotFoundError(_error_message(response) or f"Sandbox has no {path}")
        if not response.is_success:
            msg = f"Sandbox error: {response.status_code} - {response.text}"
            raise UpstreamError(msg, status=response.status_code, body=response.text)
        try:
            payload = response.json()
        except ValueError as exc:
            msg = f"Sandbox returned non-JSON payload for {method} {path}"
            raise UpstreamError(msg, status=response.status_code, body=response.text) from exc
        if not isinstance(payload, dict):
            msg = f"Sandbox returned unexpected payload for {method} {path}"
            raise UpstreamError(msg, status=response.status_code, body=response.text)
        return payload


def _error_message(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict) and isinstance(payload.get("message"), str):
        return payload["message"]
    return None
