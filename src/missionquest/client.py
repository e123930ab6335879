"""HTTP implementation of :class:`MissionGateway` backed by the JSON API."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from .exceptions import GatewayError
from .gateway import MissionGateway
from .models import (
    FAILURE_ERROR,
    FAILURE_INVALID,
    FAILURE_NOT_FOUND,
    MilestoneSettings,
    Mission,
    MissionDraft,
    MissionStats,
    MutationResult,
)
from .ops import StructuredLogger


class HttpMissionGateway(MissionGateway):
    """Talk to a running Mission Quest web app over ``/api``.

    Pass ``client`` to reuse an existing :class:`httpx.AsyncClient` (for
    example one bound to an in-process ASGI transport); otherwise one is
    created for ``base_url`` and closed by :meth:`aclose`.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        super().__init__()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._logger = logger or StructuredLogger()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpMissionGateway":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def _get_json(self, path: str) -> Any:
        try:
            response = await self._client.get(path)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            self._logger.error("api_read_failed", path=path, error=str(exc))
            raise GatewayError(f"GET {path} failed: {exc}") from exc

    async def list_missions(self) -> List[Mission]:
        payload = await self._get_json("/api/missions")
        return [Mission.from_dict(item) for item in payload]

    async def mission_stats(self) -> MissionStats:
        return MissionStats.from_dict(await self._get_json("/api/stats"))

    async def milestone(self) -> MilestoneSettings:
        return MilestoneSettings.from_dict(await self._get_json("/api/milestone"))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    async def _write(self, method: str, path: str, fallback: str, payload: Optional[Dict[str, Any]] = None) -> MutationResult:
        try:
            response = await self._client.request(method, path, json=payload)
        except httpx.HTTPError as exc:
            self._logger.error("api_write_failed", method=method, path=path, error=str(exc))
            return MutationResult.failed(fallback)
        try:
            body = response.json()
        except ValueError:
            body = {}
        message = str(body.get("message") or "") if isinstance(body, dict) else ""
        if response.is_success and isinstance(body, dict) and body.get("success", True):
            self.invalidate("/")
            return MutationResult.ok(message)
        self._logger.error(
            "api_write_failed", method=method, path=path, status=response.status_code, error=message
        )
        if response.status_code == 404:
            code = FAILURE_NOT_FOUND
        elif response.status_code in (400, 422):
            code = FAILURE_INVALID
        else:
            code = FAILURE_ERROR
        return MutationResult.failed(message or fallback, code)

    async def add_mission(self, draft: MissionDraft) -> MutationResult:
        return await self._write("POST", "/api/missions", "Failed to add mission", draft.to_dict())

    async def toggle_mission(self, mission_id: int) -> MutationResult:
        return await self._write("POST", f"/api/missions/{mission_id}/toggle", "Failed to update mission")

    async def delete_mission(self, mission_id: int) -> MutationResult:
        return await self._write("DELETE", f"/api/missions/{mission_id}", "Failed to delete mission")

    async def update_milestone_goal(self, goal: int) -> MutationResult:
        return await self._write("PUT", "/api/milestone/goal", "Failed to update milestone goal", {"goal": goal})

    async def update_milestone_value(self, value: int) -> MutationResult:
        return await self._write("PUT", "/api/milestone/value", "Failed to update milestone value", {"value": value})

    async def increment_milestone(self, delta: int) -> MutationResult:
        return await self._write("POST", "/api/milestone/increment", "Failed to update milestone", {"delta": delta})


__all__ = ["HttpMissionGateway"]
