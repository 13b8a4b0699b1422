"""Async REST client for the SnowSarva backend."""

from __future__ import annotations

import logging
from typing import Any, Mapping, TypeVar

import httpx
from pydantic import ValidationError

from .config import AppConfig
from .errors import MalformedPayload, NetworkFailure, ServerRejected
from .models import (
    ActivityLog,
    Connection,
    ConnectionDraft,
    DashboardStats,
    ErrorAnalysis,
    ErrorLog,
    Payload,
    PerformancePoint,
    Pipeline,
    QueryHistoryEntry,
    QueryOptimization,
    Recommendation,
    WarehouseInfo,
)

LOG = logging.getLogger(__name__)

SESSION_COOKIE = "connect.sid"

ModelT = TypeVar("ModelT", bound=Payload)


class ApiClient:
    """Thin wrapper over ``httpx.AsyncClient`` speaking the backend's JSON API.

    Transport failures and 5xx answers raise :class:`NetworkFailure`; other
    non-2xx answers raise :class:`ServerRejected` carrying the body's
    ``message`` when present, otherwise the per-call fallback text. Bodies that
    do not validate raise :class:`MalformedPayload`.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:5000",
        *,
        timeout: float = 10.0,
        session_cookie: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        cookies = {SESSION_COOKIE: session_cookie} if session_cookie else None
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            cookies=cookies,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: AppConfig, **kwargs: Any) -> ApiClient:
        return cls(
            config.api_base_url,
            timeout=config.request_timeout,
            session_cookie=config.session_cookie,
            **kwargs,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # Connections

    async def list_connections(self) -> tuple[Connection, ...]:
        data = await self._request(
            "GET", "/api/connections", fallback="Failed to fetch connections. Please try again."
        )
        return _parse_many(Connection, data)

    async def create_connection(self, draft: ConnectionDraft) -> Connection:
        data = await self._request(
            "POST",
            "/api/connections",
            json=draft.to_wire(),
            fallback="Failed to test connection. Please check your credentials.",
        )
        return _parse_one(Connection, data)

    async def update_connection(self, connection_id: int, **fields: Any) -> Connection:
        data = await self._request(
            "PUT",
            f"/api/connections/{connection_id}",
            json=_camel_fields(fields),
            fallback="Failed to update connection. Please try again.",
        )
        return _parse_one(Connection, data)

    async def delete_connection(self, connection_id: int) -> None:
        await self._request(
            "DELETE",
            f"/api/connections/{connection_id}",
            fallback="Failed to delete connection. Please try again.",
        )

    # Pipelines

    async def list_pipelines(self) -> tuple[Pipeline, ...]:
        data = await self._request("GET", "/api/pipelines", fallback="Failed to fetch pipelines. Please try again.")
        return _parse_many(Pipeline, data)

    async def create_pipeline(self, **fields: Any) -> Pipeline:
        data = await self._request(
            "POST",
            "/api/pipelines",
            json=_camel_fields(fields),
            fallback="Failed to create pipeline. Please try again.",
        )
        return _parse_one(Pipeline, data)

    async def update_pipeline(self, pipeline_id: int, **fields: Any) -> Pipeline:
        data = await self._request(
            "PUT",
            f"/api/pipelines/{pipeline_id}",
            json=_camel_fields(fields),
            fallback="Failed to update pipeline. Please try again.",
        )
        return _parse_one(Pipeline, data)

    async def delete_pipeline(self, pipeline_id: int) -> None:
        await self._request(
            "DELETE",
            f"/api/pipelines/{pipeline_id}",
            fallback="Failed to delete pipeline. Please try again.",
        )

    # Logs and dashboard data

    async def get_query_history(self, limit: int = 10) -> tuple[QueryHistoryEntry, ...]:
        data = await self._request(
            "GET",
            "/api/query-history",
            params={"limit": limit},
            fallback="Failed to fetch query history. Please try again.",
        )
        return _parse_many(QueryHistoryEntry, data)

    async def get_error_logs(self, limit: int = 10) -> tuple[ErrorLog, ...]:
        data = await self._request(
            "GET",
            "/api/error-logs",
            params={"limit": limit},
            fallback="Failed to fetch error logs. Please try again.",
        )
        return _parse_many(ErrorLog, data)

    async def get_activity_logs(self, limit: int = 10) -> tuple[ActivityLog, ...]:
        data = await self._request(
            "GET",
            "/api/activity-logs",
            params={"limit": limit},
            fallback="Failed to fetch activity logs. Please try again.",
        )
        return _parse_many(ActivityLog, data)

    async def get_dashboard_stats(self) -> DashboardStats:
        data = await self._request(
            "GET", "/api/dashboard/stats", fallback="Failed to fetch dashboard stats. Please try again."
        )
        return _parse_one(DashboardStats, data)

    async def get_performance_data(self, period: str = "30days") -> tuple[PerformancePoint, ...]:
        data = await self._request(
            "GET",
            "/api/dashboard/performance-data",
            params={"period": period},
            fallback="Failed to fetch performance data. Please try again.",
        )
        return _parse_many(PerformancePoint, data)

    async def get_warehouses(self) -> tuple[WarehouseInfo, ...]:
        data = await self._request("GET", "/api/warehouses", fallback="Failed to fetch warehouses. Please try again.")
        return _parse_many(WarehouseInfo, data)

    async def get_recommendations(self) -> tuple[Recommendation, ...]:
        data = await self._request(
            "GET", "/api/recommendations", fallback="Failed to fetch recommendations. Please try again."
        )
        return _parse_many(Recommendation, data)

    # LLM-backed analysis

    async def optimize_query(self, connection_id: int, query: str) -> QueryOptimization:
        data = await self._request(
            "POST",
            "/api/query-optimize",
            json={"connectionId": connection_id, "query": query},
            fallback="Failed to optimize query. Please try again.",
        )
        return _parse_one(QueryOptimization, data)

    async def analyze_error(
        self,
        connection_id: int,
        error_message: str,
        error_code: str | None = None,
        error_context: str | None = None,
    ) -> ErrorAnalysis:
        payload: dict[str, Any] = {"connectionId": connection_id, "errorMessage": error_message}
        if error_code:
            payload["errorCode"] = error_code
        if error_context:
            payload["errorContext"] = error_context
        data = await self._request(
            "POST",
            "/api/error-analyze",
            json=payload,
            fallback="Failed to analyze error. Please try again.",
        )
        return _parse_one(ErrorAnalysis, data)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        fallback: str,
        json: Any = None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        try:
            response = await self._client.request(method, path, json=json, params=params)
        except httpx.HTTPError as exc:
            LOG.warning("Request failed", extra={"method": method, "path": path, "error": str(exc)})
            raise NetworkFailure(fallback) from exc
        if response.status_code >= 500:
            LOG.warning(
                "Backend error",
                extra={"method": method, "path": path, "status_code": response.status_code},
            )
            raise NetworkFailure(_error_message(response) or fallback)
        if response.is_error:
            LOG.info(
                "Request rejected",
                extra={"method": method, "path": path, "status_code": response.status_code},
            )
            raise ServerRejected(_error_message(response) or fallback, status_code=response.status_code)
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedPayload(
                f"Unexpected response from {path}.", status_code=response.status_code
            ) from exc


def _error_message(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, Mapping):
        message = body.get("message") or body.get("error")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return None


def _parse_one(model: type[ModelT], data: Any) -> ModelT:
    if not isinstance(data, Mapping):
        raise MalformedPayload(f"Expected a {model.__name__} object.")
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise MalformedPayload(f"Invalid {model.__name__} payload.") from exc


def _parse_many(model: type[ModelT], data: Any) -> tuple[ModelT, ...]:
    if not isinstance(data, list):
        raise MalformedPayload(f"Expected a list of {model.__name__} objects.")
    return tuple(_parse_one(model, item) for item in data)


def _camel_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    return {_to_camel(key): value for key, value in fields.items()}


def _to_camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.title() for part in rest)


__all__ = ["ApiClient", "SESSION_COOKIE"]
