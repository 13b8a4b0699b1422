"""Payload models shared by the REST client, the registry and the widgets.

Every body returned by the backend passes through one of these models before it
reaches the rest of the app. Keys are normalized to snake_case first, so a row
may arrive as ``TABLE_NAME``, ``table_name`` or ``tableName``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

DEFAULT_ROLE = "ACCOUNTADMIN"
DEFAULT_WAREHOUSE = "COMPUTE_WH"

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def normalize_key(key: str) -> str:
    """Return the snake_case form of a payload key."""

    if key.isupper():
        return key.lower()
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def normalize_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    """Normalize the top-level keys of a payload mapping."""

    return {normalize_key(str(key)): value for key, value in data.items()}


class Payload(BaseModel):
    """Base class for backend payloads (snake_case in Python, camelCase on the wire)."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            return normalize_keys(data)
        return data

    def to_wire(self) -> dict[str, Any]:
        """Serialize using the backend's camelCase keys."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Connection(Payload):
    """One configured Snowflake credential set (the secret is never included)."""

    id: int
    name: str = Field(min_length=1)
    account: str = ""
    username: str = ""
    role: str = DEFAULT_ROLE
    warehouse: str = DEFAULT_WAREHOUSE
    is_active: bool = False
    created_at: datetime | None = None

    @field_validator("role", "warehouse", mode="before")
    @classmethod
    def _default_when_null(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None or value == "":
            return DEFAULT_ROLE if info.field_name == "role" else DEFAULT_WAREHOUSE
        return value

    @field_validator("is_active", mode="before")
    @classmethod
    def _null_is_inactive(cls, value: Any) -> Any:
        return False if value is None else value

    def with_active(self, active: bool) -> Connection:
        """Return a copy with the active flag set."""

        if self.is_active == active:
            return self
        return self.model_copy(update={"is_active": active})


class ConnectionDraft(Payload):
    """Form payload used to create a connection; the password is write-only."""

    name: str = Field(min_length=1)
    account: str = Field(min_length=1)
    username: str = Field(min_length=1)
    password: SecretStr
    role: str = DEFAULT_ROLE
    warehouse: str = DEFAULT_WAREHOUSE

    def to_wire(self) -> dict[str, Any]:
        data = super().to_wire()
        data["password"] = self.password.get_secret_value()
        return data


class Pipeline(Payload):
    """ETL pipeline record."""

    id: int
    connection_id: int | None = None
    name: str
    description: str | None = None
    source_description: str | None = None
    target_description: str | None = None
    business_requirements: str | None = None
    schedule: str | None = None
    pipeline_code: str | None = None
    status: str = "paused"
    last_run_time: int | None = None
    last_run_status: str | None = None
    created_at: datetime | None = None


class QuerySuggestion(Payload):
    title: str = ""
    description: str = ""
    suggestion: str = ""


class QueryHistoryEntry(Payload):
    """Optimized query recorded by the backend."""

    id: int
    connection_id: int | None = None
    original_query: str
    optimized_query: str | None = None
    execution_time_original: int | None = None
    execution_time_optimized: int | None = None
    suggestions: tuple[QuerySuggestion, ...] = ()
    bytes_scanned: int | None = None
    timestamp: datetime | None = None

    @field_validator("suggestions", mode="before")
    @classmethod
    def _null_suggestions(cls, value: Any) -> Any:
        return () if value is None else value

    @property
    def time_saved_ms(self) -> int | None:
        if self.execution_time_original is None or self.execution_time_optimized is None:
            return None
        return self.execution_time_original - self.execution_time_optimized


class ErrorLog(Payload):
    id: int
    connection_id: int | None = None
    error_message: str
    error_code: str | None = None
    error_context: str | None = None
    analysis: dict[str, Any] | None = None
    status: str = "pending"
    timestamp: datetime | None = None


class ActivityLog(Payload):
    id: int
    activity_type: str
    description: str
    details: dict[str, Any] | None = None
    timestamp: datetime | None = None


class PipelineCounts(Payload):
    total: int = 0
    active: int = 0
    paused: int = 0


class DashboardStats(Payload):
    """Headline numbers shown on the dashboard."""

    queries_optimized: int = 0
    cost_savings: float = 0.0
    etl_pipelines: PipelineCounts = Field(default_factory=PipelineCounts)
    errors_detected: int = 0


class PerformancePoint(Payload):
    date: str
    original_time: float = 0.0
    optimized_time: float = 0.0


class WarehouseInfo(Payload):
    """Warehouse row from account introspection (upper-snake keys upstream)."""

    model_config = ConfigDict(extra="allow")

    name: str
    size: str | None = None
    state: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _warehouse_name(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        data = normalize_keys(data)
        for field in ("name", "size"):
            upstream = f"warehouse_{field}"
            if field not in data and upstream in data:
                data[field] = data.pop(upstream)
        return data


class Recommendation(Payload):
    id: int
    warehouse_name: str
    current_cost: float = 0.0
    recommended_cost: float = 0.0
    savings: float = 0.0
    savings_percentage: float = 0.0


class QueryOptimization(Payload):
    """Response of the query optimizer endpoint."""

    original_query: str | None = None
    optimized_query: str | None = None
    suggestions: tuple[QuerySuggestion, ...] = ()
    original_execution_time: float | None = None
    optimized_execution_time: float | None = None
    improvement: float | None = None


class ErrorAnalysis(Payload):
    """Response of the error analyzer endpoint."""

    error_log: ErrorLog | None = None
    analysis: dict[str, Any] = Field(default_factory=dict)

    @property
    def root_cause(self) -> str:
        return str(_lookup(self.analysis, "root_cause") or "")

    @property
    def solution(self) -> str:
        return str(_lookup(self.analysis, "solution") or "")

    @property
    def prevention_measures(self) -> str:
        return str(_lookup(self.analysis, "prevention_measures") or "")


def _lookup(data: Mapping[str, Any], key: str) -> Any:
    for raw_key, value in data.items():
        if normalize_key(str(raw_key)) == key:
            return value
    return None


@dataclass(frozen=True, slots=True)
class RegistrySnapshot:
    """Immutable view of the user's connections and which one is active."""

    connections: tuple[Connection, ...] = ()
    active: Connection | None = None
    loading: bool = True
    error: str | None = None

    @classmethod
    def build(
        cls,
        connections: Iterable[Connection],
        *,
        loading: bool = False,
        error: str | None = None,
    ) -> RegistrySnapshot:
        """Create a snapshot whose active pointer is derived from the list."""

        entries = tuple(connections)
        active = next((entry for entry in entries if entry.is_active), None)
        return cls(connections=entries, active=active, loading=loading, error=error)

    @property
    def has_connections(self) -> bool:
        return bool(self.connections)

    @property
    def active_id(self) -> int | None:
        return self.active.id if self.active else None

    def find(self, connection_id: int) -> Connection | None:
        for entry in self.connections:
            if entry.id == connection_id:
                return entry
        return None


__all__ = [
    "ActivityLog",
    "Connection",
    "ConnectionDraft",
    "DashboardStats",
    "DEFAULT_ROLE",
    "DEFAULT_WAREHOUSE",
    "ErrorAnalysis",
    "ErrorLog",
    "Payload",
    "PerformancePoint",
    "Pipeline",
    "PipelineCounts",
    "QueryHistoryEntry",
    "QueryOptimization",
    "QuerySuggestion",
    "Recommendation",
    "RegistrySnapshot",
    "WarehouseInfo",
    "normalize_key",
    "normalize_keys",
]
