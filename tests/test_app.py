"""App-level tests for registry wiring, providers and rendering helpers."""

from __future__ import annotations

from pathlib import Path

import pytest

from snowsarva.app import SnowsarvaApp
from snowsarva.config import AppConfig
from snowsarva.errors import NetworkFailure
from snowsarva.models import (
    Connection,
    ConnectionDraft,
    DashboardStats,
    ErrorAnalysis,
    ErrorLog,
    PerformancePoint,
    PipelineCounts,
    QueryOptimization,
    QuerySuggestion,
    Recommendation,
    RegistrySnapshot,
)
from snowsarva.providers import ConnectionSwitchProvider, RegistryRefreshProvider, refresh_help
from snowsarva.widgets.analysis_pad import format_error_analysis, format_optimization, lint_sql, pretty_sql
from snowsarva.widgets.dashboard_panel import format_performance, format_stats
from snowsarva.widgets.history_panel import format_error_logs
from snowsarva.widgets.navigation_sidebar import NO_ACTIVE_CONNECTION, summarize_connection
from snowsarva.widgets.pipelines_panel import validate_pipeline_form
from snowsarva.widgets.status_bar import describe_snapshot
from snowsarva.widgets.warehouses_panel import format_recommendations


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class _ClientStub:
    """Backend stand-in exposing only the calls the registry makes."""

    def __init__(self) -> None:
        self.connections = [
            Connection(id=1, name="Production", account="ab123", username="etl", is_active=True),
            Connection(id=2, name="Analytics", account="ab123", username="analyst", warehouse="BI_WH"),
        ]
        self.update_error: Exception | None = None
        self.list_calls = 0
        self.closed = False

    async def list_connections(self) -> tuple[Connection, ...]:
        self.list_calls += 1
        return tuple(self.connections)

    async def update_connection(self, connection_id: int, **fields: object) -> Connection:
        if self.update_error:
            raise self.update_error
        self.connections = [entry.with_active(entry.id == connection_id) for entry in self.connections]
        return next(entry for entry in self.connections if entry.id == connection_id)

    async def create_connection(self, draft: ConnectionDraft) -> Connection:
        raise NotImplementedError

    async def delete_connection(self, connection_id: int) -> None:
        self.connections = [entry for entry in self.connections if entry.id != connection_id]

    async def aclose(self) -> None:
        self.closed = True


class _DummyScreen:
    """Minimal stub so providers can reference an app without a running screen stack."""

    def __init__(self, app: SnowsarvaApp) -> None:
        self.app = app
        self.focused = None


def _app(config: AppConfig | None = None) -> tuple[SnowsarvaApp, _ClientStub]:
    client = _ClientStub()
    app = SnowsarvaApp(config or AppConfig(), client=client)  # type: ignore[arg-type]
    return app, client


def test_app_loads_config_when_not_given(monkeypatch: pytest.MonkeyPatch) -> None:
    config = AppConfig(verify_after_activate=True, activity_limit=3)
    monkeypatch.setattr("snowsarva.app._load_app_config", lambda: config)

    app = SnowsarvaApp(client=_ClientStub())  # type: ignore[arg-type]

    assert app.app_config is config
    assert app.registry.get_snapshot().loading is True


@pytest.mark.anyio
async def test_activate_connection_reports_success() -> None:
    app, _ = _app()
    await app.registry.refresh()

    assert await app.activate_connection(2) is True

    assert app.registry.get_snapshot().active_id == 2
    message, severity = app._pending_notifications[-1]  # type: ignore[attr-defined]
    assert severity == "information"
    assert message == "Connection activated: Analytics"


@pytest.mark.anyio
async def test_activate_connection_reports_failure() -> None:
    app, client = _app()
    await app.registry.refresh()
    client.update_error = NetworkFailure("Failed to update connection. Please try again.")

    assert await app.activate_connection(2) is False

    assert app.registry.get_snapshot().active_id == 1
    message, severity = app._pending_notifications[-1]  # type: ignore[attr-defined]
    assert severity == "error"
    assert message == "Failed to update connection. Please try again."


@pytest.mark.anyio
async def test_activate_unknown_connection_reports_not_found() -> None:
    app, _ = _app()
    await app.registry.refresh()

    assert await app.activate_connection(99) is False

    message, severity = app._pending_notifications[-1]  # type: ignore[attr-defined]
    assert severity == "error"
    assert message == "Connection 99 not found."


@pytest.mark.anyio
async def test_removing_active_connection_warns() -> None:
    app, _ = _app()
    await app.registry.refresh()

    assert await app.remove_connection(1) is True

    notifications = app._pending_notifications  # type: ignore[attr-defined]
    assert ("Production is no longer active. Connect or activate a connection.", "warning") in notifications
    assert notifications[-1] == ("Connection deleted: Production", "information")


@pytest.mark.anyio
async def test_connection_switch_provider_activates_connection() -> None:
    app, _ = _app()
    await app.registry.refresh()

    provider = ConnectionSwitchProvider(_DummyScreen(app))  # type: ignore[arg-type]
    hits = [hit async for hit in provider.discover()]
    target = next(hit for hit in hits if "Analytics" in (hit.display or ""))
    await target.command()

    assert app.registry.get_snapshot().active_id == 2


@pytest.mark.anyio
async def test_connection_switch_provider_skips_active_connection() -> None:
    app, _ = _app()
    await app.registry.refresh()

    provider = ConnectionSwitchProvider(_DummyScreen(app))  # type: ignore[arg-type]
    hits = [hit async for hit in provider.discover()]

    assert [str(hit.display) for hit in hits] == ["Activate connection: Analytics"]
    assert hits[0].help == "ab123 · ACCOUNTADMIN · BI_WH"


@pytest.mark.anyio
async def test_connection_switch_provider_is_empty_before_first_fetch() -> None:
    app, _ = _app()

    provider = ConnectionSwitchProvider(_DummyScreen(app))  # type: ignore[arg-type]
    hits = [hit async for hit in provider.discover()]

    assert hits == []


@pytest.mark.anyio
async def test_refresh_provider_triggers_refresh() -> None:
    app, client = _app()

    provider = RegistryRefreshProvider(_DummyScreen(app))  # type: ignore[arg-type]
    hits = [hit async for hit in provider.discover()]
    assert hits
    await hits[0].command()

    assert client.list_calls == 1
    assert app.registry.get_snapshot().loading is False


def test_remember_sidebar_width_persists(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "config.toml"
    monkeypatch.setattr("snowsarva.config.CONFIG_FILE", config_path)
    app, _ = _app()

    app.remember_sidebar_width(34)

    assert app.app_config.layout.sidebar_width == 34
    assert "sidebar_width = 34" in config_path.read_text()


def test_remember_sidebar_width_skips_unchanged(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "config.toml"
    monkeypatch.setattr("snowsarva.config.CONFIG_FILE", config_path)
    app, _ = _app(AppConfig().with_layout(sidebar_width=30))

    app.remember_sidebar_width(30)

    assert not config_path.exists()


def _snapshot(*, active: bool = True, loading: bool = False, error: str | None = None) -> RegistrySnapshot:
    connections = [
        Connection(id=1, name="Production", account="ab123", username="etl", is_active=active),
        Connection(id=2, name="Analytics"),
    ]
    return RegistrySnapshot.build(connections, loading=loading, error=error)


def test_describe_snapshot_with_active_connection() -> None:
    text = describe_snapshot(_snapshot())

    assert text == "Connection: Production | Warehouse: COMPUTE_WH | Configured: 2 | Status: Ready"


def test_describe_snapshot_shows_loading_and_error() -> None:
    text = describe_snapshot(_snapshot(active=False, loading=True, error="Failed to fetch connections.\ntrace"))

    assert "Connection: none" in text
    assert "Status: Loading…" in text
    assert text.endswith("Error: Failed to fetch connections.")


def test_summarize_connection_states() -> None:
    assert summarize_connection(RegistrySnapshot()) == "Loading connections…"
    assert summarize_connection(_snapshot(active=False)) == NO_ACTIVE_CONNECTION
    summary = summarize_connection(_snapshot())
    assert "Active: Production" in summary
    assert "Role: ACCOUNTADMIN" in summary


def test_format_stats() -> None:
    stats = DashboardStats(
        queries_optimized=12,
        cost_savings=1234.5,
        etl_pipelines=PipelineCounts(total=3, active=2, paused=1),
        errors_detected=4,
    )

    text = format_stats(stats)

    assert "Queries optimized: 12" in text
    assert "Estimated savings: $1,234.50" in text
    assert "ETL pipelines: 3 (2 active, 1 paused)" in text
    assert "Errors detected (24h): 4" in text


def test_format_optimization_lists_suggestions() -> None:
    result = QueryOptimization(
        optimized_query="SELECT id FROM orders",
        improvement=37.5,
        suggestions=(QuerySuggestion(title="Project columns", description="Avoid SELECT *"),),
    )

    text = format_optimization(result)

    assert text.splitlines()[0] == "Optimized query:"
    assert "FROM orders" in text
    assert "Improvement: 37.5%" in text
    assert "1. Project columns: Avoid SELECT *" in text


def test_format_error_analysis_uses_placeholders() -> None:
    text = format_error_analysis(ErrorAnalysis(analysis={"rootCause": "Warehouse suspended"}))

    assert "Root cause: Warehouse suspended" in text
    assert "Solution: —" in text


def test_lint_sql_accepts_snowflake_syntax() -> None:
    assert lint_sql("SELECT id FROM orders QUALIFY ROW_NUMBER() OVER (PARTITION BY id ORDER BY ts) = 1") is None


def test_lint_sql_reports_parse_errors() -> None:
    assert lint_sql("SELECT * FROM orders WHERE (id = 1") is not None


def test_pretty_sql_falls_back_to_input_on_errors() -> None:
    assert pretty_sql("SELECT 'unterminated") == "SELECT 'unterminated"
    assert "FROM orders" in pretty_sql("select id from orders")


def test_refresh_help_reflects_registry_state() -> None:
    assert refresh_help(_snapshot()) == "Reload the connection list (2 configured)."
    assert refresh_help(_snapshot(loading=True)) == "Reload the connection list (a load is in progress)."
    assert (
        refresh_help(_snapshot(error="Backend unavailable\ntrace"))
        == "Reload the connection list (last error: Backend unavailable)."
    )


def test_format_performance_reports_speedup() -> None:
    points = [
        PerformancePoint(date="2024-05-01", original_time=1200, optimized_time=400),
        PerformancePoint(date="2024-05-02", original_time=800, optimized_time=400),
    ]

    assert format_performance(points) == "Avg query time: 1,000 ms → 400 ms (60.0% faster)"
    assert format_performance([]) == "No performance data for this period."


def test_format_recommendations_totals_savings() -> None:
    recs = [
        Recommendation(
            id=1, warehouse_name="COMPUTE_WH", current_cost=400, recommended_cost=250, savings=150, savings_percentage=37.5
        ),
        Recommendation(id=2, warehouse_name="BI_WH", current_cost=100, recommended_cost=80, savings=20, savings_percentage=20),
    ]

    text = format_recommendations(recs)

    assert "  COMPUTE_WH: $400.00 → $250.00 (save $150.00, 38%)" in text
    assert text.endswith("Potential savings: $170.00")
    assert format_recommendations([]) == "No recommendations. Warehouses look right-sized."


def test_format_error_logs_shows_code_and_first_line() -> None:
    errors = [
        ErrorLog(id=1, error_message="Object 'ORDERS' does not exist\nat line 3", error_code="002003", status="analyzed"),
        ErrorLog(id=2, error_message="   "),
    ]

    lines = format_error_logs(errors).splitlines()

    assert lines[0] == "Recent errors"
    assert lines[1] == "  —  [002003] Object 'ORDERS' does not exist (analyzed)"
    assert lines[2] == "  —  — (pending)"
    assert format_error_logs([]) == "No errors recorded."


def test_validate_pipeline_form() -> None:
    assert validate_pipeline_form("ab", "x" * 10, "y" * 10) == "Name must be at least 3 characters."
    assert validate_pipeline_form("orders", "short", "y" * 10) == "Source description must be at least 10 characters."
    assert validate_pipeline_form("orders", "x" * 10, "short") == "Target description must be at least 10 characters."
    assert validate_pipeline_form("orders", "x" * 10, "y" * 10) is None
