"""Dashboard panel showing stats, query performance and recent activity."""

from __future__ import annotations

from typing import Sequence

from textual.app import ComposeResult
from textual.widgets import Sparkline, Static

from snowsarva.api import ApiClient
from snowsarva.models import ActivityLog, DashboardStats, PerformancePoint
from snowsarva.registry import ConnectionRegistry

from .connection_panel import PLACEHOLDER, ConnectionPanel


class DashboardPanel(ConnectionPanel):
    """Headline numbers for the account behind the active connection."""

    DEFAULT_CSS = """
    DashboardPanel {
        layout: vertical;
        padding: 1 2;
        height: 1fr;
    }

    DashboardPanel .panel-title {
        text-style: bold;
    }

    #dashboard-stats {
        min-height: 4;
        margin-bottom: 1;
    }

    #performance-sparkline {
        height: 3;
    }

    #activity-feed {
        margin-top: 1;
        color: $text-muted;
    }
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        client: ApiClient,
        *,
        activity_limit: int = 10,
        period: str = "30days",
    ) -> None:
        super().__init__(registry, client, id="dashboard-panel")
        self._activity_limit = activity_limit
        self._period = period
        self._stats: Static | None = None
        self._sparkline: Sparkline | None = None
        self._performance: Static | None = None
        self._activity: Static | None = None

    def compose(self) -> ComposeResult:
        yield Static("Dashboard", classes="panel-title")
        yield Static(PLACEHOLDER, id="dashboard-stats", markup=False)
        yield Sparkline([], id="performance-sparkline")
        yield Static("", id="performance-summary", markup=False)
        yield Static("", id="activity-feed", markup=False)

    def _bind_widgets(self) -> None:
        self._stats = self.query_one("#dashboard-stats", Static)
        self._sparkline = self.query_one("#performance-sparkline", Sparkline)
        self._performance = self.query_one("#performance-summary", Static)
        self._activity = self.query_one("#activity-feed", Static)

    async def _load(self) -> None:
        stats = await self._client.get_dashboard_stats()
        performance = await self._client.get_performance_data(self._period)
        activity = await self._client.get_activity_logs(self._activity_limit)
        self._render_stats(stats)
        self._render_performance(performance)
        self._render_activity(activity)

    def _render_placeholder(self) -> None:
        if self._stats:
            self._stats.update(PLACEHOLDER)
        if self._sparkline:
            self._sparkline.data = []
        if self._performance:
            self._performance.update("")
        if self._activity:
            self._activity.update("")

    def _render_error(self, message: str) -> None:
        if self._stats:
            self._stats.update(f"✖ {message}")

    def _render_stats(self, stats: DashboardStats) -> None:
        if self._stats:
            self._stats.update(format_stats(stats))

    def _render_performance(self, points: Sequence[PerformancePoint]) -> None:
        if self._sparkline:
            self._sparkline.data = [point.optimized_time for point in points]
        if self._performance:
            self._performance.update(format_performance(points))

    def _render_activity(self, activity: Sequence[ActivityLog]) -> None:
        if not self._activity:
            return
        if not activity:
            self._activity.update("No recent activity.")
            return
        lines = ["Recent activity"]
        for entry in activity:
            stamp = entry.timestamp.astimezone().strftime("%m-%d %H:%M") if entry.timestamp else "—"
            lines.append(f"  {stamp}  {entry.description}")
        self._activity.update("\n".join(lines))


def format_stats(stats: DashboardStats) -> str:
    """Render headline numbers as a short block of text."""

    pipelines = stats.etl_pipelines
    return "\n".join(
        [
            f"Queries optimized: {stats.queries_optimized}",
            f"Estimated savings: ${stats.cost_savings:,.2f}",
            f"ETL pipelines: {pipelines.total} ({pipelines.active} active, {pipelines.paused} paused)",
            f"Errors detected (24h): {stats.errors_detected}",
        ]
    )


def format_performance(points: Sequence[PerformancePoint]) -> str:
    """Average original vs optimized execution time over the period."""

    if not points:
        return "No performance data for this period."
    original = sum(point.original_time for point in points) / len(points)
    optimized = sum(point.optimized_time for point in points) / len(points)
    line = f"Avg query time: {original:,.0f} ms → {optimized:,.0f} ms"
    if original > 0:
        line += f" ({(original - optimized) / original * 100:.1f}% faster)"
    return line


__all__ = ["DashboardPanel", "format_performance", "format_stats"]
