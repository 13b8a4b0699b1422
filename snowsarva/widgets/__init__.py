"""Widget library for the Textual UI."""

from __future__ import annotations

from .analysis_pad import AnalysisPad
from .connection_panel import ConnectionPanel
from .dashboard_panel import DashboardPanel
from .history_panel import HistoryPanel
from .navigation_sidebar import NavigationSidebar
from .pipelines_panel import PipelinesPanel
from .status_bar import StatusBar
from .warehouses_panel import WarehousesPanel

__all__ = [
    "AnalysisPad",
    "ConnectionPanel",
    "DashboardPanel",
    "HistoryPanel",
    "NavigationSidebar",
    "PipelinesPanel",
    "StatusBar",
    "WarehousesPanel",
]
