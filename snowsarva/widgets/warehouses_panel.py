"""Warehouse inventory and cost recommendations."""

from __future__ import annotations

from typing import Sequence

from rich.text import Text
from textual.app import ComposeResult
from textual.widgets import DataTable, Static

from snowsarva.api import ApiClient
from snowsarva.models import Recommendation, WarehouseInfo
from snowsarva.registry import ConnectionRegistry

from .connection_panel import PLACEHOLDER, ConnectionPanel


class WarehousesPanel(ConnectionPanel):
    DEFAULT_CSS = """
    WarehousesPanel {
        layout: vertical;
        padding: 1 2;
        height: 1fr;
    }

    WarehousesPanel .panel-title {
        text-style: bold;
    }

    #warehouse-table {
        height: 1fr;
        min-height: 4;
    }

    #recommendations {
        margin-top: 1;
    }
    """

    def __init__(self, registry: ConnectionRegistry, client: ApiClient) -> None:
        super().__init__(registry, client, id="warehouses-panel")
        self._table: DataTable | None = None
        self._recommendations: Static | None = None

    def compose(self) -> ComposeResult:
        yield Static("Warehouses", classes="panel-title")
        yield DataTable(id="warehouse-table", zebra_stripes=True, cursor_type="row")
        yield Static(PLACEHOLDER, id="recommendations", markup=False)

    def _bind_widgets(self) -> None:
        self._table = self.query_one("#warehouse-table", DataTable)
        self._recommendations = self.query_one("#recommendations", Static)

    async def _load(self) -> None:
        warehouses = await self._client.get_warehouses()
        recommendations = await self._client.get_recommendations()
        self._render_warehouses(warehouses)
        if self._recommendations:
            self._recommendations.update(format_recommendations(recommendations))

    def _render_placeholder(self) -> None:
        self._render_warehouses(())
        if self._recommendations:
            self._recommendations.update(PLACEHOLDER)

    def _render_error(self, message: str) -> None:
        if self._recommendations:
            self._recommendations.update(f"✖ {message}")

    def _render_warehouses(self, warehouses: Sequence[WarehouseInfo]) -> None:
        if not self._table:
            return
        self._table.clear(columns=True)
        self._table.add_columns("Warehouse", "Size", "State")
        for warehouse in warehouses:
            self._table.add_row(Text(warehouse.name), Text(warehouse.size or "—"), Text(warehouse.state or "—"))


def format_recommendations(recommendations: Sequence[Recommendation]) -> str:
    """Summarize sizing recommendations and their total monthly savings."""

    if not recommendations:
        return "No recommendations. Warehouses look right-sized."
    lines = ["Recommendations"]
    for rec in recommendations:
        lines.append(
            f"  {rec.warehouse_name}: ${rec.current_cost:,.2f} → ${rec.recommended_cost:,.2f}"
            f" (save ${rec.savings:,.2f}, {rec.savings_percentage:.0f}%)"
        )
    total = sum(rec.savings for rec in recommendations)
    lines.append(f"Potential savings: ${total:,.2f}")
    return "\n".join(lines)


__all__ = ["WarehousesPanel", "format_recommendations"]
