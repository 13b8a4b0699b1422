"""Recent optimized queries and analyzed errors."""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from rich.text import Text
from textual.app import ComposeResult
from textual.widgets import DataTable, Static

from snowsarva.api import ApiClient
from snowsarva.models import ErrorLog, QueryHistoryEntry
from snowsarva.registry import ConnectionRegistry

from .connection_panel import PLACEHOLDER, ConnectionPanel

_QUERY_PREVIEW = 60


class HistoryPanel(ConnectionPanel):
    """Query history table plus the latest error log entries."""

    DEFAULT_CSS = """
    HistoryPanel {
        layout: vertical;
        padding: 1 2;
        height: 1fr;
    }

    HistoryPanel .panel-title {
        text-style: bold;
    }

    #query-history {
        height: 1fr;
        min-height: 4;
    }

    #error-log {
        margin-top: 1;
        color: $text-muted;
    }
    """

    def __init__(self, registry: ConnectionRegistry, client: ApiClient, *, limit: int = 10) -> None:
        super().__init__(registry, client, id="history-panel")
        self._limit = limit
        self._table: DataTable | None = None
        self._errors: Static | None = None

    def compose(self) -> ComposeResult:
        yield Static("Query history", classes="panel-title")
        yield DataTable(id="query-history", zebra_stripes=True, cursor_type="row")
        yield Static(PLACEHOLDER, id="error-log", markup=False)

    def _bind_widgets(self) -> None:
        self._table = self.query_one("#query-history", DataTable)
        self._errors = self.query_one("#error-log", Static)

    async def _load(self) -> None:
        history = await self._client.get_query_history(self._limit)
        errors = await self._client.get_error_logs(self._limit)
        self._render_history(history)
        if self._errors:
            self._errors.update(format_error_logs(errors))

    def _render_placeholder(self) -> None:
        self._render_history(())
        if self._errors:
            self._errors.update(PLACEHOLDER)

    def _render_error(self, message: str) -> None:
        if self._errors:
            self._errors.update(f"✖ {message}")

    def _render_history(self, history: Sequence[QueryHistoryEntry]) -> None:
        if not self._table:
            return
        self._table.clear(columns=True)
        self._table.add_columns("When", "Query", "Saved")
        for entry in history:
            saved = entry.time_saved_ms
            self._table.add_row(
                _stamp(entry.timestamp),
                Text(_preview(entry.original_query)),
                f"{saved:,} ms" if saved is not None else "—",
                key=str(entry.id),
            )


def format_error_logs(errors: Sequence[ErrorLog]) -> str:
    if not errors:
        return "No errors recorded."
    lines = ["Recent errors"]
    for entry in errors:
        code = f"[{entry.error_code}] " if entry.error_code else ""
        first_line = entry.error_message.strip().splitlines()[0] if entry.error_message.strip() else "—"
        lines.append(f"  {_stamp(entry.timestamp)}  {code}{first_line} ({entry.status})")
    return "\n".join(lines)


def _preview(query: str) -> str:
    flat = " ".join(query.split())
    if len(flat) <= _QUERY_PREVIEW:
        return flat
    return flat[: _QUERY_PREVIEW - 1] + "…"


def _stamp(value: datetime | None) -> str:
    return value.astimezone().strftime("%m-%d %H:%M") if value else "—"


__all__ = ["HistoryPanel", "format_error_logs"]
