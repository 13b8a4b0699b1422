"""Analysis pad forwarding SQL and error messages to the LLM-backed endpoints."""

from __future__ import annotations

from typing import Callable

from sqlglot import parse_one, transpile
from sqlglot.errors import SqlglotError
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.widgets import Button, Input, Static

from snowsarva.api import ApiClient
from snowsarva.errors import SnowsarvaError
from snowsarva.models import ErrorAnalysis, QueryOptimization, RegistrySnapshot
from snowsarva.registry import ConnectionRegistry

SQL_DIALECT = "snowflake"


class AnalysisPad(Container):
    """Query optimizer and error analyzer against the active connection."""

    DEFAULT_CSS = """
    AnalysisPad {
        layout: vertical;
        border: round $primary 40%;
        padding: 1 2;
        height: 1fr;
        background: $surface;
    }

    AnalysisPad .panel-title {
        text-style: bold;
    }

    AnalysisPad Input {
        border: heavy $primary;
    }

    AnalysisPad:focus-within {
        border: round $primary;
        background: $surface-lighten-1;
    }

    AnalysisPad .analysis-actions {
        margin-top: 1;
        height: auto;
        align-horizontal: left;
    }

    AnalysisPad .analysis-actions > * {
        margin-right: 1;
    }

    #analysis-output {
        margin-top: 1;
        border-top: solid $surface-darken-2;
        padding-top: 1;
    }
    """

    BINDINGS = Container.BINDINGS + [
        Binding("ctrl+enter", "optimize_query", "Optimize query", show=False, priority=True),
    ]

    def __init__(self, registry: ConnectionRegistry, client: ApiClient) -> None:
        super().__init__(id="analysis-pad")
        self._registry = registry
        self._client = client
        self._snapshot: RegistrySnapshot = registry.get_snapshot()
        self._input: Input | None = None
        self._status: Static | None = None
        self._output: Static | None = None
        self._unsubscribe: Callable[[], None] | None = None

    def compose(self) -> ComposeResult:
        yield Static("Query Advisor", classes="panel-title")
        yield Input(
            placeholder="Paste SQL to optimize or a Snowflake error message to analyze",
            id="analysis-input",
        )
        yield Horizontal(
            Button("Optimize query", id="optimize-query", variant="primary"),
            Button("Analyze error", id="analyze-error"),
            Static("", id="analysis-status", markup=False),
            classes="analysis-actions",
        )
        yield Static("", id="analysis-output", markup=False)

    async def on_mount(self) -> None:
        self._input = self.query_one("#analysis-input", Input)
        self._status = self.query_one("#analysis-status", Static)
        self._output = self.query_one("#analysis-output", Static)
        self._unsubscribe = self._registry.subscribe(self._handle_snapshot)

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "optimize-query":
            await self.optimize_current()
        elif event.button.id == "analyze-error":
            await self.analyze_current()

    async def action_optimize_query(self) -> None:
        await self.optimize_current()

    async def optimize_current(self) -> None:
        text = self._current_text()
        connection_id = self._require_connection(text, "Enter SQL to optimize.")
        if connection_id is None:
            return
        problem = lint_sql(text)
        if problem:
            self._set_status(f"SQL parse error: {problem}", severity="warning")
            return
        self._set_status("Optimizing…", severity="information")
        try:
            result = await self._client.optimize_query(connection_id, text)
        except SnowsarvaError as exc:
            self._set_status(f"Error: {exc}", severity="error")
            return
        self._render_output(format_optimization(result))
        self._set_status("Optimization ready", severity="success")

    async def analyze_current(self) -> None:
        text = self._current_text()
        connection_id = self._require_connection(text, "Enter an error message to analyze.")
        if connection_id is None:
            return
        self._set_status("Analyzing…", severity="information")
        try:
            result = await self._client.analyze_error(connection_id, text)
        except SnowsarvaError as exc:
            self._set_status(f"Error: {exc}", severity="error")
            return
        self._render_output(format_error_analysis(result))
        self._set_status("Analysis ready", severity="success")

    def _handle_snapshot(self, snapshot: RegistrySnapshot) -> None:
        self._snapshot = snapshot

    def _current_text(self) -> str:
        return self._input.value.strip() if self._input else ""

    def _require_connection(self, text: str, empty_message: str) -> int | None:
        if not text:
            self._set_status(empty_message, severity="warning")
            return None
        active = self._snapshot.active
        if active is None:
            self._set_status("No active connection. Connect or activate one first.", severity="warning")
            return None
        return active.id

    def _render_output(self, text: str) -> None:
        if self._output:
            self._output.update(text)

    def _set_status(self, message: str, *, severity: str) -> None:
        if not self._status:
            return
        prefix = {
            "information": "ℹ",
            "warning": "⚠",
            "error": "✖",
            "success": "✔",
        }.get(severity, "•")
        self._status.update(f"{prefix} {message}")


def format_optimization(result: QueryOptimization) -> str:
    lines = ["Optimized query:", pretty_sql(result.optimized_query) if result.optimized_query else "(unchanged)"]
    if result.improvement is not None:
        lines.append(f"Improvement: {result.improvement:.1f}%")
    for idx, suggestion in enumerate(result.suggestions, start=1):
        lines.append(f"{idx}. {suggestion.title}: {suggestion.description}")
        if suggestion.suggestion:
            lines.append(f"   {suggestion.suggestion}")
    return "\n".join(lines)


def lint_sql(text: str) -> str | None:
    """Return the first parser complaint for Snowflake SQL, or None when it parses."""

    try:
        parse_one(text, read=SQL_DIALECT)
    except SqlglotError as exc:
        return str(exc).splitlines()[0] if str(exc) else exc.__class__.__name__
    return None


def pretty_sql(sql: str) -> str:
    try:
        statements = transpile(sql, read=SQL_DIALECT, write=SQL_DIALECT, pretty=True)
    except SqlglotError:
        return sql
    return ";\n".join(statements) or sql


def format_error_analysis(result: ErrorAnalysis) -> str:
    return "\n".join(
        [
            f"Root cause: {result.root_cause or '—'}",
            f"Solution: {result.solution or '—'}",
            f"Prevention: {result.prevention_measures or '—'}",
        ]
    )


__all__ = ["AnalysisPad", "SQL_DIALECT", "format_error_analysis", "format_optimization", "lint_sql", "pretty_sql"]
