"""Textual application entry point for SnowSarva."""

from __future__ import annotations

import logging
from typing import Callable

from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.logging import TextualHandler
from textual.widgets import Footer, Header, TabbedContent, TabPane

from .api import ApiClient
from .config import AppConfig, load_config, save_config
from .errors import SnowsarvaError
from .models import RegistrySnapshot
from .providers import ConnectionSwitchProvider, RegistryRefreshProvider
from .registry import ConnectionRegistry
from .widgets import (
    AnalysisPad,
    ConnectionPanel,
    DashboardPanel,
    HistoryPanel,
    NavigationSidebar,
    PipelinesPanel,
    StatusBar,
    WarehousesPanel,
)

LOG = logging.getLogger(__name__)

_THEMES = {"dark": "textual-dark", "light": "textual-light"}


def _load_app_config() -> AppConfig:
    """Load configuration with a small wrapper for future overrides."""

    return load_config()


def configure_logging(level: str) -> None:
    """Route log records into Textual's devtools console."""

    logging.basicConfig(level=level.upper(), handlers=[TextualHandler()], force=True)
    logging.getLogger("httpx").setLevel(logging.WARNING)


class SnowsarvaApp(App[None]):
    """Terminal dashboard for Snowflake cost, performance and troubleshooting."""

    TITLE = "SnowSarva"
    COMMANDS = App.COMMANDS | {ConnectionSwitchProvider, RegistryRefreshProvider}
    CSS = """
    Screen {
        layout: vertical;
    }
    #content {
        layout: horizontal;
        height: 1fr;
    }
    #main-column {
        layout: vertical;
        padding: 1 2;
        height: 1fr;
    }
    #views {
        height: 2fr;
    }
    """

    BINDINGS = [
        ("ctrl+c", "quit", "Quit"),
        ("ctrl+r", "refresh", "Refresh"),
        ("ctrl+p", "command_palette", "Command Palette"),
    ]

    def __init__(self, config: AppConfig | None = None, *, client: ApiClient | None = None) -> None:
        super().__init__()
        self._config = config or _load_app_config()
        self._client = client or ApiClient.from_config(self._config)
        self._connection_registry = ConnectionRegistry(
            self._client,
            verify_after_activate=self._config.verify_after_activate,
        )
        self._registry_unsubscribe: Callable[[], None] | None = None
        self._last_snapshot: RegistrySnapshot | None = None
        self._pending_notifications: list[tuple[str, str]] = []
        self._install_registry_listener()

    def compose(self) -> ComposeResult:
        """Compose the root layout."""

        yield Header(show_clock=True)
        sidebar = NavigationSidebar(self._connection_registry, initial_width=self._config.layout.sidebar_width)
        registry, client = self._connection_registry, self._client
        with Horizontal(id="content"):
            yield sidebar
            with Vertical(id="main-column"):
                with TabbedContent(id="views"):
                    with TabPane("Dashboard", id="tab-dashboard"):
                        yield DashboardPanel(registry, client, activity_limit=self._config.activity_limit)
                    with TabPane("Pipelines", id="tab-pipelines"):
                        yield PipelinesPanel(registry, client)
                    with TabPane("Warehouses", id="tab-warehouses"):
                        yield WarehousesPanel(registry, client)
                    with TabPane("History", id="tab-history"):
                        yield HistoryPanel(registry, client, limit=self._config.activity_limit)
                yield AnalysisPad(registry, client)
        yield StatusBar(self._connection_registry)
        yield Footer()

    async def on_mount(self) -> None:
        self._apply_theme()
        self._flush_pending_notifications()
        self.run_worker(self._connection_registry.start(), group="registry")

    def action_refresh(self) -> None:
        self.run_worker(self.refresh_views(), group="registry")

    async def refresh_views(self) -> None:
        """Reload connections, then reload every connection-bound view."""

        await self._connection_registry.refresh()
        for panel in self.query(ConnectionPanel):
            panel.reload()

    @property
    def registry(self) -> ConnectionRegistry:
        """Expose the connection registry for providers and tests."""

        return self._connection_registry

    @property
    def client(self) -> ApiClient:
        return self._client

    @property
    def app_config(self) -> AppConfig:
        return self._config

    def switch_connection(self, connection_id: int) -> None:
        """Activate a connection in the background (sidebar selection)."""

        self.run_worker(self.activate_connection(connection_id), group="registry")

    async def activate_connection(self, connection_id: int) -> bool:
        """Activate a connection and report the outcome to the user."""

        try:
            await self._connection_registry.set_active(connection_id)
        except SnowsarvaError as exc:
            self._safe_notify(str(exc), severity="error")
            return False
        active = self._connection_registry.get_snapshot().active
        name = active.name if active else str(connection_id)
        self._safe_notify(f"Connection activated: {name}", severity="information")
        return True

    def delete_connection(self, connection_id: int) -> None:
        """Delete a connection in the background (sidebar delete key)."""

        self.run_worker(self.remove_connection(connection_id), group="registry")

    async def remove_connection(self, connection_id: int) -> bool:
        connection = self._connection_registry.get_snapshot().find(connection_id)
        try:
            await self._connection_registry.delete_connection(connection_id)
        except SnowsarvaError as exc:
            self._safe_notify(str(exc), severity="error")
            return False
        name = connection.name if connection else str(connection_id)
        self._safe_notify(f"Connection deleted: {name}", severity="information")
        return True

    def remember_sidebar_width(self, width: int) -> None:
        """Persist the sidebar width when it changes."""

        if self._config.layout.sidebar_width == width:
            return
        self._config = self._config.with_layout(sidebar_width=width)
        save_config(self._config)

    async def _shutdown(self) -> None:
        if self._registry_unsubscribe:
            self._registry_unsubscribe()
            self._registry_unsubscribe = None
        await self._client.aclose()
        await super()._shutdown()

    def _apply_theme(self) -> None:
        name = _THEMES.get(self._config.theme, self._config.theme)
        if name in self.available_themes:
            self.theme = name
        else:
            LOG.warning("Unknown theme", extra={"theme": self._config.theme})

    def _install_registry_listener(self) -> None:
        if self._registry_unsubscribe:
            self._registry_unsubscribe()
        self._registry_unsubscribe = self._connection_registry.subscribe(self._handle_snapshot)

    def _handle_snapshot(self, snapshot: RegistrySnapshot) -> None:
        self._maybe_notify_state_change(snapshot)
        self._last_snapshot = snapshot

    def _maybe_notify_state_change(self, snapshot: RegistrySnapshot) -> None:
        previous = self._last_snapshot
        if snapshot.loading or previous is None:
            return
        if previous.active is not None and snapshot.active is None:
            self._safe_notify(
                f"{previous.active.name} is no longer active. Connect or activate a connection.",
                severity="warning",
            )

    def _safe_notify(self, message: str, *, severity: str = "information") -> None:
        if self.is_running:
            try:
                self.notify(message, severity=severity)  # type: ignore[arg-type]
            except Exception:
                LOG.exception("Failed to display notification", extra={"notification": message})
        else:
            self._pending_notifications.append((message, severity))

    def _flush_pending_notifications(self) -> None:
        if not self._pending_notifications:
            return
        pending = list(self._pending_notifications)
        self._pending_notifications.clear()
        for message, severity in pending:
            try:
                self.notify(message, severity=severity)  # type: ignore[arg-type]
            except Exception:
                LOG.exception("Failed to display queued notification", extra={"notification": message})


def main() -> None:
    """Invoke the Textual application."""

    config = _load_app_config()
    configure_logging(config.log_level)
    SnowsarvaApp(config).run()


if __name__ == "__main__":
    main()
