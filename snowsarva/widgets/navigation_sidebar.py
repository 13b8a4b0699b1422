"""Sidebar widget listing the user's Snowflake connections."""

from __future__ import annotations

from typing import Callable

from textual import events, on
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.message import Message
from textual.widgets import Label, ListItem, ListView, Static

from snowsarva.models import Connection, RegistrySnapshot
from snowsarva.registry import ConnectionRegistry

NO_ACTIVE_CONNECTION = "No active connection.\nConnect or activate one."


class NavigationSidebar(Container):
    """Displays the configured connections and highlights the active one."""

    DEFAULT_CSS = """
    NavigationSidebar {
        width: 30;
        min-width: 22;
        border-right: solid $surface-darken-1;
        padding: 1;
        height: 1fr;
        background: $surface-darken-2;
    }

    NavigationSidebar .sidebar-heading {
        text-style: bold;
        margin-bottom: 1;
    }

    #connection-list {
        height: 10;
        border: round $primary 30%;
        margin-bottom: 2;
    }

    #connection-list .active {
        text-style: bold;
    }

    #connection-summary {
        padding-top: 1;
        border-top: solid $surface-darken-1;
        color: $text-muted;
        min-height: 5;
    }
    """

    def __init__(self, registry: ConnectionRegistry, *, initial_width: int | None = None) -> None:
        super().__init__(id="nav-sidebar")
        self._registry = registry
        self._initial_width = initial_width
        self._connection_list: ListView | None = None
        self._items: dict[int, _ConnectionListItem] = {}
        self._rendered: tuple[tuple[int, str], ...] = ()
        self._rebuilding = False
        self._summary: Static | None = None
        self._unsubscribe: Callable[[], None] | None = None

    def compose(self) -> ComposeResult:
        if self._initial_width:
            self.styles.width = self._initial_width
        yield Static("Connections", classes="sidebar-heading")
        self._connection_list = _ConnectionListView(id="connection-list")
        yield self._connection_list
        self._summary = Static(NO_ACTIVE_CONNECTION, id="connection-summary", markup=False)
        yield self._summary

    async def on_mount(self) -> None:
        self._unsubscribe = self._registry.subscribe(self._handle_snapshot)

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    async def on_resize(self, event: events.Resize) -> None:
        remember = getattr(self.app, "remember_sidebar_width", None)
        if remember is not None and event.size.width > 0:
            remember(event.size.width)

    def _handle_snapshot(self, snapshot: RegistrySnapshot) -> None:
        self._render_connections(snapshot)
        self._render_summary(snapshot)

    def _render_connections(self, snapshot: RegistrySnapshot) -> None:
        if self._connection_list is None:
            return
        shape = tuple((entry.id, entry.name) for entry in snapshot.connections)
        if shape != self._rendered:
            self._rendered = shape
            self._items = {entry.id: _ConnectionListItem(entry) for entry in snapshot.connections}
            self.run_worker(self._rebuild_list(tuple(self._items.values())), exclusive=True, group="connection-list")
        for entry in snapshot.connections:
            item = self._items.get(entry.id)
            if item is not None:
                item.set_active(entry.is_active)
        if not self._rebuilding:
            self._sync_index(snapshot)

    async def _rebuild_list(self, items: tuple[_ConnectionListItem, ...]) -> None:
        if self._connection_list is None:
            return
        self._rebuilding = True
        try:
            await self._connection_list.clear()
            if items:
                await self._connection_list.extend(items)
        finally:
            self._rebuilding = False
        self._sync_index(self._registry.get_snapshot())

    def _sync_index(self, snapshot: RegistrySnapshot) -> None:
        if self._connection_list is None or snapshot.active is None:
            return
        for idx, entry in enumerate(snapshot.connections):
            if entry.id == snapshot.active.id:
                self._connection_list.index = idx
                return

    @property
    def connection_names(self) -> list[str]:
        """Names currently mounted in the list, in display order."""

        if self._connection_list is None:
            return []
        return [item.connection_name for item in self._connection_list.query(_ConnectionListItem)]

    def _render_summary(self, snapshot: RegistrySnapshot) -> None:
        if self._summary is None:
            return
        self._summary.update(summarize_connection(snapshot))

    @on(ListView.Selected)
    def _handle_connection_selected(self, event: ListView.Selected) -> None:
        if event.list_view.id != "connection-list":
            return
        item = event.item
        if isinstance(item, _ConnectionListItem):
            switcher = getattr(self.app, "switch_connection", None)
            if switcher is not None:
                switcher(item.connection_id)
            event.stop()

    def on_connection_delete_requested(self, event: "ConnectionDeleteRequested") -> None:
        remover = getattr(self.app, "delete_connection", None)
        if remover is not None:
            remover(event.connection_id)
        event.stop()


def summarize_connection(snapshot: RegistrySnapshot) -> str:
    """Multi-line description of the active connection for the sidebar."""

    active = snapshot.active
    if active is None:
        if snapshot.loading and not snapshot.connections:
            return "Loading connections…"
        return NO_ACTIVE_CONNECTION
    return "\n".join(
        [
            f"Active: {active.name}",
            f"Account: {active.account or '—'}",
            f"User: {active.username or '—'}",
            f"Role: {active.role}",
            f"Warehouse: {active.warehouse}",
        ]
    )


class _ConnectionListView(ListView):
    """ListView with a binding to delete the highlighted connection."""

    BINDINGS = ListView.BINDINGS + [
        Binding("delete", "delete_connection", "Delete connection", show=False),
    ]

    def action_delete_connection(self) -> None:
        item = self.highlighted_child
        if isinstance(item, _ConnectionListItem):
            self.post_message(ConnectionDeleteRequested(item.connection_id))


class _ConnectionListItem(ListItem):
    """List item storing a connection id for selection callbacks."""

    def __init__(self, connection: Connection) -> None:
        label = Label(connection.name, markup=False)
        super().__init__(label)
        self._label = label
        self.connection_id = connection.id
        self.connection_name = connection.name

    def set_active(self, active: bool) -> None:
        self.set_class(active, "active")
        self._label.update(f"● {self.connection_name}" if active else f"  {self.connection_name}")


class ConnectionDeleteRequested(Message):
    """Message emitted when the user asks to delete a connection."""

    def __init__(self, connection_id: int) -> None:
        super().__init__()
        self.connection_id = connection_id


__all__ = ["NavigationSidebar", "NO_ACTIVE_CONNECTION", "summarize_connection"]
