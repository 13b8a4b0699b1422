"""Status bar widget that mirrors the connection registry."""

from __future__ import annotations

from typing import Callable

from textual.widgets import Static

from snowsarva.models import RegistrySnapshot
from snowsarva.registry import ConnectionRegistry


class StatusBar(Static):
    """Compact status strip rendered above Textual's footer."""

    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        padding: 0 1;
        background: $surface-darken-3;
        color: $text;
    }
    """

    def __init__(self, registry: ConnectionRegistry) -> None:
        super().__init__("", id="status-bar", markup=False)
        self._registry = registry
        self._unsubscribe: Callable[[], None] | None = None

    async def on_mount(self) -> None:
        self._unsubscribe = self._registry.subscribe(self._handle_snapshot)

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def _handle_snapshot(self, snapshot: RegistrySnapshot) -> None:
        self.update(describe_snapshot(snapshot))


def describe_snapshot(snapshot: RegistrySnapshot) -> str:
    """One-line summary of the registry state."""

    active = snapshot.active
    parts = [
        f"Connection: {active.name if active else 'none'}",
        f"Warehouse: {active.warehouse if active else '—'}",
        f"Configured: {len(snapshot.connections)}",
        f"Status: {'Loading…' if snapshot.loading else 'Ready'}",
    ]
    if snapshot.error:
        reason = snapshot.error.splitlines()[0][:80]
        parts.append(f"Error: {reason}")
    return " | ".join(parts)


__all__ = ["StatusBar", "describe_snapshot"]
