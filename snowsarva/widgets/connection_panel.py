"""Base container for views that load backend data for the active connection."""

from __future__ import annotations

import logging
from typing import Callable

from textual.containers import Container

from snowsarva.api import ApiClient
from snowsarva.errors import SnowsarvaError
from snowsarva.models import RegistrySnapshot
from snowsarva.registry import ConnectionRegistry

LOG = logging.getLogger(__name__)

PLACEHOLDER = "Activate a connection to load this view."


class ConnectionPanel(Container):
    """Reloads its content whenever the active connection changes.

    Subclasses look up their child widgets in ``_bind_widgets`` and implement
    ``_load`` (fetch, then render), ``_render_placeholder`` and
    ``_render_error``. Loads run in an exclusive worker, so a newer load
    cancels an older one that is still waiting on the backend.
    """

    def __init__(self, registry: ConnectionRegistry, client: ApiClient, *, id: str | None = None) -> None:
        super().__init__(id=id)
        self._registry = registry
        self._client = client
        self._loaded_for: int | None = None
        self._seen_snapshot = False
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def connection_id(self) -> int | None:
        """Active connection id the panel last loaded for."""

        return self._loaded_for

    async def on_mount(self) -> None:
        self._bind_widgets()
        self._unsubscribe = self._registry.subscribe(self._handle_snapshot)

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def reload(self) -> None:
        """Fetch fresh data in the background (or show the placeholder)."""

        if self._loaded_for is None:
            self._render_placeholder()
            return
        self.run_worker(self._run_load(), exclusive=True, group="panel-load")

    def _handle_snapshot(self, snapshot: RegistrySnapshot) -> None:
        if snapshot.loading:
            return
        active_id = snapshot.active_id
        if self._seen_snapshot and active_id == self._loaded_for:
            return
        self._seen_snapshot = True
        self._loaded_for = active_id
        self.reload()

    async def _run_load(self) -> None:
        try:
            await self._load()
        except SnowsarvaError as exc:
            LOG.warning("View load failed", extra={"view": self.id, "error": str(exc)})
            self._render_error(str(exc))

    def _bind_widgets(self) -> None:
        """Look up child widgets once compose has run."""

    async def _load(self) -> None:
        raise NotImplementedError

    def _render_placeholder(self) -> None:
        raise NotImplementedError

    def _render_error(self, message: str) -> None:
        raise NotImplementedError


__all__ = ["ConnectionPanel", "PLACEHOLDER"]
