"""Command palette providers backed by the connection registry."""

from __future__ import annotations

from typing import Iterator

from textual.command import DiscoveryHit, Hit, Hits, Provider
from textual.types import IgnoreReturnCallbackType

from .models import Connection, RegistrySnapshot
from .registry import ConnectionRegistry

_Command = tuple[str, IgnoreReturnCallbackType, str]


class _RegistryProvider(Provider):
    """Shared plumbing: find the app's registry and turn commands into hits."""

    @property
    def _registry(self) -> ConnectionRegistry | None:
        registry = getattr(self.app, "registry", None)
        if isinstance(registry, ConnectionRegistry):
            return registry
        return None

    def _commands(self, registry: ConnectionRegistry) -> Iterator[_Command]:
        raise NotImplementedError

    async def search(self, query: str) -> Hits:
        registry = self._registry
        if registry is None:
            return
        matcher = self.matcher(query)
        for label, callback, help_text in self._commands(registry):
            score = matcher.match(label)
            if score > 0:
                yield Hit(score=score, match_display=matcher.highlight(label), command=callback, help=help_text)

    async def discover(self) -> Hits:
        registry = self._registry
        if registry is None:
            return
        for label, callback, help_text in self._commands(registry):
            yield DiscoveryHit(display=label, command=callback, help=help_text)


class ConnectionSwitchProvider(_RegistryProvider):
    """Offer every inactive connection as an activation command."""

    def _commands(self, registry: ConnectionRegistry) -> Iterator[_Command]:
        snapshot = registry.get_snapshot()
        for connection in snapshot.connections:
            if connection.id == snapshot.active_id:
                continue
            yield (
                f"Activate connection: {connection.name}",
                self._activate(connection.id),
                _describe(connection),
            )

    def _activate(self, connection_id: int) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            activate = getattr(self.app, "activate_connection", None)
            if activate is not None:
                await activate(connection_id)

        return _run


class RegistryRefreshProvider(_RegistryProvider):
    """Expose a refresh command that reports the registry state in its help."""

    LABEL = "Refresh connections"

    def _commands(self, registry: ConnectionRegistry) -> Iterator[_Command]:
        yield self.LABEL, self._refresh(), refresh_help(registry.get_snapshot())

    def _refresh(self) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            refresh_views = getattr(self.app, "refresh_views", None)
            if refresh_views is not None:
                await refresh_views()
                return
            registry = self._registry
            if registry is not None:
                await registry.refresh()

        return _run


def _describe(connection: Connection) -> str:
    account = connection.account or "unknown account"
    return f"{account} · {connection.role} · {connection.warehouse}"


def refresh_help(snapshot: RegistrySnapshot) -> str:
    """Help line for the refresh command."""

    if snapshot.loading:
        return "Reload the connection list (a load is in progress)."
    if snapshot.error:
        return f"Reload the connection list (last error: {snapshot.error.splitlines()[0]})."
    return f"Reload the connection list ({len(snapshot.connections)} configured)."


__all__ = ["ConnectionSwitchProvider", "RegistryRefreshProvider", "refresh_help"]
