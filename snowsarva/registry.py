"""Connection registry: the shared cache of connections and the active one."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Callable, Protocol, Sequence

from .errors import ConnectionNotFoundError, SnowsarvaError
from .models import Connection, ConnectionDraft, RegistrySnapshot

LOG = logging.getLogger(__name__)

SnapshotListener = Callable[[RegistrySnapshot], None]

REFRESH_FAILED = "Failed to fetch Snowflake connections."
ACTIVATE_FAILED = "Failed to activate Snowflake connection."

_UNSET = object()


class ConnectionSource(Protocol):
    """Backend calls the registry depends on (implemented by ``ApiClient``)."""

    async def list_connections(self) -> Sequence[Connection]: ...

    async def update_connection(self, connection_id: int, **fields: object) -> Connection: ...

    async def create_connection(self, draft: ConnectionDraft) -> Connection: ...

    async def delete_connection(self, connection_id: int) -> None: ...


class ConnectionRegistry:
    """Owns the user's connection list and serves it to every view.

    The snapshot is replaced (never mutated) in a single step whenever a call
    completes, so listeners can compare references to detect changes. While a
    call is in flight the previous data stays readable with ``loading=True``.
    """

    def __init__(self, source: ConnectionSource, *, verify_after_activate: bool = False) -> None:
        self._source = source
        self._verify_after_activate = verify_after_activate
        self._snapshot = RegistrySnapshot()
        self._listeners: set[SnapshotListener] = set()
        self._pending = 0
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    def get_snapshot(self) -> RegistrySnapshot:
        """Current cached state; safe to call at any time."""

        return self._snapshot

    async def start(self) -> None:
        """Perform the initial fetch (no-op once started)."""

        if self._started:
            return
        self._started = True
        await self.refresh()

    async def refresh(self) -> None:
        """Reload the connection list; failures land in the snapshot's error field."""

        self._begin()
        try:
            connections = await self._source.list_connections()
        except asyncio.CancelledError:
            self._finish()
            raise
        except SnowsarvaError as exc:
            LOG.warning("Connection refresh failed", extra={"error": str(exc)})
            self._finish(error=str(exc) or REFRESH_FAILED)
            return
        except Exception as exc:
            LOG.exception("Unexpected failure while refreshing connections")
            self._finish(error=f"{REFRESH_FAILED} {exc}".strip())
            return
        self._finish(connections=tuple(connections), error=None)

    async def set_active(self, connection_id: int) -> None:
        """Mark ``connection_id`` active on the backend and patch the cache."""

        if self._snapshot.find(connection_id) is None:
            error = ConnectionNotFoundError(connection_id)
            self._publish(replace(self._snapshot, error=str(error)))
            raise error
        self._begin()
        try:
            await self._source.update_connection(connection_id, is_active=True)
        except asyncio.CancelledError:
            self._finish()
            raise
        except Exception as exc:
            LOG.warning(
                "Connection activation failed",
                extra={"connection_id": connection_id, "error": str(exc)},
            )
            message = str(exc) if isinstance(exc, SnowsarvaError) and str(exc) else ACTIVATE_FAILED
            self._finish(error=message)
            raise
        patched = tuple(entry.with_active(entry.id == connection_id) for entry in self._snapshot.connections)
        self._finish(connections=patched, error=None)
        if self._verify_after_activate:
            await self.refresh()

    async def create_connection(self, draft: ConnectionDraft) -> Connection:
        """Create a connection (credentials are tested server-side), then reload."""

        self._begin()
        try:
            created = await self._source.create_connection(draft)
        except asyncio.CancelledError:
            self._finish()
            raise
        except Exception as exc:
            LOG.warning("Connection creation failed", extra={"connection_name": draft.name, "error": str(exc)})
            self._finish(error=str(exc) or "Failed to create Snowflake connection.")
            raise
        self._finish()
        await self.refresh()
        return created

    async def delete_connection(self, connection_id: int) -> None:
        """Delete a cached connection on the backend, then reload."""

        if self._snapshot.find(connection_id) is None:
            error = ConnectionNotFoundError(connection_id)
            self._publish(replace(self._snapshot, error=str(error)))
            raise error
        self._begin()
        try:
            await self._source.delete_connection(connection_id)
        except asyncio.CancelledError:
            self._finish()
            raise
        except Exception as exc:
            LOG.warning(
                "Connection deletion failed",
                extra={"connection_id": connection_id, "error": str(exc)},
            )
            self._finish(error=str(exc) or "Failed to delete Snowflake connection.")
            raise
        self._finish()
        await self.refresh()

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Subscribe to snapshot updates; returns an unsubscribe handle."""

        self._listeners.add(listener)
        listener(self._snapshot)

        def _unsubscribe() -> None:
            self._listeners.discard(listener)

        return _unsubscribe

    def _begin(self) -> None:
        self._pending += 1
        if not self._snapshot.loading:
            self._publish(replace(self._snapshot, loading=True))

    def _finish(
        self,
        *,
        connections: tuple[Connection, ...] | None = None,
        error: object = _UNSET,
    ) -> None:
        self._pending = max(0, self._pending - 1)
        current = self._snapshot
        entries = current.connections if connections is None else connections
        message: str | None = current.error if error is _UNSET else error  # type: ignore[assignment]
        self._publish(RegistrySnapshot.build(entries, loading=self._pending > 0, error=message))

    def _publish(self, snapshot: RegistrySnapshot) -> None:
        self._snapshot = snapshot
        for listener in tuple(self._listeners):
            if listener not in self._listeners:
                continue
            try:
                listener(snapshot)
            except Exception:
                LOG.exception("Registry listener failed", extra={"listener": repr(listener)})


__all__ = [
    "ConnectionRegistry",
    "ConnectionSource",
    "SnapshotListener",
]
