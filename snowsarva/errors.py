"""Error taxonomy shared by the REST client and the connection registry."""

from __future__ import annotations


class SnowsarvaError(RuntimeError):
    """Base class for failures surfaced by the dashboard core."""


class NetworkFailure(SnowsarvaError):
    """Raised when a request cannot complete (offline, timeout, 5xx)."""


class ServerRejected(SnowsarvaError):
    """Raised when the backend answers with a non-2xx status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedPayload(ServerRejected):
    """Raised when a 2xx body is not JSON or does not match the expected shape."""


class ConnectionNotFoundError(SnowsarvaError, LookupError):
    """Raised when a connection id is absent from the cached list."""

    def __init__(self, connection_id: int) -> None:
        super().__init__(f"Connection {connection_id} not found.")
        self.connection_id = connection_id


__all__ = [
    "ConnectionNotFoundError",
    "MalformedPayload",
    "NetworkFailure",
    "ServerRejected",
    "SnowsarvaError",
]
