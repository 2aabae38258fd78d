"""Connection registry backing ``GET /status``.

Only bookkeeping lives here: which connections are open and when the
process started. No request state is shared between connections.
"""

import asyncio
import secrets
import time
from dataclasses import dataclass, field


@dataclass
class ConnectionEntry:
    """An open relay connection."""

    connection_id: str
    connected_at: float = field(default_factory=time.time)


class ConnectionRegistry:
    """Registry of open WebSocket connections."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._connections: dict[str, ConnectionEntry] = {}
        self._started = time.monotonic()

    def generate_id(self) -> str:
        return secrets.token_urlsafe(12)

    async def register(self) -> str:
        """Register a new connection and return its id."""
        async with self._lock:
            connection_id = self.generate_id()
            while connection_id in self._connections:
                connection_id = self.generate_id()
            self._connections[connection_id] = ConnectionEntry(connection_id=connection_id)
            return connection_id

    async def unregister(self, connection_id: str) -> None:
        async with self._lock:
            self._connections.pop(connection_id, None)

    @property
    def count(self) -> int:
        return len(self._connections)

    @property
    def uptime(self) -> float:
        """Seconds since the registry (and so the app) started."""
        return time.monotonic() - self._started
