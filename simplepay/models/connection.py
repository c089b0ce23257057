"""
Connection models.

Describes the remote node endpoint and the connection state owned by the
connection resilience manager.
"""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class NodeConnectionDescriptor:
    """Remote node endpoint with optional credentials."""

    uri: str
    username: str | None = None
    password: str | None = field(default=None, repr=False)

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)


@dataclass
class ConnectionState:
    """
    Connection status of the active node.

    Written only by ConnectionResilienceManager.
    """

    connected: bool = False
    endpoint: str | None = None
    last_checked_at: datetime | None = None
    consecutive_failures: int = 0
