"""Remote node connection and connection resilience."""

from simplepay.services.node.connection_manager import ConnectionResilienceManager
from simplepay.services.node.rpc_connection import NodeRpcConnection


__all__ = ["ConnectionResilienceManager", "NodeRpcConnection"]
