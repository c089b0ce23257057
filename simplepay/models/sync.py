"""
Sync State model.

Tracks wallet synchronization progress against the remote node.
"""

from dataclasses import dataclass


@dataclass
class SyncState:
    """
    Wallet synchronization state.

    Written only by SyncCoordinator. Used to:
    - Remember where scanning started (restore height)
    - Resume after a disconnection without rescanning
    - Report progress of the current sync cycle
    """

    restore_height: int | None = None
    scan_height: int | None = None

    # Current sync cycle
    start_height: int | None = None
    end_height: int | None = None
    percent_done: float = 0.0
    cycle_complete: bool = False

    ready: bool = False
    has_completed_sync: bool = False
