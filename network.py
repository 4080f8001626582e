"""
network.py – Connectivity signal.

NetworkMonitor is the boolean "is connected" observable the state manager
listens to.  Platform reachability probing lives outside this package; the
platform glue reports path changes through update() and the monitor only
notifies when the connected/disconnected status actually flips.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from events import Signal

logger = logging.getLogger("SecureDesk")


class ConnectionType(Enum):
    WIFI = "wifi"
    CELLULAR = "cellular"
    ETHERNET = "ethernet"
    OTHER = "other"
    NONE = "none"
    UNKNOWN = "unknown"

    @property
    def display_name(self) -> str:
        return {
            "wifi": "Wi-Fi",
            "cellular": "Cellular",
            "ethernet": "Ethernet",
            "other": "Other",
            "none": "No Connection",
            "unknown": "Unknown",
        }[self.value]


class NetworkMonitor:
    """
    Tracks connectivity and notifies on status changes.

    Parameters
    ----------
    is_connected : bool
        Initial status.  Defaults to connected.
    verbose : callable, optional
        Returns whether status changes should be traced to the log.

    Attributes
    ----------
    connectivity_changed : Signal
        Emitted as (is_connected,) when the status flips.
    """

    def __init__(self, is_connected: bool = True, verbose: Optional[Callable[[], bool]] = None) -> None:
        self.is_connected: bool = is_connected
        self.connection_type: ConnectionType = ConnectionType.UNKNOWN
        self.last_status_change: datetime = datetime.now(timezone.utc)
        self.connectivity_changed = Signal("connectivity_changed")
        self._verbose = verbose or (lambda: False)

    def update(self, is_connected: bool, connection_type: Optional[ConnectionType] = None) -> None:
        """Record a path update from the platform."""
        was_connected = self.is_connected
        self.is_connected = bool(is_connected)
        if connection_type is not None:
            self.connection_type = connection_type
        elif not self.is_connected:
            self.connection_type = ConnectionType.NONE

        if was_connected == self.is_connected:
            return

        self.last_status_change = datetime.now(timezone.utc)
        if self._verbose():
            logger.debug(
                "[Network] %s - Type: %s",
                "Connected" if self.is_connected else "Disconnected",
                self.connection_type.display_name,
            )
        self.connectivity_changed.emit(self.is_connected)
