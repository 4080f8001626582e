"""
events.py – Change notifications.

Signal is a typed observer list.  Each component owns one Signal per
notification topic (state_changed, flag_changed, flags_reset,
environment_changed, connectivity_changed) instead of posting string-named
events on a process-wide bus.

Delivery is synchronous and fire-and-forget: subscribers are called in
subscription order, a subscriber that raises is logged and skipped, and the
emitter never sees the failure.
"""

import logging
from typing import Callable, List

logger = logging.getLogger("SecureDesk")


class Signal:
    """
    An ordered list of callbacks for one notification topic.

    Parameters
    ----------
    name : str
        Topic name, used in log messages only.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._subscribers: List[Callable[..., None]] = []

    def connect(self, callback: Callable[..., None]) -> Callable[[], None]:
        """
        Subscribe *callback* and return a function that unsubscribes it.

        Connecting the same callback twice delivers each emission twice.
        """
        self._subscribers.append(callback)

        def _disconnect() -> None:
            self.disconnect(callback)

        return _disconnect

    def disconnect(self, callback: Callable[..., None]) -> None:
        """Remove one registration of *callback*; unknown callbacks are ignored."""
        try:
            self._subscribers.remove(callback)
        except ValueError:
            pass

    def emit(self, *args) -> None:
        # Iterate over a copy so callbacks may (un)subscribe while handling.
        for callback in list(self._subscribers):
            try:
                callback(*args)
            except Exception:
                logger.exception("Subscriber %r for %s failed", callback, self.name)

    def __len__(self) -> int:
        return len(self._subscribers)
