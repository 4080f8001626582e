"""
security.py – Inactivity auto-lock policy.

AutoLockMonitor decides when the app should lock itself.  The UI calls
record_activity() on user input and an external timer calls check()
periodically; when the enable_auto_lock flag is on and the inactivity
timeout has elapsed, check() locks through AppStateManager.lock().
"""

import logging
import time
from typing import Callable, Optional

from app_state import Locked
from feature_flags import FeatureFlag, FeatureFlagManager
from state_manager import AppStateManager

logger = logging.getLogger("SecureDesk")

DEFAULT_AUTO_LOCK_TIMEOUT = 300.0


class AutoLockMonitor:
    """
    Parameters
    ----------
    state_manager : AppStateManager
        Receives the lock() call.
    flags : FeatureFlagManager
        Consulted for enable_auto_lock on every check.
    timeout_seconds : float
        Inactivity period after which the app locks.
    clock : callable, optional
        Monotonic time source in seconds.  Defaults to time.monotonic.
    """

    def __init__(
        self,
        state_manager: AppStateManager,
        flags: FeatureFlagManager,
        timeout_seconds: float = DEFAULT_AUTO_LOCK_TIMEOUT,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.state_manager = state_manager
        self.flags = flags
        self.timeout_seconds = float(timeout_seconds)
        self._clock = clock or time.monotonic
        self.last_activity: float = self._clock()
        self._disconnect = state_manager.state_changed.connect(self._on_state_changed)

    def detach(self) -> None:
        self._disconnect()

    @property
    def idle_seconds(self) -> float:
        return self._clock() - self.last_activity

    def record_activity(self) -> None:
        # Activity while locked must not postpone the next lock.
        if isinstance(self.state_manager.current_state, Locked):
            return
        self.last_activity = self._clock()

    def check(self) -> bool:
        """Lock if due.  Returns True when this call locked the app."""
        if not self.flags.is_enabled(FeatureFlag.ENABLE_AUTO_LOCK):
            return False
        if isinstance(self.state_manager.current_state, Locked):
            return False
        if self.idle_seconds < self.timeout_seconds:
            return False

        idle = self.idle_seconds
        locked = self.state_manager.lock()
        if locked:
            logger.info("App auto-locked after %.0f seconds of inactivity", idle)
        return locked

    def _on_state_changed(self, new_state) -> None:
        # Unlocking counts as activity.
        if isinstance(self.state_manager.previous_state, Locked) and not isinstance(new_state, Locked):
            self.last_activity = self._clock()
