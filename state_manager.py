"""
state_manager.py – The single authority over application lifecycle state.

AppStateManager applies every state change through transition(), which
consults the allowed-transition table below.  A rejected transition leaves
the state untouched, is logged at DEBUG level and returns False; nothing in
this module raises for an illegal request.

Allowed transitions (from -> to):

  Launching        -> any state
  Unauthenticated  -> Authenticated, Error
  Authenticated    -> Unauthenticated, Locked, Offline, Error, Syncing
  Locked           -> Authenticated, Unauthenticated
  Offline          -> Authenticated, Unauthenticated, Error
  Error            -> any state
  Syncing          -> Authenticated, Error, Syncing

Every applied transition is appended to a bounded history (oldest entries
dropped first), announced on the state_changed signal and, when verbose
logging is on, traced to the log.

The manager is meant to be driven from one thread (the UI thread); it does
no locking of its own.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, FrozenSet, List, Optional, Type

from app_state import (
    STATE_VARIANTS,
    AppState,
    AppStateError,
    AppStateSnapshot,
    Authenticated,
    Error,
    Launching,
    Locked,
    Offline,
    Syncing,
    Unauthenticated,
)
from events import Signal
from models import User
from network import NetworkMonitor

logger = logging.getLogger("SecureDesk")

DEFAULT_HISTORY_SIZE = 50

_ANY: FrozenSet[Type[AppState]] = frozenset(STATE_VARIANTS)

ALLOWED_TRANSITIONS: Dict[Type[AppState], FrozenSet[Type[AppState]]] = {
    Launching: _ANY,
    Unauthenticated: frozenset({Authenticated, Error}),
    Authenticated: frozenset({Unauthenticated, Locked, Offline, Error, Syncing}),
    Locked: frozenset({Authenticated, Unauthenticated}),
    Offline: frozenset({Authenticated, Unauthenticated, Error}),
    Error: _ANY,
    Syncing: frozenset({Authenticated, Error, Syncing}),
}


def can_transition(current: AppState, target: AppState) -> bool:
    """Whether the table allows moving from *current* to *target*."""
    return type(target) in ALLOWED_TRANSITIONS.get(type(current), frozenset())


@dataclass(frozen=True)
class StateTransition:
    """One applied transition, kept for debugging only."""

    from_state: AppState
    to_state: AppState
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class AppStateManager:
    """
    Owns the current AppState and its transition history.

    Parameters
    ----------
    network_monitor : NetworkMonitor, optional
        Connectivity signal.  Losing connectivity while authenticated
        enters offline mode; regaining it while offline leaves it.
    verbose : callable, optional
        Returns whether applied transitions should be traced to the log
        (normally FeatureFlagManager.is_verbose_logging_enabled).
    history_size : int
        Maximum number of transitions kept in history.

    Attributes
    ----------
    state_changed : Signal
        Emitted as (new_state,) after every applied transition.
    """

    def __init__(
        self,
        network_monitor: Optional[NetworkMonitor] = None,
        verbose: Optional[Callable[[], bool]] = None,
        history_size: int = DEFAULT_HISTORY_SIZE,
    ) -> None:
        self.current_state: AppState = Launching()
        self.previous_state: Optional[AppState] = None
        self.state_changed = Signal("state_changed")

        self._history: deque = deque(maxlen=max(1, history_size))
        self._verbose = verbose or (lambda: False)

        # State to restore when leaving Error; set only by set_error().
        self._recovery_state: Optional[AppState] = None
        # User whose data is being synced; Syncing carries only progress.
        self._sync_user: Optional[User] = None

        self._network_monitor = network_monitor
        self._disconnect_network: Optional[Callable[[], None]] = None
        if network_monitor is not None:
            self._disconnect_network = network_monitor.connectivity_changed.connect(
                self._on_connectivity_changed
            )

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def is_authenticated(self) -> bool:
        return self.current_state.is_authenticated

    @property
    def is_usable(self) -> bool:
        return self.current_state.is_usable

    @property
    def is_transitional(self) -> bool:
        return self.current_state.is_transitional

    @property
    def current_user(self) -> Optional[User]:
        return self.current_state.current_user

    @property
    def history(self) -> List[StateTransition]:
        """Applied transitions, oldest first."""
        return list(self._history)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def transition(self, new_state: AppState) -> bool:
        """Apply *new_state* if the table allows it; return whether it did."""
        if not can_transition(self.current_state, new_state):
            logger.debug(
                "[AppState] Invalid transition: %s -> %s",
                self.current_state.display_name,
                new_state.display_name,
            )
            return False

        record = StateTransition(from_state=self.current_state, to_state=new_state)
        self.previous_state = self.current_state
        self.current_state = new_state
        self._history.append(record)

        # Recovery bookkeeping only lives as long as Error.  The sync user
        # survives a detour through Error, which may recover into Syncing.
        if isinstance(record.from_state, Error) and not isinstance(new_state, Error):
            self._recovery_state = None
        if not isinstance(new_state, (Syncing, Error)):
            self._sync_user = None

        if self._verbose():
            logger.debug(
                "[AppState] %s -> %s",
                record.from_state.display_name,
                record.to_state.display_name,
            )
        self.state_changed.emit(new_state)
        return True

    def authenticate(self, user: User) -> bool:
        return self.transition(Authenticated(user))

    def logout(self) -> bool:
        return self.transition(Unauthenticated())

    def lock(self) -> bool:
        """Lock for the current user; no-op when nobody is signed in."""
        user = self.current_state.current_user
        if user is None:
            return False
        return self.transition(Locked(user))

    def unlock(self) -> bool:
        if not isinstance(self.current_state, Locked):
            return False
        return self.transition(Authenticated(self.current_state.user))

    def enter_offline_mode(self) -> bool:
        snapshot = AppStateSnapshot.from_state(self.current_state)
        return self.transition(Offline(snapshot))

    def exit_offline_mode(self) -> bool:
        """
        Leave offline mode, restoring the signed-in user recorded in the
        snapshot, or the signed-out state when there was none.
        """
        if not isinstance(self.current_state, Offline):
            return False
        snapshot = self.current_state.snapshot
        if snapshot.was_authenticated and snapshot.user is not None:
            return self.transition(Authenticated(snapshot.user))
        return self.transition(Unauthenticated())

    def set_error(self, error: AppStateError) -> bool:
        prior = self.current_state
        applied = self.transition(Error(error))
        # A second error keeps the state from before the first one.
        if applied and not isinstance(prior, Error):
            self._recovery_state = prior
        return applied

    def recover_from_error(self) -> bool:
        """Return to the state that was current when set_error() was called."""
        if not isinstance(self.current_state, Error) or self._recovery_state is None:
            return False
        return self.transition(self._recovery_state)

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    def start_sync(self) -> bool:
        user = self.current_state.current_user
        applied = self.transition(Syncing(0.0))
        if applied and user is not None:
            self._sync_user = user
        return applied

    def update_sync_progress(self, progress: float) -> bool:
        """
        Report sync progress, clamped to [0, 1].

        Only meaningful while syncing; from any other state this is a
        no-op returning False (it never starts a sync).
        """
        if not isinstance(self.current_state, Syncing):
            logger.debug("[AppState] Sync progress ignored outside Syncing")
            return False
        return self.transition(Syncing(progress))

    def complete_sync(self) -> bool:
        user = self.current_state.current_user or self._sync_user
        if user is None:
            return self.transition(Unauthenticated())
        return self.transition(Authenticated(user))

    # ------------------------------------------------------------------
    # Connectivity
    # ------------------------------------------------------------------

    def detach(self) -> None:
        """Stop following the network monitor."""
        if self._disconnect_network is not None:
            self._disconnect_network()
            self._disconnect_network = None

    def _on_connectivity_changed(self, is_connected: bool) -> None:
        if not is_connected and self.current_state.is_authenticated:
            self.enter_offline_mode()
        elif is_connected and isinstance(self.current_state, Offline):
            self.exit_offline_mode()
