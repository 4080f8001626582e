"""
app_state.py – Application lifecycle states.

AppState is a closed family of immutable variants; exactly one of them is
the current state at any time:

  Launching          initial state, no payload
  Authenticated      the signed-in user
  Unauthenticated    no payload
  Locked             the user who was signed in before locking
  Offline            an AppStateSnapshot taken when offline mode began
  Error              an AppStateError describing the degraded condition
  Syncing            progress in [0, 1] (clamped on construction)

Each variant carries only its own payload, so invalid combinations (a
Locked state without a user, say) cannot be built.  The derived properties
is_authenticated, is_usable, is_transitional and current_user are computed
per variant.

AppStateError is a data value, not an exception: entering the Error state is
a normal transition and recovery is explicit (AppStateManager).
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple, Type

from models import User


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Payload types
# ---------------------------------------------------------------------------

class ErrorCode(Enum):
    NETWORK_FAILURE = "network_failure"
    AUTHENTICATION_FAILURE = "authentication_failure"
    DATA_CORRUPTION = "data_corruption"
    SYNC_FAILURE = "sync_failure"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class AppStateError:
    """
    Describes why the application entered the Error state.

    Attributes
    ----------
    code : ErrorCode
        Broad failure category.
    message : str
        User-facing text rendered by the UI.
    can_retry : bool
        Whether the UI should offer a retry action.
    occurred_at : datetime
        When the error was recorded.
    underlying_error : str or None
        Text of the exception that caused the error, if any.
    """

    code: ErrorCode
    message: str
    can_retry: bool = True
    occurred_at: datetime = field(default_factory=_utcnow)
    underlying_error: Optional[str] = None

    @classmethod
    def from_exception(
        cls,
        code: ErrorCode,
        message: str,
        exc: BaseException,
        can_retry: bool = True,
    ) -> "AppStateError":
        return cls(code=code, message=message, can_retry=can_retry, underlying_error=str(exc) or type(exc).__name__)


@dataclass(frozen=True)
class AppStateSnapshot:
    """Authentication facts captured at the moment offline mode began."""

    was_authenticated: bool
    user: Optional[User]
    taken_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def from_state(cls, state: "AppState", taken_at: Optional[datetime] = None) -> "AppStateSnapshot":
        return cls(
            was_authenticated=state.is_authenticated,
            user=state.current_user,
            taken_at=taken_at or _utcnow(),
        )


# ---------------------------------------------------------------------------
# State variants
# ---------------------------------------------------------------------------

class AppState:
    """Base of the state variants.  Never instantiated directly."""

    __slots__ = ()

    display_name = ""

    @property
    def is_authenticated(self) -> bool:
        return False

    @property
    def is_usable(self) -> bool:
        """Whether the main content may be shown."""
        return False

    @property
    def is_transitional(self) -> bool:
        return False

    @property
    def current_user(self) -> Optional[User]:
        return None


@dataclass(frozen=True)
class Launching(AppState):
    display_name = "Launching"

    @property
    def is_transitional(self) -> bool:
        return True


@dataclass(frozen=True)
class Authenticated(AppState):
    user: User

    display_name = "Ready"

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def is_usable(self) -> bool:
        return True

    @property
    def current_user(self) -> Optional[User]:
        return self.user


@dataclass(frozen=True)
class Unauthenticated(AppState):
    display_name = "Sign In Required"


@dataclass(frozen=True)
class Locked(AppState):
    user: User

    display_name = "Locked"

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def current_user(self) -> Optional[User]:
        return self.user


@dataclass(frozen=True)
class Offline(AppState):
    snapshot: AppStateSnapshot

    display_name = "Offline"

    @property
    def is_authenticated(self) -> bool:
        return self.snapshot.was_authenticated

    @property
    def is_usable(self) -> bool:
        return True

    @property
    def current_user(self) -> Optional[User]:
        return self.snapshot.user


@dataclass(frozen=True)
class Error(AppState):
    error: AppStateError

    display_name = "Error"


@dataclass(frozen=True)
class Syncing(AppState):
    progress: float = 0.0

    display_name = "Syncing"

    def __post_init__(self) -> None:
        object.__setattr__(self, "progress", min(1.0, max(0.0, float(self.progress))))

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def is_usable(self) -> bool:
        return True

    @property
    def is_transitional(self) -> bool:
        return True


STATE_VARIANTS: Tuple[Type[AppState], ...] = (
    Launching,
    Authenticated,
    Unauthenticated,
    Locked,
    Offline,
    Error,
    Syncing,
)
