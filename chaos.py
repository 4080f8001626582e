"""
chaos.py – Simulated failures for hardening the client.

ChaosManager holds a set of failure toggles (network failure, slow network,
corrupt data, expired token, random failures, storage full).  Service code
calls the apply_*_chaos() hooks at the matching points; each hook raises
ChaosError when one of its toggles fires.

Every hook is inert unless the enable_chaos_mode flag is effectively on,
which is never the case in a release build.  Turning the flag off also
clears every toggle.
"""

import logging
import random
import time
from enum import Enum
from typing import Callable, Optional

from feature_flags import FeatureFlag, FeatureFlagManager

logger = logging.getLogger("SecureDesk")

DEFAULT_SLOW_NETWORK_DELAY = 3.0
DEFAULT_FAILURE_PROBABILITY = 0.3


class ChaosKind(Enum):
    NETWORK_FAILURE = "network_failure"
    EXPIRED_TOKEN = "expired_token"
    CORRUPT_DATA = "corrupt_data"
    STORAGE_FULL = "storage_full"
    RANDOM_FAILURE = "random_failure"


_MESSAGES = {
    ChaosKind.NETWORK_FAILURE: "Simulated network failure",
    ChaosKind.EXPIRED_TOKEN: "Simulated token expiration",
    ChaosKind.CORRUPT_DATA: "Simulated data corruption",
    ChaosKind.STORAGE_FULL: "Simulated storage full",
    ChaosKind.RANDOM_FAILURE: "Simulated random failure",
}


class ChaosError(RuntimeError):
    """
    A failure injected by ChaosManager.

    Attributes
    ----------
    kind : ChaosKind
        Which toggle produced the failure.
    """

    def __init__(self, kind: ChaosKind) -> None:
        super().__init__(f"[CHAOS] {_MESSAGES[kind]}")
        self.kind: ChaosKind = kind


class ChaosManager:
    """
    Failure toggles gated by the enable_chaos_mode flag.

    Parameters
    ----------
    flags : FeatureFlagManager
        Consulted on every hook call.
    rng : random.Random, optional
        Source for random failures.
    sleep : callable, optional
        Used for the slow-network delay.  Defaults to time.sleep.
    """

    def __init__(
        self,
        flags: FeatureFlagManager,
        rng: Optional[random.Random] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.flags = flags
        self._rng = rng or random.Random()
        self._sleep = sleep or time.sleep

        self.simulate_network_failure = False
        self.simulate_slow_network = False
        self.slow_network_delay = DEFAULT_SLOW_NETWORK_DELAY
        self.simulate_corrupt_data = False
        self.simulate_expired_token = False
        self.simulate_random_failures = False
        self.random_failure_probability = DEFAULT_FAILURE_PROBABILITY
        self.simulate_storage_full = False

        self._disconnects = [
            flags.flag_changed.connect(self._on_flag_changed),
            flags.flags_reset.connect(self.reset_all),
        ]

    def detach(self) -> None:
        for disconnect in self._disconnects:
            disconnect()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def is_enabled(self) -> bool:
        return self.flags.is_chaos_mode_enabled

    @property
    def active_count(self) -> int:
        return sum((
            self.simulate_network_failure,
            self.simulate_slow_network,
            self.simulate_corrupt_data,
            self.simulate_expired_token,
            self.simulate_random_failures,
            self.simulate_storage_full,
        ))

    @property
    def is_active(self) -> bool:
        """True when the flag is on and at least one toggle is set."""
        return self.is_enabled and self.active_count > 0

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def apply_network_chaos(self) -> None:
        """Call before a network operation."""
        if not self.is_enabled:
            return
        if self.simulate_network_failure:
            self._fail(ChaosKind.NETWORK_FAILURE)
        if self.simulate_random_failures and self._should_randomly_fail():
            self._fail(ChaosKind.RANDOM_FAILURE)
        if self.simulate_slow_network:
            logger.debug("[Chaos] Slow network delay: %ss", self.slow_network_delay)
            self._sleep(self.slow_network_delay)

    def apply_auth_chaos(self) -> None:
        if self.is_enabled and self.simulate_expired_token:
            self._fail(ChaosKind.EXPIRED_TOKEN)

    def apply_data_chaos(self) -> None:
        """Call before decoding a payload."""
        if self.is_enabled and self.simulate_corrupt_data:
            self._fail(ChaosKind.CORRUPT_DATA)

    def apply_storage_chaos(self) -> None:
        if not self.is_enabled:
            return
        if self.simulate_storage_full:
            self._fail(ChaosKind.STORAGE_FULL)
        if self.simulate_random_failures and self._should_randomly_fail():
            self._fail(ChaosKind.RANDOM_FAILURE)

    # ------------------------------------------------------------------
    # Bulk toggles
    # ------------------------------------------------------------------

    def reset_all(self) -> None:
        self.simulate_network_failure = False
        self.simulate_slow_network = False
        self.simulate_corrupt_data = False
        self.simulate_expired_token = False
        self.simulate_random_failures = False
        self.simulate_storage_full = False
        logger.debug("[Chaos] All chaos modes disabled")

    def enable_all(self) -> None:
        """Stress preset: slow network plus random failures."""
        self.simulate_slow_network = True
        self.simulate_random_failures = True
        logger.debug("[Chaos] Multiple chaos modes enabled")

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _should_randomly_fail(self) -> bool:
        return self._rng.random() < self.random_failure_probability

    def _fail(self, kind: ChaosKind) -> None:
        logger.debug("[Chaos] %s triggered", kind.value)
        raise ChaosError(kind)

    def _on_flag_changed(self, flag: FeatureFlag, enabled: bool) -> None:
        if flag is FeatureFlag.ENABLE_CHAOS_MODE and not enabled:
            self.reset_all()
