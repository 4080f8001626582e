"""
environment.py – Deployment environments.

AppEnvironment names the three deployment profiles and ENVIRONMENTS maps
each one to its static EnvironmentConfig (base URL, timeout, logging, mock
services, debug-only marker and feature-flag overrides).

EnvironmentManager holds the single current selection:

  - It is loaded from the key-value store on start-up, falling back to the
    build default (mock for debug builds, production for release builds).
  - switch_to() persists the new selection and notifies subscribers.
    Release builds refuse debug-only environments.
  - apply_feature_overrides() pushes the environment's overrides into a
    FeatureFlagManager.  The overrides themselves come from the pure
    compute_effective_overrides().
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from events import Signal
from feature_flags import FeatureFlag, FeatureFlagManager
from storage import KeyValueStore

logger = logging.getLogger("SecureDesk")

# Store key of the persisted selection.
ENVIRONMENT_STORAGE_KEY = "app_environment"


class UnknownEnvironmentError(ValueError):
    """
    Raised by AppEnvironment.from_key() for an unknown identifier.

    Attributes
    ----------
    key : str
        The identifier that was looked up.
    """

    def __init__(self, key: str) -> None:
        super().__init__(f"Unknown environment: {key!r}")
        self.key: str = key


class AppEnvironment(Enum):
    MOCK = "mock"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_key(cls, key: str) -> "AppEnvironment":
        try:
            return cls(key.strip().lower())
        except (AttributeError, ValueError):
            raise UnknownEnvironmentError(key) from None

    @classmethod
    def default_for(cls, debug_build: bool) -> "AppEnvironment":
        return cls.MOCK if debug_build else cls.PRODUCTION

    @property
    def config(self) -> "EnvironmentConfig":
        return ENVIRONMENTS[self]

    @property
    def display_name(self) -> str:
        return self.config.display_name

    @property
    def is_debug_only(self) -> bool:
        return self.config.is_debug_only


@dataclass(frozen=True)
class EnvironmentConfig:
    """Static settings of one deployment environment."""

    display_name: str
    description: str
    base_url: str
    request_timeout_seconds: float
    use_mock_services: bool
    logging_enabled: bool
    is_debug_only: bool
    requires_auth: bool
    feature_overrides: Dict[FeatureFlag, bool] = field(default_factory=dict)


ENVIRONMENTS: Dict[AppEnvironment, EnvironmentConfig] = {
    AppEnvironment.MOCK: EnvironmentConfig(
        display_name="Mock",
        description="Local mock data, no network",
        base_url="https://mock.securedesk.local",
        request_timeout_seconds=5,
        use_mock_services=True,
        logging_enabled=True,
        is_debug_only=True,
        requires_auth=False,
        feature_overrides={
            FeatureFlag.ENABLE_VERBOSE_LOGGING: True,
            FeatureFlag.ENABLE_DEBUG_MENU: True,
        },
    ),
    AppEnvironment.STAGING: EnvironmentConfig(
        display_name="Staging",
        description="Staging server for testing",
        base_url="https://staging-api.securedesk.app",
        request_timeout_seconds=30,
        use_mock_services=False,
        logging_enabled=True,
        is_debug_only=True,
        requires_auth=True,
        feature_overrides={
            FeatureFlag.ENABLE_VERBOSE_LOGGING: True,
        },
    ),
    AppEnvironment.PRODUCTION: EnvironmentConfig(
        display_name="Production",
        description="Production server",
        base_url="https://api.securedesk.app",
        request_timeout_seconds=15,
        use_mock_services=False,
        logging_enabled=False,
        is_debug_only=False,
        requires_auth=True,
        feature_overrides={
            FeatureFlag.ENABLE_DEBUG_MENU: False,
            FeatureFlag.ENABLE_CHAOS_MODE: False,
            FeatureFlag.ENABLE_VERBOSE_LOGGING: False,
        },
    ),
}


def compute_effective_overrides(environment: AppEnvironment, debug_build: bool = True) -> Dict[FeatureFlag, bool]:
    """
    Return the flag values *environment* forces.

    Release builds cannot change debug-only flags, so those entries are
    left out.  The returned dict is a fresh copy.
    """
    return {
        flag: value
        for flag, value in environment.config.feature_overrides.items()
        if debug_build or not flag.is_debug_only
    }


class EnvironmentManager:
    """
    Owns the current environment selection.

    Parameters
    ----------
    store : KeyValueStore
        Holds the persisted selection under ENVIRONMENT_STORAGE_KEY.
    debug_build : bool
        Build mode.  Release builds only accept non-debug environments.
    flags : FeatureFlagManager, optional
        When given, every successful switch applies the new environment's
        overrides to it.

    Attributes
    ----------
    environment_changed : Signal
        Emitted as (previous, new) after every successful switch.
    """

    def __init__(
        self,
        store: KeyValueStore,
        debug_build: bool,
        flags: Optional[FeatureFlagManager] = None,
    ) -> None:
        self.store = store
        self.debug_build = debug_build
        self.flags = flags
        self.environment_changed = Signal("environment_changed")
        self.current: AppEnvironment = self._load()

        logger.info(
            "Environment: %s (%s, mock services: %s)",
            self.current.display_name,
            self.base_url,
            self.use_mock_services,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def can_change_environment(self) -> bool:
        return self.debug_build

    @property
    def available_environments(self) -> List[AppEnvironment]:
        return [env for env in AppEnvironment if self.debug_build or not env.is_debug_only]

    @property
    def base_url(self) -> str:
        return self.current.config.base_url

    @property
    def use_mock_services(self) -> bool:
        return self.current.config.use_mock_services

    @property
    def request_timeout(self) -> float:
        return self.current.config.request_timeout_seconds

    @property
    def logging_enabled(self) -> bool:
        return self.current.config.logging_enabled

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def switch_to(self, environment: AppEnvironment) -> bool:
        """
        Make *environment* current.

        Returns False, leaving the selection untouched, when a release
        build asks for a debug-only environment.
        """
        if environment.is_debug_only and not self.debug_build:
            logger.debug("Refused switch to debug-only environment %s in release build", environment.value)
            return False

        previous = self.current
        self.current = environment
        self.store.set(ENVIRONMENT_STORAGE_KEY, environment.value)

        if self.flags is not None:
            self.apply_feature_overrides(self.flags)

        logger.info("Environment switched: %s -> %s", previous.display_name, environment.display_name)
        self.environment_changed.emit(previous, environment)
        return True

    def reset_to_default(self) -> bool:
        return self.switch_to(AppEnvironment.default_for(self.debug_build))

    def apply_feature_overrides(self, flags: FeatureFlagManager) -> None:
        """Set every flag the current environment overrides on *flags*."""
        for flag, value in compute_effective_overrides(self.current, self.debug_build).items():
            flags.set_enabled(flag, value)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _load(self) -> AppEnvironment:
        default = AppEnvironment.default_for(self.debug_build)
        stored = self.store.get(ENVIRONMENT_STORAGE_KEY)
        if stored is None:
            return default
        try:
            environment = AppEnvironment.from_key(str(stored))
        except UnknownEnvironmentError:
            logger.warning("Stored environment %r is unknown; using %s", stored, default.value)
            return default
        if environment.is_debug_only and not self.debug_build:
            logger.warning("Stored environment %s is debug-only; using %s", environment.value, default.value)
            return default
        return environment
