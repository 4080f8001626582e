"""
feature_flags.py – Runtime behaviour switches.

The catalog of flags is fixed: FeatureFlag enumerates every switch and
FLAG_DEFINITIONS holds its static metadata (display name, description,
category, default, debug-only marker).

FeatureFlagManager resolves the effective value of a flag:

  1. In a release build a debug-only flag is always off.
  2. Otherwise an explicitly stored value wins.
  3. Otherwise the flag's compiled default applies (some defaults follow
     the build mode, e.g. the debug menu is on by default in debug builds).

Stored values live in a KeyValueStore under "feature_flag.<id>"; the manager
keeps a write-through cache of them.  Mutations that are not permitted in
the current build are ignored and reported through a False return value.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Tuple

from events import Signal
from storage import KeyValueStore

logger = logging.getLogger("SecureDesk")


class UnknownFlagError(ValueError):
    """
    Raised by FeatureFlag.from_key() for an identifier outside the catalog.

    Attributes
    ----------
    key : str
        The identifier that was looked up.
    """

    def __init__(self, key: str) -> None:
        super().__init__(f"Unknown feature flag: {key!r}")
        self.key: str = key


class FeatureFlagCategory(Enum):
    CORE = "core"
    SECURITY = "security"
    DEVELOPER = "developer"
    EXPERIMENTAL = "experimental"

    @property
    def display_name(self) -> str:
        return {
            "core": "Core Features",
            "security": "Security",
            "developer": "Developer",
            "experimental": "Experimental",
        }[self.value]

    @property
    def flags(self) -> List["FeatureFlag"]:
        return [flag for flag in FeatureFlag if flag.category is self]


@dataclass(frozen=True)
class FlagDefinition:
    """
    Static metadata of one flag.

    default_value applies to every build; default_on_debug turns the flag
    on by default in debug builds as well.
    """

    display_name: str
    description: str
    category: FeatureFlagCategory
    default_value: bool = False
    is_debug_only: bool = False
    default_on_debug: bool = False

    def default_for(self, debug_build: bool) -> bool:
        return self.default_value or (debug_build and self.default_on_debug)


class FeatureFlag(Enum):
    # Core
    ENABLE_OFFLINE_MODE = "enable_offline_mode"
    ENABLE_ADVANCED_SEARCH = "enable_advanced_search"
    ENABLE_KEYBOARD_SHORTCUTS = "enable_keyboard_shortcuts"
    # Security
    ENABLE_BIOMETRIC_AUTH = "enable_biometric_auth"
    ENABLE_AUTO_LOCK = "enable_auto_lock"
    # Developer
    ENABLE_DEBUG_MENU = "enable_debug_menu"
    ENABLE_CHAOS_MODE = "enable_chaos_mode"
    ENABLE_VERBOSE_LOGGING = "enable_verbose_logging"
    ENABLE_NETWORK_LOGGING = "enable_network_logging"
    # Experimental
    ENABLE_NEW_DASHBOARD = "enable_new_dashboard"

    @classmethod
    def from_key(cls, key: str) -> "FeatureFlag":
        """
        Look a flag up by identifier.

        Raises
        ------
        UnknownFlagError
            If *key* is not in the catalog.
        """
        try:
            return cls(key)
        except ValueError:
            raise UnknownFlagError(key) from None

    @property
    def definition(self) -> FlagDefinition:
        return FLAG_DEFINITIONS[self]

    @property
    def display_name(self) -> str:
        return self.definition.display_name

    @property
    def description(self) -> str:
        return self.definition.description

    @property
    def category(self) -> FeatureFlagCategory:
        return self.definition.category

    @property
    def is_debug_only(self) -> bool:
        return self.definition.is_debug_only

    @property
    def storage_key(self) -> str:
        return f"feature_flag.{self.value}"

    def default_value(self, debug_build: bool) -> bool:
        return self.definition.default_for(debug_build)


FLAG_DEFINITIONS: Dict[FeatureFlag, FlagDefinition] = {
    FeatureFlag.ENABLE_OFFLINE_MODE: FlagDefinition(
        "Offline Mode", "App works fully offline with cached data",
        FeatureFlagCategory.CORE, default_value=True,
    ),
    FeatureFlag.ENABLE_ADVANCED_SEARCH: FlagDefinition(
        "Advanced Search", "Full-text search with fuzzy matching and filters",
        FeatureFlagCategory.CORE, default_value=True,
    ),
    FeatureFlag.ENABLE_KEYBOARD_SHORTCUTS: FlagDefinition(
        "Keyboard Shortcuts", "Enable keyboard shortcuts for common actions",
        FeatureFlagCategory.CORE, default_value=True,
    ),
    FeatureFlag.ENABLE_BIOMETRIC_AUTH: FlagDefinition(
        "Biometric Authentication", "Use Touch ID or Face ID to unlock",
        FeatureFlagCategory.SECURITY,
    ),
    FeatureFlag.ENABLE_AUTO_LOCK: FlagDefinition(
        "Auto-Lock", "Lock app after period of inactivity",
        FeatureFlagCategory.SECURITY,
    ),
    FeatureFlag.ENABLE_DEBUG_MENU: FlagDefinition(
        "Debug Menu", "Show developer debug tools",
        FeatureFlagCategory.DEVELOPER, is_debug_only=True, default_on_debug=True,
    ),
    FeatureFlag.ENABLE_CHAOS_MODE: FlagDefinition(
        "Chaos Testing", "Simulate failures for testing",
        FeatureFlagCategory.DEVELOPER, is_debug_only=True,
    ),
    FeatureFlag.ENABLE_VERBOSE_LOGGING: FlagDefinition(
        "Verbose Logging", "Log detailed debug information",
        FeatureFlagCategory.DEVELOPER, is_debug_only=True, default_on_debug=True,
    ),
    FeatureFlag.ENABLE_NETWORK_LOGGING: FlagDefinition(
        "Network Logging", "Log all network requests and responses",
        FeatureFlagCategory.DEVELOPER, is_debug_only=True, default_on_debug=True,
    ),
    FeatureFlag.ENABLE_NEW_DASHBOARD: FlagDefinition(
        "New Dashboard", "Use the redesigned dashboard UI",
        FeatureFlagCategory.EXPERIMENTAL,
    ),
}


class FeatureFlagManager:
    """
    Resolves and mutates feature flags.

    Parameters
    ----------
    store : KeyValueStore
        Persisted overrides.  Read once on construction; written through on
        every mutation.
    debug_build : bool
        Build mode.  Release builds force debug-only flags off and refuse
        to change them.

    Attributes
    ----------
    flag_changed : Signal
        Emitted as (flag, enabled) after set_enabled() or reset_to_default().
    flags_reset : Signal
        Emitted with no arguments after reset_all_to_defaults().
    """

    def __init__(self, store: KeyValueStore, debug_build: bool) -> None:
        self.store = store
        self.debug_build = debug_build
        self.flag_changed = Signal("flag_changed")
        self.flags_reset = Signal("flags_reset")

        # Only explicitly stored values are cached; absent flags fall back
        # to their default.
        self._cache: Dict[FeatureFlag, bool] = {}
        self._load()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_enabled(self, flag: FeatureFlag) -> bool:
        if flag.is_debug_only and not self.debug_build:
            return False
        return self._cache.get(flag, flag.default_value(self.debug_build))

    def is_overridden(self, flag: FeatureFlag) -> bool:
        """Whether *flag* has an explicitly stored value."""
        return flag in self._cache

    def flags_in(self, category: FeatureFlagCategory) -> List[Tuple[FeatureFlag, bool]]:
        return [(flag, self.is_enabled(flag)) for flag in category.flags]

    @property
    def available_flags(self) -> List[FeatureFlag]:
        """Flags the current build may show and change."""
        return [flag for flag in FeatureFlag if self.debug_build or not flag.is_debug_only]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def set_enabled(self, flag: FeatureFlag, enabled: bool) -> bool:
        """
        Store *enabled* for *flag*.

        Returns True when the value changed.  Returns False without
        persisting or notifying when the flag is debug-only in a release
        build, or when *enabled* already is the effective value.
        """
        enabled = bool(enabled)
        if flag.is_debug_only and not self.debug_build:
            logger.debug("Ignored change of debug-only flag %s in release build", flag.value)
            return False

        previous = self.is_enabled(flag)
        if previous == enabled:
            return False

        self._cache[flag] = enabled
        self.store.set(flag.storage_key, enabled)
        self._log_change(flag, previous, enabled)
        self.flag_changed.emit(flag, enabled)
        return True

    def toggle(self, flag: FeatureFlag) -> bool:
        return self.set_enabled(flag, not self.is_enabled(flag))

    def reset_to_default(self, flag: FeatureFlag) -> None:
        """Drop the stored value of *flag*.  Always notifies."""
        self._cache.pop(flag, None)
        self.store.remove(flag.storage_key)
        self.flag_changed.emit(flag, self.is_enabled(flag))

    def reset_all_to_defaults(self) -> None:
        for flag in FeatureFlag:
            self._cache.pop(flag, None)
            self.store.remove(flag.storage_key)
        if self.is_verbose_logging_enabled:
            logger.debug("[FeatureFlags] All flags reset to defaults")
        self.flags_reset.emit()

    # ------------------------------------------------------------------
    # Convenience accessors
    # ------------------------------------------------------------------

    @property
    def is_offline_mode_enabled(self) -> bool:
        return self.is_enabled(FeatureFlag.ENABLE_OFFLINE_MODE)

    @property
    def is_advanced_search_enabled(self) -> bool:
        return self.is_enabled(FeatureFlag.ENABLE_ADVANCED_SEARCH)

    @property
    def is_debug_menu_enabled(self) -> bool:
        return self.is_enabled(FeatureFlag.ENABLE_DEBUG_MENU)

    @property
    def is_chaos_mode_enabled(self) -> bool:
        return self.is_enabled(FeatureFlag.ENABLE_CHAOS_MODE)

    @property
    def is_verbose_logging_enabled(self) -> bool:
        return self.is_enabled(FeatureFlag.ENABLE_VERBOSE_LOGGING)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _load(self) -> None:
        for flag in FeatureFlag:
            if flag.storage_key in self.store:
                value = self.store.get(flag.storage_key)
                if isinstance(value, bool):
                    self._cache[flag] = value
                else:
                    logger.warning("Ignoring non-boolean stored value %r for %s", value, flag.value)

    def _log_change(self, flag: FeatureFlag, previous: bool, enabled: bool) -> None:
        if self.is_verbose_logging_enabled or flag is FeatureFlag.ENABLE_VERBOSE_LOGGING:
            logger.debug("[FeatureFlags] %s: %s -> %s", flag.display_name, previous, enabled)
