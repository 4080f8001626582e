"""
app.py – Composition root.

This module contains AppContainer, which creates every core component in
dependency order and passes references explicitly; no component reaches
for a global instance.

Dependency order
----------------
AppConfig
 └─ JsonFileStore                (flag overrides + environment selection)
     ├─ FeatureFlagManager
     └─ EnvironmentManager        (bound to the flag manager)
NetworkMonitor
AppStateManager                   (follows the network monitor)
AutoLockMonitor                   (locks through the state manager)
ChaosManager                      (failure toggles, gated by the chaos flag)
SearchEngine                      (built on demand from config + flags)
"""

import logging
from typing import List, Optional

from chaos import ChaosManager
from config import AppConfig
from environment import EnvironmentManager
from feature_flags import FeatureFlagManager
from models import Item, preview_items
from network import NetworkMonitor
from search import SearchConfiguration, SearchEngine
from security import AutoLockMonitor
from state_manager import AppStateManager
from storage import JsonFileStore, KeyValueStore

logger = logging.getLogger("SecureDesk")


class AppContainer:
    """
    Owns one instance of every core component for the process lifetime.

    Parameters
    ----------
    config : AppConfig
        Build mode, file paths and user settings.
    store : KeyValueStore, optional
        Flag/environment store.  Defaults to a JsonFileStore at
        config.store_path.
    network_monitor : NetworkMonitor, optional
        Connectivity signal.  A fresh, connected monitor by default.
    """

    def __init__(
        self,
        config: AppConfig,
        store: Optional[KeyValueStore] = None,
        network_monitor: Optional[NetworkMonitor] = None,
    ) -> None:
        # ----------------------------------------------------------------
        # 1. Persistence and configuration-driven managers.
        # ----------------------------------------------------------------
        self.config = config
        self.store = store if store is not None else JsonFileStore(config.store_path)
        self.flags = FeatureFlagManager(self.store, config.debug_build)
        self.environment = EnvironmentManager(self.store, config.debug_build, flags=self.flags)

        # The stored environment may predate flag changes made since; make
        # its overrides hold again.
        self.environment.apply_feature_overrides(self.flags)

        # ----------------------------------------------------------------
        # 2. Lifecycle state.
        # ----------------------------------------------------------------
        verbose = lambda: self.flags.is_verbose_logging_enabled  # noqa: E731
        self.network_monitor = network_monitor or NetworkMonitor(verbose=verbose)
        self.state_manager = AppStateManager(
            network_monitor=self.network_monitor,
            verbose=verbose,
            history_size=int(config.get("state_history_size", 50)),
        )
        self.auto_lock = AutoLockMonitor(
            self.state_manager,
            self.flags,
            timeout_seconds=float(config.get("auto_lock_timeout_seconds", 300)),
        )
        self.chaos = ChaosManager(self.flags)

        logger.info(
            "SecureDesk core started; environment: %s, mock services: %s",
            self.environment.current.display_name,
            self.environment.use_mock_services,
        )

    def search_engine(self) -> SearchEngine:
        """
        Build a SearchEngine for the current settings.

        Fuzzy matching needs both the configuration switch and the
        enable_advanced_search flag.
        """
        base = self.config.search_configuration()
        return SearchEngine(
            SearchConfiguration(
                min_query_length=base.min_query_length,
                max_results=base.max_results,
                enable_fuzzy_matching=base.enable_fuzzy_matching and self.flags.is_advanced_search_enabled,
            )
        )

    def items(self) -> List[Item]:
        """
        Items available to search.

        Only the mock environment has a local item source; remote item
        services are outside this package, so other environments yield
        an empty list.
        Raises ChaosError while chaos mode simulates corrupt data.
        """
        if self.environment.use_mock_services:
            self.chaos.apply_data_chaos()
            return preview_items()
        logger.info("No local item source for environment %s", self.environment.current.value)
        return []

    def shutdown(self) -> None:
        """Detach the listeners wired up in __init__."""
        self.chaos.detach()
        self.auto_lock.detach()
        self.state_manager.detach()
