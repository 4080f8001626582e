"""
config.py – Application configuration and constants.

This module defines AppConfig, a central container for:
  - All application-wide constants (application name, version, store keys).
  - The build mode (debug or release) that every manager receives explicitly.
  - The user configuration (search limits, history size, auto-lock timeout)
    stored as a JSON file on disk and exposed through a simple dict-like
    interface.
  - Helper utilities shared across modules: OS-appropriate data-directory
    resolution and logger setup.

No other application module is imported here except search (for the
SearchConfiguration value type), so config.py sits at the bottom of the
dependency graph and can be safely imported by any other module.
"""

import json
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

import appdirs

from search import SearchConfiguration

# ---------------------------------------------------------------------------
# Application-level constants – these never change at runtime.
# ---------------------------------------------------------------------------

APP_NAME = "SecureDesk"

APP_VERSION = "1.0.0"

# Environment variables read at start-up.
ENV_DATA_DIR = "SECUREDESK_DATA_DIR"
ENV_BUILD = "SECUREDESK_BUILD"

# ---------------------------------------------------------------------------
# Default values written to config.json on first run.
# ---------------------------------------------------------------------------
DEFAULT_CONFIG: dict = {
    # Queries shorter than this (after trimming) leave the list untouched.
    "search_min_query_length": 2,
    # Upper bound on the number of ranked search results.
    "search_max_results": 100,
    # Subsequence matching against titles when nothing else matched.
    "search_fuzzy_matching": True,
    # Number of state transitions kept for the debug history.
    "state_history_size": 50,
    # Seconds of inactivity before the auto-lock policy locks the app.
    "auto_lock_timeout_seconds": 300,
    # Level of the rotating file handler.
    "log_level": "DEBUG",
}


def detect_debug_build() -> bool:
    """
    Return True for a debug build.

    SECUREDESK_BUILD=debug|release wins when set.  Otherwise a frozen
    bundle (PyInstaller sets sys.frozen) is a release build and running
    from source is a debug build.
    """
    override = os.getenv(ENV_BUILD, "").strip().lower()
    if override in ("debug", "release"):
        return override == "debug"
    return not getattr(sys, "frozen", False)


class AppConfig:
    """
    Manages application configuration, file paths and logging.

    On instantiation the class:
      1. Resolves the OS-appropriate user-data directory.
      2. Derives all relevant file paths from that directory.
      3. Sets up a rotating log handler.
      4. Loads (or creates) the JSON configuration file.

    Parameters
    ----------
    data_dir : str, optional
        Directory for all persistent data.  Defaults to SECUREDESK_DATA_DIR
        or the appdirs user-data directory.
    debug_build : bool, optional
        Build mode.  Defaults to detect_debug_build().

    Attributes
    ----------
    user_data_dir : str
        Absolute path of the directory that stores all persistent data.
    config_path : str
        JSON configuration file.
    store_path : str
        JSON key-value store holding flag overrides and the selected
        environment.
    log_path : str
        Rotating application log.
    debug_build : bool
        True for debug builds; gates debug-only flags and environments.
    data : dict
        The currently loaded configuration values (mutable at runtime).
    logger : logging.Logger
        Shared Python logger for the whole application.
    """

    def __init__(self, data_dir: Optional[str] = None, debug_build: Optional[bool] = None) -> None:
        # --- Resolve (and create) the persistent data directory ---
        self.user_data_dir: str = self._get_user_data_dir(data_dir)

        # --- Derive all file paths from the data directory ---
        self.config_path: str = os.path.join(self.user_data_dir, "config.json")
        self.store_path:  str = os.path.join(self.user_data_dir, "settings.json")
        self.log_path:    str = os.path.join(self.user_data_dir, "app.log")

        self.debug_build: bool = detect_debug_build() if debug_build is None else debug_build

        # --- Configure the rotating log handler ---
        self.logger: logging.Logger = self._setup_logger()

        # --- Load or create the JSON configuration ---
        self.data: dict = self._load()
        self._apply_log_level()

        self.logger.info(
            "AppConfig initialised; data dir: %s, build: %s",
            self.user_data_dir,
            "debug" if self.debug_build else "release",
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _get_user_data_dir(data_dir: Optional[str]) -> str:
        """
        Return (and create if necessary) the data directory.

        An explicit argument wins, then SECUREDESK_DATA_DIR, then the
        OS-standard location reported by appdirs.
        """
        path = data_dir or os.getenv(ENV_DATA_DIR) or appdirs.user_data_dir(APP_NAME)
        os.makedirs(path, exist_ok=True)
        return path

    def _setup_logger(self) -> logging.Logger:
        """
        Create and configure a rotating file logger for the whole application.

        The log rotates at 2 MB and keeps up to 3 backup files.
        A handler for the same file is never attached twice.
        """
        logger = logging.getLogger(APP_NAME)
        logger.setLevel(logging.DEBUG)

        target = os.path.abspath(self.log_path)
        for handler in logger.handlers:
            if getattr(handler, "baseFilename", None) == target:
                return logger

        handler = RotatingFileHandler(
            self.log_path,
            maxBytes=2_000_000,
            backupCount=3,
            encoding="utf-8",
        )
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s: %(message)s")
        )
        logger.addHandler(handler)
        return logger

    def _apply_log_level(self) -> None:
        level = logging.getLevelName(str(self.data.get("log_level", "DEBUG")).upper())
        if isinstance(level, int):
            self.logger.setLevel(level)
        else:
            self.logger.warning("Unknown log level %r; keeping DEBUG", self.data.get("log_level"))

    def _load(self) -> dict:
        """
        Read config.json from disk.

        Missing keys are back-filled from DEFAULT_CONFIG so that new
        settings introduced in later versions are always present.

        Returns the loaded (or default) configuration dictionary.
        """
        try:
            if os.path.exists(self.config_path):
                with open(self.config_path, "r", encoding="utf-8") as fh:
                    cfg = json.load(fh)
                if not isinstance(cfg, dict):
                    raise ValueError("config.json does not contain an object")
                for key, value in DEFAULT_CONFIG.items():
                    cfg.setdefault(key, value)
                return cfg
        except Exception:
            self.logger.exception("Failed to load config; using defaults")

        return dict(DEFAULT_CONFIG)

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def save(self) -> None:
        """Persist the current configuration dictionary to disk as JSON."""
        try:
            with open(self.config_path, "w", encoding="utf-8") as fh:
                json.dump(self.data, fh, indent=2)
            self.logger.info("Config saved")
        except Exception:
            self.logger.exception("Failed to save config")

    def get(self, key: str, default=None):
        """Return a configuration value by key, or *default* if not found."""
        return self.data.get(key, default)

    def set(self, key: str, value) -> None:
        """
        Update a configuration value in memory.

        Call save() afterwards to persist the change to disk.
        """
        self.data[key] = value

    def search_configuration(self) -> SearchConfiguration:
        """Build the search engine settings from the loaded configuration."""
        return SearchConfiguration(
            min_query_length=int(self.get("search_min_query_length", 2)),
            max_results=int(self.get("search_max_results", 100)),
            enable_fuzzy_matching=bool(self.get("search_fuzzy_matching", True)),
        )
