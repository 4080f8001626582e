"""
storage.py – Persisted key-value store for flags and environment selection.

This module contains the small string-keyed store that FeatureFlagManager
and EnvironmentManager persist their state into:

  - KeyValueStore keeps values in memory only.  Tests and previews use it
    directly.
  - JsonFileStore adds write-through persistence to a JSON file in the
    user-data directory.  Every set()/remove() rewrites the file.

Persistence is best-effort: a failed write is logged and the in-memory
value stays authoritative, so callers never see an I/O error.  Values are
plain JSON scalars (bool or str in practice).
"""

import json
import logging
import os
import tempfile
from typing import Dict, Iterator, Optional, Union

logger = logging.getLogger("SecureDesk")

StoreValue = Union[bool, str, int, float]


class KeyValueStore:
    """
    In-memory string-keyed store.

    Parameters
    ----------
    initial : dict, optional
        Values to seed the store with.
    """

    def __init__(self, initial: Optional[Dict[str, StoreValue]] = None) -> None:
        self._values: Dict[str, StoreValue] = dict(initial or {})

    def get(self, key: str, default: Optional[StoreValue] = None) -> Optional[StoreValue]:
        """Return the value stored under *key*, or *default*."""
        return self._values.get(key, default)

    def set(self, key: str, value: StoreValue) -> None:
        self._values[key] = value
        self._persist()

    def remove(self, key: str) -> None:
        """Delete *key*.  Removing a missing key is a no-op."""
        if key in self._values:
            del self._values[key]
            self._persist()

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._values))

    def __len__(self) -> int:
        return len(self._values)

    def snapshot(self) -> Dict[str, StoreValue]:
        """Return a copy of every stored value."""
        return dict(self._values)

    def _persist(self) -> None:
        """Hook for subclasses that keep a durable copy."""


class JsonFileStore(KeyValueStore):
    """
    Key-value store mirrored to a JSON file.

    Parameters
    ----------
    path : str
        Location of the JSON file.  Missing or unreadable files start the
        store empty.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(self._read())

    # ------------------------------------------------------------------
    # File I/O
    # ------------------------------------------------------------------

    def _read(self) -> Dict[str, StoreValue]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except Exception:
            logger.exception("Failed to read settings store %s; starting empty", self.path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Settings store %s is not a JSON object; starting empty", self.path)
            return {}
        return data

    def _persist(self) -> None:
        """
        Write the whole store atomically: dump to a temporary file in the
        same directory, then replace the target.
        """
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._values, fh, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
            tmp_path = None
        except Exception:
            logger.exception("Failed to write settings store %s", self.path)
        finally:
            if tmp_path and os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError:
                    logger.debug("Could not remove temporary file %s", tmp_path)
