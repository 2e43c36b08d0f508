"""Local durable scalar storage backed by a JSON file."""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional, Union

from ..exceptions import PreferencesStorageError

logger = logging.getLogger(__name__)

Scalar = Union[str, bool]


class PreferencesStore:
    """String and boolean values persisted in one JSON document.

    Every ``set`` rewrites the file through a temporary file and ``os.replace``
    so a crash never leaves a half-written document behind.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()
        self._cache: Optional[Dict[str, Scalar]] = None

    def _load(self) -> Dict[str, Scalar]:
        if self._cache is not None:
            return self._cache

        if not self.path.exists():
            self._cache = {}
            return self._cache

        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as e:
            raise PreferencesStorageError(f"Failed to read preferences from {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise PreferencesStorageError(f"Preferences file {self.path} does not hold an object")

        self._cache = data
        return self._cache

    def _write(self, data: Dict[str, Scalar]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".prefs-", suffix=".tmp", dir=self.path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle, indent=2, sort_keys=True)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise PreferencesStorageError(f"Failed to write preferences to {self.path}: {e}") from e

    def get(self, key: str) -> Optional[Scalar]:
        """Return the stored value or None when the key is absent.

        Raises:
            PreferencesStorageError: If the file cannot be read or parsed
        """
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: Scalar) -> None:
        """Persist a string or boolean value.

        Raises:
            PreferencesStorageError: If the file cannot be written
            TypeError: If the value is not a string or boolean
        """
        if not isinstance(value, (str, bool)):
            raise TypeError(f"Preferences hold str or bool values, got {type(value).__name__}")

        with self._lock:
            data = dict(self._load())
            data[key] = value
            self._write(data)
            self._cache = data
        logger.debug(f"Stored preference '{key}'")
