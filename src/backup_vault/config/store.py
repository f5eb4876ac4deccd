"""Key-value settings store backed by a JSON file.

The selection model treats the store as opaque: it only calls ``get`` and
``set``. Every ``set`` is written to disk immediately, atomically, and under a
file lock so two processes working on the same workspace do not interleave.
"""

import contextlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

from filelock import FileLock

logger = logging.getLogger(__name__)


class SettingsStore(Protocol):
    """Interface the core expects from a settings backend."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class JsonSettingsStore:
    """Persistent key-value settings in a single JSON document."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()
        self._lock_path = self.path.with_name(self.path.name + ".lock")
        self._data: dict[str, Any] = {}
        self._load()

    def __repr__(self) -> str:
        return f"JsonSettingsStore({str(self.path)!r})"

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Store a value and persist the whole document."""
        self._data[key] = value
        self._save()

    def _load(self) -> None:
        """Load settings from disk; a missing or corrupt file starts empty."""
        if not self.path.exists():
            return
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not load settings from %s: %s", self.path, e)
            return
        if isinstance(data, dict):
            self._data = data
        else:
            logger.warning("Ignoring settings file %s: not a JSON object", self.path)

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with FileLock(self._lock_path):
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", dir=self.path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(self._data, f, indent=2, ensure_ascii=False)
                    f.write("\n")
                os.replace(tmp_name, self.path)
            except BaseException:
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(tmp_name)
                raise
        logger.debug("Saved settings to %s", self.path)
