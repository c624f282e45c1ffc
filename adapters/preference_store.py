"""
Local key-value preference storage.

Values are JSON-serializable and every set overwrites the key wholesale
(last write wins). Reads and writes are synchronous.
"""

import json
import os
import re
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from common.exceptions import PreferenceStoreException
from common.logging import get_logger

logger = get_logger("preference_store")


class PreferenceKeys:
    """Keys shared by the flows that persist local state."""
    INTEREST_TAGS = "interest_tags"
    INTEREST_SENTENCE = "interest_sentence"
    INTEREST_TIME = "interest_time"
    TOTAL_REPORTS = "total_reports"
    LAST_REPORT_TIME = "last_report_time"


class BasePreferenceStore(ABC):
    """Abstract synchronous preference store."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        pass

    @abstractmethod
    def remove(self, key: str) -> bool:
        pass

    @abstractmethod
    def snapshot(self) -> Dict[str, Any]:
        """Copy of all stored values."""
        pass


class InMemoryPreferenceStore(BasePreferenceStore):
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._values: Dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def remove(self, key: str) -> bool:
        return self._values.pop(key, None) is not None

    def snapshot(self) -> Dict[str, Any]:
        return dict(self._values)


class JsonFilePreferenceStore(BasePreferenceStore):
    """
    Preferences kept in one JSON file.

    The file is read once and rewritten in full on every change through a
    temporary file and `os.replace`, so readers never see a partial file.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._values: Optional[Dict[str, Any]] = None

    def _load(self) -> Dict[str, Any]:
        if self._values is not None:
            return self._values

        if not self.path.exists():
            self._values = {}
            return self._values

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read preferences from {self.path}: {e}")
            raise PreferenceStoreException(
                detail=f"Could not read preferences file {self.path.name}",
                context={"path": str(self.path)}
            ) from e

        if not isinstance(data, dict):
            raise PreferenceStoreException(
                detail=f"Preferences file {self.path.name} does not hold an object",
                context={"path": str(self.path)}
            )
        self._values = data
        return self._values

    def _flush(self, values: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(values, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            logger.error(f"Failed to write preferences to {self.path}: {e}")
            raise PreferenceStoreException(
                detail=f"Could not write preferences file {self.path.name}",
                context={"path": str(self.path)}
            ) from e

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        values = dict(self._load())
        values[key] = value
        self._flush(values)
        self._values = values

    def remove(self, key: str) -> bool:
        values = dict(self._load())
        if key not in values:
            return False
        del values[key]
        self._flush(values)
        self._values = values
        return True

    def snapshot(self) -> Dict[str, Any]:
        return dict(self._load())


_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def preference_store_for_device(base_dir: str, device_id: Optional[str]) -> BasePreferenceStore:
    """One preferences file per device; no device means nothing is kept."""
    if not device_id:
        return InMemoryPreferenceStore()
    filename = _UNSAFE_FILENAME_CHARS.sub("_", device_id) + ".json"
    return JsonFilePreferenceStore(os.path.join(base_dir, filename))
