import os
import sys
from pathlib import Path

# -------------------------------------------------------------------
# Make repo root importable BEFORE importing any project packages.
# -------------------------------------------------------------------
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("RECORD_STORE_BACKEND", "memory")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_FORMAT", "simple")

import pytest  # noqa: E402

from adapters.preference_store import InMemoryPreferenceStore  # noqa: E402
from entities.session import UserSession  # noqa: E402
from repositories.memory_store import InMemoryRecordStore  # noqa: E402
from repositories.photo_report_repository import PhotoReportRepository  # noqa: E402
from repositories.user_repository import UserRepository  # noqa: E402


class ManualTimers:
    """
    Stand-in for FlowTimers with a clock that only moves on `advance`.
    """

    def __init__(self):
        self.clock = 0.0
        self.closed = False
        self._timers = {}
        self._seq = 0

    def now(self) -> float:
        return self.clock

    def call_later(self, name, delay, callback) -> bool:
        if self.closed:
            return False
        self._seq += 1
        self._timers[name] = (self.clock + delay, self._seq, callback)
        return True

    def cancel(self, name) -> bool:
        return self._timers.pop(name, None) is not None

    def cancel_all(self) -> int:
        count = len(self._timers)
        self._timers.clear()
        return count

    def close(self) -> None:
        self.cancel_all()
        self.closed = True

    def is_pending(self, name) -> bool:
        return name in self._timers

    def pending(self):
        return list(self._timers)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due timers in deadline order."""
        target = self.clock + seconds
        while True:
            due = [
                (when, seq, name)
                for name, (when, seq, _) in self._timers.items()
                if when <= target
            ]
            if not due:
                break
            when, _, name = min(due)
            _, _, callback = self._timers.pop(name)
            self.clock = when
            callback()
        self.clock = target


@pytest.fixture
def timers() -> ManualTimers:
    return ManualTimers()


@pytest.fixture
def record_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def preferences() -> InMemoryPreferenceStore:
    return InMemoryPreferenceStore()


@pytest.fixture
def session() -> UserSession:
    return UserSession(user_id="user-1", device_id="device-1", user_name="Alex", app_version="3.2.0")


@pytest.fixture
def user_repository(record_store) -> UserRepository:
    return UserRepository(record_store)


@pytest.fixture
def photo_report_repository(record_store) -> PhotoReportRepository:
    return PhotoReportRepository(record_store)
