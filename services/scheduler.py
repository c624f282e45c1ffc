"""
Named, cancellable timers owned by one flow instance.
"""

import asyncio
from typing import Callable, Dict, List, Optional

from common.logging import get_logger

logger = get_logger("flow_timers")


class FlowTimers:
    """
    Wraps `loop.call_later` handles by name.

    Scheduling a name that is already pending replaces the earlier timer.
    After `close()` nothing new is scheduled and all pending timers are gone.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._handles: Dict[str, asyncio.TimerHandle] = {}
        self._closed = False

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self._get_loop().time()

    def call_later(self, name: str, delay: float, callback: Callable[[], None]) -> bool:
        if self._closed:
            logger.warning(f"Timer '{name}' not scheduled: timers are closed")
            return False
        self.cancel(name)
        self._handles[name] = self._get_loop().call_later(delay, self._fire, name, callback)
        return True

    def _fire(self, name: str, callback: Callable[[], None]) -> None:
        self._handles.pop(name, None)
        callback()

    def cancel(self, name: str) -> bool:
        handle = self._handles.pop(name, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> int:
        names = list(self._handles)
        for name in names:
            self.cancel(name)
        return len(names)

    def close(self) -> None:
        cancelled = self.cancel_all()
        self._closed = True
        if cancelled:
            logger.debug(f"Cancelled {cancelled} pending timer(s)")

    def is_pending(self, name: str) -> bool:
        return name in self._handles

    def pending(self) -> List[str]:
        return list(self._handles)

    @property
    def closed(self) -> bool:
        return self._closed
