"""
Refreshes the locally cached reports aggregate after a report succeeds.
"""

import asyncio
from typing import Optional, Set

from adapters.preference_store import BasePreferenceStore, PreferenceKeys
from entities.report import ReportsSummary
from repositories.user_repository import UserRepository
from common.logging import get_logger, log_error

logger = get_logger("reports_refresh_service")


class ReportsRefreshService:
    """
    Reloads the device's reports summary into the preference store.

    `refresh` is fire-and-forget; `refresh_now` does the same work and can
    be awaited.
    """

    def __init__(self, user_repository: UserRepository, preferences: BasePreferenceStore):
        self.user_repository = user_repository
        self.preferences = preferences
        self._tasks: Set[asyncio.Task] = set()

    def refresh(self, device_id: Optional[str]) -> Optional[asyncio.Task]:
        if not device_id:
            logger.info("No device id available, skipping reports refresh")
            return None

        task = asyncio.get_running_loop().create_task(self.refresh_now(device_id))
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            log_error(error, context={"operation": "refresh_reports"})

    async def refresh_now(self, device_id: Optional[str]) -> Optional[ReportsSummary]:
        if not device_id:
            return None

        summary = await self.user_repository.get_reports_summary(device_id)
        if summary is None:
            return None

        if summary.total_reports is not None:
            self.preferences.set(PreferenceKeys.TOTAL_REPORTS, summary.total_reports)
        if summary.last_report_time is not None:
            self.preferences.set(PreferenceKeys.LAST_REPORT_TIME, summary.last_report_time)

        logger.info(
            f"Reports summary refreshed for device {device_id}",
            extra={"total_reports": summary.total_reports, "last_report_time": summary.last_report_time}
        )
        return summary

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def wait_idle(self) -> None:
        """Wait for outstanding refreshes to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
