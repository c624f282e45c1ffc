"""
Photo report repository over the record store.
"""

from typing import Any, Dict, Optional

from repositories.base import BaseRecordStore, Increment, MergePolicy, SERVER_TIMESTAMP
from entities.report import PhotoReport
from common.exceptions import RecordStoreException, ValidationException
from common.logging import get_logger

logger = get_logger("photo_report_repository")


class PhotoReportRepository:
    """
    Repository for PhotoReport documents and reporter statistics.
    """

    def __init__(
        self,
        record_store: BaseRecordStore,
        reports_collection: str = "PhotoReports",
        dev_data_collection: str = "UserDevData"
    ):
        self.record_store = record_store
        self.reports_collection = reports_collection
        self.dev_data_collection = dev_data_collection

    async def save(self, report: PhotoReport) -> PhotoReport:
        """Write the report, replacing any earlier report with the same id."""
        try:
            stored = await self.record_store.upsert(
                self.reports_collection,
                report.report_id,
                report.to_dict(),
                merge_policy=MergePolicy.REPLACE
            )
        except RecordStoreException as e:
            logger.error(f"Failed to save photo report {report.report_id}: {e.detail}")
            raise

        logger.debug(f"Saved photo report {report.report_id} against user {report.reported_user_id}")
        return PhotoReport.from_dict(stored)

    async def get_by_id(self, report_id: str) -> Optional[PhotoReport]:
        if not report_id:
            raise ValidationException(detail="report_id is required", field="report_id")
        doc = await self.record_store.get(self.reports_collection, report_id)
        return PhotoReport.from_dict(doc) if doc is not None else None

    async def exists(self, report_id: str) -> bool:
        if not report_id:
            raise ValidationException(detail="report_id is required", field="report_id")
        return await self.record_store.exists(self.reports_collection, report_id)

    async def increment_reporter_stats(self, device_id: str) -> Dict[str, Any]:
        """Bump the reporter's report counter and last report time."""
        return await self.record_store.upsert(
            self.dev_data_collection,
            device_id,
            {
                "photo_reports_made": Increment(1),
                "last_report_time": SERVER_TIMESTAMP,
            },
            merge_policy=MergePolicy.MERGE
        )
