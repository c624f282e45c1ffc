"""
User repository: interest profile writes and the per-device reports aggregate.
"""

from typing import Any, Dict, Optional

from repositories.base import BaseRecordStore, MergePolicy
from entities.interests import InterestProfileUpdate
from entities.report import ReportsSummary
from common.exceptions import RecordStoreException, ValidationException
from common.logging import get_logger

logger = get_logger("user_repository")


class UserRepository:
    """
    Repository for user-owned documents in the record store.
    """

    def __init__(
        self,
        record_store: BaseRecordStore,
        users_collection: str = "Users",
        reports_summary_collection: str = "UserReports"
    ):
        self.record_store = record_store
        self.users_collection = users_collection
        self.reports_summary_collection = reports_summary_collection

    async def update_interests(self, user_id: str, update: InterestProfileUpdate) -> Dict[str, Any]:
        """Merge the interest fields into the user record."""
        if not user_id:
            raise ValidationException(detail="user_id is required", field="user_id", value=user_id)

        try:
            stored = await self.record_store.upsert(
                self.users_collection,
                user_id,
                update.to_dict(),
                merge_policy=MergePolicy.MERGE
            )
        except RecordStoreException as e:
            logger.error(f"Failed to save interests for user {user_id}: {e.detail}")
            raise

        logger.info(f"Saved {len(update.interest_tags)} interests for user {user_id}")
        return stored

    async def get_reports_summary(self, device_id: str) -> Optional[ReportsSummary]:
        """Read the reports aggregate for a device, None when absent."""
        if not device_id:
            raise ValidationException(detail="device_id is required", field="device_id", value=device_id)

        doc = await self.record_store.get(self.reports_summary_collection, device_id)
        if doc is None:
            logger.debug(f"No reports summary for device {device_id}")
            return None
        return ReportsSummary.from_dict(doc)
