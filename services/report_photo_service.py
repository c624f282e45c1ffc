"""
Photo reporting service using the Repository pattern.
"""

import asyncio
import hashlib
import time
from typing import List, Optional

from entities.report import PhotoReport, ReportStatus
from entities.session import UserSession
from repositories.photo_report_repository import PhotoReportRepository
from common.exceptions import RecordStoreException, ValidationException
from common.logging import get_logger, log_business_event, log_performance
from services.report_reasons import DEFAULT_REPORT_REASON

logger = get_logger("report_photo_service")


def generate_report_id(image_url: str, reporter_user_id: str) -> str:
    """Same photo and reporter always map to the same report document."""
    digest = hashlib.sha256(f"{image_url}_{reporter_user_id}".encode("utf-8")).hexdigest()
    return f"photo_report_{digest[:16]}"


class ReportPhotoService:
    """
    Writes photo reports and keeps the reporter's statistics.
    """

    def __init__(self, report_repository: PhotoReportRepository):
        self.report_repository = report_repository

    def _require_reporter(self, reporter: Optional[UserSession]) -> UserSession:
        if reporter is None or not reporter.is_signed_in():
            raise ValidationException(
                detail="A signed-in reporter is required",
                field="reporter_user_id",
                value=reporter.user_id if reporter else None
            )
        return reporter

    async def report_photo(
        self,
        image_url: str,
        subject_user_id: str,
        reason: str = DEFAULT_REPORT_REASON,
        reporter: Optional[UserSession] = None
    ) -> bool:
        """
        Report one photo.

        Returns True once the report is stored. Invalid arguments raise
        ValidationException and a failed report write raises
        RecordStoreException. Statistics are updated best-effort afterwards.
        """
        logger.info(f"Reporting photo {image_url} of user {subject_user_id}")

        if not image_url or not subject_user_id:
            raise ValidationException(
                detail="image_url and subject_user_id are required",
                field="image_url" if not image_url else "subject_user_id"
            )
        reporter = self._require_reporter(reporter)

        start_time = time.time()
        report = PhotoReport(
            report_id=generate_report_id(image_url, reporter.user_id),
            image_url=image_url,
            reported_user_id=subject_user_id,
            reporter_user_id=reporter.user_id,
            reason=reason or DEFAULT_REPORT_REASON,
            timestamp=int(time.time() * 1000),
            status=ReportStatus.PENDING,
            device_id=reporter.device_id or "",
            reporter_name=reporter.user_name,
            app_version=reporter.app_version,
        )

        stored = await self.report_repository.save(report)
        await self._update_report_statistics(reporter)

        log_business_event(
            event_type="PHOTO_REPORTED",
            entity_type="photo_report",
            entity_id=stored.report_id,
            action="create",
            user_id=reporter.user_id,
            details={"reported_user_id": subject_user_id, "reason": stored.reason}
        )
        log_performance(
            operation="report_photo",
            duration_ms=(time.time() - start_time) * 1000,
            success=True
        )
        return True

    async def report_multiple_photos(
        self,
        image_urls: List[str],
        subject_user_id: str,
        reason: str = DEFAULT_REPORT_REASON,
        reporter: Optional[UserSession] = None
    ) -> bool:
        """Report several photos concurrently; True only if every one succeeded."""
        if not image_urls:
            logger.info("No images to report")
            return False

        outcomes = await asyncio.gather(
            *(self.report_photo(url, subject_user_id, reason, reporter) for url in image_urls),
            return_exceptions=True
        )

        succeeded = 0
        for url, outcome in zip(image_urls, outcomes):
            if outcome is True:
                succeeded += 1
            elif isinstance(outcome, BaseException):
                logger.warning(f"Reporting {url} failed: {getattr(outcome, 'detail', outcome)}")

        logger.info(f"Reported {succeeded}/{len(image_urls)} photos of user {subject_user_id}")
        return succeeded == len(image_urls)

    async def get_report_status(self, image_url: str, reporter: Optional[UserSession] = None) -> bool:
        """Whether `reporter` has already reported `image_url`."""
        if not image_url:
            raise ValidationException(detail="image_url is required", field="image_url")
        reporter = self._require_reporter(reporter)
        exists = await self.report_repository.exists(generate_report_id(image_url, reporter.user_id))
        logger.debug(f"Report status for {image_url}: {exists}")
        return exists

    async def _update_report_statistics(self, reporter: UserSession) -> None:
        if not reporter.device_id:
            logger.info("No device id available, skipping report statistics")
            return
        try:
            await self.report_repository.increment_reporter_stats(reporter.device_id)
        except RecordStoreException as e:
            # Statistics never fail the report itself
            logger.warning(f"Failed to update report statistics for device {reporter.device_id}: {e.detail}")


def create_report_photo_service(report_repository: PhotoReportRepository) -> ReportPhotoService:
    """Factory function to create ReportPhotoService instance."""
    return ReportPhotoService(report_repository)
