from fastapi import APIRouter, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from dependencies import (
    ReportPhotoServiceDep,
    ReportsRefreshServiceDep,
    UserSessionDep,
)
from common.exceptions import InvalidSubmissionRequestException
from common.logging import get_logger
from common.responses import create_success_response
from config.config import settings
from services.photo_report_flow import PhotoReportFlow
from services.report_reasons import DEFAULT_REPORT_REASON, REASON_DELIMITER, REPORT_REASONS, build_reason
from services.schemas import (
    BatchPhotoReportRequest,
    BatchReportResponse,
    FlowOutcomeResponse,
    PhotoReportRequest,
    ReportReasonItem,
    ReportReasonsResponse,
    ReportStatusResponse,
)
from services.submission_flow import raise_for_result

logger = get_logger("api.reports")

router = APIRouter(tags=["Reports"])
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


@router.get("/reports/reasons",
    summary="List report reasons",
    description="Reason flags in display order with their canonical strings",
    response_model=ReportReasonsResponse,
)
def list_report_reasons():
    return ReportReasonsResponse(
        reasons=[ReportReasonItem(flag=flag, reason=reason) for flag, reason in REPORT_REASONS],
        default_reason=DEFAULT_REPORT_REASON,
        delimiter=REASON_DELIMITER,
    )


@router.post("/reports/photos",
    summary="Report a photo",
    description="Run the photo report flow once: validate, write the report, refresh the reports summary",
)
@limiter.limit(settings.report_rate_limit)
async def report_photo(
    request: Request,
    body: PhotoReportRequest,
    session: UserSessionDep,
    service: ReportPhotoServiceDep,
    refresh_service: ReportsRefreshServiceDep,
):
    async with PhotoReportFlow(
        image_url=body.image_url,
        image_user_id=body.image_user_id,
        session=session,
        report_service=service,
        refresh_service=refresh_service,
    ) as flow:
        for name in body.reasons:
            flow.toggle_flag(name)
        result = await flow.report()
        banner = flow.flow.banner
        dismiss_delay = flow.flow.dismiss_delay

    raise_for_result(result, "photo_report", banner)
    outcome = FlowOutcomeResponse.from_result(
        result,
        banner,
        dismiss_after_seconds=dismiss_delay,
        image_url=body.image_url,
        reason=flow.reason,
    )
    return create_success_response(outcome.model_dump(), status_code=201)


@router.post("/reports/photos/batch",
    summary="Report several photos",
    description="Report every photo with the same reasons; all_reported is true only if each one succeeded",
    response_model=BatchReportResponse,
)
async def report_photos_batch(
    body: BatchPhotoReportRequest,
    session: UserSessionDep,
    service: ReportPhotoServiceDep,
):
    if not session.is_signed_in():
        raise InvalidSubmissionRequestException(detail="X-User-Id header is required", field="X-User-Id")

    reason = build_reason({name: True for name in body.reasons})
    all_reported = await service.report_multiple_photos(
        body.image_urls,
        body.image_user_id,
        reason,
        reporter=session,
    )
    return BatchReportResponse(all_reported=all_reported, count=len(body.image_urls))


@router.get("/reports/photos/status",
    summary="Report status of a photo",
    description="Whether the caller has already reported the photo",
    response_model=ReportStatusResponse,
)
async def get_report_status(
    session: UserSessionDep,
    service: ReportPhotoServiceDep,
    image_url: str = Query(..., min_length=1, description="URL of the photo"),
):
    reported = await service.get_report_status(image_url, reporter=session)
    return ReportStatusResponse(image_url=image_url, reported=reported)
