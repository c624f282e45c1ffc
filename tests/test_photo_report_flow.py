import asyncio

import pytest

from adapters.preference_store import PreferenceKeys
from entities.session import UserSession
from entities.submission import FlowState, SubmissionError
from services.photo_report_flow import PhotoReportFlow
from services.report_photo_service import ReportPhotoService, generate_report_id
from services.reports_refresh_service import ReportsRefreshService

IMAGE_URL = "https://cdn.example.com/photos/42.jpg"


class CountingRefresh:
    def __init__(self):
        self.devices = []

    def refresh(self, device_id):
        self.devices.append(device_id)


@pytest.fixture
def report_service(photo_report_repository):
    return ReportPhotoService(photo_report_repository)


def make_flow(report_service, refresh, timers, session, events, image_url=IMAGE_URL):
    return PhotoReportFlow(
        image_url=image_url,
        image_user_id="owner-9",
        session=session,
        report_service=report_service,
        refresh_service=refresh,
        timers=timers,
        on_feedback=lambda banner: events.append(("banner", banner.message)),
        on_dismiss=lambda: events.append("dismiss"),
        on_report_completed=lambda: events.append("completed"),
    )


def test_report_success_shows_banner_refreshes_and_dismisses(report_service, record_store, timers, session):
    events = []
    refresh = CountingRefresh()
    flow = make_flow(report_service, refresh, timers, session, events)
    flow.toggle_flag("spam")
    flow.toggle_flag("violent")

    result = asyncio.run(flow.report())

    assert result.ok
    assert refresh.devices == ["device-1"]
    assert events == [("banner", "Reported"), "completed"]
    stored = asyncio.run(record_store.get("PhotoReports", generate_report_id(IMAGE_URL, "user-1")))
    assert stored["reason"] == "Violence, Spam"

    timers.advance(1.5)
    assert events[-1] == "dismiss"
    assert flow.flow.state == FlowState.DISMISSED


def test_double_tap_reports_once(report_service, record_store, timers, session):
    record_store.delay_ms = 10
    refresh = CountingRefresh()
    flow = make_flow(report_service, refresh, timers, session, [])

    async def scenario():
        return await asyncio.gather(flow.report(), flow.report())

    first, second = asyncio.run(scenario())

    assert first.ok
    assert second.error == SubmissionError.ALREADY_IN_FLIGHT
    assert len(record_store.writes("PhotoReports")) == 1
    assert refresh.devices == ["device-1"]


def test_missing_image_url_is_invalid(report_service, record_store, timers, session):
    events = []
    refresh = CountingRefresh()
    flow = make_flow(report_service, refresh, timers, session, events, image_url="")

    result = asyncio.run(flow.report())

    assert result.error == SubmissionError.INVALID_REQUEST
    assert record_store.calls == []
    assert refresh.devices == []
    assert events == [("banner", "Report failed")]


def test_signed_out_reporter_is_invalid(report_service, record_store, timers):
    flow = make_flow(report_service, CountingRefresh(), timers, UserSession(), [])
    result = asyncio.run(flow.report())
    assert result.error == SubmissionError.INVALID_REQUEST
    assert record_store.calls == []


def test_remote_failure_shows_error_and_skips_refresh(report_service, record_store, timers, session):
    record_store.failing_collections.add("PhotoReports")
    events = []
    refresh = CountingRefresh()
    flow = make_flow(report_service, refresh, timers, session, events)

    result = asyncio.run(flow.report())

    assert result.error == SubmissionError.REMOTE_FAILURE
    assert events == [("banner", "Report failed")]
    assert refresh.devices == []
    timers.advance(5)
    assert "dismiss" not in events


def test_default_reason_when_nothing_checked(report_service, timers, session):
    flow = make_flow(report_service, CountingRefresh(), timers, session, [])
    assert flow.reason == "Inappropriate content"
    assert flow.build_request().payload == {"image_url": IMAGE_URL, "reason": "Inappropriate content"}


def test_refresh_reaches_preferences(report_service, user_repository, record_store, preferences, timers, session):
    record_store.seed("UserReports", "device-1", {"Reports": 2, "Reported_time": 1700000000000})
    refresh = ReportsRefreshService(user_repository, preferences)
    flow = make_flow(report_service, refresh, timers, session, [])

    async def scenario():
        result = await flow.report()
        await refresh.wait_idle()
        return result

    assert asyncio.run(scenario()).ok
    assert preferences.get(PreferenceKeys.TOTAL_REPORTS) == 2
