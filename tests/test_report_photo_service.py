import asyncio

import pytest

from common.exceptions import RecordStoreException, ValidationException
from entities.session import UserSession
from services.report_photo_service import ReportPhotoService, generate_report_id


@pytest.fixture
def service(photo_report_repository):
    return ReportPhotoService(photo_report_repository)


def test_report_id_is_deterministic():
    first = generate_report_id("https://cdn/p.jpg", "user-1")
    assert first == generate_report_id("https://cdn/p.jpg", "user-1")
    assert first != generate_report_id("https://cdn/p.jpg", "user-2")
    assert first.startswith("photo_report_")
    assert len(first) == len("photo_report_") + 16


def test_report_photo_writes_report_and_stats(service, record_store, session):
    ok = asyncio.run(service.report_photo("https://cdn/p.jpg", "owner-9", "Spam", reporter=session))

    assert ok is True
    report_id = generate_report_id("https://cdn/p.jpg", "user-1")
    report = asyncio.run(record_store.get("PhotoReports", report_id))
    assert report["reported_user_id"] == "owner-9"
    assert report["reporter_user_id"] == "user-1"
    assert report["reason"] == "Spam"
    assert report["status"] == "pending"
    assert report["device_id"] == "device-1"
    assert report["reporter_name"] == "Alex"
    assert report["app_version"] == "3.2.0"

    stats = asyncio.run(record_store.get("UserDevData", "device-1"))
    assert stats["photo_reports_made"] == 1
    assert "last_report_time" in stats
    assert record_store.writes("PhotoReports") == [("upsert:replace", "PhotoReports", report_id)]


def test_repeat_report_overwrites_one_document(service, record_store, session):
    async def scenario():
        await service.report_photo("https://cdn/p.jpg", "owner-9", "Spam", reporter=session)
        await service.report_photo("https://cdn/p.jpg", "owner-9", "Violence", reporter=session)

    asyncio.run(scenario())
    report_id = generate_report_id("https://cdn/p.jpg", "user-1")
    assert asyncio.run(record_store.get("PhotoReports", report_id))["reason"] == "Violence"
    assert asyncio.run(record_store.get("UserDevData", "device-1"))["photo_reports_made"] == 2


def test_stats_failure_does_not_fail_report(service, record_store, session):
    record_store.failing_collections.add("UserDevData")
    assert asyncio.run(service.report_photo("https://cdn/p.jpg", "owner-9", reporter=session)) is True


def test_report_write_failure_propagates(service, record_store, session):
    record_store.failing_collections.add("PhotoReports")
    with pytest.raises(RecordStoreException):
        asyncio.run(service.report_photo("https://cdn/p.jpg", "owner-9", reporter=session))
    assert record_store.writes("UserDevData") == []


def test_missing_device_skips_stats(service, record_store):
    reporter = UserSession(user_id="user-1")
    asyncio.run(service.report_photo("https://cdn/p.jpg", "owner-9", reporter=reporter))
    assert record_store.writes("UserDevData") == []


@pytest.mark.parametrize("image_url, subject, reporter", [
    ("", "owner-9", UserSession(user_id="user-1")),
    ("https://cdn/p.jpg", "", UserSession(user_id="user-1")),
    ("https://cdn/p.jpg", "owner-9", UserSession()),
    ("https://cdn/p.jpg", "owner-9", None),
])
def test_invalid_parameters_raise_before_writing(service, record_store, image_url, subject, reporter):
    with pytest.raises(ValidationException):
        asyncio.run(service.report_photo(image_url, subject, reporter=reporter))
    assert record_store.calls == []


def test_default_reason(service, record_store, session):
    asyncio.run(service.report_photo("https://cdn/p.jpg", "owner-9", reporter=session))
    report = asyncio.run(record_store.get("PhotoReports", generate_report_id("https://cdn/p.jpg", "user-1")))
    assert report["reason"] == "Inappropriate content"


def test_report_multiple_photos(service, session):
    urls = ["https://cdn/1.jpg", "https://cdn/2.jpg"]
    assert asyncio.run(service.report_multiple_photos(urls, "owner-9", reporter=session)) is True
    assert asyncio.run(service.report_multiple_photos([], "owner-9", reporter=session)) is False


def test_report_multiple_photos_partial_failure(service, session):
    urls = ["https://cdn/1.jpg", ""]
    assert asyncio.run(service.report_multiple_photos(urls, "owner-9", reporter=session)) is False


def test_get_report_status(service, session):
    async def scenario():
        before = await service.get_report_status("https://cdn/p.jpg", reporter=session)
        await service.report_photo("https://cdn/p.jpg", "owner-9", reporter=session)
        after = await service.get_report_status("https://cdn/p.jpg", reporter=session)
        return before, after

    assert asyncio.run(scenario()) == (False, True)
