"""
Dependency injection setup for repositories and services.
"""

from functools import lru_cache
from typing import Annotated, Optional
from fastapi import Depends, Header
from supabase import create_client

from adapters.preference_store import BasePreferenceStore, preference_store_for_device
from entities.session import UserSession
from repositories.base import BaseRecordStore, SupabaseRecordStore
from repositories.memory_store import InMemoryRecordStore
from repositories.photo_report_repository import PhotoReportRepository
from repositories.user_repository import UserRepository
from services.report_photo_service import ReportPhotoService, create_report_photo_service
from services.reports_refresh_service import ReportsRefreshService
from common.logging import get_logger
from config.config import settings

logger = get_logger("dependencies")


@lru_cache()
def get_supabase_client():
    """Get singleton Supabase client."""
    return create_client(settings.supabase_url, settings.supabase_key)


@lru_cache()
def get_record_store() -> BaseRecordStore:
    """Get the configured record store backend."""
    if settings.uses_memory_store():
        logger.info("Using in-memory record store")
        return InMemoryRecordStore()
    if not settings.has_supabase_credentials():
        logger.warning("Supabase credentials missing, falling back to in-memory record store")
        return InMemoryRecordStore()
    return SupabaseRecordStore(get_supabase_client())


@lru_cache()
def get_user_repository() -> UserRepository:
    """Get singleton User repository."""
    return UserRepository(
        get_record_store(),
        users_collection=settings.users_collection,
        reports_summary_collection=settings.reports_summary_collection,
    )


@lru_cache()
def get_photo_report_repository() -> PhotoReportRepository:
    """Get singleton PhotoReport repository."""
    return PhotoReportRepository(
        get_record_store(),
        reports_collection=settings.photo_reports_collection,
        dev_data_collection=settings.user_dev_data_collection,
    )


@lru_cache()
def get_report_photo_service() -> ReportPhotoService:
    """Get singleton ReportPhotoService with dependencies."""
    return create_report_photo_service(get_photo_report_repository())


@lru_cache(maxsize=256)
def _device_preferences(device_id: str) -> BasePreferenceStore:
    return preference_store_for_device(settings.preferences_dir, device_id)


@lru_cache(maxsize=256)
def _device_refresh_service(device_id: str) -> ReportsRefreshService:
    return ReportsRefreshService(get_user_repository(), _device_preferences(device_id))


def preferences_for_device(device_id: Optional[str]) -> BasePreferenceStore:
    """Shared store per device; callers without a device get a fresh throwaway one."""
    if not device_id:
        return preference_store_for_device(settings.preferences_dir, None)
    return _device_preferences(device_id)


def get_user_session(
    x_user_id: str = Header("", alias="X-User-Id"),
    x_device_id: Optional[str] = Header(None, alias="X-Device-Id"),
    x_user_name: str = Header("", alias="X-User-Name"),
    x_app_version: str = Header("", alias="X-App-Version"),
) -> UserSession:
    """Caller identity from request headers."""
    return UserSession(
        user_id=x_user_id.strip(),
        device_id=x_device_id or None,
        user_name=x_user_name,
        app_version=x_app_version,
    )


def get_preference_store(session: Annotated[UserSession, Depends(get_user_session)]) -> BasePreferenceStore:
    """Preferences of the calling device."""
    return preferences_for_device(session.device_id)


def get_reports_refresh_service(
    session: Annotated[UserSession, Depends(get_user_session)]
) -> ReportsRefreshService:
    """Refresh service writing into the calling device's preferences."""
    if not session.device_id:
        return ReportsRefreshService(get_user_repository(), preferences_for_device(None))
    return _device_refresh_service(session.device_id)


# Dependency annotations for FastAPI
SupabaseClient = Annotated[object, Depends(get_supabase_client)]
RecordStoreDep = Annotated[BaseRecordStore, Depends(get_record_store)]
UserRepositoryDep = Annotated[UserRepository, Depends(get_user_repository)]
PhotoReportRepositoryDep = Annotated[PhotoReportRepository, Depends(get_photo_report_repository)]
ReportPhotoServiceDep = Annotated[ReportPhotoService, Depends(get_report_photo_service)]
ReportsRefreshServiceDep = Annotated[ReportsRefreshService, Depends(get_reports_refresh_service)]
PreferenceStoreDep = Annotated[BasePreferenceStore, Depends(get_preference_store)]
UserSessionDep = Annotated[UserSession, Depends(get_user_session)]
