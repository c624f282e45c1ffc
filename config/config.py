from pydantic_settings import BaseSettings
from pydantic import Field

class Settings(BaseSettings):
    # Supabase
    supabase_url: str = Field("", description="Supabase project URL")
    supabase_key: str = Field("", description="Supabase service key")
    record_store_backend: str = Field("supabase", description="'supabase' or 'memory'")

    # Collections (one Supabase table per collection)
    users_collection: str = Field("Users")
    photo_reports_collection: str = Field("PhotoReports")
    user_dev_data_collection: str = Field("UserDevData")
    reports_summary_collection: str = Field("UserReports")

    # Local preferences
    preferences_dir: str = Field("preferences/")

    # Flow timing and limits
    feedback_duration_seconds: float = Field(2.0, gt=0)
    dismiss_delay_seconds: float = Field(1.5, gt=0)
    max_interests: int = Field(5, ge=1)
    default_report_reason: str = Field("Inappropriate content")

    # Rate limiting
    rate_limit_enabled: bool = Field(True)
    report_rate_limit: str = Field("10/minute")

    # Logging
    log_level: str = Field("INFO")
    log_format: str = Field("structured", description="'structured' or 'simple'")

    class Config:
        env_file = ".env"
        extra = "ignore"

    def uses_memory_store(self) -> bool:
        return self.record_store_backend.lower() == "memory"

    def has_supabase_credentials(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

settings = Settings()

tags_metadata = [
    {
        "name": "Health",
        "description": "Health-check and diagnostics endpoints.",
    },
    {
        "name": "Reports",
        "description": "Photo reporting and report status.",
    },
    {
        "name": "Interests",
        "description": "Chat interest selection.",
    },
]

