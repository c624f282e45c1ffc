"""
Photo report entity models and related classes.
"""

from typing import Any, Dict, List, Optional
from enum import Enum
from pydantic import BaseModel, Field


class ReportStatus(str, Enum):
    """Moderation status of a stored report."""
    PENDING = "pending"
    REVIEWED = "reviewed"
    DISMISSED = "dismissed"


class ReportReasonFlags(BaseModel):
    """
    The reason checkboxes of the report dialog.

    Field declaration order is the order reasons appear in the joined
    reason string.
    """
    sexual: bool = False
    violent: bool = False
    hateful: bool = False
    harmful: bool = False
    child_abuse: bool = False
    infringes: bool = False
    terrorism: bool = False
    spam: bool = False

    @classmethod
    def flag_names(cls) -> List[str]:
        return list(cls.model_fields.keys())

    def active_flags(self) -> List[str]:
        return [name for name in self.flag_names() if getattr(self, name)]


class PhotoReport(BaseModel):
    """
    Stored photo report document.
    """
    report_id: str = Field(..., description="Deterministic id derived from image URL and reporter")
    image_url: str
    reported_user_id: str
    reporter_user_id: str
    reason: str
    timestamp: int = Field(..., description="Epoch milliseconds")
    status: ReportStatus = ReportStatus.PENDING
    device_id: str = ""
    reporter_name: str = ""
    app_version: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PhotoReport":
        """Create a PhotoReport from a stored document."""
        data = dict(data)
        # The store keeps the document id in its own column
        if "report_id" not in data and "id" in data:
            data["report_id"] = data["id"]
        return cls(**{k: v for k, v in data.items() if k in cls.model_fields})

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the field set written to the store."""
        data = self.model_dump()
        data["status"] = self.status.value
        return data


class ReportsSummary(BaseModel):
    """Aggregate of reports received on a device's account; absent fields stay None."""
    total_reports: Optional[int] = None
    last_report_time: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReportsSummary":
        reports = data.get("Reports")
        return cls(
            total_reports=int(reports) if reports is not None else None,
            last_report_time=data.get("Reported_time"),
        )
