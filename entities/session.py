"""
Caller identity passed explicitly into services and flows.
"""

from typing import Optional
from pydantic import BaseModel


class UserSession(BaseModel):
    """The signed-in user and the device they act from."""
    user_id: str = ""
    device_id: Optional[str] = None
    user_name: str = ""
    app_version: str = ""

    class Config:
        frozen = True

    def is_signed_in(self) -> bool:
        return bool(self.user_id and self.user_id.strip())
