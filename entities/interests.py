"""
Interest selection entity models.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator


class InterestProfileUpdate(BaseModel):
    """
    Fields merged into the user record when interests are saved.
    """
    interest_tags: List[str] = Field(default_factory=list)
    interest_sentence: Optional[str] = Field(None, description="Cleared on every interest save")

    @field_validator("interest_tags")
    @classmethod
    def validate_tags(cls, v):
        """Reject blank and duplicate labels while keeping order."""
        seen = []
        for tag in v:
            if not isinstance(tag, str) or not tag.strip():
                raise ValueError("Interest tags must be non-empty strings")
            if tag in seen:
                raise ValueError(f"Duplicate interest tag: {tag}")
            seen.append(tag)
        return seen

    def to_dict(self) -> Dict[str, Any]:
        return {
            "interest_tags": list(self.interest_tags),
            "interest_sentence": self.interest_sentence,
        }
