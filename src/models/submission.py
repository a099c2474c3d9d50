"""Submission outcome models."""

from enum import Enum
from typing import Literal, Optional
from pydantic import BaseModel, Field


class ErrorCategory(str, Enum):
    """User-facing failure categories of the listing workflows."""
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    ADDRESS_RESOLUTION = "address_resolution"
    UPLOAD = "upload"
    PERSISTENCE = "persistence"


class Notification(BaseModel):
    """Transient message shown to the user."""
    level: Literal["success", "error", "warning"] = "error"
    message: str


class SubmissionResult(BaseModel):
    """Outcome of a listing workflow."""
    ok: bool = Field(..., description="True when the listing was written")
    listing_id: Optional[str] = None
    redirect_to: Optional[str] = Field(None, description="Location the caller should navigate to")
    notification: Optional[Notification] = None
    error_category: Optional[ErrorCategory] = None
    warnings: list[Notification] = Field(default_factory=list)


class UploadProgress(BaseModel):
    """Progress snapshot of one image upload."""
    path: str
    state: Literal["running", "success", "error"]
    bytes_transferred: int = 0
    total_bytes: int = 0

    @property
    def percent(self) -> float:
        if not self.total_bytes:
            return 100.0 if self.state == "success" else 0.0
        return self.bytes_transferred / self.total_bytes * 100
