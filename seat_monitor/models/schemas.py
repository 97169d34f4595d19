"""
Pydantic models for data structures and schemas.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

LogType = Literal["info", "success", "warning", "error"]

DEFAULT_CHECK_URL = "https://rds3.northsouth.edu/"
DEFAULT_INTERVAL_SECONDS = 30


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def normalize_field(value: Optional[str]) -> str:
    """Trim and upper-case a user supplied code or section."""
    return (value or "").strip().upper()


class TrackedItem(BaseModel):
    """A course (and optional section) the user wants seat alerts for."""

    key: str = Field(..., description="Unique identity: 'CODE|SECTION'")
    code: str = Field(..., description="Course code, e.g. 'CSE115'")
    section: str = Field(default="", description="Section, empty if any section")

    @classmethod
    def create(cls, code: str, section: Optional[str] = None) -> "TrackedItem":
        code = normalize_field(code)
        section = normalize_field(section)
        return cls(key=f"{code}|{section}", code=code, section=section)

    @property
    def label(self) -> str:
        return f"{self.code} ({self.section})" if self.section else self.code


class CourseInput(BaseModel):
    """Raw course as submitted through the command channel."""

    code: str = Field(..., min_length=1)
    section: Optional[str] = None


class CheckResult(BaseModel):
    """Seat availability for one tracked course from one check."""

    key: str
    label: str
    available: bool = Field(
        ..., description="True when the parsed seat count is above zero"
    )
    seats: Optional[int] = Field(
        default=None, description="Parsed seat count, None when not found"
    )
    note: str = ""


class LogEntry(BaseModel):
    """One entry of the activity log shown to the user."""

    timestamp: str = Field(default_factory=utc_now_iso)
    message: str
    type: LogType = "info"


class ExtractionResponse(BaseModel):
    """Response of a rendering context to a 'checkSeats' message."""

    results: Optional[list[CheckResult]] = None
    error: Optional[str] = None
    url: Optional[str] = None


class MonitorState(BaseModel):
    """Process-wide persisted monitoring state."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    courses: list[TrackedItem] = Field(default_factory=list)
    interval_seconds: int = Field(default=DEFAULT_INTERVAL_SECONDS, ge=1)
    monitoring: bool = False
    logs: list[LogEntry] = Field(default_factory=list)
    last_availability: dict[str, bool] = Field(default_factory=dict)
    last_check: Optional[str] = None
    theme: str = "light"
    check_url: str = DEFAULT_CHECK_URL

    def storage_dict(self) -> dict:
        """Serialize under the persisted (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True)


class NotificationResult(BaseModel):
    """Result of alert delivery to one recipient."""

    success: bool = Field(
        description="Whether the notification was sent successfully"
    )
    message_sid: Optional[str] = Field(
        default=None,
        description="Twilio message SID if successful",
    )
    recipient: str = Field(description="Recipient address")
    error: Optional[str] = Field(
        default=None,
        description="Error message if delivery failed",
    )
    sent_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the notification was sent",
    )


class CheckOutcome(str, Enum):
    """How a single check cycle ended."""

    SKIPPED_BUSY = "skipped_busy"
    NO_COURSES = "no_courses"
    FAILED = "failed"
    COMPLETED = "completed"
