"""
Core data types for the flight admin core
"""

from enum import Enum
from typing import Optional, List, Dict, Any
import datetime as dt
from pydantic import BaseModel, ConfigDict, Field, field_validator


class CalendarDirection(str, Enum):
    """Direction a calendar window extends from its start date"""
    FORWARD = "forward"
    BACKWARD = "backward"


class OutcomeKind(str, Enum):
    """Discriminator of a request lifecycle outcome"""
    SUCCEEDED = "succeeded"
    BUSINESS_FAILURE = "business_failure"
    FAILED_TERMINAL = "failed_terminal"
    CANCELLED = "cancelled"
    DUPLICATE_SUPPRESSED = "duplicate_suppressed"


# Record Models
class DatedRecord(BaseModel):
    """One flight or ticket, stamped with the instant it departs"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Record identifier")
    timestamp_iso: str = Field(..., description="ISO-8601 timestamp used for bucketing")
    payload: Any = Field(None, description="Opaque record body from the booking API")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value)


# Calendar Models
class CalendarWindow(BaseModel):
    """Contiguous span of calendar days materialised for display"""
    model_config = ConfigDict(frozen=True)

    start_date: dt.date = Field(..., description="First day (forward) or last day (backward)")
    length: int = Field(..., ge=1, description="Number of days in the window")
    direction: CalendarDirection = Field(default=CalendarDirection.FORWARD)


class CalendarDay(BaseModel):
    """Per-day summary shown in the date carousel"""
    model_config = ConfigDict(frozen=True)

    date: dt.date
    has_records: bool
    record_count: int = Field(..., ge=0)


class CalendarView(BaseModel):
    """View model for the booking calendar carousel and its day list"""
    model_config = ConfigDict(frozen=True)

    window: CalendarWindow
    days: List[CalendarDay]
    selected_date: dt.date
    selected_records: List[DatedRecord] = Field(default_factory=list)

    @property
    def total_records(self) -> int:
        return sum(day.record_count for day in self.days)


# Request Lifecycle Models
class CallRecord(BaseModel):
    """Historical admission entry kept for statistics"""
    model_config = ConfigDict(frozen=True)

    key: str
    started_at: float


class RequestStats(BaseModel):
    """Read-only request lifecycle telemetry"""
    active_calls: int = Field(..., ge=0, description="Calls currently in flight")
    total_calls: int = Field(..., ge=0, description="Calls admitted since start")
    recent_duplicates: int = Field(..., ge=0, description="Duplicate-suppressed calls in the stats window")
    recent_calls: int = Field(0, ge=0, description="Calls admitted in the stats window")


# Booking API Models
class ApiSuccess(BaseModel):
    """Decoded booking API response with ``success: true``"""
    success: bool = True
    message: Optional[str] = None
    data: Any = None
    pagination: Optional[Dict[str, Any]] = None


class ApiFailure(BaseModel):
    """Decoded booking API response with ``success: false``"""
    success: bool = False
    message: Optional[str] = None
    data: Any = None
    status_code: Optional[int] = None


class TicketQuery(BaseModel):
    """Filters accepted by the tickets endpoint"""
    timeframe: Optional[str] = Field(None, description="upcoming or past")
    page: Optional[int] = Field(None, ge=1)
    limit: Optional[int] = Field(None, ge=1)
    pnr: Optional[str] = None
    client_email: Optional[str] = Field(None, serialization_alias="clientEmail")
    sector: Optional[str] = None

    def to_params(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# Custom Exceptions
class FlightAdminError(Exception):
    """Base exception for flight admin core"""
    pass


class TransportError(FlightAdminError):
    """Network-level failure: connection error, timeout, or server unavailable"""
    def __init__(self, message: str, status_code: Optional[int] = None, error_code: str = "TRANSPORT_ERROR"):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)


class OperationCancelled(FlightAdminError):
    """Raised at a suspension point once the caller's cancellation token fired"""
    def __init__(self, reason: Optional[str] = None):
        self.reason = reason
        super().__init__(f"Operation cancelled: {reason}" if reason else "Operation cancelled")


class InvalidTimestampError(FlightAdminError, ValueError):
    """Exception for timestamps that are not ISO-8601"""
    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"Invalid ISO-8601 timestamp: {value!r}")


class InvalidWindowError(FlightAdminError, ValueError):
    """Exception for calendar window parameters out of range"""
    pass
