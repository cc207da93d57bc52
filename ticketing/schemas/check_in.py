# ticketing/schemas/check_in.py
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from ticketing.schemas.registration import Registration


class CheckInAction(str, Enum):
    CHECK_IN = "CHECK_IN"
    CHECK_IN_UNDO = "CHECK_IN_UNDO"
    BULK_CHECK_IN = "BULK_CHECK_IN"


class BulkItemStatus(str, Enum):
    CHECKED_IN = "checked_in"
    ALREADY_CHECKED_IN = "already_checked_in"
    NOT_FOUND = "not_found"
    ERROR = "error"


class CheckInRequest(BaseModel):
    """Check in by registration id, or by a scanned credential token."""
    registration_id: Optional[str] = None
    qr_data: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    force_check_in: bool = False

    @model_validator(mode="after")
    def require_target(self):
        if not self.registration_id and not self.qr_data:
            raise ValueError("Registration ID or QR data is required")
        return self


class VerifyRequest(BaseModel):
    qr_data: str = Field(..., min_length=1)
    notes: Optional[str] = Field(default=None, max_length=1000)


class UndoCheckInRequest(BaseModel):
    registration_id: str
    reason: Optional[str] = Field(default=None, max_length=1000)


class BulkCheckInRequest(BaseModel):
    registration_ids: List[str] = Field(..., min_length=1)
    notes: Optional[str] = Field(default=None, max_length=1000)


class CheckInResponse(BaseModel):
    success: bool = True
    already_checked_in: bool
    registration: Registration
    message: str


class UndoCheckInResponse(BaseModel):
    success: bool = True
    registration: Registration
    message: str


class BulkCheckInItemResult(BaseModel):
    registration_id: str
    success: bool
    status: BulkItemStatus
    already_checked_in: bool = False
    user_id: Optional[str] = None
    error: Optional[str] = None


class BulkCheckInSummary(BaseModel):
    total: int
    successful: int
    failed: int
    already_checked_in: int


class BulkCheckInResponse(BaseModel):
    success: bool = True
    summary: BulkCheckInSummary
    results: List[BulkCheckInItemResult]
    message: str


class AuditEntry(BaseModel):
    sequence: int
    registration_id: str
    action: CheckInAction
    actor_id: str
    actor_name: Optional[str] = None
    note: Optional[str] = None
    reason: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class TimelineBucket(BaseModel):
    time: str
    count: int


class RecentCheckIn(BaseModel):
    registration_id: str
    user_id: str
    checked_in_at: datetime
    checked_in_by: Optional[str] = None
    quantity: int


class CheckInStatistics(BaseModel):
    total_registrations: int
    total_tickets: int
    checked_in_count: int
    checked_in_tickets: int
    not_checked_in_count: int
    not_checked_in_tickets: int
    check_in_rate: int
    ticket_check_in_rate: int


class CheckInStats(BaseModel):
    event_id: str
    statistics: CheckInStatistics
    timeline: List[TimelineBucket]
    recent_check_ins: List[RecentCheckIn]
