from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Any, Dict, Optional, List
from datetime import datetime

from wedding_rsvp.utils.flags import is_affirmative_flag

class CamelModel(BaseModel):
    """Accepts and emits camelCase keys (householdName, isChild, ...)"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

# ---------------------------------------------------------------------------
# Import requests
# ---------------------------------------------------------------------------

class RawRecordBatch(BaseModel):
    # Header-keyed rows exactly as parsed: {"Name": ..., "Household": ..., ...}
    records: List[Dict[str, Any]]

class TypedGuestRecord(CamelModel):
    # Name/household are optional here so that incomplete rows can be counted as dropped
    name: Optional[str] = None
    household: Optional[str] = None
    email: Optional[str] = None
    is_child: bool = False
    is_teenager: bool = False
    dietary_notes: Optional[str] = None

    @field_validator("is_child", "is_teenager", mode="before")
    @classmethod
    def parse_flag(cls, value: Any) -> bool:
        return is_affirmative_flag(value)

class TypedGuestBatch(BaseModel):
    guests: List[TypedGuestRecord]

# ---------------------------------------------------------------------------
# Import responses
# ---------------------------------------------------------------------------

class ProcessingResult(CamelModel):
    name: str
    household_name: str
    success: bool
    error: Optional[str] = None

class ProcessedCounts(BaseModel):
    households: int = 0
    guests: int = 0

class SkippedCounts(BaseModel):
    duplicates: int = 0
    invalid: int = 0

class BatchImportResponse(CamelModel):
    success: bool = True
    processed: ProcessedCounts
    skipped: SkippedCounts
    results: List[ProcessingResult] = []
    errors: Optional[List[str]] = None
    processing_time: str

class TextGuestImportResponse(BatchImportResponse):
    message: str
    warning: Optional[str] = None

class ErrorResponse(BaseModel):
    error: str
    message: Optional[str] = None
    stack: Optional[str] = None

# ---------------------------------------------------------------------------
# Households & guests
# ---------------------------------------------------------------------------

class GuestResponse(CamelModel):
    id: int
    household_id: int
    name: str
    email: Optional[str] = None
    is_child: bool
    is_teenager: bool
    dietary_notes: Optional[str] = None
    is_attending: Optional[bool] = None
    has_responded: bool
    responded_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

class HouseholdResponse(CamelModel):
    id: int
    name: str
    code: str
    created_at: datetime
    guests: List[GuestResponse] = []

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

class NewGuest(CamelModel):
    name: str = Field(min_length=1)
    email: Optional[str] = None
    is_child: bool = False
    is_teenager: bool = False
    dietary_notes: Optional[str] = None

class HouseholdCreate(CamelModel):
    household_name: str = Field(min_length=1)
    guests: List[NewGuest] = []

class DeleteResponse(BaseModel):
    success: bool
    message: str

class StatisticsResponse(CamelModel):
    total_households: int
    total_guests: int
    responded_guests: int
    attending_guests: int
    not_attending_guests: int
    awaiting_response: int
    children: int
    teenagers: int

# ---------------------------------------------------------------------------
# Guest-facing RSVP
# ---------------------------------------------------------------------------

class RsvpLookupRequest(BaseModel):
    code: str
