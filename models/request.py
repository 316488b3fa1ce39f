"""
Scheduling request and result models for the Therapy Office Allocator.

The 'Demand' side (what the caller asks for) and the engine's answer,
including the append-only evaluation log used for auditing decisions.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, ConfigDict

from .office_id import standardize_office_id
from scheduler.timeutils import as_utc, session_end


class SessionType(str, Enum):
    IN_PERSON = "in-person"
    TELEHEALTH = "telehealth"
    GROUP = "group"
    FAMILY = "family"


def normalize_session_type(value) -> str:
    """Lowercase and trim; unknown values pass through so they can get the fallback priority."""
    if isinstance(value, Enum):
        value = value.value
    text = str(value or "").strip().lower()
    return text or SessionType.IN_PERSON.value


class SessionRequirements(BaseModel):
    """Hard requirements attached to a request."""
    accessibility: bool = Field(default=False)
    room_preference: Optional[str] = Field(default=None, description="Exact office the client asked for")
    special_features: List[str] = Field(default_factory=list)

    @field_validator("room_preference")
    @classmethod
    def standardize_room(cls, v):
        return standardize_office_id(v) if v else None


class SchedulingRequest(BaseModel):
    """
    A session that needs an office.
    Also used to describe existing bookings inside a booking index.
    """
    client_id: str
    clinician_id: str
    start_time: datetime = Field(description="ISO-8601 instant; naive values are clinic-local")
    duration_minutes: int = Field(default=60, ge=1, le=480)
    session_type: str = Field(default=SessionType.IN_PERSON.value)
    client_age: Optional[int] = Field(default=None, ge=0)
    requirements: Optional[SessionRequirements] = Field(default=None)

    appointment_id: Optional[str] = Field(
        default=None,
        description="Set when this mirrors a stored appointment (lets the caller apply relocations)"
    )

    @field_validator("session_type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        return normalize_session_type(v)

    @property
    def start(self) -> datetime:
        return as_utc(self.start_time)

    @property
    def end(self) -> datetime:
        return session_end(self.start, self.duration_minutes)

    @property
    def needs_accessibility(self) -> bool:
        return bool(self.requirements and self.requirements.accessibility)

    @property
    def required_features(self) -> List[str]:
        return list(self.requirements.special_features) if self.requirements else []

    @property
    def room_preference(self) -> Optional[str]:
        return self.requirements.room_preference if self.requirements else None

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "client_id": "CL-1001",
            "clinician_id": "C1",
            "start_time": "2025-03-14T14:00:00Z",
            "duration_minutes": 60,
            "session_type": "in-person",
            "client_age": 34,
            "requirements": {"accessibility": True, "special_features": []}
        }
    })


class ResolutionType(str, Enum):
    RELOCATE = "relocate"
    CANNOT_RELOCATE = "cannot-relocate"


class ConflictResolution(BaseModel):
    type: ResolutionType
    reason: str
    new_office_id: Optional[str] = Field(default=None, description="Target office when relocating")


class SchedulingConflict(BaseModel):
    """An existing booking that overlaps the request in a given office."""
    office_id: str
    existing_booking: SchedulingRequest
    resolution: ConflictResolution

    @property
    def can_relocate(self) -> bool:
        return self.resolution.type == ResolutionType.RELOCATE


class EvaluationEntry(BaseModel):
    """One line of the assignment audit trail."""
    stage: str = Field(description="e.g. 'filter', 'score', 'rule', 'select'")
    detail: str
    office_id: Optional[str] = Field(default=None)
    points: int = Field(default=0)

    def __str__(self) -> str:
        prefix = f"[{self.stage}]"
        if self.office_id:
            prefix += f" {self.office_id}:"
        return f"{prefix} {self.detail}"


class SchedulingErrorType(str, Enum):
    NOT_FOUND = "not_found"
    NO_CANDIDATE = "no_candidate"
    INTERNAL = "internal"


class SchedulingResult(BaseModel):
    """Tagged result returned by the assignment engine. It never raises for expected conditions."""
    success: bool
    office_id: Optional[str] = Field(default=None)
    conflicts: List[SchedulingConflict] = Field(default_factory=list)
    notes: str = Field(default="")

    error: Optional[str] = Field(default=None)
    error_type: Optional[SchedulingErrorType] = Field(default=None)
    retryable: bool = Field(default=False)

    evaluation_log: List[EvaluationEntry] = Field(default_factory=list)

    @property
    def has_unresolved_conflicts(self) -> bool:
        return any(not c.can_relocate for c in self.conflicts)

    def log_lines(self) -> List[str]:
        return [str(entry) for entry in self.evaluation_log]
