"""
Schedule data models for the Therapy Office Allocator.

This module defines the committed side of the system:
stored appointments and the daily operational summary built from them.
"""

from typing import Dict, List, Optional
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict, field_validator
from datetime import date as date_type, datetime

from .office_id import standardize_office_id
from .request import SchedulingRequest, SessionRequirements, normalize_session_type
from scheduler.timeutils import as_utc, local_date


class AppointmentStatus(str, Enum):
    """Status of the stored appointment. Records are never deleted in place."""
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


class AppointmentSource(str, Enum):
    MANUAL = "manual"
    INTAKEQ = "intakeq"


class AppointmentRecord(BaseModel):
    """
    A stored appointment.
    Start/end may be missing when the source row was malformed; such records
    are skipped by the daily aggregator instead of aborting it.
    """

    # --- Identity ---
    appointment_id: str = Field(default="")
    client_id: str = Field(default="")
    client_name: str = Field(default="")
    clinician_id: str = Field(default="")
    clinician_name: str = Field(default="")

    # --- Placement ---
    office_id: str = Field(description="Assigned office (standardized)")
    suggested_office_id: Optional[str] = Field(default=None)
    session_type: str = Field(default="in-person")
    start_time: Optional[datetime] = Field(default=None)
    end_time: Optional[datetime] = Field(default=None)

    # --- Lifecycle ---
    status: AppointmentStatus = Field(default=AppointmentStatus.SCHEDULED)
    source: AppointmentSource = Field(default=AppointmentSource.MANUAL)
    last_updated: Optional[datetime] = Field(default=None)
    requirements: SessionRequirements = Field(default_factory=SessionRequirements)
    notes: str = Field(default="")

    @field_validator("office_id")
    @classmethod
    def standardize_id(cls, v):
        return standardize_office_id(v)

    @field_validator("session_type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        return normalize_session_type(v)

    @property
    def is_well_formed(self) -> bool:
        """Has an id and a usable, forward-running time range."""
        if not (self.appointment_id and self.start_time and self.end_time):
            return False
        return as_utc(self.end_time) > as_utc(self.start_time)

    @property
    def is_active(self) -> bool:
        return self.status != AppointmentStatus.CANCELLED

    @property
    def duration_minutes(self) -> int:
        if not (self.start_time and self.end_time):
            return 0
        return int((as_utc(self.end_time) - as_utc(self.start_time)).total_seconds() // 60)

    @property
    def local_date(self) -> Optional[date_type]:
        return local_date(self.start_time) if self.start_time else None

    def to_booking(self) -> SchedulingRequest:
        """View this appointment as an existing booking for conflict checks."""
        if not self.is_well_formed:
            raise ValueError(f"Appointment {self.appointment_id or '<no id>'} has no usable time range")
        return SchedulingRequest(
            client_id=self.client_id,
            clinician_id=self.clinician_id,
            start_time=self.start_time,
            duration_minutes=max(1, self.duration_minutes),
            session_type=self.session_type,
            requirements=self.requirements,
            appointment_id=self.appointment_id,
        )

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "appointment_id": "APT-2041",
            "client_id": "CL-1001",
            "client_name": "Jordan Smith",
            "clinician_id": "C1",
            "clinician_name": "Dr. Rivera",
            "office_id": "B-1",
            "session_type": "in-person",
            "start_time": "2025-03-14T14:00:00Z",
            "end_time": "2025-03-14T15:00:00Z",
            "status": "scheduled",
            "source": "manual"
        }
    })


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


SEVERITY_RANK = {Severity.HIGH: 0, Severity.MEDIUM: 1, Severity.LOW: 2}


class ConflictType(str, Enum):
    DOUBLE_BOOKING = "double-booking"
    ACCESSIBILITY = "accessibility"
    CAPACITY = "capacity"


class AlertType(str, Enum):
    ACCESSIBILITY = "accessibility"
    CAPACITY = "capacity"
    SCHEDULING = "scheduling"
    SYSTEM = "system"


class ScheduleConflict(BaseModel):
    type: ConflictType
    description: str
    severity: Severity
    office_id: Optional[str] = Field(default=None)
    clinician_id: Optional[str] = Field(default=None)
    appointment_ids: List[str] = Field(default_factory=list)


class ScheduleAlert(BaseModel):
    type: AlertType
    message: str
    severity: Severity


class OfficeUtilization(BaseModel):
    total_slots: int = Field(ge=1)
    booked_slots: int = Field(ge=0)
    special_notes: List[str] = Field(default_factory=list)

    @property
    def utilization(self) -> float:
        return self.booked_slots / self.total_slots


class DailyScheduleSummary(BaseModel):
    """Everything the morning report needs for one clinic day."""
    date: date_type
    appointments: List[AppointmentRecord] = Field(default_factory=list)
    conflicts: List[ScheduleConflict] = Field(default_factory=list)
    office_utilization: Dict[str, OfficeUtilization] = Field(default_factory=dict)
    alerts: List[ScheduleAlert] = Field(default_factory=list)
    skipped_records: List[str] = Field(
        default_factory=list,
        description="Appointments dropped because their data was unusable"
    )

    @property
    def high_severity_conflicts(self) -> List[ScheduleConflict]:
        return [c for c in self.conflicts if c.severity == Severity.HIGH]
