"""
Scheduling Service.

Glue between the pure engines and the outside world. Persistence,
notifications and auditing are collaborators passed in at construction,
described here as Protocols so any store (spreadsheet, database, memory)
can be plugged in.

Lifecycle of a new appointment:
1. Load catalog snapshots and the day's bookings.
2. Ask the OfficeAssignmentEngine for an office.
3. Apply relocations, or refuse, or save; every outcome is audited.
"""

import json
import logging
from datetime import date as date_type, datetime
from enum import Enum
from typing import List, Optional, Protocol, Tuple, Any

import pytz
from pydantic import BaseModel, Field

from models import (
    Office,
    Clinician,
    AssignmentRule,
    ClientPreference,
    AppointmentRecord,
    AppointmentStatus,
    AppointmentSource,
    DailyScheduleSummary,
    SchedulingRequest,
    SessionRequirements,
    SchedulingResult,
    SchedulingConflict
)
from .daily import DailyAggregator
from .engine import OfficeAssignmentEngine
from .errors import AppointmentNotFoundError
from .state import BookingIndex
from .timeutils import local_date

logger = logging.getLogger(__name__)

SYSTEM_USER = "SYSTEM"


# --- Collaborator Protocols ---

class OfficeStore(Protocol):
    def list_offices(self) -> List[Office]: ...
    def list_clinicians(self) -> List[Clinician]: ...
    def list_assignment_rules(self) -> List[AssignmentRule]: ...
    def get_client_preference(self, client_id: str) -> Optional[ClientPreference]: ...
    def list_client_preferences(self) -> List[ClientPreference]: ...


class BookingStore(Protocol):
    def get_appointments_for_date(self, day: date_type) -> List[AppointmentRecord]: ...
    def get_appointments_for_office(self, office_id: str, day: date_type) -> List[AppointmentRecord]: ...
    def get_appointment(self, appointment_id: str) -> Optional[AppointmentRecord]: ...
    def save_appointment(self, record: AppointmentRecord) -> None: ...
    def update_appointment(self, record: AppointmentRecord) -> None: ...


class NotificationSink(Protocol):
    def send(self, payload: Any) -> None: ...


class AuditSink(Protocol):
    def record(self, event: "AuditEvent") -> None: ...


# --- Audit Events ---

class AuditEventType(str, Enum):
    CONFIG_UPDATED = "CONFIG_UPDATED"
    RULE_CREATED = "RULE_CREATED"
    RULE_UPDATED = "RULE_UPDATED"
    CLIENT_PREFERENCES_UPDATED = "CLIENT_PREFERENCES_UPDATED"
    CLIENT_OFFICE_ASSIGNED = "CLIENT_OFFICE_ASSIGNED"
    APPOINTMENT_CREATED = "APPOINTMENT_CREATED"
    APPOINTMENT_UPDATED = "APPOINTMENT_UPDATED"
    APPOINTMENT_CANCELLED = "APPOINTMENT_CANCELLED"
    APPOINTMENT_DELETED = "APPOINTMENT_DELETED"
    SYSTEM_ERROR = "SYSTEM_ERROR"
    WEBHOOK_RECEIVED = "WEBHOOK_RECEIVED"
    INTEGRATION_UPDATED = "INTEGRATION_UPDATED"
    DAILY_ASSIGNMENTS_UPDATED = "DAILY_ASSIGNMENTS_UPDATED"
    CRITICAL_ERROR = "CRITICAL_ERROR"
    SCHEDULING_CONFLICT = "SCHEDULING_CONFLICT"


class AuditEvent(BaseModel):
    """One row of the audit log."""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(pytz.UTC))
    event_type: AuditEventType
    description: str
    user: str = Field(default=SYSTEM_USER)
    previous_value: Optional[str] = Field(default=None)
    new_value: Optional[str] = Field(default=None)
    system_notes: Optional[str] = Field(default=None)


def _dump(model: BaseModel) -> str:
    return model.model_dump_json()


class SchedulingService:
    """
    Orchestrates assignment, persistence and reporting.
    Holds no scheduling state of its own; every call reads fresh snapshots.
    """

    def __init__(
        self,
        office_store: OfficeStore,
        booking_store: BookingStore,
        audit: AuditSink,
        notifier: Optional[NotificationSink] = None,
        engine: Optional[OfficeAssignmentEngine] = None,
        aggregator: Optional[DailyAggregator] = None
    ):
        self.office_store = office_store
        self.booking_store = booking_store
        self.audit = audit
        self.notifier = notifier
        self.engine = engine or OfficeAssignmentEngine()
        self.aggregator = aggregator or DailyAggregator()

    def schedule_appointment(
        self,
        request: SchedulingRequest,
        appointment_id: str,
        client_name: str = "",
        clinician_name: str = "",
        source: AppointmentSource = AppointmentSource.MANUAL
    ) -> Tuple[SchedulingResult, Optional[AppointmentRecord]]:
        """
        Assign an office and persist the appointment.
        Returns the engine result and the saved record (None when nothing was saved).
        """
        day = local_date(request.start)
        offices = self.office_store.list_offices()
        index = BookingIndex.from_appointments(self.booking_store.get_appointments_for_date(day))
        logger.debug(f"Booking index for {day}: {index.get_statistics()}")

        result = self.engine.find_optimal_office(
            request,
            offices,
            self.office_store.list_assignment_rules(),
            self.office_store.list_clinicians(),
            self.office_store.get_client_preference(request.client_id),
            index.as_mapping()
        )

        # 1. Engine failure
        if not result.success:
            logger.warning(f"Could not schedule {appointment_id}: {result.error}")
            self._audit(
                AuditEventType.SYSTEM_ERROR,
                f"Failed to assign office for appointment {appointment_id}: {result.error}",
                system_notes=json.dumps({"error_type": result.error_type.value if result.error_type else None,
                                         "log": result.log_lines()})
            )
            return result, None

        # 2. Unresolvable conflicts
        if result.has_unresolved_conflicts:
            logger.warning(f"Appointment {appointment_id} conflicts in office {result.office_id}")
            self._audit(
                AuditEventType.SCHEDULING_CONFLICT,
                f"Appointment {appointment_id} conflicts with existing bookings in {result.office_id}",
                system_notes=json.dumps([c.resolution.reason for c in result.conflicts])
            )
            return result, None

        # 3. Relocations
        for conflict in result.conflicts:
            self._apply_relocation(conflict, appointment_id)

        # 4. Save
        record = AppointmentRecord(
            appointment_id=appointment_id,
            client_id=request.client_id,
            client_name=client_name or request.client_id,
            clinician_id=request.clinician_id,
            clinician_name=clinician_name or request.clinician_id,
            office_id=result.office_id,
            suggested_office_id=result.office_id,
            session_type=request.session_type,
            start_time=request.start,
            end_time=request.end,
            source=source,
            last_updated=datetime.now(pytz.UTC),
            requirements=request.requirements or SessionRequirements(),
            notes=result.notes
        )
        self.booking_store.save_appointment(record)
        self._audit(
            AuditEventType.APPOINTMENT_CREATED,
            f"Added appointment {appointment_id}",
            new_value=_dump(record)
        )
        logger.info(f"Scheduled {appointment_id} in office {record.office_id}")
        return result, record

    def _apply_relocation(self, conflict: SchedulingConflict, displaced_by: str) -> None:
        booking_id = conflict.existing_booking.appointment_id
        existing = self.booking_store.get_appointment(booking_id) if booking_id else None
        if existing is None:
            # Booking came from a caller mapping with no stored counterpart
            logger.warning(f"Relocation target {booking_id!r} not found in booking store")
            return

        moved = existing.model_copy(update={
            "office_id": conflict.resolution.new_office_id,
            "last_updated": datetime.now(pytz.UTC),
        })
        self.booking_store.update_appointment(moved)
        self._audit(
            AuditEventType.APPOINTMENT_UPDATED,
            f"Relocated appointment {booking_id} from {existing.office_id} to {moved.office_id} "
            f"for {displaced_by}",
            previous_value=_dump(existing),
            new_value=_dump(moved),
            system_notes=conflict.resolution.reason
        )
        logger.info(f"Relocated {booking_id} to {moved.office_id}")

    def update_appointment(self, record: AppointmentRecord) -> AppointmentRecord:
        existing = self.booking_store.get_appointment(record.appointment_id)
        if existing is None:
            raise AppointmentNotFoundError(record.appointment_id)

        updated = record.model_copy(update={"last_updated": datetime.now(pytz.UTC)})
        self.booking_store.update_appointment(updated)
        self._audit(
            AuditEventType.APPOINTMENT_UPDATED,
            f"Updated appointment {record.appointment_id}",
            previous_value=_dump(existing),
            new_value=_dump(updated)
        )
        return updated

    def cancel_appointment(self, appointment_id: str, reason: str = "") -> AppointmentRecord:
        existing = self.booking_store.get_appointment(appointment_id)
        if existing is None:
            raise AppointmentNotFoundError(appointment_id)

        cancelled = existing.model_copy(update={
            "status": AppointmentStatus.CANCELLED,
            "last_updated": datetime.now(pytz.UTC),
            "notes": f"{existing.notes}\nCancellation reason: {reason}".strip() if reason else existing.notes,
        })
        self.booking_store.update_appointment(cancelled)
        self._audit(
            AuditEventType.APPOINTMENT_CANCELLED,
            f"Cancelled appointment {appointment_id}",
            previous_value=_dump(existing),
            new_value=_dump(cancelled),
            system_notes=reason or None
        )
        logger.info(f"Cancelled appointment {appointment_id}")
        return cancelled

    def run_daily_summary(self, day: date_type) -> DailyScheduleSummary:
        summary = self.aggregator.generate_daily_summary(
            day,
            self.office_store.list_offices(),
            self.booking_store.get_appointments_for_date(day),
            self.office_store.list_clinicians(),
            self.office_store.list_client_preferences()
        )

        self._audit(
            AuditEventType.DAILY_ASSIGNMENTS_UPDATED,
            f"Daily summary for {day.isoformat()}",
            system_notes=json.dumps({
                "appointments": len(summary.appointments),
                "conflicts": len(summary.conflicts),
                "alerts": len(summary.alerts),
                "skipped": summary.skipped_records,
            })
        )

        if self.notifier is not None:
            self.notifier.send(summary)
            high = summary.high_severity_conflicts
            if high:
                self.notifier.send(high)
        return summary

    def _audit(self, event_type: AuditEventType, description: str, **kwargs) -> None:
        self.audit.record(AuditEvent(event_type=event_type, description=description, **kwargs))
