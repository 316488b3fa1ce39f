"""
In-memory collaborators for the SchedulingService.

Used by the demo runner and the tests. They satisfy the store and sink
Protocols in service.py without touching any external system.
"""

import logging
from collections import OrderedDict
from datetime import date as date_type
from typing import Any, Dict, List, Optional

from models import (
    Office,
    Clinician,
    AssignmentRule,
    ClientPreference,
    AppointmentRecord,
    DailyScheduleSummary,
    standardize_office_id
)
from .errors import AppointmentNotFoundError
from .report import DailyReport
from .service import AuditEvent

logger = logging.getLogger(__name__)


class InMemoryOfficeStore:
    """Catalog snapshot holder. Lists are copied out so callers cannot mutate the store."""

    def __init__(
        self,
        offices: Optional[List[Office]] = None,
        clinicians: Optional[List[Clinician]] = None,
        rules: Optional[List[AssignmentRule]] = None,
        client_preferences: Optional[List[ClientPreference]] = None
    ):
        self.offices = list(offices or [])
        self.clinicians = list(clinicians or [])
        self.rules = list(rules or [])
        self.client_preferences: Dict[str, ClientPreference] = {p.client_id: p for p in client_preferences or []}

    def list_offices(self) -> List[Office]:
        return list(self.offices)

    def list_clinicians(self) -> List[Clinician]:
        return list(self.clinicians)

    def list_assignment_rules(self) -> List[AssignmentRule]:
        return list(self.rules)

    def get_client_preference(self, client_id: str) -> Optional[ClientPreference]:
        return self.client_preferences.get(client_id)

    def list_client_preferences(self) -> List[ClientPreference]:
        return list(self.client_preferences.values())

    def upsert_client_preference(self, preference: ClientPreference) -> None:
        self.client_preferences[preference.client_id] = preference


class InMemoryBookingStore:
    """Appointments keyed by id, in insertion order."""

    def __init__(self, appointments: Optional[List[AppointmentRecord]] = None):
        self.appointments: "OrderedDict[str, AppointmentRecord]" = OrderedDict()
        for record in appointments or []:
            self.appointments[record.appointment_id] = record

    def get_appointments_for_date(self, day: date_type) -> List[AppointmentRecord]:
        # Malformed records are returned too; consumers decide how to skip them
        return [a for a in self.appointments.values() if a.local_date is None or a.local_date == day]

    def get_appointments_for_office(self, office_id: str, day: date_type) -> List[AppointmentRecord]:
        office_key = standardize_office_id(office_id)
        return [a for a in self.get_appointments_for_date(day) if a.office_id == office_key]

    def get_appointment(self, appointment_id: str) -> Optional[AppointmentRecord]:
        return self.appointments.get(appointment_id)

    def save_appointment(self, record: AppointmentRecord) -> None:
        self.appointments[record.appointment_id] = record

    def update_appointment(self, record: AppointmentRecord) -> None:
        if record.appointment_id not in self.appointments:
            raise AppointmentNotFoundError(record.appointment_id)
        self.appointments[record.appointment_id] = record

    def all(self) -> List[AppointmentRecord]:
        return list(self.appointments.values())


class InMemoryAuditSink:
    def __init__(self):
        self.events: List[AuditEvent] = []

    def record(self, event: AuditEvent) -> None:
        logger.debug(f"Audit {event.event_type.value}: {event.description}")
        self.events.append(event)

    def of_type(self, event_type) -> List[AuditEvent]:
        return [e for e in self.events if e.event_type == event_type]


class LoggingNotificationSink:
    """
    Writes notifications to the log instead of sending email.
    Daily summaries are rendered as a DailyReport; conflict lists are logged one per line.
    """

    def __init__(self, level: int = logging.INFO):
        self.level = level
        self.sent: List[Any] = []

    def send(self, payload: Any) -> None:
        self.sent.append(payload)
        if isinstance(payload, DailyScheduleSummary):
            report = DailyReport.from_summary(payload)
            logger.log(self.level, f"{report.subject}\n{report.text}")
            return

        for item in payload or []:
            description = getattr(item, "description", item)
            logger.log(self.level, f"Conflict notification: {description}")
