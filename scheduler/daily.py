"""
Daily Schedule Aggregation.

Builds the morning summary for one clinic day:
1. Double-bookings (per office and per clinician) among physical sessions.
2. Accessibility mismatches between client needs and assigned offices.
3. Office utilization against a fixed daily slot capacity.
4. Coarse, severity-ranked alerts rolled up from the above.

A malformed appointment is skipped and reported in skipped_records;
it never aborts the whole day's summary.
"""

import logging
from datetime import date as date_type
from typing import Dict, List, Optional

from models import (
    Office,
    Clinician,
    ClientPreference,
    AppointmentRecord,
    DailyScheduleSummary,
    ScheduleConflict,
    ScheduleAlert,
    OfficeUtilization,
    ConflictType,
    AlertType,
    Severity,
    SessionType,
    standardize_office_id
)
from models.schedule import SEVERITY_RANK
from .settings import SLOTS_PER_OFFICE_DAY, CRITICAL_UTILIZATION, HIGH_UTILIZATION
from .timeutils import ranges_overlap, local_date

logger = logging.getLogger(__name__)

CRITICAL_NOTE = "Critical capacity warning"
HIGH_NOTE = "High utilization"
FLEX_NOTE = "Flex space - coordinate with team"


def appointments_overlap(first: AppointmentRecord, second: AppointmentRecord) -> bool:
    return ranges_overlap(first.start_time, first.end_time, second.start_time, second.end_time)


class DailyAggregator:
    """
    Stateless summary builder. Same inputs, same summary.
    """

    def __init__(self, slots_per_office: int = SLOTS_PER_OFFICE_DAY):
        self.slots_per_office = slots_per_office

    def generate_daily_summary(
        self,
        date: date_type,
        offices: List[Office],
        appointments: List[AppointmentRecord],
        clinicians: Optional[List[Clinician]] = None,
        client_preferences: Optional[List[ClientPreference]] = None
    ) -> DailyScheduleSummary:
        logger.info(f"Generating daily summary for {date.isoformat()}")

        day_appointments, skipped = self._select_day(date, appointments)
        summary = DailyScheduleSummary(date=date, appointments=day_appointments, skipped_records=skipped)

        active = [a for a in day_appointments if a.is_active]
        self._detect_double_bookings(summary, active)
        self._detect_accessibility(summary, active, offices, client_preferences or [])
        self._calculate_utilization(summary, active, offices)
        self._generate_alerts(summary)

        logger.info(
            f"Daily summary for {date.isoformat()}: {len(day_appointments)} appointments, "
            f"{len(summary.conflicts)} conflicts, {len(summary.alerts)} alerts, {len(skipped)} skipped"
        )
        return summary

    def _select_day(self, date: date_type, appointments: List[AppointmentRecord]):
        """Keep well-formed appointments on the clinic-local date; collect the rest as skipped."""
        selected: List[AppointmentRecord] = []
        skipped: List[str] = []

        for index, appt in enumerate(appointments):
            if not appt.is_well_formed:
                marker = appt.appointment_id or f"row-{index}"
                logger.warning(f"Skipping malformed appointment {marker}")
                skipped.append(marker)
                continue
            if local_date(appt.start_time) != date:
                continue
            selected.append(appt)
        return selected, skipped

    def _detect_double_bookings(self, summary: DailyScheduleSummary, appointments: List[AppointmentRecord]) -> None:
        for i, first in enumerate(appointments):
            for second in appointments[i + 1:]:
                if first.session_type == SessionType.TELEHEALTH or second.session_type == SessionType.TELEHEALTH:
                    continue
                if not appointments_overlap(first, second):
                    continue

                ids = [first.appointment_id, second.appointment_id]

                # Same office double booking
                if first.office_id == second.office_id:
                    summary.conflicts.append(ScheduleConflict(
                        type=ConflictType.DOUBLE_BOOKING,
                        description=f"Schedule conflict in office {first.office_id}",
                        severity=Severity.HIGH,
                        office_id=first.office_id,
                        appointment_ids=ids
                    ))

                # Same clinician double booking
                if first.clinician_id and first.clinician_id == second.clinician_id:
                    summary.conflicts.append(ScheduleConflict(
                        type=ConflictType.DOUBLE_BOOKING,
                        description=f"Clinician {first.clinician_id} double booked",
                        severity=Severity.HIGH,
                        clinician_id=first.clinician_id,
                        appointment_ids=ids
                    ))

    def _detect_accessibility(
        self,
        summary: DailyScheduleSummary,
        appointments: List[AppointmentRecord],
        offices: List[Office],
        client_preferences: List[ClientPreference]
    ) -> None:
        office_map = {o.office_id: o for o in offices}
        preference_map = {p.client_id: p for p in client_preferences}

        for appt in appointments:
            pref = preference_map.get(appt.client_id)
            office = office_map.get(appt.office_id)
            if pref and pref.mobility_needs and office and not office.is_accessible:
                summary.conflicts.append(ScheduleConflict(
                    type=ConflictType.ACCESSIBILITY,
                    description="Client requires accessible office but assigned to non-accessible space",
                    severity=Severity.HIGH,
                    office_id=appt.office_id,
                    appointment_ids=[appt.appointment_id]
                ))

    def _calculate_utilization(
        self,
        summary: DailyScheduleSummary,
        appointments: List[AppointmentRecord],
        offices: List[Office]
    ) -> None:
        booked: Dict[str, int] = {}
        for appt in appointments:
            booked[appt.office_id] = booked.get(appt.office_id, 0) + 1

        for office in offices:
            office_id = standardize_office_id(office.office_id)
            if office_id in summary.office_utilization:
                continue
            count = booked.get(office_id, 0)
            summary.office_utilization[office_id] = OfficeUtilization(
                total_slots=self.slots_per_office,
                booked_slots=count,
                special_notes=self._office_notes(office, count / self.slots_per_office)
            )

    def _office_notes(self, office: Office, utilization: float) -> List[str]:
        notes = []
        if utilization > CRITICAL_UTILIZATION:
            notes.append(CRITICAL_NOTE)
        elif utilization > HIGH_UTILIZATION:
            notes.append(HIGH_NOTE)
        if office.is_flex_space:
            notes.append(FLEX_NOTE)
        return notes

    def _generate_alerts(self, summary: DailyScheduleSummary) -> None:
        alerts: List[ScheduleAlert] = []

        high_conflicts = summary.high_severity_conflicts
        if high_conflicts:
            alerts.append(ScheduleAlert(
                type=AlertType.SCHEDULING,
                message=f"{len(high_conflicts)} high-priority conflicts detected",
                severity=Severity.HIGH
            ))

        busy = [oid for oid, u in summary.office_utilization.items() if u.utilization > HIGH_UTILIZATION]
        if busy:
            alerts.append(ScheduleAlert(
                type=AlertType.CAPACITY,
                message=f"{len(busy)} offices are at high capacity ({', '.join(busy)})",
                severity=Severity.MEDIUM
            ))

        # One alert per category, most severe first
        ranked = sorted(alerts, key=lambda a: SEVERITY_RANK[a.severity])
        seen = set()
        for alert in ranked:
            if alert.type in seen:
                continue
            seen.add(alert.type)
            summary.alerts.append(alert)
