"""
Tests for the daily schedule summary
"""

from datetime import date

import pytest

from models import (
    Office,
    ClientPreference,
    ConflictType,
    AlertType,
    Severity
)
from scheduler.daily import DailyAggregator, CRITICAL_NOTE, HIGH_NOTE, FLEX_NOTE

from conftest import DAY, at, make_appointment


@pytest.fixture
def aggregator():
    return DailyAggregator()


def hourly(office_id: str, count: int, prefix: str = "APT"):
    """Back-to-back hour sessions starting 9:00 AM local."""
    return [make_appointment(f"{prefix}-{i}", office_id=office_id, hour=13 + i, client_id=f"CL-{i}") for i in range(count)]


class TestDoubleBookings:

    def test_same_office_and_clinician_yields_two_conflicts(self, aggregator, offices):
        appointments = [
            make_appointment("APT-1", hour=14),
            make_appointment("APT-2", hour=14, minute=30, client_id="CL-1002"),
        ]

        summary = aggregator.generate_daily_summary(DAY, offices, appointments)

        assert len(summary.conflicts) == 2
        assert all(c.type == ConflictType.DOUBLE_BOOKING for c in summary.conflicts)
        assert all(c.severity == Severity.HIGH for c in summary.conflicts)
        assert summary.conflicts[0].office_id == "A-a"
        assert summary.conflicts[1].clinician_id == "C1"
        assert summary.conflicts[0].appointment_ids == ["APT-1", "APT-2"]

    def test_alert_for_high_conflicts(self, aggregator, offices):
        appointments = [make_appointment("APT-1"), make_appointment("APT-2", client_id="CL-1002")]

        summary = aggregator.generate_daily_summary(DAY, offices, appointments)

        assert len(summary.alerts) == 1
        assert summary.alerts[0].type == AlertType.SCHEDULING
        assert summary.alerts[0].message == "2 high-priority conflicts detected"

    def test_telehealth_never_double_books(self, aggregator, offices):
        appointments = [
            make_appointment("APT-1", session_type="telehealth"),
            make_appointment("APT-2", client_id="CL-1002"),
        ]

        summary = aggregator.generate_daily_summary(DAY, offices, appointments)
        assert summary.conflicts == []

    def test_back_to_back_is_fine(self, aggregator, offices):
        appointments = [make_appointment("APT-1", hour=14), make_appointment("APT-2", hour=15)]

        summary = aggregator.generate_daily_summary(DAY, offices, appointments)
        assert summary.conflicts == []

    def test_different_clinician_same_office(self, aggregator, offices):
        appointments = [make_appointment("APT-1"), make_appointment("APT-2", clinician_id="C2")]

        summary = aggregator.generate_daily_summary(DAY, offices, appointments)

        assert len(summary.conflicts) == 1
        assert summary.conflicts[0].description == "Schedule conflict in office A-a"

    def test_cancelled_appointments_ignored(self, aggregator, offices):
        appointments = [make_appointment("APT-1"), make_appointment("APT-2", status="cancelled")]

        summary = aggregator.generate_daily_summary(DAY, offices, appointments)

        assert summary.conflicts == []
        assert len(summary.appointments) == 2
        assert summary.office_utilization["A-a"].booked_slots == 1


class TestDaySelection:

    def test_other_days_excluded(self, aggregator, offices):
        summary = aggregator.generate_daily_summary(date(2025, 3, 15), offices, [make_appointment("APT-1")])
        assert summary.appointments == []

    def test_late_evening_utc_is_still_local_day(self, aggregator, offices):
        # 02:00Z on the 15th is 10:00 PM on the 14th in New York
        late = make_appointment("APT-1", hour=14).model_copy(update={
            "start_time": at(2).replace(day=15),
            "end_time": at(3).replace(day=15),
        })

        summary = aggregator.generate_daily_summary(DAY, offices, [late])
        assert [a.appointment_id for a in summary.appointments] == ["APT-1"]

    def test_malformed_records_are_skipped(self, aggregator, offices):
        broken = make_appointment("APT-BAD").model_copy(update={"end_time": None})
        backwards = make_appointment("APT-BACK")
        backwards = backwards.model_copy(update={"end_time": backwards.start_time})

        summary = aggregator.generate_daily_summary(DAY, offices, [broken, backwards, make_appointment("APT-1")])

        assert summary.skipped_records == ["APT-BAD", "APT-BACK"]
        assert [a.appointment_id for a in summary.appointments] == ["APT-1"]


class TestAccessibility:

    def test_mobility_needs_in_inaccessible_office(self, aggregator, offices):
        preference = ClientPreference(client_id="CL-1001", mobility_needs=["wheelchair_access"])
        appointments = [make_appointment("APT-1", office_id="B-b", clinician_id="C2")]

        summary = aggregator.generate_daily_summary(DAY, offices, appointments, client_preferences=[preference])

        assert len(summary.conflicts) == 1
        assert summary.conflicts[0].type == ConflictType.ACCESSIBILITY
        assert summary.conflicts[0].appointment_ids == ["APT-1"]

    def test_accessible_office_is_fine(self, aggregator, offices):
        preference = ClientPreference(client_id="CL-1001", mobility_needs=["wheelchair_access"])

        summary = aggregator.generate_daily_summary(DAY, offices, [make_appointment("APT-1")],
                                                    client_preferences=[preference])
        assert summary.conflicts == []


class TestUtilization:

    @pytest.mark.parametrize("count,notes", [
        (8, [CRITICAL_NOTE]),
        (7, [HIGH_NOTE]),
        (6, []),
    ])
    def test_thresholds(self, aggregator, offices, count, notes):
        summary = aggregator.generate_daily_summary(DAY, offices, hourly("A-a", count))

        usage = summary.office_utilization["A-a"]
        assert usage.total_slots == 8
        assert usage.booked_slots == count
        assert usage.special_notes == notes

    def test_every_office_listed(self, aggregator, offices):
        summary = aggregator.generate_daily_summary(DAY, offices, [])

        assert set(summary.office_utilization) == {"A-a", "B-b"}
        assert summary.office_utilization["B-b"].utilization == 0

    def test_flex_space_note(self, aggregator, office_default):
        summary = aggregator.generate_daily_summary(DAY, [office_default], hourly("B-1", 8))
        assert summary.office_utilization["B-1"].special_notes == [CRITICAL_NOTE, FLEX_NOTE]

    def test_capacity_alert(self, aggregator, offices):
        summary = aggregator.generate_daily_summary(DAY, offices, hourly("A-a", 7))

        assert len(summary.alerts) == 1
        assert summary.alerts[0].type == AlertType.CAPACITY
        assert summary.alerts[0].severity == Severity.MEDIUM
        assert summary.alerts[0].message.startswith("1 offices are at high capacity")

    def test_alerts_ordered_by_severity(self, aggregator, offices):
        busy = hourly("A-a", 8)
        clash = make_appointment("APT-X", office_id="B-b", clinician_id="C2")
        clash_2 = make_appointment("APT-Y", office_id="B-b", clinician_id="C2", client_id="CL-9")

        summary = aggregator.generate_daily_summary(DAY, offices, busy + [clash, clash_2])

        assert [a.type for a in summary.alerts] == [AlertType.SCHEDULING, AlertType.CAPACITY]

    def test_unknown_office_does_not_break_summary(self, aggregator, offices):
        stray = make_appointment("APT-1", office_id="Z-9")

        summary = aggregator.generate_daily_summary(DAY, offices, [stray])

        assert "Z-9" not in summary.office_utilization
        assert len(summary.appointments) == 1

    def test_summary_inputs_not_mutated(self, aggregator, offices):
        appointments = hourly("A-a", 3)
        before = [a.model_dump() for a in appointments]

        aggregator.generate_daily_summary(DAY, offices, appointments)

        assert [a.model_dump() for a in appointments] == before

    def test_same_inputs_same_summary(self, offices, office_default):
        appointments = hourly("A-a", 8) + [
            make_appointment("APT-X", office_id="B-b", clinician_id="C2"),
            make_appointment("APT-Y", office_id="B-b", clinician_id="C2", client_id="CL-9"),
            make_appointment("APT-BAD").model_copy(update={"end_time": None}),
        ]
        catalog = offices + [office_default]

        first = DailyAggregator().generate_daily_summary(DAY, catalog, appointments)
        second = DailyAggregator().generate_daily_summary(DAY, catalog, appointments)

        assert first.model_dump() == second.model_dump()
        assert first.conflicts and first.alerts


class TestOfficeIdsInSummary:

    def test_office_ids_standardized(self, aggregator):
        office = Office(office_id="c 2")
        summary = aggregator.generate_daily_summary(DAY, [office], [make_appointment("APT-1", office_id="c2")])
        assert summary.office_utilization["C-2"].booked_slots == 1
