"""
Tests for time-overlap detection and relocation decisions
"""

import pytest

from models import Office, ResolutionType
from scheduler.conflicts import ConflictResolver, get_session_priority, sessions_conflict
from scheduler.state import BookingIndex
from scheduler.timeutils import ranges_overlap

from conftest import at, make_request, make_appointment


class TestOverlap:

    def test_one_minute_overlap_counts(self):
        assert ranges_overlap(at(10), at(11), at(10, 59), at(11, 30))

    def test_back_to_back_does_not_overlap(self):
        assert not ranges_overlap(at(10), at(11), at(11), at(12))
        assert not ranges_overlap(at(11), at(12), at(10), at(11))

    def test_sessions_use_duration(self):
        first = make_request(hour=14, duration=60)
        assert sessions_conflict(first, make_request(hour=14, minute=59, duration=31))
        assert not sessions_conflict(first, make_request(hour=15))

    def test_telehealth_pair_never_conflicts(self):
        first = make_request(session_type="telehealth")
        second = make_request(session_type="telehealth", clinician_id="C2")
        assert not sessions_conflict(first, second)

    def test_telehealth_against_in_person_conflicts(self):
        assert sessions_conflict(make_request(session_type="telehealth"), make_request())


class TestSessionPriority:

    @pytest.mark.parametrize("session_type,priority", [
        ("in-person", 100),
        ("group", 75),
        ("family", 75),
        ("telehealth", 25),
        ("walk-and-talk", 50),
    ])
    def test_priorities(self, session_type, priority):
        assert get_session_priority(session_type) == priority


class TestConflictResolver:

    def test_check_conflicts_uses_standardized_keys(self, offices):
        existing = make_request(client_id="CL-2000")
        resolver = ConflictResolver(offices, {"a a": [existing]})

        conflicts = resolver.check_conflicts("A-a", make_request())

        assert len(conflicts) == 1
        assert conflicts[0].office_id == "A-a"
        assert conflicts[0].existing_booking.client_id == "CL-2000"

    def test_no_conflict_in_other_office(self, offices):
        resolver = ConflictResolver(offices, {"B-b": [make_request(client_id="CL-2000")]})
        assert resolver.check_conflicts("A-a", make_request()) == []

    def test_in_person_relocates_existing_telehealth(self, offices):
        existing = make_request(client_id="CL-2000", session_type="telehealth")
        resolver = ConflictResolver(offices, {"A-a": [existing]})

        resolution = resolver.resolve_conflict(existing, make_request(), "A-a")

        assert resolution.type == ResolutionType.RELOCATE
        assert resolution.new_office_id == "B-b"

    def test_relocation_without_alternative(self, office_a):
        existing = make_request(client_id="CL-2000", session_type="telehealth")
        resolver = ConflictResolver([office_a], {"A-a": [existing]})

        resolution = resolver.resolve_conflict(existing, make_request(), "A-a")

        assert resolution.type == ResolutionType.CANNOT_RELOCATE
        assert resolution.reason == "No alternative offices available for relocation"

    def test_lower_priority_cannot_displace(self, offices):
        existing = make_request(client_id="CL-2000")
        resolver = ConflictResolver(offices, {"A-a": [existing]})

        resolution = resolver.resolve_conflict(existing, make_request(session_type="group"), "A-a")

        assert resolution.type == ResolutionType.CANNOT_RELOCATE
        assert resolution.reason == "Existing in-person session has priority over new group session"

    def test_equal_priority_cannot_displace(self, offices):
        existing = make_request(client_id="CL-2000", session_type="family")
        resolver = ConflictResolver(offices, {"A-a": [existing]})

        resolution = resolver.resolve_conflict(existing, make_request(session_type="group"), "A-a")
        assert resolution.type == ResolutionType.CANNOT_RELOCATE

    def test_alternative_must_be_free(self, offices):
        existing = make_request(client_id="CL-2000", session_type="telehealth")
        occupant = make_request(client_id="CL-3000", clinician_id="C2")
        resolver = ConflictResolver(offices, {"A-a": [existing], "B-b": [occupant]})

        assert resolver.find_alternative_office(existing, exclude_office_id="A-a") is None

    def test_alternative_respects_accessibility(self, office_a, office_b):
        ramp = Office(office_id="C-1", is_accessible=True)
        existing = make_request(client_id="CL-2000", session_type="telehealth", accessibility=True)
        resolver = ConflictResolver([office_a, office_b, ramp], {"A-a": [existing]})

        alternative = resolver.find_alternative_office(existing, exclude_office_id="A-a")
        assert alternative.office_id == "C-1"

    def test_alternative_skips_out_of_service(self, office_a):
        closed = Office(office_id="B-2", in_service=False)
        existing = make_request(client_id="CL-2000", session_type="telehealth")
        resolver = ConflictResolver([office_a, closed], {"A-a": [existing]})

        assert resolver.find_alternative_office(existing, exclude_office_id="A-a") is None


class TestBookingIndex:

    def test_cancelled_and_malformed_records_are_not_indexed(self):
        good = make_appointment("APT-1")
        cancelled = make_appointment("APT-2", status="cancelled")
        broken = make_appointment("APT-3")
        broken = broken.model_copy(update={"end_time": broken.start_time})

        index = BookingIndex.from_appointments([good, cancelled, broken])

        assert [b.appointment_id for b in index.get_bookings("A-a")] == ["APT-1"]
        assert index.skipped == ["APT-3"]
        assert index.get_statistics()["total_bookings"] == 1
