"""
Shared fixtures for the allocator tests.

All instants are UTC on 2025-03-14, when the clinic (America/New_York) is on
EDT, so 14:00Z is 10:00 AM local and every fixture falls on the same clinic day.
"""

from datetime import date, datetime, timedelta

import pytest
import pytz

from models import (
    Office,
    OfficeSize,
    Clinician,
    SchedulingRequest,
    SessionRequirements,
    AppointmentRecord
)

DAY = date(2025, 3, 14)


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 3, 14, hour, minute, tzinfo=pytz.UTC)


def make_request(
    clinician_id: str = "C1",
    hour: int = 14,
    minute: int = 0,
    duration: int = 60,
    session_type: str = "in-person",
    client_id: str = "CL-1001",
    accessibility: bool = False,
    room_preference: str = None,
    appointment_id: str = None,
    **kwargs
) -> SchedulingRequest:
    return SchedulingRequest(
        client_id=client_id,
        clinician_id=clinician_id,
        start_time=at(hour, minute),
        duration_minutes=duration,
        session_type=session_type,
        requirements=SessionRequirements(accessibility=accessibility, room_preference=room_preference),
        appointment_id=appointment_id,
        **kwargs
    )


def make_appointment(
    appointment_id: str,
    office_id: str = "A-a",
    hour: int = 14,
    minute: int = 0,
    duration: int = 60,
    clinician_id: str = "C1",
    client_id: str = "CL-1001",
    session_type: str = "in-person",
    **kwargs
) -> AppointmentRecord:
    start = at(hour, minute)
    return AppointmentRecord(
        appointment_id=appointment_id,
        client_id=client_id,
        clinician_id=clinician_id,
        office_id=office_id,
        session_type=session_type,
        start_time=start,
        end_time=start + timedelta(minutes=duration),
        **kwargs
    )


@pytest.fixture
def office_a():
    """Upstairs room owned by C1. Accessible via the lift."""
    return Office(
        office_id="A-a",
        name="Garden Room",
        floor="upstairs",
        is_accessible=True,
        special_features=["natural_light"],
        primary_clinician="C1"
    )


@pytest.fixture
def office_b():
    """C2's room; no step-free access."""
    return Office(office_id="B-b", name="Corner Room", floor="downstairs", primary_clinician="C2")


@pytest.fixture
def office_default():
    return Office(
        office_id="B-1",
        name="Group Room",
        floor="downstairs",
        is_accessible=True,
        size=OfficeSize.LARGE,
        special_features=["group"],
        is_flex_space=True
    )


@pytest.fixture
def offices(office_a, office_b):
    return [office_a, office_b]


@pytest.fixture
def clinicians():
    return [
        Clinician(clinician_id="C1", name="Dr. Rivera"),
        Clinician(clinician_id="C2", name="Dr. Chen"),
        Clinician(clinician_id="C3", name="Sam Okafor", preferred_offices=["A-z"]),
    ]
