"""
Booking Index.

This module acts as the 'Memory' the assignment engine checks against:
existing bookings grouped by standardized office id,
built either from stored AppointmentRecords or from a caller-supplied mapping.
"""

import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Mapping, Optional

from models import AppointmentRecord, SchedulingRequest, standardize_office_id

logger = logging.getLogger(__name__)


class BookingIndex:
    """
    Existing bookings per office.
    Keys are always standardized, so 'b1' and 'B-1' land in the same bucket.
    """

    def __init__(self):
        """Initialize an empty index."""
        self.by_office: Dict[str, List[SchedulingRequest]] = defaultdict(list)

        # Appointment ids (or placeholders) that could not be indexed
        self.skipped: List[str] = []

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, Iterable[SchedulingRequest]]]) -> "BookingIndex":
        index = cls()
        for office_id, bookings in (mapping or {}).items():
            for booking in bookings:
                index.add_booking(office_id, booking)
        return index

    @classmethod
    def from_appointments(cls, appointments: Iterable[AppointmentRecord]) -> "BookingIndex":
        index = cls()
        for record in appointments:
            index.add_appointment(record)
        return index

    def add_booking(self, office_id: str, booking: SchedulingRequest) -> None:
        self.by_office[standardize_office_id(office_id)].append(booking)

    def add_appointment(self, record: AppointmentRecord) -> bool:
        """
        Index a stored appointment. Cancelled records hold no room;
        malformed ones are remembered in 'skipped' instead of raising.
        """
        if not record.is_active:
            return False
        if not record.is_well_formed:
            marker = record.appointment_id or "<missing id>"
            logger.warning(f"Skipping appointment {marker}: no usable time range")
            self.skipped.append(marker)
            return False

        self.add_booking(record.office_id, record.to_booking())
        return True

    # --- Query Methods (Used by conflicts.py) ---

    def get_bookings(self, office_id: str) -> List[SchedulingRequest]:
        return list(self.by_office.get(standardize_office_id(office_id), []))

    def as_mapping(self) -> Dict[str, List[SchedulingRequest]]:
        return {office_id: list(bookings) for office_id, bookings in self.by_office.items()}

    def get_statistics(self) -> Dict[str, Any]:
        return {
            "total_bookings": sum(len(b) for b in self.by_office.values()),
            "offices_in_use": len(self.by_office),
            "office_booking_count": {k: len(v) for k, v in self.by_office.items()},
            "skipped_count": len(self.skipped),
        }
