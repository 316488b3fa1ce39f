"""
Time-Overlap Conflict Detection and Relocation.

This module answers two questions:
1. "Does this request collide with anything already booked in office X?"
2. "If it does, can the existing booking be moved somewhere else?"

Relocation is decided by session priority. Only a strictly more important
new session may displace an existing one, and only if some other in-service
office can take the displaced booking (first fit, in catalog order).
"""

import logging
from typing import Dict, List, Mapping, Optional

from models import (
    Office,
    SchedulingRequest,
    SchedulingConflict,
    ConflictResolution,
    ResolutionType,
    SessionType,
    standardize_office_id
)
from .settings import SESSION_PRIORITIES, UNKNOWN_SESSION_PRIORITY
from .state import BookingIndex
from .timeutils import ranges_overlap

logger = logging.getLogger(__name__)


def get_session_priority(session_type: str) -> int:
    return SESSION_PRIORITIES.get(session_type, UNKNOWN_SESSION_PRIORITY)


def sessions_conflict(first: SchedulingRequest, second: SchedulingRequest) -> bool:
    """
    Two sessions conflict when their time ranges overlap, unless both are
    telehealth: a virtual office has unlimited concurrent capacity.
    """
    if first.session_type == SessionType.TELEHEALTH and second.session_type == SessionType.TELEHEALTH:
        return False
    return ranges_overlap(first.start, first.end, second.start, second.end)


class ConflictResolver:
    """
    Detects overlaps against an index of existing bookings and decides relocations.
    """

    def __init__(
        self,
        offices: List[Office],
        existing_bookings: Optional[Mapping[str, List[SchedulingRequest]]] = None
    ):
        self.offices = offices
        if isinstance(existing_bookings, BookingIndex):
            self.index = existing_bookings
        else:
            self.index = BookingIndex.from_mapping(existing_bookings)

    def check_conflicts(
        self,
        office_id: str,
        request: SchedulingRequest,
        bookings_for_office: Optional[List[SchedulingRequest]] = None
    ) -> List[SchedulingConflict]:
        """
        Returns one SchedulingConflict per existing booking that overlaps the request.
        """
        office_key = standardize_office_id(office_id)
        bookings = bookings_for_office if bookings_for_office is not None else self.index.get_bookings(office_key)

        conflicts = []
        for booking in bookings:
            if not sessions_conflict(request, booking):
                continue
            conflicts.append(SchedulingConflict(
                office_id=office_key,
                existing_booking=booking,
                resolution=self.resolve_conflict(booking, request, office_key)
            ))
        return conflicts

    def resolve_conflict(
        self,
        existing_booking: SchedulingRequest,
        new_request: SchedulingRequest,
        office_id: Optional[str] = None
    ) -> ConflictResolution:
        existing_priority = get_session_priority(existing_booking.session_type)
        new_priority = get_session_priority(new_request.session_type)

        if new_priority <= existing_priority:
            return ConflictResolution(
                type=ResolutionType.CANNOT_RELOCATE,
                reason=(
                    f"Existing {existing_booking.session_type} session has priority "
                    f"over new {new_request.session_type} session"
                )
            )

        alternative = self.find_alternative_office(existing_booking, exclude_office_id=office_id)
        if alternative:
            logger.debug(f"Relocation target for {existing_booking.client_id}: {alternative.office_id}")
            return ConflictResolution(
                type=ResolutionType.RELOCATE,
                reason=(
                    f"{new_request.session_type} takes priority, relocating existing "
                    f"{existing_booking.session_type} to {alternative.office_id}"
                ),
                new_office_id=alternative.office_id
            )

        return ConflictResolution(
            type=ResolutionType.CANNOT_RELOCATE,
            reason="No alternative offices available for relocation"
        )

    def find_alternative_office(
        self,
        booking: SchedulingRequest,
        exclude_office_id: Optional[str] = None
    ) -> Optional[Office]:
        """First in-service office that fits the booking's accessibility need and is free at that time."""
        excluded = standardize_office_id(exclude_office_id) if exclude_office_id else None

        for office in self.offices:
            if not office.in_service:
                continue
            if office.office_id == excluded:
                continue
            if booking.needs_accessibility and not office.is_accessible:
                continue

            occupied = any(sessions_conflict(booking, other) for other in self.index.get_bookings(office.office_id))
            if not occupied:
                return office
        return None

    def bookings_by_office(self) -> Dict[str, List[SchedulingRequest]]:
        return self.index.as_mapping()
