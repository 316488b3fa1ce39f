"""
Hard Constraint Validation Logic.

This module answers the binary question: "Can this request use Office X at all?"
It enforces requirements that no amount of soft score can override:
service status, accessibility, required features, session suitability,
clinician room preferences and explicit room requests.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from models import Office, Clinician, SchedulingRequest, SessionType, standardize_office_id


@dataclass
class FilterRejection:
    """Detailed reason an office was dropped."""
    constraint_type: str  # e.g., "Service", "Accessibility", "Features"
    reason: str
    office_id: str


class OfficeFilter:
    """
    Validates hard constraints for office assignment.
    """

    def __init__(self, offices: List[Office]):
        # Index offices for O(1) lookup
        self.offices = offices
        self.office_map: Dict[str, Office] = {}
        for office in offices:
            self.office_map.setdefault(office.office_id, office)

    def check_office(
        self,
        office: Office,
        request: SchedulingRequest,
        clinician: Optional[Clinician] = None
    ) -> Optional[FilterRejection]:
        """
        Master validation function. Returns None if Valid, Rejection object if Invalid.
        Passing no clinician skips the clinician-preference check (used for the default office).
        """
        # 1. Office must exist in the real world today
        if not office.in_service:
            return FilterRejection("Service", "not in service", office.office_id)

        # 2. Request requirements
        if request.needs_accessibility and not office.is_accessible:
            return FilterRejection("Accessibility", "accessibility requirements not met", office.office_id)

        missing = [f for f in request.required_features if f not in office.special_features]
        if missing:
            return FilterRejection("Features", f"missing required features: {', '.join(missing)}", office.office_id)

        if request.session_type == SessionType.GROUP and "group" not in office.special_features:
            return FilterRejection("SessionType", "not suitable for group sessions", office.office_id)

        # 3. Clinician rooms (the clinician's own office always qualifies)
        if clinician is not None:
            violation = self._check_clinician(office, clinician)
            if violation: return violation

        # 4. Explicit room request
        room = request.room_preference
        if room and office.office_id != standardize_office_id(room):
            return FilterRejection("RoomPreference", f"does not match room preference {room}", office.office_id)

        return None # All clear!

    def filter_offices(
        self,
        request: SchedulingRequest,
        clinician: Clinician
    ) -> Tuple[List[Office], List[FilterRejection]]:
        """Split the catalog into candidates (input order preserved) and rejections."""
        candidates = []
        rejections = []
        for office in self.offices:
            rejection = self.check_office(office, request, clinician)
            if rejection:
                rejections.append(rejection)
            else:
                candidates.append(office)
        return candidates, rejections

    def check_default_office(
        self,
        request: SchedulingRequest,
        default_office_id: str
    ) -> Tuple[Optional[Office], Optional[FilterRejection]]:
        """
        The fallback office must exist, be in service and satisfy every request
        requirement. Only the clinician-preference filter is waived.
        """
        office_id = standardize_office_id(default_office_id)
        office = self.office_map.get(office_id)
        if office is None:
            return None, FilterRejection("Default", "default office not in catalog", office_id)

        rejection = self.check_office(office, request, clinician=None)
        if rejection:
            return None, rejection
        return office, None

    def _check_clinician(self, office: Office, clinician: Clinician) -> Optional[FilterRejection]:
        if office.primary_clinician == clinician.clinician_id:
            return None
        if clinician.preferred_offices and office.office_id not in clinician.preferred_offices:
            return FilterRejection("Clinician", "not in clinician's preferred offices", office.office_id)
        return None
