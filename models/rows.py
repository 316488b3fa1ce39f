"""
Positional sheet-row parsers.

The configuration spreadsheet stores one record per row, with columns in a
fixed order per tab. These helpers turn a raw row (a list of cell strings,
possibly shorter than the full width) into a validated model. Missing cells
fall back to defaults; only an unusable identifier makes a row unparseable.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from .office_id import standardize_office_id
from .office import (
    Office,
    OfficeSize,
    Clinician,
    ClinicianRole,
    AssignmentRule,
    OverrideLevel,
    ClientPreference
)
from .request import SessionRequirements
from .schedule import AppointmentRecord, AppointmentStatus, AppointmentSource
from scheduler.timeutils import try_parse_instant

logger = logging.getLogger(__name__)


# --- Cell Helpers ---

def _cell(row: Sequence[Any], index: int) -> str:
    if index >= len(row) or row[index] is None:
        return ""
    return str(row[index]).strip()


def _flag(row: Sequence[Any], index: int) -> bool:
    return _cell(row, index).upper() == "TRUE"


def _split(row: Sequence[Any], index: int) -> List[str]:
    return [part.strip() for part in _cell(row, index).split(",") if part.strip()]


def _number(row: Sequence[Any], index: int, default: int = 0) -> int:
    try:
        return int(float(_cell(row, index)))
    except (ValueError, OverflowError):
        return default


def _json_list(row: Sequence[Any], index: int) -> List[str]:
    """JSON array cells are written by the app, but humans edit them too."""
    text = _cell(row, index)
    if not text:
        return []
    try:
        value = json.loads(text)
    except json.JSONDecodeError:
        parts = [part.strip().strip("'\"").strip() for part in text.strip("[]").split(",")]
        return [p for p in parts if p]
    if isinstance(value, list):
        return [str(v) for v in value if v not in (None, "")]
    return [str(value)]


def _enum(enum_cls, text: str, default):
    try:
        return enum_cls(text.lower())
    except ValueError:
        return default


# --- Tab Parsers ---

def parse_office_row(row: Sequence[Any]) -> Office:
    """Offices Configuration: id, name, unit, in service, floor, accessible, size,
    age groups, features, primary clinician, alternatives, flex space, notes."""
    return Office(
        office_id=_cell(row, 0),
        name=_cell(row, 1),
        unit=_cell(row, 2),
        in_service=_flag(row, 3),
        floor=_cell(row, 4),
        is_accessible=_flag(row, 5),
        size=_enum(OfficeSize, _cell(row, 6), OfficeSize.MEDIUM),
        age_groups=_split(row, 7),
        special_features=_split(row, 8),
        primary_clinician=_cell(row, 9) or None,
        alternative_clinicians=_split(row, 10),
        is_flex_space=_flag(row, 11),
        notes=_cell(row, 12)
    )


def parse_clinician_row(row: Sequence[Any]) -> Clinician:
    return Clinician(
        clinician_id=_cell(row, 0),
        name=_cell(row, 1),
        email=_cell(row, 2),
        role=_enum(ClinicianRole, _cell(row, 3), ClinicianRole.CLINICIAN),
        age_range_min=max(0, _number(row, 4, 0)),
        age_range_max=max(0, _number(row, 5, 120)),
        specialties=_split(row, 6),
        caseload_limit=max(0, _number(row, 7)),
        current_caseload=max(0, _number(row, 8)),
        preferred_offices=_split(row, 9),
        allows_relationship=_flag(row, 10),
        certifications=_split(row, 11),
        practitioner_id=_cell(row, 12)
    )


def parse_rule_row(row: Sequence[Any]) -> AssignmentRule:
    return AssignmentRule(
        priority=_number(row, 0),
        rule_name=_cell(row, 1),
        rule_type=_cell(row, 2),
        condition=_cell(row, 3),
        office_ids=_split(row, 4),
        override_level=_enum(OverrideLevel, _cell(row, 5), OverrideLevel.NONE),
        active=_flag(row, 6),
        notes=_cell(row, 7)
    )


def parse_client_preference_row(row: Sequence[Any]) -> ClientPreference:
    """Client Preferences: list columns hold JSON arrays; column 9 (last updated) is ignored."""
    consistency = _number(row, 6, 3)
    return ClientPreference(
        client_id=_cell(row, 0),
        name=_cell(row, 1),
        email=_cell(row, 2),
        mobility_needs=_json_list(row, 3),
        sensory_preferences=_json_list(row, 4),
        physical_needs=_json_list(row, 5),
        room_consistency=consistency if 1 <= consistency <= 5 else 3,
        support_needs=_json_list(row, 7),
        additional_notes=_cell(row, 8),
        preferred_clinician=_cell(row, 10) or None,
        assigned_office=_cell(row, 11) or None
    )


def _features(value) -> List[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [str(v) for v in value if v not in (None, "")]
    return []


def _parse_requirements(text: str, appointment_id: str) -> SessionRequirements:
    if not text:
        return SessionRequirements()
    # Strip control characters pasted in from other tools
    cleaned = " ".join("".join(ch for ch in text if ord(ch) >= 0x20).split())
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        logger.warning(f"Unparseable requirements for appointment {appointment_id}: {text!r}")
        return SessionRequirements()

    if not isinstance(data, dict):
        return SessionRequirements()

    room = data.get("room_preference") or data.get("roomPreference")
    try:
        return SessionRequirements(
            accessibility=bool(data.get("accessibility", False)),
            room_preference=room if isinstance(room, str) else None,
            special_features=_features(data.get("special_features") or data.get("specialFeatures"))
        )
    except ValidationError as e:
        logger.warning(f"Invalid requirements for appointment {appointment_id}: {e}")
        return SessionRequirements()


def parse_appointment_row(row: Sequence[Any]) -> AppointmentRecord:
    """
    Appointments: id, client id, client name, clinician id, clinician name, office,
    session type, start, end, status, last updated, source, requirements JSON,
    notes, suggested office. Bad timestamps become None so the record can be
    skipped downstream rather than failing here.
    """
    appointment_id = _cell(row, 0)
    office_id = _cell(row, 5)
    client_id = _cell(row, 1)
    clinician_id = _cell(row, 3)
    suggested = _cell(row, 14) or office_id

    return AppointmentRecord(
        appointment_id=appointment_id,
        client_id=client_id,
        client_name=_cell(row, 2) or client_id,
        clinician_id=clinician_id,
        clinician_name=_cell(row, 4) or clinician_id,
        office_id=office_id,
        session_type=_cell(row, 6),
        start_time=try_parse_instant(_cell(row, 7) or None),
        end_time=try_parse_instant(_cell(row, 8) or None),
        status=_enum(AppointmentStatus, _cell(row, 9), AppointmentStatus.SCHEDULED),
        last_updated=try_parse_instant(_cell(row, 10) or None),
        source=_enum(AppointmentSource, _cell(row, 11), AppointmentSource.MANUAL),
        requirements=_parse_requirements(_cell(row, 12), appointment_id),
        notes=_cell(row, 13),
        suggested_office_id=standardize_office_id(suggested) if suggested else None
    )


# --- Intake Form ---

ROOM_CONSISTENCY_ANSWERS = {
    "1 - Strong preference for consistency": 5,
    "2 - High preference for consistency": 4,
    "3 - Neutral about room changes": 3,
    "4 - Somewhat comfortable with room changes when needed": 2,
    "5 - Very comfortable with room changes when needed": 1,
}

# question -> {answer option -> stored tag}
_MOBILITY_OPTIONS = {
    "Wheelchair": "wheelchair_access",
    "Crutches": "mobility_aid_crutches",
    "Walking boot": "mobility_aid_boot",
}
_SENSORY_OPTIONS = {
    "Light sensitivity": "light_sensitive",
    "Preference for only natural light": "natural_light",
    "Auditory sensitivity": "sound_sensitive",
}
_PHYSICAL_OPTIONS = {
    "Seating support": "seating_support",
    "Difficulty with stairs": "no_stairs",
    "Need to see the door": "door_visible",
}
_SUPPORT_OPTIONS = {
    "Space for a service animal": "service_animal",
    "A support person present": "support_person",
    "The use of communication aids": "communication_aids",
}

MOBILITY_QUESTION = "Do you use any mobility devices?"
MOBILITY_OTHER_QUESTION = "Access needs related to mobility/disability (Please specify)"
SENSORY_QUESTION = "Do you experience sensory sensitivities?"
SENSORY_OTHER_QUESTION = "Other (Please specify):"
PHYSICAL_QUESTION = "Do you experience challenges with physical environment?"
CONSISTENCY_QUESTION = "Please indicate your comfort level with this possibility:"
SUPPORT_QUESTION = "Do you have support needs that involve any of the following?"
NOTES_QUESTION = "Is there anything else we should know about your space or accessibility needs?"


def _tags(responses: Dict[str, Any], question: str, options: Dict[str, str]) -> List[str]:
    answers = responses.get(question) or []
    if isinstance(answers, str):
        answers = [answers]
    return [tag for option, tag in options.items() if option in answers]


def parse_accessibility_form(
    client_id: str,
    responses: Dict[str, Any],
    name: str = "",
    email: str = "",
    assigned_office: Optional[str] = None
) -> ClientPreference:
    """Map an intake accessibility questionnaire onto a ClientPreference."""
    mobility = _tags(responses, MOBILITY_QUESTION, _MOBILITY_OPTIONS)
    if responses.get(MOBILITY_OTHER_QUESTION):
        mobility.append(str(responses[MOBILITY_OTHER_QUESTION]))

    sensory = _tags(responses, SENSORY_QUESTION, _SENSORY_OPTIONS)
    if responses.get(SENSORY_OTHER_QUESTION):
        sensory.append(str(responses[SENSORY_OTHER_QUESTION]))

    return ClientPreference(
        client_id=client_id,
        name=name,
        email=email,
        mobility_needs=mobility,
        sensory_preferences=sensory,
        physical_needs=_tags(responses, PHYSICAL_QUESTION, _PHYSICAL_OPTIONS),
        support_needs=_tags(responses, SUPPORT_QUESTION, _SUPPORT_OPTIONS),
        room_consistency=ROOM_CONSISTENCY_ANSWERS.get(responses.get(CONSISTENCY_QUESTION), 3),
        assigned_office=assigned_office,
        additional_notes=str(responses.get(NOTES_QUESTION) or "")
    )
