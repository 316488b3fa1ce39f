"""
Office identifier helpers.

Every office id that enters the system goes through standardize_office_id,
so that 'b1', 'B-1' and ' b - 1 ' all compare equal. The canonical form is
an uppercase floor letter, a dash, and a lowercase unit token: 'A-a', 'B-1'.
"""

import logging
import re
from typing import Optional, Tuple

from scheduler.settings import DEFAULT_OFFICE_ID

logger = logging.getLogger(__name__)

_CANONICAL = re.compile(r"^[A-Z]-[a-z0-9]+$")
_LOOSE = re.compile(r"^([A-Za-z])[\s\-_]*([A-Za-z0-9]+)$")


def standardize_office_id(office_id: Optional[str]) -> str:
    """Return the canonical form of an office id, or the default office if it cannot be parsed."""
    if not office_id:
        return DEFAULT_OFFICE_ID

    cleaned = str(office_id).strip()
    if _CANONICAL.match(cleaned):
        return cleaned

    match = _LOOSE.match(cleaned)
    if not match:
        logger.debug(f"Unparseable office id {office_id!r}, using default {DEFAULT_OFFICE_ID}")
        return DEFAULT_OFFICE_ID

    floor, unit = match.groups()
    return f"{floor.upper()}-{unit.lower()}"


def is_valid_office_id(office_id: str) -> bool:
    """True if the id is already in canonical form."""
    return bool(office_id) and bool(_CANONICAL.match(office_id))


def parse_office_id(office_id: str) -> Tuple[str, str]:
    """Split an office id into (floor, unit)."""
    floor, unit = standardize_office_id(office_id).split("-", 1)
    return floor, unit


def format_office_id(office_id: str) -> str:
    """Display form, e.g. 'Floor B, Unit 1'."""
    floor, unit = parse_office_id(office_id)
    return f"Floor {floor}, Unit {unit.upper()}"
