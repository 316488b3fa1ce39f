"""
Office catalog data models for the Therapy Office Allocator.

This module defines the 'Supply' side of the allocator:
1. Offices (Physical rooms with features and clinician associations)
2. Clinicians (Who prefers which rooms)
3. Assignment Rules and Client Preferences (What should influence the choice)
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, ConfigDict

from .office_id import standardize_office_id


class OfficeSize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class ClinicianRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    CLINICIAN = "clinician"
    INTERN = "intern"


class RuleType(str, Enum):
    """Kinds of assignment rules. Only some of them carry scoring weights."""
    ACCESSIBILITY = "accessibility"
    AGE_GROUP = "age_group"
    SESSION_TYPE = "session_type"
    FIXED = "fixed"
    ROOM_CONSISTENCY = "room_consistency"
    SPECIAL_FEATURES = "special_features"


class OverrideLevel(str, Enum):
    HARD = "hard"
    SOFT = "soft"
    NONE = "none"


class Office(BaseModel):
    """
    A physical therapy room.
    Snapshot per request; only the external store changes it between requests.
    """
    office_id: str = Field(description="Standardized id, e.g. 'A-a' or 'B-1'")
    name: str = Field(default="", description="Display name")
    unit: str = Field(default="")
    floor: str = Field(default="", description="'upstairs' or 'downstairs'")

    in_service: bool = Field(default=True)
    is_accessible: bool = Field(default=False, description="Wheelchair / ground-floor accessible")
    size: OfficeSize = Field(default=OfficeSize.MEDIUM)
    age_groups: List[str] = Field(default_factory=list)
    special_features: List[str] = Field(default_factory=list, description="e.g. 'group', 'natural_light'")

    primary_clinician: Optional[str] = Field(default=None, description="Clinician who owns this room")
    alternative_clinicians: List[str] = Field(default_factory=list)

    is_flex_space: bool = Field(default=False, description="Shared room that needs team coordination")
    notes: str = Field(default="")

    @field_validator("office_id")
    @classmethod
    def standardize_id(cls, v):
        return standardize_office_id(v)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "office_id": "B-1",
            "name": "Garden Room",
            "in_service": True,
            "is_accessible": True,
            "size": "large",
            "special_features": ["group", "natural_light"],
            "primary_clinician": "C1",
            "alternative_clinicians": ["C3"],
            "is_flex_space": False
        }
    })


class Clinician(BaseModel):
    """A therapist and the rooms they like to work in."""
    clinician_id: str = Field(description="Unique identifier")
    name: str = Field(default="")
    email: str = Field(default="")
    role: ClinicianRole = Field(default=ClinicianRole.CLINICIAN)

    age_range_min: int = Field(default=0, ge=0)
    age_range_max: int = Field(default=120, ge=0)
    specialties: List[str] = Field(default_factory=list)
    caseload_limit: int = Field(default=0, ge=0)
    current_caseload: int = Field(default=0, ge=0)

    preferred_offices: List[str] = Field(
        default_factory=list,
        description="Offices this clinician works from. Empty means no restriction."
    )
    allows_relationship: bool = Field(default=False)
    certifications: List[str] = Field(default_factory=list)
    practitioner_id: str = Field(default="", description="Id in the external booking system")

    @field_validator("preferred_offices")
    @classmethod
    def standardize_offices(cls, v):
        return [standardize_office_id(o) for o in v if o]


class AssignmentRule(BaseModel):
    """
    A weighted rule from the rules sheet.
    'condition' is free text, interpreted per rule_type.
    """
    priority: int = Field(default=0, description="Higher is evaluated first")
    rule_name: str = Field(default="")
    rule_type: str = Field(description="One of RuleType; unknown types score nothing")
    condition: str = Field(default="")
    office_ids: List[str] = Field(default_factory=list)
    override_level: OverrideLevel = Field(default=OverrideLevel.NONE)
    active: bool = Field(default=True)
    notes: str = Field(default="")

    @field_validator("office_ids")
    @classmethod
    def standardize_offices(cls, v):
        return [standardize_office_id(o) for o in v if o]

    @field_validator("rule_type")
    @classmethod
    def normalize_type(cls, v):
        return str(v).strip().lower()

    @property
    def is_hard(self) -> bool:
        return self.override_level == OverrideLevel.HARD

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "priority": 90,
            "rule_name": "Children's rooms",
            "rule_type": "age_group",
            "condition": ">5 && <=12",
            "office_ids": ["A-a", "A-b"],
            "override_level": "soft",
            "active": True
        }
    })


class ClientPreference(BaseModel):
    """Accessibility and comfort preferences recorded for one client."""
    client_id: str
    name: str = Field(default="")
    email: str = Field(default="")

    mobility_needs: List[str] = Field(default_factory=list)
    sensory_preferences: List[str] = Field(default_factory=list)
    physical_needs: List[str] = Field(default_factory=list)
    support_needs: List[str] = Field(default_factory=list)
    special_features: List[str] = Field(default_factory=list)

    room_consistency: int = Field(
        default=3,
        ge=1,
        le=5,
        description="1-5, 5 = strongest preference for staying in one room"
    )
    assigned_office: Optional[str] = Field(default=None, description="Previously assigned office")
    preferred_clinician: Optional[str] = Field(default=None)
    additional_notes: str = Field(default="")

    @field_validator("assigned_office")
    @classmethod
    def standardize_assigned(cls, v):
        return standardize_office_id(v) if v else None

    @property
    def feature_wishes(self) -> List[str]:
        """Sensory, physical and special-feature wishes, de-duplicated in order."""
        seen = []
        for item in self.sensory_preferences + self.physical_needs + self.special_features:
            if item and item not in seen:
                seen.append(item)
        return seen
