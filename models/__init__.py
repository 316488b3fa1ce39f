"""
Data models package for the Therapy Office Allocator.

This package exports the three core pillars of the data architecture:
1. Supply (Office, Clinician, AssignmentRule, ClientPreference)
2. Demand (SchedulingRequest and the engine's SchedulingResult)
3. Output (AppointmentRecord, DailyScheduleSummary)

plus positional parsers for the configuration sheet tabs and intake form.
"""

from .office_id import (
    standardize_office_id,
    is_valid_office_id,
    parse_office_id,
    format_office_id
)

from .office import (
    Office,
    OfficeSize,
    Clinician,
    ClinicianRole,
    AssignmentRule,
    RuleType,
    OverrideLevel,
    ClientPreference
)

from .request import (
    SessionType,
    SessionRequirements,
    SchedulingRequest,
    ResolutionType,
    ConflictResolution,
    SchedulingConflict,
    EvaluationEntry,
    SchedulingErrorType,
    SchedulingResult
)

from .schedule import (
    AppointmentRecord,
    AppointmentStatus,
    AppointmentSource,
    Severity,
    ConflictType,
    AlertType,
    ScheduleConflict,
    ScheduleAlert,
    OfficeUtilization,
    DailyScheduleSummary
)

from .rows import (
    parse_office_row,
    parse_clinician_row,
    parse_rule_row,
    parse_client_preference_row,
    parse_appointment_row,
    parse_accessibility_form
)

__all__ = [
    # --- Office Id Helpers ---
    "standardize_office_id",
    "is_valid_office_id",
    "parse_office_id",
    "format_office_id",

    # --- Supply Models ---
    "Office",
    "OfficeSize",
    "Clinician",
    "ClinicianRole",
    "AssignmentRule",
    "RuleType",
    "OverrideLevel",
    "ClientPreference",

    # --- Demand Models ---
    "SessionType",
    "SessionRequirements",
    "SchedulingRequest",
    "ResolutionType",
    "ConflictResolution",
    "SchedulingConflict",
    "EvaluationEntry",
    "SchedulingErrorType",
    "SchedulingResult",

    # --- Output Models ---
    "AppointmentRecord",
    "AppointmentStatus",
    "AppointmentSource",
    "Severity",
    "ConflictType",
    "AlertType",
    "ScheduleConflict",
    "ScheduleAlert",
    "OfficeUtilization",
    "DailyScheduleSummary",

    # --- Sheet Row Parsers ---
    "parse_office_row",
    "parse_clinician_row",
    "parse_rule_row",
    "parse_client_preference_row",
    "parse_appointment_row",
    "parse_accessibility_form",
]
