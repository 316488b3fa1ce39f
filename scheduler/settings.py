"""
Configuration for the Therapy Office Allocator.

Module-level constants, a few of which can be overridden from the environment.
Everything the scoring engine and the daily aggregator treat as a tunable
number lives here so the algorithms never embed magic literals.
"""

import os

# --- Environment-driven settings ---
DEFAULT_OFFICE_ID = os.environ.get("OFFICE_DEFAULT_ID", "B-1")
CLINIC_TIMEZONE = os.environ.get("CLINIC_TIMEZONE", "America/New_York")

# --- Daily capacity model ---
# 8 hour day, one appointment-hour per slot
SLOTS_PER_OFFICE_DAY = 8
CRITICAL_UTILIZATION = 0.9
HIGH_UTILIZATION = 0.8

# --- Office scoring weights ---
PRIMARY_CLINICIAN_POINTS = 1000
ALTERNATIVE_CLINICIAN_POINTS = 500
PREFERRED_OFFICE_POINTS = 200

# (hard, soft) points per rule type
RULE_POINTS = {
    "accessibility": (1000, 200),
    "age_group": (800, 150),
    "session_type": (600, 100),
}

ROOM_CONSISTENCY_POINTS = 50   # multiplied by the 1-5 consistency score
MOBILITY_POINTS = 300
FEATURE_MATCH_POINTS = 50      # per matching sensory/physical feature

GROUP_SESSION_POINTS = 200
FAMILY_SESSION_POINTS = 150

HARD_REASON_PREFIX = "HARD:"

# --- Relocation priorities ---
SESSION_PRIORITIES = {
    "in-person": 100,
    "group": 75,
    "family": 75,
    "telehealth": 25,
}
UNKNOWN_SESSION_PRIORITY = 50
