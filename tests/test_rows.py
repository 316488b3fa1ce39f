"""
Tests for sheet row parsing and the intake accessibility form
"""

from datetime import datetime

import pytest
import pytz

from models import (
    OfficeSize,
    ClinicianRole,
    OverrideLevel,
    AppointmentStatus,
    AppointmentSource,
    parse_office_row,
    parse_clinician_row,
    parse_rule_row,
    parse_client_preference_row,
    parse_appointment_row,
    parse_accessibility_form
)

APPOINTMENT_PREFIX = ["APT-1", "CL-1001", "Jordan", "C1", "Dr. Rivera", "A-a", "in-person",
                      "2025-03-14T14:00:00Z", "2025-03-14T15:00:00Z", "scheduled", "", "manual"]


class TestOfficeRow:

    def test_full_row(self):
        row = ["b1", "Group Room", "1", "TRUE", "downstairs", "TRUE", "large",
               "adult, family", "group, natural_light", "C1", "C2, C3", "FALSE", "Big table"]

        office = parse_office_row(row)

        assert office.office_id == "B-1"
        assert office.in_service
        assert office.is_accessible
        assert office.size == OfficeSize.LARGE
        assert office.special_features == ["group", "natural_light"]
        assert office.alternative_clinicians == ["C2", "C3"]
        assert not office.is_flex_space
        assert office.notes == "Big table"

    def test_short_row_defaults(self):
        office = parse_office_row(["A-a", "Small Room"])

        assert office.office_id == "A-a"
        assert not office.in_service
        assert office.size == OfficeSize.MEDIUM
        assert office.primary_clinician is None
        assert office.special_features == []


class TestClinicianRow:

    def test_numbers_and_lists(self):
        row = ["C1", "Dr. Rivera", "rivera@example.com", "Owner", "5", "17", "anxiety, play",
               "30", "22", "a-a, b1", "TRUE", "", "4411"]

        clinician = parse_clinician_row(row)

        assert clinician.role == ClinicianRole.OWNER
        assert clinician.age_range_min == 5
        assert clinician.age_range_max == 17
        assert clinician.preferred_offices == ["A-a", "B-1"]
        assert clinician.certifications == []
        assert clinician.practitioner_id == "4411"

    def test_bad_numbers_default(self):
        clinician = parse_clinician_row(["C2", "Dr. Chen", "", "wizard", "n/a"])

        assert clinician.role == ClinicianRole.CLINICIAN
        assert clinician.age_range_min == 0
        assert clinician.age_range_max == 120


class TestRuleRow:

    def test_rule(self):
        rule = parse_rule_row(["90", "Kids rooms", "Age_Group", ">5 && <=12", "a-a, A-b", "HARD", "TRUE", ""])

        assert rule.priority == 90
        assert rule.rule_type == "age_group"
        assert rule.office_ids == ["A-a", "A-b"]
        assert rule.override_level == OverrideLevel.HARD
        assert rule.active

    def test_overflowing_priority_defaults(self):
        rule = parse_rule_row(["inf", "x", "fixed", "", "A-a"])
        assert rule.priority == 0

    @pytest.mark.parametrize("cell", ["nan", "-inf", "1e999"])
    def test_non_finite_numbers_default(self, cell):
        clinician = parse_clinician_row(["C1", "Dr. Rivera", "", "clinician", cell, cell])

        assert clinician.age_range_min == 0
        assert clinician.age_range_max == 120

    def test_inactive_unless_true(self):
        rule = parse_rule_row(["1", "x", "fixed", "", "", "", "yes"])

        assert not rule.active
        assert rule.override_level == OverrideLevel.NONE


class TestClientPreferenceRow:

    def test_json_lists(self):
        row = ["CL-1001", "Jordan", "", '["wheelchair_access"]', '["natural_light"]', "[]", "5",
               '["service_animal"]', "notes", "2025-01-01", "C1", "b1"]

        pref = parse_client_preference_row(row)

        assert pref.mobility_needs == ["wheelchair_access"]
        assert pref.sensory_preferences == ["natural_light"]
        assert pref.physical_needs == []
        assert pref.room_consistency == 5
        assert pref.support_needs == ["service_animal"]
        assert pref.preferred_clinician == "C1"
        assert pref.assigned_office == "B-1"

    def test_lenient_lists_and_out_of_range_consistency(self):
        pref = parse_client_preference_row(["CL-1002", "", "", "['crutches', 'boot'", "", "", "9"])

        assert pref.mobility_needs == ["crutches", "boot"]
        assert pref.room_consistency == 3
        assert pref.assigned_office is None


class TestAppointmentRow:

    def test_full_row(self):
        row = ["APT-1", "CL-1001", "Jordan", "C1", "Dr. Rivera", "a a", "Telehealth",
               "2025-03-14T14:00:00Z", "2025-03-14T15:00:00Z", "scheduled", "2025-03-13T09:00:00Z",
               "intakeq", '{"accessibility": true, "specialFeatures": ["window"]}', "first visit", ""]

        record = parse_appointment_row(row)

        assert record.office_id == "A-a"
        assert record.session_type == "telehealth"
        assert record.start_time == datetime(2025, 3, 14, 14, tzinfo=pytz.UTC)
        assert record.source == AppointmentSource.INTAKEQ
        assert record.requirements.accessibility
        assert record.requirements.special_features == ["window"]
        assert record.suggested_office_id == "A-a"
        assert record.is_well_formed

    def test_names_default_to_ids(self):
        record = parse_appointment_row(["APT-2", "CL-1002", "", "C2", "", "B-b"])

        assert record.client_name == "CL-1002"
        assert record.clinician_name == "C2"
        assert record.status == AppointmentStatus.SCHEDULED

    def test_bad_dates_produce_unusable_record(self):
        record = parse_appointment_row(["APT-3", "CL-1", "", "C1", "", "B-b", "in-person", "tomorrow", ""])

        assert record.start_time is None
        assert record.end_time is None
        assert not record.is_well_formed

    def test_bad_requirements_json(self):
        record = parse_appointment_row(["APT-4", "CL-1", "", "C1", "", "B-b", "", "", "", "", "", "", "{oops"])
        assert not record.requirements.accessibility

    def test_non_string_features_are_coerced(self):
        record = parse_appointment_row(APPOINTMENT_PREFIX + ['{"accessibility": true, "specialFeatures": [1, null]}'])

        assert record.requirements.accessibility
        assert record.requirements.special_features == ["1"]

    def test_bare_string_feature_is_one_item(self):
        record = parse_appointment_row(APPOINTMENT_PREFIX + ['{"special_features": "group"}'])
        assert record.requirements.special_features == ["group"]

    def test_numeric_room_preference_dropped(self):
        record = parse_appointment_row(APPOINTMENT_PREFIX + ['{"room_preference": 5, "accessibility": true}'])

        assert record.requirements.room_preference is None
        assert record.requirements.accessibility

    def test_bad_row_does_not_stop_the_batch(self):
        rows = [
            APPOINTMENT_PREFIX + ['{"specialFeatures": [{"nested": 1}], "roomPreference": ["A-a"]}'],
            ["APT-2", "CL-2", "", "C2", "", "B-b", "in-person",
             "2025-03-14T15:00:00Z", "2025-03-14T16:00:00Z"],
        ]

        records = [parse_appointment_row(row) for row in rows]

        assert [r.appointment_id for r in records] == ["APT-1", "APT-2"]
        assert records[0].requirements.room_preference is None


class TestAccessibilityForm:

    def test_mapping(self):
        responses = {
            "Do you use any mobility devices?": ["Wheelchair"],
            "Access needs related to mobility/disability (Please specify)": "Ramp",
            "Do you experience sensory sensitivities?": ["Light sensitivity", "Auditory sensitivity"],
            "Do you experience challenges with physical environment?": ["Need to see the door"],
            "Please indicate your comfort level with this possibility:": "1 - Strong preference for consistency",
            "Do you have support needs that involve any of the following?": ["A support person present"],
            "Is there anything else we should know about your space or accessibility needs?": "Quiet please",
        }

        pref = parse_accessibility_form("CL-1001", responses, name="Jordan")

        assert pref.mobility_needs == ["wheelchair_access", "Ramp"]
        assert pref.sensory_preferences == ["light_sensitive", "sound_sensitive"]
        assert pref.physical_needs == ["door_visible"]
        assert pref.support_needs == ["support_person"]
        assert pref.room_consistency == 5
        assert pref.additional_notes == "Quiet please"

    def test_room_consistency_scale(self):
        key = "Please indicate your comfort level with this possibility:"

        assert parse_accessibility_form("c", {key: "5 - Very comfortable with room changes when needed"}).room_consistency == 1
        assert parse_accessibility_form("c", {key: "something else"}).room_consistency == 3
        assert parse_accessibility_form("c", {}).room_consistency == 3
