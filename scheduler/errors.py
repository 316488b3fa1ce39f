"""
Exceptions used across the allocator.

The assignment engine converts these into failed SchedulingResults at its
public boundary; the service layer lets AppointmentNotFoundError propagate.
"""


class SchedulingError(Exception):
    """Base class for allocator errors."""


class ClinicianNotFoundError(SchedulingError):
    """Raised when a request names a clinician that is not in the catalog."""

    def __init__(self, clinician_id: str):
        self.clinician_id = clinician_id
        super().__init__(f"Clinician {clinician_id} not found")


class AppointmentNotFoundError(SchedulingError):
    """Raised when an update or cancellation targets an unknown appointment."""

    def __init__(self, appointment_id: str):
        self.appointment_id = appointment_id
        super().__init__(f"Appointment {appointment_id} not found")


class RuleConditionError(ValueError):
    """Raised when an assignment rule's condition text cannot be interpreted."""

    def __init__(self, rule_name: str, condition: str, message: str = "Unparseable condition"):
        self.rule_name = rule_name
        self.condition = condition
        super().__init__(f"{message} in rule '{rule_name}': {condition!r}")
