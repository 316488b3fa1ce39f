"""
Daily Report Rendering.

Turns a DailyScheduleSummary into an email-ready subject, a plain-text body
(used by the runner and the logging notifier) and an HTML body.
Times are shown in the clinic time zone.
"""

import html
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import pytz

from models import DailyScheduleSummary, ScheduleAlert, ScheduleConflict, Severity
from .timeutils import as_utc, clinic_timezone, format_local_time

# severity -> (background, text)
SEVERITY_COLORS = {
    Severity.HIGH: ("#fee2e2", "#991b1b"),
    Severity.MEDIUM: ("#fef3c7", "#92400e"),
    Severity.LOW: ("#d1fae5", "#065f46"),
}
DEFAULT_COLORS = ("#f3f4f6", "#1f2937")

_CELL = 'style="padding: 12px; text-align: left;"'


def build_subject(summary: DailyScheduleSummary) -> str:
    subject = f"Daily Schedule - {summary.date.isoformat()}"
    if any(a.severity == Severity.HIGH for a in summary.alerts):
        return f"{subject} - HIGH PRIORITY ALERTS"
    if summary.conflicts:
        return f"{subject} - Conflicts Detected"
    return subject


@dataclass
class DailyReport:
    subject: str
    text: str
    html: str

    @classmethod
    def from_summary(cls, summary: DailyScheduleSummary, generated_at: Optional[datetime] = None) -> "DailyReport":
        generated = as_utc(generated_at or datetime.now(pytz.UTC)).astimezone(clinic_timezone())
        stamp = generated.strftime("%Y-%m-%d %I:%M %p %Z")
        return cls(
            subject=build_subject(summary),
            text=_render_text(summary, stamp),
            html=_render_html(summary, stamp),
        )


def _sorted_appointments(summary: DailyScheduleSummary):
    timed = [a for a in summary.appointments if a.start_time]
    return sorted(timed, key=lambda a: as_utc(a.start_time))


def _time_range(appt) -> str:
    return f"{format_local_time(appt.start_time)} - {format_local_time(appt.end_time)}"


# --- Plain Text ---

def _render_text(summary: DailyScheduleSummary, stamp: str) -> str:
    lines = [f"Daily Schedule - {summary.date.isoformat()}", ""]

    if summary.alerts:
        lines.append("ALERTS")
        lines.extend(f"  [{a.severity.value.upper()}] {a.type.value.upper()}: {a.message}" for a in summary.alerts)
        lines.append("")

    if summary.conflicts:
        lines.append("CONFLICTS")
        for c in summary.conflicts:
            line = f"  [{c.severity.value.upper()}] {c.type.value}: {c.description}"
            if c.appointment_ids:
                line += f" (appointments: {', '.join(c.appointment_ids)})"
            lines.append(line)
        lines.append("")

    lines.append("APPOINTMENTS")
    appointments = _sorted_appointments(summary)
    if not appointments:
        lines.append("  (none)")
    for appt in appointments:
        status = f" [{appt.status.value}]" if not appt.is_active else ""
        lines.append(
            f"  {_time_range(appt):<20} {appt.office_id:<6} {appt.client_name or appt.client_id} "
            f"with {appt.clinician_name or appt.clinician_id} ({appt.session_type}){status}"
        )
    lines.append("")

    lines.append("OFFICE UTILIZATION")
    for office_id, usage in summary.office_utilization.items():
        notes = f"  {', '.join(usage.special_notes)}" if usage.special_notes else ""
        lines.append(f"  {office_id:<6} {round(usage.utilization * 100):>3}% ({usage.booked_slots}/{usage.total_slots}){notes}")

    if summary.skipped_records:
        lines.append("")
        lines.append(f"Skipped {len(summary.skipped_records)} unusable records: {', '.join(summary.skipped_records)}")

    lines.append("")
    lines.append(f"Generated on {stamp}")
    return "\n".join(lines)


# --- HTML ---

def _badge_list(title: str, items: List[str]) -> str:
    if not items:
        return ""
    return (
        f'<div style="margin: 20px 0;"><h2 style="color: #2d3748;">{title}</h2>'
        f'<ul style="list-style-type: none; padding: 0;">{"".join(items)}</ul></div>'
    )


def _badge(severity: Severity, body: str) -> str:
    background, color = SEVERITY_COLORS.get(severity, DEFAULT_COLORS)
    return (
        f'<li style="margin: 10px 0; padding: 10px; border-radius: 4px; '
        f'background-color: {background}; color: {color};">{body}</li>'
    )


def _alert_item(alert: ScheduleAlert) -> str:
    return _badge(alert.severity, f"{alert.type.value.upper()}: {html.escape(alert.message)}")


def _conflict_item(conflict: ScheduleConflict) -> str:
    body = f"<strong>{conflict.type.value}:</strong> {html.escape(conflict.description)}"
    if conflict.office_id:
        body += f"<br>(Office: {html.escape(conflict.office_id)})"
    if conflict.appointment_ids:
        body += f"<br>Appointments: {html.escape(', '.join(conflict.appointment_ids))}"
    return _badge(conflict.severity, body)


def _table(title: str, headers: List[str], rows: List[List[str]]) -> str:
    head = "".join(f"<th {_CELL}>{h}</th>" for h in headers)
    body = "".join(
        "<tr>" + "".join(f"<td {_CELL}>{html.escape(cell)}</td>" for cell in row) + "</tr>"
        for row in rows
    )
    return (
        f'<div style="margin: 20px 0;"><h2 style="color: #2d3748;">{title}</h2>'
        f'<table style="width: 100%; border-collapse: collapse;"><thead><tr>{head}</tr></thead>'
        f"<tbody>{body}</tbody></table></div>"
    )


def _render_html(summary: DailyScheduleSummary, stamp: str) -> str:
    appointment_rows = [
        [_time_range(a), a.office_id, a.client_name or a.client_id, a.clinician_name or a.clinician_id, a.session_type]
        for a in _sorted_appointments(summary)
    ]
    utilization_rows = [
        [office_id, f"{round(u.utilization * 100)}%", ", ".join(u.special_notes)]
        for office_id, u in summary.office_utilization.items()
    ]

    sections = [
        f"<h1>Daily Schedule - {summary.date.isoformat()}</h1>",
        _badge_list("Alerts", [_alert_item(a) for a in summary.alerts]),
        _badge_list("Conflicts", [_conflict_item(c) for c in summary.conflicts]),
        _table("Appointments", ["Time", "Office", "Client", "Clinician", "Type"], appointment_rows),
        _table("Office Utilization", ["Office", "Utilization", "Notes"], utilization_rows),
        f'<hr><p style="color: #666; font-size: 12px;">Generated on {html.escape(stamp)}</p>',
    ]
    return f'<div style="font-family: Arial, sans-serif;">{"".join(sections)}</div>'
