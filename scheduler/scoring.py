"""
Weighted Scoring Engine for the Therapy Office Allocator.

This module determines how good a valid office is for a request.
Unlike hard constraints (binary Yes/No), this adds up points from
clinician ownership, assignment rules, client preferences and session type.
Reasons prefixed with 'HARD:' mark matches the engine must prefer.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from models import (
    Office,
    Clinician,
    AssignmentRule,
    ClientPreference,
    RuleType,
    SchedulingRequest,
    SchedulingConflict,
    SessionType,
    OfficeSize,
    EvaluationEntry
)
from .errors import RuleConditionError
from .settings import (
    PRIMARY_CLINICIAN_POINTS,
    ALTERNATIVE_CLINICIAN_POINTS,
    PREFERRED_OFFICE_POINTS,
    RULE_POINTS,
    ROOM_CONSISTENCY_POINTS,
    MOBILITY_POINTS,
    FEATURE_MATCH_POINTS,
    GROUP_SESSION_POINTS,
    FAMILY_SESSION_POINTS,
    HARD_REASON_PREFIX
)

_AGE_CLAUSE = re.compile(r"(>=|<=|>|<|==|=)\s*(\d+)")


@dataclass
class OfficeScore:
    """Running score for one candidate office."""
    office: Office
    score: int = 0
    reasons: List[str] = field(default_factory=list)
    conflicts: List[SchedulingConflict] = field(default_factory=list)
    log: List[EvaluationEntry] = field(default_factory=list)

    @property
    def is_hard_match(self) -> bool:
        return any(r.startswith(HARD_REASON_PREFIX) for r in self.reasons)

    def note(self, stage: str, detail: str, points: int = 0) -> None:
        self.log.append(EvaluationEntry(stage=stage, detail=detail, office_id=self.office.office_id, points=points))

    def add(self, points: int, reason: str, stage: str, detail: str) -> None:
        self.score += points
        self.reasons.append(reason)
        self.note(stage, detail, points)


def parse_age_condition(rule: AssignmentRule) -> List[Tuple[str, int]]:
    """
    Parses '>12 && <=17', '<=12', '>=65' (an optional 'age' word is ignored)
    into (operator, bound) clauses. Raises RuleConditionError on anything else.
    """
    clauses = []
    for part in rule.condition.split("&&"):
        if not part.strip():
            raise RuleConditionError(rule.rule_name, rule.condition, "Empty clause")
        match = _AGE_CLAUSE.search(part)
        if not match:
            raise RuleConditionError(rule.rule_name, rule.condition)
        clauses.append((match.group(1), int(match.group(2))))
    return clauses


def age_satisfies(clauses: List[Tuple[str, int]], age: int) -> bool:
    for op, bound in clauses:
        if op == ">" and not age > bound: return False
        if op == ">=" and not age >= bound: return False
        if op == "<" and not age < bound: return False
        if op == "<=" and not age <= bound: return False
        if op in ("=", "==") and age != bound: return False
    return True


def parse_session_condition(rule: AssignmentRule) -> str:
    """Accepts 'group', "session_type == 'group'" and similar forms."""
    text = rule.condition.split("=")[-1].strip().strip("'\"").strip().lower()
    if not text:
        raise RuleConditionError(rule.rule_name, rule.condition, "Missing session type")
    return text


class OfficeScorer:
    """
    Evaluates candidate offices based on weighted matches.
    Rules are applied highest priority first; since every matching rule adds
    points, the order only affects the evaluation log.
    """

    def __init__(self, rules: List[AssignmentRule], client_preference: Optional[ClientPreference] = None):
        active = [r for r in rules if r.active]
        self.rules = sorted(active, key=lambda r: r.priority, reverse=True)
        self.client_preference = client_preference

    def score_office(
        self,
        office: Office,
        request: SchedulingRequest,
        clinician: Clinician,
        conflicts: Optional[List[SchedulingConflict]] = None
    ) -> OfficeScore:
        """
        Master scoring function. An office with time conflicts is scored 0
        and carries its conflicts instead of points.
        """
        result = OfficeScore(office=office)
        result.note("score", "Starting evaluation")

        # 1. Time conflicts stop scoring
        if conflicts:
            result.conflicts = list(conflicts)
            result.note("conflict", f"Found {len(conflicts)} time conflicts, score held at 0")
            return result

        # 2. Clinician ownership
        self._score_clinician(result, office, clinician)

        # 3. Assignment rules
        for rule in self.rules:
            points, reason, entries = self.evaluate_rule(rule, office, request)
            result.log.extend(entries)
            if points > 0:
                result.score += points
                result.reasons.append(reason)

        # 4. Client preferences
        self._score_client_preferences(result, office)

        # 5. Session type
        self._score_session_type(result, office, request)

        result.note("score", f"Final score: {result.score}", result.score)
        return result

    def _score_clinician(self, result: OfficeScore, office: Office, clinician: Clinician) -> None:
        if office.primary_clinician == clinician.clinician_id:
            result.add(
                PRIMARY_CLINICIAN_POINTS,
                f"{HARD_REASON_PREFIX} Primary clinician office",
                "clinician",
                f"Added {PRIMARY_CLINICIAN_POINTS} points: Primary clinician office"
            )
        elif clinician.clinician_id in office.alternative_clinicians:
            result.add(
                ALTERNATIVE_CLINICIAN_POINTS,
                "Alternative clinician office",
                "clinician",
                f"Added {ALTERNATIVE_CLINICIAN_POINTS} points: Alternative clinician office"
            )

        if office.office_id in clinician.preferred_offices:
            result.add(
                PREFERRED_OFFICE_POINTS,
                "Clinician preferred office",
                "clinician",
                f"Added {PREFERRED_OFFICE_POINTS} points: Clinician preferred office"
            )

    def evaluate_rule(
        self,
        rule: AssignmentRule,
        office: Office,
        request: SchedulingRequest
    ) -> Tuple[int, str, List[EvaluationEntry]]:
        """
        Returns (points, reason, log entries) for a single rule.
        A condition that cannot be parsed is logged and worth nothing.
        """
        name = rule.rule_name or rule.rule_type
        reason = f"{HARD_REASON_PREFIX} {name}" if rule.is_hard else name

        def entry(detail: str, points: int = 0) -> EvaluationEntry:
            return EvaluationEntry(stage="rule", detail=detail, office_id=office.office_id, points=points)

        if office.office_id not in rule.office_ids:
            return 0, "", [entry(f"Rule {name} doesn't apply to this office")]

        weights = RULE_POINTS.get(rule.rule_type)
        if weights is None:
            return 0, "", [entry(f"Rule {name} ({rule.rule_type}) carries no scoring weight")]
        points = weights[0] if rule.is_hard else weights[1]

        try:
            if rule.rule_type == RuleType.ACCESSIBILITY:
                matched = request.needs_accessibility and office.is_accessible
                label = "accessibility match"

            elif rule.rule_type == RuleType.AGE_GROUP:
                clauses = parse_age_condition(rule)
                matched = request.client_age is not None and age_satisfies(clauses, request.client_age)
                label = "age group match"

            else:
                matched = request.session_type == parse_session_condition(rule)
                label = "session type match"

        except ValueError as e:
            return 0, "", [EvaluationEntry(stage="error", detail=str(e), office_id=office.office_id)]

        if not matched:
            return 0, "", [entry(f"No points added for rule {name}")]
        return points, reason, [entry(f"Added {points} points for {label} ({name})", points)]

    def _score_client_preferences(self, result: OfficeScore, office: Office) -> None:
        pref = self.client_preference
        if pref is None:
            result.note("preference", "No client preferences available")
            return

        if pref.assigned_office and pref.assigned_office == office.office_id:
            room_score = pref.room_consistency * ROOM_CONSISTENCY_POINTS
            result.add(room_score, "Previous office match", "preference",
                       f"Added {room_score} points for previous office match")

        if pref.mobility_needs and office.is_accessible:
            result.add(MOBILITY_POINTS, "Meets mobility needs", "preference",
                       f"Added {MOBILITY_POINTS} points for mobility needs match")

        matching = [f for f in pref.feature_wishes if f in office.special_features]
        if matching:
            feature_score = len(matching) * FEATURE_MATCH_POINTS
            result.add(feature_score, "Matches sensory preferences", "preference",
                       f"Added {feature_score} points for feature matches: {', '.join(matching)}")

    def _score_session_type(self, result: OfficeScore, office: Office, request: SchedulingRequest) -> None:
        if request.session_type == SessionType.GROUP and "group" in office.special_features:
            result.add(GROUP_SESSION_POINTS, "Suitable for group sessions", "session",
                       f"Added {GROUP_SESSION_POINTS} points for group session capability")
        elif request.session_type == SessionType.FAMILY and office.size == OfficeSize.LARGE:
            result.add(FAMILY_SESSION_POINTS, "Suitable size for family sessions", "session",
                       f"Added {FAMILY_SESSION_POINTS} points for family session size")
