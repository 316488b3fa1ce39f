"""
The Office Assignment Engine.

This module implements the core "Solver" logic.
It combines three strategies:
1. Hard Filtering (constraints.py) - Drops offices that can never work.
2. Conflict Detection (conflicts.py) - Zeroes offices that are already taken.
3. Weighted Scoring (scoring.py) - Ranks the rest, preferring HARD matches.

The engine is a pure function of its inputs: it owns no state between
calls and never raises past find_optimal_office.
"""

import logging
from typing import Dict, List, Optional

from models import (
    Office,
    Clinician,
    AssignmentRule,
    ClientPreference,
    SchedulingRequest,
    SchedulingResult,
    SchedulingErrorType,
    EvaluationEntry
)
from .constraints import OfficeFilter
from .conflicts import ConflictResolver
from .errors import ClinicianNotFoundError
from .scoring import OfficeScore, OfficeScorer
from .settings import DEFAULT_OFFICE_ID

logger = logging.getLogger(__name__)

NO_OFFICE_ERROR = "no offices match requirements"


class OfficeAssignmentEngine:
    """
    Main assignment engine.
    Ingests a request and a catalog snapshot, outputs a SchedulingResult.
    """

    def __init__(self, default_office_id: str = DEFAULT_OFFICE_ID):
        self.default_office_id = default_office_id

    def find_optimal_office(
        self,
        request: SchedulingRequest,
        offices: List[Office],
        rules: List[AssignmentRule],
        clinicians: List[Clinician],
        client_preference: Optional[ClientPreference] = None,
        existing_bookings_by_office: Optional[Dict[str, List[SchedulingRequest]]] = None
    ) -> SchedulingResult:
        """
        Execute the assignment pipeline.
        """
        log: List[EvaluationEntry] = [EvaluationEntry(
            stage="start",
            detail=(
                f"Office assignment for client {request.client_id} with clinician {request.clinician_id}: "
                f"{request.session_type} at {request.start.isoformat()} for {request.duration_minutes} min"
            )
        )]

        try:
            return self._assign(request, offices, rules, clinicians, client_preference,
                                existing_bookings_by_office, log)

        except ClinicianNotFoundError as e:
            log.append(EvaluationEntry(stage="error", detail=str(e)))
            return SchedulingResult(
                success=False,
                error=str(e),
                error_type=SchedulingErrorType.NOT_FOUND,
                retryable=False,
                evaluation_log=log
            )

        except Exception as e:
            logger.exception(f"Office assignment failed for client {request.client_id}")
            log.append(EvaluationEntry(stage="error", detail=f"Error in office assignment: {e}"))
            return SchedulingResult(
                success=False,
                error=str(e) or e.__class__.__name__,
                error_type=SchedulingErrorType.INTERNAL,
                retryable=False,
                evaluation_log=log
            )

    def _assign(
        self,
        request: SchedulingRequest,
        offices: List[Office],
        rules: List[AssignmentRule],
        clinicians: List[Clinician],
        client_preference: Optional[ClientPreference],
        existing_bookings_by_office: Optional[Dict[str, List[SchedulingRequest]]],
        log: List[EvaluationEntry]
    ) -> SchedulingResult:
        # 1. Resolve Clinician
        clinician = next((c for c in clinicians if c.clinician_id == request.clinician_id), None)
        if clinician is None:
            raise ClinicianNotFoundError(request.clinician_id)
        log.append(EvaluationEntry(stage="start", detail=f"Found clinician: {clinician.name or clinician.clinician_id} ({clinician.role.value})"))

        # 2. Hard Filter
        office_filter = OfficeFilter(offices)
        candidates, rejections = office_filter.filter_offices(request, clinician)
        for rejection in rejections:
            log.append(EvaluationEntry(stage="filter", detail=f"filtered: {rejection.reason}", office_id=rejection.office_id))
        log.append(EvaluationEntry(stage="filter", detail=f"Found {len(candidates)} initially valid offices"))

        # 3. Default Fallback
        if not candidates:
            default_office, rejection = office_filter.check_default_office(request, self.default_office_id)
            if default_office is None:
                log.append(EvaluationEntry(
                    stage="fallback",
                    detail=f"Default office unusable: {rejection.reason}",
                    office_id=rejection.office_id
                ))
                logger.info(f"No office for client {request.client_id}: {NO_OFFICE_ERROR}")
                return SchedulingResult(
                    success=False,
                    error=NO_OFFICE_ERROR,
                    error_type=SchedulingErrorType.NO_CANDIDATE,
                    retryable=False,
                    evaluation_log=log
                )
            log.append(EvaluationEntry(stage="fallback", detail="Falling back to default office", office_id=default_office.office_id))
            candidates = [default_office]

        # 4. Conflicts + Score
        resolver = ConflictResolver(offices, existing_bookings_by_office)
        scorer = OfficeScorer(rules, client_preference)

        scored: List[OfficeScore] = []
        for office in candidates:
            conflicts = resolver.check_conflicts(office.office_id, request)
            score = scorer.score_office(office, request, clinician, conflicts)
            scored.append(score)
            log.append(EvaluationEntry(stage="score", detail=f"Scored {score.score} points", office_id=office.office_id, points=score.score))
            log.extend(score.log)

        # 5. Pick Winner
        best = self._select(scored)
        log.append(EvaluationEntry(stage="select", detail=f"Selected with score {best.score}", office_id=best.office.office_id, points=best.score))
        if best.reasons:
            log.append(EvaluationEntry(stage="select", detail=f"Assignment reasons: {', '.join(best.reasons)}"))
        if best.conflicts:
            log.append(EvaluationEntry(stage="select", detail=f"Every candidate conflicts; returning {len(best.conflicts)} conflicts to caller"))

        logger.info(f"Assigned office {best.office.office_id} to client {request.client_id} (score {best.score})")

        return SchedulingResult(
            success=True,
            office_id=best.office.office_id,
            conflicts=best.conflicts,
            notes="; ".join(best.reasons),
            evaluation_log=log
        )

    def _select(self, scored: List[OfficeScore]) -> OfficeScore:
        """
        Conflict-free offices beat conflicting ones; within those, HARD matches
        beat the rest; then highest score. sorted() is stable, so ties keep
        catalog order.
        """
        pool = [s for s in scored if not s.conflicts] or scored
        hard_matches = [s for s in pool if s.is_hard_match]
        ranked = sorted(hard_matches or pool, key=lambda s: s.score, reverse=True)
        return ranked[0]
