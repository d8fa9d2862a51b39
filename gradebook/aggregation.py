"""
Grade and attendance aggregation.

Everything here works on values that were already loaded: model instances
or any objects exposing the same attributes. Nothing is queried or saved,
so the same inputs always give the same report.

Criterion types are aggregated by one function each, looked up in
``CRITERION_AGGREGATORS``.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from core.choices import CriterionType
from core.scheduling import FINAL_PERIOD_KEY, PeriodWindow
from core.utils import utc_date

SIMPLE = 'simple'
NORMALIZED = 'normalized'
CONVENTIONS = (SIMPLE, NORMALIZED)

MAX_AVERAGE = 10.0


@dataclass(frozen=True)
class AttendanceSummary:
    attended: Tuple[date, ...]
    missed: Tuple[date, ...]
    ratio: float

    @property
    def session_count(self):
        return len(self.attended) + len(self.missed)


@dataclass(frozen=True)
class LineItem:
    """One row under a criterion: an assignment or an automatic computation."""
    label: str
    score: Optional[float]


@dataclass(frozen=True)
class CriterionResult:
    criterion_id: object
    name: str
    type: str
    percentage: int
    has_content: bool
    average: Optional[float]
    items: Tuple[LineItem, ...] = ()

    @property
    def contribution(self):
        """Weighted points this criterion adds, in percent of the final grade."""
        if self.average is None:
            return 0.0
        return self.average / MAX_AVERAGE * self.percentage

    @property
    def is_graded(self):
        return self.average is not None

    def as_dict(self):
        return {
            'criterion_id': str(self.criterion_id),
            'name': self.name,
            'type': self.type,
            'percentage': self.percentage,
            'has_content': self.has_content,
            'average': self.average,
            'contribution': self.contribution,
            'items': [{'label': item.label, 'score': item.score} for item in self.items],
        }


@dataclass(frozen=True)
class GradeSummary:
    period_key: str
    convention: str
    results: Tuple[CriterionResult, ...]
    final_score: float

    @property
    def weighted_total(self):
        return sum(result.contribution for result in self.results)

    def as_dict(self):
        return {
            'period': self.period_key,
            'convention': self.convention,
            'per_criterion': [result.as_dict() for result in self.results],
            'final_score': self.final_score,
            'weighted_total': self.weighted_total,
        }


@dataclass
class GradingInputs:
    """Per-student data a criterion aggregator may read."""
    window: PeriodWindow
    attendance: AttendanceSummary
    assignments_by_criterion: Dict[str, list] = field(default_factory=dict)
    scores: Dict[str, float] = field(default_factory=dict)
    participations: Sequence = ()


def _as_day(value):
    if isinstance(value, datetime):
        return utc_date(value)
    return value


def summarize_attendance(student_timestamps: Iterable, instructional_dates: Sequence[date]) -> AttendanceSummary:
    """
    Split the instructional dates into attended and missed.

    ``student_timestamps`` are the student's attendance record times; each
    counts for its UTC calendar day. The ratio is 0 when there are no
    instructional dates.
    """
    present = {_as_day(ts) for ts in student_timestamps}
    attended = tuple(day for day in instructional_dates if day in present)
    missed = tuple(day for day in instructional_dates if day not in present)
    ratio = len(attended) / len(instructional_dates) if instructional_dates else 0.0
    return AttendanceSummary(attended, missed, ratio)


def _average_attendance(criterion, inputs: GradingInputs) -> CriterionResult:
    has_content = inputs.attendance.session_count > 0
    average = inputs.attendance.ratio * MAX_AVERAGE if has_content else None
    items = (LineItem('Automatic attendance calculation', average),) if has_content else ()
    return CriterionResult(
        criterion.id, criterion.name, criterion.type, criterion.percentage,
        has_content, average, items,
    )


def _average_participation(criterion, inputs: GradingInputs) -> CriterionResult:
    window = inputs.window
    in_window = [p for p in inputs.participations if _as_day(p.date) in window]
    total = sum(float(p.points) for p in in_window)
    max_points = float(criterion.max_points) if criterion.max_points is not None else None

    has_content = window.is_final or bool(in_window) or max_points is not None
    average = None
    if max_points is not None and max_points > 0:
        average = min(MAX_AVERAGE, MAX_AVERAGE * total / max_points)

    items = ()
    if has_content:
        limit = f'{max_points:g}' if max_points is not None else '-'
        items = (LineItem(f'Accumulated points: {total:.1f} / {limit}', average),)
    return CriterionResult(
        criterion.id, criterion.name, criterion.type, criterion.percentage,
        has_content, average, items,
    )


def _average_assignments(criterion, inputs: GradingInputs) -> CriterionResult:
    assignments = [
        a for a in inputs.assignments_by_criterion.get(str(criterion.id), [])
        if _as_day(a.created_at) in inputs.window
    ]
    items = tuple(LineItem(a.name, inputs.scores.get(str(a.id))) for a in assignments)
    graded = [item.score for item in items if item.score is not None]
    average = sum(graded) / len(graded) if graded else None
    return CriterionResult(
        criterion.id, criterion.name, criterion.type, criterion.percentage,
        bool(assignments), average, items,
    )


CRITERION_AGGREGATORS = {
    CriterionType.DEFAULT.value: _average_assignments,
    CriterionType.ATTENDANCE.value: _average_attendance,
    CriterionType.PARTICIPATION.value: _average_participation,
}


def criteria_for_period(criteria: Iterable, period_key: str) -> List:
    """All criteria for the final grade, otherwise those of the numbered period."""
    if period_key == FINAL_PERIOD_KEY:
        return list(criteria)
    return [c for c in criteria if str(c.grading_period) == str(period_key)]


def final_score(results: Sequence[CriterionResult], convention=NORMALIZED, include_empty_weight=True) -> float:
    """
    Roll per-criterion results up into one score.

    ``simple`` adds the weighted contributions as they are (0-100 when the
    weights total 100). ``normalized`` divides them by the total weight in
    scope and returns a 0-10 score. With ``include_empty_weight`` the weight
    of criteria that have no average stays in that total.
    """
    if convention not in CONVENTIONS:
        raise ValueError(f"Unknown final score convention: {convention}")

    raw = sum(result.contribution for result in results)
    if convention == SIMPLE:
        return raw

    total_weight = sum(
        result.percentage for result in results
        if include_empty_weight or result.average is not None
    )
    if not total_weight:
        return 0.0
    return raw / total_weight * 100 / MAX_AVERAGE


def aggregate_grades(
    criteria,
    assignments,
    grades,
    attendance: AttendanceSummary,
    participations,
    window: PeriodWindow,
    convention=NORMALIZED,
    include_empty_weight=True,
) -> GradeSummary:
    """
    Compute per-criterion averages and the final score of one student.

    Args:
        criteria: Evaluation criteria of the subject (all periods).
        assignments: Assignments of the subject.
        grades: The student's grades (objects with ``assignment_id`` and ``score``).
        attendance: The student's attendance summary for ``window``.
        participations: The student's participation entries.
        window: Grading period being reported; its key selects the criteria.
        convention: ``"normalized"`` (0-10) or ``"simple"`` (0-100).
        include_empty_weight: Keep ungraded criteria's weight in the
            normalized denominator.
    """
    by_criterion = {}
    for assignment in assignments:
        by_criterion.setdefault(str(assignment.evaluation_criterion_id), []).append(assignment)

    inputs = GradingInputs(
        window=window,
        attendance=attendance,
        assignments_by_criterion=by_criterion,
        scores={str(g.assignment_id): float(g.score) for g in grades},
        participations=list(participations),
    )

    results = []
    for criterion in criteria_for_period(criteria, window.key):
        aggregator = CRITERION_AGGREGATORS.get(str(criterion.type))
        if aggregator is None:
            raise ValueError(f"Unknown criterion type: {criterion.type}")
        results.append(aggregator(criterion, inputs))

    results = tuple(results)
    return GradeSummary(
        period_key=window.key,
        convention=convention,
        results=results,
        final_score=final_score(results, convention, include_empty_weight),
    )
