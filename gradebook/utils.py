"""
Report helpers for the gradebook app.

These functions load a subject's records and feed them to the pure
aggregation in ``gradebook.aggregation``.
"""
import logging
from dataclasses import dataclass
from typing import Tuple

from django.core.exceptions import ValidationError
from django.utils import timezone

from core.calendar import get_academic_calendar
from core.scheduling import FINAL_PERIOD_KEY, PeriodWindow, expand_schedule, resolve_grading_periods
from core.utils import parse_iso_date, utc_date

from . import config
from .aggregation import GradeSummary, aggregate_grades, summarize_attendance
from .models import Grade

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StudentReport:
    student: object
    period: PeriodWindow
    summary: GradeSummary
    attended_dates: Tuple
    missed_dates: Tuple

    @property
    def final_score(self):
        return self.summary.final_score

    @property
    def per_criterion(self):
        return self.summary.results

    def as_dict(self):
        data = self.summary.as_dict()
        data.update({
            'student': {'id': self.student.pk, 'name': self.student.name},
            'period': self.period.as_dict(),
            'attended_dates': [d.isoformat() for d in self.attended_dates],
            'missed_dates': [d.isoformat() for d in self.missed_dates],
            'qr_code': self.student.get_qr_code(),
        })
        return data


def semester_start():
    return parse_iso_date(config.SEMESTER_START)


def today_utc():
    return utc_date(timezone.now())


def grading_periods(subject):
    """Date windows of the subject's grading periods, "final" first."""
    return resolve_grading_periods(subject.grading_periods_dates, semester_start())


def scheduled_session_dates(subject, as_of=None, calendar=None):
    """
    Class days of ``subject`` from the semester start up to ``as_of``.

    Holidays and vacations are skipped. A subject without a schedule has
    no class days.
    """
    calendar = calendar or get_academic_calendar()
    as_of = as_of or today_utc()
    return expand_schedule(subject.schedule_days, semester_start(), as_of, calendar)


def get_period(subject, period_key):
    periods = grading_periods(subject)
    window = periods.get(str(period_key))
    if window is None:
        raise ValidationError(
            f"Grading period '{period_key}' is not configured for {subject.name}. "
            f"Available: {', '.join(periods)}."
        )
    return window


def student_report(
    student,
    subject,
    criteria,
    assignments,
    grades,
    attendance_records,
    participations,
    selected_period_key=FINAL_PERIOD_KEY,
    as_of=None,
    calendar=None,
    convention=None,
    include_empty_weight=None,
):
    """
    Build the grade report of one student for one grading period.

    Records of other students in ``grades``, ``attendance_records`` and
    ``participations`` are ignored, so whole-class lists can be passed in.

    The final score uses ``GRADEBOOK_FINAL_SCORE_CONVENTION`` unless
    ``convention`` is given.
    """
    window = get_period(subject, selected_period_key)
    convention = convention or config.FINAL_SCORE_CONVENTION
    if include_empty_weight is None:
        include_empty_weight = config.INCLUDE_EMPTY_CRITERIA_WEIGHT

    sessions = [day for day in scheduled_session_dates(subject, as_of, calendar) if day in window]
    attendance = summarize_attendance(
        [r.created_at for r in attendance_records if r.student_id == student.pk],
        sessions,
    )
    summary = aggregate_grades(
        criteria=criteria,
        assignments=assignments,
        grades=[g for g in grades if g.student_id == student.pk],
        attendance=attendance,
        participations=[p for p in participations if p.student_id == student.pk],
        window=window,
        convention=convention,
        include_empty_weight=include_empty_weight,
    )
    return StudentReport(student, window, summary, attendance.attended, attendance.missed)


def load_subject_records(subject):
    """Fetch everything a report needs for ``subject`` in a handful of queries."""
    return {
        'criteria': list(subject.evaluation_criteria.all()),
        'assignments': list(subject.assignments.all()),
        'grades': list(Grade.objects.filter(assignment__subject=subject)),
        'attendance_records': list(subject.attendance_records.only('student', 'created_at')),
        'participations': list(subject.participations.all()),
    }


def build_student_report(student, period_key=FINAL_PERIOD_KEY, as_of=None, calendar=None):
    subject = student.subject
    return student_report(
        student, subject, selected_period_key=period_key, as_of=as_of, calendar=calendar,
        **load_subject_records(subject),
    )


def build_class_report(subject, period_key=FINAL_PERIOD_KEY, as_of=None, calendar=None):
    """Reports for every student of the subject, sharing one set of queries."""
    get_period(subject, period_key)
    records = load_subject_records(subject)
    reports = [
        student_report(
            student, subject, selected_period_key=period_key, as_of=as_of, calendar=calendar, **records
        )
        for student in subject.students.all()
    ]
    logger.info(f"Built {len(reports)} reports for {subject} ({period_key})")
    return reports
