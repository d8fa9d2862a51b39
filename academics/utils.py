"""
Utility functions for academics module: attendance taking and the attendance calendar.
"""
import calendar as _calendar
import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone as dt_timezone
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Sum
from django.utils import timezone

from core.scheduling import iso_weekday
from core.utils import parse_iso_date, utc_date, utc_noon

logger = logging.getLogger(__name__)


def utc_day_bounds(day):
    """Start (inclusive) and end (exclusive) of ``day`` in UTC."""
    start = datetime.combine(day, time.min, tzinfo=dt_timezone.utc)
    return start, start + timedelta(days=1)


def sessions_on(subject, day):
    from .models import AttendanceSession

    start, end = utc_day_bounds(day)
    return AttendanceSession.objects.filter(subject=subject, created_at__gte=start, created_at__lt=end)


def find_student_by_token(subject, token):
    """Resolve a decoded QR token (the student's name) within a subject."""
    from students.models import Student

    name = (token or '').strip()
    if not name:
        raise ValidationError("The scanned code is empty.")
    student = Student.objects.filter(subject=subject, name__iexact=name).first()
    if student is None:
        raise ValidationError(f"Student '{name}' not found in this subject.")
    return student


def register_scan(session, token):
    """
    Mark the student named by ``token`` as present in ``session``.

    Raises ValidationError when the student is unknown or already registered
    for this session; nothing is written in either case.
    """
    from .models import AttendanceRecord

    student = find_student_by_token(session.subject, token)
    record = AttendanceRecord(
        session=session,
        student=student,
        subject_id=session.subject_id,
        created_at=timezone.now(),
    )
    record.full_clean(validate_unique=False)

    try:
        with transaction.atomic():
            record.save()
    except IntegrityError:
        # Another scanner saved the same student first
        raise ValidationError(f"{student.name} is already registered for this session.")

    logger.info(f"Attendance registered: {student.name} in session {session.pk}")
    return record


def _students_for(subject, student_ids):
    from students.models import Student

    try:
        ids = {int(pk) for pk in student_ids}
    except (TypeError, ValueError):
        raise ValidationError("Student ids must be integers.")
    students = list(Student.objects.filter(subject=subject, pk__in=ids))
    if len(students) != len(ids):
        missing = ids - {s.pk for s in students}
        raise ValidationError(f"Unknown students for this subject: {sorted(missing)}")
    return students


def _create_session(subject, timestamp, students):
    from .models import AttendanceRecord, AttendanceSession

    with transaction.atomic():
        session = AttendanceSession.objects.create(subject=subject, created_at=timestamp)
        AttendanceRecord.objects.bulk_create([
            AttendanceRecord(session=session, student=student, subject=subject, created_at=timestamp)
            for student in students
        ])
    return session


def take_roll_call(subject, present_student_ids, now=None):
    """
    Record today's attendance for a whole class in one go.

    Only one session per subject and UTC day is allowed.
    """
    now = now or timezone.now()
    today = utc_date(now)
    if sessions_on(subject, today).exists():
        raise ValidationError(f"Attendance for {subject.name} has already been taken today.")

    students = _students_for(subject, present_student_ids)
    session = _create_session(subject, now, students)
    logger.info(f"Roll call for {subject}: {len(students)} present")
    return session


def is_class_day(subject, day, calendar):
    return iso_weekday(day) in subject.schedule_days and not calendar.is_non_instructional(day)


def record_manual_attendance(subject, class_date, present_student_ids, calendar, today=None):
    """
    Backfill attendance for a past class day.

    The session and its records are stamped at 12:00 UTC of ``class_date``
    so they fall on that day whatever the viewer's timezone.
    """
    try:
        class_date = parse_iso_date(class_date)
    except ValueError:
        raise ValidationError(f"'{class_date}' is not a valid date.")
    today = today or utc_date(timezone.now())

    if class_date > today:
        raise ValidationError("Attendance cannot be recorded for a future date.")
    if not is_class_day(subject, class_date, calendar):
        raise ValidationError(f"There is no class of {subject.name} on {class_date.isoformat()}.")
    if sessions_on(subject, class_date).exists():
        raise ValidationError(f"Attendance for {class_date.isoformat()} has already been recorded.")

    students = _students_for(subject, present_student_ids)
    session = _create_session(subject, utc_noon(class_date), students)
    logger.info(f"Manual attendance for {subject} on {class_date}: {len(students)} present")
    return session


def attendance_by_date(records):
    """Map each UTC day to the names of the students present."""
    by_date = defaultdict(list)
    for record in records:
        by_date[utc_date(record.created_at)].append(record.student.name)
    return dict(by_date)


def build_attendance_calendar(subject, year, month, calendar, today=None):
    """
    Day cells of one month of the attendance calendar.

    Past class days without attendance are offered for manual entry; days
    with attendance list who came and who did not.
    """
    from .models import AttendanceRecord

    today = today or utc_date(timezone.now())
    first = date(year, month, 1)
    _, days_in_month = _calendar.monthrange(year, month)
    last = date(year, month, days_in_month)

    month_start, _ = utc_day_bounds(first)
    _, month_end = utc_day_bounds(last)
    records = AttendanceRecord.objects.filter(
        subject=subject, created_at__gte=month_start, created_at__lt=month_end
    ).select_related('student')
    present = attendance_by_date(records)
    roster = list(subject.students.values_list('name', flat=True))
    schedule_days = subject.schedule_days

    days = []
    for number in range(1, days_in_month + 1):
        day = date(year, month, number)
        event = calendar.lookup(day)
        attendees = sorted(present.get(day, []))
        is_scheduled = iso_weekday(day) in schedule_days
        non_instructional = calendar.is_non_instructional(day)
        days.append({
            'date': day.isoformat(),
            'weekday': iso_weekday(day),
            'is_scheduled': is_scheduled,
            'is_today': day == today,
            'event': {'title': event.title, 'category': str(event.category)} if event else None,
            'has_attendance': bool(attendees),
            'attendees': attendees,
            'absentees': [name for name in roster if name not in attendees] if attendees else [],
            'can_add_manual': not attendees and day < today and is_scheduled and not non_instructional,
        })
    return {'year': year, 'month': month, 'days': days}


def add_participation(student, points, day=None):
    from .models import Participation

    try:
        points = Decimal(str(points))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"'{points}' is not a valid number of points.")
    try:
        day = parse_iso_date(day) if day else utc_date(timezone.now())
    except ValueError:
        raise ValidationError(f"'{day}' is not a valid date.")
    participation = Participation(
        student=student,
        subject_id=student.subject_id,
        points=points,
        date=day,
    )
    participation.full_clean()
    participation.save()
    return participation


def participation_totals(subject, start=None, end=None):
    """Points per student id, optionally limited to ``[start, end]``."""
    queryset = subject.participations.all()
    if start:
        queryset = queryset.filter(date__gte=start)
    if end:
        queryset = queryset.filter(date__lte=end)
    totals = queryset.values('student_id').annotate(total=Sum('points'))
    return {row['student_id']: float(row['total']) for row in totals}
