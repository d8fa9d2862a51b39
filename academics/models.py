from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from core.choices import TermType, Weekday
from core.scheduling import PERIOD_KEYS
from core.utils import parse_iso_date

MAX_SESSION_HOURS = 8


def validate_schedule(entries):
    """
    Validate a list of ``{"day", "time", "duration"}`` schedule entries.

    Days must be 1..7 and unique, every entry needs a time and a duration
    between 0 (exclusive) and 8 hours.
    """
    if not isinstance(entries, list):
        raise ValidationError("Schedule must be a list of entries.")

    errors = []
    seen_days = set()
    for entry in entries:
        if not isinstance(entry, dict):
            errors.append("Each schedule entry must be an object.")
            continue
        try:
            day = int(entry.get('day'))
        except (TypeError, ValueError):
            errors.append(f"Invalid day: {entry.get('day')!r}.")
            continue
        if day not in Weekday.values:
            errors.append(f"Day must be between 1 and 7, got {day}.")
            continue
        label = Weekday(day).label
        if day in seen_days:
            errors.append(f"{label} appears more than once in the schedule.")
        seen_days.add(day)

        if not entry.get('time'):
            errors.append(f"Please set a start time for {label}.")
        try:
            duration = float(entry.get('duration'))
        except (TypeError, ValueError):
            errors.append(f"Invalid duration for {label}.")
            continue
        if not 0 < duration <= MAX_SESSION_HOURS:
            errors.append(f"Duration for {label} must be greater than 0 and at most {MAX_SESSION_HOURS} hours.")

    if errors:
        raise ValidationError(errors)


def validate_grading_period_dates(value):
    """Period start dates must be ISO dates, keyed "1".."4", in ascending order."""
    if not isinstance(value, dict):
        raise ValidationError("Grading period dates must be a mapping.")
    unknown = set(value) - set(PERIOD_KEYS)
    if unknown:
        raise ValidationError(f"Unknown grading periods: {', '.join(sorted(unknown))}.")

    previous = None
    for key in PERIOD_KEYS:
        raw = value.get(key)
        if raw in (None, ''):
            continue
        try:
            start = parse_iso_date(raw)
        except ValueError:
            raise ValidationError(f"Period {key}: '{raw}' is not a valid date.")
        if previous is not None and start <= previous[1]:
            raise ValidationError(
                f"Period {key} must start after period {previous[0]} ({previous[1].isoformat()})."
            )
        previous = (key, start)


class Subject(models.Model):
    """
    A course taught by the teacher.

    ``schedule`` holds the weekly class slots as a list of
    ``{"day": 1-7, "time": "HH:MM", "duration": hours}``. ``grading_periods_dates``
    maps period numbers ("1".."4") to the ISO date each period starts.
    """
    name = models.CharField(max_length=150)
    term = models.CharField(max_length=20, choices=TermType.choices, default=TermType.SEMESTER)
    schedule = models.JSONField(default=list, blank=True, validators=[validate_schedule])
    grading_periods_dates = models.JSONField(
        default=dict,
        blank=True,
        validators=[validate_grading_period_dates],
        help_text="First day of each grading period, e.g. {\"1\": \"2025-09-01\"}",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']
        verbose_name = "Subject"
        verbose_name_plural = "Subjects"

    def __str__(self):
        return self.name

    @property
    def schedule_days(self):
        """Set of ISO weekdays with a class."""
        return {int(entry['day']) for entry in (self.schedule or [])}

    @property
    def has_schedule(self):
        return bool(self.schedule)

    def to_dict(self):
        return {
            'id': self.pk,
            'name': self.name,
            'term': self.term,
            'schedule': sorted(self.schedule or [], key=lambda e: int(e['day'])),
            'grading_periods_dates': self.grading_periods_dates or {},
        }


class AttendanceSession(models.Model):
    """One roll-call event. ``created_at`` may be backdated for manual attendance."""
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE, related_name='attendance_sessions')
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['subject', 'created_at'], name='session_subject_created_idx'),
        ]

    def __str__(self):
        return f"{self.subject} - {self.created_at:%Y-%m-%d %H:%M}"


class AttendanceRecord(models.Model):
    """Presence of a student in a session. No record means absent."""
    session = models.ForeignKey(AttendanceSession, on_delete=models.CASCADE, related_name='records')
    student = models.ForeignKey('students.Student', on_delete=models.CASCADE, related_name='attendance_records')
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE, related_name='attendance_records')
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        unique_together = ['session', 'student']
        ordering = ['created_at']

    def __str__(self):
        return f"{self.student} @ {self.session}"

    def clean(self):
        if self.student_id and self.session_id:
            duplicate = AttendanceRecord.objects.filter(
                session_id=self.session_id, student_id=self.student_id
            ).exclude(pk=self.pk)
            if duplicate.exists():
                raise ValidationError(f"{self.student.name} is already registered for this session.")
        if self.session_id and self.subject_id and self.session.subject_id != self.subject_id:
            raise ValidationError("Attendance record subject does not match its session.")


class Participation(models.Model):
    """Participation points earned on a given day. Several per day add up."""
    student = models.ForeignKey('students.Student', on_delete=models.CASCADE, related_name='participations')
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE, related_name='participations')
    points = models.DecimalField(max_digits=5, decimal_places=2, validators=[MinValueValidator(0)])
    date = models.DateField(default=timezone.localdate)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['date', 'created_at']
        indexes = [
            models.Index(fields=['subject', 'date'], name='participation_subject_idx'),
        ]

    def __str__(self):
        return f"{self.student} +{self.points} ({self.date})"
