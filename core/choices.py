from django.db import models
from django.utils.translation import gettext_lazy as _


class EventCategory(models.TextChoices):
    EVENT = 'event', _('Event')
    HOLIDAY = 'holiday', _('Holiday')
    EXAM = 'exam', _('Exam')
    GRADES = 'grades', _('Grades Deadline')
    VACATION = 'vacation', _('Vacation')


class Weekday(models.IntegerChoices):
    MONDAY = 1, _('Monday')
    TUESDAY = 2, _('Tuesday')
    WEDNESDAY = 3, _('Wednesday')
    THURSDAY = 4, _('Thursday')
    FRIDAY = 5, _('Friday')
    SATURDAY = 6, _('Saturday')
    SUNDAY = 7, _('Sunday')


class TermType(models.TextChoices):
    SEMESTER = 'semester', _('Semester')
    FOUR_MONTH = 'four_month', _('Four-month term')


class CriterionType(models.TextChoices):
    DEFAULT = 'default', _('Assignments')
    ATTENDANCE = 'attendance', _('Attendance (automatic)')
    PARTICIPATION = 'participation', _('Participation (automatic)')


class AssignmentLimit(models.TextChoices):
    SINGLE = 'single', _('Single assignment')
    MULTIPLE = 'multiple', _('Multiple assignments')


class GradingPeriod(models.IntegerChoices):
    FIRST = 1, _('Period 1')
    SECOND = 2, _('Period 2')
    THIRD = 3, _('Period 3')
    FOURTH = 4, _('Period 4')


class PlannedClassStatus(models.TextChoices):
    PLANNED = 'planned', _('Planned')
    COMPLETED = 'completed', _('Completed')
    CANCELLED = 'cancelled', _('Cancelled')
