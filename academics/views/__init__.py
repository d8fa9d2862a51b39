"""
Academics views package.

This package splits the views into logical modules:
- base: Common helpers shared by the views
- subjects: Subject CRUD, schedule and grading period dates
- attendance: Sessions, QR scanning, roll call, manual attendance, calendar
- participation: Participation points
"""

from .base import get_subject, get_calendar

from .subjects import (
    subject_list,
    subject_detail,
    subject_delete,
    subject_schedule,
    subject_grading_periods,
    subject_session_dates,
)

from .attendance import (
    session_list,
    session_scan,
    roll_call,
    manual_attendance,
    attendance_calendar,
)

from .participation import (
    participation_list,
    participation_delete,
)
