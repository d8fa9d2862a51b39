"""
Gradebook views package.

- criteria: Evaluation criteria per subject and period
- assignments: Assignments and grade entry (manual, QR scan, per student)
- reports: Student and class reports, Excel export
"""

from .criteria import criteria_list, criterion_delete

from .assignments import (
    assignment_list,
    assignment_delete,
    assignment_grades,
    assignment_scan,
    student_grades,
)

from .reports import (
    periods,
    student_report,
    class_report,
    export_class_report,
)
