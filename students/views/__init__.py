"""
Students views package.

- roster: Student list, single and bulk add, delete, QR badges
- bulk_import: Excel/CSV roster import
"""

from .roster import (
    student_list,
    bulk_add,
    student_delete,
    student_qr,
    subject_qr_codes,
)

from .bulk_import import (
    bulk_import,
    bulk_import_template,
)
