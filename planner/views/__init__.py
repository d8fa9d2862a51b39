"""
Planner views package.

- classes: Planned classes, syllabus import/generation and graphic organizers
"""

from .classes import (
    class_list,
    bulk_add,
    generate,
    delete_all,
    class_status,
    class_organizer,
)
