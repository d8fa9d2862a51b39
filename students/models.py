from django.db import models
from django.db.models.functions import Lower

from core.utils import generate_qr_code_base64


class Student(models.Model):
    """
    A student enrolled in one subject.

    The attendance badge QR encodes the student's name, so names are unique
    within a subject (case-insensitively).
    """
    subject = models.ForeignKey('academics.Subject', on_delete=models.CASCADE, related_name='students')
    name = models.CharField(max_length=150)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(
                Lower('name'), 'subject',
                name='unique_student_name_per_subject',
                violation_error_message="A student with this name already exists in this subject.",
            ),
        ]

    def __str__(self):
        return self.name

    @property
    def qr_token(self):
        return self.name

    def get_qr_code(self):
        return generate_qr_code_base64(self.qr_token)

    def to_dict(self):
        return {'id': self.pk, 'name': self.name, 'subject_id': self.subject_id}
