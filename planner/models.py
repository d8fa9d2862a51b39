from django.db import models

from core.choices import PlannedClassStatus


class PlannedClass(models.Model):
    """A topic planned for a given class day of a subject."""
    subject = models.ForeignKey('academics.Subject', on_delete=models.CASCADE, related_name='planned_classes')
    class_date = models.DateField()
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    status = models.CharField(
        max_length=20,
        choices=PlannedClassStatus.choices,
        default=PlannedClassStatus.PLANNED
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['class_date', 'created_at']
        verbose_name = "Planned Class"
        verbose_name_plural = "Planned Classes"

    def __str__(self):
        return f"{self.class_date}: {self.title}"

    def to_dict(self):
        return {
            'id': self.pk,
            'subject_id': self.subject_id,
            'class_date': self.class_date.isoformat(),
            'title': self.title,
            'description': self.description,
            'status': self.status,
        }
