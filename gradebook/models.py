import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models, transaction
from django.utils import timezone

from academics.models import Subject
from core.choices import AssignmentLimit, CriterionType, GradingPeriod
from students.models import Student

MAX_SCORE = Decimal('10')

# Criteria graded automatically from attendance or participation data.
AUTOMATIC_CRITERION_TYPES = (CriterionType.ATTENDANCE, CriterionType.PARTICIPATION)


class EvaluationCriterion(models.Model):
    """
    Weighted grading line item of a subject, scoped to a grading period.
    e.g., Homework (60%), Attendance (40%)

    Percentages of the criteria sharing a subject and grading period must
    not add up to more than 100.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    subject = models.ForeignKey(
        Subject,
        on_delete=models.CASCADE,
        related_name='evaluation_criteria'
    )
    name = models.CharField(
        max_length=100,
        help_text='Criterion name (e.g., Homework, Exam, Attendance)'
    )
    percentage = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(100)],
        help_text='Weight percentage for this criterion (1-100)'
    )
    type = models.CharField(
        max_length=20,
        choices=CriterionType.choices,
        default=CriterionType.DEFAULT
    )
    assignment_limit = models.CharField(
        max_length=10,
        choices=AssignmentLimit.choices,
        default=AssignmentLimit.MULTIPLE,
        help_text='Only meaningful for assignment-based criteria'
    )
    max_points = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        null=True,
        blank=True,
        help_text='Participation points that earn a full 10'
    )
    grading_period = models.PositiveSmallIntegerField(
        choices=GradingPeriod.choices,
        default=GradingPeriod.FIRST
    )
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.name} ({self.percentage}%)"

    @property
    def is_automatic(self):
        return self.type in AUTOMATIC_CRITERION_TYPES

    def clean(self):
        """Validate weights and type-specific settings."""
        errors = {}

        if self.type == CriterionType.PARTICIPATION:
            if self.max_points is None or self.max_points <= 0:
                errors['max_points'] = 'Participation criteria need a maximum number of points greater than 0.'

        if self.percentage is not None and self.subject_id:
            total = EvaluationCriterion.objects.filter(
                subject_id=self.subject_id,
                grading_period=self.grading_period
            ).exclude(
                pk=self.pk
            ).aggregate(
                total=models.Sum('percentage')
            )['total'] or 0

            if total + self.percentage > 100:
                errors['percentage'] = (
                    f'Total percentage for period {self.grading_period} cannot exceed 100%. '
                    f'Current: {total}%, Adding: {self.percentage}%'
                )

        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        # Automatic criteria never hold more than one (virtual) assignment
        if self.is_automatic:
            self.assignment_limit = AssignmentLimit.SINGLE
        if self.type != CriterionType.PARTICIPATION:
            self.max_points = None
        super().save(*args, **kwargs)

    def to_dict(self):
        return {
            'id': str(self.pk),
            'subject_id': self.subject_id,
            'name': self.name,
            'percentage': self.percentage,
            'type': self.type,
            'assignment_limit': self.assignment_limit,
            'max_points': float(self.max_points) if self.max_points is not None else None,
            'grading_period': self.grading_period,
        }

    class Meta:
        db_table = 'evaluation_criterion'
        ordering = ['grading_period', 'created_at']
        verbose_name = 'Evaluation Criterion'
        verbose_name_plural = 'Evaluation Criteria'
        indexes = [
            models.Index(fields=['subject', 'grading_period'], name='criterion_subject_period_idx'),
        ]


class Assignment(models.Model):
    """
    Graded piece of work under an assignment-based criterion.
    e.g., Essay 1, Lab report
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    subject = models.ForeignKey(
        Subject,
        on_delete=models.CASCADE,
        related_name='assignments'
    )
    evaluation_criterion = models.ForeignKey(
        EvaluationCriterion,
        on_delete=models.CASCADE,
        related_name='assignments'
    )
    name = models.CharField(max_length=150)
    created_at = models.DateTimeField(default=timezone.now)

    def __str__(self):
        return self.name

    def clean(self):
        """Only assignment-based criteria take assignments, and single ones take one."""
        if not self.evaluation_criterion_id:
            return
        criterion = self.evaluation_criterion

        if criterion.type != CriterionType.DEFAULT:
            raise ValidationError({
                'evaluation_criterion': f"'{criterion.name}' is graded automatically and cannot have assignments."
            })
        if self.subject_id and criterion.subject_id != self.subject_id:
            raise ValidationError({
                'evaluation_criterion': 'The criterion belongs to a different subject.'
            })
        if criterion.assignment_limit == AssignmentLimit.SINGLE:
            existing = Assignment.objects.filter(
                evaluation_criterion=criterion
            ).exclude(pk=self.pk)
            if existing.exists():
                raise ValidationError({
                    'evaluation_criterion': f"'{criterion.name}' only allows a single assignment."
                })

    def to_dict(self):
        return {
            'id': str(self.pk),
            'subject_id': self.subject_id,
            'name': self.name,
            'evaluation_criterion_id': str(self.evaluation_criterion_id),
            'created_at': self.created_at.isoformat(),
        }

    class Meta:
        db_table = 'assignment'
        ordering = ['created_at']
        verbose_name = 'Assignment'
        verbose_name_plural = 'Assignments'


class Grade(models.Model):
    """Student score (0-10) for an assignment"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    student = models.ForeignKey(
        Student,
        on_delete=models.CASCADE,
        related_name='grades',
        db_index=True
    )
    assignment = models.ForeignKey(
        Assignment,
        on_delete=models.CASCADE,
        related_name='grades',
        db_index=True
    )
    score = models.DecimalField(
        max_digits=4,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0')), MaxValueValidator(MAX_SCORE)],
        help_text='Score on a 0-10 scale'
    )
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.student} - {self.assignment.name}: {self.score}"

    @classmethod
    def upsert(cls, student, assignment, score):
        """
        Create or replace the grade of ``student`` on ``assignment``.

        The score is validated before anything is written.
        """
        if score is None:
            raise ValidationError({'score': 'A score is required.'})
        try:
            score = Decimal(str(score))
        except ArithmeticError:
            raise ValidationError({'score': f"'{score}' is not a valid number."})
        if not score.is_finite() or score < 0 or score > MAX_SCORE:
            raise ValidationError({'score': f'Score must be between 0 and {MAX_SCORE}.'})
        if student.subject_id != assignment.subject_id:
            raise ValidationError('Student and assignment belong to different subjects.')

        with transaction.atomic():
            grade, _ = cls.objects.update_or_create(
                student=student,
                assignment=assignment,
                defaults={'score': score},
            )
        return grade

    class Meta:
        db_table = 'grade'
        ordering = ['student', 'assignment']
        verbose_name = 'Grade'
        verbose_name_plural = 'Grades'
        unique_together = ['student', 'assignment']
