import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('academics', '0002_attendance_records_participation'),
        ('students', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='EvaluationCriterion',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(help_text='Criterion name (e.g., Homework, Exam, Attendance)', max_length=100)),
                ('percentage', models.PositiveSmallIntegerField(help_text='Weight percentage for this criterion (1-100)', validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(100)])),
                ('type', models.CharField(choices=[('default', 'Assignments'), ('attendance', 'Attendance (automatic)'), ('participation', 'Participation (automatic)')], default='default', max_length=20)),
                ('assignment_limit', models.CharField(choices=[('single', 'Single assignment'), ('multiple', 'Multiple assignments')], default='multiple', help_text='Only meaningful for assignment-based criteria', max_length=10)),
                ('max_points', models.DecimalField(blank=True, decimal_places=2, help_text='Participation points that earn a full 10', max_digits=6, null=True)),
                ('grading_period', models.PositiveSmallIntegerField(choices=[(1, 'Period 1'), (2, 'Period 2'), (3, 'Period 3'), (4, 'Period 4')], default=1)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('subject', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='evaluation_criteria', to='academics.subject')),
            ],
            options={
                'verbose_name': 'Evaluation Criterion',
                'verbose_name_plural': 'Evaluation Criteria',
                'db_table': 'evaluation_criterion',
                'ordering': ['grading_period', 'created_at'],
                'indexes': [models.Index(fields=['subject', 'grading_period'], name='criterion_subject_period_idx')],
            },
        ),
        migrations.CreateModel(
            name='Assignment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=150)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('evaluation_criterion', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='assignments', to='gradebook.evaluationcriterion')),
                ('subject', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='assignments', to='academics.subject')),
            ],
            options={
                'verbose_name': 'Assignment',
                'verbose_name_plural': 'Assignments',
                'db_table': 'assignment',
                'ordering': ['created_at'],
            },
        ),
        migrations.CreateModel(
            name='Grade',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('score', models.DecimalField(decimal_places=2, help_text='Score on a 0-10 scale', max_digits=4, validators=[django.core.validators.MinValueValidator(Decimal('0')), django.core.validators.MaxValueValidator(Decimal('10'))])),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assignment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='grades', to='gradebook.assignment')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='grades', to='students.student')),
            ],
            options={
                'verbose_name': 'Grade',
                'verbose_name_plural': 'Grades',
                'db_table': 'grade',
                'ordering': ['student', 'assignment'],
                'unique_together': {('student', 'assignment')},
            },
        ),
    ]
