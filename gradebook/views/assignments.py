import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.http import JsonResponse
from django.shortcuts import get_object_or_404

from academics.utils import find_student_by_token
from academics.views.base import get_subject
from core.api import api_view, json_error, read_json
from students.models import Student
from ..forms import AssignmentForm, GradeForm
from ..models import Assignment, Grade

logger = logging.getLogger(__name__)


def _grade_dict(grade):
    return {
        'student_id': grade.student_id,
        'assignment_id': str(grade.assignment_id),
        'score': float(grade.score),
    }


@api_view(['GET', 'POST'])
def assignment_list(request, subject_pk):
    """Assignments of a subject; POST creates one under an assignment-based criterion."""
    subject = get_subject(subject_pk)

    if request.method == 'POST':
        form = AssignmentForm(read_json(request), subject=subject)
        if not form.is_valid():
            return JsonResponse({'errors': form.errors}, status=400)
        assignment = form.save()
        return JsonResponse({'assignment': assignment.to_dict()}, status=201)

    assignments = subject.assignments.select_related('evaluation_criterion')
    return JsonResponse({'assignments': [a.to_dict() for a in assignments]})


@api_view(['POST'])
def assignment_delete(request, pk):
    assignment = get_object_or_404(Assignment, pk=pk)
    assignment.delete()
    return JsonResponse({'deleted': True})


@api_view(['GET', 'POST'])
def assignment_grades(request, pk):
    """Grades of an assignment; POST ``{"student_id", "score"}`` creates or replaces one."""
    assignment = get_object_or_404(Assignment, pk=pk)

    if request.method == 'POST':
        form = GradeForm(read_json(request))
        if not form.is_valid():
            return JsonResponse({'errors': form.errors}, status=400)
        student = get_object_or_404(Student, pk=form.cleaned_data['student_id'], subject_id=assignment.subject_id)
        grade = Grade.upsert(student, assignment, form.cleaned_data['score'])
        return JsonResponse({'grade': _grade_dict(grade)})

    return JsonResponse({'grades': [_grade_dict(g) for g in assignment.grades.all()]})


@api_view(['POST'])
def assignment_scan(request, pk):
    """Grade the student whose QR code was scanned: ``{"token", "score"}``."""
    assignment = get_object_or_404(Assignment.objects.select_related('subject'), pk=pk)
    data = read_json(request)
    student = find_student_by_token(assignment.subject, data.get('token'))
    grade = Grade.upsert(student, assignment, data.get('score'))
    logger.info(f"Grade {grade.score} saved for {student.name} on {assignment.name}")
    return JsonResponse({'grade': _grade_dict(grade), 'student': student.to_dict()})


@api_view(['POST'])
def student_grades(request, subject_pk, student_pk):
    """
    Save several grades of one student at once.

    Body: ``{"grades": [{"assignment_id", "score"}, ...]}``. Entries with an
    empty score are skipped. All scores are checked before any is saved.
    """
    subject = get_subject(subject_pk)
    student = get_object_or_404(Student, pk=student_pk, subject=subject)
    entries = read_json(request).get('grades', [])
    if not isinstance(entries, list):
        return json_error('grades must be a list.')

    assignments = {str(a.pk): a for a in subject.assignments.all()}
    pending = []
    errors = []
    for entry in entries:
        score = entry.get('score') if isinstance(entry, dict) else None
        if score in (None, ''):
            continue
        assignment = assignments.get(str(entry.get('assignment_id')))
        if assignment is None:
            errors.append(f"Unknown assignment: {entry.get('assignment_id')}")
            continue
        form = GradeForm({'student_id': student.pk, 'score': score})
        if not form.is_valid():
            errors.append(f"{assignment.name}: {'; '.join(form.errors.get('score', []))}")
            continue
        pending.append((assignment, form.cleaned_data['score']))

    if errors:
        raise ValidationError(errors)
    if not pending:
        return JsonResponse({'grades': [], 'message': 'No new grades to save.'})

    with transaction.atomic():
        saved = [Grade.upsert(student, assignment, score) for assignment, score in pending]
    return JsonResponse({'grades': [_grade_dict(g) for g in saved]})
