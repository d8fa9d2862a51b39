from django.http import JsonResponse
from django.shortcuts import get_object_or_404

from academics.views.base import get_subject
from core.api import api_view, json_error, read_json
from students.models import Student
from .utils import bulk_add_students, parse_names


@api_view(['GET', 'POST'])
def student_list(request, subject_pk):
    """Roster of a subject; POST ``{"name"}`` adds one student."""
    subject = get_subject(subject_pk)
    if request.method == 'POST':
        names = parse_names(read_json(request).get('name', ''))
        if len(names) != 1:
            return json_error('Please enter one student name.')
        student = Student(subject=subject, name=names[0])
        student.full_clean()
        student.save()
        return JsonResponse({'student': student.to_dict()}, status=201)

    return JsonResponse({'students': [s.to_dict() for s in subject.students.all()]})


@api_view(['POST'])
def bulk_add(request, subject_pk):
    """Add several students at once, one name per line in ``names``."""
    subject = get_subject(subject_pk)
    names = parse_names(read_json(request).get('names', ''))
    if not names:
        return json_error('Please enter at least one name.')
    created, skipped = bulk_add_students(subject, names)
    return JsonResponse({
        'created': [s.name for s in created],
        'skipped': skipped,
    }, status=201)


@api_view(['POST'])
def student_delete(request, pk):
    student = get_object_or_404(Student, pk=pk)
    student.delete()
    return JsonResponse({'deleted': True})


@api_view(['GET'])
def student_qr(request, pk):
    """QR badge of a student for attendance and grade scanning."""
    student = get_object_or_404(Student, pk=pk)
    qr_code = student.get_qr_code()
    if qr_code is None:
        return json_error('Could not generate the QR code.', status=500)
    return JsonResponse({'student': student.to_dict(), 'qr_code': qr_code})


@api_view(['GET'])
def subject_qr_codes(request, subject_pk):
    """QR badges of the whole roster, for printing."""
    subject = get_subject(subject_pk)
    return JsonResponse({
        'students': [
            {**student.to_dict(), 'qr_code': student.get_qr_code()}
            for student in subject.students.all()
        ]
    })
