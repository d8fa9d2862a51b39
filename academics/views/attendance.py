import logging

from django.http import JsonResponse
from django.shortcuts import get_object_or_404

from accounts.views import manual_attendance_required
from core.api import api_view, json_error, read_json
from ..models import AttendanceSession
from ..utils import build_attendance_calendar, record_manual_attendance, register_scan, take_roll_call
from .base import get_calendar, get_subject

logger = logging.getLogger(__name__)


def _session_dict(session):
    return {
        'id': session.pk,
        'subject_id': session.subject_id,
        'created_at': session.created_at.isoformat(),
        'present': session.records.count(),
    }


@api_view(['GET', 'POST'])
def session_list(request, pk):
    """List attendance sessions of a subject, or open a new one for scanning."""
    subject = get_subject(pk)
    if request.method == 'POST':
        session = AttendanceSession.objects.create(subject=subject)
        logger.info(f"Opened attendance session {session.pk} for {subject}")
        return JsonResponse({'session': _session_dict(session)}, status=201)

    sessions = subject.attendance_sessions.prefetch_related('records')
    return JsonResponse({'sessions': [_session_dict(s) for s in sessions]})


@api_view(['POST'])
def session_scan(request, session_pk):
    """Register the student whose QR code was scanned: ``{"token": "<name>"}``."""
    session = get_object_or_404(AttendanceSession.objects.select_related('subject'), pk=session_pk)
    record = register_scan(session, read_json(request).get('token'))
    return JsonResponse({
        'student': record.student.to_dict(),
        'created_at': record.created_at.isoformat(),
    }, status=201)


@api_view(['POST'])
def roll_call(request, pk):
    """Take today's attendance at once: ``{"student_ids": [...]}`` are present."""
    subject = get_subject(pk)
    student_ids = read_json(request).get('student_ids', [])
    if not isinstance(student_ids, list):
        return json_error('student_ids must be a list.')
    session = take_roll_call(subject, student_ids)
    return JsonResponse({'session': _session_dict(session)}, status=201)


@api_view(['POST'])
@manual_attendance_required
def manual_attendance(request, pk):
    """Record attendance for a past class day: ``{"date": "YYYY-MM-DD", "student_ids": [...]}``."""
    subject = get_subject(pk)
    data = read_json(request)
    student_ids = data.get('student_ids', [])
    if not isinstance(student_ids, list):
        return json_error('student_ids must be a list.')
    if not data.get('date'):
        return json_error('A date is required.')
    session = record_manual_attendance(subject, data['date'], student_ids, get_calendar())
    return JsonResponse({'session': _session_dict(session)}, status=201)


@api_view(['GET'])
def attendance_calendar(request, pk, year, month):
    """One month of the attendance calendar of a subject."""
    subject = get_subject(pk)
    if not 1 <= month <= 12:
        return json_error('Month must be between 1 and 12.')
    if not subject.has_schedule:
        return json_error('Set a schedule for this subject to manage attendance.')
    return JsonResponse(build_attendance_calendar(subject, year, month, get_calendar()))
