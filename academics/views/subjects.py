from django.http import JsonResponse

from core.api import api_view, read_json
from core.utils import parse_iso_date
from gradebook.utils import grading_periods, scheduled_session_dates
from ..forms import GradingPeriodDatesForm, SubjectForm
from ..models import Subject
from .base import get_calendar, get_subject


@api_view(['GET', 'POST'])
def subject_list(request):
    """List subjects, or create one."""
    if request.method == 'POST':
        form = SubjectForm(read_json(request))
        if not form.is_valid():
            return JsonResponse({'errors': form.errors}, status=400)
        subject = form.save()
        return JsonResponse({'subject': subject.to_dict()}, status=201)

    subjects = [subject.to_dict() for subject in Subject.objects.all()]
    return JsonResponse({'subjects': subjects})


@api_view(['GET'])
def subject_detail(request, pk):
    """Subject with its roster, grading periods and class days so far."""
    subject = get_subject(pk)
    session_dates = scheduled_session_dates(subject, calendar=get_calendar())
    return JsonResponse({
        'subject': subject.to_dict(),
        'students': [student.to_dict() for student in subject.students.all()],
        'grading_periods': [window.as_dict() for window in grading_periods(subject).values()],
        'scheduled_session_dates': [day.isoformat() for day in session_dates],
    })


@api_view(['POST'])
def subject_delete(request, pk):
    subject = get_subject(pk)
    subject.delete()
    return JsonResponse({'deleted': True})


@api_view(['POST'])
def subject_schedule(request, pk):
    """Replace the weekly schedule: ``{"schedule": [{"day", "time", "duration"}, ...]}``."""
    subject = get_subject(pk)
    subject.schedule = read_json(request).get('schedule', [])
    subject.full_clean()
    subject.save(update_fields=['schedule'])
    return JsonResponse({'subject': subject.to_dict()})


@api_view(['POST'])
def subject_grading_periods(request, pk):
    """Save the first day of each grading period."""
    subject = get_subject(pk)
    form = GradingPeriodDatesForm.from_mapping(read_json(request))
    if not form.is_valid():
        return JsonResponse({'errors': form.errors}, status=400)

    subject.grading_periods_dates = form.to_mapping()
    subject.full_clean()
    subject.save(update_fields=['grading_periods_dates'])
    return JsonResponse({
        'subject': subject.to_dict(),
        'grading_periods': [window.as_dict() for window in grading_periods(subject).values()],
    })


@api_view(['GET'])
def subject_session_dates(request, pk):
    """Class days from the start of the semester up to ``?as_of=`` (default today)."""
    subject = get_subject(pk)
    try:
        as_of = parse_iso_date(request.GET['as_of']) if request.GET.get('as_of') else None
    except ValueError:
        return JsonResponse({'errors': {'as_of': ['Invalid date.']}}, status=400)
    dates = scheduled_session_dates(subject, as_of=as_of, calendar=get_calendar())
    return JsonResponse({'dates': [day.isoformat() for day in dates]})
