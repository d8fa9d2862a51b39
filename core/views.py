from django.db.models import Count
from django.http import JsonResponse
from django.utils import timezone

from .api import api_view, json_error
from .calendar import SingleDateEvent, get_academic_calendar
from .utils import utc_date


def event_dict(event):
    data = {'title': event.title, 'category': str(event.category)}
    if isinstance(event, SingleDateEvent):
        data['date'] = event.date.isoformat()
    else:
        data['start'] = event.start.isoformat()
        data['end'] = event.end.isoformat()
    return data


@api_view(['GET'])
def index(request):
    """Overview: today's event and the subjects with their class counts."""
    from academics.models import Subject
    from academics.utils import is_class_day, sessions_on

    calendar = get_academic_calendar()
    today = utc_date(timezone.now())
    event = calendar.lookup(today)

    subjects = Subject.objects.annotate(student_count=Count('students')).order_by('name')
    overview = []
    for subject in subjects:
        overview.append({
            'id': subject.pk,
            'name': subject.name,
            'term': subject.term,
            'student_count': subject.student_count,
            'has_class_today': is_class_day(subject, today, calendar),
            'attendance_taken_today': sessions_on(subject, today).exists(),
        })

    return JsonResponse({
        'today': today.isoformat(),
        'event': event_dict(event) if event else None,
        'subjects': overview,
    })


@api_view(['GET'])
def calendar_month(request, year, month):
    """School events of one month, one entry per day."""
    if not 1 <= month <= 12:
        return json_error(f'{month} is not a valid month.')

    calendar = get_academic_calendar()
    days = [
        {'date': day.isoformat(), 'event': event_dict(event), 'is_non_instructional': calendar.is_non_instructional(day)}
        for day, event in calendar.events_in_month(year, month)
    ]
    return JsonResponse({'year': year, 'month': month, 'days': days})


@api_view(['GET'])
def calendar_events(request):
    """Every event of the calendar as listed."""
    return JsonResponse({'events': [event_dict(e) for e in get_academic_calendar()]})
