from django.http import JsonResponse
from django.shortcuts import get_object_or_404

from core.api import api_view, read_json
from students.models import Student
from ..forms import ParticipationForm
from ..models import Participation
from ..utils import add_participation, participation_totals
from .base import get_subject


def _participation_dict(participation):
    return {
        'id': participation.pk,
        'student_id': participation.student_id,
        'points': float(participation.points),
        'date': participation.date.isoformat(),
    }


@api_view(['GET', 'POST'])
def participation_list(request, pk):
    """
    Participation entries and per-student totals of a subject.

    GET accepts ``?start=`` and ``?end=`` to limit the totals; POST adds
    ``{"student_id", "points", "date"}``.
    """
    subject = get_subject(pk)

    if request.method == 'POST':
        form = ParticipationForm(read_json(request))
        if not form.is_valid():
            return JsonResponse({'errors': form.errors}, status=400)
        student = get_object_or_404(Student, pk=form.cleaned_data['student_id'], subject=subject)
        participation = add_participation(student, form.cleaned_data['points'], form.cleaned_data['date'])
        return JsonResponse({'participation': _participation_dict(participation)}, status=201)

    start = request.GET.get('start') or None
    end = request.GET.get('end') or None
    entries = subject.participations.all()
    if start:
        entries = entries.filter(date__gte=start)
    if end:
        entries = entries.filter(date__lte=end)
    return JsonResponse({
        'participations': [_participation_dict(p) for p in entries],
        'totals': {str(k): v for k, v in participation_totals(subject, start, end).items()},
    })


@api_view(['POST'])
def participation_delete(request, participation_pk):
    participation = get_object_or_404(Participation, pk=participation_pk)
    participation.delete()
    return JsonResponse({'deleted': True})
