import logging

import requests
from django.http import JsonResponse
from django.shortcuts import get_object_or_404

from academics.views.base import get_calendar, get_subject
from core.api import api_view, json_error, read_json
from ..forms import GenerateSyllabusForm, PlannedClassForm, StatusForm, SyllabusTextForm
from ..generators import SyllabusGenerationError, generate_graphic_organizer
from ..models import PlannedClass
from ..tasks import generate_syllabus
from ..utils import create_planned_classes, parse_syllabus_text

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
def class_list(request, pk):
    """Planned classes of a subject, or add one ``{class_date, title, description}``."""
    subject = get_subject(pk)

    if request.method == 'POST':
        form = PlannedClassForm(read_json(request), subject=subject)
        if not form.is_valid():
            return JsonResponse({'errors': form.errors}, status=400)
        planned = form.save()
        return JsonResponse({'planned_class': planned.to_dict()}, status=201)

    classes = subject.planned_classes.all()
    return JsonResponse({'planned_classes': [c.to_dict() for c in classes]})


@api_view(['POST'])
def bulk_add(request, pk):
    """
    Plan a syllabus pasted from a spreadsheet: ``{"text", "start_date"}``.

    Topics land on consecutive class days of the subject from
    ``start_date`` on.
    """
    subject = get_subject(pk)
    form = SyllabusTextForm(read_json(request))
    if not form.is_valid():
        return JsonResponse({'errors': form.errors}, status=400)

    topics = parse_syllabus_text(form.cleaned_data['text'])
    created = create_planned_classes(subject, topics, form.cleaned_data['start_date'], get_calendar())
    return JsonResponse({
        'created': len(created),
        'planned_classes': [c.to_dict() for c in created],
    }, status=201)


@api_view(['POST'])
def generate(request, pk):
    """Queue generation of a syllabus: ``{"description", "num_classes", "start_date"}``."""
    subject = get_subject(pk)
    if not subject.has_schedule:
        return json_error('Please set a schedule for this subject before generating a syllabus.')

    form = GenerateSyllabusForm(read_json(request))
    if not form.is_valid():
        return JsonResponse({'errors': form.errors}, status=400)

    result = generate_syllabus.delay(
        subject.pk,
        form.cleaned_data['description'],
        form.cleaned_data['num_classes'],
        form.cleaned_data['start_date'].isoformat(),
    )
    logger.info(f"Queued syllabus generation for {subject} ({result.id})")
    return JsonResponse({'task_id': result.id}, status=202)


@api_view(['POST'])
def delete_all(request, pk):
    subject = get_subject(pk)
    deleted, _ = subject.planned_classes.all().delete()
    logger.info(f"Deleted {deleted} planned classes of {subject}")
    return JsonResponse({'deleted': deleted})


@api_view(['POST'])
def class_status(request, class_pk):
    planned = get_object_or_404(PlannedClass, pk=class_pk)
    form = StatusForm(read_json(request))
    if not form.is_valid():
        return JsonResponse({'errors': form.errors}, status=400)
    planned.status = form.cleaned_data['status']
    planned.save(update_fields=['status'])
    return JsonResponse({'planned_class': planned.to_dict()})


@api_view(['POST'])
def class_organizer(request, class_pk):
    """Graphic organizer of a planned class, generated on demand."""
    planned = get_object_or_404(PlannedClass.objects.select_related('subject'), pk=class_pk)
    try:
        organizer = generate_graphic_organizer(planned.subject, planned)
    except SyllabusGenerationError as e:
        logger.error(f"Organizer for planned class {planned.pk} failed: {e}")
        return json_error(str(e), status=502)
    except requests.exceptions.RequestException as e:
        logger.error(f"Organizer for planned class {planned.pk} failed: {e}")
        return json_error('The generator is not available right now. Please try again later.', status=502)
    return JsonResponse({'planned_class': planned.to_dict(), 'organizer': organizer})
