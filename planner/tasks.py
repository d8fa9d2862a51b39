"""
Celery tasks for the planner app.
Runs the slow syllabus generation outside the request cycle.
"""
import logging

import requests
from celery import shared_task
from django.core.exceptions import ObjectDoesNotExist, ValidationError

from core.calendar import get_academic_calendar
from core.utils import parse_iso_date
from .generators import SyllabusGenerationError, generate_syllabus_topics
from .utils import create_planned_classes

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=30,
    autoretry_for=(requests.exceptions.RequestException,),
)
def generate_syllabus(self, subject_id, description, num_classes, start_date):
    """
    Generate ``num_classes`` topics for a subject and plan them from
    ``start_date`` on.

    Network errors are retried by Celery; configuration and content
    errors are reported in the result.
    """
    from academics.models import Subject

    try:
        subject = Subject.objects.get(pk=subject_id)
    except ObjectDoesNotExist:
        logger.warning(f"Syllabus generation skipped: subject {subject_id} no longer exists")
        return {'status': 'failed', 'error': 'Subject not found'}

    try:
        topics = generate_syllabus_topics(subject, description, num_classes)
        created = create_planned_classes(subject, topics, parse_iso_date(start_date), get_academic_calendar())
    except SyllabusGenerationError as exc:
        logger.error(f"Syllabus generation for {subject} failed: {exc}")
        return {'status': 'failed', 'error': str(exc)}
    except ValidationError as exc:
        logger.error(f"Generated syllabus for {subject} could not be planned: {exc.messages}")
        return {'status': 'failed', 'error': ' '.join(exc.messages)}

    logger.info(f"Generated syllabus for {subject}: {len(created)} classes")
    return {'status': 'created', 'count': len(created)}
