"""
Utility functions for the planner: syllabus parsing and topic scheduling.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional

from django.core.exceptions import ValidationError
from django.db import transaction

from core.scheduling import iso_weekday

logger = logging.getLogger(__name__)

HEADER_WORDS = {'tema', 'subtema', 'descripción', 'descripcion', 'topic', 'subtopic', 'description'}

# Longest stretch searched for the next class day
MAX_SEARCH_DAYS = 366


@dataclass(frozen=True)
class Topic:
    title: str
    description: Optional[str] = None


def parse_syllabus_text(text) -> List[Topic]:
    """
    Parse a syllabus pasted from a spreadsheet.

    Each line holds tab-separated Topic, Subtopic and an optional
    Description. A header row is skipped, as are lines with fewer than two
    columns. The title is "Topic: Subtopic", or just the subtopic when the
    topic cell is empty.
    """
    lines = [line for line in (text or '').splitlines() if line.strip()]

    if lines:
        first_cells = {cell.strip().lower() for cell in lines[0].split('\t')}
        if first_cells & HEADER_WORDS:
            lines = lines[1:]

    topics = []
    for line in lines:
        parts = line.split('\t')
        if len(parts) < 2:
            continue
        topic = parts[0].strip()
        subtopic = parts[1].strip()
        description = parts[2].strip() if len(parts) > 2 else ''
        if not topic and not subtopic:
            continue
        title = f'{topic}: {subtopic}' if topic else subtopic
        topics.append(Topic(title=title, description=description or None))
    return topics


def schedule_topics(topics, schedule_days, start_date, calendar):
    """
    Give each topic its own class day, in order, from ``start_date`` on.

    Days whose weekday is not in ``schedule_days`` and holidays/vacations
    are skipped.

    Returns:
        list: (date, topic) pairs
    """
    days = {int(d) for d in schedule_days}
    if not days:
        raise ValidationError('Please set a schedule for this subject before adding a syllabus.')

    scheduled = []
    current = start_date
    for topic in topics:
        for _ in range(MAX_SEARCH_DAYS):
            if iso_weekday(current) in days and not calendar.is_non_instructional(current):
                break
            current += timedelta(days=1)
        else:
            raise ValidationError(f'No class day found after {current.isoformat()} for "{topic.title}".')
        scheduled.append((current, topic))
        current += timedelta(days=1)
    return scheduled


def create_planned_classes(subject, topics, start_date, calendar):
    """Schedule ``topics`` and store them as planned classes of ``subject``."""
    from .models import PlannedClass

    if not topics:
        raise ValidationError('No valid topics found. Use tab-separated columns: Topic, Subtopic, Description.')

    scheduled = schedule_topics(topics, subject.schedule_days, start_date, calendar)
    with transaction.atomic():
        created = PlannedClass.objects.bulk_create([
            PlannedClass(
                subject=subject,
                class_date=day,
                title=topic.title[:255],
                description=topic.description or '',
            )
            for day, topic in scheduled
        ])
    logger.info(f"Planned {len(created)} classes for {subject} starting {start_date}")
    return created
