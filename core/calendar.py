"""
Academic calendar: named school events and the instructional-day predicate.

Events come in two shapes, a single day or an inclusive date range. An
``AcademicCalendar`` is built once from a sequence of events and is
read-only afterwards; views obtain one through ``get_academic_calendar()``
and tests build their own.
"""
import calendar as _calendar
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .choices import EventCategory
from .utils import parse_iso_date

logger = logging.getLogger(__name__)

NON_INSTRUCTIONAL_CATEGORIES = frozenset({EventCategory.HOLIDAY.value, EventCategory.VACATION.value})


@dataclass(frozen=True)
class SingleDateEvent:
    """An event that happens on one calendar day."""
    title: str
    category: str
    date: date

    def days(self):
        yield self.date


@dataclass(frozen=True)
class DateRangeEvent:
    """An event spanning ``start`` to ``end``, both inclusive."""
    title: str
    category: str
    start: date
    end: date

    def days(self):
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)


CalendarEvent = Union[SingleDateEvent, DateRangeEvent]


class AcademicCalendar:
    """
    Lookup table from calendar day to school event.

    Range events are expanded day by day when the calendar is built. When
    two events cover the same day, the one listed later wins.
    """

    def __init__(self, events: Iterable[CalendarEvent] = ()):
        self._events: Tuple[CalendarEvent, ...] = tuple(events)
        by_day: Dict[date, CalendarEvent] = {}
        for event in self._events:
            for day in event.days():
                by_day[day] = event
        self._by_day = by_day

    def __len__(self):
        return len(self._events)

    def __iter__(self):
        return iter(self._events)

    @property
    def events(self):
        return self._events

    def lookup(self, day: date) -> Optional[CalendarEvent]:
        return self._by_day.get(day)

    def is_non_instructional(self, day: date) -> bool:
        """True for holidays and vacation days; exams and deadlines still hold class."""
        event = self._by_day.get(day)
        return event is not None and str(event.category) in NON_INSTRUCTIONAL_CATEGORIES

    def events_in_month(self, year: int, month: int) -> List[Tuple[date, CalendarEvent]]:
        """Return ``(day, event)`` pairs for every day of the month that has an event."""
        _, days_in_month = _calendar.monthrange(year, month)
        result = []
        for day_number in range(1, days_in_month + 1):
            day = date(year, month, day_number)
            event = self._by_day.get(day)
            if event is not None:
                result.append((day, event))
        return result


def event_from_dict(data) -> CalendarEvent:
    """
    Build an event from a plain mapping.

    Accepts ``{"title", "category", "date"}`` for single days or
    ``{"title", "category", "start", "end"}`` for ranges. Dates may be
    ``date`` objects or ISO strings.
    """
    title = data['title']
    category = EventCategory(data['category'])
    if data.get('date'):
        return SingleDateEvent(title, category, parse_iso_date(data['date']))
    start = parse_iso_date(data['start'])
    end = parse_iso_date(data['end'])
    if end < start:
        raise ValueError(f"Event '{title}' ends ({end}) before it starts ({start}).")
    return DateRangeEvent(title, category, start, end)


def _single(title, category, day):
    return SingleDateEvent(title, category, parse_iso_date(day))


def _range(title, category, start, end):
    return DateRangeEvent(title, category, parse_iso_date(start), parse_iso_date(end))


# 2025-2026 school calendar (fall semester and winter break).
DEFAULT_SCHOOL_EVENTS = (
    _single('Inicio de semestre', EventCategory.EVENT, '2025-09-01'),
    _single('Suspensión de clases', EventCategory.HOLIDAY, '2025-09-16'),
    _single('Efemérides', EventCategory.EVENT, '2025-10-01'),
    _range('Aplicación de exámenes 1er parcial', EventCategory.EXAM, '2025-10-06', '2025-10-08'),
    _range('Exámenes extemporáneos', EventCategory.EXAM, '2025-10-11', '2025-10-12'),
    _single('Entrega de calif. 1er parcial', EventCategory.GRADES, '2025-10-17'),
    _range('Aplicación de exámenes 2do parcial', EventCategory.EXAM, '2025-11-03', '2025-11-05'),
    _single('Efemérides', EventCategory.EVENT, '2025-11-06'),
    _range('Exámenes extemporáneos', EventCategory.EXAM, '2025-11-11', '2025-11-12'),
    _single('Entrega de calif. 2do parcial', EventCategory.GRADES, '2025-11-14'),
    _single('Suspensión de clases', EventCategory.HOLIDAY, '2025-11-17'),
    _range('Semana de conferencias', EventCategory.EVENT, '2025-12-01', '2025-12-05'),
    _range('Aplicación de exámenes 3er parcial', EventCategory.EXAM, '2025-12-03', '2025-12-05'),
    _range('Exámenes extemporáneos', EventCategory.EXAM, '2025-12-08', '2025-12-09'),
    _single('Entrega de calif. 3er parcial', EventCategory.GRADES, '2025-12-12'),
    _single('Efemérides', EventCategory.EVENT, '2025-12-16'),
    _range('Aplicación de exámenes 4o parcial', EventCategory.EXAM, '2025-12-17', '2025-12-19'),
    _single('Fin de semestre', EventCategory.EVENT, '2025-12-19'),
    _range('Periodo vacacional', EventCategory.VACATION, '2025-12-19', '2026-02-03'),
    _range('Exámenes extemporáneos', EventCategory.EXAM, '2026-01-05', '2026-01-06'),
    _single('Entrega de calif. finales', EventCategory.GRADES, '2026-01-09'),
    _single('Aplicación de exámenes extraordinarios', EventCategory.EXAM, '2026-01-16'),
    _single('Recursamiento de materias', EventCategory.EVENT, '2026-01-19'),
    _single('Aplicación de exámenes extraordinarios', EventCategory.EXAM, '2026-01-23'),
    _single('Inicio de semestre', EventCategory.EVENT, '2026-02-04'),
)


@lru_cache(maxsize=1)
def get_academic_calendar() -> AcademicCalendar:
    """
    Return the deployment's calendar.

    ``settings.ACADEMIC_CALENDAR_EVENTS`` (a list of event mappings) replaces
    the built-in table when set.
    """
    from django.conf import settings

    configured = getattr(settings, 'ACADEMIC_CALENDAR_EVENTS', None)
    if configured:
        events = [event_from_dict(item) for item in configured]
        logger.info(f"Loaded {len(events)} academic calendar events from settings")
        return AcademicCalendar(events)
    return AcademicCalendar(DEFAULT_SCHOOL_EVENTS)
