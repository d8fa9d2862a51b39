"""
Class-session calendar derivation.

``expand_schedule`` turns a weekly recurrence into the concrete class days
of a date range. ``resolve_grading_periods`` turns the per-subject period
start dates into date windows. Both are plain functions over dates and
never touch the database.
"""
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Mapping, Optional

from .utils import parse_iso_date

# Nominal length of a term: 18 weeks.
TERM_LENGTH = timedelta(weeks=18)

FINAL_PERIOD_KEY = 'final'
PERIOD_KEYS = ('1', '2', '3', '4')


@dataclass(frozen=True)
class PeriodWindow:
    """Inclusive date window of a grading period."""
    key: str
    name: str
    start: date
    end: date

    def __contains__(self, day):
        return self.start <= day <= self.end

    @property
    def is_final(self):
        return self.key == FINAL_PERIOD_KEY

    def as_dict(self):
        return {
            'key': self.key,
            'name': self.name,
            'start': self.start.isoformat(),
            'end': self.end.isoformat(),
        }


def iso_weekday(day: date) -> int:
    """Monday=1 ... Sunday=7, the numbering used by schedule entries."""
    return day.isoweekday()


def iter_days(start: date, end: date):
    """Yield every day from ``start`` to ``end`` inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def expand_schedule(schedule_days: Iterable[int], range_start: date, range_end: date, calendar) -> List[date]:
    """
    Return the class days between ``range_start`` and ``range_end``.

    A day is kept when its ISO weekday is one of ``schedule_days`` and the
    calendar does not mark it as a holiday or vacation day. The result is
    ascending. An empty schedule or an inverted range gives an empty list.
    """
    days = {int(d) for d in schedule_days}
    if not days:
        return []
    return [
        day for day in iter_days(range_start, range_end)
        if iso_weekday(day) in days and not calendar.is_non_instructional(day)
    ]


def _clean_period_dates(period_start_dates: Optional[Mapping]) -> Dict[str, date]:
    cleaned = {}
    for key in PERIOD_KEYS:
        value = (period_start_dates or {}).get(key)
        if value in (None, ''):
            continue
        cleaned[key] = parse_iso_date(value)
    return cleaned


def resolve_grading_periods(period_start_dates: Optional[Mapping], semester_fallback_start) -> 'OrderedDict[str, PeriodWindow]':
    """
    Compute the date windows of the grading periods.

    Args:
        period_start_dates: Mapping of "1".."4" to the first day of each
            period (``date`` or ISO string). Missing or blank keys are skipped.
        semester_fallback_start: Start of the term used when period 1 has
            no configured date.

    Returns:
        OrderedDict: "final" first, then the configured periods in order.
        "final" spans the whole term (18 weeks from its start). Each period
        ends the day before the next configured period begins, or at the
        end of the term when it is the last one.
    """
    starts = _clean_period_dates(period_start_dates)
    final_start = starts.get('1') or parse_iso_date(semester_fallback_start)
    final_end = final_start + TERM_LENGTH

    periods = OrderedDict()
    periods[FINAL_PERIOD_KEY] = PeriodWindow(FINAL_PERIOD_KEY, 'Final grade', final_start, final_end)

    present = [key for key in PERIOD_KEYS if key in starts]
    for index, key in enumerate(present):
        if index + 1 < len(present):
            end = starts[present[index + 1]] - timedelta(days=1)
        else:
            end = final_end
        periods[key] = PeriodWindow(key, f'Period {key}', starts[key], end)
    return periods


def period_for_date(periods: Mapping[str, PeriodWindow], day: date) -> Optional[PeriodWindow]:
    """Numbered period whose window contains ``day``, if any."""
    for key in PERIOD_KEYS:
        window = periods.get(key)
        if window is not None and day in window:
            return window
    return None
