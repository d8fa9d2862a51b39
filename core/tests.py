from datetime import date, datetime, timedelta, timezone as dt_timezone

from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse

from core.calendar import (
    AcademicCalendar, DateRangeEvent, SingleDateEvent,
    DEFAULT_SCHOOL_EVENTS, event_from_dict, get_academic_calendar,
)
from core.choices import EventCategory
from core.scheduling import (
    FINAL_PERIOD_KEY, TERM_LENGTH, expand_schedule, period_for_date, resolve_grading_periods,
)
from core.utils import generate_qr_code_base64, parse_iso_date, utc_date, utc_noon


class AcademicCalendarTests(SimpleTestCase):
    """Tests for the read-only day to event lookup."""

    def setUp(self):
        self.calendar = AcademicCalendar([
            SingleDateEvent('Holiday', EventCategory.HOLIDAY, date(2025, 9, 16)),
            DateRangeEvent('Exams', EventCategory.EXAM, date(2025, 10, 6), date(2025, 10, 8)),
            DateRangeEvent('Break', EventCategory.VACATION, date(2025, 12, 19), date(2026, 1, 2)),
            SingleDateEvent('End of term', EventCategory.EVENT, date(2025, 12, 19)),
        ])

    def test_lookup_single_and_range(self):
        self.assertEqual(self.calendar.lookup(date(2025, 9, 16)).title, 'Holiday')
        self.assertEqual(self.calendar.lookup(date(2025, 10, 7)).title, 'Exams')
        self.assertEqual(self.calendar.lookup(date(2025, 10, 8)).title, 'Exams')
        self.assertIsNone(self.calendar.lookup(date(2025, 10, 9)))

    def test_later_event_wins_on_overlap(self):
        """The event listed last takes the shared day."""
        self.assertEqual(self.calendar.lookup(date(2025, 12, 19)).title, 'End of term')
        self.assertEqual(self.calendar.lookup(date(2025, 12, 20)).title, 'Break')

    def test_non_instructional_days(self):
        self.assertTrue(self.calendar.is_non_instructional(date(2025, 9, 16)))
        self.assertTrue(self.calendar.is_non_instructional(date(2026, 1, 1)))
        # Exams still hold class
        self.assertFalse(self.calendar.is_non_instructional(date(2025, 10, 7)))
        self.assertFalse(self.calendar.is_non_instructional(date(2025, 9, 17)))

    def test_events_in_month(self):
        october = self.calendar.events_in_month(2025, 10)
        self.assertEqual([day for day, _ in october], [date(2025, 10, 6), date(2025, 10, 7), date(2025, 10, 8)])

    def test_len_and_iteration(self):
        self.assertEqual(len(self.calendar), 4)
        self.assertEqual([e.title for e in self.calendar][0], 'Holiday')

    def test_default_calendar(self):
        calendar = AcademicCalendar(DEFAULT_SCHOOL_EVENTS)
        self.assertEqual(len(calendar), 25)
        self.assertTrue(calendar.is_non_instructional(date(2025, 11, 17)))
        self.assertTrue(calendar.is_non_instructional(date(2026, 1, 20)))
        self.assertFalse(calendar.is_non_instructional(date(2026, 2, 4)))


class EventFromDictTests(SimpleTestCase):

    def test_single_date(self):
        event = event_from_dict({'title': 'Holiday', 'category': 'holiday', 'date': '2025-09-16'})
        self.assertIsInstance(event, SingleDateEvent)
        self.assertEqual(event.date, date(2025, 9, 16))

    def test_range(self):
        event = event_from_dict({'title': 'Exams', 'category': 'exam', 'start': '2025-10-06', 'end': '2025-10-08'})
        self.assertIsInstance(event, DateRangeEvent)
        self.assertEqual(len(list(event.days())), 3)

    def test_inverted_range_raises(self):
        with self.assertRaises(ValueError):
            event_from_dict({'title': 'Bad', 'category': 'exam', 'start': '2025-10-08', 'end': '2025-10-06'})

    def test_unknown_category_raises(self):
        with self.assertRaises(ValueError):
            event_from_dict({'title': 'Bad', 'category': 'party', 'date': '2025-10-08'})

    @override_settings(ACADEMIC_CALENDAR_EVENTS=[
        {'title': 'Only holiday', 'category': 'holiday', 'date': '2025-09-22'},
    ])
    def test_calendar_from_settings(self):
        get_academic_calendar.cache_clear()
        self.addCleanup(get_academic_calendar.cache_clear)
        calendar = get_academic_calendar()
        self.assertEqual(len(calendar), 1)
        self.assertTrue(calendar.is_non_instructional(date(2025, 9, 22)))


class DateUtilsTests(SimpleTestCase):
    """Tests for date coercion and UTC truncation."""

    def test_parse_iso_date(self):
        self.assertEqual(parse_iso_date('2025-09-01'), date(2025, 9, 1))
        self.assertEqual(parse_iso_date(' 2025-09-01T10:00:00Z '), date(2025, 9, 1))
        self.assertEqual(parse_iso_date(date(2025, 9, 1)), date(2025, 9, 1))

    def test_parse_iso_date_rejects_garbage(self):
        with self.assertRaises(ValueError):
            parse_iso_date('not a date')
        with self.assertRaises(ValueError):
            parse_iso_date(20250901)

    def test_utc_date_truncates_in_utc(self):
        """A late-evening timestamp west of UTC already belongs to the next UTC day."""
        local = dt_timezone(timedelta(hours=-6))
        self.assertEqual(utc_date(datetime(2025, 9, 1, 20, 0, tzinfo=local)), date(2025, 9, 2))
        self.assertEqual(utc_date(datetime(2025, 9, 1, 20, 0)), date(2025, 9, 1))

    def test_parse_iso_date_truncates_datetimes(self):
        local = dt_timezone(timedelta(hours=-6))
        self.assertEqual(parse_iso_date(datetime(2025, 9, 1, 23, 0, tzinfo=local)), date(2025, 9, 2))

    def test_utc_noon(self):
        noon = utc_noon(date(2025, 9, 3))
        self.assertEqual(noon, datetime(2025, 9, 3, 12, 0, tzinfo=dt_timezone.utc))
        self.assertEqual(utc_date(noon), date(2025, 9, 3))

    def test_qr_code_data_uri(self):
        uri = generate_qr_code_base64('Ana López')
        self.assertTrue(uri.startswith('data:image/png;base64,'))


class ExpandScheduleTests(SimpleTestCase):
    """Tests for turning a weekly schedule into class days."""

    def setUp(self):
        self.calendar = AcademicCalendar([
            SingleDateEvent('Holiday', EventCategory.HOLIDAY, date(2025, 9, 15)),
            SingleDateEvent('Exam', EventCategory.EXAM, date(2025, 9, 10)),
        ])

    def test_monday_wednesday(self):
        days = expand_schedule([1, 3], date(2025, 9, 1), date(2025, 9, 17), self.calendar)
        self.assertEqual(days, [
            date(2025, 9, 1), date(2025, 9, 3), date(2025, 9, 8),
            date(2025, 9, 10), date(2025, 9, 17),
        ])

    def test_properties_hold_over_a_term(self):
        start, end = date(2025, 9, 1), date(2026, 2, 1)
        calendar = AcademicCalendar(DEFAULT_SCHOOL_EVENTS)
        days = expand_schedule({2, 4, 5}, start, end, calendar)

        self.assertEqual(days, sorted(days))
        self.assertEqual(len(days), len(set(days)))
        for day in days:
            self.assertTrue(start <= day <= end)
            self.assertIn(day.isoweekday(), {2, 4, 5})
            self.assertFalse(calendar.is_non_instructional(day))

    def test_empty_schedule(self):
        self.assertEqual(expand_schedule([], date(2025, 9, 1), date(2025, 12, 1), self.calendar), [])

    def test_inverted_range(self):
        self.assertEqual(expand_schedule([1], date(2025, 9, 30), date(2025, 9, 1), self.calendar), [])

    def test_same_result_twice(self):
        first = expand_schedule([1, 3], date(2025, 9, 1), date(2025, 10, 1), self.calendar)
        second = expand_schedule([1, 3], date(2025, 9, 1), date(2025, 10, 1), self.calendar)
        self.assertEqual(first, second)


class ResolveGradingPeriodsTests(SimpleTestCase):
    """Tests for the grading period windows."""

    def test_two_periods(self):
        periods = resolve_grading_periods({'1': '2025-09-01', '2': '2025-10-17'}, '2025-08-01')

        self.assertEqual(list(periods), [FINAL_PERIOD_KEY, '1', '2'])
        final = periods[FINAL_PERIOD_KEY]
        self.assertEqual(final.name, 'Final grade')
        self.assertEqual(final.start, date(2025, 9, 1))
        self.assertEqual(final.end, date(2025, 9, 1) + TERM_LENGTH)
        self.assertEqual(final.end, date(2026, 1, 5))

        self.assertEqual(periods['1'].start, date(2025, 9, 1))
        self.assertEqual(periods['1'].end, date(2025, 10, 16))
        self.assertEqual(periods['2'].start, date(2025, 10, 17))
        self.assertEqual(periods['2'].end, final.end)
        self.assertEqual(periods['2'].name, 'Period 2')

    def test_fallback_to_semester_start(self):
        periods = resolve_grading_periods({}, '2025-09-01')
        self.assertEqual(list(periods), [FINAL_PERIOD_KEY])
        self.assertEqual(periods[FINAL_PERIOD_KEY].start, date(2025, 9, 1))

    def test_blank_periods_are_skipped(self):
        periods = resolve_grading_periods({'1': '2025-09-01', '2': '', '3': '2025-11-10'}, '2025-09-01')
        self.assertEqual(list(periods), [FINAL_PERIOD_KEY, '1', '3'])
        self.assertEqual(periods['1'].end, date(2025, 11, 9))

    def test_missing_first_period_uses_fallback_for_final(self):
        periods = resolve_grading_periods({'2': '2025-10-17'}, date(2025, 9, 1))
        self.assertEqual(periods[FINAL_PERIOD_KEY].start, date(2025, 9, 1))
        self.assertEqual(periods['2'].start, date(2025, 10, 17))

    def test_period_for_date(self):
        periods = resolve_grading_periods({'1': '2025-09-01', '2': '2025-10-17'}, '2025-09-01')
        self.assertEqual(period_for_date(periods, date(2025, 10, 16)).key, '1')
        self.assertEqual(period_for_date(periods, date(2025, 10, 17)).key, '2')
        self.assertIsNone(period_for_date(periods, date(2025, 8, 1)))

    def test_window_membership(self):
        periods = resolve_grading_periods({'1': '2025-09-01'}, '2025-09-01')
        self.assertIn(date(2025, 9, 1), periods['1'])
        self.assertNotIn(date(2025, 8, 31), periods['1'])
        self.assertTrue(periods[FINAL_PERIOD_KEY].is_final)


@override_settings(CLASSBOOK_LOGIN_PASSWORD='secret')
class CoreViewTests(TestCase):
    """Tests for the overview and calendar endpoints."""

    def setUp(self):
        get_academic_calendar.cache_clear()
        self.addCleanup(get_academic_calendar.cache_clear)
        self.client.post(reverse('accounts:login'), {'password': 'secret'})

    def test_index(self):
        from academics.models import Subject

        Subject.objects.create(name='Physics', schedule=[{'day': 1, 'time': '08:00', 'duration': 2}])
        response = self.client.get(reverse('core:index'))
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['subjects'][0]['name'], 'Physics')
        self.assertEqual(data['subjects'][0]['student_count'], 0)
        self.assertFalse(data['subjects'][0]['attendance_taken_today'])

    def test_calendar_month(self):
        response = self.client.get(reverse('core:calendar_month', args=[2025, 9]))
        self.assertEqual(response.status_code, 200)
        days = {d['date']: d for d in response.json()['days']}
        self.assertTrue(days['2025-09-16']['is_non_instructional'])
        self.assertEqual(days['2025-09-16']['event']['category'], 'holiday')
        self.assertFalse(days['2025-09-01']['is_non_instructional'])

    def test_calendar_month_rejects_bad_month(self):
        response = self.client.get(reverse('core:calendar_month', args=[2025, 13]))
        self.assertEqual(response.status_code, 400)

    def test_calendar_events(self):
        response = self.client.get(reverse('core:calendar_events'))
        events = response.json()['events']
        self.assertEqual(len(events), 25)
        self.assertIn('start', events[3])

    def test_post_not_allowed(self):
        response = self.client.post(reverse('core:calendar_events'))
        self.assertEqual(response.status_code, 405)
