from datetime import date, datetime, timezone as dt_timezone

from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings
from django.urls import reverse

from core.calendar import AcademicCalendar, SingleDateEvent
from core.choices import EventCategory
from students.models import Student

from .forms import GradingPeriodDatesForm
from .models import (
    AttendanceRecord, AttendanceSession, Participation, Subject,
    validate_grading_period_dates, validate_schedule,
)
from .utils import (
    add_participation, build_attendance_calendar, participation_totals,
    record_manual_attendance, register_scan, take_roll_call,
)

MONDAY_WEDNESDAY = [
    {'day': 1, 'time': '08:00', 'duration': 2},
    {'day': 3, 'time': '10:00', 'duration': 1.5},
]


def make_calendar():
    return AcademicCalendar([
        SingleDateEvent('Holiday', EventCategory.HOLIDAY, date(2025, 9, 15)),
        SingleDateEvent('Exam', EventCategory.EXAM, date(2025, 9, 10)),
    ])


class ScheduleValidationTest(TestCase):
    """Tests for the weekly schedule validator."""

    def test_valid_schedule(self):
        validate_schedule(MONDAY_WEDNESDAY)

    def test_duplicate_day(self):
        with self.assertRaises(ValidationError) as ctx:
            validate_schedule(MONDAY_WEDNESDAY + [{'day': 1, 'time': '12:00', 'duration': 1}])
        self.assertTrue(any('appears more than once' in m for m in ctx.exception.messages))

    def test_day_out_of_range(self):
        with self.assertRaises(ValidationError):
            validate_schedule([{'day': 8, 'time': '08:00', 'duration': 1}])

    def test_missing_time(self):
        with self.assertRaises(ValidationError):
            validate_schedule([{'day': 2, 'time': '', 'duration': 1}])

    def test_duration_bounds(self):
        for duration in (0, -1, 9, 'long'):
            with self.subTest(duration=duration):
                with self.assertRaises(ValidationError):
                    validate_schedule([{'day': 2, 'time': '08:00', 'duration': duration}])
        validate_schedule([{'day': 2, 'time': '08:00', 'duration': 8}])

    def test_subject_full_clean_uses_validator(self):
        subject = Subject(name='Physics', schedule=[{'day': 0, 'time': '08:00', 'duration': 1}])
        with self.assertRaises(ValidationError) as ctx:
            subject.full_clean()
        self.assertIn('schedule', ctx.exception.message_dict)

    def test_schedule_days(self):
        subject = Subject(name='Physics', schedule=MONDAY_WEDNESDAY)
        self.assertEqual(subject.schedule_days, {1, 3})
        self.assertTrue(subject.has_schedule)
        self.assertFalse(Subject(name='Empty').has_schedule)


class GradingPeriodDatesTest(TestCase):
    """Tests for per-subject grading period start dates."""

    def test_valid_dates(self):
        validate_grading_period_dates({'1': '2025-09-01', '2': '2025-10-17'})
        validate_grading_period_dates({'1': '2025-09-01', '2': ''})

    def test_unknown_period(self):
        with self.assertRaises(ValidationError):
            validate_grading_period_dates({'5': '2025-09-01'})

    def test_invalid_date(self):
        with self.assertRaises(ValidationError):
            validate_grading_period_dates({'1': 'soon'})

    def test_dates_must_ascend(self):
        with self.assertRaises(ValidationError):
            validate_grading_period_dates({'1': '2025-10-17', '2': '2025-09-01'})

    def test_form_mapping(self):
        form = GradingPeriodDatesForm.from_mapping({'1': '2025-09-01', '2': '2025-10-17', '3': ''})
        self.assertTrue(form.is_valid())
        self.assertEqual(form.to_mapping(), {'1': '2025-09-01', '2': '2025-10-17'})

    def test_form_rejects_descending_dates(self):
        form = GradingPeriodDatesForm.from_mapping({'period_1': '2025-10-17', 'period_2': '2025-09-01'})
        self.assertFalse(form.is_valid())
        self.assertIn('period_2', form.errors)


class AttendanceScanTest(TestCase):
    """Tests for QR scanning into an attendance session."""

    def setUp(self):
        self.subject = Subject.objects.create(name='Physics', schedule=MONDAY_WEDNESDAY)
        self.ana = Student.objects.create(subject=self.subject, name='Ana López')
        self.session = AttendanceSession.objects.create(subject=self.subject)

    def test_scan_registers_student(self):
        record = register_scan(self.session, 'Ana López')
        self.assertEqual(record.student, self.ana)
        self.assertEqual(record.subject, self.subject)

    def test_scan_is_case_insensitive(self):
        record = register_scan(self.session, '  ana lópez ')
        self.assertEqual(record.student, self.ana)

    def test_duplicate_scan_is_rejected(self):
        register_scan(self.session, 'Ana López')
        with self.assertRaises(ValidationError) as ctx:
            register_scan(self.session, 'Ana López')
        self.assertIn('Ana López is already registered for this session.', ctx.exception.messages)
        self.assertEqual(AttendanceRecord.objects.filter(session=self.session, student=self.ana).count(), 1)

    def test_same_student_in_another_session(self):
        register_scan(self.session, 'Ana López')
        other = AttendanceSession.objects.create(subject=self.subject)
        register_scan(other, 'Ana López')
        self.assertEqual(self.ana.attendance_records.count(), 2)

    def test_unknown_student(self):
        with self.assertRaises(ValidationError):
            register_scan(self.session, 'Nobody')
        with self.assertRaises(ValidationError):
            register_scan(self.session, '')
        self.assertFalse(AttendanceRecord.objects.exists())

    def test_student_from_another_subject(self):
        other_subject = Subject.objects.create(name='Chemistry')
        Student.objects.create(subject=other_subject, name='Luis')
        with self.assertRaises(ValidationError):
            register_scan(self.session, 'Luis')

    def test_record_clean_rejects_mismatched_subject(self):
        other_subject = Subject.objects.create(name='Chemistry')
        record = AttendanceRecord(session=self.session, student=self.ana, subject=other_subject)
        with self.assertRaises(ValidationError):
            record.full_clean(validate_unique=False)


class RollCallTest(TestCase):
    """Tests for one-tap whole-class attendance."""

    def setUp(self):
        self.subject = Subject.objects.create(name='Physics', schedule=MONDAY_WEDNESDAY)
        self.ana = Student.objects.create(subject=self.subject, name='Ana')
        self.luis = Student.objects.create(subject=self.subject, name='Luis')
        self.now = datetime(2025, 9, 3, 15, 30, tzinfo=dt_timezone.utc)

    def test_roll_call_creates_session_and_records(self):
        session = take_roll_call(self.subject, [self.ana.pk], now=self.now)
        self.assertEqual(session.created_at, self.now)
        self.assertEqual(list(session.records.values_list('student__name', flat=True)), ['Ana'])
        self.assertEqual(session.records.get().created_at, self.now)

    def test_only_once_per_day(self):
        take_roll_call(self.subject, [self.ana.pk], now=self.now)
        with self.assertRaises(ValidationError):
            take_roll_call(self.subject, [self.luis.pk], now=self.now.replace(hour=20))
        self.assertEqual(AttendanceSession.objects.count(), 1)

    def test_next_day_is_allowed(self):
        take_roll_call(self.subject, [self.ana.pk], now=self.now)
        take_roll_call(self.subject, [self.ana.pk], now=self.now.replace(day=4))
        self.assertEqual(AttendanceSession.objects.count(), 2)

    def test_unknown_student_ids(self):
        with self.assertRaises(ValidationError):
            take_roll_call(self.subject, [9999], now=self.now)
        with self.assertRaises(ValidationError):
            take_roll_call(self.subject, ['abc'], now=self.now)
        self.assertFalse(AttendanceSession.objects.exists())

    def test_empty_class(self):
        session = take_roll_call(self.subject, [], now=self.now)
        self.assertEqual(session.records.count(), 0)


class ManualAttendanceTest(TestCase):
    """Tests for backdated attendance."""

    def setUp(self):
        self.subject = Subject.objects.create(name='Physics', schedule=MONDAY_WEDNESDAY)
        self.ana = Student.objects.create(subject=self.subject, name='Ana')
        self.calendar = make_calendar()
        self.today = date(2025, 9, 20)

    def test_records_at_noon_utc(self):
        session = record_manual_attendance(self.subject, '2025-09-08', [self.ana.pk], self.calendar, today=self.today)
        expected = datetime(2025, 9, 8, 12, 0, tzinfo=dt_timezone.utc)
        self.assertEqual(session.created_at, expected)
        self.assertEqual(session.records.get().created_at, expected)

    def test_future_date_rejected(self):
        with self.assertRaises(ValidationError):
            record_manual_attendance(self.subject, '2025-09-22', [self.ana.pk], self.calendar, today=self.today)

    def test_non_class_day_rejected(self):
        # Tuesday
        with self.assertRaises(ValidationError):
            record_manual_attendance(self.subject, '2025-09-09', [self.ana.pk], self.calendar, today=self.today)

    def test_holiday_rejected(self):
        with self.assertRaises(ValidationError):
            record_manual_attendance(self.subject, '2025-09-15', [self.ana.pk], self.calendar, today=self.today)

    def test_exam_day_is_a_class_day(self):
        session = record_manual_attendance(self.subject, '2025-09-10', [], self.calendar, today=self.today)
        self.assertEqual(session.records.count(), 0)

    def test_day_with_attendance_rejected(self):
        record_manual_attendance(self.subject, '2025-09-08', [self.ana.pk], self.calendar, today=self.today)
        with self.assertRaises(ValidationError):
            record_manual_attendance(self.subject, '2025-09-08', [], self.calendar, today=self.today)

    def test_invalid_date_rejected(self):
        with self.assertRaises(ValidationError):
            record_manual_attendance(self.subject, 'yesterday', [], self.calendar, today=self.today)


class AttendanceCalendarTest(TestCase):
    """Tests for the monthly attendance calendar."""

    def setUp(self):
        self.subject = Subject.objects.create(name='Physics', schedule=[{'day': 1, 'time': '08:00', 'duration': 2}])
        self.ana = Student.objects.create(subject=self.subject, name='Ana')
        self.luis = Student.objects.create(subject=self.subject, name='Luis')
        self.calendar = make_calendar()
        record_manual_attendance(self.subject, '2025-09-01', [self.ana.pk], self.calendar, today=date(2025, 9, 2))

    def test_month_cells(self):
        data = build_attendance_calendar(self.subject, 2025, 9, self.calendar, today=date(2025, 9, 20))
        days = {cell['date']: cell for cell in data['days']}
        self.assertEqual(len(days), 30)

        first = days['2025-09-01']
        self.assertTrue(first['has_attendance'])
        self.assertEqual(first['attendees'], ['Ana'])
        self.assertEqual(first['absentees'], ['Luis'])
        self.assertFalse(first['can_add_manual'])

        self.assertTrue(days['2025-09-08']['can_add_manual'])
        self.assertFalse(days['2025-09-09']['is_scheduled'])
        self.assertEqual(days['2025-09-15']['event']['category'], 'holiday')
        self.assertFalse(days['2025-09-15']['can_add_manual'])
        self.assertTrue(days['2025-09-20']['is_today'])
        self.assertFalse(days['2025-09-22']['can_add_manual'])


class ParticipationTest(TestCase):
    """Tests for participation points."""

    def setUp(self):
        self.subject = Subject.objects.create(name='Physics')
        self.ana = Student.objects.create(subject=self.subject, name='Ana')
        self.luis = Student.objects.create(subject=self.subject, name='Luis')

    def test_add_and_total(self):
        add_participation(self.ana, 1, date(2025, 9, 1))
        add_participation(self.ana, '0.5', '2025-09-01')
        add_participation(self.luis, 2, '2025-10-01')
        self.assertEqual(participation_totals(self.subject), {self.ana.pk: 1.5, self.luis.pk: 2.0})
        self.assertEqual(
            participation_totals(self.subject, start=date(2025, 9, 15)),
            {self.luis.pk: 2.0},
        )
        self.assertEqual(Participation.objects.get(student=self.luis).subject, self.subject)

    def test_negative_points_rejected(self):
        with self.assertRaises(ValidationError):
            add_participation(self.ana, -1)

    def test_invalid_points_rejected(self):
        with self.assertRaises(ValidationError):
            add_participation(self.ana, 'many')

    def test_invalid_date_rejected(self):
        with self.assertRaises(ValidationError):
            add_participation(self.ana, 1, 'someday')


@override_settings(CLASSBOOK_LOGIN_PASSWORD='secret', CLASSBOOK_MANUAL_ATTENDANCE_PASSWORD='manual')
class AcademicsViewTest(TestCase):
    """Tests for the academics JSON endpoints."""

    def setUp(self):
        self.client.post(reverse('accounts:login'), {'password': 'secret'})
        self.subject = Subject.objects.create(
            name='Physics',
            schedule=MONDAY_WEDNESDAY,
            grading_periods_dates={'1': '2025-09-01', '2': '2025-10-17'},
        )
        self.ana = Student.objects.create(subject=self.subject, name='Ana')
        self.luis = Student.objects.create(subject=self.subject, name='Luis')

    def post_json(self, url, data):
        return self.client.post(url, data, content_type='application/json')

    def test_create_subject(self):
        response = self.post_json(reverse('academics:subject_list'), {'name': 'Chemistry', 'term': 'four_month'})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['subject']['term'], 'four_month')

    def test_create_subject_without_name(self):
        response = self.post_json(reverse('academics:subject_list'), {'name': '  '})
        self.assertEqual(response.status_code, 400)
        self.assertIn('name', response.json()['errors'])

    def test_subject_detail(self):
        response = self.client.get(reverse('academics:subject_detail', args=[self.subject.pk]))
        data = response.json()
        self.assertEqual([s['name'] for s in data['students']], ['Ana', 'Luis'])
        self.assertEqual([p['key'] for p in data['grading_periods']], ['final', '1', '2'])

    def test_missing_subject(self):
        response = self.client.get(reverse('academics:subject_detail', args=[9999]))
        self.assertEqual(response.status_code, 404)

    def test_update_schedule(self):
        url = reverse('academics:subject_schedule', args=[self.subject.pk])
        response = self.post_json(url, {'schedule': [{'day': 5, 'time': '09:00', 'duration': 1}]})
        self.assertEqual(response.status_code, 200)
        self.subject.refresh_from_db()
        self.assertEqual(self.subject.schedule_days, {5})

    def test_update_schedule_invalid(self):
        url = reverse('academics:subject_schedule', args=[self.subject.pk])
        response = self.post_json(url, {'schedule': [{'day': 5, 'time': '09:00', 'duration': 10}]})
        self.assertEqual(response.status_code, 400)
        self.assertIn('schedule', response.json()['errors'])

    def test_grading_periods(self):
        url = reverse('academics:subject_grading_periods', args=[self.subject.pk])
        response = self.post_json(url, {'1': '2025-09-01', '2': '2025-10-01', '3': '2025-11-01'})
        self.assertEqual(response.status_code, 200)
        periods = {p['key']: p for p in response.json()['grading_periods']}
        self.assertEqual(periods['2']['end'], '2025-10-31')

        response = self.post_json(url, {'1': '2025-11-01', '2': '2025-10-01'})
        self.assertEqual(response.status_code, 400)

    def test_session_dates(self):
        url = reverse('academics:subject_session_dates', args=[self.subject.pk])
        response = self.client.get(url, {'as_of': '2025-09-10'})
        self.assertEqual(response.json()['dates'], ['2025-09-01', '2025-09-03', '2025-09-08', '2025-09-10'])

        response = self.client.get(url, {'as_of': 'later'})
        self.assertEqual(response.status_code, 400)

    def test_scan_flow(self):
        response = self.client.post(reverse('academics:session_list', args=[self.subject.pk]))
        self.assertEqual(response.status_code, 201)
        session_id = response.json()['session']['id']

        url = reverse('academics:session_scan', args=[session_id])
        self.assertEqual(self.post_json(url, {'token': 'Ana'}).status_code, 201)
        response = self.post_json(url, {'token': 'Ana'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(AttendanceRecord.objects.filter(session_id=session_id).count(), 1)

        response = self.client.get(reverse('academics:session_list', args=[self.subject.pk]))
        self.assertEqual(response.json()['sessions'][0]['present'], 1)

    def test_roll_call(self):
        url = reverse('academics:roll_call', args=[self.subject.pk])
        response = self.post_json(url, {'student_ids': [self.ana.pk, self.luis.pk]})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['session']['present'], 2)
        self.assertEqual(self.post_json(url, {'student_ids': []}).status_code, 400)
        self.assertEqual(self.post_json(url, {'student_ids': 'all'}).status_code, 400)

    def test_manual_attendance(self):
        self.client.post(reverse('accounts:verify_manual_attendance'), {'password': 'manual'})
        url = reverse('academics:manual_attendance', args=[self.subject.pk])
        response = self.post_json(url, {'date': '2025-09-08', 'student_ids': [self.ana.pk]})
        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.json()['session']['created_at'].startswith('2025-09-08T12:00:00'))

        response = self.post_json(url, {'date': '2999-01-07', 'student_ids': []})
        self.assertEqual(response.status_code, 400)

    def test_attendance_calendar(self):
        url = reverse('academics:attendance_calendar', args=[self.subject.pk, 2025, 9])
        response = self.client.get(url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()['days']), 30)

        bad_month = reverse('academics:attendance_calendar', args=[self.subject.pk, 2025, 13])
        self.assertEqual(self.client.get(bad_month).status_code, 400)

    def test_attendance_calendar_requires_schedule(self):
        subject = Subject.objects.create(name='No schedule')
        url = reverse('academics:attendance_calendar', args=[subject.pk, 2025, 9])
        self.assertEqual(self.client.get(url).status_code, 400)

    def test_participation_endpoints(self):
        url = reverse('academics:participation_list', args=[self.subject.pk])
        response = self.post_json(url, {'student_id': self.ana.pk, 'points': '1.5', 'date': '2025-09-03'})
        self.assertEqual(response.status_code, 201)
        participation_id = response.json()['participation']['id']

        response = self.client.get(url)
        self.assertEqual(response.json()['totals'], {str(self.ana.pk): 1.5})

        response = self.post_json(url, {'student_id': self.ana.pk, 'points': '-1'})
        self.assertEqual(response.status_code, 400)

        response = self.client.post(reverse('academics:participation_delete', args=[participation_id]))
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Participation.objects.exists())
