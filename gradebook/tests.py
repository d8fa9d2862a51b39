from datetime import date, datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from io import BytesIO
from types import SimpleNamespace

import openpyxl
from django.core.exceptions import ValidationError
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse

from academics.models import AttendanceRecord, AttendanceSession, Participation, Subject
from core.calendar import AcademicCalendar
from core.choices import AssignmentLimit, CriterionType
from core.scheduling import PeriodWindow
from students.models import Student

from .aggregation import (
    NORMALIZED, SIMPLE, aggregate_grades, criteria_for_period, final_score, summarize_attendance,
)
from .forms import EvaluationCriterionForm, GradeForm
from .models import Assignment, EvaluationCriterion, Grade
from .utils import build_class_report, build_student_report, get_period, grading_periods

UTC = dt_timezone.utc
PERIOD_1 = PeriodWindow('1', 'Period 1', date(2025, 9, 1), date(2025, 10, 16))
FINAL = PeriodWindow('final', 'Final grade', date(2025, 9, 1), date(2026, 1, 5))


def criterion(pk, name, type_, percentage, grading_period=1, max_points=None):
    return SimpleNamespace(
        id=pk, name=name, type=type_, percentage=percentage,
        grading_period=grading_period, max_points=max_points,
    )


def assignment(pk, criterion_id, created_at=datetime(2025, 9, 5, 10, 0, tzinfo=UTC), name=None):
    return SimpleNamespace(id=pk, name=name or pk, evaluation_criterion_id=criterion_id, created_at=created_at)


def grade(assignment_id, score):
    return SimpleNamespace(assignment_id=assignment_id, score=Decimal(str(score)))


def class_days(count, start=date(2025, 9, 1)):
    return [start + timedelta(days=7 * i) for i in range(count)]


class AttendanceSummaryTest(SimpleTestCase):
    """Tests for attended/missed splitting."""

    def test_no_records(self):
        summary = summarize_attendance([], class_days(4))
        self.assertEqual(summary.ratio, 0)
        self.assertEqual(len(summary.missed), 4)

    def test_no_instructional_dates(self):
        summary = summarize_attendance([datetime(2025, 9, 1, 9, 0, tzinfo=UTC)], [])
        self.assertEqual(summary.ratio, 0)
        self.assertEqual(summary.session_count, 0)

    def test_records_count_for_their_utc_day(self):
        days = class_days(2)
        # 20:00 at UTC-6 on Aug 31 is already Sep 1 in UTC
        late = datetime(2025, 8, 31, 20, 0, tzinfo=dt_timezone(timedelta(hours=-6)))
        summary = summarize_attendance([late], days)
        self.assertEqual(summary.attended, (date(2025, 9, 1),))
        self.assertEqual(summary.ratio, 0.5)

    def test_extra_records_are_ignored(self):
        timestamps = [datetime(2025, 9, 2, 9, 0, tzinfo=UTC), datetime(2025, 9, 1, 9, 0, tzinfo=UTC)]
        summary = summarize_attendance(timestamps, class_days(1))
        self.assertEqual(summary.ratio, 1.0)


class AggregateGradesTest(SimpleTestCase):
    """Tests for per-criterion averages and the final score."""

    def setUp(self):
        self.criteria = [
            criterion('c1', 'Tareas', 'default', 60),
            criterion('c2', 'Asistencia', 'attendance', 40),
        ]
        self.assignments = [assignment('a1', 'c1'), assignment('a2', 'c1')]
        self.grades = [grade('a1', 8)]
        days = class_days(10)
        self.attendance = summarize_attendance(
            [datetime.combine(day, datetime.min.time(), tzinfo=UTC) for day in days[:8]], days
        )

    def aggregate(self, **kwargs):
        options = {
            'criteria': self.criteria,
            'assignments': self.assignments,
            'grades': self.grades,
            'attendance': self.attendance,
            'participations': [],
            'window': PERIOD_1,
        }
        options.update(kwargs)
        return aggregate_grades(**options)

    def test_assignments_and_attendance(self):
        summary = self.aggregate()
        tareas, asistencia = summary.results

        self.assertEqual(tareas.average, 8.0)
        self.assertEqual(len(tareas.items), 2)
        self.assertIsNone(tareas.items[1].score)
        self.assertAlmostEqual(asistencia.average, 8.0)
        self.assertAlmostEqual(summary.final_score, 8.0)
        self.assertEqual(summary.convention, NORMALIZED)

    def test_simple_convention(self):
        summary = self.aggregate(convention=SIMPLE)
        self.assertAlmostEqual(summary.final_score, 80.0)
        self.assertAlmostEqual(summary.weighted_total, 80.0)

    def test_same_inputs_same_output(self):
        self.assertEqual(self.aggregate(), self.aggregate())
        self.assertEqual(self.aggregate().as_dict(), self.aggregate().as_dict())

    def test_ungraded_criterion_weight(self):
        summary = self.aggregate(grades=[])
        self.assertIsNone(summary.results[0].average)
        self.assertTrue(summary.results[0].has_content)
        self.assertAlmostEqual(summary.final_score, 3.2)

        summary = self.aggregate(grades=[], include_empty_weight=False)
        self.assertAlmostEqual(summary.final_score, 8.0)

    def test_assignments_outside_window_are_ignored(self):
        late = assignment('a3', 'c1', created_at=datetime(2025, 11, 1, 10, 0, tzinfo=UTC))
        summary = self.aggregate(assignments=self.assignments + [late], grades=self.grades + [grade('a3', 2)])
        self.assertEqual(summary.results[0].average, 8.0)

        summary = self.aggregate(
            assignments=self.assignments + [late], grades=self.grades + [grade('a3', 2)], window=FINAL,
        )
        self.assertEqual(summary.results[0].average, 5.0)

    def test_criterion_without_assignments(self):
        summary = self.aggregate(assignments=[], grades=[])
        self.assertFalse(summary.results[0].has_content)
        self.assertIsNone(summary.results[0].average)

    def test_attendance_without_sessions(self):
        summary = self.aggregate(attendance=summarize_attendance([], []))
        self.assertFalse(summary.results[1].has_content)
        self.assertIsNone(summary.results[1].average)

    def test_participation(self):
        criteria = [criterion('c3', 'Participación', 'participation', 100, max_points=Decimal('5'))]
        participations = [
            SimpleNamespace(points=Decimal('2'), date=date(2025, 9, 3)),
            SimpleNamespace(points=Decimal('1'), date=date(2025, 9, 10)),
            SimpleNamespace(points=Decimal('4'), date=date(2025, 11, 3)),
        ]
        summary = self.aggregate(criteria=criteria, participations=participations)
        result = summary.results[0]
        self.assertAlmostEqual(result.average, 6.0)
        self.assertEqual(result.items[0].label, 'Accumulated points: 3.0 / 5')
        self.assertAlmostEqual(summary.final_score, 6.0)

    def test_participation_is_capped(self):
        criteria = [criterion('c3', 'Participación', 'participation', 100, max_points=Decimal('2'))]
        participations = [SimpleNamespace(points=Decimal('5'), date=date(2025, 9, 3))]
        summary = self.aggregate(criteria=criteria, participations=participations)
        self.assertEqual(summary.results[0].average, 10.0)

    def test_participation_without_maximum(self):
        criteria = [criterion('c3', 'Participación', 'participation', 100, max_points=None)]
        summary = self.aggregate(criteria=criteria, window=FINAL)
        self.assertTrue(summary.results[0].has_content)
        self.assertIsNone(summary.results[0].average)
        self.assertEqual(summary.final_score, 0.0)

    def test_period_selects_criteria(self):
        criteria = self.criteria + [criterion('c4', 'Examen', 'default', 100, grading_period=2)]
        self.assertEqual([c.id for c in criteria_for_period(criteria, '1')], ['c1', 'c2'])
        self.assertEqual([c.id for c in criteria_for_period(criteria, '2')], ['c4'])
        self.assertEqual(len(criteria_for_period(criteria, 'final')), 3)

    def test_unknown_criterion_type(self):
        with self.assertRaises(ValueError):
            self.aggregate(criteria=[criterion('c9', 'Bonus', 'bonus', 10)])

    def test_unknown_convention(self):
        with self.assertRaises(ValueError):
            final_score([], convention='curved')

    def test_no_criteria(self):
        summary = self.aggregate(criteria=[])
        self.assertEqual(summary.results, ())
        self.assertEqual(summary.final_score, 0.0)


class EvaluationCriterionModelTest(TestCase):
    """Tests for EvaluationCriterion model."""

    def setUp(self):
        self.subject = Subject.objects.create(name='Physics')

    def test_percentage_sum_cannot_exceed_100(self):
        EvaluationCriterion.objects.create(subject=self.subject, name='Exam', percentage=95)
        extra = EvaluationCriterion(subject=self.subject, name='Homework', percentage=10)
        with self.assertRaises(ValidationError) as ctx:
            extra.full_clean()
        self.assertEqual(
            ctx.exception.message_dict['percentage'],
            ['Total percentage for period 1 cannot exceed 100%. Current: 95%, Adding: 10%'],
        )

    def test_other_period_has_its_own_budget(self):
        EvaluationCriterion.objects.create(subject=self.subject, name='Exam', percentage=95)
        extra = EvaluationCriterion(subject=self.subject, name='Homework', percentage=10, grading_period=2)
        extra.full_clean()

    def test_editing_does_not_count_itself(self):
        exam = EvaluationCriterion.objects.create(subject=self.subject, name='Exam', percentage=95)
        exam.percentage = 100
        exam.full_clean()

    def test_participation_needs_max_points(self):
        participation = EvaluationCriterion(
            subject=self.subject, name='Participation', percentage=10, type=CriterionType.PARTICIPATION
        )
        with self.assertRaises(ValidationError) as ctx:
            participation.full_clean()
        self.assertIn('max_points', ctx.exception.message_dict)

    def test_automatic_criteria_are_single(self):
        attendance = EvaluationCriterion.objects.create(
            subject=self.subject, name='Attendance', percentage=10,
            type=CriterionType.ATTENDANCE, max_points=Decimal('5'),
        )
        self.assertEqual(attendance.assignment_limit, AssignmentLimit.SINGLE)
        self.assertIsNone(attendance.max_points)
        self.assertTrue(attendance.is_automatic)

    def test_form_rejects_overflow(self):
        EvaluationCriterion.objects.create(subject=self.subject, name='Exam', percentage=95)
        form = EvaluationCriterionForm(
            {'name': 'Homework', 'percentage': 10, 'type': 'default'}, subject=self.subject
        )
        self.assertFalse(form.is_valid())
        self.assertIn('percentage', form.errors)
        self.assertEqual(EvaluationCriterion.objects.count(), 1)


class AssignmentAndGradeModelTest(TestCase):
    """Tests for Assignment and Grade models."""

    def setUp(self):
        self.subject = Subject.objects.create(name='Physics')
        self.student = Student.objects.create(subject=self.subject, name='Ana')
        self.homework = EvaluationCriterion.objects.create(subject=self.subject, name='Homework', percentage=60)
        self.assignment = Assignment.objects.create(
            subject=self.subject, evaluation_criterion=self.homework, name='Essay 1'
        )

    def test_automatic_criterion_takes_no_assignments(self):
        attendance = EvaluationCriterion.objects.create(
            subject=self.subject, name='Attendance', percentage=40, type=CriterionType.ATTENDANCE
        )
        invalid = Assignment(subject=self.subject, evaluation_criterion=attendance, name='Roll')
        with self.assertRaises(ValidationError):
            invalid.full_clean()

    def test_single_assignment_limit(self):
        final_exam = EvaluationCriterion.objects.create(
            subject=self.subject, name='Final exam', percentage=40, assignment_limit=AssignmentLimit.SINGLE
        )
        Assignment.objects.create(subject=self.subject, evaluation_criterion=final_exam, name='Exam')
        second = Assignment(subject=self.subject, evaluation_criterion=final_exam, name='Retake')
        with self.assertRaises(ValidationError) as ctx:
            second.full_clean()
        self.assertIn('evaluation_criterion', ctx.exception.message_dict)

    def test_upsert_creates_then_replaces(self):
        Grade.upsert(self.student, self.assignment, 7)
        Grade.upsert(self.student, self.assignment, '9.5')
        self.assertEqual(Grade.objects.count(), 1)
        self.assertEqual(Grade.objects.get().score, Decimal('9.50'))

    def test_upsert_rejects_out_of_range(self):
        for score in (None, -1, '10.5', 'abc', 'nan', 'inf'):
            with self.subTest(score=score):
                with self.assertRaises(ValidationError):
                    Grade.upsert(self.student, self.assignment, score)
        self.assertFalse(Grade.objects.exists())

    def test_upsert_boundaries(self):
        Grade.upsert(self.student, self.assignment, 0)
        Grade.upsert(self.student, self.assignment, 10)
        self.assertEqual(Grade.objects.get().score, Decimal('10'))

    def test_upsert_rejects_other_subject(self):
        other = Student.objects.create(subject=Subject.objects.create(name='Chemistry'), name='Luis')
        with self.assertRaises(ValidationError):
            Grade.upsert(other, self.assignment, 5)

    def test_grade_form_range(self):
        self.assertTrue(GradeForm({'student_id': self.student.pk, 'score': '10'}).is_valid())
        self.assertFalse(GradeForm({'student_id': self.student.pk, 'score': '10.01'}).is_valid())
        self.assertFalse(GradeForm({'student_id': self.student.pk, 'score': '-0.5'}).is_valid())


class ReportTestMixin:
    """Physics, Mondays and Wednesdays, two grading periods, two students."""

    def setUp(self):
        self.calendar = AcademicCalendar([])
        self.as_of = date(2025, 9, 17)
        self.subject = Subject.objects.create(
            name='Physics',
            schedule=[{'day': 1, 'time': '08:00', 'duration': 2}, {'day': 3, 'time': '08:00', 'duration': 2}],
            grading_periods_dates={'1': '2025-09-01', '2': '2025-10-17'},
        )
        self.ana = Student.objects.create(subject=self.subject, name='Ana')
        self.luis = Student.objects.create(subject=self.subject, name='Luis')

        self.homework = EvaluationCriterion.objects.create(subject=self.subject, name='Tareas', percentage=60)
        self.attendance = EvaluationCriterion.objects.create(
            subject=self.subject, name='Asistencia', percentage=40, type=CriterionType.ATTENDANCE
        )
        self.essay = Assignment.objects.create(
            subject=self.subject, evaluation_criterion=self.homework, name='Essay',
            created_at=datetime(2025, 9, 5, 10, 0, tzinfo=UTC),
        )
        Assignment.objects.create(
            subject=self.subject, evaluation_criterion=self.homework, name='Lab',
            created_at=datetime(2025, 9, 6, 10, 0, tzinfo=UTC),
        )
        Grade.upsert(self.ana, self.essay, 9)

        # Class days up to Sep 17: 1, 3, 8, 10, 15, 17. Ana attends three.
        for day in (1, 3, 8):
            timestamp = datetime(2025, 9, day, 14, 0, tzinfo=UTC)
            session = AttendanceSession.objects.create(subject=self.subject, created_at=timestamp)
            AttendanceRecord.objects.create(session=session, student=self.ana, subject=self.subject, created_at=timestamp)


class StudentReportTest(ReportTestMixin, TestCase):
    """Tests for reports built from the database."""

    def test_period_report(self):
        report = build_student_report(self.ana, '1', as_of=self.as_of, calendar=self.calendar)
        results = {r.name: r for r in report.per_criterion}
        tareas, asistencia = results['Tareas'], results['Asistencia']

        self.assertEqual(tareas.average, 9.0)
        self.assertEqual(asistencia.average, 5.0)
        self.assertEqual(len(report.attended_dates), 3)
        self.assertEqual(len(report.missed_dates), 3)
        self.assertAlmostEqual(report.final_score, 7.4)

    def test_student_without_records(self):
        report = build_student_report(self.luis, 'final', as_of=self.as_of, calendar=self.calendar)
        results = {r.name: r for r in report.per_criterion}
        self.assertIsNone(results['Tareas'].average)
        self.assertEqual(results['Asistencia'].average, 0.0)
        self.assertEqual(report.final_score, 0.0)

    def test_period_without_criteria(self):
        report = build_student_report(self.ana, '2', as_of=date(2025, 11, 1), calendar=self.calendar)
        self.assertEqual(report.per_criterion, ())
        self.assertEqual(report.final_score, 0.0)

    @override_settings(GRADEBOOK_FINAL_SCORE_CONVENTION='simple')
    def test_convention_from_settings(self):
        report = build_student_report(self.ana, '1', as_of=self.as_of, calendar=self.calendar)
        self.assertAlmostEqual(report.final_score, 74.0)

    def test_participation_in_report(self):
        EvaluationCriterion.objects.create(
            subject=self.subject, name='Participación', percentage=10, grading_period=2,
            type=CriterionType.PARTICIPATION, max_points=Decimal('5'),
        )
        Participation.objects.create(student=self.ana, subject=self.subject, points=3, date=date(2025, 10, 20))
        report = build_student_report(self.ana, '2', as_of=date(2025, 11, 1), calendar=self.calendar)
        self.assertAlmostEqual(report.per_criterion[0].average, 6.0)

    def test_unknown_period(self):
        with self.assertRaises(ValidationError):
            build_student_report(self.ana, '4', as_of=self.as_of, calendar=self.calendar)
        with self.assertRaises(ValidationError):
            get_period(self.subject, '3')

    def test_class_report(self):
        reports = build_class_report(self.subject, '1', as_of=self.as_of, calendar=self.calendar)
        self.assertEqual([r.student.name for r in reports], ['Ana', 'Luis'])
        self.assertEqual(list(grading_periods(self.subject)), ['final', '1', '2'])

    def test_report_as_dict(self):
        data = build_student_report(self.ana, '1', as_of=self.as_of, calendar=self.calendar).as_dict()
        self.assertEqual(data['student']['name'], 'Ana')
        self.assertEqual(data['period']['end'], '2025-10-16')
        self.assertEqual(data['attended_dates'], ['2025-09-01', '2025-09-03', '2025-09-08'])
        self.assertTrue(data['qr_code'].startswith('data:image/png;base64,'))


@override_settings(CLASSBOOK_LOGIN_PASSWORD='secret')
class GradebookViewTest(ReportTestMixin, TestCase):
    """Tests for the gradebook JSON endpoints."""

    def setUp(self):
        super().setUp()
        self.client.post(reverse('accounts:login'), {'password': 'secret'})

    def post_json(self, url, data):
        return self.client.post(url, data, content_type='application/json')

    def test_criteria_list(self):
        response = self.client.get(reverse('gradebook:criteria_list', args=[self.subject.pk]))
        self.assertEqual(response.json()['percentage_by_period'], {'1': 100})

    def test_create_criterion_over_budget(self):
        url = reverse('gradebook:criteria_list', args=[self.subject.pk])
        response = self.post_json(url, {'name': 'Quiz', 'percentage': 10, 'type': 'default'})
        self.assertEqual(response.status_code, 400)
        self.assertIn('percentage', response.json()['errors'])

        response = self.post_json(url, {'name': 'Quiz', 'percentage': 10, 'type': 'default', 'grading_period': 2})
        self.assertEqual(response.status_code, 201)

    def test_delete_criterion_cascades(self):
        url = reverse('gradebook:criterion_delete', args=[self.homework.pk])
        response = self.client.post(url)
        self.assertEqual(response.json()['assignments_deleted'], 2)
        self.assertFalse(Grade.objects.exists())

    def test_create_assignment(self):
        url = reverse('gradebook:assignment_list', args=[self.subject.pk])
        response = self.post_json(url, {'name': 'Quiz', 'evaluation_criterion': str(self.homework.pk)})
        self.assertEqual(response.status_code, 201)

        response = self.post_json(url, {'name': 'Roll', 'evaluation_criterion': str(self.attendance.pk)})
        self.assertEqual(response.status_code, 400)

    def test_grade_assignment(self):
        url = reverse('gradebook:assignment_grades', args=[self.essay.pk])
        response = self.post_json(url, {'student_id': self.luis.pk, 'score': '6.5'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['grade']['score'], 6.5)

        response = self.post_json(url, {'student_id': self.luis.pk, 'score': '11'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(Grade.objects.get(student=self.luis).score, Decimal('6.5'))

    def test_scan_grade(self):
        url = reverse('gradebook:assignment_scan', args=[self.essay.pk])
        response = self.post_json(url, {'token': 'luis', 'score': 7})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['student']['name'], 'Luis')

        response = self.post_json(url, {'token': 'Nobody', 'score': 7})
        self.assertEqual(response.status_code, 400)

    def test_student_grades_all_or_nothing(self):
        lab = Assignment.objects.get(name='Lab')
        url = reverse('gradebook:student_grades', args=[self.subject.pk, self.luis.pk])
        response = self.post_json(url, {'grades': [
            {'assignment_id': str(self.essay.pk), 'score': 8},
            {'assignment_id': str(lab.pk), 'score': 12},
        ]})
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Grade.objects.filter(student=self.luis).exists())

        response = self.post_json(url, {'grades': [
            {'assignment_id': str(self.essay.pk), 'score': 8},
            {'assignment_id': str(lab.pk), 'score': ''},
        ]})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()['grades']), 1)

    def test_student_report(self):
        url = reverse('gradebook:student_report', args=[self.subject.pk, self.ana.pk])
        response = self.client.get(url, {'period': '1', 'as_of': '2025-09-17'})
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertAlmostEqual(data['final_score'], 7.4)
        self.assertEqual({c['name'] for c in data['per_criterion']}, {'Tareas', 'Asistencia'})

    def test_report_bad_input(self):
        url = reverse('gradebook:student_report', args=[self.subject.pk, self.ana.pk])
        self.assertEqual(self.client.get(url, {'period': '9'}).status_code, 400)
        self.assertEqual(self.client.get(url, {'as_of': 'soon'}).status_code, 400)

    def test_class_report(self):
        url = reverse('gradebook:class_report', args=[self.subject.pk])
        response = self.client.get(url, {'period': '1', 'as_of': '2025-09-17'})
        students = response.json()['students']
        self.assertEqual(students[0]['attended'], 3)
        self.assertEqual(students[1]['final_score'], 0.0)

    def test_periods(self):
        response = self.client.get(reverse('gradebook:periods', args=[self.subject.pk]))
        self.assertEqual([p['key'] for p in response.json()['periods']], ['final', '1', '2'])

    def test_export(self):
        url = reverse('gradebook:export_class_report', args=[self.subject.pk])
        response = self.client.get(url, {'period': '1', 'as_of': '2025-09-17'})
        self.assertEqual(response.status_code, 200)
        self.assertIn('grades_physics_1.xlsx', response['Content-Disposition'])

        ws = openpyxl.load_workbook(BytesIO(response.content)).active
        self.assertEqual(ws['A1'].value, 'Student')
        self.assertIn('Tareas (60%)', [ws['D1'].value, ws['E1'].value])
        self.assertEqual(ws['A2'].value, 'Ana')
        self.assertEqual(ws['F2'].value, 7.4)
