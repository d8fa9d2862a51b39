import json
from datetime import date
from unittest import mock

import requests
from django.core.exceptions import ValidationError
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse

from academics.models import Subject
from core.calendar import AcademicCalendar, DateRangeEvent, SingleDateEvent
from core.choices import EventCategory, PlannedClassStatus

from .generators import SyllabusGenerationError, generate_graphic_organizer, generate_syllabus_topics
from .models import PlannedClass
from .tasks import generate_syllabus
from .utils import Topic, create_planned_classes, parse_syllabus_text, schedule_topics

MONDAY_WEDNESDAY = [
    {'day': 1, 'time': '08:00', 'duration': 2},
    {'day': 3, 'time': '08:00', 'duration': 2},
]


def gemini_response(payload):
    """Fake ``requests.post`` result carrying ``payload`` as the generated text."""
    response = mock.Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = {
        'candidates': [{'content': {'parts': [{'text': json.dumps(payload)}]}}]
    }
    return response


class ParseSyllabusTextTest(SimpleTestCase):
    """Tests for syllabus text pasted from a spreadsheet."""

    def test_header_is_skipped(self):
        text = 'Tema\tSubtema\tDescripción\nÁlgebra\tEcuaciones\tLineales\nÁlgebra\tMatrices\n'
        topics = parse_syllabus_text(text)
        self.assertEqual(topics, [
            Topic('Álgebra: Ecuaciones', 'Lineales'),
            Topic('Álgebra: Matrices', None),
        ])

    def test_english_header(self):
        topics = parse_syllabus_text('Topic\tSubtopic\nMotion\tVelocity')
        self.assertEqual([t.title for t in topics], ['Motion: Velocity'])

    def test_first_line_kept_without_header_words(self):
        topics = parse_syllabus_text('Motion\tVelocity\nMotion\tAcceleration')
        self.assertEqual(len(topics), 2)

    def test_short_and_blank_lines_are_ignored(self):
        topics = parse_syllabus_text('Motion\tVelocity\n\nJust one column\n\t\n')
        self.assertEqual([t.title for t in topics], ['Motion: Velocity'])

    def test_empty_topic_uses_subtopic(self):
        topics = parse_syllabus_text('\tVelocity\tDistance over time')
        self.assertEqual(topics, [Topic('Velocity', 'Distance over time')])

    def test_empty_text(self):
        self.assertEqual(parse_syllabus_text(''), [])
        self.assertEqual(parse_syllabus_text(None), [])


class ScheduleTopicsTest(SimpleTestCase):
    """Tests for placing topics on class days."""

    def setUp(self):
        self.topics = [Topic('One'), Topic('Two'), Topic('Three'), Topic('Four')]

    def test_topics_follow_the_schedule(self):
        scheduled = schedule_topics(self.topics, {1, 3}, date(2025, 9, 2), AcademicCalendar([]))
        self.assertEqual([day for day, _ in scheduled], [
            date(2025, 9, 3), date(2025, 9, 8), date(2025, 9, 10), date(2025, 9, 15),
        ])
        self.assertEqual([t.title for _, t in scheduled], ['One', 'Two', 'Three', 'Four'])

    def test_start_date_counts_when_it_is_a_class_day(self):
        scheduled = schedule_topics(self.topics[:1], {1}, date(2025, 9, 1), AcademicCalendar([]))
        self.assertEqual(scheduled[0][0], date(2025, 9, 1))

    def test_holidays_and_vacations_are_skipped(self):
        calendar = AcademicCalendar([
            SingleDateEvent('Holiday', EventCategory.HOLIDAY, date(2025, 9, 8)),
            DateRangeEvent('Break', EventCategory.VACATION, date(2025, 9, 10), date(2025, 9, 14)),
            SingleDateEvent('Exam', EventCategory.EXAM, date(2025, 9, 15)),
        ])
        scheduled = schedule_topics(self.topics, [1, 3], date(2025, 9, 1), calendar)
        self.assertEqual([day for day, _ in scheduled], [
            date(2025, 9, 1), date(2025, 9, 3), date(2025, 9, 15), date(2025, 9, 17),
        ])

    def test_schedule_required(self):
        with self.assertRaises(ValidationError):
            schedule_topics(self.topics, [], date(2025, 9, 1), AcademicCalendar([]))


class CreatePlannedClassesTest(TestCase):

    def setUp(self):
        self.subject = Subject.objects.create(name='Physics', schedule=MONDAY_WEDNESDAY)

    def test_creates_classes(self):
        created = create_planned_classes(
            self.subject, [Topic('One', 'First'), Topic('Two')], date(2025, 9, 1), AcademicCalendar([])
        )
        self.assertEqual(len(created), 2)
        first = PlannedClass.objects.get(title='One')
        self.assertEqual(first.class_date, date(2025, 9, 1))
        self.assertEqual(first.description, 'First')
        self.assertEqual(first.status, PlannedClassStatus.PLANNED)

    def test_no_topics(self):
        with self.assertRaises(ValidationError):
            create_planned_classes(self.subject, [], date(2025, 9, 1), AcademicCalendar([]))


@override_settings(GEMINI_API_KEY='test-key', PLANNER_GENERATOR_MODEL='gemini-test')
class GeneratorTest(TestCase):
    """Tests for the Gemini client, with the HTTP call mocked."""

    def setUp(self):
        self.subject = Subject.objects.create(name='Physics', schedule=MONDAY_WEDNESDAY)

    @mock.patch('planner.generators.requests.post')
    def test_syllabus_topics(self, post):
        post.return_value = gemini_response([
            {'titulo': 'Motion', 'descripcion': 'Velocity and acceleration'},
            {'titulo': 'Forces', 'descripcion': ''},
            {'titulo': 'Extra', 'descripcion': 'Not requested'},
        ])
        topics = generate_syllabus_topics(self.subject, 'Intro to mechanics', 2)

        self.assertEqual(topics, [Topic('Motion', 'Velocity and acceleration'), Topic('Forces', None)])
        url = post.call_args[0][0]
        self.assertIn('models/gemini-test:generateContent', url)
        self.assertEqual(post.call_args[1]['params'], {'key': 'test-key'})
        prompt = post.call_args[1]['json']['contents'][0]['parts'][0]['text']
        self.assertIn('2 clases', prompt)

    @mock.patch('planner.generators.requests.post')
    def test_unreadable_response(self, post):
        response = mock.Mock()
        response.raise_for_status.return_value = None
        response.json.return_value = {'candidates': []}
        post.return_value = response
        with self.assertRaises(SyllabusGenerationError):
            generate_syllabus_topics(self.subject, 'Intro', 2)

    @mock.patch('planner.generators.requests.post')
    def test_empty_syllabus(self, post):
        post.return_value = gemini_response([])
        with self.assertRaises(SyllabusGenerationError):
            generate_syllabus_topics(self.subject, 'Intro', 2)

    @override_settings(GEMINI_API_KEY='')
    @mock.patch('planner.generators.requests.post')
    def test_missing_api_key(self, post):
        with self.assertRaises(SyllabusGenerationError):
            generate_syllabus_topics(self.subject, 'Intro', 2)
        post.assert_not_called()

    @mock.patch('planner.generators.requests.post')
    def test_graphic_organizer(self, post):
        post.return_value = gemini_response({
            'tema_principal': {'nombre': 'Motion', 'definicion': 'Change of position'},
            'subtemas': [{'nombre': 'Velocity', 'puntos_clave': ['Speed', 'Direction']}],
        })
        planned = PlannedClass.objects.create(subject=self.subject, class_date=date(2025, 9, 1), title='Motion')
        organizer = generate_graphic_organizer(self.subject, planned)
        self.assertEqual(organizer['main_topic'], {'name': 'Motion', 'definition': 'Change of position'})
        self.assertEqual(organizer['subtopics'][0]['key_points'], ['Speed', 'Direction'])


@override_settings(GEMINI_API_KEY='test-key')
class GenerateSyllabusTaskTest(TestCase):
    """Tests for the background syllabus generation."""

    def setUp(self):
        self.subject = Subject.objects.create(name='Physics', schedule=MONDAY_WEDNESDAY)

    @mock.patch('planner.tasks.generate_syllabus_topics')
    def test_plans_generated_topics(self, generate):
        generate.return_value = [Topic('Motion'), Topic('Forces')]
        result = generate_syllabus.apply(args=[self.subject.pk, 'Mechanics', 2, '2025-09-01']).get()

        self.assertEqual(result, {'status': 'created', 'count': 2})
        self.assertEqual(
            list(self.subject.planned_classes.values_list('class_date', flat=True)),
            [date(2025, 9, 1), date(2025, 9, 3)],
        )

    @mock.patch('planner.tasks.generate_syllabus_topics')
    def test_generation_error_is_reported(self, generate):
        generate.side_effect = SyllabusGenerationError('The generated syllabus has no topics')
        result = generate_syllabus.apply(args=[self.subject.pk, 'Mechanics', 2, '2025-09-01']).get()
        self.assertEqual(result['status'], 'failed')
        self.assertFalse(PlannedClass.objects.exists())

    def test_missing_subject(self):
        result = generate_syllabus.apply(args=[9999, 'Mechanics', 2, '2025-09-01']).get()
        self.assertEqual(result['status'], 'failed')


@override_settings(CLASSBOOK_LOGIN_PASSWORD='secret', GEMINI_API_KEY='test-key')
class PlannerViewTest(TestCase):
    """Tests for the planner endpoints."""

    def setUp(self):
        self.client.post(reverse('accounts:login'), {'password': 'secret'})
        self.subject = Subject.objects.create(name='Physics', schedule=MONDAY_WEDNESDAY)

    def post_json(self, url, data):
        return self.client.post(url, data, content_type='application/json')

    def test_add_and_list(self):
        url = reverse('planner:class_list', args=[self.subject.pk])
        response = self.post_json(url, {'class_date': '2025-09-01', 'title': 'Motion'})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['planned_class']['status'], 'planned')

        self.assertEqual(self.post_json(url, {'class_date': '2025-09-01', 'title': ' '}).status_code, 400)
        self.assertEqual(len(self.client.get(url).json()['planned_classes']), 1)

    def test_bulk_add(self):
        url = reverse('planner:bulk_add', args=[self.subject.pk])
        text = 'Tema\tSubtema\nMecánica\tVelocidad\nMecánica\tFuerza'
        response = self.post_json(url, {'text': text, 'start_date': '2025-09-02'})
        self.assertEqual(response.status_code, 201)
        dates = [c['class_date'] for c in response.json()['planned_classes']]
        self.assertEqual(dates, ['2025-09-03', '2025-09-08'])

    def test_bulk_add_without_topics(self):
        url = reverse('planner:bulk_add', args=[self.subject.pk])
        response = self.post_json(url, {'text': 'only one column', 'start_date': '2025-09-02'})
        self.assertEqual(response.status_code, 400)

    def test_bulk_add_without_schedule(self):
        subject = Subject.objects.create(name='No schedule')
        url = reverse('planner:bulk_add', args=[subject.pk])
        response = self.post_json(url, {'text': 'A\tB', 'start_date': '2025-09-02'})
        self.assertEqual(response.status_code, 400)

    @mock.patch('planner.views.classes.generate_syllabus')
    def test_generate_queues_task(self, task):
        task.delay.return_value = mock.Mock(id='task-1')
        url = reverse('planner:generate', args=[self.subject.pk])
        response = self.post_json(url, {'description': 'Mechanics', 'num_classes': 10, 'start_date': '2025-09-01'})
        self.assertEqual(response.status_code, 202)
        self.assertEqual(response.json()['task_id'], 'task-1')
        task.delay.assert_called_once_with(self.subject.pk, 'Mechanics', 10, '2025-09-01')

    @mock.patch('planner.views.classes.generate_syllabus')
    def test_generate_validation(self, task):
        url = reverse('planner:generate', args=[self.subject.pk])
        response = self.post_json(url, {'description': 'Mechanics', 'num_classes': 0, 'start_date': '2025-09-01'})
        self.assertEqual(response.status_code, 400)
        task.delay.assert_not_called()

    def test_status_and_delete_all(self):
        planned = PlannedClass.objects.create(subject=self.subject, class_date=date(2025, 9, 1), title='Motion')
        url = reverse('planner:class_status', args=[planned.pk])
        response = self.post_json(url, {'status': 'completed'})
        self.assertEqual(response.json()['planned_class']['status'], 'completed')
        self.assertEqual(self.post_json(url, {'status': 'postponed'}).status_code, 400)

        response = self.client.post(reverse('planner:delete_all', args=[self.subject.pk]))
        self.assertEqual(response.json()['deleted'], 1)
        self.assertFalse(PlannedClass.objects.exists())

    @mock.patch('planner.generators.requests.post')
    def test_organizer(self, post):
        post.return_value = gemini_response({
            'tema_principal': {'nombre': 'Motion', 'definicion': 'Change of position'},
            'subtemas': [],
        })
        planned = PlannedClass.objects.create(subject=self.subject, class_date=date(2025, 9, 1), title='Motion')
        response = self.client.post(reverse('planner:class_organizer', args=[planned.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['organizer']['main_topic']['name'], 'Motion')

    @mock.patch('planner.generators.requests.post')
    def test_organizer_network_error(self, post):
        post.side_effect = requests.exceptions.ConnectionError('down')
        planned = PlannedClass.objects.create(subject=self.subject, class_date=date(2025, 9, 1), title='Motion')
        response = self.client.post(reverse('planner:class_organizer', args=[planned.pk]))
        self.assertEqual(response.status_code, 502)
