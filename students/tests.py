import io

import pandas as pd
from django.core.exceptions import ValidationError
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import IntegrityError, transaction
from django.test import TestCase, override_settings
from django.urls import reverse

from academics.models import Subject
from .models import Student
from .views.utils import bulk_add_students, names_from_dataframe, parse_names


class StudentModelTest(TestCase):
    """Tests for Student model."""

    def setUp(self):
        self.subject = Subject.objects.create(name='Physics')
        self.student = Student.objects.create(subject=self.subject, name='Ana López')

    def test_str_and_token(self):
        self.assertEqual(str(self.student), 'Ana López')
        self.assertEqual(self.student.qr_token, 'Ana López')

    def test_name_unique_per_subject_ignoring_case(self):
        duplicate = Student(subject=self.subject, name='ana lópez')
        with self.assertRaises(ValidationError):
            duplicate.full_clean()

        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Student.objects.create(subject=self.subject, name='Ana López')

    def test_same_name_in_another_subject(self):
        other = Subject.objects.create(name='Chemistry')
        student = Student(subject=other, name='Ana López')
        student.full_clean()
        student.save()
        self.assertEqual(Student.objects.filter(name='Ana López').count(), 2)

    def test_qr_code(self):
        self.assertTrue(self.student.get_qr_code().startswith('data:image/png;base64,'))


class RosterUtilsTest(TestCase):
    """Tests for roster parsing and bulk creation."""

    def setUp(self):
        self.subject = Subject.objects.create(name='Physics')

    def test_parse_names(self):
        text = '  Ana López \n\nCarlos   Pérez\nana lópez\n'
        self.assertEqual(parse_names(text), ['Ana López', 'Carlos Pérez'])
        self.assertEqual(parse_names(''), [])
        self.assertEqual(parse_names(None), [])

    def test_bulk_add_skips_existing(self):
        Student.objects.create(subject=self.subject, name='Ana')
        created, skipped = bulk_add_students(self.subject, ['ana', 'Luis'])
        self.assertEqual([s.name for s in created], ['Luis'])
        self.assertEqual(skipped, ['ana'])
        self.assertEqual(self.subject.students.count(), 2)

    def test_names_from_dataframe(self):
        df = pd.DataFrame({'nombre': ['Ana', None, ' Luis ']})
        self.assertEqual(names_from_dataframe(df), ['Ana', 'Luis'])

    def test_names_from_dataframe_without_name_column(self):
        df = pd.DataFrame({'email': ['ana@example.com']})
        with self.assertRaises(ValidationError):
            names_from_dataframe(df)


@override_settings(CLASSBOOK_LOGIN_PASSWORD='secret')
class RosterViewTest(TestCase):
    """Tests for the roster endpoints."""

    def setUp(self):
        self.client.post(reverse('accounts:login'), {'password': 'secret'})
        self.subject = Subject.objects.create(name='Physics')

    def post_json(self, url, data):
        return self.client.post(url, data, content_type='application/json')

    def test_add_student(self):
        url = reverse('students:student_list', args=[self.subject.pk])
        response = self.post_json(url, {'name': ' Ana  López '})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['student']['name'], 'Ana López')

        response = self.post_json(url, {'name': 'ana lópez'})
        self.assertEqual(response.status_code, 400)

        response = self.client.get(url)
        self.assertEqual(len(response.json()['students']), 1)

    def test_add_student_without_name(self):
        url = reverse('students:student_list', args=[self.subject.pk])
        self.assertEqual(self.post_json(url, {'name': ''}).status_code, 400)

    def test_bulk_add(self):
        Student.objects.create(subject=self.subject, name='Ana')
        url = reverse('students:bulk_add', args=[self.subject.pk])
        response = self.post_json(url, {'names': 'Ana\nLuis\n\nMaría\nluis'})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['created'], ['Luis', 'María'])
        self.assertEqual(response.json()['skipped'], ['Ana'])

    def test_import_csv(self):
        upload = SimpleUploadedFile('roster.csv', 'Name\nAna\nLuis\n'.encode('utf-8'), content_type='text/csv')
        url = reverse('students:bulk_import', args=[self.subject.pk])
        response = self.client.post(url, {'file': upload})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['created'], ['Ana', 'Luis'])

    def test_import_xlsx(self):
        output = io.BytesIO()
        pd.DataFrame({'Student Name': ['Ana', 'Luis']}).to_excel(output, index=False, engine='openpyxl')
        upload = SimpleUploadedFile('roster.xlsx', output.getvalue())
        url = reverse('students:bulk_import', args=[self.subject.pk])
        response = self.client.post(url, {'file': upload})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(self.subject.students.count(), 2)

    def test_import_rejects_other_formats(self):
        upload = SimpleUploadedFile('roster.txt', b'Ana\nLuis\n')
        url = reverse('students:bulk_import', args=[self.subject.pk])
        response = self.client.post(url, {'file': upload})
        self.assertEqual(response.status_code, 400)

    def test_import_without_file(self):
        url = reverse('students:bulk_import', args=[self.subject.pk])
        self.assertEqual(self.client.post(url).status_code, 400)

    def test_import_template(self):
        response = self.client.get(reverse('students:bulk_import_template', args=[self.subject.pk]))
        self.assertEqual(response.status_code, 200)
        df = pd.read_excel(io.BytesIO(b''.join(response.streaming_content)), engine='openpyxl')
        self.assertEqual(list(df.columns), ['name'])

    def test_qr_codes(self):
        student = Student.objects.create(subject=self.subject, name='Ana')
        response = self.client.get(reverse('students:student_qr', args=[student.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['qr_code'].startswith('data:image/png;base64,'))

        response = self.client.get(reverse('students:subject_qr_codes', args=[self.subject.pk]))
        self.assertEqual(len(response.json()['students']), 1)

    def test_delete_student(self):
        student = Student.objects.create(subject=self.subject, name='Ana')
        response = self.client.post(reverse('students:student_delete', args=[student.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Student.objects.exists())
