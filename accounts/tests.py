from django.test import TestCase, override_settings
from django.urls import reverse

from .middleware import SESSION_LOGIN_KEY
from .views import SESSION_MANUAL_ATTENDANCE_KEY


@override_settings(CLASSBOOK_LOGIN_PASSWORD='secret', CLASSBOOK_MANUAL_ATTENDANCE_PASSWORD='manual')
class SharedPasswordTests(TestCase):
    """Tests for the shared classroom password gate."""

    def test_protected_view_requires_login(self):
        response = self.client.get(reverse('academics:subject_list'))
        self.assertEqual(response.status_code, 401)
        self.assertIn('__all__', response.json()['errors'])

    def test_login_with_wrong_password(self):
        response = self.client.post(reverse('accounts:login'), {'password': 'nope'})
        self.assertEqual(response.status_code, 401)
        self.assertNotIn(SESSION_LOGIN_KEY, self.client.session)

    def test_login_with_missing_password(self):
        response = self.client.post(reverse('accounts:login'), {})
        self.assertEqual(response.status_code, 401)

    def test_login_opens_the_app(self):
        response = self.client.post(reverse('accounts:login'), {'password': 'secret'})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['logged_in'])

        response = self.client.get(reverse('academics:subject_list'))
        self.assertEqual(response.status_code, 200)

    def test_login_accepts_json(self):
        response = self.client.post(
            reverse('accounts:login'), {'password': 'secret'}, content_type='application/json'
        )
        self.assertEqual(response.status_code, 200)

    def test_login_rejects_get(self):
        response = self.client.get(reverse('accounts:login'))
        self.assertEqual(response.status_code, 405)

    def test_logout_closes_the_app(self):
        self.client.post(reverse('accounts:login'), {'password': 'secret'})
        self.client.post(reverse('accounts:logout'))
        response = self.client.get(reverse('academics:subject_list'))
        self.assertEqual(response.status_code, 401)

    def test_status(self):
        response = self.client.get(reverse('accounts:status'))
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()['logged_in'])

        self.client.post(reverse('accounts:login'), {'password': 'secret'})
        response = self.client.get(reverse('accounts:status'))
        self.assertTrue(response.json()['logged_in'])
        self.assertFalse(response.json()['manual_attendance_verified'])


@override_settings(CLASSBOOK_LOGIN_PASSWORD='secret', CLASSBOOK_MANUAL_ATTENDANCE_PASSWORD='manual')
class ManualAttendanceVerificationTests(TestCase):
    """Tests for the extra password that unlocks backdated attendance."""

    def setUp(self):
        self.client.post(reverse('accounts:login'), {'password': 'secret'})

    def test_wrong_password(self):
        response = self.client.post(reverse('accounts:verify_manual_attendance'), {'password': 'secret'})
        self.assertEqual(response.status_code, 403)
        self.assertNotIn(SESSION_MANUAL_ATTENDANCE_KEY, self.client.session)

    def test_right_password(self):
        response = self.client.post(reverse('accounts:verify_manual_attendance'), {'password': 'manual'})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(self.client.session[SESSION_MANUAL_ATTENDANCE_KEY])

    def test_manual_attendance_blocked_until_verified(self):
        from academics.models import Subject

        subject = Subject.objects.create(name='Physics', schedule=[{'day': 1, 'time': '08:00', 'duration': 2}])
        url = reverse('academics:manual_attendance', args=[subject.pk])
        response = self.client.post(url, {'date': '2025-09-01', 'student_ids': []}, content_type='application/json')
        self.assertEqual(response.status_code, 403)

    def test_verification_requires_login(self):
        self.client.post(reverse('accounts:logout'))
        response = self.client.post(reverse('accounts:verify_manual_attendance'), {'password': 'manual'})
        self.assertEqual(response.status_code, 401)
