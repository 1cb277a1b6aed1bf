from datetime import date

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from academics.models import Class
from core.models import AcademicSession
from schools.forms import SchoolForm
from schools.models import School
from students.models import Student

User = get_user_model()


class SchoolModelTests(TestCase):
    """Tests for the School model and form."""

    def test_location_skips_blank_parts(self):
        school = School.objects.create(name='Hilltop College', code='HTC', city='Enugu', state='')
        self.assertEqual(school.location, 'Enugu, Nigeria')
        self.assertEqual(str(school), 'Hilltop College')

    def test_form_uppercases_code(self):
        form = SchoolForm(data={'name': 'Riverside', 'code': ' rsa-01 ', 'country': 'Nigeria', 'is_active': True})
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data['code'], 'RSA-01')


class SchoolViewTests(TestCase):
    """Tests for school management views."""

    def setUp(self):
        self.admin = User.objects.create_school_admin(email='admin@school.com', password='pass12345')
        self.school = School.objects.create(name='Hilltop College', code='HTC', city='Enugu')
        self.client.force_login(self.admin)

    # -- Permissions --

    def test_teacher_cannot_manage_schools(self):
        teacher = User.objects.create_teacher(email='t@school.com', password='pass12345')
        self.client.force_login(teacher)
        response = self.client.get(reverse('schools:index'))
        self.assertEqual(response.status_code, 302)

    # -- List / detail --

    def test_index_counts(self):
        class_obj = Class.objects.create(name='JSS 1A', school=self.school)
        Student.objects.create(
            first_name='Ada', last_name='Eze', admission_number='HTC/001',
            school=self.school, current_class=class_obj,
        )
        response = self.client.get(reverse('schools:index'))
        self.assertEqual(response.status_code, 200)
        school = response.context['schools'][0]
        self.assertEqual(school.class_count, 1)
        self.assertEqual(school.student_count, 1)

    def test_index_search(self):
        School.objects.create(name='Riverside Academy', code='RSA')
        response = self.client.get(reverse('schools:index'), {'search': 'river'})
        self.assertEqual([s.code for s in response.context['schools']], ['RSA'])

    def test_detail(self):
        session = AcademicSession.objects.create(
            name='2024/2025', start_date=date(2024, 9, 9), end_date=date(2025, 7, 18),
        )
        session.schools.add(self.school)
        response = self.client.get(reverse('schools:school_detail', args=[self.school.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertIn(session, response.context['sessions'])

    # -- Create / edit / delete --

    def test_create_htmx(self):
        response = self.client.post(
            reverse('schools:school_create'),
            {'name': 'Riverside Academy', 'code': 'rsa', 'country': 'Nigeria', 'is_active': 'on'},
            HTTP_HX_REQUEST='true',
        )
        self.assertEqual(response.status_code, 204)
        self.assertIn('schoolChanged', response['HX-Trigger'])
        self.assertTrue(School.objects.filter(code='RSA').exists())

    def test_create_duplicate_code(self):
        response = self.client.post(
            reverse('schools:school_create'),
            {'name': 'Another', 'code': 'HTC', 'country': 'Nigeria'},
            HTTP_HX_REQUEST='true',
        )
        self.assertEqual(response.status_code, 422)
        self.assertEqual(School.objects.count(), 1)

    def test_edit(self):
        response = self.client.post(
            reverse('schools:school_edit', args=[self.school.pk]),
            {'name': 'Hilltop College', 'code': 'HTC', 'principal': 'Mrs. Okafor', 'country': 'Nigeria'},
        )
        self.assertRedirects(response, reverse('schools:index'), fetch_redirect_response=False)
        self.school.refresh_from_db()
        self.assertEqual(self.school.principal, 'Mrs. Okafor')

    def test_delete(self):
        url = reverse('schools:school_delete', args=[self.school.pk])
        self.assertEqual(self.client.get(url).status_code, 405)
        response = self.client.post(url, HTTP_HX_REQUEST='true')
        self.assertEqual(response['HX-Refresh'], 'true')
        self.assertFalse(School.objects.exists())
