from smtplib import SMTPException
from unittest import mock

from django.contrib.auth import get_user_model
from django.core import mail
from django.test import TestCase
from django.urls import reverse

from academics.models import Class, ClassSubject, Subject
from schools.models import School
from teachers.models import Teacher
from teachers.views.accounts import generate_temp_password

User = get_user_model()


class TeacherModelTests(TestCase):
    """Tests for the Teacher model."""

    def _create_teacher(self, **kwargs):
        defaults = {
            'first_name': 'Kwame',
            'last_name': 'Asante',
            'gender': 'M',
            'teacher_code': 'TCH-001',
        }
        defaults.update(kwargs)
        return Teacher.objects.create(**defaults)

    def test_create_teacher(self):
        teacher = self._create_teacher()
        self.assertEqual(teacher.status, Teacher.Status.ACTIVE)
        self.assertTrue(teacher.is_active)

    def test_full_name_includes_other_names(self):
        teacher = self._create_teacher(other_names='Kofi')
        self.assertEqual(teacher.full_name, 'Kwame Kofi Asante')
        self.assertEqual(str(teacher), 'Kwame Kofi Asante')

    def test_inactive(self):
        teacher = self._create_teacher(status=Teacher.Status.INACTIVE)
        self.assertFalse(teacher.is_active)

    def test_temp_password(self):
        password = generate_temp_password()
        self.assertEqual(len(password), 10)
        self.assertTrue(password.isalnum())


class TeacherViewTests(TestCase):
    """Tests for teacher CRUD and account views."""

    def setUp(self):
        self.admin = User.objects.create_school_admin(email='admin@school.com', password='pass12345')
        self.school = School.objects.create(name='Hilltop College', code='HTC')
        self.teacher = Teacher.objects.create(
            first_name='Ngozi', last_name='Obi', teacher_code='T-001',
            email='ngozi@hilltop.edu', school=self.school,
        )
        self.client.force_login(self.admin)

    def test_index_search(self):
        Teacher.objects.create(first_name='Sam', last_name='Ude', teacher_code='T-002')
        response = self.client.get(reverse('teachers:index'), {'search': 'ngozi'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual([t.pk for t in response.context['teachers']], [self.teacher.pk])

    def test_index_requires_admin(self):
        teacher_user = User.objects.create_teacher(email='t@school.com', password='pass12345')
        self.client.force_login(teacher_user)
        self.assertEqual(self.client.get(reverse('teachers:index')).status_code, 302)

    def test_create(self):
        response = self.client.post(reverse('teachers:teacher_create'), {
            'teacher_code': 'T-010',
            'first_name': 'Amaka',
            'last_name': 'Nwosu',
            'gender': 'F',
            'school': self.school.pk,
            'status': 'active',
        })
        teacher = Teacher.objects.get(teacher_code='T-010')
        self.assertRedirects(response, reverse('teachers:teacher_detail', args=[teacher.pk]))

    def test_create_duplicate_code(self):
        response = self.client.post(reverse('teachers:teacher_create'), {
            'teacher_code': 'T-001',
            'first_name': 'Amaka',
            'last_name': 'Nwosu',
            'gender': 'F',
            'status': 'active',
        })
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.context['form'].errors)

    def test_detail_lists_allocations(self):
        class_obj = Class.objects.create(name='JSS 1A', school=self.school, form_teacher=self.teacher)
        subject = Subject.objects.create(name='Mathematics', code='MTH')
        ClassSubject.objects.create(class_assigned=class_obj, subject=subject, teacher=self.teacher)

        response = self.client.get(reverse('teachers:teacher_detail', args=[self.teacher.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.context['allocations']), 1)
        self.assertIn(class_obj, response.context['form_classes'])

    def test_delete(self):
        url = reverse('teachers:teacher_delete', args=[self.teacher.pk])
        self.assertEqual(self.client.get(url).status_code, 405)
        response = self.client.post(url, HTTP_HX_REQUEST='true')
        self.assertEqual(response['HX-Refresh'], 'true')
        self.assertFalse(Teacher.objects.filter(pk=self.teacher.pk).exists())

    def test_create_account(self):
        response = self.client.post(reverse('teachers:create_account', args=[self.teacher.pk]))
        self.assertEqual(response.status_code, 204)

        self.teacher.refresh_from_db()
        user = self.teacher.user
        self.assertEqual(user.email, 'ngozi@hilltop.edu')
        self.assertTrue(user.is_teacher)
        self.assertTrue(user.must_change_password)
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn('Temporary Password', mail.outbox[0].body)

    def test_create_account_duplicate_email(self):
        User.objects.create_user(email='ngozi@hilltop.edu', password='pass12345')
        response = self.client.post(reverse('teachers:create_account', args=[self.teacher.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'already exists')
        self.teacher.refresh_from_db()
        self.assertIsNone(self.teacher.user)

    @mock.patch('teachers.views.accounts.send_mail', side_effect=SMTPException('down'))
    def test_create_account_email_failure(self, send_mail):
        response = self.client.post(reverse('teachers:create_account', args=[self.teacher.pk]))
        self.assertEqual(response.status_code, 204)
        self.teacher.refresh_from_db()
        self.assertIsNotNone(self.teacher.user)

    def test_deactivate_account(self):
        self.client.post(reverse('teachers:create_account', args=[self.teacher.pk]))
        self.teacher.refresh_from_db()

        response = self.client.post(reverse('teachers:deactivate_account', args=[self.teacher.pk]))
        self.assertEqual(response.status_code, 204)
        self.teacher.user.refresh_from_db()
        self.assertFalse(self.teacher.user.is_active)
