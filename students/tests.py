import io
import json
from datetime import date
from smtplib import SMTPException
from unittest import mock

import pandas as pd
from django.contrib.auth import get_user_model
from django.core import mail
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from openpyxl import load_workbook

from academics.models import AttendanceRecord, AttendanceSession, Class
from core.choices import AttendanceStatus, Term
from core.models import AcademicSession
from schools.models import School
from students.forms import BulkImportForm, StudentForm
from students.models import Guardian, Student, StudentGuardian
from students.views.bulk_import import SESSION_KEY, read_student_rows

User = get_user_model()


class StudentModelTests(SimpleTestCase):
    """Tests for Student properties that need no database."""

    def test_full_name(self):
        student = Student(first_name='Ada', other_names='Chioma', last_name='Eze')
        self.assertEqual(student.full_name, 'Ada Chioma Eze')
        self.assertEqual(Student(first_name='Ada', last_name='Eze').full_name, 'Ada Eze')

    def test_age_on(self):
        student = Student(date_of_birth=date(2012, 3, 14))
        self.assertEqual(student.age_on(date(2024, 3, 13)), 11)
        self.assertEqual(student.age_on(date(2024, 3, 14)), 12)
        self.assertIsNone(Student().age_on(date(2024, 1, 1)))


class ReadStudentRowsTests(SimpleTestCase):
    """Tests for spreadsheet row validation."""

    def frame(self, rows):
        return pd.DataFrame(rows, dtype=str)

    def test_valid_row(self):
        df = self.frame([{
            'first_name': ' Ada ', 'last_name': 'Eze', 'gender': 'female',
            'admission_number': 'HTC/001', 'class_name': 'JSS 1A',
            'school_code': 'htc', 'date_of_birth': '14/03/2012',
        }])
        valid, errors = read_student_rows(df, {'JSS 1A': 3}, {'HTC': 7}, set())

        self.assertEqual(errors, [])
        row = valid[0]
        self.assertEqual(row['first_name'], 'Ada')
        self.assertEqual(row['gender'], 'F')
        self.assertEqual(row['class_pk'], 3)
        self.assertEqual(row['school_pk'], 7)
        self.assertEqual(row['date_of_birth'], '2012-03-14')
        self.assertEqual(row['row_num'], 2)

    def test_missing_fields_reported_per_row(self):
        df = self.frame([
            {'first_name': 'Ada', 'last_name': 'Eze', 'gender': 'F', 'admission_number': 'HTC/001'},
            {'first_name': '', 'last_name': 'Eze', 'gender': 'X', 'admission_number': ''},
        ])
        valid, errors = read_student_rows(df, {}, {}, set())

        self.assertEqual(len(valid), 1)
        self.assertEqual(errors[0]['row'], 3)
        self.assertIn('First name is required', errors[0]['errors'])
        self.assertIn('Gender must be M or F', errors[0]['errors'])
        self.assertIn('Admission number is required', errors[0]['errors'])

    def test_duplicate_admission_numbers(self):
        df = self.frame([
            {'first_name': 'Ada', 'last_name': 'Eze', 'gender': 'F', 'admission_number': 'HTC/001'},
            {'first_name': 'Ada', 'last_name': 'Eze', 'gender': 'F', 'admission_number': 'HTC/001'},
            {'first_name': 'Bayo', 'last_name': 'Ade', 'gender': 'M', 'admission_number': 'HTC/009'},
        ])
        valid, errors = read_student_rows(df, {}, {}, {'HTC/009'})

        self.assertEqual([r['admission_number'] for r in valid], ['HTC/001'])
        self.assertEqual([e['row'] for e in errors], [3, 4])

    def test_unknown_class_and_school(self):
        df = self.frame([{
            'first_name': 'Ada', 'last_name': 'Eze', 'gender': 'F',
            'admission_number': 'HTC/001', 'class_name': 'SS 9', 'school_code': 'XYZ',
        }])
        valid, errors = read_student_rows(df, {}, {}, set())
        self.assertEqual(valid, [])
        self.assertEqual(errors[0]['errors'], ['Class "SS 9" not found', 'School "XYZ" not found'])


class StudentFormTests(TestCase):

    def test_class_must_belong_to_school(self):
        hilltop = School.objects.create(name='Hilltop College', code='HTC')
        riverside = School.objects.create(name='Riverside Academy', code='RSA')
        class_obj = Class.objects.create(name='JSS 1A', school=riverside)

        form = StudentForm(data={
            'first_name': 'Ada', 'last_name': 'Eze', 'gender': 'F',
            'guardian_relationship': 'mother', 'admission_number': 'HTC/001',
            'school': hilltop.pk, 'current_class': class_obj.pk, 'status': 'active',
        })
        self.assertFalse(form.is_valid())
        self.assertIn('current_class', form.errors)

    def test_import_form_rejects_other_extensions(self):
        form = BulkImportForm(files={'file': SimpleUploadedFile('students.pdf', b'%PDF')})
        self.assertFalse(form.is_valid())


class StudentViewTests(TestCase):
    """Tests for student CRUD, import and export views."""

    def setUp(self):
        self.admin = User.objects.create_school_admin(email='admin@school.com', password='pass12345')
        self.client.force_login(self.admin)
        self.school = School.objects.create(name='Hilltop College', code='HTC')
        self.class_obj = Class.objects.create(name='JSS 1A', grade=1, school=self.school)
        self.student = Student.objects.create(
            first_name='Ada', last_name='Eze', gender='F',
            admission_number='HTC/001', school=self.school, current_class=self.class_obj,
        )

    def student_data(self, **overrides):
        data = {
            'first_name': 'Bayo', 'last_name': 'Ade', 'gender': 'M',
            'guardian_relationship': 'father', 'admission_number': 'HTC/002',
            'school': self.school.pk, 'current_class': self.class_obj.pk, 'status': 'active',
        }
        data.update(overrides)
        return data

    # -- CRUD --

    def test_index_filters(self):
        Student.objects.create(
            first_name='Bayo', last_name='Ade', gender='M', admission_number='HTC/002',
            status=Student.Status.WITHDRAWN,
        )
        response = self.client.get(reverse('students:index'), {'status': 'active'})
        self.assertEqual(list(response.context['students']), [self.student])

        response = self.client.get(reverse('students:index'), {'search': 'htc/002'})
        self.assertEqual([s.first_name for s in response.context['students']], ['Bayo'])

    def test_index_requires_admin(self):
        teacher = User.objects.create_teacher(email='t@school.com', password='pass12345')
        self.client.force_login(teacher)
        self.assertEqual(self.client.get(reverse('students:index')).status_code, 302)

    def test_create(self):
        response = self.client.post(reverse('students:student_create'), self.student_data())
        student = Student.objects.get(admission_number='HTC/002')
        self.assertRedirects(response, reverse('students:student_detail', args=[student.pk]))

    def test_create_duplicate_admission_number(self):
        response = self.client.post(reverse('students:student_create'), self.student_data(admission_number='HTC/001'))
        self.assertEqual(response.status_code, 200)
        self.assertIn('admission_number', response.context['form'].errors)

    def test_edit(self):
        response = self.client.post(
            reverse('students:student_edit', args=[self.student.pk]),
            self.student_data(first_name='Adaeze', last_name='Eze', admission_number='HTC/001', gender='F'),
        )
        self.assertRedirects(response, reverse('students:student_detail', args=[self.student.pk]))
        self.student.refresh_from_db()
        self.assertEqual(self.student.first_name, 'Adaeze')

    def test_delete(self):
        url = reverse('students:student_delete', args=[self.student.pk])
        self.assertEqual(self.client.get(url).status_code, 405)
        response = self.client.post(url, HTTP_HX_REQUEST='true')
        self.assertEqual(response['HX-Refresh'], 'true')
        self.assertFalse(Student.objects.exists())

    def test_detail_attendance_summary(self):
        session = AcademicSession.objects.create(
            name='2024/2025', start_date=date(2024, 9, 9), end_date=date(2025, 7, 18), is_current=True,
        )
        for day, status in ((1, AttendanceStatus.PRESENT), (2, AttendanceStatus.LATE), (3, AttendanceStatus.ABSENT)):
            register = AttendanceSession.objects.create(
                class_assigned=self.class_obj, date=date(2024, 10, day),
                academic_session=session, term=Term.FIRST,
            )
            AttendanceRecord.objects.create(session=register, student=self.student, status=status)

        response = self.client.get(reverse('students:student_detail', args=[self.student.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['attendance'], {'present': 2, 'absent': 1, 'total': 3})

    # -- Bulk import --

    def upload(self, content, name='students.csv'):
        return self.client.post(reverse('students:bulk_import'), {
            'file': SimpleUploadedFile(name, content.encode(), content_type='text/csv'),
        })

    def test_import_preview_and_confirm(self):
        response = self.upload(
            'First Name,Last Name,Gender,Admission Number,Class Name,School Code\n'
            'Bayo,Ade,M,HTC/002,JSS 1A,HTC\n'
            'Chidi,Okoro,M,HTC/001,JSS 1A,HTC\n'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['valid_count'], 1)
        self.assertEqual(response.context['error_count'], 1)
        self.assertEqual(len(json.loads(self.client.session[SESSION_KEY])), 1)

        response = self.client.post(reverse('students:bulk_import_confirm'), HTTP_HX_REQUEST='true')
        self.assertEqual(response['HX-Refresh'], 'true')
        bayo = Student.objects.get(admission_number='HTC/002')
        self.assertEqual(bayo.current_class, self.class_obj)
        self.assertEqual(bayo.school, self.school)
        self.assertNotIn(SESSION_KEY, self.client.session)

    def test_import_requires_key_columns(self):
        response = self.upload('last_name,gender\nEze,F\n')
        self.assertContains(response, 'first_name and admission_number')

    def test_confirm_without_preview(self):
        response = self.client.post(reverse('students:bulk_import_confirm'))
        self.assertContains(response, 'Session expired')

    def test_confirm_conflict_creates_nothing(self):
        session = self.client.session
        session[SESSION_KEY] = json.dumps([{
            'first_name': 'Bayo', 'last_name': 'Ade', 'other_names': '', 'date_of_birth': '',
            'gender': 'M', 'guardian_name': '', 'guardian_phone': '', 'guardian_email': '',
            'category': '', 'admission_number': 'HTC/001', 'admission_date': '',
            'class_pk': None, 'school_pk': None,
        }])
        session.save()

        response = self.client.post(reverse('students:bulk_import_confirm'))
        self.assertRedirects(response, reverse('students:index'))
        self.assertEqual(Student.objects.count(), 1)

    def test_import_template(self):
        response = self.client.get(reverse('students:bulk_import_template'))
        self.assertEqual(response.status_code, 200)
        workbook = load_workbook(io.BytesIO(b''.join(response.streaming_content)))
        header = [cell.value for cell in workbook['Students'][1]]
        self.assertIn('admission_number', header)

    # -- Export --

    def test_export(self):
        response = self.client.get(reverse('students:export'), {'class': self.class_obj.pk})
        self.assertEqual(response.status_code, 200)
        self.assertIn('attachment;', response['Content-Disposition'])

        sheet = load_workbook(io.BytesIO(response.content)).active
        self.assertEqual(sheet['A1'].value, 'Admission Number')
        self.assertEqual(sheet['A2'].value, 'HTC/001')
        self.assertEqual(sheet['E2'].value, 'Female')


class GuardianViewTests(TestCase):
    """Tests for guardian records, student links and portal logins."""

    def setUp(self):
        self.admin = User.objects.create_school_admin(email='admin@school.com', password='pass12345')
        self.client.force_login(self.admin)
        self.school = School.objects.create(name='Hilltop College', code='HTC')
        self.student = Student.objects.create(
            first_name='Ada', last_name='Eze', gender='F',
            admission_number='HTC/001', school=self.school,
        )
        self.guardian = Guardian.objects.create(
            full_name='Chinwe Eze', phone_number='08030000001', email='chinwe@example.com',
        )

    def test_index_search(self):
        Guardian.objects.create(full_name='Tunde Bello', phone_number='08030000002')
        response = self.client.get(reverse('students:guardian_index'), {'search': 'chinwe'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual([g.full_name for g in response.context['guardians']], ['Chinwe Eze'])

    def test_index_requires_admin(self):
        teacher = User.objects.create_teacher(email='teacher@school.com', password='pass12345')
        self.client.force_login(teacher)
        self.assertEqual(self.client.get(reverse('students:guardian_index')).status_code, 302)

    def test_create_from_modal(self):
        response = self.client.post(reverse('students:guardian_create'), {
            'full_name': 'Tunde Bello', 'phone_number': '08030000002',
        }, HTTP_HX_REQUEST='true')
        self.assertEqual(response.status_code, 204)
        trigger = json.loads(response['HX-Trigger'])
        guardian = Guardian.objects.get(full_name='Tunde Bello')
        self.assertEqual(trigger['guardianCreated']['id'], guardian.pk)

    def test_create_requires_phone(self):
        response = self.client.post(reverse('students:guardian_create'), {'full_name': 'Tunde Bello'})
        self.assertEqual(response.status_code, 422)
        self.assertFalse(Guardian.objects.filter(full_name='Tunde Bello').exists())

    def test_edit(self):
        response = self.client.post(reverse('students:guardian_edit', args=[self.guardian.pk]), {
            'full_name': 'Chinwe Eze', 'phone_number': '08039999999',
        })
        self.assertRedirects(response, reverse('students:guardian_detail', args=[self.guardian.pk]))
        self.guardian.refresh_from_db()
        self.assertEqual(self.guardian.phone_number, '08039999999')

    def test_link_unlink(self):
        url = reverse('students:guardian_link', args=[self.guardian.pk])
        self.assertEqual(self.client.get(url).status_code, 405)

        response = self.client.post(url, {
            'student': self.student.pk, 'relationship': 'mother', 'is_primary': 'on',
        }, HTTP_HX_REQUEST='true')
        self.assertEqual(response['HX-Refresh'], 'true')
        link = StudentGuardian.objects.get(guardian=self.guardian, student=self.student)
        self.assertTrue(link.is_primary)
        self.assertEqual(list(self.guardian.active_wards()), [self.student])

        # a second link to the same student is refused
        response = self.client.post(url, {'student': self.student.pk, 'relationship': 'mother'})
        self.assertEqual(response.status_code, 422)
        self.assertEqual(StudentGuardian.objects.count(), 1)

        self.client.post(reverse('students:guardian_unlink', args=[self.guardian.pk, link.pk]))
        self.assertFalse(StudentGuardian.objects.exists())

    def test_delete_refused_while_linked(self):
        StudentGuardian.objects.create(guardian=self.guardian, student=self.student)
        self.client.post(reverse('students:guardian_delete', args=[self.guardian.pk]))
        self.assertTrue(Guardian.objects.filter(pk=self.guardian.pk).exists())

        StudentGuardian.objects.all().delete()
        self.client.post(reverse('students:guardian_delete', args=[self.guardian.pk]))
        self.assertFalse(Guardian.objects.filter(pk=self.guardian.pk).exists())

    def test_detail_and_student_page_show_links(self):
        StudentGuardian.objects.create(guardian=self.guardian, student=self.student, relationship='mother')
        response = self.client.get(reverse('students:guardian_detail', args=[self.guardian.pk]))
        self.assertContains(response, 'HTC/001')

        response = self.client.get(reverse('students:student_detail', args=[self.student.pk]))
        self.assertEqual(len(response.context['guardian_links']), 1)
        self.assertContains(response, 'Chinwe Eze')

    def test_guardian_account(self):
        response = self.client.post(reverse('students:guardian_create_account', args=[self.guardian.pk]))
        self.assertEqual(response.status_code, 204)

        self.guardian.refresh_from_db()
        user = self.guardian.user
        self.assertEqual(user.email, 'chinwe@example.com')
        self.assertTrue(user.is_parent)
        self.assertFalse(user.is_teacher)
        self.assertTrue(user.must_change_password)
        self.assertEqual(user.first_name, 'Chinwe')
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn('Temporary Password', mail.outbox[0].body)

    @mock.patch('students.views.accounts.send_mail', side_effect=SMTPException('down'))
    def test_guardian_account_email_failure(self, send_mail):
        response = self.client.post(reverse('students:guardian_create_account', args=[self.guardian.pk]))
        self.assertEqual(response.status_code, 204)
        self.guardian.refresh_from_db()
        self.assertIsNotNone(self.guardian.user)

    def test_student_account_needs_email(self):
        url = reverse('students:student_create_account', args=[self.student.pk])
        response = self.client.post(url)
        self.assertContains(response, 'An email address is required.')

        response = self.client.post(url, {'email': 'ada@hilltop.edu'})
        self.assertEqual(response.status_code, 204)
        self.student.refresh_from_db()
        self.assertTrue(self.student.user.is_student)
        self.assertEqual(self.student.user.email, 'ada@hilltop.edu')
