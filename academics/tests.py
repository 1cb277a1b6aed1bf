"""
Tests for the academics app.

Focuses on:
- Class CRUD and the delete guard for classes that still have students
- Subject allocation to classes
- Exam scheduling inside the session
- Daily attendance registers and who may take them
"""
from datetime import date, time

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from academics.forms import ClassSubjectForm, ExamForm
from academics.models import AttendanceRecord, AttendanceSession, Class, ClassSubject, Exam, Subject
from academics.views.attendance import can_take_attendance
from core.choices import AttendanceStatus, ExamType, Term
from core.models import AcademicSession, TermSchedule
from schools.models import School
from students.models import Student
from teachers.models import Teacher

User = get_user_model()


# =============================================================================
# BASE TEST CASE
# =============================================================================

class AcademicsTestCase(TestCase):
    """Base test case with a school, a session, a class and two subjects."""

    def setUp(self):
        self.admin_user = User.objects.create_school_admin(email='admin@school.com', password='testpass123')
        self.client.force_login(self.admin_user)

        self.school = School.objects.create(name='Hilltop College', code='HTC')
        self.session = AcademicSession.objects.create(
            name='2024/2025',
            start_date=date(2024, 9, 9),
            end_date=date(2025, 7, 18),
            is_current=True,
        )
        TermSchedule.objects.create(session=self.session, term=Term.FIRST, starts_at=date(2024, 9, 9))
        TermSchedule.objects.create(session=self.session, term=Term.SECOND, starts_at=date(2025, 1, 6))

        self.teacher_user = User.objects.create_teacher(email='obi@school.com', password='testpass123')
        self.teacher = Teacher.objects.create(
            first_name='Ngozi', last_name='Obi', teacher_code='T-001', user=self.teacher_user,
        )
        self.class_obj = Class.objects.create(name='JSS 1A', grade=1, school=self.school)
        self.maths = Subject.objects.create(name='Mathematics', code='MTH')
        self.english = Subject.objects.create(name='English Language', code='ENG')

    def create_student(self, first_name, admission_number, class_obj=None):
        """Helper to create an active student."""
        return Student.objects.create(
            first_name=first_name,
            last_name='Eze',
            gender='F',
            admission_number=admission_number,
            school=self.school,
            current_class=class_obj,
        )


# =============================================================================
# CLASSES
# =============================================================================

class ClassViewTests(AcademicsTestCase):
    """Tests for class CRUD views."""

    def test_list_counts_active_students(self):
        self.create_student('Ada', 'HTC/001', self.class_obj)
        withdrawn = self.create_student('Bayo', 'HTC/002', self.class_obj)
        withdrawn.status = Student.Status.WITHDRAWN
        withdrawn.save()

        response = self.client.get(reverse('academics:classes'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['classes'][0].active_students, 1)

    def test_list_requires_admin(self):
        self.client.force_login(self.teacher_user)
        response = self.client.get(reverse('academics:classes'))
        self.assertEqual(response.status_code, 302)

    def test_create_htmx(self):
        response = self.client.post(reverse('academics:class_create'), {
            'name': 'JSS 2A',
            'grade': 2,
            'capacity': 40,
            'school': self.school.pk,
            'form_teacher': self.teacher.pk,
            'is_active': 'on',
        }, HTTP_HX_REQUEST='true')
        self.assertEqual(response.status_code, 204)
        self.assertEqual(response['HX-Trigger'], 'closeModal, classChanged')
        self.assertEqual(Class.objects.get(name='JSS 2A').form_teacher, self.teacher)

    def test_create_duplicate_name_in_school(self):
        response = self.client.post(reverse('academics:class_create'), {
            'name': 'JSS 1A',
            'capacity': 40,
            'school': self.school.pk,
        }, HTTP_HX_REQUEST='true')
        self.assertEqual(response.status_code, 422)

    def test_edit(self):
        response = self.client.post(reverse('academics:class_edit', args=[self.class_obj.pk]), {
            'name': 'JSS 1 Gold',
            'capacity': 35,
            'school': self.school.pk,
        })
        self.assertRedirects(response, reverse('academics:classes'))
        self.class_obj.refresh_from_db()
        self.assertEqual(self.class_obj.name, 'JSS 1 Gold')

    def test_delete_blocked_while_students_remain(self):
        self.create_student('Ada', 'HTC/001', self.class_obj)
        response = self.client.post(reverse('academics:class_delete', args=[self.class_obj.pk]))
        self.assertEqual(response.status_code, 409)
        self.assertTrue(Class.objects.filter(pk=self.class_obj.pk).exists())

    def test_delete(self):
        url = reverse('academics:class_delete', args=[self.class_obj.pk])
        self.assertEqual(self.client.get(url).status_code, 405)
        response = self.client.post(url, HTTP_HX_REQUEST='true')
        self.assertEqual(response['HX-Refresh'], 'true')
        self.assertFalse(Class.objects.filter(pk=self.class_obj.pk).exists())

    def test_detail_visible_to_teachers(self):
        self.create_student('Ada', 'HTC/001', self.class_obj)
        self.client.force_login(self.teacher_user)
        response = self.client.get(reverse('academics:class_detail', args=[self.class_obj.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.context['students']), 1)


# =============================================================================
# SUBJECTS AND ALLOCATION
# =============================================================================

class SubjectViewTests(AcademicsTestCase):
    """Tests for subject CRUD views."""

    def test_create_uppercases_code(self):
        response = self.client.post(reverse('academics:subject_create'), {
            'name': 'Basic Science',
            'code': 'bsc',
            'credit_hours': 1,
            'is_active': 'on',
        }, HTTP_HX_REQUEST='true')
        self.assertEqual(response.status_code, 204)
        self.assertTrue(Subject.objects.filter(code='BSC').exists())

    def test_duplicate_code_rejected(self):
        response = self.client.post(reverse('academics:subject_create'), {
            'name': 'Maths Again',
            'code': 'mth',
            'credit_hours': 1,
        }, HTTP_HX_REQUEST='true')
        self.assertEqual(response.status_code, 422)

    def test_search(self):
        response = self.client.get(reverse('academics:subjects'), {'search': 'eng'})
        self.assertEqual([s.code for s in response.context['subjects']], ['ENG'])

    def test_delete(self):
        response = self.client.post(reverse('academics:subject_delete', args=[self.english.pk]))
        self.assertRedirects(response, reverse('academics:subjects'))
        self.assertFalse(Subject.objects.filter(pk=self.english.pk).exists())


class ClassSubjectTests(AcademicsTestCase):
    """Tests for allocating subjects and their teachers to a class."""

    def test_form_excludes_allocated_subjects(self):
        ClassSubject.objects.create(class_assigned=self.class_obj, subject=self.maths)
        form = ClassSubjectForm(class_obj=self.class_obj)
        self.assertNotIn(self.maths, form.fields['subject'].queryset)
        self.assertIn(self.english, form.fields['subject'].queryset)

    def test_allocate_with_teacher(self):
        response = self.client.post(
            reverse('academics:class_subject_create', args=[self.class_obj.pk]),
            {'subject': self.maths.pk, 'teacher': self.teacher.pk},
            HTTP_HX_REQUEST='true',
        )
        self.assertEqual(response.status_code, 204)
        allocation = ClassSubject.objects.get(class_assigned=self.class_obj, subject=self.maths)
        self.assertEqual(allocation.teacher, self.teacher)

    def test_allocate_without_teacher(self):
        self.client.post(
            reverse('academics:class_subject_create', args=[self.class_obj.pk]),
            {'subject': self.english.pk},
        )
        allocation = ClassSubject.objects.get(class_assigned=self.class_obj, subject=self.english)
        self.assertIsNone(allocation.teacher)

    def test_change_teacher(self):
        allocation = ClassSubject.objects.create(class_assigned=self.class_obj, subject=self.maths)
        response = self.client.post(
            reverse('academics:class_subject_edit', args=[self.class_obj.pk, allocation.pk]),
            {'subject': self.maths.pk, 'teacher': self.teacher.pk},
        )
        self.assertRedirects(response, reverse('academics:class_detail', args=[self.class_obj.pk]))
        allocation.refresh_from_db()
        self.assertEqual(allocation.teacher, self.teacher)

    def test_remove_allocation(self):
        allocation = ClassSubject.objects.create(class_assigned=self.class_obj, subject=self.maths)
        response = self.client.post(
            reverse('academics:class_subject_delete', args=[self.class_obj.pk, allocation.pk]),
            HTTP_HX_REQUEST='true',
        )
        self.assertEqual(response['HX-Refresh'], 'true')
        self.assertFalse(ClassSubject.objects.exists())


# =============================================================================
# EXAMS
# =============================================================================

class ExamTests(AcademicsTestCase):
    """Tests for exam scheduling."""

    def exam_data(self, **overrides):
        data = {
            'name': 'Mathematics Paper 1',
            'exam_type': ExamType.FINAL,
            'term': Term.FIRST,
            'session': self.session.pk,
            'school': self.school.pk,
            'class_assigned': self.class_obj.pk,
            'subject': self.maths.pk,
            'exam_date': '2024-12-02',
            'start_time': '09:00',
            'end_time': '11:00',
        }
        data.update(overrides)
        return data

    def test_exam_date_must_fall_in_session(self):
        form = ExamForm(data=self.exam_data(exam_date='2025-08-01'))
        self.assertFalse(form.is_valid())
        self.assertIn('exam_date', form.errors)

    def test_end_time_after_start(self):
        form = ExamForm(data=self.exam_data(start_time='11:00', end_time='09:00'))
        self.assertFalse(form.is_valid())
        self.assertIn('end_time', form.errors)

    def test_duration(self):
        exam = Exam(start_time=time(9, 0), end_time=time(10, 30))
        self.assertEqual(exam.duration_minutes, 90)
        self.assertIsNone(Exam().duration_minutes)

    def test_create(self):
        response = self.client.post(reverse('academics:exam_create'), self.exam_data(), HTTP_HX_REQUEST='true')
        self.assertEqual(response.status_code, 204)
        self.assertEqual(Exam.objects.count(), 1)

    def test_list_filters_by_scope(self):
        Exam.objects.create(
            name='Maths Midterm', exam_type=ExamType.MIDTERM, term=Term.FIRST, session=self.session,
            class_assigned=self.class_obj, subject=self.maths, exam_date=date(2024, 10, 21),
        )
        Exam.objects.create(
            name='Maths Final', exam_type=ExamType.FINAL, term=Term.FIRST, session=self.session,
            class_assigned=self.class_obj, subject=self.maths, exam_date=date(2024, 12, 2),
        )
        Exam.objects.create(
            name='English Final', exam_type=ExamType.FINAL, term=Term.SECOND, session=self.session,
            class_assigned=self.class_obj, subject=self.english, exam_date=date(2025, 3, 31),
        )

        response = self.client.get(reverse('academics:exams'), {
            'session': self.session.pk, 'term': Term.FIRST, 'exam_type': ExamType.FINAL,
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual([e.name for e in response.context['exams']], ['Maths Final'])


# =============================================================================
# ATTENDANCE
# =============================================================================

class AttendanceTests(AcademicsTestCase):
    """Tests for daily attendance registers."""

    def setUp(self):
        super().setUp()
        self.ada = self.create_student('Ada', 'HTC/001', self.class_obj)
        self.bayo = self.create_student('Bayo', 'HTC/002', self.class_obj)

    def test_who_may_take_attendance(self):
        self.assertTrue(can_take_attendance(self.admin_user, self.class_obj))
        self.assertFalse(can_take_attendance(self.teacher_user, self.class_obj))

        ClassSubject.objects.create(class_assigned=self.class_obj, subject=self.maths, teacher=self.teacher)
        self.assertTrue(can_take_attendance(self.teacher_user, self.class_obj))

    def test_unassigned_teacher_redirected(self):
        self.client.force_login(self.teacher_user)
        response = self.client.get(reverse('academics:class_attendance_take', args=[self.class_obj.pk]))
        self.assertRedirects(response, reverse('academics:attendance'))

    def test_take_register(self):
        self.class_obj.form_teacher = self.teacher
        self.class_obj.save()
        self.client.force_login(self.teacher_user)

        url = reverse('academics:class_attendance_take', args=[self.class_obj.pk])
        response = self.client.post(url, {
            'date': '2025-01-13',
            f'status_{self.ada.pk}': AttendanceStatus.PRESENT,
            f'status_{self.bayo.pk}': AttendanceStatus.ABSENT,
        })
        self.assertRedirects(response, reverse('academics:class_attendance_history', args=[self.class_obj.pk]))

        register = AttendanceSession.objects.get(class_assigned=self.class_obj, date=date(2025, 1, 13))
        self.assertEqual(register.term, Term.SECOND)
        self.assertEqual(register.academic_session, self.session)
        self.assertEqual(register.created_by, self.teacher_user)
        self.assertEqual(
            AttendanceRecord.objects.get(session=register, student=self.bayo).status,
            AttendanceStatus.ABSENT,
        )

    def test_resubmitting_updates_existing_register(self):
        url = reverse('academics:class_attendance_take', args=[self.class_obj.pk])
        for status in (AttendanceStatus.ABSENT, AttendanceStatus.LATE):
            self.client.post(url, {
                'date': '2024-10-01',
                f'status_{self.ada.pk}': status,
                f'status_{self.bayo.pk}': AttendanceStatus.PRESENT,
            })

        self.assertEqual(AttendanceSession.objects.count(), 1)
        self.assertEqual(AttendanceRecord.objects.count(), 2)
        self.assertEqual(AttendanceRecord.objects.get(student=self.ada).status, AttendanceStatus.LATE)

    def test_invalid_date_falls_back_to_today(self):
        response = self.client.get(
            reverse('academics:class_attendance_take', args=[self.class_obj.pk]),
            {'date': 'not-a-date'},
        )
        self.assertEqual(response.status_code, 200)
        self.assertIsNotNone(response.context['date'])

    def test_history_counts(self):
        register = AttendanceSession.objects.create(
            class_assigned=self.class_obj, date=date(2024, 10, 1),
            academic_session=self.session, term=Term.FIRST,
        )
        AttendanceRecord.objects.create(session=register, student=self.ada, status=AttendanceStatus.LATE)
        AttendanceRecord.objects.create(session=register, student=self.bayo, status=AttendanceStatus.ABSENT)

        response = self.client.get(reverse('academics:class_attendance_history', args=[self.class_obj.pk]))
        row = response.context['registers'][0]
        self.assertEqual(row.present, 1)
        self.assertEqual(row.absent, 1)

    def test_no_current_session(self):
        self.session.is_current = False
        self.session.save()
        response = self.client.get(reverse('academics:class_attendance_take', args=[self.class_obj.pk]))
        self.assertRedirects(response, reverse('academics:attendance'))


class AcademicsIndexTests(AcademicsTestCase):

    def test_teacher_sees_only_their_classes(self):
        Class.objects.create(name='JSS 2A', grade=2, school=self.school, form_teacher=self.teacher)
        self.client.force_login(self.teacher_user)
        response = self.client.get(reverse('academics:index'))
        self.assertEqual([c.name for c in response.context['classes']], ['JSS 2A'])
        self.assertFalse(response.context['is_admin'])
