from datetime import date, datetime

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import RequestFactory, SimpleTestCase, TestCase
from django.urls import reverse

from core.choices import Term
from core.models import AcademicSession, TermSchedule
from core.templatetags.core_tags import get_item, get_navigation_items, grade_color
from core.utils import clean_value, parse_date, resolve_scope
from schools.models import School

User = get_user_model()


def make_session(name='2024/2025', start=date(2024, 9, 1), end=date(2025, 7, 31), **kwargs):
    return AcademicSession.objects.create(name=name, start_date=start, end_date=end, **kwargs)


class ParseDateTests(SimpleTestCase):
    """Tests for the parse_date utility function."""

    def test_parse_date_none(self):
        self.assertIsNone(parse_date(None))
        self.assertIsNone(parse_date(float('nan')))

    def test_parse_date_datetime_object(self):
        self.assertEqual(parse_date(datetime(2024, 5, 15, 10, 30)), date(2024, 5, 15))

    def test_parse_date_formats(self):
        self.assertEqual(parse_date('2024-05-15'), date(2024, 5, 15))
        self.assertEqual(parse_date('15/05/2024'), date(2024, 5, 15))
        self.assertEqual(parse_date('05/15/2024'), date(2024, 5, 15))
        self.assertEqual(parse_date('15-05-2024'), date(2024, 5, 15))

    def test_parse_date_invalid(self):
        self.assertIsNone(parse_date('not a date'))
        self.assertIsNone(parse_date('   '))

    def test_clean_value(self):
        self.assertEqual(clean_value(None), '')
        self.assertEqual(clean_value(float('nan')), '')
        self.assertEqual(clean_value('  JSS 1A '), 'JSS 1A')
        self.assertEqual(clean_value(12), '12')


class TemplateFilterTests(SimpleTestCase):

    def test_grade_color(self):
        self.assertEqual(grade_color('A1'), 'badge-success')
        self.assertEqual(grade_color('c6'), 'badge-primary')
        self.assertEqual(grade_color('F9'), 'badge-error')
        self.assertEqual(grade_color(''), 'badge-ghost')

    def test_get_item(self):
        self.assertEqual(get_item({1: 'a'}, 1), 'a')
        self.assertIsNone(get_item(None, 1))

    def test_portal_navigation_by_role(self):
        request = RequestFactory().get('/my-results/')
        request.user = User(email='ada@hilltop.edu', is_student=True)
        labels = [item['label'] for item in get_navigation_items({'request': request})]
        self.assertEqual(labels, ['Dashboard', 'My Results'])

        request.user = User(email='chinwe@example.com', is_parent=True)
        labels = [item['label'] for item in get_navigation_items({'request': request})]
        self.assertEqual(labels, ['Dashboard', 'My Children'])

        request.user = User(email='admin@hilltop.edu', is_school_admin=True)
        labels = [item['label'] for item in get_navigation_items({'request': request})]
        self.assertIn('Guardians', labels)
        self.assertNotIn('My Results', labels)


class AcademicSessionModelTests(TestCase):
    """Tests for the AcademicSession and TermSchedule models."""

    def test_only_one_current_session(self):
        first = make_session(is_current=True)
        second = make_session(name='2025/2026', start=date(2025, 9, 1), end=date(2026, 7, 31), is_current=True)
        first.refresh_from_db()
        self.assertFalse(first.is_current)
        self.assertEqual(AcademicSession.get_current(), second)

    def test_end_date_must_follow_start(self):
        session = AcademicSession(name='Bad', start_date=date(2025, 1, 1), end_date=date(2024, 1, 1))
        with self.assertRaises(ValidationError):
            session.full_clean()

    def test_single_day_session_is_valid(self):
        session = AcademicSession(name='Holiday Camp', start_date=date(2025, 8, 4), end_date=date(2025, 8, 4))
        session.full_clean()

    def test_current_term_follows_schedule(self):
        session = make_session()
        TermSchedule.objects.create(session=session, term=Term.FIRST, starts_at=date(2024, 9, 1))
        TermSchedule.objects.create(session=session, term=Term.SECOND, starts_at=date(2025, 1, 6))
        TermSchedule.objects.create(session=session, term=Term.THIRD, starts_at=date(2025, 4, 22))

        self.assertEqual(session.current_term(date(2024, 11, 1)), Term.FIRST)
        self.assertEqual(session.current_term(date(2025, 1, 6)), Term.SECOND)
        self.assertEqual(session.current_term(date(2025, 6, 1)), Term.THIRD)

    def test_current_term_without_schedule(self):
        self.assertEqual(make_session().current_term(), Term.FIRST)
        self.assertEqual(TermSchedule.current_term(None), Term.FIRST)


class ResolveScopeTests(TestCase):

    def setUp(self):
        self.factory = RequestFactory()
        self.current = make_session(is_current=True)
        self.other = make_session(name='2023/2024', start=date(2023, 9, 1), end=date(2024, 7, 31))

    def test_explicit_values(self):
        request = self.factory.get('/', {'session': self.other.pk, 'term': Term.THIRD})
        self.assertEqual(resolve_scope(request), (self.other, Term.THIRD))

    def test_falls_back_to_current(self):
        request = self.factory.get('/', {'session': 'abc', 'term': 'FOURTH'})
        self.assertEqual(resolve_scope(request), (self.current, Term.FIRST))

    def test_reads_post(self):
        request = self.factory.post('/', {'session': self.other.pk, 'term': Term.SECOND})
        self.assertEqual(resolve_scope(request), (self.other, Term.SECOND))


class SessionViewTests(TestCase):
    """Tests for the academic session management views."""

    def setUp(self):
        self.admin = User.objects.create_school_admin(email='admin@school.com', password='pass12345')
        self.teacher = User.objects.create_teacher(email='teacher@school.com', password='pass12345')
        self.school = School.objects.create(name='Hilltop College', code='HTC')

    def test_dashboard(self):
        make_session(is_current=True)
        self.client.force_login(self.teacher)
        response = self.client.get(reverse('core:index'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['current_term'], Term.FIRST)

    def test_dashboard_requires_login(self):
        response = self.client.get(reverse('core:index'))
        self.assertEqual(response.status_code, 302)

    def test_sessions_admin_only(self):
        self.client.force_login(self.teacher)
        self.assertEqual(self.client.get(reverse('core:sessions')).status_code, 302)
        self.client.force_login(self.admin)
        self.assertEqual(self.client.get(reverse('core:sessions')).status_code, 200)

    def test_create_session(self):
        self.client.force_login(self.admin)
        response = self.client.post(reverse('core:session_create'), {
            'name': '2024/2025',
            'start_date': '2024-09-01',
            'end_date': '2025-07-31',
            'is_current': 'on',
            'schools': [self.school.pk],
        }, HTTP_HX_REQUEST='true')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['HX-Refresh'], 'true')
        session = AcademicSession.objects.get(name='2024/2025')
        self.assertTrue(session.is_current)
        self.assertIn(self.school, session.schools.all())
        # default mark distributions come with a new session
        self.assertEqual(session.mark_distributions.count(), 2)

    def test_create_invalid_keeps_modal_open(self):
        self.client.force_login(self.admin)
        response = self.client.post(reverse('core:session_create'), {
            'name': '2024/2025',
            'start_date': '2025-09-01',
            'end_date': '2024-07-31',
        })
        self.assertEqual(response.status_code, 422)
        self.assertFalse(AcademicSession.objects.exists())

    def test_set_current(self):
        current = make_session(is_current=True)
        other = make_session(name='2025/2026', start=date(2025, 9, 1), end=date(2026, 7, 31))
        self.client.force_login(self.admin)

        self.assertEqual(self.client.get(reverse('core:session_set_current', args=[other.pk])).status_code, 405)
        response = self.client.post(reverse('core:session_set_current', args=[other.pk]))
        self.assertRedirects(response, reverse('core:sessions'))
        current.refresh_from_db()
        other.refresh_from_db()
        self.assertFalse(current.is_current)
        self.assertTrue(other.is_current)

    def test_delete(self):
        session = make_session()
        self.client.force_login(self.admin)
        self.client.post(reverse('core:session_delete', args=[session.pk]))
        self.assertFalse(AcademicSession.objects.exists())

    def test_term_schedule(self):
        session = make_session()
        self.client.force_login(self.admin)
        url = reverse('core:term_schedule', args=[session.pk])
        self.assertEqual(self.client.get(url).status_code, 200)

        response = self.client.post(url, {
            'first-term': Term.FIRST, 'first-starts_at': '2024-09-02',
            'second-term': Term.SECOND, 'second-starts_at': '2025-01-06',
            'third-term': Term.THIRD, 'third-starts_at': '',
        })
        self.assertEqual(response.status_code, 302)
        self.assertEqual(session.term_schedules.count(), 2)

    def test_term_schedule_outside_session_rejected(self):
        session = make_session()
        self.client.force_login(self.admin)
        response = self.client.post(reverse('core:term_schedule', args=[session.pk]), {
            'first-term': Term.FIRST, 'first-starts_at': '2023-01-01',
        })
        self.assertEqual(response.status_code, 422)
        self.assertFalse(session.term_schedules.exists())
