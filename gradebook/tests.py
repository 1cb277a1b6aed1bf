import io
import os
import tempfile
import time
import zipfile
from datetime import date
from decimal import Decimal
from unittest import mock

import openpyxl

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse

from academics.models import AttendanceRecord, AttendanceSession, Class, ClassSubject, Subject
from core.choices import AttendanceStatus, ExamType, Term, TraitCategory
from core.models import AcademicSession
from schools.models import School
from students.models import Guardian, Student, StudentGuardian
from teachers.models import Teacher

from .calculations import (
    align_record, align_records, assign_positions, compute_summaries, promotion_candidates,
)
from .distributions import default_template, ensure_default_distributions, find_matching_distribution
from .grading import (
    clamp_score, grade_for_midterm_score, grade_for_record, grade_for_score, round1,
)
from .models import (
    MarkDistribution, PromotionDecision, ResultLock, ScoreAuditLog, ScoreRecord, StudentTrait,
)
from .reports import (
    InvalidIdentifier, RecordNotFound, build_report_card, normalize_term, subject_breakdown,
)
from .results import (
    class_midterm_totals, class_promotion_candidates, class_summaries, save_score_sheet,
    set_promotion_decision,
)
from .tasks import cleanup_exports, export_class_report_cards


User = get_user_model()


def scores(**values):
    """Raw score components keyed by component id."""
    return [{'id': key, 'label': key, 'score': value} for key, value in values.items()]


def template(exam_type, components, session_id=None, term=None, school_id=None, title='T'):
    return {
        'id': title,
        'title': title,
        'exam_type': exam_type,
        'session_id': session_id,
        'term': term,
        'school_id': school_id,
        'components': [
            {'id': cid, 'label': label, 'weight': weight, 'order': i}
            for i, (cid, label, weight) in enumerate(components)
        ],
    }


MIDTERM = template(ExamType.MIDTERM, [
    ('ca1', 'CA1', 20), ('quiz', 'Quiz', 10), ('assignment', 'Assignment', 10),
    ('classParticipation', 'Class Participation', 10),
])
FINAL = template(ExamType.FINAL, [
    ('midtermCarry', 'Aggregated Midterm Score', 20), ('ca2', 'CA2', 20), ('exam', 'Exam', 60),
])


def record(student_id, exam_type, components, subject_id=1, name='', percentage=None, **extra):
    data = {
        'student_id': student_id,
        'student_name': name or f'Student {student_id}',
        'class_id': 1,
        'class_name': 'JSS 1A',
        'subject_id': subject_id,
        'session_id': 1,
        'term': Term.FIRST,
        'exam_type': exam_type,
        'components': components,
        'total_score': 0,
        'max_score': 0,
        'percentage': percentage,
    }
    data.update(extra)
    return data


# =============================================================================
# GRADING
# =============================================================================

class GradeBandTests(SimpleTestCase):
    """Tests for the percentage and midterm grade bands."""

    def test_threshold_belongs_to_its_band(self):
        self.assertEqual(grade_for_score(50)['grade'], 'C6')
        self.assertEqual(grade_for_score(49.9)['grade'], 'D7')
        self.assertEqual(grade_for_score(75)['grade'], 'A1')
        self.assertEqual(grade_for_score(74.9)['grade'], 'B2')

    def test_remarks(self):
        self.assertEqual(grade_for_score(80)['remark'], 'Excellent')
        self.assertEqual(grade_for_score(41)['remark'], 'Pass')
        self.assertEqual(grade_for_score(12)['remark'], 'Fail')

    def test_out_of_range_scores_are_clamped(self):
        self.assertEqual(grade_for_score(120)['grade'], 'A1')
        self.assertEqual(grade_for_score(-5)['grade'], 'F9')
        self.assertEqual(grade_for_score('n/a')['grade'], 'F9')

    def test_midterm_bands_are_halved(self):
        """Midterm scores out of 50 use the same bands at half the thresholds."""
        self.assertEqual(grade_for_midterm_score(37.5)['grade'], 'A1')
        self.assertEqual(grade_for_midterm_score(25)['grade'], 'C6')
        self.assertEqual(grade_for_midterm_score(24.9)['grade'], 'D7')
        self.assertEqual(grade_for_midterm_score(60)['grade'], 'A1')

    def test_round1_rounds_halves_up(self):
        self.assertEqual(round1(12.25), 12.3)
        self.assertEqual(round1(0.05), 0.1)
        self.assertEqual(round1(70.44), 70.4)
        self.assertEqual(round1(Decimal('76.00')), 76.0)

    def test_midterm_records_graded_on_total(self):
        self.assertEqual(grade_for_record(ExamType.MIDTERM, 30, 30)['grade'], 'C4')
        self.assertEqual(grade_for_record(ExamType.FINAL, 30, 30)['grade'], 'F9')

    @override_settings(GRADEBOOK_GRADE_BANDS=((60, 'P', 'Pass'), (0, 'F', 'Fail')))
    def test_bands_are_configurable(self):
        self.assertEqual(grade_for_score(60)['grade'], 'P')
        self.assertEqual(grade_for_score(59)['grade'], 'F')


class ClampScoreTests(SimpleTestCase):

    def test_clamps_into_range(self):
        self.assertEqual(clamp_score(25, 20), 20)
        self.assertEqual(clamp_score(-3, 20), 0)
        self.assertEqual(clamp_score(12.5, 20), 12.5)

    def test_non_numbers_become_zero(self):
        self.assertEqual(clamp_score(None), 0)
        self.assertEqual(clamp_score('abc'), 0)
        self.assertEqual(clamp_score(float('nan')), 0)
        self.assertEqual(clamp_score(float('inf')), 0)

    def test_non_positive_maximum(self):
        self.assertEqual(clamp_score(5, 0), 0)
        self.assertEqual(clamp_score(5, -10), 0)

    def test_no_maximum_only_applies_lower_bound(self):
        self.assertEqual(clamp_score(150, None), 150)
        self.assertEqual(clamp_score(-1, None), 0)


# =============================================================================
# DISTRIBUTIONS
# =============================================================================

class FindMatchingDistributionTests(SimpleTestCase):
    """Fallback order: (session, term) > session > term > exam type only."""

    def setUp(self):
        self.generic = template(ExamType.FINAL, [('exam', 'Exam', 100)], title='generic')
        self.by_term = template(ExamType.FINAL, [('exam', 'Exam', 100)], term=Term.SECOND, title='term')
        self.by_session = template(ExamType.FINAL, [('exam', 'Exam', 100)], session_id=7, title='session')
        self.exact = template(ExamType.FINAL, [('exam', 'Exam', 100)], session_id=7, term=Term.SECOND, title='exact')
        self.all = [self.generic, self.by_term, self.by_session, self.exact]

    def test_exact_match_wins(self):
        found = find_matching_distribution(self.all, ExamType.FINAL, session=7, term=Term.SECOND)
        self.assertEqual(found['title'], 'exact')

    def test_session_beats_term(self):
        found = find_matching_distribution(self.all, ExamType.FINAL, session=7, term=Term.FIRST)
        self.assertEqual(found['title'], 'session')

    def test_term_beats_generic(self):
        found = find_matching_distribution(self.all, ExamType.FINAL, session=8, term=Term.SECOND)
        self.assertEqual(found['title'], 'term')

    def test_generic_fallback(self):
        found = find_matching_distribution(self.all, ExamType.FINAL, session=8, term=Term.THIRD)
        self.assertEqual(found['title'], 'generic')

    def test_session_ids_compare_as_strings(self):
        found = find_matching_distribution(self.all, ExamType.FINAL, session='7', term=Term.SECOND)
        self.assertEqual(found['title'], 'exact')

    def test_no_template_for_exam_type(self):
        self.assertIsNone(find_matching_distribution(self.all, ExamType.MIDTERM, session=7))
        self.assertIsNone(find_matching_distribution([], ExamType.FINAL))

    def test_school_templates_preferred(self):
        own = template(ExamType.FINAL, [('exam', 'Exam', 100)], session_id=7, school_id=3, title='own')
        other = template(ExamType.FINAL, [('exam', 'Exam', 100)], session_id=7, school_id=4, title='other')
        found = find_matching_distribution(
            [self.by_session, other, own], ExamType.FINAL, session=7, term=Term.FIRST, school=3
        )
        self.assertEqual(found['title'], 'own')

    def test_default_template_order(self):
        components = default_template(ExamType.FINAL)['components']
        self.assertEqual([c['id'] for c in components], ['midtermCarry', 'ca2', 'exam'])
        self.assertEqual(components[0]['label'], 'Aggregated Midterm Score')
        self.assertEqual(sum(c['weight'] for c in components), 100)


class DefaultDistributionTests(TestCase):

    def test_new_session_gets_default_distributions(self):
        session = AcademicSession.objects.create(
            name='2024/2025', start_date=date(2024, 9, 1), end_date=date(2025, 7, 31)
        )
        distributions = MarkDistribution.objects.filter(session=session)
        self.assertEqual(distributions.count(), 2)
        final = distributions.get(exam_type=ExamType.FINAL)
        self.assertEqual(final.total_weight, 100)
        midterm = distributions.get(exam_type=ExamType.MIDTERM)
        self.assertEqual(midterm.total_weight, 50)

    def test_ensure_defaults_is_idempotent(self):
        session = AcademicSession.objects.create(
            name='2024/2025', start_date=date(2024, 9, 1), end_date=date(2025, 7, 31)
        )
        self.assertEqual(ensure_default_distributions(session), [])
        self.assertEqual(MarkDistribution.objects.filter(session=session).count(), 2)

    def test_as_template_sorts_components(self):
        session = AcademicSession.objects.create(
            name='2024/2025', start_date=date(2024, 9, 1), end_date=date(2025, 7, 31)
        )
        final = MarkDistribution.objects.get(session=session, exam_type=ExamType.FINAL).as_template()
        self.assertEqual([c['id'] for c in final['components']], ['midtermCarry', 'ca2', 'exam'])
        self.assertEqual(final['session_id'], session.pk)
        self.assertIsNone(final['term'])


# =============================================================================
# ALIGNMENT
# =============================================================================

class AlignRecordTests(SimpleTestCase):
    """Tests for aligning records with their mark distribution."""

    def test_midterm_carry_forward(self):
        """A 40/50 midterm carries 16 into a 20-mark final component."""
        midterm = record(1, ExamType.MIDTERM, scores(ca1=15, quiz=10, assignment=10, classParticipation=5))
        final = record(1, ExamType.FINAL, scores(ca2=15, exam=45))
        aligned = align_records([final, midterm], [MIDTERM, FINAL])

        aligned_final, aligned_midterm = aligned
        self.assertEqual(aligned_midterm['total_score'], 40)
        self.assertEqual(aligned_midterm['max_score'], 50)
        carry = aligned_final['components'][0]
        self.assertEqual(carry['id'], 'midtermCarry')
        self.assertEqual(carry['score'], 16)
        self.assertEqual(aligned_final['total_score'], 76)
        self.assertEqual(aligned_final['percentage'], 76)

    def test_scores_clamped_to_component_weight(self):
        aligned = align_record(record(1, ExamType.FINAL, scores(ca2=35, exam=-4)), FINAL)
        by_id = {c['id']: c['score'] for c in aligned['components']}
        self.assertEqual(by_id['ca2'], 20)
        self.assertEqual(by_id['exam'], 0)

    def test_missing_components_score_zero(self):
        aligned = align_record(record(1, ExamType.MIDTERM, scores(ca1=12)), MIDTERM)
        self.assertEqual(len(aligned['components']), 4)
        self.assertEqual(aligned['total_score'], 12)
        self.assertEqual(aligned['percentage'], 24)

    def test_components_matched_by_label(self):
        raw = [{'label': 'EXAM', 'score': 50}]
        aligned = align_record(record(1, ExamType.FINAL, raw), FINAL)
        self.assertEqual(aligned['components'][2]['score'], 50)

    def test_final_without_midterm_keeps_entered_carry(self):
        aligned = align_records(
            [record(1, ExamType.FINAL, scores(midtermCarry=11, ca2=10, exam=30))], [FINAL]
        )[0]
        self.assertEqual(aligned['components'][0]['score'], 11)
        self.assertEqual(aligned['total_score'], 51)

    def test_carry_is_per_subject(self):
        midterm = record(1, ExamType.MIDTERM, scores(ca1=20, quiz=10, assignment=10, classParticipation=10))
        other_subject = record(1, ExamType.FINAL, scores(exam=30), subject_id=2)
        aligned = align_records([midterm, other_subject], [MIDTERM, FINAL])
        self.assertEqual(aligned[1]['components'][0]['score'], 0)

    def test_record_without_distribution_unchanged(self):
        raw = record(1, ExamType.FINAL, scores(exam=30))
        self.assertEqual(align_records([raw], [MIDTERM]), [raw])
        self.assertIs(align_record(raw, None), raw)

    def test_empty_input(self):
        self.assertEqual(align_records([], [FINAL]), [])
        self.assertEqual(align_records(None, [FINAL]), [])


# =============================================================================
# SUMMARIES AND POSITIONS
# =============================================================================

class PositionTests(SimpleTestCase):

    def test_competition_ranking(self):
        rows = [{'value': 90}, {'value': 90}, {'value': 80}]
        assign_positions(rows, 'value')
        self.assertEqual([r['position'] for r in rows], [1, 1, 3])

    def test_tolerance(self):
        rows = [{'value': 70.004}, {'value': 70.0}, {'value': 60}]
        assign_positions(rows, 'value', tolerance=0.01)
        self.assertEqual([r['position'] for r in rows], [1, 1, 3])


class ComputeSummariesTests(SimpleTestCase):
    """Tests for per-student averages, grades and positions."""

    def test_average_of_subject_percentages(self):
        records = [
            record(1, ExamType.FINAL, [], subject_id=1, name='Ada', percentage=80),
            record(1, ExamType.FINAL, [], subject_id=2, name='Ada', percentage=61),
            record(2, ExamType.FINAL, [], subject_id=1, name='Bayo', percentage=45),
        ]
        summaries = compute_summaries(records, ExamType.FINAL)
        self.assertEqual(summaries[0]['student_name'], 'Ada')
        self.assertEqual(summaries[0]['average_score'], 70.5)
        self.assertEqual(summaries[0]['grade'], 'B2')
        self.assertEqual(summaries[0]['subject_count'], 2)
        self.assertEqual(summaries[1]['grade'], 'D7')
        self.assertEqual([s['position'] for s in summaries], [1, 2])

    def test_ties_share_position_and_sort_by_name(self):
        records = [
            record(1, ExamType.FINAL, [], name='Chidi', percentage=90),
            record(2, ExamType.FINAL, [], name='Ada', percentage=90),
            record(3, ExamType.FINAL, [], name='Bayo', percentage=80),
        ]
        summaries = compute_summaries(records, ExamType.FINAL)
        self.assertEqual([s['student_name'] for s in summaries], ['Ada', 'Chidi', 'Bayo'])
        self.assertEqual([s['position'] for s in summaries], [1, 1, 3])

    def test_filters_exam_type_and_term(self):
        records = [
            record(1, ExamType.FINAL, [], percentage=90),
            record(1, ExamType.MIDTERM, [], percentage=10),
            record(2, ExamType.FINAL, [], percentage=50, term=Term.SECOND),
        ]
        summaries = compute_summaries(records, ExamType.FINAL, term=Term.FIRST)
        self.assertEqual(len(summaries), 1)
        self.assertEqual(summaries[0]['average_score'], 90)

    def test_average_rounds_half_up(self):
        records = [
            record(1, ExamType.FINAL, [], subject_id=1, name='Ada', percentage=12.0),
            record(1, ExamType.FINAL, [], subject_id=2, name='Ada', percentage=12.5),
            record(2, ExamType.FINAL, [], subject_id=1, name='Bayo', percentage=12.2),
        ]
        summaries = compute_summaries(records, ExamType.FINAL)
        self.assertEqual([s['average_score'] for s in summaries], [12.3, 12.2])
        self.assertEqual([s['position'] for s in summaries], [1, 2])

    def test_name_tie_break_ignores_case(self):
        records = [
            record(1, ExamType.FINAL, [], name='Bayo', percentage=70),
            record(2, ExamType.FINAL, [], name='ada', percentage=70),
        ]
        summaries = compute_summaries(records, ExamType.FINAL)
        self.assertEqual([s['student_name'] for s in summaries], ['ada', 'Bayo'])

    def test_missing_percentage_uses_totals(self):
        raw = record(1, ExamType.FINAL, [], percentage=None, total_score=30, max_score=60)
        self.assertEqual(compute_summaries([raw], ExamType.FINAL)[0]['average_score'], 50)

    def test_empty_records(self):
        self.assertEqual(compute_summaries([], ExamType.FINAL), [])
        self.assertEqual(compute_summaries(None, ExamType.FINAL), [])


class PromotionCandidateTests(SimpleTestCase):

    def setUp(self):
        self.summaries = compute_summaries([
            record(1, ExamType.FINAL, [], name='Ada', percentage=50),
            record(2, ExamType.FINAL, [], name='Bayo', percentage=49.9),
        ], ExamType.FINAL)

    def test_automatic_threshold(self):
        candidates = promotion_candidates(self.summaries)
        self.assertTrue(candidates[0]['promoted'])
        self.assertFalse(candidates[1]['promoted'])
        self.assertEqual(candidates[0]['decision'], 'auto')

    def test_overrides_win(self):
        candidates = promotion_candidates(self.summaries, {1: 'hold', 2: 'promote'})
        self.assertFalse(candidates[0]['promoted'])
        self.assertTrue(candidates[0]['auto_promoted'])
        self.assertTrue(candidates[1]['promoted'])
        self.assertEqual(candidates[1]['decision'], 'promote')

    @override_settings(GRADEBOOK_PROMOTION_THRESHOLD=45)
    def test_threshold_is_configurable(self):
        candidates = promotion_candidates(self.summaries)
        self.assertTrue(candidates[1]['promoted'])


# =============================================================================
# REPORT CARD HELPERS
# =============================================================================

class SubjectBreakdownTests(SimpleTestCase):

    def test_split_from_aligned_final(self):
        components = [
            {'id': 'midtermCarry', 'label': 'Aggregated Midterm Score', 'score': 16},
            {'id': 'ca2', 'label': 'CA2', 'score': 15},
            {'id': 'exam', 'label': 'Exam', 'score': 45},
        ]
        self.assertEqual(
            subject_breakdown(components, 76),
            {'ca1': 16.0, 'ca2': 15.0, 'exam': 45.0, 'term_total': 76.0},
        )

    def test_ca1_falls_back_to_midterm_total(self):
        components = [{'id': 'exam', 'label': 'Exam', 'score': 50}]
        breakdown = subject_breakdown(components, None, midterm_total=12)
        self.assertEqual(breakdown['ca1'], 12.0)
        self.assertEqual(breakdown['term_total'], 62.0)

    def test_zero_ca1_falls_back_to_midterm_total(self):
        components = [
            {'id': 'ca1', 'label': 'CA1', 'score': 0},
            {'id': 'exam', 'label': 'Exam', 'score': 50},
        ]
        breakdown = subject_breakdown(components, None, midterm_total=14)
        self.assertEqual(breakdown['ca1'], 14.0)
        self.assertEqual(breakdown['term_total'], 64.0)

        components[0]['score'] = 9
        self.assertEqual(subject_breakdown(components, None, midterm_total=14)['ca1'], 9.0)

    def test_stored_total_wins_on_mismatch(self):
        components = [{'id': 'exam', 'label': 'Exam', 'score': 50}]
        self.assertEqual(subject_breakdown(components, 70)['term_total'], 70.0)
        self.assertEqual(subject_breakdown(components, 50.3)['term_total'], 50.0)

    def test_ignores_malformed_components(self):
        components = ['junk', {'id': 'exam', 'score': 'abc'}, {'label': 'Project', 'score': 8}]
        self.assertEqual(subject_breakdown(components, None)['ca2'], 8.0)

    def test_normalize_term(self):
        self.assertEqual(normalize_term('first'), Term.FIRST)
        self.assertEqual(normalize_term('Second Term'), Term.SECOND)
        self.assertEqual(normalize_term('THIRD'), Term.THIRD)
        with self.assertRaises(InvalidIdentifier):
            normalize_term('fourth')


# =============================================================================
# DATABASE-BACKED TESTS
# =============================================================================

class GradebookTestCase(TestCase):
    """
    One school, one session with the default distributions, JSS 1A with
    two students and Mathematics taught by an assigned teacher.
    """

    def setUp(self):
        self.school = School.objects.create(name='Hilltop College', code='HTC')
        self.session = AcademicSession.objects.create(
            name='2024/2025',
            start_date=date(2024, 9, 1),
            end_date=date(2025, 7, 31),
            is_current=True,
        )
        self.class_obj = Class.objects.create(name='JSS 1A', grade=1, school=self.school)
        self.next_class = Class.objects.create(name='JSS 2A', grade=2, school=self.school)
        self.maths = Subject.objects.create(name='Mathematics', code='MTH')
        self.english = Subject.objects.create(name='English Language', code='ENG')

        self.admin = User.objects.create_school_admin(email='admin@hilltop.edu', password='pass12345')
        self.teacher_user = User.objects.create_teacher(email='obi@hilltop.edu', password='pass12345')
        self.teacher = Teacher.objects.create(
            first_name='Ngozi', last_name='Obi', teacher_code='T-001',
            user=self.teacher_user, school=self.school,
        )
        self.class_obj.form_teacher = self.teacher
        self.class_obj.save()
        ClassSubject.objects.create(class_assigned=self.class_obj, subject=self.maths, teacher=self.teacher)
        ClassSubject.objects.create(class_assigned=self.class_obj, subject=self.english)

        self.ada = Student.objects.create(
            first_name='Ada', last_name='Eze', gender='F', admission_number='HTC/001',
            date_of_birth=date(2012, 3, 14), current_class=self.class_obj, school=self.school,
        )
        self.bayo = Student.objects.create(
            first_name='Bayo', last_name='Fashola', gender='M', admission_number='HTC/002',
            current_class=self.class_obj, school=self.school,
        )
        self.students = [self.ada, self.bayo]

    def save_scores(self, exam_type, entries, subject=None, **kwargs):
        return save_score_sheet(
            self.class_obj, subject or self.maths, self.session, Term.FIRST, exam_type,
            self.students, entries, **kwargs
        )

    def record_term(self):
        """Ada: 40/50 midterm, 15 + 45 final -> 76. Bayo: final only, 10 + 30 -> 40."""
        self.save_scores(ExamType.MIDTERM, {
            self.ada.pk: scores(ca1=15, quiz=10, assignment=10, classParticipation=5),
        })
        self.save_scores(ExamType.FINAL, {
            self.ada.pk: scores(ca2=15, exam=45),
            self.bayo.pk: scores(ca2=10, exam=30),
        })


class SaveScoreSheetTests(GradebookTestCase):
    """Tests for persisting aligned score records."""

    def test_final_carries_midterm(self):
        self.record_term()
        final = ScoreRecord.objects.get(student=self.ada, exam_type=ExamType.FINAL)
        self.assertEqual(final.total_score, Decimal('76.00'))
        self.assertEqual(final.percentage, Decimal('76.00'))
        self.assertEqual(final.components[0]['score'], 16)

    def test_midterm_change_realigns_final(self):
        self.record_term()
        self.save_scores(ExamType.MIDTERM, {
            self.ada.pk: scores(ca1=20, quiz=10, assignment=10, classParticipation=5),
        })
        final = ScoreRecord.objects.get(student=self.ada, exam_type=ExamType.FINAL)
        self.assertEqual(final.total_score, Decimal('78.00'))

    def test_audit_log_written_on_change_only(self):
        self.save_scores(ExamType.FINAL, {self.bayo.pk: scores(ca2=10, exam=30)}, user=self.admin)
        self.save_scores(ExamType.FINAL, {self.bayo.pk: scores(ca2=10, exam=30)}, user=self.admin)
        self.save_scores(ExamType.FINAL, {self.bayo.pk: scores(ca2=12, exam=30)}, user=self.admin)

        logs = ScoreAuditLog.objects.filter(student=self.bayo).order_by('created_at', 'pk')
        self.assertEqual([log.action for log in logs], ['CREATE', 'UPDATE'])
        self.assertEqual(logs[1].old_total, Decimal('40.00'))
        self.assertEqual(logs[1].new_total, Decimal('42.00'))

    def test_one_record_per_student_subject_exam(self):
        self.record_term()
        self.record_term()
        self.assertEqual(ScoreRecord.objects.filter(exam_type=ExamType.FINAL).count(), 2)
        self.assertEqual(ScoreRecord.objects.filter(exam_type=ExamType.MIDTERM).count(), 1)


class ClassSummaryTests(GradebookTestCase):

    def test_class_summaries(self):
        self.record_term()
        summaries = class_summaries(self.class_obj, self.session, Term.FIRST)
        self.assertEqual([s['student_id'] for s in summaries], [self.ada.pk, self.bayo.pk])
        self.assertEqual(summaries[0]['average_score'], 76.0)
        self.assertEqual(summaries[0]['grade'], 'A1')
        self.assertEqual(summaries[1]['grade'], 'E8')

    def test_class_midterm_totals(self):
        self.record_term()
        self.save_scores(ExamType.MIDTERM, {
            self.ada.pk: scores(ca1=5, quiz=5, assignment=5, classParticipation=5),
        }, subject=self.english)
        totals = class_midterm_totals(self.class_obj, self.session, Term.FIRST)
        self.assertEqual(list(totals), [self.ada.pk])
        self.assertEqual(totals[self.ada.pk]['total'], 30.0)
        self.assertEqual(totals[self.ada.pk]['grade'], 'C4')

    def test_promotion_with_override(self):
        self.record_term()
        candidates = class_promotion_candidates(self.class_obj, self.session, Term.FIRST)
        self.assertEqual([c['promoted'] for c in candidates], [True, False])
        self.assertEqual(candidates[0]['next_class_name'], 'JSS 2A')

        set_promotion_decision(self.ada, self.class_obj, self.session, 'hold', user=self.admin)
        set_promotion_decision(self.bayo, self.class_obj, self.session, 'promote', user=self.admin)
        candidates = class_promotion_candidates(self.class_obj, self.session, Term.FIRST)
        self.assertEqual([c['promoted'] for c in candidates], [False, True])

        set_promotion_decision(self.ada, self.class_obj, self.session, 'auto')
        self.assertFalse(PromotionDecision.objects.filter(student=self.ada).exists())


class ReportCardTests(GradebookTestCase):
    """Tests for report-card composition."""

    def test_report_card(self):
        self.record_term()
        report = build_report_card(self.ada, self.session, 'first')

        self.assertEqual(report['term_label'], 'First Term')
        self.assertEqual(report['class'], self.class_obj)
        self.assertEqual(report['class_teacher'], 'Ngozi Obi')
        self.assertEqual(report['age'], 13)

        maths = report['subjects'][0]
        self.assertEqual(maths['subject'], 'Mathematics')
        self.assertEqual((maths['ca1'], maths['ca2'], maths['exam']), (16.0, 15.0, 45.0))
        self.assertEqual(maths['term_total'], 76.0)
        self.assertEqual(maths['grade'], 'A1')
        self.assertEqual(maths['position'], 1)
        self.assertEqual(maths['class_highest'], 76.0)
        self.assertEqual(maths['class_lowest'], 40.0)
        self.assertEqual(maths['class_average'], 58.0)

        summary = report['summary']
        self.assertEqual(summary['total_score'], 76.0)
        self.assertEqual(summary['total_possible'], 100)
        self.assertEqual(summary['class_position'], 1)
        self.assertEqual(summary['class_size'], 2)
        self.assertEqual(summary['best_subject'], {'name': 'Mathematics', 'score': 76.0})

    def test_accepts_string_ids(self):
        self.record_term()
        report = build_report_card(str(self.bayo.pk), str(self.session.pk), Term.FIRST)
        self.assertEqual(report['summary']['class_position'], 2)
        self.assertEqual(report['summary']['grade'], 'E8')

    def test_attendance_and_traits(self):
        self.record_term()
        for day, status in ((2, AttendanceStatus.PRESENT), (3, AttendanceStatus.LATE), (4, AttendanceStatus.ABSENT)):
            register = AttendanceSession.objects.create(
                class_assigned=self.class_obj, date=date(2024, 9, day),
                academic_session=self.session, term=Term.FIRST,
            )
            AttendanceRecord.objects.create(session=register, student=self.ada, status=status)
        StudentTrait.objects.create(
            student=self.ada, session=self.session, term=Term.FIRST,
            category=TraitCategory.PSYCHOMOTOR, trait='punctuality', score=4,
        )

        report = build_report_card(self.ada, self.session, Term.FIRST)
        self.assertEqual(report['attendance']['total'], 3)
        self.assertEqual(report['attendance']['percentage'], 66.7)
        psychomotor = report['traits'][0]
        punctuality = next(t for t in psychomotor['traits'] if t['trait'] == 'punctuality')
        self.assertEqual(punctuality['rating'], 'High level')

    def test_invalid_identifiers(self):
        with self.assertRaises(InvalidIdentifier):
            build_report_card('abc', self.session.pk, Term.FIRST)
        with self.assertRaises(InvalidIdentifier):
            build_report_card(self.ada.pk, self.session.pk, 'fourth')

    def test_missing_records(self):
        with self.assertRaises(RecordNotFound):
            build_report_card(99999, self.session.pk, Term.FIRST)
        with self.assertRaises(RecordNotFound):
            build_report_card(self.ada.pk, self.session.pk, Term.FIRST)


# =============================================================================
# VIEWS
# =============================================================================

class ScoreSheetViewTests(GradebookTestCase):
    """Tests for the score sheet endpoint, including access and locks."""

    def setUp(self):
        super().setUp()
        self.url = reverse('gradebook:score_sheet', args=[self.class_obj.pk, self.maths.pk])
        self.data = {
            'session': self.session.pk,
            'term': Term.FIRST,
            'exam_type': ExamType.MIDTERM,
            f'score_{self.ada.pk}_ca1': '15',
            f'score_{self.ada.pk}_quiz': '10',
            f'score_{self.ada.pk}_assignment': '10',
            f'score_{self.ada.pk}_classParticipation': '5',
        }

    def test_get_renders_sheet(self):
        self.client.force_login(self.teacher_user)
        response = self.client.get(self.url, {'session': self.session.pk, 'term': Term.FIRST})
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'HTC/001')

    def test_midterm_rows_carry_midterm_grade(self):
        self.save_scores(ExamType.MIDTERM, {
            self.ada.pk: scores(ca1=10, quiz=10, assignment=5, classParticipation=5),
        })
        self.client.force_login(self.teacher_user)
        response = self.client.get(self.url, {
            'session': self.session.pk, 'term': Term.FIRST, 'exam_type': ExamType.MIDTERM,
        })
        rows = {row['student'].pk: row for row in response.context['rows']}
        self.assertEqual(rows[self.ada.pk]['grade']['grade'], 'C4')
        self.assertIsNone(rows[self.bayo.pk]['grade'])

    def test_post_saves_records(self):
        self.client.force_login(self.admin)
        response = self.client.post(self.url, self.data)
        self.assertEqual(response.status_code, 302)
        self.assertEqual(ScoreRecord.objects.filter(exam_type=ExamType.MIDTERM).count(), 2)
        record = ScoreRecord.objects.get(student=self.ada, exam_type=ExamType.MIDTERM)
        self.assertEqual(record.total_score, Decimal('40.00'))
        self.assertEqual(record.updated_by, self.admin)

    def test_htmx_post_returns_trigger(self):
        self.client.force_login(self.teacher_user)
        response = self.client.post(self.url, self.data, HTTP_HX_REQUEST='true')
        self.assertEqual(response.status_code, 204)
        self.assertIn('refreshScores', response['HX-Trigger'])

    def test_invalid_score_rejected(self):
        self.client.force_login(self.admin)
        self.data[f'score_{self.ada.pk}_ca1'] = 'twelve'
        response = self.client.post(self.url, self.data)
        self.assertEqual(response.status_code, 400)
        self.assertFalse(ScoreRecord.objects.exists())

    def test_unassigned_teacher_forbidden(self):
        self.client.force_login(self.teacher_user)
        url = reverse('gradebook:score_sheet', args=[self.class_obj.pk, self.english.pk])
        response = self.client.post(url, self.data)
        self.assertEqual(response.status_code, 403)

    def test_locked_results_refuse_teacher(self):
        lock = ResultLock(
            class_assigned=self.class_obj, session=self.session,
            term=Term.FIRST, exam_type=ExamType.MIDTERM,
        )
        lock.lock(self.admin)
        lock.save()

        self.client.force_login(self.teacher_user)
        response = self.client.post(self.url, self.data)
        self.assertEqual(response.status_code, 403)
        self.assertIn('locked', response.content.decode())
        self.assertFalse(ScoreRecord.objects.exists())

        lock.allowed_teachers.add(self.teacher)
        response = self.client.post(self.url, self.data)
        self.assertEqual(response.status_code, 302)

    def test_admin_edits_through_lock(self):
        ResultLock.objects.create(
            class_assigned=self.class_obj, session=self.session,
            term=Term.FIRST, exam_type=ExamType.MIDTERM, is_locked=True,
        )
        self.client.force_login(self.admin)
        response = self.client.post(self.url, self.data)
        self.assertEqual(response.status_code, 302)

    def test_unknown_exam_type(self):
        self.client.force_login(self.admin)
        self.data['exam_type'] = 'QUIZ'
        response = self.client.post(self.url, self.data)
        self.assertEqual(response.status_code, 400)

    def test_method_not_allowed(self):
        self.client.force_login(self.admin)
        response = self.client.put(self.url)
        self.assertEqual(response.status_code, 405)

    def test_audit_history(self):
        self.client.force_login(self.admin)
        self.client.post(self.url, self.data)
        record = ScoreRecord.objects.get(student=self.ada, exam_type=ExamType.MIDTERM)
        response = self.client.get(reverse('gradebook:score_audit', args=[record.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.context['logs']), 1)


class ScoreImportViewTests(GradebookTestCase):

    def _upload(self, content):
        return SimpleUploadedFile('scores.csv', content.encode(), content_type='text/csv')

    def test_preview_then_confirm(self):
        self.client.force_login(self.admin)
        scope = {'session': self.session.pk, 'term': Term.FIRST, 'exam_type': ExamType.FINAL}
        csv = (
            "Admission Number,Student Name,Aggregated Midterm Score (20),CA2 (20),Exam (60)\n"
            "HTC/001,Ada Eze,,18,50\n"
            "HTC/002,Bayo Fashola,,25,40\n"
            "HTC/999,Nobody,,10,10\n"
        )
        response = self.client.post(
            reverse('gradebook:import_upload', args=[self.class_obj.pk, self.maths.pk]),
            dict(scope, file=self._upload(csv)),
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.context['has_errors'])
        self.assertEqual(response.context['total_rows'], 1)

        response = self.client.post(
            reverse('gradebook:import_confirm', args=[self.class_obj.pk, self.maths.pk]), scope
        )
        self.assertEqual(response.status_code, 200)
        record = ScoreRecord.objects.get(student=self.ada, exam_type=ExamType.FINAL)
        self.assertEqual(record.total_score, Decimal('68.00'))
        self.assertFalse(ScoreRecord.objects.filter(student=self.bayo).exists())
        self.assertEqual(ScoreAuditLog.objects.get(student=self.ada).action, 'IMPORT')

    def test_rejects_other_file_types(self):
        self.client.force_login(self.admin)
        upload = SimpleUploadedFile('scores.txt', b'hello', content_type='text/plain')
        response = self.client.post(
            reverse('gradebook:import_upload', args=[self.class_obj.pk, self.maths.pk]),
            {'session': self.session.pk, 'term': Term.FIRST, 'file': upload},
        )
        self.assertEqual(response.status_code, 200)
        self.assertIn('error', response.context)
        self.assertFalse(ScoreRecord.objects.exists())

    def test_template_download(self):
        self.client.force_login(self.teacher_user)
        response = self.client.get(
            reverse('gradebook:import_template', args=[self.class_obj.pk, self.maths.pk]),
            {'session': self.session.pk, 'term': Term.FIRST, 'exam_type': ExamType.FINAL},
        )
        self.assertEqual(response.status_code, 200)
        self.assertIn('spreadsheetml', response['Content-Type'])


class ResultViewTests(GradebookTestCase):
    """Tests for results, locks and promotion views."""

    def setUp(self):
        super().setUp()
        self.record_term()
        self.scope = {'session': self.session.pk, 'term': Term.FIRST, 'exam_type': ExamType.FINAL}

    def test_class_results(self):
        self.client.force_login(self.teacher_user)
        response = self.client.get(reverse('gradebook:class_results', args=[self.class_obj.pk]), self.scope)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['stats']['highest'], 76.0)
        self.assertEqual(response.context['summaries'][0]['position'], 1)

    def test_midterm_results_show_total_out_of_fifty(self):
        self.client.force_login(self.teacher_user)
        response = self.client.get(
            reverse('gradebook:class_results', args=[self.class_obj.pk]),
            dict(self.scope, exam_type=ExamType.MIDTERM),
        )
        self.assertEqual(response.status_code, 200)
        summary = response.context['summaries'][0]
        self.assertEqual(summary['midterm'], {'total': 40.0, 'grade': 'A1', 'remark': 'Excellent'})
        self.assertContains(response, 'Avg. /50')

    def test_class_results_forbidden_for_other_teacher(self):
        user = User.objects.create_teacher(email='other@hilltop.edu', password='pass12345')
        Teacher.objects.create(first_name='Sam', last_name='Ude', teacher_code='T-002', user=user)
        self.client.force_login(user)
        response = self.client.get(reverse('gradebook:class_results', args=[self.class_obj.pk]), self.scope)
        self.assertEqual(response.status_code, 403)

    def test_results_export(self):
        self.client.force_login(self.admin)
        response = self.client.get(reverse('gradebook:results_export', args=[self.class_obj.pk]), self.scope)
        self.assertEqual(response.status_code, 200)
        self.assertIn('attachment', response['Content-Disposition'])

        wb = openpyxl.load_workbook(io.BytesIO(response.content))
        info = {row[0]: row[1] for row in wb['Info'].iter_rows(values_only=True)}
        self.assertEqual(info['Term'], 'First Term')
        self.assertEqual(info['Exam'], 'Final')
        self.assertEqual(wb['Results'].cell(row=2, column=2).value, 'Ada Eze')

    def test_toggle_lock(self):
        self.client.force_login(self.admin)
        url = reverse('gradebook:toggle_lock', args=[self.class_obj.pk])

        response = self.client.post(url, self.scope)
        self.assertEqual(response.status_code, 204)
        self.assertIn('refreshLockStatus', response['HX-Trigger'])
        lock = ResultLock.objects.get(class_assigned=self.class_obj)
        self.assertTrue(lock.is_locked)
        self.assertEqual(lock.locked_by, self.admin)

        self.client.post(url, self.scope)
        lock.refresh_from_db()
        self.assertFalse(lock.is_locked)

    def test_toggle_lock_requires_post_and_admin(self):
        url = reverse('gradebook:toggle_lock', args=[self.class_obj.pk])
        self.client.force_login(self.admin)
        self.assertEqual(self.client.get(url).status_code, 405)

        self.client.force_login(self.teacher_user)
        response = self.client.post(url, self.scope)
        self.assertEqual(response.status_code, 302)
        self.assertFalse(ResultLock.objects.exists())

    def test_lock_status(self):
        self.client.force_login(self.teacher_user)
        response = self.client.get(reverse('gradebook:lock_status', args=[self.class_obj.pk]), self.scope)
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Open for editing')

    def test_promotion_page_and_override(self):
        self.client.force_login(self.admin)
        response = self.client.get(reverse('gradebook:promotion', args=[self.class_obj.pk]), self.scope)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['promoted_count'], 1)

        url = reverse('gradebook:promotion_override', args=[self.class_obj.pk, self.bayo.pk])
        response = self.client.post(url, {'session': self.session.pk, 'term': Term.FIRST, 'decision': 'promote'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['promoted_count'], 2)
        self.assertEqual(PromotionDecision.objects.get(student=self.bayo).decided_by, self.admin)

    def test_override_rejects_unknown_decision(self):
        self.client.force_login(self.admin)
        url = reverse('gradebook:promotion_override', args=[self.class_obj.pk, self.bayo.pk])
        response = self.client.post(url, {'session': self.session.pk, 'decision': 'expel'})
        self.assertEqual(response.status_code, 400)

    def test_finalize(self):
        self.client.force_login(self.admin)
        url = reverse('gradebook:promotion_finalize', args=[self.class_obj.pk])
        self.assertEqual(self.client.get(url).status_code, 405)

        response = self.client.post(url, {'session': self.session.pk, 'term': Term.FIRST})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.context['finalized'])
        self.assertIn('1 of 2', response['HX-Trigger'])
        self.ada.refresh_from_db()
        self.assertEqual(self.ada.current_class, self.class_obj)


class ReportViewTests(GradebookTestCase):

    def setUp(self):
        super().setUp()
        self.record_term()
        self.scope = {'session': self.session.pk, 'term': Term.FIRST}

    def test_report_page(self):
        self.client.force_login(self.teacher_user)
        response = self.client.get(reverse('gradebook:student_report', args=[self.ada.pk]), self.scope)
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Mathematics')
        self.assertEqual(response.context['report']['summary']['class_position'], 1)

    def test_invalid_and_missing_ids(self):
        self.client.force_login(self.admin)
        response = self.client.get(reverse('gradebook:student_report', args=['abc']), self.scope)
        self.assertEqual(response.status_code, 400)
        response = self.client.get(reverse('gradebook:student_report', args=['99999']), self.scope)
        self.assertEqual(response.status_code, 404)
        response = self.client.get(
            reverse('gradebook:student_report', args=[self.ada.pk]), {'session': self.session.pk, 'term': 'fourth'}
        )
        self.assertEqual(response.status_code, 400)

    def test_student_sees_only_own_report(self):
        user = User.objects.create_student(email='bayo@hilltop.edu', password='pass12345')
        self.bayo.user = user
        self.bayo.save()
        self.client.force_login(user)

        response = self.client.get(reverse('gradebook:student_report', args=[self.bayo.pk]), self.scope)
        self.assertEqual(response.status_code, 200)
        response = self.client.get(reverse('gradebook:student_report', args=[self.ada.pk]), self.scope)
        self.assertEqual(response.status_code, 403)

    @mock.patch('gradebook.views.reports.render_report_card_pdf', return_value=b'%PDF-1.7 test')
    def test_pdf_download(self, render_pdf):
        self.client.force_login(self.admin)
        response = self.client.get(reverse('gradebook:report_pdf', args=[self.ada.pk]), self.scope)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertIn('HTC', response['Content-Disposition'])
        render_pdf.assert_called_once()

    @mock.patch('gradebook.tasks.export_class_report_cards.delay')
    def test_class_export_is_queued(self, delay):
        delay.return_value = mock.Mock(id='task-1')
        self.client.force_login(self.admin)
        url = reverse('gradebook:export_class_reports', args=[self.class_obj.pk])
        response = self.client.post(url, self.scope)
        self.assertEqual(response.status_code, 202)
        delay.assert_called_once_with(self.class_obj.pk, self.session.pk, Term.FIRST)

    def test_report_cards_list(self):
        self.client.force_login(self.teacher_user)
        response = self.client.get(reverse('gradebook:reports'), dict(self.scope, **{'class': self.class_obj.pk}))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.context['students']), 2)

    def test_traits_saved_and_cleared(self):
        self.client.force_login(self.teacher_user)
        url = reverse('gradebook:student_traits', args=[self.ada.pk])

        self.assertEqual(self.client.get(url, self.scope).status_code, 200)
        response = self.client.post(url, dict(self.scope, punctuality='4', honesty='5'))
        self.assertEqual(response.status_code, 204)
        trait = StudentTrait.objects.get(student=self.ada, trait='punctuality')
        self.assertEqual(trait.category, TraitCategory.PSYCHOMOTOR)
        self.assertEqual(trait.score, 4)

        self.client.post(url, dict(self.scope, honesty='3'))
        self.assertFalse(StudentTrait.objects.filter(student=self.ada, trait='punctuality').exists())
        self.assertEqual(StudentTrait.objects.get(student=self.ada, trait='honesty').score, 3)

    def test_traits_reject_out_of_range(self):
        self.client.force_login(self.admin)
        url = reverse('gradebook:student_traits', args=[self.ada.pk])
        response = self.client.post(url, dict(self.scope, punctuality='9'))
        self.assertEqual(response.status_code, 200)
        self.assertFalse(StudentTrait.objects.exists())


class ResultsPortalTests(GradebookTestCase):
    """Tests for the student and parent results pages."""

    def setUp(self):
        super().setUp()
        self.record_term()
        self.scope = {'session': self.session.pk, 'term': Term.FIRST}

        self.ada_user = User.objects.create_student(email='ada@hilltop.edu', password='pass12345')
        self.ada.user = self.ada_user
        self.ada.save()

        self.parent_user = User.objects.create_parent(email='chinwe@example.com', password='pass12345')
        self.guardian = Guardian.objects.create(
            full_name='Chinwe Eze', phone_number='08030000001', user=self.parent_user,
        )
        StudentGuardian.objects.create(guardian=self.guardian, student=self.ada, relationship='mother')

    def test_my_results(self):
        self.client.force_login(self.ada_user)
        response = self.client.get(reverse('core:my_results'), self.scope)
        self.assertEqual(response.status_code, 200)

        self.assertEqual(response.context['report']['summary']['average_score'], 76.0)
        self.assertEqual(response.context['report']['summary']['class_position'], 1)
        midterm = response.context['midterm_rows'][0]
        self.assertEqual(midterm['subject'], 'Mathematics')
        self.assertEqual(midterm['grade'], 'A1')
        self.assertEqual(response.context['midterm_standing']['position'], 1)
        self.assertEqual(response.context['midterm_standing']['class_size'], 1)

    def test_my_results_before_finals(self):
        save_score_sheet(
            self.class_obj, self.maths, self.session, Term.SECOND, ExamType.MIDTERM,
            self.students, {self.ada.pk: scores(ca1=10, quiz=5, assignment=5, classParticipation=5)},
        )
        self.client.force_login(self.ada_user)
        response = self.client.get(reverse('core:my_results'), {'session': self.session.pk, 'term': Term.SECOND})
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.context['report'])
        self.assertIn('No final exam records', response.context['report_error'])
        self.assertEqual(response.context['midterm_rows'][0]['grade'], 'C6')

    def test_portal_pages_by_role(self):
        self.client.force_login(self.teacher_user)
        self.assertEqual(self.client.get(reverse('core:my_results')).status_code, 302)
        self.assertEqual(self.client.get(reverse('core:my_wards')).status_code, 302)

        self.client.force_login(self.parent_user)
        self.assertEqual(self.client.get(reverse('core:my_results')).status_code, 302)

    def test_dashboard_sends_portal_users_to_their_page(self):
        self.client.force_login(self.ada_user)
        self.assertRedirects(self.client.get(reverse('core:index')), reverse('core:my_results'))
        self.client.force_login(self.parent_user)
        self.assertRedirects(self.client.get(reverse('core:index')), reverse('core:my_wards'))

    def test_my_wards(self):
        self.client.force_login(self.parent_user)
        response = self.client.get(reverse('core:my_wards'), self.scope)
        self.assertEqual(response.status_code, 200)

        wards = response.context['wards']
        self.assertEqual([w['student'] for w in wards], [self.ada])
        self.assertEqual(wards[0]['relationship'], 'Mother')
        self.assertEqual(wards[0]['summary']['average_score'], 76.0)
        self.assertEqual(wards[0]['summary']['position'], 1)
        self.assertEqual(wards[0]['class_size'], 2)

    def test_parent_without_guardian_record(self):
        user = User.objects.create_parent(email='stranger@example.com', password='pass12345')
        self.client.force_login(user)
        response = self.client.get(reverse('core:my_wards'), self.scope)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['wards'], [])
        self.assertContains(response, 'not linked to a guardian record')

    def test_guardian_sees_linked_report_only(self):
        self.client.force_login(self.parent_user)
        response = self.client.get(reverse('gradebook:student_report', args=[self.ada.pk]), self.scope)
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.context['can_edit_traits'])
        self.assertNotContains(response, '>Traits</button>')

        response = self.client.get(reverse('gradebook:student_report', args=[self.bayo.pk]), self.scope)
        self.assertEqual(response.status_code, 403)


class DistributionViewTests(GradebookTestCase):

    def _payload(self, **overrides):
        data = {
            'title': 'Custom Final',
            'exam_type': ExamType.FINAL,
            'session': '',
            'term': '',
            'school': '',
            'components-TOTAL_FORMS': '2',
            'components-INITIAL_FORMS': '0',
            'components-MIN_NUM_FORMS': '0',
            'components-MAX_NUM_FORMS': '1000',
            'components-0-component_id': 'ca',
            'components-0-label': 'CA',
            'components-0-weight': '40',
            'components-0-order': '0',
            'components-1-component_id': 'exam',
            'components-1-label': 'Exam',
            'components-1-weight': '60',
            'components-1-order': '1',
        }
        data.update(overrides)
        return data

    def test_list(self):
        self.client.force_login(self.admin)
        response = self.client.get(reverse('gradebook:distributions'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.context['distributions']), 2)

    def test_create(self):
        self.client.force_login(self.admin)
        response = self.client.post(reverse('gradebook:distribution_create'), self._payload())
        self.assertEqual(response.status_code, 204)
        distribution = MarkDistribution.objects.get(title='Custom Final')
        self.assertEqual(distribution.total_weight, 100)

    def test_duplicate_component_ids_rejected(self):
        self.client.force_login(self.admin)
        response = self.client.post(
            reverse('gradebook:distribution_create'),
            self._payload(**{'components-1-component_id': 'ca'}),
        )
        self.assertEqual(response.status_code, 200)
        self.assertFalse(MarkDistribution.objects.filter(title='Custom Final').exists())

    def test_load_school_defaults(self):
        self.client.force_login(self.admin)
        response = self.client.post(
            reverse('gradebook:distribution_load_defaults'),
            {'session': self.session.pk, 'school': self.school.pk},
        )
        self.assertEqual(response.status_code, 204)
        self.assertEqual(MarkDistribution.objects.filter(school=self.school).count(), 2)

    def test_teacher_cannot_manage(self):
        self.client.force_login(self.teacher_user)
        response = self.client.post(reverse('gradebook:distribution_create'), self._payload())
        self.assertEqual(response.status_code, 302)
        self.assertFalse(MarkDistribution.objects.filter(title='Custom Final').exists())


# =============================================================================
# TASKS
# =============================================================================

class ExportTaskTests(GradebookTestCase):

    def setUp(self):
        super().setUp()
        self.media = tempfile.TemporaryDirectory()
        self.addCleanup(self.media.cleanup)

    def test_class_report_cards_zip(self):
        self.record_term()
        self.save_scores(ExamType.FINAL, {self.ada.pk: scores(ca2=15, exam=45)}, subject=self.english)
        with override_settings(MEDIA_ROOT=self.media.name), \
                mock.patch.object(export_class_report_cards, 'update_state'), \
                mock.patch('gradebook.reports.render_report_card_pdf', return_value=b'%PDF'):
            result = export_class_report_cards(self.class_obj.pk, self.session.pk, Term.FIRST)

        self.assertTrue(result['success'])
        self.assertEqual(result['total'], 2)
        self.assertEqual(result['skipped'], [])
        with zipfile.ZipFile(os.path.join(self.media.name, result['filename'])) as zf:
            self.assertEqual(len(zf.namelist()), 2)

    def test_missing_class(self):
        with override_settings(MEDIA_ROOT=self.media.name):
            result = export_class_report_cards(99999, self.session.pk, Term.FIRST)
        self.assertFalse(result['success'])

    def test_cleanup_removes_old_exports(self):
        exports = os.path.join(self.media.name, 'exports')
        os.makedirs(exports)
        old = os.path.join(exports, 'old.zip')
        fresh = os.path.join(exports, 'fresh.xlsx')
        for path in (old, fresh):
            with open(path, 'wb') as f:
                f.write(b'x')
        stale = time.time() - 48 * 3600
        os.utime(old, (stale, stale))

        with override_settings(MEDIA_ROOT=self.media.name):
            result = cleanup_exports()

        self.assertEqual(result, {'deleted': 1})
        self.assertFalse(os.path.exists(old))
        self.assertTrue(os.path.exists(fresh))
