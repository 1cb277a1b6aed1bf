"""
Report-card composition.

build_report_card gathers everything printed on a student's terminal
report: per-subject CA/exam breakdown with subject positions, overall
totals and class position, attendance and trait ratings.
"""
import logging
from collections import defaultdict

from django.template.loader import render_to_string

from academics.models import AttendanceRecord
from core.choices import AttendanceStatus, ExamType, Term
from core.models import AcademicSession
from students.models import Student
from . import config
from .calculations import assign_positions
from .grading import grade_for_score, round1
from .models import ScoreRecord, StudentTrait
from .traits import AFFECTIVE_TRAITS, PSYCHOMOTOR_TRAITS, TRAIT_RATINGS

logger = logging.getLogger(__name__)


class ReportCardError(Exception):
    """Base error for report-card generation."""


class RecordNotFound(ReportCardError):
    pass


class InvalidIdentifier(ReportCardError):
    pass


TERM_ALIASES = {
    'first': Term.FIRST,
    'first term': Term.FIRST,
    'second': Term.SECOND,
    'second term': Term.SECOND,
    'third': Term.THIRD,
    'third term': Term.THIRD,
}

# Keywords matched against lower-cased component labels and ids
COMPONENT_MATCHERS = {
    'ca1': ('ca1', 'continuous assessment 1', 'weekly test 1', 'midterm'),
    'ca2': ('ca2', 'continuous assessment 2', 'assignment', 'project', 'test'),
    'exam': ('exam', 'examination', 'paper'),
}


def normalize_term(value):
    """Map 'first', 'First Term', 'FIRST'... to a Term value."""
    key = str(value or '').strip().lower()
    if key.upper() in Term.values:
        return key.upper()
    try:
        return TERM_ALIASES[key]
    except KeyError:
        raise InvalidIdentifier(f'Unsupported academic term "{value}".')


def normalize_term_label(value):
    return Term(normalize_term(value)).label


def _as_number(value):
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parsed_components(components):
    parsed = []
    for component in components or []:
        if not isinstance(component, dict):
            continue
        score = _as_number(component.get('score'))
        if score is None:
            continue
        keys = ' '.join(filter(None, [component.get('label'), component.get('id')])).strip().lower()
        if keys:
            parsed.append({'key': keys, 'score': score})
    return parsed


def _matches(component, name):
    return any(keyword in component['key'] for keyword in COMPONENT_MATCHERS[name])


def subject_breakdown(final_components, final_total, midterm_total=None):
    """
    Split a final record into CA1, CA2, exam and term total.

    CA1 falls back to the midterm total when the final record has none
    or its CA1 score is 0.
    The stored total wins over the computed sum when they differ by more
    than the configured tolerance.
    """
    components = _parsed_components(final_components)
    used = set()

    ca1_component = next((c for c in components if _matches(c, 'ca1')), None)
    ca1 = ca1_component['score'] if ca1_component else 0
    if ca1_component:
        used.add(ca1_component['key'])
    if not ca1 and midterm_total is not None:
        ca1 = _as_number(midterm_total) or 0

    exam_component = next((c for c in components if c['key'] not in used and _matches(c, 'exam')), None)
    exam = exam_component['score'] if exam_component else 0
    if exam_component:
        used.add(exam_component['key'])

    ca2 = sum(c['score'] for c in components if c['key'] not in used and _matches(c, 'ca2'))

    term_total = ca1 + ca2 + exam
    stored = _as_number(final_total)
    if stored is not None and abs(stored - term_total) > config.TOTAL_MISMATCH_TOLERANCE:
        term_total = stored

    return {
        'ca1': round1(ca1),
        'ca2': round1(ca2),
        'exam': round1(exam),
        'term_total': round1(term_total),
    }


def attendance_summary(student, session):
    """Present/absent/late counts over the session, with the attended percentage."""
    summary = {'total': 0, 'present': 0, 'absent': 0, 'late': 0, 'percentage': None}
    if not session.start_date or not session.end_date:
        return summary

    statuses = AttendanceRecord.objects.filter(
        student=student,
        session__date__gte=session.start_date,
        session__date__lte=session.end_date,
    ).values_list('status', flat=True)

    for status in statuses:
        if status == AttendanceStatus.PRESENT:
            summary['present'] += 1
        elif status == AttendanceStatus.LATE:
            summary['late'] += 1
        else:
            summary['absent'] += 1

    summary['total'] = summary['present'] + summary['absent'] + summary['late']
    if summary['total']:
        attended = summary['present'] + summary['late']
        summary['percentage'] = round1(attended / summary['total'] * 100)
    return summary


def trait_groups(student, session, term):
    entries = StudentTrait.objects.filter(student=student, session=session, term=term)
    by_key = {entry.trait: entry.score for entry in entries}

    def build(traits):
        return [
            {
                'trait': key,
                'label': label,
                'score': by_key.get(key),
                'rating': TRAIT_RATINGS.get(by_key.get(key), ''),
            }
            for key, label in traits.items()
        ]

    return [
        {'category': 'psychomotor', 'label': 'Psychomotor', 'traits': build(PSYCHOMOTOR_TRAITS)},
        {'category': 'affective', 'label': 'Affective', 'traits': build(AFFECTIVE_TRAITS)},
    ]


def _positions(totals, tolerance):
    rows = sorted(
        ({'student_id': student_id, 'value': value} for student_id, value in totals.items()),
        key=lambda row: -row['value'],
    )
    assign_positions(rows, 'value', tolerance=tolerance)
    return {row['student_id']: row['position'] for row in rows}


def _load(model, pk, label):
    try:
        pk = int(pk)
    except (TypeError, ValueError):
        raise InvalidIdentifier(f'{label} identifier is invalid.')
    try:
        return model.objects.get(pk=pk)
    except model.DoesNotExist:
        raise RecordNotFound(f'{label} record could not be found.')


def build_report_card(student, session, term, exam_type=ExamType.FINAL):
    """
    Compose the report-card dict for one student.

    student and session may be instances or primary keys. Raises
    InvalidIdentifier for malformed ids or terms and RecordNotFound when
    the student, the session or the student's final records are missing.
    """
    if not isinstance(student, Student):
        student = _load(Student, student, 'Student')
    if not isinstance(session, AcademicSession):
        session = _load(AcademicSession, session, 'Session')
    term = normalize_term(term)
    tolerance = config.POSITION_TOLERANCE

    own_records = list(
        ScoreRecord.objects.filter(student=student, session=session, term=term)
        .select_related('subject')
    )
    finals = [r for r in own_records if r.exam_type == exam_type]
    if not finals:
        raise RecordNotFound('No final exam records found for the selected student.')

    class_obj = finals[0].class_assigned
    class_records = list(
        ScoreRecord.objects.filter(class_assigned=class_obj, session=session, term=term)
        .select_related('subject')
    )

    midterm_totals = {
        (r.student_id, r.subject_id): r.total_score
        for r in class_records if r.exam_type == ExamType.MIDTERM
    }

    student_totals = defaultdict(float)
    subject_totals = defaultdict(dict)
    breakdowns = {}
    for record in class_records:
        if record.exam_type != exam_type:
            continue
        breakdown = subject_breakdown(
            record.components,
            record.total_score,
            midterm_totals.get((record.student_id, record.subject_id)),
        )
        student_totals[record.student_id] += breakdown['term_total']
        subject_totals[record.subject_id][record.student_id] = breakdown['term_total']
        breakdowns[(record.student_id, record.subject_id)] = breakdown

    subject_positions = {
        subject_id: _positions(totals, tolerance) for subject_id, totals in subject_totals.items()
    }
    class_positions = _positions(student_totals, tolerance)

    subjects = []
    for record in finals:
        breakdown = breakdowns.get((student.pk, record.subject_id)) or subject_breakdown(
            record.components,
            record.total_score,
            midterm_totals.get((student.pk, record.subject_id)),
        )
        grade = grade_for_score(breakdown['term_total'])
        class_scores = list(subject_totals.get(record.subject_id, {}).values())
        subjects.append(dict(
            breakdown,
            subject=record.subject.name,
            grade=grade['grade'],
            remark=grade['remark'],
            position=subject_positions.get(record.subject_id, {}).get(student.pk),
            class_highest=round1(max(class_scores)) if class_scores else None,
            class_lowest=round1(min(class_scores)) if class_scores else None,
            class_average=round1(sum(class_scores) / len(class_scores)) if class_scores else None,
        ))
    subjects.sort(key=lambda s: s['subject'].lower())

    best = weakest = None
    total = 0.0
    for subject in subjects:
        total += subject['term_total']
        if best is None or subject['term_total'] > best['score']:
            best = {'name': subject['subject'], 'score': subject['term_total']}
        if weakest is None or subject['term_total'] < weakest['score']:
            weakest = {'name': subject['subject'], 'score': subject['term_total']}
    average = round1(total / len(subjects)) if subjects else 0
    overall_grade = grade_for_score(average)

    form_teacher = class_obj.form_teacher if class_obj else None
    school = student.school or (class_obj.school if class_obj else None)

    return {
        'school': school,
        'session': session,
        'term': term,
        'term_label': Term(term).label,
        'student': student,
        'class': class_obj,
        'age': student.age_on(session.end_date),
        'class_teacher': form_teacher.full_name if form_teacher else None,
        'subjects': subjects,
        'summary': {
            'total_score': round1(total),
            'average_score': average,
            'grade': overall_grade['grade'],
            'remark': overall_grade['remark'],
            'total_subjects': len(subjects),
            'total_possible': len(subjects) * 100,
            'class_position': class_positions.get(student.pk),
            'class_size': len(student_totals),
            'best_subject': best,
            'weakest_subject': weakest,
        },
        'attendance': attendance_summary(student, session),
        'traits': trait_groups(student, session, term),
    }


def render_report_card_pdf(report, base_url=None):
    """Render a composed report card to PDF bytes with WeasyPrint."""
    from weasyprint import HTML

    html = render_to_string('gradebook/report_card_pdf.html', {'report': report})
    pdf = HTML(string=html, base_url=base_url).write_pdf()
    logger.info(
        f"Rendered report card PDF for {report['student']} "
        f"({report['session']}, {report['term_label']})"
    )
    return pdf
