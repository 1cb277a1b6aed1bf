"""
Database-facing helpers around the aggregation functions: load score
records for a class, align and summarise them, persist score sheets and
promotion overrides.
"""
import logging

from django.core.exceptions import ValidationError
from django.db import transaction

from academics.models import Class
from core.choices import ExamType
from . import config
from .calculations import align_record, align_records, compute_summaries, promotion_candidates
from .distributions import default_template, find_matching_distribution, load_templates
from .grading import grade_for_midterm_score, round1
from .models import PromotionDecision, ScoreAuditLog, ScoreRecord

logger = logging.getLogger(__name__)


def class_records(class_obj, session, term=None, exam_type=None, subject=None):
    queryset = ScoreRecord.objects.filter(
        class_assigned=class_obj, session=session
    ).select_related('student', 'subject', 'class_assigned')
    if term:
        queryset = queryset.filter(term=term)
    if exam_type:
        queryset = queryset.filter(exam_type=exam_type)
    if subject is not None:
        queryset = queryset.filter(subject=subject)
    return [record.as_dict() for record in queryset]


def aligned_class_records(class_obj, session, term=None, subject=None):
    """All of a class's records for the term, aligned midterm first."""
    records = class_records(class_obj, session, term=term, subject=subject)
    templates = load_templates(session=session, school=class_obj.school)
    return align_records(records, templates, school=class_obj.school_id)


def class_summaries(class_obj, session, term, exam_type=ExamType.FINAL):
    records = aligned_class_records(class_obj, session, term)
    return compute_summaries(records, exam_type, term=term, session=session.pk)


def class_midterm_totals(class_obj, session, term):
    """Mean midterm total per student across subjects, graded on the midterm bands."""
    totals = {}
    for record in aligned_class_records(class_obj, session, term):
        if record['exam_type'] == ExamType.MIDTERM:
            totals.setdefault(record['student_id'], []).append(float(record.get('total_score') or 0))

    result = {}
    for student_id, values in totals.items():
        mean = round1(sum(values) / len(values))
        grade = grade_for_midterm_score(mean)
        result[student_id] = {'total': mean, 'grade': grade['grade'], 'remark': grade['remark']}
    return result


def next_class_for(class_obj):
    """The class one grade above in the same school, if there is exactly one obvious choice."""
    if class_obj.grade is None:
        return None
    return Class.objects.filter(
        school=class_obj.school, grade=class_obj.grade + 1, is_active=True
    ).order_by('name').first()


def promotion_overrides(class_obj, session):
    return dict(
        PromotionDecision.objects.filter(
            class_assigned=class_obj, session=session
        ).values_list('student_id', 'decision')
    )


def class_promotion_candidates(class_obj, session, term):
    summaries = class_summaries(class_obj, session, term, ExamType.FINAL)
    return promotion_candidates(
        summaries,
        promotion_overrides(class_obj, session),
        next_class=next_class_for(class_obj),
    )


def set_promotion_decision(student, class_obj, session, decision, user=None):
    """
    Record a manual override. 'auto' removes it so the threshold applies again.
    """
    if decision == 'auto':
        deleted, _ = PromotionDecision.objects.filter(
            student=student, class_assigned=class_obj, session=session
        ).delete()
        if deleted:
            logger.info(f"Promotion override cleared for {student} in {class_obj}")
        return None

    if decision not in PromotionDecision.Decision.values:
        raise ValidationError(f'Unknown promotion decision "{decision}".')

    override, _ = PromotionDecision.objects.update_or_create(
        student=student,
        class_assigned=class_obj,
        session=session,
        defaults={'decision': decision, 'decided_by': user},
    )
    logger.info(f"Promotion override for {student} in {class_obj} set to {decision}")
    return override


def finalize_promotion(class_obj, session, term, user=None):
    """
    Snapshot of the class's promotion outcome. Students are not moved
    between classes here.
    """
    candidates = class_promotion_candidates(class_obj, session, term)
    promoted = [candidate for candidate in candidates if candidate['promoted']]
    logger.info(
        f"Promotion finalised for {class_obj} ({session}, {term}) by {user}: "
        f"{len(promoted)}/{len(candidates)} promoted"
    )
    return candidates


def _component_scores_from_post(data, student_id, template):
    components = []
    for component in template['components']:
        raw = data.get(f"score_{student_id}_{component['id']}", '')
        raw = str(raw).strip()
        if raw == '':
            score = 0
        else:
            try:
                score = float(raw)
            except ValueError:
                raise ValidationError(f"Invalid score \"{raw}\" for {component['label']}.")
        components.append({'id': component['id'], 'label': component['label'], 'score': score})
    return components


def template_for(class_obj, session, term, exam_type):
    """Matching distribution template, or the built-in one when none is configured."""
    templates = load_templates(session=session, school=class_obj.school)
    template = find_matching_distribution(
        templates, exam_type, session=session.pk, term=term, school=class_obj.school_id
    )
    return template or default_template(exam_type)


@transaction.atomic
def save_score_sheet(class_obj, subject, session, term, exam_type, students, entries,
                     user=None, ip_address=None, action=None):
    """
    Upsert one score record per student.

    entries maps student id to a list of raw {'id', 'label', 'score'}
    components. Every record is aligned with the matching distribution
    before saving; finals pick up the class's midterm totals. Returns the
    saved ScoreRecord instances.
    """
    template = template_for(class_obj, session, term, exam_type)

    midterm_totals = {}
    if exam_type == ExamType.FINAL:
        midterm_template = template_for(class_obj, session, term, ExamType.MIDTERM)
        for record in class_records(class_obj, session, term, ExamType.MIDTERM, subject=subject):
            align_record(record, midterm_template, midterm_totals)

    existing = {
        record.student_id: record
        for record in ScoreRecord.objects.filter(
            class_assigned=class_obj, subject=subject, session=session,
            term=term, exam_type=exam_type, student__in=students,
        )
    }

    saved = []
    audit_logs = []
    for student in students:
        if student.pk not in entries:
            continue
        record = existing.get(student.pk)
        old_total = record.total_score if record else None
        old_components = list(record.components) if record else []
        if record is None:
            record = ScoreRecord(
                student=student, class_assigned=class_obj, subject=subject,
                session=session, term=term, exam_type=exam_type,
            )

        raw = {
            'student_id': student.pk,
            'class_id': class_obj.pk,
            'subject_id': subject.pk,
            'session_id': session.pk,
            'term': term,
            'exam_type': exam_type,
            'components': entries[student.pk],
            'total_score': 0,
            'max_score': 0,
            'percentage': 0,
        }
        aligned = align_record(raw, template, midterm_totals)

        record.apply_aligned(aligned)
        record.updated_by = user
        record.save()
        saved.append(record)

        if old_total is None or old_total != record.total_score or old_components != record.components:
            audit_logs.append(ScoreAuditLog(
                score_record=record,
                student=student,
                subject=subject,
                user=user,
                action=action or ('CREATE' if old_total is None else 'UPDATE'),
                old_total=old_total,
                new_total=record.total_score,
                old_components=old_components,
                new_components=record.components,
                ip_address=ip_address,
            ))

    if audit_logs:
        ScoreAuditLog.objects.bulk_create(audit_logs, batch_size=config.BULK_UPDATE_BATCH_SIZE)

    logger.info(
        f"Saved {len(saved)} {exam_type} score record(s) for {class_obj} / {subject} "
        f"({session}, {term}) by {user}"
    )
    return saved


def scores_from_post(data, students, template):
    """Parse a submitted score sheet into the entries save_score_sheet expects."""
    return {
        student.pk: _component_scores_from_post(data, student.pk, template)
        for student in students
    }
