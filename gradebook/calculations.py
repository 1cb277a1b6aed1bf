"""
Results aggregation.

Works on plain record dicts (ScoreRecord.as_dict) and distribution
templates (MarkDistribution.as_template):

- align_records: rebuild each record's components against its mark
  distribution, folding the midterm total into the final record.
- compute_summaries: per-student averages, grades and positions.
- promotion_candidates: automatic promotion plus manual overrides.

Missing inputs produce empty or zero results instead of errors.
"""
import logging
import math

from core.choices import ExamType
from . import config
from .distributions import find_matching_distribution
from .grading import clamp_score, grade_for_score, round1

logger = logging.getLogger(__name__)


def _midterm_key(record):
    return (
        str(record.get('session_id')),
        record.get('term'),
        str(record.get('class_id')),
        str(record.get('subject_id', record.get('subject'))),
        str(record.get('student_id')),
    )


def _record_key(record):
    return _midterm_key(record) + (record.get('exam_type'),)


def _find_component(components, component_id, label):
    for component in components:
        if component.get('id') == component_id:
            return component
    label = (label or '').lower()
    for component in components:
        if (component.get('label') or '').lower() == label:
            return component
    return None


def _fallback_max(exam_type):
    if exam_type == ExamType.MIDTERM:
        return config.DEFAULT_MIDTERM_MAX
    return config.DEFAULT_FINAL_MAX


def align_record(record, distribution, midterm_totals=None):
    """
    Align one record with a distribution template.

    midterm_totals maps midterm keys to {'score', 'max'}; aligned midterm
    records are added to it and final records read their carry-forward
    from it.
    """
    if distribution is None:
        return record

    carry_id = config.MIDTERM_CARRY_COMPONENT
    raw_components = record.get('components') or []
    exam_type = record.get('exam_type')

    components = []
    for template in distribution['components']:
        max_score = template['weight']
        existing = _find_component(raw_components, template['id'], template['label'])
        score = clamp_score(existing.get('score', 0) if existing else 0, max_score)

        if template['id'] == carry_id and exam_type == ExamType.FINAL and midterm_totals is not None:
            totals = midterm_totals.get(_midterm_key(record))
            if totals and totals['max'] > 0:
                score = clamp_score(totals['score'] / totals['max'] * max_score, max_score)

        components.append({
            'id': template['id'],
            'label': template['label'],
            'score': score,
            'max_score': max_score,
        })

    total_score = sum(component['score'] for component in components)
    max_score = sum(component['max_score'] for component in components) or _fallback_max(exam_type)
    percentage = total_score / max_score * 100 if max_score else 0

    if exam_type == ExamType.MIDTERM and midterm_totals is not None:
        midterm_totals[_midterm_key(record)] = {'score': total_score, 'max': max_score}

    aligned = dict(record)
    aligned.update({
        'components': components,
        'total_score': total_score,
        'max_score': max_score,
        'percentage': percentage,
    })
    return aligned


def align_records(records, distributions, school=None):
    """
    Align every record with its best-matching distribution.

    Midterm records are aligned first so final records can carry their
    totals forward. The result keeps the input order; records without a
    matching distribution come back unchanged.
    """
    if not records:
        return []

    midterm_totals = {}
    aligned_by_key = {}
    ordered = (
        [r for r in records if r.get('exam_type') == ExamType.MIDTERM]
        + [r for r in records if r.get('exam_type') != ExamType.MIDTERM]
    )
    for record in ordered:
        distribution = find_matching_distribution(
            distributions,
            record.get('exam_type'),
            session=record.get('session_id'),
            term=record.get('term'),
            school=school,
        )
        aligned_by_key[_record_key(record)] = align_record(record, distribution, midterm_totals)

    return [aligned_by_key.get(_record_key(record), record) for record in records]


def assign_positions(rows, value_key, position_key='position', tolerance=0.0):
    """
    Standard competition ranking over rows already sorted best first.

    Equal values share a position; the next distinct value takes the
    1-indexed count of rows seen so far ([90, 90, 80] -> [1, 1, 3]).
    """
    last_value = None
    position = 0
    for processed, row in enumerate(rows, 1):
        value = row[value_key]
        if last_value is None or abs(value - last_value) > tolerance:
            last_value = value
            position = processed
        row[position_key] = position
    return rows


def _record_percentage(record):
    percentage = record.get('percentage')
    try:
        percentage = float(percentage)
    except (TypeError, ValueError):
        percentage = math.nan
    if math.isfinite(percentage):
        return percentage
    max_score = float(record.get('max_score') or 0)
    if max_score:
        return float(record.get('total_score') or 0) / max_score * 100
    return 0.0


def compute_summaries(records, exam_type, term=None, session=None):
    """
    Per-student result summaries for one exam type.

    The average is the plain mean of subject percentages (no credit
    weighting), rounded to one decimal and graded through the bands.
    Students are sorted by average descending then name ascending.
    """
    grouped = {}
    for record in records or []:
        if record.get('exam_type') != exam_type:
            continue
        if term is not None and record.get('term') != term:
            continue
        if session is not None and str(record.get('session_id')) != str(session):
            continue

        entry = grouped.get(record['student_id'])
        if entry is None:
            entry = grouped[record['student_id']] = {
                'student_id': record['student_id'],
                'student_name': record.get('student_name', ''),
                'class_id': record.get('class_id'),
                'class_name': record.get('class_name', ''),
                'total_percentage': 0.0,
                'subject_count': 0,
            }
        entry['total_percentage'] += _record_percentage(record)
        entry['subject_count'] += 1

    summaries = []
    for entry in grouped.values():
        average = entry['total_percentage'] / entry['subject_count'] if entry['subject_count'] else 0
        average = round1(average)
        grade = grade_for_score(average)
        summaries.append({
            'student_id': entry['student_id'],
            'student_name': entry['student_name'],
            'class_id': entry['class_id'],
            'class_name': entry['class_name'],
            'subject_count': entry['subject_count'],
            'average_score': average,
            'grade': grade['grade'],
            'remark': grade['remark'],
            'exam_type': exam_type,
            'term': term,
            'session_id': session,
            'position': 0,
        })

    summaries.sort(key=lambda s: (-s['average_score'], s['student_name'].casefold()))
    return assign_positions(summaries, 'average_score')


def is_auto_promoted(average_score):
    return average_score >= config.PROMOTION_THRESHOLD


def promotion_candidates(summaries, overrides=None, next_class=None):
    """
    Promotion outcome for each final-term summary.

    overrides maps student id to 'promote' or 'hold'; a student without an
    override follows the automatic threshold.
    """
    overrides = overrides or {}
    candidates = []
    for summary in summaries:
        manual = overrides.get(summary['student_id'])
        auto_promoted = is_auto_promoted(summary['average_score'])
        candidates.append({
            'student_id': summary['student_id'],
            'student_name': summary['student_name'],
            'class_id': summary['class_id'],
            'class_name': summary['class_name'],
            'next_class_id': next_class.pk if next_class else None,
            'next_class_name': next_class.name if next_class else None,
            'average_score': summary['average_score'],
            'grade': summary['grade'],
            'remark': summary['remark'],
            'position': summary['position'],
            'auto_promoted': auto_promoted,
            'decision': manual or 'auto',
            'promoted': manual == 'promote' or (manual is None and auto_promoted),
        })
    return candidates
