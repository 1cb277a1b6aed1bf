"""
Mark-distribution lookup and defaults.

Distributions are handled as plain template dicts (see
MarkDistribution.as_template) so the aggregation code never touches the
database.
"""
import logging

from django.db import transaction

from core.choices import ExamType
from . import config

logger = logging.getLogger(__name__)


COMPONENT_ORDER = {
    'midtermCarry': 0,
    'ca1': 1,
    'classParticipation': 2,
    'quiz': 3,
    'assignment': 4,
    'ca2': 5,
    'exam': 6,
}

DEFAULT_COMPONENTS = {
    ExamType.FINAL: [
        {'id': 'midtermCarry', 'label': 'Midterm Aggregate', 'weight': 20},
        {'id': 'ca2', 'label': 'CA2', 'weight': 20},
        {'id': 'exam', 'label': 'Exam', 'weight': 60},
    ],
    ExamType.MIDTERM: [
        {'id': 'ca1', 'label': 'CA1', 'weight': 20},
        {'id': 'quiz', 'label': 'Quiz', 'weight': 10},
        {'id': 'assignment', 'label': 'Assignment', 'weight': 10},
        {'id': 'classParticipation', 'label': 'Class Participation', 'weight': 10},
    ],
}


def normalize_label(component_id, label):
    if component_id == config.MIDTERM_CARRY_COMPONENT:
        return config.MIDTERM_CARRY_LABEL
    return label


def component_sort_key(component):
    fallback = len(COMPONENT_ORDER) + component.get('order', 0)
    return (COMPONENT_ORDER.get(component['id'], fallback), component.get('order', 0))


def default_components(exam_type):
    """Fresh copies of the built-in components for an exam type."""
    return [
        dict(component, order=index)
        for index, component in enumerate(DEFAULT_COMPONENTS.get(exam_type, []))
    ]


def _same(value, expected):
    return str(value) == str(expected) if value is not None and expected is not None else False


def default_template(exam_type):
    """Template dict built from the default components, used when nothing is configured."""
    components = [
        dict(component, label=normalize_label(component['id'], component['label']))
        for component in default_components(exam_type)
    ]
    components.sort(key=component_sort_key)
    return {
        'id': None,
        'title': 'Default',
        'exam_type': exam_type,
        'session_id': None,
        'term': None,
        'school_id': None,
        'components': components,
    }


def find_matching_distribution(distributions, exam_type, session=None, term=None, school=None):
    """
    Pick the template for (exam_type, session, term).

    Tries exact (type, session, term), then (type, session), then
    (type, term), then the exam type alone. When a school is given, its own
    templates beat global ones within each step. Returns None when no
    template has the exam type.
    """
    candidates = [d for d in distributions if d['exam_type'] == exam_type]
    if school is not None:
        candidates = [
            d for d in candidates
            if d.get('school_id') is None or _same(d.get('school_id'), school)
        ]
        # School-specific templates first, order otherwise preserved
        candidates.sort(key=lambda d: d.get('school_id') is None)

    steps = (
        lambda d: _same(d.get('session_id'), session) and d.get('term') == term,
        lambda d: _same(d.get('session_id'), session),
        lambda d: term is not None and d.get('term') == term,
        lambda d: True,
    )
    for matches in steps:
        for distribution in candidates:
            if matches(distribution):
                return distribution
    return None


def load_templates(session=None, school=None):
    """Templates visible for a session/school, ready for find_matching_distribution."""
    from django.db.models import Q
    from .models import MarkDistribution

    queryset = MarkDistribution.objects.prefetch_related('components')
    if session is not None:
        queryset = queryset.filter(Q(session=session) | Q(session__isnull=True))
    if school is not None:
        queryset = queryset.filter(Q(school=school) | Q(school__isnull=True))
    return [distribution.as_template() for distribution in queryset]


@transaction.atomic
def ensure_default_distributions(session, school=None):
    """
    Create the built-in midterm and final templates for a session when it
    has none. Returns the list of distributions created.
    """
    from .models import MarkDistribution, MarkDistributionComponent

    created = []
    for exam_type in (ExamType.MIDTERM, ExamType.FINAL):
        exists = MarkDistribution.objects.filter(
            session=session, school=school, exam_type=exam_type
        ).exists()
        if exists:
            continue

        distribution = MarkDistribution.objects.create(
            title=f"{session.name} {ExamType(exam_type).label} Distribution",
            exam_type=exam_type,
            session=session,
            school=school,
        )
        MarkDistributionComponent.objects.bulk_create([
            MarkDistributionComponent(
                distribution=distribution,
                component_id=component['id'],
                label=component['label'],
                weight=component['weight'],
                order=component['order'],
            )
            for component in default_components(exam_type)
        ])
        created.append(distribution)

    if created:
        logger.info(f"Created {len(created)} default mark distribution(s) for session {session.name}")
    return created
