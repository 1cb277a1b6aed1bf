from django.contrib.auth.decorators import login_required

from core.choices import ExamType, Term
from core.models import AcademicSession
from .base import htmx_render, is_school_admin, get_teacher_classes, resolve_scope
from ..models import MarkDistribution, ResultLock, ScoreRecord


@login_required
def index(request):
    """Gradebook landing page: classes the user works with and the term's activity."""
    session, term = resolve_scope(request)
    classes = get_teacher_classes(request.user)

    records = ScoreRecord.objects.filter(session=session, term=term) if session else ScoreRecord.objects.none()
    locks = ResultLock.objects.filter(session=session, term=term, is_locked=True) if session else ResultLock.objects.none()

    context = {
        'session': session,
        'term': term,
        'sessions': AcademicSession.objects.all(),
        'term_choices': Term.choices,
        'exam_types': ExamType.choices,
        'classes': classes,
        'is_admin': is_school_admin(request.user),
        'stats': {
            'records': records.count(),
            'midterm_records': records.filter(exam_type=ExamType.MIDTERM).count(),
            'final_records': records.filter(exam_type=ExamType.FINAL).count(),
            'locked': locks.count(),
            'distributions': MarkDistribution.objects.count(),
        },
        'breadcrumbs': [
            {'label': 'Home', 'url': '/', 'icon': 'fa-solid fa-home'},
            {'label': 'Gradebook'},
        ],
    }
    return htmx_render(
        request,
        'gradebook/index.html',
        'gradebook/partials/index_content.html',
        context
    )
