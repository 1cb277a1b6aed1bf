import json
import logging

from django.contrib.auth.decorators import login_required
from django.core.exceptions import ValidationError
from django.http import HttpResponse
from django.shortcuts import get_object_or_404, render

from academics.models import Class
from core.choices import ExamType, Term
from core.models import AcademicSession
from students.models import Student
from .base import (
    admin_required, teacher_or_admin_required, htmx_render,
    is_school_admin, get_teacher_classes, resolve_scope,
)
from .scores import requested_exam_type
from .. import config
from ..forms import ResultLockForm
from ..grading import round1
from ..models import ResultLock
from ..results import (
    class_midterm_totals, class_promotion_candidates, class_summaries, finalize_promotion,
    set_promotion_decision,
)

logger = logging.getLogger(__name__)


# ============ Result Summaries ============

@login_required
@teacher_or_admin_required
def class_results(request, class_id):
    """Aligned result summaries with positions for one class and exam."""
    class_obj = get_object_or_404(Class.objects.select_related('school', 'form_teacher'), pk=class_id)
    if not get_teacher_classes(request.user).filter(pk=class_obj.pk).exists():
        return HttpResponse("Not authorized", status=403)

    session, term = resolve_scope(request)
    exam_type = requested_exam_type(request)
    if session is None:
        return HttpResponse("No academic session is configured.", status=400)
    if exam_type is None:
        return HttpResponse("Unknown exam type.", status=400)

    summaries = class_summaries(class_obj, session, term, exam_type)
    if exam_type == ExamType.MIDTERM:
        totals = class_midterm_totals(class_obj, session, term)
        for summary in summaries:
            summary['midterm'] = totals.get(summary['student_id'])
    averages = [s['average_score'] for s in summaries]

    context = {
        'class_obj': class_obj,
        'session': session,
        'term': term,
        'term_label': Term(term).label,
        'exam_type': exam_type,
        'sessions': AcademicSession.objects.all(),
        'term_choices': Term.choices,
        'exam_types': ExamType.choices,
        'summaries': summaries,
        'stats': {
            'count': len(summaries),
            'highest': max(averages) if averages else None,
            'lowest': min(averages) if averages else None,
            'mean': round1(sum(averages) / len(averages)) if averages else None,
        },
        'lock': ResultLock.for_scope(class_obj, session, term, exam_type),
        'is_admin': is_school_admin(request.user),
        'breadcrumbs': [
            {'label': 'Home', 'url': '/', 'icon': 'fa-solid fa-home'},
            {'label': 'Gradebook', 'url': '/gradebook/'},
            {'label': f'{class_obj.name} Results'},
        ],
    }
    return htmx_render(
        request,
        'gradebook/class_results.html',
        'gradebook/partials/class_results_content.html',
        context
    )


# ============ Promotion ============

def _promotion_context(request, class_obj, session, term, candidates=None, finalized=False):
    if candidates is None:
        candidates = class_promotion_candidates(class_obj, session, term)
    return {
        'class_obj': class_obj,
        'session': session,
        'term': term,
        'term_label': Term(term).label,
        'sessions': AcademicSession.objects.all(),
        'term_choices': Term.choices,
        'candidates': candidates,
        'threshold': config.PROMOTION_THRESHOLD,
        'promoted_count': sum(1 for c in candidates if c['promoted']),
        'finalized': finalized,
        'breadcrumbs': [
            {'label': 'Home', 'url': '/', 'icon': 'fa-solid fa-home'},
            {'label': 'Gradebook', 'url': '/gradebook/'},
            {'label': f'{class_obj.name} Promotion'},
        ],
    }


@login_required
@admin_required
def promotion(request, class_id):
    """Promotion candidates from the final-exam summaries (Admin only)."""
    class_obj = get_object_or_404(Class, pk=class_id)
    session, term = resolve_scope(request)
    if session is None:
        return HttpResponse("No academic session is configured.", status=400)

    return htmx_render(
        request,
        'gradebook/promotion.html',
        'gradebook/partials/promotion_content.html',
        _promotion_context(request, class_obj, session, term)
    )


@login_required
@admin_required
def promotion_override(request, class_id, student_id):
    """Set a manual promote/hold decision, or 'auto' to clear it (Admin only)."""
    if request.method != 'POST':
        return HttpResponse(status=405)

    class_obj = get_object_or_404(Class, pk=class_id)
    student = get_object_or_404(Student, pk=student_id)
    session, term = resolve_scope(request)
    if session is None:
        return HttpResponse("No academic session is configured.", status=400)

    try:
        set_promotion_decision(
            student, class_obj, session, request.POST.get('decision', ''), user=request.user
        )
    except ValidationError as e:
        return HttpResponse(' '.join(e.messages), status=400)

    return render(
        request,
        'gradebook/partials/promotion_content.html',
        _promotion_context(request, class_obj, session, term)
    )


@login_required
@admin_required
def promotion_finalize(request, class_id):
    """Confirm the class's promotion outcome (Admin only)."""
    if request.method != 'POST':
        return HttpResponse(status=405)

    class_obj = get_object_or_404(Class, pk=class_id)
    session, term = resolve_scope(request)
    if session is None:
        return HttpResponse("No academic session is configured.", status=400)

    candidates = finalize_promotion(class_obj, session, term, user=request.user)
    response = render(
        request,
        'gradebook/partials/promotion_content.html',
        _promotion_context(request, class_obj, session, term, candidates=candidates, finalized=True)
    )
    promoted = sum(1 for c in candidates if c['promoted'])
    response['HX-Trigger'] = json.dumps({
        'showToast': {
            'message': f'Promotion finalised: {promoted} of {len(candidates)} student(s) promoted.',
            'type': 'success',
        }
    })
    return response


# ============ Result Locking ============

@login_required
@admin_required
def toggle_result_lock(request, class_id):
    """Lock or unlock a class's results for one exam (Admin only)."""
    if request.method != 'POST':
        return HttpResponse(status=405)

    class_obj = get_object_or_404(Class, pk=class_id)
    session, term = resolve_scope(request)
    exam_type = requested_exam_type(request)
    if session is None or exam_type is None:
        return HttpResponse("Session and exam type are required.", status=400)

    lock, _ = ResultLock.objects.get_or_create(
        class_assigned=class_obj, session=session, term=term, exam_type=exam_type,
        defaults={'is_locked': False},
    )
    if lock.is_locked:
        lock.unlock()
        message = f"Results unlocked for {class_obj.name}"
    else:
        lock.lock(request.user)
        message = f"Results locked for {class_obj.name}"
    lock.save()
    logger.info(f"{message} ({session}, {term}, {exam_type}) by {request.user}")

    response = HttpResponse(status=204)
    response['HX-Trigger'] = json.dumps({
        'showToast': {'message': message, 'type': 'success'},
        'refreshLockStatus': True
    })
    return response


@login_required
@admin_required
def result_lock_edit(request, pk):
    """Edit a lock's notes and the teachers still allowed to edit (Admin only)."""
    lock = get_object_or_404(ResultLock.objects.select_related('class_assigned'), pk=pk)

    if request.method == 'GET':
        return render(request, 'gradebook/includes/modal_result_lock.html', {
            'lock': lock,
            'form': ResultLockForm(instance=lock),
        })

    if request.method != 'POST':
        return HttpResponse(status=405)

    form = ResultLockForm(request.POST, instance=lock)
    if not form.is_valid():
        return render(request, 'gradebook/includes/modal_result_lock.html', {
            'lock': lock,
            'form': form,
        })

    lock = form.save(commit=False)
    if lock.is_locked and lock.locked_at is None:
        lock.lock(request.user)
    elif not lock.is_locked:
        lock.unlock()
    lock.save()
    form.save_m2m()
    logger.info(f"Result lock {lock} updated by {request.user}")

    response = HttpResponse(status=204)
    response['HX-Trigger'] = 'closeModal, refreshLockStatus'
    return response


@login_required
def result_lock_status(request, class_id):
    """Lock badge for a class/exam (for HTMX refresh)."""
    class_obj = get_object_or_404(Class, pk=class_id)
    session, term = resolve_scope(request)
    exam_type = requested_exam_type(request) or ExamType.FINAL
    lock = ResultLock.for_scope(class_obj, session, term, exam_type) if session else None
    return render(request, 'gradebook/partials/result_lock_status.html', {
        'class_obj': class_obj,
        'session': session,
        'term': term,
        'exam_type': exam_type,
        'lock': lock,
        'is_admin': is_school_admin(request.user),
    })
