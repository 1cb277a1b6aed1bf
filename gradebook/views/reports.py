import json
import logging

from django.contrib.auth.decorators import login_required
from django.http import HttpResponse, Http404
from django.shortcuts import get_object_or_404, render

from academics.models import Class
from core.choices import Term
from core.models import AcademicSession
from students.models import Student
from .base import (
    admin_required, teacher_or_admin_required, htmx_render,
    is_school_admin, is_teacher_or_admin, get_teacher_classes, resolve_scope,
)
from .scores import class_students
from ..forms import StudentTraitsForm
from ..models import StudentTrait
from ..reports import (
    InvalidIdentifier, RecordNotFound, build_report_card, render_report_card_pdf,
)

logger = logging.getLogger(__name__)


def can_view_report(user, student, class_obj):
    """
    Admins, the student themselves, their linked guardians and the teachers
    of the class may view a report.
    """
    if is_school_admin(user):
        return True
    if getattr(user, 'student_profile', None) is not None and user.student_profile.pk == student.pk:
        return True
    guardian = getattr(user, 'guardian_profile', None)
    if guardian is not None and guardian.student_links.filter(student_id=student.pk).exists():
        return True
    teacher = getattr(user, 'teacher_profile', None)
    if teacher is None or class_obj is None:
        return False
    return class_obj.form_teacher_id == teacher.pk or get_teacher_classes(user).filter(pk=class_obj.pk).exists()


def _report_or_error(request, student_id):
    """(report, None) or (None, error response) for the requested student/session/term."""
    current_session, current_term = resolve_scope(request)
    session_id = request.GET.get('session') or (current_session.pk if current_session else None)
    term = request.GET.get('term') or current_term

    if session_id is None:
        return None, HttpResponse("No academic session is configured.", status=400)

    try:
        report = build_report_card(student_id, session_id, term)
    except InvalidIdentifier as e:
        return None, HttpResponse(str(e), status=400)
    except RecordNotFound as e:
        raise Http404(str(e))

    if not can_view_report(request.user, report['student'], report['class']):
        logger.warning(f"User {request.user} denied report card for student {student_id}")
        return None, HttpResponse("Not authorized", status=403)
    return report, None


# ============ Report Cards ============

@login_required
@teacher_or_admin_required
def report_cards(request):
    """Pick a class and list its students with links to their report cards."""
    session, term = resolve_scope(request)
    classes = get_teacher_classes(request.user).order_by('grade', 'name')

    class_id = request.GET.get('class', '')
    selected_class = classes.filter(pk=class_id).first() if class_id.isdigit() else None

    context = {
        'session': session,
        'term': term,
        'sessions': AcademicSession.objects.all(),
        'term_choices': Term.choices,
        'classes': classes,
        'selected_class': selected_class,
        'students': class_students(selected_class) if selected_class else [],
        'breadcrumbs': [
            {'label': 'Home', 'url': '/', 'icon': 'fa-solid fa-home'},
            {'label': 'Gradebook', 'url': '/gradebook/'},
            {'label': 'Report Cards'},
        ],
    }
    return htmx_render(
        request,
        'gradebook/report_cards.html',
        'gradebook/partials/report_cards_content.html',
        context
    )


@login_required
def student_report(request, student_id):
    """A student's terminal report card."""
    report, error = _report_or_error(request, student_id)
    if error:
        return error

    staff = is_teacher_or_admin(request.user)
    if staff:
        back = {'label': 'Report Cards', 'url': '/gradebook/reports/'}
    elif request.user.is_parent:
        back = {'label': 'My Children', 'url': 'core:my_wards'}
    else:
        back = {'label': 'My Results', 'url': 'core:my_results'}

    return htmx_render(
        request,
        'gradebook/student_report.html',
        'gradebook/partials/student_report_content.html',
        {
            'report': report,
            'can_edit_traits': staff,
            'breadcrumbs': [
                {'label': 'Home', 'url': '/', 'icon': 'fa-solid fa-home'},
                back,
                {'label': report['student'].full_name},
            ],
        }
    )


@login_required
def download_report_pdf(request, student_id):
    """Download a student's report card as PDF."""
    report, error = _report_or_error(request, student_id)
    if error:
        return error

    pdf = render_report_card_pdf(report, base_url=request.build_absolute_uri('/'))
    student = report['student']
    response = HttpResponse(pdf, content_type='application/pdf')
    response['Content-Disposition'] = (
        f'attachment; filename="report_card_{student.admission_number.replace("/", "-")}_{report["term"]}.pdf"'
    )
    return response


@login_required
@admin_required
def export_class_reports(request, class_id):
    """Queue PDF report cards for a whole class (Admin only)."""
    if request.method != 'POST':
        return HttpResponse(status=405)

    class_obj = get_object_or_404(Class, pk=class_id)
    session, term = resolve_scope(request)
    if session is None:
        return HttpResponse("No academic session is configured.", status=400)

    from ..tasks import export_class_report_cards

    result = export_class_report_cards.delay(class_obj.pk, session.pk, term)
    logger.info(f"Queued report-card export for {class_obj} ({session}, {term}): task {result.id}")

    response = HttpResponse(status=202)
    response['HX-Trigger'] = json.dumps({
        'showToast': {
            'message': f'Report cards for {class_obj.name} are being generated.',
            'type': 'info',
        }
    })
    return response


# ============ Traits ============

@login_required
@teacher_or_admin_required
def student_traits(request, student_id):
    """Rate a student's psychomotor and affective traits for the term."""
    student = get_object_or_404(Student.objects.select_related('current_class'), pk=student_id)
    session, term = resolve_scope(request)
    if session is None:
        return HttpResponse("No academic session is configured.", status=400)
    if not can_view_report(request.user, student, student.current_class):
        return HttpResponse("Not authorized", status=403)

    existing = {
        entry.trait: entry
        for entry in StudentTrait.objects.filter(student=student, session=session, term=term)
    }
    initial_scores = {trait: entry.score for trait, entry in existing.items()}

    if request.method == 'GET':
        form = StudentTraitsForm(initial_scores=initial_scores)
    elif request.method == 'POST':
        form = StudentTraitsForm(request.POST, initial_scores=initial_scores)
        if form.is_valid():
            rated = list(form.rated())
            rated_keys = {trait for _, trait, _ in rated}
            for category, trait, score in rated:
                StudentTrait.objects.update_or_create(
                    student=student, session=session, term=term, trait=trait,
                    defaults={'category': category, 'score': score, 'created_by': request.user},
                )
            cleared = [key for key in existing if key not in rated_keys]
            if cleared:
                StudentTrait.objects.filter(
                    student=student, session=session, term=term, trait__in=cleared
                ).delete()
            logger.info(f"Traits saved for {student} ({session}, {term}) by {request.user}: {len(rated)} rated")

            response = HttpResponse(status=204)
            response['HX-Trigger'] = json.dumps({
                'closeModal': True,
                'showToast': {'message': f'Traits saved for {student.full_name}.', 'type': 'success'},
            })
            return response
    else:
        return HttpResponse(status=405)

    return render(request, 'gradebook/includes/modal_traits.html', {
        'student': student,
        'session': session,
        'term': term,
        'term_label': Term(term).label,
        'form': form,
    })
