import json
import logging
from urllib.parse import urlencode

from django.contrib.auth.decorators import login_required
from django.core.exceptions import ValidationError
from django.http import HttpResponse
from django.shortcuts import get_object_or_404, redirect, render
from django.urls import reverse

from academics.models import Class, Subject
from core.choices import ExamType, Term
from core.models import AcademicSession
from students.models import Student
from .base import (
    teacher_or_admin_required, htmx_render, is_school_admin,
    can_edit_scores, check_score_access, get_client_ip,
    get_teacher_classes, get_teacher_subjects, resolve_scope,
)
from ..grading import grade_for_record
from ..models import ResultLock, ScoreAuditLog, ScoreRecord
from ..results import save_score_sheet, scores_from_post, template_for

logger = logging.getLogger(__name__)


def requested_exam_type(request):
    params = request.GET if request.method == 'GET' else request.POST
    exam_type = params.get('exam_type', ExamType.FINAL)
    return exam_type if exam_type in ExamType.values else None


def class_students(class_obj):
    return list(Student.objects.filter(
        current_class=class_obj,
        status=Student.Status.ACTIVE
    ).only(
        'id', 'first_name', 'last_name', 'other_names', 'admission_number'
    ).order_by('last_name', 'first_name'))


def _score_sheet_context(request, class_obj, subject, session, term, exam_type, errors=None):
    """
    Rows for the score sheet: one per active student, with the stored score
    of every template component pre-filled.
    """
    template = template_for(class_obj, session, term, exam_type)
    students = class_students(class_obj)
    records = {
        record.student_id: record
        for record in ScoreRecord.objects.filter(
            class_assigned=class_obj, subject=subject, session=session,
            term=term, exam_type=exam_type,
        )
    }

    rows = []
    for student in students:
        record = records.get(student.pk)
        stored = {c.get('id'): c.get('score') for c in (record.components if record else [])}
        if request.method == 'POST':
            submitted = {
                component['id']: request.POST.get(f"score_{student.pk}_{component['id']}", '')
                for component in template['components']
            }
        else:
            submitted = stored
        rows.append({
            'student': student,
            'record': record,
            'grade': grade_for_record(exam_type, record.total_score, record.percentage) if record else None,
            'scores': [
                {
                    'component': component,
                    'name': f"score_{student.pk}_{component['id']}",
                    'value': submitted.get(component['id'], ''),
                }
                for component in template['components']
            ],
        })

    lock = ResultLock.for_scope(class_obj, session, term, exam_type)
    can_edit = can_edit_scores(request.user, class_obj, subject)
    return {
        'class_obj': class_obj,
        'subject': subject,
        'session': session,
        'term': term,
        'term_label': Term(term).label,
        'exam_type': exam_type,
        'exam_type_label': ExamType(exam_type).label,
        'template': template,
        'total_weight': sum(c['weight'] for c in template['components']),
        'rows': rows,
        'lock': lock,
        'can_edit': can_edit,
        'editing_allowed': can_edit and (lock is None or lock.allows(request.user)),
        'errors': errors or [],
        'breadcrumbs': [
            {'label': 'Home', 'url': '/', 'icon': 'fa-solid fa-home'},
            {'label': 'Gradebook', 'url': '/gradebook/'},
            {'label': 'Score Entry', 'url': reverse('gradebook:score_entry')},
            {'label': f'{class_obj.name} - {subject.name}'},
        ],
    }


# ============ Score Entry ============

@login_required
@teacher_or_admin_required
def score_entry(request):
    """Score entry page - select class, subject, exam type and term."""
    session, term = resolve_scope(request)
    classes = get_teacher_classes(request.user).order_by('grade', 'name')

    class_id = request.GET.get('class', '')
    selected_class = classes.filter(pk=class_id).first() if class_id.isdigit() else None
    subjects = get_teacher_subjects(request.user, selected_class) if selected_class else Subject.objects.none()

    context = {
        'session': session,
        'term': term,
        'sessions': AcademicSession.objects.all(),
        'term_choices': Term.choices,
        'exam_types': ExamType.choices,
        'classes': classes,
        'selected_class': selected_class,
        'subjects': subjects,
        'is_admin': is_school_admin(request.user),
        'breadcrumbs': [
            {'label': 'Home', 'url': '/', 'icon': 'fa-solid fa-home'},
            {'label': 'Gradebook', 'url': '/gradebook/'},
            {'label': 'Score Entry'},
        ],
    }

    return htmx_render(
        request,
        'gradebook/score_entry.html',
        'gradebook/partials/score_entry_content.html',
        context
    )


@login_required
@teacher_or_admin_required
def score_sheet(request, class_id, subject_id):
    """
    Score sheet for one class/subject/exam.

    GET shows every active student with the template's components. POST
    aligns the submitted scores with the mark distribution and saves one
    record per student; refused (403) for unassigned teachers and locked
    results.
    """
    class_obj = get_object_or_404(Class, pk=class_id)
    subject = get_object_or_404(Subject, pk=subject_id)
    session, term = resolve_scope(request)
    exam_type = requested_exam_type(request)

    if session is None:
        return HttpResponse("No academic session is configured.", status=400)
    if exam_type is None:
        return HttpResponse("Unknown exam type.", status=400)

    if request.method == 'GET':
        if not can_edit_scores(request.user, class_obj, subject):
            return HttpResponse("Not authorized", status=403)
        return htmx_render(
            request,
            'gradebook/score_sheet.html',
            'gradebook/partials/score_sheet_content.html',
            _score_sheet_context(request, class_obj, subject, session, term, exam_type)
        )

    if request.method != 'POST':
        return HttpResponse(status=405)

    refusal = check_score_access(request.user, class_obj, subject, session, term, exam_type)
    if refusal is not None:
        return refusal

    students = class_students(class_obj)
    template = template_for(class_obj, session, term, exam_type)
    try:
        entries = scores_from_post(request.POST, students, template)
    except ValidationError as e:
        context = _score_sheet_context(request, class_obj, subject, session, term, exam_type, errors=e.messages)
        return render(request, 'gradebook/partials/score_sheet_content.html', context, status=400)

    saved = save_score_sheet(
        class_obj, subject, session, term, exam_type, students, entries,
        user=request.user, ip_address=get_client_ip(request),
    )

    if request.htmx:
        response = HttpResponse(status=204)
        response['HX-Trigger'] = json.dumps({
            'refreshScores': True,
            'showToast': {'message': f'Saved scores for {len(saved)} student(s).', 'type': 'success'},
        })
        return response

    query = urlencode({'session': session.pk, 'term': term, 'exam_type': exam_type})
    return redirect(f"{reverse('gradebook:score_sheet', args=[class_obj.pk, subject.pk])}?{query}")


@login_required
@teacher_or_admin_required
def score_audit_history(request, record_id):
    """Change history of one score record."""
    record = get_object_or_404(
        ScoreRecord.objects.select_related('student', 'subject', 'class_assigned'),
        pk=record_id
    )
    if not can_edit_scores(request.user, record.class_assigned, record.subject):
        return HttpResponse("Not authorized", status=403)

    logs = ScoreAuditLog.objects.filter(score_record=record).select_related('user')[:50]
    return render(request, 'gradebook/partials/score_audit.html', {
        'record': record,
        'logs': logs,
    })
