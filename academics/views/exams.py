"""Exam timetable views."""
import logging

from django.contrib.auth.decorators import login_required
from django.http import HttpResponse
from django.shortcuts import get_object_or_404, render

from core.choices import ExamType, Term
from core.models import AcademicSession
from core.utils import resolve_scope

from ..forms import ExamForm
from ..models import Exam
from .base import admin_required, changed_response, htmx_render, modal_error, refresh_response, teacher_or_admin_required

logger = logging.getLogger(__name__)


@login_required
@teacher_or_admin_required
def exams_list(request):
    """Exams for a session and term, optionally one exam type or class."""
    session, term = resolve_scope(request)
    exams = Exam.objects.select_related('class_assigned', 'subject', 'invigilator').filter(
        session=session, term=term
    )

    exam_type = request.GET.get('exam_type', '')
    if exam_type in ExamType.values:
        exams = exams.filter(exam_type=exam_type)
    class_filter = request.GET.get('class', '')
    if class_filter.isdigit():
        exams = exams.filter(class_assigned_id=class_filter)

    context = {
        'exams': exams,
        'session': session,
        'term': term,
        'exam_type': exam_type,
        'class_filter': class_filter,
        'sessions': AcademicSession.objects.all(),
        'term_choices': Term.choices,
        'exam_type_choices': ExamType.choices,
    }
    return htmx_render(request, 'academics/exams.html', 'academics/partials/exams_content.html', context)


@login_required
@admin_required
def exam_create(request):
    if request.method == 'GET':
        session, term = resolve_scope(request)
        return render(request, 'academics/partials/modal_exam_form.html', {
            'form': ExamForm(initial={'session': session, 'term': term}),
            'is_create': True,
        })
    if request.method != 'POST':
        return HttpResponse(status=405)

    form = ExamForm(request.POST)
    if form.is_valid():
        exam = form.save()
        logger.info(f"Exam {exam} scheduled for {exam.class_assigned} by {request.user}")
        return changed_response(request, 'examChanged', 'academics:exams')

    return modal_error(request, 'academics/partials/modal_exam_form.html', {
        'form': form,
        'is_create': True,
    })


@login_required
@admin_required
def exam_edit(request, pk):
    exam = get_object_or_404(Exam, pk=pk)

    if request.method == 'GET':
        return render(request, 'academics/partials/modal_exam_form.html', {
            'form': ExamForm(instance=exam),
            'exam': exam,
        })
    if request.method != 'POST':
        return HttpResponse(status=405)

    form = ExamForm(request.POST, instance=exam)
    if form.is_valid():
        form.save()
        logger.info(f"Exam {exam} updated by {request.user}")
        return changed_response(request, 'examChanged', 'academics:exams')

    return modal_error(request, 'academics/partials/modal_exam_form.html', {
        'form': form,
        'exam': exam,
    })


@login_required
@admin_required
def exam_delete(request, pk):
    if request.method != 'POST':
        return HttpResponse(status=405)

    exam = get_object_or_404(Exam, pk=pk)
    label = str(exam)
    exam.delete()
    logger.info(f"Exam {label} deleted by {request.user}")
    return refresh_response(request, 'academics:exams')
