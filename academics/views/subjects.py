import logging

from django.contrib.auth.decorators import login_required
from django.db.models import Count, Q
from django.http import HttpResponse
from django.shortcuts import get_object_or_404, render

from ..forms import SubjectForm
from ..models import Subject
from .base import admin_required, changed_response, htmx_render, modal_error, refresh_response

logger = logging.getLogger(__name__)


@login_required
@admin_required
def subjects_list(request):
    search = request.GET.get('search', '').strip()
    subjects = Subject.objects.annotate(class_count=Count('class_allocations'))
    if search:
        subjects = subjects.filter(Q(name__icontains=search) | Q(code__icontains=search))

    return htmx_render(request, 'academics/subjects.html', 'academics/partials/subjects_content.html', {
        'subjects': subjects,
        'search': search,
    })


@login_required
@admin_required
def subject_create(request):
    if request.method == 'GET':
        return render(request, 'academics/partials/modal_subject_form.html', {
            'form': SubjectForm(),
            'is_create': True,
        })
    if request.method != 'POST':
        return HttpResponse(status=405)

    form = SubjectForm(request.POST)
    if form.is_valid():
        subject = form.save()
        logger.info(f"Subject {subject.code} created by {request.user}")
        return changed_response(request, 'subjectChanged', 'academics:subjects')

    return modal_error(request, 'academics/partials/modal_subject_form.html', {
        'form': form,
        'is_create': True,
    })


@login_required
@admin_required
def subject_edit(request, pk):
    subject = get_object_or_404(Subject, pk=pk)

    if request.method == 'GET':
        return render(request, 'academics/partials/modal_subject_form.html', {
            'form': SubjectForm(instance=subject),
            'subject': subject,
        })
    if request.method != 'POST':
        return HttpResponse(status=405)

    form = SubjectForm(request.POST, instance=subject)
    if form.is_valid():
        form.save()
        logger.info(f"Subject {subject.code} updated by {request.user}")
        return changed_response(request, 'subjectChanged', 'academics:subjects')

    return modal_error(request, 'academics/partials/modal_subject_form.html', {
        'form': form,
        'subject': subject,
    })


@login_required
@admin_required
def subject_delete(request, pk):
    if request.method != 'POST':
        return HttpResponse(status=405)

    subject = get_object_or_404(Subject, pk=pk)
    code = subject.code
    subject.delete()
    logger.info(f"Subject {code} deleted by {request.user}")
    return refresh_response(request, 'academics:subjects')
