import logging

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.db.models import Count, Q
from django.http import HttpResponse
from django.shortcuts import get_object_or_404, redirect, render

from core.utils import admin_required, htmx_render
from schools.forms import SchoolForm
from schools.models import School

logger = logging.getLogger(__name__)


@login_required
@admin_required
def index(request):
    """School list with search."""
    schools = School.objects.annotate(
        class_count=Count('classes', distinct=True),
        student_count=Count('students', filter=Q(students__status='active'), distinct=True),
        teacher_count=Count('teachers', distinct=True),
    ).order_by('name')

    search = request.GET.get('search', '').strip()
    if search:
        schools = schools.filter(
            Q(name__icontains=search) |
            Q(code__icontains=search) |
            Q(city__icontains=search)
        )

    return htmx_render(
        request,
        'schools/index.html',
        'schools/partials/index_content.html',
        {'schools': schools, 'search': search, 'form': SchoolForm()}
    )


def _form_error(request, form, school=None):
    # 422 keeps the modal open
    response = render(request, 'schools/partials/modal_school_form.html', {
        'form': form,
        'school': school,
        'is_create': school is None,
    })
    response.status_code = 422
    return response


def _changed(request):
    if request.htmx:
        response = HttpResponse(status=204)
        response['HX-Trigger'] = 'closeModal, schoolChanged'
        return response
    return redirect('schools:index')


@login_required
@admin_required
def school_create(request):
    if request.method == 'GET':
        return render(request, 'schools/partials/modal_school_form.html', {
            'form': SchoolForm(),
            'is_create': True,
        })

    if request.method != 'POST':
        return HttpResponse(status=405)

    form = SchoolForm(request.POST, request.FILES)
    if not form.is_valid():
        return _form_error(request, form)

    school = form.save()
    logger.info(f"School {school.code} created by {request.user}")
    messages.success(request, f"School {school.name} created.")
    return _changed(request)


@login_required
@admin_required
def school_edit(request, pk):
    school = get_object_or_404(School, pk=pk)

    if request.method == 'GET':
        return render(request, 'schools/partials/modal_school_form.html', {
            'form': SchoolForm(instance=school),
            'school': school,
        })

    if request.method != 'POST':
        return HttpResponse(status=405)

    form = SchoolForm(request.POST, request.FILES, instance=school)
    if not form.is_valid():
        return _form_error(request, form, school)

    form.save()
    logger.info(f"School {school.code} updated by {request.user}")
    return _changed(request)


@login_required
@admin_required
def school_detail(request, pk):
    """A school's classes, teachers and the sessions it runs."""
    school = get_object_or_404(School, pk=pk)
    classes = school.classes.filter(is_active=True).annotate(
        active_students=Count('students', filter=Q(students__status='active'))
    ).select_related('form_teacher')

    context = {
        'school': school,
        'classes': classes,
        'teachers': school.teachers.filter(status='active'),
        'sessions': school.sessions.all(),
        'student_count': school.students.filter(status='active').count(),
    }
    return htmx_render(
        request,
        'schools/school_detail.html',
        'schools/partials/school_detail_content.html',
        context
    )


@login_required
@admin_required
def school_delete(request, pk):
    if request.method != 'POST':
        return HttpResponse(status=405)

    school = get_object_or_404(School, pk=pk)
    code = school.code
    school.delete()
    logger.info(f"School {code} deleted by {request.user}")

    if request.htmx:
        response = HttpResponse(status=200)
        response['HX-Refresh'] = 'true'
        return response
    return redirect('schools:index')
