import logging

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.db.models import Q
from django.http import HttpResponse
from django.shortcuts import redirect, get_object_or_404

from academics.models import ClassSubject
from core.utils import admin_required, htmx_render
from schools.models import School
from teachers.forms import TeacherForm
from teachers.models import Teacher

logger = logging.getLogger(__name__)


@login_required
@admin_required
def index(request):
    """Teacher list page with search and filter."""
    teachers = Teacher.objects.select_related('user', 'school').order_by('first_name')

    # Search
    search = request.GET.get('search', '').strip()
    if search:
        teachers = teachers.filter(
            Q(first_name__icontains=search) |
            Q(last_name__icontains=search) |
            Q(teacher_code__icontains=search) |
            Q(email__icontains=search)
        )

    # Filter by status
    status_filter = request.GET.get('status', '')
    if status_filter:
        teachers = teachers.filter(status=status_filter)

    school_filter = request.GET.get('school', '')
    if school_filter.isdigit():
        teachers = teachers.filter(school_id=school_filter)

    context = {
        'teachers': teachers,
        'status_choices': Teacher.Status.choices,
        'schools': School.objects.filter(is_active=True),
        'search': search,
        'status_filter': status_filter,
        'school_filter': school_filter,
    }

    return htmx_render(
        request,
        'teachers/index.html',
        'teachers/partials/index_content.html',
        context
    )


@login_required
@admin_required
def teacher_create(request):
    """Create a new teacher."""
    if request.method == 'GET':
        form = TeacherForm()
        return htmx_render(
            request,
            'teachers/teacher_form.html',
            'teachers/partials/teacher_form_content.html',
            {'form': form}
        )

    if request.method != 'POST':
        return HttpResponse(status=405)

    form = TeacherForm(request.POST, request.FILES)
    if form.is_valid():
        teacher = form.save()
        logger.info(f"Teacher {teacher.teacher_code} created by {request.user}")
        messages.success(request, f"Teacher {teacher.full_name} created successfully.")
        return redirect('teachers:teacher_detail', pk=teacher.pk)

    return htmx_render(
        request,
        'teachers/teacher_form.html',
        'teachers/partials/teacher_form_content.html',
        {'form': form}
    )


@login_required
@admin_required
def teacher_edit(request, pk):
    """Edit an existing teacher."""
    teacher = get_object_or_404(Teacher, pk=pk)

    if request.method == 'GET':
        form = TeacherForm(instance=teacher)
        return htmx_render(
            request,
            'teachers/teacher_form.html',
            'teachers/partials/teacher_form_content.html',
            {'form': form, 'teacher': teacher}
        )

    if request.method != 'POST':
        return HttpResponse(status=405)

    form = TeacherForm(request.POST, request.FILES, instance=teacher)
    if form.is_valid():
        form.save()
        messages.success(request, "Teacher details updated.")
        return redirect('teachers:teacher_detail', pk=teacher.pk)

    return htmx_render(
        request,
        'teachers/teacher_form.html',
        'teachers/partials/teacher_form_content.html',
        {'form': form, 'teacher': teacher}
    )


@login_required
@admin_required
def teacher_detail(request, pk):
    """View teacher details with form classes and subject allocations."""
    teacher = get_object_or_404(Teacher.objects.select_related('user', 'school'), pk=pk)
    allocations = ClassSubject.objects.filter(
        teacher=teacher
    ).select_related('class_assigned', 'subject').order_by('class_assigned__name', 'subject__name')

    return htmx_render(
        request,
        'teachers/teacher_detail.html',
        'teachers/partials/teacher_detail_content.html',
        {
            'teacher': teacher,
            'form_classes': teacher.form_classes.filter(is_active=True),
            'allocations': allocations,
        }
    )


@login_required
@admin_required
def teacher_delete(request, pk):
    """Delete a teacher."""
    if request.method != 'POST':
        return HttpResponse(status=405)

    teacher = get_object_or_404(Teacher, pk=pk)
    code = teacher.teacher_code
    teacher.delete()
    logger.info(f"Teacher {code} deleted by {request.user}")

    if request.htmx:
        response = HttpResponse(status=200)
        response['HX-Refresh'] = 'true'
        return response
    return redirect('teachers:index')
