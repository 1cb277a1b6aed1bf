"""Class management views including CRUD, detail and subject allocation."""
import logging

from django.contrib.auth.decorators import login_required
from django.db.models import Count, Q
from django.http import HttpResponse
from django.shortcuts import get_object_or_404, render

from students.models import Student

from ..forms import ClassForm, ClassSubjectForm
from ..models import Class, ClassSubject
from .base import admin_required, changed_response, htmx_render, modal_error, refresh_response, teacher_or_admin_required

logger = logging.getLogger(__name__)


@login_required
@admin_required
def classes_list(request):
    """Classes list page with search and school filter."""
    search = request.GET.get('search', '').strip()
    school_filter = request.GET.get('school', '')

    classes = Class.objects.select_related('form_teacher', 'school').annotate(
        active_students=Count('students', filter=Q(students__status=Student.Status.ACTIVE))
    ).order_by('grade', 'name')

    if search:
        classes = classes.filter(
            Q(name__icontains=search) |
            Q(code__icontains=search) |
            Q(form_teacher__first_name__icontains=search) |
            Q(form_teacher__last_name__icontains=search)
        )
    if school_filter.isdigit():
        classes = classes.filter(school_id=school_filter)

    context = {
        'classes': classes,
        'search': search,
        'school_filter': school_filter,
        'form': ClassForm(),
    }
    return htmx_render(request, 'academics/classes.html', 'academics/partials/classes_content.html', context)


@login_required
@admin_required
def class_create(request):
    """Create a new class."""
    if request.method == 'GET':
        return render(request, 'academics/partials/modal_class_form.html', {
            'form': ClassForm(),
            'is_create': True,
        })
    if request.method != 'POST':
        return HttpResponse(status=405)

    form = ClassForm(request.POST)
    if form.is_valid():
        class_obj = form.save()
        logger.info(f"Class {class_obj.name} created by {request.user}")
        return changed_response(request, 'classChanged', 'academics:classes')

    return modal_error(request, 'academics/partials/modal_class_form.html', {
        'form': form,
        'is_create': True,
    })


@login_required
@admin_required
def class_edit(request, pk):
    """Edit a class (HTMX modal endpoint)."""
    class_obj = get_object_or_404(Class, pk=pk)

    if request.method == 'GET':
        return render(request, 'academics/partials/modal_class_form.html', {
            'form': ClassForm(instance=class_obj),
            'class': class_obj,
        })
    if request.method != 'POST':
        return HttpResponse(status=405)

    form = ClassForm(request.POST, instance=class_obj)
    if form.is_valid():
        form.save()
        logger.info(f"Class {class_obj.name} updated by {request.user}")
        return changed_response(request, 'classChanged', 'academics:classes')

    return modal_error(request, 'academics/partials/modal_class_form.html', {
        'form': form,
        'class': class_obj,
    })


@login_required
@admin_required
def class_delete(request, pk):
    if request.method != 'POST':
        return HttpResponse(status=405)

    class_obj = get_object_or_404(Class, pk=pk)
    if class_obj.students.exists():
        # Students hold a protected reference to their class
        return HttpResponse("Move or remove the students in this class first.", status=409)

    name = class_obj.name
    class_obj.delete()
    logger.info(f"Class {name} deleted by {request.user}")
    return refresh_response(request, 'academics:classes')


@login_required
@teacher_or_admin_required
def class_detail(request, pk):
    """Class roster and its subject allocations."""
    class_obj = get_object_or_404(Class.objects.select_related('form_teacher', 'school'), pk=pk)
    students = class_obj.students.filter(status=Student.Status.ACTIVE).order_by('last_name', 'first_name')
    allocations = class_obj.subjects.select_related('subject', 'teacher').order_by('subject__name')

    context = {
        'class': class_obj,
        'students': students,
        'allocations': allocations,
        'recent_registers': class_obj.attendance_sessions.all()[:5],
        'breadcrumbs': [
            {'label': 'Classes', 'url': 'academics:classes'},
            {'label': class_obj.name},
        ],
    }
    return htmx_render(request, 'academics/class_detail.html', 'academics/partials/class_detail_content.html', context)


# ============ Subject allocation ============

@login_required
@admin_required
def class_subject_create(request, pk):
    """Allocate a subject and its teacher to a class."""
    class_obj = get_object_or_404(Class, pk=pk)

    if request.method == 'GET':
        return render(request, 'academics/partials/modal_class_subject_form.html', {
            'form': ClassSubjectForm(class_obj=class_obj),
            'class': class_obj,
            'is_create': True,
        })
    if request.method != 'POST':
        return HttpResponse(status=405)

    form = ClassSubjectForm(request.POST, class_obj=class_obj)
    if form.is_valid():
        allocation = form.save()
        logger.info(f"{allocation} allocated to {allocation.teacher or 'no teacher'} by {request.user}")
        return changed_response(request, 'allocationChanged', 'academics:class_detail', class_obj.pk)

    return modal_error(request, 'academics/partials/modal_class_subject_form.html', {
        'form': form,
        'class': class_obj,
        'is_create': True,
    })


@login_required
@admin_required
def class_subject_edit(request, class_pk, pk):
    """Change the teacher of a subject allocation."""
    allocation = get_object_or_404(ClassSubject, pk=pk, class_assigned_id=class_pk)
    class_obj = allocation.class_assigned

    if request.method == 'GET':
        return render(request, 'academics/partials/modal_class_subject_form.html', {
            'form': ClassSubjectForm(instance=allocation, class_obj=class_obj),
            'class': class_obj,
            'allocation': allocation,
        })
    if request.method != 'POST':
        return HttpResponse(status=405)

    form = ClassSubjectForm(request.POST, instance=allocation, class_obj=class_obj)
    if form.is_valid():
        form.save()
        logger.info(f"Allocation {allocation} updated by {request.user}")
        return changed_response(request, 'allocationChanged', 'academics:class_detail', class_obj.pk)

    return modal_error(request, 'academics/partials/modal_class_subject_form.html', {
        'form': form,
        'class': class_obj,
        'allocation': allocation,
    })


@login_required
@admin_required
def class_subject_delete(request, class_pk, pk):
    if request.method != 'POST':
        return HttpResponse(status=405)

    allocation = get_object_or_404(ClassSubject, pk=pk, class_assigned_id=class_pk)
    label = str(allocation)
    allocation.delete()
    logger.info(f"Allocation {label} removed by {request.user}")
    return refresh_response(request, 'academics:class_detail', class_pk)
