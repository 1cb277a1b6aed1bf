import json
import logging

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.db.models import Count, Q
from django.http import HttpResponse
from django.shortcuts import get_object_or_404, redirect, render

from core.utils import admin_required, htmx_render
from students.forms import GuardianForm, StudentGuardianForm
from students.models import Guardian, StudentGuardian

logger = logging.getLogger(__name__)


@login_required
@admin_required
def guardian_index(request):
    """Guardian list page with search."""
    guardians = Guardian.objects.select_related('school', 'user').annotate(ward_count=Count('students'))

    search = request.GET.get('search', '').strip()
    if search:
        guardians = guardians.filter(
            Q(full_name__icontains=search) |
            Q(phone_number__icontains=search) |
            Q(email__icontains=search)
        )

    context = {
        'guardians': guardians,
        'search': search,
        'breadcrumbs': [
            {'label': 'Students', 'url': 'students:index'},
            {'label': 'Guardians'},
        ],
    }
    return htmx_render(
        request,
        'students/guardian_index.html',
        'students/partials/guardian_index_content.html',
        context
    )


def _guardian_form(request, form, guardian=None, status=200):
    return render(request, 'students/partials/modal_guardian_form.html', {
        'form': form,
        'guardian': guardian,
    }, status=status)


@login_required
@admin_required
def guardian_create(request):
    """Create a new guardian from the modal form."""
    if request.method == 'GET':
        return _guardian_form(request, GuardianForm())

    if request.method != 'POST':
        return HttpResponse(status=405)

    form = GuardianForm(request.POST)
    if not form.is_valid():
        return _guardian_form(request, form, status=422)

    guardian = form.save()
    logger.info(f"Guardian {guardian.pk} created by {request.user}")
    if request.htmx:
        response = HttpResponse(status=204)
        response['HX-Trigger'] = json.dumps({
            'closeModal': True,
            'guardianCreated': {'id': guardian.pk, 'text': str(guardian)},
        })
        return response
    return redirect('students:guardian_detail', pk=guardian.pk)


@login_required
@admin_required
def guardian_edit(request, pk):
    guardian = get_object_or_404(Guardian, pk=pk)
    if request.method == 'GET':
        return _guardian_form(request, GuardianForm(instance=guardian), guardian)

    if request.method != 'POST':
        return HttpResponse(status=405)

    form = GuardianForm(request.POST, instance=guardian)
    if not form.is_valid():
        return _guardian_form(request, form, guardian, status=422)

    form.save()
    logger.info(f"Guardian {guardian.pk} updated by {request.user}")
    if request.htmx:
        response = HttpResponse(status=204)
        response['HX-Refresh'] = 'true'
        return response
    return redirect('students:guardian_detail', pk=guardian.pk)


@login_required
@admin_required
def guardian_delete(request, pk):
    """Delete a guardian; refused while students are still linked."""
    if request.method != 'POST':
        return HttpResponse(status=405)

    guardian = get_object_or_404(Guardian, pk=pk)
    if guardian.students.exists():
        messages.error(request, "Cannot delete guardian with associated students.")
        return redirect('students:guardian_detail', pk=guardian.pk)

    guardian.delete()
    logger.info(f"Guardian {pk} deleted by {request.user}")

    if request.htmx:
        response = HttpResponse(status=200)
        response['HX-Refresh'] = 'true'
        return response
    return redirect('students:guardian_index')


@login_required
@admin_required
def guardian_detail(request, pk):
    """A guardian's contact details, linked students and the form to link another."""
    guardian = get_object_or_404(Guardian.objects.select_related('school', 'user'), pk=pk)
    context = {
        'guardian': guardian,
        'links': guardian.student_links.select_related('student__current_class'),
        'link_form': StudentGuardianForm(guardian=guardian),
        'breadcrumbs': [
            {'label': 'Guardians', 'url': 'students:guardian_index'},
            {'label': guardian.full_name},
        ],
    }
    return htmx_render(
        request,
        'students/guardian_detail.html',
        'students/partials/guardian_detail_content.html',
        context
    )


@login_required
@admin_required
def guardian_link(request, pk):
    """Link a student to a guardian."""
    if request.method != 'POST':
        return HttpResponse(status=405)

    guardian = get_object_or_404(Guardian, pk=pk)
    form = StudentGuardianForm(request.POST, guardian=guardian)
    if not form.is_valid():
        return render(request, 'students/partials/guardian_link_form.html', {
            'guardian': guardian,
            'link_form': form,
        }, status=422)

    link = form.save()
    logger.info(f"Student {link.student.admission_number} linked to guardian {guardian.pk} by {request.user}")
    if request.htmx:
        response = HttpResponse(status=200)
        response['HX-Refresh'] = 'true'
        return response
    return redirect('students:guardian_detail', pk=guardian.pk)


@login_required
@admin_required
def guardian_unlink(request, pk, link_id):
    if request.method != 'POST':
        return HttpResponse(status=405)

    link = get_object_or_404(StudentGuardian.objects.select_related('student'), pk=link_id, guardian_id=pk)
    admission_number = link.student.admission_number
    link.delete()
    logger.info(f"Student {admission_number} unlinked from guardian {pk} by {request.user}")

    if request.htmx:
        response = HttpResponse(status=200)
        response['HX-Refresh'] = 'true'
        return response
    return redirect('students:guardian_detail', pk=pk)
