import json
import logging

from django.contrib.auth.decorators import login_required
from django.db import transaction
from django.http import HttpResponse
from django.shortcuts import get_object_or_404, render

from core.models import AcademicSession
from schools.models import School
from .base import admin_required, htmx_render
from ..distributions import ensure_default_distributions
from ..forms import MarkDistributionForm, MarkDistributionComponentFormSet
from ..models import MarkDistribution

logger = logging.getLogger(__name__)


# ============ Mark Distribution CRUD ============

@login_required
@admin_required
def distributions(request):
    """List mark distributions with their components (Admin only)."""
    queryset = MarkDistribution.objects.select_related('session', 'school').prefetch_related('components')

    exam_type = request.GET.get('exam_type', '')
    if exam_type:
        queryset = queryset.filter(exam_type=exam_type)
    session_id = request.GET.get('session', '')
    if session_id.isdigit():
        queryset = queryset.filter(session_id=session_id)

    context = {
        'distributions': queryset,
        'sessions': AcademicSession.objects.all(),
        'schools': School.objects.filter(is_active=True),
        'exam_type': exam_type,
        'session_filter': session_id,
        'breadcrumbs': [
            {'label': 'Home', 'url': '/', 'icon': 'fa-solid fa-home'},
            {'label': 'Gradebook', 'url': '/gradebook/'},
            {'label': 'Mark Distributions'},
        ],
    }
    return htmx_render(
        request,
        'gradebook/distributions.html',
        'gradebook/partials/distributions_content.html',
        context
    )


def _distribution_modal(request, form, formset, distribution=None):
    return render(request, 'gradebook/includes/modal_distribution.html', {
        'form': form,
        'formset': formset,
        'distribution': distribution,
    })


def _saved_response():
    response = HttpResponse(status=204)
    response['HX-Trigger'] = 'closeModal, refreshDistributions'
    return response


@login_required
@admin_required
def distribution_create(request):
    """Create a mark distribution with its components (Admin only)."""
    if request.method == 'GET':
        form = MarkDistributionForm()
        formset = MarkDistributionComponentFormSet(instance=MarkDistribution(), prefix='components')
        return _distribution_modal(request, form, formset)

    if request.method != 'POST':
        return HttpResponse(status=405)

    form = MarkDistributionForm(request.POST)
    formset = MarkDistributionComponentFormSet(request.POST, instance=form.instance, prefix='components')
    if not (form.is_valid() and formset.is_valid()):
        return _distribution_modal(request, form, formset)

    with transaction.atomic():
        distribution = form.save()
        formset.instance = distribution
        formset.save()

    logger.info(f"Mark distribution '{distribution.title}' created by {request.user}")
    return _saved_response()


@login_required
@admin_required
def distribution_edit(request, pk):
    """Edit a mark distribution and its components (Admin only)."""
    distribution = get_object_or_404(MarkDistribution, pk=pk)

    if request.method == 'GET':
        form = MarkDistributionForm(instance=distribution)
        formset = MarkDistributionComponentFormSet(instance=distribution, prefix='components')
        return _distribution_modal(request, form, formset, distribution)

    if request.method != 'POST':
        return HttpResponse(status=405)

    form = MarkDistributionForm(request.POST, instance=distribution)
    formset = MarkDistributionComponentFormSet(request.POST, instance=distribution, prefix='components')
    if not (form.is_valid() and formset.is_valid()):
        return _distribution_modal(request, form, formset, distribution)

    with transaction.atomic():
        form.save()
        formset.save()

    logger.info(f"Mark distribution '{distribution.title}' updated by {request.user}")
    return _saved_response()


@login_required
@admin_required
def distribution_delete(request, pk):
    """Delete a mark distribution (Admin only)."""
    if request.method != 'POST':
        return HttpResponse(status=405)

    distribution = get_object_or_404(MarkDistribution, pk=pk)
    title = distribution.title
    distribution.delete()
    logger.info(f"Mark distribution '{title}' deleted by {request.user}")

    response = HttpResponse(status=204)
    response['HX-Trigger'] = 'refreshDistributions'
    return response


@login_required
@admin_required
def distribution_load_defaults(request):
    """Create the built-in midterm/final distributions for a session (Admin only)."""
    if request.method != 'POST':
        return HttpResponse(status=405)

    session_id = request.POST.get('session', '')
    if not session_id.isdigit():
        return HttpResponse("Select a session.", status=400)
    session = get_object_or_404(AcademicSession, pk=session_id)
    school = None
    school_id = request.POST.get('school', '')
    if school_id.isdigit():
        school = get_object_or_404(School, pk=school_id)

    created = ensure_default_distributions(session, school=school)
    message = (
        f"Created {len(created)} default distribution(s) for {session.name}."
        if created else f"Default distributions already exist for {session.name}."
    )

    response = HttpResponse(status=204)
    response['HX-Trigger'] = json.dumps({
        'refreshDistributions': True,
        'showToast': {'message': message, 'type': 'success'},
    })
    return response
