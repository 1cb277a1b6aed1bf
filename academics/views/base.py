"""Shared helpers for academics views."""
from django.http import HttpResponse
from django.shortcuts import redirect, render

from core.utils import (  # noqa: F401
    admin_required,
    htmx_render,
    is_school_admin,
    teacher_or_admin_required,
)


def changed_response(request, event, fallback, *args):
    """204 with an HX-Trigger for htmx; a redirect otherwise."""
    if request.htmx:
        response = HttpResponse(status=204)
        response['HX-Trigger'] = f'closeModal, {event}'
        return response
    return redirect(fallback, *args)


def modal_error(request, template, context):
    # 422 keeps modal open
    response = render(request, template, context)
    response.status_code = 422
    return response


def refresh_response(request, fallback, *args):
    if request.htmx:
        response = HttpResponse(status=200)
        response['HX-Refresh'] = 'true'
        return response
    return redirect(fallback, *args)
