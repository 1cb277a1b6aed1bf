import logging
from datetime import datetime

from django.contrib.auth.decorators import user_passes_test
from django.shortcuts import render
import pandas as pd

from .choices import Term

logger = logging.getLogger(__name__)


def is_school_admin(user):
    """Check if user is a school admin or superuser."""
    return user.is_superuser or getattr(user, 'is_school_admin', False)


def is_teacher_or_admin(user):
    """Check if user is a teacher, school admin, or superuser."""
    return (user.is_superuser or
            getattr(user, 'is_school_admin', False) or
            getattr(user, 'is_teacher', False))


def admin_required(view_func):
    """Decorator to require school admin or superuser."""
    return user_passes_test(is_school_admin, login_url='accounts:login')(view_func)


def teacher_or_admin_required(view_func):
    """Decorator to require teacher, school admin, or superuser."""
    return user_passes_test(is_teacher_or_admin, login_url='accounts:login')(view_func)


def is_student(user):
    return getattr(user, 'is_student', False)


def is_parent(user):
    return getattr(user, 'is_parent', False)


def student_required(view_func):
    """Decorator for the student results portal."""
    return user_passes_test(is_student, login_url='accounts:login')(view_func)


def parent_required(view_func):
    """Decorator for the parent results portal."""
    return user_passes_test(is_parent, login_url='accounts:login')(view_func)


def htmx_render(request, full_template, partial_template, context=None):
    """Render full template for regular requests, partial for HTMX requests."""
    context = context or {}
    template = partial_template if request.htmx else full_template
    return render(request, template, context)


def get_client_ip(request):
    """Get client IP address from request."""
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def resolve_scope(request):
    """
    Session and term a page should show: explicit ?session=&term= values,
    falling back to the current session and its scheduled term.
    """
    from .models import AcademicSession

    params = request.GET if request.method == 'GET' else request.POST
    session = None
    session_id = params.get('session', '')
    if str(session_id).isdigit():
        session = AcademicSession.objects.filter(pk=session_id).first()
    if session is None:
        session = AcademicSession.get_current()

    term = params.get('term')
    if term not in Term.values:
        term = session.current_term() if session else Term.FIRST
    return session, term


def parse_date(value):
    """Parse date from various formats."""
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    if isinstance(value, datetime):
        return value.date()
    if hasattr(value, 'date') and callable(value.date):
        return value.date()

    value = str(value).strip()
    for fmt in ('%Y-%m-%d', '%d/%m/%Y', '%m/%d/%Y', '%d-%m-%Y'):
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def clean_value(value):
    """Normalise a spreadsheet cell to a stripped string."""
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ''
    return str(value).strip()
