import json
import logging

from django.http import HttpResponse

from academics.models import Class, ClassSubject, Subject
from core.utils import (  # noqa: F401  re-exported for the gradebook views
    admin_required, teacher_or_admin_required, htmx_render,
    is_school_admin, is_teacher_or_admin, get_client_ip, resolve_scope,
)
from ..models import ResultLock

logger = logging.getLogger(__name__)


def can_edit_scores(user, class_obj, subject):
    """
    Check if a user can edit scores for a specific class/subject.

    Returns True if:
    - User is superuser or school admin
    - User is the teacher assigned to this subject for this class
    """
    # Admins can always edit
    if is_school_admin(user):
        return True

    teacher = getattr(user, 'teacher_profile', None)
    if teacher is None:
        return False

    return ClassSubject.objects.filter(
        class_assigned=class_obj,
        subject=subject,
        teacher=teacher
    ).exists()


def get_teacher_subjects(user, class_obj):
    """
    Get subjects a teacher can edit for a specific class.

    Returns all subjects if admin, otherwise only assigned subjects.
    """
    if is_school_admin(user):
        return Subject.objects.filter(
            class_allocations__class_assigned=class_obj
        ).distinct()

    teacher = getattr(user, 'teacher_profile', None)
    if teacher is None:
        return Subject.objects.none()

    return Subject.objects.filter(
        class_allocations__class_assigned=class_obj,
        class_allocations__teacher=teacher
    ).distinct()


def get_teacher_classes(user):
    """Active classes visible to the user: all for admins, allocated ones for teachers."""
    classes = Class.objects.filter(is_active=True).select_related('school')
    if is_school_admin(user):
        return classes

    teacher = getattr(user, 'teacher_profile', None)
    if teacher is None:
        return Class.objects.none()

    class_ids = ClassSubject.objects.filter(
        teacher=teacher
    ).values_list('class_assigned_id', flat=True)
    return classes.filter(pk__in=class_ids)


def locked_response(lock):
    """403 with an explanation when a result lock refuses an edit."""
    logger.warning(f"Edit refused by result lock: {lock}")
    message = f"Results are locked for {lock.class_assigned} ({lock.get_term_display()}, {lock.get_exam_type_display()})."
    response = HttpResponse(message, status=403)
    response['HX-Trigger'] = json.dumps({'showToast': {'message': message, 'type': 'error'}})
    return response


def check_score_access(user, class_obj, subject, session, term, exam_type):
    """
    None when the user may edit this score sheet, otherwise the refusal
    response (not assigned, or locked).
    """
    if not can_edit_scores(user, class_obj, subject):
        logger.warning(f"User {user} denied score access to {class_obj} / {subject}")
        return HttpResponse("Not authorized", status=403)

    lock = ResultLock.for_scope(class_obj, session, term, exam_type)
    if lock is not None and not lock.allows(user):
        return locked_response(lock)
    return None
