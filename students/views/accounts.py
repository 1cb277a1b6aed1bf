import logging
from smtplib import SMTPException

from django.conf import settings
from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.core.mail import send_mail
from django.db import transaction
from django.http import HttpResponse
from django.shortcuts import get_object_or_404, render

from accounts.models import User
from core.utils import admin_required
from students.models import Guardian, Student
from teachers.views.accounts import generate_temp_password

logger = logging.getLogger(__name__)


def send_portal_credentials(user, password, name, role):
    """Email login details for the results portal. Returns False when sending fails."""
    subject = f"Your {role} Results Portal Account"
    message = f"""
Dear {name},

An account for the school results portal has been created for you.

Login Details:
Email: {user.email}
Temporary Password: {password}

Please log in and change your password immediately.

This is an automated message. Please do not reply.
"""
    try:
        send_mail(subject, message, settings.DEFAULT_FROM_EMAIL, [user.email], fail_silently=False)
        return True
    except SMTPException as e:
        logger.error(f"Failed to send {role.lower()} credentials email: {e}")
        return False
    except OSError as e:
        logger.error(f"Network error sending {role.lower()} credentials: {e}")
        return False


def _refresh():
    response = HttpResponse(status=204)
    response['HX-Refresh'] = 'true'
    return response


def _account_modal(request, owner, action_url, default_email, email=None, error=None):
    return render(request, 'students/partials/modal_create_account.html', {
        'owner': owner,
        'action_url': action_url,
        'email': email or default_email,
        'error': error,
    })


def _create_account(request, owner, role, default_email, create_user, first_name, last_name):
    """Shared GET/POST handling; `create_user` is the User manager method for the role."""
    action_url = request.path
    if owner.user:
        messages.warning(request, f"{owner} already has an account.")
        return _refresh()

    if request.method == 'GET':
        return _account_modal(request, owner, action_url, default_email)

    if request.method != 'POST':
        return HttpResponse(status=405)

    email = request.POST.get('email', '').strip() or default_email
    if not email:
        return _account_modal(request, owner, action_url, default_email, error='An email address is required.')
    if User.objects.filter(email__iexact=email).exists():
        return _account_modal(
            request, owner, action_url, default_email, email=email,
            error='A user with this email already exists.',
        )

    password = generate_temp_password()
    with transaction.atomic():
        user = create_user(
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            must_change_password=True,
        )
        owner.user = user
        owner.save(update_fields=['user'])

    logger.info(f"{role} account created for {owner.pk} by {request.user}")
    if send_portal_credentials(user, password, owner.full_name, role):
        messages.success(request, f"Account created. Credentials sent to {email}.")
    else:
        messages.warning(request, f"Account created, but the email failed. Temporary password: {password}")
    return _refresh()


@login_required
@admin_required
def student_create_account(request, pk):
    """Create a portal login for a student so they can see their own results."""
    student = get_object_or_404(Student, pk=pk)
    return _create_account(
        request, student, 'Student', '', User.objects.create_student,
        student.first_name, student.last_name,
    )


@login_required
@admin_required
def guardian_create_account(request, pk):
    """Create a portal login for a guardian to follow their wards' results."""
    guardian = get_object_or_404(Guardian, pk=pk)
    first_name, _, last_name = guardian.full_name.partition(' ')
    return _create_account(
        request, guardian, 'Parent', guardian.email, User.objects.create_parent,
        first_name, last_name,
    )
