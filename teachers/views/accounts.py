import logging
import secrets
import string
from smtplib import SMTPException

from django.conf import settings
from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.core.mail import send_mail
from django.db import transaction
from django.http import HttpResponse
from django.shortcuts import render, get_object_or_404

from accounts.models import User
from core.utils import admin_required
from teachers.models import Teacher

logger = logging.getLogger(__name__)


def generate_temp_password(length=10):
    """Generate a random temporary password."""
    chars = string.ascii_letters + string.digits
    return ''.join(secrets.choice(chars) for _ in range(length))


def send_account_credentials(user, password, teacher):
    """Send account credentials via email."""
    subject = "Your Teacher Account Has Been Created"
    message = f"""
Dear {teacher.full_name},

Your account for the school results system has been created.

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
        logger.error(f"Failed to send teacher credentials email: {e}")
        return False
    except OSError as e:
        logger.error(f"Network error sending teacher credentials: {e}")
        return False


def _refresh():
    response = HttpResponse(status=204)
    response['HX-Refresh'] = 'true'
    return response


@login_required
@admin_required
def create_account(request, pk):
    """Create a login for a teacher; they must change the password on first login."""
    teacher = get_object_or_404(Teacher, pk=pk)

    if teacher.user:
        messages.warning(request, f"{teacher.full_name} already has an account.")
        return _refresh()

    if request.method == 'GET':
        return render(request, 'teachers/partials/modal_create_account.html', {
            'teacher': teacher,
        })

    if request.method != 'POST':
        return HttpResponse(status=405)

    email = request.POST.get('email', '').strip() or teacher.email
    if not email:
        return render(request, 'teachers/partials/modal_create_account.html', {
            'teacher': teacher,
            'error': 'An email address is required.',
        })
    if User.objects.filter(email__iexact=email).exists():
        return render(request, 'teachers/partials/modal_create_account.html', {
            'teacher': teacher,
            'email': email,
            'error': 'A user with this email already exists.',
        })

    password = generate_temp_password()
    with transaction.atomic():
        user = User.objects.create_teacher(
            email=email,
            password=password,
            first_name=teacher.first_name,
            last_name=teacher.last_name,
            must_change_password=True,
        )
        teacher.user = user
        teacher.save(update_fields=['user'])

    logger.info(f"Account created for teacher {teacher.teacher_code} by {request.user}")
    if send_account_credentials(user, password, teacher):
        messages.success(request, f"Account created. Credentials sent to {email}.")
    else:
        messages.warning(request, f"Account created, but the email failed. Temporary password: {password}")
    return _refresh()


@login_required
@admin_required
def deactivate_account(request, pk):
    """Disable a teacher's login without deleting the teacher."""
    if request.method != 'POST':
        return HttpResponse(status=405)

    teacher = get_object_or_404(Teacher.objects.select_related('user'), pk=pk)
    if teacher.user:
        teacher.user.is_active = False
        teacher.user.save(update_fields=['is_active'])
        logger.info(f"Account for teacher {teacher.teacher_code} deactivated by {request.user}")
        messages.success(request, f"Account for {teacher.full_name} deactivated.")
    return _refresh()
