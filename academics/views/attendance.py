"""Daily attendance registers."""
import logging
from datetime import date

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.db import transaction
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404, redirect
from django.utils import timezone

from core.models import AcademicSession
from students.models import Student

from ..forms import AttendanceForm
from ..models import AttendanceRecord, AttendanceSession, Class, ClassSubject
from .base import htmx_render, is_school_admin, teacher_or_admin_required

logger = logging.getLogger(__name__)


def can_take_attendance(user, class_obj):
    """Admins, the form teacher and the class's subject teachers."""
    if is_school_admin(user):
        return True
    teacher = getattr(user, 'teacher_profile', None)
    if teacher is None:
        return False
    if class_obj.form_teacher_id == teacher.pk:
        return True
    return ClassSubject.objects.filter(class_assigned=class_obj, teacher=teacher).exists()


def _register_date(request):
    value = request.GET.get('date') or request.POST.get('date')
    if value:
        try:
            return date.fromisoformat(value)
        except ValueError:
            logger.debug(f"Ignoring invalid register date {value!r}")
    return timezone.now().date()


@login_required
@teacher_or_admin_required
def attendance_index(request):
    """Classes the user may take attendance for, with today's progress."""
    today = timezone.now().date()
    classes = Class.objects.filter(is_active=True).annotate(
        taken_today=Count('attendance_sessions', filter=Q(attendance_sessions__date=today))
    ).select_related('form_teacher')

    teacher = getattr(request.user, 'teacher_profile', None)
    if not is_school_admin(request.user):
        classes = classes.filter(
            Q(form_teacher=teacher) | Q(subjects__teacher=teacher)
        ).distinct()

    return htmx_render(request, 'academics/attendance.html', 'academics/partials/attendance_content.html', {
        'classes': classes,
        'today': today,
    })


@login_required
@teacher_or_admin_required
def class_attendance_take(request, pk):
    """
    Register for one class on one date (defaults to today).
    Saving replaces the statuses of the existing register for that date.
    """
    class_obj = get_object_or_404(Class, pk=pk)
    if not can_take_attendance(request.user, class_obj):
        messages.error(request, 'You are not assigned to this class.')
        return redirect('academics:attendance')

    academic_session = AcademicSession.get_current()
    if academic_session is None:
        messages.error(request, 'Set a current academic session before taking attendance.')
        return redirect('academics:attendance')

    target_date = _register_date(request)
    students = list(Student.objects.filter(
        current_class=class_obj, status=Student.Status.ACTIVE
    ).order_by('last_name', 'first_name'))

    register = AttendanceSession.objects.filter(class_assigned=class_obj, date=target_date).first()
    initial = {}
    if register:
        initial = dict(register.records.values_list('student_id', 'status'))

    if request.method == 'POST':
        form = AttendanceForm(request.POST, students=students, initial_statuses=initial)
        if form.is_valid():
            with transaction.atomic():
                if register is None:
                    register = AttendanceSession.objects.create(
                        class_assigned=class_obj,
                        date=target_date,
                        academic_session=academic_session,
                        term=academic_session.current_term(target_date),
                        created_by=request.user,
                    )
                for student_id, status in form.statuses().items():
                    AttendanceRecord.objects.update_or_create(
                        session=register,
                        student_id=student_id,
                        defaults={'status': status},
                    )
            logger.info(f"Attendance for {class_obj} on {target_date} saved by {request.user}")
            messages.success(request, f"Attendance saved for {class_obj.name}.")
            return redirect('academics:class_attendance_history', pk=class_obj.pk)
    else:
        form = AttendanceForm(students=students, initial_statuses=initial)

    return htmx_render(request, 'academics/attendance_take.html', 'academics/partials/attendance_take_content.html', {
        'class': class_obj,
        'form': form,
        'register': register,
        'date': target_date,
    })


@login_required
@teacher_or_admin_required
def class_attendance_history(request, pk):
    """Past registers for a class with present/absent counts."""
    class_obj = get_object_or_404(Class, pk=pk)
    if not can_take_attendance(request.user, class_obj):
        messages.error(request, 'You are not assigned to this class.')
        return redirect('academics:attendance')

    registers = class_obj.attendance_sessions.annotate(
        present=Count('records', filter=Q(records__status__in=['P', 'L'])),
        absent=Count('records', filter=Q(records__status='A')),
    ).order_by('-date')[:30]

    return htmx_render(request, 'academics/attendance_history.html', 'academics/partials/attendance_history_content.html', {
        'class': class_obj,
        'registers': registers,
    })
