from django.contrib.auth.decorators import login_required
from django.db.models import Count, Q

from core.models import AcademicSession
from students.models import Student

from ..models import Class, Subject, Exam
from .base import htmx_render, is_school_admin, teacher_or_admin_required


@login_required
@teacher_or_admin_required
def index(request):
    """Academics overview: classes, subjects and upcoming exams."""
    classes = Class.objects.filter(is_active=True).select_related('form_teacher', 'school').annotate(
        active_students=Count('students', filter=Q(students__status=Student.Status.ACTIVE))
    )
    teacher = getattr(request.user, 'teacher_profile', None)
    if not is_school_admin(request.user) and teacher is not None:
        classes = classes.filter(
            Q(form_teacher=teacher) | Q(subjects__teacher=teacher)
        ).distinct()

    session = AcademicSession.get_current()
    upcoming = Exam.objects.none()
    if session:
        upcoming = Exam.objects.filter(session=session).select_related(
            'class_assigned', 'subject'
        ).order_by('exam_date', 'start_time')[:10]

    context = {
        'classes': classes,
        'subject_count': Subject.objects.filter(is_active=True).count(),
        'upcoming_exams': upcoming,
        'is_admin': is_school_admin(request.user),
    }
    return htmx_render(request, 'academics/index.html', 'academics/partials/index_content.html', context)
