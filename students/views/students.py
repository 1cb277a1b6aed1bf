import logging

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.db.models import Count, Q
from django.http import HttpResponse
from django.shortcuts import redirect, get_object_or_404

from academics.models import Class
from core.models import AcademicSession
from core.utils import admin_required, htmx_render
from schools.models import School
from students.forms import StudentForm
from students.models import Student

logger = logging.getLogger(__name__)


@login_required
@admin_required
def index(request):
    """Student list page with search and filter."""
    students = Student.objects.select_related('current_class', 'school').all()

    # Search
    search = request.GET.get('search', '').strip()
    if search:
        students = students.filter(
            Q(first_name__icontains=search) |
            Q(last_name__icontains=search) |
            Q(other_names__icontains=search) |
            Q(admission_number__icontains=search)
        )

    # Filter by class
    class_filter = request.GET.get('class', '')
    if class_filter.isdigit():
        students = students.filter(current_class_id=class_filter)

    # Filter by status
    status_filter = request.GET.get('status', '')
    if status_filter:
        students = students.filter(status=status_filter)

    school_filter = request.GET.get('school', '')
    if school_filter.isdigit():
        students = students.filter(school_id=school_filter)

    context = {
        'students': students,
        'classes': Class.objects.filter(is_active=True),
        'schools': School.objects.filter(is_active=True),
        'status_choices': Student.Status.choices,
        'search': search,
        'class_filter': class_filter,
        'status_filter': status_filter,
        'school_filter': school_filter,
    }

    return htmx_render(
        request,
        'students/index.html',
        'students/partials/index_content.html',
        context
    )


@login_required
@admin_required
def student_create(request):
    """Create a new student."""
    if request.method == 'GET':
        return htmx_render(
            request,
            'students/student_form.html',
            'students/partials/student_form_content.html',
            {'form': StudentForm()}
        )

    if request.method != 'POST':
        return HttpResponse(status=405)

    form = StudentForm(request.POST, request.FILES)
    if form.is_valid():
        student = form.save()
        logger.info(f"Student {student.admission_number} created by {request.user}")
        messages.success(request, f"Student {student.full_name} created successfully.")
        return redirect('students:student_detail', pk=student.pk)

    return htmx_render(
        request,
        'students/student_form.html',
        'students/partials/student_form_content.html',
        {'form': form}
    )


@login_required
@admin_required
def student_edit(request, pk):
    """Edit an existing student."""
    student = get_object_or_404(Student, pk=pk)

    if request.method == 'GET':
        return htmx_render(
            request,
            'students/student_form.html',
            'students/partials/student_form_content.html',
            {'form': StudentForm(instance=student), 'student': student}
        )

    if request.method != 'POST':
        return HttpResponse(status=405)

    form = StudentForm(request.POST, request.FILES, instance=student)
    if form.is_valid():
        form.save()
        logger.info(f"Student {student.admission_number} updated by {request.user}")
        messages.success(request, "Student details updated.")
        return redirect('students:student_detail', pk=student.pk)

    return htmx_render(
        request,
        'students/student_form.html',
        'students/partials/student_form_content.html',
        {'form': form, 'student': student}
    )


@login_required
@admin_required
def student_delete(request, pk):
    """Delete a student along with their scores and registers."""
    if request.method != 'POST':
        return HttpResponse(status=405)

    student = get_object_or_404(Student, pk=pk)
    admission_number = student.admission_number
    student.delete()
    logger.info(f"Student {admission_number} deleted by {request.user}")

    if request.htmx:
        response = HttpResponse(status=200)
        response['HX-Refresh'] = 'true'
        return response
    return redirect('students:index')


@login_required
@admin_required
def student_detail(request, pk):
    """Student profile with attendance for the current session and scored subjects."""
    from gradebook.models import ScoreRecord

    student = get_object_or_404(Student.objects.select_related('current_class', 'school'), pk=pk)
    session = AcademicSession.get_current()

    attendance = {'present': 0, 'absent': 0, 'total': 0}
    scored_subjects = []
    if session:
        attendance = student.attendance_records.filter(
            session__academic_session=session
        ).aggregate(
            present=Count('pk', filter=Q(status__in=['P', 'L'])),
            absent=Count('pk', filter=Q(status='A')),
            total=Count('pk'),
        )
        scored_subjects = ScoreRecord.objects.filter(
            student=student, session=session
        ).select_related('subject').order_by('term', 'subject__name', 'exam_type')

    context = {
        'student': student,
        'current_session': session,
        'attendance': attendance,
        'scored_subjects': scored_subjects,
        'guardian_links': student.guardian_links.select_related('guardian__user'),
        'breadcrumbs': [
            {'label': 'Students', 'url': 'students:index'},
            {'label': student.full_name},
        ],
    }
    return htmx_render(
        request,
        'students/student_detail.html',
        'students/partials/student_detail_content.html',
        context
    )
