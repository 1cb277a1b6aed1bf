import logging

from django.contrib.auth.decorators import login_required
from django.db.models import Count, Q
from django.http import HttpResponse
from django.shortcuts import get_object_or_404, redirect, render
from django.utils import timezone

from .choices import ExamType, Term
from .forms import AcademicSessionForm, TermScheduleForm
from .models import AcademicSession, TermSchedule
from .utils import (
    admin_required, htmx_render, is_school_admin, is_teacher_or_admin,
    parent_required, resolve_scope, student_required,
)

logger = logging.getLogger(__name__)


def _refresh_response(request, fallback='core:sessions'):
    # Full page refresh so the navbar picks up the new current session
    if request.htmx:
        response = HttpResponse(status=200)
        response['HX-Refresh'] = 'true'
        return response
    return redirect(fallback)


@login_required
def index(request):
    """Dashboard: counts, the current session/term and today's attendance."""
    from academics.models import AttendanceRecord, AttendanceSession, Class, ClassSubject
    from gradebook.models import ScoreRecord
    from students.models import Student
    from teachers.models import Teacher

    if not is_teacher_or_admin(request.user):
        if request.user.is_student:
            return redirect('core:my_results')
        if request.user.is_parent:
            return redirect('core:my_wards')

    current_session = AcademicSession.get_current()
    current_term = current_session.current_term() if current_session else None
    today = timezone.now().date()

    active_students = Student.objects.filter(status=Student.Status.ACTIVE)
    classes = Class.objects.filter(is_active=True)

    teacher = getattr(request.user, 'teacher_profile', None)
    my_allocations = []
    if teacher is not None:
        my_allocations = ClassSubject.objects.filter(
            teacher=teacher, class_assigned__is_active=True
        ).select_related('class_assigned', 'subject').order_by('class_assigned__name', 'subject__name')

    gender_counts = active_students.aggregate(
        male=Count('pk', filter=Q(gender='M')),
        female=Count('pk', filter=Q(gender='F')),
    )

    today_sessions = AttendanceSession.objects.filter(date=today)
    today_attendance = {
        'sessions_taken': today_sessions.count(),
        'total_classes': classes.count(),
        'present': AttendanceRecord.objects.filter(session__date=today, status__in=['P', 'L']).count(),
        'absent': AttendanceRecord.objects.filter(session__date=today, status='A').count(),
    }

    score_count = 0
    if current_session:
        score_count = ScoreRecord.objects.filter(session=current_session, term=current_term).count()

    context = {
        'student_count': active_students.count(),
        'male_count': gender_counts['male'],
        'female_count': gender_counts['female'],
        'teacher_count': Teacher.objects.filter(status='active').count(),
        'class_count': today_attendance['total_classes'],
        'current_session': current_session,
        'current_term': current_term,
        'current_term_label': Term(current_term).label if current_term else None,
        'score_count': score_count,
        'recent_students': Student.objects.select_related('current_class').order_by('-created_at')[:5],
        'today_attendance': today_attendance,
        'classes_without_attendance': classes.exclude(attendance_sessions__date=today).select_related('form_teacher')[:5],
        'my_allocations': my_allocations,
        'is_admin': is_school_admin(request.user),
        'today': today,
    }
    return htmx_render(request, 'core/index.html', 'core/partials/index_content.html', context)


# ============ Academic Sessions ============

@login_required
@admin_required
def sessions(request):
    """List academic sessions with their term schedules (Admin only)."""
    context = {
        'sessions': AcademicSession.objects.prefetch_related('term_schedules', 'schools'),
        'form': AcademicSessionForm(),
    }
    return htmx_render(request, 'core/sessions.html', 'core/partials/sessions_content.html', context)


def _session_form_response(request, form, session=None):
    # 422 keeps the modal open with the errors
    response = render(request, 'core/partials/modal_session_form.html', {
        'form': form,
        'session': session,
        'is_create': session is None,
    })
    response.status_code = 422
    return response


@login_required
@admin_required
def session_create(request):
    """Create a new academic session (Admin only)."""
    if request.method == 'GET':
        return render(request, 'core/partials/modal_session_form.html', {
            'form': AcademicSessionForm(),
            'is_create': True,
        })

    if request.method != 'POST':
        return HttpResponse(status=405)

    form = AcademicSessionForm(request.POST)
    if not form.is_valid():
        return _session_form_response(request, form)

    session = form.save()
    logger.info(f"Academic session {session.name} created by {request.user}")
    return _refresh_response(request)


@login_required
@admin_required
def session_edit(request, pk):
    """Edit an academic session (Admin only)."""
    session = get_object_or_404(AcademicSession, pk=pk)

    if request.method == 'GET':
        return render(request, 'core/partials/modal_session_form.html', {
            'form': AcademicSessionForm(instance=session),
            'session': session,
            'is_create': False,
        })

    if request.method != 'POST':
        return HttpResponse(status=405)

    form = AcademicSessionForm(request.POST, instance=session)
    if not form.is_valid():
        return _session_form_response(request, form, session)

    form.save()
    logger.info(f"Academic session {session.name} updated by {request.user}")
    return _refresh_response(request)


@login_required
@admin_required
def session_delete(request, pk):
    """Delete an academic session (Admin only)."""
    if request.method != 'POST':
        return HttpResponse(status=405)

    session = get_object_or_404(AcademicSession, pk=pk)
    name = session.name
    session.delete()
    logger.info(f"Academic session {name} deleted by {request.user}")
    return _refresh_response(request)


@login_required
@admin_required
def session_set_current(request, pk):
    """Set an academic session as current (Admin only)."""
    if request.method != 'POST':
        return HttpResponse(status=405)

    session = get_object_or_404(AcademicSession, pk=pk)
    session.is_current = True
    session.save()
    logger.info(f"Academic session {session.name} set as current by {request.user}")
    return _refresh_response(request)


# ============ Term Schedule ============

@login_required
@admin_required
def term_schedule(request, pk):
    """Set the start dates of a session's terms (Admin only)."""
    session = get_object_or_404(AcademicSession, pk=pk)
    schedules = {schedule.term: schedule for schedule in session.term_schedules.all()}

    if request.method not in ('GET', 'POST'):
        return HttpResponse(status=405)

    forms = []
    for term, label in Term.choices:
        instance = schedules.get(term) or TermSchedule(session=session, term=term)
        data = request.POST if request.method == 'POST' else None
        form = TermScheduleForm(data, instance=instance, session=session, prefix=term.lower())
        forms.append((label, form))

    if request.method == 'POST':
        # A blank start date leaves that term unscheduled
        filled = [(label, form) for label, form in forms if request.POST.get(f'{form.prefix}-starts_at')]
        results = [form.is_valid() for _, form in filled]
        if all(results):
            for _, form in filled:
                form.save()
            logger.info(f"Term schedule for {session.name} updated by {request.user}")
            return _refresh_response(request)
        response = render(request, 'core/partials/modal_term_schedule.html', {
            'session': session,
            'forms': forms,
        })
        response.status_code = 422
        return response

    return render(request, 'core/partials/modal_term_schedule.html', {
        'session': session,
        'forms': forms,
    })


# ============ Results Portal ============

@login_required
@student_required
def my_results(request):
    """Student view of their own report card and midterm standing."""
    from gradebook.grading import grade_for_midterm_score
    from gradebook.models import ScoreRecord
    from gradebook.reports import RecordNotFound, build_report_card
    from gradebook.results import class_summaries

    student = getattr(request.user, 'student_profile', None)
    session, term = resolve_scope(request)

    report = None
    report_error = None
    midterm_rows = []
    midterm_standing = None
    if student is not None and session is not None:
        try:
            report = build_report_card(student, session, term)
        except RecordNotFound as e:
            report_error = str(e)

        midterms = ScoreRecord.objects.filter(
            student=student, session=session, term=term, exam_type=ExamType.MIDTERM
        ).select_related('subject', 'class_assigned').order_by('subject__name')
        for record in midterms:
            grade = grade_for_midterm_score(record.total_score)
            midterm_rows.append({
                'subject': record.subject.name,
                'total_score': record.total_score,
                'max_score': record.max_score,
                'grade': grade['grade'],
                'remark': grade['remark'],
            })

        class_obj = midterms[0].class_assigned if midterm_rows else student.current_class
        if class_obj is not None and midterm_rows:
            summaries = class_summaries(class_obj, session, term, ExamType.MIDTERM)
            midterm_standing = next((s for s in summaries if s['student_id'] == student.pk), None)
            if midterm_standing is not None:
                midterm_standing = dict(midterm_standing, class_size=len(summaries))

    context = {
        'student': student,
        'session': session,
        'term': term,
        'term_label': Term(term).label,
        'sessions': AcademicSession.objects.all(),
        'term_choices': Term.choices,
        'report': report,
        'report_error': report_error,
        'midterm_rows': midterm_rows,
        'midterm_standing': midterm_standing,
    }
    return htmx_render(request, 'core/my_results.html', 'core/partials/my_results_content.html', context)


@login_required
@parent_required
def my_wards(request):
    """Parent view of their linked children with each one's standing for the term."""
    from gradebook.results import class_summaries

    guardian = getattr(request.user, 'guardian_profile', None)
    session, term = resolve_scope(request)

    summaries_by_class = {}
    wards = []
    links = guardian.student_links.filter(
        student__status='active'
    ).select_related('student__current_class') if guardian else []
    for link in links:
        student = link.student
        class_obj = student.current_class
        summary = None
        class_size = 0
        if session is not None and class_obj is not None:
            if class_obj.pk not in summaries_by_class:
                summaries_by_class[class_obj.pk] = class_summaries(class_obj, session, term)
            class_rows = summaries_by_class[class_obj.pk]
            summary = next((s for s in class_rows if s['student_id'] == student.pk), None)
            class_size = len(class_rows)
        wards.append({
            'student': student,
            'relationship': link.get_relationship_display(),
            'summary': summary,
            'class_size': class_size,
        })

    context = {
        'guardian': guardian,
        'wards': wards,
        'session': session,
        'term': term,
        'term_label': Term(term).label,
        'sessions': AcademicSession.objects.all(),
        'term_choices': Term.choices,
    }
    return htmx_render(request, 'core/my_wards.html', 'core/partials/my_wards_content.html', context)
