from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core.choices import AttendanceStatus, ExamType, Term
from teachers.models import Teacher


class Class(models.Model):
    """
    A class/classroom grouping of students within a school.
    Example names: JSS 1A, SS 2 Science.
    """
    name = models.CharField(max_length=50)
    code = models.CharField(max_length=20, blank=True)
    category = models.CharField(
        max_length=50,
        blank=True,
        help_text="e.g., Junior, Senior, Science"
    )
    section = models.CharField(max_length=10, blank=True, help_text="e.g., A, B")
    grade = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        help_text="Numeric level used to order classes (1, 2, 3...)"
    )
    room = models.CharField(max_length=50, blank=True)
    capacity = models.PositiveIntegerField(default=40)

    school = models.ForeignKey(
        'schools.School',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='classes'
    )
    form_teacher = models.ForeignKey(
        Teacher,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='form_classes',
        help_text="Teacher responsible for this class"
    )

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['grade', 'name']
        verbose_name = "Class"
        verbose_name_plural = "Classes"
        unique_together = ['school', 'name']

    def __str__(self):
        return self.name

    @property
    def student_count(self):
        return self.students.filter(status='active').count()


class Subject(models.Model):
    name = models.CharField(max_length=100, help_text="e.g., Mathematics, English Language")
    code = models.CharField(max_length=20, unique=True, help_text="e.g., MTH, ENG")
    description = models.TextField(blank=True)
    # Stored for reference only; results are never weighted by credit hours
    credit_hours = models.PositiveSmallIntegerField(default=1)

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name


class ClassSubject(models.Model):
    """
    Links a Class to a Subject and assigns the Teacher who enters its scores.
    """
    class_assigned = models.ForeignKey(
        Class,
        on_delete=models.CASCADE,
        related_name='subjects'
    )
    subject = models.ForeignKey(
        Subject,
        on_delete=models.CASCADE,
        related_name='class_allocations'
    )
    teacher = models.ForeignKey(
        Teacher,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='subject_assignments'
    )

    class Meta:
        unique_together = ['class_assigned', 'subject']
        verbose_name = "Subject Allocation"
        verbose_name_plural = "Subject Allocations"

    def __str__(self):
        return f"{self.subject.name} - {self.class_assigned.name}"


class Exam(models.Model):
    """A scheduled sitting of a subject paper for a class."""
    name = models.CharField(max_length=150)
    exam_type = models.CharField(max_length=10, choices=ExamType.choices, default=ExamType.FINAL)
    term = models.CharField(max_length=10, choices=Term.choices)
    session = models.ForeignKey(
        'core.AcademicSession',
        on_delete=models.CASCADE,
        related_name='exams'
    )
    school = models.ForeignKey(
        'schools.School',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='exams'
    )
    class_assigned = models.ForeignKey(Class, on_delete=models.CASCADE, related_name='exams')
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE, related_name='exams')

    exam_date = models.DateField()
    assessment_window = models.CharField(
        max_length=50,
        blank=True,
        help_text="e.g., Week 6, Week 12-13"
    )
    start_time = models.TimeField(null=True, blank=True)
    end_time = models.TimeField(null=True, blank=True)
    room = models.CharField(max_length=50, blank=True)
    invigilator = models.ForeignKey(
        Teacher,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='invigilations'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['exam_date', 'start_time']
        indexes = [
            models.Index(fields=['session', 'term', 'exam_type'], name='exam_scope_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.get_exam_type_display()})"

    def clean(self):
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValidationError({'end_time': _('End time must be after the start time.')})

    @property
    def duration_minutes(self):
        if not (self.start_time and self.end_time):
            return None
        start = self.start_time.hour * 60 + self.start_time.minute
        end = self.end_time.hour * 60 + self.end_time.minute
        return end - start


class AttendanceSession(models.Model):
    """One daily register taken for a class."""
    class_assigned = models.ForeignKey(Class, on_delete=models.CASCADE, related_name='attendance_sessions')
    date = models.DateField(default=timezone.now)
    academic_session = models.ForeignKey(
        'core.AcademicSession',
        on_delete=models.CASCADE,
        related_name='attendance_sessions'
    )
    term = models.CharField(max_length=10, choices=Term.choices)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ['class_assigned', 'date']
        ordering = ['-date']

    def __str__(self):
        return f"{self.class_assigned} - {self.date}"


class AttendanceRecord(models.Model):
    session = models.ForeignKey(AttendanceSession, on_delete=models.CASCADE, related_name='records')
    student = models.ForeignKey('students.Student', on_delete=models.CASCADE, related_name='attendance_records')
    status = models.CharField(max_length=1, choices=AttendanceStatus.choices, default=AttendanceStatus.PRESENT)
    remarks = models.CharField(max_length=200, blank=True)

    class Meta:
        unique_together = ['session', 'student']
