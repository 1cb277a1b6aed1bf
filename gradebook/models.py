import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils import timezone

from academics.models import Class, Subject
from core.choices import ExamType, Term, TraitCategory
from core.models import AcademicSession
from students.models import Student
from teachers.models import Teacher


class MarkDistribution(models.Model):
    """
    Weighting template for score sheets.

    A distribution lists the components (CA1, Exam, ...) of one exam type
    and their weights. Session, term and school are optional so a template
    can apply broadly; the most specific match wins at lookup time.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    title = models.CharField(max_length=150)
    exam_type = models.CharField(max_length=10, choices=ExamType.choices)
    session = models.ForeignKey(
        AcademicSession,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='mark_distributions'
    )
    term = models.CharField(max_length=10, choices=Term.choices, blank=True, default='')
    school = models.ForeignKey(
        'schools.School',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='mark_distributions'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['exam_type', '-created_at']
        unique_together = ['school', 'session', 'term', 'exam_type']
        verbose_name = 'Mark Distribution'

    def __str__(self):
        return self.title

    def clean(self):
        # NULL columns never collide in a unique index, so check the scope by hand
        duplicates = MarkDistribution.objects.filter(
            school=self.school,
            session=self.session,
            term=self.term,
            exam_type=self.exam_type,
        ).exclude(pk=self.pk)
        if duplicates.exists():
            raise ValidationError('A mark distribution already exists for this scope.')

    @property
    def total_weight(self):
        return sum(component.weight for component in self.components.all())

    def as_template(self):
        """Plain dict used by the aggregation functions."""
        from .distributions import component_sort_key, normalize_label

        components = [
            {
                'id': component.component_id,
                'label': normalize_label(component.component_id, component.label),
                'weight': component.weight,
                'order': component.order,
            }
            for component in self.components.all()
        ]
        components.sort(key=component_sort_key)
        return {
            'id': str(self.pk),
            'title': self.title,
            'exam_type': self.exam_type,
            'session_id': self.session_id,
            'term': self.term or None,
            'school_id': self.school_id,
            'components': components,
        }


class MarkDistributionComponent(models.Model):
    distribution = models.ForeignKey(
        MarkDistribution,
        on_delete=models.CASCADE,
        related_name='components'
    )
    component_id = models.CharField(
        max_length=50,
        help_text='Stable key, e.g. ca1, exam, midtermCarry'
    )
    label = models.CharField(max_length=100)
    weight = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(100)],
        help_text='Maximum score of this component'
    )
    order = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ['order', 'id']
        unique_together = ['distribution', 'component_id']

    def __str__(self):
        return f"{self.label} ({self.weight})"


class ScoreRecord(models.Model):
    """
    One student's component scores for a subject in a given exam.

    `components` holds a list of {"id", "label", "score", "max_score"}
    dicts aligned with the mark distribution in force when it was saved.
    """
    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name='score_records')
    class_assigned = models.ForeignKey(Class, on_delete=models.CASCADE, related_name='score_records')
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE, related_name='score_records')
    session = models.ForeignKey(AcademicSession, on_delete=models.CASCADE, related_name='score_records')
    term = models.CharField(max_length=10, choices=Term.choices)
    exam_type = models.CharField(max_length=10, choices=ExamType.choices)

    components = models.JSONField(default=list, blank=True)
    total_score = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal('0'))
    max_score = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal('0'))
    percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0'))

    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='score_records'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ['student', 'subject', 'session', 'term', 'exam_type']
        ordering = ['subject__name', 'student__last_name']
        indexes = [
            models.Index(fields=['class_assigned', 'session', 'term', 'exam_type'], name='score_class_scope_idx'),
        ]

    def __str__(self):
        return f"{self.student} - {self.subject} ({self.get_exam_type_display()})"

    def as_dict(self):
        return {
            'id': self.pk,
            'student_id': self.student_id,
            'student_name': self.student.full_name,
            'class_id': self.class_assigned_id,
            'class_name': self.class_assigned.name,
            'subject_id': self.subject_id,
            'subject': self.subject.name,
            'session_id': self.session_id,
            'term': self.term,
            'exam_type': self.exam_type,
            'components': [dict(component) for component in self.components or []],
            'total_score': float(self.total_score),
            'max_score': float(self.max_score),
            'percentage': float(self.percentage),
        }

    def apply_aligned(self, aligned):
        """Copy the derived fields of an aligned record dict onto this instance."""
        self.components = aligned['components']
        self.total_score = Decimal(str(round(aligned['total_score'], 2)))
        self.max_score = Decimal(str(round(aligned['max_score'], 2)))
        self.percentage = Decimal(str(round(aligned['percentage'], 2)))


class ScoreAuditLog(models.Model):
    """
    Audit log for score changes. Tracks who changed what and when.
    """
    ACTION_CHOICES = [
        ('CREATE', 'Created'),
        ('UPDATE', 'Updated'),
        ('IMPORT', 'Imported'),
    ]

    score_record = models.ForeignKey(
        ScoreRecord,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs'
    )
    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name='score_audit_logs')
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE, related_name='score_audit_logs')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='score_audit_logs'
    )

    action = models.CharField(max_length=10, choices=ACTION_CHOICES)
    old_total = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True)
    new_total = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True)
    old_components = models.JSONField(default=list, blank=True)
    new_components = models.JSONField(default=list, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.get_action_display()} {self.student} / {self.subject}"


class ResultLock(models.Model):
    """
    Freezes a class's scores for one exam. Allowed teachers may still edit.
    """
    class_assigned = models.ForeignKey(Class, on_delete=models.CASCADE, related_name='result_locks')
    session = models.ForeignKey(AcademicSession, on_delete=models.CASCADE, related_name='result_locks')
    term = models.CharField(max_length=10, choices=Term.choices)
    exam_type = models.CharField(max_length=10, choices=ExamType.choices)

    is_locked = models.BooleanField(default=True)
    locked_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='result_locks'
    )
    locked_at = models.DateTimeField(null=True, blank=True)
    allowed_teachers = models.ManyToManyField(Teacher, blank=True, related_name='unlocked_results')
    notes = models.TextField(blank=True)

    class Meta:
        unique_together = ['class_assigned', 'session', 'term', 'exam_type']

    def __str__(self):
        state = 'Locked' if self.is_locked else 'Open'
        return f"{self.class_assigned} {self.get_term_display()} {self.get_exam_type_display()} ({state})"

    def allows(self, user):
        """True when the user may still edit scores under this lock."""
        if not self.is_locked:
            return True
        if user.is_superuser or getattr(user, 'is_school_admin', False):
            return True
        teacher = getattr(user, 'teacher_profile', None)
        return teacher is not None and self.allowed_teachers.filter(pk=teacher.pk).exists()

    def lock(self, user):
        self.is_locked = True
        self.locked_by = user
        self.locked_at = timezone.now()

    def unlock(self):
        self.is_locked = False
        self.locked_at = None

    @classmethod
    def for_scope(cls, class_obj, session, term, exam_type):
        return cls.objects.filter(
            class_assigned=class_obj, session=session, term=term, exam_type=exam_type
        ).first()

    @classmethod
    def can_edit(cls, user, class_obj, session, term, exam_type):
        lock = cls.for_scope(class_obj, session, term, exam_type)
        return lock is None or lock.allows(user)


class StudentTrait(models.Model):
    """A 1-5 rating of a psychomotor or affective trait for one term."""
    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name='traits')
    session = models.ForeignKey(AcademicSession, on_delete=models.CASCADE, related_name='student_traits')
    term = models.CharField(max_length=10, choices=Term.choices)
    category = models.CharField(max_length=15, choices=TraitCategory.choices)
    trait = models.CharField(max_length=50)
    score = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ['student', 'session', 'term', 'trait']
        ordering = ['category', 'trait']

    def __str__(self):
        return f"{self.student} - {self.trait}: {self.score}"

    def clean(self):
        from .traits import TRAITS_BY_CATEGORY

        if self.trait not in TRAITS_BY_CATEGORY.get(self.category, {}):
            raise ValidationError({'trait': f'"{self.trait}" is not a {self.get_category_display().lower()} trait.'})


class PromotionDecision(models.Model):
    """
    Manual promotion override for a student. No row means the automatic
    outcome applies.
    """
    class Decision(models.TextChoices):
        PROMOTE = 'promote', 'Promote'
        HOLD = 'hold', 'Hold'

    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name='promotion_decisions')
    class_assigned = models.ForeignKey(Class, on_delete=models.CASCADE, related_name='promotion_decisions')
    session = models.ForeignKey(AcademicSession, on_delete=models.CASCADE, related_name='promotion_decisions')
    decision = models.CharField(max_length=10, choices=Decision.choices)
    decided_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True
    )
    decided_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ['student', 'class_assigned', 'session']

    def __str__(self):
        return f"{self.student} - {self.get_decision_display()}"
