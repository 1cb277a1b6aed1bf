from datetime import date

from django.core.exceptions import ValidationError
from django.db import models
from django.utils.translation import gettext_lazy as _

from .choices import Gender, Term


class Person(models.Model):
    """
    Abstract Person model shared by students and teachers.
    """
    first_name = models.CharField(max_length=50)
    last_name = models.CharField(max_length=50)
    other_names = models.CharField(max_length=50, blank=True, default='')

    gender = models.CharField(
        max_length=1,
        choices=Gender.choices,
        default=Gender.MALE
    )
    date_of_birth = models.DateField(null=True, blank=True)
    photo = models.ImageField(upload_to='photos/', blank=True, null=True)

    # Contact
    phone_number = models.CharField(max_length=17, blank=True)
    address = models.TextField(blank=True, default='')
    email = models.EmailField(blank=True, null=True)

    class Meta:
        abstract = True

    def __str__(self):
        return self.full_name

    @property
    def full_name(self):
        parts = [self.first_name, self.other_names, self.last_name]
        return " ".join(filter(None, parts))


class AcademicSession(models.Model):
    """
    Represents an academic session (e.g., 2024/2025).
    Sessions may be shared by several schools.
    """
    name = models.CharField(
        max_length=50,
        unique=True,
        help_text="e.g., 2024/2025"
    )
    start_date = models.DateField()
    end_date = models.DateField()
    is_current = models.BooleanField(
        default=False,
        help_text="Only one session can be current at a time"
    )
    schools = models.ManyToManyField(
        'schools.School',
        blank=True,
        related_name='sessions'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-start_date']
        verbose_name = "Academic Session"
        verbose_name_plural = "Academic Sessions"

    def __str__(self):
        return self.name

    def clean(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError({'end_date': _('End date cannot be before the start date.')})

    def save(self, *args, **kwargs):
        # Ensure only one session is current
        if self.is_current:
            AcademicSession.objects.filter(is_current=True).exclude(pk=self.pk).update(is_current=False)
        super().save(*args, **kwargs)

    @classmethod
    def get_current(cls):
        """Get the current academic session."""
        return cls.objects.filter(is_current=True).first()

    def current_term(self, today=None):
        """Term whose scheduled start is the latest one on or before today."""
        return TermSchedule.current_term(self, today)


class TermSchedule(models.Model):
    """When each term of a session begins."""
    session = models.ForeignKey(
        AcademicSession,
        on_delete=models.CASCADE,
        related_name='term_schedules'
    )
    term = models.CharField(max_length=10, choices=Term.choices)
    starts_at = models.DateField()

    class Meta:
        ordering = ['session', 'starts_at']
        unique_together = ['session', 'term']
        verbose_name = "Term Schedule"

    def __str__(self):
        return f"{self.get_term_display()} - {self.session.name}"

    @classmethod
    def current_term(cls, session, today=None):
        if session is None:
            return Term.FIRST
        today = today or date.today()
        schedule = cls.objects.filter(
            session=session, starts_at__lte=today
        ).order_by('-starts_at').first()
        return schedule.term if schedule else Term.FIRST
