from datetime import date

from django.db import models
from django.conf import settings
from django.utils.translation import gettext_lazy as _


class Student(models.Model):
    """
    Represents a student enrolled in a school.
    """

    class Gender(models.TextChoices):
        MALE = 'M', _('Male')
        FEMALE = 'F', _('Female')

    class Status(models.TextChoices):
        ACTIVE = 'active', _('Active')
        GRADUATED = 'graduated', _('Graduated')
        WITHDRAWN = 'withdrawn', _('Withdrawn')
        TRANSFERRED = 'transferred', _('Transferred')

    class GuardianRelationship(models.TextChoices):
        FATHER = 'father', _('Father')
        MOTHER = 'mother', _('Mother')
        GUARDIAN = 'guardian', _('Guardian')
        OTHER = 'other', _('Other')

    # Personal Information
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    other_names = models.CharField(max_length=100, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=1, choices=Gender.choices)
    photo = models.ImageField(upload_to='students/photos/', blank=True, null=True)
    category = models.CharField(
        max_length=50,
        blank=True,
        help_text="e.g., Day, Boarding, Scholarship"
    )

    # Guardian Information
    guardian_name = models.CharField(max_length=200, blank=True)
    guardian_phone = models.CharField(max_length=20, blank=True)
    guardian_email = models.EmailField(blank=True)
    guardian_relationship = models.CharField(
        max_length=20,
        choices=GuardianRelationship.choices,
        default=GuardianRelationship.GUARDIAN
    )
    address = models.TextField(blank=True)

    # Admission Details
    admission_number = models.CharField(
        max_length=50,
        unique=True,
        help_text="Unique student code"
    )
    admission_date = models.DateField(null=True, blank=True)

    # Enrollment
    school = models.ForeignKey(
        'schools.School',
        on_delete=models.SET_NULL,
        related_name='students',
        null=True,
        blank=True
    )
    current_class = models.ForeignKey(
        'academics.Class',
        on_delete=models.PROTECT,
        related_name='students',
        null=True,
        blank=True
    )

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE
    )

    # Optional User Account
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='student_profile'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['last_name', 'first_name']
        verbose_name = "Student"
        verbose_name_plural = "Students"

    def __str__(self):
        return f"{self.full_name} ({self.admission_number})"

    @property
    def full_name(self):
        """Return full name of student."""
        names = [self.first_name]
        if self.other_names:
            names.append(self.other_names)
        names.append(self.last_name)
        return ' '.join(names)

    @property
    def age(self):
        return self.age_on(date.today())

    def age_on(self, on_date):
        """Age in whole years on the given date, or None without a birth date."""
        if not self.date_of_birth or not on_date:
            return None
        return on_date.year - self.date_of_birth.year - (
            (on_date.month, on_date.day) < (self.date_of_birth.month, self.date_of_birth.day)
        )


class Guardian(models.Model):
    """A parent or guardian who may be linked to several students."""

    full_name = models.CharField(max_length=200)
    phone_number = models.CharField(max_length=20)
    email = models.EmailField(blank=True)
    occupation = models.CharField(max_length=100, blank=True)
    address = models.TextField(blank=True)
    school = models.ForeignKey(
        'schools.School',
        on_delete=models.SET_NULL,
        related_name='guardians',
        null=True,
        blank=True
    )
    students = models.ManyToManyField(
        Student,
        through='StudentGuardian',
        related_name='guardians',
        blank=True
    )

    # Optional User Account
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='guardian_profile'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['full_name']
        verbose_name = "Guardian"
        verbose_name_plural = "Guardians"

    def __str__(self):
        return f"{self.full_name} ({self.phone_number})"

    def active_wards(self):
        return self.students.filter(status=Student.Status.ACTIVE).select_related('current_class', 'school')


class StudentGuardian(models.Model):
    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name='guardian_links')
    guardian = models.ForeignKey(Guardian, on_delete=models.CASCADE, related_name='student_links')
    relationship = models.CharField(
        max_length=20,
        choices=Student.GuardianRelationship.choices,
        default=Student.GuardianRelationship.GUARDIAN
    )
    is_primary = models.BooleanField(default=False)

    class Meta:
        unique_together = ['student', 'guardian']
        ordering = ['-is_primary', 'guardian__full_name']

    def __str__(self):
        return f"{self.guardian.full_name} - {self.student.full_name} ({self.get_relationship_display()})"
