from django.db import models
from django.utils.translation import gettext_lazy as _

class Gender(models.TextChoices):
    MALE = 'M', _('Male')
    FEMALE = 'F', _('Female')

class Term(models.TextChoices):
    FIRST = 'FIRST', _('First Term')
    SECOND = 'SECOND', _('Second Term')
    THIRD = 'THIRD', _('Third Term')

class ExamType(models.TextChoices):
    MIDTERM = 'MIDTERM', _('Midterm')
    FINAL = 'FINAL', _('Final')

class AttendanceStatus(models.TextChoices):
    PRESENT = 'P', _('Present')
    ABSENT = 'A', _('Absent')
    LATE = 'L', _('Late')
    EXCUSED = 'E', _('Excused')

class TraitCategory(models.TextChoices):
    PSYCHOMOTOR = 'PSYCHOMOTOR', _('Psychomotor')
    AFFECTIVE = 'AFFECTIVE', _('Affective')
