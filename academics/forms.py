from django import forms

from core.choices import AttendanceStatus
from teachers.models import Teacher
from .models import Class, Subject, ClassSubject, Exam


class ClassForm(forms.ModelForm):
    """Form for creating/editing classes."""

    class Meta:
        model = Class
        fields = [
            'name', 'code', 'category', 'section', 'grade',
            'room', 'capacity', 'school', 'form_teacher', 'is_active',
        ]
        widgets = {
            'name': forms.TextInput(attrs={'placeholder': 'e.g., JSS 1A'}),
            'section': forms.TextInput(attrs={'placeholder': 'A, B, C...'}),
            'grade': forms.NumberInput(attrs={'min': 1, 'max': 12}),
            'capacity': forms.NumberInput(attrs={'min': 1, 'max': 200}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['form_teacher'].queryset = Teacher.objects.filter(status='active').order_by('first_name')
        self.fields['form_teacher'].label = "Form Teacher"


class SubjectForm(forms.ModelForm):
    class Meta:
        model = Subject
        fields = ['name', 'code', 'credit_hours', 'description', 'is_active']
        widgets = {
            'name': forms.TextInput(attrs={'placeholder': 'e.g., Mathematics'}),
            'code': forms.TextInput(attrs={'placeholder': 'e.g., MTH'}),
            'description': forms.Textarea(attrs={'rows': 2}),
        }

    def clean_code(self):
        return self.cleaned_data['code'].strip().upper()


class ClassSubjectForm(forms.ModelForm):
    """Allocate a subject (and its teacher) to a class."""

    class Meta:
        model = ClassSubject
        fields = ['subject', 'teacher']

    def __init__(self, *args, class_obj=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.class_obj = class_obj
        if class_obj:
            self.instance.class_assigned = class_obj
            taken = class_obj.subjects.exclude(pk=self.instance.pk).values_list('subject_id', flat=True)
            self.fields['subject'].queryset = Subject.objects.filter(is_active=True).exclude(pk__in=taken)
        self.fields['teacher'].queryset = Teacher.objects.filter(status='active')
        self.fields['teacher'].required = False


class ExamForm(forms.ModelForm):
    class Meta:
        model = Exam
        fields = [
            'name', 'exam_type', 'term', 'session', 'school',
            'class_assigned', 'subject', 'exam_date', 'assessment_window',
            'start_time', 'end_time', 'room', 'invigilator',
        ]
        widgets = {
            'exam_date': forms.DateInput(attrs={'type': 'date'}),
            'start_time': forms.TimeInput(attrs={'type': 'time'}),
            'end_time': forms.TimeInput(attrs={'type': 'time'}),
            'assessment_window': forms.TextInput(attrs={'placeholder': 'e.g., Week 12'}),
        }

    def clean(self):
        cleaned_data = super().clean()
        session = cleaned_data.get('session')
        exam_date = cleaned_data.get('exam_date')
        if session and exam_date and not (session.start_date <= exam_date <= session.end_date):
            self.add_error('exam_date', 'Exam date must fall within the session.')
        return cleaned_data


class AttendanceForm(forms.Form):
    """One status field per student, built from the class list."""

    def __init__(self, *args, students=(), initial_statuses=None, **kwargs):
        super().__init__(*args, **kwargs)
        initial_statuses = initial_statuses or {}
        self.students = list(students)
        for student in self.students:
            self.fields[f'status_{student.pk}'] = forms.ChoiceField(
                label=student.full_name,
                choices=AttendanceStatus.choices,
                initial=initial_statuses.get(student.pk, AttendanceStatus.PRESENT),
            )

    def statuses(self):
        return {
            student.pk: self.cleaned_data[f'status_{student.pk}']
            for student in self.students
        }
