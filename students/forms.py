from django import forms
from academics.models import Class
from .models import Guardian, Student, StudentGuardian


class BulkImportForm(forms.Form):
    """Form for bulk importing students from Excel/CSV."""
    file = forms.FileField(
        help_text="Upload an Excel (.xlsx) or CSV file"
    )

    def clean_file(self):
        file = self.cleaned_data.get('file')
        if file:
            ext = file.name.split('.')[-1].lower()
            if ext not in ['xlsx', 'csv']:
                raise forms.ValidationError("Only .xlsx and .csv files are supported.")
        return file


class StudentForm(forms.ModelForm):
    class Meta:
        model = Student
        fields = [
            # Personal info
            'first_name', 'last_name', 'other_names',
            'date_of_birth', 'gender', 'category', 'photo', 'address',
            # Guardian
            'guardian_name', 'guardian_phone', 'guardian_email', 'guardian_relationship',
            # Admission
            'admission_number', 'admission_date',
            # Enrollment
            'school', 'current_class', 'status',
        ]
        widgets = {
            'first_name': forms.TextInput(attrs={'placeholder': 'First name'}),
            'last_name': forms.TextInput(attrs={'placeholder': 'Last name'}),
            'other_names': forms.TextInput(attrs={'placeholder': 'Other names (optional)'}),
            'date_of_birth': forms.DateInput(attrs={'type': 'date'}),
            'address': forms.Textarea(attrs={'rows': 2, 'placeholder': 'Home address'}),
            'guardian_phone': forms.TextInput(attrs={'placeholder': 'Guardian phone'}),
            'admission_number': forms.TextInput(attrs={'placeholder': 'e.g., STU-2024-001'}),
            'admission_date': forms.DateInput(attrs={'type': 'date'}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Only show active classes
        self.fields['current_class'].queryset = Class.objects.filter(is_active=True)
        self.fields['current_class'].required = False

    def clean(self):
        cleaned_data = super().clean()
        school = cleaned_data.get('school')
        current_class = cleaned_data.get('current_class')
        if school and current_class and current_class.school_id and current_class.school_id != school.pk:
            self.add_error('current_class', 'This class belongs to a different school.')
        return cleaned_data


class GuardianForm(forms.ModelForm):
    """Form for creating/editing guardians."""
    phone_number = forms.CharField(
        label="Phone Number",
        widget=forms.TextInput(attrs={'placeholder': 'Phone number', 'required': True})
    )

    class Meta:
        model = Guardian
        fields = [
            'full_name', 'phone_number', 'email', 'occupation', 'address', 'school'
        ]
        widgets = {
            'full_name': forms.TextInput(attrs={'placeholder': 'Full name'}),
            'email': forms.EmailInput(attrs={'placeholder': 'Email (optional)'}),
            'occupation': forms.TextInput(attrs={'placeholder': 'Occupation (optional)'}),
            'address': forms.Textarea(attrs={'rows': 2, 'placeholder': 'Address (optional)'}),
        }


class StudentGuardianForm(forms.ModelForm):
    """Attach an existing student to a guardian."""

    class Meta:
        model = StudentGuardian
        fields = ['student', 'relationship', 'is_primary']

    def __init__(self, *args, guardian=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.guardian = guardian
        students = Student.objects.filter(status=Student.Status.ACTIVE)
        if guardian is not None:
            students = students.exclude(guardian_links__guardian=guardian)
        self.fields['student'].queryset = students.select_related('current_class')

    def clean_student(self):
        student = self.cleaned_data['student']
        if self.guardian is not None and StudentGuardian.objects.filter(
            guardian=self.guardian, student=student
        ).exists():
            raise forms.ValidationError("This student is already linked to the guardian.")
        return student

    def save(self, commit=True):
        link = super().save(commit=False)
        link.guardian = self.guardian
        if commit:
            link.save()
        return link
