from django import forms

from .models import AcademicSession, TermSchedule


class AcademicSessionForm(forms.ModelForm):
    class Meta:
        model = AcademicSession
        fields = ['name', 'start_date', 'end_date', 'is_current', 'schools']
        widgets = {
            'name': forms.TextInput(attrs={'class': 'input input-bordered w-full', 'placeholder': 'e.g., 2024/2025'}),
            'start_date': forms.DateInput(attrs={'type': 'date', 'class': 'input input-bordered w-full'}),
            'end_date': forms.DateInput(attrs={'type': 'date', 'class': 'input input-bordered w-full'}),
            'is_current': forms.CheckboxInput(attrs={'class': 'checkbox checkbox-primary'}),
            'schools': forms.SelectMultiple(attrs={'class': 'select select-bordered w-full'}),
        }


class TermScheduleForm(forms.ModelForm):
    class Meta:
        model = TermSchedule
        fields = ['term', 'starts_at']
        widgets = {
            'term': forms.Select(attrs={'class': 'select select-bordered w-full'}),
            'starts_at': forms.DateInput(attrs={'type': 'date', 'class': 'input input-bordered w-full'}),
        }

    def __init__(self, *args, session=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.session = session
        if session:
            self.instance.session = session

    def clean(self):
        cleaned_data = super().clean()
        starts_at = cleaned_data.get('starts_at')
        session = self.session or getattr(self.instance, 'session', None)
        if starts_at and session and not (session.start_date <= starts_at <= session.end_date):
            raise forms.ValidationError('Term start must fall within the session dates.')
        return cleaned_data
