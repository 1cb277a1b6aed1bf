from django import forms

from .models import School


class SchoolForm(forms.ModelForm):
    class Meta:
        model = School
        fields = [
            'name', 'code', 'principal', 'established',
            'address', 'city', 'state', 'country',
            'phone', 'email', 'logo', 'is_active',
        ]
        widgets = {
            'name': forms.TextInput(attrs={'placeholder': 'School name'}),
            'code': forms.TextInput(attrs={'placeholder': 'e.g., SHS-01'}),
            'established': forms.NumberInput(attrs={'min': 1800, 'max': 2100}),
            'address': forms.Textarea(attrs={'rows': 2}),
            'phone': forms.TextInput(attrs={'placeholder': 'Phone number'}),
        }

    def clean_code(self):
        return self.cleaned_data['code'].strip().upper()
