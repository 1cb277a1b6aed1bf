import logging

from django import forms
from django.forms import inlineformset_factory

from core.choices import TraitCategory
from teachers.models import Teacher
from .models import MarkDistribution, MarkDistributionComponent, ResultLock
from .traits import TRAITS_BY_CATEGORY, TRAIT_RATINGS
from . import config

logger = logging.getLogger(__name__)


class MarkDistributionForm(forms.ModelForm):
    """Form for creating/editing mark distributions."""

    class Meta:
        model = MarkDistribution
        fields = ['title', 'exam_type', 'session', 'term', 'school']
        widgets = {
            'title': forms.TextInput(attrs={'class': 'input input-bordered w-full', 'placeholder': 'e.g., 2024/2025 Final'}),
            'exam_type': forms.Select(attrs={'class': 'select select-bordered w-full'}),
            'session': forms.Select(attrs={'class': 'select select-bordered w-full'}),
            'term': forms.Select(attrs={'class': 'select select-bordered w-full'}),
            'school': forms.Select(attrs={'class': 'select select-bordered w-full'}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['session'].required = False
        self.fields['school'].required = False
        self.fields['term'].required = False
        self.fields['session'].empty_label = 'Any session'
        self.fields['school'].empty_label = 'All schools'


class MarkDistributionComponentForm(forms.ModelForm):
    class Meta:
        model = MarkDistributionComponent
        fields = ['component_id', 'label', 'weight', 'order']
        widgets = {
            'component_id': forms.TextInput(attrs={'class': 'input input-bordered input-sm w-full', 'placeholder': 'e.g., ca1'}),
            'label': forms.TextInput(attrs={'class': 'input input-bordered input-sm w-full', 'placeholder': 'e.g., CA1'}),
            'weight': forms.NumberInput(attrs={'class': 'input input-bordered input-sm w-24', 'min': '1', 'max': '100'}),
            'order': forms.NumberInput(attrs={'class': 'input input-bordered input-sm w-20', 'min': '0'}),
        }


class BaseComponentFormSet(forms.BaseInlineFormSet):

    def clean(self):
        super().clean()
        if any(self.errors):
            return

        seen = set()
        total = 0
        live = 0
        for form in self.forms:
            if not form.cleaned_data or form.cleaned_data.get('DELETE'):
                continue
            component_id = form.cleaned_data['component_id']
            if component_id in seen:
                raise forms.ValidationError(f'Component "{component_id}" appears more than once.')
            seen.add(component_id)
            total += form.cleaned_data['weight']
            live += 1

        if not live:
            raise forms.ValidationError('A distribution needs at least one component.')
        # Totals other than 100 are allowed (midterms are usually out of 50)
        self.total_weight = total
        if total != 100:
            logger.info(f"Mark distribution components total {total}, not 100")


MarkDistributionComponentFormSet = inlineformset_factory(
    MarkDistribution,
    MarkDistributionComponent,
    form=MarkDistributionComponentForm,
    formset=BaseComponentFormSet,
    extra=1,
    can_delete=True,
)


class ResultLockForm(forms.ModelForm):
    class Meta:
        model = ResultLock
        fields = ['is_locked', 'allowed_teachers', 'notes']
        widgets = {
            'is_locked': forms.CheckboxInput(attrs={'class': 'toggle toggle-primary'}),
            'allowed_teachers': forms.SelectMultiple(attrs={'class': 'select select-bordered w-full'}),
            'notes': forms.Textarea(attrs={'class': 'textarea textarea-bordered w-full', 'rows': 2}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['allowed_teachers'].queryset = Teacher.objects.filter(status='active')
        self.fields['allowed_teachers'].required = False


class StudentTraitsForm(forms.Form):
    """One 1-5 rating field per trait; blank leaves the trait unrated."""

    RATING_CHOICES = [('', '-')] + [(value, f'{value} - {label}') for value, label in TRAIT_RATINGS.items()]

    def __init__(self, *args, initial_scores=None, **kwargs):
        super().__init__(*args, **kwargs)
        initial_scores = initial_scores or {}
        for category, traits in TRAITS_BY_CATEGORY.items():
            for key, label in traits.items():
                self.fields[key] = forms.TypedChoiceField(
                    label=label,
                    choices=self.RATING_CHOICES,
                    coerce=int,
                    empty_value=None,
                    required=False,
                    initial=initial_scores.get(key),
                    widget=forms.Select(attrs={'class': 'select select-bordered select-sm'}),
                )
                self.fields[key].category = category

    def rated(self):
        """(category, trait, score) for every rated trait."""
        for name, field in self.fields.items():
            score = self.cleaned_data.get(name)
            if score is not None:
                yield field.category, name, score

    def grouped_fields(self):
        return [
            (TraitCategory(category).label, [self[key] for key in traits])
            for category, traits in TRAITS_BY_CATEGORY.items()
        ]


class ScoreImportForm(forms.Form):
    file = forms.FileField(help_text='Excel (.xlsx) or CSV export of the score sheet')

    def clean_file(self):
        file = self.cleaned_data.get('file')
        if file:
            ext = file.name.split('.')[-1].lower()
            if ext not in ['xlsx', 'csv']:
                raise forms.ValidationError('Only .xlsx and .csv files are supported.')
            if file.size > config.MAX_FILE_SIZE:
                raise forms.ValidationError('File is too large.')
        return file
