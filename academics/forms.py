from django import forms

from core.scheduling import PERIOD_KEYS
from .models import Subject


class SubjectForm(forms.ModelForm):
    """Form for creating/editing subjects."""

    class Meta:
        model = Subject
        fields = ['name', 'term']
        widgets = {
            'name': forms.TextInput(attrs={'placeholder': 'e.g., Physics I'}),
        }

    def clean_name(self):
        name = (self.cleaned_data.get('name') or '').strip()
        if not name:
            raise forms.ValidationError('Subject name is required.')
        return name


class GradingPeriodDatesForm(forms.Form):
    """First day of each grading period. Blank periods are left unset."""
    period_1 = forms.DateField(required=False)
    period_2 = forms.DateField(required=False)
    period_3 = forms.DateField(required=False)
    period_4 = forms.DateField(required=False)

    def clean(self):
        cleaned_data = super().clean()
        previous = None
        for key in PERIOD_KEYS:
            start = cleaned_data.get(f'period_{key}')
            if start is None:
                continue
            if previous is not None and start <= previous[1]:
                self.add_error(
                    f'period_{key}',
                    f'Period {key} must start after period {previous[0]}.'
                )
            previous = (key, start)
        return cleaned_data

    def to_mapping(self):
        """Dates as stored on ``Subject.grading_periods_dates``."""
        return {
            key: self.cleaned_data[f'period_{key}'].isoformat()
            for key in PERIOD_KEYS
            if self.cleaned_data.get(f'period_{key}')
        }

    @classmethod
    def from_mapping(cls, data):
        """Accept ``{"1": "2025-09-01", ...}`` as well as ``period_1`` style keys."""
        normalized = {}
        for key, value in (data or {}).items():
            key = str(key)
            name = key if key.startswith('period_') else f'period_{key}'
            normalized[name] = value or ''
        return cls(normalized)


class ParticipationForm(forms.Form):
    student_id = forms.IntegerField()
    points = forms.DecimalField(min_value=0, max_digits=5, decimal_places=2)
    date = forms.DateField(required=False)
