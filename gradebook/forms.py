from decimal import Decimal

from django import forms

from core.choices import CriterionType
from .models import EvaluationCriterion, Assignment, MAX_SCORE


class EvaluationCriterionForm(forms.ModelForm):
    """Form for creating/editing evaluation criteria of a subject."""

    class Meta:
        model = EvaluationCriterion
        fields = ['name', 'percentage', 'type', 'assignment_limit', 'max_points', 'grading_period']
        widgets = {
            'name': forms.TextInput(attrs={'placeholder': 'e.g., Homework'}),
            'percentage': forms.NumberInput(attrs={'min': '1', 'max': '100'}),
            'max_points': forms.NumberInput(attrs={'min': '0', 'step': '0.5'}),
        }

    def __init__(self, *args, subject=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.subject = subject
        # Set on instance for model validation in clean()
        if subject:
            self.instance.subject = subject
        self.fields['assignment_limit'].required = False
        self.fields['grading_period'].required = False

    def clean_name(self):
        name = (self.cleaned_data.get('name') or '').strip()
        if not name:
            raise forms.ValidationError('Criterion name is required.')
        return name

    def clean_assignment_limit(self):
        return self.cleaned_data.get('assignment_limit') or self.instance.assignment_limit

    def clean_grading_period(self):
        return self.cleaned_data.get('grading_period') or 1

    def clean(self):
        cleaned_data = super().clean()
        if cleaned_data.get('type') != CriterionType.PARTICIPATION:
            cleaned_data['max_points'] = None
        return cleaned_data


class AssignmentForm(forms.ModelForm):
    """Form for creating/editing assignments."""

    class Meta:
        model = Assignment
        fields = ['name', 'evaluation_criterion']
        widgets = {
            'name': forms.TextInput(attrs={'placeholder': 'e.g., Essay 1'}),
        }

    def __init__(self, *args, subject=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.subject = subject
        if subject:
            self.instance.subject = subject
            self.fields['evaluation_criterion'].queryset = EvaluationCriterion.objects.filter(subject=subject)

    def clean_name(self):
        name = (self.cleaned_data.get('name') or '').strip()
        if not name:
            raise forms.ValidationError('Assignment name is required.')
        return name


class GradeForm(forms.Form):
    """Form for entering one score."""
    student_id = forms.IntegerField()
    score = forms.DecimalField(
        min_value=Decimal('0'),
        max_value=MAX_SCORE,
        max_digits=4,
        decimal_places=2,
    )
