from django import forms

from core.choices import PlannedClassStatus
from .models import PlannedClass


class PlannedClassForm(forms.ModelForm):
    """Form for adding a single planned class."""

    class Meta:
        model = PlannedClass
        fields = ['class_date', 'title', 'description', 'status']

    def __init__(self, *args, subject=None, **kwargs):
        super().__init__(*args, **kwargs)
        if subject:
            self.instance.subject = subject
        self.fields['status'].required = False

    def clean_title(self):
        title = (self.cleaned_data.get('title') or '').strip()
        if not title:
            raise forms.ValidationError('Title is required.')
        return title

    def clean_status(self):
        return self.cleaned_data.get('status') or PlannedClassStatus.PLANNED


class SyllabusTextForm(forms.Form):
    text = forms.CharField()
    start_date = forms.DateField()


class GenerateSyllabusForm(forms.Form):
    description = forms.CharField(max_length=2000)
    num_classes = forms.IntegerField(min_value=1, max_value=200)
    start_date = forms.DateField()


class StatusForm(forms.Form):
    status = forms.ChoiceField(choices=PlannedClassStatus.choices)
