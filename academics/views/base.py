"""Base utilities and helper functions for academics views."""
from django.shortcuts import get_object_or_404

from core.calendar import get_academic_calendar
from ..models import Subject


def get_subject(pk):
    return get_object_or_404(Subject, pk=pk)


def get_calendar():
    """Calendar used by the views; tests patch this to inject their own."""
    return get_academic_calendar()
