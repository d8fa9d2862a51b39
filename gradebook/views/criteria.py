import logging

from django.db.models import Sum
from django.http import JsonResponse
from django.shortcuts import get_object_or_404

from academics.views.base import get_subject
from core.api import api_view, read_json
from ..forms import EvaluationCriterionForm
from ..models import EvaluationCriterion

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
def criteria_list(request, subject_pk):
    """
    Evaluation criteria of a subject with the weight used per period.

    POST creates a criterion; the period's percentages may not exceed 100.
    """
    subject = get_subject(subject_pk)

    if request.method == 'POST':
        form = EvaluationCriterionForm(read_json(request), subject=subject)
        if not form.is_valid():
            return JsonResponse({'errors': form.errors}, status=400)
        criterion = form.save()
        logger.info(f"Created criterion {criterion} for {subject}")
        return JsonResponse({'criterion': criterion.to_dict()}, status=201)

    criteria = subject.evaluation_criteria.all()
    totals = {
        str(row['grading_period']): row['total']
        for row in criteria.values('grading_period').annotate(total=Sum('percentage'))
    }
    return JsonResponse({
        'criteria': [criterion.to_dict() for criterion in criteria],
        'percentage_by_period': totals,
    })


@api_view(['POST'])
def criterion_delete(request, pk):
    """Delete a criterion together with its assignments and their grades."""
    criterion = get_object_or_404(EvaluationCriterion, pk=pk)
    assignment_count = criterion.assignments.count()
    criterion.delete()
    logger.info(f"Deleted criterion {pk} and {assignment_count} assignments")
    return JsonResponse({'deleted': True, 'assignments_deleted': assignment_count})
