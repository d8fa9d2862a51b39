import openpyxl
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side
from openpyxl.utils import get_column_letter
from django.core.exceptions import ValidationError
from django.http import HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404
from django.utils.text import slugify

from academics.views.base import get_calendar, get_subject
from core.api import api_view
from core.scheduling import FINAL_PERIOD_KEY
from core.utils import parse_iso_date
from students.models import Student
from .. import config
from ..utils import build_class_report, build_student_report, grading_periods


def _period_key(request):
    return request.GET.get('period') or FINAL_PERIOD_KEY


def _as_of(request):
    """Last day counted for attendance, ``?as_of=`` or today."""
    value = request.GET.get('as_of')
    if not value:
        return None
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError({'as_of': f"'{value}' is not a valid date."})


@api_view(['GET'])
def periods(request, subject_pk):
    subject = get_subject(subject_pk)
    return JsonResponse({'periods': [w.as_dict() for w in grading_periods(subject).values()]})


@api_view(['GET'])
def student_report(request, subject_pk, student_pk):
    """Per-criterion averages, final score and attendance of one student."""
    subject = get_subject(subject_pk)
    student = get_object_or_404(Student, pk=student_pk, subject=subject)
    report = build_student_report(student, _period_key(request), _as_of(request), get_calendar())
    return JsonResponse(report.as_dict())


@api_view(['GET'])
def class_report(request, subject_pk):
    """Final score and attendance ratio of every student for a period."""
    subject = get_subject(subject_pk)
    reports = build_class_report(subject, _period_key(request), _as_of(request), get_calendar())
    return JsonResponse({
        'period': _period_key(request),
        'students': [
            {
                'student': report.student.to_dict(),
                'final_score': report.final_score,
                'attended': len(report.attended_dates),
                'missed': len(report.missed_dates),
            }
            for report in reports
        ],
    })


@api_view(['GET'])
def export_class_report(request, subject_pk):
    """Download the period's grades of the whole class as an Excel workbook."""
    subject = get_subject(subject_pk)
    period_key = _period_key(request)
    reports = build_class_report(subject, period_key, _as_of(request), get_calendar())

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Grades"

    # Styles
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color=config.EXCEL_HEADER_COLOR, end_color=config.EXCEL_HEADER_COLOR, fill_type="solid")
    thin_border = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )

    # Header row: one column per criterion in scope
    criteria = list(reports[0].per_criterion) if reports else []
    headers = ["Student", "Attended", "Missed"]
    headers += [f"{result.name} ({result.percentage}%)" for result in criteria]
    headers.append("Final score")

    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal='center', wrap_text=True)
        cell.border = thin_border

    for row, report in enumerate(reports, 2):
        values = [report.student.name, len(report.attended_dates), len(report.missed_dates)]
        values += [
            round(result.average, 2) if result.average is not None else None
            for result in report.per_criterion
        ]
        values.append(round(report.final_score, 2))
        for col, value in enumerate(values, 1):
            cell = ws.cell(row=row, column=col, value=value)
            cell.border = thin_border
            if col > 1:
                cell.alignment = Alignment(horizontal='center')

    ws.column_dimensions['A'].width = 30
    for col in range(2, len(headers) + 1):
        ws.column_dimensions[get_column_letter(col)].width = 16

    response = HttpResponse(
        content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )
    filename = f"grades_{slugify(subject.name) or subject.pk}_{period_key}.xlsx"
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    wb.save(response)

    return response
