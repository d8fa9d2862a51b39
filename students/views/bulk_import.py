import io

import pandas as pd
from django.http import FileResponse, JsonResponse

from academics.views.base import get_subject
from core.api import api_view, json_error
from .utils import bulk_add_students, names_from_dataframe, read_roster_file


@api_view(['POST'])
def bulk_import(request, subject_pk):
    """Import a roster from an Excel/CSV file with a ``name`` column."""
    subject = get_subject(subject_pk)
    if 'file' not in request.FILES:
        return json_error('Please select a file to upload.')

    df = read_roster_file(request.FILES['file'])
    names = names_from_dataframe(df)
    if not names:
        return json_error('No student names found in the file.')

    created, skipped = bulk_add_students(subject, names)
    return JsonResponse({
        'created': [s.name for s in created],
        'skipped': skipped,
    }, status=201)


@api_view(['GET'])
def bulk_import_template(request, subject_pk):
    """Download a sample import template."""
    get_subject(subject_pk)
    df = pd.DataFrame({'name': ['Ana López', 'Carlos Pérez']})
    output = io.BytesIO()

    with pd.ExcelWriter(output, engine='openpyxl') as writer:
        df.to_excel(writer, index=False, sheet_name='Students')

    output.seek(0)
    return FileResponse(
        output,
        as_attachment=True,
        filename='student_import_template.xlsx',
        content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )
