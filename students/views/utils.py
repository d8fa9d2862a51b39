import logging

import pandas as pd
from django.core.exceptions import ValidationError
from django.db import transaction

from students.models import Student

logger = logging.getLogger(__name__)

MAX_IMPORT_FILE_SIZE = 5 * 1024 * 1024  # 5 MB
NAME_COLUMNS = ('name', 'student_name', 'full_name', 'nombre')


def clean_value(value):
    """Clean a cell value, handling NaN and empty strings."""
    if value is None:
        return ''
    if isinstance(value, float) and pd.isna(value):
        return ''
    if isinstance(value, str):
        return value.strip()
    return str(value).strip()


def parse_names(text):
    """One name per line; blank lines and repeated names are dropped."""
    names = []
    seen = set()
    for line in (text or '').splitlines():
        name = ' '.join(line.split())
        if name and name.lower() not in seen:
            seen.add(name.lower())
            names.append(name)
    return names


def read_roster_file(file):
    """
    Load an uploaded .xlsx or .csv roster into a DataFrame.

    Column names are normalized (stripped, lowercase, spaces to underscores).
    """
    ext = file.name.rsplit('.', 1)[-1].lower() if '.' in file.name else ''
    if ext not in ('xlsx', 'csv'):
        raise ValidationError('Only .xlsx and .csv files are supported.')
    if file.size > MAX_IMPORT_FILE_SIZE:
        raise ValidationError('The file is too large (maximum 5 MB).')

    try:
        if ext == 'xlsx':
            df = pd.read_excel(file, engine='openpyxl')
        else:
            df = pd.read_csv(file)
    except (ValueError, KeyError, OSError, pd.errors.ParserError) as e:
        logger.warning(f"Could not read roster file {file.name}: {e}")
        raise ValidationError(f'Could not read the file: {e}')

    if df.empty:
        raise ValidationError('The file is empty.')

    df.columns = df.columns.astype(str).str.strip().str.lower().str.replace(' ', '_')
    return df


def names_from_dataframe(df):
    column = next((c for c in NAME_COLUMNS if c in df.columns), None)
    if column is None:
        raise ValidationError(f"The file needs a 'name' column. Found: {', '.join(df.columns)}")
    return parse_names('\n'.join(clean_value(value) for value in df[column]))


def bulk_add_students(subject, names):
    """
    Add ``names`` to the subject's roster.

    Returns:
        tuple: (created students, names skipped because they already exist)
    """
    existing = {name.lower() for name in subject.students.values_list('name', flat=True)}
    to_create = [name for name in names if name.lower() not in existing]
    skipped = [name for name in names if name.lower() in existing]

    with transaction.atomic():
        created = Student.objects.bulk_create([Student(subject=subject, name=name) for name in to_create])

    logger.info(f"Added {len(created)} students to {subject} ({len(skipped)} skipped)")
    return created, skipped
