"""CSV/Excel roster parsing.

Headers are matched after lower-casing and removing spaces and
underscores, so ``Enrollment Number``, ``enrollment_number`` and
``EnrollmentNumber`` all name the same column. Each returned row carries
``row``, its 1-based sheet row number (the header is row 1).
"""
import io
import logging
from typing import Dict, List
import pandas as pd
from campus_attendance.utils.errors import ValidationError

logger = logging.getLogger(__name__)

STUDENT_COLUMNS = {
    'enrollmentnumber': 'enrollment_number',
    'name': 'name',
    'semester': 'semester',
    'division': 'division',
    'password': 'password',
}

PROFESSOR_COLUMNS = {
    'name': 'name',
    'login': 'login',
    'username': 'login',
    'email': 'login',
    'password': 'password',
}

CLASS_COLUMNS = {
    'classname': 'class_name',
    'division': 'division',
}

# Rows missing any of these are dropped while parsing
DROP_IF_MISSING = {
    'professor': ('name', 'login'),
    'class': ('class_name', 'division'),
}

COLUMNS = {
    'student': STUDENT_COLUMNS,
    'professor': PROFESSOR_COLUMNS,
    'class': CLASS_COLUMNS,
}

def normalize_header(header) -> str:
    return ''.join(str(header or '').strip().lower().replace('_', ' ').split())

def allowed_file(filename: str, allowed_extensions) -> bool:
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in allowed_extensions

def read_frame(stream, filename: str) -> pd.DataFrame:
    """Load the first sheet of an upload with every cell as text."""
    if filename.lower().endswith('.csv'):
        raw = stream.read()
        if isinstance(raw, bytes):
            raw = raw.decode('utf-8-sig')
        df = pd.read_csv(io.StringIO(raw), dtype=str, keep_default_na=False)
    else:
        df = pd.read_excel(stream, dtype=str)
    return df.fillna('')

def frame_to_rows(df: pd.DataFrame, kind: str) -> List[Dict]:
    mapping = COLUMNS[kind]
    columns = {}
    for column in df.columns:
        field = mapping.get(normalize_header(column))
        if field and field not in columns.values():
            columns[column] = field
    
    rows = []
    for index, record in enumerate(df.to_dict(orient='records')):
        row = {field: str(record.get(column, '')).strip() for column, field in columns.items()}
        if not any(row.values()):
            continue
        for field in set(mapping.values()):
            row.setdefault(field, '')
        if any(not row[field] for field in DROP_IF_MISSING.get(kind, ())):
            continue
        row['row'] = index + 2
        rows.append(row)
    return rows

def parse_upload(file_storage, kind: str) -> List[Dict]:
    """Rows of an uploaded roster, or an empty list when unreadable."""
    try:
        df = read_frame(file_storage.stream, file_storage.filename or '')
    except Exception as e:
        logger.warning('Could not read uploaded %s file %s: %s', kind, file_storage.filename, e)
        return []
    return frame_to_rows(df, kind)

def uploaded_rows(files, kind: str, allowed_extensions) -> List[Dict]:
    """Validate the ``file`` part of a multipart request and parse it."""
    if 'file' not in files:
        raise ValidationError('Please upload an Excel file')
    file_storage = files['file']
    if not file_storage.filename:
        raise ValidationError('No file selected')
    if not allowed_file(file_storage.filename, allowed_extensions):
        raise ValidationError('Invalid file format. Use CSV or Excel')
    return parse_upload(file_storage, kind)
