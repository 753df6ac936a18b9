"""Bulk roster ingestion from parsed spreadsheet rows.

Every kind follows the same walk: fetch the keys that already exist, then
classify rows in file order as ``already exists``, ``duplicate in file``
or queued, and insert queued rows one transaction each. A unique
constraint violation on insert means another writer got there first and
is reported as ``race``.
"""
from typing import Callable, Dict, List
from flask import current_app
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from campus_attendance import db
from campus_attendance.models import Professor, Student, SchoolClass
from campus_attendance.services import identity
from campus_attendance.services.class_service import ClassService
from campus_attendance.services.professor_service import ProfessorService
from campus_attendance.services.student_service import StudentService
from campus_attendance.utils.errors import ValidationError
from campus_attendance.utils.validators import Validator

ALREADY_EXISTS = 'already exists'
DUPLICATE_IN_FILE = 'duplicate in file'
RACE = 'race'

def _semester(value):
    try:
        number = int(float(str(value).strip()))
    except (TypeError, ValueError):
        return None
    return number if number >= 1 else None

def _default_password() -> str:
    return current_app.config.get('DEFAULT_TEMP_PASSWORD', 'Temp@1234')

class IngestionResult:
    """Per-row outcome of one bulk upload."""
    
    def __init__(self, total: int):
        self.total = total
        self.inserted: List[Dict] = []
        self.skipped: List[Dict] = []
        self.errors: List[Dict] = []
    
    def skip(self, key, reason: str, row: int) -> None:
        self.skipped.append({'key': key, 'reason': reason, 'row': row})
    
    def to_dict(self) -> dict:
        return {
            'total_processed': self.total,
            'inserted': len(self.inserted),
            'inserted_details': self.inserted,
            'skipped': len(self.skipped),
            'skipped_details': self.skipped,
            'errors': self.errors
        }

class IngestionService:
    @staticmethod
    def classify(rows: List[Dict], existing: set, key_of: Callable, result: IngestionResult) -> List[Dict]:
        """Rows to insert, in file order; the rest are recorded as skipped."""
        queued = []
        seen = set()
        for row in rows:
            key = key_of(row)
            if key in existing:
                result.skip(row['display_key'], ALREADY_EXISTS, row['row'])
            elif key in seen:
                result.skip(row['display_key'], DUPLICATE_IN_FILE, row['row'])
            else:
                seen.add(key)
                queued.append(row)
        return queued
    
    @staticmethod
    def insert_each(queued: List[Dict], insert_one: Callable, result: IngestionResult, kind: str) -> None:
        for row in queued:
            try:
                details = insert_one(row)
                db.session.commit()
            except IntegrityError:
                db.session.rollback()
                result.skip(row['display_key'], RACE, row['row'])
                continue
            except Exception as e:
                db.session.rollback()
                current_app.logger.warning(f'Bulk {kind} upload failed on row {row["row"]}: {e}')
                result.errors.append({'row': row['row'], 'key': row['display_key'], 'error': str(e)})
                continue
            details['row'] = row['row']
            result.inserted.append(details)
        
        current_app.logger.info(
            f'Bulk {kind} upload: {len(result.inserted)} inserted, '
            f'{len(result.skipped)} skipped, {len(result.errors)} errors'
        )
    
    @staticmethod
    def ingest_students(tenant_id: int, rows: List[Dict]) -> dict:
        if not rows:
            raise ValidationError('No valid student data found in the file')
        
        prepared = []
        for row in rows:
            enrollment_number = identity.normalize_enrollment(row.get('enrollment_number'))
            name = str(row.get('name') or '').strip()
            semester = _semester(row.get('semester'))
            if not enrollment_number or not name or semester is None:
                raise ValidationError('Some student records are missing required fields')
            prepared.append(dict(
                row,
                enrollment_number=enrollment_number,
                name=name,
                semester=semester,
                display_key=enrollment_number
            ))
        
        scope = identity.student_scope(tenant_id)
        keys = [r['enrollment_number'] for r in prepared]
        existing = set(db.session.execute(
            select(Student.enrollment_number).where(
                Student.enrollment_scope == scope,
                Student.enrollment_number.in_(keys)
            )
        ).scalars())
        
        result = IngestionResult(len(prepared))
        queued = IngestionService.classify(prepared, existing, lambda r: r['enrollment_number'], result)
        default_password = _default_password()
        
        def insert_one(row):
            password = row.get('password') or ''
            if not password or not Validator.validate_password(password)['is_valid']:
                password = default_password
            student = StudentService.build_student(
                tenant_id, row['enrollment_number'], row['name'], row['semester'],
                division=row.get('division'), password=password
            )
            return {'id': student.id, 'enrollment_number': student.enrollment_number, 'name': student.name}
        
        IngestionService.insert_each(queued, insert_one, result, 'student')
        return result.to_dict()
    
    @staticmethod
    def ingest_professors(tenant_id: int, rows: List[Dict]) -> dict:
        if not rows:
            raise ValidationError('No valid professor data found')
        
        result = IngestionResult(len(rows))
        prepared = []
        for row in rows:
            raw_login = str(row.get('login') or '').strip()
            try:
                login = identity.validate_professor_login(raw_login)
            except ValidationError as e:
                result.errors.append({'row': row['row'], 'key': raw_login, 'error': e.message})
                continue
            prepared.append(dict(
                row,
                name=str(row.get('name') or '').strip(),
                login=login,
                login_key=identity.normalize_login(login),
                display_key=login
            ))
        
        scope = identity.professor_scope(tenant_id)
        existing = set(db.session.execute(
            select(Professor.login_key).where(
                Professor.identity_scope == scope,
                Professor.login_key.in_([r['login_key'] for r in prepared])
            )
        ).scalars()) if prepared else set()
        
        queued = IngestionService.classify(prepared, existing, lambda r: r['login_key'], result)
        default_password = _default_password()
        
        def insert_one(row):
            password = row.get('password') or ''
            temp_password = None
            if not password:
                password = temp_password = default_password
            professor = ProfessorService.build_professor(tenant_id, row['name'], row['login'], password)
            return {
                'id': professor.id,
                'name': professor.name,
                'login': professor.login,
                'temp_password': temp_password
            }
        
        IngestionService.insert_each(queued, insert_one, result, 'professor')
        return result.to_dict()
    
    @staticmethod
    def ingest_classes(tenant_id: int, rows: List[Dict]) -> dict:
        if not rows:
            raise ValidationError('No valid class data found')
        
        prepared = []
        for row in rows:
            class_name = str(row.get('class_name') or '').strip()
            division = str(row.get('division') or '').strip()
            prepared.append(dict(
                row,
                class_name=class_name,
                division=division,
                display_key=f'{class_name} ({division})'
            ))
        
        existing = set(
            (name, division) for name, division in db.session.execute(
                select(func.lower(SchoolClass.class_name), func.lower(SchoolClass.division))
                .where(SchoolClass.tenant_id == tenant_id)
            )
        )
        
        result = IngestionResult(len(prepared))
        queued = IngestionService.classify(
            prepared, existing, lambda r: (r['class_name'].lower(), r['division'].lower()), result
        )
        
        def insert_one(row):
            school_class = ClassService.build_class(tenant_id, row['class_name'], row['division'])
            return school_class.to_summary()
        
        IngestionService.insert_each(queued, insert_one, result, 'class')
        return result.to_dict()
