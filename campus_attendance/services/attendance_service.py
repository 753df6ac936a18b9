"""Bulk attendance marking and attendance reads."""
from datetime import datetime
from typing import Dict, List
from flask import current_app
from sqlalchemy import case, func, select
from campus_attendance import db
from campus_attendance.models import AttendanceRecord, SchoolClass, Student, class_professors
from campus_attendance.services.notification_service import NotificationService
from campus_attendance.utils.dates import month_window_ms, resolve_date_ms
from campus_attendance.utils.errors import AuthorizationError, NotFoundError, ValidationError
from campus_attendance.utils.helpers import chunked, parse_id
from campus_attendance.utils.sql import dialect_insert
from campus_attendance.utils.validators import parse_month_year

INVALID_STUDENT_ID = 'invalid student id'
STUDENT_NOT_FOUND = 'student not found'
DUPLICATE_IN_REQUEST = 'duplicate in request'

# Rows per INSERT statement, keeps bound parameters under SQLite's limit
UPSERT_CHUNK = 100

UPSERT_KEYS = ['student_id', 'class_id', 'date_ms', 'slot_number']

def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes', 'present')
    return bool(value)

def _parse_slot(value):
    if isinstance(value, bool):
        return None
    try:
        slot = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return slot if slot >= 1 else None

def _slot_filter(value):
    slot = _parse_slot(value)
    if slot is None:
        raise ValidationError('slot_number must be a positive integer')
    return slot

class AttendanceService:
    @staticmethod
    def check_professor_access(professor_id: int, tenant_id: int, class_id: int) -> SchoolClass:
        """Class of the tenant whose roster (if any) includes the professor."""
        school_class = SchoolClass.get_owned(class_id, tenant_id)
        if not school_class:
            raise NotFoundError('Class not found')
        
        roster = set(db.session.execute(
            select(class_professors.c.professor_id).where(class_professors.c.class_id == school_class.id)
        ).scalars())
        # An empty roster leaves the class open to every professor of the tenant
        if roster and professor_id not in roster:
            raise AuthorizationError('Not assigned to this class')
        return school_class
    
    @staticmethod
    def dedupe(records: List, tenant_id: int):
        """Split submitted records into ``{student_id: is_present}`` and skips.

        The last record for a student wins; each earlier one is skipped.
        """
        parsed = []
        for record in records:
            raw = record.get('student_id') if isinstance(record, dict) else None
            parsed.append((raw, parse_id(raw), record))
        
        candidate_ids = {sid for _, sid, _ in parsed if sid is not None}
        known = set(db.session.execute(
            select(Student.id).where(Student.id.in_(candidate_ids), Student.tenant_id == tenant_id)
        ).scalars()) if candidate_ids else set()
        
        last_index = {}
        for index, (_, sid, _) in enumerate(parsed):
            if sid in known:
                last_index[sid] = index
        
        kept: Dict[int, bool] = {}
        skipped = []
        for index, (raw, sid, record) in enumerate(parsed):
            if sid is None:
                skipped.append({'student_id': raw, 'reason': INVALID_STUDENT_ID})
            elif sid not in known:
                skipped.append({'student_id': raw, 'reason': STUDENT_NOT_FOUND})
            elif last_index[sid] != index:
                skipped.append({'student_id': raw, 'reason': DUPLICATE_IN_REQUEST})
            else:
                kept[sid] = _as_bool(record.get('is_present'))
        return kept, skipped
    
    @staticmethod
    def _upsert_statement(rows: List[dict]):
        stmt = dialect_insert(AttendanceRecord).values(rows)
        return stmt.on_conflict_do_update(
            index_elements=UPSERT_KEYS,
            set_={
                'is_present': stmt.excluded.is_present,
                'marked_by_id': stmt.excluded.marked_by_id,
                'updated_at': stmt.excluded.updated_at
            }
        )
    
    @staticmethod
    def upsert(rows: List[dict]) -> List[dict]:
        """Write all rows in one transaction, falling back to one per row.

        Returns the rows that could not be written.
        """
        if not rows:
            return []
        try:
            for chunk in chunked(rows, UPSERT_CHUNK):
                db.session.execute(AttendanceService._upsert_statement(chunk))
            db.session.commit()
            return []
        except Exception as e:
            db.session.rollback()
            current_app.logger.warning(f'Batched attendance upsert failed, retrying per row: {e}')
        
        failed = []
        for row in rows:
            try:
                db.session.execute(AttendanceService._upsert_statement([row]))
                db.session.commit()
            except Exception as e:
                db.session.rollback()
                current_app.logger.error(f'Attendance upsert failed for student {row["student_id"]}: {e}')
                failed.append({'student_id': row['student_id'], 'error': str(e)})
        return failed
    
    @staticmethod
    def mark_bulk(principal, class_id, slot_number, records, date_ms=None, date=None) -> dict:
        class_pk = parse_id(class_id)
        slot = _parse_slot(slot_number)
        if class_pk is None or slot is None or not isinstance(records, list):
            raise ValidationError('class_id, slot_number, and records[] are required')
        if len(records) == 0:
            raise ValidationError('records[] cannot be empty')
        
        school_class = AttendanceService.check_professor_access(principal.identity, principal.tenant_id, class_pk)
        
        session_date_ms = resolve_date_ms(date_ms, date)
        if session_date_ms is None:
            raise ValidationError('Provide date_ms or date (YYYY-MM-DD)')
        
        kept, skipped = AttendanceService.dedupe(records, principal.tenant_id)
        
        now = datetime.utcnow()
        rows = [
            {
                'student_id': student_id,
                'class_id': school_class.id,
                'date_ms': session_date_ms,
                'slot_number': slot,
                'is_present': is_present,
                'marked_by_id': principal.identity,
                'created_at': now,
                'updated_at': now
            }
            for student_id, is_present in kept.items()
        ]
        failed = AttendanceService.upsert(rows)
        failed_ids = {f['student_id'] for f in failed}
        saved_ids = [sid for sid in kept if sid not in failed_ids]
        
        current_app.logger.info(
            f'Attendance for class {school_class.id} slot {slot} on {session_date_ms}: '
            f'{len(saved_ids)} saved, {len(skipped)} skipped, {len(failed)} failed'
        )
        
        try:
            NotificationService.notify_attendance(school_class, saved_ids, slot, session_date_ms)
        except Exception:
            db.session.rollback()
            current_app.logger.exception('Attendance notification failed')
        
        return {
            'message': 'Attendance processed & notifications triggered',
            'saved_count': len(saved_ids),
            'skipped_count': len(skipped),
            'skipped_student_ids': [s['student_id'] for s in skipped],
            'skipped': skipped,
            'failed': failed
        }
    
    # Reads
    
    @staticmethod
    def _tenant_class(class_id, tenant_id: int) -> SchoolClass:
        class_pk = parse_id(class_id)
        school_class = SchoolClass.get_owned(class_pk, tenant_id) if class_pk else None
        if not school_class:
            raise NotFoundError('Class not found')
        return school_class
    
    @staticmethod
    def _month_filter(query, month, year):
        if month in (None, '') or year in (None, ''):
            return query
        month, year = parse_month_year(month, year)
        start, end = month_window_ms(year, month)
        return query.filter(AttendanceRecord.date_ms >= start, AttendanceRecord.date_ms <= end)
    
    @staticmethod
    def by_date(tenant_id: int, class_id, date_ms=None, date=None, slot_number=None) -> List[dict]:
        school_class = AttendanceService._tenant_class(class_id, tenant_id)
        session_date_ms = resolve_date_ms(date_ms, date)
        if session_date_ms is None:
            raise ValidationError('Provide date_ms or date (YYYY-MM-DD)')
        
        query = AttendanceRecord.query.filter_by(class_id=school_class.id, date_ms=session_date_ms)
        if slot_number not in (None, ''):
            query = query.filter_by(slot_number=_slot_filter(slot_number))
        records = query.order_by(AttendanceRecord.slot_number, AttendanceRecord.student_id).all()
        return [r.to_dict() for r in records]
    
    @staticmethod
    def by_class(tenant_id: int, class_id, date_ms=None, slot_number=None) -> List[dict]:
        school_class = AttendanceService._tenant_class(class_id, tenant_id)
        query = AttendanceRecord.query.filter_by(class_id=school_class.id)
        if date_ms not in (None, ''):
            session_date_ms = resolve_date_ms(date_ms)
            if session_date_ms is None:
                raise ValidationError('Invalid date_ms')
            query = query.filter_by(date_ms=session_date_ms)
        if slot_number not in (None, ''):
            query = query.filter_by(slot_number=_slot_filter(slot_number))
        records = query.order_by(
            AttendanceRecord.date_ms, AttendanceRecord.slot_number, AttendanceRecord.student_id
        ).all()
        return [r.to_dict() for r in records]
    
    @staticmethod
    def for_student(student: Student, month=None, year=None) -> List[dict]:
        query = AttendanceService._month_filter(
            AttendanceRecord.query.filter_by(student_id=student.id), month, year
        )
        records = query.order_by(AttendanceRecord.date_ms, AttendanceRecord.slot_number).all()
        return [r.to_dict(include_student=False) for r in records]
    
    @staticmethod
    def by_student(tenant_id: int, student_id, month=None, year=None) -> List[dict]:
        student_pk = parse_id(student_id)
        student = Student.get_owned(student_pk, tenant_id) if student_pk else None
        if not student:
            raise NotFoundError('Student not found')
        return AttendanceService.for_student(student, month, year)
    
    @staticmethod
    def monthly_summary(tenant_id: int, class_id, month, year) -> dict:
        if month in (None, '') or year in (None, ''):
            raise ValidationError('class_id, month, and year are required')
        month, year = parse_month_year(month, year)
        school_class = AttendanceService._tenant_class(class_id, tenant_id)
        start, end = month_window_ms(year, month)
        
        total = func.count(AttendanceRecord.id)
        presents = func.sum(case((AttendanceRecord.is_present.is_(True), 1), else_=0))
        rows = db.session.execute(
            select(Student.id, Student.enrollment_number, Student.name, total, presents)
            .join(AttendanceRecord, AttendanceRecord.student_id == Student.id)
            .where(
                AttendanceRecord.class_id == school_class.id,
                AttendanceRecord.date_ms >= start,
                AttendanceRecord.date_ms <= end
            )
            .group_by(Student.id, Student.enrollment_number, Student.name)
            .order_by(Student.enrollment_number)
        ).all()
        
        summary = []
        for student_id, enrollment_number, name, total_classes, present_count in rows:
            total_classes = total_classes or 0
            present_count = int(present_count or 0)
            percentage = round(present_count / total_classes * 100, 2) if total_classes else 0
            summary.append({
                'student_id': student_id,
                'enrollment_number': enrollment_number or '',
                'name': name or '',
                'total_classes': total_classes,
                'presents': present_count,
                'absents': total_classes - present_count,
                'percentage': percentage
            })
        
        return {'month': month, 'year': year, 'class_id': school_class.id, 'summary': summary}
