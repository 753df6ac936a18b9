"""Class membership and cascade deletes.

Membership lives in the ``class_students`` and ``class_professors``
association tables, so a class roster and an entity's class list are two
reads of the same rows. Every function here either finishes its whole
unit of work and commits, or rolls back and re-raises.
"""
from typing import Iterable, List, Set
from flask import current_app
from sqlalchemy import delete, or_, select
from campus_attendance import db
from campus_attendance.models import (
    Tenant, Professor, Student, StudentDeviceToken, SchoolClass,
    SequenceCounter, AttendanceRecord, class_students, class_professors
)
from campus_attendance.utils.errors import NotFoundError, ValidationError
from campus_attendance.utils.helpers import parse_id
from campus_attendance.utils.sql import dialect_insert

def _parse_ids(values: Iterable, label: str) -> List[int]:
    """All ids well formed, or NotFound naming ``label``."""
    parsed = [parse_id(v) for v in values]
    if any(v is None for v in parsed):
        raise NotFoundError(f'One or more {label} not found')
    return list(dict.fromkeys(parsed))

def _owned_ids(model, ids: List[int], tenant_id: int) -> Set[int]:
    if not ids:
        return set()
    rows = db.session.execute(
        select(model.id).where(model.id.in_(ids), model.tenant_id == tenant_id)
    ).scalars()
    return set(rows)

def _require_list(values, label: str) -> list:
    if not isinstance(values, (list, tuple)) or len(values) == 0:
        raise ValidationError(f'Please provide an array of {label} IDs')
    return list(values)

# Cascade steps. Each issues statements inside the caller's transaction.

def _delete_attendance(class_ids=(), student_ids=(), professor_ids=()) -> int:
    conditions = []
    if class_ids:
        conditions.append(AttendanceRecord.class_id.in_(class_ids))
    if student_ids:
        conditions.append(AttendanceRecord.student_id.in_(student_ids))
    if professor_ids:
        conditions.append(AttendanceRecord.marked_by_id.in_(professor_ids))
    if not conditions:
        return 0
    result = db.session.execute(delete(AttendanceRecord).where(or_(*conditions)))
    return result.rowcount

def _drop_memberships(class_ids=(), student_ids=(), professor_ids=()) -> None:
    if class_ids:
        db.session.execute(delete(class_students).where(class_students.c.class_id.in_(class_ids)))
        db.session.execute(delete(class_professors).where(class_professors.c.class_id.in_(class_ids)))
    if student_ids:
        db.session.execute(delete(class_students).where(class_students.c.student_id.in_(student_ids)))
    if professor_ids:
        db.session.execute(delete(class_professors).where(class_professors.c.professor_id.in_(professor_ids)))

def _delete_device_tokens(student_ids) -> None:
    if student_ids:
        db.session.execute(delete(StudentDeviceToken).where(StudentDeviceToken.student_id.in_(student_ids)))

def _delete_rows(model, ids) -> int:
    if not ids:
        return 0
    return db.session.execute(delete(model).where(model.id.in_(ids))).rowcount

def _run_cascade(description: str, work):
    try:
        result = work()
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.error(f'Rolled back {description}')
        raise
    # Bulk statements bypass the identity map
    db.session.expire_all()
    return result

class MembershipService:
    @staticmethod
    def get_class(class_id, tenant_id: int) -> SchoolClass:
        class_id = parse_id(class_id)
        school_class = SchoolClass.get_owned(class_id, tenant_id) if class_id else None
        if not school_class:
            raise NotFoundError('Class not found')
        return school_class
    
    @staticmethod
    def _link(table, column: str, class_id: int, member_ids: List[int]) -> None:
        if not member_ids:
            return
        rows = [{'class_id': class_id, column: member_id} for member_id in member_ids]
        db.session.execute(dialect_insert(table).values(rows).on_conflict_do_nothing())
    
    @staticmethod
    def _unlink(table, column: str, class_id: int, member_ids: List[int]) -> int:
        if not member_ids:
            return 0
        result = db.session.execute(
            delete(table).where(table.c.class_id == class_id, table.c[column].in_(member_ids))
        )
        return result.rowcount
    
    @staticmethod
    def _assign(model, table, column, label, class_id, member_ids, tenant_id) -> SchoolClass:
        member_ids = _parse_ids(_require_list(member_ids, label.rstrip('s')), label)
        school_class = MembershipService.get_class(class_id, tenant_id)
        if _owned_ids(model, member_ids, tenant_id) != set(member_ids):
            raise NotFoundError(f'One or more {label} not found')
        
        _run_cascade(
            f'assigning {label} to class {school_class.id}',
            lambda: MembershipService._link(table, column, school_class.id, member_ids)
        )
        return school_class
    
    @staticmethod
    def _remove(table, column, label, class_id, member_ids, tenant_id) -> int:
        values = _require_list(member_ids, label.rstrip('s'))
        school_class = MembershipService.get_class(class_id, tenant_id)
        # Malformed or unknown references are nothing to remove
        ids = [i for i in (parse_id(v) for v in values) if i is not None]
        return _run_cascade(
            f'removing {label} from class {school_class.id}',
            lambda: MembershipService._unlink(table, column, school_class.id, ids)
        )
    
    @staticmethod
    def assign_students(class_id, student_ids, tenant_id: int) -> SchoolClass:
        return MembershipService._assign(
            Student, class_students, 'student_id', 'students', class_id, student_ids, tenant_id
        )
    
    @staticmethod
    def remove_students(class_id, student_ids, tenant_id: int) -> int:
        return MembershipService._remove(class_students, 'student_id', 'students', class_id, student_ids, tenant_id)
    
    @staticmethod
    def assign_professors(class_id, professor_ids, tenant_id: int) -> SchoolClass:
        return MembershipService._assign(
            Professor, class_professors, 'professor_id', 'professors', class_id, professor_ids, tenant_id
        )
    
    @staticmethod
    def remove_professors(class_id, professor_ids, tenant_id: int) -> int:
        return MembershipService._remove(
            class_professors, 'professor_id', 'professors', class_id, professor_ids, tenant_id
        )
    
    @staticmethod
    def resolve_classes(class_ids, tenant_id: int) -> List[int]:
        """Ids of tenant classes, NotFound if any does not resolve."""
        ids = _parse_ids(class_ids, 'classes')
        if _owned_ids(SchoolClass, ids, tenant_id) != set(ids):
            raise NotFoundError('One or more classes not found')
        return ids
    
    @staticmethod
    def link_student(student_id: int, class_ids: List[int]) -> None:
        """Add a student to already resolved classes, no commit."""
        for class_id in class_ids:
            MembershipService._link(class_students, 'student_id', class_id, [student_id])
    
    @staticmethod
    def set_student_classes(student_id: int, class_ids, tenant_id: int) -> None:
        """Make ``class_ids`` the student's exact class set."""
        ids = MembershipService.resolve_classes(class_ids, tenant_id)
        
        def work():
            stmt = delete(class_students).where(class_students.c.student_id == student_id)
            if ids:
                stmt = stmt.where(class_students.c.class_id.notin_(ids))
            db.session.execute(stmt)
            MembershipService.link_student(student_id, ids)
        
        _run_cascade(f'replacing classes of student {student_id}', work)
    
    # Deletes
    
    @staticmethod
    def delete_class(class_id, tenant_id: int) -> None:
        school_class = MembershipService.get_class(class_id, tenant_id)
        ids = [school_class.id]
        
        def work():
            _drop_memberships(class_ids=ids)
            _delete_attendance(class_ids=ids)
            _delete_rows(SchoolClass, ids)
        
        _run_cascade(f'deleting class {school_class.id}', work)
        current_app.logger.info(f'Class {ids[0]} deleted by tenant {tenant_id}')
    
    @staticmethod
    def delete_student(student_id, tenant_id: int) -> None:
        student_id = parse_id(student_id)
        student = Student.get_owned(student_id, tenant_id) if student_id else None
        if not student:
            raise NotFoundError('Student not found')
        ids = [student.id]
        
        def work():
            _drop_memberships(student_ids=ids)
            _delete_attendance(student_ids=ids)
            _delete_device_tokens(ids)
            _delete_rows(Student, ids)
        
        _run_cascade(f'deleting student {student.id}', work)
    
    @staticmethod
    def delete_professor(professor_id, tenant_id: int) -> None:
        professor_id = parse_id(professor_id)
        professor = Professor.get_owned(professor_id, tenant_id) if professor_id else None
        if not professor:
            raise NotFoundError('Professor not found')
        ids = [professor.id]
        
        def work():
            _drop_memberships(professor_ids=ids)
            _delete_attendance(professor_ids=ids)
            _delete_rows(Professor, ids)
        
        _run_cascade(f'deleting professor {professor.id}', work)
    
    @staticmethod
    def _bulk_delete(model, label: str, plural: str, ids, tenant_id: int, cleanup) -> dict:
        requested = _require_list(ids, label)
        pairs = [(raw, parse_id(raw)) for raw in requested]
        valid = list(dict.fromkeys(v for _, v in pairs if v is not None))
        if not valid:
            raise ValidationError(f'No valid {label} IDs provided')
        
        owned = _owned_ids(model, valid, tenant_id)
        if not owned:
            raise NotFoundError(f'No {plural} found for deletion')
        owned_ids = sorted(owned)
        
        def work():
            cleanup(owned_ids)
            _delete_rows(model, owned_ids)
        
        _run_cascade(f'bulk deleting {len(owned_ids)} {plural}', work)
        not_deleted = [raw for raw, value in pairs if value not in owned]
        return {
            'total_requested': len(requested),
            'total_deleted': len(owned_ids),
            'not_deleted': not_deleted
        }
    
    @staticmethod
    def bulk_delete_classes(class_ids, tenant_id: int) -> dict:
        def cleanup(ids):
            _drop_memberships(class_ids=ids)
            _delete_attendance(class_ids=ids)
        return MembershipService._bulk_delete(SchoolClass, 'class', 'classes', class_ids, tenant_id, cleanup)
    
    @staticmethod
    def bulk_delete_students(student_ids, tenant_id: int) -> dict:
        def cleanup(ids):
            _drop_memberships(student_ids=ids)
            _delete_attendance(student_ids=ids)
            _delete_device_tokens(ids)
        return MembershipService._bulk_delete(Student, 'student', 'students', student_ids, tenant_id, cleanup)
    
    @staticmethod
    def bulk_delete_professors(professor_ids, tenant_id: int) -> dict:
        def cleanup(ids):
            _drop_memberships(professor_ids=ids)
            _delete_attendance(professor_ids=ids)
        return MembershipService._bulk_delete(Professor, 'professor', 'professors', professor_ids, tenant_id, cleanup)
    
    @staticmethod
    def delete_tenant(tenant_id: int) -> None:
        """Remove a tenant and everything it owns in one transaction."""
        if not db.session.get(Tenant, tenant_id):
            raise NotFoundError('HOD not found')
        
        def ids_of(model):
            return list(db.session.execute(select(model.id).where(model.tenant_id == tenant_id)).scalars())
        
        def work():
            professor_ids = ids_of(Professor)
            student_ids = ids_of(Student)
            class_ids = ids_of(SchoolClass)
            
            removed = _delete_attendance(class_ids, student_ids, professor_ids)
            _drop_memberships(class_ids, student_ids, professor_ids)
            _delete_device_tokens(student_ids)
            db.session.execute(delete(SequenceCounter).where(SequenceCounter.tenant_id == tenant_id))
            _delete_rows(SchoolClass, class_ids)
            _delete_rows(Student, student_ids)
            _delete_rows(Professor, professor_ids)
            _delete_rows(Tenant, [tenant_id])
            return {
                'professors': len(professor_ids),
                'students': len(student_ids),
                'classes': len(class_ids),
                'attendance_records': removed
            }
        
        counts = _run_cascade(f'deleting tenant {tenant_id}', work)
        current_app.logger.info(f'Tenant {tenant_id} deleted with {counts}')
