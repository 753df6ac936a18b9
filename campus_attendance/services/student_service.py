"""Student management service."""
from datetime import datetime
from typing import List
from flask import current_app
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from campus_attendance import db
from campus_attendance.models import Student, StudentDeviceToken, SchoolClass, class_students
from campus_attendance.services import identity
from campus_attendance.services.class_service import ClassService
from campus_attendance.services.membership_service import MembershipService
from campus_attendance.utils.errors import ConflictError, NotFoundError, ValidationError
from campus_attendance.utils.helpers import parse_id, parse_id_list
from campus_attendance.utils.sql import dialect_insert
from campus_attendance.utils.validators import parse_semester, require_fields, require_password

class StudentService:
    """Service for managing students."""
    
    @staticmethod
    def enrollment_taken(tenant_id: int, enrollment_number: str, exclude_id: int = None) -> bool:
        query = Student.query.filter_by(
            enrollment_scope=identity.student_scope(tenant_id),
            enrollment_number=enrollment_number
        )
        if exclude_id is not None:
            query = query.filter(Student.id != exclude_id)
        return query.first() is not None
    
    @staticmethod
    def build_student(tenant_id: int, enrollment_number: str, name: str, semester: int,
                      division=None, password=None) -> Student:
        """Stage a student row, no commit."""
        student = Student(
            enrollment_number=enrollment_number,
            enrollment_scope=identity.student_scope(tenant_id),
            name=name,
            semester=semester,
            division=division or None,
            tenant_id=tenant_id
        )
        if password:
            student.set_password(password)
        db.session.add(student)
        db.session.flush()
        return student
    
    @staticmethod
    def resolve_initial_class(tenant_id: int, data: dict):
        """Class named by ``class_id`` or ``class_number`` in a create payload."""
        if data.get('class_id') not in (None, ''):
            return MembershipService.get_class(data['class_id'], tenant_id)
        if data.get('class_number') not in (None, ''):
            school_class = ClassService.find_by_number(data['class_number'], tenant_id)
            if not school_class:
                raise NotFoundError('Class not found')
            return school_class
        return None
    
    @staticmethod
    def create_student(tenant_id: int, data: dict) -> Student:
        data = data or {}
        require_fields(data, ['enrollment_number', 'name', 'semester', 'password'],
                       'Enrollment number, name, semester, and password are required')
        require_password(data['password'])
        semester = parse_semester(data['semester'])
        enrollment_number = identity.normalize_enrollment(data['enrollment_number'])
        
        if StudentService.enrollment_taken(tenant_id, enrollment_number):
            raise ConflictError('Enrollment number already exists')
        
        school_class = StudentService.resolve_initial_class(tenant_id, data)
        
        try:
            student = StudentService.build_student(
                tenant_id, enrollment_number, str(data['name']).strip(), semester,
                division=str(data.get('division') or '').strip(), password=data['password']
            )
            if school_class is not None:
                MembershipService.link_student(student.id, [school_class.id])
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError('Enrollment number already exists')
        
        return student
    
    @staticmethod
    def list_students(tenant_id: int, semester=None, class_id=None, class_number=None) -> List[Student]:
        query = Student.query.filter_by(tenant_id=tenant_id)
        
        if semester not in (None, ''):
            try:
                query = query.filter_by(semester=int(semester))
            except (TypeError, ValueError):
                pass
        
        if class_id not in (None, '') or class_number not in (None, ''):
            if class_id not in (None, ''):
                class_pk = parse_id(class_id)
                school_class = SchoolClass.get_owned(class_pk, tenant_id) if class_pk else None
            else:
                school_class = ClassService.find_by_number(class_number, tenant_id)
            if not school_class:
                return []
            query = query.join(class_students, class_students.c.student_id == Student.id).filter(
                class_students.c.class_id == school_class.id
            )
        
        return query.order_by(Student.enrollment_number).all()
    
    @staticmethod
    def get_student(student_id, tenant_id: int) -> Student:
        student_id = parse_id(student_id)
        student = Student.get_owned(student_id, tenant_id) if student_id else None
        if not student:
            raise NotFoundError('Student not found')
        return student
    
    @staticmethod
    def update_student(student_id, tenant_id: int, data: dict) -> Student:
        student = StudentService.get_student(student_id, tenant_id)
        data = data or {}
        
        class_ids = None
        if 'class_ids' in data or 'class_id' in data:
            raw = data.get('class_ids', data.get('class_id'))
            if raw is None or raw == '':
                class_ids = []
            elif isinstance(raw, (list, tuple)):
                class_ids = list(raw)
            else:
                class_ids = parse_id_list(str(raw))
            MembershipService.resolve_classes(class_ids, tenant_id)
        
        enrollment_number = identity.normalize_enrollment(data.get('enrollment_number'))
        if enrollment_number and enrollment_number != student.enrollment_number:
            if StudentService.enrollment_taken(tenant_id, enrollment_number, exclude_id=student.id):
                raise ConflictError('Enrollment number already exists')
            student.enrollment_number = enrollment_number
        
        if data.get('password'):
            require_password(data['password'])
            student.set_password(data['password'])
        
        if data.get('name'):
            student.name = str(data['name']).strip()
        if data.get('semester') not in (None, ''):
            student.semester = parse_semester(data['semester'])
        if 'division' in data:
            student.division = str(data['division'] or '').strip() or None
        
        try:
            if class_ids is not None:
                # Commits the field changes together with the new class set
                MembershipService.set_student_classes(student.id, class_ids, tenant_id)
            else:
                db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError('Enrollment number already exists')
        
        return StudentService.get_student(student.id, tenant_id)
    
    @staticmethod
    def delete_student(student_id, tenant_id: int) -> None:
        MembershipService.delete_student(student_id, tenant_id)
    
    @staticmethod
    def change_password(student: Student, password: str) -> None:
        if not password:
            raise ValidationError('Password is required')
        require_password(password)
        student.set_password(password)
        db.session.commit()
    
    @staticmethod
    def add_device_token(student: Student, token: str) -> List[str]:
        token = str(token or '').strip()
        if not token:
            raise ValidationError('fcm_token is required')
        now = datetime.utcnow()
        db.session.execute(
            dialect_insert(StudentDeviceToken)
            .values(student_id=student.id, token=token, created_at=now, updated_at=now)
            .on_conflict_do_nothing(index_elements=['student_id', 'token'])
        )
        db.session.commit()
        current_app.logger.debug(f'Device token registered for student {student.id}')
        return StudentService.token_values(student.id)
    
    @staticmethod
    def remove_device_token(student: Student, token: str) -> List[str]:
        token = str(token or '').strip()
        if not token:
            raise ValidationError('fcm_token is required')
        db.session.execute(
            delete(StudentDeviceToken).where(
                StudentDeviceToken.student_id == student.id,
                StudentDeviceToken.token == token
            )
        )
        db.session.commit()
        return StudentService.token_values(student.id)
    
    @staticmethod
    def token_values(student_id: int) -> List[str]:
        rows = StudentDeviceToken.query.filter_by(student_id=student_id).order_by(StudentDeviceToken.id).all()
        return [row.token for row in rows]
    
    @staticmethod
    def profile(student: Student) -> dict:
        result = student.to_dict()
        result['class_ids'] = [c.id for c in student.classes]
        result['fcm_tokens'] = StudentService.token_values(student.id)
        return result
