"""Professor management service."""
from typing import List
from flask import current_app
from sqlalchemy.exc import IntegrityError
from campus_attendance import db
from campus_attendance.models import Professor
from campus_attendance.services import identity
from campus_attendance.services.membership_service import MembershipService
from campus_attendance.utils.errors import ConflictError, NotFoundError, ValidationError
from campus_attendance.utils.helpers import parse_id
from campus_attendance.utils.validators import require_password

def login_from(data: dict):
    """The login value of a payload, whichever identity key it uses."""
    return data.get('login') or data.get('username') or data.get('email')

def conflict_message() -> str:
    if identity.professor_variant() is identity.IdentityVariant.EMAIL:
        return 'Email already in use'
    return 'Username already taken'

class ProfessorService:
    """Service for managing professors."""
    
    @staticmethod
    def login_taken(tenant_id: int, login_key: str, exclude_id: int = None) -> bool:
        query = Professor.query.filter_by(
            identity_scope=identity.professor_scope(tenant_id),
            login_key=login_key
        )
        if exclude_id is not None:
            query = query.filter(Professor.id != exclude_id)
        return query.first() is not None
    
    @staticmethod
    def build_professor(tenant_id: int, name: str, login: str, password: str) -> Professor:
        """Stage a professor row, no commit."""
        professor = Professor(
            name=name,
            login=login,
            login_key=identity.normalize_login(login),
            identity_scope=identity.professor_scope(tenant_id),
            tenant_id=tenant_id
        )
        professor.set_password(password)
        db.session.add(professor)
        db.session.flush()
        return professor
    
    @staticmethod
    def create_professor(tenant_id: int, data: dict) -> Professor:
        data = data or {}
        name = str(data.get('name') or '').strip()
        if not name:
            raise ValidationError('Name is required')
        login = identity.validate_professor_login(login_from(data))
        password = data.get('password')
        require_password(password)
        
        if ProfessorService.login_taken(tenant_id, identity.normalize_login(login)):
            raise ConflictError(conflict_message())
        
        try:
            professor = ProfessorService.build_professor(tenant_id, name, login, password)
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError(conflict_message())
        
        current_app.logger.info(f'Professor {professor.id} added to tenant {tenant_id}')
        return professor
    
    @staticmethod
    def list_professors(tenant_id: int) -> List[Professor]:
        return Professor.query.filter_by(tenant_id=tenant_id).order_by(Professor.created_at.desc()).all()
    
    @staticmethod
    def get_professor(professor_id, tenant_id: int) -> Professor:
        professor_id = parse_id(professor_id)
        professor = Professor.get_owned(professor_id, tenant_id) if professor_id else None
        if not professor:
            raise NotFoundError('Professor not found')
        return professor
    
    @staticmethod
    def update_professor(professor_id, tenant_id: int, data: dict) -> Professor:
        professor = ProfessorService.get_professor(professor_id, tenant_id)
        data = data or {}
        
        raw_login = login_from(data)
        if raw_login:
            login = identity.validate_professor_login(raw_login)
            login_key = identity.normalize_login(login)
            if login_key != professor.login_key:
                if ProfessorService.login_taken(tenant_id, login_key, exclude_id=professor.id):
                    raise ConflictError(conflict_message())
                professor.login_key = login_key
            professor.login = login
        
        name = str(data.get('name') or '').strip()
        if name:
            professor.name = name
        
        if data.get('password'):
            require_password(data['password'])
            professor.set_password(data['password'])
        
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError(conflict_message())
        return professor
    
    @staticmethod
    def delete_professor(professor_id, tenant_id: int) -> None:
        MembershipService.delete_professor(professor_id, tenant_id)
    
    @staticmethod
    def classes_with_students(professor: Professor) -> List[dict]:
        """Classes the professor is assigned to, each with its roster."""
        return [
            dict(school_class.to_summary(), students=[s.to_summary() for s in school_class.students])
            for school_class in professor.classes
        ]
