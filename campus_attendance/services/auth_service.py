"""Authentication service: credential checks and token issuance."""
from enum import Enum
from flask_jwt_extended import create_access_token
from campus_attendance.models import Tenant, Professor, Student
from campus_attendance.services import identity
from campus_attendance.utils.errors import UnauthenticatedError, ValidationError

class Role(Enum):
    """Roles carried in the ``role`` claim."""
    HOD = 'hod'
    PROFESSOR = 'professor'
    STUDENT = 'student'

class AuthService:
    @staticmethod
    def create_token(role: Role, account_id: int, tenant_id: int) -> str:
        """Issue an access token for one account."""
        return create_access_token(
            identity=str(account_id),
            additional_claims={'role': role.value, 'tenant_id': tenant_id}
        )
    
    @staticmethod
    def resolve_login_tenant(tenant_username):
        """Tenant named at login, for the tenant-scoped identity variants."""
        if not tenant_username or not str(tenant_username).strip():
            raise ValidationError('HOD username is required')
        tenant = Tenant.query.filter_by(username=str(tenant_username).strip()).first()
        if not tenant:
            raise UnauthenticatedError('Invalid credentials')
        return tenant
    
    @staticmethod
    def login_professor(login: str, password: str, tenant_username: str = None) -> dict:
        """Authenticate a professor and return token plus profile."""
        if not login or not password:
            raise ValidationError('Login and password are required')
        
        if identity.professor_variant().tenant_scoped:
            tenant = AuthService.resolve_login_tenant(tenant_username)
            scope = identity.tenant_scope(tenant.id)
        else:
            scope = identity.GLOBAL_SCOPE
        
        professor = Professor.query.filter_by(
            identity_scope=scope,
            login_key=identity.normalize_login(login)
        ).first()
        
        if not professor or not professor.check_password(password):
            raise UnauthenticatedError('Invalid credentials')
        
        return {
            'token': AuthService.create_token(Role.PROFESSOR, professor.id, professor.tenant_id),
            'professor': professor.to_dict()
        }
    
    @staticmethod
    def login_student(enrollment_number: str, password: str, tenant_username: str = None) -> dict:
        """Authenticate a student and return token plus profile."""
        if not enrollment_number or not password:
            raise ValidationError('Enrollment number and password are required')
        
        if identity.students_tenant_scoped():
            tenant = AuthService.resolve_login_tenant(tenant_username)
            scope = identity.tenant_scope(tenant.id)
        else:
            scope = identity.GLOBAL_SCOPE
        
        student = Student.query.filter_by(
            enrollment_scope=scope,
            enrollment_number=identity.normalize_enrollment(enrollment_number)
        ).first()
        
        if not student or not student.check_password(password):
            raise UnauthenticatedError('Invalid credentials')
        
        return {
            'token': AuthService.create_token(Role.STUDENT, student.id, student.tenant_id),
            'student': student.to_dict()
        }
