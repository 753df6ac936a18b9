"""Custom decorators for authorization and error handling."""
from dataclasses import dataclass, field
from functools import wraps
from typing import Any
from flask import current_app, g
from flask_jwt_extended import get_jwt, get_jwt_identity
from werkzeug.exceptions import HTTPException
from campus_attendance import db
from campus_attendance.models import Tenant, Professor, Student
from campus_attendance.services.auth_service import Role
from campus_attendance.utils.errors import AppError
from campus_attendance.utils.helpers import error_response, parse_id

@dataclass(frozen=True)
class Principal:
    """The authenticated caller of the current request."""
    identity: int
    role: str
    tenant_id: int
    account: Any = field(default=None, compare=False, repr=False)

def current_principal() -> Principal:
    """Principal resolved by one of the role decorators."""
    return g.principal

def _resolve(allowed_roles, denied_message):
    """Load the account behind the JWT; returns ``(principal, error)``."""
    claims = get_jwt()
    role = claims.get('role')
    identity = parse_id(get_jwt_identity())

    if role not in allowed_roles or identity is None:
        return None, error_response(denied_message, 403)

    if role == Role.HOD.value:
        tenant = db.session.get(Tenant, identity)
        if not tenant:
            return None, error_response('HOD not found', 404)
        if not tenant.verified:
            return None, error_response('Email verification required', 403)
        return Principal(tenant.id, role, tenant.id, tenant), None

    if role == Role.PROFESSOR.value:
        professor = db.session.get(Professor, identity)
        if not professor:
            return None, error_response('Professor not found', 404)
        return Principal(professor.id, role, professor.tenant_id, professor), None

    student = db.session.get(Student, identity)
    if not student:
        return None, error_response('Student not found', 404)
    return Principal(student.id, role, student.tenant_id, student), None

def _role_required(allowed_roles, denied_message):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            principal, error = _resolve(allowed_roles, denied_message)
            if error is not None:
                return error
            g.principal = principal
            return f(*args, **kwargs)
        return decorated_function
    return decorator

def hod_required(f):
    """Decorator to require a verified HOD."""
    return _role_required({Role.HOD.value}, 'Access denied. HOD authorization required')(f)

def professor_required(f):
    """Decorator to require professor role."""
    return _role_required({Role.PROFESSOR.value}, 'Access denied. Professor authorization required')(f)

def student_required(f):
    """Decorator to require student role."""
    return _role_required({Role.STUDENT.value}, 'Access denied. Student authorization required')(f)

def professor_or_hod_required(f):
    """Decorator to require professor or HOD role."""
    return _role_required(
        {Role.HOD.value, Role.PROFESSOR.value},
        'Access denied. Professor or HOD authorization required'
    )(f)

def handle_errors(action: str):
    """Turn service errors into the error envelope.

    Unexpected exceptions roll the session back, are logged, and answer
    ``Server error while <action>`` without leaking the message.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except AppError as e:
                db.session.rollback()
                return error_response(e.message, e.status_code)
            except HTTPException:
                raise
            except Exception:
                db.session.rollback()
                current_app.logger.exception(f'Unexpected error while {action}')
                return error_response(f'Server error while {action}', 500)
        return decorated_function
    return decorator
