"""Login identity variants and their uniqueness scopes.

A professor logs in either with a username unique inside the tenant or
with an email unique across the deployment; students' enrollment numbers
follow the same split. The variant decides the ``scope`` string stored
next to the normalised key, and one unique constraint on
``(scope, key)`` enforces both.
"""
from enum import Enum
from flask import current_app
from campus_attendance.utils.errors import ValidationError
from campus_attendance.utils.validators import Validator

GLOBAL_SCOPE = 'global'

class IdentityVariant(Enum):
    """How professors identify themselves at login."""
    USERNAME = 'username'  # unique per tenant
    EMAIL = 'email'        # unique globally

    @property
    def tenant_scoped(self) -> bool:
        return self is IdentityVariant.USERNAME

def tenant_scope(tenant_id: int) -> str:
    return f'tenant:{tenant_id}'

def normalize_login(value) -> str:
    return str(value or '').strip().lower()

def professor_variant() -> IdentityVariant:
    raw = current_app.config.get('PROFESSOR_LOGIN_IDENTITY', 'username')
    try:
        return IdentityVariant(str(raw).lower())
    except ValueError:
        raise ValueError(f'Unknown PROFESSOR_LOGIN_IDENTITY: {raw}')

def professor_scope(tenant_id: int) -> str:
    if professor_variant().tenant_scoped:
        return tenant_scope(tenant_id)
    return GLOBAL_SCOPE

def validate_professor_login(value) -> str:
    """Return the display form of a login, raising on bad input."""
    login = str(value or '').strip()
    if not login:
        raise ValidationError('Login is required')
    variant = professor_variant()
    if variant is IdentityVariant.EMAIL:
        if not Validator.validate_email(login):
            raise ValidationError('Invalid email format')
        return login.lower()
    if len(login) < 3:
        raise ValidationError('Username must be at least 3 characters')
    return login

def students_tenant_scoped() -> bool:
    raw = str(current_app.config.get('STUDENT_ENROLLMENT_SCOPE', 'global')).lower()
    if raw not in ('tenant', GLOBAL_SCOPE):
        raise ValueError(f'Unknown STUDENT_ENROLLMENT_SCOPE: {raw}')
    return raw == 'tenant'

def student_scope(tenant_id: int) -> str:
    if students_tenant_scoped():
        return tenant_scope(tenant_id)
    return GLOBAL_SCOPE

def normalize_enrollment(value) -> str:
    return str(value or '').strip()
