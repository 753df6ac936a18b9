"""Validation utilities for the application."""
import re
from typing import Dict, List, Any

from campus_attendance.utils.errors import ValidationError

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
OTP_PATTERN = r'^\d{6}$'

class Validator:
    """Validation helper class."""
    
    @staticmethod
    def validate_email(email: str) -> bool:
        """Validate email format."""
        if not email or not isinstance(email, str):
            return False
        return bool(re.match(EMAIL_PATTERN, email.strip()))
    
    @staticmethod
    def validate_password(password: str, min_length: int = 6) -> Dict[str, Any]:
        """Validate password strength."""
        errors = []
        
        if not password:
            errors.append("Password is required")
        elif len(password) < min_length:
            errors.append(f"Password must be at least {min_length} characters long")
        elif len(password) > 128:
            errors.append("Password is too long")
        
        return {
            "is_valid": len(errors) == 0,
            "errors": errors
        }
    
    @staticmethod
    def validate_otp(otp) -> bool:
        """OTPs are exactly six digits."""
        return isinstance(otp, str) and bool(re.match(OTP_PATTERN, otp))
    
    @staticmethod
    def validate_required_fields(data: Dict, required_fields: List[str]) -> Dict[str, Any]:
        """Validate required fields in data."""
        errors = []
        
        for field in required_fields:
            value = data.get(field) if data else None
            if value is None or (isinstance(value, str) and not value.strip()):
                errors.append(f"{field} is required")
        
        return {
            "is_valid": len(errors) == 0,
            "errors": errors
        }

def require_fields(data: Dict, required_fields: List[str], message: str = None) -> None:
    """Raise ValidationError when any of ``required_fields`` is missing."""
    result = Validator.validate_required_fields(data or {}, required_fields)
    if not result['is_valid']:
        raise ValidationError(message or result['errors'][0])

def require_password(password: str, label: str = 'Password') -> None:
    """Raise ValidationError for a weak password."""
    result = Validator.validate_password(password)
    if not result['is_valid']:
        raise ValidationError(result['errors'][0].replace('Password', label, 1))

def parse_semester(value) -> int:
    """Semester numbers are integers starting at 1."""
    try:
        semester = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError('Semester must be a number')
    if semester < 1:
        raise ValidationError('Semester must be at least 1')
    return semester

def parse_month_year(month, year):
    """Validate a ``month``/``year`` query pair."""
    try:
        month = int(month)
        year = int(year)
    except (TypeError, ValueError):
        raise ValidationError('Invalid month/year')
    # The window end needs the following month to be a valid date
    if month < 1 or month > 12 or not 1970 <= year <= 9998:
        raise ValidationError('Invalid month/year')
    return month, year
