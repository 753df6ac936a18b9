"""Models package with all models."""
from .base import BaseModel
from .tenant import Tenant, OtpPurpose
from .professor import Professor
from .student import Student, StudentDeviceToken
from .school_class import SchoolClass, class_students, class_professors
from .counter import SequenceCounter
from .attendance import AttendanceRecord

__all__ = [
    'BaseModel', 'Tenant', 'OtpPurpose', 'Professor',
    'Student', 'StudentDeviceToken',
    'SchoolClass', 'class_students', 'class_professors',
    'SequenceCounter', 'AttendanceRecord'
]
