"""Attendance record model."""
from campus_attendance import db
from campus_attendance.models.base import BaseModel
from campus_attendance.utils.dates import ms_to_iso

class AttendanceRecord(BaseModel):
    """Presence of one student in one slot of one class on one day."""
    
    __tablename__ = 'attendance_records'
    __table_args__ = (
        db.UniqueConstraint('student_id', 'class_id', 'date_ms', 'slot_number', name='uq_attendance_slot'),
        db.CheckConstraint('slot_number >= 1', name='ck_attendance_slot'),
    )
    
    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False, index=True)
    class_id = db.Column(db.Integer, db.ForeignKey('classes.id'), nullable=False, index=True)
    # Epoch milliseconds of local midnight
    date_ms = db.Column(db.BigInteger, nullable=False, index=True)
    slot_number = db.Column(db.Integer, nullable=False)
    is_present = db.Column(db.Boolean, nullable=False, default=False)
    marked_by_id = db.Column(db.Integer, db.ForeignKey('professors.id'), nullable=False, index=True)
    
    student = db.relationship('Student', lazy='joined')
    school_class = db.relationship('SchoolClass', lazy='joined')
    marked_by = db.relationship('Professor', lazy='joined')
    
    def to_dict(self, include_student: bool = True) -> dict:
        """Flat shape used by the read endpoints."""
        result = {
            'id': self.id,
            'date': ms_to_iso(self.date_ms),
            'date_ms': self.date_ms,
            'slot_number': self.slot_number,
            'is_present': bool(self.is_present),
            'class_id': self.class_id,
            'class_name': self.school_class.class_name if self.school_class else '',
            'division': self.school_class.division if self.school_class else '',
            'marked_by': self.marked_by.name if self.marked_by else '',
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }
        if include_student:
            result['student_id'] = self.student_id
            result['student_name'] = self.student.name if self.student else ''
            result['enrollment_number'] = self.student.enrollment_number if self.student else ''
        return result
    
    def __repr__(self) -> str:
        return f'<AttendanceRecord student={self.student_id} class={self.class_id} slot={self.slot_number}>'
