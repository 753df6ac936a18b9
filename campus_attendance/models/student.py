"""Student and device token models."""
from werkzeug.security import generate_password_hash, check_password_hash
from campus_attendance import db
from campus_attendance.models.base import BaseModel

class Student(BaseModel):
    """A student enrolled at one tenant."""
    
    __tablename__ = 'students'
    __table_args__ = (
        db.UniqueConstraint('enrollment_scope', 'enrollment_number', name='uq_student_enrollment'),
        db.CheckConstraint('semester >= 1', name='ck_student_semester'),
    )
    
    enrollment_number = db.Column(db.String(50), nullable=False, index=True)
    # 'tenant:<id>' or 'global', depending on STUDENT_ENROLLMENT_SCOPE
    enrollment_scope = db.Column(db.String(50), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    semester = db.Column(db.Integer, nullable=False)
    division = db.Column(db.String(20), nullable=True)
    password_hash = db.Column(db.String(255), nullable=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey('tenants.id'), nullable=False, index=True)
    
    classes = db.relationship(
        'SchoolClass',
        secondary='class_students',
        back_populates='students',
        viewonly=True,
        order_by='SchoolClass.class_number'
    )
    device_tokens = db.relationship('StudentDeviceToken', backref='student', lazy='selectin', viewonly=True)
    
    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)
    
    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)
    
    @property
    def token_values(self) -> list:
        return [t.token for t in self.device_tokens]
    
    def to_dict(self, exclude: list = None, include_classes: bool = False) -> dict:
        exclude = (exclude or []) + ['password_hash', 'enrollment_scope']
        result = super().to_dict(exclude=exclude)
        if include_classes:
            result['classes'] = [c.to_summary() for c in self.classes]
        return result
    
    def to_summary(self) -> dict:
        return {
            'id': self.id,
            'enrollment_number': self.enrollment_number,
            'name': self.name,
            'semester': self.semester,
            'division': self.division
        }
    
    def __repr__(self) -> str:
        return f'<Student {self.enrollment_number}>'

class StudentDeviceToken(BaseModel):
    """Push token registered by a student's device."""
    
    __tablename__ = 'student_device_tokens'
    __table_args__ = (
        db.UniqueConstraint('student_id', 'token', name='uq_student_device_token'),
    )
    
    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False, index=True)
    token = db.Column(db.String(512), nullable=False, index=True)
    
    def __repr__(self) -> str:
        return f'<StudentDeviceToken {self.student_id}>'
