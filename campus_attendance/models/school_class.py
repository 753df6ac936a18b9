"""Class model and its membership tables."""
from campus_attendance import db
from campus_attendance.models.base import BaseModel

# Membership is one row per pair; both directions read these tables.
class_students = db.Table(
    'class_students',
    db.Column('class_id', db.Integer, db.ForeignKey('classes.id'), primary_key=True),
    db.Column('student_id', db.Integer, db.ForeignKey('students.id'), primary_key=True, index=True)
)

class_professors = db.Table(
    'class_professors',
    db.Column('class_id', db.Integer, db.ForeignKey('classes.id'), primary_key=True),
    db.Column('professor_id', db.Integer, db.ForeignKey('professors.id'), primary_key=True, index=True)
)

class SchoolClass(BaseModel):
    """A class (course section) of a tenant."""
    
    __tablename__ = 'classes'
    __table_args__ = (
        db.UniqueConstraint('tenant_id', 'class_number', name='uq_class_number'),
    )
    
    class_number = db.Column(db.Integer, nullable=False)
    class_name = db.Column(db.String(255), nullable=False)
    division = db.Column(db.String(20), nullable=False)
    tenant_id = db.Column(db.Integer, db.ForeignKey('tenants.id'), nullable=False, index=True)
    
    # Written only by the membership service
    students = db.relationship(
        'Student',
        secondary=class_students,
        back_populates='classes',
        viewonly=True,
        order_by='Student.enrollment_number'
    )
    professors = db.relationship(
        'Professor',
        secondary=class_professors,
        back_populates='classes',
        viewonly=True,
        order_by='Professor.name'
    )
    
    @property
    def display_name(self) -> str:
        return f'{self.class_name} ({self.division})'
    
    def to_summary(self) -> dict:
        return {
            'id': self.id,
            'class_number': self.class_number,
            'class_name': self.class_name,
            'division': self.division
        }
    
    def to_dict(self, exclude: list = None, include_members: bool = False) -> dict:
        result = super().to_dict(exclude=exclude)
        if include_members:
            result['students'] = [s.to_summary() for s in self.students]
            result['professors'] = [p.to_summary() for p in self.professors]
        return result
    
    def __repr__(self) -> str:
        return f'<SchoolClass {self.class_number}>'
