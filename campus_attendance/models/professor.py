"""Professor model."""
from werkzeug.security import generate_password_hash, check_password_hash
from campus_attendance import db
from campus_attendance.models.base import BaseModel

class Professor(BaseModel):
    """A professor belonging to one tenant."""
    
    __tablename__ = 'professors'
    __table_args__ = (
        db.UniqueConstraint('identity_scope', 'login_key', name='uq_professor_login'),
    )
    
    name = db.Column(db.String(255), nullable=False)
    # Username or email, depending on PROFESSOR_LOGIN_IDENTITY
    login = db.Column(db.String(255), nullable=False)
    login_key = db.Column(db.String(255), nullable=False, index=True)
    identity_scope = db.Column(db.String(50), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    tenant_id = db.Column(db.Integer, db.ForeignKey('tenants.id'), nullable=False, index=True)
    
    classes = db.relationship(
        'SchoolClass',
        secondary='class_professors',
        back_populates='professors',
        viewonly=True,
        order_by='SchoolClass.class_number'
    )
    
    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)
    
    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)
    
    def to_dict(self, exclude: list = None, include_classes: bool = False) -> dict:
        exclude = (exclude or []) + ['password_hash', 'login_key', 'identity_scope']
        result = super().to_dict(exclude=exclude)
        if include_classes:
            result['classes'] = [c.to_summary() for c in self.classes]
        return result
    
    def to_summary(self) -> dict:
        return {'id': self.id, 'name': self.name, 'login': self.login}
    
    def __repr__(self) -> str:
        return f'<Professor {self.login}>'
