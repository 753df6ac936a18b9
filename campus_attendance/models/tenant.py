"""Tenant (HOD) account model."""
from datetime import datetime
from enum import Enum
from werkzeug.security import generate_password_hash, check_password_hash
from campus_attendance import db
from campus_attendance.models.base import BaseModel

class OtpPurpose(Enum):
    """What a one-time code unlocks. Values name the column prefix."""
    REGISTRATION = 'verify'
    UPDATE = 'update'
    DELETION = 'delete'

class Tenant(BaseModel):
    """A college administered by one HOD account."""
    
    __tablename__ = 'tenants'
    
    # Account
    college_name = db.Column(db.String(255), nullable=False)
    username = db.Column(db.String(100), unique=True, nullable=False, index=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    alt_password_hash = db.Column(db.String(255), nullable=False)
    verified = db.Column(db.Boolean, default=False, nullable=False)
    
    # One outstanding code per purpose
    verify_otp = db.Column(db.String(6), nullable=True)
    verify_otp_expires_at = db.Column(db.DateTime, nullable=True)
    update_otp = db.Column(db.String(6), nullable=True)
    update_otp_expires_at = db.Column(db.DateTime, nullable=True)
    delete_otp = db.Column(db.String(6), nullable=True)
    delete_otp_expires_at = db.Column(db.DateTime, nullable=True)
    
    # Staged changes, applied when the update code is verified
    pending_email = db.Column(db.String(255), nullable=True)
    pending_password_hash = db.Column(db.String(255), nullable=True)
    pending_alt_password_hash = db.Column(db.String(255), nullable=True)
    
    # Relationships
    professors = db.relationship('Professor', backref='tenant', lazy='dynamic')
    students = db.relationship('Student', backref='tenant', lazy='dynamic')
    classes = db.relationship('SchoolClass', backref='tenant', lazy='dynamic')
    
    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)
    
    def set_alt_password(self, password: str) -> None:
        self.alt_password_hash = generate_password_hash(password)
    
    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)
    
    def check_alt_password(self, password: str) -> bool:
        return check_password_hash(self.alt_password_hash, password)
    
    def get_otp(self, purpose: OtpPurpose):
        """Return ``(code, expires_at)`` for ``purpose``."""
        prefix = purpose.value
        return getattr(self, f'{prefix}_otp'), getattr(self, f'{prefix}_otp_expires_at')
    
    def set_otp(self, purpose: OtpPurpose, code: str, expires_at: datetime) -> None:
        prefix = purpose.value
        setattr(self, f'{prefix}_otp', code)
        setattr(self, f'{prefix}_otp_expires_at', expires_at)
    
    def clear_otp(self, purpose: OtpPurpose) -> None:
        self.set_otp(purpose, None, None)
    
    def has_pending_updates(self) -> bool:
        return bool(self.pending_email or self.pending_password_hash or self.pending_alt_password_hash)
    
    def clear_pending_updates(self) -> None:
        self.pending_email = None
        self.pending_password_hash = None
        self.pending_alt_password_hash = None
    
    def to_dict(self, exclude: list = None) -> dict:
        """Public profile; hashes, codes and staged values are never exposed."""
        hidden = [
            'password_hash', 'alt_password_hash',
            'verify_otp', 'verify_otp_expires_at',
            'update_otp', 'update_otp_expires_at',
            'delete_otp', 'delete_otp_expires_at',
            'pending_email', 'pending_password_hash', 'pending_alt_password_hash'
        ]
        return super().to_dict(exclude=(exclude or []) + hidden)
    
    def __repr__(self) -> str:
        return f'<Tenant {self.username}>'
