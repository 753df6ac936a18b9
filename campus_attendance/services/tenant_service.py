"""HOD account lifecycle: registration, OTP checks, profile changes, deletion."""
import hmac
import secrets
from datetime import datetime, timedelta
from enum import Enum
from flask import current_app
from werkzeug.security import generate_password_hash
from campus_attendance import db
from campus_attendance.models import Tenant, OtpPurpose, SequenceCounter
from campus_attendance.services.auth_service import AuthService, Role
from campus_attendance.services.email_service import EmailDeliveryError
from campus_attendance.services.membership_service import MembershipService
from campus_attendance.utils.errors import (
    AppError, ConflictError, NotFoundError, UnauthenticatedError, ValidationError
)
from campus_attendance.utils.validators import Validator, require_fields, require_password

class OtpStatus(Enum):
    VALID = 'valid'
    EXPIRED = 'expired'
    INVALID = 'invalid'

def hod_summary(tenant: Tenant, include_verified: bool = False) -> dict:
    summary = {
        'id': tenant.id,
        'username': tenant.username,
        'college_name': tenant.college_name,
        'email': tenant.email
    }
    if include_verified:
        summary['verified'] = tenant.verified
    return summary

class TenantService:
    @staticmethod
    def generate_otp():
        """Random 6-digit code and its expiry."""
        code = str(secrets.randbelow(900000) + 100000)
        minutes = current_app.config.get('OTP_EXPIRY_MINUTES', 10)
        return code, datetime.utcnow() + timedelta(minutes=minutes)
    
    @staticmethod
    def check_otp(input_otp, stored_otp, expires_at) -> OtpStatus:
        if not stored_otp or not expires_at:
            return OtpStatus.INVALID
        code = str(input_otp or '').strip()
        if not Validator.validate_otp(code) or not hmac.compare_digest(code, stored_otp):
            return OtpStatus.INVALID
        if datetime.utcnow() > expires_at:
            return OtpStatus.EXPIRED
        return OtpStatus.VALID
    
    @staticmethod
    def send_otp(email: str, code: str, name: str, purpose: str, failure_message: str) -> None:
        mailer = current_app.extensions['mailer']
        try:
            mailer.send_otp(email, code, name=name, purpose=purpose)
        except EmailDeliveryError:
            raise AppError(failure_message, 500)
    
    @staticmethod
    def _normalize_email(email) -> str:
        return str(email or '').strip().lower()
    
    @staticmethod
    def _validate_registration(data: dict) -> None:
        require_fields(data, ['college_name', 'username', 'email', 'password', 'alt_password'])
        if len(str(data['username']).strip()) < 3:
            raise ValidationError('Username must be at least 3 characters')
        if not Validator.validate_email(data['email']):
            raise ValidationError('Invalid email format')
        require_password(data['password'])
        require_password(data['alt_password'], label='Alt password')
    
    @staticmethod
    def _build_tenant(data: dict, verified: bool) -> Tenant:
        username = str(data['username']).strip()
        email = TenantService._normalize_email(data['email'])
        
        existing = Tenant.query.filter(
            (Tenant.email == email) | (Tenant.username == username)
        ).first()
        if existing:
            if existing.email == email:
                raise ConflictError('Email already registered')
            raise ConflictError('Username already taken')
        
        tenant = Tenant(
            college_name=str(data['college_name']).strip(),
            username=username,
            email=email,
            verified=verified
        )
        tenant.set_password(data['password'])
        tenant.set_alt_password(data['alt_password'])
        db.session.add(tenant)
        db.session.flush()
        db.session.add(SequenceCounter(tenant_id=tenant.id, seq=0))
        return tenant
    
    @staticmethod
    def register(data: dict) -> Tenant:
        """Create an unverified tenant and mail its registration code."""
        TenantService._validate_registration(data)
        tenant = TenantService._build_tenant(data, verified=False)
        code, expires_at = TenantService.generate_otp()
        tenant.set_otp(OtpPurpose.REGISTRATION, code, expires_at)
        db.session.commit()
        
        current_app.logger.info(f'HOD registered: {tenant.username}')
        TenantService.send_otp(tenant.email, code, tenant.college_name, 'email verification',
                               'Failed to send verification OTP')
        return tenant
    
    @staticmethod
    def create_verified(college_name, username, email, password, alt_password) -> Tenant:
        """Create a tenant that skips email verification (CLI)."""
        data = {
            'college_name': college_name,
            'username': username,
            'email': email,
            'password': password,
            'alt_password': alt_password
        }
        TenantService._validate_registration(data)
        tenant = TenantService._build_tenant(data, verified=True)
        db.session.commit()
        return tenant
    
    @staticmethod
    def _get_by_email(email) -> Tenant:
        tenant = Tenant.query.filter_by(email=TenantService._normalize_email(email)).first()
        if not tenant:
            raise NotFoundError('HOD not found')
        return tenant
    
    @staticmethod
    def verify_registration(email: str, otp: str) -> dict:
        require_fields({'email': email, 'otp': otp}, ['email', 'otp'], 'Email and OTP are required')
        tenant = TenantService._get_by_email(email)
        if tenant.verified:
            raise ValidationError('Email already verified')
        
        status = TenantService.check_otp(otp, *tenant.get_otp(OtpPurpose.REGISTRATION))
        if status is OtpStatus.INVALID:
            raise ValidationError('Invalid OTP')
        if status is OtpStatus.EXPIRED:
            tenant.clear_otp(OtpPurpose.REGISTRATION)
            db.session.commit()
            raise ValidationError('OTP expired. Please request a new one.')
        
        tenant.verified = True
        tenant.clear_otp(OtpPurpose.REGISTRATION)
        db.session.commit()
        
        return {
            'token': AuthService.create_token(Role.HOD, tenant.id, tenant.id),
            'hod': hod_summary(tenant)
        }
    
    @staticmethod
    def resend_otp(email: str) -> Tenant:
        require_fields({'email': email}, ['email'], 'Email is required')
        tenant = TenantService._get_by_email(email)
        if tenant.verified:
            raise ValidationError('Email already verified')
        
        code, expires_at = TenantService.generate_otp()
        tenant.set_otp(OtpPurpose.REGISTRATION, code, expires_at)
        db.session.commit()
        
        TenantService.send_otp(tenant.email, code, tenant.college_name, 'email verification',
                               'Failed to resend OTP')
        return tenant
    
    @staticmethod
    def _login_result(tenant: Tenant) -> dict:
        return {
            'token': AuthService.create_token(Role.HOD, tenant.id, tenant.id),
            'hod': hod_summary(tenant)
        }
    
    @staticmethod
    def login(username: str, password: str) -> dict:
        require_fields({'username': username, 'password': password}, ['username', 'password'],
                       'Username and password are required')
        tenant = Tenant.query.filter_by(username=str(username).strip()).first()
        if not tenant:
            raise UnauthenticatedError('Invalid credentials')
        if not tenant.verified:
            raise UnauthenticatedError('Email not verified. Please verify your email first.')
        if not tenant.check_password(password):
            raise UnauthenticatedError('Invalid credentials')
        return TenantService._login_result(tenant)
    
    @staticmethod
    def login_by_email(email: str, alt_password: str) -> dict:
        require_fields({'email': email, 'alt_password': alt_password}, ['email', 'alt_password'],
                       'Email and alt password are required')
        tenant = Tenant.query.filter_by(email=TenantService._normalize_email(email)).first()
        if not tenant:
            raise UnauthenticatedError('Invalid credentials')
        if not tenant.verified:
            raise UnauthenticatedError('Email not verified. Please verify your email first.')
        if not tenant.check_alt_password(alt_password):
            raise UnauthenticatedError('Invalid credentials')
        return TenantService._login_result(tenant)
    
    @staticmethod
    def update(tenant: Tenant, data: dict) -> dict:
        """Apply name changes now; stage email and password changes behind an OTP."""
        data = data or {}
        username = str(data.get('username') or '').strip()
        college_name = str(data.get('college_name') or '').strip()
        email = TenantService._normalize_email(data.get('email'))
        password = data.get('password')
        alt_password = data.get('alt_password')
        
        if username and username != tenant.username:
            if len(username) < 3:
                raise ValidationError('Username must be at least 3 characters')
            if Tenant.query.filter(Tenant.username == username, Tenant.id != tenant.id).first():
                raise ConflictError('Username already taken')
            tenant.username = username
        
        if college_name:
            tenant.college_name = college_name
        
        email_changed = bool(email) and email != tenant.email
        if email_changed:
            if not Validator.validate_email(email):
                raise ValidationError('Invalid email format')
            if Tenant.query.filter(Tenant.email == email, Tenant.id != tenant.id).first():
                raise ConflictError('Email already in use')
        if password:
            require_password(password)
        if alt_password:
            require_password(alt_password, label='Alt password')
        
        if not (email_changed or password or alt_password):
            db.session.commit()
            return {'otp_sent': False, 'hod': hod_summary(tenant, include_verified=True)}
        
        # Staging replaces whatever an earlier update left behind
        tenant.clear_pending_updates()
        if email_changed:
            tenant.pending_email = email
        if password:
            tenant.pending_password_hash = generate_password_hash(password)
        if alt_password:
            tenant.pending_alt_password_hash = generate_password_hash(alt_password)
        
        code, expires_at = TenantService.generate_otp()
        tenant.set_otp(OtpPurpose.UPDATE, code, expires_at)
        db.session.commit()
        
        target = email if email_changed else tenant.email
        TenantService.send_otp(target, code, tenant.college_name, 'confirming your profile update',
                               'Failed to send update OTP')
        return {'otp_sent': True, 'email': target}
    
    @staticmethod
    def verify_update(tenant: Tenant, otp: str) -> dict:
        code, expires_at = tenant.get_otp(OtpPurpose.UPDATE)
        if not code:
            raise ValidationError('No pending update found')
        
        status = TenantService.check_otp(otp, code, expires_at)
        if status is OtpStatus.INVALID:
            raise ValidationError('Invalid OTP')
        if status is OtpStatus.EXPIRED:
            tenant.clear_otp(OtpPurpose.UPDATE)
            tenant.clear_pending_updates()
            db.session.commit()
            raise ValidationError('OTP expired. Please request update again.')
        
        if tenant.pending_email:
            if Tenant.query.filter(Tenant.email == tenant.pending_email, Tenant.id != tenant.id).first():
                raise ConflictError('Email already in use')
            tenant.email = tenant.pending_email
        if tenant.pending_password_hash:
            tenant.password_hash = tenant.pending_password_hash
        if tenant.pending_alt_password_hash:
            tenant.alt_password_hash = tenant.pending_alt_password_hash
        
        tenant.clear_otp(OtpPurpose.UPDATE)
        tenant.clear_pending_updates()
        db.session.commit()
        
        current_app.logger.info(f'HOD {tenant.id} applied a verified profile update')
        return hod_summary(tenant, include_verified=True)
    
    @staticmethod
    def request_deletion(tenant: Tenant) -> Tenant:
        code, expires_at = TenantService.generate_otp()
        tenant.set_otp(OtpPurpose.DELETION, code, expires_at)
        db.session.commit()
        TenantService.send_otp(tenant.email, code, tenant.college_name, 'confirming account deletion',
                               'Failed to send delete OTP')
        return tenant
    
    @staticmethod
    def confirm_deletion(tenant: Tenant, otp: str) -> None:
        code, expires_at = tenant.get_otp(OtpPurpose.DELETION)
        if not code:
            raise ValidationError('No delete request found')
        
        status = TenantService.check_otp(otp, code, expires_at)
        if status is OtpStatus.INVALID:
            raise ValidationError('Invalid OTP')
        if status is OtpStatus.EXPIRED:
            tenant.clear_otp(OtpPurpose.DELETION)
            db.session.commit()
            raise ValidationError('Delete OTP expired. Please request deletion again.')
        
        MembershipService.delete_tenant(tenant.id)
