"""HOD (tenant) account API."""
from flask import Blueprint
from flask_jwt_extended import jwt_required
from campus_attendance import limiter
from campus_attendance.services.tenant_service import TenantService
from campus_attendance.utils.decorators import current_principal, handle_errors, hod_required
from campus_attendance.utils.helpers import json_body, success_response

hods_bp = Blueprint('hods', __name__)

@hods_bp.route('/register', methods=['POST'])
@limiter.limit("10 per hour")
@handle_errors('registering')
def register():
    """Create an unverified HOD and send the verification code."""
    tenant = TenantService.register(json_body())
    return success_response(
        data={'hod_id': tenant.id, 'email': tenant.email},
        message='Registration initiated. Please verify your email with the OTP sent.',
        status_code=201
    )

@hods_bp.route('/verify-otp', methods=['POST'])
@handle_errors('verifying OTP')
def verify_otp():
    data = json_body()
    result = TenantService.verify_registration(data.get('email'), data.get('otp'))
    return success_response(data=result, message='Email verified successfully')

@hods_bp.route('/resend-otp', methods=['POST'])
@limiter.limit("5 per hour")
@handle_errors('resending OTP')
def resend_otp():
    data = json_body()
    tenant = TenantService.resend_otp(data.get('email'))
    return success_response(data={'email': tenant.email}, message='OTP resent successfully')

@hods_bp.route('/login', methods=['POST'])
@limiter.limit("20 per hour")
@handle_errors('logging in')
def login():
    data = json_body()
    result = TenantService.login(data.get('username'), data.get('password'))
    return success_response(data=result, message='Login successful')

@hods_bp.route('/login-email', methods=['POST'])
@limiter.limit("20 per hour")
@handle_errors('logging in')
def login_email():
    data = json_body()
    result = TenantService.login_by_email(data.get('email'), data.get('alt_password'))
    return success_response(data=result, message='Login successful (email + alt password)')

@hods_bp.route('/profile', methods=['GET'])
@jwt_required()
@hod_required
@handle_errors('fetching profile')
def profile():
    return success_response(data={'hod': current_principal().account.to_dict()})

@hods_bp.route('/update', methods=['PUT'])
@jwt_required()
@hod_required
@handle_errors('updating profile')
def update():
    """Name changes apply now; email and password changes wait for an OTP."""
    tenant = current_principal().account
    result = TenantService.update(tenant, json_body())
    if result['otp_sent']:
        return success_response(
            data={'email': result['email']},
            message='OTP sent to your email. Please verify to confirm changes.'
        )
    return success_response(data={'hod': result['hod']}, message='Profile updated successfully')

@hods_bp.route('/verify-update-otp', methods=['POST'])
@jwt_required()
@hod_required
@handle_errors('verifying update')
def verify_update_otp():
    data = json_body()
    hod = TenantService.verify_update(current_principal().account, data.get('otp'))
    return success_response(data={'hod': hod}, message='Update verified and applied successfully')

@hods_bp.route('/delete-request', methods=['POST'])
@jwt_required()
@hod_required
@handle_errors('requesting deletion')
def delete_request():
    tenant = TenantService.request_deletion(current_principal().account)
    return success_response(
        data={'email': tenant.email},
        message='OTP sent to your registered email to confirm deletion'
    )

@hods_bp.route('/confirm-delete', methods=['POST'])
@jwt_required()
@hod_required
@handle_errors('confirming deletion')
def confirm_delete():
    data = json_body()
    TenantService.confirm_deletion(current_principal().account, data.get('otp'))
    return success_response(message='HOD and all related data deleted successfully')
