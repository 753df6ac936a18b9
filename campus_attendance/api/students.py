"""Student management API."""
from flask import Blueprint, current_app, request
from flask_jwt_extended import jwt_required
from campus_attendance import limiter
from campus_attendance.services.auth_service import AuthService
from campus_attendance.services.ingestion_service import IngestionService
from campus_attendance.services.membership_service import MembershipService
from campus_attendance.services.student_service import StudentService
from campus_attendance.utils.decorators import (
    current_principal, handle_errors, hod_required, professor_or_hod_required, student_required
)
from campus_attendance.utils.helpers import json_body, parse_id_list, success_response
from campus_attendance.utils.spreadsheet import uploaded_rows

students_bp = Blueprint('students', __name__)

@students_bp.route('/login', methods=['POST'])
@limiter.limit("20 per hour")
@handle_errors('logging in student')
def login():
    data = json_body()
    result = AuthService.login_student(
        data.get('enrollment_number'), data.get('password'), data.get('hod_username')
    )
    return success_response(data=result, message='Student logged in successfully')

@students_bp.route('/me', methods=['GET'])
@jwt_required()
@student_required
@handle_errors('fetching profile')
def my_profile():
    return success_response(data={'student': StudentService.profile(current_principal().account)})

@students_bp.route('/me', methods=['PUT'])
@jwt_required()
@student_required
@handle_errors('updating password')
def change_password():
    data = json_body()
    StudentService.change_password(current_principal().account, data.get('password'))
    return success_response(message='Password updated successfully')

@students_bp.route('/fcm-token', methods=['POST'])
@jwt_required()
@student_required
@handle_errors('registering FCM token')
def register_fcm_token():
    data = json_body()
    tokens = StudentService.add_device_token(current_principal().account, data.get('fcm_token'))
    return success_response(data={'fcm_tokens': tokens}, message='FCM token registered successfully')

@students_bp.route('/fcm-token', methods=['DELETE'])
@jwt_required()
@student_required
@handle_errors('removing FCM token')
def remove_fcm_token():
    data = json_body()
    token = data.get('fcm_token') or request.args.get('fcm_token')
    tokens = StudentService.remove_device_token(current_principal().account, token)
    return success_response(data={'fcm_tokens': tokens}, message='FCM token removed successfully')

@students_bp.route('/', methods=['GET'])
@jwt_required()
@professor_or_hod_required
@handle_errors('fetching students')
def get_students():
    """Students of the caller's tenant, filtered by semester or class."""
    students = StudentService.list_students(
        current_principal().tenant_id,
        semester=request.args.get('semester'),
        class_id=request.args.get('class_id'),
        class_number=request.args.get('class_number')
    )
    return success_response(data={'students': [s.to_dict(include_classes=True) for s in students]})

@students_bp.route('/', methods=['POST'])
@jwt_required()
@hod_required
@handle_errors('adding student')
def create_student():
    student = StudentService.create_student(current_principal().tenant_id, json_body())
    return success_response(
        data={'student': student.to_dict(include_classes=True)},
        message='Student added successfully',
        status_code=201
    )

@students_bp.route('/bulk-upload', methods=['POST'])
@jwt_required()
@hod_required
@limiter.limit("5 per hour")
@handle_errors('uploading students')
def bulk_upload():
    """Create students from a CSV/Excel sheet.

    Columns: enrollment number, name, semester, optional division and password.
    """
    rows = uploaded_rows(request.files, 'student', current_app.config['ALLOWED_EXTENSIONS'])
    result = IngestionService.ingest_students(current_principal().tenant_id, rows)
    return success_response(
        data=result,
        message=f"{result['inserted']} students uploaded successfully",
        status_code=201
    )

@students_bp.route('/bulk', methods=['DELETE'])
@jwt_required()
@hod_required
@handle_errors('bulk deleting students')
def bulk_delete():
    data = json_body()
    ids = data.get('student_ids') or parse_id_list(request.args.get('student_ids'))
    result = MembershipService.bulk_delete_students(ids, current_principal().tenant_id)
    return success_response(data=result, message=f"{result['total_deleted']} students deleted successfully")

@students_bp.route('/<int:student_id>', methods=['GET'])
@jwt_required()
@hod_required
@handle_errors('fetching student')
def get_student(student_id):
    student = StudentService.get_student(student_id, current_principal().tenant_id)
    return success_response(data={'student': student.to_dict(include_classes=True)})

@students_bp.route('/<int:student_id>', methods=['PUT'])
@jwt_required()
@hod_required
@handle_errors('updating student')
def update_student(student_id):
    student = StudentService.update_student(
        student_id, current_principal().tenant_id, json_body()
    )
    return success_response(data={'student': student.to_dict(include_classes=True)}, message='Student updated successfully')

@students_bp.route('/<int:student_id>', methods=['DELETE'])
@jwt_required()
@hod_required
@handle_errors('deleting student')
def delete_student(student_id):
    StudentService.delete_student(student_id, current_principal().tenant_id)
    return success_response(message='Student deleted successfully')
