"""Attendance API."""
from flask import Blueprint, request
from flask_jwt_extended import jwt_required
from campus_attendance.services.attendance_service import AttendanceService
from campus_attendance.utils.decorators import (
    current_principal, handle_errors, professor_or_hod_required, professor_required, student_required
)
from campus_attendance.utils.helpers import json_body, success_response

attendance_bp = Blueprint('attendance', __name__)

@attendance_bp.route('/bulk', methods=['POST'])
@jwt_required()
@professor_required
@handle_errors('marking attendance')
def mark_bulk():
    """Mark one slot of one class for many students.

    Body: ``class_id``, ``slot_number``, ``records`` (``[{student_id, is_present}]``)
    and either ``date_ms`` or ``date`` (YYYY-MM-DD).
    """
    data = json_body()
    result = AttendanceService.mark_bulk(
        current_principal(),
        data.get('class_id'),
        data.get('slot_number'),
        data.get('records'),
        date_ms=data.get('date_ms'),
        date=data.get('date')
    )
    return success_response(data=result)

@attendance_bp.route('/me', methods=['GET'])
@jwt_required()
@student_required
@handle_errors('fetching attendance')
def my_attendance():
    records = AttendanceService.for_student(
        current_principal().account, request.args.get('month'), request.args.get('year')
    )
    return success_response(data={'records': records})

@attendance_bp.route('/student/<int:student_id>', methods=['GET'])
@jwt_required()
@professor_or_hod_required
@handle_errors('fetching attendance')
def student_attendance(student_id):
    records = AttendanceService.by_student(
        current_principal().tenant_id, student_id, request.args.get('month'), request.args.get('year')
    )
    return success_response(data={'records': records})

@attendance_bp.route('/class/<int:class_id>', methods=['GET'])
@jwt_required()
@professor_or_hod_required
@handle_errors('fetching attendance')
def class_attendance(class_id):
    records = AttendanceService.by_class(
        current_principal().tenant_id, class_id,
        date_ms=request.args.get('date_ms'),
        slot_number=request.args.get('slot_number')
    )
    return success_response(data={'records': records})

@attendance_bp.route('/summary/<int:class_id>', methods=['GET'])
@jwt_required()
@professor_or_hod_required
@handle_errors('fetching monthly summary')
def monthly_summary(class_id):
    result = AttendanceService.monthly_summary(
        current_principal().tenant_id, class_id, request.args.get('month'), request.args.get('year')
    )
    return success_response(data=result)

@attendance_bp.route('/<int:class_id>', methods=['GET'])
@jwt_required()
@professor_or_hod_required
@handle_errors('fetching attendance')
def attendance_by_date(class_id):
    records = AttendanceService.by_date(
        current_principal().tenant_id, class_id,
        date_ms=request.args.get('date_ms'),
        date=request.args.get('date'),
        slot_number=request.args.get('slot_number')
    )
    return success_response(data={'records': records})
