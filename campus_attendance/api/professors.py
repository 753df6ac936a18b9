"""Professor management API."""
from flask import Blueprint, current_app, request
from flask_jwt_extended import jwt_required
from campus_attendance import limiter
from campus_attendance.services.auth_service import AuthService
from campus_attendance.services.ingestion_service import IngestionService
from campus_attendance.services.membership_service import MembershipService
from campus_attendance.services.professor_service import ProfessorService
from campus_attendance.utils.decorators import current_principal, handle_errors, hod_required, professor_required
from campus_attendance.utils.helpers import json_body, parse_id_list, success_response
from campus_attendance.utils.spreadsheet import uploaded_rows

professors_bp = Blueprint('professors', __name__)

@professors_bp.route('/login', methods=['POST'])
@limiter.limit("20 per hour")
@handle_errors('logging in professor')
def login():
    """Professor login; ``hod_username`` names the tenant for username logins."""
    data = json_body()
    result = AuthService.login_professor(
        data.get('login') or data.get('username') or data.get('email'),
        data.get('password'),
        data.get('hod_username')
    )
    return success_response(data=result, message='Professor logged in successfully')

@professors_bp.route('/classes', methods=['GET'])
@jwt_required()
@professor_required
@handle_errors('fetching classes')
def my_classes():
    classes = ProfessorService.classes_with_students(current_principal().account)
    return success_response(data={'classes': classes})

@professors_bp.route('/', methods=['POST'])
@jwt_required()
@hod_required
@handle_errors('adding professor')
def create_professor():
    principal = current_principal()
    professor = ProfessorService.create_professor(principal.tenant_id, json_body())
    return success_response(
        data={'professor': professor.to_summary()},
        message='Professor added successfully',
        status_code=201
    )

@professors_bp.route('/', methods=['GET'])
@jwt_required()
@hod_required
@handle_errors('fetching professors')
def get_professors():
    professors = ProfessorService.list_professors(current_principal().tenant_id)
    return success_response(data={'professors': [p.to_dict(include_classes=True) for p in professors]})

@professors_bp.route('/<int:professor_id>', methods=['GET'])
@jwt_required()
@hod_required
@handle_errors('fetching professor')
def get_professor(professor_id):
    professor = ProfessorService.get_professor(professor_id, current_principal().tenant_id)
    return success_response(data={'professor': professor.to_dict(include_classes=True)})

@professors_bp.route('/<int:professor_id>', methods=['PUT'])
@jwt_required()
@hod_required
@handle_errors('updating professor')
def update_professor(professor_id):
    professor = ProfessorService.update_professor(
        professor_id, current_principal().tenant_id, json_body()
    )
    return success_response(data={'professor': professor.to_summary()}, message='Professor updated successfully')

@professors_bp.route('/<int:professor_id>', methods=['DELETE'])
@jwt_required()
@hod_required
@handle_errors('deleting professor')
def delete_professor(professor_id):
    ProfessorService.delete_professor(professor_id, current_principal().tenant_id)
    return success_response(message='Professor deleted successfully')

@professors_bp.route('/bulk-upload', methods=['POST'])
@jwt_required()
@hod_required
@limiter.limit("5 per hour")
@handle_errors('uploading professors')
def bulk_upload():
    """Create professors from a CSV/Excel sheet with name, login and optional password columns."""
    rows = uploaded_rows(request.files, 'professor', current_app.config['ALLOWED_EXTENSIONS'])
    result = IngestionService.ingest_professors(current_principal().tenant_id, rows)
    return success_response(
        data=result,
        message=f"{result['inserted']} professors uploaded",
        status_code=201
    )

@professors_bp.route('/bulk', methods=['DELETE'])
@jwt_required()
@hod_required
@handle_errors('bulk deleting professors')
def bulk_delete():
    data = json_body()
    ids = data.get('professor_ids') or parse_id_list(request.args.get('professor_ids'))
    result = MembershipService.bulk_delete_professors(ids, current_principal().tenant_id)
    return success_response(data=result, message=f"{result['total_deleted']} professors deleted successfully")
