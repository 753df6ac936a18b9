"""Class management API."""
from flask import Blueprint, current_app, request
from flask_jwt_extended import jwt_required
from campus_attendance import limiter
from campus_attendance.services.class_service import ClassService
from campus_attendance.services.ingestion_service import IngestionService
from campus_attendance.services.membership_service import MembershipService
from campus_attendance.utils.decorators import current_principal, handle_errors, hod_required
from campus_attendance.utils.helpers import json_body, parse_id_list, success_response
from campus_attendance.utils.spreadsheet import uploaded_rows

classes_bp = Blueprint('classes', __name__)

def _ids_from_request(key: str):
    """Ids from the JSON body, or a comma separated query parameter."""
    data = json_body()
    return data.get(key) or parse_id_list(request.args.get(key))

@classes_bp.route('/bulk-upload', methods=['POST'])
@jwt_required()
@hod_required
@limiter.limit("5 per hour")
@handle_errors('uploading classes')
def bulk_upload():
    rows = uploaded_rows(request.files, 'class', current_app.config['ALLOWED_EXTENSIONS'])
    result = IngestionService.ingest_classes(current_principal().tenant_id, rows)
    return success_response(data=result, message=f"{result['inserted']} classes uploaded", status_code=201)

@classes_bp.route('/bulk', methods=['DELETE'])
@jwt_required()
@hod_required
@handle_errors('bulk deleting classes')
def bulk_delete():
    result = MembershipService.bulk_delete_classes(_ids_from_request('class_ids'), current_principal().tenant_id)
    return success_response(data=result, message=f"{result['total_deleted']} classes deleted successfully")

@classes_bp.route('/', methods=['POST'])
@jwt_required()
@hod_required
@handle_errors('creating class')
def create_class():
    data = json_body()
    school_class = ClassService.create_class(
        current_principal().tenant_id, data.get('class_name'), data.get('division')
    )
    return success_response(
        data={'class': school_class.to_dict(include_members=True)},
        message='Class created successfully',
        status_code=201
    )

@classes_bp.route('/', methods=['GET'])
@jwt_required()
@hod_required
@handle_errors('fetching classes')
def get_classes():
    classes = ClassService.list_classes(current_principal().tenant_id)
    return success_response(data={'classes': [c.to_dict(include_members=True) for c in classes]})

@classes_bp.route('/<int:class_id>', methods=['GET'])
@jwt_required()
@hod_required
@handle_errors('fetching class')
def get_class(class_id):
    school_class = ClassService.get_class(class_id, current_principal().tenant_id)
    return success_response(data={'class': school_class.to_dict(include_members=True)})

@classes_bp.route('/<int:class_id>', methods=['PUT'])
@jwt_required()
@hod_required
@handle_errors('updating class')
def update_class(class_id):
    school_class = ClassService.update_class(
        class_id, current_principal().tenant_id, json_body()
    )
    return success_response(data={'class': school_class.to_dict()}, message='Class updated successfully')

@classes_bp.route('/<int:class_id>', methods=['DELETE'])
@jwt_required()
@hod_required
@handle_errors('deleting class')
def delete_class(class_id):
    MembershipService.delete_class(class_id, current_principal().tenant_id)
    return success_response(message='Class deleted successfully')

@classes_bp.route('/<int:class_id>/students', methods=['POST'])
@jwt_required()
@hod_required
@handle_errors('assigning students')
def assign_students(class_id):
    student_ids = json_body().get('student_ids')
    MembershipService.assign_students(class_id, student_ids, current_principal().tenant_id)
    return success_response(message=f'{len(student_ids)} students assigned to class successfully')

@classes_bp.route('/<int:class_id>/students', methods=['DELETE'])
@jwt_required()
@hod_required
@handle_errors('removing students')
def remove_students(class_id):
    MembershipService.remove_students(class_id, _ids_from_request('student_ids'), current_principal().tenant_id)
    return success_response(message='Students removed successfully')

@classes_bp.route('/<int:class_id>/professors', methods=['POST'])
@jwt_required()
@hod_required
@handle_errors('assigning professors')
def assign_professors(class_id):
    professor_ids = json_body().get('professor_ids')
    MembershipService.assign_professors(class_id, professor_ids, current_principal().tenant_id)
    return success_response(message=f'{len(professor_ids)} professors assigned to class successfully')

@classes_bp.route('/<int:class_id>/professors', methods=['DELETE'])
@jwt_required()
@hod_required
@handle_errors('removing professors')
def remove_professors(class_id):
    MembershipService.remove_professors(
        class_id, _ids_from_request('professor_ids'), current_principal().tenant_id
    )
    return success_response(message='Professors removed successfully')
