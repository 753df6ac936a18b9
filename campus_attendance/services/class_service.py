"""Class creation and lookup."""
from typing import List
from flask import current_app
from sqlalchemy.exc import IntegrityError
from campus_attendance import db
from campus_attendance.models import SchoolClass, SequenceCounter
from campus_attendance.services.membership_service import MembershipService
from campus_attendance.utils.errors import AppError, ValidationError

class ClassService:
    @staticmethod
    def build_class(tenant_id: int, class_name: str, division: str) -> SchoolClass:
        """Stage a class with the tenant's next class number, no commit."""
        school_class = SchoolClass(
            class_number=SequenceCounter.next_value(tenant_id),
            class_name=class_name,
            division=division,
            tenant_id=tenant_id
        )
        db.session.add(school_class)
        db.session.flush()
        return school_class
    
    @staticmethod
    def create_class(tenant_id: int, class_name, division) -> SchoolClass:
        class_name = str(class_name or '').strip()
        division = str(division or '').strip()
        if not class_name or not division:
            raise ValidationError('Class name and division are required')
        
        try:
            school_class = ClassService.build_class(tenant_id, class_name, division)
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise AppError('Duplicate class id generated. Please try again.', 500)
        
        current_app.logger.info(f'Class {school_class.class_number} created for tenant {tenant_id}')
        return school_class
    
    @staticmethod
    def list_classes(tenant_id: int) -> List[SchoolClass]:
        return SchoolClass.query.filter_by(tenant_id=tenant_id).order_by(
            SchoolClass.class_name, SchoolClass.division
        ).all()
    
    @staticmethod
    def get_class(class_id, tenant_id: int) -> SchoolClass:
        return MembershipService.get_class(class_id, tenant_id)
    
    @staticmethod
    def find_by_number(class_number, tenant_id: int):
        try:
            number = int(str(class_number).strip())
        except (TypeError, ValueError):
            return None
        return SchoolClass.query.filter_by(tenant_id=tenant_id, class_number=number).first()
    
    @staticmethod
    def update_class(class_id, tenant_id: int, data: dict) -> SchoolClass:
        school_class = MembershipService.get_class(class_id, tenant_id)
        class_name = str((data or {}).get('class_name') or '').strip()
        division = str((data or {}).get('division') or '').strip()
        if class_name:
            school_class.class_name = class_name
        if division:
            school_class.division = division
        db.session.commit()
        return school_class
