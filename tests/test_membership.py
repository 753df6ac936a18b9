"""Tests for class membership and single-entity cascades."""
import json
import pytest
from sqlalchemy import func, select
from campus_attendance import db
from campus_attendance.models import AttendanceRecord, SchoolClass, Student, class_students, class_professors
from campus_attendance.services.membership_service import MembershipService
from campus_attendance.services.student_service import StudentService
from campus_attendance.utils.errors import NotFoundError, ValidationError

def roster(table, column, class_id):
    return set(db.session.execute(
        select(table.c[column]).where(table.c.class_id == class_id)
    ).scalars())

class TestAssignment:
    def test_assign_students_is_visible_from_both_sides(self, make):
        tenant = make.tenant()
        school_class = make.school_class(tenant)
        s1, s2 = make.student(tenant), make.student(tenant)
        
        MembershipService.assign_students(school_class.id, [s1.id, s2.id], tenant.id)
        
        assert roster(class_students, 'student_id', school_class.id) == {s1.id, s2.id}
        assert [c.id for c in db.session.get(Student, s1.id).classes] == [school_class.id]
        assert {s.id for s in db.session.get(SchoolClass, school_class.id).students} == {s1.id, s2.id}
    
    def test_assigning_twice_keeps_one_membership(self, make):
        tenant = make.tenant()
        school_class = make.school_class(tenant)
        student = make.student(tenant)
        
        MembershipService.assign_students(school_class.id, [student.id], tenant.id)
        MembershipService.assign_students(school_class.id, [student.id, student.id], tenant.id)
        
        count = db.session.execute(
            select(func.count()).select_from(class_students).where(class_students.c.class_id == school_class.id)
        ).scalar()
        assert count == 1
    
    def test_unknown_student_writes_nothing(self, make):
        tenant = make.tenant()
        school_class = make.school_class(tenant)
        student = make.student(tenant)
        
        with pytest.raises(NotFoundError):
            MembershipService.assign_students(school_class.id, [student.id, 9999], tenant.id)
        
        assert roster(class_students, 'student_id', school_class.id) == set()
    
    def test_other_tenants_student_is_not_found(self, make):
        tenant, other = make.tenant(), make.tenant()
        school_class = make.school_class(tenant)
        outsider = make.student(other)
        
        with pytest.raises(NotFoundError) as exc:
            MembershipService.assign_students(school_class.id, [outsider.id], tenant.id)
        assert exc.value.message == 'One or more students not found'
    
    def test_class_of_other_tenant_is_not_found(self, make):
        tenant, other = make.tenant(), make.tenant()
        foreign_class = make.school_class(other)
        student = make.student(tenant)
        
        with pytest.raises(NotFoundError) as exc:
            MembershipService.assign_students(foreign_class.id, [student.id], tenant.id)
        assert exc.value.message == 'Class not found'
    
    def test_empty_list_is_rejected(self, make):
        tenant = make.tenant()
        school_class = make.school_class(tenant)
        
        with pytest.raises(ValidationError):
            MembershipService.assign_professors(school_class.id, [], tenant.id)
    
    def test_assign_and_remove_professors(self, make):
        tenant = make.tenant()
        school_class = make.school_class(tenant)
        p1, p2 = make.professor(tenant), make.professor(tenant)
        
        MembershipService.assign_professors(school_class.id, [p1.id, p2.id], tenant.id)
        MembershipService.remove_professors(school_class.id, [p1.id, 'abc', 4242], tenant.id)
        
        assert roster(class_professors, 'professor_id', school_class.id) == {p2.id}

class TestStudentClassSet:
    def test_update_replaces_class_set(self, make):
        tenant = make.tenant()
        c1, c2, c3 = make.school_class(tenant), make.school_class(tenant, 'Chemistry'), make.school_class(tenant, 'Maths')
        student = make.student(tenant, class_id=c1.id)
        student_id = student.id
        
        StudentService.update_student(student_id, tenant.id, {'class_ids': [c2.id, c3.id]})
        
        assert roster(class_students, 'student_id', c1.id) == set()
        assert roster(class_students, 'student_id', c2.id) == {student_id}
        assert roster(class_students, 'student_id', c3.id) == {student_id}
    
    def test_unknown_class_leaves_set_untouched(self, make):
        tenant = make.tenant()
        c1 = make.school_class(tenant)
        student = make.student(tenant, class_id=c1.id)
        
        with pytest.raises(NotFoundError):
            MembershipService.set_student_classes(student.id, [c1.id, 777], tenant.id)
        
        assert roster(class_students, 'student_id', c1.id) == {student.id}

class TestDeletes:
    def _mark(self, student, school_class, professor, slot=1):
        db.session.add(AttendanceRecord(
            student_id=student.id, class_id=school_class.id, date_ms=1700000000000,
            slot_number=slot, is_present=True, marked_by_id=professor.id
        ))
        db.session.commit()
    
    def test_delete_class_removes_memberships_and_attendance(self, make):
        tenant = make.tenant()
        school_class = make.school_class(tenant)
        student, professor = make.student(tenant), make.professor(tenant)
        class_id = school_class.id
        MembershipService.assign_students(class_id, [student.id], tenant.id)
        MembershipService.assign_professors(class_id, [professor.id], tenant.id)
        self._mark(student, school_class, professor)
        
        MembershipService.delete_class(class_id, tenant.id)
        
        assert db.session.get(SchoolClass, class_id) is None
        assert roster(class_students, 'student_id', class_id) == set()
        assert roster(class_professors, 'professor_id', class_id) == set()
        assert AttendanceRecord.query.count() == 0
        assert db.session.get(Student, student.id) is not None
    
    def test_delete_professor_removes_records_they_marked(self, make):
        tenant = make.tenant()
        school_class = make.school_class(tenant)
        student, professor = make.student(tenant), make.professor(tenant)
        self._mark(student, school_class, professor)
        
        MembershipService.delete_professor(professor.id, tenant.id)
        
        assert AttendanceRecord.query.count() == 0
    
    def test_bulk_delete_reports_unmatched_ids(self, make):
        tenant, other = make.tenant(), make.tenant()
        s1, s2 = make.student(tenant), make.student(tenant)
        outsider = make.student(other)
        outsider_id = outsider.id
        
        result = MembershipService.bulk_delete_students([s1.id, s2.id, outsider_id, 'x'], tenant.id)
        
        assert result['total_requested'] == 4
        assert result['total_deleted'] == 2
        assert set(result['not_deleted']) == {outsider_id, 'x'}
        assert db.session.get(Student, outsider_id) is not None
    
    def test_bulk_delete_without_matches(self, make):
        tenant = make.tenant()
        
        with pytest.raises(ValidationError):
            MembershipService.bulk_delete_classes(['a', None], tenant.id)
        with pytest.raises(NotFoundError) as exc:
            MembershipService.bulk_delete_classes([123], tenant.id)
        assert exc.value.message == 'No classes found for deletion'
    
    def test_bulk_delete_reports_unhashable_ids(self, make):
        tenant = make.tenant()
        student = make.student(tenant)
        student_id = student.id
        
        result = MembershipService.bulk_delete_students([student_id, {'x': 1}, [1]], tenant.id)
        
        assert result['total_deleted'] == 1
        assert result['not_deleted'] == [{'x': 1}, [1]]
        assert db.session.get(Student, student_id) is None
    
    def test_bulk_delete_endpoint_with_nested_ids(self, client, headers, make):
        tenant = make.tenant()
        student = make.student(tenant)
        
        response = client.delete('/api/students/bulk', json={'student_ids': [student.id, [1]]},
                                 headers=headers['hod'](tenant))
        data = json.loads(response.data)
        
        assert response.status_code == 200
        assert data['not_deleted'] == [[1]]
