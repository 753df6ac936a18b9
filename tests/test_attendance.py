"""Tests for bulk attendance marking, notifications and reports."""
import json
from datetime import date
import pytest
from campus_attendance.models import AttendanceRecord
from campus_attendance.services.attendance_service import AttendanceService
from campus_attendance.services.membership_service import MembershipService
from campus_attendance.services.student_service import StudentService
from campus_attendance.utils.dates import local_midnight_ms, month_window_ms
from campus_attendance.utils.decorators import Principal
from campus_attendance.utils.errors import AuthorizationError, NotFoundError, ValidationError

@pytest.fixture
def scene(make):
    """A tenant with one class, two enrolled students and an assigned professor."""
    tenant = make.tenant()
    school_class = make.school_class(tenant, 'Physics', 'A')
    professor = make.professor(tenant)
    s1, s2 = make.student(tenant), make.student(tenant)
    MembershipService.assign_students(school_class.id, [s1.id, s2.id], tenant.id)
    MembershipService.assign_professors(school_class.id, [professor.id], tenant.id)
    return {'tenant': tenant, 'class': school_class, 'professor': professor, 'students': [s1, s2]}

def principal_for(professor):
    return Principal(professor.id, 'professor', professor.tenant_id, professor)

def mark(client, headers, professor, payload):
    response = client.post('/api/attendance/bulk', json=payload, headers=headers['professor'](professor))
    return response, json.loads(response.data)

class TestMarkBulk:
    def test_marks_and_reports(self, client, headers, scene):
        s1, s2 = scene['students']
        payload = {
            'class_id': scene['class'].id,
            'slot_number': 1,
            'date': '2024-03-15',
            'records': [{'student_id': s1.id, 'is_present': True}, {'student_id': s2.id, 'is_present': False}]
        }
        
        response, data = mark(client, headers, scene['professor'], payload)
        
        assert response.status_code == 200
        assert data['success'] is True
        assert data['saved_count'] == 2
        assert data['skipped_count'] == 0
        records = AttendanceRecord.query.order_by(AttendanceRecord.student_id).all()
        assert [r.is_present for r in records] == [True, False]
        assert records[0].date_ms == local_midnight_ms(date(2024, 3, 15))
    
    def test_resubmission_updates_in_place(self, scene):
        s1, _ = scene['students']
        principal = principal_for(scene['professor'])
        
        AttendanceService.mark_bulk(principal, scene['class'].id, 2, [{'student_id': s1.id, 'is_present': True}],
                                    date='2024-03-15')
        AttendanceService.mark_bulk(principal, scene['class'].id, 2, [{'student_id': s1.id, 'is_present': False}],
                                    date='2024-03-15')
        
        records = AttendanceRecord.query.all()
        assert len(records) == 1
        assert records[0].is_present is False
    
    def test_skips_bad_and_duplicate_entries(self, make, scene):
        s1, s2 = scene['students']
        outsider = make.student(make.tenant())
        records = [
            {'student_id': s1.id, 'is_present': True},
            {'student_id': 'abc', 'is_present': True},
            {'student_id': 99999, 'is_present': True},
            {'student_id': outsider.id, 'is_present': True},
            {'student_id': s1.id, 'is_present': False},
            {'student_id': str(s2.id), 'is_present': 'true'}
        ]
        
        result = AttendanceService.mark_bulk(principal_for(scene['professor']), scene['class'].id, 1, records,
                                             date='2024-03-15')
        
        assert result['saved_count'] == 2
        assert [s['reason'] for s in result['skipped']] == [
            'duplicate in request', 'invalid student id', 'student not found', 'student not found'
        ]
        assert result['skipped_student_ids'][0] == s1.id
        saved = {r.student_id: r.is_present for r in AttendanceRecord.query.all()}
        assert saved == {s1.id: False, s2.id: True}
    
    def test_validation_errors(self, scene):
        principal = principal_for(scene['professor'])
        class_id = scene['class'].id
        
        with pytest.raises(ValidationError):
            AttendanceService.mark_bulk(principal, class_id, None, [{'student_id': 1}], date='2024-03-15')
        with pytest.raises(ValidationError) as exc:
            AttendanceService.mark_bulk(principal, class_id, 1, [], date='2024-03-15')
        assert exc.value.message == 'records[] cannot be empty'
        with pytest.raises(ValidationError) as exc:
            AttendanceService.mark_bulk(principal, class_id, 1, [{'student_id': 1}])
        assert exc.value.message == 'Provide date_ms or date (YYYY-MM-DD)'
    
    def test_unassigned_professor_is_forbidden(self, make, scene):
        stranger = make.professor(scene['tenant'])
        
        with pytest.raises(AuthorizationError):
            AttendanceService.mark_bulk(principal_for(stranger), scene['class'].id, 1,
                                        [{'student_id': scene['students'][0].id}], date='2024-03-15')
    
    def test_class_without_professors_is_open(self, make, scene):
        open_class = make.school_class(scene['tenant'], 'Maths', 'B')
        
        result = AttendanceService.mark_bulk(principal_for(scene['professor']), open_class.id, 1,
                                             [{'student_id': scene['students'][0].id}], date='2024-03-15')
        
        assert result['saved_count'] == 1
    
    def test_other_tenants_class_is_not_found(self, make, scene):
        foreign_class = make.school_class(make.tenant())
        
        with pytest.raises(NotFoundError):
            AttendanceService.mark_bulk(principal_for(scene['professor']), foreign_class.id, 1,
                                        [{'student_id': scene['students'][0].id}], date='2024-03-15')

class TestNotifications:
    def test_notifies_and_prunes_dead_tokens(self, notifier, scene):
        s1, s2 = scene['students']
        StudentService.add_device_token(s1, 'good-token')
        StudentService.add_device_token(s1, 'dead-token')
        StudentService.add_device_token(s2, 'good-token')
        notifier.invalid.add('dead-token')
        
        AttendanceService.mark_bulk(principal_for(scene['professor']), scene['class'].id, 3,
                                    [{'student_id': s1.id, 'is_present': True}, {'student_id': s2.id}],
                                    date='2024-03-15')
        
        assert sorted(notifier.sent_tokens) == ['dead-token', 'good-token']
        assert notifier.calls[0]['title'] == 'Attendance Updated'
        assert 'Physics (A), Slot 3 on 2024-03-15' in notifier.calls[0]['body']
        assert StudentService.token_values(s1.id) == ['good-token']
    
    def test_notifier_failure_does_not_change_result(self, notifier, scene):
        s1, _ = scene['students']
        StudentService.add_device_token(s1, 'token-1')
        notifier.error = RuntimeError('provider unavailable')
        
        result = AttendanceService.mark_bulk(principal_for(scene['professor']), scene['class'].id, 1,
                                             [{'student_id': s1.id, 'is_present': True}], date='2024-03-15')
        
        assert result['saved_count'] == 1
        assert AttendanceRecord.query.count() == 1
        assert StudentService.token_values(s1.id) == ['token-1']
    
    def test_only_saved_students_are_notified(self, notifier, scene):
        s1, s2 = scene['students']
        StudentService.add_device_token(s2, 'other-token')
        
        AttendanceService.mark_bulk(principal_for(scene['professor']), scene['class'].id, 1,
                                    [{'student_id': s1.id, 'is_present': True}], date='2024-03-15')
        
        assert notifier.calls == []

class TestReports:
    def test_month_window_includes_last_millisecond(self, scene):
        s1, _ = scene['students']
        principal = principal_for(scene['professor'])
        _, end = month_window_ms(2024, 3)
        
        AttendanceService.mark_bulk(principal, scene['class'].id, 1, [{'student_id': s1.id, 'is_present': True}],
                                    date_ms=end)
        AttendanceService.mark_bulk(principal, scene['class'].id, 1, [{'student_id': s1.id, 'is_present': True}],
                                    date_ms=end + 1)
        
        march = AttendanceService.monthly_summary(scene['tenant'].id, scene['class'].id, 3, 2024)
        april = AttendanceService.for_student(s1, month=4, year=2024)
        
        assert march['summary'][0]['total_classes'] == 1
        assert [r['date_ms'] for r in april] == [end + 1]
    
    def test_summary_percentages(self, scene):
        s1, s2 = scene['students']
        principal = principal_for(scene['professor'])
        for slot, present in ((1, True), (2, True), (3, False)):
            AttendanceService.mark_bulk(
                principal, scene['class'].id, slot,
                [{'student_id': s1.id, 'is_present': present}, {'student_id': s2.id, 'is_present': True}],
                date='2024-03-15'
            )
        
        result = AttendanceService.monthly_summary(scene['tenant'].id, scene['class'].id, '3', '2024')
        
        rows = {r['student_id']: r for r in result['summary']}
        assert rows[s1.id]['presents'] == 2
        assert rows[s1.id]['absents'] == 1
        assert rows[s1.id]['percentage'] == 66.67
        assert rows[s2.id]['percentage'] == 100.0
    
    def test_summary_rejects_bad_month(self, scene):
        with pytest.raises(ValidationError):
            AttendanceService.monthly_summary(scene['tenant'].id, scene['class'].id, 13, 2024)
    
    def test_read_endpoints(self, client, headers, scene):
        s1, _ = scene['students']
        AttendanceService.mark_bulk(principal_for(scene['professor']), scene['class'].id, 1,
                                    [{'student_id': s1.id, 'is_present': True}], date='2024-03-15')
        class_id = scene['class'].id
        hod = headers['hod'](scene['tenant'])
        
        by_date = client.get(f'/api/attendance/{class_id}?date=2024-03-15', headers=hod)
        mine = client.get('/api/attendance/me?month=3&year=2024', headers=headers['student'](s1))
        by_student = client.get(f'/api/attendance/student/{s1.id}', headers=headers['professor'](scene['professor']))
        summary = client.get(f'/api/attendance/summary/{class_id}?month=3&year=2024', headers=hod)
        
        assert json.loads(by_date.data)['records'][0]['student_name'] == s1.name
        assert json.loads(mine.data)['records'][0]['class_name'] == 'Physics'
        assert len(json.loads(by_student.data)['records']) == 1
        assert json.loads(summary.data)['summary'][0]['percentage'] == 100.0
    
    def test_student_cannot_read_class_attendance(self, client, headers, scene):
        response = client.get(f'/api/attendance/class/{scene["class"].id}',
                              headers=headers['student'](scene['students'][0]))
        
        assert response.status_code == 403

class TestUpsertFallback:
    def test_failing_row_is_reported_and_others_saved(self, scene, monkeypatch):
        s1, _ = scene['students']
        missing_id = 987654
        
        def keep_all(records, tenant_id):
            return {s1.id: True, missing_id: False}, []
        monkeypatch.setattr(AttendanceService, 'dedupe', staticmethod(keep_all))
        
        result = AttendanceService.mark_bulk(principal_for(scene['professor']), scene['class'].id, 1,
                                             [{'student_id': s1.id}, {'student_id': missing_id}],
                                             date='2024-03-15')
        
        assert result['saved_count'] == 1
        assert [f['student_id'] for f in result['failed']] == [missing_id]
        assert [r.student_id for r in AttendanceRecord.query.all()] == [s1.id]

class TestMalformedInput:
    @pytest.mark.parametrize('month, year', [('1', '0'), ('12', '9999'), ('0', '2024'), ('x', '2024')])
    def test_summary_rejects_out_of_range_dates(self, client, headers, scene, month, year):
        response = client.get(f'/api/attendance/summary/{scene["class"].id}?month={month}&year={year}',
                              headers=headers['hod'](scene['tenant']))
        
        assert response.status_code == 400
        assert json.loads(response.data)['error'] == 'Invalid month/year'
    
    def test_non_numeric_slot_filter(self, scene):
        with pytest.raises(ValidationError):
            AttendanceService.by_date(scene['tenant'].id, scene['class'].id, date='2024-03-15', slot_number='abc')
        with pytest.raises(ValidationError):
            AttendanceService.by_class(scene['tenant'].id, scene['class'].id, slot_number='0')
    
    def test_array_body_is_a_validation_error(self, client, headers, scene):
        response, data = mark(client, headers, scene['professor'], [1, 2, 3])
        
        assert response.status_code == 400
        assert data['error'] == 'class_id, slot_number, and records[] are required'
    
    def test_array_body_on_membership_routes(self, client, headers, scene):
        response = client.post(f'/api/classes/{scene["class"].id}/students', json=[1],
                               headers=headers['hod'](scene['tenant']))
        
        assert response.status_code == 400
        assert json.loads(response.data)['error'] == 'Please provide an array of student IDs'
