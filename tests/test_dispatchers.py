"""Tests for the email and push dispatchers."""
import json
import smtplib
import pytest
from campus_attendance.services import email_service
from campus_attendance.services.email_service import EmailDeliveryError, EmailService
from campus_attendance.services.membership_service import MembershipService
from campus_attendance.services.notification_service import NotificationService
from campus_attendance.services.student_service import StudentService

class RecordingSMTP:
    sent = []
    fail = False
    
    def __init__(self, host, port, timeout=None):
        self.host = host
        self.calls = []
    
    def __enter__(self):
        return self
    
    def __exit__(self, *exc):
        return False
    
    def starttls(self):
        self.calls.append('starttls')
    
    def login(self, user, password):
        self.calls.append('login')
    
    def send_message(self, message):
        if RecordingSMTP.fail:
            raise smtplib.SMTPServerDisconnected('gone')
        RecordingSMTP.sent.append(message)

@pytest.fixture
def smtp(monkeypatch):
    RecordingSMTP.sent = []
    RecordingSMTP.fail = False
    monkeypatch.setattr(email_service.smtplib, 'SMTP', RecordingSMTP)
    return RecordingSMTP

class TestEmailService:
    def test_unconfigured_sends_nothing(self, smtp):
        EmailService(host='').send_otp('a@b.edu', '123456')
        
        assert smtp.sent == []
    
    def test_sends_code(self, smtp):
        service = EmailService(host='smtp.test', user='bot@test.edu', password='pw', otp_expiry_minutes=7)
        
        service.send_otp('hod@test.edu', '654321', name='Test College')
        
        message = smtp.sent[0]
        assert message['To'] == 'hod@test.edu'
        assert message['From'] == 'bot@test.edu'
        assert '654321' in message.get_content()
        assert '7 minutes' in message.get_content()
    
    def test_failure_raises_delivery_error(self, smtp):
        smtp.fail = True
        
        with pytest.raises(EmailDeliveryError):
            EmailService(host='smtp.test').send('x@y.edu', 'subject', 'body')
    
    def test_registration_reports_mail_failure(self, app, client, smtp):
        smtp.fail = True
        app.config['SMTP_HOST'] = 'smtp.test'
        app.extensions['mailer'] = EmailService.from_config(app.config)
        
        response = client.post('/api/hods/register', json={
            'college_name': 'C', 'username': 'mailfail', 'email': 'm@f.edu',
            'password': 'secret1', 'alt_password': 'secret2'
        })
        
        assert response.status_code == 500
        assert json.loads(response.data)['error'] == 'Failed to send verification OTP'

class TestPushBatches:
    def test_tokens_are_sent_in_batches(self, app, notifier, make):
        tenant = make.tenant()
        school_class = make.school_class(tenant)
        students = [make.student(tenant) for _ in range(3)]
        for student in students:
            StudentService.add_device_token(student, f'device-{student.id}')
        app.config['NOTIFICATION_BATCH_SIZE'] = 2
        
        summary = NotificationService.notify_attendance(school_class, [s.id for s in students], 1, 1700000000000)
        
        assert [len(call['tokens']) for call in notifier.calls] == [2, 1]
        assert summary == {'sent': 3, 'failed': 0, 'pruned': 0}
    
    def test_without_dispatcher(self, app, make):
        app.extensions['notifier'] = None
        tenant = make.tenant()
        school_class = make.school_class(tenant)
        student = make.student(tenant)
        MembershipService.assign_students(school_class.id, [student.id], tenant.id)
        StudentService.add_device_token(student, 'orphan')
        
        summary = NotificationService.notify_attendance(school_class, [student.id], 1, 1700000000000)
        
        assert summary['sent'] == 0
