"""Shared fixtures: an in-memory app with fake push and email dispatchers."""
import pytest
from campus_attendance import create_app, db
from campus_attendance.services.auth_service import AuthService, Role
from campus_attendance.services.class_service import ClassService
from campus_attendance.services.notification_service import BatchResult, TokenResult
from campus_attendance.services.professor_service import ProfessorService
from campus_attendance.services.student_service import StudentService
from campus_attendance.services.tenant_service import TenantService

class FakeNotifier:
    """Records multicasts; tokens in ``invalid`` come back unregistered."""
    
    def __init__(self):
        self.calls = []
        self.invalid = set()
        self.error = None
    
    def send_multicast(self, tokens, title, body):
        self.calls.append({'tokens': list(tokens), 'title': title, 'body': body})
        if self.error is not None:
            raise self.error
        responses = [
            TokenResult(token, token not in self.invalid, 'unregistered' if token in self.invalid else None)
            for token in tokens
        ]
        success = sum(1 for r in responses if r.success)
        return BatchResult(success, len(responses) - success, responses)
    
    @property
    def sent_tokens(self):
        return [token for call in self.calls for token in call['tokens']]

class FakeMailer:
    """Captures one-time codes instead of sending them."""
    
    def __init__(self):
        self.outbox = []
    
    def send_otp(self, to_email, otp, name='', purpose='email verification'):
        self.outbox.append({'to': to_email, 'otp': otp, 'purpose': purpose})
    
    def last_code(self, email=None):
        for message in reversed(self.outbox):
            if email is None or message['to'] == email:
                return message['otp']
        return None

class Factory:
    """Builds tenants, people and classes through the services."""
    
    def __init__(self):
        self.counter = 0
    
    def _next(self):
        self.counter += 1
        return self.counter
    
    def tenant(self, username=None, email=None, password='hodpass1', alt_password='altpass1'):
        n = self._next()
        return TenantService.create_verified(
            college_name=f'College {n}',
            username=username or f'hod{n}',
            email=email or f'hod{n}@college.edu',
            password=password,
            alt_password=alt_password
        )
    
    def professor(self, tenant, login=None, name=None, password='profpass1'):
        n = self._next()
        return ProfessorService.create_professor(tenant.id, {
            'name': name or f'Professor {n}',
            'login': login or f'prof{n}',
            'password': password
        })
    
    def student(self, tenant, enrollment_number=None, name=None, semester=3, password='studpass1', **extra):
        n = self._next()
        data = {
            'enrollment_number': enrollment_number or f'EN{n:04d}',
            'name': name or f'Student {n}',
            'semester': semester,
            'password': password
        }
        data.update(extra)
        return StudentService.create_student(tenant.id, data)
    
    def school_class(self, tenant, class_name='Physics', division='A'):
        return ClassService.create_class(tenant.id, class_name, division)

def auth_header(token):
    return {'Authorization': f'Bearer {token}'}

def hod_headers(tenant):
    return auth_header(AuthService.create_token(Role.HOD, tenant.id, tenant.id))

def professor_headers(professor):
    return auth_header(AuthService.create_token(Role.PROFESSOR, professor.id, professor.tenant_id))

def student_headers(student):
    return auth_header(AuthService.create_token(Role.STUDENT, student.id, student.tenant_id))

@pytest.fixture
def notifier():
    return FakeNotifier()

@pytest.fixture
def mailer():
    return FakeMailer()

@pytest.fixture
def app(notifier, mailer):
    """Create test app."""
    app = create_app('testing', notifier=notifier, mailer=mailer)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()

@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()

@pytest.fixture
def make(app):
    return Factory()

@pytest.fixture
def headers():
    """Header builders keyed by role."""
    return {
        'hod': hod_headers,
        'professor': professor_headers,
        'student': student_headers
    }
