"""Tests for per-tenant class numbering."""
import threading
import pytest
from campus_attendance import create_app, db
from campus_attendance.config.testing import TestingConfig
from campus_attendance.models import SequenceCounter
from campus_attendance.services.class_service import ClassService
from campus_attendance.services.tenant_service import TenantService

@pytest.fixture
def file_app(tmp_path, monkeypatch, notifier, mailer):
    """App on a SQLite file so that worker threads get their own connections."""
    monkeypatch.setattr(TestingConfig, 'SQLALCHEMY_DATABASE_URI', f'sqlite:///{tmp_path / "classes.db"}')
    monkeypatch.setattr(TestingConfig, 'SQLALCHEMY_ENGINE_OPTIONS',
                        {'connect_args': {'timeout': 30, 'check_same_thread': False}}, raising=False)
    app = create_app('testing', notifier=notifier, mailer=mailer)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()
        db.engine.dispose()

class TestClassNumbers:
    def test_numbers_are_distinct_and_increasing(self, make):
        tenant = make.tenant()
        
        numbers = [ClassService.create_class(tenant.id, f'Class {i}', 'A').class_number for i in range(5)]
        
        assert numbers == [1, 2, 3, 4, 5]
    
    def test_tenants_count_independently(self, make):
        first, second = make.tenant(), make.tenant()
        
        ClassService.create_class(first.id, 'Physics', 'A')
        ClassService.create_class(first.id, 'Physics', 'B')
        created = ClassService.create_class(second.id, 'Physics', 'A')
        
        assert created.class_number == 1
    
    def test_missing_counter_is_created(self, make):
        tenant = make.tenant()
        SequenceCounter.query.filter_by(tenant_id=tenant.id).delete()
        db.session.commit()
        
        first = ClassService.create_class(tenant.id, 'Physics', 'A')
        second = ClassService.create_class(tenant.id, 'Physics', 'B')
        
        assert (first.class_number, second.class_number) == (1, 2)
        assert SequenceCounter.query.filter_by(tenant_id=tenant.id).one().seq == 2
    
    def test_lookup_by_number(self, make):
        tenant = make.tenant()
        created = ClassService.create_class(tenant.id, 'Physics', 'A')
        
        assert ClassService.find_by_number(str(created.class_number), tenant.id).id == created.id
        assert ClassService.find_by_number('nope', tenant.id) is None

class TestConcurrentClassNumbers:
    def test_parallel_creates_never_repeat(self, file_app):
        with file_app.app_context():
            tenant_id = TenantService.create_verified('Parallel College', 'parallel', 'p@college.edu',
                                                      'secret1', 'secret2').id
        numbers = []
        errors = []
        
        def create(index):
            with file_app.app_context():
                try:
                    numbers.append(ClassService.create_class(tenant_id, f'Class {index}', 'A').class_number)
                except Exception as e:
                    errors.append(e)
                finally:
                    db.session.remove()
        
        threads = [threading.Thread(target=create, args=(i,)) for i in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        
        assert errors == []
        assert sorted(numbers) == list(range(1, 11))
        with file_app.app_context():
            assert SequenceCounter.query.filter_by(tenant_id=tenant_id).one().seq == 10
