"""Testing configuration."""
from datetime import timedelta

from .base import BaseConfig

class TestingConfig(BaseConfig):
    """Testing configuration class."""
    
    # Basic Flask config
    DEBUG = False
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    
    # Database (in-memory SQLite for testing)
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    
    # JWT Configuration
    JWT_SECRET_KEY = 'test-jwt-secret-key-with-enough-length'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=5)
    
    # Rate Limiting (disabled for testing)
    RATELIMIT_ENABLED = False
    RATELIMIT_STORAGE_URI = 'memory://'
    
    # Disable external services in testing
    SMTP_HOST = ''
    FIREBASE_CREDENTIALS_FILE = None
    
    # Logging
    LOG_LEVEL = 'WARNING'
