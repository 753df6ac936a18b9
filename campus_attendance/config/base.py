"""Settings shared by every environment."""
import os
from datetime import timedelta

class BaseConfig:
    """Base configuration class."""

    SECRET_KEY = os.getenv('SECRET_KEY') or 'dev-secret-key-change-in-production'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False
    AUTO_CREATE_TABLES = False

    # JWT Configuration
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY') or 'jwt-secret-key-change-in-production'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=7)
    JWT_ALGORITHM = 'HS256'

    # CORS
    CORS_ORIGINS = ["*"]

    # Rate Limiting
    RATELIMIT_STORAGE_URI = os.getenv('REDIS_URL') or 'memory://'
    RATELIMIT_ENABLED = True

    # One-time codes
    OTP_EXPIRY_MINUTES = int(os.getenv('OTP_EXPIRY_MINUTES', 10))

    # Login identity variants
    PROFESSOR_LOGIN_IDENTITY = os.getenv('PROFESSOR_LOGIN_IDENTITY', 'username')  # username | email
    STUDENT_ENROLLMENT_SCOPE = os.getenv('STUDENT_ENROLLMENT_SCOPE', 'global')  # tenant | global

    # Bulk ingestion
    DEFAULT_TEMP_PASSWORD = os.getenv('DEFAULT_TEMP_PASSWORD', 'Temp@1234')

    # Push notifications
    NOTIFICATION_BATCH_SIZE = 500
    FIREBASE_CREDENTIALS_FILE = os.getenv('FIREBASE_CREDENTIALS_FILE')

    # Email
    SMTP_HOST = os.getenv('SMTP_HOST', '')
    SMTP_PORT = int(os.getenv('SMTP_PORT', 587))
    SMTP_USER = os.getenv('SMTP_USER', '')
    SMTP_PASSWORD = os.getenv('SMTP_PASSWORD', '')
    SMTP_USE_TLS = os.getenv('SMTP_USE_TLS', '1') == '1'
    MAIL_FROM = os.getenv('MAIL_FROM') or SMTP_USER

    # File Upload
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB
    ALLOWED_EXTENSIONS = {'csv', 'xlsx'}

    # Logging
    LOG_LEVEL = 'INFO'
    LOG_FILE = 'logs/app.log'
