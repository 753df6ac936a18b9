"""Production configuration."""
import os

from .base import BaseConfig

class ProductionConfig(BaseConfig):
    """Production configuration class."""
    
    # Basic Flask config
    DEBUG = False
    TESTING = False
    SECRET_KEY = os.getenv('SECRET_KEY')  # Must be set in production
    
    # Database
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL')
    
    # JWT Configuration
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')
    
    # CORS
    CORS_ORIGINS = [origin for origin in os.getenv('CORS_ORIGINS', '').split(',') if origin] or ["*"]
    
    # Rate Limiting (Redis backed)
    RATELIMIT_STORAGE_URI = os.getenv('REDIS_URL')
    
    # File Upload
    MAX_CONTENT_LENGTH = 8 * 1024 * 1024  # 8MB in production
    
    # Logging
    LOG_LEVEL = 'INFO'
    LOG_FILE = os.getenv('LOG_FILE', '/app/logs/app.log')
