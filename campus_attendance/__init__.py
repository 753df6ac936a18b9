"""Campus Attendance System - Application Factory."""
import logging
import os
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from sqlalchemy import event

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200 per day", "50 per hour"]
)

def create_app(config_name: str = None, notifier=None, mailer=None) -> Flask:
    """Application factory pattern.

    ``notifier`` and ``mailer`` replace the push and email dispatchers built
    from configuration (tests pass in-memory doubles).
    """
    app = Flask(__name__)

    # Load configuration
    from campus_attendance.config import get_config
    config_class = get_config(config_name)
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)

    # Configure CORS
    CORS(app, origins=app.config.get('CORS_ORIGINS', ["*"]))

    # Setup logging
    setup_logging(app)

    # Outbound collaborators
    setup_dispatchers(app, notifier, mailer)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    # Setup database
    setup_database(app)

    # Add CLI commands
    register_commands(app)

    # Add health check
    @app.route('/health')
    def health_check():
        return jsonify({
            'success': True,
            'status': 'healthy',
            'service': 'Campus Attendance System',
            'version': '1.0.0'
        })

    return app

def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""
    from campus_attendance.api.hods import hods_bp
    from campus_attendance.api.professors import professors_bp
    from campus_attendance.api.students import students_bp
    from campus_attendance.api.classes import classes_bp
    from campus_attendance.api.attendance import attendance_bp

    # Tenant accounts
    app.register_blueprint(hods_bp, url_prefix='/api/hods')

    # Roster management
    app.register_blueprint(professors_bp, url_prefix='/api/professors')
    app.register_blueprint(students_bp, url_prefix='/api/students')
    app.register_blueprint(classes_bp, url_prefix='/api/classes')

    # Attendance
    app.register_blueprint(attendance_bp, url_prefix='/api/attendance')

def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from campus_attendance.utils.errors import AppError
    from campus_attendance.utils.helpers import handle_error, error_response
    from werkzeug.exceptions import HTTPException

    @app.errorhandler(AppError)
    def app_error(error):
        return error_response(error.message, error.status_code)

    @app.errorhandler(404)
    def not_found(error):
        return handle_error(error, 404)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return handle_error(error, 405)

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return error_response('Internal server error', 500)

    @app.errorhandler(HTTPException)
    def handle_exception(e):
        return handle_error(e, e.code)

    # JWT error handlers
    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return error_response('Token is invalid or expired', 401)

    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        return error_response('Token is invalid or expired', 401)

    @jwt.unauthorized_loader
    def missing_token_callback(error):
        return error_response('No token provided, authorization denied', 401)

def setup_logging(app: Flask) -> None:
    """Setup application logging."""
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    app.logger.setLevel(level)

    if not app.debug and not app.testing:
        log_file = app.config.get('LOG_FILE', 'logs/app.log')
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(level)
        app.logger.addHandler(file_handler)

        app.logger.info('Campus Attendance System startup')

def setup_dispatchers(app: Flask, notifier=None, mailer=None) -> None:
    """Attach push and email dispatchers to the app."""
    from campus_attendance.services.notification_service import build_dispatcher
    from campus_attendance.services.email_service import EmailService

    app.extensions['notifier'] = notifier if notifier is not None else build_dispatcher(app)
    app.extensions['mailer'] = mailer if mailer is not None else EmailService.from_config(app.config)

def setup_database(app: Flask) -> None:
    """Setup database connections."""
    with app.app_context():
        # Import all models
        from campus_attendance.models import (  # noqa: F401
            Tenant, Professor, Student, StudentDeviceToken,
            SchoolClass, SequenceCounter, AttendanceRecord
        )

        engine = db.engine
        if engine.dialect.name == 'sqlite' and not event.contains(
            engine, 'connect', _enable_sqlite_foreign_keys
        ):
            event.listen(engine, 'connect', _enable_sqlite_foreign_keys)

        if app.config.get('AUTO_CREATE_TABLES'):
            db.create_all()

def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """Turn on foreign key enforcement for SQLite connections."""
    cursor = dbapi_connection.cursor()
    cursor.execute('PRAGMA foreign_keys=ON')
    cursor.close()

def register_commands(app: Flask) -> None:
    """Register CLI commands."""
    import click

    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop existing tables')
    def init_db(drop):
        """Initialize the database."""
        if drop:
            db.drop_all()
            click.echo('Dropped all tables.')

        db.create_all()
        click.echo('Created all tables.')

    @app.cli.command('create-hod')
    def create_hod():
        """Create an already verified HOD account."""
        college_name = click.prompt('College name')
        username = click.prompt('Username')
        email = click.prompt('Email')
        password = click.prompt('Password', hide_input=True)
        alt_password = click.prompt('Secondary password', hide_input=True)

        from campus_attendance.services.tenant_service import TenantService

        try:
            tenant = TenantService.create_verified(
                college_name=college_name,
                username=username,
                email=email,
                password=password,
                alt_password=alt_password
            )
            click.echo(f'HOD created: {tenant.username} ({tenant.email})')
        except Exception as e:
            db.session.rollback()
            click.echo(f'Error creating HOD: {str(e)}')
