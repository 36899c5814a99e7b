from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException
from .extensions import db, migrate, bcrypt, jwt, celery
from datetime import datetime, timedelta
import logging
import os
import uuid

# Setup basic logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s: %(message)s'
)
logger = logging.getLogger(__name__)

SETUP_STEPS = [
    'Create a .env file in the project root',
    'Set DATABASE_URL to your database connection string',
    'Set SECRET_KEY to a random secret used to sign access tokens',
    'Restart the server and call GET /health/ready',
]


def create_app(config_name=None, config_overrides=None):
    """Create Flask application factory"""
    app = Flask(__name__)

    # Load configuration
    if config_name:
        from mediqueue.config import config
        app.config.from_object(config.get(config_name, config['default']))
    else:
        from mediqueue.config import get_config
        app.config.from_object(get_config())
    if config_overrides:
        app.config.update(config_overrides)

    # Ensure production mode if FLASK_ENV is production
    if os.getenv('FLASK_ENV') == 'production':
        app.config['DEBUG'] = False
        app.config['TESTING'] = False

    from mediqueue.config import is_data_service_configured
    configured = is_data_service_configured(
        app.config.get('SQLALCHEMY_DATABASE_URI'), app.config.get('SECRET_KEY')
    )
    app.config['DATA_SERVICE_CONFIGURED'] = configured
    if not app.config.get('JWT_SECRET_KEY'):
        app.config['JWT_SECRET_KEY'] = app.config.get('SECRET_KEY')
    app.config['JWT_ACCESS_TOKEN_EXPIRES'] = timedelta(
        minutes=app.config.get('JWT_ACCESS_TOKEN_MINUTES', 60)
    )

    # Initialize extensions. Without connection settings the database is
    # left uninitialised and the API answers with setup instructions.
    if configured:
        db.init_app(app)
        migrate.init_app(app, db)
    else:
        logger.warning("Database configuration missing; running in setup-required mode")
    bcrypt.init_app(app)
    jwt.init_app(app)

    # Initialize CORS
    from mediqueue.utils.cors import init_cors
    init_cors(app)

    # Initialize Celery
    celery.conf.update(
        broker_url=app.config['CELERY_BROKER_URL'],
        result_backend=app.config['CELERY_RESULT_BACKEND'],
        task_serializer=app.config['CELERY_TASK_SERIALIZER'],
        accept_content=app.config['CELERY_ACCEPT_CONTENT'],
        result_serializer=app.config['CELERY_RESULT_SERIALIZER'],
        timezone=app.config['CELERY_TIMEZONE'],
        enable_utc=app.config['CELERY_ENABLE_UTC'],
    )

    # Make celery tasks work with Flask app context
    class FlaskAppContextTask(celery.Task):
        """Make celery tasks work with Flask app context."""
        def __call__(self, *args, **kwargs):
            with app.app_context():
                return self.run(*args, **kwargs)

    celery.Task = FlaskAppContextTask

    # One notification channel per application
    from mediqueue.services.notifications import NotificationChannel
    app.extensions['notifications'] = NotificationChannel(
        default_duration_ms=app.config.get('NOTIFICATION_DURATION_MS', 5000)
    )

    # Setup-required mode: answer every API call with the setup guide
    @app.before_request
    def require_configuration():
        if not app.config['DATA_SERVICE_CONFIGURED'] and request.path.startswith('/api/'):
            return jsonify({
                'success': False,
                'error': 'Database not configured',
                'setup_required': True,
                'setup': SETUP_STEPS,
            }), 503

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'success': False,
            'error': 'Endpoint not found'
        }), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({
            'success': False,
            'error': 'Method not allowed'
        }), 405

    # Error boundary: any unhandled exception replaces the response with a
    # recovery payload the front end renders instead of the page.
    @app.errorhandler(Exception)
    def handle_exception(e):
        if isinstance(e, HTTPException):
            return jsonify({'success': False, 'error': e.description}), e.code

        report_id = uuid.uuid4().hex[:12]
        logger.error(f"Unhandled exception [{report_id}]: {e}", exc_info=True)
        if app.config['DATA_SERVICE_CONFIGURED']:
            db.session.rollback()

        report = {
            'id': report_id,
            'path': request.path,
            'method': request.method,
            'timestamp': datetime.utcnow().isoformat(),
            'error_type': type(e).__name__,
        }
        if app.debug:
            report['message'] = str(e)

        return jsonify({
            'success': False,
            'error': 'Something went wrong',
            'recovery': {
                'reload': request.path,
                'home': '/',
            },
            'report': report,
        }), 500

    # Setup logging
    from mediqueue.utils.log_masking import PhoneMaskingFilter
    if not app.debug and not app.testing:
        from logging.handlers import RotatingFileHandler

        log_file = app.config.get('LOG_FILE', 'logs/app.log')
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10240000,
            backupCount=10
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(app.config.get('LOG_LEVEL', 'INFO'))
        file_handler.addFilter(PhoneMaskingFilter())
        app.logger.addHandler(file_handler)
        app.logger.setLevel(logging.INFO)
        app.logger.info('Application startup')

    # Keep patient phone numbers out of console output as well
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, PhoneMaskingFilter) for f in handler.filters):
            handler.addFilter(PhoneMaskingFilter())

    # Security headers middleware
    @app.after_request
    def set_security_headers(response):
        """Add security headers to all responses"""
        if not app.debug:
            response.headers['X-Content-Type-Options'] = 'nosniff'
            response.headers['X-Frame-Options'] = 'DENY'
            response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
            if request.is_secure:
                response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        return response

    @jwt.unauthorized_loader
    def unauthorized(reason):
        return jsonify({
            'success': False,
            'error': 'Authentication required'
        }), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return jsonify({
            'success': False,
            'error': f'Invalid token: {reason}'
        }), 401

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return jsonify({
            'success': False,
            'error': 'Token has expired'
        }), 401

    with app.app_context():
        from . import models  # registers tables with SQLAlchemy

        # Register blueprints
        from .routes import (
            health_bp, auth_bp, booking_bp, queue_bp, admin_bp, appointment_bp,
            billing_bp, patient_bp, prescription_bp, notification_bp,
        )
        app.register_blueprint(health_bp)  # Register health check first
        app.register_blueprint(auth_bp)
        app.register_blueprint(booking_bp)
        app.register_blueprint(queue_bp)
        app.register_blueprint(admin_bp)
        app.register_blueprint(appointment_bp)
        app.register_blueprint(billing_bp)
        app.register_blueprint(patient_bp)
        app.register_blueprint(prescription_bp)
        app.register_blueprint(notification_bp)

        # Create tables and seed reference rows (dev / single-node installs)
        if configured and app.config.get('AUTO_INIT_DB'):
            from mediqueue.services.data_access import probe_connection
            try:
                db.create_all()
            except Exception as e:
                logger.error("Error creating tables: %s", e)
            if probe_connection():
                logger.info("✅ Database connected and initialised")
            else:
                logger.warning("⚠️  Database unreachable. Retry via GET /health/ready")

    return app
