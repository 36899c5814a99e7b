import os
from dotenv import load_dotenv

load_dotenv()

# Values shipped in .env.example; treated the same as a missing setting
PLACEHOLDER_VALUES = {
    '',
    'your-database-url',
    'your-secret-key',
    'change-me',
    'dev-secret-key-change-in-production',
}


def is_data_service_configured(database_url, secret_key):
    """True when both connection parameters are present and not placeholders."""
    for value in (database_url, secret_key):
        if value is None or value.strip() in PLACEHOLDER_VALUES:
            return False
    return True


class Config:
    """Base configuration"""
    SECRET_KEY = os.getenv('SECRET_KEY')
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY') or SECRET_KEY
    JWT_ACCESS_TOKEN_MINUTES = int(os.getenv('JWT_ACCESS_TOKEN_MINUTES', '60'))

    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
        'pool_size': 10,
        'max_overflow': 20
    }

    # Create tables and seed reference rows on startup
    AUTO_INIT_DB = os.getenv('AUTO_INIT_DB', 'true').lower() == 'true'

    # Connectivity probe
    DB_CONNECT_RETRIES = int(os.getenv('DB_CONNECT_RETRIES', '3'))
    DB_CONNECT_BACKOFF_SECONDS = float(os.getenv('DB_CONNECT_BACKOFF_SECONDS', '1'))

    # Queue
    AVG_SERVICE_TIME_MINUTES = int(os.getenv('AVG_SERVICE_TIME_MINUTES', '10'))
    QUEUE_REFRESH_SECONDS = int(os.getenv('QUEUE_REFRESH_SECONDS', '15'))
    CLINIC_NAME = os.getenv('CLINIC_NAME', 'MediQueue Clinic')
    CLINIC_UID_PREFIX = os.getenv('CLINIC_UID_PREFIX', 'CLN1')
    # Front-end origins allowed to call the API, comma separated
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')

    # Notifications
    NOTIFICATION_DURATION_MS = int(os.getenv('NOTIFICATION_DURATION_MS', '5000'))

    # Celery Configuration
    CELERY_BROKER_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
    CELERY_RESULT_BACKEND = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
    CELERY_ACCEPT_CONTENT = ['json']
    CELERY_TASK_SERIALIZER = 'json'
    CELERY_RESULT_SERIALIZER = 'json'
    CELERY_TIMEZONE = 'UTC'
    CELERY_ENABLE_UTC = True

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FILE = os.getenv('LOG_FILE', 'logs/app.log')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False

    # Security
    SESSION_COOKIE_SECURE = False  # Set to True when using HTTPS
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    # Database connection pool for production
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 3600,
        'pool_size': 20,
        'max_overflow': 40,
        'connect_args': {
            'connect_timeout': 10,
            'options': '-c statement_timeout=30000'
        }
    }

    AUTO_INIT_DB = os.getenv('AUTO_INIT_DB', 'false').lower() == 'true'

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'WARNING')


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    DEBUG = False
    SECRET_KEY = 'testing-secret-key-for-hs256-signatures'
    JWT_SECRET_KEY = 'testing-secret-key-for-hs256-signatures'
    SQLALCHEMY_DATABASE_URI = os.getenv('TEST_DATABASE_URL', 'sqlite:///:memory:')
    SQLALCHEMY_ENGINE_OPTIONS = {}
    AUTO_INIT_DB = False
    DB_CONNECT_BACKOFF_SECONDS = 0
    BCRYPT_LOG_ROUNDS = 4


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config():
    """Get configuration based on FLASK_ENV"""
    env = os.getenv('FLASK_ENV', 'development')
    return config.get(env, config['default'])
