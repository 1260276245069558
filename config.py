"""
Centralized Configuration for the Roofing Sales Dashboard API
Manages environment-specific settings, secrets, and service configurations.
"""
import os


def _env_bool(name, default='false'):
    return os.environ.get(name, default).lower() == 'true'


class Config:
    """Base configuration with defaults"""

    # Flask Settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or os.urandom(32).hex()
    MAX_CONTENT_LENGTH = 25 * 1024 * 1024  # 25MB max attachment upload

    # CORS Settings
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')
    CORS_METHODS = ['GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS']
    CORS_ALLOW_HEADERS = ['Content-Type', 'Authorization', 'X-Requested-With']

    # Database Settings
    DATABASE_URL = os.environ.get('DATABASE_URL', 'postgresql://localhost/roofing_dashboard')
    INIT_DB_ON_STARTUP = _env_bool('INIT_DB_ON_STARTUP')

    # Authentication (JWT)
    JWT_SECRET = os.environ.get('JWT_SECRET') or SECRET_KEY
    JWT_ALGORITHM = 'HS256'
    JWT_EXPIRY_DAYS = int(os.environ.get('JWT_EXPIRY_DAYS', '30'))

    # Encryption of tenant credentials
    ENCRYPTION_KEY = os.environ.get('ENCRYPTION_KEY')

    # Twenty CRM
    TWENTY_TIMEOUT = int(os.environ.get('TWENTY_TIMEOUT', '30'))  # seconds

    # Delta Sync
    SCHEDULER_ENABLED = _env_bool('SCHEDULER_ENABLED', 'true')
    SYNC_INTERVAL_MINUTES = int(os.environ.get('SYNC_INTERVAL_MINUTES', '5'))
    SYNC_LOOKBACK_DAYS = int(os.environ.get('SYNC_LOOKBACK_DAYS', '30'))
    SYNC_FETCH_LIMIT = int(os.environ.get('SYNC_FETCH_LIMIT', '1000'))

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    LOG_FILE = os.environ.get('LOG_FILE', 'app.log')
    LOG_TO_FILE = _env_bool('LOG_TO_FILE', 'true')

    @classmethod
    def validate(cls):
        """Raise RuntimeError when the environment cannot run this configuration"""
        return None


class DevelopmentConfig(Config):
    """Development-specific configuration"""
    DEBUG = True
    TESTING = False
    LOG_LEVEL = 'DEBUG'
    INIT_DB_ON_STARTUP = True
    # Allow all CORS in development
    CORS_ORIGINS = ['*']


class ProductionConfig(Config):
    """Production-specific configuration"""
    DEBUG = False
    TESTING = False
    # Strict CORS in production
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', 'https://dashboard.example.com').split(',')
    # Force HTTPS
    PREFERRED_URL_SCHEME = 'https'

    @classmethod
    def validate(cls):
        # Every worker must sign tokens with the same key
        if not (os.environ.get('JWT_SECRET') or os.environ.get('SECRET_KEY')):
            raise RuntimeError("JWT_SECRET or SECRET_KEY must be set in production")


class TestingConfig(Config):
    """Testing-specific configuration"""
    DEBUG = True
    TESTING = True
    DATABASE_URL = 'sqlite://'
    INIT_DB_ON_STARTUP = True
    SCHEDULER_ENABLED = False
    LOG_TO_FILE = False
    SECRET_KEY = 'testing-secret-key-for-unit-tests-only'
    JWT_SECRET = 'testing-jwt-secret-for-unit-tests-only'


# Configuration selector
config_by_name = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig,
}


def get_config(config_name=None):
    """Get configuration by name, or from the FLASK_ENV environment variable"""
    env = config_name or os.environ.get('FLASK_ENV', 'development')
    return config_by_name.get(env, DevelopmentConfig)
