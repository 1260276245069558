"""
Security Utilities & Middleware
Secret key checks, CORS, response headers, JSON error handlers, request
logging and webhook secret verification for the dashboard API
"""
import os
import secrets
from functools import wraps
from typing import Callable, Dict, Any
from flask import Flask, request, jsonify, Response
from flask_cors import CORS
import logging

logger = logging.getLogger(__name__)

# Probe endpoints excluded from request logging
QUIET_PATHS = ('/api/health', '/api/ping', '/api/ready')

REQUIRED_PRODUCTION_VARS = ('SECRET_KEY', 'JWT_SECRET', 'ENCRYPTION_KEY', 'DATABASE_URL')

# status -> message for the JSON error handlers
ERROR_MESSAGES = {
    400: 'Bad request',
    401: 'Authentication required',
    403: 'Access denied',
    404: 'Resource not found',
    405: 'Method not allowed',
    413: 'Upload exceeds the maximum allowed size',
    429: 'Too many requests, please try again later',
    503: 'Service temporarily unavailable',
}

WEAK_SECRET_MARKERS = ('dev', 'test', 'secret', 'password', 'changeme', '12345')


class SecurityConfig:
    """Secret key validation"""

    @staticmethod
    def generate_secret_key() -> str:
        return secrets.token_hex(32)

    @staticmethod
    def validate_secret_key(secret_key: str) -> bool:
        """
        A usable secret is at least 32 characters and not an obvious placeholder
        """
        if not secret_key:
            return False
        if len(secret_key) < 32:
            logger.warning("Secret key is shorter than 32 characters")
            return False
        if any(marker in secret_key.lower() for marker in WEAK_SECRET_MARKERS):
            logger.warning("Secret key looks like a placeholder")
            return False
        return True

    @staticmethod
    def ensure_secret_key(config: Dict[str, Any]) -> str:
        """
        Return the configured SECRET_KEY, or a random one when it is missing or weak.

        Tokens signed with a generated key do not survive a restart, so
        production logs an error when it has to fall back.
        """
        secret_key = config.get('SECRET_KEY')
        if SecurityConfig.validate_secret_key(secret_key):
            return secret_key

        if os.environ.get('FLASK_ENV') == 'production':
            logger.error("SECRET_KEY missing or weak in production; issued tokens will not survive a restart")
        return SecurityConfig.generate_secret_key()


def setup_security_headers(app: Flask):
    @app.after_request
    def add_security_headers(response: Response) -> Response:
        headers = response.headers
        headers['X-Frame-Options'] = 'DENY'
        headers['X-Content-Type-Options'] = 'nosniff'
        headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
        # JSON only, nothing is rendered
        headers['Content-Security-Policy'] = "default-src 'none'; frame-ancestors 'none'"
        if not app.debug:
            headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        return response


def setup_cors(app: Flask, config: Dict[str, Any]):
    """
    Enable CORS on the /api routes for the dashboard and mobile app origins

    Args:
        app: Flask application instance
        config: Application configuration dictionary
    """
    origins = config.get('CORS_ORIGINS', ['*'])

    if not app.debug and '*' in origins:
        logger.warning("⚠️  CORS allows any origin. Set CORS_ORIGINS for production.")

    CORS(
        app,
        resources={r'/api/*': {'origins': origins}},
        methods=config.get('CORS_METHODS', ['GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS']),
        allow_headers=config.get('CORS_ALLOW_HEADERS', ['Content-Type', 'Authorization']),
        supports_credentials=True,
        max_age=3600
    )
    logger.info(f"CORS configured: origins={origins}")


def require_webhook_secret(f: Callable) -> Callable:
    """
    Decorator to check the shared secret on inbound CRM webhooks.

    The check is only enforced when TWENTY_WEBHOOK_SECRET is set, since
    Twenty CRM webhooks are configured per workspace and may not carry one.

    Usage:
        @webhooks_bp.route('/api/webhooks/twenty/<company_id>', methods=['POST'])
        @require_webhook_secret
        def twenty_webhook(company_id):
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected_secret = os.environ.get('TWENTY_WEBHOOK_SECRET')
        if not expected_secret:
            return f(*args, **kwargs)

        provided = request.headers.get('X-Webhook-Secret') or request.args.get('secret')
        if not provided:
            logger.warning(f"Missing webhook secret for {request.path}")
            return jsonify({'success': False, 'error': 'Webhook secret required'}), 401

        if not secrets.compare_digest(provided, expected_secret):
            logger.warning(f"Invalid webhook secret for {request.path}")
            return jsonify({'success': False, 'error': 'Invalid webhook secret'}), 403

        return f(*args, **kwargs)

    return decorated_function


def sanitize_error_response(error: Exception, include_details: bool = False) -> Dict[str, Any]:
    """Body for unhandled errors; exception details only in debug"""
    body = {'success': False, 'error': 'Internal server error'}
    if include_details:
        body['details'] = str(error)
        body['type'] = type(error).__name__
    return body


def setup_error_handlers(app: Flask):
    """
    Answer HTTP errors with the same {'success': False, 'error': ...} body
    the route handlers use

    Args:
        app: Flask application instance
    """
    def make_handler(status, message):
        def handler(error):
            return jsonify({'success': False, 'error': message}), status
        return handler

    for status, message in ERROR_MESSAGES.items():
        app.register_error_handler(status, make_handler(status, message))

    @app.errorhandler(500)
    def internal_server_error(error):
        logger.error(f"Internal server error: {error}", exc_info=True)
        return jsonify(sanitize_error_response(error, app.debug)), 500

    logger.info(f"Error handlers registered for {len(ERROR_MESSAGES) + 1} status codes")


def setup_request_logging(app: Flask):
    @app.before_request
    def log_request():
        if request.path in QUIET_PATHS:
            return
        logger.info(f"Request: {request.method} {request.path} from {request.remote_addr}")

    @app.after_request
    def log_response(response: Response) -> Response:
        if request.path not in QUIET_PATHS:
            logger.info(f"Response: {request.method} {request.path} status={response.status_code}")
        return response


def missing_environment_variables(names=REQUIRED_PRODUCTION_VARS) -> list:
    """Names from `names` that are unset or empty"""
    missing = [name for name in names if not os.environ.get(name)]
    for name in missing:
        logger.warning(f"Missing environment variable: {name}")
    return missing


def setup_security(app: Flask, config: Dict[str, Any]):
    """
    Setup all security features for the application

    Args:
        app: Flask application instance
        config: Application configuration dictionary
    """
    app.secret_key = SecurityConfig.ensure_secret_key(config)

    setup_cors(app, config)
    setup_security_headers(app)
    setup_error_handlers(app)
    setup_request_logging(app)

    if not app.debug and not app.testing:
        missing = missing_environment_variables()
        if missing:
            logger.error(f"Missing required environment variables in production: {missing}")

    logger.info("✅ Security configuration complete")
