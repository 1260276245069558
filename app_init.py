"""
Application Initialization Module
Properly initializes Flask app with all infrastructure components
"""
import os
from flask import Flask
from config import get_config
from logging_config import setup_logging
from security import setup_security
from health_checks import register_health_checks
import logging

logger = logging.getLogger(__name__)


def create_app(config_name=None):
    """
    Application factory that creates and configures Flask app with all infrastructure

    Args:
        config_name: 'development', 'production' or 'testing'; defaults to FLASK_ENV

    Returns:
        Configured Flask application instance
    """
    # Create Flask app
    app = Flask(__name__)

    # Load configuration
    config_class = get_config(config_name)
    config_class.validate()
    app.config.from_object(config_class)

    setup_logging(app)

    logger.info("=" * 60)
    logger.info("Initializing Roofing Sales Dashboard API")
    logger.info("=" * 60)
    logger.info(f"Environment: {config_name or os.environ.get('FLASK_ENV', 'development')}")
    logger.info(f"Debug mode: {app.debug}")

    # Setup security (CORS, headers, error handlers)
    setup_security(app, app.config)

    # Database engine and (optionally) tables
    initialize_database(app)

    # Register API blueprints
    from app import register_blueprints
    register_blueprints(app)

    # Register health check endpoints
    register_health_checks(app)

    # Background delta sync
    initialize_scheduler(app)

    logger.info("Application initialization complete")
    logger.info("=" * 60)

    return app


def initialize_database(app):
    """
    Bind the SQLAlchemy engine to the configured DATABASE_URL

    Args:
        app: Flask application instance
    """
    from database.connection import configure_engine, init_db

    configure_engine(app.config['DATABASE_URL'])

    if app.config.get('INIT_DB_ON_STARTUP'):
        init_db()
        logger.info("Database tables ensured")


def initialize_scheduler(app):
    """
    Start the delta sync scheduler when enabled

    Args:
        app: Flask application instance

    Returns:
        BackgroundScheduler instance, or None when disabled
    """
    if not app.config.get('SCHEDULER_ENABLED'):
        logger.info("Background scheduler disabled")
        return None

    from services.scheduler import init_scheduler

    try:
        return init_scheduler(app.config)
    except Exception as e:
        # Serving requests does not depend on the sync loop
        logger.error(f"Failed to start background scheduler: {e}")
        return None
