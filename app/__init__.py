"""
Roofing Sales Dashboard - Application Package

This package contains the modular backend structure:
- api/: HTTP route handlers (Flask Blueprints)
- utils/: Shared utility functions (encryption, request helpers)

The app factory and core Flask setup remain in app_init.py at the project root.
Repositories and the Twenty CRM integration live in the top-level services package.
"""

import logging

logger = logging.getLogger(__name__)


def register_blueprints(app):
    """
    Register all API blueprints with the Flask app.
    Called from create_app() after config, logging and security are set up.

    Args:
        app: Flask application instance
    """
    # Imported here so `import app.utils` does not pull in every route module
    from app.api.auth_routes import auth_bp
    from app.api.companies import companies_bp
    from app.api.users import users_bp
    from app.api.mobile_users import mobile_users_bp
    from app.api.leads import leads_bp
    from app.api.notes import notes_bp
    from app.api.tasks import tasks_bp
    from app.api.files import files_bp
    from app.api.people import people_bp
    from app.api.office_managers import office_managers_bp
    from app.api.calendar import calendar_bp
    from app.api.sync import sync_bp
    from app.api.webhooks import webhooks_bp
    from app.api.scheduler import scheduler_bp

    blueprints = [
        auth_bp,
        companies_bp,
        users_bp,
        mobile_users_bp,
        leads_bp,
        notes_bp,
        tasks_bp,
        files_bp,
        people_bp,
        office_managers_bp,
        calendar_bp,
        sync_bp,
        webhooks_bp,
        scheduler_bp,
    ]
    for blueprint in blueprints:
        app.register_blueprint(blueprint)

    logger.info(f"Registered {len(blueprints)} API blueprints")


__all__ = ['register_blueprints', 'app']


# ==============================================================================
# WSGI APP EXPORT FOR GUNICORN
# ==============================================================================
# This allows gunicorn to run with: gunicorn app:app
# The Flask app is created in application.py.
# We use __getattr__ for lazy loading to avoid circular import issues.
# ==============================================================================

_flask_app = None

def __getattr__(name):
    """Lazy load the Flask app to avoid circular imports."""
    global _flask_app
    if name == 'app':
        if _flask_app is None:
            from application import app as flask_app
            _flask_app = flask_app
        return _flask_app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
