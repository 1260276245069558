"""
Centralized Logging Configuration
Console output plus a rotating file under logs/ for the API, sync job and CRM client
"""
import logging
import logging.handlers
from pathlib import Path

LOG_DIR = Path('logs')
LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5

# Chatty libraries kept at WARNING
NOISY_LOGGERS = ('werkzeug', 'urllib3', 'sqlalchemy.engine', 'alembic')


def _file_handler(filename, formatter, level):
    LOG_DIR.mkdir(exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        LOG_DIR / filename,
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(app):
    """
    Configure the root logger from LOG_LEVEL, LOG_FORMAT, LOG_FILE and LOG_TO_FILE

    Replaces any handlers already on the root logger, so calling it again
    (one app per test) does not duplicate output.

    Args:
        app: Flask application instance

    Returns:
        The root logger
    """
    level = getattr(logging, app.config['LOG_LEVEL'].upper(), logging.INFO)
    formatter = logging.Formatter(app.config['LOG_FORMAT'])

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(formatter)
    handlers = [console]

    if app.config.get('LOG_TO_FILE', True):
        handlers.append(_file_handler(app.config['LOG_FILE'], formatter, level))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = handlers

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    app.logger.info(
        f"Logging initialized at {logging.getLevelName(level)} level"
        + (f", file {LOG_DIR / app.config['LOG_FILE']}" if len(handlers) > 1 else '')
    )
    return root_logger