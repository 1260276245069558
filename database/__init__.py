"""
Database package for the Roofing Sales Dashboard.
Provides SQLAlchemy models, connection management, and session handling.
"""

from database.connection import (
    Base,
    configure_engine,
    get_engine,
    get_session_factory,
    get_db,
    get_db_session,
    init_db,
    check_db_connection,
    is_db_configured
)

from database.models import (
    Company,
    User,
    MobileUser,
    Lead,
    SyncState
)

__all__ = [
    # Connection
    'Base',
    'configure_engine',
    'get_engine',
    'get_session_factory',
    'get_db',
    'get_db_session',
    'init_db',
    'check_db_connection',
    'is_db_configured',
    # Models
    'Company',
    'User',
    'MobileUser',
    'Lead',
    'SyncState'
]
