"""
Database seeding for the Roofing Sales Dashboard.
Creates the default admin field user if none exists, and clears seed data on request.
"""

import os
import logging
from werkzeug.security import generate_password_hash
from database.connection import get_db_session
from database.models import Company, MobileUser, User

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_USERNAME = "admin"
DEFAULT_ADMIN_EMAIL = "admin@example.com"


def seed_default_admin(session, username=None, password=None, email=None):
    """Create default admin mobile user if none exists."""
    admin = session.query(MobileUser).filter_by(role='admin').first()
    if admin:
        logger.info(f"Admin user already exists: {admin.username}")
        return admin

    password = password or os.environ.get('ADMIN_PASSWORD')
    if not password:
        raise ValueError("ADMIN_PASSWORD must be set to seed the admin user")

    admin = MobileUser(
        username=username or os.environ.get('ADMIN_USERNAME', DEFAULT_ADMIN_USERNAME),
        email=email or os.environ.get('ADMIN_EMAIL', DEFAULT_ADMIN_EMAIL),
        password_hash=generate_password_hash(password, method='pbkdf2:sha256'),
        role='admin',
        is_active=True
    )
    session.add(admin)
    session.flush()
    logger.info(f"Created default admin user: {admin.username}")
    return admin


def seed_database():
    """
    Seed the database with default data if empty.
    """
    try:
        with get_db_session() as session:
            seed_default_admin(session)
            logger.info("Database seeding completed successfully")
            return True
    except Exception as e:
        logger.error(f"Database seeding failed: {e}")
        raise


def clear_seed_data():
    """
    Delete office users, then companies (and everything cascading from them).

    Returns:
        Tuple of (users_deleted, companies_deleted)
    """
    with get_db_session() as session:
        users_deleted = session.query(User).delete(synchronize_session=False)
        logger.info(f"Deleted {users_deleted} users")

        companies = session.query(Company).all()
        for company in companies:
            session.delete(company)
        logger.info(f"Deleted {len(companies)} companies")

        return users_deleted, len(companies)


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    seed_database()
