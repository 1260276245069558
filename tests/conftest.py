"""
Pytest configuration and shared fixtures
"""
import os
import sys
import pytest
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Tenant credentials are encrypted with this key throughout the suite
os.environ.setdefault('ENCRYPTION_KEY', 'test-encryption-passphrase-for-unit-tests')
os.environ.pop('TWENTY_WEBHOOK_SECRET', None)


@pytest.fixture
def app_config():
    """Fixture providing test configuration"""
    from config import TestingConfig
    return TestingConfig


@pytest.fixture
def test_env_vars():
    """Fixture providing test environment variables"""
    original_env = os.environ.copy()

    # Set test environment variables
    os.environ['FLASK_ENV'] = 'testing'
    os.environ['SECRET_KEY'] = 'test-secret-key-minimum-32-chars-long-for-security'
    os.environ['JWT_SECRET'] = 'test-jwt-secret'

    yield

    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def app():
    """Flask app on a fresh in-memory SQLite database"""
    from app_init import create_app
    from database.connection import drop_db
    from services.delta_sync import reset_delta_sync_service
    from services.scheduler import shutdown_scheduler

    reset_delta_sync_service()
    application = create_app('testing')

    yield application

    drop_db()
    shutdown_scheduler()
    reset_delta_sync_service()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def company(app):
    """A company with Twenty CRM credentials"""
    from database.connection import get_db_session
    from services.company_repository import CompanyRepository

    with get_db_session() as session:
        return CompanyRepository(session).create_company({
            'name': 'Summit Roofing',
            'contactEmail': 'office@summitroofing.com',
            'contactPhone': '5551234567',
            'address': '12 Ridge Rd',
            'city': 'Denver',
            'state': 'CO',
            'zipCode': '80202',
            'twentyApiUrl': 'https://crm.summitroofing.com',
            'twentyApiKey': 'twenty-secret-key',
        })


@pytest.fixture
def make_token(app):
    """Factory issuing a signed token for arbitrary claims"""
    from auth import issue_token

    def _make(role='admin', company_id=None, username='admin', user_id='user-1'):
        claims = {
            'userId': user_id,
            'username': username,
            'email': f'{username}@example.com',
            'role': role,
            'workspaceId': 'default',
            'companyId': company_id,
        }
        with app.app_context():
            return issue_token(claims)

    return _make


@pytest.fixture
def auth_headers(make_token):
    """Authorization header for an admin"""
    return {'Authorization': f'Bearer {make_token()}'}


@pytest.fixture
def mobile_user_factory(app):
    """Factory creating mobile users directly through the repository"""
    from database.connection import get_db_session
    from services.mobile_users_repository import MobileUsersRepository

    def _create(**data):
        payload = {'password': 'correct-horse-battery', 'role': 'sales_rep'}
        payload.update(data)
        with get_db_session() as session:
            return MobileUsersRepository(session).create_user(payload)

    return _create


@pytest.fixture
def sample_crm_leads():
    """Leads as returned by TwentyClient.get_leads_full"""
    return [
        {
            'id': 'lead-1',
            'name': 'Dana Whitfield',
            'status': 'NEW',
            'salesRep': 'JORDAN_LEE',
            'canvasser': None,
            'adress': '410 Elm St',
            'city': 'Denver',
            'appointmentTime': '2026-03-10T15:00:00Z',
            'createdAt': '2026-02-01T10:00:00Z',
            'updatedAt': '2026-03-01T09:00:00Z',
        },
        {
            'id': 'lead-2',
            'name': 'Ray Okafor',
            'status': 'QUOTED',
            'salesRep': 'SAM_PATEL',
            'canvasser': 'RILEY_CHEN',
            'adress': '88 Pine Ave',
            'city': 'Aurora',
            'appointmentTime': '2026-03-05T18:30:00Z',
            'createdAt': '2026-02-10T10:00:00Z',
            'updatedAt': '2026-03-03T12:00:00Z',
        },
        {
            'id': 'lead-3',
            'name': 'Priya Nair',
            'status': 'WON',
            'salesRep': 'OUTSIDE_REP',
            'canvasser': None,
            'adress': '5 Oak Ct',
            'city': 'Boulder',
            'appointmentTime': None,
            'createdAt': '2026-01-15T10:00:00Z',
            'updatedAt': '2026-01-20T12:00:00Z',
        },
    ]
