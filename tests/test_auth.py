"""
Tests for authentication: password hashing, tokens, route protection and login routes
"""
import pytest
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import jwt

from auth import (
    hash_password,
    verify_password,
    build_claims,
    issue_token,
    decode_token,
    can_access_company,
)


@pytest.mark.unit
class TestPasswords:
    """Tests for password hashing"""

    def test_hash_and_verify(self):
        """Test a hashed password verifies and a wrong one does not"""
        pwhash = hash_password('correct-horse')
        assert pwhash.startswith('pbkdf2:sha256')
        assert verify_password(pwhash, 'correct-horse') is True
        assert verify_password(pwhash, 'wrong-horse') is False

    def test_verify_empty_values(self):
        """Test missing hash or password never verifies"""
        assert verify_password(None, 'x') is False
        assert verify_password(hash_password('x' * 8), '') is False


@pytest.mark.unit
class TestTokens:
    """Tests for JWT issue and decode"""

    def test_issue_and_decode(self, app):
        """Test issued tokens decode to the same claims"""
        with app.app_context():
            token = issue_token({'userId': 'u1', 'username': 'jordan', 'role': 'sales_rep'})
            payload = decode_token(token)
        assert payload['username'] == 'jordan'
        assert payload['role'] == 'sales_rep'
        assert 'exp' in payload

    def test_expired_token_rejected(self, app):
        """Test expired tokens decode to None"""
        past = datetime.now(timezone.utc) - timedelta(days=2)
        token = jwt.encode(
            {'userId': 'u1', 'iat': past, 'exp': past + timedelta(hours=1)},
            app.config['JWT_SECRET'],
            algorithm='HS256'
        )
        with app.app_context():
            assert decode_token(token) is None

    def test_foreign_signature_rejected(self, app):
        """Test tokens signed with another secret decode to None"""
        token = jwt.encode({'userId': 'u1'}, 'someone-elses-secret', algorithm='HS256')
        with app.app_context():
            assert decode_token(token) is None

    def test_build_mobile_claims(self):
        """Test mobile claims carry role, workspace and company"""
        user = SimpleNamespace(
            id='u1', username='jordan', email='jordan@example.com',
            role='sales_rep', workspace_id=None, company_id='c1'
        )
        claims = build_claims(user)
        assert claims['workspaceId'] == 'default'
        assert claims['companyId'] == 'c1'
        assert claims['kind'] == 'mobile'


@pytest.mark.unit
class TestCompanyAccess:
    """Tests for tenant access checks"""

    def test_admin_reaches_every_company(self):
        """Test platform admins pass for any company"""
        assert can_access_company('c2', {'role': 'admin', 'companyId': 'c1'}) is True

    def test_owner_limited_to_own_company(self):
        """Test company owners do not reach other tenants"""
        claims = {'role': 'owner', 'companyId': 'c1'}
        assert can_access_company('c1', claims) is True
        assert can_access_company('c2', claims) is False

    def test_user_limited_to_own_company(self):
        """Test other roles only reach their own company"""
        claims = {'role': 'sales_rep', 'companyId': 'c1'}
        assert can_access_company('c1', claims) is True
        assert can_access_company('c2', claims) is False
        assert can_access_company(None, claims) is False


@pytest.mark.integration
class TestLoginRoutes:
    """Tests for the login and verify endpoints"""

    def test_login_success(self, client, company, mobile_user_factory):
        """Test a field user gets a token, their profile and the company CRM key"""
        mobile_user_factory(username='jordanlee', email='jordan@example.com',
                            salesRep='JORDAN_LEE', companyId=company['id'])

        response = client.post('/api/auth/login', json={
            'username': 'jordanlee', 'password': 'correct-horse-battery'
        })
        assert response.status_code == 200
        data = response.get_json()
        assert data['success'] is True
        assert data['token']
        assert data['user']['salesRep'] == 'JORDAN_LEE'
        assert 'password_hash' not in data['user']
        assert data['twentyApiKey'] == 'twenty-secret-key'

    def test_login_wrong_password(self, client, mobile_user_factory):
        """Test a wrong password is rejected with 401"""
        mobile_user_factory(username='jordanlee')
        response = client.post('/api/auth/login', json={'username': 'jordanlee', 'password': 'nope-nope'})
        assert response.status_code == 401
        assert response.get_json()['error'] == 'Invalid credentials'

    def test_login_inactive_account(self, client, mobile_user_factory):
        """Test inactive accounts cannot log in"""
        mobile_user_factory(username='jordanlee', isActive=False)
        response = client.post('/api/auth/login', json={
            'username': 'jordanlee', 'password': 'correct-horse-battery'
        })
        assert response.status_code == 401
        assert response.get_json()['error'] == 'Account is inactive'

    def test_login_missing_fields(self, client):
        """Test missing credentials return 400"""
        response = client.post('/api/auth/login', json={'username': 'jordanlee'})
        assert response.status_code == 400

    def test_verify_token(self, client, make_token):
        """Test verify accepts a valid token and rejects garbage"""
        response = client.post('/api/auth/verify', json={'token': make_token(username='jordan')})
        assert response.status_code == 200
        assert response.get_json()['user']['username'] == 'jordan'

        response = client.post('/api/auth/verify', json={'token': 'not-a-token'})
        assert response.status_code == 401
        assert response.get_json()['valid'] is False

    def test_protected_route_requires_token(self, client):
        """Test admin routes reject anonymous callers"""
        response = client.get('/api/companies')
        assert response.status_code == 401

    def test_protected_route_requires_admin(self, client, make_token):
        """Test admin routes reject non-admin roles"""
        headers = {'Authorization': f"Bearer {make_token(role='sales_rep')}"}
        response = client.get('/api/companies', headers=headers)
        assert response.status_code == 403
