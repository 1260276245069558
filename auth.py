"""
Authentication Module
Password hashing, JWT session tokens, and route protection decorators.

Field users (mobile_users) log in by username and office staff (users) by
email. Both receive a signed HS256 token that the dashboard sends back as
`Authorization: Bearer <token>`.
"""

import logging
from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import current_app, g, jsonify, request
from werkzeug.security import generate_password_hash, check_password_hash

logger = logging.getLogger(__name__)

# Platform roles that may act on any company
ADMIN_ROLES = ('admin',)

# Office roles scoped to their own company that may see every team in it
COMPANY_MANAGER_ROLES = ('owner', 'manager')


def hash_password(password):
    """Hash a password with pbkdf2:sha256 for storage"""
    return generate_password_hash(password, method='pbkdf2:sha256')


def verify_password(pwhash, password):
    """Check a password against a stored hash"""
    if not pwhash or not password:
        return False
    try:
        return check_password_hash(pwhash, password)
    except ValueError as e:
        # Unknown hash method stored in the row
        logger.warning(f"Password hash could not be checked: {e}")
        return False


def build_claims(user, kind='mobile'):
    """Build JWT claims for a MobileUser or User row"""
    if kind == 'office':
        return {
            'userId': user.id,
            'username': user.email,
            'email': user.email,
            'role': user.role,
            'workspaceId': 'default',
            'companyId': user.company_id,
            'kind': 'office',
        }

    return {
        'userId': user.id,
        'username': user.username,
        'email': user.email,
        'role': user.role,
        'workspaceId': user.workspace_id or 'default',
        'companyId': user.company_id,
        'kind': 'mobile',
    }


def issue_token(claims, expiry_days=None):
    """
    Issue a signed session token

    Args:
        claims: Dictionary of claims (userId, username, email, role, workspaceId)
        expiry_days: Override for JWT_EXPIRY_DAYS

    Returns:
        Encoded JWT string
    """
    config = current_app.config
    days = expiry_days if expiry_days is not None else config['JWT_EXPIRY_DAYS']
    now = datetime.now(timezone.utc)

    payload = dict(claims)
    payload['iat'] = now
    payload['exp'] = now + timedelta(days=days)

    return jwt.encode(payload, config['JWT_SECRET'], algorithm=config['JWT_ALGORITHM'])


def decode_token(token):
    """Decode and validate a JWT token. Returns payload dict or None."""
    if not token:
        return None

    config = current_app.config
    try:
        return jwt.decode(token, config['JWT_SECRET'], algorithms=[config['JWT_ALGORITHM']])
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning(f"Rejected invalid token: {e}")
        return None


def get_token_from_request():
    """Extract JWT token from the Authorization header"""
    header = request.headers.get('Authorization', '')
    if header.startswith('Bearer '):
        return header[7:].strip()
    return None


def get_current_user():
    """Claims of the authenticated caller, or None"""
    return getattr(g, 'current_user', None)


def is_admin(claims=None):
    claims = claims or get_current_user() or {}
    return claims.get('role') in ADMIN_ROLES


def can_access_company(company_id, claims=None):
    """Platform admins reach every tenant; everyone else, owners included, only their own company"""
    claims = claims or get_current_user() or {}
    if is_admin(claims):
        return True
    return bool(company_id) and claims.get('companyId') == company_id


# Decorators for route protection
def login_required(f):
    """Decorator to require a valid bearer token for a route"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        payload = decode_token(get_token_from_request())
        if not payload:
            return jsonify({'success': False, 'error': 'Authentication required'}), 401
        g.current_user = payload
        return f(*args, **kwargs)
    return decorated_function


def role_required(*roles):
    """Decorator to require one of the given roles (admins always pass)"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            payload = decode_token(get_token_from_request())
            if not payload:
                return jsonify({'success': False, 'error': 'Authentication required'}), 401
            g.current_user = payload

            if payload.get('role') not in roles and not is_admin(payload):
                return jsonify({'success': False, 'error': 'Permission denied', 'required': list(roles)}), 403

            return f(*args, **kwargs)
        return decorated_function
    return decorator


def admin_required(f):
    """Decorator to require admin permission"""
    return role_required(*ADMIN_ROLES)(f)


def company_access_required(f):
    """
    Decorator for tenant-scoped CRM routes.

    Requires login, then checks the companyId (or company_id) given in the
    query string or JSON body against the caller's company.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        payload = decode_token(get_token_from_request())
        if not payload:
            return jsonify({'success': False, 'error': 'Authentication required'}), 401
        g.current_user = payload

        body = request.get_json(silent=True) if request.is_json else None
        body = body if isinstance(body, dict) else {}
        company_id = (
            request.args.get('companyId')
            or request.args.get('company_id')
            or request.form.get('companyId')
            or body.get('companyId')
            or body.get('company_id')
        )

        if company_id and not can_access_company(company_id, payload):
            logger.warning(f"User {payload.get('username')} denied access to company {company_id}")
            return jsonify({'success': False, 'error': 'Access to this company is not allowed'}), 403

        return f(*args, **kwargs)
    return decorated_function
