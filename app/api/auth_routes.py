"""
Authentication Routes Blueprint

Handles login for field users and office staff, token verification, and
mobile user self-registration:
- /api/auth/login, /api/auth/verify
- /api/users/login
- /api/mobile-users/login, /api/mobile-users/register
"""

from flask import Blueprint, request, jsonify
import logging

from app.utils.helpers import CRM_ERRORS, get_json_body, error_response, crm_error_response

logger = logging.getLogger(__name__)

# Create blueprint
auth_bp = Blueprint('auth_bp', __name__)


def get_auth():
    """Get auth module - imported lazily to avoid circular imports"""
    import auth
    return auth


def _session_user(user):
    """Login payload for a mobile user (never includes the password hash)"""
    return {
        'id': user.id,
        'username': user.username,
        'email': user.email,
        'role': user.role,
        'workspaceId': user.workspace_id,
        'salesRep': user.sales_rep,
        'canvasser': user.canvasser,
        'officeManager': user.office_manager,
        'projectManager': user.project_manager,
        'companyId': user.company_id,
    }


# ============================================================================
# FIELD USER LOGIN (JWT)
# ============================================================================

@auth_bp.route('/api/auth/login', methods=['POST'])
def api_login():
    """Authenticate a mobile/field user and issue a session token"""
    auth = get_auth()
    try:
        from database.connection import get_db_session
        from services.mobile_users_repository import MobileUsersRepository
        from app.utils.encryption import EncryptionError

        data = get_json_body()
        username = data.get('username')
        password = data.get('password')

        if not username or not password:
            return error_response('Username and password are required', 400)

        with get_db_session() as session:
            repo = MobileUsersRepository(session)
            user = repo.check_credentials(username, password)

            if not user:
                logger.info(f"Failed login for username '{username}'")
                return error_response('Invalid credentials', 401)

            if not user.is_active:
                return error_response('Account is inactive', 401)

            repo.touch_login(user)

            try:
                twenty_api_key = repo.get_twenty_api_key(user)
            except EncryptionError as e:
                logger.warning(f"Could not decrypt Twenty API key for user {user.id}: {e}")
                twenty_api_key = None

            token = auth.issue_token(auth.build_claims(user, kind='mobile'))
            logger.info(f"User logged in: {user.username} ({user.role})")

            return jsonify({
                'success': True,
                'token': token,
                'user': _session_user(user),
                'twentyApiKey': twenty_api_key
            })

    except Exception as e:
        logger.error(f"Login error: {e}")
        return jsonify({'success': False, 'error': 'Login failed'}), 500


@auth_bp.route('/api/auth/verify', methods=['POST'])
def api_verify():
    """Verify a token from the JSON body or the Authorization header"""
    auth = get_auth()
    data = get_json_body()
    token = data.get('token') or auth.get_token_from_request()

    payload = auth.decode_token(token)
    if not payload:
        return jsonify({'valid': False, 'error': 'Invalid or expired token'}), 401

    return jsonify({'valid': True, 'user': payload})


# ============================================================================
# OFFICE USER LOGIN
# ============================================================================

@auth_bp.route('/api/users/login', methods=['POST'])
def office_login():
    """Authenticate an office user by email"""
    auth = get_auth()
    try:
        from database.connection import get_db_session
        from services.users_repository import UsersRepository

        data = get_json_body()
        email = data.get('email')
        password = data.get('password')

        if not email or not password:
            return error_response('Email and password are required', 400)

        with get_db_session() as session:
            repo = UsersRepository(session)
            user = repo.authenticate(email, password)
            if not user:
                return error_response('Invalid email or password', 401)

            repo.update_last_login(user.id)
            token = auth.issue_token(auth.build_claims(user, kind='office'))

            return jsonify({'success': True, 'token': token, 'user': user.to_dict()})

    except Exception as e:
        logger.error(f"Office login error: {e}")
        return jsonify({'success': False, 'error': 'Login failed'}), 500


# ============================================================================
# MOBILE APP LOGIN & REGISTRATION
# ============================================================================

@auth_bp.route('/api/mobile-users/login', methods=['POST'])
def mobile_login():
    """Mobile app login (no token; the app keeps the returned profile)"""
    try:
        from database.connection import get_db_session
        from services.mobile_users_repository import MobileUsersRepository

        data = get_json_body()
        username = data.get('username')
        password = data.get('password')

        if not username or not password:
            return error_response('Username and password are required', 400)

        with get_db_session() as session:
            repo = MobileUsersRepository(session)
            user = repo.check_credentials(username, password)

            if not user:
                return error_response('Invalid username or password', 401)
            if not user.is_active:
                return error_response('Account is inactive', 403)

            repo.touch_login(user)

            return jsonify({
                'success': True,
                'user': {
                    'id': user.id,
                    'username': user.username,
                    'email': user.email,
                    'salesRep': user.sales_rep,
                    'companyId': user.company_id,
                    'role': user.role
                }
            })

    except Exception as e:
        logger.error(f"Mobile login error: {e}")
        return jsonify({'success': False, 'error': 'Login failed'}), 500


@auth_bp.route('/api/mobile-users/register', methods=['POST'])
def mobile_register():
    """
    Self-registration for sales reps.

    The chosen salesRep must be one of the company's CRM sales rep values
    when the company has Twenty CRM configured.
    """
    try:
        from validators import validate_registration
        from database.connection import get_db_session
        from services.company_repository import CompanyRepository
        from services.crm_proxy import client_for_company_model
        from services.mobile_users_repository import MobileUsersRepository

        data = get_json_body()
        details = validate_registration(data)
        if details:
            return error_response('Validation failed', 400, details=details)

        with get_db_session() as session:
            company = CompanyRepository(session).get_model(data['companyId'])
            if not company:
                return error_response('Company not found', 404)

            if company.has_twenty_config:
                client = client_for_company_model(company)
                available = client.get_enum_values('LeadSalesRepEnum')
                if data['salesRep'] not in available:
                    return error_response(
                        'Invalid sales rep for this company', 400,
                        availableSalesReps=available
                    )

            user = MobileUsersRepository(session, company.id).create_user({
                'username': data['username'],
                'email': data['email'],
                'password': data['password'],
                'salesRep': data['salesRep'],
                'companyId': company.id,
                'role': 'sales_rep'
            })

        logger.info(f"Registered sales rep {user['username']} for company {user['companyId']}")
        return jsonify({'success': True, 'user': user}), 201

    except CRM_ERRORS as e:
        return crm_error_response(e, 'register user')
    except Exception as e:
        logger.error(f"Registration error: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
