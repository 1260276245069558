"""
Mobile Users Routes Blueprint

Admin management of field accounts (sales reps, canvassers, office and
project managers):
- /api/mobile-users: List/create mobile users
- /api/mobile-users/<user_id>: Get/update/delete a mobile user

Login and self-registration live in auth_routes.py.
"""

import logging
from flask import Blueprint, request, jsonify

from auth import admin_required
from app.utils.encryption import EncryptionError
from app.utils.helpers import get_json_body, error_response
from services.exceptions import DuplicateError

logger = logging.getLogger(__name__)

# Create blueprint
mobile_users_bp = Blueprint('mobile_users_bp', __name__)


@mobile_users_bp.route('/api/mobile-users', methods=['GET'])
@admin_required
def list_mobile_users():
    try:
        from database.connection import get_db_session
        from services.mobile_users_repository import MobileUsersRepository

        company_id = request.args.get('companyId')
        with get_db_session() as session:
            users = MobileUsersRepository(session, company_id).list_users()
        return jsonify({'success': True, 'users': users})

    except Exception as e:
        logger.error(f"Error listing mobile users: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@mobile_users_bp.route('/api/mobile-users', methods=['POST'])
@admin_required
def create_mobile_user():
    try:
        from database.connection import get_db_session
        from services.mobile_users_repository import MobileUsersRepository
        from validators import validate_required_fields, validate_username, validate_password

        data = get_json_body()
        is_valid, error = validate_required_fields(data, ['username', 'password'])
        if not is_valid:
            return error_response(error, 400)

        for field, check in (('username', validate_username), ('password', validate_password)):
            is_valid, error = check(data[field])
            if not is_valid:
                return error_response(error, 400, field=field)

        with get_db_session() as session:
            user = MobileUsersRepository(session).create_user(data)
        return jsonify({'success': True, 'user': user}), 201

    except DuplicateError as e:
        return error_response(str(e), 409, field=e.field)
    except ValueError as e:
        return error_response(str(e), 400)
    except EncryptionError as e:
        logger.error(f"Could not encrypt API key for new mobile user: {e}")
        return error_response(str(e), 500)
    except Exception as e:
        logger.error(f"Error creating mobile user: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@mobile_users_bp.route('/api/mobile-users/<user_id>', methods=['GET'])
@admin_required
def get_mobile_user(user_id):
    try:
        from database.connection import get_db_session
        from services.mobile_users_repository import MobileUsersRepository

        with get_db_session() as session:
            user = MobileUsersRepository(session).get_user(user_id)
        if not user:
            return error_response('User not found', 404)
        return jsonify({'success': True, 'user': user})

    except Exception as e:
        logger.error(f"Error getting mobile user {user_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@mobile_users_bp.route('/api/mobile-users/<user_id>', methods=['PUT'])
@admin_required
def update_mobile_user(user_id):
    try:
        from database.connection import get_db_session
        from services.mobile_users_repository import MobileUsersRepository

        data = get_json_body()
        with get_db_session() as session:
            user = MobileUsersRepository(session).update_user(user_id, data)
        if not user:
            return error_response('User not found', 404)
        return jsonify({'success': True, 'user': user})

    except DuplicateError as e:
        return error_response(str(e), 409, field=e.field)
    except ValueError as e:
        return error_response(str(e), 400)
    except EncryptionError as e:
        logger.error(f"Could not encrypt API key for mobile user {user_id}: {e}")
        return error_response(str(e), 500)
    except Exception as e:
        logger.error(f"Error updating mobile user {user_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@mobile_users_bp.route('/api/mobile-users/<user_id>', methods=['DELETE'])
@admin_required
def delete_mobile_user(user_id):
    try:
        from database.connection import get_db_session
        from services.mobile_users_repository import MobileUsersRepository

        with get_db_session() as session:
            deleted = MobileUsersRepository(session).delete_user(user_id)
        if not deleted:
            return error_response('User not found', 404)
        return jsonify({'success': True})

    except Exception as e:
        logger.error(f"Error deleting mobile user {user_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
