"""
Office Users Routes Blueprint

Admin management of office staff accounts (owner, manager, salesperson):
- /api/users: List/create users
- /api/users/<user_id>: Get/update/delete a user
"""

import logging
from flask import Blueprint, request, jsonify

from auth import admin_required
from app.utils.helpers import get_json_body, error_response
from services.exceptions import DuplicateError

logger = logging.getLogger(__name__)

# Create blueprint
users_bp = Blueprint('users_bp', __name__)

REQUIRED_USER_FIELDS = ['email', 'password', 'name', 'role']


@users_bp.route('/api/users', methods=['GET'])
@admin_required
def list_users():
    """List office users, optionally for one company."""
    try:
        from database.connection import get_db_session
        from services.users_repository import UsersRepository

        company_id = request.args.get('companyId')
        with get_db_session() as session:
            users = UsersRepository(session, company_id).list_users()
        return jsonify({'success': True, 'users': users})

    except Exception as e:
        logger.error(f"Error listing users: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@users_bp.route('/api/users', methods=['POST'])
@admin_required
def create_user():
    try:
        from database.connection import get_db_session
        from services.users_repository import UsersRepository
        from validators import validate_required_fields, validate_email

        data = get_json_body()
        is_valid, error = validate_required_fields(data, REQUIRED_USER_FIELDS)
        if not is_valid:
            return error_response(error, 400)

        is_valid, error = validate_email(data['email'])
        if not is_valid:
            return error_response(error, 400, field='email')

        with get_db_session() as session:
            user = UsersRepository(session).create_user(data)
        return jsonify({'success': True, 'user': user}), 201

    except DuplicateError as e:
        return error_response(str(e), 409, field=e.field)
    except ValueError as e:
        return error_response(str(e), 400)
    except Exception as e:
        logger.error(f"Error creating user: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@users_bp.route('/api/users/<user_id>', methods=['GET'])
@admin_required
def get_user(user_id):
    try:
        from database.connection import get_db_session
        from services.users_repository import UsersRepository

        with get_db_session() as session:
            user = UsersRepository(session).get_user(user_id)
        if not user:
            return error_response('User not found', 404)
        return jsonify({'success': True, 'user': user})

    except Exception as e:
        logger.error(f"Error getting user {user_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@users_bp.route('/api/users/<user_id>', methods=['PUT'])
@admin_required
def update_user(user_id):
    try:
        from database.connection import get_db_session
        from services.users_repository import UsersRepository

        data = get_json_body()
        with get_db_session() as session:
            user = UsersRepository(session).update_user(user_id, data)
        if not user:
            return error_response('User not found', 404)
        return jsonify({'success': True, 'user': user})

    except DuplicateError as e:
        return error_response(str(e), 409, field=e.field)
    except ValueError as e:
        return error_response(str(e), 400)
    except Exception as e:
        logger.error(f"Error updating user {user_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@users_bp.route('/api/users/<user_id>', methods=['DELETE'])
@admin_required
def delete_user(user_id):
    try:
        from database.connection import get_db_session
        from services.users_repository import UsersRepository

        with get_db_session() as session:
            deleted = UsersRepository(session).delete_user(user_id)
        if not deleted:
            return error_response('User not found', 404)
        return jsonify({'success': True})

    except Exception as e:
        logger.error(f"Error deleting user {user_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
