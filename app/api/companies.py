"""
Company Routes Blueprint

Admin management of tenants and their Twenty CRM credentials:
- /api/companies: List/create companies
- /api/companies/<company_id>: Get/update/delete a company
"""

import logging
from flask import Blueprint, jsonify

from auth import admin_required
from app.utils.helpers import CRM_ERRORS, get_json_body, error_response, crm_error_response

logger = logging.getLogger(__name__)

# Create blueprint
companies_bp = Blueprint('companies_bp', __name__)


# ============================================================================
# COMPANIES API
# ============================================================================

@companies_bp.route('/api/companies', methods=['GET'])
@admin_required
def list_companies():
    """List all companies with decrypted credentials."""
    try:
        from database.connection import get_db_session
        from services.company_repository import CompanyRepository

        with get_db_session() as session:
            companies = CompanyRepository(session).list_companies()
        return jsonify({'success': True, 'companies': companies})

    except CRM_ERRORS as e:
        return crm_error_response(e, 'list companies')
    except Exception as e:
        logger.error(f"Error listing companies: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@companies_bp.route('/api/companies', methods=['POST'])
@admin_required
def create_company():
    try:
        from database.connection import get_db_session
        from services.company_repository import CompanyRepository, REQUIRED_COMPANY_FIELDS
        from validators import validate_required_fields, validate_company_fields, sanitize_string

        data = get_json_body()
        is_valid, error = validate_required_fields(data, REQUIRED_COMPANY_FIELDS)
        if not is_valid:
            return error_response(error, 400)

        is_valid, error, field = validate_company_fields(data)
        if not is_valid:
            return error_response(error, 400, field=field)
        data['name'] = sanitize_string(data['name'], max_length=255)

        with get_db_session() as session:
            company = CompanyRepository(session).create_company(data)
        return jsonify({'success': True, 'company': company}), 201

    except CRM_ERRORS as e:
        return crm_error_response(e, 'create company')
    except Exception as e:
        logger.error(f"Error creating company: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@companies_bp.route('/api/companies/<company_id>', methods=['GET'])
@admin_required
def get_company(company_id):
    try:
        from database.connection import get_db_session
        from services.company_repository import CompanyRepository

        with get_db_session() as session:
            company = CompanyRepository(session).get_company(company_id)
        if not company:
            return error_response('Company not found', 404)
        return jsonify({'success': True, 'company': company})

    except CRM_ERRORS as e:
        return crm_error_response(e, 'fetch company')
    except Exception as e:
        logger.error(f"Error getting company {company_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@companies_bp.route('/api/companies/<company_id>', methods=['PUT'])
@admin_required
def update_company(company_id):
    """Partial update. Blank credential fields leave stored keys unchanged."""
    try:
        from database.connection import get_db_session
        from services.company_repository import CompanyRepository
        from validators import validate_company_fields

        data = get_json_body()
        is_valid, error, field = validate_company_fields(data)
        if not is_valid:
            return error_response(error, 400, field=field)

        with get_db_session() as session:
            company = CompanyRepository(session).update_company(company_id, data)
        if not company:
            return error_response('Company not found', 404)
        return jsonify({'success': True, 'company': company})

    except CRM_ERRORS as e:
        return crm_error_response(e, 'update company')
    except Exception as e:
        logger.error(f"Error updating company {company_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@companies_bp.route('/api/companies/<company_id>', methods=['DELETE'])
@admin_required
def delete_company(company_id):
    try:
        from database.connection import get_db_session
        from services.company_repository import CompanyRepository

        with get_db_session() as session:
            deleted = CompanyRepository(session).delete_company(company_id)
        if not deleted:
            return error_response('Company not found', 404)
        return jsonify({'success': True})

    except Exception as e:
        logger.error(f"Error deleting company {company_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
