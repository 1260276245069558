"""
People Routes Blueprint

Assignable people, read from the company's CRM lead enums:
- /api/sales-reps
- /api/canvassers
- /api/office-managers
"""

import logging
from flask import Blueprint, jsonify

from auth import company_access_required
from app.utils.helpers import CRM_ERRORS, get_company_id, error_response, crm_error_response

logger = logging.getLogger(__name__)

# Create blueprint
people_bp = Blueprint('people_bp', __name__)


def _enum_response(enum_name, key):
    """Respond with {key: [enum value names]} for the caller's company."""
    try:
        from services.crm_proxy import get_crm_client

        company_id = get_company_id({})
        if not company_id:
            return error_response('companyId is required', 400)

        values = get_crm_client(company_id).get_enum_values(enum_name)
        return jsonify({'success': True, key: values})

    except CRM_ERRORS as e:
        return crm_error_response(e, f'fetch {enum_name}')
    except Exception as e:
        logger.error(f"Error fetching {enum_name}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@people_bp.route('/api/sales-reps', methods=['GET'])
@company_access_required
def list_sales_reps():
    return _enum_response('LeadSalesRepEnum', 'salesReps')


@people_bp.route('/api/canvassers', methods=['GET'])
@company_access_required
def list_canvassers():
    return _enum_response('LeadCanvasserEnum', 'canvassers')


@people_bp.route('/api/office-managers', methods=['GET'])
@company_access_required
def list_office_managers():
    return _enum_response('LeadOfficemanagerEnum', 'officeManagers')
