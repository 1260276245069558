"""
Sync Routes Blueprint

Manual Twenty CRM sync triggers:
- /api/sync/twenty: Full sync of every CRM lead into the local mirror
- /api/sync/delta: Forced delta sync (leads changed since the last run)
- /api/sync/status: Last sync time and whether a sync is running
"""

import logging
from flask import Blueprint, request, jsonify

from auth import login_required, can_access_company
from app.utils.helpers import CRM_ERRORS, error_response, crm_error_response

logger = logging.getLogger(__name__)

# Create blueprint
sync_bp = Blueprint('sync_bp', __name__)


def _company_param():
    """
    Company from ?company=

    Returns:
        Tuple of (company_id, error response or None)
    """
    company_id = request.args.get('company') or request.args.get('companyId')
    if not company_id:
        return None, error_response('Company ID is required', 400)
    if not can_access_company(company_id):
        return None, error_response('Access to this company is not allowed', 403)
    return company_id, None


@sync_bp.route('/api/sync/twenty', methods=['POST'])
@login_required
def sync_twenty():
    try:
        from flask import current_app
        from services.delta_sync import get_delta_sync_service

        company_id, error = _company_param()
        if error:
            return error

        result = get_delta_sync_service(current_app.config).full_sync(company_id)
        logger.info(f"Full sync for company {company_id}: {result.get('synced')} leads")
        return jsonify({'success': True, **result})

    except CRM_ERRORS as e:
        return crm_error_response(e, 'sync from Twenty CRM')
    except Exception as e:
        logger.error(f"Error running full sync: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@sync_bp.route('/api/sync/delta', methods=['POST'])
@login_required
def sync_delta():
    try:
        from flask import current_app
        from services.delta_sync import get_delta_sync_service

        company_id, error = _company_param()
        if error:
            return error

        result = get_delta_sync_service(current_app.config).force_sync(company_id)
        return jsonify({'success': True, 'result': result})

    except CRM_ERRORS as e:
        return crm_error_response(e, 'run delta sync')
    except Exception as e:
        logger.error(f"Error running delta sync: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@sync_bp.route('/api/sync/status', methods=['GET'])
@login_required
def sync_status():
    try:
        from flask import current_app
        from services.delta_sync import get_delta_sync_service

        company_id, error = _company_param()
        if error:
            return error

        status = get_delta_sync_service(current_app.config).get_sync_status(company_id)
        return jsonify({'success': True, 'status': status})

    except Exception as e:
        logger.error(f"Error getting sync status: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
