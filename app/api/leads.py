"""
Leads Routes Blueprint

Local lead mirror plus live Twenty CRM lead access:
- /api/leads: List/create/update/delete local leads
- /api/leads/remote: Live CRM lead list
- /api/leads/<lead_id>/twenty: Full CRM lead
- /api/leads/<lead_id>/twenty/update: Update a CRM lead
- /api/leads/enums: Dropdown options for CRM enum fields
"""

import logging
from flask import Blueprint, request, jsonify

from auth import company_access_required, can_access_company
from app.utils.helpers import CRM_ERRORS, get_json_body, get_company_id, error_response, crm_error_response

logger = logging.getLogger(__name__)

# Create blueprint
leads_bp = Blueprint('leads_bp', __name__)


# ============================================================================
# LOCAL LEADS
# ============================================================================

@leads_bp.route('/api/leads', methods=['GET'])
@company_access_required
def list_leads():
    """List a company's mirrored leads, newest first."""
    try:
        from database.connection import get_db_session
        from services.lead_repository import LeadRepository

        company_id = get_company_id({})
        if not company_id:
            return error_response('company_id is required', 400)

        with get_db_session() as session:
            leads = LeadRepository(session, company_id).list_leads()
        return jsonify({'success': True, 'leads': leads})

    except Exception as e:
        logger.error(f"Error listing leads: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@leads_bp.route('/api/leads', methods=['POST'])
@company_access_required
def create_lead():
    try:
        from database.connection import get_db_session
        from services.lead_repository import LeadRepository

        data = get_json_body()
        company_id = get_company_id(data)
        if not company_id:
            return error_response('company_id is required', 400)

        with get_db_session() as session:
            lead = LeadRepository(session, company_id).create_lead(company_id, data)
        return jsonify({'success': True, 'lead': lead}), 201

    except Exception as e:
        logger.error(f"Error creating lead: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@leads_bp.route('/api/leads', methods=['PATCH'])
@company_access_required
def update_lead():
    """
    Partial update of a local lead.

    Leads mirrored from the CRM get the same change pushed to Twenty; a
    failed push is logged and reported as crmSynced: false.
    """
    try:
        from database.connection import get_db_session
        from services.crm_proxy import client_for_company_model
        from services.lead_repository import LeadRepository
        from services.lead_transform import build_local_update_payload

        data = get_json_body()
        lead_id = data.get('id')
        if not lead_id:
            return error_response('Lead id is required', 400)

        with get_db_session() as session:
            repo = LeadRepository(session)
            existing = repo.get_model(lead_id)
            if not existing:
                return error_response('Lead not found', 404)
            if not can_access_company(existing.company_id):
                return error_response('Access to this company is not allowed', 403)

            lead, changed = repo.update_lead(lead_id, data)
            response = {'success': True, 'lead': lead.to_dict()}

            payload = build_local_update_payload(changed)
            if lead.twenty_id and payload:
                try:
                    client = client_for_company_model(lead.company)
                    client.update_lead(lead.twenty_id, payload)
                    response['crmSynced'] = True
                except CRM_ERRORS as e:
                    logger.error(f"Failed to push lead {lead_id} to Twenty CRM: {e}")
                    response['crmSynced'] = False

        return jsonify(response)

    except Exception as e:
        logger.error(f"Error updating lead: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@leads_bp.route('/api/leads', methods=['DELETE'])
@company_access_required
def delete_lead():
    try:
        from database.connection import get_db_session
        from services.lead_repository import LeadRepository

        lead_id = request.args.get('id')
        if not lead_id:
            return error_response('Lead id is required', 400)

        with get_db_session() as session:
            repo = LeadRepository(session)
            lead = repo.get_model(lead_id)
            if not lead:
                return error_response('Lead not found', 404)
            if not can_access_company(lead.company_id):
                return error_response('Access to this company is not allowed', 403)
            repo.delete_lead(lead_id)

        return jsonify({'success': True})

    except Exception as e:
        logger.error(f"Error deleting lead: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


# ============================================================================
# TWENTY CRM LEADS
# ============================================================================

@leads_bp.route('/api/leads/remote', methods=['GET'])
@company_access_required
def list_remote_leads():
    """Live lead list from the company's CRM workspace."""
    try:
        from services.crm_proxy import get_crm_client
        from validators import parse_limit

        company_id = get_company_id({})
        if not company_id:
            return error_response('companyId is required', 400)

        limit = parse_limit(request.args.get('limit'), default=500)
        leads = get_crm_client(company_id).get_leads_full(limit=limit)
        return jsonify({'success': True, 'leads': leads, 'total': len(leads)})

    except CRM_ERRORS as e:
        return crm_error_response(e, 'fetch leads from Twenty CRM')
    except Exception as e:
        logger.error(f"Error fetching remote leads: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@leads_bp.route('/api/leads/<lead_id>/twenty', methods=['GET'])
@company_access_required
def get_twenty_lead(lead_id):
    try:
        from services.crm_proxy import get_crm_client

        company_id = get_company_id({})
        if not company_id:
            return error_response('companyId is required', 400)

        lead = get_crm_client(company_id).get_lead(lead_id)
        if not lead:
            return error_response('Lead not found', 404)
        return jsonify({'success': True, 'lead': lead})

    except CRM_ERRORS as e:
        return crm_error_response(e, 'fetch lead from Twenty CRM')
    except Exception as e:
        logger.error(f"Error fetching lead {lead_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@leads_bp.route('/api/leads/<lead_id>/twenty/update', methods=['PATCH'])
@company_access_required
def update_twenty_lead(lead_id):
    """Apply dashboard edits to a CRM lead (email/phone/estValue reshaped)."""
    try:
        from services.crm_proxy import get_crm_client
        from services.lead_transform import build_update_payload

        data = get_json_body()
        company_id = get_company_id(data)
        if not company_id:
            return error_response('companyId is required', 400)

        updates = data.get('updates') or {}
        if not updates:
            return error_response('No updates provided', 400)

        payload = build_update_payload(updates)
        lead = get_crm_client(company_id).update_lead(lead_id, payload)
        logger.info(f"Updated Twenty lead {lead_id} fields: {', '.join(payload)}")
        return jsonify({'success': True, 'lead': lead})

    except CRM_ERRORS as e:
        return crm_error_response(e, 'update lead in Twenty CRM')
    except Exception as e:
        logger.error(f"Error updating lead {lead_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@leads_bp.route('/api/leads/enums', methods=['GET'])
@company_access_required
def get_lead_enums():
    """Options for status, source, medium, salesRep, canvasser and demo."""
    try:
        from services.crm_proxy import get_crm_client
        from services.lead_transform import enum_options

        company_id = get_company_id({})
        if not company_id:
            return error_response('companyId is required', 400)

        enums = get_crm_client(company_id).get_lead_field_enums()
        return jsonify({
            'success': True,
            'enums': {field: enum_options(values) for field, values in enums.items()}
        })

    except CRM_ERRORS as e:
        return crm_error_response(e, 'fetch lead enums')
    except Exception as e:
        logger.error(f"Error fetching lead enums: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
