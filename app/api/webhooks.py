"""
Webhooks Routes Blueprint

Twenty CRM pushes lead changes here:
- /api/webhooks/twenty/<company_id>: Per-company endpoint (lead.* events)
- /api/webhooks/twenty?company=<company_id>: Generic endpoint (person.* and lead.* events)

Create/update events upsert the local lead by (company_id, twenty_id);
delete events remove it.
"""

import logging
from datetime import datetime
from flask import Blueprint, request, jsonify

from security import require_webhook_secret
from app.utils.helpers import get_json_body, error_response

logger = logging.getLogger(__name__)

# Create blueprint
webhooks_bp = Blueprint('webhooks_bp', __name__)

SUPPORTED_EVENTS = ['lead.created', 'lead.updated', 'lead.deleted']


def _extract_record(event):
    record = event.get('record') or event.get('data') or event
    return record if isinstance(record, dict) else {}


def apply_lead_event(session, company_id, event_type, record, map_status=False):
    """
    Apply one CRM event to the local mirror

    Returns:
        Response body dict
    """
    from services.lead_repository import LeadRepository
    from services.lead_transform import lead_row_from_node, map_twenty_status

    repo = LeadRepository(session, company_id)

    if 'created' in event_type or 'updated' in event_type:
        fields = lead_row_from_node(record)
        fields['sync_status'] = 'synced'
        fields['last_synced_at'] = datetime.utcnow()
        if map_status:
            fields['status'] = map_twenty_status(record.get('status'))

        lead, created = repo.upsert_from_remote(
            company_id, record['id'], fields,
            defaults={'source': 'twenty_crm', 'status': 'new'}
        )
        action = 'created' if 'created' in event_type else 'updated'
        logger.info(f"Webhook {event_type}: lead {lead.id} {'inserted' if created else 'updated'} for company {company_id}")
        return {'success': True, 'action': action, 'leadId': lead.id}

    if 'deleted' in event_type:
        deleted = repo.delete_by_twenty_id(company_id, record['id'])
        logger.info(f"Webhook {event_type}: removed {deleted} lead(s) with twenty_id {record['id']}")
        return {'success': True, 'action': 'deleted', 'leadId': record['id']}

    logger.info(f"Unhandled webhook event type: {event_type}")
    return {'success': True, 'message': 'Event received but not processed', 'eventType': event_type}


def _handle_event(company_id, map_status=False):
    from database.connection import get_db_session
    from services.company_repository import CompanyRepository

    event = get_json_body()
    logger.info(f"Twenty webhook for company {company_id}: {event.get('type') or 'unknown'}")

    with get_db_session() as session:
        if not CompanyRepository(session).get_model(company_id):
            return error_response('Company not found', 404)

        record = _extract_record(event)
        if not record.get('id'):
            logger.error(f"Invalid webhook payload for company {company_id}")
            return error_response('Invalid webhook payload', 400)

        event_type = event.get('type') or event.get('action') or 'lead.updated'
        body = apply_lead_event(session, company_id, event_type, record, map_status=map_status)

    return jsonify(body)


@webhooks_bp.route('/api/webhooks/twenty/<company_id>', methods=['POST'])
@require_webhook_secret
def twenty_company_webhook(company_id):
    try:
        return _handle_event(company_id)
    except Exception as e:
        logger.error(f"Webhook processing failed for company {company_id}: {e}")
        return jsonify({'success': False, 'error': 'Webhook processing failed', 'details': str(e)}), 500


@webhooks_bp.route('/api/webhooks/twenty/<company_id>', methods=['GET'])
def twenty_company_webhook_info(company_id):
    """Lets an admin confirm the webhook URL before configuring it in Twenty"""
    try:
        from database.connection import get_db_session
        from services.company_repository import CompanyRepository

        with get_db_session() as session:
            company = CompanyRepository(session).get_model(company_id)
            if not company:
                return error_response('Company not found', 404)
            name = company.name

        return jsonify({
            'message': 'Twenty CRM Webhook Endpoint',
            'company': name,
            'companyId': company_id,
            'status': 'active',
            'supportedEvents': SUPPORTED_EVENTS
        })

    except Exception as e:
        logger.error(f"Error checking webhook for company {company_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@webhooks_bp.route('/api/webhooks/twenty', methods=['POST'])
@require_webhook_secret
def twenty_webhook():
    """Generic endpoint; the company comes from ?company="""
    try:
        company_id = request.args.get('company')
        if not company_id:
            return error_response('Company ID is required', 400)
        return _handle_event(company_id, map_status=True)
    except Exception as e:
        logger.error(f"Webhook processing failed: {e}")
        return jsonify({'success': False, 'error': 'Webhook processing failed', 'details': str(e)}), 500
