"""
Notes Routes Blueprint

Lead notes stored in Twenty CRM:
- /api/notes: List notes for a lead / create a note
- /api/notes/<note_id>: Update/delete a note
"""

import logging
from flask import Blueprint, request, jsonify

from auth import company_access_required
from app.utils.helpers import CRM_ERRORS, get_json_body, get_company_id, error_response, crm_error_response

logger = logging.getLogger(__name__)

# Create blueprint
notes_bp = Blueprint('notes_bp', __name__)


@notes_bp.route('/api/notes', methods=['GET'])
@company_access_required
def list_notes():
    try:
        from services.crm_proxy import get_crm_client

        lead_id = request.args.get('leadId')
        company_id = get_company_id({})
        if not lead_id or not company_id:
            return error_response('leadId and companyId are required', 400)

        notes = get_crm_client(company_id).get_notes_for_lead(lead_id)
        return jsonify({'success': True, 'notes': notes})

    except CRM_ERRORS as e:
        return crm_error_response(e, 'fetch notes')
    except Exception as e:
        logger.error(f"Error fetching notes: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@notes_bp.route('/api/notes', methods=['POST'])
@company_access_required
def create_note():
    try:
        from services.crm_proxy import get_crm_client

        data = get_json_body()
        lead_id = data.get('leadId')
        note_body = data.get('noteBody')
        company_id = get_company_id(data)

        if not lead_id or not note_body:
            return error_response('leadId and noteBody are required', 400)
        if not company_id:
            return error_response('companyId is required', 400)

        note = get_crm_client(company_id).create_note_for_lead(lead_id, data.get('title'), note_body)
        if not note:
            return error_response('Twenty CRM did not return the created note', 502)
        return jsonify({'success': True, 'note': note}), 201

    except CRM_ERRORS as e:
        return crm_error_response(e, 'create note')
    except Exception as e:
        logger.error(f"Error creating note: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@notes_bp.route('/api/notes/<note_id>', methods=['PATCH'])
@company_access_required
def update_note(note_id):
    try:
        from services.crm_proxy import get_crm_client

        data = get_json_body()
        company_id = get_company_id(data)
        if not company_id:
            return error_response('companyId is required', 400)

        updates = data.get('updates') or {}
        if 'title' not in updates and 'body' not in updates:
            return error_response('No updates provided', 400)

        note = get_crm_client(company_id).update_note(note_id, updates.get('title'), updates.get('body'))
        if not note:
            return error_response('Note not found', 404)
        return jsonify({'success': True, 'note': note})

    except CRM_ERRORS as e:
        return crm_error_response(e, 'update note')
    except Exception as e:
        logger.error(f"Error updating note {note_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@notes_bp.route('/api/notes/<note_id>', methods=['DELETE'])
@company_access_required
def delete_note(note_id):
    try:
        from services.crm_proxy import get_crm_client

        company_id = get_company_id({})
        if not company_id:
            return error_response('companyId is required', 400)

        deleted_id = get_crm_client(company_id).delete_note(note_id)
        return jsonify({'success': True, 'deletedId': deleted_id or note_id})

    except CRM_ERRORS as e:
        return crm_error_response(e, 'delete note')
    except Exception as e:
        logger.error(f"Error deleting note {note_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
