"""
Files Routes Blueprint

Lead attachments stored in Twenty CRM:
- /api/files: List attachments for a lead / upload an attachment
- /api/files/<attachment_id>: Delete an attachment
"""

import logging
from flask import Blueprint, request, jsonify

from auth import company_access_required
from app.utils.helpers import CRM_ERRORS, get_company_id, error_response, crm_error_response

logger = logging.getLogger(__name__)

# Create blueprint
files_bp = Blueprint('files_bp', __name__)


@files_bp.route('/api/files', methods=['GET'])
@company_access_required
def list_files():
    try:
        from services.crm_proxy import get_crm_client

        lead_id = request.args.get('leadId')
        company_id = get_company_id({})
        if not lead_id or not company_id:
            return error_response('companyId and leadId are required', 400)

        attachments = get_crm_client(company_id).get_attachments(lead_id)
        return jsonify({'success': True, 'attachments': attachments})

    except CRM_ERRORS as e:
        return crm_error_response(e, 'fetch attachments')
    except Exception as e:
        logger.error(f"Error fetching attachments: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@files_bp.route('/api/files', methods=['POST'])
@company_access_required
def upload_file():
    """Multipart upload: file, companyId, leadId."""
    try:
        from services.crm_proxy import get_crm_client
        from validators import validate_attachment_upload

        company_id = request.form.get('companyId')
        lead_id = request.form.get('leadId')
        if not company_id or not lead_id:
            return error_response('companyId and leadId are required', 400)

        file = request.files.get('file')
        is_valid, error, safe_filename = validate_attachment_upload(file)
        if not is_valid:
            return error_response(error, 400, field='file')

        content = file.read()
        attachment = get_crm_client(company_id).upload_attachment(
            lead_id, safe_filename, content, file.mimetype
        )
        logger.info(f"Uploaded attachment {safe_filename} ({len(content)} bytes) to lead {lead_id}")
        return jsonify({'success': True, 'attachment': attachment}), 201

    except CRM_ERRORS as e:
        return crm_error_response(e, 'upload attachment')
    except Exception as e:
        logger.error(f"Error uploading attachment: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@files_bp.route('/api/files/<attachment_id>', methods=['DELETE'])
@company_access_required
def delete_file(attachment_id):
    try:
        from services.crm_proxy import get_crm_client

        company_id = get_company_id({})
        if not company_id:
            return error_response('companyId is required', 400)

        deleted_id = get_crm_client(company_id).delete_attachment(attachment_id)
        return jsonify({'success': True, 'deletedId': deleted_id or attachment_id})

    except CRM_ERRORS as e:
        return crm_error_response(e, 'delete attachment')
    except Exception as e:
        logger.error(f"Error deleting attachment {attachment_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
