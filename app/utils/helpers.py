"""
Helper utility functions shared by the route handlers.
"""

import logging

from flask import jsonify, request

from app.utils.encryption import EncryptionError
from services.exceptions import CompanyNotFound, CRMNotConfigured, DuplicateError
from services.twenty_client import TwentyAPIError
from validators import ValidationError

logger = logging.getLogger(__name__)

# Domain errors a CRM route translates into a response instead of a bare 500
CRM_ERRORS = (TwentyAPIError, CompanyNotFound, CRMNotConfigured, EncryptionError, ValidationError, DuplicateError)


def get_json_body():
    """
    Request JSON as a dict.

    Returns an empty dict for a missing, malformed, or non-object body.
    """
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def get_company_id(data=None):
    """companyId from the query string, then the JSON body"""
    data = data if data is not None else get_json_body()
    return (
        request.args.get('companyId')
        or request.args.get('company_id')
        or data.get('companyId')
        or data.get('company_id')
    )


def error_response(message, status=400, **extra):
    body = {'success': False, 'error': message}
    body.update(extra)
    return jsonify(body), status


def crm_error_response(error, action='process request'):
    """
    Map a domain error to a JSON error response

    Args:
        error: One of CRM_ERRORS
        action: Short description for the log line, e.g. 'fetch notes'
    """
    if isinstance(error, CompanyNotFound):
        return error_response(str(error), 404)
    if isinstance(error, CRMNotConfigured):
        return error_response(str(error), 400)
    if isinstance(error, ValidationError):
        return error_response(error.message, 400, field=error.field)
    if isinstance(error, DuplicateError):
        return error_response(str(error), 409, field=error.field)
    if isinstance(error, TwentyAPIError):
        logger.error(f"Failed to {action}: {error}")
        return error_response(f'Failed to {action}', 502, details=str(error))

    logger.error(f"Failed to {action}: {error}")
    return error_response(str(error), 500)
