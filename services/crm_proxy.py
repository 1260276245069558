"""
Per-tenant Twenty CRM client construction.

Looks up the company, decrypts its stored API key, and returns a TwentyClient
bound to that workspace.
"""

import logging

from flask import current_app, has_app_context

from app.utils.encryption import decrypt_value
from database.models import Company
from services.exceptions import CompanyNotFound, CRMNotConfigured
from services.twenty_client import TwentyClient, DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)


def _timeout():
    if has_app_context():
        return current_app.config.get('TWENTY_TIMEOUT', DEFAULT_TIMEOUT)
    return DEFAULT_TIMEOUT


def client_for_company_model(company, timeout=None):
    """Build a client from a loaded Company row"""
    if not company.has_twenty_config:
        raise CRMNotConfigured(company.id)

    api_key = decrypt_value(company.twenty_api_key)
    return TwentyClient(company.twenty_api_url, api_key, timeout=timeout or _timeout())


def client_for_company(session, company_id, timeout=None):
    """
    Get a TwentyClient for a company

    Raises:
        CompanyNotFound: No such company
        CRMNotConfigured: Company has no Twenty URL or API key
        EncryptionError: Stored key cannot be decrypted
    """
    company = session.query(Company).filter(Company.id == company_id).first()
    if not company:
        raise CompanyNotFound(company_id)
    return client_for_company_model(company, timeout=timeout)


def get_crm_client(company_id):
    """Open a short-lived session and build the client (route helper)"""
    from database.connection import get_db_session

    with get_db_session() as session:
        return client_for_company(session, company_id)
