"""
Utilities Package

Shared helper functions used across the application.
"""

from app.utils.helpers import (
    CRM_ERRORS,
    get_json_body,
    get_company_id,
    error_response,
    crm_error_response,
)

from app.utils.encryption import (
    EncryptionError,
    encrypt_value,
    decrypt_value,
)

__all__ = [
    'CRM_ERRORS',
    'get_json_body',
    'get_company_id',
    'error_response',
    'crm_error_response',
    'EncryptionError',
    'encrypt_value',
    'decrypt_value',
]
