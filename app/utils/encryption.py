"""
Encryption of per-tenant credentials (Twenty CRM and Supabase API keys).

Values are encrypted with Fernet. The key comes from the ENCRYPTION_KEY
environment variable: a urlsafe-base64 Fernet key is used as-is, any other
passphrase is stretched with PBKDF2-HMAC-SHA256.
"""

import os
import base64
import binascii
import logging
from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

logger = logging.getLogger(__name__)

# Salt must stay fixed or previously stored keys become unreadable
KDF_SALT = b'roofing-dashboard-tenant-credentials'
KDF_ITERATIONS = 390000


class EncryptionError(Exception):
    """Raised when a value cannot be encrypted or decrypted"""
    pass


def _is_fernet_key(secret):
    try:
        return len(base64.urlsafe_b64decode(secret.encode())) == 32
    except (binascii.Error, ValueError):
        return False


@lru_cache(maxsize=4)
def _fernet_for(secret):
    if _is_fernet_key(secret):
        return Fernet(secret.encode())

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=KDF_SALT,
        iterations=KDF_ITERATIONS,
    )
    key = base64.urlsafe_b64encode(kdf.derive(secret.encode()))
    return Fernet(key)


def get_fernet():
    """Get the Fernet instance for the current ENCRYPTION_KEY"""
    secret = os.environ.get('ENCRYPTION_KEY')
    if not secret:
        raise EncryptionError("ENCRYPTION_KEY is not set")
    return _fernet_for(secret)


def encrypt_value(plaintext):
    """Encrypt a credential for storage"""
    if plaintext is None:
        return None
    return get_fernet().encrypt(plaintext.encode()).decode()


def decrypt_value(ciphertext):
    """Decrypt a stored credential"""
    if ciphertext is None:
        return None

    fernet = get_fernet()
    try:
        plaintext = fernet.decrypt(ciphertext.encode()).decode()
    except (InvalidToken, UnicodeDecodeError) as e:
        logger.error(f"Decryption failed: {type(e).__name__}")
        raise EncryptionError("Failed to decrypt data")

    if not plaintext:
        raise EncryptionError("Failed to decrypt data")

    return plaintext


def generate_key():
    """Generate a new Fernet key suitable for ENCRYPTION_KEY"""
    return Fernet.generate_key().decode()
