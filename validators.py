"""
Input Validation & Sanitization Utilities
Provides validation for API requests, attachment uploads, and user input
"""
import re
import os
import uuid
from datetime import datetime, date, timezone
from typing import Dict, Any, List, Optional, Tuple
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename
import logging

logger = logging.getLogger(__name__)

# Allowed attachment extensions
ALLOWED_IMAGE_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp', 'heic'}
ALLOWED_DOCUMENT_EXTENSIONS = {'pdf', 'doc', 'docx', 'txt', 'csv', 'xlsx'}
ALLOWED_ATTACHMENT_EXTENSIONS = ALLOWED_IMAGE_EXTENSIONS | ALLOWED_DOCUMENT_EXTENSIONS

# Maximum file sizes (in bytes)
MAX_ATTACHMENT_SIZE = 25 * 1024 * 1024  # 25MB

# Regex patterns
EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
PHONE_PATTERN = re.compile(r'^\+?1?\d{9,15}$')
URL_PATTERN = re.compile(r'^https?://[a-zA-Z0-9.-]+(:\d+)?(/.*)?$')
USERNAME_PATTERN = re.compile(r'^[a-zA-Z0-9_.-]+$')

MIN_PASSWORD_LENGTH = 8


class ValidationError(Exception):
    """Custom exception for validation errors"""
    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(self.message)


def validate_required_fields(data: Dict[str, Any], required_fields: List[str]) -> Tuple[bool, Optional[str]]:
    """
    Validate that all required fields are present in the data

    Args:
        data: Dictionary of input data
        required_fields: List of required field names

    Returns:
        Tuple of (is_valid, error_message)
    """
    missing_fields = [field for field in required_fields if field not in data or data[field] is None or data[field] == '']

    if missing_fields:
        return False, f"Missing required fields: {', '.join(missing_fields)}"

    return True, None


def validate_email(email: str) -> Tuple[bool, Optional[str]]:
    """
    Validate email format

    Args:
        email: Email address to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not email or not isinstance(email, str):
        return False, "Email must be a non-empty string"

    if not EMAIL_PATTERN.match(email):
        return False, "Invalid email format"

    if len(email) > 254:  # RFC 5321
        return False, "Email address too long"

    return True, None


def validate_phone(phone: str) -> Tuple[bool, Optional[str]]:
    """
    Validate phone number format

    Args:
        phone: Phone number to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not phone or not isinstance(phone, str):
        return False, "Phone must be a non-empty string"

    # Remove common separators
    cleaned_phone = re.sub(r'[\s\-\(\)\.]', '', phone)

    if not PHONE_PATTERN.match(cleaned_phone):
        return False, "Invalid phone number format"

    return True, None


def validate_url(url: str) -> Tuple[bool, Optional[str]]:
    """
    Validate URL format

    Args:
        url: URL to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not url or not isinstance(url, str):
        return False, "URL must be a non-empty string"

    if not URL_PATTERN.match(url):
        return False, "Invalid URL format"

    if len(url) > 2048:
        return False, "URL too long"

    return True, None


def validate_string_length(value: str, min_length: int = 0, max_length: int = 1000) -> Tuple[bool, Optional[str]]:
    """
    Validate string length is within acceptable range

    Args:
        value: String to validate
        min_length: Minimum allowed length
        max_length: Maximum allowed length

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(value, str):
        return False, "Value must be a string"

    if len(value) < min_length:
        return False, f"Value too short (minimum {min_length} characters)"

    if len(value) > max_length:
        return False, f"Value too long (maximum {max_length} characters)"

    return True, None


def validate_uuid(value: str) -> Tuple[bool, Optional[str]]:
    """Validate that a value is a canonical UUID string"""
    if not value or not isinstance(value, str):
        return False, "Value must be a non-empty string"

    try:
        uuid.UUID(value)
    except ValueError:
        return False, "Invalid UUID format"

    return True, None


def validate_password(password: str) -> Tuple[bool, Optional[str]]:
    """Validate password meets the minimum length"""
    if not password or not isinstance(password, str):
        return False, "Password must be a non-empty string"

    if len(password) < MIN_PASSWORD_LENGTH:
        return False, f"Password must be at least {MIN_PASSWORD_LENGTH} characters"

    return True, None


def validate_username(username: str) -> Tuple[bool, Optional[str]]:
    """Validate username is 3-50 characters of letters, digits, '.', '_' or '-'"""
    is_valid, error = validate_string_length(username, min_length=3, max_length=50)
    if not is_valid:
        return False, f"Username invalid: {error}"

    if not USERNAME_PATTERN.match(username):
        return False, "Username may only contain letters, numbers, '.', '_' and '-'"

    return True, None


def validate_company_fields(data: Dict[str, Any]) -> Tuple[bool, Optional[str], Optional[str]]:
    """
    Check the contact and CRM fields present in a company payload

    Returns:
        Tuple of (is_valid, error_message, field)
    """
    checks = (
        ('contactEmail', validate_email),
        ('contactPhone', validate_phone),
        ('twentyApiUrl', validate_url),
    )
    for field, check in checks:
        if data.get(field):
            is_valid, error = check(data[field])
            if not is_valid:
                return False, error, field
    return True, None, None


def validate_registration(data: Dict[str, Any]) -> List[Dict[str, str]]:
    """
    Validate a mobile user self-registration payload

    Args:
        data: Request data dictionary

    Returns:
        List of {'field', 'message'} dicts, empty when valid
    """
    details = []

    checks = [
        ('username', validate_username(data.get('username') or '')),
        ('email', validate_email(data.get('email') or '')),
        ('password', validate_password(data.get('password') or '')),
        ('companyId', validate_uuid(data.get('companyId') or '')),
    ]
    for field, (is_valid, error) in checks:
        if not is_valid:
            details.append({'field': field, 'message': error})

    if not data.get('salesRep'):
        details.append({'field': 'salesRep', 'message': 'Sales rep is required'})

    return details


def parse_iso_date(value: str) -> Optional[datetime]:
    """
    Parse an ISO-8601 date or datetime string

    Returns:
        Naive UTC datetime, or None if value is empty

    Raises:
        ValidationError: If value cannot be parsed
    """
    if not value:
        return None

    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except (TypeError, ValueError):
        try:
            parsed_date = date.fromisoformat(value)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid date: {value}")
        parsed = datetime(parsed_date.year, parsed_date.month, parsed_date.day)

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)

    return parsed


def parse_limit(value, default: int, maximum: int = 1000) -> int:
    """Parse a ?limit= query parameter, clamped to 1..maximum"""
    try:
        limit = int(value) if value is not None else default
    except (TypeError, ValueError):
        raise ValidationError("limit must be an integer", field='limit')

    return max(1, min(limit, maximum))


def sanitize_string(value: str, max_length: int = 1000) -> str:
    """
    Sanitize string input by removing potentially dangerous characters

    Args:
        value: String to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized string
    """
    if not isinstance(value, str):
        return str(value)

    # Remove null bytes
    sanitized = value.replace('\x00', '')

    # Trim whitespace
    sanitized = sanitized.strip()

    # Limit length
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized


def sanitize_filename(filename: str) -> str:
    """
    Sanitize filename to prevent directory traversal attacks

    Args:
        filename: Original filename

    Returns:
        Sanitized filename
    """
    # Use werkzeug's secure_filename
    safe_name = secure_filename(filename)

    # If secure_filename removes everything, generate a default name
    if not safe_name:
        safe_name = 'file'

    return safe_name


def validate_file_extension(filename: str, allowed_extensions: set) -> Tuple[bool, Optional[str]]:
    """
    Validate file has an allowed extension

    Args:
        filename: Filename to check
        allowed_extensions: Set of allowed extensions (without dots)

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not filename or '.' not in filename:
        return False, "File must have an extension"

    extension = filename.rsplit('.', 1)[1].lower()

    if extension not in allowed_extensions:
        return False, f"File type not allowed. Allowed types: {', '.join(sorted(allowed_extensions))}"

    return True, None


def validate_file_upload(
    file: FileStorage,
    allowed_extensions: set,
    max_size: int,
    file_type: str = "file"
) -> Tuple[bool, Optional[str], Optional[str]]:
    """
    Comprehensive file upload validation

    Args:
        file: FileStorage object from request.files
        allowed_extensions: Set of allowed extensions
        max_size: Maximum file size in bytes
        file_type: Type of file for error messages

    Returns:
        Tuple of (is_valid, error_message, sanitized_filename)
    """
    # Check if file exists
    if not file or not file.filename:
        return False, f"No {file_type} provided", None

    # Sanitize filename
    safe_filename = sanitize_filename(file.filename)

    # Validate extension
    is_valid, error = validate_file_extension(safe_filename, allowed_extensions)
    if not is_valid:
        return False, error, None

    # Check file size (read file to check actual size)
    file.seek(0, os.SEEK_END)
    file_size = file.tell()
    file.seek(0)  # Reset to beginning

    if file_size > max_size:
        max_mb = max_size / (1024 * 1024)
        return False, f"{file_type.capitalize()} too large (maximum {max_mb:.1f}MB)", None

    if file_size == 0:
        return False, f"{file_type.capitalize()} is empty", None

    logger.info(f"File validation successful: {safe_filename} ({file_size} bytes)")
    return True, None, safe_filename


def validate_attachment_upload(file: FileStorage) -> Tuple[bool, Optional[str], Optional[str]]:
    """Validate lead attachment upload"""
    return validate_file_upload(file, ALLOWED_ATTACHMENT_EXTENSIONS, MAX_ATTACHMENT_SIZE, "file")
