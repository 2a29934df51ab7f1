"""
Input Validation & Sanitization Utilities
Provides validation for API request payloads, attachment metadata and user input
"""
import re
from typing import Dict, Any, List, Optional, Tuple
from werkzeug.utils import secure_filename
import logging

logger = logging.getLogger(__name__)

# Allowed attachment MIME types by category
ALLOWED_IMAGE_MIME_TYPES = {
    'image/jpeg', 'image/jpg', 'image/png', 'image/gif', 'image/webp', 'image/svg+xml'
}
ALLOWED_DOCUMENT_MIME_TYPES = {
    'application/pdf',
    'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'application/vnd.ms-excel',
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'application/vnd.ms-powerpoint',
    'application/vnd.openxmlformats-officedocument.presentationml.presentation',
    'text/plain',
    'text/csv',
    'application/json',
    'application/xml',
}

# Maximum attachment size (in bytes)
MAX_ATTACHMENT_SIZE = 10 * 1024 * 1024  # 10MB

FILE_SIZE_UNITS = ('B', 'KB', 'MB', 'GB', 'TB')

# Regex patterns
HEX_COLOR_PATTERN = re.compile(r'^#[0-9a-fA-F]{6}$')


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


def validate_number_range(value: float, min_value: Optional[float] = None, max_value: Optional[float] = None) -> Tuple[bool, Optional[str]]:
    """
    Validate number is within acceptable range

    Args:
        value: Number to validate
        min_value: Minimum allowed value
        max_value: Maximum allowed value

    Returns:
        Tuple of (is_valid, error_message)
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False, "Value must be a number"

    if min_value is not None and value < min_value:
        return False, f"Value too small (minimum {min_value})"

    if max_value is not None and value > max_value:
        return False, f"Value too large (maximum {max_value})"

    return True, None


def validate_hex_color(color: str) -> Tuple[bool, Optional[str]]:
    """Validate a #rrggbb color code"""
    if not isinstance(color, str) or not HEX_COLOR_PATTERN.match(color):
        return False, "Color must be a hex code like #3b82f6"
    return True, None


def validate_integer(value: Any, field: str, min_value: Optional[int] = None) -> Tuple[bool, Optional[str]]:
    """Validate an integer field such as an id or a position"""
    if isinstance(value, bool) or not isinstance(value, int):
        return False, f"{field} must be an integer"
    if min_value is not None and value < min_value:
        return False, f"{field} must be at least {min_value}"
    return True, None


def validate_id_list(value: Any, field: str) -> Tuple[bool, Optional[str]]:
    """Validate a list of integer ids"""
    if not isinstance(value, list):
        return False, f"{field} must be an array"
    if any(isinstance(item, bool) or not isinstance(item, int) for item in value):
        return False, f"{field} must contain only integer ids"
    return True, None


def sanitize_filename(filename: str) -> str:
    """
    Sanitize filename to prevent directory traversal attacks

    Args:
        filename: Original filename

    Returns:
        Sanitized filename
    """
    safe_name = secure_filename(filename or '')

    # If secure_filename removes everything, generate a default name
    if not safe_name:
        safe_name = 'file'

    return safe_name


# =============================================================================
# ATTACHMENT HELPERS
# =============================================================================

def is_image_file(mime_type: Optional[str]) -> bool:
    return bool(mime_type) and mime_type in ALLOWED_IMAGE_MIME_TYPES


def is_document_file(mime_type: Optional[str]) -> bool:
    return bool(mime_type) and mime_type in ALLOWED_DOCUMENT_MIME_TYPES


def is_valid_mime_type(mime_type: Optional[str]) -> bool:
    """Check a MIME type against the attachment allow-list"""
    return is_image_file(mime_type) or is_document_file(mime_type)


def is_file_size_valid(file_size: int, max_size: int = MAX_ATTACHMENT_SIZE) -> bool:
    return isinstance(file_size, int) and 0 < file_size <= max_size


def get_file_type_icon(mime_type: Optional[str]) -> str:
    """Map a MIME type to the icon name shown next to an attachment"""
    mime_type = mime_type or ''
    if mime_type.startswith('image/'):
        return 'image'
    if mime_type == 'application/pdf':
        return 'pdf'
    if 'word' in mime_type:
        return 'document'
    if 'excel' in mime_type or 'spreadsheet' in mime_type or mime_type == 'text/csv':
        return 'spreadsheet'
    if 'powerpoint' in mime_type or 'presentation' in mime_type:
        return 'presentation'
    if mime_type == 'text/plain':
        return 'text'
    if mime_type in ('application/json', 'application/xml'):
        return 'data'
    return 'file'


def format_file_size(size_bytes: int) -> str:
    """
    Format a byte count with binary units and one decimal place

    Examples:
        512 -> '512.0 B', 1536 -> '1.5 KB', 10485760 -> '10.0 MB'
    """
    number = float(size_bytes)
    unit = 0
    while number >= 1024 and unit < len(FILE_SIZE_UNITS) - 1:
        number /= 1024
        unit += 1
    return f"{number:.1f} {FILE_SIZE_UNITS[unit]}"


def validate_attachment_metadata(mime_type: Optional[str], file_size: int,
                                 max_size: int = MAX_ATTACHMENT_SIZE) -> Tuple[bool, Optional[str]]:
    """
    Validate attachment MIME type and size

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not is_valid_mime_type(mime_type):
        return False, "Invalid file type"

    if not is_file_size_valid(file_size, max_size):
        return False, f"File size exceeds maximum allowed size of {max_size // (1024 * 1024)}MB"

    return True, None


# =============================================================================
# REQUEST PAYLOADS
# =============================================================================

def validate_project_request(data: Dict[str, Any], partial: bool = False) -> Tuple[bool, Optional[str]]:
    """
    Validate project create/update payload

    Args:
        data: Request data dictionary
        partial: True for updates, where every field is optional

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not partial:
        is_valid, error = validate_required_fields(data, ['name', 'owner_id'])
        if not is_valid:
            return False, error

    for field in ('owner_id', 'contact_id'):
        if data.get(field) is not None:
            is_valid, error = validate_integer(data[field], field)
            if not is_valid:
                return False, error

    if 'name' in data:
        is_valid, error = validate_string_length(data['name'], min_length=1, max_length=255)
        if not is_valid:
            return False, f"Invalid name: {error}"

    if data.get('description') is not None:
        is_valid, error = validate_string_length(data['description'], max_length=1000)
        if not is_valid:
            return False, f"Invalid description: {error}"

    if 'team_members' in data and data['team_members'] is not None:
        is_valid, error = validate_id_list(data['team_members'], 'team_members')
        if not is_valid:
            return False, error

    if 'tags' in data and data['tags'] is not None and not isinstance(data['tags'], list):
        return False, "tags must be an array"

    if data.get('currency') is not None:
        is_valid, error = validate_string_length(data['currency'], min_length=3, max_length=3)
        if not is_valid:
            return False, f"Invalid currency: {error}"

    if data.get('progress') is not None:
        is_valid, error = validate_number_range(data['progress'])
        if not is_valid:
            return False, f"Invalid progress: {error}"

    return True, None


def validate_column_request(data: Dict[str, Any], partial: bool = False) -> Tuple[bool, Optional[str]]:
    """Validate column create/update payload"""
    if not partial:
        is_valid, error = validate_required_fields(data, ['project_id', 'title'])
        if not is_valid:
            return False, error

    if 'title' in data:
        is_valid, error = validate_string_length(data['title'], min_length=1, max_length=255)
        if not is_valid:
            return False, f"Invalid title: {error}"

    if data.get('color') is not None:
        is_valid, error = validate_hex_color(data['color'])
        if not is_valid:
            return False, error

    for field in ('project_id', 'position'):
        if data.get(field) is not None:
            is_valid, error = validate_integer(data[field], field)
            if not is_valid:
                return False, error

    if data.get('task_limit') is not None:
        is_valid, error = validate_number_range(data['task_limit'], min_value=0)
        if not is_valid:
            return False, f"Invalid task_limit: {error}"

    return True, None


def validate_task_request(data: Dict[str, Any], partial: bool = False, daily: bool = False) -> Tuple[bool, Optional[str]]:
    """Validate project/daily task create/update payload"""
    if not partial:
        required = ['title', 'user_id'] if daily else ['title', 'project_id', 'column_id']
        is_valid, error = validate_required_fields(data, required)
        if not is_valid:
            return False, error

    if 'title' in data:
        is_valid, error = validate_string_length(data['title'], min_length=1, max_length=255)
        if not is_valid:
            return False, f"Invalid title: {error}"

    if data.get('description') is not None:
        is_valid, error = validate_string_length(data['description'], max_length=2000)
        if not is_valid:
            return False, f"Invalid description: {error}"

    for field in ('project_id', 'column_id', 'position', 'parent_task_id', 'assignee_id', 'contact_id', 'user_id'):
        if data.get(field) is not None:
            is_valid, error = validate_integer(data[field], field)
            if not is_valid:
                return False, error

    if 'tags' in data and data['tags'] is not None and not isinstance(data['tags'], list):
        return False, "tags must be an array"

    for field in ('estimated_hours', 'actual_hours'):
        if data.get(field) is not None:
            is_valid, error = validate_number_range(data[field], min_value=0)
            if not is_valid:
                return False, f"Invalid {field}: {error}"

    return True, None


def validate_comment_request(data: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """Validate comment create payload"""
    is_valid, error = validate_required_fields(data, ['content', 'author_id'])
    if not is_valid:
        return False, error

    is_valid, error = validate_string_length(data['content'], min_length=1, max_length=2000)
    if not is_valid:
        return False, f"Invalid content: {error}"

    return True, None


def validate_attachment_request(data: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """Validate attachment create payload (metadata only, files are stored elsewhere)"""
    is_valid, error = validate_required_fields(
        data, ['file_name', 'file_url', 'file_size', 'uploaded_by']
    )
    if not is_valid:
        return False, error

    if data.get('caption') is not None:
        is_valid, error = validate_string_length(data['caption'], max_length=500)
        if not is_valid:
            return False, f"Invalid caption: {error}"

    return True, None
