"""
Helper functions shared by the API blueprints: acting user, paging
arguments, request bodies and not-found handling.
"""

from typing import Optional, Tuple, List
from flask import request, current_app

from services.errors import NotFoundError
from validators import ValidationError


def get_current_user() -> Tuple[Optional[int], str]:
    """Acting user from the X-User-Id / X-User-Name headers set by the auth gateway."""
    user_id = request.headers.get('X-User-Id', type=int)
    user_name = request.headers.get('X-User-Name', '')
    return user_id, user_name


def current_user_label() -> str:
    """Display string recorded in created_by / modified_by."""
    user_id, user_name = get_current_user()
    if user_name:
        return user_name
    if user_id is not None:
        return str(user_id)
    return 'system'


def _first_int_arg(*names) -> Optional[int]:
    for name in names:
        value = request.args.get(name, type=int)
        if value is not None:
            return value
    return None


def get_pagination_args() -> Tuple[int, int]:
    """
    Read pageNumber/pageSize (or page_number/page_size) from the query string.
    Page number is at least 1; page size is clamped to [1, MAX_PAGE_SIZE].
    """
    default_size = current_app.config.get('DEFAULT_PAGE_SIZE', 20)
    max_size = current_app.config.get('MAX_PAGE_SIZE', 100)

    page_number = _first_int_arg('pageNumber', 'page_number') or 1
    page_size = _first_int_arg('pageSize', 'page_size') or default_size

    return max(page_number, 1), max(1, min(page_size, max_size))


def get_int_arg(camel_name: str, snake_name: Optional[str] = None) -> Optional[int]:
    """Integer query argument accepted in camelCase or snake_case."""
    return _first_int_arg(camel_name, snake_name or camel_name)


def get_str_arg(camel_name: str, snake_name: Optional[str] = None) -> Optional[str]:
    value = request.args.get(camel_name)
    if value is None and snake_name:
        value = request.args.get(snake_name)
    return value or None


def get_bool_arg(camel_name: str, snake_name: Optional[str] = None) -> Optional[bool]:
    value = get_str_arg(camel_name, snake_name)
    if value is None:
        return None
    return value.lower() in ('true', '1', 'yes')


def get_int_list_arg(camel_name: str, snake_name: Optional[str] = None) -> List[int]:
    """Comma-separated ids, e.g. ?teamMemberIds=1,2,3"""
    value = get_str_arg(camel_name, snake_name)
    if not value:
        return []
    try:
        return [int(part) for part in value.split(',') if part.strip()]
    except ValueError:
        raise ValidationError(f"{camel_name} must be a comma-separated list of ids", camel_name)


def get_json_body() -> dict:
    """The request JSON object; anything else is a validation error."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def require_valid(result: Tuple[bool, Optional[str]]):
    """Raise ValidationError for a failed (is_valid, error) validator result."""
    is_valid, error = result
    if not is_valid:
        raise ValidationError(error)


def found_or_404(value, message: str = 'Resource not found'):
    """Map a repository's None/False not-found result to a 404."""
    if value is None or value is False:
        raise NotFoundError(message)
    return value
