"""
Utilities Package

Shared helper functions used across the API blueprints.
"""

from app.utils.helpers import (
    get_current_user,
    current_user_label,
    get_pagination_args,
    get_int_arg,
    get_str_arg,
    get_bool_arg,
    get_int_list_arg,
    get_json_body,
    require_valid,
    found_or_404,
)

__all__ = [
    'get_current_user',
    'current_user_label',
    'get_pagination_args',
    'get_int_arg',
    'get_str_arg',
    'get_bool_arg',
    'get_int_list_arg',
    'get_json_body',
    'require_valid',
    'found_or_404',
]
