"""
Board Column Routes Blueprint

Handles project board columns:
- /api/projects/<project_id>/columns: List/reorder a project's columns
- /api/columns: Create columns
- /api/columns/<column_id>: Get/update/delete a column
"""

from flask import Blueprint, jsonify
import logging

from database.connection import get_db_session
from services.column_repository import ColumnRepository
from services.errors import InvalidOperationError
from validators import validate_column_request, validate_id_list, validate_hex_color, ValidationError
from app.utils.helpers import (
    current_user_label, get_int_arg, get_json_body, require_valid, found_or_404
)

logger = logging.getLogger(__name__)

columns_bp = Blueprint('columns_bp', __name__)


@columns_bp.route('/api/projects/<int:project_id>/columns', methods=['GET'])
def list_columns(project_id):
    """List a project's columns with task counts"""
    with get_db_session() as session:
        result = ColumnRepository(session).list_columns(project_id)
    return jsonify({'success': True, **result})


@columns_bp.route('/api/columns/defaults', methods=['GET'])
def default_columns():
    return jsonify({'success': True, 'columns': ColumnRepository.get_default_column_templates()})


@columns_bp.route('/api/columns', methods=['POST'])
def create_column():
    data = get_json_body()
    require_valid(validate_column_request(data))
    with get_db_session() as session:
        column = ColumnRepository(session, current_user_label()).create_column(data)
    return jsonify({'success': True, 'column': column}), 201


@columns_bp.route('/api/columns/<int:column_id>', methods=['GET'])
def get_column(column_id):
    with get_db_session() as session:
        column = found_or_404(
            ColumnRepository(session).get_column(column_id),
            f"Column with ID {column_id} not found"
        )
    return jsonify({'success': True, 'column': column})


@columns_bp.route('/api/columns/<int:column_id>', methods=['PUT'])
def update_column(column_id):
    data = get_json_body()
    require_valid(validate_column_request(data, partial=True))
    with get_db_session() as session:
        column = found_or_404(
            ColumnRepository(session, current_user_label()).update_column(column_id, data),
            f"Column with ID {column_id} not found"
        )
    return jsonify({'success': True, 'column': column})


@columns_bp.route('/api/columns/<int:column_id>', methods=['DELETE'])
def delete_column(column_id):
    """
    Delete a column. With ?moveTasksToColumnId=<id> its tasks move there,
    otherwise they are soft-deleted. The last column of a project is kept.
    """
    move_to = get_int_arg('moveTasksToColumnId', 'move_tasks_to_column_id')
    with get_db_session() as session:
        repo = ColumnRepository(session, current_user_label())
        found_or_404(repo.column_exists(column_id), f"Column with ID {column_id} not found")
        if not repo.can_delete_column(column_id):
            raise InvalidOperationError("Cannot delete the only column of a project")
        repo.delete_column(column_id, move_to)
    return jsonify({'success': True})


@columns_bp.route('/api/columns/<int:column_id>/can-delete', methods=['GET'])
def can_delete_column(column_id):
    with get_db_session() as session:
        can_delete = ColumnRepository(session).can_delete_column(column_id)
    return jsonify({'success': True, 'can_delete': can_delete})


@columns_bp.route('/api/projects/<int:project_id>/columns/reorder', methods=['PUT'])
def reorder_columns(project_id):
    """Body: {"columns": [{"id": 1, "position": 2}, ...]}"""
    data = get_json_body()
    positions = data.get('columns')
    if not isinstance(positions, list) or not all(
        isinstance(p, dict) and isinstance(p.get('id'), int) and isinstance(p.get('position'), int)
        for p in positions
    ):
        raise ValidationError("columns must be a list of {id, position} objects", 'columns')
    with get_db_session() as session:
        ColumnRepository(session, current_user_label()).reorder_columns(project_id, positions)
    return jsonify({'success': True})


@columns_bp.route('/api/columns/bulk/delete', methods=['POST'])
def bulk_delete_columns():
    data = get_json_body()
    column_ids = data.get('column_ids')
    require_valid(validate_id_list(column_ids, 'column_ids'))
    with get_db_session() as session:
        ColumnRepository(session, current_user_label()).bulk_delete_columns(
            column_ids, data.get('move_tasks_to_column_id')
        )
    return jsonify({'success': True})


@columns_bp.route('/api/columns/bulk/colors', methods=['PUT'])
def bulk_update_colors():
    """Body: {"colors": {"<column_id>": "#rrggbb", ...}}"""
    data = get_json_body()
    colors = data.get('colors')
    if not isinstance(colors, dict):
        raise ValidationError("colors must be an object of column id to color", 'colors')
    try:
        column_colors = {int(k): v for k, v in colors.items()}
    except ValueError:
        raise ValidationError("colors keys must be column ids", 'colors')
    for color in column_colors.values():
        require_valid(validate_hex_color(color))
    with get_db_session() as session:
        updated = ColumnRepository(session, current_user_label()).bulk_update_column_colors(column_colors)
    return jsonify({'success': True, 'updated': updated})


@columns_bp.route('/api/projects/<int:project_id>/columns/can-manage/<int:user_id>', methods=['GET'])
def can_manage_columns(project_id, user_id):
    with get_db_session() as session:
        allowed = ColumnRepository(session).user_can_manage_columns(project_id, user_id)
    return jsonify({'success': True, 'can_manage': allowed})
