"""
Task Routes Blueprint

Handles project tasks and daily tasks:
- /api/tasks: Create/search project tasks
- /api/tasks/<task_id>: Get/update/delete a project task
- /api/tasks/<task_id>/{move,assign,unassign,status,complete}: Board actions
- /api/tasks/<task_id>/subtasks: Task hierarchy
- /api/tasks/bulk/*: Bulk move/assign/status
- /api/daily-tasks: Personal daily tasks
"""

from flask import Blueprint, jsonify
import logging

from database.connection import get_db_session
from services.task_repository import TaskRepository
from validators import validate_task_request, validate_id_list, ValidationError
from app.utils.helpers import (
    current_user_label, get_pagination_args, get_int_arg, get_str_arg,
    get_json_body, require_valid, found_or_404
)

logger = logging.getLogger(__name__)

tasks_bp = Blueprint('tasks_bp', __name__)


def _repo(session):
    return TaskRepository(session, current_user_label())


def _required_int(data, field):
    value = data.get(field)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer", field)
    return value


def _required_status(data):
    status = data.get('status')
    if not isinstance(status, str) or not status.strip():
        raise ValidationError("status is required", 'status')
    return status


# ============================================================================
# PROJECT TASK READS
# ============================================================================

@tasks_bp.route('/api/projects/<int:project_id>/tasks', methods=['GET'])
def list_project_tasks(project_id):
    with get_db_session() as session:
        tasks = _repo(session).list_project_tasks(project_id)
    return jsonify({'success': True, 'tasks': tasks})


@tasks_bp.route('/api/columns/<int:column_id>/tasks', methods=['GET'])
def list_column_tasks(column_id):
    with get_db_session() as session:
        tasks = _repo(session).list_column_tasks(column_id)
    return jsonify({'success': True, 'tasks': tasks})


@tasks_bp.route('/api/tasks/<int:task_id>', methods=['GET'])
def get_task(task_id):
    with get_db_session() as session:
        task = found_or_404(_repo(session).get_task(task_id), f"Task with ID {task_id} not found")
    return jsonify({'success': True, 'task': task})


@tasks_bp.route('/api/tasks/search', methods=['GET'])
def search_tasks():
    page_number, page_size = get_pagination_args()
    filters = {
        'search_term': get_str_arg('searchTerm', 'search_term'),
        'status': get_str_arg('status'),
        'priority': get_str_arg('priority'),
        'project_id': get_int_arg('projectId', 'project_id'),
        'assignee_id': get_int_arg('assigneeId', 'assignee_id'),
        'contact_id': get_int_arg('contactId', 'contact_id'),
    }
    with get_db_session() as session:
        result = _repo(session).search_tasks(filters, page_number, page_size)
    return jsonify({'success': True, **result})


@tasks_bp.route('/api/tasks/assignee/<int:assignee_id>', methods=['GET'])
def tasks_by_assignee(assignee_id):
    project_id = get_int_arg('projectId', 'project_id')
    with get_db_session() as session:
        tasks = _repo(session).get_tasks_by_assignee(assignee_id, project_id)
    return jsonify({'success': True, 'tasks': tasks})


@tasks_bp.route('/api/tasks/overdue', methods=['GET'])
def overdue_tasks():
    project_id = get_int_arg('projectId', 'project_id')
    assignee_id = get_int_arg('assigneeId', 'assignee_id')
    with get_db_session() as session:
        tasks = _repo(session).get_overdue_tasks(project_id, assignee_id)
    return jsonify({'success': True, 'tasks': tasks})


@tasks_bp.route('/api/tasks/contact/<int:contact_id>', methods=['GET'])
def tasks_by_contact(contact_id):
    with get_db_session() as session:
        tasks = _repo(session).get_tasks_by_contact(contact_id)
    return jsonify({'success': True, 'tasks': tasks})


# ============================================================================
# PROJECT TASK MUTATIONS
# ============================================================================

@tasks_bp.route('/api/tasks', methods=['POST'])
def create_task():
    data = get_json_body()
    require_valid(validate_task_request(data))
    with get_db_session() as session:
        task = _repo(session).create_task(data)
    return jsonify({'success': True, 'task': task}), 201


@tasks_bp.route('/api/tasks/<int:task_id>', methods=['PUT'])
def update_task(task_id):
    data = get_json_body()
    require_valid(validate_task_request(data, partial=True))
    with get_db_session() as session:
        task = found_or_404(_repo(session).update_task(task_id, data), f"Task with ID {task_id} not found")
    return jsonify({'success': True, 'task': task})


@tasks_bp.route('/api/tasks/<int:task_id>', methods=['DELETE'])
def delete_task(task_id):
    with get_db_session() as session:
        found_or_404(_repo(session).delete_task(task_id), f"Task with ID {task_id} not found")
    return jsonify({'success': True})


@tasks_bp.route('/api/tasks/<int:task_id>/move', methods=['PUT'])
def move_task(task_id):
    """Body: {"column_id": 3, "position": 1}"""
    data = get_json_body()
    column_id = _required_int(data, 'column_id')
    position = data.get('position')
    if position is not None:
        position = _required_int(data, 'position')
    with get_db_session() as session:
        found_or_404(_repo(session).move_task(task_id, column_id, position), f"Task with ID {task_id} not found")
    return jsonify({'success': True})


@tasks_bp.route('/api/tasks/bulk/move', methods=['PUT'])
def bulk_move_tasks():
    """Body: {"tasks": [{"id": 1, "column_id": 3, "position": 1}, ...]}"""
    data = get_json_body()
    moves = data.get('tasks')
    if not isinstance(moves, list):
        raise ValidationError("tasks must be a list", 'tasks')
    for move in moves:
        if not isinstance(move, dict):
            raise ValidationError("each task move must be an object", 'tasks')
        _required_int(move, 'id')
        _required_int(move, 'column_id')
        if move.get('position') is not None:
            _required_int(move, 'position')
    with get_db_session() as session:
        _repo(session).bulk_move_tasks(moves)
    return jsonify({'success': True})


@tasks_bp.route('/api/columns/<int:column_id>/tasks/reorder', methods=['PUT'])
def reorder_tasks(column_id):
    """Body: {"task_ids": [5, 2, 9]}"""
    data = get_json_body()
    task_ids = data.get('task_ids')
    require_valid(validate_id_list(task_ids, 'task_ids'))
    with get_db_session() as session:
        _repo(session).reorder_tasks_in_column(column_id, task_ids)
    return jsonify({'success': True})


@tasks_bp.route('/api/tasks/<int:task_id>/assign', methods=['PUT'])
def assign_task(task_id):
    data = get_json_body()
    assignee_id = _required_int(data, 'assignee_id')
    with get_db_session() as session:
        found_or_404(
            _repo(session).assign_task(task_id, assignee_id, data.get('assignee_name')),
            f"Task with ID {task_id} not found"
        )
    return jsonify({'success': True})


@tasks_bp.route('/api/tasks/<int:task_id>/unassign', methods=['PUT'])
def unassign_task(task_id):
    with get_db_session() as session:
        found_or_404(_repo(session).unassign_task(task_id), f"Task with ID {task_id} not found")
    return jsonify({'success': True})


@tasks_bp.route('/api/tasks/bulk/assign', methods=['PUT'])
def bulk_assign_tasks():
    data = get_json_body()
    task_ids = data.get('task_ids')
    require_valid(validate_id_list(task_ids, 'task_ids'))
    assignee_id = _required_int(data, 'assignee_id')
    with get_db_session() as session:
        updated = _repo(session).bulk_assign_tasks(task_ids, assignee_id, data.get('assignee_name'))
    return jsonify({'success': True, 'updated': updated})


@tasks_bp.route('/api/tasks/<int:task_id>/status', methods=['PUT'])
def update_task_status(task_id):
    status = _required_status(get_json_body())
    with get_db_session() as session:
        found_or_404(_repo(session).update_task_status(task_id, status), f"Task with ID {task_id} not found")
    return jsonify({'success': True})


@tasks_bp.route('/api/tasks/<int:task_id>/complete', methods=['PUT'])
def complete_task(task_id):
    with get_db_session() as session:
        found_or_404(_repo(session).complete_task(task_id), f"Task with ID {task_id} not found")
    return jsonify({'success': True})


@tasks_bp.route('/api/tasks/bulk/status', methods=['PUT'])
def bulk_update_status():
    data = get_json_body()
    task_ids = data.get('task_ids')
    require_valid(validate_id_list(task_ids, 'task_ids'))
    status = _required_status(data)
    with get_db_session() as session:
        updated = _repo(session).bulk_update_task_status(task_ids, status)
    return jsonify({'success': True, 'updated': updated})


# ============================================================================
# HIERARCHY
# ============================================================================

@tasks_bp.route('/api/tasks/<int:task_id>/subtasks', methods=['GET'])
def get_sub_tasks(task_id):
    with get_db_session() as session:
        tasks = _repo(session).get_sub_tasks(task_id)
    return jsonify({'success': True, 'tasks': tasks})


@tasks_bp.route('/api/tasks/<int:task_id>/subtasks', methods=['POST'])
def create_sub_task(task_id):
    data = get_json_body()
    require_valid(validate_task_request(data, partial=True))
    if not data.get('title'):
        raise ValidationError("Missing required fields: title", 'title')
    with get_db_session() as session:
        task = _repo(session).create_sub_task(task_id, data)
    return jsonify({'success': True, 'task': task}), 201


@tasks_bp.route('/api/tasks/<int:task_id>/hierarchy', methods=['GET'])
def get_task_hierarchy(task_id):
    with get_db_session() as session:
        tasks = _repo(session).get_task_hierarchy(task_id)
    return jsonify({'success': True, 'tasks': tasks})


@tasks_bp.route('/api/tasks/<int:task_id>/convert-to-subtask', methods=['PUT'])
def convert_to_sub_task(task_id):
    parent_task_id = _required_int(get_json_body(), 'parent_task_id')
    with get_db_session() as session:
        found_or_404(
            _repo(session).convert_to_sub_task(task_id, parent_task_id),
            "Task or parent task not found in the same project"
        )
    return jsonify({'success': True})


@tasks_bp.route('/api/tasks/<int:task_id>/convert-to-standalone', methods=['PUT'])
def convert_to_standalone(task_id):
    with get_db_session() as session:
        found_or_404(_repo(session).convert_to_standalone_task(task_id), f"Task with ID {task_id} not found")
    return jsonify({'success': True})


# ============================================================================
# STATISTICS
# ============================================================================

@tasks_bp.route('/api/projects/<int:project_id>/tasks/status-counts', methods=['GET'])
def project_status_counts(project_id):
    with get_db_session() as session:
        repo = _repo(session)
        counts = repo.get_task_status_counts(project_id)
        completion = repo.get_task_completion_percentage(project_id)
    return jsonify({'success': True, 'status_counts': counts, 'completion_percentage': completion})


@tasks_bp.route('/api/users/<int:user_id>/task-stats', methods=['GET'])
def user_task_stats(user_id):
    with get_db_session() as session:
        repo = _repo(session)
        counts = repo.get_user_task_status_counts(user_id)
        overdue = repo.get_user_overdue_task_count(user_id)
    return jsonify({'success': True, 'status_counts': counts, 'overdue_count': overdue})


@tasks_bp.route('/api/tasks/<int:task_id>/access/<int:user_id>', methods=['GET'])
def task_access(task_id, user_id):
    with get_db_session() as session:
        allowed = _repo(session).user_can_access_task(task_id, user_id)
    return jsonify({'success': True, 'can_access': allowed})


# ============================================================================
# DAILY TASKS
# ============================================================================

@tasks_bp.route('/api/users/<int:user_id>/daily-tasks', methods=['GET'])
def list_daily_tasks(user_id):
    with get_db_session() as session:
        tasks = _repo(session).list_user_daily_tasks(user_id)
    return jsonify({'success': True, 'tasks': tasks})


@tasks_bp.route('/api/daily-tasks', methods=['POST'])
def create_daily_task():
    data = get_json_body()
    require_valid(validate_task_request(data, daily=True))
    with get_db_session() as session:
        task = _repo(session).create_daily_task(data)
    return jsonify({'success': True, 'task': task}), 201


@tasks_bp.route('/api/daily-tasks/<int:task_id>', methods=['GET'])
def get_daily_task(task_id):
    with get_db_session() as session:
        task = found_or_404(_repo(session).get_daily_task(task_id), f"Daily task with ID {task_id} not found")
    return jsonify({'success': True, 'task': task})


@tasks_bp.route('/api/daily-tasks/<int:task_id>', methods=['PUT'])
def update_daily_task(task_id):
    data = get_json_body()
    require_valid(validate_task_request(data, partial=True, daily=True))
    with get_db_session() as session:
        task = found_or_404(
            _repo(session).update_daily_task(task_id, data),
            f"Daily task with ID {task_id} not found"
        )
    return jsonify({'success': True, 'task': task})


@tasks_bp.route('/api/daily-tasks/<int:task_id>/status', methods=['PUT'])
def update_daily_task_status(task_id):
    status = _required_status(get_json_body())
    with get_db_session() as session:
        found_or_404(
            _repo(session).update_daily_task_status(task_id, status),
            f"Daily task with ID {task_id} not found"
        )
    return jsonify({'success': True})


@tasks_bp.route('/api/daily-tasks/<int:task_id>', methods=['DELETE'])
def delete_daily_task(task_id):
    with get_db_session() as session:
        found_or_404(_repo(session).delete_daily_task(task_id), f"Daily task with ID {task_id} not found")
    return jsonify({'success': True})
