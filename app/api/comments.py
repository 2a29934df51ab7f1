"""
Task Comment Routes Blueprint

Handles comments on project tasks and daily tasks:
- /api/comments: List (by task) / create comments
- /api/comments/<comment_id>: Get/update/delete a comment
"""

from flask import Blueprint, jsonify
import logging

from database.connection import get_db_session
from services.comment_repository import CommentRepository
from validators import validate_comment_request, validate_id_list, validate_string_length
from app.utils.helpers import (
    current_user_label, get_pagination_args, get_int_arg, get_str_arg,
    get_json_body, require_valid, found_or_404
)

logger = logging.getLogger(__name__)

comments_bp = Blueprint('comments_bp', __name__)


def _task_args():
    return (
        get_int_arg('projectTaskId', 'project_task_id'),
        get_int_arg('dailyTaskId', 'daily_task_id'),
    )


@comments_bp.route('/api/comments', methods=['GET'])
def list_comments():
    """?projectTaskId=<id> or ?dailyTaskId=<id>, newest first"""
    project_task_id, daily_task_id = _task_args()
    page_number, page_size = get_pagination_args()
    with get_db_session() as session:
        result = CommentRepository(session).list_task_comments(
            project_task_id, daily_task_id, page_number, page_size
        )
    return jsonify({'success': True, **result})


@comments_bp.route('/api/comments/search', methods=['GET'])
def search_comments():
    project_task_id, daily_task_id = _task_args()
    page_number, page_size = get_pagination_args()
    filters = {
        'project_task_id': project_task_id,
        'daily_task_id': daily_task_id,
        'author_id': get_int_arg('authorId', 'author_id'),
        'search_term': get_str_arg('searchTerm', 'search_term'),
        'created_from': get_str_arg('createdFrom', 'created_from'),
        'created_to': get_str_arg('createdTo', 'created_to'),
    }
    with get_db_session() as session:
        result = CommentRepository(session).search_comments(filters, page_number, page_size)
    return jsonify({'success': True, **result})


@comments_bp.route('/api/comments', methods=['POST'])
def create_comment():
    data = get_json_body()
    require_valid(validate_comment_request(data))
    with get_db_session() as session:
        comment = CommentRepository(session, current_user_label()).create_comment(data)
    return jsonify({'success': True, 'comment': comment}), 201


@comments_bp.route('/api/comments/<int:comment_id>', methods=['GET'])
def get_comment(comment_id):
    with get_db_session() as session:
        comment = found_or_404(
            CommentRepository(session).get_comment(comment_id),
            f"Comment with ID {comment_id} not found"
        )
    return jsonify({'success': True, 'comment': comment})


@comments_bp.route('/api/comments/<int:comment_id>', methods=['PUT'])
def update_comment(comment_id):
    data = get_json_body()
    require_valid(validate_string_length(data.get('content'), min_length=1, max_length=2000))
    with get_db_session() as session:
        comment = found_or_404(
            CommentRepository(session, current_user_label()).update_comment(comment_id, data),
            f"Comment with ID {comment_id} not found"
        )
    return jsonify({'success': True, 'comment': comment})


@comments_bp.route('/api/comments/<int:comment_id>', methods=['DELETE'])
def delete_comment(comment_id):
    with get_db_session() as session:
        found_or_404(
            CommentRepository(session, current_user_label()).delete_comment(comment_id),
            f"Comment with ID {comment_id} not found"
        )
    return jsonify({'success': True})


@comments_bp.route('/api/comments/bulk/delete', methods=['POST'])
def bulk_delete_comments():
    data = get_json_body()
    comment_ids = data.get('comment_ids')
    require_valid(validate_id_list(comment_ids, 'comment_ids'))
    with get_db_session() as session:
        deleted = CommentRepository(session, current_user_label()).bulk_delete_comments(comment_ids)
    return jsonify({'success': True, 'deleted': deleted})


@comments_bp.route('/api/comments/task', methods=['DELETE'])
def delete_task_comments():
    """Delete every comment of ?projectTaskId=<id> or ?dailyTaskId=<id>"""
    project_task_id, daily_task_id = _task_args()
    with get_db_session() as session:
        deleted = CommentRepository(session, current_user_label()).delete_all_task_comments(
            project_task_id, daily_task_id
        )
    return jsonify({'success': True, 'deleted': deleted})


@comments_bp.route('/api/comments/author/<int:author_id>', methods=['GET'])
def comments_by_author(author_id):
    page_number, page_size = get_pagination_args()
    with get_db_session() as session:
        result = CommentRepository(session).get_comments_by_author(author_id, page_number, page_size)
    return jsonify({'success': True, **result})


@comments_bp.route('/api/comments/recent', methods=['GET'])
def recent_comments():
    page_number, page_size = get_pagination_args()
    with get_db_session() as session:
        result = CommentRepository(session).get_recent_comments(
            get_int_arg('projectId', 'project_id'), get_int_arg('userId', 'user_id'),
            page_number, page_size
        )
    return jsonify({'success': True, **result})


@comments_bp.route('/api/comments/latest', methods=['GET'])
def latest_comments():
    count = get_int_arg('count') or 10
    with get_db_session() as session:
        comments = CommentRepository(session).get_most_recent_comments(max(1, min(count, 100)))
    return jsonify({'success': True, 'comments': comments})


@comments_bp.route('/api/comments/count', methods=['GET'])
def task_comment_count():
    project_task_id, daily_task_id = _task_args()
    with get_db_session() as session:
        count = CommentRepository(session).get_task_comment_count(project_task_id, daily_task_id)
    return jsonify({'success': True, 'count': count})


@comments_bp.route('/api/comments/counts', methods=['POST'])
def task_comment_counts():
    """Body: {"task_ids": [...], "is_project_tasks": true}"""
    data = get_json_body()
    task_ids = data.get('task_ids')
    require_valid(validate_id_list(task_ids, 'task_ids'))
    with get_db_session() as session:
        counts = CommentRepository(session).get_task_comment_counts(
            task_ids, bool(data.get('is_project_tasks', True))
        )
    return jsonify({'success': True, 'counts': {str(k): v for k, v in counts.items()}})


@comments_bp.route('/api/users/<int:user_id>/comment-count', methods=['GET'])
def user_comment_count(user_id):
    from_date = get_str_arg('fromDate', 'from_date')
    with get_db_session() as session:
        count = CommentRepository(session).get_user_comment_count(user_id, from_date)
    return jsonify({'success': True, 'count': count})


@comments_bp.route('/api/comments/<int:comment_id>/can-edit/<int:user_id>', methods=['GET'])
def can_edit_comment(comment_id, user_id):
    with get_db_session() as session:
        allowed = CommentRepository(session).user_can_edit_comment(comment_id, user_id)
    return jsonify({'success': True, 'can_edit': allowed})
