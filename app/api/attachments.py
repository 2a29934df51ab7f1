"""
Task Attachment Routes Blueprint

Attachment metadata for project tasks and daily tasks. The file itself is
uploaded to storage by the client; these routes record and query it.
- /api/attachments: List (by task) / create attachment records
- /api/attachments/<attachment_id>: Get/update/delete a record
- /api/attachments/cleanup: Soft delete records whose task is gone
"""

from flask import Blueprint, jsonify, current_app
import logging

from database.connection import get_db_session
from services.attachment_repository import AttachmentRepository
from validators import validate_attachment_request, validate_id_list, format_file_size
from app.utils.helpers import (
    current_user_label, get_pagination_args, get_int_arg, get_str_arg, get_bool_arg,
    get_json_body, require_valid, found_or_404
)

logger = logging.getLogger(__name__)

attachments_bp = Blueprint('attachments_bp', __name__)


def _repo(session, acting=False):
    return AttachmentRepository(
        session,
        current_user_label() if acting else None,
        max_file_size=current_app.config['MAX_ATTACHMENT_SIZE']
    )


def _task_args():
    return (
        get_int_arg('projectTaskId', 'project_task_id'),
        get_int_arg('dailyTaskId', 'daily_task_id'),
    )


@attachments_bp.route('/api/attachments', methods=['GET'])
def list_attachments():
    """?projectTaskId=<id> or ?dailyTaskId=<id>, newest first"""
    project_task_id, daily_task_id = _task_args()
    page_number, page_size = get_pagination_args()
    with get_db_session() as session:
        result = _repo(session).list_task_attachments(
            project_task_id, daily_task_id, page_number, page_size
        )
    return jsonify({'success': True, **result})


@attachments_bp.route('/api/attachments/search', methods=['GET'])
def search_attachments():
    project_task_id, daily_task_id = _task_args()
    page_number, page_size = get_pagination_args()
    filters = {
        'project_task_id': project_task_id,
        'daily_task_id': daily_task_id,
        'uploaded_by': get_int_arg('uploadedBy', 'uploaded_by'),
        'mime_type': get_str_arg('mimeType', 'mime_type'),
        'is_image': get_bool_arg('isImage', 'is_image'),
        'is_document': get_bool_arg('isDocument', 'is_document'),
        'search_term': get_str_arg('searchTerm', 'search_term'),
        'uploaded_from': get_str_arg('uploadedFrom', 'uploaded_from'),
        'uploaded_to': get_str_arg('uploadedTo', 'uploaded_to'),
    }
    with get_db_session() as session:
        result = _repo(session).search_attachments(filters, page_number, page_size)
    return jsonify({'success': True, **result})


@attachments_bp.route('/api/attachments', methods=['POST'])
def create_attachment():
    data = get_json_body()
    require_valid(validate_attachment_request(data))
    with get_db_session() as session:
        attachment = _repo(session, acting=True).create_attachment(data)
    return jsonify({'success': True, 'attachment': attachment}), 201


@attachments_bp.route('/api/attachments/<int:attachment_id>', methods=['GET'])
def get_attachment(attachment_id):
    with get_db_session() as session:
        attachment = found_or_404(
            _repo(session).get_attachment(attachment_id),
            f"Attachment with ID {attachment_id} not found"
        )
    return jsonify({'success': True, 'attachment': attachment})


@attachments_bp.route('/api/attachments/<int:attachment_id>', methods=['PUT'])
def update_attachment(attachment_id):
    """Only original_file_name and caption can change"""
    data = get_json_body()
    with get_db_session() as session:
        attachment = found_or_404(
            _repo(session, acting=True).update_attachment(attachment_id, data),
            f"Attachment with ID {attachment_id} not found"
        )
    return jsonify({'success': True, 'attachment': attachment})


@attachments_bp.route('/api/attachments/<int:attachment_id>', methods=['DELETE'])
def delete_attachment(attachment_id):
    with get_db_session() as session:
        found_or_404(
            _repo(session, acting=True).delete_attachment(attachment_id),
            f"Attachment with ID {attachment_id} not found"
        )
    return jsonify({'success': True})


@attachments_bp.route('/api/attachments/bulk/delete', methods=['POST'])
def bulk_delete_attachments():
    data = get_json_body()
    attachment_ids = data.get('attachment_ids')
    require_valid(validate_id_list(attachment_ids, 'attachment_ids'))
    with get_db_session() as session:
        deleted = _repo(session, acting=True).bulk_delete_attachments(attachment_ids)
    return jsonify({'success': True, 'deleted': deleted})


@attachments_bp.route('/api/attachments/task', methods=['DELETE'])
def delete_task_attachments():
    project_task_id, daily_task_id = _task_args()
    with get_db_session() as session:
        deleted = _repo(session, acting=True).delete_all_task_attachments(project_task_id, daily_task_id)
    return jsonify({'success': True, 'deleted': deleted})


@attachments_bp.route('/api/attachments/cleanup', methods=['POST'])
def cleanup_orphaned():
    with get_db_session() as session:
        cleaned = _repo(session, acting=True).cleanup_orphaned_attachments()
    return jsonify({'success': True, 'cleaned': cleaned})


# ============================================================================
# QUERIES
# ============================================================================

@attachments_bp.route('/api/attachments/uploader/<int:uploader_id>', methods=['GET'])
def attachments_by_uploader(uploader_id):
    page_number, page_size = get_pagination_args()
    with get_db_session() as session:
        result = _repo(session).get_attachments_by_uploader(uploader_id, page_number, page_size)
    return jsonify({'success': True, **result})


@attachments_bp.route('/api/attachments/type', methods=['GET'])
def attachments_by_type():
    """?mimeType=image/png"""
    mime_type = get_str_arg('mimeType', 'mime_type') or ''
    page_number, page_size = get_pagination_args()
    with get_db_session() as session:
        result = _repo(session).get_attachments_by_type(mime_type, page_number, page_size)
    return jsonify({'success': True, **result})


@attachments_bp.route('/api/attachments/images', methods=['GET'])
def image_attachments():
    project_task_id, daily_task_id = _task_args()
    page_number, page_size = get_pagination_args()
    with get_db_session() as session:
        result = _repo(session).get_image_attachments(project_task_id, daily_task_id, page_number, page_size)
    return jsonify({'success': True, **result})


@attachments_bp.route('/api/attachments/documents', methods=['GET'])
def document_attachments():
    project_task_id, daily_task_id = _task_args()
    page_number, page_size = get_pagination_args()
    with get_db_session() as session:
        result = _repo(session).get_document_attachments(project_task_id, daily_task_id, page_number, page_size)
    return jsonify({'success': True, **result})


@attachments_bp.route('/api/attachments/latest', methods=['GET'])
def latest_attachments():
    count = get_int_arg('count') or 10
    with get_db_session() as session:
        attachments = _repo(session).get_most_recent_attachments(max(1, min(count, 100)))
    return jsonify({'success': True, 'attachments': attachments})


# ============================================================================
# AGGREGATES
# ============================================================================

@attachments_bp.route('/api/attachments/summary', methods=['GET'])
def task_attachment_summary():
    """Count and byte total for one task"""
    project_task_id, daily_task_id = _task_args()
    with get_db_session() as session:
        repo = _repo(session)
        count = repo.get_task_attachment_count(project_task_id, daily_task_id)
        total_size = repo.get_task_attachments_total_size(project_task_id, daily_task_id)
    return jsonify({
        'success': True,
        'count': count,
        'total_size': total_size,
        'total_size_formatted': format_file_size(total_size)
    })


@attachments_bp.route('/api/attachments/counts', methods=['POST'])
def task_attachment_counts():
    """Body: {"task_ids": [...], "is_project_tasks": true}"""
    data = get_json_body()
    task_ids = data.get('task_ids')
    require_valid(validate_id_list(task_ids, 'task_ids'))
    with get_db_session() as session:
        counts = _repo(session).get_task_attachment_counts(
            task_ids, bool(data.get('is_project_tasks', True))
        )
    return jsonify({'success': True, 'counts': {str(k): v for k, v in counts.items()}})


@attachments_bp.route('/api/users/<int:user_id>/uploads', methods=['GET'])
def user_uploads(user_id):
    from_date = get_str_arg('fromDate', 'from_date')
    with get_db_session() as session:
        repo = _repo(session)
        count = repo.get_user_upload_count(user_id, from_date)
        total_size = repo.get_user_upload_size(user_id, from_date)
    return jsonify({
        'success': True,
        'count': count,
        'total_size': total_size,
        'total_size_formatted': format_file_size(total_size)
    })


@attachments_bp.route('/api/attachments/storage', methods=['GET'])
def total_storage():
    with get_db_session() as session:
        total_size = _repo(session).get_total_attachments_size()
    return jsonify({
        'success': True,
        'total_size': total_size,
        'total_size_formatted': format_file_size(total_size)
    })


@attachments_bp.route('/api/attachments/<int:attachment_id>/can-edit/<int:user_id>', methods=['GET'])
def can_edit_attachment(attachment_id, user_id):
    with get_db_session() as session:
        allowed = _repo(session).user_can_edit_attachment(attachment_id, user_id)
    return jsonify({'success': True, 'can_edit': allowed})
