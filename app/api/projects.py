"""
Project Routes Blueprint

Handles projects and their team roster:
- /api/projects: List (filter, sort, page) / create projects
- /api/projects/<project_id>: Get/update/delete a project
- /api/projects/<project_id>/team-members: Team roster
- /api/projects/<project_id>/stats: Task statistics
- /api/projects/bulk/*: Bulk status and archive updates
"""

from flask import Blueprint, jsonify
import logging

from database.connection import get_db_session
from services.project_repository import ProjectRepository
from validators import validate_project_request, validate_id_list, ValidationError
from app.utils.helpers import (
    current_user_label, get_pagination_args, get_int_arg, get_str_arg,
    get_bool_arg, get_int_list_arg, get_json_body, require_valid, found_or_404
)

logger = logging.getLogger(__name__)

projects_bp = Blueprint('projects_bp', __name__)


def _list_filters():
    return {
        'search_term': get_str_arg('searchTerm', 'search_term'),
        'status': get_str_arg('status'),
        'type': get_str_arg('type'),
        'priority': get_str_arg('priority'),
        'owner_id': get_int_arg('ownerId', 'owner_id'),
        'contact_id': get_int_arg('contactId', 'contact_id'),
        'is_archived': get_bool_arg('isArchived', 'is_archived'),
        'team_member_ids': get_int_list_arg('teamMemberIds', 'team_member_ids'),
        'start_date_from': get_str_arg('startDateFrom', 'start_date_from'),
        'start_date_to': get_str_arg('startDateTo', 'start_date_to'),
        'end_date_from': get_str_arg('endDateFrom', 'end_date_from'),
        'end_date_to': get_str_arg('endDateTo', 'end_date_to'),
        'sort_by': get_str_arg('sortBy', 'sort_by'),
        'sort_direction': get_str_arg('sortDirection', 'sort_direction'),
    }


def _required_user_id(data):
    user_id = data.get('user_id')
    if isinstance(user_id, bool) or not isinstance(user_id, int):
        raise ValidationError("user_id must be an integer", 'user_id')
    return user_id


# ============================================================================
# PROJECT ROUTES
# ============================================================================

@projects_bp.route('/api/projects', methods=['GET'])
def list_projects():
    """List projects with filters, sorting and paging"""
    page_number, page_size = get_pagination_args()
    with get_db_session() as session:
        result = ProjectRepository(session).list_projects(_list_filters(), page_number, page_size)
    return jsonify({'success': True, **result})


@projects_bp.route('/api/projects', methods=['POST'])
def create_project():
    """Create a project with the default board columns"""
    data = get_json_body()
    require_valid(validate_project_request(data))
    with get_db_session() as session:
        project = ProjectRepository(session, current_user_label()).create_project(data)
    return jsonify({'success': True, 'project': project}), 201


@projects_bp.route('/api/projects/<int:project_id>', methods=['GET'])
def get_project(project_id):
    with get_db_session() as session:
        project = found_or_404(
            ProjectRepository(session).get_project(project_id),
            f"Project with ID {project_id} not found"
        )
    return jsonify({'success': True, 'project': project})


@projects_bp.route('/api/projects/<int:project_id>', methods=['PUT'])
def update_project(project_id):
    data = get_json_body()
    require_valid(validate_project_request(data, partial=True))
    with get_db_session() as session:
        project = found_or_404(
            ProjectRepository(session, current_user_label()).update_project(project_id, data),
            f"Project with ID {project_id} not found"
        )
    return jsonify({'success': True, 'project': project})


@projects_bp.route('/api/projects/<int:project_id>', methods=['DELETE'])
def delete_project(project_id):
    with get_db_session() as session:
        found_or_404(
            ProjectRepository(session, current_user_label()).delete_project(project_id),
            f"Project with ID {project_id} not found"
        )
    return jsonify({'success': True})


@projects_bp.route('/api/projects/search', methods=['GET'])
def search_projects():
    page_number, page_size = get_pagination_args()
    search_term = get_str_arg('searchTerm', 'search_term') or ''
    with get_db_session() as session:
        result = ProjectRepository(session).search_projects(search_term, page_number, page_size)
    return jsonify({'success': True, **result})


@projects_bp.route('/api/projects/owner/<int:owner_id>', methods=['GET'])
def projects_by_owner(owner_id):
    page_number, page_size = get_pagination_args()
    with get_db_session() as session:
        result = ProjectRepository(session).get_projects_by_owner(owner_id, page_number, page_size)
    return jsonify({'success': True, **result})


@projects_bp.route('/api/projects/contact/<int:contact_id>', methods=['GET'])
def projects_by_contact(contact_id):
    page_number, page_size = get_pagination_args()
    with get_db_session() as session:
        result = ProjectRepository(session).get_projects_by_contact(contact_id, page_number, page_size)
    return jsonify({'success': True, **result})


@projects_bp.route('/api/projects/team-member/<int:user_id>', methods=['GET'])
def projects_by_team_member(user_id):
    page_number, page_size = get_pagination_args()
    with get_db_session() as session:
        result = ProjectRepository(session).get_projects_by_team_member(user_id, page_number, page_size)
    return jsonify({'success': True, **result})


# ============================================================================
# TEAM ROUTES
# ============================================================================

@projects_bp.route('/api/projects/<int:project_id>/team-members', methods=['GET'])
def get_team_members(project_id):
    with get_db_session() as session:
        repo = ProjectRepository(session)
        found_or_404(repo.project_exists(project_id), f"Project with ID {project_id} not found")
        members = repo.get_project_team_members(project_id)
    return jsonify({'success': True, 'team_members': members})


@projects_bp.route('/api/projects/<int:project_id>/team-members', methods=['POST'])
def add_team_member(project_id):
    user_id = _required_user_id(get_json_body())
    with get_db_session() as session:
        found_or_404(
            ProjectRepository(session, current_user_label()).assign_team_member(project_id, user_id),
            f"Project with ID {project_id} not found"
        )
    return jsonify({'success': True})


@projects_bp.route('/api/projects/<int:project_id>/team-members/<int:user_id>', methods=['DELETE'])
def remove_team_member(project_id, user_id):
    with get_db_session() as session:
        found_or_404(
            ProjectRepository(session, current_user_label()).remove_team_member(project_id, user_id),
            f"Project with ID {project_id} not found"
        )
    return jsonify({'success': True})


@projects_bp.route('/api/projects/<int:project_id>/access/<int:user_id>', methods=['GET'])
def project_access(project_id, user_id):
    """Owner/team-member checks for a user"""
    with get_db_session() as session:
        repo = ProjectRepository(session)
        access = {
            'is_owner': repo.user_is_project_owner(project_id, user_id),
            'is_team_member': repo.user_is_project_team_member(project_id, user_id),
            'can_access': repo.user_can_access_project(project_id, user_id)
        }
    return jsonify({'success': True, **access})


# ============================================================================
# STATISTICS
# ============================================================================

@projects_bp.route('/api/projects/<int:project_id>/stats', methods=['GET'])
def project_stats(project_id):
    with get_db_session() as session:
        stats = found_or_404(
            ProjectRepository(session).get_project_stats(project_id),
            f"Project with ID {project_id} not found"
        )
    return jsonify({'success': True, 'stats': stats})


@projects_bp.route('/api/projects/stats', methods=['POST'])
def multiple_project_stats():
    data = get_json_body()
    project_ids = data.get('project_ids')
    require_valid(validate_id_list(project_ids, 'project_ids'))
    with get_db_session() as session:
        stats = ProjectRepository(session).get_multiple_project_stats(project_ids)
    # JSON object keys are strings
    return jsonify({'success': True, 'stats': {str(k): v for k, v in stats.items()}})


# ============================================================================
# BULK OPERATIONS
# ============================================================================

@projects_bp.route('/api/projects/bulk/status', methods=['PUT'])
def bulk_update_status():
    data = get_json_body()
    project_ids = data.get('project_ids')
    require_valid(validate_id_list(project_ids, 'project_ids'))
    if not data.get('status'):
        raise ValidationError("status is required", 'status')
    with get_db_session() as session:
        updated = ProjectRepository(session, current_user_label()).bulk_update_project_status(
            project_ids, data['status']
        )
    return jsonify({'success': True, 'updated': updated})


@projects_bp.route('/api/projects/bulk/archive', methods=['PUT'])
def bulk_archive():
    data = get_json_body()
    project_ids = data.get('project_ids')
    require_valid(validate_id_list(project_ids, 'project_ids'))
    archive = bool(data.get('archive', True))
    with get_db_session() as session:
        updated = ProjectRepository(session, current_user_label()).bulk_archive_projects(project_ids, archive)
    return jsonify({'success': True, 'updated': updated})
