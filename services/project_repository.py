"""
Project Repository - Database operations for projects.

A project is read as an aggregate: its board columns, team roster and task
statistics are composed into the returned dict. Creating a project always
seeds its default board columns in the same transaction.
"""

import logging
from typing import List, Dict, Optional
from sqlalchemy import or_

from database.models import Project, ProjectTask, utcnow
from services.base_repository import BaseRepository, DEFAULT_PAGE_SIZE
from services.column_repository import ColumnRepository

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    'name': Project.name,
    'status': Project.status,
    'priority': Project.priority,
    'startdate': Project.start_date,
    'enddate': Project.end_date,
    'progress': Project.progress,
}

PROJECT_DATE_FIELDS = ('start_date', 'end_date', 'actual_start_date', 'actual_end_date')


def clamp_progress(value) -> int:
    return max(0, min(100, int(value)))


class ProjectRepository(BaseRepository):
    """Repository for project database operations."""

    def _get_live_project(self, project_id) -> Optional[Project]:
        return self._live(Project).filter(Project.id == project_id).first()

    def _project_dict(self, project: Project) -> Dict:
        project_dict = project.to_dict()
        project_dict['columns'] = ColumnRepository(self.session, self.user).list_columns(project.id)['columns']
        project_dict['stats'] = self._stats(project)
        return project_dict

    # =========================================================================
    # CRUD
    # =========================================================================

    def create_project(self, data: Dict) -> Dict:
        """Create a project together with its default board columns."""
        try:
            with self.session.begin_nested():
                now = utcnow()
                project = Project(
                    name=data.get('name', ''),
                    description=data.get('description'),
                    contact_id=data.get('contact_id'),
                    owner_id=data.get('owner_id'),
                    owner_name=data.get('owner_name') or '',
                    team_members=list(dict.fromkeys(data.get('team_members') or [])),
                    budget=data.get('budget'),
                    currency=data.get('currency'),
                    status=data.get('status') or 'active',
                    type=data.get('type') or 'service',
                    priority=data.get('priority') or 'medium',
                    progress=clamp_progress(data.get('progress') or 0),
                    start_date=self._parse_datetime(data.get('start_date')),
                    end_date=self._parse_datetime(data.get('end_date')),
                    tags=list(data.get('tags') or []),
                    is_archived=False,
                    created_by=self.user,
                    created_at=now,
                    updated_at=now
                )
                self.session.add(project)
                self.session.flush()

                ColumnRepository(self.session, self.user).create_default_columns(project.id)
        except Exception as e:
            logger.error(f"Error creating project: {e}")
            raise

        logger.info(f"Project created with ID {project.id}")
        return self._project_dict(project)

    def get_project(self, project_id: int) -> Optional[Dict]:
        """Get a live project with its columns, team and statistics."""
        project = self._get_live_project(project_id)
        if not project:
            return None
        return self._project_dict(project)

    def update_project(self, project_id: int, data: Dict) -> Optional[Dict]:
        """Update a project; only keys present in data are changed."""
        project = self._get_live_project(project_id)
        if not project:
            return None
        dates = self._parse_date_fields(data, PROJECT_DATE_FIELDS)

        if data.get('name'):
            project.name = data['name']
        if 'description' in data:
            project.description = data['description']
        if 'contact_id' in data:
            project.contact_id = data['contact_id']
        if data.get('owner_id') is not None:
            project.owner_id = data['owner_id']
        if data.get('owner_name'):
            project.owner_name = data['owner_name']
        if data.get('team_members') is not None:
            project.team_members = list(dict.fromkeys(data['team_members']))
        if 'budget' in data:
            project.budget = data['budget']
        if 'currency' in data:
            project.currency = data['currency']
        if data.get('status'):
            project.status = data['status']
        if data.get('type'):
            project.type = data['type']
        if data.get('priority'):
            project.priority = data['priority']
        if data.get('progress') is not None:
            project.progress = clamp_progress(data['progress'])
        for field, value in dates.items():
            setattr(project, field, value)
        if data.get('tags') is not None:
            project.tags = list(data['tags'])
        if data.get('is_archived') is not None:
            project.is_archived = bool(data['is_archived'])

        project.modified_by = self.user
        project.updated_at = utcnow()
        self.session.flush()
        logger.info(f"Project updated: {project_id}")
        return self._project_dict(project)

    def delete_project(self, project_id: int) -> bool:
        """Soft delete a project."""
        project = self._get_live_project(project_id)
        if not project:
            return False

        project.is_deleted = True
        project.modified_by = self.user
        project.updated_at = utcnow()
        self.session.flush()
        logger.info(f"Project soft deleted: {project_id}")
        return True

    # =========================================================================
    # LISTING AND SEARCH
    # =========================================================================

    def list_projects(self, filters: Optional[Dict] = None, page_number: int = 1,
                      page_size: int = DEFAULT_PAGE_SIZE) -> Dict:
        """
        List live projects.

        Filters: search_term (name or description), status, type, priority,
        owner_id, contact_id, is_archived, team_member_ids (any of),
        start_date_from/to, end_date_from/to. Sorting: sort_by one of
        name, status, priority, startdate, enddate, progress, with
        sort_direction asc/desc; newest-created first otherwise.
        """
        filters = filters or {}
        query = self._live(Project)

        search_term = filters.get('search_term')
        if search_term:
            pattern = f"%{search_term}%"
            query = query.filter(or_(
                Project.name.ilike(pattern),
                Project.description.ilike(pattern)
            ))
        for field in ('status', 'type', 'priority'):
            if filters.get(field):
                query = query.filter(getattr(Project, field) == filters[field])
        if filters.get('owner_id') is not None:
            query = query.filter(Project.owner_id == filters['owner_id'])
        if filters.get('contact_id') is not None:
            query = query.filter(Project.contact_id == filters['contact_id'])
        if filters.get('is_archived') is not None:
            query = query.filter(Project.is_archived == bool(filters['is_archived']))

        date_filters = (
            ('start_date_from', Project.start_date, '>='),
            ('start_date_to', Project.start_date, '<='),
            ('end_date_from', Project.end_date, '>='),
            ('end_date_to', Project.end_date, '<='),
        )
        for key, column, op in date_filters:
            value = self._parse_datetime(filters.get(key))
            if value is None:
                continue
            query = query.filter(column >= value if op == '>=' else column <= value)

        query = self._apply_sort(query, filters.get('sort_by'), filters.get('sort_direction'))

        team_member_ids = filters.get('team_member_ids')
        if team_member_ids:
            # Team rosters are JSON lists, so membership is matched in Python
            wanted = set(team_member_ids)
            matching = [p for p in query.all() if wanted.intersection(p.team_members or [])]
            page_number = max(int(page_number or 1), 1)
            page_size = max(int(page_size or DEFAULT_PAGE_SIZE), 1)
            skip = (page_number - 1) * page_size
            projects = matching[skip:skip + page_size]
            page_info = self._page_info(len(matching), page_number, page_size)
        else:
            projects, page_info = self._paginate(query, page_number, page_size)

        result = {'projects': [self._project_dict(p) for p in projects]}
        result.update(page_info)
        return result

    @staticmethod
    def _apply_sort(query, sort_by, sort_direction):
        column = SORT_FIELDS.get((sort_by or '').lower())
        if column is None:
            return query.order_by(Project.created_at.desc(), Project.id.desc())
        if (sort_direction or '').lower() == 'desc':
            return query.order_by(column.desc(), Project.id.desc())
        return query.order_by(column.asc(), Project.id.asc())

    def search_projects(self, search_term: str, page_number: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> Dict:
        return self.list_projects({'search_term': search_term}, page_number, page_size)

    def get_projects_by_owner(self, owner_id: int, page_number: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> Dict:
        return self.list_projects({'owner_id': owner_id}, page_number, page_size)

    def get_projects_by_contact(self, contact_id: int, page_number: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> Dict:
        return self.list_projects({'contact_id': contact_id}, page_number, page_size)

    def get_projects_by_team_member(self, user_id: int, page_number: int = 1,
                                    page_size: int = DEFAULT_PAGE_SIZE) -> Dict:
        return self.list_projects({'team_member_ids': [user_id]}, page_number, page_size)

    # =========================================================================
    # TEAM
    # =========================================================================

    def assign_team_member(self, project_id: int, user_id: int) -> bool:
        """Add a user to the team; adding an existing member is a no-op."""
        project = self._get_live_project(project_id)
        if not project:
            return False

        members = list(project.team_members or [])
        if user_id not in members:
            project.team_members = members + [user_id]
            project.modified_by = self.user
            project.updated_at = utcnow()
            self.session.flush()
            logger.info(f"User {user_id} added to project {project_id}")
        return True

    def remove_team_member(self, project_id: int, user_id: int) -> bool:
        """Remove a user from the team; removing a non-member is a no-op."""
        project = self._get_live_project(project_id)
        if not project:
            return False

        members = list(project.team_members or [])
        if user_id in members:
            project.team_members = [m for m in members if m != user_id]
            project.modified_by = self.user
            project.updated_at = utcnow()
            self.session.flush()
            logger.info(f"User {user_id} removed from project {project_id}")
        return True

    def get_project_team_members(self, project_id: int) -> List[int]:
        project = self._get_live_project(project_id)
        if not project:
            return []
        return list(project.team_members or [])

    # =========================================================================
    # STATISTICS
    # =========================================================================

    def _stats(self, project: Project) -> Dict:
        tasks = self._live(ProjectTask).filter(ProjectTask.project_id == project.id)
        total_tasks = tasks.count()
        completed_tasks = tasks.filter(ProjectTask.completed_at.isnot(None)).count()
        overdue_tasks = tasks.filter(
            ProjectTask.due_date.isnot(None),
            ProjectTask.due_date < utcnow(),
            ProjectTask.completed_at.is_(None)
        ).count()
        completion = round(completed_tasks / total_tasks * 100, 2) if total_tasks else 0.0

        return {
            'total_tasks': total_tasks,
            'completed_tasks': completed_tasks,
            'overdue_tasks': overdue_tasks,
            'active_members': len(project.team_members or []),
            'completion_percentage': completion
        }

    def get_project_stats(self, project_id: int) -> Optional[Dict]:
        project = self._get_live_project(project_id)
        if not project:
            return None
        return self._stats(project)

    def get_multiple_project_stats(self, project_ids: List[int]) -> Dict[int, Dict]:
        """Stats keyed by project id; ids that are not live projects are left out."""
        projects = self._live(Project).filter(Project.id.in_(list(project_ids))).all()
        return {project.id: self._stats(project) for project in projects}

    # =========================================================================
    # BULK OPERATIONS
    # =========================================================================

    def bulk_update_project_status(self, project_ids: List[int], status: str) -> int:
        """Set status on every live project in project_ids; returns how many changed."""
        try:
            with self.session.begin_nested():
                projects = self._live(Project).filter(Project.id.in_(list(project_ids))).all()
                now = utcnow()
                for project in projects:
                    project.status = status
                    project.modified_by = self.user
                    project.updated_at = now
        except Exception as e:
            logger.error(f"Error during bulk project status update: {e}")
            raise

        logger.info(f"Bulk updated status for {len(projects)} projects")
        return len(projects)

    def bulk_archive_projects(self, project_ids: List[int], archive: bool = True) -> int:
        try:
            with self.session.begin_nested():
                projects = self._live(Project).filter(Project.id.in_(list(project_ids))).all()
                now = utcnow()
                for project in projects:
                    project.is_archived = archive
                    project.modified_by = self.user
                    project.updated_at = now
        except Exception as e:
            logger.error(f"Error during bulk project archive operation: {e}")
            raise

        logger.info(f"Bulk {'archived' if archive else 'unarchived'} {len(projects)} projects")
        return len(projects)

    # =========================================================================
    # CHECKS
    # =========================================================================

    def project_exists(self, project_id: int) -> bool:
        return self._get_live_project(project_id) is not None

    def user_is_project_owner(self, project_id: int, user_id: int) -> bool:
        project = self._get_live_project(project_id)
        return project is not None and project.owner_id == user_id

    def user_is_project_team_member(self, project_id: int, user_id: int) -> bool:
        return user_id in self.get_project_team_members(project_id)

    def user_can_access_project(self, project_id: int, user_id: int) -> bool:
        """Owner or team member."""
        project = self._get_live_project(project_id)
        if not project:
            return False
        return project.owner_id == user_id or user_id in (project.team_members or [])
