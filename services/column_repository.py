"""
Column Repository - Database operations for project board columns.
Owns column ordering within a project and the fate of tasks when a column is removed.
"""

import logging
from collections import Counter
from typing import List, Dict, Optional, Iterable
from sqlalchemy import func

from database.models import Project, ProjectColumn, ProjectTask, utcnow
from services.base_repository import BaseRepository
from services.errors import InvalidOperationError

logger = logging.getLogger(__name__)

DEFAULT_COLUMN_COLOR = '#3b82f6'

DEFAULT_COLUMNS = (
    {'title': 'To Do', 'color': '#64748b', 'position': 1},
    {'title': 'In Progress', 'color': '#3b82f6', 'position': 2},
    {'title': 'Review', 'color': '#f59e0b', 'position': 3},
    {'title': 'Done', 'color': '#10b981', 'position': 4},
)


class ColumnRepository(BaseRepository):
    """Repository for project column database operations."""

    def _get_column(self, column_id) -> Optional[ProjectColumn]:
        return self.session.query(ProjectColumn).filter(ProjectColumn.id == column_id).first()

    def _task_counts(self, column_ids: Iterable[int]) -> Dict[int, int]:
        column_ids = list(column_ids)
        if not column_ids:
            return {}
        rows = (
            self._live(ProjectTask)
            .filter(ProjectTask.column_id.in_(column_ids))
            .with_entities(ProjectTask.column_id, func.count(ProjectTask.id))
            .group_by(ProjectTask.column_id)
            .all()
        )
        return {column_id: count for column_id, count in rows}

    # =========================================================================
    # READS
    # =========================================================================

    def list_columns(self, project_id: int) -> Dict:
        """List a project's columns by position, each with its live task count."""
        columns = (
            self.session.query(ProjectColumn)
            .filter(ProjectColumn.project_id == project_id)
            .order_by(ProjectColumn.position, ProjectColumn.id)
            .all()
        )
        counts = self._task_counts(c.id for c in columns)
        column_dicts = [c.to_dict(task_count=counts.get(c.id, 0)) for c in columns]
        return {'columns': column_dicts, 'total_count': len(column_dicts)}

    def get_column(self, column_id: int) -> Optional[Dict]:
        """Get a single column by ID."""
        column = self._get_column(column_id)
        if not column:
            return None
        return column.to_dict(task_count=self.get_column_task_count(column_id))

    def get_column_task_count(self, column_id: int) -> int:
        return self._live(ProjectTask).filter(ProjectTask.column_id == column_id).count()

    def get_next_column_position(self, project_id: int) -> int:
        max_position = (
            self.session.query(func.max(ProjectColumn.position))
            .filter(ProjectColumn.project_id == project_id)
            .scalar()
        )
        return (max_position or 0) + 1

    def column_exists(self, column_id: int) -> bool:
        return self._get_column(column_id) is not None

    def column_belongs_to_project(self, column_id: int, project_id: int) -> bool:
        return self.session.query(ProjectColumn).filter(
            ProjectColumn.id == column_id,
            ProjectColumn.project_id == project_id
        ).first() is not None

    def can_delete_column(self, column_id: int) -> bool:
        """A column may be deleted unless it is the last one on its project."""
        column = self._get_column(column_id)
        if not column:
            return False
        column_count = self.session.query(ProjectColumn).filter(
            ProjectColumn.project_id == column.project_id
        ).count()
        return column_count > 1

    def user_can_manage_columns(self, project_id: int, user_id: int) -> bool:
        """Owner or team member of the project."""
        project = self._live(Project).filter(Project.id == project_id).first()
        if not project:
            return False
        if project.owner_id == user_id:
            return True
        return user_id in (project.team_members or [])

    @staticmethod
    def get_default_column_templates() -> List[Dict]:
        return [dict(template, is_default=True) for template in DEFAULT_COLUMNS]

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def create_column(self, data: Dict) -> Dict:
        """Create a column, appending it after the last one unless a position is given."""
        project_id = data.get('project_id')
        project = self._live(Project).filter(Project.id == project_id).first()
        if not project:
            raise InvalidOperationError("Project not found")

        position = data.get('position') or 0
        if position <= 0:
            position = self.get_next_column_position(project_id)

        column = ProjectColumn(
            project_id=project_id,
            title=data.get('title', ''),
            color=data.get('color') or DEFAULT_COLUMN_COLOR,
            position=position,
            is_default=bool(data.get('is_default', False)),
            task_limit=data.get('task_limit'),
            created_at=utcnow()
        )
        self.session.add(column)
        self.session.flush()
        logger.info(f"Created column {column.id} in project {project_id} at position {position}")
        return column.to_dict(task_count=0)

    def create_default_columns(self, project_id: int) -> List[Dict]:
        """Seed the standard four-column board for a new project."""
        now = utcnow()
        columns = [
            ProjectColumn(
                project_id=project_id,
                title=template['title'],
                color=template['color'],
                position=template['position'],
                is_default=True,
                created_at=now
            )
            for template in DEFAULT_COLUMNS
        ]
        self.session.add_all(columns)
        self.session.flush()
        logger.info(f"Default columns created for project {project_id}")
        return [c.to_dict(task_count=0) for c in columns]

    def update_column(self, column_id: int, data: Dict) -> Optional[Dict]:
        """Update a column; only keys present in data are changed."""
        column = self._get_column(column_id)
        if not column:
            return None

        if data.get('title'):
            column.title = data['title']
        if data.get('color'):
            column.color = data['color']
        if data.get('position') is not None:
            column.position = data['position']
        if data.get('is_default') is not None:
            column.is_default = bool(data['is_default'])
        if 'task_limit' in data:
            column.task_limit = data['task_limit']

        self.session.flush()
        logger.info(f"Updated column: {column_id}")
        return column.to_dict(task_count=self.get_column_task_count(column_id))

    def delete_column(self, column_id: int, move_tasks_to_column_id: Optional[int] = None) -> bool:
        """
        Delete a column, moving its live tasks to another column of the same
        project or soft-deleting them when no target is given.

        The whole operation is atomic: on any failure nothing changes.
        """
        try:
            with self.session.begin_nested():
                deleted = self._delete_column(column_id, move_tasks_to_column_id)
        except Exception as e:
            logger.error(f"Error deleting column {column_id}: {e}")
            raise

        if deleted:
            logger.info(f"Deleted column: {column_id}")
        return deleted

    def _delete_column(self, column_id, move_tasks_to_column_id) -> bool:
        column = self._get_column(column_id)
        if not column:
            return False

        live_tasks = (
            self._live(ProjectTask)
            .filter(ProjectTask.column_id == column_id)
            .order_by(ProjectTask.position, ProjectTask.id)
            .all()
        )
        now = utcnow()

        if live_tasks and move_tasks_to_column_id is not None:
            target = self.session.query(ProjectColumn).filter(
                ProjectColumn.id == move_tasks_to_column_id,
                ProjectColumn.project_id == column.project_id
            ).first()
            if target is None or target.id == column.id:
                raise InvalidOperationError(
                    "Target column not found or doesn't belong to the same project"
                )

            next_position = self._next_task_position(target.id)
            for task in live_tasks:
                task.column_id = target.id
                task.column = target
                task.position = next_position
                task.modified_by = self.user
                task.updated_at = now
                next_position += 1
            logger.info(f"Moved {len(live_tasks)} tasks from column {column_id} to {target.id}")
        else:
            for task in live_tasks:
                task.is_deleted = True
                task.column_id = None
                task.column = None
                task.modified_by = self.user
                task.updated_at = now
            if live_tasks:
                logger.info(f"Soft-deleted {len(live_tasks)} tasks in column {column_id}")
        self.session.flush()

        # Soft-deleted rows keep history but must not point at a removed column
        leftovers = self._soft_deleted(ProjectTask).filter(ProjectTask.column_id == column_id).all()
        for task in leftovers:
            task.column_id = None
            task.column = None

        self.session.flush()
        self.session.delete(column)
        self.session.flush()
        return True

    def _next_task_position(self, column_id: int) -> int:
        max_position = (
            self._live(ProjectTask)
            .filter(ProjectTask.column_id == column_id)
            .with_entities(func.max(ProjectTask.position))
            .scalar()
        )
        return (max_position or 0) + 1

    def bulk_delete_columns(self, column_ids: List[int], move_tasks_to_column_id: Optional[int] = None) -> bool:
        """
        Delete several columns in one atomic step.

        Raises InvalidOperationError, deleting nothing, when the batch would
        remove every column of a project.
        """
        try:
            with self.session.begin_nested():
                self._require_columns_left(column_ids)
                for column_id in column_ids:
                    self._delete_column(column_id, move_tasks_to_column_id)
        except Exception as e:
            logger.error(f"Error during bulk column deletion: {e}")
            raise

        logger.info(f"Bulk deleted {len(column_ids)} columns")
        return True

    def _require_columns_left(self, column_ids: List[int]):
        doomed = self.session.query(ProjectColumn).filter(ProjectColumn.id.in_(list(column_ids))).all()
        doomed_per_project = Counter(c.project_id for c in doomed)
        if not doomed_per_project:
            return

        totals = dict(
            self.session.query(ProjectColumn.project_id, func.count(ProjectColumn.id))
            .filter(ProjectColumn.project_id.in_(list(doomed_per_project)))
            .group_by(ProjectColumn.project_id)
            .all()
        )
        for project_id, doomed_count in doomed_per_project.items():
            if totals.get(project_id, 0) <= doomed_count:
                raise InvalidOperationError(
                    f"Cannot delete every column of project {project_id}; at least one must remain"
                )

    def reorder_columns(self, project_id: int, positions: List[Dict]) -> bool:
        """
        Apply new positions to a project's columns atomically.
        Columns not listed keep their current position.
        """
        try:
            with self.session.begin_nested():
                columns = {
                    c.id: c for c in self.session.query(ProjectColumn).filter(
                        ProjectColumn.project_id == project_id
                    ).all()
                }
                for entry in positions:
                    column = columns.get(entry.get('id'))
                    if column is not None:
                        column.position = entry['position']
        except Exception as e:
            logger.error(f"Error reordering columns for project {project_id}: {e}")
            raise

        logger.info(f"Columns reordered for project {project_id}")
        return True

    def bulk_update_column_colors(self, column_colors: Dict[int, str]) -> int:
        """Set colors for several columns; returns how many were updated."""
        try:
            with self.session.begin_nested():
                columns = self.session.query(ProjectColumn).filter(
                    ProjectColumn.id.in_(list(column_colors.keys()))
                ).all()
                for column in columns:
                    column.color = column_colors[column.id]
        except Exception as e:
            logger.error(f"Error during bulk column color update: {e}")
            raise

        logger.info(f"Bulk updated colors for {len(columns)} columns")
        return len(columns)
