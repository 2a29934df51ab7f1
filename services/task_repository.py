"""
Task Repository - Database operations for project tasks and daily tasks.

Project tasks live in a column of a project board and are ordered by an
integer position within that column. Daily tasks are personal to a user and
ordered per user. Deletion is always a soft delete.
"""

import logging
from typing import List, Dict, Optional, Iterable
from sqlalchemy import func, or_

from database.models import (
    Project, ProjectColumn, ProjectTask, DailyTask, TaskComment, TaskAttachment, utcnow
)
from services.base_repository import BaseRepository, DEFAULT_PAGE_SIZE
from services.errors import InvalidOperationError

logger = logging.getLogger(__name__)

COMPLETED_STATUSES = ('done', 'completed')


def is_completed_status(status: Optional[str]) -> bool:
    """True for the statuses that stamp completed_at."""
    return bool(status) and status.lower() in COMPLETED_STATUSES


class TaskRepository(BaseRepository):
    """Repository for project and daily task database operations."""

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def _child_counts(self, fk_column, task_ids: Iterable[int]) -> Dict[int, int]:
        task_ids = list(task_ids)
        if not task_ids:
            return {}
        model = fk_column.class_
        rows = (
            self._live(model)
            .filter(fk_column.in_(task_ids))
            .with_entities(fk_column, func.count(model.id))
            .group_by(fk_column)
            .all()
        )
        return {task_id: count for task_id, count in rows}

    def _serialize_tasks(self, tasks: List[ProjectTask], with_sub_tasks: bool = False) -> List[Dict]:
        ids = [t.id for t in tasks]
        comments = self._child_counts(TaskComment.project_task_id, ids)
        attachments = self._child_counts(TaskAttachment.project_task_id, ids)

        sub_tasks = {}
        if with_sub_tasks and ids:
            children = (
                self._live(ProjectTask)
                .filter(ProjectTask.parent_task_id.in_(ids))
                .order_by(ProjectTask.position, ProjectTask.id)
                .all()
            )
            for child_dict, child in zip(self._serialize_tasks(children), children):
                sub_tasks.setdefault(child.parent_task_id, []).append(child_dict)

        result = []
        for task in tasks:
            task_dict = task.to_dict()
            task_dict['sub_tasks'] = sub_tasks.get(task.id, [])
            task_dict['comments_count'] = comments.get(task.id, 0)
            task_dict['attachments_count'] = attachments.get(task.id, 0)
            result.append(task_dict)
        return result

    def _serialize_daily_tasks(self, tasks: List[DailyTask]) -> List[Dict]:
        ids = [t.id for t in tasks]
        comments = self._child_counts(TaskComment.daily_task_id, ids)
        attachments = self._child_counts(TaskAttachment.daily_task_id, ids)

        result = []
        for task in tasks:
            task_dict = task.to_dict()
            task_dict['comments_count'] = comments.get(task.id, 0)
            task_dict['attachments_count'] = attachments.get(task.id, 0)
            result.append(task_dict)
        return result

    def _get_live_task(self, task_id) -> Optional[ProjectTask]:
        return self._live(ProjectTask).filter(ProjectTask.id == task_id).first()

    def _get_live_daily_task(self, task_id) -> Optional[DailyTask]:
        return self._live(DailyTask).filter(DailyTask.id == task_id).first()

    def _get_project_column(self, column_id, project_id) -> Optional[ProjectColumn]:
        return self.session.query(ProjectColumn).filter(
            ProjectColumn.id == column_id,
            ProjectColumn.project_id == project_id
        ).first()

    def _touch(self, task, now=None):
        task.modified_by = self.user
        task.updated_at = now or utcnow()

    # =========================================================================
    # PROJECT TASK READS
    # =========================================================================

    def list_project_tasks(self, project_id: int) -> List[Dict]:
        """List a project's tasks ordered by column position, then task position."""
        tasks = (
            self._live(ProjectTask)
            .outerjoin(ProjectColumn, ProjectTask.column_id == ProjectColumn.id)
            .filter(ProjectTask.project_id == project_id)
            .order_by(ProjectColumn.position, ProjectTask.position, ProjectTask.id)
            .all()
        )
        return self._serialize_tasks(tasks)

    def list_column_tasks(self, column_id: int) -> List[Dict]:
        """List a column's tasks by position."""
        tasks = (
            self._live(ProjectTask)
            .filter(ProjectTask.column_id == column_id)
            .order_by(ProjectTask.position, ProjectTask.id)
            .all()
        )
        return self._serialize_tasks(tasks)

    def get_task(self, task_id: int) -> Optional[Dict]:
        """Get a single live task with its live sub-tasks."""
        task = self._get_live_task(task_id)
        if not task:
            return None
        return self._serialize_tasks([task], with_sub_tasks=True)[0]

    def get_next_task_position(self, column_id: int) -> int:
        """Next free position in a column: max live position + 1, or 1 when empty."""
        max_position = (
            self._live(ProjectTask)
            .filter(ProjectTask.column_id == column_id)
            .with_entities(func.max(ProjectTask.position))
            .scalar()
        )
        return (max_position or 0) + 1

    # =========================================================================
    # PROJECT TASK MUTATIONS
    # =========================================================================

    def create_task(self, data: Dict) -> Dict:
        """Create a project task at the end of its column."""
        project_id = data.get('project_id')
        column = self._get_project_column(data.get('column_id'), project_id)
        if column is None:
            raise InvalidOperationError("Column not found or doesn't belong to the project")

        parent_task_id = data.get('parent_task_id')
        if parent_task_id is not None:
            self._require_parent(parent_task_id, project_id)

        now = utcnow()
        task = ProjectTask(
            title=data.get('title', ''),
            description=data.get('description'),
            project_id=project_id,
            column_id=column.id,
            contact_id=data.get('contact_id'),
            assignee_id=data.get('assignee_id'),
            assignee_name=data.get('assignee_name'),
            status=data.get('status') or 'todo',
            priority=data.get('priority') or 'medium',
            position=self.get_next_task_position(column.id),
            parent_task_id=parent_task_id,
            due_date=self._parse_datetime(data.get('due_date')),
            start_date=self._parse_datetime(data.get('start_date')),
            estimated_hours=data.get('estimated_hours'),
            tags=list(data.get('tags') or []),
            attachments=[],
            created_by=self.user,
            created_at=now,
            updated_at=now
        )
        if is_completed_status(task.status):
            task.completed_at = now

        self.session.add(task)
        self.session.flush()
        logger.info(f"Project task created with ID {task.id} in column {column.id} at position {task.position}")
        return self._serialize_tasks([task])[0]

    def update_task(self, task_id: int, data: Dict) -> Optional[Dict]:
        """Update a project task; only keys present in data are changed."""
        task = self._get_live_task(task_id)
        if not task:
            return None
        dates = self._parse_date_fields(data, ('due_date', 'start_date', 'completed_at'))

        if data.get('title'):
            task.title = data['title']
        if 'description' in data:
            task.description = data['description']
        if 'contact_id' in data:
            task.contact_id = data['contact_id']
        if 'assignee_id' in data:
            task.assignee_id = data['assignee_id']
        if 'assignee_name' in data:
            task.assignee_name = data['assignee_name']
        if data.get('status'):
            task.status = data['status']
            if is_completed_status(task.status) and 'completed_at' not in data:
                task.completed_at = utcnow()
        if data.get('priority'):
            task.priority = data['priority']
        if data.get('column_id') is not None and data['column_id'] != task.column_id:
            column = self._get_project_column(data['column_id'], task.project_id)
            if column is None:
                raise InvalidOperationError("Column not found or doesn't belong to the project")
            task.column_id = column.id
            task.column = column
        if data.get('position') is not None:
            task.position = data['position']
        if 'parent_task_id' in data:
            if data['parent_task_id'] is not None:
                self._require_parent(data['parent_task_id'], task.project_id, task.id)
            task.parent_task_id = data['parent_task_id']
        if 'due_date' in dates:
            task.due_date = dates['due_date']
        if 'start_date' in dates:
            task.start_date = dates['start_date']
        if 'estimated_hours' in data:
            task.estimated_hours = data['estimated_hours']
        if 'actual_hours' in data:
            task.actual_hours = data['actual_hours']
        if data.get('tags') is not None:
            task.tags = list(data['tags'])
        if dates.get('completed_at') is not None:
            task.completed_at = dates['completed_at']

        self._touch(task)
        self.session.flush()
        self.session.expire(task, ['parent_task'])
        logger.info(f"Project task updated: {task_id}")
        return self.get_task(task_id)

    def delete_task(self, task_id: int) -> bool:
        """Soft delete a project task. Sub-tasks are left as they are."""
        task = self._get_live_task(task_id)
        if not task:
            return False

        task.is_deleted = True
        self._touch(task)
        self.session.flush()
        logger.info(f"Project task soft deleted: {task_id}")
        return True

    # =========================================================================
    # MOVEMENT AND POSITIONING
    # =========================================================================

    def move_task(self, task_id: int, column_id: int, position: Optional[int] = None) -> bool:
        """
        Move a task to a column of the same project.

        Column and position are overwritten as given; other tasks keep their
        positions. Without a position the task goes to the end of the column.
        """
        task = self._get_live_task(task_id)
        if not task:
            return False

        column = self._get_project_column(column_id, task.project_id)
        if column is None:
            raise InvalidOperationError("Target column not found or doesn't belong to the same project")

        if position is None:
            position = self.get_next_task_position(column.id)

        task.column_id = column.id
        task.column = column
        task.position = position
        self._touch(task)
        self.session.flush()
        logger.info(f"Task {task_id} moved to column {column.id} at position {position}")
        return True

    def bulk_move_tasks(self, moves: List[Dict]) -> bool:
        """Move several tasks in one atomic step; each entry has id, column_id and position."""
        try:
            with self.session.begin_nested():
                for move in moves:
                    self.move_task(move['id'], move['column_id'], move.get('position'))
        except Exception as e:
            logger.error(f"Error during bulk task move: {e}")
            raise

        logger.info(f"Bulk moved {len(moves)} tasks")
        return True

    def reorder_tasks_in_column(self, column_id: int, task_ids: List[int]) -> bool:
        """
        Renumber a column's tasks as 1..n.

        Listed tasks take the given order; live tasks missing from the list
        follow in their previous order. Ids not in the column are ignored.
        """
        try:
            with self.session.begin_nested():
                tasks = (
                    self._live(ProjectTask)
                    .filter(ProjectTask.column_id == column_id)
                    .order_by(ProjectTask.position, ProjectTask.id)
                    .all()
                )
                by_id = {t.id: t for t in tasks}
                ordered = []
                for task_id in task_ids:
                    task = by_id.pop(task_id, None)
                    if task is not None:
                        ordered.append(task)
                ordered.extend(t for t in tasks if t.id in by_id)

                now = utcnow()
                for index, task in enumerate(ordered):
                    if task.position != index + 1:
                        task.position = index + 1
                        self._touch(task, now)
        except Exception as e:
            logger.error(f"Error reordering tasks in column {column_id}: {e}")
            raise

        logger.info(f"Reordered {len(ordered)} tasks in column {column_id}")
        return True

    # =========================================================================
    # ASSIGNMENT
    # =========================================================================

    def assign_task(self, task_id: int, assignee_id: int, assignee_name: Optional[str] = None) -> bool:
        task = self._get_live_task(task_id)
        if not task:
            return False

        task.assignee_id = assignee_id
        task.assignee_name = assignee_name
        self._touch(task)
        self.session.flush()
        logger.info(f"Task {task_id} assigned to user {assignee_id}")
        return True

    def unassign_task(self, task_id: int) -> bool:
        task = self._get_live_task(task_id)
        if not task:
            return False

        task.assignee_id = None
        task.assignee_name = None
        self._touch(task)
        self.session.flush()
        logger.info(f"Task {task_id} unassigned")
        return True

    def bulk_assign_tasks(self, task_ids: List[int], assignee_id: int, assignee_name: Optional[str] = None) -> int:
        """Assign every live task in task_ids; returns how many were assigned."""
        try:
            with self.session.begin_nested():
                tasks = self._live(ProjectTask).filter(ProjectTask.id.in_(list(task_ids))).all()
                now = utcnow()
                for task in tasks:
                    task.assignee_id = assignee_id
                    task.assignee_name = assignee_name
                    self._touch(task, now)
        except Exception as e:
            logger.error(f"Error during bulk task assignment: {e}")
            raise

        logger.info(f"Bulk assigned {len(tasks)} tasks to user {assignee_id}")
        return len(tasks)

    # =========================================================================
    # STATUS
    # =========================================================================

    def update_task_status(self, task_id: int, status: str) -> bool:
        """
        Set a free-form status. "done"/"completed" (any case) stamps
        completed_at; other statuses leave an existing stamp in place.
        """
        task = self._get_live_task(task_id)
        if not task:
            return False

        now = utcnow()
        task.status = status
        if is_completed_status(status):
            task.completed_at = now
        self._touch(task, now)
        self.session.flush()
        logger.info(f"Task {task_id} status updated to {status}")
        return True

    def complete_task(self, task_id: int) -> bool:
        return self.update_task_status(task_id, 'done')

    def bulk_update_task_status(self, task_ids: List[int], status: str) -> int:
        """Set the status of every live task in task_ids; returns how many changed."""
        try:
            with self.session.begin_nested():
                tasks = self._live(ProjectTask).filter(ProjectTask.id.in_(list(task_ids))).all()
                now = utcnow()
                for task in tasks:
                    task.status = status
                    if is_completed_status(status):
                        task.completed_at = now
                    self._touch(task, now)
        except Exception as e:
            logger.error(f"Error during bulk task status update: {e}")
            raise

        logger.info(f"Bulk updated status for {len(tasks)} tasks to {status}")
        return len(tasks)

    # =========================================================================
    # HIERARCHY
    # =========================================================================

    def _require_parent(self, parent_task_id, project_id, task_id=None) -> ProjectTask:
        parent = self._live(ProjectTask).filter(
            ProjectTask.id == parent_task_id,
            ProjectTask.project_id == project_id
        ).first()
        if parent is None:
            raise InvalidOperationError("Parent task not found or doesn't belong to the same project")
        if task_id is not None and self._would_create_cycle(task_id, parent):
            raise InvalidOperationError("A task cannot become a sub-task of itself or of its own sub-task")
        return parent

    def _would_create_cycle(self, task_id, parent: ProjectTask) -> bool:
        """Walk up from the proposed parent; reaching task_id means a cycle."""
        seen = set()
        current = parent
        while current is not None and current.id not in seen:
            if current.id == task_id:
                return True
            seen.add(current.id)
            if current.parent_task_id is None:
                break
            current = self.session.get(ProjectTask, current.parent_task_id)
        return False

    def create_sub_task(self, parent_task_id: int, data: Dict) -> Dict:
        """Create a task under a parent; project defaults to the parent's."""
        parent = self._get_live_task(parent_task_id)
        if parent is None:
            raise InvalidOperationError("Parent task not found")

        data = dict(data)
        data.setdefault('project_id', parent.project_id)
        data.setdefault('column_id', parent.column_id)
        data['parent_task_id'] = parent_task_id
        return self.create_task(data)

    def convert_to_sub_task(self, task_id: int, parent_task_id: int) -> bool:
        """
        Make a task the child of another live task in the same project.

        Returns False when either task is missing or the parent is in another
        project. Raises InvalidOperationError if the link would form a cycle.
        """
        task = self._get_live_task(task_id)
        if not task:
            return False

        parent = self._live(ProjectTask).filter(
            ProjectTask.id == parent_task_id,
            ProjectTask.project_id == task.project_id
        ).first()
        if parent is None:
            return False

        if self._would_create_cycle(task.id, parent):
            raise InvalidOperationError("A task cannot become a sub-task of itself or of its own sub-task")

        task.parent_task_id = parent.id
        task.parent_task = parent
        self._touch(task)
        self.session.flush()
        logger.info(f"Task {task_id} converted to sub-task of {parent_task_id}")
        return True

    def convert_to_standalone_task(self, task_id: int) -> bool:
        task = self._get_live_task(task_id)
        if not task:
            return False

        task.parent_task_id = None
        task.parent_task = None
        self._touch(task)
        self.session.flush()
        logger.info(f"Task {task_id} converted to standalone task")
        return True

    def get_sub_tasks(self, parent_task_id: int) -> List[Dict]:
        tasks = (
            self._live(ProjectTask)
            .filter(ProjectTask.parent_task_id == parent_task_id)
            .order_by(ProjectTask.position, ProjectTask.id)
            .all()
        )
        return self._serialize_tasks(tasks)

    def get_task_hierarchy(self, parent_task_id: int) -> List[Dict]:
        """Sub-tasks of a parent, each carrying its own live sub-tasks."""
        tasks = (
            self._live(ProjectTask)
            .filter(ProjectTask.parent_task_id == parent_task_id)
            .order_by(ProjectTask.position, ProjectTask.id)
            .all()
        )
        return self._serialize_tasks(tasks, with_sub_tasks=True)

    # =========================================================================
    # SEARCH AND FILTERING
    # =========================================================================

    def search_tasks(self, filters: Optional[Dict] = None, page_number: int = 1,
                     page_size: int = DEFAULT_PAGE_SIZE) -> Dict:
        """
        Search project tasks.

        Filters (all optional, combined with AND): search_term (title or
        description, case-insensitive), status, priority, project_id,
        assignee_id, contact_id.
        """
        filters = filters or {}
        query = self._live(ProjectTask)

        search_term = filters.get('search_term')
        if search_term:
            pattern = f"%{search_term}%"
            query = query.filter(or_(
                ProjectTask.title.ilike(pattern),
                ProjectTask.description.ilike(pattern)
            ))
        if filters.get('status'):
            query = query.filter(ProjectTask.status == filters['status'])
        if filters.get('priority'):
            query = query.filter(ProjectTask.priority == filters['priority'])
        if filters.get('project_id') is not None:
            query = query.filter(ProjectTask.project_id == filters['project_id'])
        if filters.get('assignee_id') is not None:
            query = query.filter(ProjectTask.assignee_id == filters['assignee_id'])
        if filters.get('contact_id') is not None:
            query = query.filter(ProjectTask.contact_id == filters['contact_id'])

        query = query.order_by(ProjectTask.created_at.desc(), ProjectTask.id.desc())
        tasks, page_info = self._paginate(query, page_number, page_size)

        result = {
            'project_tasks': self._serialize_tasks(tasks),
            # Daily tasks are personal and never returned by search
            'daily_tasks': []
        }
        result.update(page_info)
        return result

    def get_tasks_by_assignee(self, assignee_id: int, project_id: Optional[int] = None) -> List[Dict]:
        query = self._live(ProjectTask).filter(ProjectTask.assignee_id == assignee_id)
        if project_id is not None:
            query = query.filter(ProjectTask.project_id == project_id)
        return self._serialize_tasks(query.order_by(ProjectTask.id).all())

    def _overdue(self, query, model):
        return query.filter(
            model.due_date.isnot(None),
            model.due_date < utcnow(),
            model.completed_at.is_(None)
        )

    def get_overdue_tasks(self, project_id: Optional[int] = None, assignee_id: Optional[int] = None) -> List[Dict]:
        """Live tasks past their due date and not completed."""
        query = self._overdue(self._live(ProjectTask), ProjectTask)
        if project_id is not None:
            query = query.filter(ProjectTask.project_id == project_id)
        if assignee_id is not None:
            query = query.filter(ProjectTask.assignee_id == assignee_id)
        return self._serialize_tasks(query.order_by(ProjectTask.due_date).all())

    def get_tasks_by_contact(self, contact_id: int) -> List[Dict]:
        tasks = self._live(ProjectTask).filter(
            ProjectTask.contact_id == contact_id
        ).order_by(ProjectTask.id).all()
        return self._serialize_tasks(tasks)

    # =========================================================================
    # CHECKS
    # =========================================================================

    def task_exists(self, task_id: int) -> bool:
        return self._get_live_task(task_id) is not None

    def daily_task_exists(self, task_id: int) -> bool:
        return self._get_live_daily_task(task_id) is not None

    def task_belongs_to_project(self, task_id: int, project_id: int) -> bool:
        return self._live(ProjectTask).filter(
            ProjectTask.id == task_id,
            ProjectTask.project_id == project_id
        ).first() is not None

    def task_belongs_to_column(self, task_id: int, column_id: int) -> bool:
        return self._live(ProjectTask).filter(
            ProjectTask.id == task_id,
            ProjectTask.column_id == column_id
        ).first() is not None

    def user_can_access_task(self, task_id: int, user_id: int, is_project_task: bool = True) -> bool:
        """Project tasks: owner, assignee or team member. Daily tasks: their user."""
        if not is_project_task:
            task = self._get_live_daily_task(task_id)
            return task is not None and task.user_id == user_id

        task = self._get_live_task(task_id)
        if not task:
            return False
        project = self.session.get(Project, task.project_id)
        if task.assignee_id == user_id:
            return True
        if project is None:
            return False
        return project.owner_id == user_id or user_id in (project.team_members or [])

    # =========================================================================
    # STATISTICS
    # =========================================================================

    def get_task_status_counts(self, project_id: int) -> Dict[str, int]:
        rows = (
            self._live(ProjectTask)
            .filter(ProjectTask.project_id == project_id)
            .with_entities(ProjectTask.status, func.count(ProjectTask.id))
            .group_by(ProjectTask.status)
            .all()
        )
        return {status: count for status, count in rows}

    def get_user_task_status_counts(self, user_id: int) -> Dict[str, int]:
        """Status counts over tasks assigned to the user plus their daily tasks."""
        counts = {}
        project_rows = (
            self._live(ProjectTask)
            .filter(ProjectTask.assignee_id == user_id)
            .with_entities(ProjectTask.status, func.count(ProjectTask.id))
            .group_by(ProjectTask.status)
            .all()
        )
        daily_rows = (
            self._live(DailyTask)
            .filter(DailyTask.user_id == user_id)
            .with_entities(DailyTask.status, func.count(DailyTask.id))
            .group_by(DailyTask.status)
            .all()
        )
        for status, count in list(project_rows) + list(daily_rows):
            counts[status] = counts.get(status, 0) + count
        return counts

    def get_user_overdue_task_count(self, user_id: int) -> int:
        project_count = self._overdue(
            self._live(ProjectTask).filter(ProjectTask.assignee_id == user_id), ProjectTask
        ).count()
        daily_count = self._overdue(
            self._live(DailyTask).filter(DailyTask.user_id == user_id), DailyTask
        ).count()
        return project_count + daily_count

    def get_task_completion_percentage(self, project_id: int) -> float:
        """Share of live tasks with completed_at set, as a percentage with 2 decimals."""
        query = self._live(ProjectTask).filter(ProjectTask.project_id == project_id)
        total = query.count()
        if total == 0:
            return 0.0
        completed = query.filter(ProjectTask.completed_at.isnot(None)).count()
        return round(completed / total * 100, 2)

    # =========================================================================
    # DAILY TASKS
    # =========================================================================

    def list_user_daily_tasks(self, user_id: int) -> List[Dict]:
        tasks = (
            self._live(DailyTask)
            .filter(DailyTask.user_id == user_id)
            .order_by(DailyTask.position, DailyTask.id)
            .all()
        )
        return self._serialize_daily_tasks(tasks)

    def get_daily_task(self, task_id: int) -> Optional[Dict]:
        task = self._get_live_daily_task(task_id)
        if not task:
            return None
        return self._serialize_daily_tasks([task])[0]

    def get_next_daily_task_position(self, user_id: int) -> int:
        max_position = (
            self._live(DailyTask)
            .filter(DailyTask.user_id == user_id)
            .with_entities(func.max(DailyTask.position))
            .scalar()
        )
        return (max_position or 0) + 1

    def create_daily_task(self, data: Dict) -> Dict:
        """Create a daily task at the end of the user's list."""
        user_id = data.get('user_id')
        now = utcnow()
        task = DailyTask(
            title=data.get('title', ''),
            description=data.get('description'),
            user_id=user_id,
            user_name=data.get('user_name') or '',
            status=data.get('status') or 'todo',
            priority=data.get('priority') or 'medium',
            position=self.get_next_daily_task_position(user_id),
            due_date=self._parse_datetime(data.get('due_date')),
            estimated_hours=data.get('estimated_hours'),
            tags=list(data.get('tags') or []),
            attachments=[],
            created_by=self.user,
            created_at=now,
            updated_at=now
        )
        if is_completed_status(task.status):
            task.completed_at = now

        self.session.add(task)
        self.session.flush()
        logger.info(f"Daily task created with ID {task.id} for user {user_id}")
        return self._serialize_daily_tasks([task])[0]

    def update_daily_task(self, task_id: int, data: Dict) -> Optional[Dict]:
        """Update a daily task; only keys present in data are changed."""
        task = self._get_live_daily_task(task_id)
        if not task:
            return None
        dates = self._parse_date_fields(data, ('due_date', 'completed_at'))

        if data.get('title'):
            task.title = data['title']
        if 'description' in data:
            task.description = data['description']
        if data.get('status'):
            task.status = data['status']
            if is_completed_status(task.status) and 'completed_at' not in data:
                task.completed_at = utcnow()
        if data.get('priority'):
            task.priority = data['priority']
        if data.get('position') is not None:
            task.position = data['position']
        if 'due_date' in dates:
            task.due_date = dates['due_date']
        if 'estimated_hours' in data:
            task.estimated_hours = data['estimated_hours']
        if 'actual_hours' in data:
            task.actual_hours = data['actual_hours']
        if data.get('tags') is not None:
            task.tags = list(data['tags'])
        if dates.get('completed_at') is not None:
            task.completed_at = dates['completed_at']

        self._touch(task)
        self.session.flush()
        logger.info(f"Daily task updated: {task_id}")
        return self._serialize_daily_tasks([task])[0]

    def update_daily_task_status(self, task_id: int, status: str) -> bool:
        task = self._get_live_daily_task(task_id)
        if not task:
            return False

        now = utcnow()
        task.status = status
        if is_completed_status(status):
            task.completed_at = now
        self._touch(task, now)
        self.session.flush()
        logger.info(f"Daily task {task_id} status updated to {status}")
        return True

    def delete_daily_task(self, task_id: int) -> bool:
        task = self._get_live_daily_task(task_id)
        if not task:
            return False

        task.is_deleted = True
        self._touch(task)
        self.session.flush()
        logger.info(f"Daily task soft deleted: {task_id}")
        return True
