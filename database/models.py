"""
SQLAlchemy models for the Project Board backend.
Defines projects, board columns, project/daily tasks, comments and attachments.
"""

from datetime import datetime, timezone
from sqlalchemy import (
    Column, String, Text, Integer, Float, Boolean, DateTime,
    ForeignKey, JSON, Index, BigInteger
)
from sqlalchemy.orm import relationship
from database.connection import Base


def utcnow():
    """Naive UTC timestamp, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() if value else None


# =============================================================================
# PROJECTS
# =============================================================================

class Project(Base):
    """Project with a Kanban board; owner and team are external user ids."""
    __tablename__ = 'projects'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(String(1000))
    contact_id = Column(Integer)
    owner_id = Column(Integer, nullable=False)
    owner_name = Column(String(255), nullable=False, default='')
    team_members = Column(JSON, default=list)  # list of user ids
    budget = Column(Float)
    currency = Column(String(3))
    status = Column(String(50), nullable=False, default='active')  # active, completed, on-hold, cancelled
    type = Column(String(50), nullable=False, default='service')  # service, sales, internal, custom
    priority = Column(String(10), nullable=False, default='medium')  # low, medium, high, urgent
    progress = Column(Integer, nullable=False, default=0)  # 0-100
    start_date = Column(DateTime)
    end_date = Column(DateTime)
    actual_start_date = Column(DateTime)
    actual_end_date = Column(DateTime)
    tags = Column(JSON, default=list)
    is_archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)
    created_by = Column(String(255))
    modified_by = Column(String(255))
    is_deleted = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index('ix_projects_owner', 'owner_id'),
        Index('ix_projects_contact', 'contact_id'),
        Index('ix_projects_status', 'status'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'contact_id': self.contact_id,
            'owner_id': self.owner_id,
            'owner_name': self.owner_name,
            'team_members': list(self.team_members or []),
            'budget': self.budget,
            'currency': self.currency,
            'status': self.status,
            'type': self.type,
            'priority': self.priority,
            'progress': self.progress,
            'start_date': _iso(self.start_date),
            'end_date': _iso(self.end_date),
            'actual_start_date': _iso(self.actual_start_date),
            'actual_end_date': _iso(self.actual_end_date),
            'tags': list(self.tags or []),
            'is_archived': self.is_archived,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
            'created_by': self.created_by,
            'modified_by': self.modified_by
        }


class ProjectColumn(Base):
    """Board column; position orders columns within a project."""
    __tablename__ = 'project_columns'

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey('projects.id'), nullable=False)
    title = Column(String(255), nullable=False)
    color = Column(String(7), nullable=False, default='#3b82f6')
    position = Column(Integer, nullable=False)
    is_default = Column(Boolean, nullable=False, default=False)
    task_limit = Column(Integer)  # WIP limit
    created_at = Column(DateTime, default=utcnow)

    project = relationship("Project")

    __table_args__ = (
        Index('ix_project_columns_project', 'project_id'),
    )

    def to_dict(self, task_count=0):
        return {
            'id': self.id,
            'project_id': self.project_id,
            'title': self.title,
            'color': self.color,
            'position': self.position,
            'is_default': self.is_default,
            'task_limit': self.task_limit,
            'created_at': _iso(self.created_at),
            'task_count': task_count
        }


# =============================================================================
# TASKS
# =============================================================================

class ProjectTask(Base):
    """Task on a project board, optionally a sub-task of another task."""
    __tablename__ = 'project_tasks'

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(String(2000))
    project_id = Column(Integer, ForeignKey('projects.id'), nullable=False)
    # Only soft-deleted tasks lose their column (when the column is removed)
    column_id = Column(Integer, ForeignKey('project_columns.id', ondelete='SET NULL'))
    contact_id = Column(Integer)
    assignee_id = Column(Integer)
    assignee_name = Column(String(255))
    status = Column(String(50), nullable=False, default='todo')
    priority = Column(String(10), nullable=False, default='medium')
    position = Column(Integer, nullable=False)
    parent_task_id = Column(Integer, ForeignKey('project_tasks.id'))
    due_date = Column(DateTime)
    start_date = Column(DateTime)
    estimated_hours = Column(Float)
    actual_hours = Column(Float)
    tags = Column(JSON, default=list)
    attachments = Column(JSON, default=list)  # legacy attachment urls
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)
    completed_at = Column(DateTime)
    created_by = Column(String(255))
    modified_by = Column(String(255))
    is_deleted = Column(Boolean, nullable=False, default=False)

    project = relationship("Project")
    column = relationship("ProjectColumn")
    parent_task = relationship("ProjectTask", remote_side=[id])

    __table_args__ = (
        Index('ix_project_tasks_project', 'project_id'),
        Index('ix_project_tasks_column', 'column_id'),
        Index('ix_project_tasks_parent', 'parent_task_id'),
        Index('ix_project_tasks_assignee', 'assignee_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'project_id': self.project_id,
            'project_name': self.project.name if self.project else '',
            'column_id': self.column_id,
            'column_title': self.column.title if self.column else '',
            'column_color': self.column.color if self.column else '',
            'contact_id': self.contact_id,
            'assignee_id': self.assignee_id,
            'assignee_name': self.assignee_name,
            'status': self.status,
            'priority': self.priority,
            'position': self.position,
            'parent_task_id': self.parent_task_id,
            'parent_task_title': self.parent_task.title if self.parent_task else None,
            'due_date': _iso(self.due_date),
            'start_date': _iso(self.start_date),
            'estimated_hours': self.estimated_hours,
            'actual_hours': self.actual_hours,
            'tags': list(self.tags or []),
            'attachments': list(self.attachments or []),
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
            'completed_at': _iso(self.completed_at),
            'created_by': self.created_by,
            'modified_by': self.modified_by,
            'is_deleted': self.is_deleted
        }


class DailyTask(Base):
    """Personal task scoped to a user rather than a project board."""
    __tablename__ = 'daily_tasks'

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(String(2000))
    user_id = Column(Integer, nullable=False)
    user_name = Column(String(255), nullable=False, default='')
    status = Column(String(50), nullable=False, default='todo')  # todo, in-progress, completed
    priority = Column(String(10), nullable=False, default='medium')
    position = Column(Integer, nullable=False)
    due_date = Column(DateTime)
    estimated_hours = Column(Float)
    actual_hours = Column(Float)
    tags = Column(JSON, default=list)
    attachments = Column(JSON, default=list)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)
    completed_at = Column(DateTime)
    created_by = Column(String(255))
    modified_by = Column(String(255))
    is_deleted = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index('ix_daily_tasks_user', 'user_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'user_id': self.user_id,
            'user_name': self.user_name,
            'status': self.status,
            'priority': self.priority,
            'position': self.position,
            'due_date': _iso(self.due_date),
            'estimated_hours': self.estimated_hours,
            'actual_hours': self.actual_hours,
            'tags': list(self.tags or []),
            'attachments': list(self.attachments or []),
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
            'completed_at': _iso(self.completed_at),
            'created_by': self.created_by,
            'modified_by': self.modified_by,
            'is_deleted': self.is_deleted
        }


# =============================================================================
# COMMENTS & ATTACHMENTS
# =============================================================================

class TaskComment(Base):
    """Comment on either a project task or a daily task, never both."""
    __tablename__ = 'task_comments'

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_task_id = Column(Integer, ForeignKey('project_tasks.id'))
    daily_task_id = Column(Integer, ForeignKey('daily_tasks.id'))
    content = Column(String(2000), nullable=False)
    author_id = Column(Integer, nullable=False)
    author_name = Column(String(255), nullable=False, default='')
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)
    is_deleted = Column(Boolean, nullable=False, default=False)

    project_task = relationship("ProjectTask")
    daily_task = relationship("DailyTask")

    __table_args__ = (
        Index('ix_task_comments_project_task', 'project_task_id'),
        Index('ix_task_comments_daily_task', 'daily_task_id'),
    )

    @property
    def task_title(self):
        if self.project_task is not None:
            return self.project_task.title
        if self.daily_task is not None:
            return self.daily_task.title
        return ''

    @property
    def is_edited(self):
        if not self.created_at or not self.updated_at:
            return False
        return (self.updated_at - self.created_at).total_seconds() > 60

    def to_dict(self):
        return {
            'id': self.id,
            'project_task_id': self.project_task_id,
            'daily_task_id': self.daily_task_id,
            'task_title': self.task_title,
            'content': self.content,
            'author_id': self.author_id,
            'author_name': self.author_name,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
            'is_edited': self.is_edited
        }


class TaskAttachment(Base):
    """File metadata attached to either a project task or a daily task."""
    __tablename__ = 'task_attachments'

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_task_id = Column(Integer, ForeignKey('project_tasks.id'))
    daily_task_id = Column(Integer, ForeignKey('daily_tasks.id'))
    file_name = Column(String(255), nullable=False)
    original_file_name = Column(String(255), nullable=False)
    file_url = Column(String(500), nullable=False)
    mime_type = Column(String(100))
    file_size = Column(BigInteger, nullable=False, default=0)
    uploaded_by = Column(Integer, nullable=False)
    uploaded_by_name = Column(String(255), nullable=False, default='')
    uploaded_at = Column(DateTime, default=utcnow)
    caption = Column(String(500))
    is_deleted = Column(Boolean, nullable=False, default=False)

    project_task = relationship("ProjectTask")
    daily_task = relationship("DailyTask")

    __table_args__ = (
        Index('ix_task_attachments_project_task', 'project_task_id'),
        Index('ix_task_attachments_daily_task', 'daily_task_id'),
        Index('ix_task_attachments_uploader', 'uploaded_by'),
    )

    @property
    def task_title(self):
        if self.project_task is not None:
            return self.project_task.title
        if self.daily_task is not None:
            return self.daily_task.title
        return ''

    def to_dict(self):
        from validators import format_file_size, get_file_type_icon, is_image_file, is_document_file

        return {
            'id': self.id,
            'project_task_id': self.project_task_id,
            'daily_task_id': self.daily_task_id,
            'task_title': self.task_title,
            'file_name': self.file_name,
            'original_file_name': self.original_file_name,
            'file_url': self.file_url,
            'mime_type': self.mime_type,
            'file_size': self.file_size,
            'file_size_formatted': format_file_size(self.file_size or 0),
            'uploaded_by': self.uploaded_by,
            'uploaded_by_name': self.uploaded_by_name,
            'uploaded_at': _iso(self.uploaded_at),
            'caption': self.caption,
            'is_image': is_image_file(self.mime_type),
            'is_document': is_document_file(self.mime_type),
            'file_type_icon': get_file_type_icon(self.mime_type)
        }
