"""
Services package for the Project Board backend.
Contains repository classes for database access.
"""

from services.errors import InvalidOperationError, NotFoundError
from services.column_repository import ColumnRepository
from services.task_repository import TaskRepository
from services.comment_repository import CommentRepository
from services.attachment_repository import AttachmentRepository
from services.project_repository import ProjectRepository

__all__ = [
    'InvalidOperationError',
    'NotFoundError',
    'ColumnRepository',
    'TaskRepository',
    'CommentRepository',
    'AttachmentRepository',
    'ProjectRepository'
]
