"""
Comment Repository - Database operations for task comments.
"""

import logging
from typing import List, Dict, Optional
from sqlalchemy import func

from database.models import ProjectTask, TaskComment, utcnow
from services.base_repository import BaseRepository, DEFAULT_PAGE_SIZE

logger = logging.getLogger(__name__)


class CommentRepository(BaseRepository):
    """Repository for task comment database operations."""

    def _get_live_comment(self, comment_id) -> Optional[TaskComment]:
        return self._live(TaskComment).filter(TaskComment.id == comment_id).first()

    def _for_task(self, query, project_task_id=None, daily_task_id=None):
        if project_task_id is not None:
            query = query.filter(TaskComment.project_task_id == project_task_id)
        if daily_task_id is not None:
            query = query.filter(TaskComment.daily_task_id == daily_task_id)
        return query

    def _page(self, query, page_number, page_size) -> Dict:
        query = query.order_by(TaskComment.created_at.desc(), TaskComment.id.desc())
        comments, page_info = self._paginate(query, page_number, page_size)
        result = {'comments': [c.to_dict() for c in comments]}
        result.update(page_info)
        return result

    # =========================================================================
    # CRUD
    # =========================================================================

    def create_comment(self, data: Dict) -> Dict:
        """
        Create a comment on a project task or a daily task.

        Raises InvalidOperationError unless exactly one live task is referenced.
        """
        project_task_id, daily_task_id = self._resolve_task_reference(data)

        now = utcnow()
        comment = TaskComment(
            project_task_id=project_task_id,
            daily_task_id=daily_task_id,
            content=data.get('content', ''),
            author_id=data.get('author_id'),
            author_name=data.get('author_name') or '',
            created_at=now,
            updated_at=now
        )
        self.session.add(comment)
        self.session.flush()
        logger.info(f"Comment created with ID {comment.id}")
        return comment.to_dict()

    def get_comment(self, comment_id: int) -> Optional[Dict]:
        comment = self._get_live_comment(comment_id)
        return comment.to_dict() if comment else None

    def list_task_comments(self, project_task_id: Optional[int] = None, daily_task_id: Optional[int] = None,
                           page_number: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> Dict:
        """Comments of a task, newest first."""
        query = self._for_task(self._live(TaskComment), project_task_id, daily_task_id)
        return self._page(query, page_number, page_size)

    def search_comments(self, filters: Optional[Dict] = None, page_number: int = 1,
                        page_size: int = DEFAULT_PAGE_SIZE) -> Dict:
        """
        Search comments by project_task_id, daily_task_id, author_id,
        search_term (content, case-insensitive) and created_from/created_to.
        """
        filters = filters or {}
        query = self._for_task(
            self._live(TaskComment), filters.get('project_task_id'), filters.get('daily_task_id')
        )
        if filters.get('author_id') is not None:
            query = query.filter(TaskComment.author_id == filters['author_id'])
        if filters.get('search_term'):
            query = query.filter(TaskComment.content.ilike(f"%{filters['search_term']}%"))
        created_from = self._parse_datetime(filters.get('created_from'))
        if created_from:
            query = query.filter(TaskComment.created_at >= created_from)
        created_to = self._parse_datetime(filters.get('created_to'))
        if created_to:
            query = query.filter(TaskComment.created_at <= created_to)
        return self._page(query, page_number, page_size)

    def update_comment(self, comment_id: int, data: Dict) -> Optional[Dict]:
        """Only the content of a comment can change."""
        comment = self._get_live_comment(comment_id)
        if not comment:
            return None

        if data.get('content'):
            comment.content = data['content']
        comment.updated_at = utcnow()
        self.session.flush()
        logger.info(f"Comment updated: {comment_id}")
        return comment.to_dict()

    def delete_comment(self, comment_id: int) -> bool:
        comment = self._get_live_comment(comment_id)
        if not comment:
            return False

        comment.is_deleted = True
        comment.updated_at = utcnow()
        self.session.flush()
        logger.info(f"Comment soft deleted: {comment_id}")
        return True

    def bulk_delete_comments(self, comment_ids: List[int]) -> int:
        """Soft delete several comments atomically; returns how many were deleted."""
        try:
            with self.session.begin_nested():
                comments = self._live(TaskComment).filter(TaskComment.id.in_(list(comment_ids))).all()
                now = utcnow()
                for comment in comments:
                    comment.is_deleted = True
                    comment.updated_at = now
        except Exception as e:
            logger.error(f"Error during bulk comment deletion: {e}")
            raise

        logger.info(f"Bulk deleted {len(comments)} comments")
        return len(comments)

    def delete_all_task_comments(self, project_task_id: Optional[int] = None,
                                 daily_task_id: Optional[int] = None) -> int:
        if project_task_id is None and daily_task_id is None:
            return 0

        try:
            with self.session.begin_nested():
                comments = self._for_task(self._live(TaskComment), project_task_id, daily_task_id).all()
                now = utcnow()
                for comment in comments:
                    comment.is_deleted = True
                    comment.updated_at = now
        except Exception as e:
            logger.error(f"Error deleting all task comments: {e}")
            raise

        logger.info(f"Deleted {len(comments)} comments for task")
        return len(comments)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_comments_by_author(self, author_id: int, page_number: int = 1,
                               page_size: int = DEFAULT_PAGE_SIZE) -> Dict:
        query = self._live(TaskComment).filter(TaskComment.author_id == author_id)
        return self._page(query, page_number, page_size)

    def get_recent_comments(self, project_id: Optional[int] = None, user_id: Optional[int] = None,
                            page_number: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> Dict:
        """Newest comments, optionally limited to a project's tasks and/or an author."""
        query = self._live(TaskComment)
        if project_id is not None:
            query = query.join(ProjectTask, TaskComment.project_task_id == ProjectTask.id).filter(
                ProjectTask.project_id == project_id
            )
        if user_id is not None:
            query = query.filter(TaskComment.author_id == user_id)
        return self._page(query, page_number, page_size)

    def get_most_recent_comments(self, count: int = 10) -> List[Dict]:
        comments = (
            self._live(TaskComment)
            .order_by(TaskComment.created_at.desc(), TaskComment.id.desc())
            .limit(count)
            .all()
        )
        return [c.to_dict() for c in comments]

    def get_task_comment_count(self, project_task_id: Optional[int] = None,
                               daily_task_id: Optional[int] = None) -> int:
        return self._for_task(self._live(TaskComment), project_task_id, daily_task_id).count()

    def get_task_comment_counts(self, task_ids: List[int], is_project_tasks: bool = True) -> Dict[int, int]:
        """Live comment counts keyed by task id; tasks without comments are omitted."""
        fk = TaskComment.project_task_id if is_project_tasks else TaskComment.daily_task_id
        rows = (
            self._live(TaskComment)
            .filter(fk.in_(list(task_ids)))
            .with_entities(fk, func.count(TaskComment.id))
            .group_by(fk)
            .all()
        )
        return {task_id: count for task_id, count in rows}

    def get_user_comment_count(self, user_id: int, from_date=None) -> int:
        query = self._live(TaskComment).filter(TaskComment.author_id == user_id)
        from_date = self._parse_datetime(from_date)
        if from_date:
            query = query.filter(TaskComment.created_at >= from_date)
        return query.count()

    def comment_exists(self, comment_id: int) -> bool:
        return self._get_live_comment(comment_id) is not None

    def user_can_edit_comment(self, comment_id: int, user_id: int) -> bool:
        """Only the author may edit or delete a comment."""
        comment = self._get_live_comment(comment_id)
        return comment is not None and comment.author_id == user_id
