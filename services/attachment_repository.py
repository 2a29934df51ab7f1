"""
Attachment Repository - Database operations for task attachment metadata.
Files themselves are stored elsewhere; rows carry the URL, MIME type and size.
"""

import logging
from typing import List, Dict, Optional
from sqlalchemy import func, or_

from database.models import ProjectTask, DailyTask, TaskAttachment, utcnow
from services.base_repository import BaseRepository, DEFAULT_PAGE_SIZE
from services.errors import InvalidOperationError
from validators import (
    ALLOWED_IMAGE_MIME_TYPES,
    ALLOWED_DOCUMENT_MIME_TYPES,
    MAX_ATTACHMENT_SIZE,
    format_file_size,
    sanitize_filename,
    validate_attachment_metadata
)

logger = logging.getLogger(__name__)


class AttachmentRepository(BaseRepository):
    """Repository for task attachment database operations."""

    def __init__(self, session, user=None, max_file_size: int = MAX_ATTACHMENT_SIZE):
        super().__init__(session, user)
        self.max_file_size = max_file_size

    def _get_live_attachment(self, attachment_id) -> Optional[TaskAttachment]:
        return self._live(TaskAttachment).filter(TaskAttachment.id == attachment_id).first()

    def _for_task(self, query, project_task_id=None, daily_task_id=None):
        if project_task_id is not None:
            query = query.filter(TaskAttachment.project_task_id == project_task_id)
        if daily_task_id is not None:
            query = query.filter(TaskAttachment.daily_task_id == daily_task_id)
        return query

    def _total_size(self, query) -> int:
        total = query.with_entities(func.sum(TaskAttachment.file_size)).scalar()
        return int(total or 0)

    def _page(self, query, page_number, page_size) -> Dict:
        """Newest first, with the byte total over every matching row."""
        total_size = self._total_size(query)
        query = query.order_by(TaskAttachment.uploaded_at.desc(), TaskAttachment.id.desc())
        attachments, page_info = self._paginate(query, page_number, page_size)
        result = {
            'attachments': [a.to_dict() for a in attachments],
            'total_size': total_size,
            'total_size_formatted': format_file_size(total_size)
        }
        result.update(page_info)
        return result

    # =========================================================================
    # CRUD
    # =========================================================================

    def create_attachment(self, data: Dict) -> Dict:
        """
        Record an uploaded file against a project task or a daily task.

        Raises InvalidOperationError for a MIME type outside the allow-list,
        a size outside (0, max_file_size], or a task reference that is not
        exactly one live task.
        """
        mime_type = data.get('mime_type')
        file_size = data.get('file_size')
        is_valid, error = validate_attachment_metadata(mime_type, file_size, self.max_file_size)
        if not is_valid:
            raise InvalidOperationError(error)

        project_task_id, daily_task_id = self._resolve_task_reference(data)

        file_name = sanitize_filename(data.get('file_name'))
        attachment = TaskAttachment(
            project_task_id=project_task_id,
            daily_task_id=daily_task_id,
            file_name=file_name,
            original_file_name=data.get('original_file_name') or data.get('file_name') or file_name,
            file_url=data.get('file_url', ''),
            mime_type=mime_type,
            file_size=file_size,
            uploaded_by=data.get('uploaded_by'),
            uploaded_by_name=data.get('uploaded_by_name') or '',
            caption=data.get('caption'),
            uploaded_at=utcnow()
        )
        self.session.add(attachment)
        self.session.flush()
        logger.info(f"Attachment created with ID {attachment.id} ({format_file_size(file_size)})")
        return attachment.to_dict()

    def get_attachment(self, attachment_id: int) -> Optional[Dict]:
        attachment = self._get_live_attachment(attachment_id)
        return attachment.to_dict() if attachment else None

    def list_task_attachments(self, project_task_id: Optional[int] = None, daily_task_id: Optional[int] = None,
                              page_number: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> Dict:
        query = self._for_task(self._live(TaskAttachment), project_task_id, daily_task_id)
        return self._page(query, page_number, page_size)

    def search_attachments(self, filters: Optional[Dict] = None, page_number: int = 1,
                           page_size: int = DEFAULT_PAGE_SIZE) -> Dict:
        """
        Search by project_task_id, daily_task_id, uploaded_by, mime_type,
        is_image, is_document, search_term (file name or caption) and
        uploaded_from/uploaded_to.
        """
        filters = filters or {}
        query = self._for_task(
            self._live(TaskAttachment), filters.get('project_task_id'), filters.get('daily_task_id')
        )
        if filters.get('uploaded_by') is not None:
            query = query.filter(TaskAttachment.uploaded_by == filters['uploaded_by'])
        if filters.get('mime_type'):
            query = query.filter(TaskAttachment.mime_type == filters['mime_type'])
        if filters.get('is_image'):
            query = query.filter(TaskAttachment.mime_type.in_(sorted(ALLOWED_IMAGE_MIME_TYPES)))
        if filters.get('is_document'):
            query = query.filter(TaskAttachment.mime_type.in_(sorted(ALLOWED_DOCUMENT_MIME_TYPES)))
        if filters.get('search_term'):
            pattern = f"%{filters['search_term']}%"
            query = query.filter(or_(
                TaskAttachment.original_file_name.ilike(pattern),
                TaskAttachment.caption.ilike(pattern)
            ))
        uploaded_from = self._parse_datetime(filters.get('uploaded_from'))
        if uploaded_from:
            query = query.filter(TaskAttachment.uploaded_at >= uploaded_from)
        uploaded_to = self._parse_datetime(filters.get('uploaded_to'))
        if uploaded_to:
            query = query.filter(TaskAttachment.uploaded_at <= uploaded_to)
        return self._page(query, page_number, page_size)

    def update_attachment(self, attachment_id: int, data: Dict) -> Optional[Dict]:
        """Only caption and original_file_name can change."""
        attachment = self._get_live_attachment(attachment_id)
        if not attachment:
            return None

        if data.get('original_file_name'):
            attachment.original_file_name = data['original_file_name']
        if 'caption' in data and data['caption'] is not None:
            attachment.caption = data['caption']

        self.session.flush()
        logger.info(f"Attachment updated: {attachment_id}")
        return attachment.to_dict()

    def delete_attachment(self, attachment_id: int) -> bool:
        attachment = self._get_live_attachment(attachment_id)
        if not attachment:
            return False

        attachment.is_deleted = True
        self.session.flush()
        logger.info(f"Attachment soft deleted: {attachment_id}")
        return True

    def bulk_delete_attachments(self, attachment_ids: List[int]) -> int:
        """Soft delete several attachments atomically; returns how many were deleted."""
        try:
            with self.session.begin_nested():
                attachments = self._live(TaskAttachment).filter(
                    TaskAttachment.id.in_(list(attachment_ids))
                ).all()
                for attachment in attachments:
                    attachment.is_deleted = True
        except Exception as e:
            logger.error(f"Error during bulk attachment deletion: {e}")
            raise

        logger.info(f"Bulk deleted {len(attachments)} attachments")
        return len(attachments)

    def delete_all_task_attachments(self, project_task_id: Optional[int] = None,
                                    daily_task_id: Optional[int] = None) -> int:
        if project_task_id is None and daily_task_id is None:
            return 0

        try:
            with self.session.begin_nested():
                attachments = self._for_task(
                    self._live(TaskAttachment), project_task_id, daily_task_id
                ).all()
                for attachment in attachments:
                    attachment.is_deleted = True
        except Exception as e:
            logger.error(f"Error deleting all task attachments: {e}")
            raise

        logger.info(f"Deleted {len(attachments)} attachments for task")
        return len(attachments)

    def cleanup_orphaned_attachments(self) -> int:
        """
        Soft delete live attachments whose task is missing or soft-deleted.
        Returns the number cleaned up.
        """
        try:
            live_project_tasks = {
                task_id for (task_id,) in self._live(ProjectTask).with_entities(ProjectTask.id)
            }
            live_daily_tasks = {
                task_id for (task_id,) in self._live(DailyTask).with_entities(DailyTask.id)
            }

            orphaned = []
            for attachment in self._live(TaskAttachment).all():
                if attachment.project_task_id is not None:
                    if attachment.project_task_id not in live_project_tasks:
                        orphaned.append(attachment)
                elif attachment.daily_task_id is not None:
                    if attachment.daily_task_id not in live_daily_tasks:
                        orphaned.append(attachment)
                else:
                    orphaned.append(attachment)

            for attachment in orphaned:
                attachment.is_deleted = True
            self.session.flush()
        except Exception as e:
            logger.error(f"Error during orphaned attachments cleanup: {e}")
            raise

        logger.info(f"Cleaned up {len(orphaned)} orphaned attachments")
        return len(orphaned)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_attachments_by_uploader(self, uploader_id: int, page_number: int = 1,
                                    page_size: int = DEFAULT_PAGE_SIZE) -> Dict:
        query = self._live(TaskAttachment).filter(TaskAttachment.uploaded_by == uploader_id)
        return self._page(query, page_number, page_size)

    def get_attachments_by_type(self, mime_type: str, page_number: int = 1,
                                page_size: int = DEFAULT_PAGE_SIZE) -> Dict:
        query = self._live(TaskAttachment).filter(TaskAttachment.mime_type == mime_type)
        return self._page(query, page_number, page_size)

    def get_image_attachments(self, project_task_id: Optional[int] = None, daily_task_id: Optional[int] = None,
                              page_number: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> Dict:
        query = self._for_task(self._live(TaskAttachment), project_task_id, daily_task_id).filter(
            TaskAttachment.mime_type.in_(sorted(ALLOWED_IMAGE_MIME_TYPES))
        )
        return self._page(query, page_number, page_size)

    def get_document_attachments(self, project_task_id: Optional[int] = None, daily_task_id: Optional[int] = None,
                                 page_number: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> Dict:
        query = self._for_task(self._live(TaskAttachment), project_task_id, daily_task_id).filter(
            TaskAttachment.mime_type.in_(sorted(ALLOWED_DOCUMENT_MIME_TYPES))
        )
        return self._page(query, page_number, page_size)

    def get_most_recent_attachments(self, count: int = 10) -> List[Dict]:
        attachments = (
            self._live(TaskAttachment)
            .order_by(TaskAttachment.uploaded_at.desc(), TaskAttachment.id.desc())
            .limit(count)
            .all()
        )
        return [a.to_dict() for a in attachments]

    # =========================================================================
    # AGGREGATES
    # =========================================================================

    def get_task_attachment_count(self, project_task_id: Optional[int] = None,
                                  daily_task_id: Optional[int] = None) -> int:
        return self._for_task(self._live(TaskAttachment), project_task_id, daily_task_id).count()

    def get_task_attachments_total_size(self, project_task_id: Optional[int] = None,
                                        daily_task_id: Optional[int] = None) -> int:
        return self._total_size(self._for_task(self._live(TaskAttachment), project_task_id, daily_task_id))

    def get_task_attachment_counts(self, task_ids: List[int], is_project_tasks: bool = True) -> Dict[int, int]:
        fk = TaskAttachment.project_task_id if is_project_tasks else TaskAttachment.daily_task_id
        rows = (
            self._live(TaskAttachment)
            .filter(fk.in_(list(task_ids)))
            .with_entities(fk, func.count(TaskAttachment.id))
            .group_by(fk)
            .all()
        )
        return {task_id: count for task_id, count in rows}

    def _uploads(self, user_id, from_date):
        query = self._live(TaskAttachment).filter(TaskAttachment.uploaded_by == user_id)
        from_date = self._parse_datetime(from_date)
        if from_date:
            query = query.filter(TaskAttachment.uploaded_at >= from_date)
        return query

    def get_user_upload_count(self, user_id: int, from_date=None) -> int:
        return self._uploads(user_id, from_date).count()

    def get_user_upload_size(self, user_id: int, from_date=None) -> int:
        return self._total_size(self._uploads(user_id, from_date))

    def get_total_attachments_size(self) -> int:
        return self._total_size(self._live(TaskAttachment))

    # =========================================================================
    # CHECKS
    # =========================================================================

    def attachment_exists(self, attachment_id: int) -> bool:
        return self._get_live_attachment(attachment_id) is not None

    def user_can_edit_attachment(self, attachment_id: int, user_id: int) -> bool:
        """Only the uploader may edit or delete an attachment."""
        attachment = self._get_live_attachment(attachment_id)
        return attachment is not None and attachment.uploaded_by == user_id
