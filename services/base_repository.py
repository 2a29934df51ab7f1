"""
Base Repository - shared plumbing for the board repositories.
Applies the soft-delete filter, pagination and date parsing in one place.
"""

from datetime import date, datetime, timezone
from typing import Dict, Optional
from sqlalchemy.orm import Session

from services.errors import InvalidOperationError

DEFAULT_PAGE_SIZE = 20


class BaseRepository:
    """Common helpers for repositories backed by a SQLAlchemy session."""

    def __init__(self, session: Session, user: Optional[str] = None):
        self.session = session
        self.user = user  # Recorded in created_by / modified_by

    def _live(self, model):
        """Query over rows that have not been soft-deleted."""
        return self.session.query(model).filter(model.is_deleted == False)  # noqa: E712

    def _soft_deleted(self, model):
        return self.session.query(model).filter(model.is_deleted == True)  # noqa: E712

    def count_live(self, model) -> int:
        return self._live(model).count()

    def _paginate(self, query, page_number: int = 1, page_size: int = DEFAULT_PAGE_SIZE):
        """
        Slice a query into a page.

        Returns:
            (rows, page_info) where page_info carries the paging metadata
        """
        page_number = max(int(page_number or 1), 1)
        page_size = max(int(page_size or DEFAULT_PAGE_SIZE), 1)
        total_count = query.count()
        skip = (page_number - 1) * page_size
        rows = query.offset(skip).limit(page_size).all()
        return rows, self._page_info(total_count, page_number, page_size)

    @staticmethod
    def _page_info(total_count: int, page_number: int, page_size: int) -> Dict:
        skip = (page_number - 1) * page_size
        return {
            'total_count': total_count,
            'page_number': page_number,
            'page_size': page_size,
            'has_next_page': skip + page_size < total_count,
            'has_previous_page': page_number > 1
        }

    def _resolve_task_reference(self, data: Dict):
        """
        Check that data names exactly one live task, project or daily.

        Returns:
            (project_task_id, daily_task_id) with exactly one of them set
        """
        from database.models import ProjectTask, DailyTask
        project_task_id = data.get('project_task_id')
        daily_task_id = data.get('daily_task_id')

        if (project_task_id is None) == (daily_task_id is None):
            raise InvalidOperationError(
                "Exactly one of project_task_id or daily_task_id must be provided"
            )

        if project_task_id is not None:
            if self._live(ProjectTask).filter(ProjectTask.id == project_task_id).first() is None:
                raise InvalidOperationError("Project task not found")
        elif self._live(DailyTask).filter(DailyTask.id == daily_task_id).first() is None:
            raise InvalidOperationError("Daily task not found")

        return project_task_id, daily_task_id

    def _parse_date_fields(self, data: Dict, fields) -> Dict:
        """Parse the date fields present in data before anything is changed."""
        return {field: self._parse_datetime(data[field]) for field in fields if field in data}

    def _parse_datetime(self, value):
        """
        Parse a datetime value from an ISO string, date or datetime.

        Empty values give None. Anything else that is not a date raises
        InvalidOperationError rather than clearing the stored value.
        """
        if not value:
            return None
        if isinstance(value, datetime):
            if value.tzinfo is not None:
                return value.astimezone(timezone.utc).replace(tzinfo=None)
            return value
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        if isinstance(value, str):
            from dateutil import parser
            try:
                parsed = parser.parse(value)
            except (ValueError, OverflowError):
                raise InvalidOperationError(f"Invalid date value: {value!r}")
            if parsed.tzinfo is not None:
                parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
            return parsed
        raise InvalidOperationError(f"Invalid date value: {value!r}")
