"""
Database package for the Project Board backend.
Provides SQLAlchemy models, connection management, and session handling.
"""

from database.connection import (
    Base,
    get_engine,
    get_session_factory,
    get_db_session,
    configure_database,
    init_db,
    check_db_connection,
    get_missing_tables
)

from database.models import (
    Project,
    ProjectColumn,
    ProjectTask,
    DailyTask,
    TaskComment,
    TaskAttachment
)

__all__ = [
    # Connection
    'Base',
    'get_engine',
    'get_session_factory',
    'get_db_session',
    'configure_database',
    'init_db',
    'check_db_connection',
    'get_missing_tables',
    # Models
    'Project',
    'ProjectColumn',
    'ProjectTask',
    'DailyTask',
    'TaskComment',
    'TaskAttachment'
]
