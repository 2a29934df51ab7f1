"""
Pytest configuration and shared fixtures
"""
import os
import pytest

from database.connection import Base, configure_database, get_session_factory
from database import models  # noqa: F401  (registers tables on Base)
from services import (
    ProjectRepository,
    ColumnRepository,
    TaskRepository,
    CommentRepository,
    AttachmentRepository,
)


@pytest.fixture
def app_config():
    """Fixture providing test configuration"""
    from config import TestingConfig
    return TestingConfig


@pytest.fixture
def test_env_vars():
    """Fixture providing test environment variables"""
    original_env = os.environ.copy()

    os.environ['FLASK_ENV'] = 'testing'
    os.environ['SECRET_KEY'] = 'a-long-random-key-0123456789abcdefghijkl'
    os.environ['DATABASE_URL'] = 'sqlite://'

    yield

    os.environ.clear()
    os.environ.update(original_env)


# =============================================================================
# DATABASE
# =============================================================================

@pytest.fixture
def engine():
    """Fresh in-memory database per test"""
    eng = configure_database('sqlite://')
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    db = get_session_factory()()
    yield db
    db.rollback()
    db.close()


@pytest.fixture
def project_repo(session):
    return ProjectRepository(session, 'tester')


@pytest.fixture
def column_repo(session):
    return ColumnRepository(session, 'tester')


@pytest.fixture
def task_repo(session):
    return TaskRepository(session, 'tester')


@pytest.fixture
def comment_repo(session):
    return CommentRepository(session, 'tester')


@pytest.fixture
def attachment_repo(session):
    return AttachmentRepository(session, 'tester')


@pytest.fixture
def sample_project_data():
    """Fixture providing sample project data"""
    return {
        'name': 'Office Fit-out',
        'description': 'Level 3 refurbishment',
        'owner_id': 1,
        'owner_name': 'Alex Owner',
        'team_members': [2, 3],
        'contact_id': 50,
        'priority': 'high',
        'tags': ['fitout']
    }


@pytest.fixture
def project(project_repo, sample_project_data):
    """A project with its four default columns"""
    return project_repo.create_project(sample_project_data)


@pytest.fixture
def columns(project):
    """Column ids of the sample project in board order"""
    return [c['id'] for c in project['columns']]


@pytest.fixture
def make_task(task_repo, project, columns):
    """Factory creating project tasks in the sample project (first column by default)"""
    def _make(title='Task', column_id=None, **fields):
        data = {
            'title': title,
            'project_id': project['id'],
            'column_id': column_id or columns[0],
        }
        data.update(fields)
        return task_repo.create_task(data)
    return _make


@pytest.fixture
def daily_task(task_repo):
    return task_repo.create_daily_task({'title': 'Inbox zero', 'user_id': 7, 'user_name': 'Sam'})


# =============================================================================
# FLASK
# =============================================================================

@pytest.fixture
def app():
    from app_init import create_app
    flask_app = create_app('testing')
    yield flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def api_project(client):
    """Project created through the API"""
    response = client.post('/api/projects', json={
        'name': 'API Project',
        'owner_id': 1,
        'team_members': [2]
    }, headers={'X-User-Id': '1', 'X-User-Name': 'Alex'})
    return response.get_json()['project']
