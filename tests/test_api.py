"""
Integration tests for the project board API blueprints
"""
import pytest


HEADERS = {'X-User-Id': '1', 'X-User-Name': 'Alex'}


@pytest.fixture
def api_columns(api_project):
    return [c['id'] for c in api_project['columns']]


@pytest.fixture
def api_task(client, api_project, api_columns):
    response = client.post('/api/tasks', json={
        'title': 'Run cabling',
        'project_id': api_project['id'],
        'column_id': api_columns[0]
    }, headers=HEADERS)
    return response.get_json()['task']


@pytest.mark.integration
class TestProjectRoutes:
    """Tests for /api/projects"""

    def test_create_project(self, api_project):
        assert api_project['name'] == 'API Project'
        assert api_project['created_by'] == 'Alex'
        assert len(api_project['columns']) == 4

    def test_create_requires_name(self, client):
        response = client.post('/api/projects', json={'owner_id': 1})
        assert response.status_code == 400
        data = response.get_json()
        assert data['success'] is False
        assert 'name' in data['error']

    def test_non_object_body_is_rejected(self, client):
        response = client.post('/api/projects', data='[]', content_type='application/json')
        assert response.status_code == 400

    def test_unknown_project_is_404(self, client):
        response = client.get('/api/projects/999')
        assert response.status_code == 404
        assert response.get_json()['success'] is False

    def test_list_with_pagination_args(self, client, api_project):
        client.post('/api/projects', json={'name': 'Second', 'owner_id': 1})
        response = client.get('/api/projects?pageNumber=2&pageSize=1')
        data = response.get_json()
        assert data['total_count'] == 2
        assert len(data['projects']) == 1
        assert data['projects'][0]['name'] == 'API Project'

    def test_team_members(self, client, api_project):
        pid = api_project['id']
        assert client.post(f'/api/projects/{pid}/team-members', json={'user_id': 5}).status_code == 200
        members = client.get(f'/api/projects/{pid}/team-members').get_json()['team_members']
        assert members == [2, 5]
        assert client.post(f'/api/projects/{pid}/team-members', json={'user_id': 'x'}).status_code == 400

    def test_delete_project(self, client, api_project):
        pid = api_project['id']
        assert client.delete(f'/api/projects/{pid}').status_code == 200
        assert client.get(f'/api/projects/{pid}').status_code == 404


@pytest.mark.integration
class TestColumnRoutes:
    """Tests for /api/columns"""

    def test_list_columns(self, client, api_project):
        data = client.get(f"/api/projects/{api_project['id']}/columns").get_json()
        assert [c['title'] for c in data['columns']] == ['To Do', 'In Progress', 'Review', 'Done']

    def test_last_column_cannot_be_deleted(self, client, api_columns):
        for column_id in api_columns[1:]:
            assert client.delete(f'/api/columns/{column_id}').status_code == 200
        response = client.delete(f'/api/columns/{api_columns[0]}')
        assert response.status_code == 400
        assert client.get(f'/api/columns/{api_columns[0]}').status_code == 200

    def test_bulk_colors_rejects_bad_color(self, client, api_columns):
        response = client.put('/api/columns/bulk/colors', json={'colors': {str(api_columns[0]): 'red'}})
        assert response.status_code == 400

    def test_bulk_delete_keeps_a_column(self, client, api_project, api_columns):
        response = client.post('/api/columns/bulk/delete', json={'column_ids': api_columns})
        assert response.status_code == 400
        listing = client.get(f"/api/projects/{api_project['id']}/columns").get_json()
        assert listing['total_count'] == 4

    def test_text_position_is_rejected(self, client, api_project):
        response = client.post('/api/columns', json={
            'project_id': api_project['id'], 'title': 'Blocked', 'position': '2'
        })
        assert response.status_code == 400
        assert 'position' in response.get_json()['error']

    def test_create_column_in_unknown_project(self, client):
        response = client.post('/api/columns', json={'project_id': 999, 'title': 'Blocked'})
        assert response.status_code == 400


@pytest.mark.integration
class TestTaskRoutes:
    """Tests for /api/tasks"""

    def test_create_task(self, api_task, api_columns):
        assert api_task['column_id'] == api_columns[0]
        assert api_task['position'] == 1
        assert api_task['created_by'] == 'Alex'

    def test_create_task_in_foreign_column(self, client, api_project):
        response = client.post('/api/tasks', json={
            'title': 'Nowhere', 'project_id': api_project['id'], 'column_id': 999
        })
        assert response.status_code == 400

    def test_move_task(self, client, api_task, api_columns):
        response = client.put(f"/api/tasks/{api_task['id']}/move", json={'column_id': api_columns[1]})
        assert response.status_code == 200
        task = client.get(f"/api/tasks/{api_task['id']}").get_json()['task']
        assert task['column_id'] == api_columns[1]
        assert task['position'] == 1

    def test_move_requires_column(self, client, api_task):
        response = client.put(f"/api/tasks/{api_task['id']}/move", json={})
        assert response.status_code == 400
        assert response.get_json()['field'] == 'column_id'

    def test_move_unknown_task(self, client, api_columns):
        response = client.put('/api/tasks/999/move', json={'column_id': api_columns[0]})
        assert response.status_code == 404

    def test_reorder(self, client, api_project, api_columns, api_task):
        second = client.post('/api/tasks', json={
            'title': 'Mount boxes', 'project_id': api_project['id'], 'column_id': api_columns[0]
        }).get_json()['task']

        response = client.put(f'/api/columns/{api_columns[0]}/tasks/reorder',
                              json={'task_ids': [second['id'], api_task['id']]})
        assert response.status_code == 200
        tasks = client.get(f'/api/columns/{api_columns[0]}/tasks').get_json()['tasks']
        assert [(t['id'], t['position']) for t in tasks] == [(second['id'], 1), (api_task['id'], 2)]

    def test_unreadable_due_date_is_rejected(self, client, api_task):
        task_id = api_task['id']
        assert client.put(f'/api/tasks/{task_id}', json={'due_date': '2030-01-01'}).status_code == 200

        response = client.put(f'/api/tasks/{task_id}', json={'due_date': 'next tuesday-ish'})
        assert response.status_code == 400
        task = client.get(f'/api/tasks/{task_id}').get_json()['task']
        assert task['due_date'].startswith('2030-01-01')

    def test_update_rejects_text_position(self, client, api_task):
        response = client.put(f"/api/tasks/{api_task['id']}", json={'position': 'first'})
        assert response.status_code == 400

    def test_bulk_move_rejects_text_position(self, client, api_task, api_columns):
        response = client.put('/api/tasks/bulk/move', json={
            'tasks': [{'id': api_task['id'], 'column_id': api_columns[1], 'position': 'top'}]
        })
        assert response.status_code == 400

    def test_status_stamps_completion(self, client, api_task):
        response = client.put(f"/api/tasks/{api_task['id']}/status", json={'status': 'Done'})
        assert response.status_code == 200
        task = client.get(f"/api/tasks/{api_task['id']}").get_json()['task']
        assert task['completed_at'] is not None

    def test_status_is_required(self, client, api_task):
        response = client.put(f"/api/tasks/{api_task['id']}/status", json={'status': ' '})
        assert response.status_code == 400

    def test_subtask_and_search(self, client, api_task):
        response = client.post(f"/api/tasks/{api_task['id']}/subtasks", json={'title': 'Label cables'})
        assert response.status_code == 201
        sub_tasks = client.get(f"/api/tasks/{api_task['id']}/subtasks").get_json()['tasks']
        assert [t['title'] for t in sub_tasks] == ['Label cables']

        result = client.get('/api/tasks/search?searchTerm=label').get_json()
        assert result['total_count'] == 1


@pytest.mark.integration
class TestDailyTaskRoutes:
    """Tests for /api/daily-tasks"""

    def test_daily_task_lifecycle(self, client):
        created = client.post('/api/daily-tasks', json={'title': 'Timesheet', 'user_id': 4})
        assert created.status_code == 201
        task_id = created.get_json()['task']['id']

        assert client.put(f'/api/daily-tasks/{task_id}/status', json={'status': 'completed'}).status_code == 200
        tasks = client.get('/api/users/4/daily-tasks').get_json()['tasks']
        assert tasks[0]['completed_at'] is not None

        assert client.delete(f'/api/daily-tasks/{task_id}').status_code == 200
        assert client.get(f'/api/daily-tasks/{task_id}').status_code == 404

    def test_daily_task_requires_user(self, client):
        response = client.post('/api/daily-tasks', json={'title': 'Timesheet'})
        assert response.status_code == 400


@pytest.mark.integration
class TestCommentAndAttachmentRoutes:
    """Tests for /api/comments and /api/attachments"""

    def test_comment_on_task(self, client, api_task):
        response = client.post('/api/comments', json={
            'project_task_id': api_task['id'], 'content': 'Cable on site', 'author_id': 1
        })
        assert response.status_code == 201
        listing = client.get(f"/api/comments?projectTaskId={api_task['id']}").get_json()
        assert listing['total_count'] == 1

    def test_comment_with_two_references(self, client, api_task):
        daily = client.post('/api/daily-tasks', json={'title': 'Timesheet', 'user_id': 4}).get_json()['task']
        response = client.post('/api/comments', json={
            'project_task_id': api_task['id'],
            'daily_task_id': daily['id'],
            'content': 'Both',
            'author_id': 1
        })
        assert response.status_code == 400

    def test_attachment_with_bad_mime_type(self, client, api_task):
        response = client.post('/api/attachments', json={
            'project_task_id': api_task['id'],
            'file_name': 'setup.exe',
            'file_url': '/files/setup.exe',
            'mime_type': 'application/x-msdownload',
            'file_size': 100,
            'uploaded_by': 1
        })
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Invalid file type'

    def test_attachment_summary(self, client, api_task):
        response = client.post('/api/attachments', json={
            'project_task_id': api_task['id'],
            'file_name': 'plan.pdf',
            'file_url': '/files/plan.pdf',
            'mime_type': 'application/pdf',
            'file_size': 2048,
            'uploaded_by': 1
        })
        assert response.status_code == 201

        summary = client.get(f"/api/attachments?projectTaskId={api_task['id']}").get_json()
        assert summary['total_count'] == 1
        assert summary['total_size_formatted'] == '2.0 KB'


@pytest.mark.integration
class TestErrorEnvelope:
    """Tests for JSON errors and response headers"""

    def test_unknown_route_is_json_404(self, client):
        response = client.get('/api/nothing-here')
        assert response.status_code == 404
        data = response.get_json()
        assert data['success'] is False
        assert data['error'] == 'Not Found'

    def test_wrong_method_is_json_405(self, client):
        response = client.patch('/api/projects')
        assert response.status_code == 405
        assert response.get_json()['error'] == 'Method Not Allowed'

    def test_security_headers(self, client):
        response = client.get('/api/ping')
        assert response.headers['X-Content-Type-Options'] == 'nosniff'
        assert response.headers['X-Frame-Options'] == 'DENY'
        assert "default-src 'none'" in response.headers['Content-Security-Policy']
