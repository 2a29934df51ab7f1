"""
Tests for sub-tasks, task search and task statistics
"""
import pytest

from services.errors import InvalidOperationError

PAST = '2020-01-01T00:00:00'
FUTURE = '2999-01-01T00:00:00'


@pytest.mark.unit
class TestSubTasks:
    """Tests for the task hierarchy"""

    def test_create_sub_task_inherits_project_and_column(self, make_task, task_repo, project, columns):
        parent = make_task('Parent', column_id=columns[1])
        child = task_repo.create_sub_task(parent['id'], {'title': 'Child'})
        assert child['project_id'] == project['id']
        assert child['column_id'] == columns[1]
        assert child['parent_task_id'] == parent['id']

        fetched = task_repo.get_task(parent['id'])
        assert [s['id'] for s in fetched['sub_tasks']] == [child['id']]

    def test_create_sub_task_of_missing_parent(self, task_repo):
        with pytest.raises(InvalidOperationError):
            task_repo.create_sub_task(999, {'title': 'Orphan'})

    def test_deleted_sub_tasks_are_hidden(self, make_task, task_repo):
        parent = make_task('Parent')
        child = task_repo.create_sub_task(parent['id'], {'title': 'Child'})
        task_repo.delete_task(child['id'])
        assert task_repo.get_task(parent['id'])['sub_tasks'] == []
        assert task_repo.get_sub_tasks(parent['id']) == []

    def test_convert_to_sub_task_and_back(self, make_task, task_repo):
        parent = make_task('Parent')
        task = make_task('Loose')

        assert task_repo.convert_to_sub_task(task['id'], parent['id']) is True
        assert task_repo.get_task(task['id'])['parent_task_id'] == parent['id']

        assert task_repo.convert_to_standalone_task(task['id']) is True
        assert task_repo.get_task(task['id'])['parent_task_id'] is None

    def test_convert_across_projects_is_refused(self, make_task, task_repo, project_repo, sample_project_data):
        other = project_repo.create_project(dict(sample_project_data, name='Other'))
        foreign = task_repo.create_task({
            'title': 'Foreign', 'project_id': other['id'], 'column_id': other['columns'][0]['id']
        })
        task = make_task('Local')
        assert task_repo.convert_to_sub_task(task['id'], foreign['id']) is False
        assert task_repo.convert_to_sub_task(999, task['id']) is False

    def test_cycles_are_rejected(self, make_task, task_repo):
        grandparent = make_task('Grandparent')
        parent = task_repo.create_sub_task(grandparent['id'], {'title': 'Parent'})
        child = task_repo.create_sub_task(parent['id'], {'title': 'Child'})

        with pytest.raises(InvalidOperationError):
            task_repo.convert_to_sub_task(grandparent['id'], child['id'])
        with pytest.raises(InvalidOperationError):
            task_repo.convert_to_sub_task(parent['id'], parent['id'])
        with pytest.raises(InvalidOperationError):
            task_repo.update_task(grandparent['id'], {'parent_task_id': parent['id']})

    def test_task_hierarchy_nests_one_level(self, make_task, task_repo):
        root = make_task('Root')
        child = task_repo.create_sub_task(root['id'], {'title': 'Child'})
        grandchild = task_repo.create_sub_task(child['id'], {'title': 'Grandchild'})

        hierarchy = task_repo.get_task_hierarchy(root['id'])
        assert [t['id'] for t in hierarchy] == [child['id']]
        assert [t['id'] for t in hierarchy[0]['sub_tasks']] == [grandchild['id']]


@pytest.mark.unit
class TestTaskSearch:
    """Tests for task search and filtered listings"""

    def test_search_by_term_matches_title_and_description(self, make_task, task_repo):
        make_task('Install lights')
        make_task('Order parts', description='LIGHTS for level 2')
        make_task('Unrelated')

        result = task_repo.search_tasks({'search_term': 'light'})
        assert result['total_count'] == 2
        assert result['daily_tasks'] == []

    def test_search_is_newest_first(self, make_task, task_repo):
        older = make_task('Older')
        newer = make_task('Newer')
        ids = [t['id'] for t in task_repo.search_tasks()['project_tasks']]
        assert ids == [newer['id'], older['id']]

    def test_search_filters_combine(self, make_task, task_repo, project):
        make_task('A', priority='high', assignee_id=4)
        make_task('B', priority='high')
        make_task('C', priority='low', assignee_id=4)

        result = task_repo.search_tasks({'priority': 'high', 'assignee_id': 4, 'project_id': project['id']})
        assert [t['title'] for t in result['project_tasks']] == ['A']

    def test_search_pagination(self, make_task, task_repo):
        for i in range(5):
            make_task(f'Task {i}')

        first_page = task_repo.search_tasks({}, page_number=1, page_size=2)
        assert len(first_page['project_tasks']) == 2
        assert first_page['has_next_page'] is True
        assert first_page['has_previous_page'] is False

        last_page = task_repo.search_tasks({}, page_number=3, page_size=2)
        assert len(last_page['project_tasks']) == 1
        assert last_page['has_next_page'] is False
        assert last_page['has_previous_page'] is True

    def test_overdue_tasks(self, make_task, task_repo):
        late = make_task('Late', due_date=PAST)
        make_task('On time', due_date=FUTURE)
        make_task('Late but done', due_date=PAST, status='done')
        make_task('No due date')

        assert [t['id'] for t in task_repo.get_overdue_tasks()] == [late['id']]

    def test_tasks_by_contact(self, make_task, task_repo):
        task = make_task('For client', contact_id=77)
        make_task('Internal')
        assert [t['id'] for t in task_repo.get_tasks_by_contact(77)] == [task['id']]


@pytest.mark.unit
class TestTaskStatistics:
    """Tests for counts and completion figures"""

    def test_status_counts(self, make_task, task_repo, project):
        make_task('A')
        make_task('B')
        make_task('C', status='done')
        assert task_repo.get_task_status_counts(project['id']) == {'todo': 2, 'done': 1}

    def test_completion_percentage(self, make_task, task_repo, project):
        assert task_repo.get_task_completion_percentage(project['id']) == 0.0
        make_task('A', status='done')
        make_task('B', status='done')
        make_task('C')
        assert task_repo.get_task_completion_percentage(project['id']) == 66.67

    def test_user_counts_include_daily_tasks(self, make_task, task_repo):
        make_task('Assigned', assignee_id=7)
        make_task('Assigned late', assignee_id=7, due_date=PAST)
        task_repo.create_daily_task({'title': 'Daily', 'user_id': 7, 'due_date': PAST})

        assert task_repo.get_user_task_status_counts(7) == {'todo': 3}
        assert task_repo.get_user_overdue_task_count(7) == 2

    def test_serialized_tasks_carry_child_counts(self, make_task, task_repo, comment_repo, attachment_repo):
        task = make_task('Busy')
        comment_repo.create_comment({'project_task_id': task['id'], 'content': 'Hi', 'author_id': 1})
        comment_repo.create_comment({'project_task_id': task['id'], 'content': 'Again', 'author_id': 2})
        attachment_repo.create_attachment({
            'project_task_id': task['id'], 'file_name': 'plan.pdf', 'file_url': '/files/plan.pdf',
            'mime_type': 'application/pdf', 'file_size': 2048, 'uploaded_by': 1
        })

        fetched = task_repo.get_task(task['id'])
        assert fetched['comments_count'] == 2
        assert fetched['attachments_count'] == 1


@pytest.mark.unit
class TestTaskChecks:
    """Tests for membership and access checks"""

    def test_belongs_to(self, make_task, task_repo, project, columns):
        task = make_task('Here')
        assert task_repo.task_belongs_to_project(task['id'], project['id']) is True
        assert task_repo.task_belongs_to_column(task['id'], columns[0]) is True
        assert task_repo.task_belongs_to_column(task['id'], columns[1]) is False

    def test_user_can_access_task(self, make_task, task_repo):
        task = make_task('Shared', assignee_id=40)
        assert task_repo.user_can_access_task(task['id'], 1) is True    # owner
        assert task_repo.user_can_access_task(task['id'], 3) is True    # team member
        assert task_repo.user_can_access_task(task['id'], 40) is True   # assignee
        assert task_repo.user_can_access_task(task['id'], 41) is False

    def test_daily_task_access_is_owner_only(self, task_repo, daily_task):
        assert task_repo.user_can_access_task(daily_task['id'], 7, is_project_task=False) is True
        assert task_repo.user_can_access_task(daily_task['id'], 1, is_project_task=False) is False
