"""
Tests for board column operations
"""
import pytest

from database.models import ProjectTask
from services.errors import InvalidOperationError


@pytest.mark.unit
class TestColumnReads:
    """Tests for listing and looking up columns"""

    def test_new_project_has_default_columns(self, column_repo, project):
        result = column_repo.list_columns(project['id'])
        titles = [c['title'] for c in result['columns']]
        assert titles == ['To Do', 'In Progress', 'Review', 'Done']
        assert [c['position'] for c in result['columns']] == [1, 2, 3, 4]
        assert result['total_count'] == 4
        assert all(c['is_default'] for c in result['columns'])

    def test_list_columns_includes_live_task_counts(self, column_repo, task_repo, project, columns, make_task):
        make_task('A')
        doomed = make_task('B')
        task_repo.delete_task(doomed['id'])

        counts = {c['id']: c['task_count'] for c in column_repo.list_columns(project['id'])['columns']}
        assert counts[columns[0]] == 1
        assert counts[columns[1]] == 0

    def test_get_missing_column_returns_none(self, column_repo):
        assert column_repo.get_column(999) is None

    def test_next_column_position(self, column_repo, project):
        assert column_repo.get_next_column_position(project['id']) == 5
        assert column_repo.get_next_column_position(12345) == 1

    def test_column_belongs_to_project(self, column_repo, project, columns):
        assert column_repo.column_belongs_to_project(columns[0], project['id']) is True
        assert column_repo.column_belongs_to_project(columns[0], project['id'] + 1) is False

    def test_default_templates(self, column_repo):
        templates = column_repo.get_default_column_templates()
        assert [t['color'] for t in templates] == ['#64748b', '#3b82f6', '#f59e0b', '#10b981']
        assert all(t['is_default'] for t in templates)

    def test_user_can_manage_columns(self, column_repo, project):
        assert column_repo.user_can_manage_columns(project['id'], 1) is True   # owner
        assert column_repo.user_can_manage_columns(project['id'], 2) is True   # team member
        assert column_repo.user_can_manage_columns(project['id'], 99) is False


@pytest.mark.unit
class TestColumnMutations:
    """Tests for creating and updating columns"""

    def test_create_column_appends(self, column_repo, project):
        column = column_repo.create_column({'project_id': project['id'], 'title': 'Blocked'})
        assert column['position'] == 5
        assert column['color'] == '#3b82f6'
        assert column['task_count'] == 0

    def test_create_column_with_explicit_position(self, column_repo, project):
        column = column_repo.create_column({
            'project_id': project['id'], 'title': 'Backlog', 'position': 2, 'color': '#000000'
        })
        assert column['position'] == 2
        assert column['color'] == '#000000'

    def test_create_column_for_missing_project(self, column_repo):
        with pytest.raises(InvalidOperationError, match='Project not found'):
            column_repo.create_column({'project_id': 404, 'title': 'Nowhere'})

    def test_update_column_is_partial(self, column_repo, columns):
        updated = column_repo.update_column(columns[0], {'title': 'Backlog'})
        assert updated['title'] == 'Backlog'
        assert updated['color'] == '#64748b'
        assert updated['position'] == 1

    def test_update_missing_column(self, column_repo):
        assert column_repo.update_column(999, {'title': 'x'}) is None

    def test_reorder_columns(self, column_repo, project, columns):
        column_repo.reorder_columns(project['id'], [
            {'id': columns[0], 'position': 4},
            {'id': columns[3], 'position': 1},
        ])
        ordered = [c['id'] for c in column_repo.list_columns(project['id'])['columns']]
        assert ordered[0] == columns[3]
        assert ordered[-1] == columns[0]

    def test_bulk_update_colors_counts_existing_columns(self, column_repo, columns):
        updated = column_repo.bulk_update_column_colors({columns[0]: '#111111', 999: '#222222'})
        assert updated == 1
        assert column_repo.get_column(columns[0])['color'] == '#111111'


@pytest.mark.unit
class TestColumnDeletion:
    """Tests for deleting columns and the fate of their tasks"""

    def test_delete_moves_tasks_to_end_of_target(self, column_repo, task_repo, columns, make_task):
        existing = make_task('Already there', column_id=columns[1])
        first = make_task('First')
        second = make_task('Second')

        assert column_repo.delete_column(columns[0], columns[1]) is True

        moved = task_repo.list_column_tasks(columns[1])
        assert [t['id'] for t in moved] == [existing['id'], first['id'], second['id']]
        assert [t['position'] for t in moved] == [1, 2, 3]
        assert column_repo.column_exists(columns[0]) is False

    def test_delete_without_target_soft_deletes_tasks(self, column_repo, task_repo, session, columns, make_task):
        task = make_task('Goes away')

        assert column_repo.delete_column(columns[0]) is True

        assert task_repo.task_exists(task['id']) is False
        row = session.get(ProjectTask, task['id'])
        assert row.is_deleted is True
        assert row.column_id is None

    def test_delete_clears_column_of_previously_deleted_tasks(self, column_repo, task_repo, session,
                                                              columns, make_task):
        old = make_task('Deleted earlier')
        task_repo.delete_task(old['id'])

        column_repo.delete_column(columns[0], columns[1])

        assert session.get(ProjectTask, old['id']).column_id is None

    def test_delete_with_foreign_target_changes_nothing(self, column_repo, project_repo, task_repo,
                                                        columns, make_task, sample_project_data):
        task = make_task('Stays')
        other = project_repo.create_project(dict(sample_project_data, name='Other'))

        with pytest.raises(InvalidOperationError):
            column_repo.delete_column(columns[0], other['columns'][0]['id'])

        assert column_repo.column_exists(columns[0]) is True
        assert task_repo.get_task(task['id'])['column_id'] == columns[0]

    def test_delete_missing_column(self, column_repo):
        assert column_repo.delete_column(999) is False

    def test_last_column_cannot_be_deleted(self, column_repo, columns):
        for column_id in columns[1:]:
            assert column_repo.can_delete_column(column_id) is True
            column_repo.delete_column(column_id)
        assert column_repo.can_delete_column(columns[0]) is False

    def test_bulk_delete_columns(self, column_repo, task_repo, project, columns, make_task):
        task = make_task('Survivor', column_id=columns[1])

        column_repo.bulk_delete_columns([columns[1], columns[2]], columns[0])

        remaining = [c['id'] for c in column_repo.list_columns(project['id'])['columns']]
        assert remaining == [columns[0], columns[3]]
        assert task_repo.get_task(task['id'])['column_id'] == columns[0]

    def test_bulk_delete_refuses_to_empty_a_project(self, column_repo, task_repo, project, columns, make_task):
        task = make_task('Stays put', column_id=columns[2])

        with pytest.raises(InvalidOperationError):
            column_repo.bulk_delete_columns(list(columns))

        remaining = [c['id'] for c in column_repo.list_columns(project['id'])['columns']]
        assert remaining == list(columns)
        assert task_repo.get_task(task['id'])['column_id'] == columns[2]

    def test_bulk_delete_may_leave_one_column(self, column_repo, project, columns):
        column_repo.bulk_delete_columns(list(columns[1:]))
        remaining = [c['id'] for c in column_repo.list_columns(project['id'])['columns']]
        assert remaining == [columns[0]]
