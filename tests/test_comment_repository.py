"""
Tests for task comments
"""
from datetime import timedelta

import pytest

from database.models import TaskComment
from services.errors import InvalidOperationError


@pytest.fixture
def task(make_task):
    return make_task('Discussed')


def _comment(comment_repo, task_id, content='Looks good', author_id=1, **fields):
    data = {'project_task_id': task_id, 'content': content, 'author_id': author_id}
    data.update(fields)
    return comment_repo.create_comment(data)


@pytest.mark.unit
class TestCreateComment:
    """Tests for the task reference rules"""

    def test_create_on_project_task(self, comment_repo, task):
        comment = _comment(comment_repo, task['id'], author_name='Alex')
        assert comment['project_task_id'] == task['id']
        assert comment['daily_task_id'] is None
        assert comment['task_title'] == 'Discussed'
        assert comment['author_name'] == 'Alex'
        assert comment['is_edited'] is False

    def test_create_on_daily_task(self, comment_repo, daily_task):
        comment = comment_repo.create_comment({
            'daily_task_id': daily_task['id'], 'content': 'Remember', 'author_id': 7
        })
        assert comment['daily_task_id'] == daily_task['id']
        assert comment['task_title'] == 'Inbox zero'

    def test_requires_exactly_one_task(self, comment_repo, task, daily_task):
        with pytest.raises(InvalidOperationError, match='Exactly one'):
            comment_repo.create_comment({'content': 'Nowhere', 'author_id': 1})
        with pytest.raises(InvalidOperationError, match='Exactly one'):
            comment_repo.create_comment({
                'project_task_id': task['id'], 'daily_task_id': daily_task['id'],
                'content': 'Both', 'author_id': 1
            })

    def test_rejected_comment_is_not_stored(self, comment_repo, session, task, daily_task):
        for references in ({}, {'project_task_id': task['id'], 'daily_task_id': daily_task['id']}):
            with pytest.raises(InvalidOperationError):
                comment_repo.create_comment(dict(references, content='Nope', author_id=1))
        assert session.query(TaskComment).count() == 0

    def test_deleted_task_cannot_be_commented(self, comment_repo, task_repo, task):
        task_repo.delete_task(task['id'])
        with pytest.raises(InvalidOperationError, match='Project task not found'):
            _comment(comment_repo, task['id'])


@pytest.mark.unit
class TestCommentQueries:
    """Tests for listing, paging and counting comments"""

    def test_list_is_newest_first(self, comment_repo, task):
        ids = [_comment(comment_repo, task['id'], f'#{i}')['id'] for i in range(3)]
        result = comment_repo.list_task_comments(project_task_id=task['id'])
        assert [c['id'] for c in result['comments']] == list(reversed(ids))
        assert result['total_count'] == 3

    def test_list_pagination(self, comment_repo, task):
        for i in range(3):
            _comment(comment_repo, task['id'], f'#{i}')
        page = comment_repo.list_task_comments(project_task_id=task['id'], page_number=2, page_size=2)
        assert len(page['comments']) == 1
        assert page['has_previous_page'] is True
        assert page['has_next_page'] is False

    def test_search_comments(self, comment_repo, task):
        _comment(comment_repo, task['id'], 'Cable run is done', author_id=1)
        _comment(comment_repo, task['id'], 'cable tray ordered', author_id=2)
        _comment(comment_repo, task['id'], 'Nothing to see', author_id=1)

        result = comment_repo.search_comments({'search_term': 'CABLE', 'author_id': 1})
        assert [c['content'] for c in result['comments']] == ['Cable run is done']

    def test_recent_comments_by_project(self, comment_repo, task, task_repo, project_repo, sample_project_data):
        other = project_repo.create_project(dict(sample_project_data, name='Other'))
        foreign = task_repo.create_task({
            'title': 'Foreign', 'project_id': other['id'], 'column_id': other['columns'][0]['id']
        })
        _comment(comment_repo, task['id'], 'Mine')
        _comment(comment_repo, foreign['id'], 'Theirs')

        result = comment_repo.get_recent_comments(project_id=task['project_id'])
        assert [c['content'] for c in result['comments']] == ['Mine']

    def test_counts(self, comment_repo, task, make_task):
        quiet = make_task('Quiet')
        _comment(comment_repo, task['id'])
        _comment(comment_repo, task['id'], author_id=2)

        assert comment_repo.get_task_comment_count(project_task_id=task['id']) == 2
        assert comment_repo.get_task_comment_counts([task['id'], quiet['id']]) == {task['id']: 2}
        assert comment_repo.get_user_comment_count(2) == 1
        assert comment_repo.get_user_comment_count(1, from_date='2999-01-01') == 0

    def test_most_recent_and_by_author(self, comment_repo, task):
        _comment(comment_repo, task['id'], 'first', author_id=5)
        _comment(comment_repo, task['id'], 'second', author_id=6)
        assert [c['content'] for c in comment_repo.get_most_recent_comments(1)] == ['second']
        assert comment_repo.get_comments_by_author(5)['total_count'] == 1


@pytest.mark.unit
class TestCommentChanges:
    """Tests for editing and deleting comments"""

    def test_update_changes_content_only(self, comment_repo, task):
        comment = _comment(comment_repo, task['id'], author_id=3)
        updated = comment_repo.update_comment(comment['id'], {'content': 'Edited', 'author_id': 99})
        assert updated['content'] == 'Edited'
        assert updated['author_id'] == 3

    def test_is_edited_after_a_minute(self, comment_repo, session, task):
        comment = _comment(comment_repo, task['id'])
        row = session.get(TaskComment, comment['id'])
        row.updated_at = row.created_at + timedelta(minutes=2)
        assert row.to_dict()['is_edited'] is True

    def test_update_missing_comment(self, comment_repo):
        assert comment_repo.update_comment(999, {'content': 'x'}) is None

    def test_delete_is_soft(self, comment_repo, task):
        comment = _comment(comment_repo, task['id'])
        assert comment_repo.delete_comment(comment['id']) is True
        assert comment_repo.get_comment(comment['id']) is None
        assert comment_repo.comment_exists(comment['id']) is False
        assert comment_repo.delete_comment(comment['id']) is False

    def test_bulk_and_task_wide_delete(self, comment_repo, task):
        ids = [_comment(comment_repo, task['id'], f'#{i}')['id'] for i in range(4)]
        assert comment_repo.bulk_delete_comments(ids[:2] + [999]) == 2
        assert comment_repo.delete_all_task_comments(project_task_id=task['id']) == 2
        assert comment_repo.delete_all_task_comments() == 0
        assert comment_repo.get_task_comment_count(project_task_id=task['id']) == 0

    def test_only_author_can_edit(self, comment_repo, task):
        comment = _comment(comment_repo, task['id'], author_id=3)
        assert comment_repo.user_can_edit_comment(comment['id'], 3) is True
        assert comment_repo.user_can_edit_comment(comment['id'], 4) is False
