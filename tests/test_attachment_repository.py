"""
Tests for task attachment metadata
"""
import pytest

from database.models import TaskAttachment
from services.attachment_repository import AttachmentRepository
from services.errors import InvalidOperationError


@pytest.fixture
def task(make_task):
    return make_task('Has files')


def _attachment(attachment_repo, task_id, **fields):
    data = {
        'project_task_id': task_id,
        'file_name': 'plan.pdf',
        'file_url': '/files/plan.pdf',
        'mime_type': 'application/pdf',
        'file_size': 2048,
        'uploaded_by': 1,
    }
    data.update(fields)
    return attachment_repo.create_attachment(data)


@pytest.mark.unit
class TestCreateAttachment:
    """Tests for attachment validation"""

    def test_create(self, attachment_repo, task):
        attachment = _attachment(attachment_repo, task['id'], caption='Ground floor')
        assert attachment['file_size_formatted'] == '2.0 KB'
        assert attachment['is_document'] is True
        assert attachment['is_image'] is False
        assert attachment['task_title'] == 'Has files'
        assert attachment['caption'] == 'Ground floor'

    def test_file_name_is_sanitized(self, attachment_repo, task):
        attachment = _attachment(attachment_repo, task['id'], file_name='../../etc/passwd.pdf')
        assert attachment['file_name'] == 'etc_passwd.pdf'
        assert attachment['original_file_name'] == '../../etc/passwd.pdf'

    def test_rejects_unknown_mime_type(self, attachment_repo, task):
        with pytest.raises(InvalidOperationError, match='Invalid file type'):
            _attachment(attachment_repo, task['id'], mime_type='application/x-msdownload')

    @pytest.mark.parametrize('size', [0, -1, 10 * 1024 * 1024 + 1])
    def test_rejects_bad_sizes(self, attachment_repo, task, size):
        with pytest.raises(InvalidOperationError, match='10MB'):
            _attachment(attachment_repo, task['id'], file_size=size)

    def test_rejected_attachments_are_not_stored(self, attachment_repo, session, task):
        with pytest.raises(InvalidOperationError):
            _attachment(attachment_repo, task['id'], mime_type='application/x-msdownload')
        with pytest.raises(InvalidOperationError):
            _attachment(attachment_repo, task['id'], file_size=11_000_000)
        with pytest.raises(InvalidOperationError):
            _attachment(attachment_repo, None)
        assert session.query(TaskAttachment).count() == 0

    def test_icon_follows_mime_type(self, attachment_repo, task):
        assert _attachment(attachment_repo, task['id'])['file_type_icon'] == 'pdf'
        photo = _attachment(attachment_repo, task['id'], file_name='site.png', mime_type='image/png')
        assert photo['file_type_icon'] == 'image'

    def test_accepts_exact_limit(self, attachment_repo, task):
        attachment = _attachment(attachment_repo, task['id'], file_size=10 * 1024 * 1024)
        assert attachment['file_size_formatted'] == '10.0 MB'

    def test_configurable_limit(self, session, task):
        repo = AttachmentRepository(session, max_file_size=1024 * 1024)
        with pytest.raises(InvalidOperationError, match='1MB'):
            _attachment(repo, task['id'], file_size=2 * 1024 * 1024)

    def test_requires_exactly_one_task(self, attachment_repo, task, daily_task):
        with pytest.raises(InvalidOperationError, match='Exactly one'):
            _attachment(attachment_repo, task['id'], daily_task_id=daily_task['id'])
        with pytest.raises(InvalidOperationError, match='Exactly one'):
            _attachment(attachment_repo, None)

    def test_daily_task_attachment(self, attachment_repo, daily_task):
        attachment = _attachment(attachment_repo, None, daily_task_id=daily_task['id'],
                                 mime_type='image/png', file_name='shot.png')
        assert attachment['daily_task_id'] == daily_task['id']
        assert attachment['is_image'] is True


@pytest.mark.unit
class TestAttachmentQueries:
    """Tests for listing and totals"""

    def test_list_carries_total_size(self, attachment_repo, task):
        _attachment(attachment_repo, task['id'], file_size=1024)
        _attachment(attachment_repo, task['id'], file_size=2048)

        result = attachment_repo.list_task_attachments(project_task_id=task['id'], page_size=1)
        assert len(result['attachments']) == 1
        assert result['total_count'] == 2
        assert result['total_size'] == 3072
        assert result['total_size_formatted'] == '3.0 KB'

    def test_list_is_newest_first(self, attachment_repo, task):
        first = _attachment(attachment_repo, task['id'])
        second = _attachment(attachment_repo, task['id'])
        ids = [a['id'] for a in attachment_repo.list_task_attachments(project_task_id=task['id'])['attachments']]
        assert ids == [second['id'], first['id']]

    def test_image_and_document_filters(self, attachment_repo, task):
        _attachment(attachment_repo, task['id'], mime_type='image/jpeg', file_name='a.jpg')
        _attachment(attachment_repo, task['id'])

        assert attachment_repo.get_image_attachments(project_task_id=task['id'])['total_count'] == 1
        assert attachment_repo.get_document_attachments(project_task_id=task['id'])['total_count'] == 1
        assert attachment_repo.get_attachments_by_type('image/jpeg')['total_count'] == 1

    def test_search_attachments(self, attachment_repo, task):
        _attachment(attachment_repo, task['id'], caption='Switchboard photo',
                    mime_type='image/png', file_name='sb.png')
        _attachment(attachment_repo, task['id'], caption='Quote')

        result = attachment_repo.search_attachments({'search_term': 'switch', 'is_image': True})
        assert [a['caption'] for a in result['attachments']] == ['Switchboard photo']

    def test_upload_statistics(self, attachment_repo, task, make_task):
        other = make_task('Other')
        _attachment(attachment_repo, task['id'], file_size=1000, uploaded_by=4)
        _attachment(attachment_repo, task['id'], file_size=500, uploaded_by=4)
        _attachment(attachment_repo, task['id'], file_size=100, uploaded_by=5)

        assert attachment_repo.get_user_upload_count(4) == 2
        assert attachment_repo.get_user_upload_size(4) == 1500
        assert attachment_repo.get_user_upload_count(4, from_date='2999-01-01') == 0
        assert attachment_repo.get_total_attachments_size() == 1600
        assert attachment_repo.get_task_attachments_total_size(project_task_id=task['id']) == 1600
        assert attachment_repo.get_task_attachment_counts([task['id'], other['id']]) == {task['id']: 3}
        assert attachment_repo.get_attachments_by_uploader(5)['total_count'] == 1


@pytest.mark.unit
class TestAttachmentChanges:
    """Tests for editing, deleting and cleaning up attachments"""

    def test_update_only_touches_name_and_caption(self, attachment_repo, task):
        attachment = _attachment(attachment_repo, task['id'])
        updated = attachment_repo.update_attachment(attachment['id'], {
            'original_file_name': 'Floor plan.pdf',
            'caption': 'Revised',
            'file_url': '/elsewhere',
            'file_size': 1
        })
        assert updated['original_file_name'] == 'Floor plan.pdf'
        assert updated['caption'] == 'Revised'
        assert updated['file_url'] == '/files/plan.pdf'
        assert updated['file_size'] == 2048

    def test_delete_is_soft(self, attachment_repo, task):
        attachment = _attachment(attachment_repo, task['id'])
        assert attachment_repo.delete_attachment(attachment['id']) is True
        assert attachment_repo.get_attachment(attachment['id']) is None
        assert attachment_repo.attachment_exists(attachment['id']) is False
        assert attachment_repo.delete_attachment(attachment['id']) is False

    def test_bulk_and_task_wide_delete(self, attachment_repo, task):
        ids = [_attachment(attachment_repo, task['id'])['id'] for _ in range(3)]
        assert attachment_repo.bulk_delete_attachments([ids[0], 999]) == 1
        assert attachment_repo.delete_all_task_attachments(project_task_id=task['id']) == 2
        assert attachment_repo.get_task_attachment_count(project_task_id=task['id']) == 0

    def test_cleanup_orphaned(self, attachment_repo, task_repo, task, make_task):
        keeper = make_task('Keeper')
        _attachment(attachment_repo, task['id'])
        kept = _attachment(attachment_repo, keeper['id'])
        task_repo.delete_task(task['id'])

        assert attachment_repo.cleanup_orphaned_attachments() == 1
        assert attachment_repo.attachment_exists(kept['id']) is True
        assert attachment_repo.cleanup_orphaned_attachments() == 0

    def test_only_uploader_can_edit(self, attachment_repo, task):
        attachment = _attachment(attachment_repo, task['id'], uploaded_by=9)
        assert attachment_repo.user_can_edit_attachment(attachment['id'], 9) is True
        assert attachment_repo.user_can_edit_attachment(attachment['id'], 1) is False
