# app/services/test_notification_service.py
import pytest

from app.models.notification import (
    NotificationType, NotificationContext, NotificationSender, SYSTEM_SENDER, DEFAULT_REJECTION_REASON
)
from app.models.user import UserDirectoryEntry
from app.services.notification_service import (
    NotificationService, DispatchResult, build_message, make_idempotency_key
)

ALICE = NotificationSender(user_id='u-alice', display_name='Alice', photo_url='https://example.com/alice.png')
POST_CONTEXT = NotificationContext(post_id='p1', post_title='Fire downtown', post_image='', summary='nice post')

@pytest.fixture
def service(db):
    return NotificationService(db=db, summary_length=10)

def _notifications(db, user_id):
    return [doc.to_dict() for doc in db.collection('users').document(user_id).collection('notifications').stream()]

def _profile(db, user_id):
    return db.collection('users').document(user_id).get().to_dict()


def test_build_message_fills_template():
    assert build_message(NotificationType.COMMENT, ALICE, POST_CONTEXT) == "commented on your post"
    assert build_message(NotificationType.TAGGED_IN_POST, ALICE, POST_CONTEXT) == "You were tagged in a post by Alice"

    rejected = NotificationContext(extra={'rejection_reason': 'Spam'})
    assert build_message(NotificationType.POST_REJECTED, SYSTEM_SENDER, rejected) == "Your post was rejected: Spam"
    assert build_message(NotificationType.POST_REJECTED, SYSTEM_SENDER, NotificationContext()) == \
        f"Your post was rejected: {DEFAULT_REJECTION_REASON}"

    tag_match = NotificationContext(extra={'matched_tags': ['fire', 'smoke'], 'distance': 1.5})
    assert build_message(NotificationType.TAG_MATCH, ALICE, tag_match) == \
        "created a post with your subscribed tags (fire, smoke) within 1.5km"

def test_idempotency_key_is_stable_per_event():
    key = make_idempotency_key('a', 'b', NotificationType.COMMENT, 'p1', 'c1', 'hello')
    assert key == make_idempotency_key('a', 'b', NotificationType.COMMENT, 'p1', 'c1', 'hello')
    assert key != make_idempotency_key('a', 'b', NotificationType.COMMENT, 'p1', 'c1', 'hello!')
    assert key != make_idempotency_key('a', 'c', NotificationType.COMMENT, 'p1', 'c1', 'hello')

def test_self_notification_is_suppressed(service, db, add_user):
    add_user('u-alice', 'Alice')

    results = service.dispatch(ALICE, ['u-alice'], NotificationType.COMMENT, POST_CONTEXT)

    assert results == {'u-alice': DispatchResult.SUPPRESSED}
    assert _notifications(db, 'u-alice') == []
    assert service.create_notification('u-alice', ALICE, NotificationType.LIKE, POST_CONTEXT) is None

def test_delivery_writes_record_and_recomputes_counter(service, db, add_user):
    add_user('u-bob', 'Bob', notification_count=0)

    for _ in range(3):
        service.create_notification('u-bob', ALICE, NotificationType.COMMENT, POST_CONTEXT)

    records = _notifications(db, 'u-bob')
    assert len(records) == 3
    record = records[0]
    assert record['type'] == 'comment'
    assert record['message'] == "commented on your post"
    assert record['triggering_user_id'] == 'u-alice'
    assert record['triggering_user_name'] == 'Alice'
    assert record['post_id'] == 'p1'
    assert record['read'] is False
    assert _profile(db, 'u-bob')['notification_count'] == 3

def test_counter_overwrites_stale_value(service, db, add_user):
    add_user('u-bob', 'Bob', notification_count=42)

    service.create_notification('u-bob', ALICE, NotificationType.LIKE, POST_CONTEXT)

    assert _profile(db, 'u-bob')['notification_count'] == 1

def test_summary_is_truncated(service, db, add_user):
    add_user('u-bob', 'Bob')
    context = NotificationContext(post_id='p1', summary='0123456789abcdef')

    service.create_notification('u-bob', ALICE, NotificationType.COMMENT, context)

    assert _notifications(db, 'u-bob')[0]['summary'] == '0123456789'

def test_missing_recipient_profile_is_created(service, db):
    service.create_notification('u-ghost', ALICE, NotificationType.LIKE, POST_CONTEXT)

    profile = _profile(db, 'u-ghost')
    assert profile['display_name'] == ''
    assert profile['notification_count'] == 1

def test_double_dispatch_creates_two_records(service, db, add_user):
    add_user('u-bob', 'Bob')

    service.dispatch(ALICE, ['u-bob'], NotificationType.COMMENT, POST_CONTEXT)
    service.dispatch(ALICE, ['u-bob'], NotificationType.COMMENT, POST_CONTEXT)

    assert len(_notifications(db, 'u-bob')) == 2
    assert _profile(db, 'u-bob')['notification_count'] == 2

def test_idempotent_dispatch_reports_duplicate(service, db, add_user):
    add_user('u-bob', 'Bob')

    first = service.dispatch(ALICE, ['u-bob'], NotificationType.COMMENT, POST_CONTEXT, idempotent=True)
    second = service.dispatch(ALICE, ['u-bob'], NotificationType.COMMENT, POST_CONTEXT, idempotent=True)

    assert first == {'u-bob': DispatchResult.DELIVERED}
    assert second == {'u-bob': DispatchResult.DUPLICATE}
    assert len(_notifications(db, 'u-bob')) == 1

def test_dispatch_dedups_recipients(service, db, add_user):
    add_user('u-bob', 'Bob')

    results = service.dispatch(ALICE, ['u-bob', 'u-bob', None, ''], NotificationType.MENTION, POST_CONTEXT)

    assert results == {'u-bob': DispatchResult.DELIVERED}
    assert len(_notifications(db, 'u-bob')) == 1

def test_failure_for_one_recipient_does_not_stop_others(service, db, add_user, monkeypatch):
    add_user('u-bob', 'Bob')
    add_user('u-carol', 'Carol')
    original = service.ensure_profile

    def flaky_ensure_profile(user_id, defaults=None):
        if user_id == 'u-bob':
            raise RuntimeError("write failed")
        return original(user_id, defaults)

    monkeypatch.setattr(service, 'ensure_profile', flaky_ensure_profile)

    results = service.dispatch(ALICE, ['u-bob', 'u-carol'], NotificationType.MENTION, POST_CONTEXT)

    assert results == {'u-bob': DispatchResult.FAILED, 'u-carol': DispatchResult.DELIVERED}
    assert _notifications(db, 'u-bob') == []
    assert len(_notifications(db, 'u-carol')) == 1
    assert service.create_notification('u-bob', ALICE, NotificationType.LIKE, POST_CONTEXT) is None

def test_notify_mentions_skips_already_notified(service, db, add_user):
    add_user('u-bob', 'Bob')
    add_user('u-carol', 'Carol')
    directory = [UserDirectoryEntry('u-alice', 'Alice'), UserDirectoryEntry('u-bob', 'Bob'), UserDirectoryEntry('u-carol', 'Carol')]

    notified = service.notify_mentions(ALICE, "@bob @carol @alice @bob", directory,
                                       NotificationType.MENTION, POST_CONTEXT, notified={'u-bob'})

    assert notified == {'u-bob', 'u-carol'}
    assert _notifications(db, 'u-bob') == []
    assert [n['type'] for n in _notifications(db, 'u-carol')] == ['mention']
    assert _notifications(db, 'u-alice') == []

def test_mark_as_read_and_mark_all(service, db, add_user):
    add_user('u-bob', 'Bob')
    ids = [service.create_notification('u-bob', ALICE, NotificationType.LIKE, POST_CONTEXT) for _ in range(3)]

    assert service.mark_as_read('u-bob', ids[0]) == 2
    assert _profile(db, 'u-bob')['notification_count'] == 2

    assert service.mark_all_as_read('u-bob') == 0
    assert all(n['read'] for n in _notifications(db, 'u-bob'))
    assert _profile(db, 'u-bob')['notification_count'] == 0

    with pytest.raises(ValueError):
        service.mark_as_read('u-bob', 'missing')

def test_delete_all_drives_counter_to_zero(service, db, add_user):
    add_user('u-bob', 'Bob')
    for _ in range(4):
        service.create_notification('u-bob', ALICE, NotificationType.COMMENT, POST_CONTEXT)

    assert service.delete_all_notifications('u-bob') == 4
    assert _notifications(db, 'u-bob') == []
    assert _profile(db, 'u-bob')['notification_count'] == 0

def test_delete_notification(service, db, add_user):
    add_user('u-bob', 'Bob')
    first = service.create_notification('u-bob', ALICE, NotificationType.LIKE, POST_CONTEXT)
    service.create_notification('u-bob', ALICE, NotificationType.LIKE, POST_CONTEXT)

    assert service.delete_notification('u-bob', first) == 1
    with pytest.raises(ValueError):
        service.delete_notification('u-bob', first)

def test_open_notification_returns_post_and_removes_record(service, db, add_user):
    add_user('u-bob', 'Bob')
    notification_id = service.create_notification('u-bob', ALICE, NotificationType.COMMENT, POST_CONTEXT)

    assert service.open_notification('u-bob', notification_id) == 'p1'
    assert _notifications(db, 'u-bob') == []
    assert _profile(db, 'u-bob')['notification_count'] == 0

def test_get_notifications_paginates(service, add_user):
    add_user('u-bob', 'Bob')
    for _ in range(3):
        service.create_notification('u-bob', ALICE, NotificationType.LIKE, POST_CONTEXT)

    first_page, cursor = service.get_notifications('u-bob', limit=2)
    assert len(first_page) == 2
    assert cursor == first_page[-1]['notification_id']

    second_page, next_cursor = service.get_notifications('u-bob', limit=2, cursor=cursor)
    assert len(second_page) == 1
    assert next_cursor is None
    page_ids = {n['notification_id'] for n in first_page + second_page}
    assert len(page_ids) == 3

def test_discard_notification_never_raises(service, add_user):
    add_user('u-bob', 'Bob')
    service.discard_notification('u-bob', None)
    service.discard_notification('u-bob', 'does-not-exist')

def test_empty_page_has_no_cursor(service, add_user):
    add_user('u-bob', 'Bob')
    service.create_notification('u-bob', ALICE, NotificationType.LIKE, POST_CONTEXT)

    assert service.get_notifications('u-bob', limit=0) == ([], None)
