# app/api/notifications/test_routes.py
import pytest

from app.models.notification import NotificationType, NotificationContext, NotificationSender

ALICE = NotificationSender(user_id='u-alice', display_name='Alice')

@pytest.fixture
def notify(app, add_user):
    add_user('u-alice', 'Alice')
    add_user('u-bob', 'Bob')
    service = app.services['notifications']

    def _notify(post_id='p1', n_type=NotificationType.COMMENT):
        return service.create_notification('u-bob', ALICE, n_type, NotificationContext(post_id=post_id, summary='hello'))
    return _notify

def test_list_notifications(client, auth_headers, notify):
    for post_id in ('p1', 'p2', 'p3'):
        notify(post_id)

    response = client.get('/api/notifications?limit=2', headers=auth_headers('u-bob'))

    body = response.get_json()
    assert response.status_code == 200
    assert len(body['notifications']) == 2
    assert body['next_cursor'] == body['notifications'][-1]['notification_id']
    assert body['notifications'][0]['type'] == 'comment'
    assert body['notifications'][0]['read'] is False

    rest = client.get(f"/api/notifications?limit=2&cursor={body['next_cursor']}", headers=auth_headers('u-bob')).get_json()
    assert len(rest['notifications']) == 1
    assert rest['next_cursor'] is None

@pytest.mark.parametrize('limit', [0, -1, 101])
def test_list_notifications_rejects_out_of_range_limit(client, auth_headers, notify, limit):
    notify()

    response = client.get(f'/api/notifications?limit={limit}', headers=auth_headers('u-bob'))

    assert response.status_code == 400
    assert response.get_json()['error_code'] == 'INVALID_PARAMETERS'

def test_unread_count_and_read(client, auth_headers, notify):
    first = notify()
    notify()
    headers = auth_headers('u-bob')

    assert client.get('/api/notifications/unread-count', headers=headers).get_json() == {'unread_count': 2}
    assert client.post(f'/api/notifications/{first}/read', headers=headers).get_json() == {'unread_count': 1}
    assert client.post('/api/notifications/read-all', headers=headers).get_json() == {'unread_count': 0}
    assert client.post('/api/notifications/missing/read', headers=headers).status_code == 404

def test_open_notification(client, db, auth_headers, notify):
    notification_id = notify('p7')
    headers = auth_headers('u-bob')

    response = client.post(f'/api/notifications/{notification_id}/open', headers=headers)

    assert response.get_json() == {'post_id': 'p7'}
    assert client.get('/api/notifications', headers=headers).get_json()['notifications'] == []
    assert db.collection('users').document('u-bob').get().to_dict()['notification_count'] == 0
    assert client.post(f'/api/notifications/{notification_id}/open', headers=headers).status_code == 404

def test_delete_one_and_all(client, db, auth_headers, notify):
    first = notify()
    notify()
    notify()
    headers = auth_headers('u-bob')

    assert client.delete(f'/api/notifications/{first}', headers=headers).get_json() == {'unread_count': 2}
    assert client.delete(f'/api/notifications/{first}', headers=headers).status_code == 404
    assert client.delete('/api/notifications', headers=headers).get_json() == {'deleted': 2, 'unread_count': 0}
    assert db.collection('users').document('u-bob').get().to_dict()['notification_count'] == 0

def test_notifications_are_private(client, auth_headers, notify):
    notification_id = notify()

    assert client.get('/api/notifications', headers=auth_headers('u-alice')).get_json()['notifications'] == []
    assert client.post(f'/api/notifications/{notification_id}/read', headers=auth_headers('u-alice')).status_code == 404
    assert client.get('/api/notifications').status_code == 401
