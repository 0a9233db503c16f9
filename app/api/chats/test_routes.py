# app/api/chats/test_routes.py
import pytest

from app.api.chats.services import make_chat_id

def chat_doc(db, user_id, chat_id):
    return db.collection('users').document(user_id).collection('chats').document(chat_id).get().to_dict()

@pytest.fixture
def chat_id(client, auth_headers, add_user):
    add_user('u-alice', 'Alice')
    add_user('u-bob', 'Bob')
    response = client.post('/api/chats', json={'partner_id': 'u-bob'}, headers=auth_headers('u-alice'))
    assert response.status_code == 200
    return response.get_json()['chat_id']

def test_make_chat_id_is_order_independent():
    assert make_chat_id('b', 'a') == make_chat_id('a', 'b') == 'a_b'

def test_start_chat_creates_both_sides(client, db, auth_headers, chat_id):
    assert chat_id == 'u-alice_u-bob'
    assert chat_doc(db, 'u-alice', chat_id)['partner']['display_name'] == 'Bob'
    assert chat_doc(db, 'u-bob', chat_id)['partner']['display_name'] == 'Alice'

    # 상대방이 다시 열어도 같은 채팅방
    response = client.post('/api/chats', json={'partner_id': 'u-alice'}, headers=auth_headers('u-bob'))
    assert response.get_json()['chat_id'] == chat_id

def test_start_chat_validation(client, auth_headers, add_user):
    add_user('u-alice', 'Alice')
    headers = auth_headers('u-alice')
    assert client.post('/api/chats', json={'partner_id': 'u-alice'}, headers=headers).status_code == 400
    assert client.post('/api/chats', json={'partner_id': 'u-ghost'}, headers=headers).status_code == 400
    assert client.post('/api/chats', json={}, headers=headers).status_code == 400

def test_send_message_mirrors_and_bumps_partner_unread(client, db, auth_headers, chat_id):
    url = f'/api/chats/{chat_id}/messages'
    client.post(url, json={'text': 'are you safe?'}, headers=auth_headers('u-alice'))
    client.post(url, json={'text': 'hello?'}, headers=auth_headers('u-alice'))

    assert chat_doc(db, 'u-bob', chat_id)['unread_count'] == 2
    assert chat_doc(db, 'u-alice', chat_id)['unread_count'] == 0
    assert chat_doc(db, 'u-bob', chat_id)['last_message']['text'] == 'hello?'

    messages = client.get(url, headers=auth_headers('u-bob')).get_json()['messages']
    assert {m['text'] for m in messages} == {'are you safe?', 'hello?'}
    assert all(m['sender_id'] == 'u-alice' for m in messages)

def test_media_message(client, db, auth_headers, chat_id):
    response = client.post(f'/api/chats/{chat_id}/messages',
                           json={'media_url': 'chat_media/u-alice/a.jpg', 'media_type': 'image'},
                           headers=auth_headers('u-alice'))

    assert response.status_code == 201
    assert chat_doc(db, 'u-bob', chat_id)['last_message']['text'] == '[image]'

def test_empty_message_is_rejected(client, auth_headers, chat_id):
    response = client.post(f'/api/chats/{chat_id}/messages', json={'text': '  '}, headers=auth_headers('u-alice'))
    assert response.status_code == 400

def test_mark_read_resets_unread(client, db, auth_headers, chat_id):
    client.post(f'/api/chats/{chat_id}/messages', json={'text': 'ping'}, headers=auth_headers('u-alice'))

    response = client.post(f'/api/chats/{chat_id}/read', headers=auth_headers('u-bob'))

    assert response.get_json() == {'unread_count': 0}
    assert chat_doc(db, 'u-bob', chat_id)['unread_count'] == 0
    alice_copy = client.get(f'/api/chats/{chat_id}/messages', headers=auth_headers('u-alice')).get_json()['messages']
    assert [m['read'] for m in alice_copy] == [True]

def test_list_chats(client, auth_headers, chat_id):
    chats = client.get('/api/chats', headers=auth_headers('u-bob')).get_json()['chats']
    assert [c['chat_id'] for c in chats] == [chat_id]

def test_unknown_chat(client, auth_headers, add_user):
    add_user('u-alice', 'Alice')
    headers = auth_headers('u-alice')
    assert client.get('/api/chats/nope/messages', headers=headers).status_code == 404
    assert client.post('/api/chats/nope/messages', json={'text': 'hi'}, headers=headers).status_code == 404
    assert client.post('/api/chats/nope/read', headers=headers).status_code == 404
