# app/services/test_moderation_service.py
from unittest.mock import MagicMock

import requests

from app.services.moderation_service import ModerationService

POST = {'post_id': 'p1', 'title': 'Fire', 'caption': 'Smoke near the station', 'image_url': 'posts/u1/a.jpg'}

def test_request_verification_posts_payload():
    session = MagicMock()
    session.post.return_value = MagicMock(ok=True, status_code=202)
    service = ModerationService(api_url='https://moderation.example.com/verify', timeout=3, session=session)

    assert service.request_verification(POST) is True
    session.post.assert_called_once_with(
        'https://moderation.example.com/verify',
        json={'post_id': 'p1', 'title': 'Fire', 'caption': 'Smoke near the station', 'image_url': 'posts/u1/a.jpg'},
        timeout=3
    )

def test_request_verification_never_raises():
    session = MagicMock()
    session.post.side_effect = requests.Timeout("slow")
    service = ModerationService(api_url='https://moderation.example.com/verify', session=session)
    assert service.request_verification(POST) is False

    session.post.side_effect = requests.ConnectionError("down")
    assert service.request_verification(POST) is False

    session.post.side_effect = None
    session.post.return_value = MagicMock(ok=False, status_code=500)
    assert service.request_verification(POST) is False

def test_request_verification_without_url_is_skipped():
    session = MagicMock()
    service = ModerationService(api_url=None, session=session)
    assert service.request_verification(POST) is False
    session.post.assert_not_called()
