# app/api/uploads/test_routes.py
from unittest.mock import MagicMock

from app.services.storage_service import StorageService

def test_upload_url(app, client, auth_headers):
    blob = MagicMock()
    blob.generate_signed_url.return_value = 'https://storage.example.com/signed'
    bucket = MagicMock()
    bucket.blob.return_value = blob
    app.services['storage'] = StorageService(bucket=bucket)

    response = client.post('/api/uploads/url', headers=auth_headers('u1'),
                           json={'upload_type': 'post_image', 'filename': 'fire.jpg', 'content_type': 'image/jpeg'})

    body = response.get_json()
    assert response.status_code == 200
    assert body['upload_url'] == 'https://storage.example.com/signed'
    assert body['file_path'].startswith('posts/u1/')
    assert body['file_path'].endswith('.jpg')
    assert blob.generate_signed_url.call_args.kwargs['method'] == 'PUT'

def test_upload_url_rejects_unknown_type(client, auth_headers):
    response = client.post('/api/uploads/url', headers=auth_headers('u1'),
                           json={'upload_type': 'video_clip', 'filename': 'a.jpg', 'content_type': 'image/jpeg'})
    assert response.status_code == 400
    assert response.get_json()['error_code'] == 'INVALID_PARAMETERS'

def test_blob_path_from_url():
    assert StorageService.blob_path_from_url('posts/u1/a.jpg') == 'posts/u1/a.jpg'
    assert StorageService.blob_path_from_url(
        'https://firebasestorage.googleapis.com/v0/b/bucket/o/posts%2Fu1%2Fa.jpg?alt=media') == 'posts/u1/a.jpg'
    assert StorageService.blob_path_from_url('https://storage.googleapis.com/bucket/posts/u1/a.jpg') == 'posts/u1/a.jpg'
    assert StorageService.blob_path_from_url('') is None
