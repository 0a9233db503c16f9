# app/services/storage_service.py
import uuid
import logging
from datetime import timedelta
from typing import Optional
from urllib.parse import unquote, urlparse
from flask import Flask
from firebase_admin import storage

class StorageService:
    """
    Firebase Storage 관련 로직을 담당하는 서비스 클래스입니다.
    게시물 이미지·프로필 사진·채팅 미디어 업로드용 Pre-signed URL 생성과 파일 삭제를 제공합니다.
    """

    # upload_type -> 저장 폴더
    PATH_MAP = {
        "user_profile": "user_profiles/{user_id}",
        "post_image": "posts/{user_id}",
        "chat_media": "chat_media/{user_id}",
    }

    def __init__(self, bucket=None):
        """실제 버킷 객체는 init_app 메서드를 통해 주입됩니다."""
        self.bucket = bucket

    def init_app(self, app: Flask):
        """
        Flask 앱 초기화 과정에서 호출되어 Storage 버킷을 설정합니다.

        :param app: Flask 애플리케이션 객체
        """
        bucket_name = app.config.get('FIREBASE_STORAGE_BUCKET')
        if not bucket_name:
            raise ValueError("FIREBASE_STORAGE_BUCKET 설정이 .env 또는 설정 파일에 필요합니다.")

        self.bucket = storage.bucket(bucket_name)
        logging.info("StorageService: Firebase Storage 서비스가 성공적으로 초기화되었습니다.")

    def _require_bucket(self):
        if not self.bucket:
            raise RuntimeError("StorageService가 초기화되지 않았습니다. init_app을 먼저 호출해주세요.")
        return self.bucket

    def generate_upload_url(self, user_id: str, upload_type: str, filename: str, content_type: str) -> dict:
        """
        파일 타입에 따라 적절한 경로에 업로드할 수 있는 Pre-signed URL을 생성합니다.
        클라이언트는 이 URL로 Firebase Storage에 직접 파일을 업로드(PUT)합니다.

        :param user_id: 현재 로그인된 사용자 ID
        :param upload_type: "user_profile", "post_image", "chat_media" 중 하나
        :param filename: 원본 파일명 (확장자 파악에 사용)
        :param content_type: 업로드할 파일의 MIME 타입
        :return: 업로드 URL과 파일 경로가 담긴 딕셔너리
        """
        bucket = self._require_bucket()

        folder_template = self.PATH_MAP.get(upload_type)
        if not folder_template:
            raise ValueError(f"'{upload_type}'은(는) 유효한 업로드 타입이 아닙니다.")

        extension = filename.split('.')[-1] if '.' in filename else ''
        unique_filename = f"{uuid.uuid4()}.{extension}" if extension else str(uuid.uuid4())
        destination_blob_name = f"{folder_template.format(user_id=user_id)}/{unique_filename}"

        blob = bucket.blob(destination_blob_name)

        # 15분 동안 유효한 업로드 전용 URL
        upload_url = blob.generate_signed_url(
            version="v4",
            expiration=timedelta(minutes=15),
            method="PUT",
            content_type=content_type
        )

        return {
            "upload_url": upload_url,
            "file_path": destination_blob_name
        }

    @staticmethod
    def blob_path_from_url(url: str) -> Optional[str]:
        """
        다운로드 URL 또는 파일 경로에서 버킷 내부 경로를 추출합니다.
        - 'posts/u1/a.jpg' -> 그대로
        - 'https://firebasestorage.googleapis.com/v0/b/<bucket>/o/posts%2Fu1%2Fa.jpg?alt=media' -> 'posts/u1/a.jpg'
        - 'https://storage.googleapis.com/<bucket>/posts/u1/a.jpg' -> 'posts/u1/a.jpg'
        """
        if not url:
            return None
        if not url.startswith('http'):
            return url
        path = urlparse(url).path
        if '/o/' in path:
            return unquote(path.split('/o/', 1)[1])
        parts = path.lstrip('/').split('/', 1)
        return parts[1] if len(parts) == 2 else None

    def delete_file(self, url: str) -> bool:
        """파일을 삭제합니다. 실패해도 예외를 던지지 않습니다."""
        file_path = self.blob_path_from_url(url)
        if not file_path or not self.bucket:
            return False
        try:
            blob = self.bucket.blob(file_path)
            if blob.exists():
                blob.delete()
                return True
            return False
        except Exception as e:
            logging.error(f"Storage 파일 삭제 실패 (url: {url}): {e}")
            return False
