# app/services/moderation_service.py
import logging
from typing import Optional, Dict, Any
import requests
from flask import Flask

class ModerationService:
    """
    외부 콘텐츠 검수 서비스 연동을 담당하는 클래스.
    검수 요청은 게시물 작성을 막지 않으며, 결과는 검수 서비스가
    POST /api/posts/<post_id>/verification 으로 되돌려 줍니다.
    """

    def __init__(self, api_url: Optional[str] = None, timeout: int = 10, session: Optional[requests.Session] = None):
        self.api_url = api_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def init_app(self, app: Flask):
        self.api_url = app.config.get('MODERATION_API_URL')
        self.timeout = app.config.get('MODERATION_TIMEOUT_SECONDS', 10)
        if not self.api_url:
            logging.warning("ModerationService: MODERATION_API_URL이 설정되지 않아 검수 요청을 보내지 않습니다.")

    def request_verification(self, post: Dict[str, Any]) -> bool:
        """
        게시물 검수를 요청합니다.
        실패하거나 시간이 초과되어도 예외를 던지지 않습니다. (검수 서비스의 백그라운드 처리에 맡김)

        :return: 검수 서비스가 요청을 받아들였는지 여부
        """
        if not self.api_url:
            return False

        payload = {
            "post_id": post.get('post_id'),
            "title": post.get('title', ''),
            "caption": post.get('caption', ''),
            "image_url": post.get('image_url'),
        }
        try:
            response = self.session.post(self.api_url, json=payload, timeout=self.timeout)
            if not response.ok:
                logging.warning(f"검수 API가 비정상 상태 코드를 반환했습니다: {response.status_code} (post_id: {payload['post_id']})")
                return False
            logging.info(f"검수 요청 완료 (post_id: {payload['post_id']})")
            return True
        except requests.Timeout:
            logging.warning(f"검수 요청 시간 초과 - 백그라운드 검수에 맡깁니다 (post_id: {payload['post_id']})")
            return False
        except requests.RequestException as e:
            logging.warning(f"검수 요청 실패 - 백그라운드 검수에 맡깁니다 (post_id: {payload['post_id']}): {e}")
            return False
