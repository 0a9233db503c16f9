# app/services/chatbot_service.py
import logging
from typing import Optional, Dict, Any, List
import requests
from flask import Flask

class ChatbotError(Exception):
    """챗봇 서비스 호출 실패"""

class ChatbotService:
    """
    외부 AI 챗봇 서비스 연동을 담당하는 클래스.
    사용자 위치와 함께 질문을 전달하고, 대화 기록을 조회/삭제합니다.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: int = 30, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/') if base_url else None
        self.timeout = timeout
        self.session = session or requests.Session()

    def init_app(self, app: Flask):
        base_url = app.config.get('CHATBOT_API_URL')
        self.base_url = base_url.rstrip('/') if base_url else None
        self.timeout = app.config.get('CHATBOT_TIMEOUT_SECONDS', 30)
        if not self.base_url:
            logging.warning("ChatbotService: CHATBOT_API_URL이 설정되지 않았습니다.")

    def _url(self, path: str) -> str:
        if not self.base_url:
            raise ChatbotError("챗봇 서비스가 설정되지 않았습니다.")
        return f"{self.base_url}{path}"

    def ask(self, question: str, lat: float, lng: float, user_id: Optional[str] = None) -> str:
        """질문을 보내고 챗봇의 답변 텍스트를 반환합니다."""
        params = {"question": question, "lat": lat, "long": lng}
        if user_id:
            params["user_id"] = user_id
        try:
            response = self.session.post(self._url('/chat'), params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logging.error(f"챗봇 질문 요청 실패: {e}", exc_info=True)
            raise ChatbotError("챗봇 서버 오류가 발생했습니다.") from e

        if not data or not data.get('response'):
            raise ChatbotError("챗봇 서버의 응답 형식이 올바르지 않습니다.")
        return data['response']

    def get_history(self, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        대화 기록을 [{'sender': 'user'|'bot', 'text': ...}] 목록으로 반환합니다.
        기록을 불러오지 못하면 빈 목록을 반환합니다.
        """
        params = {"user_id": user_id} if user_id else None
        try:
            response = self.session.get(self._url('/user/history'), params=params, timeout=self.timeout)
            if not response.ok:
                return []
            data = response.json()
        except (requests.RequestException, ValueError, ChatbotError) as e:
            logging.warning(f"챗봇 대화 기록 조회 실패: {e}")
            return []

        if data.get('status') != 'success' or not data.get('history'):
            return []

        history = []
        for entry in data['history']:
            parts = entry.get('parts') or []
            if not parts:
                continue
            role = entry.get('role')
            if role == 'user':
                history.append({"sender": "user", "text": parts[0].get('text', '')})
            elif role == 'model':
                history.append({"sender": "bot", "text": parts[0].get('text', '')})
        return history

    def clear_history(self, user_id: Optional[str] = None) -> None:
        params = {"user_id": user_id} if user_id else None
        try:
            response = self.session.delete(self._url('/user/history'), params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logging.error(f"챗봇 대화 기록 삭제 실패: {e}", exc_info=True)
            raise ChatbotError("대화 기록 삭제에 실패했습니다.") from e
