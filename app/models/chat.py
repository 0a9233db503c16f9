# app/models/chat.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any

@dataclass
class ChatMessage:
    """
    'users/{user_id}/chats/{chat_id}/messages' 문서 구조.
    같은 메시지가 두 참여자의 서브컬렉션에 각각 저장됩니다.
    """
    message_id: str
    sender_id: str
    sender_name: str
    text: str = ""
    media_url: Optional[str] = None
    media_type: Optional[str] = None # 'image' | 'video'
    read: bool = False
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

@dataclass
class Chat:
    """'users/{user_id}/chats' 문서 구조. 사용자별로 상대방 정보와 읽지 않은 메시지 수를 가집니다."""
    chat_id: str
    partner: Dict[str, Any] # {'user_id', 'display_name', 'photo_url'}
    last_message: Optional[Dict[str, Any]] = None
    unread_count: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
