# app/models/comment.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

@dataclass
class Comment:
    """
    Firestore 'posts/{post_id}/comments' 서브컬렉션의 문서 구조를 정의하는 데이터클래스.
    답글은 같은 구조로 'comments/{comment_id}/replies'에 저장되며 parent_id가 채워집니다.
    """
    comment_id: str
    post_id: str
    sender_id: str
    username: str
    text: str
    user_avatar: Optional[str] = None
    parent_id: Optional[str] = None
    likes: int = 0
    liked_by: List[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
