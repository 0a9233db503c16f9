# app/models/post.py
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict

class VerificationStatus(Enum):
    """콘텐츠 검수 상태"""
    NONE = "None"
    APPROVED = "Approved"
    REJECTED = "Rejected"

@dataclass
class Post:
    """
    Firestore 'posts' 컬렉션의 문서 구조를 정의하는 데이터클래스.
    """
    post_id: str
    creator_id: str
    title: str
    caption: str
    location: Dict[str, float] # {'lat': ..., 'lng': ...}
    created_at: datetime
    expires_at: datetime
    duration: int = 12 # 노출 시간 (시간)
    username: Optional[str] = None # 익명 게시물이면 None
    user_avatar: Optional[str] = None
    is_anonymous: bool = False
    image_url: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    tagged_user_ids: List[str] = field(default_factory=list)
    likes: int = 0
    liked_by: List[str] = field(default_factory=list)
    eyewitnesses: int = 0
    eyewitnessed_by: List[str] = field(default_factory=list)
    comment_count: int = 0
    verification_status: str = VerificationStatus.NONE.value
    rejection_reason: Optional[str] = None
    is_visible: bool = False
    pending_notification_id: Optional[str] = None
