# app/models/notification.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, Optional

class NotificationType(Enum):
    """알림 유형을 정의하는 Enum 클래스"""
    LIKE = "like"
    UNLIKE = "unlike"
    COMMENT = "comment"
    REPLY = "reply"
    EYEWITNESS = "eyewitness"
    REMOVE_EYEWITNESS = "remove_eyewitness"
    COMMENT_LIKE = "comment_like"
    REPLY_LIKE = "reply_like"
    POST_PENDING = "post_pending"
    POST_APPROVED = "post_approved"
    POST_REJECTED = "post_rejected"
    TAG_MATCH = "tag_match"
    TAGGED_IN_POST = "tagged_in_post"
    MENTION = "mention"

# 알림 유형별 고정 메시지 템플릿.
# 중괄호 필드는 발신자 이름(sender_name) 또는 알림 context의 extra 값으로 채워집니다.
NOTIFICATION_MESSAGES: Dict[NotificationType, str] = {
    NotificationType.LIKE: "liked your post",
    NotificationType.UNLIKE: "unliked your post",
    NotificationType.COMMENT: "commented on your post",
    NotificationType.REPLY: "replied to your comment",
    NotificationType.EYEWITNESS: "marked themselves as an eyewitness on your post",
    NotificationType.REMOVE_EYEWITNESS: "removed eyewitness status",
    NotificationType.COMMENT_LIKE: "liked your comment",
    NotificationType.REPLY_LIKE: "liked your reply",
    NotificationType.POST_PENDING: "New post created. awaiting verification.",
    NotificationType.POST_APPROVED: "Your post has been approved and is now visible to others.",
    NotificationType.POST_REJECTED: "Your post was rejected: {reason}",
    NotificationType.TAG_MATCH: "created a post with your subscribed tags ({tags}) within {distance}km",
    NotificationType.TAGGED_IN_POST: "You were tagged in a post by {sender_name}",
    NotificationType.MENTION: "mentioned you in a comment",
}

DEFAULT_REJECTION_REASON = "Content violates community guidelines"

@dataclass(frozen=True)
class NotificationSender:
    """알림을 유발한 사용자(또는 시스템)의 정보."""
    user_id: str
    display_name: str = "Anonymous User"
    photo_url: Optional[str] = None

# 게시물 검수 결과처럼 특정 사용자가 유발하지 않은 알림의 발신자
SYSTEM_SENDER = NotificationSender(user_id="system", display_name="Ocean", photo_url=None)

# 익명 게시물 작성자. 실제 user_id를 알림 문서에 남기지 않습니다.
ANONYMOUS_SENDER = NotificationSender(user_id="anonymous")

@dataclass
class NotificationContext:
    """
    알림이 가리키는 대상에 대한 불변 정보.
    extra에는 comment_id, matched_tags, distance, rejection_reason 등
    알림 유형에 따라 달라지는 값이 들어갑니다.
    """
    post_id: Optional[str] = None
    post_title: Optional[str] = None
    post_image: Optional[str] = None
    summary: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

@dataclass
class Notification:
    """
    Firestore 'users/{recipient_id}/notifications' 서브컬렉션의 문서 구조를 정의하는 데이터클래스.
    """
    notification_id: str
    recipient_id: str
    type: NotificationType
    message: str
    triggering_user_id: str
    triggering_user_name: str
    triggering_user_avatar: Optional[str] = None
    post_id: Optional[str] = None
    post_title: Optional[str] = None
    post_image: Optional[str] = None
    summary: Optional[str] = None
    read: bool = False
    idempotency_key: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
