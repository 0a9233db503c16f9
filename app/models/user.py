# app/models/user.py
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List, Dict

_NON_WORD = re.compile(r'[^A-Za-z0-9_]')

@dataclass
class User:
    """
    Firestore 'users' 컬렉션의 문서 구조를 정의하는 데이터클래스.
    문서 ID는 Firebase Auth의 uid와 같습니다.
    """
    user_id: str
    email: str = ""
    display_name: str = ""
    photo_url: Optional[str] = None
    notification_count: int = 0 # 읽지 않은 알림 수 (알림 변경 시마다 재계산)
    subscribed_tags: List[str] = field(default_factory=list)
    location: Optional[Dict[str, float]] = None # {'lat': ..., 'lng': ...}
    radius_km: Optional[float] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

@dataclass(frozen=True)
class UserDirectoryEntry:
    """멘션 해석에 사용되는 사용자 디렉터리 항목 (읽기 전용 스냅샷)."""
    id: str
    display_name: str
    photo_url: Optional[str] = None

    @property
    def mention_alias(self) -> str:
        """공백·구두점을 제거한 멘션용 별칭. 'Bob Smith' -> 'BobSmith'"""
        return _NON_WORD.sub('', self.display_name)

    @classmethod
    def from_dict(cls, user_id: str, data: dict) -> "UserDirectoryEntry":
        return cls(
            id=user_id,
            display_name=data.get('display_name') or '',
            photo_url=data.get('photo_url')
        )
