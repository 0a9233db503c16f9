# app/services/mention_service.py
"""
멘션 파싱과 사용자 디렉터리 해석.

텍스트 -> 핸들 목록 -> 사용자 식별자 순서로 처리되며,
결과는 NotificationService로 전달되어 알림이 생성됩니다.
"""
import logging
import re
from typing import Iterable, List, Optional, Pattern, Sequence

from firebase_admin import firestore

from app.models.user import UserDirectoryEntry

# 기본: 영문·숫자·밑줄만 핸들로 인정 ('@bob,' -> 'bob')
WORD_MENTION_PATTERN = re.compile(r'@([A-Za-z0-9_]+)')
# 공백 전까지의 모든 문자를 핸들로 인정 ('@bob,' -> 'bob,')
LOOSE_MENTION_PATTERN = re.compile(r'@(\S+)')

def parse_mentions(text: Optional[str], pattern: Pattern = WORD_MENTION_PATTERN) -> List[str]:
    """
    텍스트에서 '@핸들' 형식의 멘션을 왼쪽부터 순서대로 추출합니다.
    - 중복은 제거하지 않습니다. (중복 제거는 알림 발송 단계의 책임)
    - '@' 뒤에 핸들 문자가 없으면 건너뜁니다.
    """
    if not text:
        return []
    return [match.strip() for match in pattern.findall(text) if match.strip()]

def resolve(handle: str, directory: Sequence[UserDirectoryEntry]) -> Optional[UserDirectoryEntry]:
    """
    핸들과 대소문자 무시 완전 일치하는 디렉터리 항목을 찾습니다.
    표시 이름 또는 멘션 별칭(표시 이름에서 공백·구두점 제거)과 비교하며, 부분 일치는 허용하지 않습니다.
    """
    if not handle:
        return None
    needle = handle.lower()
    for entry in directory:
        if not entry.display_name:
            continue
        if entry.display_name.lower() == needle or entry.mention_alias.lower() == needle:
            return entry
    return None

def resolve_mentions(text: Optional[str], directory: Sequence[UserDirectoryEntry],
                     exclude_ids: Iterable[str] = ()) -> List[UserDirectoryEntry]:
    """
    텍스트의 멘션을 해석하여 알림 대상 사용자 목록을 반환합니다.
    - exclude_ids(이미 알림을 받은 사용자, 작성자 본인 등)는 제외합니다.
    - 같은 사용자는 한 번만 포함됩니다. (처음 등장한 순서 유지)
    """
    seen = set(exclude_ids)
    resolved = []
    for handle in parse_mentions(text):
        entry = resolve(handle, directory)
        if entry is None or entry.id in seen:
            continue
        seen.add(entry.id)
        resolved.append(entry)
    return resolved


class DirectoryService:
    """
    멘션 해석에 쓰이는 사용자 디렉터리 스냅샷을 Firestore에서 불러오는 서비스.
    작성 요청마다 새로 불러오며, 요청 처리 중에는 변경되지 않습니다.
    """
    def __init__(self, db=None):
        self.db = db if db is not None else firestore.client()
        self.users_ref = self.db.collection('users')

    def load_directory(self) -> List[UserDirectoryEntry]:
        """'users' 컬렉션 전체를 UserDirectoryEntry 목록으로 불러옵니다."""
        directory = [UserDirectoryEntry.from_dict(doc.id, doc.to_dict() or {}) for doc in self.users_ref.stream()]
        logging.info(f"사용자 디렉터리 로드 완료 ({len(directory)}명)")
        return directory

    def search(self, query: Optional[str] = None, exclude_id: Optional[str] = None) -> List[UserDirectoryEntry]:
        """
        사용자 선택(태그) 화면에 쓰이는 검색.
        표시 이름에 query가 포함된(대소문자 무시) 사용자를 반환합니다.
        """
        needle = (query or '').strip().lower()
        return [
            entry for entry in self.load_directory()
            if entry.id != exclude_id and entry.display_name and needle in entry.display_name.lower()
        ]
