# app/api/users/services.py
import logging
from typing import Optional, Dict, Any, List
from firebase_admin import firestore, auth as firebase_auth

from app.models.user import UserDirectoryEntry
from app.services.mention_service import DirectoryService
from app.utils.datetime_utils import DateTimeUtils

class UserService:
    """
    사용자 프로필 조회/수정, 사용자 디렉터리 검색, 회원 탈퇴를 담당합니다.
    """
    # PATCH /api/users/me 로 수정 가능한 필드
    EDITABLE_FIELDS = ('display_name', 'photo_url', 'subscribed_tags', 'location', 'radius_km')

    def __init__(self, directory_service: DirectoryService, db=None, delete_auth_user=None):
        self.db = db if db is not None else firestore.client()
        self.users_ref = self.db.collection('users')
        self.directory_service = directory_service
        self._delete_auth_user = delete_auth_user or firebase_auth.delete_user

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        doc = self.users_ref.document(user_id).get()
        if not doc.exists:
            return None
        data = DateTimeUtils.from_firestore(doc.to_dict())
        data['user_id'] = doc.id
        return data

    def search_directory(self, query: Optional[str], current_user_id: Optional[str], exclude_self: bool = True) -> List[UserDirectoryEntry]:
        """태그할 사용자 검색. 표시 이름 부분 일치(대소문자 무시)."""
        exclude_id = current_user_id if exclude_self else None
        return self.directory_service.search(query, exclude_id=exclude_id)

    def update_user(self, user_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        """허용된 필드만 수정합니다. 사용자가 없으면 ValueError."""
        user_ref = self.users_ref.document(user_id)
        if not user_ref.get().exists:
            raise ValueError("사용자를 찾을 수 없습니다.")

        clean = {k: v for k, v in updates.items() if k in self.EDITABLE_FIELDS}
        if 'subscribed_tags' in clean:
            # 태그는 소문자로 정규화하고 중복을 제거 (입력 순서 유지)
            clean['subscribed_tags'] = list(dict.fromkeys(t.strip().lower() for t in clean['subscribed_tags'] if t.strip()))
        if clean:
            user_ref.update(clean)
        return self.get_user(user_id)

    def delete_account(self, user_id: str) -> None:
        """Firebase Auth 사용자와 프로필 문서를 삭제합니다."""
        try:
            self._delete_auth_user(user_id)
            logging.info(f"Firebase Auth 사용자 삭제 성공 (user_id: {user_id})")
        except firebase_auth.UserNotFoundError:
            logging.warning(f"Firebase Auth에서 이미 삭제된 사용자입니다 (user_id: {user_id}).")
        self.users_ref.document(user_id).delete()
