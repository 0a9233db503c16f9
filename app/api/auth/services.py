# app/api/auth/services.py
import logging
from datetime import datetime, timezone
from typing import Dict, Any, Tuple
from dataclasses import asdict
from firebase_admin import firestore, auth as firebase_auth

from app.models.user import User
from app.utils.datetime_utils import DateTimeUtils

class AuthService:
    """
    Firebase ID 토큰 검증, 사용자 프로필 동기화, 토큰 무효화(Blocklist)를 담당합니다.
    """
    def __init__(self, db=None, verify_id_token=None):
        self.db = db if db is not None else firestore.client()
        self.users_ref = self.db.collection('users')
        self.revoked_tokens_ref = self.db.collection('revoked_tokens')
        self._verify_id_token = verify_id_token or firebase_auth.verify_id_token

    def verify_firebase_token(self, id_token: str) -> Dict[str, Any]:
        """
        클라이언트가 Firebase Auth로 로그인한 뒤 받은 ID 토큰을 검증합니다.
        유효하지 않으면 ValueError를 던집니다.
        """
        try:
            return self._verify_id_token(id_token)
        except Exception as e:
            logging.warning(f"Firebase ID 토큰 검증 실패: {e}")
            raise ValueError("유효하지 않은 ID 토큰입니다.") from e

    def get_or_create_user(self, claims: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
        """
        토큰 클레임으로 사용자 프로필을 조회하거나 새로 생성합니다.
        알림 발송 과정에서 기본 문서만 생성된 경우(표시 이름이 비어 있음) 로그인 정보로 채워 넣습니다.

        :return: (사용자 프로필, 신규 가입 여부)
        """
        user_id = claims.get('uid') or claims.get('user_id') or claims.get('sub')
        if not user_id:
            raise ValueError("토큰에 사용자 식별자(uid)가 없습니다.")

        user_ref = self.users_ref.document(user_id)
        user_doc = user_ref.get()
        if user_doc.exists:
            user_data = user_doc.to_dict()
            updates = {}
            if not user_data.get('display_name') and claims.get('name'):
                updates['display_name'] = claims['name']
            if not user_data.get('email') and claims.get('email'):
                updates['email'] = claims['email']
            if not user_data.get('photo_url') and claims.get('picture'):
                updates['photo_url'] = claims['picture']
            if updates:
                user_ref.update(updates)
                user_data.update(updates)
            return user_data, False

        new_user = User(
            user_id=user_id,
            email=claims.get('email') or '',
            display_name=claims.get('name') or '',
            photo_url=claims.get('picture'),
            created_at=DateTimeUtils.now()
        )
        user_data = DateTimeUtils.for_firestore(asdict(new_user))
        user_ref.set(user_data)
        logging.info(f"신규 사용자 프로필 생성 (user_id: {user_id})")
        return user_data, True

    # --- Blocklist 관련 로직 ---
    def add_token_to_blocklist(self, jti: str, expires: datetime):
        """토큰의 jti를 만료 시간과 함께 Firestore에 저장합니다."""
        try:
            token_data = {
                'revoked_at': DateTimeUtils.now(),
                'expires_at': expires
            }
            self.revoked_tokens_ref.document(jti).set(DateTimeUtils.for_firestore(token_data))
        except Exception as e:
            logging.error(f"Blocklist 토큰 추가 실패 (jti: {jti}): {e}")

    def is_token_revoked(self, jwt_payload: dict) -> bool:
        """jti를 이용해 해당 토큰이 무효화 목록에 있는지 확인합니다."""
        jti = jwt_payload['jti']
        return self.revoked_tokens_ref.document(jti).get().exists

    def logout_user(self, access_jti: str, access_exp: int, refresh_jti: str, refresh_exp: int):
        """Access 토큰과 Refresh 토큰을 모두 Blocklist에 추가합니다."""
        self.add_token_to_blocklist(access_jti, datetime.fromtimestamp(access_exp, tz=timezone.utc))
        self.add_token_to_blocklist(refresh_jti, datetime.fromtimestamp(refresh_exp, tz=timezone.utc))
        logging.info(f"사용자 로그아웃 처리 완료. JTI: {access_jti[:8]}..., {refresh_jti[:8]}...")
