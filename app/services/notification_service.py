# app/services/notification_service.py
import hashlib
import logging
import uuid
from dataclasses import asdict
from enum import Enum
from typing import Optional, Dict, Any, Iterable, List, Sequence, Set, Tuple

from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from app.models.notification import (
    Notification, NotificationType, NotificationSender, NotificationContext,
    NOTIFICATION_MESSAGES, DEFAULT_REJECTION_REASON, ANONYMOUS_SENDER
)
from app.models.user import UserDirectoryEntry
from app.services.mention_service import resolve_mentions
from app.utils.datetime_utils import DateTimeUtils

class DispatchResult(Enum):
    """수신자별 알림 발송 결과"""
    DELIVERED = "delivered"
    SUPPRESSED = "suppressed" # 자기 자신에게 보내는 알림
    DUPLICATE = "duplicate"   # 같은 idempotency key의 알림이 이미 존재
    FAILED = "failed"

def build_message(n_type: NotificationType, sender: NotificationSender, context: NotificationContext) -> str:
    """알림 유형의 고정 템플릿에 발신자 이름과 context 값을 채워 메시지를 만듭니다."""
    extra = context.extra
    tags = extra.get('matched_tags') or []
    values = {
        'sender_name': sender.display_name,
        'reason': extra.get('rejection_reason') or DEFAULT_REJECTION_REASON,
        'tags': ', '.join(tags) if isinstance(tags, (list, tuple)) else str(tags),
        'distance': extra.get('distance', ''),
    }
    return NOTIFICATION_MESSAGES[n_type].format(**values)

def make_idempotency_key(sender_id: str, recipient_id: str, n_type: NotificationType,
                         post_id: Optional[str] = None, comment_id: Optional[str] = None,
                         content: Optional[str] = None) -> str:
    """같은 논리적 이벤트에 대해 항상 같은 값을 갖는 알림 문서 ID를 생성합니다."""
    content_hash = hashlib.sha256((content or '').encode('utf-8')).hexdigest()
    raw = '|'.join([sender_id, recipient_id, n_type.value, post_id or '', comment_id or '', content_hash])
    return hashlib.sha256(raw.encode('utf-8')).hexdigest()

class NotificationService:
    """
    알림 관련 비즈니스 로직을 담당하는 공용 서비스 클래스.
    - 알림은 수신자의 'users/{user_id}/notifications' 서브컬렉션에 저장됩니다.
    - 알림이 추가/읽음/삭제될 때마다 수신자 프로필의 notification_count를
      읽지 않은 알림 수로 다시 계산해 덮어씁니다.
    - 알림 생성 실패는 로그만 남기고 호출한 쪽(게시글·댓글 작성 등)으로 전파하지 않습니다.
    """
    def __init__(self, db=None, summary_length: int = 50):
        self.db = db if db is not None else firestore.client()
        self.users_ref = self.db.collection('users')
        self.summary_length = summary_length

    def _notifications_ref(self, user_id: str):
        return self.users_ref.document(user_id).collection('notifications')

    def summarize(self, text: Optional[str]) -> Optional[str]:
        """알림에 표시될 요약 텍스트 (댓글 내용 등)"""
        if text is None:
            return None
        return text[:self.summary_length]

    def get_sender(self, user_id: str, anonymous: bool = False) -> NotificationSender:
        """
        알림에 표시될 발신자 정보를 프로필에서 조회합니다.
        익명 게시물의 작성자는 ID, 이름, 사진 없이 ANONYMOUS_SENDER로 표시됩니다.
        """
        if anonymous:
            return ANONYMOUS_SENDER
        doc = self.users_ref.document(user_id).get()
        data = doc.to_dict() if doc.exists else {}
        return NotificationSender(
            user_id=user_id,
            display_name=data.get('display_name') or 'Anonymous User',
            photo_url=data.get('photo_url') or None
        )

    # --- 발송 ---
    def ensure_profile(self, user_id: str, defaults: Optional[Dict[str, Any]] = None) -> None:
        """
        수신자 프로필 문서가 없으면 최소한의 기본 문서를 생성합니다.
        (별도의 프로비저닝 단계 없이 알림 발송 시점에 지연 생성)
        """
        user_ref = self.users_ref.document(user_id)
        if user_ref.get().exists:
            return
        defaults = defaults or {}
        user_ref.set(DateTimeUtils.for_firestore({
            'user_id': user_id,
            'email': defaults.get('email', ''),
            'display_name': defaults.get('display_name', ''),
            'photo_url': defaults.get('photo_url', ''),
            'created_at': DateTimeUtils.now(),
            'notification_count': 0
        }))
        logging.info(f"알림 수신자 프로필 기본 문서 생성 (user_id: {user_id})")

    def _deliver(self, recipient_id: str, sender: NotificationSender, n_type: NotificationType,
                 context: NotificationContext, idempotency_key: Optional[str]) -> Tuple[DispatchResult, Optional[str]]:
        # 수신자가 없거나 본인인 경우
        if not recipient_id or recipient_id == sender.user_id:
            return DispatchResult.SUPPRESSED, None

        notifications_ref = self._notifications_ref(recipient_id)
        if idempotency_key:
            notification_id = idempotency_key
            if notifications_ref.document(notification_id).get().exists:
                return DispatchResult.DUPLICATE, notification_id
        else:
            notification_id = str(uuid.uuid4())

        self.ensure_profile(recipient_id)

        notification = Notification(
            notification_id=notification_id,
            recipient_id=recipient_id,
            type=n_type,
            message=build_message(n_type, sender, context),
            triggering_user_id=sender.user_id,
            triggering_user_name=sender.display_name,
            triggering_user_avatar=sender.photo_url,
            post_id=context.post_id,
            post_title=context.post_title,
            post_image=context.post_image,
            summary=self.summarize(context.summary),
            idempotency_key=idempotency_key
        )
        # Enum 멤버를 문자열 값으로 변환하여 저장하고, 유형별 추가 정보(extra)를 함께 기록
        notification_dict = {**context.extra, **asdict(notification)}
        notification_dict['type'] = n_type.value

        notifications_ref.document(notification_id).set(DateTimeUtils.for_firestore(notification_dict))
        self.recompute_unread_count(recipient_id)
        return DispatchResult.DELIVERED, notification_id

    def create_notification(self, recipient_id: str, sender: NotificationSender, n_type: NotificationType,
                            context: Optional[NotificationContext] = None,
                            idempotency_key: Optional[str] = None) -> Optional[str]:
        """
        한 명의 수신자에게 알림을 생성합니다.
        - 자기 자신에게 보내는 알림은 생성하지 않습니다.
        - 실패해도 예외를 던지지 않고 None을 반환합니다.

        :return: 생성된(또는 이미 존재하는) 알림 ID, 생성하지 않았으면 None
        """
        result, notification_id = self._try_deliver(recipient_id, sender, n_type, context or NotificationContext(), idempotency_key)
        return notification_id if result in (DispatchResult.DELIVERED, DispatchResult.DUPLICATE) else None

    def _try_deliver(self, recipient_id, sender, n_type, context, idempotency_key) -> Tuple[DispatchResult, Optional[str]]:
        try:
            result, notification_id = self._deliver(recipient_id, sender, n_type, context, idempotency_key)
            if result is DispatchResult.DELIVERED:
                logging.info(f"{n_type.value} 알림 생성 완료: {sender.user_id} -> {recipient_id}")
            return result, notification_id
        except Exception as e:
            logging.error(f"알림 생성 중 오류 발생 ({n_type.value}: {sender.user_id} -> {recipient_id}): {e}", exc_info=True)
            return DispatchResult.FAILED, None

    def dispatch(self, sender: NotificationSender, recipient_ids: Iterable[str], n_type: NotificationType,
                 context: Optional[NotificationContext] = None, idempotent: bool = False) -> Dict[str, DispatchResult]:
        """
        여러 수신자에게 같은 이벤트의 알림을 보냅니다.
        - 수신자는 ID 기준으로 중복 제거됩니다. (처음 등장한 순서 유지)
        - 수신자별로 독립적으로 시도하며, 한 명의 실패가 다른 수신자에게 영향을 주지 않습니다.
        - idempotent=True이면 같은 이벤트의 재발송 시 알림을 새로 만들지 않습니다.

        :return: 수신자 ID -> DispatchResult
        """
        context = context or NotificationContext()
        results: Dict[str, DispatchResult] = {}
        for recipient_id in recipient_ids:
            if not recipient_id or recipient_id in results:
                continue
            key = None
            if idempotent:
                key = make_idempotency_key(sender.user_id, recipient_id, n_type, context.post_id,
                                           context.extra.get('comment_id'), context.summary)
            results[recipient_id], _ = self._try_deliver(recipient_id, sender, n_type, context, key)
        return results

    def notify_mentions(self, sender: NotificationSender, text: Optional[str],
                        directory: Sequence[UserDirectoryEntry], n_type: NotificationType,
                        context: Optional[NotificationContext] = None,
                        notified: Optional[Set[str]] = None) -> Set[str]:
        """
        텍스트의 멘션을 해석해 아직 알림을 받지 않은 사용자에게만 알림을 보냅니다.

        :param notified: 이번 작업에서 이미 알림을 받은 사용자 ID 집합. 새로 알림을 보낸 사용자가 추가됩니다.
        :return: 갱신된 notified 집합
        """
        notified = set(notified or ())
        mentioned = resolve_mentions(text, directory, exclude_ids=notified | {sender.user_id})
        results = self.dispatch(sender, [entry.id for entry in mentioned], n_type, context)
        notified.update(results.keys())
        return notified

    # --- 읽지 않은 알림 수 ---
    def count_unread(self, user_id: str) -> int:
        query = self._notifications_ref(user_id).where(filter=FieldFilter('read', '==', False))
        count_result = query.count().get()
        return int(count_result[0][0].value)

    def recompute_unread_count(self, user_id: str) -> int:
        """읽지 않은 알림 수를 다시 세어 프로필의 notification_count에 덮어씁니다."""
        unread = self.count_unread(user_id)
        self.users_ref.document(user_id).set({'notification_count': unread}, merge=True)
        return unread

    # --- 조회 / 읽음 / 삭제 ---
    def get_notifications(self, user_id: str, limit: int = 20, cursor: Optional[str] = None) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        """알림 목록을 최신순으로 페이지네이션 조회합니다."""
        notifications_ref = self._notifications_ref(user_id)
        query = notifications_ref.order_by('timestamp', direction=firestore.Query.DESCENDING)
        if cursor:
            cursor_doc = notifications_ref.document(cursor).get()
            if cursor_doc.exists:
                query = query.start_after(cursor_doc)

        notifications = []
        for doc in query.limit(limit).stream():
            data = DateTimeUtils.from_firestore(doc.to_dict())
            data['notification_id'] = doc.id
            notifications.append(data)
        next_cursor = notifications[-1]['notification_id'] if notifications and len(notifications) == limit else None
        return notifications, next_cursor

    def get_notification(self, user_id: str, notification_id: str) -> Dict[str, Any]:
        doc = self._notifications_ref(user_id).document(notification_id).get()
        if not doc.exists:
            raise ValueError("알림을 찾을 수 없습니다.")
        data = DateTimeUtils.from_firestore(doc.to_dict())
        data['notification_id'] = doc.id
        return data

    def mark_as_read(self, user_id: str, notification_id: str) -> int:
        """알림 하나를 읽음 처리하고, 갱신된 읽지 않은 알림 수를 반환합니다."""
        notification_ref = self._notifications_ref(user_id).document(notification_id)
        if not notification_ref.get().exists:
            raise ValueError("알림을 찾을 수 없습니다.")
        notification_ref.update({'read': True})
        return self.recompute_unread_count(user_id)

    def mark_all_as_read(self, user_id: str) -> int:
        unread_docs = self._notifications_ref(user_id).where(filter=FieldFilter('read', '==', False)).stream()
        batch = self.db.batch()
        for doc in unread_docs:
            batch.update(doc.reference, {'read': True})
        batch.commit()
        return self.recompute_unread_count(user_id)

    def delete_notification(self, user_id: str, notification_id: str) -> int:
        notification_ref = self._notifications_ref(user_id).document(notification_id)
        if not notification_ref.get().exists:
            raise ValueError("삭제할 알림이 없습니다.")
        notification_ref.delete()
        return self.recompute_unread_count(user_id)

    def delete_all_notifications(self, user_id: str) -> int:
        """사용자의 알림을 모두 삭제합니다. 읽지 않은 알림 수는 0이 됩니다."""
        batch = self.db.batch()
        deleted = 0
        for doc in self._notifications_ref(user_id).stream():
            batch.delete(doc.reference)
            deleted += 1
        batch.commit()
        self.recompute_unread_count(user_id)
        logging.info(f"알림 전체 삭제 완료 (user_id: {user_id}, {deleted}건)")
        return deleted

    def open_notification(self, user_id: str, notification_id: str) -> Optional[str]:
        """
        알림을 눌렀을 때의 처리: 읽음 표시 후 삭제하고, 이동할 post_id를 반환합니다.
        """
        notification = self.get_notification(user_id, notification_id)
        notification_ref = self._notifications_ref(user_id).document(notification_id)
        if not notification.get('read'):
            notification_ref.update({'read': True})
        notification_ref.delete()
        self.recompute_unread_count(user_id)
        return notification.get('post_id')

    def discard_notification(self, user_id: str, notification_id: Optional[str]) -> None:
        """
        시스템 내부에서 더 이상 유효하지 않은 알림(예: 검수 대기 알림)을 제거합니다.
        알림이 없거나 삭제에 실패해도 예외를 던지지 않습니다.
        """
        if not notification_id:
            return
        try:
            self._notifications_ref(user_id).document(notification_id).delete()
            self.recompute_unread_count(user_id)
        except Exception as e:
            logging.error(f"알림 제거 실패 (user_id: {user_id}, notification_id: {notification_id}): {e}", exc_info=True)
