# app/api/posts/services.py
import logging
import uuid
from dataclasses import asdict
from typing import Optional, Dict, Any, Tuple, List
from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from app.models.post import Post, VerificationStatus
from app.models.notification import NotificationType, NotificationContext, SYSTEM_SENDER
from app.services.mention_service import DirectoryService, parse_mentions
from app.services.notification_service import NotificationService
from app.services.moderation_service import ModerationService
from app.services.storage_service import StorageService
from app.utils.datetime_utils import DateTimeUtils
from app.utils.geo import distance_between

# Firestore 'array-contains-any' 조건에 넣을 수 있는 값의 최대 개수
MAX_TAG_QUERY_VALUES = 10

def normalize_tags(tags: List[str]) -> List[str]:
    """'#Fire ', 'fire' -> ['fire'] (소문자, '#' 제거, 중복 제거, 순서 유지)"""
    cleaned = (t.strip().lstrip('#').strip().lower() for t in tags or [])
    return list(dict.fromkeys(t for t in cleaned if t))

class PostService:
    """
    게시물 관련 비즈니스 로직을 담당하는 서비스 클래스.
    - 게시물 생성 후 검수 대기 알림, 태그/멘션 알림, 검수 요청을 처리합니다.
    - 좋아요/목격자 토글과 그에 따른 알림, 검수 결과 반영을 포함합니다.
    """
    def __init__(self, notification_service: NotificationService, directory_service: DirectoryService,
                 moderation_service: Optional[ModerationService] = None,
                 storage_service: Optional[StorageService] = None,
                 db=None, tag_match_radius_km: float = 10):
        self.db = db if db is not None else firestore.client()
        self.posts_ref = self.db.collection('posts')
        self.users_ref = self.db.collection('users')
        self.notification_service = notification_service
        self.directory_service = directory_service
        self.moderation_service = moderation_service
        self.storage_service = storage_service
        self.tag_match_radius_km = tag_match_radius_km

    @staticmethod
    def _context_for(post: Dict[str, Any], summary: Optional[str] = None, **extra) -> NotificationContext:
        return NotificationContext(
            post_id=post.get('post_id'),
            post_title=post.get('title') or 'Untitled',
            post_image=post.get('image_url') or '',
            summary=summary,
            extra=extra
        )

    def _get_post_or_raise(self, post_id: str) -> Dict[str, Any]:
        doc = self.posts_ref.document(post_id).get()
        if not doc.exists:
            raise ValueError("게시물을 찾을 수 없습니다.")
        return doc.to_dict()

    # --- 생성 ---
    def create_post(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        새로운 게시물을 생성하고 관련 알림과 검수 요청을 트리거합니다.
        알림/검수 요청의 실패는 게시물 생성 결과에 영향을 주지 않습니다.
        """
        user_doc = self.users_ref.document(user_id).get()
        if not user_doc.exists:
            raise ValueError("게시물 작성자를 찾을 수 없습니다.")
        user_data = user_doc.to_dict()

        is_anonymous = data.get('is_anonymous', False)
        created_at = DateTimeUtils.now()
        duration = data.get('duration', 12)
        tagged_user_ids = [uid for uid in dict.fromkeys(data.get('tagged_user_ids') or []) if uid != user_id]

        new_post = Post(
            post_id=str(uuid.uuid4()),
            creator_id=user_id,
            title=data['title'],
            caption=data['caption'],
            location={'lat': data['location']['lat'], 'lng': data['location']['lng']},
            created_at=created_at,
            expires_at=DateTimeUtils.expires_at(created_at, duration),
            duration=duration,
            username=None if is_anonymous else (user_data.get('display_name') or 'Anonymous User'),
            user_avatar=None if is_anonymous else (user_data.get('photo_url') or ''),
            is_anonymous=is_anonymous,
            image_url=data.get('image_url'),
            tags=normalize_tags(data.get('tags')),
            tagged_user_ids=tagged_user_ids
        )
        post_ref = self.posts_ref.document(new_post.post_id)
        post_ref.set(DateTimeUtils.for_firestore(asdict(new_post)))
        post = asdict(new_post)
        logging.info(f"게시물 생성 완료 (post_id: {new_post.post_id}, user_id: {user_id})")

        # 1. 작성자에게 검수 대기 알림
        pending_id = self.notification_service.create_notification(
            recipient_id=user_id, sender=SYSTEM_SENDER,
            n_type=NotificationType.POST_PENDING, context=self._context_for(post)
        )
        if pending_id:
            post_ref.update({'pending_notification_id': pending_id})
            post['pending_notification_id'] = pending_id

        # 2. 직접 태그한 사용자, 3. 캡션에서 멘션한 사용자 (이미 알림 받은 사용자는 제외)
        self._notify_tagged_users(post, user_id, tagged_user_ids)

        # 4. 외부 검수 요청 (실패해도 무시)
        if self.moderation_service:
            self.moderation_service.request_verification(post)

        return self._decorate(post, user_id)

    def _notify_tagged_users(self, post: Dict[str, Any], user_id: str, tagged_user_ids: List[str]) -> set:
        try:
            sender = self.notification_service.get_sender(user_id, anonymous=post.get('is_anonymous', False))
            context = self._context_for(post)
            results = self.notification_service.dispatch(sender, tagged_user_ids, NotificationType.TAGGED_IN_POST, context)
            notified = set(results.keys())
            if parse_mentions(post.get('caption')):
                directory = self.directory_service.load_directory()
                # 익명 발신자는 ID가 달라서 작성자 본인을 직접 제외합니다.
                notified = self.notification_service.notify_mentions(
                    sender, post.get('caption'), directory, NotificationType.TAGGED_IN_POST, context, notified | {user_id}
                )
                notified.discard(user_id)
            return notified
        except Exception as e:
            logging.error(f"태그 알림 처리 실패 (post_id: {post.get('post_id')}): {e}", exc_info=True)
            return set()

    # --- 조회 ---
    def _decorate(self, post: Dict[str, Any], viewer_id: Optional[str]) -> Dict[str, Any]:
        post = DateTimeUtils.from_firestore(post)
        post['is_liked'] = bool(viewer_id) and viewer_id in (post.get('liked_by') or [])
        post['is_eyewitness'] = bool(viewer_id) and viewer_id in (post.get('eyewitnessed_by') or [])
        if post.get('expires_at'):
            post['time_remaining'] = DateTimeUtils.format_time_remaining(post['expires_at'])
        return post

    def get_post(self, post_id: str, viewer_id: Optional[str]) -> Optional[Dict[str, Any]]:
        """게시물 상세. 검수 전/반려된 게시물은 작성자 본인만 볼 수 있습니다."""
        doc = self.posts_ref.document(post_id).get()
        if not doc.exists:
            return None
        post = doc.to_dict()
        if not post.get('is_visible') and post.get('creator_id') != viewer_id:
            return None
        return self._decorate(post, viewer_id)

    def _visible_posts(self, query) -> List[Dict[str, Any]]:
        now = DateTimeUtils.now()
        posts = []
        for doc in query.stream():
            post = DateTimeUtils.from_firestore(doc.to_dict())
            if post.get('expires_at') and DateTimeUtils.is_expired(post['expires_at'], now):
                continue
            posts.append(post)
        posts.sort(key=lambda p: p['created_at'], reverse=True)
        return posts

    def get_feed(self, lat: float, lng: float, radius_km: float, viewer_id: Optional[str], limit: int = 50) -> List[Dict[str, Any]]:
        """
        현재 위치 반경 안의 노출 중인(검수 통과, 만료 전) 게시물을 최신순으로 반환합니다.
        각 게시물에 distance(km)가 포함됩니다.
        """
        origin = {'lat': lat, 'lng': lng}
        query = self.posts_ref.where(filter=FieldFilter('is_visible', '==', True))
        feed = []
        for post in self._visible_posts(query):
            distance = distance_between(origin, post.get('location'))
            if distance is None or distance > radius_km:
                continue
            if len(feed) >= limit:
                break
            post['distance'] = round(distance, 2)
            feed.append(self._decorate(post, viewer_id))
        return feed

    def get_posts_by_tag(self, tag: str, viewer_id: Optional[str], limit: int = 50) -> List[Dict[str, Any]]:
        normalized = normalize_tags([tag])
        if not normalized:
            return []
        query = (self.posts_ref
                 .where(filter=FieldFilter('is_visible', '==', True))
                 .where(filter=FieldFilter('tags', 'array_contains', normalized[0])))
        return [self._decorate(p, viewer_id) for p in self._visible_posts(query)[:limit]]

    # --- 삭제 ---
    def delete_post(self, post_id: str, user_id: str) -> None:
        post = self._get_post_or_raise(post_id)
        if post.get('creator_id') != user_id:
            raise PermissionError("게시물을 삭제할 권한이 없습니다.")

        if post.get('image_url') and self.storage_service:
            self.storage_service.delete_file(post['image_url'])
        self.notification_service.discard_notification(user_id, post.get('pending_notification_id'))
        self.posts_ref.document(post_id).delete()
        logging.info(f"게시물 삭제 완료 (post_id: {post_id})")

    # --- 좋아요 / 목격자 ---
    def _toggle_membership(self, post_id: str, user_id: str, members_field: str, count_field: str) -> Tuple[bool, Dict[str, Any]]:
        """
        liked_by / eyewitnessed_by 배열에 사용자를 추가하거나 제거하고 카운터를 원자적으로 증감합니다.

        :return: (토글 후 포함 여부, 토글 전 게시물 데이터)
        """
        post_ref = self.posts_ref.document(post_id)
        post = self._get_post_or_raise(post_id)
        # 검수 전/반려된 게시물은 get_post와 같이 작성자 외에는 없는 게시물로 취급
        if not post.get('is_visible') and post.get('creator_id') != user_id:
            raise ValueError("게시물을 찾을 수 없습니다.")
        if user_id in (post.get(members_field) or []):
            post_ref.update({
                members_field: firestore.ArrayRemove([user_id]),
                count_field: firestore.Increment(-1)
            })
            return False, post
        post_ref.update({
            members_field: firestore.ArrayUnion([user_id]),
            count_field: firestore.Increment(1)
        })
        return True, post

    def toggle_like(self, user_id: str, post_id: str) -> bool:
        """좋아요를 누르거나 취소하고 작성자에게 like/unlike 알림을 보냅니다."""
        is_liked, post = self._toggle_membership(post_id, user_id, 'liked_by', 'likes')
        n_type = NotificationType.LIKE if is_liked else NotificationType.UNLIKE
        self.notification_service.create_notification(
            recipient_id=post.get('creator_id'),
            sender=self.notification_service.get_sender(user_id),
            n_type=n_type, context=self._context_for(post)
        )
        return is_liked

    def toggle_eyewitness(self, user_id: str, post_id: str) -> bool:
        """목격자 표시를 추가하거나 제거하고 작성자에게 알림을 보냅니다."""
        is_eyewitness, post = self._toggle_membership(post_id, user_id, 'eyewitnessed_by', 'eyewitnesses')
        n_type = NotificationType.EYEWITNESS if is_eyewitness else NotificationType.REMOVE_EYEWITNESS
        self.notification_service.create_notification(
            recipient_id=post.get('creator_id'),
            sender=self.notification_service.get_sender(user_id),
            n_type=n_type, context=self._context_for(post)
        )
        return is_eyewitness

    # --- 검수 결과 ---
    def apply_verification(self, post_id: str, status: str, reason: Optional[str] = None) -> Dict[str, Any]:
        """
        검수 결과를 게시물에 반영합니다.
        - 검수 대기 알림을 제거하고 승인/반려 알림을 새로 보냅니다.
        - 승인 시 게시물이 노출되고, 구독 태그가 일치하는 주변 사용자에게 tag_match 알림을 보냅니다.
        - 이미 같은 결과가 반영된 게시물이면 아무것도 하지 않습니다.
        """
        verification = VerificationStatus(status)
        if verification is VerificationStatus.NONE:
            raise ValueError("검수 결과는 Approved 또는 Rejected 여야 합니다.")

        post_ref = self.posts_ref.document(post_id)
        post = self._get_post_or_raise(post_id)
        if post.get('verification_status') == verification.value:
            return post

        approved = verification is VerificationStatus.APPROVED
        pending_notification_id = post.get('pending_notification_id')
        updates = {
            'verification_status': verification.value,
            'is_visible': approved,
            'rejection_reason': None if approved else reason,
            'pending_notification_id': None
        }
        post_ref.update(updates)
        post.update(updates)
        creator_id = post.get('creator_id')

        self.notification_service.discard_notification(creator_id, pending_notification_id)
        if approved:
            self.notification_service.create_notification(
                recipient_id=creator_id, sender=SYSTEM_SENDER,
                n_type=NotificationType.POST_APPROVED, context=self._context_for(post)
            )
            self._notify_tag_subscribers(post)
        else:
            self.notification_service.create_notification(
                recipient_id=creator_id, sender=SYSTEM_SENDER,
                n_type=NotificationType.POST_REJECTED,
                context=self._context_for(post, rejection_reason=reason)
            )
        logging.info(f"검수 결과 반영 완료 (post_id: {post_id}, status: {verification.value})")
        return post

    def _notify_tag_subscribers(self, post: Dict[str, Any]) -> List[str]:
        """
        게시물 태그를 구독 중이고, 저장된 위치가 본인 반경 안에 있는 사용자에게 tag_match 알림을 보냅니다.

        :return: 알림을 받은 사용자 ID 목록
        """
        tags = normalize_tags(post.get('tags'))
        if not tags:
            return []
        notified = []
        try:
            creator_id = post.get('creator_id')
            sender = self.notification_service.get_sender(creator_id, anonymous=post.get('is_anonymous', False))
            query = self.users_ref.where(filter=FieldFilter('subscribed_tags', 'array_contains_any', tags[:MAX_TAG_QUERY_VALUES]))
            for doc in query.stream():
                if doc.id == creator_id:
                    continue
                user = doc.to_dict()
                distance = distance_between(user.get('location'), post.get('location'))
                radius_km = user.get('radius_km') or self.tag_match_radius_km
                if distance is None or distance > radius_km:
                    continue
                matched_tags = [t for t in tags if t in (user.get('subscribed_tags') or [])]
                notification_id = self.notification_service.create_notification(
                    recipient_id=doc.id, sender=sender, n_type=NotificationType.TAG_MATCH,
                    context=self._context_for(post, matched_tags=matched_tags, distance=round(distance, 1))
                )
                if notification_id:
                    notified.append(doc.id)
        except Exception as e:
            logging.error(f"구독 태그 알림 처리 실패 (post_id: {post.get('post_id')}): {e}", exc_info=True)
        return notified
