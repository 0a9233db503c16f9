# app/api/comments/services.py

import logging
import uuid
from dataclasses import asdict
from typing import Optional, Dict, Any, List, Tuple
from firebase_admin import firestore

from app.models.comment import Comment
from app.models.notification import NotificationType, NotificationContext, NotificationSender
from app.services.mention_service import DirectoryService, parse_mentions
from app.services.notification_service import NotificationService
from app.utils.datetime_utils import DateTimeUtils

class CommentService:
    """
    댓글·답글 관련 비즈니스 로직을 담당하는 서비스 클래스.
    - 댓글/답글 작성, 좋아요, 삭제와 그에 따른 알림(댓글·답글·멘션·좋아요)을 처리합니다.
    - 알림 실패는 댓글 작성 결과에 영향을 주지 않습니다.
    """
    def __init__(self, notification_service: NotificationService, directory_service: DirectoryService, db=None):
        self.db = db if db is not None else firestore.client()
        self.posts_ref = self.db.collection('posts')
        self.users_ref = self.db.collection('users')
        self.notification_service = notification_service
        self.directory_service = directory_service

    def _comments_ref(self, post_id: str):
        return self.posts_ref.document(post_id).collection('comments')

    def _replies_ref(self, post_id: str, comment_id: str):
        return self._comments_ref(post_id).document(comment_id).collection('replies')

    def _get_post_or_raise(self, post_id: str, user_id: str) -> Dict[str, Any]:
        """검수 전/반려된 게시물은 작성자 본인 외에는 존재하지 않는 것으로 취급합니다."""
        post_doc = self.posts_ref.document(post_id).get()
        if not post_doc.exists:
            raise ValueError("댓글을 작성할 게시물이 존재하지 않습니다.")
        post = post_doc.to_dict()
        if not post.get('is_visible') and post.get('creator_id') != user_id:
            raise ValueError("댓글을 작성할 게시물이 존재하지 않습니다.")
        return post

    def _get_comment_or_raise(self, post_id: str, comment_id: str) -> Dict[str, Any]:
        comment_doc = self._comments_ref(post_id).document(comment_id).get()
        if not comment_doc.exists:
            raise ValueError("댓글을 찾을 수 없습니다.")
        return comment_doc.to_dict()

    @staticmethod
    def _context_for(post: Dict[str, Any], text: str, comment_id: str) -> NotificationContext:
        return NotificationContext(
            post_id=post.get('post_id'),
            post_title=post.get('title') or 'Untitled',
            post_image=post.get('image_url') or '',
            summary=text,
            extra={'comment_id': comment_id}
        )

    def _build_comment(self, post_id: str, author_id: str, text: str, parent_id: Optional[str] = None) -> Tuple[Comment, NotificationSender]:
        author_doc = self.users_ref.document(author_id).get()
        if not author_doc.exists:
            raise ValueError("댓글 작성자를 찾을 수 없습니다.")
        author_info = author_doc.to_dict()
        comment = Comment(
            comment_id=str(uuid.uuid4()),
            post_id=post_id,
            sender_id=author_id,
            username=author_info.get('display_name') or 'Anonymous User',
            user_avatar=author_info.get('photo_url'),
            text=text,
            parent_id=parent_id
        )
        sender = NotificationSender(user_id=author_id, display_name=comment.username, photo_url=comment.user_avatar)
        return comment, sender

    def _notify(self, sender: NotificationSender, direct_recipient_id: Optional[str], direct_type: NotificationType,
                text: str, context: NotificationContext) -> set:
        """
        직접 대상(게시물 작성자 또는 부모 댓글 작성자)에게 먼저 알림을 보내고,
        본문의 멘션 중 아직 알림을 받지 않은 사용자에게 mention 알림을 보냅니다.
        """
        notified = set()
        try:
            results = self.notification_service.dispatch(sender, [direct_recipient_id], direct_type, context)
            notified.update(results.keys())
            if parse_mentions(text):
                directory = self.directory_service.load_directory()
                notified = self.notification_service.notify_mentions(
                    sender, text, directory, NotificationType.MENTION, context, notified
                )
        except Exception as e:
            logging.error(f"댓글 알림 처리 실패 (post_id: {context.post_id}): {e}", exc_info=True)
        return notified

    def create_comment(self, post_id: str, author_id: str, text: str) -> Dict[str, Any]:
        """새로운 댓글을 생성하고 게시물 작성자 및 멘션된 사용자에게 알림을 보냅니다."""
        post = self._get_post_or_raise(post_id, author_id)
        comment, sender = self._build_comment(post_id, author_id, text)

        self._comments_ref(post_id).document(comment.comment_id).set(DateTimeUtils.for_firestore(asdict(comment)))
        self.posts_ref.document(post_id).update({'comment_count': firestore.Increment(1)})

        self._notify(sender, post.get('creator_id'), NotificationType.COMMENT, text,
                     self._context_for(post, text, comment.comment_id))
        return asdict(comment)

    def create_reply(self, post_id: str, comment_id: str, author_id: str, text: str) -> Dict[str, Any]:
        """댓글에 답글을 달고 부모 댓글 작성자 및 멘션된 사용자에게 알림을 보냅니다."""
        post = self._get_post_or_raise(post_id, author_id)
        parent = self._get_comment_or_raise(post_id, comment_id)
        reply, sender = self._build_comment(post_id, author_id, text, parent_id=comment_id)

        self._replies_ref(post_id, comment_id).document(reply.comment_id).set(DateTimeUtils.for_firestore(asdict(reply)))
        self.posts_ref.document(post_id).update({'comment_count': firestore.Increment(1)})

        self._notify(sender, parent.get('sender_id'), NotificationType.REPLY, text,
                     self._context_for(post, text, comment_id))
        return asdict(reply)

    def get_comments(self, post_id: str, viewer_id: Optional[str]) -> List[Dict[str, Any]]:
        """게시물의 댓글을 작성 순으로, 각 댓글의 답글을 replies에 담아 반환합니다."""
        comments = []
        for doc in self._comments_ref(post_id).order_by('timestamp').stream():
            comment = self._decorate(doc.to_dict(), viewer_id)
            comment['replies'] = [
                self._decorate(reply_doc.to_dict(), viewer_id)
                for reply_doc in self._replies_ref(post_id, doc.id).order_by('timestamp').stream()
            ]
            comments.append(comment)
        return comments

    @staticmethod
    def _decorate(comment: Dict[str, Any], viewer_id: Optional[str]) -> Dict[str, Any]:
        comment = DateTimeUtils.from_firestore(comment)
        comment['is_liked'] = bool(viewer_id) and viewer_id in (comment.get('liked_by') or [])
        return comment

    def _toggle_like(self, doc_ref, user_id: str) -> Tuple[bool, Dict[str, Any]]:
        doc = doc_ref.get()
        if not doc.exists:
            raise ValueError("좋아요를 누를 댓글을 찾을 수 없습니다.")
        data = doc.to_dict()
        if user_id in (data.get('liked_by') or []):
            doc_ref.update({'liked_by': firestore.ArrayRemove([user_id]), 'likes': firestore.Increment(-1)})
            return False, data
        doc_ref.update({'liked_by': firestore.ArrayUnion([user_id]), 'likes': firestore.Increment(1)})
        return True, data

    def toggle_comment_like(self, post_id: str, comment_id: str, user_id: str) -> bool:
        """댓글 좋아요를 누르거나 취소하고, 새 좋아요인 경우 댓글 작성자에게 알림을 보냅니다."""
        post = self._get_post_or_raise(post_id, user_id)
        is_liked, comment = self._toggle_like(self._comments_ref(post_id).document(comment_id), user_id)
        if is_liked:
            self.notification_service.create_notification(
                recipient_id=comment.get('sender_id'),
                sender=self.notification_service.get_sender(user_id),
                n_type=NotificationType.COMMENT_LIKE,
                context=self._context_for(post, comment.get('text', ''), comment_id)
            )
        return is_liked

    def toggle_reply_like(self, post_id: str, comment_id: str, reply_id: str, user_id: str) -> bool:
        """답글 좋아요를 누르거나 취소하고, 새 좋아요인 경우 답글 작성자에게 알림을 보냅니다."""
        post = self._get_post_or_raise(post_id, user_id)
        is_liked, reply = self._toggle_like(self._replies_ref(post_id, comment_id).document(reply_id), user_id)
        if is_liked:
            self.notification_service.create_notification(
                recipient_id=reply.get('sender_id'),
                sender=self.notification_service.get_sender(user_id),
                n_type=NotificationType.REPLY_LIKE,
                context=self._context_for(post, reply.get('text', ''), comment_id)
            )
        return is_liked

    def delete_comment(self, post_id: str, comment_id: str, user_id: str) -> None:
        """댓글과 그 답글을 삭제합니다. (작성자 본인만 가능)"""
        comment = self._get_comment_or_raise(post_id, comment_id)
        if comment.get('sender_id') != user_id:
            raise PermissionError("댓글을 삭제할 권한이 없습니다.")

        comment_ref = self._comments_ref(post_id).document(comment_id)
        batch = self.db.batch()
        removed = 1
        for reply_doc in self._replies_ref(post_id, comment_id).stream():
            batch.delete(reply_doc.reference)
            removed += 1
        batch.delete(comment_ref)
        batch.update(self.posts_ref.document(post_id), {'comment_count': firestore.Increment(-removed)})
        batch.commit()
        logging.info(f"댓글 삭제 완료 (post_id: {post_id}, comment_id: {comment_id}, {removed}건)")
