# app/api/chats/services.py
import logging
import uuid
from dataclasses import asdict
from typing import Optional, Dict, Any, List
from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from app.models.chat import Chat, ChatMessage
from app.utils.datetime_utils import DateTimeUtils

def make_chat_id(user_a: str, user_b: str) -> str:
    """두 참여자 ID를 정렬해 '_'로 이은 값. 누가 먼저 대화를 시작해도 같은 ID가 됩니다."""
    return '_'.join(sorted([user_a, user_b]))

class ChatService:
    """
    1:1 채팅을 담당하는 서비스 클래스.
    채팅방과 메시지는 두 참여자의 'users/{uid}/chats' 아래에 각각 복제되어 저장됩니다.
    """
    def __init__(self, db=None):
        self.db = db if db is not None else firestore.client()
        self.users_ref = self.db.collection('users')

    def _chats_ref(self, user_id: str):
        return self.users_ref.document(user_id).collection('chats')

    def _messages_ref(self, user_id: str, chat_id: str):
        return self._chats_ref(user_id).document(chat_id).collection('messages')

    def _partner_info(self, user_id: str) -> Dict[str, Any]:
        user_doc = self.users_ref.document(user_id).get()
        if not user_doc.exists:
            raise ValueError("대화 상대를 찾을 수 없습니다.")
        data = user_doc.to_dict()
        return {
            'user_id': user_id,
            'display_name': data.get('display_name') or 'Anonymous User',
            'photo_url': data.get('photo_url')
        }

    def _get_chat_or_raise(self, user_id: str, chat_id: str) -> Dict[str, Any]:
        chat_doc = self._chats_ref(user_id).document(chat_id).get()
        if not chat_doc.exists:
            raise ValueError("채팅방을 찾을 수 없습니다.")
        return chat_doc.to_dict()

    def list_chats(self, user_id: str) -> List[Dict[str, Any]]:
        """최근 대화 순으로 채팅방 목록을 반환합니다."""
        query = self._chats_ref(user_id).order_by('timestamp', direction=firestore.Query.DESCENDING)
        return [DateTimeUtils.from_firestore(doc.to_dict()) for doc in query.stream()]

    def start_chat(self, user_id: str, partner_id: str) -> Dict[str, Any]:
        """
        채팅방을 열거나 이미 있으면 그대로 반환합니다.
        - 자기 자신과는 대화할 수 없습니다. (ValueError)
        """
        if not partner_id or partner_id == user_id:
            raise ValueError("자기 자신과는 대화할 수 없습니다.")

        chat_id = make_chat_id(user_id, partner_id)
        my_chat_ref = self._chats_ref(user_id).document(chat_id)
        existing = my_chat_ref.get()
        if existing.exists:
            return DateTimeUtils.from_firestore(existing.to_dict())

        partner = self._partner_info(partner_id)
        me = self._partner_info(user_id)

        batch = self.db.batch()
        my_chat = Chat(chat_id=chat_id, partner=partner)
        batch.set(my_chat_ref, DateTimeUtils.for_firestore(asdict(my_chat)))
        partner_chat_ref = self._chats_ref(partner_id).document(chat_id)
        if not partner_chat_ref.get().exists:
            batch.set(partner_chat_ref, DateTimeUtils.for_firestore(asdict(Chat(chat_id=chat_id, partner=me))))
        batch.commit()
        logging.info(f"채팅방 생성 (chat_id: {chat_id})")
        return asdict(my_chat)

    def get_messages(self, user_id: str, chat_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        """채팅방의 메시지를 오래된 순으로 최근 limit개 반환합니다."""
        self._get_chat_or_raise(user_id, chat_id)
        query = (self._messages_ref(user_id, chat_id)
                 .order_by('timestamp', direction=firestore.Query.DESCENDING)
                 .limit(limit))
        messages = [DateTimeUtils.from_firestore(doc.to_dict()) for doc in query.stream()]
        messages.reverse()
        return messages

    def send_message(self, user_id: str, chat_id: str, text: str = "",
                     media_url: Optional[str] = None, media_type: Optional[str] = None) -> Dict[str, Any]:
        """
        메시지를 두 참여자의 채팅방에 모두 저장합니다.
        상대방 채팅방의 unread_count는 1 증가하고, 양쪽 last_message가 갱신됩니다.
        """
        chat = self._get_chat_or_raise(user_id, chat_id)
        partner_id = (chat.get('partner') or {}).get('user_id')
        if not partner_id:
            raise ValueError("채팅방 정보가 올바르지 않습니다.")

        me = self._partner_info(user_id)
        message = ChatMessage(
            message_id=str(uuid.uuid4()),
            sender_id=user_id,
            sender_name=me['display_name'],
            text=text or "",
            media_url=media_url,
            media_type=media_type
        )
        message_data = DateTimeUtils.for_firestore(asdict(message))
        last_message = {
            'text': message.text if message.text else f"[{media_type or 'media'}]",
            'sender_id': user_id,
            'timestamp': message_data['timestamp']
        }

        batch = self.db.batch()
        batch.set(self._messages_ref(user_id, chat_id).document(message.message_id), message_data)
        batch.set(self._messages_ref(partner_id, chat_id).document(message.message_id), message_data)
        batch.set(self._chats_ref(user_id).document(chat_id), {
            'last_message': last_message,
            'timestamp': message_data['timestamp']
        }, merge=True)
        batch.set(self._chats_ref(partner_id).document(chat_id), {
            'chat_id': chat_id,
            'partner': me,
            'last_message': last_message,
            'timestamp': message_data['timestamp'],
            'unread_count': firestore.Increment(1)
        }, merge=True)
        batch.commit()
        return asdict(message)

    def mark_read(self, user_id: str, chat_id: str) -> None:
        """내 채팅방의 unread_count를 0으로 만들고 상대가 보낸 메시지를 읽음 처리합니다."""
        chat = self._get_chat_or_raise(user_id, chat_id)
        partner_id = (chat.get('partner') or {}).get('user_id')

        unread_docs = (self._messages_ref(user_id, chat_id)
                       .where(filter=FieldFilter('sender_id', '==', partner_id))
                       .where(filter=FieldFilter('read', '==', False))
                       .stream())
        batch = self.db.batch()
        for doc in unread_docs:
            batch.update(doc.reference, {'read': True})
            # 상대방 쪽 사본에도 읽음 표시
            partner_copy = self._messages_ref(partner_id, chat_id).document(doc.id)
            if partner_copy.get().exists:
                batch.update(partner_copy, {'read': True})
        batch.update(self._chats_ref(user_id).document(chat_id), {'unread_count': 0})
        batch.commit()
