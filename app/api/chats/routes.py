# app/api/chats/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from app.api.chats.schemas import (
    StartChatSchema, SendMessageSchema, ChatResponseSchema, ChatMessageResponseSchema
)

chats_bp = Blueprint('chats_bp', __name__)

@chats_bp.route('', methods=['GET'])
@jwt_required()
def list_chats():
    chat_service = current_app.services['chats']
    chats = chat_service.list_chats(get_jwt_identity())
    return jsonify({"chats": ChatResponseSchema(many=True).dump(chats)}), 200


@chats_bp.route('', methods=['POST'])
@jwt_required()
def start_chat():
    """상대방과의 채팅방을 열거나 기존 채팅방을 반환합니다."""
    chat_service = current_app.services['chats']
    try:
        data = StartChatSchema().load(request.get_json() or {})
        chat = chat_service.start_chat(get_jwt_identity(), data['partner_id'])
        return jsonify(ChatResponseSchema().dump(chat)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "INVALID_CHAT_PARTNER", "message": str(e)}), 400


@chats_bp.route('/<string:chat_id>/messages', methods=['GET'])
@jwt_required()
def get_messages(chat_id: str):
    chat_service = current_app.services['chats']
    limit = request.args.get('limit', 50, type=int)
    try:
        messages = chat_service.get_messages(get_jwt_identity(), chat_id, limit)
        return jsonify({"messages": ChatMessageResponseSchema(many=True).dump(messages)}), 200
    except ValueError as e:
        return jsonify({"error_code": "CHAT_NOT_FOUND", "message": str(e)}), 404


@chats_bp.route('/<string:chat_id>/messages', methods=['POST'])
@jwt_required()
def send_message(chat_id: str):
    chat_service = current_app.services['chats']
    user_id = get_jwt_identity()
    try:
        data = SendMessageSchema().load(request.get_json() or {})
        message = chat_service.send_message(user_id, chat_id, data['text'], data['media_url'], data['media_type'])
        return jsonify(ChatMessageResponseSchema().dump(message)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "CHAT_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"메시지 전송 중 오류 발생 (chat_id: {chat_id}): {e}", exc_info=True)
        return jsonify({"error_code": "MESSAGE_SEND_FAILED", "message": "메시지 전송 중 오류가 발생했습니다."}), 500


@chats_bp.route('/<string:chat_id>/read', methods=['POST'])
@jwt_required()
def mark_chat_read(chat_id: str):
    chat_service = current_app.services['chats']
    try:
        chat_service.mark_read(get_jwt_identity(), chat_id)
        return jsonify({"unread_count": 0}), 200
    except ValueError as e:
        return jsonify({"error_code": "CHAT_NOT_FOUND", "message": str(e)}), 404
