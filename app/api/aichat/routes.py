# app/api/aichat/routes.py
from flask import Blueprint, request, jsonify, Response, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from app.api.aichat.schemas import AiChatQuestionSchema, AiChatHistoryEntrySchema
from app.services.chatbot_service import ChatbotError

aichat_bp = Blueprint('aichat_bp', __name__)

@aichat_bp.route('', methods=['POST'])
@jwt_required()
def ask_chatbot():
    """현재 위치와 함께 질문을 보내고 챗봇의 답변을 반환합니다."""
    chatbot_service = current_app.services['chatbot']
    try:
        data = AiChatQuestionSchema().load(request.get_json() or {})
        answer = chatbot_service.ask(data['question'], data['lat'], data['lng'], get_jwt_identity())
        return jsonify({"response": answer}), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ChatbotError as e:
        return jsonify({"error_code": "CHATBOT_UNAVAILABLE", "message": str(e)}), 502


@aichat_bp.route('/history', methods=['GET'])
@jwt_required()
def get_chatbot_history():
    chatbot_service = current_app.services['chatbot']
    history = chatbot_service.get_history(get_jwt_identity())
    return jsonify({"history": AiChatHistoryEntrySchema(many=True).dump(history)}), 200


@aichat_bp.route('/history', methods=['DELETE'])
@jwt_required()
def clear_chatbot_history():
    chatbot_service = current_app.services['chatbot']
    try:
        chatbot_service.clear_history(get_jwt_identity())
        return Response(status=204)
    except ChatbotError as e:
        return jsonify({"error_code": "CHATBOT_UNAVAILABLE", "message": str(e)}), 502
