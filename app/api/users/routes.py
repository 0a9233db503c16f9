# app/api/users/routes.py
import logging
from flask import Blueprint, request, jsonify, Response, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from app.api.users.schemas import (
    DirectoryEntrySchema, UserPublicResponseSchema, UserMeResponseSchema, UserUpdateSchema
)

users_bp = Blueprint('users_bp', __name__)

@users_bp.route('', methods=['GET'])
@jwt_required()
def search_users():
    """
    사용자 디렉터리를 조회합니다. (게시물 태그·멘션 선택용)
    - q: 표시 이름 검색어 (부분 일치, 대소문자 무시)
    - exclude_self: 본인 제외 여부 (기본값 true)
    """
    user_service = current_app.services['users']
    user_id = get_jwt_identity()
    query = request.args.get('q', None, type=str)
    exclude_self = request.args.get('exclude_self', 'true').lower() != 'false'
    try:
        entries = user_service.search_directory(query, user_id, exclude_self)
        return jsonify({"users": DirectoryEntrySchema(many=True).dump(entries)}), 200
    except Exception as e:
        logging.error(f"사용자 디렉터리 조회 중 오류 발생: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "사용자 목록 조회 중 오류가 발생했습니다."}), 500


@users_bp.route('/me', methods=['GET'])
@jwt_required()
def get_my_profile():
    user_service = current_app.services['users']
    user = user_service.get_user(get_jwt_identity())
    if not user:
        return jsonify({"error_code": "USER_NOT_FOUND", "message": "사용자를 찾을 수 없습니다."}), 404
    return jsonify(UserMeResponseSchema().dump(user)), 200


@users_bp.route('/me', methods=['PATCH'])
@jwt_required()
def update_my_profile():
    """본인 프로필(표시 이름, 사진, 구독 태그, 위치, 반경)을 수정합니다."""
    user_service = current_app.services['users']
    user_id = get_jwt_identity()
    try:
        data = UserUpdateSchema().load(request.get_json() or {})
        updated_user = user_service.update_user(user_id, data)
        return jsonify(UserMeResponseSchema().dump(updated_user)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "USER_NOT_FOUND", "message": str(e)}), 404


@users_bp.route('/me', methods=['DELETE'])
@jwt_required()
def delete_my_account():
    """현재 로그인된 사용자 본인의 계정을 영구적으로 삭제합니다."""
    user_service = current_app.services['users']
    user_id = get_jwt_identity()
    try:
        user_service.delete_account(user_id)
        return Response(status=204)
    except Exception as e:
        logging.error(f"회원 탈퇴 처리 중 오류 발생 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "ACCOUNT_DELETION_FAILED", "message": "회원 탈퇴 처리 중 오류가 발생했습니다."}), 500


@users_bp.route('/<string:user_id>', methods=['GET'])
@jwt_required(optional=True)
def get_user_profile(user_id: str):
    """특정 사용자의 공개 프로필 정보를 조회합니다."""
    user_service = current_app.services['users']
    user = user_service.get_user(user_id)
    if not user:
        return jsonify({"error_code": "USER_NOT_FOUND", "message": "사용자를 찾을 수 없습니다."}), 404
    return jsonify(UserPublicResponseSchema().dump(user)), 200
